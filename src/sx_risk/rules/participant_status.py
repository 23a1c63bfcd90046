from src.sx_account.domain.models import Participant
from src.sx_common.errors import ParticipantInactiveError


def check_participant_active(participant: Participant) -> None:
    if not participant.is_active:
        raise ParticipantInactiveError(participant.id, participant.status.value)
