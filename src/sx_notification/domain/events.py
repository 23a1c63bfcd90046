"""After-commit side effects: pub/sub events and email requests.

Services append these to the transaction outbox (see ``run_atomic``); they
are dispatched only once the transaction has committed.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from src.sx_common.datetime_utils import utc_now
from src.sx_common.enums import EmailType, EventType
from src.sx_common.id_generator import new_event_id


@dataclass(frozen=True)
class DomainEvent:
    event_type: EventType
    game_id: str
    payload: dict[str, Any]
    event_id: str = field(default_factory=new_event_id)
    occurred_at: datetime = field(default_factory=utc_now)

    def to_message(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "game_id": self.game_id,
            "occurred_at": self.occurred_at.isoformat(),
            "payload": self.payload,
        }


@dataclass(frozen=True)
class EmailRequest:
    email_type: EmailType
    recipients: tuple[str, ...]
    game_id: str
    template_data: dict[str, Any] = field(default_factory=dict)

    def to_body(self) -> dict[str, Any]:
        return {
            "type": self.email_type.value,
            "recipients": list(self.recipients),
            "gameId": self.game_id,
            "templateData": self.template_data,
        }
