"""Redis pub/sub publisher for settlement events.

Fire-and-forget: delivery is at-least-once from the consumer's point of view
(they dedupe on ``event_id``); a failed publish is logged and dropped.
"""

import json
import logging

from redis.exceptions import RedisError

from config.settings import settings
from src.sx_common.redis_client import get_redis
from src.sx_notification.domain.events import DomainEvent

logger = logging.getLogger(__name__)


def channel_for(game_id: str) -> str:
    return f"{settings.EVENTS_CHANNEL_PREFIX}{game_id}"


class RedisEventPublisher:
    async def publish(self, event: DomainEvent) -> bool:
        try:
            redis = await get_redis()
            await redis.publish(channel_for(event.game_id), json.dumps(event.to_message(), default=str))
        except (RedisError, OSError):
            logger.warning(
                "Dropped %s event %s for game %s",
                event.event_type.value,
                event.event_id,
                event.game_id,
                exc_info=True,
            )
            return False
        return True
