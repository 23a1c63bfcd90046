"""Outbox dispatch: runs after the owning transaction has committed."""

import logging
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.sx_common.result import Err, Ok, run_atomic
from src.sx_notification.domain.events import DomainEvent, EmailRequest
from src.sx_notification.infrastructure.email_client import EmailDispatcher
from src.sx_notification.infrastructure.publisher import RedisEventPublisher

logger = logging.getLogger(__name__)


class EventPublisherProtocol(Protocol):
    async def publish(self, event: DomainEvent) -> bool: ...


class EmailSenderProtocol(Protocol):
    async def send(self, request: EmailRequest) -> bool: ...


class OutboxDispatcher:
    def __init__(
        self,
        publisher: EventPublisherProtocol | None = None,
        emails: EmailSenderProtocol | None = None,
    ) -> None:
        self._publisher: EventPublisherProtocol = publisher or RedisEventPublisher()
        self._emails: EmailSenderProtocol = emails or EmailDispatcher()

    async def flush(self, outbox: Iterable[Any]) -> None:
        for item in list(outbox):
            if isinstance(item, DomainEvent):
                await self._publisher.publish(item)
            elif isinstance(item, EmailRequest):
                await self._emails.send(item)
            else:
                logger.error("Unknown outbox item dropped: %r", item)

    async def run(
        self,
        db: AsyncSession,
        op: Callable[[list[Any]], Awaitable[Any]],
    ) -> Ok[Any] | Err:
        """``run_atomic`` with a fresh outbox, flushed once the transaction ends.

        The outbox is emptied on rollback, so only committed effects go out.
        """
        outbox: list[Any] = []
        result = await run_atomic(db, lambda: op(outbox), outbox)
        await self.flush(outbox)
        return result
