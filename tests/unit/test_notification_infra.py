"""Email dispatcher client, Redis publisher and notification persistence."""

import json
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from src.sx_common.enums import EmailType, EventType, NotificationStatus, NotificationType
from src.sx_notification.application.service import NotificationService
from src.sx_notification.domain.events import DomainEvent, EmailRequest
from src.sx_notification.infrastructure.email_client import EmailDispatcher
from src.sx_notification.infrastructure.persistence import NotificationRepository
from src.sx_notification.infrastructure.publisher import RedisEventPublisher, channel_for
from tests.unit.fakes import FakeNotificationRepository

_REQUEST = EmailRequest(
    EmailType.MARKET_OPEN, ("a@example.com", "b@example.com"), "g1", {"gameName": "Demo"}
)


class TestEmailDispatcher:
    async def test_posts_body_with_bearer(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(202)

        client = EmailDispatcher(
            base_url="http://mail.test/send", token="tok",
            transport=httpx.MockTransport(handler),
        )

        assert await client.send(_REQUEST) is True
        assert seen[0].headers["Authorization"] == "Bearer tok"
        assert json.loads(seen[0].content) == {
            "type": "market_open",
            "recipients": ["a@example.com", "b@example.com"],
            "gameId": "g1",
            "templateData": {"gameName": "Demo"},
        }

    async def test_server_error_is_swallowed(self) -> None:
        client = EmailDispatcher(
            base_url="http://mail.test/send", token="",
            transport=httpx.MockTransport(lambda r: httpx.Response(500)),
        )
        assert await client.send(_REQUEST) is False

    async def test_disabled_without_url(self) -> None:
        client = EmailDispatcher(base_url="", token="")
        assert await client.send(_REQUEST) is False

    async def test_no_recipients(self) -> None:
        client = EmailDispatcher(
            base_url="http://mail.test/send",
            transport=httpx.MockTransport(lambda r: httpx.Response(202)),
        )
        assert await client.send(EmailRequest(EmailType.RESULTS, (), "g1")) is False


class TestRedisEventPublisher:
    async def test_publishes_on_game_channel(self, monkeypatch: pytest.MonkeyPatch) -> None:
        redis = AsyncMock()
        monkeypatch.setattr(
            "src.sx_notification.infrastructure.publisher.get_redis",
            AsyncMock(return_value=redis),
        )
        event = DomainEvent(EventType.TRADE_SETTLED, "g1", {"trade_id": "t1"})

        assert await RedisEventPublisher().publish(event) is True

        channel, message = redis.publish.await_args.args
        assert channel == channel_for("g1")
        assert channel.endswith("g1")
        body = json.loads(message)
        assert body["event_type"] == "TRADE_SETTLED"
        assert body["event_id"] == event.event_id
        assert body["payload"] == {"trade_id": "t1"}

    async def test_redis_failure_is_dropped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        redis = AsyncMock()
        redis.publish.side_effect = RedisConnectionError("down")
        monkeypatch.setattr(
            "src.sx_notification.infrastructure.publisher.get_redis",
            AsyncMock(return_value=redis),
        )
        event = DomainEvent(EventType.TRADE_SETTLED, "g1", {})

        assert await RedisEventPublisher().publish(event) is False


_RECEIVED = NotificationType.PRIMARY_ORDER_RECEIVED


class TestNotificationService:
    async def test_notify_queues_event(self) -> None:
        service = NotificationService(repo=FakeNotificationRepository())
        outbox: list = []

        note = await service.notify(
            AsyncMock(), outbox, "g1", "p1",
            NotificationType.PRIMARY_ORDER_RECEIVED, {"order_id": "o1"},
        )

        assert note.is_unread
        assert outbox[0].event_type is EventType.NOTIFICATION_CREATED
        assert outbox[0].payload["recipient_participant_id"] == "p1"

    async def test_consume_is_first_wins(self) -> None:
        service = NotificationService(repo=FakeNotificationRepository())
        db, outbox = AsyncMock(), []
        note = await service.notify(
            db, outbox, "g1", "p1", NotificationType.SECONDARY_TRADE_REQUEST, {}
        )

        first = await service.consume(db, outbox, note, NotificationStatus.READ)
        second = await service.consume(db, outbox, note, NotificationStatus.REJECTED)

        assert first is not None and first.status is NotificationStatus.READ
        assert second is None
        assert [e.event_type for e in outbox].count(EventType.NOTIFICATION_UPDATED) == 1

    async def test_list_counts_unread(self) -> None:
        service = NotificationService(repo=FakeNotificationRepository())
        db, outbox = AsyncMock(), []
        note = await service.notify(db, outbox, "g1", "p1", _RECEIVED, {})
        await service.notify(db, outbox, "g1", "p1", _RECEIVED, {})
        await service.notify(db, outbox, "g1", "p2", _RECEIVED, {})
        await service.consume(db, outbox, note, NotificationStatus.READ)

        listing = await service.list_for_participant(db, "p1")

        assert len(listing.items) == 2
        assert listing.unread_count == 1

    async def test_unread_count_is_not_limited_by_page(self) -> None:
        service = NotificationService(repo=FakeNotificationRepository())
        db, outbox = AsyncMock(), []
        for _ in range(3):
            await service.notify(db, outbox, "g1", "p1", _RECEIVED, {})

        listing = await service.list_for_participant(db, "p1", limit=1)

        assert len(listing.items) == 1
        assert listing.unread_count == 3


def _make_row(**kwargs: Any) -> MagicMock:
    row = MagicMock()
    row.id = kwargs.get("id", "n1")
    row.game_id = kwargs.get("game_id", "g1")
    row.recipient_participant_id = kwargs.get("recipient_participant_id", "p1")
    row.sender_participant_id = kwargs.get("sender_participant_id", "p2")
    row.type = kwargs.get("type", "secondary_trade_request")
    row.status = kwargs.get("status", "unread")
    row.payload = kwargs.get("payload", '{"qty": 5}')
    row.created_at = kwargs.get("created_at", datetime.now(UTC))
    row.updated_at = kwargs.get("updated_at", datetime.now(UTC))
    return row


class TestNotificationRepository:
    @pytest.mark.asyncio
    async def test_get_by_id_decodes_payload(self) -> None:
        db = AsyncMock()
        result_mock = MagicMock()
        result_mock.fetchone.return_value = _make_row()
        db.execute = AsyncMock(return_value=result_mock)

        note = await NotificationRepository().get_by_id(db, "n1")

        assert note is not None
        assert note.type is NotificationType.SECONDARY_TRADE_REQUEST
        assert note.payload == {"qty": 5}

    @pytest.mark.asyncio
    async def test_transition_conflict_returns_none(self) -> None:
        db = AsyncMock()
        result_mock = MagicMock()
        result_mock.fetchone.return_value = None
        db.execute = AsyncMock(return_value=result_mock)

        updated = await NotificationRepository().transition(
            db, "n1", NotificationStatus.UNREAD, NotificationStatus.READ
        )

        assert updated is None
        params = db.execute.await_args.args[1]
        assert params == {"notification_id": "n1", "expected": "unread", "target": "read"}

    @pytest.mark.asyncio
    async def test_count_unread_uses_sql_count(self) -> None:
        db = AsyncMock()
        result_mock = MagicMock()
        result_mock.scalar.return_value = 7
        db.execute = AsyncMock(return_value=result_mock)

        assert await NotificationRepository().count_unread(db, "p1") == 7
        assert "COUNT(*)" in str(db.execute.await_args.args[0])
        assert db.execute.await_args.args[1] == {"participant_id": "p1"}

    @pytest.mark.asyncio
    async def test_mark_read_about_filters_on_payload_subject(self) -> None:
        db = AsyncMock()
        result_mock = MagicMock()
        result_mock.fetchall.return_value = [
            _make_row(
                id="n2", type="participant_approval_request", status="read",
                payload='{"participant_id": "p9"}',
            )
        ]
        db.execute = AsyncMock(return_value=result_mock)

        closed = await NotificationRepository().mark_read_about(
            db, "g1", NotificationType.PARTICIPANT_APPROVAL_REQUEST, "p9"
        )

        assert [n.id for n in closed] == ["n2"]
        assert closed[0].status is NotificationStatus.READ
        assert db.execute.await_args.args[1] == {
            "game_id": "g1",
            "type": "participant_approval_request",
            "participant_id": "p9",
        }
