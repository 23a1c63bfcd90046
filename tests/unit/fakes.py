"""In-memory repositories conforming to the domain Protocols.

Every read hands back a copy, the way a fresh SELECT would, so services never
see a row change underneath them. Writes obey the same guards as the SQL
(CAS on status, ``cash >= amount``, ``qty_total >= qty``).
"""

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock

from src.sx_account.application.participants import ParticipantService
from src.sx_account.domain.models import LedgerEntry, Participant, Position
from src.sx_clearing.domain.models import Trade
from src.sx_clearing.domain.service import ClearingService
from src.sx_common.enums import (
    FounderMemberRole,
    GameStatus,
    LedgerEntryType,
    NotificationStatus,
    NotificationType,
    OrderStatus,
    ParticipantRole,
    ParticipantStatus,
    RejectReason,
)
from src.sx_game.application.service import GameService
from src.sx_game.domain.models import CircuitBreakerEvent, Game
from src.sx_market.application.circuit_breaker import CircuitBreaker
from src.sx_market.application.price_oracle import PriceOracle
from src.sx_notification.application.dispatch import OutboxDispatcher
from src.sx_notification.application.service import NotificationService
from src.sx_notification.domain.events import DomainEvent, EmailRequest
from src.sx_notification.domain.models import Notification
from src.sx_order.application.service import OrderService
from src.sx_order.domain.models import PrimaryOrder
from src.sx_secondary.application.service import SecondaryTradeService
from src.sx_venture.application.service import VentureService
from src.sx_venture.domain.models import FounderMember, Venture

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeGameRepository:
    def __init__(self) -> None:
        self.games: dict[str, Game] = {}
        self.budgets: dict[tuple[str, str], int] = {}
        self.breaker_events: list[CircuitBreakerEvent] = []

    async def get_by_id(self, db: Any, game_id: str) -> Game | None:
        game = self.games.get(game_id)
        return replace(game) if game else None

    async def update_status(
        self, db: Any, game_id: str, expected: GameStatus, target: GameStatus
    ) -> Game | None:
        game = self.games.get(game_id)
        if game is None or game.status is not expected:
            return None
        game.status = target
        return replace(game)

    async def get_default_budget(self, db: Any, game_id: str, role: str) -> int | None:
        return self.budgets.get((game_id, role))

    async def trip_circuit_breaker(self, db: Any, game_id: str, until: datetime) -> Game | None:
        game = self.games.get(game_id)
        if game is None or not game.circuit_breaker:
            return None
        game.circuit_breaker_active = True
        game.circuit_breaker_until = until
        return replace(game)

    async def record_circuit_breaker_event(self, db: Any, event: CircuitBreakerEvent) -> None:
        self.breaker_events.append(event)

    async def reset_expired_circuit_breakers(self, db: Any, now: datetime) -> list[str]:
        reset = []
        for game in self.games.values():
            if (
                game.circuit_breaker_active
                and game.circuit_breaker_until is not None
                and game.circuit_breaker_until < now
            ):
                game.circuit_breaker_active = False
                game.circuit_breaker_until = None
                reset.append(game.id)
        return reset

    async def list_ended_game_ids(self, db: Any, now: datetime) -> list[str]:
        return [
            g.id for g in self.games.values()
            if g.ends_at < now or g.status is GameStatus.RESULTS
        ]


class FakeParticipantRepository:
    def __init__(self) -> None:
        self.rows: dict[str, Participant] = {}
        self.lock_calls: list[list[str]] = []

    async def get_by_id(self, db: Any, participant_id: str) -> Participant | None:
        p = self.rows.get(participant_id)
        return replace(p) if p else None

    async def get_by_user(self, db: Any, game_id: str, user_id: str) -> Participant | None:
        for p in self.rows.values():
            if p.game_id == game_id and p.user_id == user_id:
                return replace(p)
        return None

    async def lock_many(
        self, db: Any, participant_ids: Sequence[str]
    ) -> dict[str, Participant]:
        ordered = sorted(set(participant_ids))
        self.lock_calls.append(ordered)
        return {pid: replace(self.rows[pid]) for pid in ordered if pid in self.rows}

    async def find_by_identifier(
        self, db: Any, game_id: str, identifier: str
    ) -> Participant | None:
        for p in self.rows.values():
            if p.game_id != game_id:
                continue
            if (p.email and p.email.lower() == identifier.lower()) or p.display_name == identifier:
                return replace(p)
        return None

    async def list_by_game(
        self, db: Any, game_id: str, role: str | None = None
    ) -> list[Participant]:
        return [
            replace(p) for p in self.rows.values()
            if p.game_id == game_id and (role is None or p.role.value == role)
        ]

    async def create(self, db: Any, participant: Participant) -> Participant:
        self.rows[participant.id] = replace(participant, created_at=NOW, updated_at=NOW)
        return replace(self.rows[participant.id])

    async def update_status(
        self,
        db: Any,
        participant_id: str,
        expected: ParticipantStatus,
        target: ParticipantStatus,
    ) -> Participant | None:
        p = self.rows.get(participant_id)
        if p is None or p.status is not expected:
            return None
        p.status = target
        return replace(p)

    async def debit_cash(self, db: Any, participant_id: str, amount: int) -> Participant | None:
        p = self.rows.get(participant_id)
        if p is None or p.current_cash < amount:
            return None
        p.current_cash -= amount
        return replace(p)

    async def credit_cash(self, db: Any, participant_id: str, amount: int) -> Participant | None:
        p = self.rows.get(participant_id)
        if p is None:
            return None
        p.current_cash += amount
        return replace(p)


class FakePositionRepository:
    def __init__(self) -> None:
        self.rows: dict[tuple[str, str], Position] = {}

    async def get(self, db: Any, participant_id: str, venture_id: str) -> Position | None:
        pos = self.rows.get((participant_id, venture_id))
        return replace(pos) if pos else None

    async def get_or_create_locked(
        self, db: Any, participant_id: str, venture_id: str
    ) -> Position:
        key = (participant_id, venture_id)
        if key not in self.rows:
            self.rows[key] = Position(participant_id=participant_id, venture_id=venture_id)
        return replace(self.rows[key])

    async def set_buy_state(
        self, db: Any, participant_id: str, venture_id: str, qty_total: int, avg_cost: Decimal
    ) -> Position:
        pos = self.rows[(participant_id, venture_id)]
        pos.qty_total = qty_total
        pos.avg_cost = avg_cost
        return replace(pos)

    async def decrement(
        self, db: Any, participant_id: str, venture_id: str, qty: int
    ) -> Position | None:
        pos = self.rows.get((participant_id, venture_id))
        if pos is None or pos.qty_total < qty:
            return None
        pos.qty_total -= qty
        return replace(pos)

    async def list_by_participant(self, db: Any, participant_id: str) -> list[Position]:
        return [
            replace(p) for (pid, _), p in sorted(self.rows.items())
            if pid == participant_id and p.qty_total > 0
        ]


class FakeLedgerRepository:
    def __init__(self) -> None:
        self.entries: list[LedgerEntry] = []

    async def append(
        self,
        db: Any,
        participant_id: str,
        game_id: str,
        entry_type: str,
        amount: int,
        balance_after: int,
        reference_type: str,
        reference_id: str,
    ) -> None:
        self.entries.append(
            LedgerEntry(
                id=len(self.entries) + 1,
                participant_id=participant_id,
                game_id=game_id,
                entry_type=LedgerEntryType(entry_type),
                amount=amount,
                balance_after=balance_after,
                reference_type=reference_type,
                reference_id=reference_id,
                created_at=NOW,
            )
        )

    async def list_entries(
        self,
        db: Any,
        participant_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[LedgerEntry]:
        rows = [
            e for e in reversed(self.entries)
            if e.participant_id == participant_id
            and (cursor_id is None or e.id < cursor_id)
            and (entry_type is None or e.entry_type.value == entry_type)
        ]
        return rows[:limit]


class FakeVentureRepository:
    def __init__(self) -> None:
        self.rows: dict[str, Venture] = {}
        self.founders: list[FounderMember] = []
        self.locked: list[str] = []

    async def get_by_id(self, db: Any, venture_id: str) -> Venture | None:
        v = self.rows.get(venture_id)
        return replace(v) if v else None

    async def get_for_update(self, db: Any, venture_id: str) -> Venture | None:
        self.locked.append(venture_id)
        return await self.get_by_id(db, venture_id)

    async def list_by_game(self, db: Any, game_id: str) -> list[Venture]:
        return [replace(v) for v in self.rows.values() if v.game_id == game_id]

    async def create(self, db: Any, venture: Venture) -> Venture:
        self.rows[venture.id] = replace(venture, created_at=NOW, updated_at=NOW)
        return replace(self.rows[venture.id])

    async def consume_primary_shares(self, db: Any, venture_id: str, qty: int) -> Venture | None:
        v = self.rows.get(venture_id)
        if v is None or v.primary_shares_remaining < qty:
            return None
        v.primary_shares_remaining -= qty
        return replace(v)

    async def update_vwap(self, db: Any, venture_id: str, price: Decimal) -> None:
        self.rows[venture_id].last_vwap_price = price

    async def list_founders(self, db: Any, venture_id: str) -> list[FounderMember]:
        return [replace(f) for f in self.founders if f.venture_id == venture_id]

    async def is_founder(self, db: Any, venture_id: str, participant_id: str) -> bool:
        return any(
            f.venture_id == venture_id and f.participant_id == participant_id
            for f in self.founders
        )

    async def add_founder(
        self, db: Any, venture_id: str, participant_id: str, role: FounderMemberRole
    ) -> FounderMember | None:
        if await self.is_founder(db, venture_id, participant_id):
            return None
        member = FounderMember(venture_id, participant_id, role, created_at=NOW)
        self.founders.append(member)
        return replace(member)

    async def transfer_ownership(
        self,
        db: Any,
        venture_id: str,
        from_participant_id: str | None,
        to_participant_id: str,
    ) -> None:
        for f in self.founders:
            if f.venture_id == venture_id and f.participant_id == from_participant_id:
                f.role = FounderMemberRole.MEMBER
        for f in self.founders:
            if f.venture_id == venture_id and f.participant_id == to_participant_id:
                f.role = FounderMemberRole.OWNER
                return
        self.founders.append(
            FounderMember(venture_id, to_participant_id, FounderMemberRole.OWNER, created_at=NOW)
        )

    async def remove_founder_memberships(self, db: Any, participant_id: str) -> list[str]:
        dropped = [f.venture_id for f in self.founders if f.participant_id == participant_id]
        self.founders = [f for f in self.founders if f.participant_id != participant_id]
        return dropped

    async def count_founders(self, db: Any, venture_id: str) -> int:
        return sum(1 for f in self.founders if f.venture_id == venture_id)


class FakeOrderRepository:
    def __init__(self) -> None:
        self.rows: dict[str, PrimaryOrder] = {}

    async def create(self, db: Any, order: PrimaryOrder) -> PrimaryOrder:
        self.rows[order.id] = replace(order, created_at=NOW, updated_at=NOW)
        return replace(self.rows[order.id])

    async def get_by_id(self, db: Any, order_id: str) -> PrimaryOrder | None:
        o = self.rows.get(order_id)
        return replace(o) if o else None

    async def transition(
        self,
        db: Any,
        order_id: str,
        target: OrderStatus,
        decided_by: str | None = None,
        reject_reason: RejectReason | None = None,
        trade_id: str | None = None,
    ) -> PrimaryOrder | None:
        o = self.rows.get(order_id)
        if o is None or o.status is not OrderStatus.PENDING:
            return None
        o.status = target
        o.decided_by_participant_id = decided_by or o.decided_by_participant_id
        o.reject_reason = reject_reason
        o.trade_id = trade_id
        o.decided_at = NOW
        return replace(o)

    async def list_by_venture(
        self, db: Any, venture_id: str, status: OrderStatus | None, limit: int
    ) -> list[PrimaryOrder]:
        return [
            replace(o) for o in self.rows.values()
            if o.venture_id == venture_id and (status is None or o.status is status)
        ][:limit]

    async def list_by_buyer(
        self, db: Any, participant_id: str, status: OrderStatus | None, limit: int
    ) -> list[PrimaryOrder]:
        return [
            replace(o) for o in self.rows.values()
            if o.buyer_participant_id == participant_id and (status is None or o.status is status)
        ][:limit]

    def _close_pending(self, match: Any, status: OrderStatus, reason: RejectReason | None):
        closed = []
        for o in self.rows.values():
            if o.status is OrderStatus.PENDING and match(o):
                o.status = status
                o.reject_reason = reason
                o.decided_at = NOW
                closed.append(replace(o))
        return closed

    async def cancel_pending_for_buyer(
        self,
        db: Any,
        participant_id: str,
        reason: RejectReason,
        venture_id: str | None = None,
    ) -> list[PrimaryOrder]:
        return self._close_pending(
            lambda o: o.buyer_participant_id == participant_id
            and (venture_id is None or o.venture_id == venture_id),
            OrderStatus.CANCELED,
            reason,
        )

    async def cancel_pending_for_venture(
        self, db: Any, venture_id: str, reason: RejectReason
    ) -> list[PrimaryOrder]:
        return self._close_pending(
            lambda o: o.venture_id == venture_id, OrderStatus.CANCELED, reason
        )

    async def expire_pending_for_games(
        self, db: Any, game_ids: Sequence[str]
    ) -> list[PrimaryOrder]:
        ids = set(game_ids)
        return self._close_pending(lambda o: o.game_id in ids, OrderStatus.EXPIRED, None)


class FakeTradeRepository:
    def __init__(self) -> None:
        self.rows: list[Trade] = []

    async def exists(self, db: Any, trade_id: str) -> bool:
        return any(t.id == trade_id for t in self.rows)

    async def insert(self, db: Any, trade: Trade) -> Trade:
        for t in self.rows:
            assert trade.order_id is None or t.order_id != trade.order_id, "duplicate order_id"
            assert (
                trade.notification_id is None or t.notification_id != trade.notification_id
            ), "duplicate notification_id"
        stored = replace(trade, created_at=NOW + timedelta(microseconds=len(self.rows)))
        self.rows.append(stored)
        return stored

    def _newest_first(self) -> list[Trade]:
        return sorted(self.rows, key=lambda t: (t.created_at, t.id), reverse=True)

    async def recent_for_venture(self, db: Any, venture_id: str, limit: int) -> list[Trade]:
        return [t for t in self._newest_first() if t.venture_id == venture_id][:limit]

    async def list_trades(
        self,
        db: Any,
        *,
        game_id: str | None = None,
        venture_id: str | None = None,
        participant_id: str | None = None,
        cursor_ts: datetime | None = None,
        cursor_id: str | None = None,
        limit: int = 20,
    ) -> list[Trade]:
        rows = [
            t for t in self._newest_first()
            if (game_id is None or t.game_id == game_id)
            and (venture_id is None or t.venture_id == venture_id)
            and (
                participant_id is None
                or participant_id in (t.buyer_participant_id, t.seller_participant_id)
            )
            and (cursor_ts is None or (t.created_at, t.id) < (cursor_ts, cursor_id))
        ]
        return rows[:limit]


class FakeNotificationRepository:
    def __init__(self) -> None:
        self.rows: dict[str, Notification] = {}

    async def create(self, db: Any, notification: Notification) -> Notification:
        self.rows[notification.id] = replace(notification, created_at=NOW, updated_at=NOW)
        return replace(self.rows[notification.id])

    async def get_by_id(self, db: Any, notification_id: str) -> Notification | None:
        n = self.rows.get(notification_id)
        return replace(n) if n else None

    async def transition(
        self,
        db: Any,
        notification_id: str,
        expected: NotificationStatus,
        target: NotificationStatus,
    ) -> Notification | None:
        n = self.rows.get(notification_id)
        if n is None or n.status is not expected:
            return None
        n.status = target
        return replace(n)

    async def list_for_participant(
        self,
        db: Any,
        participant_id: str,
        status: NotificationStatus | None,
        limit: int,
    ) -> list[Notification]:
        return [
            replace(n) for n in reversed(list(self.rows.values()))
            if n.recipient_participant_id == participant_id
            and (status is None or n.status is status)
        ][:limit]

    async def count_unread(self, db: Any, participant_id: str) -> int:
        return sum(
            1 for n in self.rows.values()
            if n.recipient_participant_id == participant_id and n.is_unread
        )

    async def mark_read_about(
        self, db: Any, game_id: str, notification_type: NotificationType, participant_id: str
    ) -> list[Notification]:
        closed = []
        for n in self.rows.values():
            if (
                n.game_id == game_id
                and n.type is notification_type
                and n.is_unread
                and str(n.payload.get("participant_id")) == participant_id
            ):
                n.status = NotificationStatus.READ
                closed.append(replace(n))
        return closed

    def of_type(self, type_: Any, recipient: str | None = None) -> list[Notification]:
        return [
            n for n in self.rows.values()
            if n.type is type_ and (recipient is None or n.recipient_participant_id == recipient)
        ]


class RecordingPublisher:
    def __init__(self) -> None:
        self.events: list[DomainEvent] = []

    async def publish(self, event: DomainEvent) -> bool:
        self.events.append(event)
        return True

    def types(self) -> list[str]:
        return [e.event_type.value for e in self.events]


class RecordingEmails:
    def __init__(self) -> None:
        self.sent: list[EmailRequest] = []

    async def send(self, request: EmailRequest) -> bool:
        self.sent.append(request)
        return True


@dataclass
class World:
    """One game's worth of fakes with every service wired onto them."""

    now: datetime = NOW
    games: FakeGameRepository = field(default_factory=FakeGameRepository)
    participants: FakeParticipantRepository = field(default_factory=FakeParticipantRepository)
    positions: FakePositionRepository = field(default_factory=FakePositionRepository)
    ledger: FakeLedgerRepository = field(default_factory=FakeLedgerRepository)
    ventures: FakeVentureRepository = field(default_factory=FakeVentureRepository)
    orders: FakeOrderRepository = field(default_factory=FakeOrderRepository)
    trades: FakeTradeRepository = field(default_factory=FakeTradeRepository)
    notifications: FakeNotificationRepository = field(default_factory=FakeNotificationRepository)
    publisher: RecordingPublisher = field(default_factory=RecordingPublisher)
    emails: RecordingEmails = field(default_factory=RecordingEmails)

    def __post_init__(self) -> None:
        self.db = AsyncMock()
        self.dispatcher = OutboxDispatcher(publisher=self.publisher, emails=self.emails)
        self.notification_service = NotificationService(repo=self.notifications)
        self.clearing = ClearingService(
            trades=self.trades,
            participants=self.participants,
            positions=self.positions,
            ledger=self.ledger,
        )
        self.oracle = PriceOracle(trades=self.trades, ventures=self.ventures, window=3)
        self.breaker = CircuitBreaker(
            games=self.games, threshold_pct=Decimal("200"), cooldown=timedelta(minutes=15)
        )
        clock = lambda: self.now  # noqa: E731
        common = {
            "games": self.games,
            "ventures": self.ventures,
            "participants": self.participants,
            "notifications": self.notification_service,
            "dispatcher": self.dispatcher,
        }
        self.order_service = OrderService(
            orders=self.orders, clearing=self.clearing, oracle=self.oracle,
            breaker=self.breaker, clock=clock, **common,
        )
        self.secondary_service = SecondaryTradeService(
            positions=self.positions, clearing=self.clearing, oracle=self.oracle,
            breaker=self.breaker, clock=clock, **common,
        )
        self.venture_service = VentureService(orders=self.orders, **common)
        self.participant_service = ParticipantService(
            orders=self.orders, venture_service=self.venture_service, **common,
        )
        self.game_service = GameService(
            games=self.games, participants=self.participants, orders=self.orders,
            dispatcher=self.dispatcher, clock=clock,
        )

    # -- builders -------------------------------------------------------

    def add_game(self, game_id: str = "g1", **overrides: Any) -> Game:
        values: dict[str, Any] = {
            "id": game_id,
            "name": "Demo Day",
            "owner_user_id": "owner-user",
            "status": GameStatus.OPEN,
            "currency": "USD",
            "starts_at": NOW - timedelta(days=1),
            "ends_at": NOW + timedelta(days=1),
            "allow_secondary": True,
            "circuit_breaker": True,
        }
        values.update(overrides)
        game = Game(**values)
        self.games.games[game_id] = game
        return game

    def add_participant(
        self,
        pid: str,
        role: ParticipantRole = ParticipantRole.ANGEL,
        cash: int = 1_000_000,
        status: ParticipantStatus = ParticipantStatus.ACTIVE,
        game_id: str = "g1",
    ) -> Participant:
        p = Participant(
            id=pid,
            game_id=game_id,
            user_id=f"user-{pid}",
            role=role,
            status=status,
            initial_budget=cash,
            current_cash=cash,
            email=f"{pid}@example.com",
            display_name=pid.capitalize(),
        )
        self.participants.rows[pid] = p
        return p

    def add_venture(
        self,
        vid: str = "v1",
        total: int = 1000,
        remaining: int | None = None,
        founders: Sequence[str] = ("founder",),
        game_id: str = "g1",
        vwap: Decimal | None = None,
    ) -> Venture:
        v = Venture(
            id=vid,
            game_id=game_id,
            name=vid.upper(),
            total_shares=total,
            primary_shares_remaining=total if remaining is None else remaining,
            last_vwap_price=vwap,
        )
        self.ventures.rows[vid] = v
        for i, fid in enumerate(founders):
            role = FounderMemberRole.OWNER if i == 0 else FounderMemberRole.MEMBER
            self.ventures.founders.append(FounderMember(vid, fid, role, created_at=NOW))
        return v

    def give_shares(self, pid: str, vid: str, qty: int, avg_cost: str = "100") -> None:
        self.positions.rows[(pid, vid)] = Position(pid, vid, qty, Decimal(avg_cost))

    def cash(self, pid: str) -> int:
        return self.participants.rows[pid].current_cash

    def held(self, pid: str, vid: str = "v1") -> int:
        pos = self.positions.rows.get((pid, vid))
        return pos.qty_total if pos else 0
