"""Settlement write path, trade history, portfolio reads and conservation checks."""

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.sx_account.application.service import PortfolioService
from src.sx_admin.application.service import AdminService
from src.sx_clearing.application.trades_service import TradeQueryService
from src.sx_clearing.domain.invariants import verify_game_invariants
from src.sx_clearing.domain.models import Trade
from src.sx_common.enums import LedgerEntryType, MarketType, OrderDecision, ParticipantRole
from src.sx_common.errors import (
    GameNotFoundError,
    InsufficientBalanceError,
    InsufficientPositionError,
    VentureNotFoundError,
)
from src.sx_common.result import Ok
from src.sx_order.application.schemas import CreateOrderRequest
from src.sx_secondary.application.schemas import SecondaryTradeRequest
from tests.unit.fakes import World


@pytest.fixture
def world() -> World:
    w = World()
    w.add_game()
    w.add_participant("founder", ParticipantRole.FOUNDER, cash=0)
    w.add_participant("angel", ParticipantRole.ANGEL, cash=100_000)
    w.add_participant("vc", ParticipantRole.VC, cash=100_000)
    w.add_venture("v1", total=1000, remaining=1000)
    return w


def _trade(tid: str, **kwargs) -> Trade:
    values = {
        "id": tid,
        "game_id": "g1",
        "venture_id": "v1",
        "market_type": MarketType.PRIMARY,
        "buyer_participant_id": "angel",
        "qty": 10,
        "price_per_share": 100,
    }
    values.update(kwargs)
    return Trade(**values)


class TestApplyTrade:
    async def test_primary_buy(self, world: World) -> None:
        outbox: list = []
        result = await world.clearing.apply_trade(world.db, _trade("t1", order_id="o1"), outbox)

        assert result.applied
        assert result.buyer_cash_after == 99_000
        assert result.buyer_qty_after == 10
        assert result.buyer_avg_cost_after == Decimal("100.0000")
        assert len(outbox) == 1

    async def test_replay_is_a_no_op(self, world: World) -> None:
        outbox: list = []
        await world.clearing.apply_trade(world.db, _trade("t1"), outbox)

        again = await world.clearing.apply_trade(world.db, _trade("t1"), outbox)

        assert not again.applied
        assert world.cash("angel") == 99_000
        assert world.held("angel") == 10
        assert len(world.ledger.entries) == 1
        assert len(outbox) == 1

    async def test_second_buy_moves_average(self, world: World) -> None:
        await world.clearing.apply_trade(world.db, _trade("t1", qty=10, price_per_share=100), [])
        result = await world.clearing.apply_trade(
            world.db, _trade("t2", qty=30, price_per_share=200), []
        )
        assert result.buyer_qty_after == 40
        assert result.buyer_avg_cost_after == Decimal("175.0000")

    async def test_buyer_short_of_cash_raises(self, world: World) -> None:
        with pytest.raises(InsufficientBalanceError):
            await world.clearing.apply_trade(
                world.db, _trade("t1", qty=1001, price_per_share=100), []
            )

    async def test_seller_short_of_shares_raises(self, world: World) -> None:
        world.give_shares("vc", "v1", 3)
        trade = _trade(
            "t1", market_type=MarketType.SECONDARY, seller_participant_id="vc",
            buyer_participant_id="angel", qty=5,
        )
        with pytest.raises(InsufficientPositionError):
            await world.clearing.apply_trade(world.db, trade, [])
        assert world.cash("angel") == 100_000

    async def test_secondary_ledger_pair(self, world: World) -> None:
        world.give_shares("vc", "v1", 20, avg_cost="80")
        trade = _trade(
            "t1", market_type=MarketType.SECONDARY, seller_participant_id="vc",
            buyer_participant_id="angel", qty=5, price_per_share=120,
        )

        result = await world.clearing.apply_trade(world.db, trade, [])

        assert result.seller_cash_after == 100_600
        assert result.seller_realized_pnl == Decimal("200.0000")
        by_type = {e.entry_type: e for e in world.ledger.entries}
        assert by_type[LedgerEntryType.SECONDARY_SALE].amount == 600
        assert by_type[LedgerEntryType.SECONDARY_PURCHASE].amount == -600
        assert by_type[LedgerEntryType.SECONDARY_PURCHASE].balance_after == 99_400


class TestTradeQueries:
    async def test_cursor_pages_newest_first(self, world: World) -> None:
        for i in range(5):
            await world.clearing.apply_trade(world.db, _trade(f"t{i}", qty=1), [])
        service = TradeQueryService(
            repo=world.trades, ventures=world.ventures, participants=world.participants
        )

        first = await service.list_trades(world.db, game_id="g1", limit=2)
        assert [t.trade_id for t in first.items] == ["t4", "t3"]
        assert first.has_more

        second = await service.list_trades(
            world.db, game_id="g1", cursor=first.next_cursor, limit=2
        )
        assert [t.trade_id for t in second.items] == ["t2", "t1"]

        last = await service.list_trades(world.db, game_id="g1", cursor=second.next_cursor, limit=2)
        assert [t.trade_id for t in last.items] == ["t0"]
        assert not last.has_more
        assert last.next_cursor is None

    async def test_venture_tape_hidden_from_outsiders(self, world: World) -> None:
        service = TradeQueryService(
            repo=world.trades, ventures=world.ventures, participants=world.participants
        )
        with pytest.raises(VentureNotFoundError):
            await service.list_venture_trades(world.db, "v1", "stranger", None, 20)


class TestPortfolio:
    async def test_marks_at_vwap_and_computes_roi(self, world: World) -> None:
        await world.clearing.apply_trade(world.db, _trade("t1", qty=10, price_per_share=100), [])
        world.ventures.rows["v1"].last_vwap_price = Decimal("150")
        service = PortfolioService(
            positions=world.positions, ledger=world.ledger,
            ventures=world.ventures, games=world.games,
        )

        portfolio = await service.get_portfolio(world.db, world.participants.rows["angel"])

        assert portfolio.cash_cents == 99_000
        assert portfolio.holdings_value == Decimal("1500.0000")
        assert portfolio.total_value == Decimal("100500.0000")
        assert portfolio.roi_pct == Decimal("0.50")
        assert portfolio.unrealized_pnl == Decimal("500.0000")

    async def test_ledger_pagination(self, world: World) -> None:
        for i in range(3):
            await world.clearing.apply_trade(world.db, _trade(f"t{i}", qty=1), [])
        service = PortfolioService(
            positions=world.positions, ledger=world.ledger,
            ventures=world.ventures, games=world.games,
        )
        angel = world.participants.rows["angel"]

        page = await service.list_ledger(world.db, angel, None, 2, None)
        assert [e.reference_id for e in page.items] == ["t2", "t1"]
        assert page.has_more

        rest = await service.list_ledger(world.db, angel, page.next_cursor, 2, None)
        assert [e.reference_id for e in rest.items] == ["t0"]


def _result(*, fetchone=None, fetchall=None, scalar=None) -> MagicMock:
    result = MagicMock()
    result.fetchone.return_value = fetchone
    result.fetchall.return_value = fetchall or []
    result.scalar_one.return_value = scalar
    return result


class TestInvariants:
    async def test_consistent_game(self) -> None:
        db = MagicMock()
        db.execute = AsyncMock(
            side_effect=[
                _result(fetchone=SimpleNamespace(cash=190_000, budget=200_000)),
                _result(scalar=10_000),
                _result(fetchall=[SimpleNamespace(
                    id="v1", total_shares=1000, primary_shares_remaining=900, held=100
                )]),
                _result(),
                _result(),
            ]
        )
        assert await verify_game_invariants(db, "g1") == []

    async def test_reports_every_violation(self) -> None:
        db = MagicMock()
        db.execute = AsyncMock(
            side_effect=[
                _result(fetchone=SimpleNamespace(cash=195_000, budget=200_000)),
                _result(scalar=10_000),
                _result(fetchall=[SimpleNamespace(
                    id="v1", total_shares=1000, primary_shares_remaining=900, held=99
                )]),
                _result(fetchall=[SimpleNamespace(id="p9", current_cash=-5)]),
                _result(fetchall=[SimpleNamespace(
                    participant_id="p9", venture_id="v1", qty_total=-1
                )]),
            ]
        )
        violations = await verify_game_invariants(db, "g1")

        assert len(violations) == 4
        assert violations[0].startswith("cash conservation")
        assert violations[1].startswith("share conservation")

    async def test_admin_report_requires_organizer(self, world: World) -> None:
        service = AdminService(games=world.games, participants=world.participants)
        with pytest.raises(GameNotFoundError):
            await service.verify_invariants(world.db, "g1", "user-angel")

    async def test_admin_stats(self, world: World) -> None:
        world.db.execute = AsyncMock(
            return_value=_result(fetchone=SimpleNamespace(
                total_trades=3, primary_trades=2, secondary_trades=1,
                total_volume=30, traded_value=4500, unique_traders=2,
            ))
        )
        service = AdminService(games=world.games, participants=world.participants)

        stats = await service.get_game_stats(world.db, "g1", "owner-user")

        assert stats.total_trades == 3
        assert stats.status == "open"
        assert stats.unique_traders == 2


class TestConservationOverMixedTrading:
    async def _primary(self, world: World, buyer: str, qty: int, price: int) -> None:
        placed = await world.order_service.create_order(
            world.db, "g1", buyer,
            CreateOrderRequest(venture_id="v1", qty=qty, price_per_share=price),
        )
        assert isinstance(placed, Ok)
        accepted = await world.order_service.decide_order(
            world.db, placed.value.id, "user-founder", OrderDecision.ACCEPT
        )
        assert isinstance(accepted, Ok)

    async def _secondary(
        self, world: World, seller: str, buyer: str, qty: int, price: int
    ) -> None:
        requested = await world.secondary_service.request_trade(
            world.db, "g1", f"user-{seller}",
            SecondaryTradeRequest(
                venture_id="v1", buyer_identifier=f"{buyer}@example.com",
                qty=qty, price_per_share=price,
            ),
        )
        assert isinstance(requested, Ok)
        accepted = await world.secondary_service.accept_trade(
            world.db, requested.value.notification_id, f"user-{buyer}"
        )
        assert isinstance(accepted, Ok)

    async def test_shares_and_cash_are_conserved(self, world: World) -> None:
        await self._primary(world, "angel", qty=10, price=100)
        await self._primary(world, "vc", qty=30, price=200)
        await self._secondary(world, "angel", "vc", qty=4, price=150)
        await self._secondary(world, "vc", "angel", qty=5, price=120)
        await self._primary(world, "angel", qty=2, price=300)
        # a rejected order moves nothing
        placed = await world.order_service.create_order(
            world.db, "g1", "vc", CreateOrderRequest(venture_id="v1", qty=1, price_per_share=90)
        )
        assert isinstance(placed, Ok)
        rejected = await world.order_service.decide_order(
            world.db, placed.value.id, "user-founder", OrderDecision.REJECT
        )
        assert isinstance(rejected, Ok)

        venture = world.ventures.rows["v1"]
        held = sum(p.qty_total for p in world.positions.rows.values() if p.venture_id == "v1")
        assert held == 10 + 30 + 2
        assert held + venture.primary_shares_remaining == venture.total_shares
        assert world.held("angel") == 10 - 4 + 5 + 2
        assert world.held("vc") == 30 + 4 - 5
        assert all(p.qty_total >= 0 for p in world.positions.rows.values())

        primary_value = sum(
            t.qty * t.price_per_share
            for t in world.trades.rows
            if t.market_type is MarketType.PRIMARY
        )
        assert primary_value == 1_000 + 6_000 + 600
        assert world.cash("angel") == 100_000 - 1_000 + 600 - 600 - 600
        assert world.cash("vc") == 100_000 - 6_000 - 600 + 600
        total_cash = sum(p.current_cash for p in world.participants.rows.values())
        total_budget = sum(p.initial_budget for p in world.participants.rows.values())
        assert total_cash == total_budget - primary_value
