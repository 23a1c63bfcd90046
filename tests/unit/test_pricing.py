"""Price Oracle math, circuit-breaker threshold, cost basis and leaderboards."""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.sx_clearing.domain.models import Trade
from src.sx_clearing.domain.position_math import realized_pnl, unrealized_pnl, weighted_average
from src.sx_clearing.infrastructure.trades_repository import TradeRepository
from src.sx_common.enums import LeaderboardKind, MarketType, OrderDecision, ParticipantRole
from src.sx_common.errors import GameNotFoundError
from src.sx_common.result import Ok
from src.sx_market.application.leaderboard_service import LeaderboardService
from src.sx_market.domain.leaderboard import InvestorStanding, rank_investors, rank_startups
from src.sx_market.domain.pricing import is_circuit_breaker_triggered, price_change_pct, vwap
from src.sx_order.application.schemas import CreateOrderRequest
from src.sx_venture.domain.models import Venture
from tests.unit.fakes import NOW, World


class TestVwap:
    def test_window_of_three(self) -> None:
        # newest first; the fourth fill is outside the window
        fills = [(10, 500), (20, 800), (5, 1000), (1000, 1)]
        assert vwap(fills) == Decimal("742.8571")

    def test_single_fill(self) -> None:
        assert vwap([(7, 1234)]) == Decimal("1234.0000")

    def test_custom_window(self) -> None:
        assert vwap([(1, 100), (1, 300)], window=1) == Decimal("100.0000")

    def test_no_fills(self) -> None:
        assert vwap([]) is None


class TestCircuitBreakerRule:
    def test_move_above_threshold_trips(self) -> None:
        assert is_circuit_breaker_triggered(Decimal("10"), Decimal("35"))

    def test_exactly_threshold_does_not_trip(self) -> None:
        assert not is_circuit_breaker_triggered(Decimal("10"), Decimal("30"))

    def test_downward_moves_are_bounded_by_100_pct(self) -> None:
        assert not is_circuit_breaker_triggered(Decimal("100"), Decimal("1"))
        assert is_circuit_breaker_triggered(Decimal("100"), Decimal("1"), Decimal("50"))

    def test_first_price_never_trips(self) -> None:
        assert not is_circuit_breaker_triggered(None, Decimal("5000"))

    def test_change_pct(self) -> None:
        assert price_change_pct(Decimal("10"), Decimal("35")) == Decimal("250")
        assert price_change_pct(Decimal("0"), Decimal("35")) is None


class TestPositionMath:
    def test_weighted_average(self) -> None:
        assert weighted_average(10, Decimal("100"), 30, 200) == Decimal("175.0000")

    def test_first_buy_sets_average(self) -> None:
        assert weighted_average(0, Decimal("0"), 3, 333) == Decimal("333.0000")

    def test_repeating_average_quantized(self) -> None:
        assert weighted_average(1, Decimal("100"), 2, 101) == Decimal("100.6667")

    def test_rejects_non_positive_buy(self) -> None:
        with pytest.raises(ValueError):
            weighted_average(10, Decimal("100"), 0, 100)

    def test_pnl(self) -> None:
        assert realized_pnl(10, 150, Decimal("100")) == Decimal("500.0000")
        assert realized_pnl(10, 50, Decimal("100")) == Decimal("-500.0000")
        assert unrealized_pnl(4, Decimal("125.5"), Decimal("100")) == Decimal("102.0000")


def _venture(vid: str, name: str, remaining: int, vwap_price: str | None) -> Venture:
    return Venture(
        id=vid,
        game_id="g1",
        name=name,
        total_shares=1000,
        primary_shares_remaining=remaining,
        last_vwap_price=Decimal(vwap_price) if vwap_price else None,
    )


class TestLeaderboards:
    def test_startups_by_market_cap(self) -> None:
        entries = rank_startups(
            [
                _venture("a", "Alpha", 900, "50"),    # 100 issued * 50 = 5000
                _venture("b", "Beta", 500, "20"),     # 500 * 20 = 10000
                _venture("c", "Gamma", 1000, None),   # never traded
            ]
        )
        assert [(e.rank, e.subject_id, e.value) for e in entries] == [
            (1, "b", Decimal("10000")),
            (2, "a", Decimal("5000")),
            (3, "c", Decimal("0")),
        ]

    def test_startup_ties_break_by_name(self) -> None:
        entries = rank_startups(
            [_venture("z", "Zeta", 1000, None), _venture("y", "Eta", 1000, None)]
        )
        assert [e.name for e in entries] == ["Eta", "Zeta"]

    def test_investors_by_total_value(self) -> None:
        standings = [
            InvestorStanding("p1", "Ann", cash=50_000, initial_budget=100_000,
                             holdings_value=Decimal("70000")),
            InvestorStanding("p2", "Bob", cash=100_000, initial_budget=100_000,
                             holdings_value=Decimal("0")),
            InvestorStanding("p3", "Cyd", cash=0, initial_budget=0,
                             holdings_value=Decimal("0")),
        ]
        entries = rank_investors(standings)

        assert [e.subject_id for e in entries] == ["p1", "p2", "p3"]
        assert entries[0].value == Decimal("120000")
        assert entries[0].roi_pct == Decimal("20.00")
        assert entries[1].roi_pct == Decimal("0.00")
        assert entries[2].roi_pct is None

    def test_investor_ties_break_by_roi(self) -> None:
        standings = [
            InvestorStanding("p1", "Ann", cash=100, initial_budget=200,
                             holdings_value=Decimal("0")),
            InvestorStanding("p2", "Bob", cash=100, initial_budget=50,
                             holdings_value=Decimal("0")),
        ]
        assert [e.subject_id for e in rank_investors(standings)] == ["p2", "p1"]


class _Standings:
    def __init__(self, rows: list[InvestorStanding]) -> None:
        self.rows = rows
        self.roles: list[str] = []

    async def investor_standings(self, db, game_id: str, role: str) -> list[InvestorStanding]:
        self.roles.append(role)
        return self.rows


class TestLeaderboardService:
    async def test_startups_use_game_currency(self) -> None:
        world = World()
        world.add_game(currency="EUR")
        world.add_venture("v1", remaining=900, vwap=Decimal("250"))
        service = LeaderboardService(
            games=world.games, ventures=world.ventures, standings=_Standings([])
        )

        board = await service.get_leaderboard(world.db, "g1", LeaderboardKind.STARTUPS)

        assert board.items[0].id == "v1"
        assert board.items[0].value == Decimal("25000")
        assert board.items[0].value_display.startswith("€")

    async def test_investor_board_filters_by_role(self) -> None:
        world = World()
        world.add_game()
        standings = _Standings(
            [InvestorStanding("p1", "Ann", cash=10, initial_budget=10, holdings_value=Decimal(0))]
        )
        service = LeaderboardService(
            games=world.games, ventures=world.ventures, standings=standings
        )

        board = await service.get_leaderboard(world.db, "g1", LeaderboardKind.VCS)

        assert standings.roles == ["vc"]
        assert [e.id for e in board.items] == ["p1"]

    async def test_unknown_game(self) -> None:
        world = World()
        service = LeaderboardService(
            games=world.games, ventures=world.ventures, standings=_Standings([])
        )
        with pytest.raises(GameNotFoundError):
            await service.get_leaderboard(world.db, "nope", LeaderboardKind.ANGELS)


def _settled_world() -> World:
    world = World()
    world.add_game()
    world.add_participant("founder", ParticipantRole.FOUNDER, cash=0)
    world.add_participant("angel", ParticipantRole.ANGEL, cash=1_000_000)
    world.add_venture("v1", total=1000)
    return world


async def _buy(world: World, qty: int, price: int) -> None:
    placed = await world.order_service.create_order(
        world.db, "g1", "angel",
        CreateOrderRequest(venture_id="v1", qty=qty, price_per_share=price),
    )
    assert isinstance(placed, Ok)
    accepted = await world.order_service.decide_order(
        world.db, placed.value.id, "user-founder", OrderDecision.ACCEPT
    )
    assert isinstance(accepted, Ok)


class TestPriceOracle:
    async def test_vwap_follows_settled_trades(self) -> None:
        world = _settled_world()

        await _buy(world, 10, 5)
        assert world.ventures.rows["v1"].last_vwap_price == Decimal("5.0000")
        await _buy(world, 5, 10)
        assert world.ventures.rows["v1"].last_vwap_price == Decimal("6.6667")
        await _buy(world, 20, 8)

        # (10*5 + 5*10 + 20*8) / 35
        assert world.ventures.rows["v1"].last_vwap_price == Decimal("7.4286")
        assert not world.games.games["g1"].circuit_breaker_active

        venture = world.ventures.rows["v1"]
        update = await world.oracle.recompute(world.db, venture)
        assert update.old_price == Decimal("7.4286")
        assert update.new_price == Decimal("7.4286")

    async def test_window_is_ordered_by_settlement_time(self) -> None:
        world = _settled_world()
        stamp = NOW - timedelta(minutes=5)

        def fill(tid: str, qty: int, price: int, seconds: int) -> Trade:
            return Trade(
                id=tid, game_id="g1", venture_id="v1", market_type=MarketType.PRIMARY,
                buyer_participant_id="angel", qty=qty, price_per_share=price,
                created_at=stamp + timedelta(seconds=seconds),
            )

        # appended out of time order; the oldest fill falls outside the window
        world.trades.rows.extend([
            fill("t9", 20, 8, seconds=3),
            fill("t1", 1000, 1, seconds=0),
            fill("t5", 5, 10, seconds=2),
            fill("t3", 10, 5, seconds=1),
        ])

        update = await world.oracle.recompute(world.db, world.ventures.rows["v1"])

        assert update.new_price == Decimal("7.4286")
        assert world.ventures.rows["v1"].last_vwap_price == Decimal("7.4286")


class TestTradeRepositoryInsert:
    @pytest.mark.asyncio
    async def test_created_at_taken_at_insert_time(self) -> None:
        db = AsyncMock()
        result_mock = MagicMock()
        result_mock.fetchone.return_value = MagicMock(created_at=NOW)
        db.execute = AsyncMock(return_value=result_mock)
        trade = Trade(
            id="t1", game_id="g1", venture_id="v1", market_type=MarketType.PRIMARY,
            buyer_participant_id="angel", qty=1, price_per_share=100,
        )

        stored = await TradeRepository().insert(db, trade)

        assert stored.created_at == NOW
        statement = str(db.execute.await_args.args[0])
        assert "clock_timestamp()" in statement
        assert "created_at" not in db.execute.await_args.args[1]
