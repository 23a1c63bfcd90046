"""VentureService: creation, founder membership and ownership transfer."""

import pytest

from src.sx_common.enums import (
    EventType,
    FounderMemberRole,
    NotificationType,
    OrderDecision,
    OrderStatus,
    ParticipantRole,
    ParticipantStatus,
    RejectReason,
)
from src.sx_common.errors import (
    AlreadyFounderError,
    InvalidSharesError,
    ParticipantInactiveError,
    RoleNotAllowedError,
    VentureNotFoundError,
)
from src.sx_common.result import Err, Ok
from src.sx_order.application.schemas import CreateOrderRequest
from src.sx_venture.application.schemas import AddFounderRequest, CreateVentureRequest
from tests.unit.fakes import World


@pytest.fixture
def world() -> World:
    w = World()
    w.add_game()
    w.add_participant("org", ParticipantRole.ORGANIZER, cash=0)
    w.add_participant("founder", ParticipantRole.FOUNDER, cash=0)
    w.add_participant("cofounder", ParticipantRole.FOUNDER, cash=0)
    w.add_participant("angel", ParticipantRole.ANGEL)
    return w


class TestCreateVenture:
    async def test_creator_becomes_owner(self, world: World) -> None:
        result = await world.venture_service.create_venture(
            world.db, "g1", "user-founder", CreateVentureRequest(name="  Acme ", total_shares=500)
        )

        assert isinstance(result, Ok)
        venture = result.value
        assert venture.name == "Acme"
        assert venture.primary_shares_remaining == 500
        assert [(f.participant_id, f.role) for f in venture.founders] == [
            ("founder", FounderMemberRole.OWNER)
        ]

    async def test_investors_cannot_create(self, world: World) -> None:
        result = await world.venture_service.create_venture(
            world.db, "g1", "user-angel", CreateVentureRequest(name="Acme", total_shares=500)
        )
        assert isinstance(result, Err)
        assert isinstance(result.error, RoleNotAllowedError)

    async def test_shares_must_be_positive(self, world: World) -> None:
        result = await world.venture_service.create_venture(
            world.db, "g1", "user-founder", CreateVentureRequest(name="Acme", total_shares=0)
        )
        assert isinstance(result, Err)
        assert isinstance(result.error, InvalidSharesError)


class TestFounders:
    async def test_owner_adds_member(self, world: World) -> None:
        world.add_venture("v1", founders=("founder",))

        result = await world.venture_service.add_founder(
            world.db, "v1", "user-founder", AddFounderRequest(participant_id="cofounder")
        )

        assert isinstance(result, Ok)
        assert result.value.role is FounderMemberRole.MEMBER
        assert await world.ventures.is_founder(world.db, "v1", "cofounder")

    async def test_duplicate_founder(self, world: World) -> None:
        world.add_venture("v1", founders=("founder", "cofounder"))

        result = await world.venture_service.add_founder(
            world.db, "v1", "user-founder", AddFounderRequest(participant_id="cofounder")
        )
        assert isinstance(result, Err)
        assert isinstance(result.error, AlreadyFounderError)

    async def test_member_is_not_owner(self, world: World) -> None:
        world.add_venture("v1", founders=("founder", "cofounder"))

        result = await world.venture_service.add_founder(
            world.db, "v1", "user-cofounder", AddFounderRequest(participant_id="angel")
        )
        assert isinstance(result, Err)
        assert isinstance(result.error, VentureNotFoundError)

    async def test_inactive_participant_cannot_join_team(self, world: World) -> None:
        world.add_venture("v1", founders=("founder",))
        world.participants.rows["cofounder"].status = ParticipantStatus.SUSPENDED

        result = await world.venture_service.add_founder(
            world.db, "v1", "user-founder", AddFounderRequest(participant_id="cofounder")
        )
        assert isinstance(result, Err)
        assert isinstance(result.error, ParticipantInactiveError)

    async def test_owner_role_cannot_be_added(self, world: World) -> None:
        world.add_venture("v1", founders=("founder",))

        result = await world.venture_service.add_founder(
            world.db,
            "v1",
            "user-founder",
            AddFounderRequest(participant_id="cofounder", role=FounderMemberRole.OWNER),
        )

        assert isinstance(result, Err)
        assert isinstance(result.error, RoleNotAllowedError)
        assert result.error.code == 7007
        owners = [f.participant_id for f in world.ventures.founders if f.is_owner]
        assert owners == ["founder"]
        assert not await world.ventures.is_founder(world.db, "v1", "cofounder")

    async def test_new_member_loses_pending_orders_on_the_venture(self, world: World) -> None:
        world.add_venture("v1", founders=("founder",))
        world.add_venture("v2", founders=("founder",))
        own = await world.order_service.create_order(
            world.db, "g1", "angel",
            CreateOrderRequest(venture_id="v1", qty=10, price_per_share=1000),
        )
        other = await world.order_service.create_order(
            world.db, "g1", "angel",
            CreateOrderRequest(venture_id="v2", qty=10, price_per_share=1000),
        )
        assert isinstance(own, Ok) and isinstance(other, Ok)

        result = await world.venture_service.add_founder(
            world.db, "v1", "user-founder", AddFounderRequest(participant_id="angel")
        )

        assert isinstance(result, Ok)
        canceled = world.orders.rows[own.value.id]
        assert canceled.status is OrderStatus.CANCELED
        assert canceled.reject_reason is RejectReason.BUYER_IS_FOUNDER
        assert world.orders.rows[other.value.id].status is OrderStatus.PENDING
        assert EventType.ORDER_CANCELED.value in world.publisher.types()

        again = await world.order_service.decide_order(
            world.db, own.value.id, "user-founder", OrderDecision.ACCEPT
        )
        assert isinstance(again, Err)
        assert world.trades.rows == []
        assert world.cash("angel") == 1_000_000


class TestTransferOwnership:
    async def test_previous_owner_becomes_member(self, world: World) -> None:
        world.add_venture("v1", founders=("founder", "cofounder"))

        result = await world.venture_service.transfer_ownership(
            world.db, "v1", "user-founder", "cofounder"
        )

        assert isinstance(result, Ok)
        roles = {f.participant_id: f.role for f in result.value.founders}
        assert roles == {
            "founder": FounderMemberRole.MEMBER,
            "cofounder": FounderMemberRole.OWNER,
        }
        assert world.notifications.of_type(
            NotificationType.VENTURE_OWNERSHIP_TRANSFERRED, "cofounder"
        )

    async def test_organizer_may_transfer(self, world: World) -> None:
        world.add_venture("v1", founders=("founder",))

        result = await world.venture_service.transfer_ownership(
            world.db, "v1", "user-org", "cofounder"
        )

        assert isinstance(result, Ok)
        roles = {f.participant_id: f.role for f in result.value.founders}
        assert roles["cofounder"] is FounderMemberRole.OWNER
        assert roles["founder"] is FounderMemberRole.MEMBER
