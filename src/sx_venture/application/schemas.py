"""Pydantic schemas for sx_venture API."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from src.sx_common.enums import FounderMemberRole
from src.sx_venture.domain.models import FounderMember, Venture


class CreateVentureRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    total_shares: int
    description: str | None = Field(None, max_length=4000)
    logo_url: str | None = Field(None, max_length=1024)


class AddFounderRequest(BaseModel):
    participant_id: str
    role: FounderMemberRole = FounderMemberRole.MEMBER


class TransferOwnershipRequest(BaseModel):
    to_participant_id: str


class FounderResponse(BaseModel):
    participant_id: str
    role: FounderMemberRole

    @classmethod
    def from_domain(cls, member: FounderMember) -> "FounderResponse":
        return cls(participant_id=member.participant_id, role=member.role)


class VentureResponse(BaseModel):
    id: str
    game_id: str
    name: str
    description: str | None = None
    logo_url: str | None = None
    total_shares: int
    primary_shares_remaining: int
    last_vwap_price: Decimal | None = None
    market_cap: Decimal
    founders: list[FounderResponse] = Field(default_factory=list)
    created_at: datetime | None = None

    @classmethod
    def from_domain(
        cls, venture: Venture, founders: list[FounderMember] | None = None
    ) -> "VentureResponse":
        return cls(
            id=venture.id,
            game_id=venture.game_id,
            name=venture.name,
            description=venture.description,
            logo_url=venture.logo_url,
            total_shares=venture.total_shares,
            primary_shares_remaining=venture.primary_shares_remaining,
            last_vwap_price=venture.last_vwap_price,
            market_cap=venture.market_cap,
            founders=[FounderResponse.from_domain(f) for f in founders or []],
            created_at=venture.created_at,
        )


class VentureListResponse(BaseModel):
    items: list[VentureResponse]
