"""Pydantic schemas for group creation and engine reports."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from equb.models.group import RoundCadence
from equb.models.member import MemberRole, ParticipationType

MIN_SLOTS = 2
MAX_SLOTS = 100


class MemberSeed(BaseModel):
    """Extra member supplied when a group is created."""

    identity: str = Field(..., min_length=1, max_length=64, description="External user identity")
    name: str | None = Field(None, max_length=255, description="Display name")
    participation: ParticipationType = Field(
        ParticipationType.FULL, description="Share of a slot the member holds"
    )
    role: MemberRole = Field(MemberRole.MEMBER, description="Role inside the group")

    @field_validator("role")
    @classmethod
    def role_is_not_admin(cls, value: MemberRole) -> MemberRole:
        if value == MemberRole.ADMIN:
            raise ValueError("the admin is the seed member; extra members cannot be admins")
        return value


class GroupConfig(BaseModel):
    """Payload for creating a group."""

    name: str = Field(..., min_length=2, max_length=100)
    description: str | None = Field(None, max_length=500)
    contribution_amount: Decimal = Field(..., gt=0, description="Amount per full slot per round")
    max_slots: int = Field(..., ge=MIN_SLOTS, le=MAX_SLOTS)
    round_cadence: RoundCadence = Field(RoundCadence.MONTHLY)
    start_date: date
    seed_admin_identity: str = Field(..., min_length=1, max_length=64)
    seed_admin_name: str | None = Field(None, max_length=255)
    extra_members: list[MemberSeed] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 2:
            raise ValueError("name must contain at least 2 non-blank characters")
        return value


class SlotAvailability(BaseModel):
    """One occupied, not-yet-won slot offered for a winner declaration."""

    slot_number: int
    participation: ParticipationType
    occupants: list[str]
    eligible: bool


class RoundProgress(BaseModel):
    completed: int
    pending: int
    percentage: int


class PaymentSummary(BaseModel):
    """Collection status of one round.

    round_number is the round being summarized: the current round, or the final
    round once the group is complete.
    """

    current_round: int
    round_number: int
    next_round_date: date | None = None
    total_members: int
    total_collected: Decimal
    total_expected: Decimal
    collection_rate: int
    round_progress: RoundProgress


class UnpaidMember(BaseModel):
    """Arrears report line for a member."""

    identity: str
    name: str | None = None
    participation: ParticipationType
    slot_number: int
    unpaid_rounds: list[int]
    total_unpaid: Decimal
    last_payment_date: datetime | None = None


class WinningSlot(BaseModel):
    slot_number: int
    occupants: list[str]
    payout_per_occupant: Decimal


class RoundWinnerView(BaseModel):
    """A recorded outcome with the members it paid."""

    round_number: int
    participation: ParticipationType
    winners: list[WinningSlot]
    declared_at: datetime

    model_config = ConfigDict(from_attributes=True)


__all__ = [
    "GroupConfig",
    "MemberSeed",
    "SlotAvailability",
    "RoundProgress",
    "PaymentSummary",
    "UnpaidMember",
    "WinningSlot",
    "RoundWinnerView",
    "MIN_SLOTS",
    "MAX_SLOTS",
]
