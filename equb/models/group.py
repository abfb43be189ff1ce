"""Group (Equb) ORM model: the aggregate root owning members and round outcomes."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, Date, DateTime, Integer, Numeric, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from equb.models import Base, BaseModel


class RoundCadence(str, Enum):
    """Calendar period between rounds."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class Group(Base, BaseModel):
    """Model representing an Equb: a fixed set of slots paid out once each, round by round.

    The group row carries an optimistic-concurrency version counter. Every mutation of the
    aggregate (members, payments, outcomes) bumps it, so two writers that loaded the same
    version cannot both commit.
    """

    __tablename__ = "equb_groups"

    code: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        unique=True,
        index=True,
        comment="Human-facing group identifier (e.g. 'E000042')",
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Round configuration
    contribution_amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        comment="Amount one full slot contributes per round",
    )
    max_slots: Mapped[int] = mapped_column(Integer, nullable=False)
    round_cadence: Mapped[RoundCadence] = mapped_column(
        SQLEnum(RoundCadence),
        nullable=False,
        default=RoundCadence.MONTHLY,
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Progression state
    current_round: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        comment="1-based round awaiting a winner declaration",
    )
    total_rounds: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Always equal to max_slots",
    )
    next_round_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
        comment="Due date of the current round; NULL once the group is complete",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
        index=True,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    members: Mapped[list["Member"]] = relationship(  # noqa: F821
        "Member",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="Member.id",
    )
    round_outcomes: Mapped[list["RoundOutcome"]] = relationship(  # noqa: F821
        "RoundOutcome",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="RoundOutcome.round_number",
    )

    __mapper_args__ = {"version_id_col": version}

    def find_member(self, identity: str) -> "Member | None":  # noqa: F821
        """Return the member occupying a slot for this identity, if any."""
        for member in self.members:
            if member.identity == identity:
                return member
        return None

    def occupants(self, slot_number: int) -> list["Member"]:  # noqa: F821
        """Members currently holding a share of the given slot."""
        return [m for m in self.members if m.slot_number == slot_number]

    @property
    def won_slot_numbers(self) -> set[int]:
        """Every slot number that appears in any recorded outcome."""
        won: set[int] = set()
        for outcome in self.round_outcomes:
            won.update(outcome.winning_slots)
        return won

    def __repr__(self) -> str:
        return (
            f"<Group(id={self.id}, code={self.code!r}, name={self.name!r}, "
            f"max_slots={self.max_slots}, current_round={self.current_round}, "
            f"is_active={self.is_active}, version={self.version})>"
        )


__all__ = ["Group", "RoundCadence"]
