"""Member ORM model: one identity's occupancy of a slot within a group."""

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from equb.models import Base, BaseModel


class ParticipationType(str, Enum):
    """How much of a slot a member owns.

    The denominator is both the maximum number of occupants sharing one slot and the
    divisor applied to the contribution and payout of each occupant.
    """

    FULL = "full"
    HALF = "half"
    QUARTER = "quarter"

    @property
    def denominator(self) -> int:
        return _DENOMINATORS[self]


_DENOMINATORS = {
    ParticipationType.FULL: 1,
    ParticipationType.HALF: 2,
    ParticipationType.QUARTER: 4,
}


class MemberRole(str, Enum):
    """Role of a member inside one group."""

    MEMBER = "member"
    COLLECTOR = "collector"
    JUDGE = "judge"
    WRITER = "writer"
    ADMIN = "admin"


class Member(Base, BaseModel):
    """Model representing a member occupying (a share of) a slot.

    Exactly one Member exists per (group, identity). Several members may share a slot
    only when they all hold the same participation type.
    """

    __tablename__ = "equb_members"

    group_id: Mapped[int] = mapped_column(
        ForeignKey("equb_groups.id"),
        nullable=False,
        index=True,
    )
    identity: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Reference to the external user identity",
    )
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    participation: Mapped[ParticipationType] = mapped_column(
        SQLEnum(ParticipationType),
        nullable=False,
    )
    slot_number: Mapped[int] = mapped_column(Integer, nullable=False)
    role: Mapped[MemberRole] = mapped_column(
        SQLEnum(MemberRole),
        nullable=False,
        default=MemberRole.MEMBER,
    )
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # Relationships
    group: Mapped["Group"] = relationship(  # noqa: F821
        "Group",
        back_populates="members",
    )
    payments: Mapped[list["PaymentRecord"]] = relationship(  # noqa: F821
        "PaymentRecord",
        back_populates="member",
        cascade="all, delete-orphan",
        order_by="PaymentRecord.round_number",
    )

    __table_args__ = (
        UniqueConstraint("group_id", "identity", name="uq_member_group_identity"),
        Index("idx_member_group_slot", "group_id", "slot_number"),
    )

    def payment_for(self, round_number: int) -> "PaymentRecord | None":  # noqa: F821
        for record in self.payments:
            if record.round_number == round_number:
                return record
        return None

    def __repr__(self) -> str:
        return (
            f"<Member(id={self.id}, group_id={self.group_id}, identity={self.identity!r}, "
            f"participation={self.participation}, slot_number={self.slot_number}, role={self.role})>"
        )


__all__ = ["Member", "MemberRole", "ParticipationType"]
