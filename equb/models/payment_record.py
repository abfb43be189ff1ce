"""Payment record ORM model - one entry per member per round."""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, Text, UniqueConstraint
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from equb.models import Base, BaseModel


class PaymentStatus(str, Enum):
    """Status of a member's contribution for one round."""

    PENDING = "pending"
    UNPAID = "unpaid"
    PAID = "paid"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    """How the contribution was handed over."""

    CASH = "cash"
    BANK = "bank"
    MOBILE_MONEY = "mobile_money"


class PaymentRecord(Base, BaseModel):
    """Member contribution record for a single round.

    Attributes:
        member_id: Member the record belongs to
        round_number: Round the contribution covers (positive integer)
        status: Payment status; only PAID satisfies the winner gate
        amount_paid: Amount handed over (Numeric for precision)
        payment_method: Cash, bank transfer or mobile money
        notes: Free-text note from the collector
        recorded_at: When the record was last written
    """

    __tablename__ = "equb_payment_records"

    member_id: Mapped[int] = mapped_column(
        ForeignKey("equb_members.id"),
        nullable=False,
        index=True,
    )
    round_number: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus),
        nullable=False,
        default=PaymentStatus.PENDING,
    )
    amount_paid: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        default=Decimal("0"),
    )
    payment_method: Mapped[PaymentMethod] = mapped_column(
        SQLEnum(PaymentMethod),
        nullable=False,
        default=PaymentMethod.CASH,
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    # Relationships
    member: Mapped["Member"] = relationship(  # noqa: F821
        "Member",
        back_populates="payments",
    )

    __table_args__ = (
        UniqueConstraint("member_id", "round_number", name="uq_payment_member_round"),
    )

    @property
    def is_paid(self) -> bool:
        return self.status == PaymentStatus.PAID

    def __repr__(self) -> str:
        return (
            f"<PaymentRecord(id={self.id}, member_id={self.member_id}, round={self.round_number}, "
            f"status={self.status}, amount_paid={self.amount_paid})>"
        )


__all__ = ["PaymentRecord", "PaymentStatus", "PaymentMethod"]
