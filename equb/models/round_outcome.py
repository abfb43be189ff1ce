"""Round outcome ORM model - the winning slots declared for one round."""

from sqlalchemy import JSON, ForeignKey, Integer, UniqueConstraint
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from equb.models import Base, BaseModel
from equb.models.member import ParticipationType


class RoundOutcome(Base, BaseModel):
    """Winner declaration for a round.

    A slot number that appears in any outcome never wins again for the lifetime of the
    group. created_at (from BaseModel) is the declaration timestamp.
    """

    __tablename__ = "equb_round_outcomes"

    group_id: Mapped[int] = mapped_column(
        ForeignKey("equb_groups.id"),
        nullable=False,
        index=True,
    )
    round_number: Mapped[int] = mapped_column(Integer, nullable=False)
    winning_slots: Mapped[list[int]] = mapped_column(JSON, nullable=False)
    """Winning slot numbers, e.g. [3] or [2, 5]."""

    winner_identities: Mapped[list[list[str]]] = mapped_column(JSON, nullable=False, default=list)
    """Occupant identities of each winning slot at declaration time, parallel to winning_slots."""

    participation: Mapped[ParticipationType] = mapped_column(
        SQLEnum(ParticipationType),
        nullable=False,
    )

    # Relationships
    group: Mapped["Group"] = relationship(  # noqa: F821
        "Group",
        back_populates="round_outcomes",
    )

    __table_args__ = (
        UniqueConstraint("group_id", "round_number", name="uq_outcome_group_round"),
    )

    def __repr__(self) -> str:
        return (
            f"<RoundOutcome(id={self.id}, group_id={self.group_id}, round={self.round_number}, "
            f"winning_slots={self.winning_slots}, participation={self.participation})>"
        )


__all__ = ["RoundOutcome"]
