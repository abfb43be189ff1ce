"""Participation model: how much of a slot each participation type occupies.

A slot holds exactly one FULL occupant, up to two HALF occupants or up to four
QUARTER occupants. Types are never mixed inside one slot.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from equb.models.member import Member, ParticipationType

CENT = Decimal("0.01")


def slot_capacity(participation: ParticipationType) -> int:
    """Maximum number of occupants of one slot for the given participation type."""
    return participation.denominator


def share_amount(contribution: Decimal, participation: ParticipationType) -> Decimal:
    """Per-occupant share of a contribution or payout, rounded to the cent."""
    total = Decimal(str(contribution))
    return (total / Decimal(participation.denominator)).quantize(CENT, rounding=ROUND_HALF_UP)


def slot_participation(occupants: Iterable[Member]) -> ParticipationType | None:
    """Participation type of a slot, None while the slot is empty."""
    for member in occupants:
        return member.participation
    return None


def has_room(occupants: list[Member], participation: ParticipationType) -> bool:
    """Whether one more occupant of this type fits into a slot.

    An empty slot always has room. An occupied slot has room only when it is held by
    the same participation type and is below capacity.
    """
    held_by = slot_participation(occupants)
    if held_by is None:
        return True
    if held_by != participation or any(m.participation != held_by for m in occupants):
        return False
    return len(occupants) < slot_capacity(participation)


__all__ = ["slot_capacity", "share_amount", "slot_participation", "has_room", "CENT"]
