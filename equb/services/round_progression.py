"""Round progression: advance the round counter and detect group completion."""

from datetime import date, datetime, timedelta, timezone
from enum import Enum

from dateutil.relativedelta import relativedelta

from equb.models.group import Group, RoundCadence


class RoundState(str, Enum):
    """Where a group stands in its winner-declaration cycle."""

    AWAITING_DECLARATION = "awaiting-declaration"
    COMPLETE = "complete"


def add_cadence(start_date: date, cadence: RoundCadence, rounds: int) -> date:
    """Date that lies `rounds` cadence periods after start_date.

    Always computed from the original start date, so monthly groups started on the
    31st land on the last day of shorter months without drifting afterwards.
    """
    cadence = RoundCadence(cadence)
    if cadence == RoundCadence.DAILY:
        return start_date + timedelta(days=rounds)
    if cadence == RoundCadence.WEEKLY:
        return start_date + timedelta(days=rounds * 7)
    return start_date + relativedelta(months=rounds)


class RoundProgression:
    """Moves a group from one round to the next after each winner declaration."""

    def initialize(self, group: Group) -> None:
        """Set the progression fields of a freshly created group."""
        group.current_round = 1
        group.total_rounds = group.max_slots
        group.next_round_date = group.start_date
        group.is_active = True
        group.completed_at = None

    def is_complete(self, group: Group) -> bool:
        return len(group.won_slot_numbers) >= group.max_slots

    def state(self, group: Group) -> RoundState:
        if not group.is_active or self.is_complete(group):
            return RoundState.COMPLETE
        return RoundState.AWAITING_DECLARATION

    def advance(self, group: Group) -> RoundState:
        """Recompute round counter and due date from the recorded outcomes.

        Returns:
            The state the group is in after advancing
        """
        declared = len(group.round_outcomes)
        group.current_round = declared + 1

        if self.is_complete(group):
            group.is_active = False
            group.next_round_date = None
            group.completed_at = datetime.now(timezone.utc)
            return RoundState.COMPLETE

        group.next_round_date = add_cadence(group.start_date, group.round_cadence, declared)
        return RoundState.AWAITING_DECLARATION


__all__ = ["RoundProgression", "RoundState", "add_cadence"]
