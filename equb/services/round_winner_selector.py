"""Round winner selection with a payment gate.

A declaration names slot numbers for one participation type. It is all-or-nothing:
every slot must be occupied, must not have won before, must be held by that
participation type, and every occupant must have paid the current round. A valid
declaration is recorded and the group advances to the next round in the same step.
"""

from datetime import datetime, timezone
from typing import Sequence

from equb.models.group import Group
from equb.models.member import ParticipationType
from equb.models.round_outcome import RoundOutcome
from equb.services.errors import (
    DuplicateSlotNumberError,
    GroupCompletedError,
    InvalidSlotNumberError,
    InvalidWinnerCountError,
    ParticipationMismatchError,
    PaymentNotCompleteError,
    SlotAlreadyWonError,
)
from equb.services.payment_ledger import PaymentLedger
from equb.services.round_progression import RoundProgression, RoundState


class RoundWinnerSelector:
    """Validates and records round winners."""

    def __init__(
        self,
        ledger: PaymentLedger | None = None,
        progression: RoundProgression | None = None,
    ):
        self.ledger = ledger or PaymentLedger()
        self.progression = progression or RoundProgression()

    def validate(
        self,
        group: Group,
        slot_numbers: Sequence[int],
        participation: ParticipationType,
    ) -> None:
        """Run every eligibility check without touching the group.

        Raises:
            GroupCompletedError: If every slot has already won
            InvalidWinnerCountError: If the slot count differs from the participation denominator
            DuplicateSlotNumberError: If a slot number is listed twice
            InvalidSlotNumberError: If a slot has no occupant
            SlotAlreadyWonError: If a slot appears in an earlier outcome
            ParticipationMismatchError: If a slot is held by another participation type
            PaymentNotCompleteError: If any occupant lacks a PAID record for the current round
        """
        participation = ParticipationType(participation)
        if self.progression.state(group) == RoundState.COMPLETE:
            raise GroupCompletedError(group.code)

        if len(slot_numbers) != participation.denominator:
            raise InvalidWinnerCountError(participation.denominator, len(slot_numbers))

        seen: set[int] = set()
        for slot_number in slot_numbers:
            if slot_number in seen:
                raise DuplicateSlotNumberError(slot_number)
            seen.add(slot_number)

        won = group.won_slot_numbers
        for slot_number in slot_numbers:
            occupants = group.occupants(slot_number)
            if not occupants:
                raise InvalidSlotNumberError(slot_number)
            if slot_number in won:
                raise SlotAlreadyWonError(slot_number)
            if any(m.participation != participation for m in occupants):
                raise ParticipationMismatchError(slot_number, participation.value)

        for slot_number in slot_numbers:
            for occupant in group.occupants(slot_number):
                if not self.ledger.member_has_paid(occupant, group.current_round):
                    raise PaymentNotCompleteError(slot_number, occupant.identity, group.current_round)

    def is_eligible(self, group: Group, slot_number: int) -> bool:
        """Whether a single slot could be declared the winner of the current round."""
        occupants = group.occupants(slot_number)
        if not occupants or slot_number in group.won_slot_numbers:
            return False
        if self.progression.state(group) == RoundState.COMPLETE:
            return False
        return all(self.ledger.member_has_paid(m, group.current_round) for m in occupants)

    def declare(
        self,
        group: Group,
        slot_numbers: Sequence[int],
        participation: ParticipationType,
    ) -> RoundOutcome:
        """Record the winners of the current round and advance the group.

        Args:
            group: Group aggregate
            slot_numbers: Winning slot numbers, exactly participation.denominator of them
            participation: Participation type the declaration is made for

        Returns:
            The recorded RoundOutcome
        """
        participation = ParticipationType(participation)
        self.validate(group, slot_numbers, participation)

        winning_slots = sorted(slot_numbers)
        outcome = RoundOutcome(
            round_number=group.current_round,
            winning_slots=winning_slots,
            winner_identities=[[m.identity for m in group.occupants(s)] for s in winning_slots],
            participation=participation,
            created_at=datetime.now(timezone.utc),
        )
        group.round_outcomes.append(outcome)
        try:
            self.progression.advance(group)
        except Exception:
            group.round_outcomes.remove(outcome)
            raise
        return outcome


__all__ = ["RoundWinnerSelector"]
