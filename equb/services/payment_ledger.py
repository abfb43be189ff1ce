"""Payment ledger: one upserted record per member per round."""

from datetime import datetime, timezone
from decimal import Decimal

from equb.models.group import Group
from equb.models.member import Member
from equb.models.payment_record import PaymentMethod, PaymentRecord, PaymentStatus
from equb.services.errors import InvalidRoundError, MemberNotFoundError


class PaymentLedger:
    """Per-member, per-round payment store.

    The ledger only requires positive round numbers. Checking a round against the
    group's total rounds is the caller's job.
    """

    def record(
        self,
        group: Group,
        identity: str,
        round_number: int,
        status: PaymentStatus,
        amount: Decimal,
        method: PaymentMethod = PaymentMethod.CASH,
        notes: str | None = None,
    ) -> PaymentRecord:
        """Create or overwrite the member's record for a round.

        Args:
            group: Group aggregate
            identity: Member identity
            round_number: Round the payment covers
            status: New payment status
            amount: Amount paid
            method: Payment method
            notes: Optional note

        Returns:
            The created or updated PaymentRecord

        Raises:
            MemberNotFoundError: If the identity is not a member of the group
            InvalidRoundError: If round_number is not positive
        """
        member = self._member(group, identity)
        if round_number <= 0:
            raise InvalidRoundError(round_number)

        now = datetime.now(timezone.utc)
        record = member.payment_for(round_number)
        if record is None:
            record = PaymentRecord(round_number=round_number)
            member.payments.append(record)

        record.status = PaymentStatus(status)
        record.amount_paid = Decimal(str(amount))
        record.payment_method = PaymentMethod(method)
        record.notes = notes
        record.recorded_at = now
        return record

    def has_paid(self, group: Group, identity: str, round_number: int) -> bool:
        """True iff the member holds a PAID record for the round."""
        return self.member_has_paid(self._member(group, identity), round_number)

    @staticmethod
    def member_has_paid(member: Member, round_number: int) -> bool:
        record = member.payment_for(round_number)
        return record is not None and record.is_paid

    def unpaid_rounds(self, member: Member, through_round: int) -> list[int]:
        """Rounds 1..through_round that lack a PAID record, ascending."""
        return [r for r in range(1, through_round + 1) if not self.member_has_paid(member, r)]

    def outstanding_balance(
        self,
        member: Member,
        through_round: int,
        contribution: Decimal,
    ) -> Decimal:
        """Arrears up to and including through_round: unpaid round count times contribution."""
        return len(self.unpaid_rounds(member, through_round)) * Decimal(str(contribution))

    def last_paid_at(self, member: Member) -> datetime | None:
        """Timestamp of the member's most recently written PAID record."""
        paid = [_as_utc(p.recorded_at) for p in member.payments if p.is_paid]
        return max(paid) if paid else None

    def prefill_paid_rounds(self, group: Group, identity: str, paid_rounds: int, amount: Decimal) -> None:
        """Mark rounds 1..paid_rounds as paid in cash for a member who joins late."""
        for round_number in range(1, paid_rounds + 1):
            self.record(
                group,
                identity,
                round_number,
                PaymentStatus.PAID,
                amount,
                PaymentMethod.CASH,
                "Pre-joined payment",
            )

    @staticmethod
    def _member(group: Group, identity: str) -> Member:
        member = group.find_member(identity)
        if member is None:
            raise MemberNotFoundError(identity)
        return member


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


__all__ = ["PaymentLedger"]
