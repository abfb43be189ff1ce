"""Integration tests for recording and correcting payments."""

from decimal import Decimal

import pytest

from equb.models import MemberRole, ParticipationType, PaymentMethod, PaymentRecord, PaymentStatus
from equb.services.errors import (
    InsufficientPermissionsError,
    InvalidRoundError,
    MemberNotFoundError,
    PaymentNotCompleteError,
    PaymentNotFoundError,
)

ADMIN = "admin-1"
FULL = ParticipationType.FULL


@pytest.fixture
def code(service, group_config):
    """Admin (slot 1), collector c1 (slot 2), writer w1 (slot 3, half), member h2 (slot 3, half)."""
    group = service.create_group(group_config(max_slots=3))
    service.add_member(group.code, ADMIN, "c1", FULL, role=MemberRole.COLLECTOR)
    service.add_member(group.code, ADMIN, "w1", ParticipationType.HALF, role=MemberRole.WRITER)
    service.join_group(group.code, "h2", ParticipationType.HALF)
    return group.code


class TestRecordPayment:
    """Recording contributions."""

    def test_amount_defaults_to_member_share(self, service, code):
        """Without an amount the member's share is recorded."""
        full = service.record_payment(code, ADMIN, "c1", 1)
        half = service.record_payment(code, ADMIN, "h2", 1)

        assert full.amount_paid == Decimal("1000.00")
        assert half.amount_paid == Decimal("500.00")
        assert half.status == PaymentStatus.PAID
        assert half.payment_method == PaymentMethod.CASH

    def test_explicit_amount_method_and_notes(self, service, code):
        """Amount, method and notes are stored as given."""
        record = service.record_payment(
            code,
            "w1",
            "h2",
            2,
            amount=Decimal("480.00"),
            method=PaymentMethod.MOBILE_MONEY,
            notes="short by 20",
        )

        assert record.amount_paid == Decimal("480.00")
        assert record.payment_method == PaymentMethod.MOBILE_MONEY
        assert record.notes == "short by 20"

    def test_recording_twice_overwrites(self, service, code, db_session):
        """A round holds one record per member."""
        service.record_payment(code, ADMIN, "c1", 1, status=PaymentStatus.PENDING)
        service.record_payment(code, ADMIN, "c1", 1)

        records = db_session.query(PaymentRecord).all()
        assert len(records) == 1
        assert records[0].status == PaymentStatus.PAID

    @pytest.mark.parametrize("round_number", [0, 4])
    def test_round_must_be_within_group_rounds(self, service, code, round_number):
        """Payments outside 1..total_rounds are rejected."""
        with pytest.raises(InvalidRoundError):
            service.record_payment(code, ADMIN, "c1", round_number)

    def test_plain_member_cannot_record(self, service, code):
        """Plain members cannot record payments."""
        with pytest.raises(InsufficientPermissionsError):
            service.record_payment(code, "h2", "h2", 1)

    def test_unknown_member(self, service, code):
        """Payments for non-members are rejected."""
        with pytest.raises(MemberNotFoundError):
            service.record_payment(code, ADMIN, "ghost", 1)


class TestCorrectPayment:
    """Marking payments unpaid or cancelled."""

    def test_collector_marks_payment_unpaid(self, service, code):
        """A collector flips a payment back to unpaid."""
        service.record_payment(code, ADMIN, "h2", 1)

        record = service.mark_payment_unpaid(code, "c1", "h2", 1)

        assert record.status == PaymentStatus.UNPAID
        assert record.amount_paid == Decimal("0")
        assert record.notes == "Payment marked as unpaid"

    def test_cancel_with_reason(self, service, code):
        """Cancelling stores the given reason."""
        service.record_payment(code, ADMIN, "h2", 1)

        record = service.cancel_payment(code, ADMIN, "h2", 1, reason="Bounced transfer")

        assert record.status == PaymentStatus.CANCELLED
        assert record.notes == "Bounced transfer"

    def test_cancel_default_note(self, service, code):
        """Cancelling without a reason uses the default note."""
        service.record_payment(code, ADMIN, "h2", 1)

        assert service.cancel_payment(code, ADMIN, "h2", 1).notes == "Payment cancelled"

    def test_correction_needs_existing_record(self, service, code):
        """Only existing payments can be corrected."""
        with pytest.raises(PaymentNotFoundError):
            service.mark_payment_unpaid(code, ADMIN, "h2", 1)
        with pytest.raises(PaymentNotFoundError):
            service.cancel_payment(code, ADMIN, "h2", 1)

    def test_writer_cannot_correct(self, service, code):
        """Writers record but do not correct payments."""
        service.record_payment(code, "w1", "h2", 1)

        with pytest.raises(InsufficientPermissionsError):
            service.mark_payment_unpaid(code, "w1", "h2", 1)

    def test_unpaid_payment_blocks_declaration(self, service, code):
        """A payment marked unpaid closes the winner gate for that slot."""
        for identity in (ADMIN, "c1", "w1", "h2"):
            service.record_payment(code, ADMIN, identity, 1)
        service.mark_payment_unpaid(code, ADMIN, "c1", 1)

        with pytest.raises(PaymentNotCompleteError):
            service.declare_round_winner(code, ADMIN, [2], FULL)

        outcome = service.declare_round_winner(code, ADMIN, [1], FULL)
        assert outcome.winning_slots == [1]
