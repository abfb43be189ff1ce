"""Unit tests for the participation model."""

from decimal import Decimal

import pytest

from equb.models.member import Member, MemberRole, ParticipationType
from equb.services.participation import has_room, share_amount, slot_capacity, slot_participation


def _occupant(identity: str, participation: ParticipationType) -> Member:
    return Member(
        identity=identity,
        participation=participation,
        slot_number=1,
        role=MemberRole.MEMBER,
    )


class TestParticipationType:
    """Denominators of the closed participation variant."""

    @pytest.mark.parametrize(
        "participation, denominator",
        [
            (ParticipationType.FULL, 1),
            (ParticipationType.HALF, 2),
            (ParticipationType.QUARTER, 4),
        ],
    )
    def test_denominator(self, participation, denominator):
        """Each participation type maps to its slot capacity."""
        assert participation.denominator == denominator
        assert slot_capacity(participation) == denominator

    def test_unknown_participation_is_rejected(self):
        """Free-form participation values are not representable."""
        with pytest.raises(ValueError):
            ParticipationType("third")


class TestShareAmount:
    """Per-occupant share of a contribution."""

    def test_full_share_is_whole_contribution(self):
        """A full member pays the whole contribution."""
        assert share_amount(Decimal("1000.00"), ParticipationType.FULL) == Decimal("1000.00")

    def test_half_share(self):
        """A half member pays half the contribution."""
        assert share_amount(Decimal("1000.00"), ParticipationType.HALF) == Decimal("500.00")

    def test_quarter_share_rounds_half_up_to_cent(self):
        """Shares are rounded half-up to the cent."""
        # 1000.10 / 4 = 250.025
        assert share_amount(Decimal("1000.10"), ParticipationType.QUARTER) == Decimal("250.03")


class TestHasRoom:
    """Slot sharing rules: homogeneous types, bounded by the denominator."""

    def test_empty_slot_has_room_for_any_type(self):
        """Any participation type may open an empty slot."""
        for participation in ParticipationType:
            assert has_room([], participation)

    def test_full_slot_holds_one_occupant(self):
        """A full slot is closed after one occupant."""
        assert not has_room([_occupant("a", ParticipationType.FULL)], ParticipationType.FULL)

    def test_half_slot_holds_two_occupants(self):
        """A half slot takes exactly two occupants."""
        one = [_occupant("a", ParticipationType.HALF)]
        two = one + [_occupant("b", ParticipationType.HALF)]

        assert has_room(one, ParticipationType.HALF)
        assert not has_room(two, ParticipationType.HALF)

    def test_quarter_slot_holds_four_occupants(self):
        """A quarter slot takes exactly four occupants."""
        occupants = [_occupant(str(i), ParticipationType.QUARTER) for i in range(3)]
        assert has_room(occupants, ParticipationType.QUARTER)

        occupants.append(_occupant("3", ParticipationType.QUARTER))
        assert not has_room(occupants, ParticipationType.QUARTER)

    def test_types_are_never_mixed(self):
        """A slot held by one type refuses every other type."""
        half = [_occupant("a", ParticipationType.HALF)]
        assert not has_room(half, ParticipationType.QUARTER)
        assert not has_room(half, ParticipationType.FULL)

    def test_slot_participation(self):
        """A slot takes the participation type of its occupants."""
        assert slot_participation([]) is None
        assert slot_participation([_occupant("a", ParticipationType.HALF)]) == ParticipationType.HALF
