"""Slot allocation: place members into the lowest-numbered slot with room.

Scanning is ascending and recomputed on every call, so slots vacated by removed
members are reused before higher slot numbers are handed out.
"""

from collections import defaultdict
from datetime import datetime, timezone

from equb.models.group import Group
from equb.models.member import Member, MemberRole, ParticipationType
from equb.services.errors import AlreadyMemberError, MemberNotFoundError, NoSlotAvailableError
from equb.services.participation import has_room


class SlotAllocator:
    """Assigns members to slots and reclaims slots on removal."""

    def slot_occupancy(self, group: Group) -> dict[int, list[Member]]:
        """Map each occupied slot number to its occupants, in join order."""
        occupancy: dict[int, list[Member]] = defaultdict(list)
        for member in group.members:
            occupancy[member.slot_number].append(member)
        return dict(occupancy)

    def next_slot(self, group: Group, participation: ParticipationType) -> int:
        """Find the first slot in 1..max_slots that can take one more occupant of this type.

        Args:
            group: Group aggregate
            participation: Participation type of the incoming member

        Returns:
            Slot number

        Raises:
            NoSlotAvailableError: If every slot is full or held by another participation type
        """
        occupancy = self.slot_occupancy(group)
        for slot_number in range(1, group.max_slots + 1):
            if has_room(occupancy.get(slot_number, []), participation):
                return slot_number
        raise NoSlotAvailableError(ParticipationType(participation).value)

    def assign(
        self,
        group: Group,
        identity: str,
        participation: ParticipationType,
        role: MemberRole = MemberRole.MEMBER,
        name: str | None = None,
    ) -> Member:
        """Create a Member for the identity in the next available slot.

        Raises:
            AlreadyMemberError: If the identity already occupies a slot in this group
            NoSlotAvailableError: If the group is at capacity for this participation type
        """
        if group.find_member(identity) is not None:
            raise AlreadyMemberError(identity)

        slot_number = self.next_slot(group, participation)
        member = Member(
            identity=identity,
            name=name,
            participation=ParticipationType(participation),
            slot_number=slot_number,
            role=MemberRole(role),
            joined_at=datetime.now(timezone.utc),
        )
        group.members.append(member)
        return member

    def release_slot(self, group: Group, identity: str) -> Member:
        """Remove the member, leaving every other slot number untouched.

        Raises:
            MemberNotFoundError: If the identity is not a member of the group
        """
        member = group.find_member(identity)
        if member is None:
            raise MemberNotFoundError(identity)
        group.members.remove(member)
        return member

    def list_available(self, group: Group) -> list[int]:
        """Occupied slot numbers, ascending, excluding slots that already won."""
        won = group.won_slot_numbers
        return sorted(s for s in self.slot_occupancy(group) if s not in won)


__all__ = ["SlotAllocator"]
