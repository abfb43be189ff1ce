"""Role capability table for privileged group operations."""

from enum import Enum

from equb.models.member import Member, MemberRole
from equb.services.errors import InsufficientPermissionsError


class Capability(str, Enum):
    """Operation classes that are gated by a member's role."""

    ADD_MEMBER = "add_member"
    REMOVE_MEMBER = "remove_member"
    UPDATE_ROLE = "update_role"
    RECORD_PAYMENT = "record_payment"
    MODIFY_PAYMENT = "modify_payment"
    DECLARE_WINNER = "declare_winner"


_OFFICER = frozenset(
    {
        Capability.ADD_MEMBER,
        Capability.RECORD_PAYMENT,
        Capability.DECLARE_WINNER,
    }
)

ROLE_CAPABILITIES: dict[MemberRole, frozenset[Capability]] = {
    # Plain members only join and read reports
    MemberRole.MEMBER: frozenset(),
    MemberRole.WRITER: _OFFICER,
    MemberRole.JUDGE: _OFFICER,
    MemberRole.COLLECTOR: _OFFICER | {Capability.MODIFY_PAYMENT},
    MemberRole.ADMIN: frozenset(Capability),
}


def has_capability(member: Member, capability: Capability) -> bool:
    return capability in ROLE_CAPABILITIES.get(MemberRole(member.role), frozenset())


def require_capability(member: Member | None, capability: Capability) -> None:
    """Raise InsufficientPermissionsError unless the member's role grants the capability.

    Args:
        member: Acting member, None when the actor does not belong to the group
        capability: Capability the operation needs

    Raises:
        InsufficientPermissionsError: If the actor is not a member or lacks the capability
    """
    if member is None:
        raise InsufficientPermissionsError("Actor is not a member of this group")
    if not has_capability(member, capability):
        raise InsufficientPermissionsError(
            f"Role '{MemberRole(member.role).value}' cannot perform {capability.value}"
        )


__all__ = ["Capability", "ROLE_CAPABILITIES", "has_capability", "require_capability"]
