"""Typed errors raised by the engine and helpers to map them onto responses.

Every error carries a kebab-case code and a kind. The kind decides the HTTP status
the calling layer answers with; the engine itself never talks HTTP.
"""

from enum import Enum
from typing import Any, Dict

from fastapi import HTTPException, status


class ErrorKind(str, Enum):
    """Error taxonomy shared with the calling layer."""

    VALIDATION = "validation"
    NOT_FOUND = "not-found"
    CONFLICT = "conflict"
    PRECONDITION_FAILED = "precondition-failed"
    FORBIDDEN = "forbidden"


HTTP_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.PRECONDITION_FAILED: status.HTTP_412_PRECONDITION_FAILED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
}


class EqubError(Exception):
    """Base engine error."""

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str, code: str):
        self.message = message
        self.code = code
        super().__init__(message)

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_KIND[self.kind]


class ValidationError(EqubError):
    """Malformed input that slipped past the calling layer."""

    kind = ErrorKind.VALIDATION


class NotFoundError(EqubError):
    """Unknown group, member, slot or payment."""

    kind = ErrorKind.NOT_FOUND


class ConflictError(EqubError):
    """Request collides with the current aggregate state."""

    kind = ErrorKind.CONFLICT


class PreconditionFailedError(EqubError):
    """Request is well-formed but the group is not ready for it."""

    kind = ErrorKind.PRECONDITION_FAILED


class ForbiddenError(EqubError):
    """Actor lacks the capability, or the target is protected."""

    kind = ErrorKind.FORBIDDEN


class GroupNotFoundError(NotFoundError):
    def __init__(self, code: str):
        super().__init__(f"Group {code} not found", "group-not-found")


class MemberNotFoundError(NotFoundError):
    def __init__(self, identity: str):
        super().__init__(f"Member {identity} not found in this group", "member-not-found")


class PaymentNotFoundError(NotFoundError):
    def __init__(self, identity: str, round_number: int):
        super().__init__(
            f"No payment recorded for member {identity} in round {round_number}",
            "payment-not-found",
        )


class InvalidSlotNumberError(NotFoundError):
    def __init__(self, slot_number: int):
        super().__init__(f"Slot {slot_number} has no occupant", "invalid-slot-number")


class NoSlotAvailableError(ConflictError):
    def __init__(self, participation: str):
        super().__init__(f"No available slot for {participation} participation", "no-slot-available")


class AlreadyMemberError(ConflictError):
    def __init__(self, identity: str):
        super().__init__(f"{identity} is already a member of this group", "already-member")


class SlotAlreadyWonError(ConflictError):
    def __init__(self, slot_number: int):
        super().__init__(f"Slot {slot_number} has already won a round", "slot-already-won")


class ConcurrentModificationError(ConflictError):
    def __init__(self, group_code: str):
        super().__init__(
            f"Group {group_code} was modified concurrently, reload and retry",
            "concurrent-modification",
        )


class InvalidWinnerCountError(ValidationError):
    def __init__(self, expected: int, given: int):
        super().__init__(
            f"Expected {expected} winning slot number(s), got {given}",
            "invalid-winner-count",
        )


class DuplicateSlotNumberError(ValidationError):
    def __init__(self, slot_number: int):
        super().__init__(f"Slot {slot_number} is listed more than once", "duplicate-slot-number")


class ParticipationMismatchError(ValidationError):
    def __init__(self, slot_number: int, participation: str):
        super().__init__(
            f"Slot {slot_number} is not held by {participation} participants",
            "participation-mismatch",
        )


class InvalidRoundError(ValidationError):
    def __init__(self, round_number: int):
        super().__init__(f"Round {round_number} is not a valid round number", "invalid-round")


class PaymentNotCompleteError(PreconditionFailedError):
    def __init__(self, slot_number: int, identity: str, round_number: int):
        super().__init__(
            f"Slot {slot_number}: {identity} has not paid round {round_number}",
            "payment-not-complete",
        )


class GroupCompletedError(PreconditionFailedError):
    def __init__(self, group_code: str):
        super().__init__(f"Group {group_code} has already completed all rounds", "group-completed")


class InsufficientPermissionsError(ForbiddenError):
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message, "insufficient-permissions")


class AdminProtectedError(ForbiddenError):
    def __init__(self, message: str = "The admin member cannot be changed or removed"):
        super().__init__(message, "admin-protected")


def error_response(error: EqubError) -> Dict[str, Any]:
    """Create a standardized error response."""
    return {
        "error": {
            "kind": error.kind.value,
            "code": error.code,
            "message": error.message,
        }
    }


def raise_app_error(error: EqubError) -> None:
    """Raise an HTTPException from an EqubError."""
    raise HTTPException(
        status_code=error.http_status,
        detail=error_response(error),
    ) from error
