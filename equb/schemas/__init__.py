"""Pydantic shapes exchanged with the calling layer."""

from equb.schemas.group import (
    GroupConfig,
    MemberSeed,
    PaymentSummary,
    RoundProgress,
    RoundWinnerView,
    SlotAvailability,
    UnpaidMember,
    WinningSlot,
)

__all__ = [
    "GroupConfig",
    "MemberSeed",
    "PaymentSummary",
    "RoundProgress",
    "RoundWinnerView",
    "SlotAvailability",
    "UnpaidMember",
    "WinningSlot",
]
