"""Equb service: the operations the calling layer uses to drive a group.

Each mutating operation loads one Group aggregate, applies the change through the
engine components, bumps the group's version and commits. A writer holding a stale
version is rejected with ConcurrentModificationError instead of overwriting the
other writer's slots or outcomes.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterator, Sequence

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from equb.config import settings
from equb.models.group import Group
from equb.models.member import Member, MemberRole, ParticipationType
from equb.models.payment_record import PaymentMethod, PaymentRecord, PaymentStatus
from equb.models.round_outcome import RoundOutcome
from equb.schemas.group import (
    GroupConfig,
    PaymentSummary,
    RoundProgress,
    RoundWinnerView,
    SlotAvailability,
    UnpaidMember,
    WinningSlot,
)
from equb.services.errors import (
    AdminProtectedError,
    ConcurrentModificationError,
    ConflictError,
    EqubError,
    GroupCompletedError,
    GroupNotFoundError,
    InvalidRoundError,
    MemberNotFoundError,
    PaymentNotFoundError,
)
from equb.services.participation import share_amount, slot_participation
from equb.services.payment_ledger import PaymentLedger
from equb.services.permissions import Capability, require_capability
from equb.services.round_progression import RoundProgression, RoundState
from equb.services.round_winner_selector import RoundWinnerSelector
from equb.services.slot_allocator import SlotAllocator

logger = logging.getLogger(__name__)


class EqubService:
    """Group lifecycle, membership, payments and winner declarations.

    Used by the HTTP layer; returns model objects or pydantic reports and raises
    EqubError subclasses for every rejected request.
    """

    def __init__(self, db_session: Session):
        """Initialize with database session."""
        self.db = db_session
        self.allocator = SlotAllocator()
        self.ledger = PaymentLedger()
        self.progression = RoundProgression()
        self.selector = RoundWinnerSelector(self.ledger, self.progression)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_group(self, code: str) -> Group:
        """Get group by its human-facing code.

        Raises:
            GroupNotFoundError: If no group has this code
        """
        group = self.db.query(Group).filter(Group.code == code).first()
        if group is None:
            raise GroupNotFoundError(code)
        return group

    def list_groups(self, active_only: bool = True) -> list[Group]:
        """List groups, newest first."""
        query = self.db.query(Group)
        if active_only:
            query = query.filter(Group.is_active.is_(True))
        return query.order_by(Group.id.desc()).all()

    def round_state(self, code: str) -> RoundState:
        return self.progression.state(self.get_group(code))

    # ------------------------------------------------------------------
    # Group creation
    # ------------------------------------------------------------------

    def create_group(self, config: GroupConfig) -> Group:
        """Create a group with the seed admin in slot 1 and any extra members.

        Args:
            config: Validated group configuration

        Returns:
            Created Group

        Raises:
            AlreadyMemberError: If an identity is listed twice
            NoSlotAvailableError: If the extra members do not fit into max_slots
        """
        group = Group(
            code=self._allocate_code(),
            name=config.name,
            description=config.description,
            contribution_amount=config.contribution_amount,
            max_slots=config.max_slots,
            round_cadence=config.round_cadence,
            start_date=config.start_date,
        )
        self.progression.initialize(group)

        self.allocator.assign(
            group,
            config.seed_admin_identity,
            ParticipationType.FULL,
            role=MemberRole.ADMIN,
            name=config.seed_admin_name,
        )
        for seed in config.extra_members:
            self.allocator.assign(
                group,
                seed.identity,
                seed.participation,
                role=seed.role,
                name=seed.name,
            )

        self.db.add(group)
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise ConflictError(f"Group code {group.code} is already taken", "duplicate-group-code") from e

        logger.info(
            "Created group: code=%s, name=%s, max_slots=%d, cadence=%s, members=%d",
            group.code,
            group.name,
            group.max_slots,
            group.round_cadence.value,
            len(group.members),
        )
        return group

    def _allocate_code(self) -> str:
        """Next free '<prefix><sequence>' code in this store."""
        sequence = (self.db.query(func.count(Group.id)).scalar() or 0) + 1
        while True:
            code = f"{settings.group_code_prefix}{sequence:06d}"
            if self.db.query(Group.id).filter(Group.code == code).first() is None:
                return code
            sequence += 1

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def join_group(
        self,
        code: str,
        identity: str,
        participation: ParticipationType,
        name: str | None = None,
        expected_version: int | None = None,
    ) -> int:
        """Join a group as a regular member.

        Returns:
            Assigned slot number
        """
        with self._mutation(code, "join", expected_version) as group:
            self._ensure_open(group)
            member = self.allocator.assign(group, identity, participation, name=name)

        logger.info(
            "Member joined group %s: identity=%s, participation=%s, slot=%d",
            code,
            identity,
            member.participation.value,
            member.slot_number,
        )
        return member.slot_number

    def add_member(
        self,
        code: str,
        actor: str,
        identity: str,
        participation: ParticipationType,
        role: MemberRole = MemberRole.MEMBER,
        name: str | None = None,
        paid_rounds: int = 0,
        expected_version: int | None = None,
    ) -> int:
        """Add a member on someone's behalf (privileged).

        Args:
            code: Group code
            actor: Identity of the officer performing the add
            identity: Identity of the new member
            participation: Participation type of the new member
            role: Role of the new member (never admin)
            name: Display name
            paid_rounds: Rounds 1..n already settled in cash before joining

        Returns:
            Assigned slot number
        """
        with self._mutation(code, "add_member", expected_version) as group:
            require_capability(group.find_member(actor), Capability.ADD_MEMBER)
            self._ensure_open(group)
            if MemberRole(role) == MemberRole.ADMIN:
                raise AdminProtectedError("A group has exactly one admin; new members cannot be admins")
            if paid_rounds < 0 or paid_rounds > group.total_rounds:
                raise InvalidRoundError(paid_rounds)

            member = self.allocator.assign(group, identity, participation, role=role, name=name)
            if paid_rounds:
                self.ledger.prefill_paid_rounds(
                    group,
                    identity,
                    paid_rounds,
                    share_amount(group.contribution_amount, member.participation),
                )

        logger.info(
            "Member added to group %s by %s: identity=%s, role=%s, slot=%d, paid_rounds=%d",
            code,
            actor,
            identity,
            member.role.value,
            member.slot_number,
            paid_rounds,
        )
        return member.slot_number

    def remove_member(
        self,
        code: str,
        actor: str,
        identity: str,
        expected_version: int | None = None,
    ) -> None:
        """Remove a member and free their share of the slot (admin only).

        Raises:
            AdminProtectedError: If the target is the admin occupant
        """
        with self._mutation(code, "remove_member", expected_version) as group:
            require_capability(group.find_member(actor), Capability.REMOVE_MEMBER)
            target = self._member(group, identity)
            if target.role == MemberRole.ADMIN:
                raise AdminProtectedError("Cannot remove admin member")
            slot_number = target.slot_number
            self.allocator.release_slot(group, identity)

        logger.info("Member removed from group %s by %s: identity=%s, slot=%d", code, actor, identity, slot_number)

    def update_member_role(
        self,
        code: str,
        actor: str,
        identity: str,
        role: MemberRole,
        expected_version: int | None = None,
    ) -> Member:
        """Change a member's role (admin only).

        Raises:
            AdminProtectedError: If the target is the admin occupant or the new role is admin
        """
        with self._mutation(code, "update_member_role", expected_version) as group:
            require_capability(group.find_member(actor), Capability.UPDATE_ROLE)
            target = self._member(group, identity)
            if target.role == MemberRole.ADMIN:
                raise AdminProtectedError("Cannot update admin member role")
            if MemberRole(role) == MemberRole.ADMIN:
                raise AdminProtectedError("A group has exactly one admin; roles cannot be raised to admin")
            target.role = MemberRole(role)

        logger.info("Role updated in group %s by %s: identity=%s, role=%s", code, actor, identity, role)
        return target

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def record_payment(
        self,
        code: str,
        actor: str,
        identity: str,
        round_number: int,
        status: PaymentStatus = PaymentStatus.PAID,
        amount: Decimal | None = None,
        method: PaymentMethod = PaymentMethod.CASH,
        notes: str | None = None,
        expected_version: int | None = None,
    ) -> PaymentRecord:
        """Record (or overwrite) a member's payment for a round.

        Args:
            amount: Amount paid; defaults to the member's share of the contribution

        Raises:
            InvalidRoundError: If round_number is outside 1..total_rounds
        """
        with self._mutation(code, "record_payment", expected_version) as group:
            require_capability(group.find_member(actor), Capability.RECORD_PAYMENT)
            self._check_round(group, round_number)
            member = self._member(group, identity)
            if amount is None:
                amount = share_amount(group.contribution_amount, member.participation)
            record = self.ledger.record(group, identity, round_number, status, amount, method, notes)

        logger.info(
            "Payment recorded in group %s by %s: identity=%s, round=%d, status=%s, amount=%s",
            code,
            actor,
            identity,
            round_number,
            PaymentStatus(status).value,
            amount,
        )
        return record

    def mark_payment_unpaid(
        self,
        code: str,
        actor: str,
        identity: str,
        round_number: int,
        expected_version: int | None = None,
    ) -> PaymentRecord:
        """Flip an existing payment record back to unpaid."""
        return self._overwrite_payment(
            code, actor, identity, round_number, PaymentStatus.UNPAID, "Payment marked as unpaid", expected_version
        )

    def cancel_payment(
        self,
        code: str,
        actor: str,
        identity: str,
        round_number: int,
        reason: str | None = None,
        expected_version: int | None = None,
    ) -> PaymentRecord:
        """Cancel an existing payment record."""
        return self._overwrite_payment(
            code,
            actor,
            identity,
            round_number,
            PaymentStatus.CANCELLED,
            reason or "Payment cancelled",
            expected_version,
        )

    def _overwrite_payment(
        self,
        code: str,
        actor: str,
        identity: str,
        round_number: int,
        status: PaymentStatus,
        notes: str,
        expected_version: int | None,
    ) -> PaymentRecord:
        with self._mutation(code, f"payment_{status.value}", expected_version) as group:
            require_capability(group.find_member(actor), Capability.MODIFY_PAYMENT)
            member = self._member(group, identity)
            if member.payment_for(round_number) is None:
                raise PaymentNotFoundError(identity, round_number)
            record = self.ledger.record(
                group, identity, round_number, status, Decimal("0"), PaymentMethod.CASH, notes
            )

        logger.info(
            "Payment set to %s in group %s by %s: identity=%s, round=%d",
            status.value,
            code,
            actor,
            identity,
            round_number,
        )
        return record

    # ------------------------------------------------------------------
    # Winner declaration
    # ------------------------------------------------------------------

    def list_available_slots(self, code: str) -> list[SlotAvailability]:
        """Occupied slots that have not won yet, with their eligibility for this round."""
        group = self.get_group(code)
        return [
            SlotAvailability(
                slot_number=slot_number,
                participation=slot_participation(group.occupants(slot_number)),
                occupants=[m.identity for m in group.occupants(slot_number)],
                eligible=self.selector.is_eligible(group, slot_number),
            )
            for slot_number in self.allocator.list_available(group)
        ]

    def declare_round_winner(
        self,
        code: str,
        actor: str,
        slot_numbers: Sequence[int],
        participation: ParticipationType,
        expected_version: int | None = None,
    ) -> RoundOutcome:
        """Declare the winning slot(s) of the current round and advance the group.

        Returns:
            The recorded RoundOutcome
        """
        with self._mutation(code, "declare_round_winner", expected_version) as group:
            require_capability(group.find_member(actor), Capability.DECLARE_WINNER)
            outcome = self.selector.declare(group, list(slot_numbers), participation)

        if group.is_active:
            logger.info(
                "Round %d winners declared in group %s by %s: slots=%s; next round %d due %s",
                outcome.round_number,
                code,
                actor,
                outcome.winning_slots,
                group.current_round,
                group.next_round_date,
            )
        else:
            logger.info(
                "Round %d winners declared in group %s by %s: slots=%s; group completed",
                outcome.round_number,
                code,
                actor,
                outcome.winning_slots,
            )
        return outcome

    def round_winners(self, code: str) -> list[RoundWinnerView]:
        """Recorded outcomes in round order, with the members each slot paid out to when declared."""
        group = self.get_group(code)
        views = []
        for outcome in group.round_outcomes:
            payout = share_amount(group.contribution_amount, outcome.participation)
            views.append(
                RoundWinnerView(
                    round_number=outcome.round_number,
                    participation=outcome.participation,
                    declared_at=outcome.created_at,
                    winners=[
                        WinningSlot(
                            slot_number=slot_number,
                            occupants=list(identities),
                            payout_per_occupant=payout,
                        )
                        for slot_number, identities in zip(outcome.winning_slots, outcome.winner_identities)
                    ],
                )
            )
        return views

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def payment_summary(self, code: str) -> PaymentSummary:
        """Collection status of the group's current round.

        A completed group reports on its final round.
        """
        group = self.get_group(code)
        round_number = self._report_round(group)

        total_collected = Decimal("0")
        total_expected = Decimal("0")
        paid_members = 0
        for member in group.members:
            record = member.payment_for(round_number)
            if record is not None and record.is_paid:
                total_collected += Decimal(str(record.amount_paid))
                paid_members += 1
            total_expected += share_amount(group.contribution_amount, member.participation)

        total_members = len(group.members)
        collection_rate = _percentage(paid_members, total_members)
        return PaymentSummary(
            current_round=group.current_round,
            round_number=round_number,
            next_round_date=group.next_round_date,
            total_members=total_members,
            total_collected=total_collected,
            total_expected=total_expected,
            collection_rate=collection_rate,
            round_progress=RoundProgress(
                completed=paid_members,
                pending=total_members - paid_members,
                percentage=collection_rate,
            ),
        )

    def unpaid_members(self, code: str, round_number: int | None = None) -> list[UnpaidMember]:
        """Members who have not paid the target round, largest arrears first.

        Args:
            code: Group code
            round_number: Round to check (default: the current round, or the final
                round once the group is complete)

        Raises:
            InvalidRoundError: If round_number is outside 1..total_rounds
        """
        group = self.get_group(code)
        if round_number is None:
            round_number = self._report_round(group)
        self._check_round(group, round_number)

        report = []
        for member in group.members:
            if self.ledger.member_has_paid(member, round_number):
                continue
            share = share_amount(group.contribution_amount, member.participation)
            report.append(
                UnpaidMember(
                    identity=member.identity,
                    name=member.name,
                    participation=member.participation,
                    slot_number=member.slot_number,
                    unpaid_rounds=self.ledger.unpaid_rounds(member, round_number),
                    total_unpaid=self.ledger.outstanding_balance(member, round_number, share),
                    last_payment_date=self.ledger.last_paid_at(member),
                )
            )
        report.sort(key=lambda line: line.total_unpaid, reverse=True)
        return report

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _mutation(self, code: str, action: str, expected_version: int | None) -> Iterator[Group]:
        """Load the group, run one mutation, bump the version and commit.

        Rolls back on any engine error or version conflict.
        """
        try:
            group = self.get_group(code)
            if expected_version is not None and group.version != expected_version:
                raise ConcurrentModificationError(code)
            yield group
            # Forces an UPDATE of the group row so the version check applies to child-only changes
            group.updated_at = datetime.now(timezone.utc)
            self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            logger.warning("%s on group %s lost a concurrent update", action, code)
            raise ConcurrentModificationError(code) from e
        except IntegrityError as e:
            self.db.rollback()
            logger.warning("%s on group %s violated a uniqueness constraint", action, code)
            raise ConcurrentModificationError(code) from e
        except EqubError as e:
            self.db.rollback()
            logger.warning("%s on group %s rejected: %s (%s)", action, code, e.code, e.message)
            raise
        except Exception:
            self.db.rollback()
            raise

    @staticmethod
    def _member(group: Group, identity: str) -> Member:
        member = group.find_member(identity)
        if member is None:
            raise MemberNotFoundError(identity)
        return member

    @staticmethod
    def _ensure_open(group: Group) -> None:
        if not group.is_active:
            raise GroupCompletedError(group.code)

    @staticmethod
    def _check_round(group: Group, round_number: int) -> None:
        if round_number <= 0 or round_number > group.total_rounds:
            raise InvalidRoundError(round_number)

    @staticmethod
    def _report_round(group: Group) -> int:
        # current_round runs one past total_rounds once the group completes
        return min(group.current_round, group.total_rounds)


def _percentage(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return int((Decimal(part * 100) / Decimal(whole)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


__all__ = ["EqubService"]
