"""
CreditLotStore -- persistence and lifecycle of service credit lots.

Responsibility:
    Creates lots from earning events, drives the approval state machine
    (PENDING -> APPROVED | REJECTED), answers FIFO-ordered availability
    queries, and performs the atomic per-lot deduct/restore used by the
    offset engine.

Architecture position:
    Ledger > Services.  Uses BalanceAggregator for the approval balance
    effect and EmployeeDirectory for eligibility.  Flush-only.

Invariants enforced:
    CONSERVATION -- deduct/restore keep credits_used + credits_balance ==
        credits_earned with both sides non-negative, or raise
        InvariantViolationError without writing.
    FIFO_ORDER -- list_available orders by work_date, then lot id.

Failure modes:
    - ValidationError: bad hours, credit type or work date; ineligible
      employee.
    - EmployeeNotFoundError, CreditLotNotFoundError.
    - InvalidStateError: approve/reject/update outside PENDING, delete of an
      approved or partly consumed lot.

Audit relevance:
    Approvals and rejections record actor, time and remarks/reason on the
    lot, and are logged as ``credit_lot_approved`` / ``credit_lot_rejected``.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from credit_config import CreditPolicy
from credit_ledger.db.types import (
    MAX_CREDIT_AMOUNT,
    ZERO,
    has_excess_precision,
    round_credits,
    to_decimal,
)
from credit_ledger.domain.clock import Clock, SystemClock
from credit_ledger.domain.collaborators import EmployeeDirectory
from credit_ledger.domain.credit_math import compute_credits_earned, compute_expiry_date
from credit_ledger.exceptions import (
    CreditLotNotFoundError,
    EmployeeNotFoundError,
    InvalidStateError,
    InvariantViolationError,
    ValidationError,
)
from credit_ledger.invariants import LedgerInvariant
from credit_ledger.logging_config import get_logger
from credit_ledger.models.credit_lot import CreditLot, CreditLotStatus, CreditType
from credit_ledger.services.balance_aggregator import BalanceAggregator
from credit_ledger.services.base import BaseService

logger = get_logger("services.credit_lot_store")

UNSET = object()


def coerce_amount(value: Decimal | int | str, field: str) -> Decimal:
    """Turn caller input into a 2-place Decimal or raise ValidationError."""
    try:
        amount = to_decimal(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(field, str(exc)) from exc
    if not amount.is_finite():
        raise ValidationError(field, f"must be finite, got {amount}")
    if abs(amount) > MAX_CREDIT_AMOUNT:
        raise ValidationError(field, f"must not exceed {MAX_CREDIT_AMOUNT}, got {amount}")
    try:
        if has_excess_precision(amount):
            raise ValidationError(field, f"at most 2 decimal places allowed, got {amount}")
        return round_credits(amount)
    except InvalidOperation as exc:
        raise ValidationError(field, f"not representable, got {amount}") from exc


def _invalid_state(lot: CreditLot, action: str) -> InvalidStateError:
    return InvalidStateError("credit lot", str(lot.id), CreditLotStatus(lot.status).value, action)


class CreditLotStore(BaseService[CreditLot]):
    """
    Lot lifecycle and per-lot balance mutation.

    Contract:
        ``deduct`` and ``restore`` expect the lot to be locked already
        (``get(..., for_update=True)`` or ``list_available(...,
        for_update=True)``) within the current transaction.

    Non-goals:
        - Does NOT choose which lots to draw from; see OffsetEngine and
          the FIFO planner.
        - Does NOT record offsets; see OffsetLedger.
    """

    def __init__(
        self,
        session: Session,
        policy: CreditPolicy,
        employees: EmployeeDirectory,
        balances: BalanceAggregator,
        clock: Clock | None = None,
    ):
        super().__init__(session)
        self._policy = policy
        self._employees = employees
        self._balances = balances
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Validation helpers
    # ------------------------------------------------------------------

    def _validate_hours(self, hours_worked: Decimal | int | str) -> Decimal:
        hours = coerce_amount(hours_worked, "hours_worked")
        if hours <= ZERO:
            raise ValidationError("hours_worked", f"must be positive, got {hours}")
        if hours > self._policy.max_hours_worked:
            raise ValidationError(
                "hours_worked",
                f"must not exceed {self._policy.max_hours_worked}, got {hours}",
            )
        return hours

    def _validate_credit_type(self, credit_type: CreditType | str) -> CreditType:
        try:
            return CreditType(credit_type)
        except ValueError as exc:
            raise ValidationError("credit_type", f"unknown credit type {credit_type!r}") from exc

    def _validate_work_date(self, work_date: date) -> date:
        if not isinstance(work_date, date):
            raise ValidationError("work_date", f"must be a date, got {work_date!r}")
        if not self._policy.allow_future_work_date and work_date > self._clock.today():
            raise ValidationError("work_date", f"{work_date} is in the future")
        return work_date

    def _earned_for(self, hours: Decimal) -> Decimal:
        earned = compute_credits_earned(hours, self._policy.hours_per_credit)
        if earned <= ZERO:
            raise ValidationError(
                "hours_worked", f"{hours} hours earn no credits at 2 decimal places"
            )
        return earned

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create_lot(
        self,
        employee_id: UUID,
        credit_type: CreditType | str,
        work_date: date,
        hours_worked: Decimal | int | str,
        description: str | None,
        created_by: UUID,
    ) -> CreditLot:
        """
        Create a PENDING lot for one earning event.

        Postconditions:
            credits_used == 0, credits_balance == credits_earned and
            expiry_date == work_date + policy.expiry_years.
        """
        kind = self._validate_credit_type(credit_type)
        hours = self._validate_hours(hours_worked)
        work_date = self._validate_work_date(work_date)

        employee = self._employees.find(employee_id)
        if employee is None:
            raise EmployeeNotFoundError(str(employee_id))
        if not self._employees.is_eligible(employee):
            raise ValidationError(
                "employee_id",
                f"employee {employee.employee_number} ({employee.status}, "
                f"{employee.employment_status}) is not eligible for service credits",
            )

        earned = self._earned_for(hours)
        lot = CreditLot(
            employee_id=employee_id,
            credit_type=kind,
            work_date=work_date,
            description=description,
            hours_worked=hours,
            credits_earned=earned,
            credits_used=ZERO,
            credits_balance=earned,
            status=CreditLotStatus.PENDING,
            expiry_date=compute_expiry_date(work_date, self._policy.expiry_years),
            created_by_id=created_by,
        )
        self.session.add(lot)
        self.session.flush()

        logger.info(
            "credit_lot_created",
            extra={
                "lot_id": str(lot.id),
                "employee_id": str(employee_id),
                "credit_type": kind.value,
                "hours_worked": str(hours),
                "credits_earned": str(earned),
            },
        )
        return lot

    def approve(self, lot_id: UUID, approver_id: UUID, remarks: str | None = None) -> CreditLot:
        """PENDING -> APPROVED, adding credits_earned to the cached balance."""
        employee_id = self.get(lot_id).employee_id
        # Employee row before lot row
        self._balances.read(employee_id, for_update=True)
        lot = self.get(lot_id, for_update=True)
        if not lot.is_pending:
            raise _invalid_state(lot, "approve")

        lot.status = CreditLotStatus.APPROVED
        lot.approved_by_id = approver_id
        lot.approved_at = self._clock.now()
        lot.approval_remarks = remarks
        lot.updated_by_id = approver_id
        self.session.flush()

        new_balance = self._balances.increase(employee_id, lot.credits_earned)
        logger.info(
            "credit_lot_approved",
            extra={
                "lot_id": str(lot_id),
                "employee_id": str(employee_id),
                "credits_earned": str(lot.credits_earned),
                "new_balance": str(new_balance),
            },
        )
        return lot

    def reject(self, lot_id: UUID, rejector_id: UUID, reason: str) -> CreditLot:
        """PENDING -> REJECTED. No balance effect."""
        if not reason or not reason.strip():
            raise ValidationError("reason", "a rejection reason is required")
        lot = self.get(lot_id, for_update=True)
        if not lot.is_pending:
            raise _invalid_state(lot, "reject")

        lot.status = CreditLotStatus.REJECTED
        lot.rejected_by_id = rejector_id
        lot.rejected_at = self._clock.now()
        lot.rejection_reason = reason
        lot.updated_by_id = rejector_id
        self.session.flush()

        logger.info(
            "credit_lot_rejected",
            extra={"lot_id": str(lot_id), "employee_id": str(lot.employee_id)},
        )
        return lot

    def update_pending(
        self,
        lot_id: UUID,
        actor_id: UUID,
        credit_type: CreditType | str | None = None,
        work_date: date | None = None,
        hours_worked: Decimal | int | str | None = None,
        description: str | None | object = UNSET,
    ) -> CreditLot:
        """
        Edit a PENDING lot and recompute earned, balance and expiry.

        ``description=None`` clears the description; leaving it out keeps it.
        """
        lot = self.get(lot_id, for_update=True)
        if not lot.is_pending:
            raise _invalid_state(lot, "update")

        if credit_type is not None:
            lot.credit_type = self._validate_credit_type(credit_type)
        if work_date is not None:
            lot.work_date = self._validate_work_date(work_date)
        if hours_worked is not None:
            lot.hours_worked = self._validate_hours(hours_worked)
        if description is not UNSET:
            lot.description = description

        earned = self._earned_for(lot.hours_worked)
        lot.credits_earned = earned
        lot.credits_used = ZERO
        lot.credits_balance = earned
        lot.expiry_date = compute_expiry_date(lot.work_date, self._policy.expiry_years)
        lot.updated_by_id = actor_id
        self.session.flush()

        logger.info(
            "credit_lot_updated",
            extra={"lot_id": str(lot_id), "credits_earned": str(earned)},
        )
        return lot

    def soft_delete(self, lot_id: UUID, actor_id: UUID) -> CreditLot:
        """Hide an unused, non-approved lot from every query."""
        lot = self.get(lot_id, for_update=True)
        if lot.status == CreditLotStatus.APPROVED or lot.credits_used > ZERO:
            raise _invalid_state(lot, "delete")

        lot.deleted_at = self._clock.now()
        lot.updated_by_id = actor_id
        self.session.flush()

        logger.info("credit_lot_deleted", extra={"lot_id": str(lot_id)})
        return lot

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, lot_id: UUID, for_update: bool = False) -> CreditLot:
        stmt = select(CreditLot).where(
            CreditLot.id == lot_id,
            CreditLot.deleted_at.is_(None),
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        lot = self.session.execute(stmt).scalar_one_or_none()
        if lot is None:
            raise CreditLotNotFoundError(str(lot_id))
        return lot

    def list_available(
        self,
        employee_id: UUID,
        today: date,
        for_update: bool = False,
    ) -> list[CreditLot]:
        """Approved, unexpired lots with a positive balance, oldest first."""
        stmt = (
            select(CreditLot)
            .where(
                CreditLot.employee_id == employee_id,
                CreditLot.status == CreditLotStatus.APPROVED,
                CreditLot.credits_balance > 0,
                CreditLot.deleted_at.is_(None),
                or_(CreditLot.expiry_date.is_(None), CreditLot.expiry_date > today),
            )
            .order_by(CreditLot.work_date.asc(), CreditLot.id.asc())
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return list(self.session.execute(stmt).scalars().all())

    # ------------------------------------------------------------------
    # Balance mutation
    # ------------------------------------------------------------------

    def _check_conservation(self, lot: CreditLot) -> None:
        if lot.credits_used + lot.credits_balance != lot.credits_earned:
            raise InvariantViolationError(
                LedgerInvariant.CONSERVATION,
                f"lot {lot.id}: used {lot.credits_used} + balance "
                f"{lot.credits_balance} != earned {lot.credits_earned}",
            )

    def deduct(self, lot_id: UUID, amount: Decimal) -> CreditLot:
        """Move ``amount`` from credits_balance to credits_used."""
        lot = self.get(lot_id)
        if amount <= ZERO:
            raise InvariantViolationError(
                LedgerInvariant.CONSERVATION, f"deduct of non-positive amount {amount}"
            )
        if amount > lot.credits_balance:
            raise InvariantViolationError(
                LedgerInvariant.NON_NEGATIVE_BALANCE,
                f"lot {lot_id}: deduct {amount} exceeds balance {lot.credits_balance}",
            )
        self._check_conservation(lot)

        lot.credits_used = round_credits(lot.credits_used + amount)
        lot.credits_balance = round_credits(lot.credits_balance - amount)
        self._check_conservation(lot)
        self.session.flush()
        return lot

    def restore(self, lot_id: UUID, amount: Decimal) -> CreditLot:
        """Move ``amount`` from credits_used back to credits_balance."""
        lot = self.get(lot_id)
        if amount <= ZERO:
            raise InvariantViolationError(
                LedgerInvariant.CONSERVATION, f"restore of non-positive amount {amount}"
            )
        if amount > lot.credits_used:
            raise InvariantViolationError(
                LedgerInvariant.CONSERVATION,
                f"lot {lot_id}: restore {amount} exceeds used {lot.credits_used}",
            )
        self._check_conservation(lot)

        lot.credits_used = round_credits(lot.credits_used - amount)
        lot.credits_balance = round_credits(lot.credits_balance + amount)
        self._check_conservation(lot)
        self.session.flush()
        return lot
