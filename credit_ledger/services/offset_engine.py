"""
OffsetEngine -- FIFO consumption and reversal of service credits.

Responsibility:
    Implements ``apply`` (cover an absence with credits drawn oldest lot
    first) and ``revert`` (undo one offset) as single units of work over
    CreditLotStore, OffsetLedger, BalanceAggregator and the attendance
    collaborator.

Architecture position:
    Ledger > Services.  Flush-only.  ServiceCreditService wraps each call
    in a transaction and rolls back on any exception.

Invariants enforced:
    FIFO_ORDER -- draws follow the pure planner over lots fetched in
        (work_date, id) order.
    CONSERVATION -- a short plan raises InsufficientBalanceError before the
        first deduct, so apply is all-or-nothing.
    ONE_WAY_OFFSET -- revert re-checks the offset status under a row lock.

Lock order (both operations):
    employee balance row -> offset row (revert only) -> lot rows.

Failure modes:
    - ValidationError: credits_needed not positive, over 2 places or out of
      range; attendance record owned by another employee.
    - EmployeeNotFoundError, AttendanceRecordNotFoundError,
      OffsetNotFoundError.
    - InsufficientBalanceError: cached or lot-level availability too low.
    - AlreadyRevertedError: offset already reverted.
    - InvariantViolationError: ledger inconsistency (a bug).
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from credit_ledger.db.types import ZERO
from credit_ledger.domain.allocation import LotBalance, plan_fifo_allocation
from credit_ledger.domain.clock import Clock, SystemClock
from credit_ledger.domain.collaborators import AttendanceDirectory, EmployeeDirectory
from credit_ledger.domain.dtos import OffsetApplicationResult, OffsetInfo
from credit_ledger.exceptions import (
    AlreadyRevertedError,
    AttendanceRecordNotFoundError,
    EmployeeNotFoundError,
    InsufficientBalanceError,
    ValidationError,
)
from credit_ledger.logging_config import get_logger
from credit_ledger.models.offset import OffsetRecord
from credit_ledger.services.balance_aggregator import BalanceAggregator
from credit_ledger.services.credit_lot_store import CreditLotStore, coerce_amount
from credit_ledger.services.offset_ledger import OffsetLedger

logger = get_logger("services.offset_engine")


class OffsetEngine:
    """
    Orchestrates lots, offsets, the cached balance and attendance.

    Contract:
        Runs inside a transaction owned by the caller.  On any exception
        the caller must roll back.

    Non-goals:
        - Does NOT commit.
        - Does NOT retry on lock contention; LedgerBusyError is surfaced by
          the facade.
    """

    def __init__(
        self,
        lots: CreditLotStore,
        offsets: OffsetLedger,
        balances: BalanceAggregator,
        employees: EmployeeDirectory,
        attendance: AttendanceDirectory,
        clock: Clock | None = None,
    ):
        self._lots = lots
        self._offsets = offsets
        self._balances = balances
        self._employees = employees
        self._attendance = attendance
        self._clock = clock or SystemClock()

    def apply(
        self,
        employee_id: UUID,
        attendance_record_id: UUID,
        credits_needed: Decimal | int | str,
        applied_by: UUID,
        reason: str | None = None,
    ) -> OffsetApplicationResult:
        """
        Consume ``credits_needed`` oldest lot first to cover one absence.

        Postconditions:
            - One APPLIED offset per lot touched, summing to credits_needed.
            - Cached balance reduced by credits_needed.
            - Attendance record marked SERVICE_CREDIT_USED.
        """
        credits = coerce_amount(credits_needed, "credits_needed")
        if credits <= ZERO:
            raise ValidationError("credits_needed", f"must be positive, got {credits}")
        if self._employees.find(employee_id) is None:
            raise EmployeeNotFoundError(str(employee_id))
        if not self._attendance.exists(attendance_record_id):
            raise AttendanceRecordNotFoundError(str(attendance_record_id))
        owner = self._attendance.owner_of(attendance_record_id)
        if str(owner) != str(employee_id):
            raise ValidationError(
                "attendance_record_id",
                f"{attendance_record_id} belongs to another employee",
            )

        cached = self._balances.read(employee_id, for_update=True)
        if cached < credits:
            raise InsufficientBalanceError(str(employee_id), credits, cached)

        today = self._clock.today()
        available = self._lots.list_available(employee_id, today, for_update=True)
        plan = plan_fifo_allocation(
            [LotBalance(lot.id, lot.work_date, lot.credits_balance) for lot in available],
            credits,
        )
        if not plan.is_complete:
            # Cached balance covers the request but live lots do not
            logger.warning(
                "offset_lot_shortfall",
                extra={
                    "employee_id": str(employee_id),
                    "requested": str(credits),
                    "cached_balance": str(cached),
                    "lot_available": str(plan.allocated),
                },
            )
            raise InsufficientBalanceError(str(employee_id), credits, plan.allocated)

        offsets: list[OffsetRecord] = []
        for allocation in plan.allocations:
            self._lots.deduct(allocation.lot_id, allocation.amount)
            offsets.append(
                self._offsets.record(
                    lot_id=allocation.lot_id,
                    attendance_record_id=attendance_record_id,
                    employee_id=employee_id,
                    amount=allocation.amount,
                    applied_by=applied_by,
                    offset_date=today,
                    reason=reason,
                )
            )

        remaining = self._balances.decrease(employee_id, credits)
        self._attendance.mark_offset_applied(attendance_record_id)

        logger.info(
            "offset_applied",
            extra={
                "employee_id": str(employee_id),
                "attendance_record_id": str(attendance_record_id),
                "credits_applied": str(credits),
                "offsets_created": len(offsets),
                "lot_ids": [str(o.lot_id) for o in offsets],
                "remaining_balance": str(remaining),
            },
        )

        return OffsetApplicationResult(
            credits_applied=credits,
            offsets_created=len(offsets),
            remaining_balance=remaining,
            offsets=tuple(OffsetInfo.from_model(o) for o in offsets),
        )

    def revert(self, offset_id: UUID, reverted_by: UUID, reason: str) -> OffsetRecord:
        """
        Return one offset's credits to its lot and the cached balance.

        Postconditions:
            - Offset REVERTED with actor, time and reason.
            - If no APPLIED offsets remain for the attendance record, its
              pre-offset status is restored.
        """
        if not reason or not reason.strip():
            raise ValidationError("reason", "a revert reason is required")

        offset = self._offsets.get(offset_id)
        if not offset.is_applied:
            raise AlreadyRevertedError(str(offset_id))
        employee_id = offset.employee_id

        self._balances.read(employee_id, for_update=True)
        # Re-check under the offset row lock; a concurrent revert may have won
        offset = self._offsets.get(offset_id, for_update=True)
        if not offset.is_applied:
            raise AlreadyRevertedError(str(offset_id))

        self._lots.get(offset.lot_id, for_update=True)
        self._lots.restore(offset.lot_id, offset.credits_used)
        new_balance = self._balances.increase(employee_id, offset.credits_used)
        offset = self._offsets.revert(offset_id, reverted_by, reason)

        attendance_record_id = offset.attendance_record_id
        still_applied = self._offsets.count_applied_for_attendance_record(attendance_record_id)
        if still_applied == 0:
            self._attendance.restore_original_status(attendance_record_id)

        logger.info(
            "offset_reverted",
            extra={
                "offset_id": str(offset_id),
                "lot_id": str(offset.lot_id),
                "employee_id": str(employee_id),
                "credits_restored": str(offset.credits_used),
                "new_balance": str(new_balance),
                "attendance_restored": still_applied == 0,
            },
        )
        return offset
