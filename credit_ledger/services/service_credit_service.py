"""
ServiceCreditService -- the ledger's external interface.

Responsibility:
    Single entry point for callers.  Each mutating method runs as one unit
    of work: it binds the structured log context, bounds lock waits,
    delegates to CreditLotStore / OffsetEngine / BalanceReconciler, and
    commits on success or rolls back on any exception.

Architecture position:
    Ledger > Services -- outermost layer.  The only class that calls
    ``session.commit()`` or ``session.rollback()``.

Invariants enforced:
    - Atomicity: a failed apply or revert leaves lots, offsets, the cached
      balance and attendance exactly as they were.
    - Bounded waits: lock timeout from CreditPolicy; lock-not-available,
      deadlock and serialization failures surface as LedgerBusyError.
    - InvariantViolationError is logged at ERROR and re-raised, never
      absorbed.

Audit relevance:
    Every operation logs ``<operation>_started`` and then
    ``<operation>_completed`` (with duration_ms) or ``<operation>_failed``,
    all carrying correlation_id, actor_id and employee_id.
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from datetime import date
from decimal import Decimal
from typing import Generator
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from credit_config import CreditPolicy, get_active_config
from credit_ledger.db.locking import apply_lock_timeout, translate_lock_errors
from credit_ledger.domain.clock import Clock, SystemClock
from credit_ledger.domain.collaborators import AttendanceDirectory, EmployeeDirectory
from credit_ledger.domain.dtos import (
    BalanceReconciliation,
    CreditLotInfo,
    CreditSummary,
    OffsetApplicationResult,
    OffsetInfo,
)
from credit_ledger.exceptions import (
    CreditLotNotFoundError,
    EmployeeNotFoundError,
    InvariantViolationError,
    ServiceCreditError,
)
from credit_ledger.logging_config import LogContext, get_logger
from credit_ledger.models.credit_lot import CreditLotStatus, CreditType
from credit_ledger.selectors.credit_selector import CreditSelector
from credit_ledger.services.balance_aggregator import BalanceAggregator
from credit_ledger.services.balance_reconciler import BalanceReconciler
from credit_ledger.services.credit_lot_store import UNSET, CreditLotStore
from credit_ledger.services.directories import SqlAttendanceDirectory, SqlEmployeeDirectory
from credit_ledger.services.offset_engine import OffsetEngine
from credit_ledger.services.offset_ledger import OffsetLedger

logger = get_logger("services.service_credit")


class ServiceCreditService:
    """
    Facade over the service credit ledger.

    Contract:
        Every mutating method takes the acting user's id explicitly and
        returns a frozen DTO, never an ORM row.

    Guarantees:
        - Commit on success, rollback on failure (when auto_commit=True).
        - No partial state is visible after a failed call.

    Non-goals:
        - Does NOT retry LedgerBusyError; callers decide.
        - Does NOT format errors for presentation.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        policy: CreditPolicy | None = None,
        employees: EmployeeDirectory | None = None,
        attendance: AttendanceDirectory | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._policy = policy or get_active_config()
        self._auto_commit = auto_commit

        self._employees = employees or SqlEmployeeDirectory(session, self._policy)
        self._attendance = attendance or SqlAttendanceDirectory(session)
        self._balances = BalanceAggregator(self._employees)
        self._lots = CreditLotStore(
            session, self._policy, self._employees, self._balances, self._clock
        )
        self._offsets = OffsetLedger(session, self._clock)
        self._engine = OffsetEngine(
            self._lots,
            self._offsets,
            self._balances,
            self._employees,
            self._attendance,
            self._clock,
        )
        self._reconciler = BalanceReconciler(self._lots, self._balances, self._employees)
        self._selector = CreditSelector(session)

    @property
    def policy(self) -> CreditPolicy:
        return self._policy

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    @contextmanager
    def _unit_of_work(
        self,
        operation: str,
        actor_id: UUID | None = None,
        employee_id: UUID | None = None,
    ) -> Generator[None, None, None]:
        correlation_id = LogContext.get_all().get("correlation_id") or str(uuid4())
        with LogContext.bind(
            correlation_id=correlation_id,
            actor_id=str(actor_id) if actor_id else None,
            employee_id=str(employee_id) if employee_id else None,
            operation=operation,
        ):
            t0 = time.monotonic()
            logger.info(f"{operation}_started")
            try:
                with translate_lock_errors(operation):
                    apply_lock_timeout(self._session, self._policy.lock_timeout_ms)
                    yield
                    self._session.flush()
                    if self._auto_commit:
                        self._session.commit()
                        logger.debug("transaction_committed")
            except Exception as exc:
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                if self._auto_commit:
                    self._session.rollback()
                    logger.info("transaction_rolled_back")
                if isinstance(exc, ServiceCreditError) and not isinstance(
                    exc, InvariantViolationError
                ):
                    # Expected business outcome
                    logger.warning(
                        f"{operation}_failed",
                        extra={"duration_ms": duration_ms, "error_code": exc.code},
                    )
                else:
                    logger.error(
                        f"{operation}_failed",
                        extra={"duration_ms": duration_ms},
                        exc_info=True,
                    )
                raise

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info(f"{operation}_completed", extra={"duration_ms": duration_ms})

    def _lot_info(self, lot) -> CreditLotInfo:
        return CreditLotInfo.from_model(lot, self._clock.today())

    # ------------------------------------------------------------------
    # Lot lifecycle
    # ------------------------------------------------------------------

    def create_credit(
        self,
        employee_id: UUID,
        credit_type: CreditType | str,
        work_date: date,
        hours_worked: Decimal | int | str,
        description: str | None,
        actor_id: UUID,
    ) -> CreditLotInfo:
        with self._unit_of_work("create_credit", actor_id, employee_id):
            lot = self._lots.create_lot(
                employee_id, credit_type, work_date, hours_worked, description, actor_id
            )
            info = self._lot_info(lot)
        return info

    def approve_credit(
        self, lot_id: UUID, approver_id: UUID, remarks: str | None = None
    ) -> CreditLotInfo:
        with self._unit_of_work("approve_credit", approver_id):
            lot = self._lots.approve(lot_id, approver_id, remarks)
            info = self._lot_info(lot)
        return info

    def reject_credit(self, lot_id: UUID, rejector_id: UUID, reason: str) -> CreditLotInfo:
        with self._unit_of_work("reject_credit", rejector_id):
            lot = self._lots.reject(lot_id, rejector_id, reason)
            info = self._lot_info(lot)
        return info

    def update_credit(
        self,
        lot_id: UUID,
        actor_id: UUID,
        credit_type: CreditType | str | None = None,
        work_date: date | None = None,
        hours_worked: Decimal | int | str | None = None,
        description: str | None | object = UNSET,
    ) -> CreditLotInfo:
        with self._unit_of_work("update_credit", actor_id):
            lot = self._lots.update_pending(
                lot_id,
                actor_id,
                credit_type=credit_type,
                work_date=work_date,
                hours_worked=hours_worked,
                description=description,
            )
            info = self._lot_info(lot)
        return info

    def delete_credit(self, lot_id: UUID, actor_id: UUID) -> None:
        with self._unit_of_work("delete_credit", actor_id):
            self._lots.soft_delete(lot_id, actor_id)

    # ------------------------------------------------------------------
    # Offsets
    # ------------------------------------------------------------------

    def apply_offset(
        self,
        employee_id: UUID,
        attendance_record_id: UUID,
        credits_needed: Decimal | int | str,
        applied_by: UUID,
        reason: str | None = None,
    ) -> OffsetApplicationResult:
        with self._unit_of_work("apply_offset", applied_by, employee_id):
            result = self._engine.apply(
                employee_id, attendance_record_id, credits_needed, applied_by, reason
            )
        return result

    def revert_offset(self, offset_id: UUID, reverted_by: UUID, reason: str) -> OffsetInfo:
        with self._unit_of_work("revert_offset", reverted_by):
            offset = self._engine.revert(offset_id, reverted_by, reason)
            info = OffsetInfo.from_model(offset)
        return info

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def reconcile_balance(
        self, employee_id: UUID, actor_id: UUID, correct: bool = False
    ) -> BalanceReconciliation:
        with self._unit_of_work("reconcile_balance", actor_id, employee_id):
            result = self._reconciler.reconcile(
                employee_id, actor_id, self._clock.today(), correct=correct
            )
        return result

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_summary(self, employee_id: UUID) -> CreditSummary:
        if self._employees.find(employee_id) is None:
            raise EmployeeNotFoundError(str(employee_id))
        return self._selector.get_summary(employee_id, self._clock.today())

    def get_credit(self, lot_id: UUID) -> CreditLotInfo:
        info = self._selector.get_lot(lot_id, self._clock.today())
        if info is None:
            raise CreditLotNotFoundError(str(lot_id))
        return info

    def list_employee_credits(
        self,
        employee_id: UUID,
        status: CreditLotStatus | str | None = None,
        credit_type: CreditType | str | None = None,
    ) -> list[CreditLotInfo]:
        return self._selector.list_for_employee(
            employee_id, self._clock.today(), status=status, credit_type=credit_type
        )

    def list_pending_credits(self) -> list[CreditLotInfo]:
        return self._selector.list_pending(self._clock.today())

    def list_expiring_credits(self, days: int | None = None) -> list[CreditLotInfo]:
        if days is None:
            days = self._policy.expiring_soon_days
        return self._selector.list_expiring_soon(self._clock.today(), days)

    def list_offsets_for_attendance_record(
        self, attendance_record_id: UUID
    ) -> list[OffsetInfo]:
        return [
            OffsetInfo.from_model(o)
            for o in self._offsets.list_by_attendance_record(attendance_record_id)
        ]

    def list_offsets_for_lot(self, lot_id: UUID) -> list[OffsetInfo]:
        return [OffsetInfo.from_model(o) for o in self._offsets.list_by_lot(lot_id)]

    def list_offsets_for_employee(self, employee_id: UUID) -> list[OffsetInfo]:
        return self._selector.list_offsets_for_employee(employee_id)
