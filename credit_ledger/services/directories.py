"""
SQL-backed collaborator adapters.

``SqlEmployeeDirectory`` and ``SqlAttendanceDirectory`` implement the
collaborator interfaces over the ``employees`` and ``attendance_records``
tables.  They read and write only the columns the ledger needs.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from credit_config import CreditPolicy
from credit_ledger.db.types import ZERO, round_credits
from credit_ledger.domain.collaborators import (
    AttendanceDirectory,
    EmployeeDirectory,
    EmployeeInfo,
)
from credit_ledger.exceptions import (
    AttendanceRecordNotFoundError,
    EmployeeNotFoundError,
    InvariantViolationError,
)
from credit_ledger.invariants import LedgerInvariant
from credit_ledger.logging_config import get_logger
from credit_ledger.models.attendance import AttendanceRecord, AttendanceStatus
from credit_ledger.models.employee import Employee

logger = get_logger("services.directories")


class SqlEmployeeDirectory(EmployeeDirectory):
    """
    Employee collaborator over the ``employees`` table.

    Eligibility comes from the active CreditPolicy: the employee status and
    employment category must both be in the policy's eligible lists.
    """

    def __init__(self, session: Session, policy: CreditPolicy):
        self._session = session
        self._policy = policy

    def _load(self, employee_id: UUID, for_update: bool = False) -> Employee:
        stmt = select(Employee).where(Employee.id == employee_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        employee = self._session.execute(stmt).scalar_one_or_none()
        if employee is None:
            raise EmployeeNotFoundError(str(employee_id))
        return employee

    def find(self, employee_id: UUID) -> EmployeeInfo | None:
        employee = self._session.get(Employee, employee_id)
        if employee is None:
            return None
        return EmployeeInfo(
            id=employee.id,
            employee_number=employee.employee_number,
            full_name=employee.full_name,
            status=str(getattr(employee.status, "value", employee.status)),
            employment_status=str(
                getattr(employee.employment_status, "value", employee.employment_status)
            ),
            service_credit_balance=employee.service_credit_balance,
        )

    def is_eligible(self, employee: EmployeeInfo) -> bool:
        return self._policy.is_eligible(employee.status, employee.employment_status)

    def read_balance(self, employee_id: UUID, for_update: bool = False) -> Decimal:
        return self._load(employee_id, for_update=for_update).service_credit_balance

    def adjust_balance(self, employee_id: UUID, delta: Decimal) -> Decimal:
        employee = self._load(employee_id)
        new_balance = round_credits(employee.service_credit_balance + delta)
        if new_balance < ZERO:
            raise InvariantViolationError(
                LedgerInvariant.NON_NEGATIVE_BALANCE,
                f"employee {employee_id} balance {employee.service_credit_balance} "
                f"adjusted by {delta} would be {new_balance}",
            )
        employee.service_credit_balance = new_balance
        self._session.flush()
        return new_balance


class SqlAttendanceDirectory(AttendanceDirectory):
    """
    Attendance collaborator over the ``attendance_records`` table.

    The status in force before the first offset is kept in
    ``status_before_offset`` and put back when the last offset is reverted.
    """

    def __init__(self, session: Session):
        self._session = session

    def _load(self, attendance_record_id: UUID) -> AttendanceRecord:
        record = self._session.get(AttendanceRecord, attendance_record_id)
        if record is None:
            raise AttendanceRecordNotFoundError(str(attendance_record_id))
        return record

    def exists(self, attendance_record_id: UUID) -> bool:
        return self._session.get(AttendanceRecord, attendance_record_id) is not None

    def owner_of(self, attendance_record_id: UUID) -> UUID | None:
        record = self._session.get(AttendanceRecord, attendance_record_id)
        return record.employee_id if record is not None else None

    def mark_offset_applied(self, attendance_record_id: UUID) -> None:
        record = self._load(attendance_record_id)
        # A second offset on the same day keeps the first snapshot
        if record.status_before_offset is None:
            record.status_before_offset = record.status
        record.status = AttendanceStatus.SERVICE_CREDIT_USED
        self._session.flush()

    def restore_original_status(self, attendance_record_id: UUID) -> None:
        record = self._load(attendance_record_id)
        if record.status_before_offset is not None:
            restored = record.status_before_offset
        else:
            # Offset applied before snapshots were kept
            restored = AttendanceStatus.ABSENT
            logger.warning(
                "attendance_snapshot_missing",
                extra={"attendance_record_id": str(attendance_record_id)},
            )
        record.status = restored
        record.status_before_offset = None
        self._session.flush()
