"""ORM models for the service credit ledger."""

from credit_ledger.models.attendance import AttendanceRecord, AttendanceStatus
from credit_ledger.models.credit_lot import CreditLot, CreditLotStatus, CreditType
from credit_ledger.models.employee import Employee, EmployeeStatus, EmploymentStatus
from credit_ledger.models.offset import OffsetRecord, OffsetStatus

__all__ = [
    "AttendanceRecord",
    "AttendanceStatus",
    "CreditLot",
    "CreditLotStatus",
    "CreditType",
    "Employee",
    "EmployeeStatus",
    "EmploymentStatus",
    "OffsetRecord",
    "OffsetStatus",
]
