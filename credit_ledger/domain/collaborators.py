"""
Collaborator interfaces.

The ledger does not own employees or attendance.  It talks to them through
these two abstract interfaces, injected into the services that need them.
SQL-backed implementations live in ``credit_ledger.services.directories``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True)
class EmployeeInfo:
    """What the ledger knows about an employee."""

    id: UUID
    employee_number: str
    full_name: str
    status: str
    employment_status: str
    service_credit_balance: Decimal


class EmployeeDirectory(ABC):
    """
    Read eligibility and own the cached balance column.

    Contract:
        ``read_balance(for_update=True)`` takes the per-employee row lock
        that every mutating ledger operation acquires first.
    """

    @abstractmethod
    def find(self, employee_id: UUID) -> EmployeeInfo | None:
        """The employee, or None if it does not exist."""

    @abstractmethod
    def is_eligible(self, employee: EmployeeInfo) -> bool:
        """True if the employee may earn service credits."""

    def find_eligible(self, employee_id: UUID) -> EmployeeInfo | None:
        """The employee if it exists and may earn credits, else None."""
        employee = self.find(employee_id)
        if employee is None or not self.is_eligible(employee):
            return None
        return employee

    @abstractmethod
    def read_balance(self, employee_id: UUID, for_update: bool = False) -> Decimal:
        """Cached balance; raises EmployeeNotFoundError if absent."""

    @abstractmethod
    def adjust_balance(self, employee_id: UUID, delta: Decimal) -> Decimal:
        """Add ``delta`` to the cached balance and return the new value."""


class AttendanceDirectory(ABC):
    """Existence checks and status flips on attendance records."""

    @abstractmethod
    def exists(self, attendance_record_id: UUID) -> bool:
        ...

    @abstractmethod
    def owner_of(self, attendance_record_id: UUID) -> UUID | None:
        """Employee the record belongs to, or None if it does not exist."""

    @abstractmethod
    def mark_offset_applied(self, attendance_record_id: UUID) -> None:
        """Snapshot the current status, then mark the day as covered."""

    @abstractmethod
    def restore_original_status(self, attendance_record_id: UUID) -> None:
        """Put back the status captured by mark_offset_applied."""
