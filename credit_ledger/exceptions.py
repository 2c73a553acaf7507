"""
Typed Exception Hierarchy for the Service Credit Ledger.

Every error has a typed class (catch by type, not message), a ``code`` class
attribute (machine-readable, API-safe), and carries structured data as
attributes rather than only a message string.

    ServiceCreditError (base)
    |
    +-- ValidationError
    |
    +-- NotFoundError
    |   +-- EmployeeNotFoundError
    |   +-- CreditLotNotFoundError
    |   +-- OffsetNotFoundError
    |   +-- AttendanceRecordNotFoundError
    |
    +-- InvalidStateError
    |
    +-- InsufficientBalanceError
    |
    +-- AlreadyRevertedError
    |
    +-- InvariantViolationError
    |
    +-- ConcurrencyError
        +-- LedgerBusyError

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Validation      | VALIDATION_ERROR            | Bad input (non-positive hours/credits,
                |                             | ineligible employee, future work date)
----------------|-----------------------------|-----------------------------------------
Not found       | EMPLOYEE_NOT_FOUND          | Employee ID doesn't exist
                | CREDIT_LOT_NOT_FOUND        | Lot ID doesn't exist (or soft-deleted)
                | OFFSET_NOT_FOUND            | Offset ID doesn't exist
                | ATTENDANCE_RECORD_NOT_FOUND | Attendance record doesn't exist
----------------|-----------------------------|-----------------------------------------
State           | INVALID_STATE               | e.g. approving a non-pending lot
                | ALREADY_REVERTED            | Offset reverted twice
----------------|-----------------------------|-----------------------------------------
Balance         | INSUFFICIENT_BALANCE        | Consumption exceeds available credits
----------------|-----------------------------|-----------------------------------------
Internal        | INVARIANT_VIOLATION         | Ledger consistency failure (a bug)
----------------|-----------------------------|-----------------------------------------
Concurrency     | LEDGER_BUSY                 | Lock timeout / deadlock / serialization
                |                             | failure; safe to retry

Handling pattern::

    try:
        service.apply_offset(...)
    except InsufficientBalanceError as e:
        return {"error": e.code, "available": str(e.available)}
    except LedgerBusyError:
        retry_later()
"""

from __future__ import annotations

from decimal import Decimal

from credit_ledger.invariants import LedgerInvariant


class ServiceCreditError(Exception):
    """
    Base exception for all service credit ledger errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "SERVICE_CREDIT_ERROR"


class ValidationError(ServiceCreditError):
    """Input rejected before any mutation."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"Invalid {field}: {message}")


# Not found


class NotFoundError(ServiceCreditError):
    """Base exception for missing entities."""

    code: str = "NOT_FOUND"


class EmployeeNotFoundError(NotFoundError):
    """Employee with given ID was not found."""

    code: str = "EMPLOYEE_NOT_FOUND"

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"Employee not found: {employee_id}")


class CreditLotNotFoundError(NotFoundError):
    """Credit lot with given ID was not found."""

    code: str = "CREDIT_LOT_NOT_FOUND"

    def __init__(self, lot_id: str):
        self.lot_id = lot_id
        super().__init__(f"Service credit lot not found: {lot_id}")


class OffsetNotFoundError(NotFoundError):
    """Offset record with given ID was not found."""

    code: str = "OFFSET_NOT_FOUND"

    def __init__(self, offset_id: str):
        self.offset_id = offset_id
        super().__init__(f"Offset not found: {offset_id}")


class AttendanceRecordNotFoundError(NotFoundError):
    """Attendance record with given ID was not found."""

    code: str = "ATTENDANCE_RECORD_NOT_FOUND"

    def __init__(self, attendance_record_id: str):
        self.attendance_record_id = attendance_record_id
        super().__init__(f"Attendance record not found: {attendance_record_id}")


# State


class InvalidStateError(ServiceCreditError):
    """Operation not allowed in the entity's current status."""

    code: str = "INVALID_STATE"

    def __init__(self, entity_type: str, entity_id: str, status: str, action: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.status = status
        self.action = action
        super().__init__(
            f"Cannot {action} {entity_type} {entity_id} in status '{status}'"
        )


class AlreadyRevertedError(ServiceCreditError):
    """Offset has already been reverted."""

    code: str = "ALREADY_REVERTED"

    def __init__(self, offset_id: str):
        self.offset_id = offset_id
        super().__init__(f"Offset {offset_id} has already been reverted")


# Balance


class InsufficientBalanceError(ServiceCreditError):
    """Requested consumption exceeds the credits available."""

    code: str = "INSUFFICIENT_BALANCE"

    def __init__(self, employee_id: str, requested: Decimal, available: Decimal):
        self.employee_id = employee_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient service credit balance for employee {employee_id}: "
            f"requested {requested}, available {available}"
        )


# Internal consistency


class InvariantViolationError(ServiceCreditError):
    """
    Internal ledger consistency failure.

    Always a programming error: unreachable given correct preconditions.
    Never absorbed by callers; logged at ERROR by the facade.
    """

    code: str = "INVARIANT_VIOLATION"

    def __init__(self, invariant: LedgerInvariant, detail: str):
        self.invariant = invariant.value
        self.detail = detail
        super().__init__(f"Ledger invariant '{invariant.value}' violated: {detail}")


# Concurrency


class ConcurrencyError(ServiceCreditError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class LedgerBusyError(ConcurrencyError):
    """
    A lock could not be acquired in time, or the database aborted the
    transaction to resolve a conflict. Nothing was written; retry.
    """

    code: str = "LEDGER_BUSY"
    retryable: bool = True

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Ledger busy during {operation}: {reason}")
