"""
BalanceAggregator -- cached per-employee service credit balance.

Responsibility:
    Keeps ``employees.service_credit_balance`` in lock-step with lot
    mutations: increased on approval and on revert, decreased on apply.

Architecture position:
    Ledger > Services.  Writes only through the EmployeeDirectory
    collaborator, which owns the balance column.

Invariants enforced:
    NON_NEGATIVE_BALANCE -- decrease() refuses to take the cached balance
        below zero (InsufficientBalanceError) before anything is written.

Failure modes:
    - ValidationError for non-positive amounts.
    - EmployeeNotFoundError if the employee row does not exist.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from credit_ledger.db.types import ZERO
from credit_ledger.domain.collaborators import EmployeeDirectory
from credit_ledger.exceptions import InsufficientBalanceError, ValidationError
from credit_ledger.logging_config import get_logger

logger = get_logger("services.balance_aggregator")


class BalanceAggregator:
    """
    Atomic read-modify-write of the cached balance.

    Guarantees:
        - Every write first takes the employee row lock
          (``read_balance(for_update=True)``), so it is the first lock in
          the fixed ordering used by the ledger.
    """

    def __init__(self, employees: EmployeeDirectory):
        self._employees = employees

    def read(self, employee_id: UUID, for_update: bool = False) -> Decimal:
        return self._employees.read_balance(employee_id, for_update=for_update)

    def increase(self, employee_id: UUID, amount: Decimal) -> Decimal:
        """Add ``amount`` to the cached balance. Returns the new balance."""
        if amount <= ZERO:
            raise ValidationError("amount", f"must be positive, got {amount}")
        self._employees.read_balance(employee_id, for_update=True)
        new_balance = self._employees.adjust_balance(employee_id, amount)
        logger.debug(
            "balance_increased",
            extra={
                "employee_id": str(employee_id),
                "amount": str(amount),
                "new_balance": str(new_balance),
            },
        )
        return new_balance

    def decrease(self, employee_id: UUID, amount: Decimal) -> Decimal:
        """Subtract ``amount`` from the cached balance. Returns the new balance."""
        if amount <= ZERO:
            raise ValidationError("amount", f"must be positive, got {amount}")
        current = self._employees.read_balance(employee_id, for_update=True)
        if current < amount:
            raise InsufficientBalanceError(str(employee_id), amount, current)
        new_balance = self._employees.adjust_balance(employee_id, -amount)
        logger.debug(
            "balance_decreased",
            extra={
                "employee_id": str(employee_id),
                "amount": str(amount),
                "new_balance": str(new_balance),
            },
        )
        return new_balance
