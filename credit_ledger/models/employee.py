"""
Module: credit_ledger.models.employee
Responsibility: Minimal employee projection owned by the HR system.  The
    ledger reads eligibility fields and mutates only the cached
    service_credit_balance.
Architecture position: Ledger > Models.  May import from db/ only.
    Backs SqlEmployeeDirectory; employee CRUD lives outside the ledger.

Invariants enforced:
    NON_NEGATIVE_BALANCE -- service_credit_balance >= 0 (CHECK constraint,
        and BalanceAggregator.decrease refuses to go below zero).
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from sqlalchemy import CheckConstraint, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from credit_ledger.db.base import Base


class EmployeeStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ON_LEAVE = "on_leave"
    RETIRED = "retired"
    RESIGNED = "resigned"


class EmploymentStatus(str, Enum):
    PERMANENT = "permanent"
    TEMPORARY = "temporary"
    CASUAL = "casual"
    CONTRACTUAL = "contractual"
    SUBSTITUTE = "substitute"


class Employee(Base):
    """
    Employee row as seen by the ledger.

    Guarantees:
        - employee_number is unique.
        - service_credit_balance is the cached running total of approved,
          unconsumed credits.  It is NOT reduced when lots expire; see
          BalanceReconciler.
    """

    __tablename__ = "employees"

    __table_args__ = (
        UniqueConstraint("employee_number", name="uq_employee_number"),
        CheckConstraint(
            "service_credit_balance >= 0", name="ck_employee_balance_non_negative"
        ),
        Index("idx_employee_status", "status"),
    )

    employee_number: Mapped[str] = mapped_column(String(50), nullable=False)

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)

    status: Mapped[EmployeeStatus] = mapped_column(
        String(20),
        nullable=False,
        default=EmployeeStatus.ACTIVE,
    )

    employment_status: Mapped[EmploymentStatus] = mapped_column(
        String(20),
        nullable=False,
    )

    service_credit_balance: Mapped[Decimal] = mapped_column(
        Numeric(9, 2),
        nullable=False,
        default=Decimal("0.00"),
    )

    def __repr__(self) -> str:
        return f"<Employee {self.employee_number} balance={self.service_credit_balance}>"
