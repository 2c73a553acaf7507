"""
Module: credit_ledger.models.credit_lot
Responsibility: ORM persistence for service credit lots.  Each lot records
    one earning event (extra work on a given date) and carries its own
    running balance, consumed oldest-first by the offset engine.
Architecture position: Ledger > Models.  May import from db/ only.
    MUST NOT import from services/, selectors/ or domain/.

Invariants enforced:
    CONSERVATION -- credits_used + credits_balance == credits_earned, both
        non-negative.  Enforced by CreditLotStore.deduct/restore, mirrored
        by CHECK constraints.
    FIFO_ORDER -- (employee_id, work_date) index supports deterministic
        oldest-first selection; ties break on id.

Failure modes:
    - IntegrityError on CHECK constraint failure (negative used/balance).
    - Application-level validation rejects hours_worked <= 0.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from credit_ledger.db.base import TrackedBase, UUIDString


class CreditType(str, Enum):
    """Category of extra work that earned the credit."""

    SUMMER_WORK = "summer_work"
    HOLIDAY_WORK = "holiday_work"
    OVERTIME = "overtime"
    SPECIAL_DUTY = "special_duty"
    WEEKEND_WORK = "weekend_work"


class CreditLotStatus(str, Enum):
    """Lifecycle status of a credit lot.

    Contract: PENDING -> APPROVED or PENDING -> REJECTED (terminal).
    EXPIRED is never stored: an approved lot past its expiry_date reports
    EXPIRED through effective_status().
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"


class CreditLot(TrackedBase):
    """
    One earned-credit lot.

    Contract:
        credits_earned is fixed at approval time (it may be recomputed only
        while PENDING).  credits_used and credits_balance change only through
        CreditLotStore.deduct/restore.

    Guarantees:
        - credits_used >= 0 and credits_balance >= 0 (CHECK constraints).
        - expiry_date = work_date + policy expiry_years.
        - deleted_at set means the lot is soft-deleted and invisible to
          every query.

    Non-goals:
        - Does NOT update the employee balance; see BalanceAggregator.
    """

    __tablename__ = "service_credit_lots"

    __table_args__ = (
        CheckConstraint("credits_used >= 0", name="ck_lot_used_non_negative"),
        CheckConstraint("credits_balance >= 0", name="ck_lot_balance_non_negative"),
        CheckConstraint("hours_worked > 0", name="ck_lot_hours_positive"),
        # FIFO selection per employee
        Index("idx_lot_employee_work_date", "employee_id", "work_date"),
        Index("idx_lot_employee_status", "employee_id", "status"),
        Index("idx_lot_expiry_date", "expiry_date"),
    )

    employee_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("employees.id"),
        nullable=False,
    )

    credit_type: Mapped[CreditType] = mapped_column(
        String(20),
        nullable=False,
    )

    work_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    description: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    hours_worked: Mapped[Decimal] = mapped_column(
        Numeric(9, 2),
        nullable=False,
    )

    credits_earned: Mapped[Decimal] = mapped_column(
        Numeric(9, 2),
        nullable=False,
    )

    credits_used: Mapped[Decimal] = mapped_column(
        Numeric(9, 2),
        nullable=False,
        default=Decimal("0.00"),
    )

    credits_balance: Mapped[Decimal] = mapped_column(
        Numeric(9, 2),
        nullable=False,
    )

    status: Mapped[CreditLotStatus] = mapped_column(
        String(10),
        nullable=False,
        default=CreditLotStatus.PENDING,
    )

    expiry_date: Mapped[date | None] = mapped_column(
        Date,
        nullable=True,
    )

    # Approval workflow
    approved_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approval_remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    rejected_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<CreditLot {self.id}: employee={self.employee_id} "
            f"earned={self.credits_earned} balance={self.credits_balance} "
            f"status={self.status}>"
        )

    @property
    def is_pending(self) -> bool:
        return self.status == CreditLotStatus.PENDING

    def is_expired(self, today: date) -> bool:
        """True once today reaches expiry_date."""
        if self.expiry_date is None:
            return False
        return self.expiry_date <= today

    def is_available(self, today: date) -> bool:
        """Approved, not expired, with a positive balance."""
        return (
            self.status == CreditLotStatus.APPROVED
            and self.credits_balance > 0
            and not self.is_expired(today)
        )

    def effective_status(self, today: date) -> CreditLotStatus:
        """Stored status, with APPROVED reported as EXPIRED past expiry."""
        status = CreditLotStatus(self.status)
        if status == CreditLotStatus.APPROVED and self.is_expired(today):
            return CreditLotStatus.EXPIRED
        return status
