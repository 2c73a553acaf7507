"""
Module: credit_ledger.models.offset
Responsibility: ORM persistence for offset records.  One row per lot touched
    by a single consumption event, linking the lot to the absence it paid
    for.
Architecture position: Ledger > Models.  May import from db/ only.

Invariants enforced:
    OFFSET_PROVENANCE -- the applied offsets of a lot sum to the lot's
        credits_used.
    ONE_WAY_OFFSET -- APPLIED -> REVERTED, never back; rows are never deleted.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from credit_ledger.db.base import Base, UUIDString


class OffsetStatus(str, Enum):
    """Lifecycle status of an offset.

    Contract: Transitions are one-way: APPLIED -> REVERTED.
    """

    APPLIED = "applied"
    REVERTED = "reverted"


class OffsetRecord(Base):
    """
    Credits drawn from one lot to cover one absence.

    Guarantees:
        - credits_used > 0 (CHECK constraint).
        - applied_by_id/applied_at always set; reverted_* set exactly when
          status is REVERTED.
    """

    __tablename__ = "service_credit_offsets"

    __table_args__ = (
        CheckConstraint("credits_used > 0", name="ck_offset_credits_positive"),
        Index("idx_offset_lot_status", "lot_id", "status"),
        Index("idx_offset_attendance_record", "attendance_record_id"),
        Index("idx_offset_employee_date", "employee_id", "offset_date"),
    )

    lot_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("service_credit_lots.id"),
        nullable=False,
    )

    attendance_record_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("attendance_records.id"),
        nullable=False,
    )

    employee_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("employees.id"),
        nullable=False,
    )

    credits_used: Mapped[Decimal] = mapped_column(
        Numeric(9, 2),
        nullable=False,
    )

    offset_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
    )

    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[OffsetStatus] = mapped_column(
        String(10),
        nullable=False,
        default=OffsetStatus.APPLIED,
    )

    applied_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    applied_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    reverted_by_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    reverted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    revert_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<OffsetRecord {self.id}: lot={self.lot_id} "
            f"credits={self.credits_used} status={self.status}>"
        )

    @property
    def is_applied(self) -> bool:
        return self.status == OffsetStatus.APPLIED
