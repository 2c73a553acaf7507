"""
Module: credit_ledger.models.attendance
Responsibility: Minimal attendance record projection owned by the
    timekeeping system.  The ledger only flips its status when an absence
    is offset and restores it when every offset is reverted.
Architecture position: Ledger > Models.  May import from db/ only.
    Backs SqlAttendanceDirectory.
"""

from __future__ import annotations

from datetime import date
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from credit_ledger.db.base import Base, UUIDString


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    ON_LEAVE = "on_leave"
    HALF_DAY = "half_day"
    HOLIDAY = "holiday"
    WEEKEND = "weekend"
    SERVICE_CREDIT_USED = "service_credit_used"


class AttendanceRecord(Base):
    """
    One attendance day for one employee.

    Guarantees:
        - One record per employee per date.
        - status_before_offset holds the status captured when the first
          offset was applied and is cleared when it is restored.
    """

    __tablename__ = "attendance_records"

    __table_args__ = (
        UniqueConstraint("employee_id", "attendance_date", name="uq_attendance_employee_date"),
        Index("idx_attendance_status", "status"),
    )

    employee_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("employees.id"),
        nullable=False,
    )

    attendance_date: Mapped[date] = mapped_column(Date, nullable=False)

    status: Mapped[AttendanceStatus] = mapped_column(
        String(30),
        nullable=False,
        default=AttendanceStatus.PRESENT,
    )

    status_before_offset: Mapped[AttendanceStatus | None] = mapped_column(
        String(30),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<AttendanceRecord {self.attendance_date} status={self.status}>"
