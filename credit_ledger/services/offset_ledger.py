"""
OffsetLedger -- provenance records of credit consumption.

Responsibility:
    Records which lot paid for which absence and how much, and reverts
    those records.  Offsets are never deleted: a reversal flips the
    status to REVERTED and stamps actor, time and reason.

Architecture position:
    Ledger > Services.  Flush-only; driven by OffsetEngine.

Invariants enforced:
    OFFSET_PROVENANCE -- every offset names a lot, an attendance record and
        an employee, and draws a positive amount.
    ONE_WAY_OFFSET -- APPLIED -> REVERTED only; a second revert raises
        AlreadyRevertedError.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from credit_ledger.db.types import ZERO
from credit_ledger.domain.clock import Clock, SystemClock
from credit_ledger.exceptions import (
    AlreadyRevertedError,
    InvariantViolationError,
    OffsetNotFoundError,
)
from credit_ledger.invariants import LedgerInvariant
from credit_ledger.logging_config import get_logger
from credit_ledger.models.offset import OffsetRecord, OffsetStatus
from credit_ledger.services.base import BaseService

logger = get_logger("services.offset_ledger")


class OffsetLedger(BaseService[OffsetRecord]):
    """Append-and-revert store for OffsetRecord rows."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def record(
        self,
        lot_id: UUID,
        attendance_record_id: UUID,
        employee_id: UUID,
        amount: Decimal,
        applied_by: UUID,
        offset_date: date,
        reason: str | None = None,
    ) -> OffsetRecord:
        if amount <= ZERO:
            raise InvariantViolationError(
                LedgerInvariant.OFFSET_PROVENANCE,
                f"offset against lot {lot_id} must draw a positive amount, got {amount}",
            )
        offset = OffsetRecord(
            lot_id=lot_id,
            attendance_record_id=attendance_record_id,
            employee_id=employee_id,
            credits_used=amount,
            offset_date=offset_date,
            reason=reason,
            status=OffsetStatus.APPLIED,
            applied_by_id=applied_by,
            applied_at=self._clock.now(),
        )
        self.session.add(offset)
        self.session.flush()
        return offset

    def revert(self, offset_id: UUID, reverted_by: UUID, reason: str) -> OffsetRecord:
        offset = self.get(offset_id, for_update=True)
        if not offset.is_applied:
            raise AlreadyRevertedError(str(offset_id))

        offset.status = OffsetStatus.REVERTED
        offset.reverted_by_id = reverted_by
        offset.reverted_at = self._clock.now()
        offset.revert_reason = reason
        self.session.flush()
        return offset

    def get(self, offset_id: UUID, for_update: bool = False) -> OffsetRecord:
        stmt = select(OffsetRecord).where(OffsetRecord.id == offset_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        offset = self.session.execute(stmt).scalar_one_or_none()
        if offset is None:
            raise OffsetNotFoundError(str(offset_id))
        return offset

    def _list(self, *criteria) -> list[OffsetRecord]:
        stmt = (
            select(OffsetRecord)
            .where(*criteria)
            .order_by(OffsetRecord.applied_at.asc(), OffsetRecord.id.asc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def list_by_attendance_record(self, attendance_record_id: UUID) -> list[OffsetRecord]:
        return self._list(OffsetRecord.attendance_record_id == attendance_record_id)

    def list_by_lot(self, lot_id: UUID) -> list[OffsetRecord]:
        return self._list(OffsetRecord.lot_id == lot_id)

    def list_by_employee(self, employee_id: UUID) -> list[OffsetRecord]:
        return self._list(OffsetRecord.employee_id == employee_id)

    def count_applied_for_attendance_record(self, attendance_record_id: UUID) -> int:
        stmt = select(func.count(OffsetRecord.id)).where(
            OffsetRecord.attendance_record_id == attendance_record_id,
            OffsetRecord.status == OffsetStatus.APPLIED,
        )
        return self.session.execute(stmt).scalar_one()
