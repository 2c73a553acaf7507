"""
Data transfer objects returned by the ledger.

Every public service and selector method returns one of these frozen
dataclasses rather than an ORM instance, so callers never hold live rows
outside the unit of work that loaded them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from credit_ledger.models.credit_lot import CreditLot, CreditLotStatus, CreditType
from credit_ledger.models.offset import OffsetRecord, OffsetStatus


@dataclass(frozen=True)
class CreditLotInfo:
    """Snapshot of one credit lot."""

    id: UUID
    employee_id: UUID
    credit_type: CreditType
    work_date: date
    hours_worked: Decimal
    credits_earned: Decimal
    credits_used: Decimal
    credits_balance: Decimal
    status: CreditLotStatus
    effective_status: CreditLotStatus
    expiry_date: date | None
    description: str | None
    approved_by_id: UUID | None
    approved_at: datetime | None
    approval_remarks: str | None
    rejected_by_id: UUID | None
    rejected_at: datetime | None
    rejection_reason: str | None
    created_by_id: UUID

    @classmethod
    def from_model(cls, lot: CreditLot, today: date) -> CreditLotInfo:
        return cls(
            id=lot.id,
            employee_id=lot.employee_id,
            credit_type=CreditType(lot.credit_type),
            work_date=lot.work_date,
            hours_worked=lot.hours_worked,
            credits_earned=lot.credits_earned,
            credits_used=lot.credits_used,
            credits_balance=lot.credits_balance,
            status=CreditLotStatus(lot.status),
            effective_status=lot.effective_status(today),
            expiry_date=lot.expiry_date,
            description=lot.description,
            approved_by_id=lot.approved_by_id,
            approved_at=lot.approved_at,
            approval_remarks=lot.approval_remarks,
            rejected_by_id=lot.rejected_by_id,
            rejected_at=lot.rejected_at,
            rejection_reason=lot.rejection_reason,
            created_by_id=lot.created_by_id,
        )


@dataclass(frozen=True)
class OffsetInfo:
    """Snapshot of one offset record."""

    id: UUID
    lot_id: UUID
    attendance_record_id: UUID
    employee_id: UUID
    credits_used: Decimal
    offset_date: date
    reason: str | None
    status: OffsetStatus
    applied_by_id: UUID
    applied_at: datetime
    reverted_by_id: UUID | None
    reverted_at: datetime | None
    revert_reason: str | None

    @classmethod
    def from_model(cls, offset: OffsetRecord) -> OffsetInfo:
        return cls(
            id=offset.id,
            lot_id=offset.lot_id,
            attendance_record_id=offset.attendance_record_id,
            employee_id=offset.employee_id,
            credits_used=offset.credits_used,
            offset_date=offset.offset_date,
            reason=offset.reason,
            status=OffsetStatus(offset.status),
            applied_by_id=offset.applied_by_id,
            applied_at=offset.applied_at,
            reverted_by_id=offset.reverted_by_id,
            reverted_at=offset.reverted_at,
            revert_reason=offset.revert_reason,
        )


@dataclass(frozen=True)
class OffsetApplicationResult:
    """Result of a successful FIFO offset application."""

    credits_applied: Decimal
    offsets_created: int
    remaining_balance: Decimal
    offsets: tuple[OffsetInfo, ...] = ()


@dataclass(frozen=True)
class CreditSummary:
    """Per-employee totals over all live lots."""

    employee_id: UUID
    total_earned: Decimal
    total_used: Decimal
    total_balance: Decimal
    available_balance: Decimal
    pending_count: int
    approved_count: int
    expired_count: int


@dataclass(frozen=True)
class BalanceReconciliation:
    """Cached balance compared with the balance recomputed from lots."""

    employee_id: UUID
    cached_balance: Decimal
    computed_balance: Decimal
    drift: Decimal
    corrected: bool = False

    @property
    def has_drift(self) -> bool:
        return self.drift != 0
