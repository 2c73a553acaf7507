"""
Module: credit_ledger.selectors.credit_selector
Responsibility: Read-side queries over credit lots and offsets: the
    per-employee summary, filtered listings, the approval queue and lots
    about to lapse.
Architecture position: Ledger > Selectors.  Read-only.

Failure modes:
    - ValueError if ``days`` is negative in list_expiring_soon.
"""

from __future__ import annotations

from datetime import date, timedelta
from uuid import UUID

from sqlalchemy import select

from credit_ledger.db.types import ZERO, round_credits
from credit_ledger.domain.dtos import CreditLotInfo, CreditSummary, OffsetInfo
from credit_ledger.models.credit_lot import CreditLot, CreditLotStatus, CreditType
from credit_ledger.models.offset import OffsetRecord
from credit_ledger.selectors.base import BaseSelector


class CreditSelector(BaseSelector[CreditLot]):
    """
    Queries over live (not soft-deleted) lots.

    Non-goals:
        - Does NOT take row locks; figures may be stale by the time the
          caller acts on them.
    """

    def _live_lots(self):
        return select(CreditLot).where(CreditLot.deleted_at.is_(None))

    def get_summary(self, employee_id: UUID, today: date) -> CreditSummary:
        """
        Totals over every live lot of the employee.

        ``available_balance`` counts only approved, unexpired lots;
        ``approved_count`` counts stored APPROVED including lapsed lots;
        ``expired_count`` counts any lot whose expiry_date has been reached.
        """
        lots = list(
            self.session.execute(
                self._live_lots().where(CreditLot.employee_id == employee_id)
            ).scalars().all()
        )

        total_earned = sum((lot.credits_earned for lot in lots), ZERO)
        total_used = sum((lot.credits_used for lot in lots), ZERO)
        total_balance = sum((lot.credits_balance for lot in lots), ZERO)
        available = sum(
            (lot.credits_balance for lot in lots if lot.is_available(today)), ZERO
        )

        return CreditSummary(
            employee_id=employee_id,
            total_earned=round_credits(total_earned),
            total_used=round_credits(total_used),
            total_balance=round_credits(total_balance),
            available_balance=round_credits(available),
            pending_count=sum(1 for lot in lots if lot.status == CreditLotStatus.PENDING),
            approved_count=sum(1 for lot in lots if lot.status == CreditLotStatus.APPROVED),
            expired_count=sum(1 for lot in lots if lot.is_expired(today)),
        )

    def get_lot(self, lot_id: UUID, today: date) -> CreditLotInfo | None:
        lot = self.session.execute(
            self._live_lots().where(CreditLot.id == lot_id)
        ).scalar_one_or_none()
        if lot is None:
            return None
        return CreditLotInfo.from_model(lot, today)

    def list_for_employee(
        self,
        employee_id: UUID,
        today: date,
        status: CreditLotStatus | str | None = None,
        credit_type: CreditType | str | None = None,
    ) -> list[CreditLotInfo]:
        """
        Lots of one employee, newest work date first.

        ``status=EXPIRED`` selects approved lots past their expiry date;
        ``status=APPROVED`` excludes them.
        """
        stmt = self._live_lots().where(CreditLot.employee_id == employee_id)
        wanted = CreditLotStatus(status) if status is not None else None
        if wanted in (CreditLotStatus.APPROVED, CreditLotStatus.EXPIRED):
            stmt = stmt.where(CreditLot.status == CreditLotStatus.APPROVED)
        elif wanted is not None:
            stmt = stmt.where(CreditLot.status == wanted)
        if credit_type is not None:
            stmt = stmt.where(CreditLot.credit_type == CreditType(credit_type))
        stmt = stmt.order_by(CreditLot.work_date.desc(), CreditLot.id.desc())

        infos = [
            CreditLotInfo.from_model(lot, today)
            for lot in self.session.execute(stmt).scalars().all()
        ]
        if wanted is not None:
            infos = [info for info in infos if info.effective_status == wanted]
        return infos

    def list_pending(self, today: date) -> list[CreditLotInfo]:
        """Approval queue, oldest submission first."""
        stmt = (
            self._live_lots()
            .where(CreditLot.status == CreditLotStatus.PENDING)
            .order_by(CreditLot.created_at.asc(), CreditLot.id.asc())
        )
        return [
            CreditLotInfo.from_model(lot, today)
            for lot in self.session.execute(stmt).scalars().all()
        ]

    def list_expiring_soon(self, today: date, days: int = 30) -> list[CreditLotInfo]:
        """Approved lots with a balance that lapse in (today, today + days]."""
        if days < 0:
            raise ValueError(f"days must be >= 0, got {days}")
        stmt = (
            self._live_lots()
            .where(
                CreditLot.status == CreditLotStatus.APPROVED,
                CreditLot.credits_balance > 0,
                CreditLot.expiry_date.is_not(None),
                CreditLot.expiry_date > today,
                CreditLot.expiry_date <= today + timedelta(days=days),
            )
            .order_by(CreditLot.expiry_date.asc(), CreditLot.id.asc())
        )
        return [
            CreditLotInfo.from_model(lot, today)
            for lot in self.session.execute(stmt).scalars().all()
        ]

    def list_offsets_for_employee(self, employee_id: UUID) -> list[OffsetInfo]:
        stmt = (
            select(OffsetRecord)
            .where(OffsetRecord.employee_id == employee_id)
            .order_by(OffsetRecord.applied_at.desc(), OffsetRecord.id.desc())
        )
        return [OffsetInfo.from_model(o) for o in self.session.execute(stmt).scalars().all()]
