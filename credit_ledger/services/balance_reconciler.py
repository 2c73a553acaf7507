"""
BalanceReconciler -- drift between the cached balance and the lots.

The cached ``service_credit_balance`` is not reduced when a lot expires,
so over time it can exceed what the employee can actually draw.  This
service measures that drift and, only when asked, corrects it.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from credit_ledger.db.types import ZERO, round_credits
from credit_ledger.domain.collaborators import EmployeeDirectory
from credit_ledger.domain.dtos import BalanceReconciliation
from credit_ledger.logging_config import get_logger
from credit_ledger.services.balance_aggregator import BalanceAggregator
from credit_ledger.services.credit_lot_store import CreditLotStore

logger = get_logger("services.balance_reconciler")


class BalanceReconciler:
    def __init__(
        self,
        lots: CreditLotStore,
        balances: BalanceAggregator,
        employees: EmployeeDirectory,
    ):
        self._lots = lots
        self._balances = balances
        self._employees = employees

    def compute(
        self, employee_id: UUID, today: date, for_update: bool = False
    ) -> BalanceReconciliation:
        """Cached balance vs the sum of available lot balances."""
        cached = self._balances.read(employee_id, for_update=for_update)
        lots = self._lots.list_available(employee_id, today, for_update=for_update)
        computed = round_credits(sum((lot.credits_balance for lot in lots), ZERO))
        return BalanceReconciliation(
            employee_id=employee_id,
            cached_balance=cached,
            computed_balance=computed,
            drift=round_credits(cached - computed),
        )

    def reconcile(
        self,
        employee_id: UUID,
        actor_id: UUID,
        today: date,
        correct: bool = False,
    ) -> BalanceReconciliation:
        """
        Report drift; with ``correct=True`` also set the cache to the
        computed value.
        """
        result = self.compute(employee_id, today, for_update=correct)
        if not result.has_drift:
            return result

        if not correct:
            logger.warning(
                "balance_drift_detected",
                extra={
                    "employee_id": str(employee_id),
                    "cached_balance": str(result.cached_balance),
                    "computed_balance": str(result.computed_balance),
                    "drift": str(result.drift),
                },
            )
            return result

        self._employees.adjust_balance(employee_id, -result.drift)
        logger.warning(
            "balance_drift_corrected",
            extra={
                "employee_id": str(employee_id),
                "corrected_by": str(actor_id),
                "previous_balance": str(result.cached_balance),
                "new_balance": str(result.computed_balance),
                "drift": str(result.drift),
            },
        )
        return BalanceReconciliation(
            employee_id=employee_id,
            cached_balance=result.cached_balance,
            computed_balance=result.computed_balance,
            drift=result.drift,
            corrected=True,
        )
