"""Write-side services and the ServiceCreditService facade."""

from credit_ledger.services.balance_aggregator import BalanceAggregator
from credit_ledger.services.balance_reconciler import BalanceReconciler
from credit_ledger.services.base import BaseService
from credit_ledger.services.credit_lot_store import CreditLotStore
from credit_ledger.services.directories import SqlAttendanceDirectory, SqlEmployeeDirectory
from credit_ledger.services.offset_engine import OffsetEngine
from credit_ledger.services.offset_ledger import OffsetLedger
from credit_ledger.services.service_credit_service import ServiceCreditService

__all__ = [
    "BalanceAggregator",
    "BalanceReconciler",
    "BaseService",
    "CreditLotStore",
    "OffsetEngine",
    "OffsetLedger",
    "ServiceCreditService",
    "SqlAttendanceDirectory",
    "SqlEmployeeDirectory",
]
