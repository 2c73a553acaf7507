"""Read-only selectors."""

from credit_ledger.selectors.base import BaseSelector
from credit_ledger.selectors.credit_selector import CreditSelector

__all__ = ["BaseSelector", "CreditSelector"]
