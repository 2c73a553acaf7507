"""
Ledger Invariants Contract.

These invariants are structural law for the service credit ledger. They are
hardcoded in CreditLotStore, OffsetLedger, BalanceAggregator and
OffsetEngine. No policy file may override them.

This module exists to name them explicitly so that violations can be
reported by name (see InvariantViolationError).
"""

from enum import Enum, unique


@unique
class LedgerInvariant(str, Enum):
    """Non-configurable invariants enforced by the ledger."""

    CONSERVATION = "conservation"
    """credits_used + credits_balance == credits_earned for every lot, and
    both fields are non-negative. Enforced by CreditLotStore.deduct/restore."""

    OFFSET_PROVENANCE = "offset_provenance"
    """The applied offsets of a lot sum to that lot's credits_used.
    Enforced by OffsetEngine writing one offset per deduction."""

    FIFO_ORDER = "fifo_order"
    """Consumption draws from the oldest available lot first (work_date
    ascending, lot id ascending). Enforced by the allocation planner."""

    NON_NEGATIVE_BALANCE = "non_negative_balance"
    """The cached employee balance never goes negative. Enforced by
    BalanceAggregator.decrease."""

    ONE_WAY_OFFSET = "one_way_offset"
    """An offset moves applied -> reverted exactly once. Enforced by
    OffsetLedger.revert under a row lock."""


ALL_LEDGER_INVARIANTS: frozenset[LedgerInvariant] = frozenset(LedgerInvariant)
