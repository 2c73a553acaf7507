"""
FIFO allocation planner -- pure functional core.

Responsibility:
    Given the lots an employee can draw from and the credits a request
    needs, compute how much to take from each lot, oldest first.  No I/O,
    no ORM access, no clock.

Architecture position:
    Ledger > Domain.  Called by OffsetEngine after it has locked the lots;
    the engine executes the plan only when it covers the full request, so
    a short plan never reaches the database.

Invariants enforced:
    FIFO_ORDER -- lots are consumed in ascending (work_date, lot id) order.
    CONSERVATION -- no draw exceeds the lot balance it is taken from, and
        the draws of a complete plan sum exactly to the request.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable
from uuid import UUID

from credit_ledger.db.types import ZERO


@dataclass(frozen=True)
class LotBalance:
    """The part of a lot the planner needs."""

    lot_id: UUID
    work_date: date
    balance: Decimal

    @property
    def fifo_key(self) -> tuple[date, str]:
        return (self.work_date, str(self.lot_id))


@dataclass(frozen=True)
class Allocation:
    """One planned draw from one lot."""

    lot_id: UUID
    amount: Decimal
    balance_after: Decimal


@dataclass(frozen=True)
class AllocationPlan:
    requested: Decimal
    allocations: tuple[Allocation, ...]

    @property
    def allocated(self) -> Decimal:
        return sum((a.amount for a in self.allocations), ZERO)

    @property
    def shortfall(self) -> Decimal:
        return self.requested - self.allocated

    @property
    def is_complete(self) -> bool:
        return self.shortfall == ZERO


def plan_fifo_allocation(
    lots: Iterable[LotBalance],
    credits_needed: Decimal,
) -> AllocationPlan:
    """
    Plan an oldest-first draw of ``credits_needed`` across ``lots``.

    Lots with a non-positive balance are skipped.  The returned plan may be
    incomplete (``is_complete`` False); the caller decides what that means.

    Raises:
        ValueError: If credits_needed is not positive.
    """
    if credits_needed <= ZERO:
        raise ValueError(f"credits_needed must be positive, got {credits_needed}")

    remaining = credits_needed
    allocations: list[Allocation] = []

    for lot in sorted(lots, key=lambda lot: lot.fifo_key):
        if remaining <= ZERO:
            break
        if lot.balance <= ZERO:
            continue
        take = min(lot.balance, remaining)
        allocations.append(
            Allocation(
                lot_id=lot.lot_id,
                amount=take,
                balance_after=lot.balance - take,
            )
        )
        remaining -= take

    return AllocationPlan(requested=credits_needed, allocations=tuple(allocations))
