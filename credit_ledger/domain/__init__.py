"""Pure domain layer: clock, DTOs, collaborator interfaces, FIFO planner."""

from credit_ledger.domain.allocation import (
    Allocation,
    AllocationPlan,
    LotBalance,
    plan_fifo_allocation,
)
from credit_ledger.domain.clock import Clock, DeterministicClock, SystemClock
from credit_ledger.domain.collaborators import (
    AttendanceDirectory,
    EmployeeDirectory,
    EmployeeInfo,
)
from credit_ledger.domain.credit_math import (
    add_years,
    compute_credits_earned,
    compute_expiry_date,
)

__all__ = [
    "Allocation",
    "AllocationPlan",
    "AttendanceDirectory",
    "Clock",
    "DeterministicClock",
    "EmployeeDirectory",
    "EmployeeInfo",
    "LotBalance",
    "SystemClock",
    "add_years",
    "compute_credits_earned",
    "compute_expiry_date",
    "plan_fifo_allocation",
]
