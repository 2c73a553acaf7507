"""
CreditPolicy schema.

The runtime artifact produced from the YAML policy file.  Frozen, validated
on construction, and identified by the SHA-256 checksum of its source.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class CreditPolicy:
    """Earning, expiry, eligibility and locking rules for service credits."""

    policy_id: str
    version: int
    hours_per_credit: Decimal = Decimal("8")
    expiry_years: int = 1
    max_hours_worked: Decimal = Decimal("24")
    allow_future_work_date: bool = False
    eligible_employee_statuses: tuple[str, ...] = ("active",)
    eligible_employment_statuses: tuple[str, ...] = ("permanent",)
    lock_timeout_ms: int = 5000
    expiring_soon_days: int = 30
    checksum: str = ""

    def __post_init__(self) -> None:
        if not self.policy_id:
            raise ValueError("policy_id must be non-empty")
        if self.version < 1:
            raise ValueError(f"version must be >= 1, got {self.version}")
        if self.hours_per_credit <= 0:
            raise ValueError(f"hours_per_credit must be positive, got {self.hours_per_credit}")
        if self.expiry_years < 1:
            raise ValueError(f"expiry_years must be >= 1, got {self.expiry_years}")
        if self.max_hours_worked <= 0:
            raise ValueError(f"max_hours_worked must be positive, got {self.max_hours_worked}")
        if not self.eligible_employee_statuses:
            raise ValueError("eligible_employee_statuses must not be empty")
        if not self.eligible_employment_statuses:
            raise ValueError("eligible_employment_statuses must not be empty")
        if self.lock_timeout_ms <= 0:
            raise ValueError(f"lock_timeout_ms must be positive, got {self.lock_timeout_ms}")
        if self.expiring_soon_days < 0:
            raise ValueError(f"expiring_soon_days must be >= 0, got {self.expiring_soon_days}")

    def is_eligible(self, employee_status: str, employment_status: str) -> bool:
        return (
            employee_status in self.eligible_employee_statuses
            and employment_status in self.eligible_employment_statuses
        )
