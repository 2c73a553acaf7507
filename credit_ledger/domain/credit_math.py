"""Earned-credit and expiry arithmetic."""

from datetime import date
from decimal import Decimal

from credit_ledger.db.types import round_credits


def compute_credits_earned(hours_worked: Decimal, hours_per_credit: Decimal) -> Decimal:
    """Credits for ``hours_worked``, rounded half-up to 2 places."""
    if hours_per_credit <= 0:
        raise ValueError(f"hours_per_credit must be positive, got {hours_per_credit}")
    return round_credits(hours_worked / hours_per_credit)


def add_years(start: date, years: int) -> date:
    """
    ``start`` moved forward by whole calendar years.

    Feb 29 lands on Mar 1 when the target year is not a leap year.
    """
    try:
        return start.replace(year=start.year + years)
    except ValueError:
        return date(start.year + years, 3, 1)


def compute_expiry_date(work_date: date, expiry_years: int) -> date:
    return add_years(work_date, expiry_years)
