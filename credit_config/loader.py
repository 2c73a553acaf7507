"""
Policy loader (``credit_config.loader``).

Responsibility
--------------
Loads the YAML policy file and parses it into a ``CreditPolicy``.  This is
internal tooling; runtime callers go through
``credit_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError`` propagates.
* Out-of-range or non-numeric values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from credit_config.schema import CreditPolicy


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def parse_decimal(value: Any, field_name: str) -> Decimal:
    """Parse a YAML scalar into Decimal via its string form."""
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be numeric, got {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{field_name} must be numeric, got {value!r}") from exc


def _parse_str_list(value: Any, field_name: str) -> tuple[str, ...]:
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        raise ValueError(f"{field_name} must be a list of strings, got {value!r}")
    return tuple(str(v) for v in value)


def parse_policy(data: dict[str, Any], checksum: str = "") -> CreditPolicy:
    """
    Parse a ``CreditPolicy`` from a dict.

    ``policy_id`` and ``version`` are required; every other key falls back
    to the ``CreditPolicy`` default.
    """
    kwargs: dict[str, Any] = {
        "policy_id": data["policy_id"],
        "version": int(data["version"]),
        "checksum": checksum,
    }
    if "hours_per_credit" in data:
        kwargs["hours_per_credit"] = parse_decimal(data["hours_per_credit"], "hours_per_credit")
    if "max_hours_worked" in data:
        kwargs["max_hours_worked"] = parse_decimal(data["max_hours_worked"], "max_hours_worked")
    if "expiry_years" in data:
        kwargs["expiry_years"] = int(data["expiry_years"])
    if "allow_future_work_date" in data:
        kwargs["allow_future_work_date"] = bool(data["allow_future_work_date"])
    if "eligible_employee_statuses" in data:
        kwargs["eligible_employee_statuses"] = _parse_str_list(
            data["eligible_employee_statuses"], "eligible_employee_statuses"
        )
    if "eligible_employment_statuses" in data:
        kwargs["eligible_employment_statuses"] = _parse_str_list(
            data["eligible_employment_statuses"], "eligible_employment_statuses"
        )
    if "lock_timeout_ms" in data:
        kwargs["lock_timeout_ms"] = int(data["lock_timeout_ms"])
    if "expiring_soon_days" in data:
        kwargs["expiring_soon_days"] = int(data["expiring_soon_days"])
    return CreditPolicy(**kwargs)


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def load_policy(path: Path) -> CreditPolicy:
    data = load_yaml_file(path)
    return parse_policy(data, checksum=compute_checksum(data))
