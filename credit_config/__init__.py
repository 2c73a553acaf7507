"""
credit_config -- single public entrypoint for service credit policy.

Responsibility:
    Provides the ONLY way to obtain the credit policy at runtime through
    ``get_active_config()``.  Services receive the returned
    ``CreditPolicy`` by constructor injection and never read YAML or
    environment variables themselves.

Architecture position:
    Configuration.  Sits beside ``credit_ledger``; the ledger's models and
    domain layer never import from this package.

Failure modes:
    - ``FileNotFoundError`` -- policy file missing.
    - ``ValueError`` -- a value is out of range or has the wrong type.
    - ``KeyError`` -- ``policy_id`` or ``version`` missing.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``CREDIT_CONFIG_TRACE`` log entry with the policy id, version and
    checksum, tying ledger activity to the exact policy that governed it.
"""

from __future__ import annotations

import logging
from pathlib import Path

from credit_config.loader import load_policy
from credit_config.schema import CreditPolicy

_logger = logging.getLogger("credit_ledger.config")

DEFAULT_POLICY_PATH = Path(__file__).parent / "policies" / "default.yaml"


def get_active_config(config_path: Path | None = None) -> CreditPolicy:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Override path to a policy YAML file.
            Defaults to credit_config/policies/default.yaml.

    Returns:
        Frozen, validated ``CreditPolicy``.
    """
    path = Path(config_path) if config_path is not None else DEFAULT_POLICY_PATH
    policy = load_policy(path)

    _logger.info(
        "CREDIT_CONFIG_TRACE",
        extra={
            "trace_type": "CREDIT_CONFIG_TRACE",
            "policy_id": policy.policy_id,
            "policy_version": policy.version,
            "checksum": policy.checksum,
            "source": str(path),
        },
    )
    return policy


__all__ = [
    "CreditPolicy",
    "DEFAULT_POLICY_PATH",
    "get_active_config",
]
