"""
Module: credit_ledger.db.locking
Responsibility: Lock-timeout configuration and translation of database
    lock/conflict failures into the retryable LedgerBusyError.
Architecture position: Ledger > DB.  Used by the ServiceCreditService unit
    of work.  MUST NOT import from services/ or selectors/.

Invariants enforced:
    - No operation blocks indefinitely: on PostgreSQL every unit of work
      sets ``lock_timeout`` for its own transaction (SET LOCAL).
    - Lock-not-available, deadlock and serialization failures surface as
      LedgerBusyError; every other database error propagates unchanged.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from credit_ledger.exceptions import LedgerBusyError
from credit_ledger.logging_config import get_logger

logger = get_logger("db.locking")

# SQLSTATE -> reason for conditions that are safe to retry
RETRYABLE_SQLSTATES: dict[str, str] = {
    "55P03": "lock_not_available",
    "40P01": "deadlock_detected",
    "40001": "serialization_failure",
}


def apply_lock_timeout(session: Session, timeout_ms: int) -> None:
    """
    Bound lock waits for the current transaction.

    No-op on backends other than PostgreSQL.
    """
    if session.get_bind().dialect.name != "postgresql":
        return
    session.execute(text(f"SET LOCAL lock_timeout = '{int(timeout_ms)}ms'"))


def busy_reason(exc: DBAPIError) -> str | None:
    """Return the retryable reason for a database error, or None."""
    orig = exc.orig
    # psycopg2 exposes pgcode, psycopg 3 exposes sqlstate
    sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if sqlstate in RETRYABLE_SQLSTATES:
        return RETRYABLE_SQLSTATES[sqlstate]
    if "database is locked" in str(orig):
        return "database_locked"
    return None


@contextmanager
def translate_lock_errors(operation: str) -> Generator[None, None, None]:
    """Re-raise retryable database conflicts as LedgerBusyError."""
    try:
        yield
    except DBAPIError as exc:
        reason = busy_reason(exc)
        if reason is None:
            raise
        logger.warning(
            "ledger_busy",
            extra={"operation": operation, "reason": reason},
        )
        raise LedgerBusyError(operation, reason) from exc
