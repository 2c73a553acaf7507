"""
BaseService -- abstract base for all ledger services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every write-side service.  Services use ``session.flush()`` and never
    ``session.commit()``.

Architecture position:
    Ledger > Services -- imperative shell infrastructure.

Invariants enforced:
    Transaction boundaries: services flush within the caller's transaction
    and never commit or roll back themselves.  ServiceCreditService (or a
    test harness) owns commit/rollback, which is what makes a multi-lot
    FIFO offset a single atomic unit.

Failure modes:
    - A subclass that commits on its own breaks apply/revert atomicity.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from credit_ledger.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all ledger services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide reporting queries; those belong in
          ``credit_ledger/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
