"""
Module: credit_ledger.selectors.base
Responsibility: Abstract base class for read-only query selectors.
Architecture position: Ledger > Selectors.  May import from db/, models/ and
    domain/dtos.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors MUST NOT call session.add(),
      session.delete(), session.commit() or session.flush().
    - DTO return convention: selectors return frozen dataclasses, not ORM
      instances.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from credit_ledger.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only
        queries, and return DTOs.  The caller owns the session and its
        transaction scope.
    """

    def __init__(self, session: Session):
        self.session = session
