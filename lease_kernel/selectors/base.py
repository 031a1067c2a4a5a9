"""
Module: lease_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.
    Selectors are the reporting side of the kernel: structured, owner-scoped
    read access without mutation capability.
Architecture position: Kernel > Selectors.  May import from db/, models/
    and domain/.  MUST NOT import from services/ or outer layers.

Invariants enforced:
    - Read-only access: selectors accept a Session from the caller but MUST
      NOT call session.add(), session.delete(), session.commit(), or
      session.flush().
    - DTO return convention: selectors return frozen dataclasses or scalar
      results, never ORM instances.
    - Owner scoping: every query filters by the selector's owner_id.
"""

from abc import ABC
from typing import Generic, TypeVar
from uuid import UUID

from sqlalchemy.orm import Session

from lease_kernel.db.base import Base
from lease_kernel.domain.clock import Clock, SystemClock

ModelType = TypeVar("ModelType", bound=Base)


class BaseSelector(ABC, Generic[ModelType]):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only
        queries for one owner, and return DTOs or computed results.
    """

    def __init__(self, session: Session, owner_id: UUID, clock: Clock | None = None):
        """
        Initialize the selector.

        Args:
            session: SQLAlchemy session for database operations.
            owner_id: Landlord the reported data belongs to.
            clock: Time source for "current month" defaults.
        """
        self.session = session
        self.owner_id = owner_id
        self.clock = clock or SystemClock()
