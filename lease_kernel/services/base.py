"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor (session, owner, clock), the
    owner-scoped lookup every service uses, timestamp stamping from the
    injected Clock, and the paging helper behind every ``list_*`` method.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Every service in ``lease_kernel/services/`` extends this class.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit or rollback themselves.  The caller
      (LeaseOrchestrator, session_scope, or test harness) owns
      commit/rollback.
    - Owner scoping: every lookup filters by ``owner_id``.  A row owned by
      someone else is indistinguishable from a missing row (NotFoundError).
    - Timestamps come from the Clock, never from the database.

Failure modes:
    - NotFoundError subclasses from ``_get_owned`` when the id is unknown or
      belongs to another owner.
"""

from abc import ABC
from datetime import date
from decimal import Decimal
from typing import Callable, Generic, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

from lease_kernel.db.base import OwnedBase
from lease_kernel.db.types import round_money, to_decimal
from lease_kernel.domain.clock import Clock, SystemClock
from lease_kernel.domain.dtos import Page
from lease_kernel.exceptions import (
    InvalidAmountError,
    MissingDateError,
    MissingFieldError,
    NotFoundError,
)

ModelType = TypeVar("ModelType", bound=OwnedBase)
T = TypeVar("T")

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 200


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` and the id of the owner the service
        acts for.  Uses ``session.flush()`` to persist changes within the
        active transaction.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.

    Non-goals:
        - Does NOT resolve the owner itself; see IdentityResolver.
    """

    def __init__(self, session: Session, owner_id: UUID, clock: Clock | None = None):
        """
        Initialize the service.

        Args:
            session: SQLAlchemy session for database operations.
            owner_id: Landlord every read and write is scoped to.
            clock: Time source (defaults to SystemClock).
        """
        self.session = session
        self.owner_id = owner_id
        self.clock = clock or SystemClock()

    def _get_owned(
        self,
        model: type[ModelType],
        entity_id: UUID,
        error: type[NotFoundError],
        for_update: bool = False,
    ) -> ModelType:
        """Load ``model`` by id for this owner, raising ``error`` if absent."""
        stmt = select(model).where(
            model.id == entity_id,
            model.owner_id == self.owner_id,
        )
        if for_update:
            stmt = stmt.with_for_update()
        entity = self.session.execute(stmt).scalar_one_or_none()
        if entity is None:
            raise error(str(entity_id))
        return entity

    def _owned(self, model: type[ModelType]) -> Select:
        """Base SELECT for this owner's rows of ``model``."""
        return select(model).where(model.owner_id == self.owner_id)

    def _stamp_created(self, entity: OwnedBase) -> None:
        now = self.clock.now()
        entity.owner_id = self.owner_id
        entity.created_at = now
        entity.updated_at = now

    def _touch(self, entity: OwnedBase) -> None:
        entity.updated_at = self.clock.now()

    def _page(
        self,
        stmt: Select,
        page: int,
        page_size: int,
        convert: Callable[[ModelType], T],
    ) -> Page[T]:
        """Run ``stmt`` as one zero-based page and convert each row."""
        page = max(page, 0)
        page_size = min(max(page_size, 1), MAX_PAGE_SIZE)

        total = self.session.execute(
            select(func.count()).select_from(stmt.order_by(None).subquery())
        ).scalar_one()
        rows = self.session.execute(
            stmt.limit(page_size).offset(page * page_size)
        ).scalars().all()

        return Page(
            items=tuple(convert(row) for row in rows),
            page=page,
            page_size=page_size,
            total=total,
        )


def require_positive_amount(field: str, value: object) -> Decimal:
    """
    Coerce ``value`` to a 2-place Decimal and require it to be > 0.

    Raises:
        InvalidAmountError: If value is missing, non-numeric or not positive.
    """
    try:
        amount = to_decimal(value)
    except ValueError:
        raise InvalidAmountError(field, value) from None
    if not amount.is_finite():
        raise InvalidAmountError(field, value)
    amount = round_money(amount)
    if amount <= 0:
        raise InvalidAmountError(field, value)
    return amount


def require_date(field: str, value: date | None) -> date:
    """Raise MissingDateError unless a date was supplied."""
    if value is None:
        raise MissingDateError(field)
    return value


def require_text(field: str, value: str | None) -> str:
    """Strip ``value`` and raise MissingFieldError if nothing is left."""
    if value is None or not value.strip():
        raise MissingFieldError(field)
    return value.strip()
