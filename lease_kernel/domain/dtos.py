"""
DTOs -- Immutable objects returned across the service boundary.

Responsibility:
    Defines the frozen data structures handed to callers of the services
    and selectors: one ``*Info`` per entity, the paged ``Page`` wrapper and
    the ``DashboardStats`` aggregate.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  ``from_model`` class methods exist as
    boundary converters but are only invoked from the service and selector
    layers, never from domain logic.

Invariants enforced:
    - Services return DTOs, never ORM entities, so callers cannot mutate a
      row outside the unit of work.
    - Derived values (``days_remaining``, ``days_late``) are computed from the
      caller's ``today`` at conversion time and never stored.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Generic, TypeVar
from uuid import UUID

from lease_kernel.domain.lifecycle import days_late, days_remaining
from lease_kernel.domain.statuses import (
    ContractStatus,
    PaymentStatus,
    PropertyStatus,
    PropertyType,
    TenantContractStatus,
)

if TYPE_CHECKING:
    from lease_kernel.models.contract import Contract as ContractModel
    from lease_kernel.models.payment import Payment as PaymentModel
    from lease_kernel.models.property import Property as PropertyModel
    from lease_kernel.models.tenant import Tenant as TenantModel


@dataclass(frozen=True)
class PropertyInfo:
    """Immutable view of a rental property."""

    id: UUID
    owner_id: UUID
    name: str
    address: str
    city: str | None
    country: str | None
    property_type: PropertyType
    monthly_rent: Decimal
    status: PropertyStatus
    image_url: str | None
    created_at: datetime
    updated_at: datetime

    @property
    def is_available(self) -> bool:
        return self.status == PropertyStatus.AVAILABLE

    @classmethod
    def from_model(cls, model: PropertyModel) -> PropertyInfo:
        return cls(
            id=model.id,
            owner_id=model.owner_id,
            name=model.name,
            address=model.address,
            city=model.city,
            country=model.country,
            property_type=model.property_type,
            monthly_rent=model.monthly_rent,
            status=model.status,
            image_url=model.image_url,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


@dataclass(frozen=True)
class TenantInfo:
    """Immutable view of a tenant and its cached contract state."""

    id: UUID
    owner_id: UUID
    first_name: str
    last_name: str
    email: str
    phone: str | None
    document_number: str
    avatar_url: str | None
    property_id: UUID | None
    contract_status: TenantContractStatus
    contract_end: date | None
    created_at: datetime
    updated_at: datetime

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_model(cls, model: TenantModel) -> TenantInfo:
        return cls(
            id=model.id,
            owner_id=model.owner_id,
            first_name=model.first_name,
            last_name=model.last_name,
            email=model.email,
            phone=model.phone,
            document_number=model.document_number,
            avatar_url=model.avatar_url,
            property_id=model.property_id,
            contract_status=model.contract_status,
            contract_end=model.contract_end,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


@dataclass(frozen=True)
class ContractInfo:
    """
    Immutable view of a lease contract.

    Guarantees:
        - days_remaining is 0 once end_date has passed.
    """

    id: UUID
    owner_id: UUID
    tenant_id: UUID
    property_id: UUID
    start_date: date
    end_date: date
    monthly_rent: Decimal
    status: ContractStatus
    document_url: str | None
    days_remaining: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, model: ContractModel, today: date) -> ContractInfo:
        return cls(
            id=model.id,
            owner_id=model.owner_id,
            tenant_id=model.tenant_id,
            property_id=model.property_id,
            start_date=model.start_date,
            end_date=model.end_date,
            monthly_rent=model.monthly_rent,
            status=model.status,
            document_url=model.document_url,
            days_remaining=days_remaining(model.end_date, today),
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


@dataclass(frozen=True)
class PaymentInfo:
    """
    Immutable view of a rent payment.

    Guarantees:
        - days_late is 0 when paid, without a due date, or not yet past due.
    """

    id: UUID
    owner_id: UUID
    tenant_id: UUID
    property_id: UUID
    amount: Decimal
    due_date: date
    paid_date: date | None
    status: PaymentStatus
    receipt_url: str | None
    days_late: int
    created_at: datetime
    updated_at: datetime

    @property
    def is_paid(self) -> bool:
        return self.status == PaymentStatus.PAID

    @classmethod
    def from_model(cls, model: PaymentModel, today: date) -> PaymentInfo:
        return cls(
            id=model.id,
            owner_id=model.owner_id,
            tenant_id=model.tenant_id,
            property_id=model.property_id,
            amount=model.amount,
            due_date=model.due_date,
            paid_date=model.paid_date,
            status=model.status,
            receipt_url=model.receipt_url,
            days_late=days_late(model.paid_date, model.due_date, today),
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    """
    One page of a listing.

    ``page`` is zero-based; ``total`` counts every matching row across pages.
    """

    items: tuple[T, ...]
    page: int
    page_size: int
    total: int

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return (self.total + self.page_size - 1) // self.page_size

    @property
    def has_next(self) -> bool:
        return self.page + 1 < self.total_pages

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)


@dataclass(frozen=True)
class DashboardStats:
    """
    Monthly dashboard aggregate for one owner.

    income_variation is the percentage change against the previous month,
    rounded half-up to one decimal place, and 0 when the previous month had
    no income.
    """

    month: int
    year: int
    income: Decimal
    previous_income: Decimal
    income_variation: Decimal
    pending_total: Decimal
    delinquent_tenants: int
    active_properties: int
    active_tenants: int
    total_properties: int
