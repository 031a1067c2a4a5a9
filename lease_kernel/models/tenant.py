"""
Module: lease_kernel.models.tenant
Responsibility: ORM persistence for tenants and their cached contract state.
Architecture position: Kernel > Models.  May import from db/ and the status
    enums only.

Invariants enforced:
    - email and document_number are unique per owner
      (uq_tenant_owner_email, uq_tenant_owner_document).
    - property_id is non-null only while contract_status is IN_PROCESS or
      ACTIVE.  Only the Synchronizer writes property_id, contract_status and
      contract_end.

Failure modes:
    - IntegrityError on a duplicate email/document_number for one owner
      (the service checks first and raises DuplicateTenantError).
"""

from datetime import date

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from lease_kernel.db.base import UUID, OwnedBase, UUIDString
from lease_kernel.db.types import ShortText, Url, status_column_type
from lease_kernel.domain.statuses import TenantContractStatus


class Tenant(OwnedBase):
    """A person renting one of the owner's properties."""

    __tablename__ = "tenants"

    __table_args__ = (
        UniqueConstraint("owner_id", "email", name="uq_tenant_owner_email"),
        UniqueConstraint(
            "owner_id", "document_number", name="uq_tenant_owner_document"
        ),
        Index("idx_tenant_owner_status", "owner_id", "contract_status"),
    )

    first_name: Mapped[ShortText]

    last_name: Mapped[ShortText]

    email: Mapped[str] = mapped_column(String(255), nullable=False)

    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)

    document_number: Mapped[str] = mapped_column(String(50), nullable=False)

    avatar_url: Mapped[Url | None]

    property_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("properties.id"),
        nullable=True,
        index=True,
    )

    contract_status: Mapped[TenantContractStatus] = mapped_column(
        status_column_type(TenantContractStatus),
        nullable=False,
        default=TenantContractStatus.NO_CONTRACT,
    )

    # Cached end date of the tenant's current contract
    contract_end: Mapped[date | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<Tenant {self.first_name} {self.last_name} [{self.contract_status}]>"
