"""
Module: lease_kernel.models.contract
Responsibility: ORM persistence for lease contracts binding a tenant to a
    property over an inclusive date range.
Architecture position: Kernel > Models.  May import from db/ and the status
    enums only.

Invariants enforced:
    - end_date > start_date (ck_contract_dates, also validated by the
      service before flush).
    - Per property, no two contracts outside {FINISHED, UNSIGNED} have
      overlapping [start_date, end_date].  Enforced by ContractService under
      a row lock on the property, not by a database constraint.
    - The model has no load or save hooks; status changes only through
      lifecycle.recompute_contract_status called by the service.

Failure modes:
    - IntegrityError on a dangling tenant_id/property_id.
"""

from datetime import date

from sqlalchemy import CheckConstraint, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from lease_kernel.db.base import UUID, OwnedBase, UUIDString
from lease_kernel.db.types import Money, Url, status_column_type
from lease_kernel.domain.statuses import ContractStatus


class Contract(OwnedBase):
    """A lease agreement between the owner and a tenant for one property."""

    __tablename__ = "contracts"

    __table_args__ = (
        CheckConstraint("end_date > start_date", name="ck_contract_dates"),
        Index("idx_contract_property_dates", "property_id", "start_date", "end_date"),
        Index("idx_contract_owner_status", "owner_id", "status"),
    )

    tenant_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("tenants.id"),
        nullable=False,
        index=True,
    )

    property_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("properties.id"),
        nullable=False,
        index=True,
    )

    start_date: Mapped[date] = mapped_column(nullable=False)

    end_date: Mapped[date] = mapped_column(nullable=False)

    monthly_rent: Mapped[Money]

    status: Mapped[ContractStatus] = mapped_column(
        status_column_type(ContractStatus),
        nullable=False,
        default=ContractStatus.UNSIGNED,
    )

    document_url: Mapped[Url | None]

    def __repr__(self) -> str:
        return f"<Contract {self.start_date}..{self.end_date} [{self.status}]>"
