"""
Module: lease_kernel.models.payment
Responsibility: ORM persistence for rent payments owed by a tenant for a
    property.
Architecture position: Kernel > Models.  May import from db/ and the status
    enums only.

Invariants enforced:
    - status is PAID iff paid_date is set; LATE iff unpaid and past due;
      PENDING otherwise.  Maintained by PaymentService and its sweep.
    - amount > 0 (ck_payment_amount_positive).
"""

from datetime import date

from sqlalchemy import CheckConstraint, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from lease_kernel.db.base import UUID, OwnedBase, UUIDString
from lease_kernel.db.types import Money, Url, status_column_type
from lease_kernel.domain.statuses import PaymentStatus


class Payment(OwnedBase):
    """One rent instalment."""

    __tablename__ = "payments"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_amount_positive"),
        Index("idx_payment_owner_status", "owner_id", "status"),
        Index("idx_payment_owner_due", "owner_id", "due_date"),
        Index("idx_payment_owner_paid", "owner_id", "paid_date"),
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

    amount: Mapped[Money]

    due_date: Mapped[date] = mapped_column(nullable=False)

    paid_date: Mapped[date | None] = mapped_column(nullable=True)

    status: Mapped[PaymentStatus] = mapped_column(
        status_column_type(PaymentStatus),
        nullable=False,
        default=PaymentStatus.PENDING,
    )

    receipt_url: Mapped[Url | None]

    def __repr__(self) -> str:
        return f"<Payment {self.amount} due {self.due_date} [{self.status}]>"
