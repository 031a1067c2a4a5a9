"""
Module: lease_kernel.models.property
Responsibility: ORM persistence for a landlord's rental properties.
Architecture position: Kernel > Models.  May import from db/ and the status
    enums only.  MUST NOT import from services/, selectors/, or outer layers.

Invariants enforced:
    - status is a closed enum; the Synchronizer keeps it OCCUPIED only while
      an unexpired, non-void contract references the property, AVAILABLE
      otherwise (barring a manual MAINTENANCE).
    - monthly_rent is stored as Numeric(12, 2), never float.

Failure modes:
    - StatementError on a status string outside PropertyStatus.
"""

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from lease_kernel.db.base import OwnedBase
from lease_kernel.db.types import Money, ShortText, Url, status_column_type
from lease_kernel.domain.statuses import PropertyStatus, PropertyType


class Property(OwnedBase):
    """
    A rental unit owned by one landlord.

    Non-goals:
        - Does NOT cascade deletes through ORM relationships; the service
          layer removes dependent payments and contracts explicitly.
    """

    __tablename__ = "properties"

    __table_args__ = (
        Index("idx_property_owner_status", "owner_id", "status"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    address: Mapped[str] = mapped_column(String(300), nullable=False)

    city: Mapped[ShortText | None]

    country: Mapped[ShortText | None]

    property_type: Mapped[PropertyType] = mapped_column(
        status_column_type(PropertyType),
        nullable=False,
        default=PropertyType.APARTMENT,
    )

    monthly_rent: Mapped[Money]

    status: Mapped[PropertyStatus] = mapped_column(
        status_column_type(PropertyStatus),
        nullable=False,
        default=PropertyStatus.AVAILABLE,
    )

    image_url: Mapped[Url | None]

    def __repr__(self) -> str:
        return f"<Property {self.name} [{self.status}]>"
