"""
Service layer for Property operations.

Manages a landlord's rental units.  Occupancy status is normally driven by
ContractService through the Synchronizer; this service only sets it
directly for manual states such as MAINTENANCE.

Deleting a property removes its payments, then its contracts (reverting
their side effects), then frees any tenant still pointing at it.
"""

from uuid import UUID

from sqlalchemy import func, or_, select

from lease_kernel.domain import synchronizer
from lease_kernel.domain.dtos import Page, PropertyInfo
from lease_kernel.domain.statuses import PropertyStatus, PropertyType, parse_status
from lease_kernel.exceptions import PropertyNotFoundError
from lease_kernel.logging_config import get_logger
from lease_kernel.models.contract import Contract
from lease_kernel.models.payment import Payment
from lease_kernel.models.property import Property
from lease_kernel.models.tenant import Tenant
from lease_kernel.services.base import (
    DEFAULT_PAGE_SIZE,
    BaseService,
    require_positive_amount,
    require_text,
)
from lease_kernel.services.contract_service import ContractService

logger = get_logger("services.property")


class PropertyService(BaseService[Property]):
    """
    Service for managing properties.

    All public methods return PropertyInfo DTOs, not ORM Property entities.
    """

    def _to_dto(self, prop: Property) -> PropertyInfo:
        return PropertyInfo.from_model(prop)

    def _get_property(self, property_id: UUID) -> Property:
        return self._get_owned(Property, property_id, PropertyNotFoundError)

    def create_property(
        self,
        name: str,
        address: str,
        monthly_rent,
        property_type: PropertyType | str = PropertyType.APARTMENT,
        city: str | None = None,
        country: str | None = None,
        status: PropertyStatus | str | None = None,
        image_url: str | None = None,
    ) -> PropertyInfo:
        """
        Create a new property.

        Args:
            name: Display name.
            address: Street address.
            monthly_rent: Positive asking rent.
            property_type: Kind of unit.
            city: Optional city.
            country: Optional country.
            status: Initial status (defaults to AVAILABLE).
            image_url: Optional photo URL.

        Returns:
            The created PropertyInfo.
        """
        prop = Property(
            name=require_text("name", name),
            address=require_text("address", address),
            monthly_rent=require_positive_amount("monthly_rent", monthly_rent),
            property_type=parse_status(PropertyType, property_type, "property type"),
            city=city,
            country=country,
            status=(
                parse_status(PropertyStatus, status, "property")
                if status is not None
                else PropertyStatus.AVAILABLE
            ),
            image_url=image_url,
        )
        self._stamp_created(prop)
        self.session.add(prop)
        self.session.flush()

        logger.info(
            "property_created",
            extra={"property_id": str(prop.id), "status": prop.status.value},
        )
        return self._to_dto(prop)

    def update_property(
        self,
        property_id: UUID,
        name: str | None = None,
        address: str | None = None,
        monthly_rent=None,
        property_type: PropertyType | str | None = None,
        city: str | None = None,
        country: str | None = None,
        status: PropertyStatus | str | None = None,
        image_url: str | None = None,
    ) -> PropertyInfo:
        """Partially update a property; only supplied fields change."""
        prop = self._get_property(property_id)

        if name is not None:
            prop.name = require_text("name", name)
        if address is not None:
            prop.address = require_text("address", address)
        if monthly_rent is not None:
            prop.monthly_rent = require_positive_amount("monthly_rent", monthly_rent)
        if property_type is not None:
            prop.property_type = parse_status(PropertyType, property_type, "property type")
        if city is not None:
            prop.city = city
        if country is not None:
            prop.country = country
        if status is not None:
            prop.status = parse_status(PropertyStatus, status, "property")
        if image_url is not None:
            prop.image_url = image_url

        self._touch(prop)
        self.session.flush()

        logger.info("property_updated", extra={"property_id": str(prop.id)})
        return self._to_dto(prop)

    def set_image_url(self, property_id: UUID, url: str | None) -> PropertyInfo:
        """Attach (or clear, with None) the property photo URL."""
        prop = self._get_property(property_id)
        prop.image_url = url
        self._touch(prop)
        self.session.flush()
        return self._to_dto(prop)

    def delete_property(self, property_id: UUID) -> None:
        """
        Delete a property and everything that depends on it.

        Order: payments, contracts (via ContractService so tenants are
        reverted), remaining tenant references, then the property itself.
        """
        prop = self._get_property(property_id)

        payments = self.session.execute(
            self._owned(Payment).where(Payment.property_id == prop.id)
        ).scalars().all()
        for payment in payments:
            self.session.delete(payment)
        self.session.flush()

        contract_ids = self.session.execute(
            select(Contract.id).where(
                Contract.owner_id == self.owner_id,
                Contract.property_id == prop.id,
            )
        ).scalars().all()
        contracts = ContractService(self.session, self.owner_id, self.clock)
        for contract_id in contract_ids:
            contracts.delete_contract(contract_id)

        tenants = self.session.execute(
            self._owned(Tenant).where(Tenant.property_id == prop.id)
        ).scalars().all()
        for tenant in tenants:
            synchronizer.release_tenant(tenant)
            self._touch(tenant)

        self.session.delete(prop)
        self.session.flush()

        logger.info(
            "property_deleted",
            extra={
                "property_id": str(property_id),
                "payments_deleted": len(payments),
                "contracts_deleted": len(contract_ids),
                "tenants_released": len(tenants),
            },
        )

    def get(self, property_id: UUID) -> PropertyInfo:
        """
        Get property by ID.

        Raises:
            PropertyNotFoundError: If unknown or owned by someone else.
        """
        return self._to_dto(self._get_property(property_id))

    def list_properties(
        self,
        status: PropertyStatus | str | None = None,
        page: int = 0,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Page[PropertyInfo]:
        stmt = self._owned(Property)
        if status is not None:
            stmt = stmt.where(
                Property.status == parse_status(PropertyStatus, status, "property")
            )
        stmt = stmt.order_by(Property.name, Property.id)
        return self._page(stmt, page, page_size, self._to_dto)

    def list_available(self) -> list[PropertyInfo]:
        rows = self.session.execute(
            self._owned(Property)
            .where(Property.status == PropertyStatus.AVAILABLE)
            .order_by(Property.name)
        ).scalars().all()
        return [self._to_dto(row) for row in rows]

    def search(
        self, text: str, page: int = 0, page_size: int = DEFAULT_PAGE_SIZE
    ) -> Page[PropertyInfo]:
        """Case-insensitive match on name, address or city."""
        pattern = f"%{text.strip().lower()}%"
        stmt = (
            self._owned(Property)
            .where(
                or_(
                    func.lower(Property.name).like(pattern),
                    func.lower(Property.address).like(pattern),
                    func.lower(Property.city).like(pattern),
                )
            )
            .order_by(Property.name, Property.id)
        )
        return self._page(stmt, page, page_size, self._to_dto)

    def count(self, status: PropertyStatus | str | None = None) -> int:
        stmt = select(func.count()).select_from(Property).where(
            Property.owner_id == self.owner_id
        )
        if status is not None:
            stmt = stmt.where(
                Property.status == parse_status(PropertyStatus, status, "property")
            )
        return self.session.execute(stmt).scalar_one()
