"""
Service layer for Tenant operations.

Tenants are created and edited here, but their contract linkage
(``property_id``, ``contract_status``, ``contract_end``) is written only by
ContractService through the Synchronizer.

Email and document number are unique per owner.  Deleting a tenant removes
its payments, then its contracts (freeing their properties), then the
tenant itself.
"""

from uuid import UUID

from sqlalchemy import func, or_, select

from lease_kernel.domain.dtos import Page, TenantInfo
from lease_kernel.domain.statuses import TenantContractStatus, parse_status
from lease_kernel.exceptions import DuplicateTenantError, TenantNotFoundError
from lease_kernel.logging_config import get_logger
from lease_kernel.models.contract import Contract
from lease_kernel.models.payment import Payment
from lease_kernel.models.tenant import Tenant
from lease_kernel.services.base import DEFAULT_PAGE_SIZE, BaseService, require_text
from lease_kernel.services.contract_service import ContractService

logger = get_logger("services.tenant")


class TenantService(BaseService[Tenant]):
    """Service for managing tenants.  Returns TenantInfo DTOs."""

    def _to_dto(self, tenant: Tenant) -> TenantInfo:
        return TenantInfo.from_model(tenant)

    def _get_tenant(self, tenant_id: UUID) -> Tenant:
        return self._get_owned(Tenant, tenant_id, TenantNotFoundError)

    def _check_unique(
        self, field: str, value: str, exclude_id: UUID | None = None
    ) -> None:
        column = getattr(Tenant, field)
        stmt = select(Tenant.id).where(
            Tenant.owner_id == self.owner_id,
            func.lower(column) == value.lower(),
        )
        if exclude_id is not None:
            stmt = stmt.where(Tenant.id != exclude_id)
        if self.session.execute(stmt.limit(1)).scalar_one_or_none() is not None:
            logger.warning("duplicate_tenant_rejected", extra={"field": field})
            raise DuplicateTenantError(field, value)

    def create_tenant(
        self,
        first_name: str,
        last_name: str,
        email: str,
        document_number: str,
        phone: str | None = None,
        avatar_url: str | None = None,
    ) -> TenantInfo:
        """
        Create a tenant with no contract.

        Raises:
            MissingFieldError: If a required field is blank.
            DuplicateTenantError: If the email or document number is taken.
        """
        email = require_text("email", email)
        document_number = require_text("document_number", document_number)
        tenant = Tenant(
            first_name=require_text("first_name", first_name),
            last_name=require_text("last_name", last_name),
            email=email,
            document_number=document_number,
            phone=phone,
            avatar_url=avatar_url,
            contract_status=TenantContractStatus.NO_CONTRACT,
        )
        self._check_unique("email", email)
        self._check_unique("document_number", document_number)

        self._stamp_created(tenant)
        self.session.add(tenant)
        self.session.flush()

        logger.info("tenant_created", extra={"tenant_id": str(tenant.id)})
        return self._to_dto(tenant)

    def update_tenant(
        self,
        tenant_id: UUID,
        first_name: str | None = None,
        last_name: str | None = None,
        email: str | None = None,
        document_number: str | None = None,
        phone: str | None = None,
        avatar_url: str | None = None,
    ) -> TenantInfo:
        """Partially update a tenant's personal data."""
        tenant = self._get_tenant(tenant_id)

        if email is not None:
            email = require_text("email", email)
            self._check_unique("email", email, exclude_id=tenant.id)
        if document_number is not None:
            document_number = require_text("document_number", document_number)
            self._check_unique("document_number", document_number, exclude_id=tenant.id)

        if first_name is not None:
            tenant.first_name = require_text("first_name", first_name)
        if last_name is not None:
            tenant.last_name = require_text("last_name", last_name)
        if email is not None:
            tenant.email = email
        if document_number is not None:
            tenant.document_number = document_number
        if phone is not None:
            tenant.phone = phone
        if avatar_url is not None:
            tenant.avatar_url = avatar_url

        self._touch(tenant)
        self.session.flush()

        logger.info("tenant_updated", extra={"tenant_id": str(tenant.id)})
        return self._to_dto(tenant)

    def set_avatar_url(self, tenant_id: UUID, url: str | None) -> TenantInfo:
        """Attach (or clear, with None) the tenant avatar URL."""
        tenant = self._get_tenant(tenant_id)
        tenant.avatar_url = url
        self._touch(tenant)
        self.session.flush()
        return self._to_dto(tenant)

    def delete_tenant(self, tenant_id: UUID) -> None:
        """Delete a tenant with its payments and contracts."""
        tenant = self._get_tenant(tenant_id)

        payments = self.session.execute(
            self._owned(Payment).where(Payment.tenant_id == tenant.id)
        ).scalars().all()
        for payment in payments:
            self.session.delete(payment)
        self.session.flush()

        contract_ids = self.session.execute(
            select(Contract.id).where(
                Contract.owner_id == self.owner_id,
                Contract.tenant_id == tenant.id,
            )
        ).scalars().all()
        contracts = ContractService(self.session, self.owner_id, self.clock)
        for contract_id in contract_ids:
            contracts.delete_contract(contract_id)

        self.session.delete(tenant)
        self.session.flush()

        logger.info(
            "tenant_deleted",
            extra={
                "tenant_id": str(tenant_id),
                "payments_deleted": len(payments),
                "contracts_deleted": len(contract_ids),
            },
        )

    def get(self, tenant_id: UUID) -> TenantInfo:
        """
        Get tenant by ID.

        Raises:
            TenantNotFoundError: If unknown or owned by someone else.
        """
        return self._to_dto(self._get_tenant(tenant_id))

    def list_tenants(
        self,
        contract_status: TenantContractStatus | str | None = None,
        page: int = 0,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Page[TenantInfo]:
        stmt = self._owned(Tenant)
        if contract_status is not None:
            stmt = stmt.where(
                Tenant.contract_status
                == parse_status(TenantContractStatus, contract_status, "tenant")
            )
        stmt = stmt.order_by(Tenant.last_name, Tenant.first_name, Tenant.id)
        return self._page(stmt, page, page_size, self._to_dto)

    def search(
        self, text: str, page: int = 0, page_size: int = DEFAULT_PAGE_SIZE
    ) -> Page[TenantInfo]:
        """Case-insensitive match on name, email or document number."""
        pattern = f"%{text.strip().lower()}%"
        stmt = (
            self._owned(Tenant)
            .where(
                or_(
                    func.lower(Tenant.first_name).like(pattern),
                    func.lower(Tenant.last_name).like(pattern),
                    func.lower(Tenant.email).like(pattern),
                    func.lower(Tenant.document_number).like(pattern),
                )
            )
            .order_by(Tenant.last_name, Tenant.first_name, Tenant.id)
        )
        return self._page(stmt, page, page_size, self._to_dto)

    def count(self, contract_status: TenantContractStatus | str | None = None) -> int:
        stmt = select(func.count()).select_from(Tenant).where(
            Tenant.owner_id == self.owner_id
        )
        if contract_status is not None:
            stmt = stmt.where(
                Tenant.contract_status
                == parse_status(TenantContractStatus, contract_status, "tenant")
            )
        return self.session.execute(stmt).scalar_one()
