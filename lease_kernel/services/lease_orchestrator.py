"""
Lease Orchestrator - one transaction per external action.

The orchestrator ties together:
- IdentityResolver: whose data the action touches
- Property / Tenant / Contract / Payment services: validation and state
- DocumentService: stored files (when a DocumentStore is configured)

Each public method resolves the owner once, builds the services for that
owner, runs the operation and commits.  Any exception rolls back every
change made by the operation, so a contract, its tenant and its property
are always persisted together or not at all.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar
from uuid import UUID
from uuid import uuid4 as _uuid4

from sqlalchemy.orm import Session

from lease_kernel.domain.clock import Clock, SystemClock
from lease_kernel.domain.dtos import ContractInfo, PaymentInfo, PropertyInfo, TenantInfo
from lease_kernel.domain.identity import IdentityResolver
from lease_kernel.domain.lifecycle import DEFAULT_EXPIRING_SOON_DAYS
from lease_kernel.logging_config import LogContext, get_logger
from lease_kernel.services.contract_service import ContractService
from lease_kernel.services.document_service import (
    DocumentPolicy,
    DocumentService,
    DocumentStore,
)
from lease_kernel.services.payment_service import PaymentService
from lease_kernel.services.property_service import PropertyService
from lease_kernel.services.tenant_service import TenantService

logger = get_logger("services.lease_orchestrator")

R = TypeVar("R")


@dataclass(frozen=True)
class SweepResult:
    """Outcome of the scheduled status sweep for one owner."""

    owner_id: UUID
    contracts_changed: int
    payments_changed: int


@dataclass(frozen=True)
class _Services:
    owner_id: UUID
    properties: PropertyService
    tenants: TenantService
    contracts: ContractService
    payments: PaymentService
    documents: DocumentService | None


class LeaseOrchestrator:
    """
    Unit-of-work boundary for lease operations.

    By default every operation commits on success and rolls back on
    failure.  Set auto_commit=False to delegate transaction control to the
    caller (tests, or when several operations must share one transaction).
    """

    def __init__(
        self,
        session: Session,
        identity: IdentityResolver,
        clock: Clock | None = None,
        auto_commit: bool = True,
        expiring_soon_days: int = DEFAULT_EXPIRING_SOON_DAYS,
        document_store: DocumentStore | None = None,
        document_policy: DocumentPolicy | None = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            session: SQLAlchemy session.
            identity: Resolves the owner for each operation.
            clock: Clock for dates and timestamps. Defaults to SystemClock.
            auto_commit: If True (default), commits on success, rolls back
                on failure. If False, the caller manages the transaction.
            expiring_soon_days: Final contract window reported as
                EXPIRING_SOON.
            document_store: Storage for uploads; attach_* operations need it.
            document_policy: Upload limits (defaults to DocumentPolicy()).
        """
        self._session = session
        self._identity = identity
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit
        self._expiring_soon_days = expiring_soon_days
        self._document_store = document_store
        self._document_policy = document_policy

    def _services(self) -> _Services:
        owner_id = self._identity.current_owner()
        documents = None
        if self._document_store is not None:
            documents = DocumentService(
                self._session,
                owner_id,
                self._document_store,
                self._document_policy,
                self._clock,
            )
        return _Services(
            owner_id=owner_id,
            properties=PropertyService(self._session, owner_id, self._clock),
            tenants=TenantService(self._session, owner_id, self._clock),
            contracts=ContractService(
                self._session, owner_id, self._clock, self._expiring_soon_days
            ),
            payments=PaymentService(self._session, owner_id, self._clock),
            documents=documents,
        )

    def _run(
        self,
        operation: str,
        action: Callable[[_Services], R],
        entity_id: UUID | None = None,
    ) -> R:
        """Run ``action`` as one transaction with a bound log context."""
        services = self._services()
        with LogContext.bind(
            correlation_id=str(_uuid4()),
            owner_id=str(services.owner_id),
            operation=operation,
            entity_id=str(entity_id) if entity_id is not None else None,
        ):
            t0 = time.monotonic()
            try:
                result = action(services)
                if self._auto_commit:
                    self._session.commit()
            except Exception:
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                if self._auto_commit:
                    self._session.rollback()
                logger.error(
                    "operation_failed", extra={"duration_ms": duration_ms}, exc_info=True
                )
                raise

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info("operation_completed", extra={"duration_ms": duration_ms})
            return result

    # Properties

    def create_property(self, *args, **kwargs) -> PropertyInfo:
        """See PropertyService.create_property."""
        return self._run(
            "create_property", lambda s: s.properties.create_property(*args, **kwargs)
        )

    def update_property(self, property_id: UUID, **changes) -> PropertyInfo:
        return self._run(
            "update_property",
            lambda s: s.properties.update_property(property_id, **changes),
            property_id,
        )

    def delete_property(self, property_id: UUID) -> None:
        self._run(
            "delete_property",
            lambda s: s.properties.delete_property(property_id),
            property_id,
        )

    # Tenants

    def create_tenant(self, *args, **kwargs) -> TenantInfo:
        """See TenantService.create_tenant."""
        return self._run(
            "create_tenant", lambda s: s.tenants.create_tenant(*args, **kwargs)
        )

    def update_tenant(self, tenant_id: UUID, **changes) -> TenantInfo:
        return self._run(
            "update_tenant",
            lambda s: s.tenants.update_tenant(tenant_id, **changes),
            tenant_id,
        )

    def delete_tenant(self, tenant_id: UUID) -> None:
        self._run(
            "delete_tenant", lambda s: s.tenants.delete_tenant(tenant_id), tenant_id
        )

    # Contracts

    def create_contract(self, *args, **kwargs) -> ContractInfo:
        """See ContractService.create_contract."""
        return self._run(
            "create_contract", lambda s: s.contracts.create_contract(*args, **kwargs)
        )

    def update_contract(self, contract_id: UUID, **changes) -> ContractInfo:
        return self._run(
            "update_contract",
            lambda s: s.contracts.update_contract(contract_id, **changes),
            contract_id,
        )

    def transition_contract(self, contract_id: UUID, status) -> ContractInfo:
        return self._run(
            "transition_contract",
            lambda s: s.contracts.transition(contract_id, status),
            contract_id,
        )

    def sign_contract(self, contract_id: UUID) -> ContractInfo:
        return self._run(
            "sign_contract", lambda s: s.contracts.sign(contract_id), contract_id
        )

    def finalize_contract(self, contract_id: UUID) -> ContractInfo:
        return self._run(
            "finalize_contract", lambda s: s.contracts.finalize(contract_id), contract_id
        )

    def delete_contract(self, contract_id: UUID) -> None:
        self._run(
            "delete_contract",
            lambda s: s.contracts.delete_contract(contract_id),
            contract_id,
        )

    # Payments

    def create_payment(self, *args, **kwargs) -> PaymentInfo:
        """See PaymentService.create_payment."""
        return self._run(
            "create_payment", lambda s: s.payments.create_payment(*args, **kwargs)
        )

    def update_payment(self, payment_id: UUID, **changes) -> PaymentInfo:
        return self._run(
            "update_payment",
            lambda s: s.payments.update_payment(payment_id, **changes),
            payment_id,
        )

    def register_payment(self, payment_id: UUID, **kwargs) -> PaymentInfo:
        return self._run(
            "register_payment",
            lambda s: s.payments.register_payment(payment_id, **kwargs),
            payment_id,
        )

    def delete_payment(self, payment_id: UUID) -> None:
        self._run(
            "delete_payment", lambda s: s.payments.delete_payment(payment_id), payment_id
        )

    # Documents

    def attach_contract_document(
        self, contract_id: UUID, data: bytes, content_type: str
    ) -> ContractInfo:
        return self._run(
            "attach_contract_document",
            lambda s: self._documents(s).attach_contract_document(
                contract_id, data, content_type
            ),
            contract_id,
        )

    def attach_payment_receipt(
        self, payment_id: UUID, data: bytes, content_type: str
    ) -> PaymentInfo:
        return self._run(
            "attach_payment_receipt",
            lambda s: self._documents(s).attach_payment_receipt(
                payment_id, data, content_type
            ),
            payment_id,
        )

    @staticmethod
    def _documents(services: _Services) -> DocumentService:
        if services.documents is None:
            raise RuntimeError("No document store configured for this orchestrator")
        return services.documents

    # Sweep

    def run_status_sweep(self) -> SweepResult:
        """
        Recompute contract statuses and re-derive payment statuses for the
        current owner, in one transaction.
        """
        def sweep(s: _Services) -> SweepResult:
            return SweepResult(
                owner_id=s.owner_id,
                contracts_changed=s.contracts.recompute_all(),
                payments_changed=s.payments.refresh_statuses(),
            )

        return self._run("status_sweep", sweep)
