"""Kernel services -- the imperative shell over the pure domain rules."""

from lease_kernel.services.base import BaseService
from lease_kernel.services.contract_service import ContractService
from lease_kernel.services.document_service import (
    DocumentPolicy,
    DocumentService,
    DocumentStore,
    LocalDocumentStore,
)
from lease_kernel.services.lease_orchestrator import LeaseOrchestrator, SweepResult
from lease_kernel.services.payment_service import PaymentService
from lease_kernel.services.property_service import PropertyService
from lease_kernel.services.tenant_service import TenantService

__all__ = [
    "BaseService",
    "PropertyService",
    "TenantService",
    "ContractService",
    "PaymentService",
    "DocumentPolicy",
    "DocumentService",
    "DocumentStore",
    "LocalDocumentStore",
    "LeaseOrchestrator",
    "SweepResult",
]
