"""
Synchronizer -- keeps Tenant and Property consistent with a Contract.

Responsibility:
    Maps a contract status onto the tenant-facing contract status and onto
    the property occupancy status, and applies those mappings to the target
    objects.

Architecture position:
    Kernel > Domain.  The mappings are total, pure functions.  The appliers
    only assign attributes on the objects they are handed; they never query,
    flush or commit.  The calling service persists the result inside its
    own transaction.

Invariants enforced:
    - Tenant.property_id is non-null only while the tenant status is
      IN_PROCESS or ACTIVE.
    - Releasing a tenant or property is always done before applying a
      contract to a newly assigned one, so a reassignment never leaves both
      sides occupied or both sides free.

Failure modes:
    None.  Nothing in this module raises.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID

from lease_kernel.domain.statuses import (
    ContractStatus,
    PropertyStatus,
    TenantContractStatus,
)

if TYPE_CHECKING:
    from lease_kernel.models.property import Property
    from lease_kernel.models.tenant import Tenant


_TENANT_STATUS_BY_CONTRACT: dict[ContractStatus, TenantContractStatus] = {
    ContractStatus.UNSIGNED: TenantContractStatus.IN_PROCESS,
    ContractStatus.IN_PROCESS: TenantContractStatus.IN_PROCESS,
    ContractStatus.SIGNED: TenantContractStatus.ACTIVE,
    ContractStatus.ACTIVE: TenantContractStatus.ACTIVE,
    ContractStatus.EXPIRING_SOON: TenantContractStatus.ACTIVE,
    ContractStatus.FINISHED: TenantContractStatus.FINISHED,
}

_PROPERTY_STATUS_BY_CONTRACT: dict[ContractStatus, PropertyStatus] = {
    ContractStatus.FINISHED: PropertyStatus.AVAILABLE,
    ContractStatus.UNSIGNED: PropertyStatus.RESERVED,
    ContractStatus.IN_PROCESS: PropertyStatus.RESERVED,
    ContractStatus.SIGNED: PropertyStatus.OCCUPIED,
    ContractStatus.ACTIVE: PropertyStatus.OCCUPIED,
    ContractStatus.EXPIRING_SOON: PropertyStatus.OCCUPIED,
}

_TENANT_HOLDS_PROPERTY = frozenset({
    TenantContractStatus.IN_PROCESS,
    TenantContractStatus.ACTIVE,
})


def tenant_status_for(contract_status: ContractStatus | None) -> TenantContractStatus:
    """Tenant-facing status for a contract status (NO_CONTRACT if unmapped)."""
    return _TENANT_STATUS_BY_CONTRACT.get(
        contract_status, TenantContractStatus.NO_CONTRACT
    )


def property_status_for(
    contract_status: ContractStatus | None, current: PropertyStatus
) -> PropertyStatus:
    """Property status for a contract status (``current`` if unmapped)."""
    return _PROPERTY_STATUS_BY_CONTRACT.get(contract_status, current)


def apply_to_tenant(
    tenant: Tenant,
    contract_status: ContractStatus,
    property_id: UUID,
    end_date: date,
) -> None:
    """Mirror a contract onto its tenant."""
    status = tenant_status_for(contract_status)
    tenant.contract_status = status
    tenant.property_id = property_id if status in _TENANT_HOLDS_PROPERTY else None
    tenant.contract_end = (
        end_date if status != TenantContractStatus.NO_CONTRACT else None
    )


def apply_to_property(prop: Property, contract_status: ContractStatus) -> None:
    """Mirror a contract onto its property."""
    prop.status = property_status_for(contract_status, prop.status)


def release_tenant(tenant: Tenant) -> None:
    """Detach a tenant from a contract that no longer references it."""
    tenant.contract_status = TenantContractStatus.NO_CONTRACT
    tenant.property_id = None
    tenant.contract_end = None


def release_property(prop: Property) -> None:
    """Free a property from a contract that no longer references it."""
    prop.status = PropertyStatus.AVAILABLE
