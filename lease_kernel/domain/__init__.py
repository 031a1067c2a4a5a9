"""
Domain layer -- pure rules, statuses, DTOs and the injectable clock.

Nothing in this package performs I/O or touches a session.
"""

from lease_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from lease_kernel.domain.dtos import (
    ContractInfo,
    DashboardStats,
    Page,
    PaymentInfo,
    PropertyInfo,
    TenantInfo,
)
from lease_kernel.domain.identity import FixedIdentity, IdentityResolver
from lease_kernel.domain.statuses import (
    ContractStatus,
    PaymentStatus,
    PropertyStatus,
    PropertyType,
    TenantContractStatus,
)

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "IdentityResolver",
    "FixedIdentity",
    "ContractStatus",
    "PaymentStatus",
    "PropertyStatus",
    "PropertyType",
    "TenantContractStatus",
    "PropertyInfo",
    "TenantInfo",
    "ContractInfo",
    "PaymentInfo",
    "Page",
    "DashboardStats",
]
