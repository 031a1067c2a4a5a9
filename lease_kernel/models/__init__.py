"""ORM models.  Importing this package registers every table on Base.metadata."""

from lease_kernel.models.contract import Contract
from lease_kernel.models.payment import Payment
from lease_kernel.models.property import Property
from lease_kernel.models.tenant import Tenant

__all__ = [
    "Property",
    "Tenant",
    "Contract",
    "Payment",
]
