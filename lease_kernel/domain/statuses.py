"""
Statuses -- the closed status enumerations of the four entities.

Every status column is declared with one of these enums, and every status
coming from a caller passes through ``parse_status`` first, so a string
outside the enumeration never reaches storage.
"""

from enum import Enum
from typing import TypeVar

from lease_kernel.exceptions import InvalidStatusError


class PropertyStatus(str, Enum):
    """Occupancy status of a property."""

    AVAILABLE = "available"
    OCCUPIED = "occupied"
    RESERVED = "reserved"
    MAINTENANCE = "maintenance"


class PropertyType(str, Enum):
    APARTMENT = "apartment"
    HOUSE = "house"
    COMMERCIAL = "commercial"
    OFFICE = "office"
    OTHER = "other"


class TenantContractStatus(str, Enum):
    """Tenant-facing mirror of the tenant's latest contract."""

    NO_CONTRACT = "no_contract"
    IN_PROCESS = "in_process"
    ACTIVE = "active"
    FINISHED = "finished"


class ContractStatus(str, Enum):
    """
    Lease contract lifecycle status.

    UNSIGNED -> IN_PROCESS -> SIGNED -> ACTIVE -> EXPIRING_SOON -> FINISHED
    """

    UNSIGNED = "unsigned"
    IN_PROCESS = "in_process"
    SIGNED = "signed"
    ACTIVE = "active"
    EXPIRING_SOON = "expiring_soon"
    FINISHED = "finished"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    LATE = "late"


# Contracts in these states hold the tenant and the property.
OCCUPYING_STATUSES: frozenset[ContractStatus] = frozenset({
    ContractStatus.IN_PROCESS,
    ContractStatus.SIGNED,
    ContractStatus.ACTIVE,
    ContractStatus.EXPIRING_SOON,
})

# Contracts in these states never block another booking of the property.
NON_BLOCKING_STATUSES: frozenset[ContractStatus] = frozenset({
    ContractStatus.FINISHED,
    ContractStatus.UNSIGNED,
})

OUTSTANDING_PAYMENT_STATUSES: frozenset[PaymentStatus] = frozenset({
    PaymentStatus.PENDING,
    PaymentStatus.LATE,
})

E = TypeVar("E", bound=Enum)


def parse_status(enum_cls: type[E], value: "E | str", entity: str) -> E:
    """
    Coerce a caller-supplied status into ``enum_cls``.

    Raises:
        InvalidStatusError: If value is not a member value of the enum.
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidStatusError(
            entity, value, [member.value for member in enum_cls]
        ) from None
