"""
Typed Exception Hierarchy for the Lease Kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from LeaseKernelError and fall into exactly one of
four kinds.  The kind decides how an outer layer (HTTP, CLI) reports it:

    LeaseKernelError (base)
    |
    +-- NotFoundError                  entity absent OR owned by another user
    |   +-- PropertyNotFoundError
    |   +-- TenantNotFoundError
    |   +-- ContractNotFoundError
    |   +-- PaymentNotFoundError
    |
    +-- ValidationError                malformed input
    |   +-- MissingFieldError
    |   +-- InvalidAmountError
    |   +-- MissingDateError
    |   +-- InvalidDateRangeError
    |   +-- InvalidStatusError
    |   +-- InvalidPeriodError
    |   +-- DocumentRejectedError
    |
    +-- ConflictError                  input collides with stored state
    |   +-- ContractOverlapError
    |   +-- DuplicateTenantError
    |
    +-- InvalidStateError              transition forbidden from current state
        +-- InvalidTransitionError
        +-- ContractAlreadySignedError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Kind            | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Not found       | PROPERTY_NOT_FOUND          | Property id unknown for this owner
                | TENANT_NOT_FOUND            | Tenant id unknown for this owner
                | CONTRACT_NOT_FOUND          | Contract id unknown for this owner
                | PAYMENT_NOT_FOUND           | Payment id unknown for this owner
----------------|-----------------------------|-----------------------------------------
Validation      | MISSING_FIELD               | Required text field empty or missing
                | INVALID_AMOUNT              | Rent or payment amount <= 0 / missing
                | MISSING_DATE                | Required date not supplied
                | INVALID_DATE_RANGE          | Contract end_date <= start_date
                | INVALID_STATUS              | Status string outside the closed enum
                | INVALID_PERIOD              | Reporting month or year out of range
                | DOCUMENT_REJECTED           | Upload too large or wrong MIME type
----------------|-----------------------------|-----------------------------------------
Conflict        | CONTRACT_OVERLAP            | Property already booked for the range
                | DUPLICATE_TENANT            | Email/document already used by owner
----------------|-----------------------------|-----------------------------------------
Invalid state   | INVALID_TRANSITION          | Explicit status move not allowed
                | CONTRACT_ALREADY_SIGNED     | sign() on a contract that is not unsigned

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        orchestrator.create_contract(...)
    except ContractOverlapError as e:
        return {"error": e.code, "conflicting": str(e.existing_contract_id)}
    except LeaseKernelError as e:
        return {"error": e.code}, HTTP_STATUS_BY_KIND[e.kind]

No error is ever downgraded to a "closest valid" value: the operation that
detects it aborts, and the enclosing transaction rolls back.
"""


class LeaseKernelError(Exception):
    """
    Base exception for all lease kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    identification and a `kind` naming their taxonomy group.
    """

    code: str = "LEASE_KERNEL_ERROR"
    kind: str = "error"


# Not found


class NotFoundError(LeaseKernelError):
    """Entity does not exist or belongs to a different owner."""

    code: str = "NOT_FOUND"
    kind: str = "not_found"

    entity_name: str = "Entity"

    def __init__(self, entity_id: str):
        self.entity_id = entity_id
        super().__init__(f"{self.entity_name} not found: {entity_id}")


class PropertyNotFoundError(NotFoundError):
    code: str = "PROPERTY_NOT_FOUND"
    entity_name = "Property"


class TenantNotFoundError(NotFoundError):
    code: str = "TENANT_NOT_FOUND"
    entity_name = "Tenant"


class ContractNotFoundError(NotFoundError):
    code: str = "CONTRACT_NOT_FOUND"
    entity_name = "Contract"


class PaymentNotFoundError(NotFoundError):
    code: str = "PAYMENT_NOT_FOUND"
    entity_name = "Payment"


# Validation


class ValidationError(LeaseKernelError):
    """Base exception for malformed input."""

    code: str = "VALIDATION_ERROR"
    kind: str = "validation"


class MissingFieldError(ValidationError):
    """A required text field was not supplied or is blank."""

    code: str = "MISSING_FIELD"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"{field} is required")


class InvalidAmountError(ValidationError):
    """Monetary amount missing or not strictly positive."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, field: str, amount: object):
        self.field = field
        self.amount = amount
        super().__init__(f"{field} must be a positive amount (got {amount})")


class MissingDateError(ValidationError):
    """A required date was not supplied."""

    code: str = "MISSING_DATE"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"{field} is required")


class InvalidDateRangeError(ValidationError):
    """Contract end date does not fall after its start date."""

    code: str = "INVALID_DATE_RANGE"

    def __init__(self, start_date: str, end_date: str):
        self.start_date = start_date
        self.end_date = end_date
        super().__init__(
            f"end_date ({end_date}) must be after start_date ({start_date})"
        )


class InvalidStatusError(ValidationError):
    """Status value is not a member of the closed status enumeration."""

    code: str = "INVALID_STATUS"

    def __init__(self, entity: str, status: object, allowed: list[str]):
        self.entity = entity
        self.status = status
        self.allowed = allowed
        super().__init__(
            f"Invalid {entity} status: {status!r} "
            f"(allowed: {', '.join(allowed)})"
        )


class InvalidPeriodError(ValidationError):
    """Reporting month or year outside the calendar."""

    code: str = "INVALID_PERIOD"

    def __init__(self, month: int, year: int):
        self.month = month
        self.year = year
        super().__init__(f"Invalid reporting period: month {month}, year {year}")


class DocumentRejectedError(ValidationError):
    """Uploaded document failed the size or content-type check."""

    code: str = "DOCUMENT_REJECTED"

    def __init__(self, folder: str, reason: str):
        self.folder = folder
        self.reason = reason
        super().__init__(f"Document rejected for {folder}: {reason}")


# Conflict


class ConflictError(LeaseKernelError):
    """Base exception for input that collides with stored state."""

    code: str = "CONFLICT"
    kind: str = "conflict"


class ContractOverlapError(ConflictError):
    """
    Property is already booked by another contract for an intersecting range.

    Two ranges overlap if: max(start1, start2) <= min(end1, end2)
    """

    code: str = "CONTRACT_OVERLAP"

    def __init__(
        self,
        property_id: str,
        existing_contract_id: str,
        overlap_start: str,
        overlap_end: str,
    ):
        self.property_id = property_id
        self.existing_contract_id = existing_contract_id
        self.overlap_start = overlap_start
        self.overlap_end = overlap_end
        super().__init__(
            f"Property {property_id} is already under contract "
            f"{existing_contract_id} ({overlap_start} to {overlap_end})"
        )


class DuplicateTenantError(ConflictError):
    """Another tenant of the same owner already uses this email or document."""

    code: str = "DUPLICATE_TENANT"

    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(f"A tenant with {field} {value!r} already exists")


# Invalid state


class InvalidStateError(LeaseKernelError):
    """Base exception for transitions forbidden from the current state."""

    code: str = "INVALID_STATE"
    kind: str = "invalid_state"


class InvalidTransitionError(InvalidStateError):
    """Explicit contract status change not permitted by the state machine."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, contract_id: str, from_status: str, to_status: str):
        self.contract_id = contract_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Contract {contract_id} cannot move from {from_status} to {to_status}"
        )


class ContractAlreadySignedError(InvalidStateError):
    """sign() called on a contract that is no longer unsigned."""

    code: str = "CONTRACT_ALREADY_SIGNED"

    def __init__(self, contract_id: str, status: str):
        self.contract_id = contract_id
        self.status = status
        super().__init__(
            f"Contract {contract_id} cannot be signed from status {status}"
        )


# Status an outer HTTP layer reports for each kind.
HTTP_STATUS_BY_KIND: dict[str, int] = {
    NotFoundError.kind: 404,
    ValidationError.kind: 400,
    ConflictError.kind: 409,
    InvalidStateError.kind: 409,
    LeaseKernelError.kind: 500,
}
