"""
ContractService -- lease contract lifecycle, overlap protection and sync.

Responsibility:
    Creates, updates, transitions, signs, finalizes and deletes lease
    contracts.  Every mutation validates its input, checks the property for
    overlapping bookings, recomputes the status from the calendar and
    mirrors the result onto the contract's tenant and property through the
    Synchronizer.

Architecture position:
    Kernel > Services -- imperative shell around ``domain.lifecycle`` and
    ``domain.synchronizer``.  Called by LeaseOrchestrator, by the property
    and tenant cascades, and by the scheduled sweep.

Invariants enforced:
    - Per property, no two contracts outside {FINISHED, UNSIGNED} overlap.
      The check and the write run under ``SELECT ... FOR UPDATE`` on the
      property row, so concurrent bookings of one property serialize.
    - Everything is validated and looked up before anything is mutated; a
      rejected operation leaves no partial writes in the session.
    - FINISHED is terminal for recompute and for explicit transitions.
    - A tenant mirrors its most recent contract.  A property is driven by
      an occupying contract when one exists, and is AVAILABLE otherwise.
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - ContractNotFoundError / TenantNotFoundError / PropertyNotFoundError:
      unknown id or a row of another owner.
    - InvalidDateRangeError, MissingDateError, InvalidAmountError,
      InvalidStatusError: malformed input.
    - ContractOverlapError: the property is already booked for an
      intersecting range.
    - InvalidTransitionError, ContractAlreadySignedError: explicit status
      change not allowed from the current status.
"""

from datetime import date, timedelta
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from lease_kernel.domain import synchronizer
from lease_kernel.domain.clock import Clock
from lease_kernel.domain.dtos import ContractInfo, Page
from lease_kernel.domain.lifecycle import (
    DEFAULT_EXPIRING_SOON_DAYS,
    can_transition,
    overlap_window,
    recompute_contract_status,
)
from lease_kernel.domain.statuses import (
    NON_BLOCKING_STATUSES,
    OCCUPYING_STATUSES,
    ContractStatus,
    parse_status,
)
from lease_kernel.exceptions import (
    ContractAlreadySignedError,
    ContractNotFoundError,
    ContractOverlapError,
    InvalidDateRangeError,
    InvalidTransitionError,
    PropertyNotFoundError,
    TenantNotFoundError,
)
from lease_kernel.logging_config import get_logger
from lease_kernel.models.contract import Contract
from lease_kernel.models.property import Property
from lease_kernel.models.tenant import Tenant
from lease_kernel.services.base import (
    DEFAULT_PAGE_SIZE,
    BaseService,
    require_date,
    require_positive_amount,
)

logger = get_logger("services.contract")

# Statuses reported by list_expiring()
_EXPIRING_CANDIDATES = (
    ContractStatus.SIGNED,
    ContractStatus.ACTIVE,
    ContractStatus.EXPIRING_SOON,
)


class ContractService(BaseService[Contract]):
    """
    Service for the lease contract lifecycle.

    Contract:
        Accepts ids and plain values, returns frozen ``ContractInfo`` DTOs.
        Mutations flush within the caller's transaction.

    Guarantees:
        - ``create_contract``, ``update_contract``, ``transition`` and
          ``sign`` recompute the status and synchronize tenant and property
          before returning.
        - ``finalize`` always leaves the contract FINISHED.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT generate or store contract documents; only the URL.
    """

    def __init__(
        self,
        session: Session,
        owner_id: UUID,
        clock: Clock | None = None,
        expiring_soon_days: int = DEFAULT_EXPIRING_SOON_DAYS,
    ):
        super().__init__(session, owner_id, clock)
        self.expiring_soon_days = expiring_soon_days

    def _to_dto(self, contract: Contract) -> ContractInfo:
        return ContractInfo.from_model(contract, self.clock.today())

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _get_contract(self, contract_id: UUID, for_update: bool = False) -> Contract:
        return self._get_owned(
            Contract, contract_id, ContractNotFoundError, for_update=for_update
        )

    def _get_tenant(self, tenant_id: UUID) -> Tenant:
        return self._get_owned(Tenant, tenant_id, TenantNotFoundError)

    def _lock_property(self, property_id: UUID) -> Property:
        """Load the property row with ``FOR UPDATE`` (no-op lock on SQLite)."""
        return self._get_owned(
            Property, property_id, PropertyNotFoundError, for_update=True
        )

    def _lock_properties(self, *property_ids: UUID) -> dict[UUID, Property]:
        """Lock several property rows in a stable order."""
        locked: dict[UUID, Property] = {}
        for property_id in sorted(set(property_ids), key=str):
            locked[property_id] = self._lock_property(property_id)
        return locked

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_range(start_date: date | None, end_date: date | None) -> None:
        start = require_date("start_date", start_date)
        end = require_date("end_date", end_date)
        if end <= start:
            raise InvalidDateRangeError(str(start), str(end))

    def _validate_no_overlap(
        self,
        property_id: UUID,
        start_date: date,
        end_date: date,
        exclude_id: UUID | None = None,
    ) -> None:
        """
        Reject the range if another blocking contract on the property
        intersects it.

        Two ranges overlap if: start1 <= end2 AND start2 <= end1

        Raises:
            ContractOverlapError: If overlap is detected.
        """
        stmt = select(Contract).where(
            Contract.property_id == property_id,
            Contract.status.not_in(list(NON_BLOCKING_STATUSES)),
            Contract.start_date <= end_date,
            Contract.end_date >= start_date,
        )
        if exclude_id is not None:
            stmt = stmt.where(Contract.id != exclude_id)

        overlapping = self.session.execute(
            stmt.order_by(Contract.start_date).limit(1)
        ).scalar_one_or_none()

        if overlapping is not None:
            overlap_start, overlap_end = overlap_window(
                start_date, end_date, overlapping.start_date, overlapping.end_date
            )
            logger.warning(
                "contract_overlap_rejected",
                extra={
                    "property_id": str(property_id),
                    "existing_contract_id": str(overlapping.id),
                    "overlap_start": str(overlap_start),
                    "overlap_end": str(overlap_end),
                },
            )
            raise ContractOverlapError(
                property_id=str(property_id),
                existing_contract_id=str(overlapping.id),
                overlap_start=str(overlap_start),
                overlap_end=str(overlap_end),
            )

    # ------------------------------------------------------------------
    # Synchronization
    # ------------------------------------------------------------------

    def _recompute(self, status: ContractStatus, contract: Contract) -> ContractStatus:
        return recompute_contract_status(
            status,
            contract.start_date,
            contract.end_date,
            self.clock.today(),
            self.expiring_soon_days,
        )

    def _is_latest_for_tenant(self, contract: Contract) -> bool:
        latest_id = self.session.execute(
            select(Contract.id)
            .where(Contract.tenant_id == contract.tenant_id)
            .order_by(Contract.start_date.desc(), Contract.created_at.desc())
            .limit(1)
        ).scalar_one_or_none()
        return latest_id is None or latest_id == contract.id

    def _occupying_contract(
        self, property_id: UUID, exclude_id: UUID | None = None
    ) -> Contract | None:
        stmt = select(Contract).where(
            Contract.property_id == property_id,
            Contract.status.in_(list(OCCUPYING_STATUSES)),
        )
        if exclude_id is not None:
            stmt = stmt.where(Contract.id != exclude_id)
        return self.session.execute(
            stmt.order_by(Contract.start_date.desc()).limit(1)
        ).scalar_one_or_none()

    def _sync(self, contract: Contract, tenant: Tenant, prop: Property) -> None:
        """Mirror ``contract`` onto its tenant and property."""
        if self._is_latest_for_tenant(contract):
            synchronizer.apply_to_tenant(
                tenant, contract.status, contract.property_id, contract.end_date
            )
            self._touch(tenant)

        if (
            contract.status in OCCUPYING_STATUSES
            or self._occupying_contract(prop.id, exclude_id=contract.id) is None
        ):
            synchronizer.apply_to_property(prop, contract.status)
            self._touch(prop)

    def _resync_tenant(self, tenant: Tenant, exclude_id: UUID | None = None) -> None:
        """Re-derive a tenant from its most recent remaining contract."""
        stmt = select(Contract).where(Contract.tenant_id == tenant.id)
        if exclude_id is not None:
            stmt = stmt.where(Contract.id != exclude_id)
        latest = self.session.execute(
            stmt.order_by(Contract.start_date.desc(), Contract.created_at.desc()).limit(1)
        ).scalar_one_or_none()

        if latest is None:
            synchronizer.release_tenant(tenant)
        else:
            synchronizer.apply_to_tenant(
                tenant, latest.status, latest.property_id, latest.end_date
            )
        self._touch(tenant)

    def _resync_property(self, prop: Property, exclude_id: UUID | None = None) -> None:
        """Re-derive a property from its remaining occupying contract."""
        occupying = self._occupying_contract(prop.id, exclude_id=exclude_id)
        if occupying is None:
            synchronizer.release_property(prop)
        else:
            synchronizer.apply_to_property(prop, occupying.status)
        self._touch(prop)

    def _set_status(self, contract: Contract, status: ContractStatus) -> None:
        previous = contract.status
        contract.status = status
        if previous != status:
            logger.info(
                "contract_status_changed",
                extra={
                    "contract_id": str(contract.id),
                    "from_status": previous.value if previous else None,
                    "to_status": status.value,
                },
            )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create_contract(
        self,
        tenant_id: UUID,
        property_id: UUID,
        start_date: date,
        end_date: date,
        monthly_rent,
        status: ContractStatus | str | None = None,
        document_url: str | None = None,
    ) -> ContractInfo:
        """
        Create a contract and bind its tenant and property to it.

        Args:
            tenant_id: Tenant of this owner.
            property_id: Property of this owner.
            start_date: First day of the lease (inclusive).
            end_date: Last day of the lease (inclusive), after start_date.
            monthly_rent: Positive amount.
            status: Initial status (defaults to UNSIGNED).
            document_url: Optional URL of the signed document.

        Returns:
            ContractInfo DTO.

        Raises:
            ContractOverlapError: If the property is already booked.
        """
        self._validate_range(start_date, end_date)
        rent = require_positive_amount("monthly_rent", monthly_rent)
        initial = (
            parse_status(ContractStatus, status, "contract")
            if status is not None
            else ContractStatus.UNSIGNED
        )

        tenant = self._get_tenant(tenant_id)
        prop = self._lock_property(property_id)

        if initial != ContractStatus.FINISHED:
            self._validate_no_overlap(prop.id, start_date, end_date)

        contract = Contract(
            tenant_id=tenant.id,
            property_id=prop.id,
            start_date=start_date,
            end_date=end_date,
            monthly_rent=rent,
            document_url=document_url,
        )
        contract.status = recompute_contract_status(
            initial, start_date, end_date, self.clock.today(), self.expiring_soon_days
        )
        self._stamp_created(contract)
        self.session.add(contract)
        self.session.flush()

        self._sync(contract, tenant, prop)
        self.session.flush()

        logger.info(
            "contract_created",
            extra={
                "contract_id": str(contract.id),
                "tenant_id": str(tenant.id),
                "property_id": str(prop.id),
                "start_date": str(start_date),
                "end_date": str(end_date),
                "status": contract.status.value,
            },
        )
        return self._to_dto(contract)

    def update_contract(
        self,
        contract_id: UUID,
        tenant_id: UUID | None = None,
        property_id: UUID | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        monthly_rent=None,
        status: ContractStatus | str | None = None,
        document_url: str | None = None,
    ) -> ContractInfo:
        """
        Partially update a contract.

        Reassigning the tenant or property releases the previous one before
        the contract is mirrored onto the new one.  An explicit status goes
        through the transition table.

        Raises:
            InvalidTransitionError: If the explicit status is not reachable.
            ContractOverlapError: If the new range or property is booked.
        """
        contract = self._get_contract(contract_id, for_update=True)

        new_tenant_id = tenant_id if tenant_id is not None else contract.tenant_id
        new_property_id = property_id if property_id is not None else contract.property_id
        new_start = start_date if start_date is not None else contract.start_date
        new_end = end_date if end_date is not None else contract.end_date
        self._validate_range(new_start, new_end)

        rent = (
            require_positive_amount("monthly_rent", monthly_rent)
            if monthly_rent is not None
            else contract.monthly_rent
        )

        target = contract.status
        if status is not None:
            target = parse_status(ContractStatus, status, "contract")
            if not can_transition(contract.status, target):
                raise InvalidTransitionError(
                    str(contract.id), contract.status.value, target.value
                )

        tenant_changed = new_tenant_id != contract.tenant_id
        property_changed = new_property_id != contract.property_id
        range_changed = (
            new_start != contract.start_date or new_end != contract.end_date
        )
        leaves_unsigned = (
            contract.status == ContractStatus.UNSIGNED
            and target != ContractStatus.UNSIGNED
        )

        # Every lookup and check happens before the first mutation
        new_tenant = self._get_tenant(new_tenant_id)
        old_tenant = self._get_tenant(contract.tenant_id) if tenant_changed else None
        locked = self._lock_properties(contract.property_id, new_property_id)
        new_prop = locked[new_property_id]
        old_prop = locked[contract.property_id] if property_changed else None

        if target != ContractStatus.FINISHED and (
            property_changed or range_changed or leaves_unsigned
        ):
            self._validate_no_overlap(
                new_property_id, new_start, new_end, exclude_id=contract.id
            )

        contract.tenant_id = new_tenant.id
        contract.property_id = new_prop.id
        contract.start_date = new_start
        contract.end_date = new_end
        contract.monthly_rent = rent
        if document_url is not None:
            contract.document_url = document_url
        self._set_status(contract, self._recompute(target, contract))
        self._touch(contract)
        self.session.flush()

        if old_tenant is not None:
            self._resync_tenant(old_tenant)
        if old_prop is not None:
            self._resync_property(old_prop)
        self._sync(contract, new_tenant, new_prop)
        self.session.flush()

        if tenant_changed or property_changed:
            logger.info(
                "contract_reassigned",
                extra={
                    "contract_id": str(contract.id),
                    "tenant_id": str(new_tenant.id),
                    "property_id": str(new_prop.id),
                },
            )
        logger.info("contract_updated", extra={"contract_id": str(contract.id)})
        return self._to_dto(contract)

    def transition(
        self, contract_id: UUID, status: ContractStatus | str
    ) -> ContractInfo:
        """
        Explicitly move a contract to ``status``.

        Staying in the current status is a no-op.  FINISHED is delegated to
        ``finalize``.

        Raises:
            InvalidStatusError: If status is not a ContractStatus value.
            InvalidTransitionError: If the move is not in the table.
        """
        target = parse_status(ContractStatus, status, "contract")
        contract = self._get_contract(contract_id, for_update=True)

        if target == contract.status:
            return self._to_dto(contract)
        if not can_transition(contract.status, target):
            raise InvalidTransitionError(
                str(contract.id), contract.status.value, target.value
            )
        if target == ContractStatus.FINISHED:
            return self.finalize(contract_id)

        tenant = self._get_tenant(contract.tenant_id)
        prop = self._lock_property(contract.property_id)
        if contract.status == ContractStatus.UNSIGNED:
            self._validate_no_overlap(
                prop.id, contract.start_date, contract.end_date, exclude_id=contract.id
            )

        self._set_status(contract, self._recompute(target, contract))
        self._touch(contract)
        self.session.flush()

        self._sync(contract, tenant, prop)
        self.session.flush()
        return self._to_dto(contract)

    def sign(self, contract_id: UUID) -> ContractInfo:
        """
        Sign an UNSIGNED contract, making it ACTIVE (then recomputed).

        Raises:
            ContractAlreadySignedError: If the contract is not UNSIGNED.
            ContractOverlapError: If signing would double-book the property.
        """
        contract = self._get_contract(contract_id, for_update=True)
        if contract.status != ContractStatus.UNSIGNED:
            raise ContractAlreadySignedError(str(contract.id), contract.status.value)

        tenant = self._get_tenant(contract.tenant_id)
        prop = self._lock_property(contract.property_id)
        self._validate_no_overlap(
            prop.id, contract.start_date, contract.end_date, exclude_id=contract.id
        )

        self._set_status(contract, self._recompute(ContractStatus.ACTIVE, contract))
        self._touch(contract)
        self.session.flush()

        self._sync(contract, tenant, prop)
        self.session.flush()

        logger.info(
            "contract_signed",
            extra={"contract_id": str(contract.id), "status": contract.status.value},
        )
        return self._to_dto(contract)

    def finalize(self, contract_id: UUID) -> ContractInfo:
        """
        Finish a contract regardless of its current status.

        Postconditions:
            - Contract status is FINISHED.
            - Tenant is FINISHED with its property reference cleared.
            - Property is AVAILABLE unless another contract occupies it.
        """
        contract = self._get_contract(contract_id, for_update=True)
        tenant = self._get_tenant(contract.tenant_id)
        prop = self._lock_property(contract.property_id)

        self._set_status(contract, ContractStatus.FINISHED)
        self._touch(contract)
        self.session.flush()

        self._sync(contract, tenant, prop)
        self.session.flush()

        logger.info("contract_finalized", extra={"contract_id": str(contract.id)})
        return self._to_dto(contract)

    def delete_contract(self, contract_id: UUID) -> None:
        """
        Delete a contract.

        When the contract was occupying (IN_PROCESS, SIGNED, ACTIVE,
        EXPIRING_SOON) its tenant and property are reverted in the same
        transaction.  An UNSIGNED contract gives back what it reserved: the
        tenant when it was the tenant's latest contract, the property when
        no other contract occupies it.  Deleting a FINISHED contract leaves
        both untouched.
        """
        contract = self._get_contract(contract_id, for_update=True)
        was_occupying = contract.status in OCCUPYING_STATUSES
        release_tenant = was_occupying
        release_property = was_occupying
        if contract.status == ContractStatus.UNSIGNED:
            release_tenant = self._is_latest_for_tenant(contract)
            release_property = (
                self._occupying_contract(contract.property_id, exclude_id=contract.id)
                is None
            )

        tenant = self._get_tenant(contract.tenant_id) if release_tenant else None
        prop = self._lock_property(contract.property_id) if release_property else None

        self.session.delete(contract)
        self.session.flush()

        if tenant is not None:
            self._resync_tenant(tenant)
        if prop is not None:
            self._resync_property(prop)
        self.session.flush()

        logger.info(
            "contract_deleted",
            extra={
                "contract_id": str(contract_id),
                "reverted": release_tenant or release_property,
            },
        )

    def recompute(self, contract_id: UUID) -> ContractInfo:
        """Recompute one contract's status from today's date and sync it."""
        contract = self._get_contract(contract_id, for_update=True)
        self._apply_recompute(contract)
        self.session.flush()
        return self._to_dto(contract)

    def recompute_all(self) -> int:
        """
        Scheduled sweep over the owner's non-terminal contracts.

        Returns:
            Number of contracts whose status changed.
        """
        contracts = self.session.execute(
            self._owned(Contract)
            .where(Contract.status.not_in(list(NON_BLOCKING_STATUSES)))
            .order_by(Contract.start_date)
        ).scalars().all()

        changed = sum(1 for contract in contracts if self._apply_recompute(contract))
        self.session.flush()

        logger.info(
            "contracts_recomputed",
            extra={"examined": len(contracts), "changed": changed},
        )
        return changed

    def _apply_recompute(self, contract: Contract) -> bool:
        new_status = self._recompute(contract.status, contract)
        if new_status == contract.status:
            return False

        self._set_status(contract, new_status)
        self._touch(contract)
        self.session.flush()
        self._sync(
            contract,
            self._get_tenant(contract.tenant_id),
            self._lock_property(contract.property_id),
        )
        return True

    def set_document_url(self, contract_id: UUID, url: str | None) -> ContractInfo:
        """Attach (or clear, with None) the contract document URL."""
        contract = self._get_contract(contract_id)
        contract.document_url = url
        self._touch(contract)
        self.session.flush()
        return self._to_dto(contract)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, contract_id: UUID) -> ContractInfo:
        """
        Get a contract by id.

        Raises:
            ContractNotFoundError: If unknown or owned by someone else.
        """
        return self._to_dto(self._get_contract(contract_id))

    def list_contracts(
        self,
        status: ContractStatus | str | None = None,
        page: int = 0,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Page[ContractInfo]:
        stmt = self._owned(Contract)
        if status is not None:
            stmt = stmt.where(
                Contract.status == parse_status(ContractStatus, status, "contract")
            )
        stmt = stmt.order_by(Contract.start_date.desc(), Contract.id)
        return self._page(stmt, page, page_size, self._to_dto)

    def search(
        self, text: str, page: int = 0, page_size: int = DEFAULT_PAGE_SIZE
    ) -> Page[ContractInfo]:
        """Case-insensitive match on tenant name or property name."""
        pattern = f"%{text.strip().lower()}%"
        stmt = (
            self._owned(Contract)
            .join(Tenant, Tenant.id == Contract.tenant_id)
            .join(Property, Property.id == Contract.property_id)
            .where(
                or_(
                    func.lower(Tenant.first_name).like(pattern),
                    func.lower(Tenant.last_name).like(pattern),
                    func.lower(Property.name).like(pattern),
                )
            )
            .order_by(Contract.start_date.desc(), Contract.id)
        )
        return self._page(stmt, page, page_size, self._to_dto)

    def list_by_tenant(self, tenant_id: UUID) -> list[ContractInfo]:
        rows = self.session.execute(
            self._owned(Contract)
            .where(Contract.tenant_id == tenant_id)
            .order_by(Contract.start_date.desc())
        ).scalars().all()
        return [self._to_dto(row) for row in rows]

    def list_by_property(self, property_id: UUID) -> list[ContractInfo]:
        rows = self.session.execute(
            self._owned(Contract)
            .where(Contract.property_id == property_id)
            .order_by(Contract.start_date.desc())
        ).scalars().all()
        return [self._to_dto(row) for row in rows]

    def list_expiring(self, days: int | None = None) -> list[ContractInfo]:
        """Signed or running contracts ending within ``days`` from today."""
        window = self.expiring_soon_days if days is None else days
        today = self.clock.today()
        rows = self.session.execute(
            self._owned(Contract)
            .where(
                Contract.status.in_(list(_EXPIRING_CANDIDATES)),
                Contract.end_date >= today,
                Contract.end_date <= today + timedelta(days=window),
            )
            .order_by(Contract.end_date)
        ).scalars().all()
        return [self._to_dto(row) for row in rows]

    def count(self, status: ContractStatus | str | None = None) -> int:
        stmt = select(func.count()).select_from(Contract).where(
            Contract.owner_id == self.owner_id
        )
        if status is not None:
            stmt = stmt.where(
                Contract.status == parse_status(ContractStatus, status, "contract")
            )
        return self.session.execute(stmt).scalar_one()
