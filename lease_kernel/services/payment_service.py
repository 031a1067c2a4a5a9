"""
PaymentService -- rent payment lifecycle.

Responsibility:
    Records rent instalments, registers their settlement and keeps each
    payment's status consistent with its due and paid dates.  Exposes the
    delinquency metric (days late) and the owner-scoped payment queries.

Architecture position:
    Kernel > Services -- imperative shell around the pure payment rules in
    ``domain.lifecycle``.

Invariants enforced:
    - amount > 0 and due_date present on every stored payment.
    - Status is PAID iff paid_date is set.  Unpaid payments are LATE once
      past due (on write and in the ``refresh_statuses`` sweep).
    - ``register_payment`` is idempotent: repeating it with the same
      arguments leaves status and paid date unchanged.
    - Flush-only: never commits or rolls back the session.

Failure modes:
    - PaymentNotFoundError / TenantNotFoundError / PropertyNotFoundError.
    - InvalidAmountError, MissingDateError, InvalidStatusError.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import func, or_, select

from lease_kernel.domain.dtos import Page, PaymentInfo
from lease_kernel.domain.lifecycle import (
    days_late,
    derive_payment_status,
    resolve_payment_state,
)
from lease_kernel.domain.statuses import (
    OUTSTANDING_PAYMENT_STATUSES,
    PaymentStatus,
    parse_status,
)
from lease_kernel.exceptions import (
    PaymentNotFoundError,
    PropertyNotFoundError,
    TenantNotFoundError,
)
from lease_kernel.logging_config import get_logger
from lease_kernel.models.payment import Payment
from lease_kernel.models.property import Property
from lease_kernel.models.tenant import Tenant
from lease_kernel.services.base import (
    DEFAULT_PAGE_SIZE,
    BaseService,
    require_date,
    require_positive_amount,
)
from lease_kernel.utils.months import month_range

logger = get_logger("services.payment")


class PaymentService(BaseService[Payment]):
    """
    Service for rent payments.

    Contract:
        Accepts ids and plain values, returns frozen ``PaymentInfo`` DTOs
        whose ``days_late`` is computed from the injected clock.

    Non-goals:
        - Does NOT move money or talk to a payment processor.
        - Does NOT generate instalments from contracts.
    """

    def _to_dto(self, payment: Payment) -> PaymentInfo:
        return PaymentInfo.from_model(payment, self.clock.today())

    def _get_payment(self, payment_id: UUID) -> Payment:
        return self._get_owned(Payment, payment_id, PaymentNotFoundError)

    @staticmethod
    def _parse_status(status: PaymentStatus | str | None) -> PaymentStatus | None:
        if status is None:
            return None
        return parse_status(PaymentStatus, status, "payment")

    def create_payment(
        self,
        tenant_id: UUID,
        property_id: UUID,
        amount,
        due_date: date | None,
        paid_date: date | None = None,
        status: PaymentStatus | str | None = None,
        receipt_url: str | None = None,
    ) -> PaymentInfo:
        """
        Record a payment.

        When ``status`` is omitted it is derived from the dates.  An explicit
        status and paid date follow the same rules as ``update_payment``.

        Raises:
            InvalidAmountError: If amount <= 0.
            MissingDateError: If due_date is missing.
        """
        value = require_positive_amount("amount", amount)
        due = require_date("due_date", due_date)
        requested = self._parse_status(status)

        tenant = self._get_owned(Tenant, tenant_id, TenantNotFoundError)
        prop = self._get_owned(Property, property_id, PropertyNotFoundError)

        today = self.clock.today()
        if requested is None:
            resolved_status = derive_payment_status(paid_date, due, today)
            resolved_paid = paid_date
        else:
            resolved_status, resolved_paid = resolve_payment_state(
                PaymentStatus.PENDING, None, requested, paid_date, today
            )
            if resolved_paid is None:
                resolved_status = derive_payment_status(None, due, today)

        payment = Payment(
            tenant_id=tenant.id,
            property_id=prop.id,
            amount=value,
            due_date=due,
            paid_date=resolved_paid,
            status=resolved_status,
            receipt_url=receipt_url,
        )
        self._stamp_created(payment)
        self.session.add(payment)
        self.session.flush()

        logger.info(
            "payment_created",
            extra={
                "payment_id": str(payment.id),
                "tenant_id": str(tenant.id),
                "property_id": str(prop.id),
                "amount": value,
                "due_date": str(due),
                "status": payment.status.value,
            },
        )
        return self._to_dto(payment)

    def update_payment(
        self,
        payment_id: UUID,
        amount=None,
        due_date: date | None = None,
        paid_date: date | None = None,
        status: PaymentStatus | str | None = None,
        receipt_url: str | None = None,
    ) -> PaymentInfo:
        """
        Partially update a payment.

        An explicit status is applied first (PAID stamps today when there is
        no paid date, any other status clears it); a supplied paid_date is
        applied last and forces PAID.  An unpaid payment then gets PENDING or
        LATE from its due date, whatever status was requested.
        """
        payment = self._get_payment(payment_id)
        value = require_positive_amount("amount", amount) if amount is not None else None
        requested = self._parse_status(status)

        if value is not None:
            payment.amount = value
        if due_date is not None:
            payment.due_date = due_date
        if receipt_url is not None:
            payment.receipt_url = receipt_url

        today = self.clock.today()
        previous = payment.status
        payment.status, payment.paid_date = resolve_payment_state(
            payment.status,
            payment.paid_date,
            requested,
            paid_date,
            today,
        )
        if payment.paid_date is None:
            payment.status = derive_payment_status(None, payment.due_date, today)
        self._touch(payment)
        self.session.flush()

        if previous != payment.status:
            logger.info(
                "payment_status_changed",
                extra={
                    "payment_id": str(payment.id),
                    "from_status": previous.value,
                    "to_status": payment.status.value,
                },
            )
        return self._to_dto(payment)

    def register_payment(
        self,
        payment_id: UUID,
        paid_date: date | None = None,
        receipt_url: str | None = None,
    ) -> PaymentInfo:
        """
        Mark a payment as paid.

        Args:
            payment_id: Payment to settle.
            paid_date: Settlement day.  Without one, an unpaid payment is
                stamped today but an already paid payment keeps its paid
                date; it is not re-stamped with today.
            receipt_url: Optional receipt to attach.

        Postconditions:
            - status is PAID and paid_date is set.
        """
        payment = self._get_payment(payment_id)
        payment.paid_date = paid_date or payment.paid_date or self.clock.today()
        payment.status = PaymentStatus.PAID
        if receipt_url is not None:
            payment.receipt_url = receipt_url
        self._touch(payment)
        self.session.flush()

        logger.info(
            "payment_registered",
            extra={
                "payment_id": str(payment.id),
                "paid_date": str(payment.paid_date),
            },
        )
        return self._to_dto(payment)

    def set_receipt_url(self, payment_id: UUID, url: str | None) -> PaymentInfo:
        """Attach (or clear, with None) the receipt URL."""
        payment = self._get_payment(payment_id)
        payment.receipt_url = url
        self._touch(payment)
        self.session.flush()
        return self._to_dto(payment)

    def delete_payment(self, payment_id: UUID) -> None:
        payment = self._get_payment(payment_id)
        self.session.delete(payment)
        self.session.flush()
        logger.info("payment_deleted", extra={"payment_id": str(payment_id)})

    def refresh_statuses(self) -> int:
        """
        Sweep: re-derive PENDING/LATE for the owner's unpaid payments.

        Returns:
            Number of payments whose status changed.
        """
        today = self.clock.today()
        unpaid = self.session.execute(
            self._owned(Payment).where(Payment.paid_date.is_(None))
        ).scalars().all()

        changed = 0
        for payment in unpaid:
            derived = derive_payment_status(None, payment.due_date, today)
            if derived != payment.status:
                payment.status = derived
                self._touch(payment)
                changed += 1
        self.session.flush()

        logger.info(
            "payment_statuses_refreshed",
            extra={"examined": len(unpaid), "changed": changed},
        )
        return changed

    def days_late(self, payment_id: UUID) -> int:
        """Whole days past due; 0 if paid or not yet due."""
        payment = self._get_payment(payment_id)
        return days_late(payment.paid_date, payment.due_date, self.clock.today())

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, payment_id: UUID) -> PaymentInfo:
        return self._to_dto(self._get_payment(payment_id))

    def list_payments(
        self,
        status: PaymentStatus | str | None = None,
        page: int = 0,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Page[PaymentInfo]:
        stmt = self._owned(Payment)
        if status is not None:
            stmt = stmt.where(Payment.status == self._parse_status(status))
        stmt = stmt.order_by(Payment.due_date.desc(), Payment.id)
        return self._page(stmt, page, page_size, self._to_dto)

    def list_by_tenant(self, tenant_id: UUID) -> list[PaymentInfo]:
        rows = self.session.execute(
            self._owned(Payment)
            .where(Payment.tenant_id == tenant_id)
            .order_by(Payment.due_date.desc())
        ).scalars().all()
        return [self._to_dto(row) for row in rows]

    def list_by_property(self, property_id: UUID) -> list[PaymentInfo]:
        rows = self.session.execute(
            self._owned(Payment)
            .where(Payment.property_id == property_id)
            .order_by(Payment.due_date.desc())
        ).scalars().all()
        return [self._to_dto(row) for row in rows]

    def list_by_due_range(self, start: date, end: date) -> list[PaymentInfo]:
        """Payments due within [start, end], inclusive."""
        rows = self.session.execute(
            self._owned(Payment)
            .where(Payment.due_date >= start, Payment.due_date <= end)
            .order_by(Payment.due_date)
        ).scalars().all()
        return [self._to_dto(row) for row in rows]

    def list_late(
        self, month: int | None = None, year: int | None = None
    ) -> list[PaymentInfo]:
        """LATE payments, optionally restricted to a due month."""
        stmt = self._owned(Payment).where(Payment.status == PaymentStatus.LATE)
        if month is not None and year is not None:
            first, next_first = month_range(month, year)
            stmt = stmt.where(Payment.due_date >= first, Payment.due_date < next_first)
        rows = self.session.execute(stmt.order_by(Payment.due_date)).scalars().all()
        return [self._to_dto(row) for row in rows]

    def list_outstanding(self) -> list[PaymentInfo]:
        """PENDING and LATE payments, oldest due first."""
        rows = self.session.execute(
            self._owned(Payment)
            .where(Payment.status.in_(list(OUTSTANDING_PAYMENT_STATUSES)))
            .order_by(Payment.due_date)
        ).scalars().all()
        return [self._to_dto(row) for row in rows]

    def search(
        self, text: str, page: int = 0, page_size: int = DEFAULT_PAGE_SIZE
    ) -> Page[PaymentInfo]:
        """Case-insensitive match on tenant name or property name."""
        pattern = f"%{text.strip().lower()}%"
        stmt = (
            self._owned(Payment)
            .join(Tenant, Tenant.id == Payment.tenant_id)
            .join(Property, Property.id == Payment.property_id)
            .where(
                or_(
                    func.lower(Tenant.first_name).like(pattern),
                    func.lower(Tenant.last_name).like(pattern),
                    func.lower(Property.name).like(pattern),
                )
            )
            .order_by(Payment.due_date.desc(), Payment.id)
        )
        return self._page(stmt, page, page_size, self._to_dto)

    def count(self, status: PaymentStatus | str | None = None) -> int:
        stmt = select(func.count()).select_from(Payment).where(
            Payment.owner_id == self.owner_id
        )
        if status is not None:
            stmt = stmt.where(Payment.status == self._parse_status(status))
        return self.session.execute(stmt).scalar_one()
