"""
Module: lease_kernel.selectors.dashboard_selector
Responsibility: Monthly reporting aggregates for the landlord dashboard:
    income, income variation, outstanding rent, delinquent tenants, active
    properties and tenants, plus the dashboard lists (late payments,
    expiring contracts, available properties).
Architecture position: Kernel > Selectors.  Read-only; never mutates.

Invariants enforced:
    - Aggregates read stored statuses.  The scheduled sweeps
      (ContractService.recompute_all, PaymentService.refresh_statuses) keep
      those statuses current; the selector does not recompute them.
    - Month filters are half-open ranges [first day, first of next month).
    - Income variation is 0 when the previous month's income is <= 0.
    - Sums of an empty set are Decimal("0.00"), never None.
"""

from datetime import MINYEAR, timedelta
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import distinct, func, select

from lease_kernel.db.types import round_money, round_percent
from lease_kernel.domain.dtos import (
    ContractInfo,
    DashboardStats,
    PaymentInfo,
    PropertyInfo,
)
from lease_kernel.domain.lifecycle import DEFAULT_EXPIRING_SOON_DAYS
from lease_kernel.domain.statuses import (
    OUTSTANDING_PAYMENT_STATUSES,
    ContractStatus,
    PaymentStatus,
    PropertyStatus,
)
from lease_kernel.models.contract import Contract
from lease_kernel.models.payment import Payment
from lease_kernel.models.property import Property
from lease_kernel.selectors.base import BaseSelector
from lease_kernel.utils.months import month_range, previous_month, resolve_month

_HUNDRED = Decimal("100")
_RATIO_PLACES = Decimal("0.0001")


def income_variation(current: Decimal, previous: Decimal) -> Decimal:
    """
    Percentage change from ``previous`` to ``current``.

    The ratio is rounded half-up to 4 places, scaled by 100 and rounded
    half-up to 1 place.  Returns Decimal("0") when previous <= 0.

    >>> income_variation(Decimal("1100"), Decimal("1000"))
    Decimal('10.0')
    """
    if previous <= 0:
        return Decimal("0")
    ratio = ((current - previous) / previous).quantize(
        _RATIO_PLACES, rounding=ROUND_HALF_UP
    )
    return round_percent(ratio * _HUNDRED)


def _as_money(value) -> Decimal:
    return round_money(Decimal(str(value or 0)))


class DashboardSelector(BaseSelector[Payment]):
    """
    Owner-scoped dashboard queries.

    ``month``/``year`` arguments default to the clock's current month where
    a month is required.
    """

    def _payments(self):
        return select(Payment).where(Payment.owner_id == self.owner_id)

    def _due_in(self, stmt, month: int | None, year: int | None):
        """Restrict to a due month when either part is given."""
        if month is None and year is None:
            return stmt
        first, next_first = month_range(*resolve_month(month, year, self.clock.today()))
        return stmt.where(Payment.due_date >= first, Payment.due_date < next_first)

    def monthly_income(self, month: int | None = None, year: int | None = None) -> Decimal:
        """Sum of payments whose paid_date falls in the month."""
        first, next_first = month_range(*resolve_month(month, year, self.clock.today()))
        total = self.session.execute(
            select(func.sum(Payment.amount)).where(
                Payment.owner_id == self.owner_id,
                Payment.status == PaymentStatus.PAID,
                Payment.paid_date >= first,
                Payment.paid_date < next_first,
            )
        ).scalar_one()
        return _as_money(total)

    income_variation = staticmethod(income_variation)

    def pending_total(self, month: int | None = None, year: int | None = None) -> Decimal:
        """Sum of PENDING and LATE amounts, optionally for one due month."""
        stmt = select(func.sum(Payment.amount)).where(
            Payment.owner_id == self.owner_id,
            Payment.status.in_(list(OUTSTANDING_PAYMENT_STATUSES)),
        )
        return _as_money(self.session.execute(self._due_in(stmt, month, year)).scalar_one())

    def delinquent_tenant_count(
        self, month: int | None = None, year: int | None = None
    ) -> int:
        """Distinct tenants with at least one LATE payment."""
        stmt = select(func.count(distinct(Payment.tenant_id))).where(
            Payment.owner_id == self.owner_id,
            Payment.status == PaymentStatus.LATE,
        )
        return self.session.execute(self._due_in(stmt, month, year)).scalar_one()

    def active_property_count(self, month: int | None = None, year: int | None = None) -> int:
        """Distinct properties with any payment due in the month."""
        first, next_first = month_range(*resolve_month(month, year, self.clock.today()))
        return self.session.execute(
            select(func.count(distinct(Payment.property_id))).where(
                Payment.owner_id == self.owner_id,
                Payment.due_date >= first,
                Payment.due_date < next_first,
            )
        ).scalar_one()

    def active_tenant_count(self, month: int | None = None, year: int | None = None) -> int:
        """Distinct tenants with any payment due in the month."""
        first, next_first = month_range(*resolve_month(month, year, self.clock.today()))
        return self.session.execute(
            select(func.count(distinct(Payment.tenant_id))).where(
                Payment.owner_id == self.owner_id,
                Payment.due_date >= first,
                Payment.due_date < next_first,
            )
        ).scalar_one()

    def property_count(self) -> int:
        return self.session.execute(
            select(func.count()).select_from(Property).where(
                Property.owner_id == self.owner_id
            )
        ).scalar_one()

    def dashboard_stats(self, month: int | None = None, year: int | None = None) -> DashboardStats:
        """
        Combined monthly figures.

        Income variation compares the month with the one before it.
        Pending total, delinquent tenants and the active counts are
        restricted to the month's due dates.
        """
        month, year = resolve_month(month, year, self.clock.today())
        prev_month, prev_year = previous_month(month, year)

        income = self.monthly_income(month, year)
        # nothing precedes January of year 1
        previous_income = (
            self.monthly_income(prev_month, prev_year)
            if prev_year >= MINYEAR
            else _as_money(None)
        )

        return DashboardStats(
            month=month,
            year=year,
            income=income,
            previous_income=previous_income,
            income_variation=income_variation(income, previous_income),
            pending_total=self.pending_total(month, year),
            delinquent_tenants=self.delinquent_tenant_count(month, year),
            active_properties=self.active_property_count(month, year),
            active_tenants=self.active_tenant_count(month, year),
            total_properties=self.property_count(),
        )

    def late_payments(
        self, month: int | None = None, year: int | None = None
    ) -> list[PaymentInfo]:
        """LATE payments, oldest due first; optionally for one due month."""
        stmt = self._payments().where(Payment.status == PaymentStatus.LATE)
        rows = self.session.execute(
            self._due_in(stmt, month, year).order_by(Payment.due_date)
        ).scalars().all()
        today = self.clock.today()
        return [PaymentInfo.from_model(row, today) for row in rows]

    def expiring_contracts(self, days: int = DEFAULT_EXPIRING_SOON_DAYS) -> list[ContractInfo]:
        """Signed or running contracts ending within ``days`` of today."""
        today = self.clock.today()
        rows = self.session.execute(
            select(Contract)
            .where(
                Contract.owner_id == self.owner_id,
                Contract.status.in_([
                    ContractStatus.SIGNED,
                    ContractStatus.ACTIVE,
                    ContractStatus.EXPIRING_SOON,
                ]),
                Contract.end_date >= today,
                Contract.end_date <= today + timedelta(days=days),
            )
            .order_by(Contract.end_date)
        ).scalars().all()
        return [ContractInfo.from_model(row, today) for row in rows]

    def available_properties(self) -> list[PropertyInfo]:
        rows = self.session.execute(
            select(Property)
            .where(
                Property.owner_id == self.owner_id,
                Property.status == PropertyStatus.AVAILABLE,
            )
            .order_by(Property.name)
        ).scalars().all()
        return [PropertyInfo.from_model(row) for row in rows]
