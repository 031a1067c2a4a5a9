"""
Property-based tests for the pure lifecycle rules.

Boundaries fuzzed here:
- Overlap: symmetry and agreement with a day-by-day intersection
- Contract recompute: FINISHED and UNSIGNED never move, FINISHED after end
- Payment status: PAID iff paid date, LATE iff unpaid and past due
- Income variation: 0 without previous income, sign follows the change
"""

from datetime import date, timedelta
from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from lease_kernel.domain.lifecycle import (
    derive_payment_status,
    ranges_overlap,
    recompute_contract_status,
)
from lease_kernel.domain.statuses import ContractStatus, PaymentStatus
from lease_kernel.selectors.dashboard_selector import income_variation

days = st.dates(min_value=date(2020, 1, 1), max_value=date(2030, 12, 31))
lengths = st.integers(min_value=1, max_value=800)
money = st.decimals(
    min_value=Decimal("0"), max_value=Decimal("1000000"), places=2, allow_nan=False
)


@st.composite
def date_ranges(draw):
    start = draw(days)
    return start, start + timedelta(days=draw(lengths))


class TestOverlapProperties:

    @given(date_ranges(), date_ranges())
    def test_symmetric(self, a, b):
        assert ranges_overlap(*a, *b) == ranges_overlap(*b, *a)

    @given(date_ranges(), st.integers(min_value=-900, max_value=900))
    @settings(max_examples=200)
    def test_matches_shared_day(self, a, shift):
        b = (a[0] + timedelta(days=shift), a[1] + timedelta(days=shift // 2))
        if b[1] <= b[0]:
            b = (b[0], b[0] + timedelta(days=1))
        a_days = {a[0] + timedelta(days=i) for i in range((a[1] - a[0]).days + 1)}
        b_days = {b[0] + timedelta(days=i) for i in range((b[1] - b[0]).days + 1)}
        assert ranges_overlap(*a, *b) == bool(a_days & b_days)

    @given(date_ranges())
    def test_range_overlaps_itself(self, a):
        assert ranges_overlap(*a, *a)


class TestRecomputeProperties:

    @given(date_ranges(), days)
    def test_frozen_statuses_never_move(self, rng, today):
        for status in (ContractStatus.UNSIGNED, ContractStatus.FINISHED):
            assert recompute_contract_status(status, *rng, today) == status

    @given(
        st.sampled_from([
            ContractStatus.IN_PROCESS,
            ContractStatus.SIGNED,
            ContractStatus.ACTIVE,
            ContractStatus.EXPIRING_SOON,
        ]),
        date_ranges(),
        days,
    )
    def test_running_contract_finished_iff_past_end(self, status, rng, today):
        result = recompute_contract_status(status, *rng, today)
        assert (result == ContractStatus.FINISHED) == (today > rng[1])
        assert result in (
            ContractStatus.ACTIVE,
            ContractStatus.EXPIRING_SOON,
            ContractStatus.FINISHED,
        )

    @given(date_ranges(), days)
    def test_recompute_is_idempotent(self, rng, today):
        once = recompute_contract_status(ContractStatus.ACTIVE, *rng, today)
        assert recompute_contract_status(once, *rng, today) == once


class TestPaymentProperties:

    @given(st.one_of(st.none(), days), days, days)
    def test_status_invariant(self, paid_date, due_date, today):
        status = derive_payment_status(paid_date, due_date, today)
        assert (status == PaymentStatus.PAID) == (paid_date is not None)
        assert (status == PaymentStatus.LATE) == (paid_date is None and today > due_date)


class TestVariationProperties:

    @given(money)
    def test_zero_without_previous_income(self, current):
        assert income_variation(current, Decimal("0")) == 0

    @given(money, money.filter(lambda v: v > 0))
    def test_sign_follows_change(self, current, previous):
        variation = income_variation(current, previous)
        if current > previous:
            assert variation >= 0
        elif current < previous:
            assert variation <= 0
        else:
            assert variation == 0
        assert variation == variation.quantize(Decimal("0.1"))
