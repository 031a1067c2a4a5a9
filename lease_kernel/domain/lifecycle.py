"""
Lifecycle -- pure status rules for contracts and payments.

Responsibility:
    Computes contract and payment statuses from dates and the current day,
    decides which explicit contract transitions are legal, and implements
    the inclusive date-range overlap test used for double-booking checks.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  Callers pass
    ``today`` explicitly (from their injected Clock); nothing here reads
    the system time or touches a session.

Invariants enforced:
    - Contract recompute: UNSIGNED never auto-advances; FINISHED is terminal;
      otherwise the status follows the calendar (finished after end_date,
      expiring_soon inside the final window, active before and during).
    - Payment status: PAID iff paid_date is set; LATE iff unpaid and
      today > due_date; PENDING otherwise.
    - Overlap: [a_start, a_end] and [b_start, b_end] intersect iff
      max(a_start, b_start) <= min(a_end, b_end).
"""

from datetime import date

from lease_kernel.domain.statuses import ContractStatus, PaymentStatus

DEFAULT_EXPIRING_SOON_DAYS = 30

# Explicit (caller-requested) contract status moves.  Staying in the same
# status is always accepted.  FINISHED is terminal; finalize() bypasses
# this table.
ALLOWED_TRANSITIONS: dict[ContractStatus, frozenset[ContractStatus]] = {
    ContractStatus.UNSIGNED: frozenset({
        ContractStatus.IN_PROCESS,
        ContractStatus.SIGNED,
        ContractStatus.ACTIVE,
        ContractStatus.EXPIRING_SOON,
        ContractStatus.FINISHED,
    }),
    ContractStatus.IN_PROCESS: frozenset({
        ContractStatus.SIGNED,
        ContractStatus.ACTIVE,
        ContractStatus.EXPIRING_SOON,
        ContractStatus.FINISHED,
    }),
    ContractStatus.SIGNED: frozenset({
        ContractStatus.ACTIVE,
        ContractStatus.EXPIRING_SOON,
        ContractStatus.FINISHED,
    }),
    ContractStatus.ACTIVE: frozenset({
        ContractStatus.EXPIRING_SOON,
        ContractStatus.FINISHED,
    }),
    ContractStatus.EXPIRING_SOON: frozenset({
        ContractStatus.ACTIVE,
        ContractStatus.FINISHED,
    }),
    ContractStatus.FINISHED: frozenset(),
}


def can_transition(current: ContractStatus, target: ContractStatus) -> bool:
    """Return True if an explicit move from current to target is legal."""
    return current == target or target in ALLOWED_TRANSITIONS[current]


def recompute_contract_status(
    status: ContractStatus,
    start_date: date,
    end_date: date,
    today: date,
    expiring_soon_days: int = DEFAULT_EXPIRING_SOON_DAYS,
) -> ContractStatus:
    """
    Derive a contract's status from its dates.

    Args:
        status: Current stored status.
        start_date: First day of the lease (inclusive).
        end_date: Last day of the lease (inclusive).
        today: Current calendar day.
        expiring_soon_days: Size of the final window reported as
            EXPIRING_SOON.

    Returns:
        The recomputed status.  UNSIGNED and FINISHED are returned unchanged.
    """
    if status in (ContractStatus.UNSIGNED, ContractStatus.FINISHED):
        return status

    if today > end_date:
        return ContractStatus.FINISHED
    if today < start_date:
        # Not started yet: keep it in the active family, never regress
        return ContractStatus.ACTIVE
    if (end_date - today).days <= expiring_soon_days:
        return ContractStatus.EXPIRING_SOON
    return ContractStatus.ACTIVE


def days_remaining(end_date: date | None, today: date) -> int | None:
    """Days left until end_date; 0 once it has passed, None without a date."""
    if end_date is None:
        return None
    if today > end_date:
        return 0
    return (end_date - today).days


def ranges_overlap(
    a_start: date, a_end: date, b_start: date, b_end: date
) -> bool:
    """Inclusive intersection test for two date ranges."""
    return max(a_start, b_start) <= min(a_end, b_end)


def overlap_window(
    a_start: date, a_end: date, b_start: date, b_end: date
) -> tuple[date, date]:
    """Return the shared [start, end] of two overlapping ranges."""
    return max(a_start, b_start), min(a_end, b_end)


def derive_payment_status(
    paid_date: date | None, due_date: date | None, today: date
) -> PaymentStatus:
    """Status a payment must have given its dates."""
    if paid_date is not None:
        return PaymentStatus.PAID
    if due_date is not None and today > due_date:
        return PaymentStatus.LATE
    return PaymentStatus.PENDING


def days_late(paid_date: date | None, due_date: date | None, today: date) -> int:
    """Whole days past due for an unpaid payment, else 0."""
    if paid_date is not None or due_date is None:
        return 0
    if today > due_date:
        return (today - due_date).days
    return 0


def resolve_payment_state(
    current_status: PaymentStatus,
    current_paid_date: date | None,
    requested_status: PaymentStatus | None,
    requested_paid_date: date | None,
    today: date,
) -> tuple[PaymentStatus, date | None]:
    """
    Apply an explicit status and/or paid date to a payment.

    Rules, in order:
        1. An explicit status is assigned first.  PAID without a paid date
           stamps ``today``; any other status clears the paid date.
        2. A directly supplied paid date is applied last and always forces
           PAID, so it wins over a conflicting explicit status.

    Returns:
        (status, paid_date) after both rules.
    """
    status, paid_date = current_status, current_paid_date

    if requested_status is not None:
        status = requested_status
        if requested_status == PaymentStatus.PAID:
            if paid_date is None:
                paid_date = today
        else:
            paid_date = None

    if requested_paid_date is not None:
        paid_date = requested_paid_date
        status = PaymentStatus.PAID

    return status, paid_date
