"""Utility modules for the lease kernel."""

from lease_kernel.utils.months import month_range, previous_month, resolve_month

__all__ = [
    "month_range",
    "previous_month",
    "resolve_month",
]
