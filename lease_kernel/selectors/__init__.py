"""Read-only selectors."""

from lease_kernel.selectors.base import BaseSelector
from lease_kernel.selectors.dashboard_selector import DashboardSelector, income_variation

__all__ = [
    "BaseSelector",
    "DashboardSelector",
    "income_variation",
]
