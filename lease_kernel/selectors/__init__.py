"""Read-only selectors (query side)."""

from lease_kernel.selectors.billing_selector import BillingSelector

__all__ = ["BillingSelector"]
