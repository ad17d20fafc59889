"""
Lease Kernel - billing and payment reconciliation core.

A lease-portal core with:
- Utility charge computation with explicit rounding
- Bill lifecycle with idempotent approve/reject decisions
- Tenant payment-slip submission and admin review
- Deduplicated tenant notifications
- Date-driven contract status transitions
"""

__version__ = "0.1.0"
