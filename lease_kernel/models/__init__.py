"""
ORM models for the lease kernel.

Importing this package registers every kernel table on ``Base.metadata``.
"""

from lease_kernel.models.bill import Bill
from lease_kernel.models.contract import Contract
from lease_kernel.models.notification import Notification
from lease_kernel.models.payment_slip import PaymentSlip

__all__ = [
    "Bill",
    "Contract",
    "Notification",
    "PaymentSlip",
]
