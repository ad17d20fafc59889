"""
Kernel services -- write-side operations on bills, slips, notifications
and contracts.  Services flush; callers commit.
"""

from lease_kernel.services.bill_ledger import BillLedger
from lease_kernel.services.contract_status_engine import ContractStatusEngine
from lease_kernel.services.notification_dispatcher import NotificationDispatcher
from lease_kernel.services.slip_reviewer import SlipReviewer
from lease_kernel.services.slip_storage import (
    InMemorySlipStorage,
    LocalSlipStorage,
    SlipStorage,
)

__all__ = [
    "BillLedger",
    "ContractStatusEngine",
    "NotificationDispatcher",
    "SlipReviewer",
    "SlipStorage",
    "LocalSlipStorage",
    "InMemorySlipStorage",
]
