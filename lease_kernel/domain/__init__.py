"""
Pure domain layer.

Value objects and rules with NO dependencies on the ORM, the database,
wall-clock time or I/O.  All domain objects are immutable and deterministic.
"""

from lease_kernel.domain.auth import AuthContext, Role
from lease_kernel.domain.billing import (
    BillDecision,
    BillStatus,
    ChargeBreakdown,
    SlipStatus,
    UtilityReading,
    bill_total,
    utility_amount,
)
from lease_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from lease_kernel.domain.contract_status import ContractStatus, next_contract_status
from lease_kernel.domain.notices import Notice, NoticeType

__all__ = [
    "AuthContext",
    "Role",
    "BillDecision",
    "BillStatus",
    "ChargeBreakdown",
    "SlipStatus",
    "UtilityReading",
    "bill_total",
    "utility_amount",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "ContractStatus",
    "next_contract_status",
    "Notice",
    "NoticeType",
]
