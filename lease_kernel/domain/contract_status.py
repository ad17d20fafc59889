"""
Contract status rule -- pure date-driven transitions.

A contract's status is a function of (end_date, today) for the two
date-managed states.  ``cancelled`` is a manual override and ``expired`` is
terminal; neither is ever produced from or reverted by this rule except
that active/expiring may become expired.
"""

from __future__ import annotations

from datetime import date, timedelta
from enum import Enum

DEFAULT_EXPIRY_HORIZON_DAYS = 30


class ContractStatus(str, Enum):
    """Tenancy contract lifecycle."""

    ACTIVE = "active"
    EXPIRING = "expiring"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


# Only these statuses are ever read or written by the date engine.
DATE_MANAGED_STATUSES: frozenset[ContractStatus] = frozenset({
    ContractStatus.ACTIVE,
    ContractStatus.EXPIRING,
})


def expiry_window(today: date, horizon_days: int = DEFAULT_EXPIRY_HORIZON_DAYS) -> tuple[date, date]:
    """The (exclusive start, inclusive end) window for 'expiring'."""
    return today, today + timedelta(days=horizon_days)


def next_contract_status(
    status: ContractStatus,
    end_date: date,
    today: date,
    horizon_days: int = DEFAULT_EXPIRY_HORIZON_DAYS,
) -> ContractStatus:
    """
    Status a contract should hold on ``today``.

    - active|expiring -> expired   when end_date < today
    - active -> expiring           when today < end_date <= today + horizon
    - expiring -> active           when end_date was extended past the horizon
    - anything else is unchanged (cancelled and expired included)
    """
    if status not in DATE_MANAGED_STATUSES:
        return status

    if end_date < today:
        return ContractStatus.EXPIRED

    _, horizon_end = expiry_window(today, horizon_days)
    if today < end_date <= horizon_end:
        return ContractStatus.EXPIRING
    if end_date > horizon_end:
        return ContractStatus.ACTIVE
    # end_date == today: neither expiring (window is exclusive of today)
    # nor expired yet.
    return status
