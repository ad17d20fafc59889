"""Service construction for one request's unit of work."""

from __future__ import annotations

from fastapi import Request
from sqlalchemy.orm import Session

from lease_kernel.selectors.billing_selector import BillingSelector
from lease_kernel.services.bill_ledger import BillLedger
from lease_kernel.services.notification_dispatcher import NotificationDispatcher
from lease_kernel.services.slip_reviewer import SlipReviewer


def state(request: Request):
    return request.app.state.lease


def dispatcher(request: Request, session: Session) -> NotificationDispatcher:
    lease = state(request)
    return NotificationDispatcher(
        session, lease.clock, lease.config.billing.dedup_window_hours,
    )


def ledger(request: Request, session: Session) -> BillLedger:
    lease = state(request)
    return BillLedger(
        session,
        lease.clock,
        dispatcher(request, session),
        lease.config.billing.reason_max_length,
    )


def reviewer(request: Request, session: Session) -> SlipReviewer:
    lease = state(request)
    return SlipReviewer(session, lease.storage, lease.clock, ledger(request, session))


def selector(session: Session) -> BillingSelector:
    return BillingSelector(session)
