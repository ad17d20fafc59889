"""
Module: lease_kernel.selectors.billing_selector
Responsibility: Read-only billing queries for the admin review queue, the
    tenant bill list, the monthly dashboard summary and the notification
    inbox.
Architecture position: Kernel > Selectors.  May import from models/,
    domain DTOs and selectors/base.py.  MUST NOT import from services/.

Invariants enforced:
    - Results are DTOs; ORM instances never leave the selector.
    - Monthly totals are derived from bill rows at query time; nothing is
      stored.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from lease_kernel.db.types import round_money
from lease_kernel.domain.billing import BillStatus, SlipStatus
from lease_kernel.domain.dtos import (
    BillView,
    MonthlyBillingSummary,
    NotificationView,
    ReviewQueueRow,
)
from lease_kernel.models.bill import Bill
from lease_kernel.models.contract import Contract
from lease_kernel.models.notification import Notification
from lease_kernel.models.payment_slip import PaymentSlip
from lease_kernel.selectors.base import BaseSelector

_ZERO = Decimal("0")


def _money(value) -> Decimal:
    if value is None:
        return _ZERO.quantize(Decimal("0.01"))
    return round_money(Decimal(str(value)))


class BillingSelector(BaseSelector):
    """Read-side queries over bills, slips and notifications."""

    def slip_review_queue(
        self, status: SlipStatus | str | None = None, limit: int | None = None,
    ) -> list[ReviewQueueRow]:
        """Slips with their bill and contract facts, newest first."""
        stmt = (
            select(
                PaymentSlip,
                Bill.status,
                Bill.billing_month,
                Bill.total_amount,
                Contract.tenant_id,
                Contract.space_id,
            )
            .join(Bill, Bill.id == PaymentSlip.bill_id)
            .outerjoin(Contract, Contract.id == Bill.contract_id)
            .order_by(PaymentSlip.created_at.desc(), PaymentSlip.id)
        )
        if status is not None:
            stmt = stmt.where(PaymentSlip.status == SlipStatus(status).value)
        if limit is not None:
            stmt = stmt.limit(limit)

        return [
            ReviewQueueRow(
                slip=slip.to_dto(),
                bill_status=BillStatus(bill_status),
                billing_month=billing_month,
                total_amount=total_amount,
                tenant_id=tenant_id,
                space_id=space_id,
            )
            for slip, bill_status, billing_month, total_amount, tenant_id, space_id
            in self.session.execute(stmt).all()
        ]

    def bills_for_tenant(self, tenant_id: UUID) -> list[BillView]:
        """All bills on the tenant's contracts, newest billing month first."""
        bills = self.session.execute(
            select(Bill)
            .join(Contract, Contract.id == Bill.contract_id)
            .where(Contract.tenant_id == tenant_id)
            .order_by(Bill.billing_month.desc(), Bill.due_date.desc())
        ).scalars().all()
        return [bill.to_dto() for bill in bills]

    def bills_for_admin(
        self, status: BillStatus | str | None = None, month: date | None = None,
    ) -> list[BillView]:
        """Every bill, most recently created first, optionally filtered."""
        stmt = select(Bill).order_by(Bill.created_at.desc(), Bill.id)
        if status is not None:
            stmt = stmt.where(Bill.status == BillStatus(status).value)
        if month is not None:
            stmt = stmt.where(Bill.billing_month == month.replace(day=1))
        return [bill.to_dto() for bill in self.session.execute(stmt).scalars().all()]

    def monthly_summary(self, month: date) -> MonthlyBillingSummary:
        """Counts per status plus billed, paid and outstanding amounts."""
        month = month.replace(day=1)
        rows = self.session.execute(
            select(Bill.status, func.count(Bill.id), func.sum(Bill.total_amount))
            .where(Bill.billing_month == month)
            .group_by(Bill.status)
        ).all()

        counts = {status.value: 0 for status in BillStatus}
        amounts = {status.value: _money(None) for status in BillStatus}
        for status, count, total in rows:
            counts[status] = count
            amounts[status] = _money(total)

        paid = BillStatus.PAID.value
        unpaid = BillStatus.UNPAID.value
        pending = BillStatus.PENDING_APPROVAL.value
        return MonthlyBillingSummary(
            month=month,
            total_bills=sum(counts.values()),
            paid=counts[paid],
            unpaid=counts[unpaid],
            pending_approval=counts[pending],
            billed_amount=round_money(sum(amounts.values(), _ZERO)),
            paid_revenue=amounts[paid],
            outstanding_amount=round_money(amounts[unpaid] + amounts[pending]),
            by_status=counts,
        )

    def notifications_for_user(
        self, user_id: UUID, unread_only: bool = False, limit: int = 50,
    ) -> list[NotificationView]:
        stmt = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id)
            .limit(limit)
        )
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))
        return [row.to_dto() for row in self.session.execute(stmt).scalars().all()]
