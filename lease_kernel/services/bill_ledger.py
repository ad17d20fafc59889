"""
lease_kernel.services.bill_ledger -- Bill lifecycle management.

Responsibility:
    Creates bills, applies admin edits, moves a bill to pending_approval
    when its tenant submits evidence, and records admin approve/reject
    decisions together with the slip update and the tenant notification.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Invariants enforced:
    - water/power amounts and total_amount are recomputed from the merged
      stored+patched inputs in the same flush as the change.
    - paid_date is non-null only while status is paid.  Approve sets it
      with a conditional UPDATE (only when still null); reject and manual
      edits to a non-paid status clear it.
    - Decisions are accepted from any bill status.  A decision outside the
      normal flow is logged as a correction.
    - Each decision emits exactly one bill notification to the tenant.
    - The bill row is read FOR UPDATE during a decision, serializing
      concurrent decisions per bill on PostgreSQL.

Failure modes:
    - AdminRequiredError for create/update/decide by a non-admin.
    - NotBillTenantError when a tenant acts on someone else's bill.
    - ValidationError on unknown fields, missing dates, malformed numbers,
      or a rejection reason over the configured maximum length.
    - ContractNotFoundError, BillNotFoundError, TenantLinkMissingError,
      PaymentSlipNotFoundError for missing rows.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from lease_kernel.db.types import fit_to_column, to_decimal
from lease_kernel.domain import notices
from lease_kernel.domain.auth import AuthContext, is_tenant_of, require_admin
from lease_kernel.domain.billing import (
    DECISION_SLIP_STATUS,
    DECISION_TARGET,
    EDITABLE_FIELDS,
    FIELD_COLUMNS,
    NUMERIC_FIELDS,
    POWER_INPUT_FIELDS,
    WATER_INPUT_FIELDS,
    ZERO,
    BillDecision,
    BillStatus,
    is_correction,
)
from lease_kernel.domain.clock import Clock
from lease_kernel.domain.dtos import BillView, DecisionOutcome
from lease_kernel.exceptions import (
    BillHasSlipsError,
    BillNotFoundError,
    ContractNotFoundError,
    NotBillTenantError,
    PaymentSlipNotFoundError,
    TenantLinkMissingError,
    ValidationError,
)
from lease_kernel.logging_config import get_logger
from lease_kernel.models.bill import Bill
from lease_kernel.models.contract import Contract
from lease_kernel.models.payment_slip import PaymentSlip
from lease_kernel.services.base import BaseService
from lease_kernel.services.notification_dispatcher import NotificationDispatcher

logger = get_logger("services.bill_ledger")

DEFAULT_REASON_MAX_LENGTH = 500

CREATE_FIELDS = frozenset(NUMERIC_FIELDS + ("contract_id", "billing_month", "due_date"))


# =========================================================================
# Input coercion
# =========================================================================


def parse_date(value: Any, field: str) -> date:
    """Accept a date, a datetime or an ISO ``YYYY-MM-DD`` string."""
    if value is None or value == "":
        raise ValidationError(f"{field} is required", field=field)
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError as exc:
            raise ValidationError(f"{field} is not a valid date: {value!r}", field=field) from exc
    raise ValidationError(f"{field} is not a valid date: {value!r}", field=field)


def parse_billing_month(value: Any) -> date:
    """Billing month as the first day of its month; accepts ``YYYY-MM``."""
    if isinstance(value, str) and len(value.strip()) == 7:
        value = f"{value.strip()}-01"
    return parse_date(value, "billing_month").replace(day=1)


def parse_amount(value: Any, field: str) -> Decimal:
    """Parse a numeric bill input and fit it to its column scale."""
    try:
        amount = to_decimal(value, default=ZERO)
    except ValueError as exc:
        raise ValidationError(f"{field} is not a valid number: {value!r}", field=field) from exc
    try:
        return fit_to_column(amount, *FIELD_COLUMNS[field])
    except (ValueError, InvalidOperation) as exc:
        raise ValidationError(f"{field} is out of range: {value!r}", field=field) from exc


def parse_uuid(value: Any, field: str) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field} is not a valid id: {value!r}", field=field) from exc


def _reject_unknown(fields: Mapping[str, Any], allowed: frozenset[str]) -> None:
    unknown = sorted(set(fields) - allowed)
    if unknown:
        raise ValidationError(
            f"Unknown bill fields: {', '.join(unknown)}", field=unknown[0],
        )


class BillLedger(BaseService):
    """Writes bills and records admin decisions on them."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        dispatcher: NotificationDispatcher | None = None,
        reason_max_length: int = DEFAULT_REASON_MAX_LENGTH,
    ) -> None:
        super().__init__(session, clock)
        self.dispatcher = dispatcher or NotificationDispatcher(session, self.clock)
        self.reason_max_length = reason_max_length

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, bill_id: UUID, auth: AuthContext) -> BillView:
        """Return one bill to an admin or to the bill's own tenant."""
        bill = self._load_bill(bill_id)
        if not auth.is_admin:
            contract = self._load_contract_link(bill)
            if not is_tenant_of(auth, contract.tenant_id):
                raise NotBillTenantError(str(bill_id), _subject(auth))
        return bill.to_dto()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, fields: Mapping[str, Any], auth: AuthContext) -> BillView:
        """
        Create an unpaid bill for a contract.

        rent_amount defaults to the contract's rent when omitted; every
        other numeric field defaults to zero.
        """
        require_admin(auth, "create_bill")
        _reject_unknown(fields, CREATE_FIELDS)

        contract_id = parse_uuid(fields.get("contract_id"), "contract_id")
        billing_month = parse_billing_month(fields.get("billing_month"))
        due_date = parse_date(fields.get("due_date"), "due_date")
        amounts = {name: parse_amount(fields.get(name), name) for name in NUMERIC_FIELDS}

        contract = self.session.get(Contract, contract_id)
        if contract is None:
            raise ContractNotFoundError(str(contract_id))
        if fields.get("rent_amount") in (None, ""):
            amounts["rent_amount"] = contract.rent_amount

        now = self.clock.now()
        bill = Bill(
            contract_id=contract_id,
            billing_month=billing_month,
            due_date=due_date,
            status=BillStatus.UNPAID.value,
            paid_date=None,
            created_at=now,
            updated_at=now,
            **amounts,
        )
        bill.recompute()
        self.session.add(bill)
        self.session.flush()

        logger.info(
            "bill_created",
            extra={
                "bill_id": str(bill.id),
                "contract_id": str(contract_id),
                "billing_month": billing_month.isoformat(),
                "total_amount": str(bill.total_amount),
                "water_reading_reversed": bill.water.is_reversed,
                "power_reading_reversed": bill.power.is_reversed,
            },
        )
        return bill.to_dto()

    def update(
        self, bill_id: UUID, partial: Mapping[str, Any], auth: AuthContext,
    ) -> BillView:
        """
        Apply an admin edit to a bill.

        Utility amounts are recomputed when any of that utility's inputs
        are patched; the total is recomputed when any charge changes.  A
        ``status`` in the patch is a manual override that keeps paid_date
        consistent with the new status.
        """
        require_admin(auth, "update_bill")
        _reject_unknown(partial, EDITABLE_FIELDS)
        if not partial:
            raise ValidationError("No fields to update")

        bill = self._load_bill(bill_id)
        changed = set(partial)

        for name in NUMERIC_FIELDS:
            if name in partial:
                setattr(bill, name, parse_amount(partial[name], name))
        if "billing_month" in partial:
            bill.billing_month = parse_billing_month(partial["billing_month"])
        if "due_date" in partial:
            bill.due_date = parse_date(partial["due_date"], "due_date")

        if changed & set(WATER_INPUT_FIELDS):
            bill.water_amount = bill.water.amount
        if changed & set(POWER_INPUT_FIELDS):
            bill.power_amount = bill.power.amount
        if changed & set(NUMERIC_FIELDS):
            bill.total_amount = bill.charges.total

        now = self.clock.now()
        previous_status = BillStatus(bill.status)
        if "status" in partial:
            try:
                new_status = BillStatus(partial["status"])
            except ValueError as exc:
                raise ValidationError(
                    f"Invalid bill status: {partial['status']!r}", field="status",
                ) from exc
            bill.status = new_status.value
            if new_status is BillStatus.PAID:
                if bill.paid_date is None:
                    bill.paid_date = now
            else:
                bill.paid_date = None
            if new_status is not previous_status:
                logger.warning(
                    "bill_status_overridden",
                    extra={
                        "bill_id": str(bill_id),
                        "from_status": previous_status.value,
                        "to_status": new_status.value,
                        "actor": auth.actor_label,
                    },
                )

        bill.updated_at = now
        self.session.flush()

        logger.info(
            "bill_updated",
            extra={
                "bill_id": str(bill_id),
                "fields": sorted(changed),
                "total_amount": str(bill.total_amount),
            },
        )
        return bill.to_dto()

    def delete(self, bill_id: UUID, auth: AuthContext) -> None:
        """
        Remove a bill that has no payment slips.

        A bill with slips is kept as payment evidence; the admin has to
        correct it with ``update`` instead.
        """
        require_admin(auth, "delete_bill")
        bill = self._load_bill(bill_id)
        slip_count = self.session.execute(
            select(func.count(PaymentSlip.id)).where(PaymentSlip.bill_id == bill_id)
        ).scalar_one()
        if slip_count:
            raise BillHasSlipsError(str(bill_id), slip_count)

        status = bill.status
        self.session.delete(bill)
        self.session.flush()

        logger.info(
            "bill_deleted",
            extra={"bill_id": str(bill_id), "status": status, "actor": auth.actor_label},
        )

    def mark_pending_approval(self, bill_id: UUID, auth: AuthContext) -> BillView:
        """
        Move an unpaid bill to pending_approval for its tenant.

        Already pending or paid bills are left as they are.
        """
        bill = self._load_bill(bill_id)
        contract = self._load_contract_link(bill)
        if not is_tenant_of(auth, contract.tenant_id):
            raise NotBillTenantError(str(bill_id), _subject(auth))

        if bill.status == BillStatus.UNPAID.value:
            bill.status = BillStatus.PENDING_APPROVAL.value
            bill.updated_at = self.clock.now()
            self.session.flush()
            logger.info(
                "bill_pending_approval",
                extra={"bill_id": str(bill_id), "tenant_id": str(contract.tenant_id)},
            )
        return bill.to_dto()

    def decide(
        self,
        bill_id: UUID,
        decision: BillDecision | str,
        reason: str | None,
        auth: AuthContext,
        slip_id: UUID | None = None,
    ) -> DecisionOutcome:
        """
        Record an admin approve/reject on a bill.

        The slip updated is ``slip_id`` when given, otherwise the bill's
        most recently created slip (if any).
        """
        require_admin(auth, "decide_bill")
        try:
            decision = BillDecision(decision)
        except ValueError as exc:
            raise ValidationError(f"Invalid decision: {decision!r}", field="decision") from exc

        reason = (reason or "").strip() or None
        if reason is not None and len(reason) > self.reason_max_length:
            raise ValidationError(
                f"reason exceeds {self.reason_max_length} characters", field="reason",
            )
        if decision is BillDecision.APPROVE:
            reason = None

        bill = self.session.execute(
            select(Bill).where(Bill.id == bill_id).with_for_update()
        ).scalar_one_or_none()
        if bill is None:
            raise BillNotFoundError(str(bill_id))
        contract = self._load_contract_link(bill)

        slip = self._decision_slip(bill_id, slip_id)
        previous = BillStatus(bill.status)
        target = DECISION_TARGET[decision]
        now = self.clock.now()

        if decision is BillDecision.APPROVE:
            self.session.execute(
                update(Bill)
                .where(Bill.id == bill_id)
                .values(status=target.value, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            self.session.execute(
                update(Bill)
                .where(Bill.id == bill_id, Bill.paid_date.is_(None))
                .values(paid_date=now)
                .execution_options(synchronize_session=False)
            )
        else:
            self.session.execute(
                update(Bill)
                .where(Bill.id == bill_id)
                .values(status=target.value, paid_date=None, updated_at=now)
                .execution_options(synchronize_session=False)
            )
        self.session.refresh(bill)

        if slip is not None:
            slip.status = DECISION_SLIP_STATUS[decision].value
            slip.reviewed_at = now
            slip.rejection_reason = reason
            self.session.flush()

        notice = (
            notices.slip_approved()
            if decision is BillDecision.APPROVE
            else notices.slip_rejected(reason)
        )
        notification = self.dispatcher.send_notice(contract.tenant_id, notice, bill_id)

        correction = is_correction(previous, decision)
        log_extra = {
            "bill_id": str(bill_id),
            "decision": decision.value,
            "from_status": previous.value,
            "to_status": target.value,
            "slip_id": str(slip.id) if slip is not None else None,
            "actor": auth.actor_label,
            "correction": correction,
        }
        if correction:
            logger.warning("bill_decision_correction", extra=log_extra)
        logger.info("bill_decided", extra=log_extra)

        return DecisionOutcome(
            bill_id=bill_id,
            decision=decision,
            previous_status=previous,
            new_status=target,
            paid_date=bill.paid_date,
            slip_id=slip.id if slip is not None else None,
            notification_id=notification.id,
            correction=correction,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load_bill(self, bill_id: UUID) -> Bill:
        bill = self.session.get(Bill, bill_id)
        if bill is None:
            raise BillNotFoundError(str(bill_id))
        return bill

    def _load_contract_link(self, bill: Bill) -> Contract:
        contract = self.session.get(Contract, bill.contract_id)
        if contract is None or contract.tenant_id is None:
            raise TenantLinkMissingError(str(bill.id), str(bill.contract_id))
        return contract

    def _decision_slip(self, bill_id: UUID, slip_id: UUID | None) -> PaymentSlip | None:
        if slip_id is not None:
            slip = self.session.get(PaymentSlip, slip_id)
            if slip is None or slip.bill_id != bill_id:
                raise PaymentSlipNotFoundError(str(slip_id))
            return slip
        return self.session.execute(
            select(PaymentSlip)
            .where(PaymentSlip.bill_id == bill_id)
            .order_by(PaymentSlip.created_at.desc())
            .limit(1)
        ).scalar_one_or_none()


def _subject(auth: AuthContext) -> str | None:
    return str(auth.subject_id) if auth.subject_id else None
