"""
Tests for lease_kernel.services.bill_ledger.

Validates BillLedger: create (amount computation, defaults, validation,
inputs rounded to their stored scale), update (merged recomputation, manual
status edits), mark_pending_approval, decide (idempotent approve, reject,
correction path, slip update, exactly one notification), get, and delete
(refused while slips exist).
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select

from lease_kernel.domain.billing import BillDecision, BillStatus, SlipStatus, utility_amount
from lease_kernel.exceptions import (
    AdminRequiredError,
    BillHasSlipsError,
    BillNotFoundError,
    ContractNotFoundError,
    NotBillTenantError,
    TenantLinkMissingError,
    ValidationError,
)
from lease_kernel.models import Bill, Notification, PaymentSlip
from lease_kernel.services.slip_reviewer import SlipReviewer
from lease_kernel.services.slip_storage import InMemorySlipStorage


@pytest.fixture
def reviewer(session, clock, ledger):
    return SlipReviewer(session, InMemorySlipStorage(), clock, ledger)


def _bill_row(session, bill_id) -> Bill:
    session.expire_all()
    return session.get(Bill, bill_id)


def _notifications(session, user_id) -> list[Notification]:
    return session.execute(
        select(Notification).where(Notification.user_id == user_id)
    ).scalars().all()


# =============================================================================
# create
# =============================================================================


class TestCreate:
    def test_worked_example_amounts(self, make_bill):
        bill = make_bill(
            rent_amount="3000",
            water_previous_reading="100",
            water_current_reading="137",
            water_unit_rate="7",
            power_previous_reading="0",
            power_current_reading="30",
            power_unit_rate="5",
            internet_amount="500",
            other_charges="0",
        )
        assert bill.water_amount == Decimal("259.00")
        assert bill.power_amount == Decimal("150.00")
        assert bill.total_amount == Decimal("3909.00")
        assert bill.status is BillStatus.UNPAID
        assert bill.paid_date is None

    def test_rent_defaults_to_contract_rent(self, ledger, admin, contract):
        bill = ledger.create(
            {"contract_id": contract.id, "billing_month": "2025-02", "due_date": "2025-02-28"},
            admin,
        )
        assert bill.rent_amount == Decimal("3500.00")
        assert bill.total_amount == Decimal("3500.00")

    def test_billing_month_normalized_to_first_day(self, make_bill):
        bill = make_bill(billing_month="2025-03-20")
        assert bill.billing_month == date(2025, 3, 1)

    def test_reversed_reading_clamped(self, make_bill, captured_logs):
        bill = make_bill(
            water_previous_reading="150", water_current_reading="120", water_unit_rate="7",
        )
        assert bill.water_amount == Decimal("0.00")
        created = [r for r in captured_logs() if r["message"] == "bill_created"]
        assert created[-1]["water_reading_reversed"] is True

    def test_missing_due_date_rejected(self, ledger, admin, contract):
        with pytest.raises(ValidationError) as exc_info:
            ledger.create({"contract_id": contract.id, "billing_month": "2025-01"}, admin)
        assert exc_info.value.field == "due_date"

    def test_missing_billing_month_rejected(self, ledger, admin, contract):
        with pytest.raises(ValidationError):
            ledger.create({"contract_id": contract.id, "due_date": "2025-01-31"}, admin)

    def test_malformed_number_rejected(self, make_bill):
        with pytest.raises(ValidationError) as exc_info:
            make_bill(water_unit_rate="seven")
        assert exc_info.value.field == "water_unit_rate"

    def test_persisted_amounts_match_stored_readings(self, session, make_bill):
        bill = make_bill(
            water_previous_reading="100",
            water_current_reading="100.0004",
            water_unit_rate="10000",
        )
        row = _bill_row(session, bill.id)
        assert row.water_current_reading == Decimal("100.000")
        assert row.water_amount == utility_amount(
            row.water_previous_reading, row.water_current_reading, row.water_unit_rate,
        )
        assert row.water_amount == Decimal("0.00")
        assert row.total_amount == row.charges.total
        assert bill.water_amount == row.water_amount

    def test_rate_rounded_to_stored_scale(self, session, make_bill):
        bill = make_bill(
            water_previous_reading="0", water_current_reading="10", water_unit_rate="7.00005",
        )
        row = _bill_row(session, bill.id)
        assert row.water_unit_rate == Decimal("7.0001")
        assert row.water_amount == Decimal("70.00")

    @pytest.mark.parametrize("field", ["water_current_reading", "power_unit_rate", "rent_amount"])
    def test_out_of_range_number_rejected(self, make_bill, field):
        with pytest.raises(ValidationError) as exc_info:
            make_bill(**{field: "1e30"})
        assert exc_info.value.field == field

    def test_non_finite_number_rejected(self, make_bill):
        with pytest.raises(ValidationError):
            make_bill(water_unit_rate="Infinity")

    def test_malformed_date_rejected(self, make_bill):
        with pytest.raises(ValidationError):
            make_bill(due_date="31/01/2025")

    def test_unknown_field_rejected(self, make_bill):
        with pytest.raises(ValidationError):
            make_bill(discount="100")

    def test_unknown_contract(self, ledger, admin):
        with pytest.raises(ContractNotFoundError):
            ledger.create(
                {"contract_id": uuid4(), "billing_month": "2025-01", "due_date": "2025-01-31"},
                admin,
            )

    def test_tenant_cannot_create(self, ledger, tenant, contract):
        with pytest.raises(AdminRequiredError):
            ledger.create(
                {"contract_id": contract.id, "billing_month": "2025-01", "due_date": "2025-01-31"},
                tenant,
            )


# =============================================================================
# update
# =============================================================================


class TestUpdate:
    def test_patching_one_reading_uses_stored_inputs(self, ledger, admin, make_bill):
        bill = make_bill(
            water_previous_reading="100", water_current_reading="110", water_unit_rate="7",
            power_previous_reading="0", power_current_reading="30", power_unit_rate="5",
        )
        updated = ledger.update(bill.id, {"water_current_reading": "137"}, admin)
        assert updated.water_amount == Decimal("259.00")
        assert updated.power_amount == Decimal("150.00")
        assert updated.total_amount == Decimal("3909.00")

    def test_fixed_charge_change_recomputes_total(self, ledger, admin, bill):
        updated = ledger.update(bill.id, {"internet_amount": "500", "other_charges": "99.50"}, admin)
        assert updated.total_amount == Decimal("4099.50")

    def test_total_invariant_after_update_sequence(self, session, ledger, admin, bill):
        for patch in (
            {"water_previous_reading": "10", "water_current_reading": "20", "water_unit_rate": "7.5"},
            {"rent_amount": "2800"},
            {"power_current_reading": "12.5", "power_unit_rate": "8"},
            {"water_current_reading": "5"},
        ):
            ledger.update(bill.id, patch, admin)
        row = _bill_row(session, bill.id)
        assert row.total_amount == (
            row.rent_amount + row.water_amount + row.power_amount
            + row.internet_amount + row.other_charges
        )
        assert row.water_amount == Decimal("0.00")

    def test_out_of_range_patch_rejected(self, session, ledger, admin, bill):
        with pytest.raises(ValidationError) as exc_info:
            ledger.update(bill.id, {"water_current_reading": "1e30"}, admin)
        assert exc_info.value.field == "water_current_reading"

    def test_patched_reading_rounded_before_recompute(self, session, ledger, admin, bill):
        ledger.update(
            bill.id,
            {"power_previous_reading": "0", "power_current_reading": "2.0006", "power_unit_rate": "100"},
            admin,
        )
        row = _bill_row(session, bill.id)
        assert row.power_current_reading == Decimal("2.001")
        assert row.power_amount == Decimal("200.10")
        assert row.total_amount == row.charges.total

    def test_unknown_field_rejected(self, ledger, admin, bill):
        with pytest.raises(ValidationError):
            ledger.update(bill.id, {"total_amount": "1"}, admin)

    def test_empty_patch_rejected(self, ledger, admin, bill):
        with pytest.raises(ValidationError):
            ledger.update(bill.id, {}, admin)

    def test_invalid_status_rejected(self, ledger, admin, bill):
        with pytest.raises(ValidationError):
            ledger.update(bill.id, {"status": "refunded"}, admin)

    def test_manual_paid_edit_sets_paid_date(self, ledger, admin, bill, captured_logs):
        updated = ledger.update(bill.id, {"status": "paid"}, admin)
        assert updated.status is BillStatus.PAID
        assert updated.paid_date is not None
        assert any(r["message"] == "bill_status_overridden" for r in captured_logs())

    def test_manual_unpaid_edit_clears_paid_date(self, ledger, admin, bill):
        ledger.update(bill.id, {"status": "paid"}, admin)
        updated = ledger.update(bill.id, {"status": "unpaid"}, admin)
        assert updated.paid_date is None

    def test_missing_bill(self, ledger, admin):
        with pytest.raises(BillNotFoundError):
            ledger.update(uuid4(), {"rent_amount": "1"}, admin)

    def test_tenant_cannot_update(self, ledger, tenant, bill):
        with pytest.raises(AdminRequiredError):
            ledger.update(bill.id, {"rent_amount": "1"}, tenant)


# =============================================================================
# mark_pending_approval / get
# =============================================================================


class TestMarkPendingApproval:
    def test_tenant_moves_unpaid_to_pending(self, ledger, tenant, bill):
        assert ledger.mark_pending_approval(bill.id, tenant).status is BillStatus.PENDING_APPROVAL

    def test_pending_is_noop(self, ledger, tenant, bill):
        ledger.mark_pending_approval(bill.id, tenant)
        assert ledger.mark_pending_approval(bill.id, tenant).status is BillStatus.PENDING_APPROVAL

    def test_paid_is_noop(self, ledger, admin, tenant, bill):
        ledger.decide(bill.id, BillDecision.APPROVE, None, admin)
        assert ledger.mark_pending_approval(bill.id, tenant).status is BillStatus.PAID

    def test_other_tenant_forbidden(self, ledger, other_tenant, bill):
        with pytest.raises(NotBillTenantError):
            ledger.mark_pending_approval(bill.id, other_tenant)

    def test_admin_is_not_the_tenant(self, ledger, admin, bill):
        with pytest.raises(NotBillTenantError):
            ledger.mark_pending_approval(bill.id, admin)


class TestGet:
    def test_admin_and_owner_can_read(self, ledger, admin, tenant, bill):
        assert ledger.get(bill.id, admin).id == bill.id
        assert ledger.get(bill.id, tenant).id == bill.id

    def test_other_tenant_cannot_read(self, ledger, other_tenant, bill):
        with pytest.raises(NotBillTenantError):
            ledger.get(bill.id, other_tenant)


class TestDelete:
    def test_admin_deletes_bill_without_slips(self, session, ledger, admin, bill, captured_logs):
        ledger.delete(bill.id, admin)
        assert _bill_row(session, bill.id) is None
        deleted = [r for r in captured_logs() if r["message"] == "bill_deleted"]
        assert deleted[-1]["bill_id"] == str(bill.id)

    def test_bill_with_slip_is_kept(self, session, ledger, reviewer, admin, tenant, bill):
        reviewer.submit(bill.id, b"slip", "slip.png", None, tenant)
        with pytest.raises(BillHasSlipsError) as exc_info:
            ledger.delete(bill.id, admin)
        assert exc_info.value.slip_count == 1
        assert _bill_row(session, bill.id) is not None

    def test_missing_bill(self, ledger, admin):
        with pytest.raises(BillNotFoundError):
            ledger.delete(uuid4(), admin)

    def test_tenant_cannot_delete(self, session, ledger, tenant, bill):
        with pytest.raises(AdminRequiredError):
            ledger.delete(bill.id, tenant)
        assert _bill_row(session, bill.id) is not None


# =============================================================================
# decide
# =============================================================================


class TestDecide:
    def test_approve_twice_keeps_first_paid_date(self, session, ledger, admin, clock, bill):
        first = ledger.decide(bill.id, "approve", None, admin)
        clock.advance(3600)
        second = ledger.decide(bill.id, "approve", None, admin)

        assert first.new_status is BillStatus.PAID
        assert second.previous_status is BillStatus.PAID
        assert second.paid_date == first.paid_date
        assert _bill_row(session, bill.id).status == "paid"

    def test_approve_already_paid_is_not_a_correction(self, ledger, admin, bill):
        ledger.decide(bill.id, "approve", None, admin)
        assert ledger.decide(bill.id, "approve", None, admin).correction is False

    def test_reject_after_submission(
        self, session, ledger, reviewer, admin, tenant, tenant_id, bill,
    ):
        submitted = reviewer.submit(bill.id, b"slip-bytes", "slip.jpg", None, tenant)
        assert submitted.bill.status is BillStatus.PENDING_APPROVAL

        outcome = ledger.decide(bill.id, BillDecision.REJECT, "evidence unclear", admin)

        row = _bill_row(session, bill.id)
        assert row.status == "unpaid"
        assert row.paid_date is None
        notes = _notifications(session, tenant_id)
        assert len(notes) == 1
        assert notes[0].type == "bill"
        assert notes[0].related_id == bill.id
        assert outcome.notification_id == notes[0].id

        slip = session.get(PaymentSlip, submitted.slip.id)
        assert slip.status == SlipStatus.REJECTED.value
        assert slip.rejection_reason == "evidence unclear"
        assert slip.reviewed_at is not None

    def test_reject_from_paid_is_correction(self, session, ledger, admin, bill, captured_logs):
        ledger.decide(bill.id, "approve", None, admin)
        outcome = ledger.decide(bill.id, "reject", "payment bounced", admin)

        assert outcome.correction is True
        assert outcome.previous_status is BillStatus.PAID
        assert _bill_row(session, bill.id).paid_date is None
        assert any(r["message"] == "bill_decision_correction" for r in captured_logs())

    def test_each_decision_notifies_once(self, session, ledger, admin, tenant_id, bill):
        ledger.decide(bill.id, "approve", None, admin)
        ledger.decide(bill.id, "approve", None, admin)
        assert len(_notifications(session, tenant_id)) == 2

    def test_latest_slip_is_decided(self, session, ledger, reviewer, admin, tenant, clock, bill):
        older = reviewer.submit(bill.id, b"one", "one.png", None, tenant)
        clock.advance(60)
        newer = reviewer.submit(bill.id, b"two", "two.png", None, tenant)

        outcome = ledger.decide(bill.id, "approve", None, admin)

        assert outcome.slip_id == newer.slip.id
        session.expire_all()
        assert session.get(PaymentSlip, older.slip.id).status == "pending"
        assert session.get(PaymentSlip, newer.slip.id).status == "approved"

    def test_decision_without_slip(self, ledger, admin, bill):
        assert ledger.decide(bill.id, "approve", None, admin).slip_id is None

    def test_reason_too_long(self, ledger, admin, bill):
        with pytest.raises(ValidationError):
            ledger.decide(bill.id, "reject", "x" * 501, admin)

    def test_reason_at_limit_accepted(self, ledger, admin, bill):
        assert ledger.decide(bill.id, "reject", "x" * 500, admin).new_status is BillStatus.UNPAID

    def test_invalid_decision(self, ledger, admin, bill):
        with pytest.raises(ValidationError):
            ledger.decide(bill.id, "maybe", None, admin)

    def test_missing_bill(self, ledger, admin):
        with pytest.raises(BillNotFoundError):
            ledger.decide(uuid4(), "approve", None, admin)

    def test_missing_contract_link(self, session, ledger, admin, clock):
        orphan = Bill(
            contract_id=uuid4(),
            billing_month=date(2025, 1, 1),
            due_date=date(2025, 1, 31),
            status="unpaid",
            created_at=clock.now(),
            updated_at=clock.now(),
        )
        session.add(orphan)
        session.flush()
        with pytest.raises(TenantLinkMissingError):
            ledger.decide(orphan.id, "approve", None, admin)

    def test_tenant_cannot_decide(self, ledger, tenant, bill):
        with pytest.raises(AdminRequiredError):
            ledger.decide(bill.id, "approve", None, tenant)

    def test_rejected_decision_leaves_no_notification(self, session, ledger, tenant, tenant_id, bill):
        with pytest.raises(AdminRequiredError):
            ledger.decide(bill.id, "approve", None, tenant)
        count = session.execute(select(func.count()).select_from(Notification)).scalar_one()
        assert count == 0
