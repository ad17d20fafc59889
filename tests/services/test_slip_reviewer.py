"""
Tests for lease_kernel.services.slip_reviewer and slip_storage.

Submission stores the file only after the tenant check passes; review
resolves slip -> bill -> contract -> tenant and delegates to BillLedger.
A submission that fails after the file is stored removes the file again.
"""

from uuid import uuid4

import pytest

from lease_kernel.domain.billing import BillStatus, SlipStatus
from lease_kernel.exceptions import (
    AdminRequiredError,
    NotBillTenantError,
    PaymentSlipNotFoundError,
    SlipFileMissingError,
    SlipStorageError,
    ValidationError,
)
from lease_kernel.models import Notification, PaymentSlip
from lease_kernel.services.slip_reviewer import SlipReviewer
from lease_kernel.services.slip_storage import (
    InMemorySlipStorage,
    LocalSlipStorage,
    safe_file_name,
)


@pytest.fixture
def storage():
    return InMemorySlipStorage()


@pytest.fixture
def reviewer(session, clock, ledger, storage):
    return SlipReviewer(session, storage, clock, ledger)


class TestSubmit:
    def test_submit_stores_file_and_marks_pending(self, reviewer, storage, tenant, bill):
        result = reviewer.submit(bill.id, b"\x89PNG", "receipt.png", "  paid at bank  ", tenant)

        assert result.bill.status is BillStatus.PENDING_APPROVAL
        assert result.slip.status is SlipStatus.PENDING
        assert result.slip.notes == "paid at bank"
        assert storage.files[result.slip.file_url] == b"\x89PNG"
        assert result.slip.file_url.startswith(f"{bill.id}/")

    def test_blank_notes_stored_as_null(self, reviewer, tenant, bill):
        assert reviewer.submit(bill.id, b"x", "a.jpg", "   ", tenant).slip.notes is None

    def test_other_tenant_rejected_before_storing(self, reviewer, storage, other_tenant, bill):
        with pytest.raises(NotBillTenantError):
            reviewer.submit(bill.id, b"x", "a.jpg", None, other_tenant)
        assert storage.files == {}

    def test_empty_file_rejected(self, reviewer, storage, tenant, bill):
        with pytest.raises(ValidationError):
            reviewer.submit(bill.id, b"", "a.jpg", None, tenant)
        assert storage.files == {}

    def test_missing_file_name_rejected(self, reviewer, tenant, bill):
        with pytest.raises(ValidationError):
            reviewer.submit(bill.id, b"x", "  ", None, tenant)

    def test_resubmission_on_pending_bill(self, session, reviewer, tenant, clock, bill):
        reviewer.submit(bill.id, b"one", "a.jpg", None, tenant)
        clock.advance(10)
        second = reviewer.submit(bill.id, b"two", "b.jpg", None, tenant)
        assert second.bill.status is BillStatus.PENDING_APPROVAL
        slips = session.query(PaymentSlip).filter_by(bill_id=bill.id).all()
        assert len(slips) == 2

    def test_stored_file_removed_when_submission_fails(
        self, monkeypatch, reviewer, storage, tenant, bill, captured_logs,
    ):
        def fail(*args, **kwargs):
            raise RuntimeError("database went away")

        monkeypatch.setattr(reviewer.ledger, "mark_pending_approval", fail)
        with pytest.raises(RuntimeError, match="database went away"):
            reviewer.submit(bill.id, b"x", "a.jpg", None, tenant)
        assert storage.files == {}
        assert any(r["message"] == "slip_file_discarded" for r in captured_logs())

    def test_failed_cleanup_keeps_original_error(
        self, monkeypatch, reviewer, storage, tenant, bill, captured_logs,
    ):
        def fail(*args, **kwargs):
            raise RuntimeError("database went away")

        def broken_delete(reference):
            raise SlipStorageError(reference, "read-only filesystem")

        monkeypatch.setattr(reviewer.ledger, "mark_pending_approval", fail)
        monkeypatch.setattr(storage, "delete", broken_delete)
        with pytest.raises(RuntimeError, match="database went away"):
            reviewer.submit(bill.id, b"x", "a.jpg", None, tenant)
        assert any(r["message"] == "slip_file_orphaned" for r in captured_logs())

    def test_logs_submission(self, reviewer, tenant, bill, captured_logs):
        reviewer.submit(bill.id, b"abc", "a.jpg", None, tenant)
        records = [r for r in captured_logs() if r["message"] == "slip_submitted"]
        assert records[-1]["size_bytes"] == 3
        assert records[-1]["bill_status"] == "pending_approval"


class TestReview:
    def test_review_context_resolves_tenant(self, reviewer, tenant, tenant_id, contract, bill):
        slip = reviewer.submit(bill.id, b"x", "a.jpg", None, tenant).slip
        context = reviewer.review_context(slip.id)
        assert context.bill_id == bill.id
        assert context.contract_id == contract.id
        assert context.tenant_id == tenant_id
        assert context.bill_status is BillStatus.PENDING_APPROVAL

    def test_approve_marks_bill_paid(self, session, reviewer, tenant, admin, bill):
        slip = reviewer.submit(bill.id, b"x", "a.jpg", None, tenant).slip
        outcome = reviewer.approve(slip.id, admin)

        assert outcome.new_status is BillStatus.PAID
        assert outcome.paid_date is not None
        assert outcome.slip_id == slip.id
        session.expire_all()
        assert session.get(PaymentSlip, slip.id).status == "approved"

    def test_concurrent_style_double_approve(self, reviewer, tenant, admin, clock, bill):
        slip = reviewer.submit(bill.id, b"x", "a.jpg", None, tenant).slip
        first = reviewer.approve(slip.id, admin)
        clock.advance(5)
        second = reviewer.approve(slip.id, admin)
        assert second.new_status is BillStatus.PAID
        assert second.paid_date == first.paid_date

    def test_reject_records_reason_and_notifies(
        self, session, reviewer, tenant, tenant_id, admin, bill,
    ):
        slip = reviewer.submit(bill.id, b"x", "a.jpg", None, tenant).slip
        outcome = reviewer.reject(slip.id, "amount does not match", admin)

        assert outcome.new_status is BillStatus.UNPAID
        session.expire_all()
        stored = session.get(PaymentSlip, slip.id)
        assert stored.status == "rejected"
        assert stored.rejection_reason == "amount does not match"
        notes = session.query(Notification).filter_by(user_id=tenant_id).all()
        assert len(notes) == 1
        assert "amount does not match" in notes[0].message

    def test_unknown_slip(self, reviewer, admin):
        with pytest.raises(PaymentSlipNotFoundError):
            reviewer.approve(uuid4(), admin)

    def test_tenant_cannot_review(self, reviewer, tenant, bill):
        slip = reviewer.submit(bill.id, b"x", "a.jpg", None, tenant).slip
        with pytest.raises(AdminRequiredError):
            reviewer.approve(slip.id, tenant)


class TestSlipFile:
    def test_admin_reads_stored_file(self, reviewer, tenant, admin, bill):
        slip = reviewer.submit(bill.id, b"\x89PNG-bytes", "receipt.png", None, tenant).slip
        evidence = reviewer.slip_file(slip.id, admin)
        assert evidence.content == b"\x89PNG-bytes"
        assert evidence.slip.id == slip.id
        assert evidence.slip.file_name == "receipt.png"

    def test_tenant_cannot_read(self, reviewer, tenant, bill):
        slip = reviewer.submit(bill.id, b"x", "a.jpg", None, tenant).slip
        with pytest.raises(AdminRequiredError):
            reviewer.slip_file(slip.id, tenant)

    def test_unknown_slip(self, reviewer, admin):
        with pytest.raises(PaymentSlipNotFoundError):
            reviewer.slip_file(uuid4(), admin)

    def test_missing_file(self, reviewer, storage, tenant, admin, bill):
        slip = reviewer.submit(bill.id, b"x", "a.jpg", None, tenant).slip
        storage.files.clear()
        with pytest.raises(SlipFileMissingError):
            reviewer.slip_file(slip.id, admin)


class TestStorage:
    @pytest.mark.parametrize("raw, expected", [
        ("receipt.png", "receipt.png"),
        ("../../etc/passwd", "passwd"),
        ("C:\\Users\\me\\slip 1.jpg", "slip_1.jpg"),
        ("สลิป.jpg", "jpg"),
        ("...", "slip"),
    ])
    def test_safe_file_name(self, raw, expected):
        assert safe_file_name(raw) == expected

    def test_local_storage_round_trip(self, tmp_path):
        storage = LocalSlipStorage(tmp_path)
        bill_id = uuid4()
        reference = storage.store(bill_id, "../slip.jpg", b"data")

        assert reference.startswith(f"{bill_id}/")
        assert reference.endswith("_slip.jpg")
        assert storage.read(reference) == b"data"
        assert (tmp_path / reference).is_file()

    def test_local_storage_delete(self, tmp_path):
        storage = LocalSlipStorage(tmp_path)
        reference = storage.store(uuid4(), "a.jpg", b"data")
        storage.delete(reference)
        assert not (tmp_path / reference).exists()
        storage.delete(reference)

    def test_local_storage_missing_file(self, tmp_path):
        with pytest.raises(SlipFileMissingError):
            LocalSlipStorage(tmp_path).read(f"{uuid4()}/gone.jpg")

    def test_local_storage_refuses_paths_outside_root(self, tmp_path):
        root = tmp_path / "slips"
        root.mkdir()
        (tmp_path / "secret.txt").write_text("x")
        with pytest.raises(SlipFileMissingError):
            LocalSlipStorage(root).read("../secret.txt")

    def test_local_storage_failure_is_typed(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file")
        storage = LocalSlipStorage(blocker)
        with pytest.raises(SlipStorageError):
            storage.store(uuid4(), "a.jpg", b"x")
