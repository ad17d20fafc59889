"""
lease_kernel.services.slip_reviewer -- Payment slip submission and review.

Responsibility:
    Accepts a tenant's payment evidence for a bill (stores the file, records
    a pending slip, moves the bill to pending_approval) and turns an admin's
    approve/reject of a slip into a BillLedger decision.

Architecture position:
    Kernel > Services.  Delegates bill state changes to BillLedger and
    file persistence to a SlipStorage collaborator.

Invariants enforced:
    - Only the bill's own tenant may submit; the check runs before any
      file is stored.
    - A review resolves slip -> bill -> contract -> tenant through a single
      join into a SlipReviewContext.
    - Two concurrent approvals of the same slip both succeed; paid_date is
      set only once.

Failure modes:
    - ValidationError on an empty file or missing file name.
    - NotBillTenantError when the caller is not the bill's tenant.
    - SlipStorageError when the file cannot be written.
    - PaymentSlipNotFoundError / BillNotFoundError for missing rows.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from lease_kernel.domain.auth import AuthContext, is_tenant_of, require_admin
from lease_kernel.domain.billing import BillDecision, BillStatus, SlipStatus
from lease_kernel.domain.clock import Clock
from lease_kernel.domain.dtos import (
    DecisionOutcome,
    SlipEvidence,
    SlipReviewContext,
    SubmissionResult,
)
from lease_kernel.exceptions import (
    BillNotFoundError,
    NotBillTenantError,
    PaymentSlipNotFoundError,
    SlipStorageError,
    TenantLinkMissingError,
    ValidationError,
)
from lease_kernel.logging_config import get_logger
from lease_kernel.models.bill import Bill
from lease_kernel.models.contract import Contract
from lease_kernel.models.payment_slip import PaymentSlip
from lease_kernel.services.base import BaseService
from lease_kernel.services.bill_ledger import BillLedger
from lease_kernel.services.slip_storage import SlipStorage

logger = get_logger("services.slip_reviewer")


class SlipReviewer(BaseService):
    """Handles slip submission by tenants and slip review by admins."""

    def __init__(
        self,
        session: Session,
        storage: SlipStorage,
        clock: Clock | None = None,
        ledger: BillLedger | None = None,
    ) -> None:
        super().__init__(session, clock)
        self.storage = storage
        self.ledger = ledger or BillLedger(session, self.clock)

    def submit(
        self,
        bill_id: UUID,
        content: bytes,
        file_name: str,
        notes: str | None,
        auth: AuthContext,
    ) -> SubmissionResult:
        """Store a tenant's slip and move the bill to pending_approval."""
        if not content:
            raise ValidationError("Slip file is empty", field="file")
        if not file_name or not file_name.strip():
            raise ValidationError("Slip file name is required", field="file")

        bill = self.session.get(Bill, bill_id)
        if bill is None:
            raise BillNotFoundError(str(bill_id))
        contract = self.session.get(Contract, bill.contract_id)
        if contract is None:
            raise TenantLinkMissingError(str(bill_id), str(bill.contract_id))
        if not is_tenant_of(auth, contract.tenant_id):
            raise NotBillTenantError(
                str(bill_id), str(auth.subject_id) if auth.subject_id else None,
            )

        file_url = self.storage.store(bill_id, file_name, content)
        try:
            slip = PaymentSlip(
                bill_id=bill_id,
                file_url=file_url,
                file_name=file_name,
                notes=(notes or "").strip() or None,
                status=SlipStatus.PENDING.value,
                created_at=self.clock.now(),
            )
            self.session.add(slip)
            self.session.flush()
            bill_view = self.ledger.mark_pending_approval(bill_id, auth)
        except Exception:
            self.discard_file(file_url)
            raise

        logger.info(
            "slip_submitted",
            extra={
                "slip_id": str(slip.id),
                "bill_id": str(bill_id),
                "tenant_id": str(contract.tenant_id),
                "size_bytes": len(content),
                "bill_status": bill_view.status.value,
            },
        )
        return SubmissionResult(slip=slip.to_dto(), bill=bill_view)

    def discard_file(self, reference: str) -> None:
        """
        Remove a stored file whose slip row will not be kept.

        Called while another error is propagating, so a storage failure
        here is logged rather than raised over it.
        """
        try:
            self.storage.delete(reference)
        except SlipStorageError:
            logger.exception("slip_file_orphaned", extra={"reference": reference})
            return
        logger.info("slip_file_discarded", extra={"reference": reference})

    def slip_file(self, slip_id: UUID, auth: AuthContext) -> SlipEvidence:
        """Return a slip and its stored file to an admin."""
        require_admin(auth, "read_slip_file")
        slip = self.session.get(PaymentSlip, slip_id)
        if slip is None:
            raise PaymentSlipNotFoundError(str(slip_id))
        content = self.storage.read(slip.file_url)
        logger.info(
            "slip_file_read",
            extra={"slip_id": str(slip_id), "bill_id": str(slip.bill_id), "actor": auth.actor_label},
        )
        return SlipEvidence(slip=slip.to_dto(), content=content)

    def review_context(self, slip_id: UUID) -> SlipReviewContext:
        """Resolve a slip through its bill and contract to the tenant."""
        row = self.session.execute(
            select(PaymentSlip, Bill.status, Contract.id, Contract.tenant_id)
            .outerjoin(Bill, Bill.id == PaymentSlip.bill_id)
            .outerjoin(Contract, Contract.id == Bill.contract_id)
            .where(PaymentSlip.id == slip_id)
        ).one_or_none()
        if row is None:
            raise PaymentSlipNotFoundError(str(slip_id))

        slip, bill_status, contract_id, tenant_id = row
        if bill_status is None:
            raise BillNotFoundError(str(slip.bill_id))
        return SlipReviewContext(
            slip=slip.to_dto(),
            bill_id=slip.bill_id,
            bill_status=BillStatus(bill_status),
            contract_id=contract_id,
            tenant_id=tenant_id,
        )

    def approve(self, slip_id: UUID, auth: AuthContext) -> DecisionOutcome:
        require_admin(auth, "approve_slip")
        context = self.review_context(slip_id)
        return self.ledger.decide(
            context.bill_id, BillDecision.APPROVE, None, auth, slip_id=context.slip.id,
        )

    def reject(self, slip_id: UUID, reason: str | None, auth: AuthContext) -> DecisionOutcome:
        require_admin(auth, "reject_slip")
        context = self.review_context(slip_id)
        return self.ledger.decide(
            context.bill_id, BillDecision.REJECT, reason, auth, slip_id=context.slip.id,
        )
