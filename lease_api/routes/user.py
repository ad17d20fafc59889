"""Tenant routes: slip upload and own bills."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from lease_api.auth import current_user
from lease_api.routes import _services
from lease_api.schemas import BillEnvelope, BillListEnvelope, BillOut
from lease_kernel.db.engine import session_scope
from lease_kernel.domain.auth import AuthContext, Role
from lease_kernel.exceptions import ForbiddenError
from lease_kernel.logging_config import LogContext

router = APIRouter(prefix="/api/user", tags=["tenant"])


def _require_tenant(auth: AuthContext) -> None:
    if auth.role is not Role.TENANT or auth.subject_id is None:
        raise ForbiddenError("Tenant credential required")


@router.post("/payment-slips", response_model=BillEnvelope, status_code=201)
def upload_payment_slip(
    request: Request,
    bill_id: UUID = Form(...),
    file: UploadFile = File(...),
    notes: str | None = Form(None),
    auth: AuthContext = Depends(current_user),
):
    _require_tenant(auth)
    content = file.file.read()
    reviewer = result = None
    try:
        with LogContext.bind(bill_id=str(bill_id)), session_scope() as session:
            reviewer = _services.reviewer(request, session)
            result = reviewer.submit(bill_id, content, file.filename or "", notes, auth)
    except Exception:
        # stored file whose slip row was rolled back at commit
        if result is not None:
            reviewer.discard_file(result.slip.file_url)
        raise
    return BillEnvelope(bill=BillOut.model_validate(result.bill))


@router.get("/bills", response_model=BillListEnvelope)
def list_my_bills(auth: AuthContext = Depends(current_user)):
    _require_tenant(auth)
    with session_scope() as session:
        bills = _services.selector(session).bills_for_tenant(auth.subject_id)
    return BillListEnvelope(bills=[BillOut.model_validate(bill) for bill in bills])
