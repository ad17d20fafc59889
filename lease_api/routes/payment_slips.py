"""Admin payment slip review routes."""

from __future__ import annotations

import mimetypes
from pathlib import PurePath
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response

from lease_api.auth import current_user
from lease_api.routes import _services
from lease_api.schemas import DecisionEnvelope, RejectIn, ReviewQueueOut, SlipListEnvelope
from lease_kernel.db.engine import session_scope
from lease_kernel.domain.auth import AuthContext, require_admin
from lease_kernel.domain.billing import SlipStatus

router = APIRouter(prefix="/api/admin/payment-slips", tags=["admin-payment-slips"])


@router.get("", response_model=SlipListEnvelope)
def list_slips(
    request: Request,
    status: SlipStatus | None = None,
    auth: AuthContext = Depends(current_user),
):
    require_admin(auth, "list_payment_slips")
    with session_scope() as session:
        rows = _services.selector(session).slip_review_queue(status)
    return SlipListEnvelope(slips=[ReviewQueueOut.model_validate(row) for row in rows])


@router.get("/{slip_id}/file")
def slip_file(slip_id: UUID, request: Request, auth: AuthContext = Depends(current_user)):
    """Stream the stored slip image or PDF to an admin."""
    with session_scope() as session:
        evidence = _services.reviewer(request, session).slip_file(slip_id, auth)
    suffix = PurePath(evidence.slip.file_name).suffix.lower()
    if not (suffix.isascii() and suffix[1:].isalnum()):
        suffix = ""
    media_type = mimetypes.guess_type(evidence.slip.file_name)[0] or "application/octet-stream"
    return Response(
        content=evidence.content,
        media_type=media_type,
        headers={"Content-Disposition": f'inline; filename="slip-{slip_id}{suffix}"'},
    )


@router.post("/{slip_id}/approve", response_model=DecisionEnvelope)
def approve_slip(slip_id: UUID, request: Request, auth: AuthContext = Depends(current_user)):
    with session_scope() as session:
        outcome = _services.reviewer(request, session).approve(slip_id, auth)
    return DecisionEnvelope(new_status=outcome.new_status)


@router.post("/{slip_id}/reject", response_model=DecisionEnvelope)
def reject_slip(
    slip_id: UUID,
    request: Request,
    body: RejectIn | None = None,
    auth: AuthContext = Depends(current_user),
):
    reason = body.reason if body is not None else None
    with session_scope() as session:
        outcome = _services.reviewer(request, session).reject(slip_id, reason, auth)
    return DecisionEnvelope(new_status=outcome.new_status)
