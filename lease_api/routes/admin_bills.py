"""Admin bill routes: list, create, read, edit, delete, decide."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Request

from lease_api.auth import current_user
from lease_api.routes import _services
from lease_api.schemas import (
    BillCreateIn,
    BillEnvelope,
    BillListEnvelope,
    BillOut,
    BillUpdateIn,
    DecisionEnvelope,
    DecisionIn,
    OkEnvelope,
)
from lease_kernel.db.engine import session_scope
from lease_kernel.domain.auth import AuthContext, require_admin
from lease_kernel.domain.billing import BillStatus
from lease_kernel.logging_config import LogContext
from lease_kernel.services.bill_ledger import parse_billing_month

router = APIRouter(prefix="/api/admin/bills", tags=["admin-bills"])


@router.get("", response_model=BillListEnvelope)
def list_bills(
    status: BillStatus | None = None,
    month: str | None = None,
    auth: AuthContext = Depends(current_user),
):
    """All bills, newest first; ``month`` is YYYY-MM."""
    require_admin(auth, "list_bills")
    target = parse_billing_month(month) if month else None
    with session_scope() as session:
        bills = _services.selector(session).bills_for_admin(status, target)
    return BillListEnvelope(bills=[BillOut.model_validate(bill) for bill in bills])


@router.post("", response_model=BillEnvelope, status_code=201)
def create_bill(
    body: BillCreateIn, request: Request, auth: AuthContext = Depends(current_user),
):
    with session_scope() as session:
        view = _services.ledger(request, session).create(
            body.model_dump(exclude_unset=True), auth,
        )
    return BillEnvelope(bill=BillOut.model_validate(view))


@router.get("/{bill_id}", response_model=BillEnvelope)
def get_bill(bill_id: UUID, request: Request, auth: AuthContext = Depends(current_user)):
    require_admin(auth, "get_bill")
    with session_scope() as session:
        view = _services.ledger(request, session).get(bill_id, auth)
    return BillEnvelope(bill=BillOut.model_validate(view))


@router.patch("/{bill_id}", response_model=BillEnvelope)
def update_bill(
    bill_id: UUID,
    body: BillUpdateIn,
    request: Request,
    auth: AuthContext = Depends(current_user),
):
    with LogContext.bind(bill_id=str(bill_id)), session_scope() as session:
        view = _services.ledger(request, session).update(
            bill_id, body.model_dump(exclude_unset=True), auth,
        )
    return BillEnvelope(bill=BillOut.model_validate(view))


@router.delete("/{bill_id}", response_model=OkEnvelope)
def delete_bill(bill_id: UUID, request: Request, auth: AuthContext = Depends(current_user)):
    with LogContext.bind(bill_id=str(bill_id)), session_scope() as session:
        _services.ledger(request, session).delete(bill_id, auth)
    return OkEnvelope()


@router.post("/{bill_id}/decision", response_model=DecisionEnvelope)
def decide_bill(
    bill_id: UUID,
    body: DecisionIn,
    request: Request,
    auth: AuthContext = Depends(current_user),
):
    with LogContext.bind(bill_id=str(bill_id)), session_scope() as session:
        outcome = _services.ledger(request, session).decide(
            bill_id, body.decision, body.reason, auth,
        )
    return DecisionEnvelope(new_status=outcome.new_status)
