"""Admin dashboard billing summary."""

from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, Request

from lease_api.auth import current_user
from lease_api.routes import _services
from lease_api.schemas import SummaryEnvelope, SummaryOut
from lease_kernel.db.engine import session_scope
from lease_kernel.domain.auth import AuthContext, require_admin
from lease_kernel.services.bill_ledger import parse_billing_month

router = APIRouter(prefix="/api/admin/dashboard", tags=["admin-dashboard"])


@router.get("/billing", response_model=SummaryEnvelope)
def billing_summary(
    request: Request,
    month: str | None = None,
    auth: AuthContext = Depends(current_user),
):
    """Bill counts and revenue for ``month`` (YYYY-MM); defaults to this month."""
    require_admin(auth, "billing_summary")
    target: date = (
        parse_billing_month(month) if month else _services.state(request).today().replace(day=1)
    )
    with session_scope() as session:
        summary = _services.selector(session).monthly_summary(target)
    return SummaryEnvelope(summary=SummaryOut.model_validate(summary))
