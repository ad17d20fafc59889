"""Scheduler trigger for the daily reconciliation job."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from lease_api.auth import scheduler
from lease_api.routes import _services
from lease_api.schemas import JobRunOut
from lease_batch.services.daily_job import DailyReconciliationJob
from lease_kernel.db.engine import get_session_factory
from lease_kernel.domain.auth import AuthContext

router = APIRouter(prefix="/api/jobs", tags=["jobs"])


@router.post("/daily", response_model=JobRunOut)
def run_daily_job(request: Request, auth: AuthContext = Depends(scheduler)):
    lease = _services.state(request)
    job = DailyReconciliationJob.from_config(get_session_factory(), lease.config, lease.clock)
    result = job.run(auth)
    body = JobRunOut(
        success=result.success,
        message=result.message,
        run_id=result.run_id,
        contracts_transitioned=result.contracts_transitioned,
        expiring_notices=result.expiring_notices,
        overdue_notices=result.overdue_notices,
        failed_rows=result.failed_rows,
    )
    if not result.success:
        return JSONResponse(status_code=500, content=body.model_dump(mode="json"))
    return body
