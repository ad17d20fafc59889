"""
lease_batch.services.daily_job -- Daily reconciliation job.

Responsibility:
    Once per day: advance contract statuses by date, remind tenants of
    contracts about to expire, and remind tenants of overdue unpaid bills.
    Each run is tracked in a ``job_runs`` record that doubles as the run
    lock.

Architecture position:
    Batch > Services.  Calls kernel services; owns its own transaction
    boundaries through the injected session factory.

Invariants enforced:
    - Only the scheduler (system AuthContext) may trigger a run.
    - At most one run holds the lock.  A lock older than the stale timeout
      is taken over and its run marked abandoned.
    - Contract statuses are committed before any notice is generated.
    - The expiring-contract and overdue-bill phases are independent; a
      failure in one does not skip the other.
    - Each row runs in its own SAVEPOINT; a failing row is rolled back,
      logged and counted, and the phase continues.
    - Notices go through NotificationDispatcher.notify, so a rerun within
      the dedup window emits nothing new.

Failure modes:
    - ForbiddenError when the caller is not the scheduler.
    - JobAlreadyRunningError when a fresh run already holds the lock.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import date, timedelta, tzinfo
from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from lease_batch.domain.types import TERMINAL_RUN_STATUSES, DailyJobResult, JobRunStatus
from lease_batch.models.job_run import JobRunModel
from lease_kernel.domain import notices
from lease_kernel.domain.auth import AuthContext, require_system
from lease_kernel.domain.billing import BillStatus
from lease_kernel.domain.clock import Clock, SystemClock, resolve_timezone
from lease_kernel.domain.contract_status import (
    DEFAULT_EXPIRY_HORIZON_DAYS,
    ContractStatus,
    expiry_window,
)
from lease_kernel.domain.dtos import RowFailure
from lease_kernel.exceptions import JobAlreadyRunningError
from lease_kernel.logging_config import LogContext, get_logger
from lease_kernel.models.bill import Bill
from lease_kernel.models.contract import Contract
from lease_kernel.services.contract_status_engine import ContractStatusEngine
from lease_kernel.services.notification_dispatcher import (
    DEFAULT_DEDUP_WINDOW_HOURS,
    NotificationDispatcher,
)

logger = get_logger("batch.daily_job")

DAILY_JOB_NAME = "daily_reconciliation"
DEFAULT_STALE_LOCK_MINUTES = 60

# (session, space_id) -> display name for notice texts, or None
SpaceNameResolver = Callable[[Session, UUID | None], str | None]


@dataclass
class _RunTally:
    contracts_transitioned: int = 0
    expiring_notices: int = 0
    overdue_notices: int = 0
    failures: list[RowFailure] = field(default_factory=list)
    phase_errors: list[str] = field(default_factory=list)


class DailyReconciliationJob:
    """Runs the daily status/notice reconciliation.

    Contract:
        ``run(auth)`` executes all three phases and returns a
        DailyJobResult.  It commits after each phase through sessions it
        opens from ``session_factory``.

    Non-goals:
        - Does NOT schedule itself; an external cron calls ``run``.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
        *,
        horizon_days: int = DEFAULT_EXPIRY_HORIZON_DAYS,
        dedup_window_hours: int = DEFAULT_DEDUP_WINDOW_HOURS,
        stale_lock_minutes: int = DEFAULT_STALE_LOCK_MINUTES,
        timezone: tzinfo | None = None,
        space_name_resolver: SpaceNameResolver | None = None,
        job_name: str = DAILY_JOB_NAME,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._horizon_days = horizon_days
        self._dedup_window_hours = dedup_window_hours
        self._stale_after = timedelta(minutes=stale_lock_minutes)
        self._timezone = timezone
        self._space_name = space_name_resolver or (lambda session, space_id: None)
        self._job_name = job_name

    @classmethod
    def from_config(
        cls,
        session_factory: sessionmaker[Session],
        config,
        clock: Clock | None = None,
        space_name_resolver: SpaceNameResolver | None = None,
    ) -> DailyReconciliationJob:
        """Build from a ``lease_config.LeaseConfig``."""
        return cls(
            session_factory,
            clock,
            horizon_days=config.billing.expiry_horizon_days,
            dedup_window_hours=config.billing.dedup_window_hours,
            stale_lock_minutes=config.jobs.stale_lock_minutes,
            timezone=resolve_timezone(config.billing.timezone),
            space_name_resolver=space_name_resolver,
        )

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    def run(self, auth: AuthContext) -> DailyJobResult:
        require_system(auth, self._job_name)

        today = self._clock.today(self._timezone)
        run_id = self._acquire_lock(today)
        tally = _RunTally()

        with LogContext.bind(job_run_id=str(run_id)):
            logger.info(
                "daily_job_started",
                extra={"run_id": str(run_id), "today": today.isoformat()},
            )
            session = self._session_factory()
            try:
                self._run_phase(session, "contract_status", tally, self._update_statuses, today)
                self._run_phase(session, "expiring_notices", tally, self._notify_expiring, today)
                self._run_phase(session, "overdue_notices", tally, self._notify_overdue, today)
            finally:
                session.close()

            status = self._final_status(tally)
            self._finish(run_id, status, tally)
            result = DailyJobResult(
                success=status is not JobRunStatus.FAILED,
                message=self._message(status, tally),
                run_id=run_id,
                status=status,
                contracts_transitioned=tally.contracts_transitioned,
                expiring_notices=tally.expiring_notices,
                overdue_notices=tally.overdue_notices,
                failed_rows=len(tally.failures),
                failures=tuple(tally.failures),
            )
            log = logger.warning if tally.failures or tally.phase_errors else logger.info
            log(
                "daily_job_completed",
                extra={
                    "run_id": str(run_id),
                    "status": status.value,
                    "contracts_transitioned": result.contracts_transitioned,
                    "expiring_notices": result.expiring_notices,
                    "overdue_notices": result.overdue_notices,
                    "failed_rows": result.failed_rows,
                    "phase_errors": list(tally.phase_errors),
                },
            )
        return result

    def _run_phase(self, session: Session, name: str, tally: _RunTally, phase, today: date) -> None:
        try:
            phase(session, today, tally)
            session.commit()
        except Exception as exc:
            session.rollback()
            tally.phase_errors.append(f"{name}: {exc}")
            logger.exception(
                "daily_job_phase_failed",
                extra={"phase": name, "error": str(exc)},
            )

    # -------------------------------------------------------------------------
    # Phases
    # -------------------------------------------------------------------------

    def _update_statuses(self, session: Session, today: date, tally: _RunTally) -> None:
        engine = ContractStatusEngine(session, self._clock, self._horizon_days)
        result = engine.apply(today)
        tally.contracts_transitioned += len(result.transitions)
        tally.failures.extend(result.failures)

    def _notify_expiring(self, session: Session, today: date, tally: _RunTally) -> None:
        dispatcher = self._dispatcher(session)
        start, end = expiry_window(today, self._horizon_days)
        contracts = session.execute(
            select(Contract)
            .where(
                Contract.status == ContractStatus.EXPIRING.value,
                Contract.end_date >= start,
                Contract.end_date <= end,
            )
            .order_by(Contract.end_date, Contract.id)
        ).scalars().all()

        for contract in contracts:
            def _send(contract=contract):
                notice = notices.contract_expiring(
                    contract.end_date, self._space_name(session, contract.space_id),
                )
                return dispatcher.notify_notice(contract.tenant_id, notice, contract.id)

            if self._row(session, contract.id, "expiring_notice", tally, _send):
                tally.expiring_notices += 1

    def _notify_overdue(self, session: Session, today: date, tally: _RunTally) -> None:
        dispatcher = self._dispatcher(session)
        rows = session.execute(
            select(Bill, Contract.tenant_id, Contract.space_id)
            .join(Contract, Contract.id == Bill.contract_id)
            .where(
                Bill.status == BillStatus.UNPAID.value,
                Bill.due_date < today,
            )
            .order_by(Bill.due_date, Bill.id)
        ).all()

        for bill, tenant_id, space_id in rows:
            def _send(bill=bill, tenant_id=tenant_id, space_id=space_id):
                notice = notices.bill_overdue(
                    bill.total_amount, self._space_name(session, space_id),
                )
                return dispatcher.notify_notice(tenant_id, notice, bill.id)

            if self._row(session, bill.id, "overdue_notice", tally, _send):
                tally.overdue_notices += 1

    def _row(self, session: Session, row_id: UUID, kind: str, tally: _RunTally, action) -> bool:
        """Run one row in a SAVEPOINT; True when it produced a notification."""
        savepoint = session.begin_nested()
        try:
            created = action()
            savepoint.commit()
        except Exception as exc:
            savepoint.rollback()
            code = getattr(exc, "code", type(exc).__name__)
            tally.failures.append(RowFailure(
                row_id=row_id, error_code=code, error_message=str(exc),
            ))
            logger.error(
                "daily_job_row_failed",
                extra={"row_kind": kind, "row_id": str(row_id), "error_code": code, "error": str(exc)},
            )
            return False
        return created is not None

    def _dispatcher(self, session: Session) -> NotificationDispatcher:
        return NotificationDispatcher(session, self._clock, self._dedup_window_hours)

    # -------------------------------------------------------------------------
    # Run lock
    # -------------------------------------------------------------------------

    def _acquire_lock(self, today: date) -> UUID:
        now = self._clock.now()
        run_id = uuid4()
        with self._session_factory() as session:
            fresh_holder = session.execute(
                select(JobRunModel.id).where(
                    JobRunModel.lock_key == self._job_name,
                    JobRunModel.started_at >= now - self._stale_after,
                )
            ).scalar_one_or_none()
            if fresh_holder is not None:
                logger.warning(
                    "daily_job_lock_held",
                    extra={"job_name": self._job_name, "holder_run_id": str(fresh_holder)},
                )
                raise JobAlreadyRunningError(self._job_name, str(fresh_holder))

            stale = session.execute(
                select(JobRunModel).where(JobRunModel.lock_key == self._job_name)
            ).scalar_one_or_none()
            if stale is not None:
                stale.status = JobRunStatus.ABANDONED.value
                stale.lock_key = None
                stale.finished_at = now
                stale.error_summary = "run lock taken over after going stale"
                session.flush()
                logger.warning(
                    "daily_job_stale_lock_taken_over",
                    extra={"job_name": self._job_name, "abandoned_run_id": str(stale.id)},
                )

            session.add(JobRunModel(
                id=run_id,
                job_name=self._job_name,
                lock_key=self._job_name,
                status=JobRunStatus.RUNNING.value,
                run_date=today,
                started_at=now,
            ))
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise JobAlreadyRunningError(self._job_name) from exc
        return run_id

    def _finish(self, run_id: UUID, status: JobRunStatus, tally: _RunTally) -> None:
        with self._session_factory() as session:
            run = session.get(JobRunModel, run_id)
            if JobRunStatus(run.status) in TERMINAL_RUN_STATUSES:
                # taken over as stale while this run was still working
                logger.warning(
                    "daily_job_run_already_closed",
                    extra={"run_id": str(run_id), "recorded_status": run.status},
                )
                return
            run.status = status.value
            run.lock_key = None
            run.finished_at = self._clock.now()
            run.contracts_transitioned = tally.contracts_transitioned
            run.expiring_notices = tally.expiring_notices
            run.overdue_notices = tally.overdue_notices
            run.failed_rows = len(tally.failures)
            run.error_summary = "; ".join(tally.phase_errors) or None
            session.commit()

    @staticmethod
    def _final_status(tally: _RunTally) -> JobRunStatus:
        if len(tally.phase_errors) == 3:
            return JobRunStatus.FAILED
        if tally.phase_errors or tally.failures:
            return JobRunStatus.PARTIALLY_COMPLETED
        return JobRunStatus.COMPLETED

    @staticmethod
    def _message(status: JobRunStatus, tally: _RunTally) -> str:
        if status is JobRunStatus.COMPLETED:
            return "Daily jobs completed"
        if status is JobRunStatus.FAILED:
            return "Failed to run daily jobs"
        return (
            f"Daily jobs completed with {len(tally.failures)} failed rows"
            f" and {len(tally.phase_errors)} failed phases"
        )
