"""
lease_batch.domain.types -- Frozen dataclasses for job runs.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from uuid import UUID

from lease_kernel.domain.dtos import RowFailure


class JobRunStatus(str, Enum):
    """Run-level lifecycle status."""

    RUNNING = "running"
    COMPLETED = "completed"  # every phase and row succeeded
    PARTIALLY_COMPLETED = "partially_completed"  # some rows or a phase failed
    FAILED = "failed"  # nothing could be done
    ABANDONED = "abandoned"  # lock taken over after going stale


TERMINAL_RUN_STATUSES = frozenset({
    JobRunStatus.COMPLETED,
    JobRunStatus.PARTIALLY_COMPLETED,
    JobRunStatus.FAILED,
    JobRunStatus.ABANDONED,
})


@dataclass(frozen=True)
class JobRun:
    """Immutable snapshot of one job run record."""

    run_id: UUID
    job_name: str
    status: JobRunStatus
    run_date: date
    started_at: datetime
    finished_at: datetime | None = None
    contracts_transitioned: int = 0
    expiring_notices: int = 0
    overdue_notices: int = 0
    failed_rows: int = 0
    error_summary: str | None = None


@dataclass(frozen=True)
class DailyJobResult:
    """What the daily job reports back to its trigger."""

    success: bool
    message: str
    run_id: UUID | None = None
    status: JobRunStatus = JobRunStatus.COMPLETED
    contracts_transitioned: int = 0
    expiring_notices: int = 0
    overdue_notices: int = 0
    failed_rows: int = 0
    failures: tuple[RowFailure, ...] = ()
