"""Pure batch types (zero I/O)."""

from lease_batch.domain.types import DailyJobResult, JobRun, JobRunStatus

__all__ = ["DailyJobResult", "JobRun", "JobRunStatus"]
