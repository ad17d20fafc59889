"""
ORM model for daily job run records.

Contract:
    JobRunModel persists one row per run with its counters.  While a run
    is in progress its ``lock_key`` holds the job name; finishing (or
    abandoning) the run clears it.  The UNIQUE constraint on ``lock_key``
    is the run lock: a second concurrent insert fails with IntegrityError.
    NULLs are distinct under UNIQUE, so finished runs never collide.
"""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import Date, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lease_batch.domain.types import JobRun, JobRunStatus
from lease_kernel.db.base import Base


class JobRunModel(Base):
    __tablename__ = "job_runs"

    __table_args__ = (
        Index("ix_job_runs_job_started", "job_name", "started_at"),
    )

    job_name: Mapped[str] = mapped_column(String(100), nullable=False)
    lock_key: Mapped[str | None] = mapped_column(String(100), nullable=True, unique=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    run_date: Mapped[date] = mapped_column(Date, nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    finished_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    contracts_transitioned: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    expiring_notices: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    overdue_notices: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    failed_rows: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    error_summary: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<JobRunModel {self.id} {self.job_name} status={self.status}>"

    def to_dto(self) -> JobRun:
        return JobRun(
            run_id=self.id,
            job_name=self.job_name,
            status=JobRunStatus(self.status),
            run_date=self.run_date,
            started_at=self.started_at,
            finished_at=self.finished_at,
            contracts_transitioned=self.contracts_transitioned,
            expiring_notices=self.expiring_notices,
            overdue_notices=self.overdue_notices,
            failed_rows=self.failed_rows,
            error_summary=self.error_summary,
        )
