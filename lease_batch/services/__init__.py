"""Batch services."""

from lease_batch.services.daily_job import DAILY_JOB_NAME, DailyReconciliationJob

__all__ = ["DAILY_JOB_NAME", "DailyReconciliationJob"]
