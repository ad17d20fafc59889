"""
lease_batch.models -- ORM models for job run tracking.

Imports from lease_kernel.db.base only.
"""

from lease_batch.models.job_run import JobRunModel

__all__ = ["JobRunModel"]
