"""
lease_batch -- Daily reconciliation job and its run tracking.

Architecture:
    lease_batch/ is a top-level package.  Nothing in lease_kernel imports
    from lease_batch (apart from create_tables registering its table).

Guarantees:
    - One running instance per job name (job_runs.lock_key is UNIQUE).
    - SAVEPOINT isolation per row in every phase.
    - Clock injection; no direct wall-clock reads.
    - Re-running within 24 hours emits no duplicate notifications.
"""
