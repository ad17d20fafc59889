"""
BaseService -- abstract base for kernel services.

Responsibility:
    Provides the common constructor shared by every write-side service: a
    SQLAlchemy ``Session`` supplied by the caller and an injected ``Clock``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    Services flush within the caller's transaction and never commit or
    roll back themselves.  The caller (``session_scope()``, the daily job,
    or a test fixture) owns commit/rollback, so a bill update, its slip
    update and the tenant notification land in one unit of work.
"""

from abc import ABC

from sqlalchemy.orm import Session

from lease_kernel.domain.clock import Clock, SystemClock


class BaseService(ABC):
    """
    Abstract base class for kernel services.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide list/report queries -- those belong in
          ``lease_kernel/selectors/``.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()
