"""
lease_kernel.services.contract_status_engine -- Date-driven contract status.

Responsibility:
    Applies ``next_contract_status`` to every contract whose status the
    calendar manages (active, expiring) and persists the transitions.

Architecture position:
    Kernel > Services.  The rule itself lives in
    ``lease_kernel.domain.contract_status``; this service is the shell that
    reads rows and writes transitions.

Invariants enforced:
    - Only active/expiring rows are selected, so cancelled and expired
      contracts are never touched.
    - Each row is written inside its own SAVEPOINT.  A failing row is
      rolled back, logged and counted; the remaining rows still run.
    - Running twice on the same ``today`` makes no further changes.
"""

from __future__ import annotations

from datetime import date

from sqlalchemy import select
from sqlalchemy.orm import Session

from lease_kernel.domain.clock import Clock
from lease_kernel.domain.contract_status import (
    DATE_MANAGED_STATUSES,
    DEFAULT_EXPIRY_HORIZON_DAYS,
    ContractStatus,
    next_contract_status,
)
from lease_kernel.domain.dtos import RowFailure, StatusRunResult, StatusTransition
from lease_kernel.logging_config import get_logger
from lease_kernel.models.contract import Contract
from lease_kernel.services.base import BaseService

logger = get_logger("services.contract_status_engine")


class ContractStatusEngine(BaseService):
    """Moves contracts between active, expiring and expired."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        horizon_days: int = DEFAULT_EXPIRY_HORIZON_DAYS,
    ) -> None:
        super().__init__(session, clock)
        self.horizon_days = horizon_days

    def apply(self, today: date) -> StatusRunResult:
        contracts = self.session.execute(
            select(Contract)
            .where(Contract.status.in_([s.value for s in DATE_MANAGED_STATUSES]))
            .order_by(Contract.end_date, Contract.id)
        ).scalars().all()

        transitions: list[StatusTransition] = []
        failures: list[RowFailure] = []

        for contract in contracts:
            current = ContractStatus(contract.status)
            target = next_contract_status(current, contract.end_date, today, self.horizon_days)
            if target is current:
                continue

            contract_id = contract.id
            savepoint = self.session.begin_nested()
            try:
                self._write_status(contract, target)
                savepoint.commit()
            except Exception as exc:
                savepoint.rollback()
                code = getattr(exc, "code", type(exc).__name__)
                failures.append(RowFailure(
                    row_id=contract_id, error_code=code, error_message=str(exc),
                ))
                logger.error(
                    "contract_status_row_failed",
                    extra={
                        "contract_id": str(contract_id),
                        "from_status": current.value,
                        "to_status": target.value,
                        "error_code": code,
                        "error": str(exc),
                    },
                )
                continue

            transitions.append(StatusTransition(
                contract_id=contract_id, from_status=current, to_status=target,
            ))
            logger.info(
                "contract_status_changed",
                extra={
                    "contract_id": str(contract_id),
                    "from_status": current.value,
                    "to_status": target.value,
                    "end_date": contract.end_date.isoformat(),
                },
            )

        result = StatusRunResult(
            today=today,
            transitions=tuple(transitions),
            failures=tuple(failures),
            examined=len(contracts),
        )
        logger.info(
            "contract_status_run_completed",
            extra={
                "today": today.isoformat(),
                "examined": result.examined,
                "transitioned": len(result.transitions),
                "failed": len(result.failures),
            },
        )
        return result

    def apply_today(self, tz=None) -> StatusRunResult:
        return self.apply(self.clock.today(tz))

    def _write_status(self, contract: Contract, status: ContractStatus) -> None:
        contract.status = status.value
        self.session.flush()
