"""
Application factory.

``create_app`` wires configuration, the clock and slip storage into
``app.state.lease`` and installs routes, error handlers and the request
log-context middleware.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4

from fastapi import FastAPI, Request

from lease_api.errors import install_error_handlers
from lease_api.routes import admin_bills, dashboard, jobs, notifications, payment_slips, user
from lease_config import LeaseConfig, get_active_config
from lease_kernel.db.engine import init_engine_from_url
from lease_kernel.domain.clock import Clock, SystemClock, resolve_timezone
from lease_kernel.logging_config import LogContext, configure_logging, get_logger
from lease_kernel.services.slip_storage import LocalSlipStorage, SlipStorage

logger = get_logger("api.app")


@dataclass(frozen=True)
class ApiState:
    config: LeaseConfig
    clock: Clock
    storage: SlipStorage

    def today(self):
        return self.clock.today(resolve_timezone(self.config.billing.timezone))


def create_app(
    config: LeaseConfig | None = None,
    *,
    clock: Clock | None = None,
    storage: SlipStorage | None = None,
    init_engine: bool = True,
) -> FastAPI:
    config = config or get_active_config()
    configure_logging(level=config.log_level)
    if init_engine:
        init_engine_from_url(
            config.database.url,
            echo=config.database.echo,
            pool_size=config.database.pool_size,
            max_overflow=config.database.max_overflow,
        )

    app = FastAPI(title="Lease Billing API")
    app.state.lease = ApiState(
        config=config,
        clock=clock or SystemClock(),
        storage=storage or LocalSlipStorage(config.storage.slip_root),
    )

    @app.middleware("http")
    async def bind_request_context(request: Request, call_next):
        correlation_id = request.headers.get("x-request-id") or uuid4().hex
        with LogContext.bind(correlation_id=correlation_id):
            response = await call_next(request)
        response.headers["x-request-id"] = correlation_id
        return response

    install_error_handlers(app)
    app.include_router(admin_bills.router)
    app.include_router(payment_slips.router)
    app.include_router(dashboard.router)
    app.include_router(user.router)
    app.include_router(notifications.router)
    app.include_router(jobs.router)

    logger.info(
        "api_started",
        extra={"config_id": config.config_id, "checksum": config.checksum},
    )
    return app
