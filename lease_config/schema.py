"""
LeaseConfig schema.

Frozen dataclasses the YAML configuration set is parsed into.  Secrets are
never part of the YAML; the loader resolves them from the environment
variables the YAML names and stores only the resolved values here.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class DatabaseSettings:
    url: str
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 10


@dataclass(frozen=True)
class AuthSettings:
    """Verification secrets for the three caller kinds."""

    tenant_token_secret: str
    admin_token_secret: str
    cron_secret: str
    algorithm: str = "HS256"

    def __repr__(self) -> str:
        return f"AuthSettings(algorithm={self.algorithm!r}, secrets=<redacted>)"


@dataclass(frozen=True)
class BillingSettings:
    currency: str = "THB"  # display only
    dedup_window_hours: int = 24
    expiry_horizon_days: int = 30
    reason_max_length: int = 500
    timezone: str = "UTC"  # business timezone deriving "today"


@dataclass(frozen=True)
class JobSettings:
    stale_lock_minutes: int = 60


@dataclass(frozen=True)
class StorageSettings:
    slip_root: str = "var/slips"


@dataclass(frozen=True)
class LeaseConfig:
    """The loaded configuration set -- the sole runtime config artifact."""

    config_id: str
    version: int
    database: DatabaseSettings
    auth: AuthSettings
    billing: BillingSettings
    jobs: JobSettings
    storage: StorageSettings
    log_level: str = "INFO"
    checksum: str = ""
