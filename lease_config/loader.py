"""
Configuration Loader (``lease_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into ``lease_config.schema``
frozen dataclasses.  Runtime callers go through
``lease_config.get_active_config()`` rather than calling this directly.

Invariants enforced
-------------------
* Required keys raise ``KeyError`` when missing; malformed values raise
  ``ValueError``.  No silent defaults for required fields.
* Secrets are resolved from the environment variables the YAML names.  An
  unset variable yields an empty string, which authenticates nothing.
* ``compute_checksum`` produces a deterministic SHA-256 over the parsed
  YAML (before secret resolution, so secrets never feed the checksum).

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from lease_config.schema import (
    AuthSettings,
    BillingSettings,
    DatabaseSettings,
    JobSettings,
    LeaseConfig,
    StorageSettings,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def parse_positive_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def resolve_env(env_name: str | None, environ: Mapping[str, str]) -> str:
    if not env_name:
        return ""
    return environ.get(env_name, "")


def parse_database(data: dict[str, Any], environ: Mapping[str, str]) -> DatabaseSettings:
    url = resolve_env(data.get("url_env"), environ) or data["url"]
    return DatabaseSettings(
        url=url,
        echo=bool(data.get("echo", False)),
        pool_size=parse_positive_int(data.get("pool_size", 10), "database.pool_size"),
        max_overflow=int(data.get("max_overflow", 10)),
    )


def parse_auth(data: dict[str, Any], environ: Mapping[str, str]) -> AuthSettings:
    tenant = resolve_env(data["tenant_token_secret_env"], environ)
    admin = resolve_env(data["admin_token_secret_env"], environ)
    if tenant and tenant == admin:
        raise ValueError("tenant and admin token secrets must differ")
    return AuthSettings(
        tenant_token_secret=tenant,
        admin_token_secret=admin,
        cron_secret=resolve_env(data["cron_secret_env"], environ),
        algorithm=data.get("algorithm", "HS256"),
    )


def parse_billing(data: dict[str, Any]) -> BillingSettings:
    return BillingSettings(
        currency=data.get("currency", "THB"),
        dedup_window_hours=parse_positive_int(
            data.get("dedup_window_hours", 24), "billing.dedup_window_hours",
        ),
        expiry_horizon_days=parse_positive_int(
            data.get("expiry_horizon_days", 30), "billing.expiry_horizon_days",
        ),
        reason_max_length=parse_positive_int(
            data.get("reason_max_length", 500), "billing.reason_max_length",
        ),
        timezone=data.get("timezone", "UTC"),
    )


def parse_jobs(data: dict[str, Any]) -> JobSettings:
    return JobSettings(
        stale_lock_minutes=parse_positive_int(
            data.get("stale_lock_minutes", 60), "jobs.stale_lock_minutes",
        ),
    )


def parse_storage(data: dict[str, Any]) -> StorageSettings:
    return StorageSettings(slip_root=data.get("slip_root", "var/slips"))


def parse_config(
    data: dict[str, Any], environ: Mapping[str, str] | None = None,
) -> LeaseConfig:
    """
    Parse a full configuration dict.

    Raises:
        KeyError: if required sections or keys are missing.
        ValueError: if a value is malformed.
    """
    env = os.environ if environ is None else environ
    return LeaseConfig(
        config_id=data["config_id"],
        version=int(data["version"]),
        database=parse_database(data["database"], env),
        auth=parse_auth(data["auth"], env),
        billing=parse_billing(data.get("billing") or {}),
        jobs=parse_jobs(data.get("jobs") or {}),
        storage=parse_storage(data.get("storage") or {}),
        log_level=str(data.get("log_level", "INFO")).upper(),
        checksum=compute_checksum(data),
    )


def load_config_file(
    path: Path, environ: Mapping[str, str] | None = None,
) -> LeaseConfig:
    return parse_config(load_yaml_file(path), environ)


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
