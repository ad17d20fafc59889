"""
lease_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Services receive plain values taken from the
    returned ``LeaseConfig``; the kernel never imports from this package.

Failure modes:
    - ``FileNotFoundError`` -- the selected YAML file does not exist.
    - ``KeyError`` / ``ValueError`` -- missing or malformed settings.

Every successful call logs ``lease_config_loaded`` with the config id,
version and checksum.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from lease_config.loader import compute_checksum, load_config_file
from lease_config.schema import (
    AuthSettings,
    BillingSettings,
    DatabaseSettings,
    JobSettings,
    LeaseConfig,
    StorageSettings,
)

_logger = logging.getLogger("lease_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"
CONFIG_PATH_ENV = "LEASE_CONFIG"


def get_active_config(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> LeaseConfig:
    """The ONLY public configuration entrypoint.

    Path resolution: ``path`` if given, else ``$LEASE_CONFIG``, else the
    packaged ``sets/default.yaml``.
    """
    env = os.environ if environ is None else environ
    config_path = Path(path or env.get(CONFIG_PATH_ENV) or DEFAULT_CONFIG_PATH)
    config = load_config_file(config_path, env)

    _logger.info(
        "lease_config_loaded",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "config_path": str(config_path),
        },
    )
    return config


__all__ = [
    "AuthSettings",
    "BillingSettings",
    "DatabaseSettings",
    "JobSettings",
    "LeaseConfig",
    "StorageSettings",
    "compute_checksum",
    "get_active_config",
]
