"""
lease_config -- single public entrypoint for runtime configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  No other component reads configuration files
    or ``LEASE_*`` environment variables directly.

Architecture position:
    Configuration.  This package sits above ``lease_kernel``: the kernel
    MUST NEVER import from ``lease_config``; ``lease_config.bridges``
    translates a LeaseConfig into kernel inputs.

Resolution order:
    1. ``path`` argument, else ``LEASE_CONFIG_FILE``, else the packaged
       ``defaults.yaml``.
    2. ``LEASE_DATABASE_URL``, ``LEASE_LOG_LEVEL``,
       ``LEASE_EXPIRING_SOON_DAYS`` and ``LEASE_STORAGE_ROOT`` override the
       file's values.

Failure modes:
    - ``FileNotFoundError`` -- the selected file does not exist.
    - ``ValueError`` -- a value has the wrong type or is out of range.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from lease_config.loader import apply_env_overrides, load_yaml_file, parse_config
from lease_config.schema import (
    DatabaseConfig,
    LeaseConfig,
    LifecycleConfig,
    LoggingConfig,
    StorageConfig,
)

_logger = logging.getLogger("lease_kernel.config")

DEFAULT_CONFIG_FILE = Path(__file__).parent / "defaults.yaml"

CONFIG_FILE_ENV = "LEASE_CONFIG_FILE"


def get_active_config(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> LeaseConfig:
    """The ONLY public configuration entrypoint.

    Args:
        path: Explicit YAML file.  Defaults to ``LEASE_CONFIG_FILE`` or the
            packaged defaults.
        environ: Environment mapping (defaults to ``os.environ``).

    Returns:
        A frozen LeaseConfig.

    Raises:
        FileNotFoundError: If the configuration file does not exist.
        ValueError: If validation fails.
    """
    env = os.environ if environ is None else environ
    config_path = Path(path or env.get(CONFIG_FILE_ENV) or DEFAULT_CONFIG_FILE)

    data = apply_env_overrides(load_yaml_file(config_path), env)
    config = parse_config(data, source=str(config_path))

    _logger.info(
        "config_loaded",
        extra={
            "source": config.source,
            "expiring_soon_days": config.lifecycle.expiring_soon_days,
            "log_level": config.logging.level,
        },
    )
    return config


__all__ = [
    "get_active_config",
    "LeaseConfig",
    "DatabaseConfig",
    "LifecycleConfig",
    "StorageConfig",
    "LoggingConfig",
]
