"""
Configuration Loader (``lease_config.loader``).

Responsibility
--------------
Loads the YAML configuration file, applies ``LEASE_*`` environment
overrides and parses the result into the frozen ``lease_config.schema``
dataclasses.  Runtime callers go through
``lease_config.get_active_config()``.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Invalid values raise ``ValueError`` naming the offending key; nothing is
  silently clamped or defaulted.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Wrong type or out-of-range value  -> ``ValueError``.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from lease_config.schema import (
    DatabaseConfig,
    LeaseConfig,
    LifecycleConfig,
    LoggingConfig,
    StorageConfig,
)

# Environment variable -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "LEASE_DATABASE_URL": ("database", "url"),
    "LEASE_LOG_LEVEL": ("logging", "level"),
    "LEASE_EXPIRING_SOON_DAYS": ("lifecycle", "expiring_soon_days"),
    "LEASE_STORAGE_ROOT": ("storage", "root"),
}

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top-level YAML must be a mapping")
    return data


def apply_env_overrides(
    data: dict[str, Any], environ: Mapping[str, str]
) -> dict[str, Any]:
    """Return a copy of ``data`` with LEASE_* environment values applied."""
    merged = {section: dict(values or {}) for section, values in data.items()}
    for variable, (section, key) in ENV_OVERRIDES.items():
        if variable in environ:
            merged.setdefault(section, {})[key] = environ[variable]
    return merged


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"{name}: expected a mapping, got {type(value).__name__}")
    return value


def parse_int(value: Any, key: str, minimum: int = 0) -> int:
    """Parse an int (YAML int or numeric env string) with a lower bound."""
    if isinstance(value, bool):
        raise ValueError(f"{key}: expected an integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{key}: expected an integer, got {value!r}") from None
    if number < minimum:
        raise ValueError(f"{key}: must be >= {minimum}, got {number}")
    return number


def parse_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "1", "yes"):
        return True
    if isinstance(value, str) and value.lower() in ("false", "0", "no"):
        return False
    raise ValueError(f"{key}: expected a boolean, got {value!r}")


def parse_str(value: Any, key: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{key}: expected a non-empty string, got {value!r}")
    return value.strip()


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    defaults = DatabaseConfig()
    return DatabaseConfig(
        url=parse_str(data.get("url", defaults.url), "database.url"),
        echo=parse_bool(data.get("echo", defaults.echo), "database.echo"),
        pool_size=parse_int(data.get("pool_size", defaults.pool_size), "database.pool_size", 1),
        max_overflow=parse_int(
            data.get("max_overflow", defaults.max_overflow), "database.max_overflow"
        ),
        pool_timeout=parse_int(
            data.get("pool_timeout", defaults.pool_timeout), "database.pool_timeout", 1
        ),
        pool_recycle=parse_int(
            data.get("pool_recycle", defaults.pool_recycle), "database.pool_recycle"
        ),
    )


def parse_lifecycle(data: dict[str, Any]) -> LifecycleConfig:
    return LifecycleConfig(
        expiring_soon_days=parse_int(
            data.get("expiring_soon_days", LifecycleConfig.expiring_soon_days),
            "lifecycle.expiring_soon_days",
        ),
    )


def parse_storage(data: dict[str, Any]) -> StorageConfig:
    defaults = StorageConfig()
    raw_types = data.get("allowed_content_types") or {}
    if not isinstance(raw_types, dict):
        raise ValueError("storage.allowed_content_types: expected a mapping")

    allowed: dict[str, tuple[str, ...]] = {}
    for folder, types in raw_types.items():
        if not isinstance(types, list):
            raise ValueError(
                f"storage.allowed_content_types.{folder}: expected a list"
            )
        allowed[str(folder)] = tuple(
            parse_str(t, f"storage.allowed_content_types.{folder}") for t in types
        )

    return StorageConfig(
        root=parse_str(data.get("root", defaults.root), "storage.root"),
        public_base_url=parse_str(
            data.get("public_base_url", defaults.public_base_url),
            "storage.public_base_url",
        ),
        max_upload_bytes=parse_int(
            data.get("max_upload_bytes", defaults.max_upload_bytes),
            "storage.max_upload_bytes",
            1,
        ),
        allowed_content_types=allowed,
    )


def parse_logging(data: dict[str, Any]) -> LoggingConfig:
    level = parse_str(data.get("level", LoggingConfig.level), "logging.level").upper()
    if level not in _LOG_LEVELS:
        raise ValueError(
            f"logging.level: expected one of {sorted(_LOG_LEVELS)}, got {level!r}"
        )
    return LoggingConfig(level=level)


def parse_config(data: dict[str, Any], source: str | None = None) -> LeaseConfig:
    """Parse a merged configuration dict into a LeaseConfig."""
    return LeaseConfig(
        database=parse_database(_section(data, "database")),
        lifecycle=parse_lifecycle(_section(data, "lifecycle")),
        storage=parse_storage(_section(data, "storage")),
        logging=parse_logging(_section(data, "logging")),
        source=source,
    )
