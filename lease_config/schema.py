"""
LeaseConfig schema.

Frozen dataclasses produced by the loader from YAML plus environment
overrides.  Values are validated when parsed; an instance of these types is
always internally consistent.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings passed to init_engine_from_url."""

    url: str = "sqlite://"
    echo: bool = False
    pool_size: int = 10
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800


@dataclass(frozen=True)
class LifecycleConfig:
    expiring_soon_days: int = 30


@dataclass(frozen=True)
class StorageConfig:
    """Document storage location and upload limits."""

    root: str = "./uploads"
    public_base_url: str = "http://localhost:8080/files"
    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_content_types: Mapping[str, tuple[str, ...]] = field(default_factory=dict)


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class LeaseConfig:
    """Complete runtime configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    lifecycle: LifecycleConfig = field(default_factory=LifecycleConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    source: str | None = None  # file the configuration was loaded from
