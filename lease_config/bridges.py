"""
Config -> Kernel Bridges.

Functions that convert a LeaseConfig into kernel-compatible inputs.  These
live in lease_config (the producer) because the kernel must NEVER import
lease_config.

Usage:
    from lease_config import get_active_config
    from lease_config.bridges import build_orchestrator, init_engine

    config = get_active_config()
    init_engine(config)
    with session_scope() as session:
        orchestrator = build_orchestrator(session, identity, config)
"""

from __future__ import annotations

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from lease_config.schema import LeaseConfig
from lease_kernel.db.engine import init_engine_from_url
from lease_kernel.domain.clock import Clock
from lease_kernel.domain.identity import IdentityResolver
from lease_kernel.logging_config import configure_logging
from lease_kernel.services.document_service import DocumentPolicy, LocalDocumentStore
from lease_kernel.services.lease_orchestrator import LeaseOrchestrator


def init_engine(config: LeaseConfig) -> Engine:
    """Initialize the kernel engine from the database section."""
    db = config.database
    return init_engine_from_url(
        db.url,
        echo=db.echo,
        pool_size=db.pool_size,
        max_overflow=db.max_overflow,
        pool_timeout=db.pool_timeout,
        pool_recycle=db.pool_recycle,
    )


def init_logging(config: LeaseConfig) -> None:
    configure_logging(level=config.logging.level)


def build_document_policy(config: LeaseConfig) -> DocumentPolicy:
    """DocumentPolicy from the storage section (kernel defaults if no types)."""
    storage = config.storage
    if not storage.allowed_content_types:
        return DocumentPolicy(max_upload_bytes=storage.max_upload_bytes)
    return DocumentPolicy(
        max_upload_bytes=storage.max_upload_bytes,
        allowed_content_types={
            folder: frozenset(types)
            for folder, types in storage.allowed_content_types.items()
        },
    )


def build_document_store(config: LeaseConfig) -> LocalDocumentStore:
    return LocalDocumentStore(config.storage.root, config.storage.public_base_url)


def build_orchestrator(
    session: Session,
    identity: IdentityResolver,
    config: LeaseConfig,
    clock: Clock | None = None,
    auto_commit: bool = True,
) -> LeaseOrchestrator:
    """LeaseOrchestrator wired with the configured lifecycle and storage."""
    return LeaseOrchestrator(
        session,
        identity,
        clock=clock,
        auto_commit=auto_commit,
        expiring_soon_days=config.lifecycle.expiring_soon_days,
        document_store=build_document_store(config),
        document_policy=build_document_policy(config),
    )
