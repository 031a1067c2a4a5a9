"""
DocumentService -- attaches stored files to contracts, payments, tenants
and properties.

Responsibility:
    Checks an upload against the configured size and content-type limits,
    hands it to a ``DocumentStore`` and records the returned opaque URL on
    the target entity.  The kernel never interprets the URL.

Architecture position:
    Kernel > Services.  ``DocumentStore`` is the storage seam; the
    ``LocalDocumentStore`` implementation writes to a directory and is what
    scripts and tests use.  A cloud-backed store is an outer-layer concern.

Invariants enforced:
    - An upload larger than ``max_upload_bytes`` or of a content type not
      allowed for its folder is rejected before anything is stored.
    - The entity is updated only after the store returned a URL.
    - A replaced document is deleted from the store after the new URL is
      recorded.

Failure modes:
    - DocumentRejectedError: empty, too large, or disallowed content type.
    - NotFoundError subclasses: unknown target entity.
    - OSError from the store propagates unchanged.
"""

import mimetypes
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from lease_kernel.domain.clock import Clock
from lease_kernel.domain.dtos import ContractInfo, PaymentInfo, PropertyInfo, TenantInfo
from lease_kernel.exceptions import DocumentRejectedError
from lease_kernel.logging_config import get_logger
from lease_kernel.services.contract_service import ContractService
from lease_kernel.services.payment_service import PaymentService
from lease_kernel.services.property_service import PropertyService
from lease_kernel.services.tenant_service import TenantService

logger = get_logger("services.document")

CONTRACTS_FOLDER = "contracts"
RECEIPTS_FOLDER = "receipts"
AVATARS_FOLDER = "avatars"
PROPERTIES_FOLDER = "properties"

_IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/webp"})


@dataclass(frozen=True)
class DocumentPolicy:
    """Upload limits applied before anything reaches the store."""

    max_upload_bytes: int = 10 * 1024 * 1024
    allowed_content_types: Mapping[str, frozenset[str]] = field(
        default_factory=lambda: {
            CONTRACTS_FOLDER: frozenset({"application/pdf"}),
            RECEIPTS_FOLDER: frozenset({"application/pdf"}) | _IMAGE_TYPES,
            AVATARS_FOLDER: _IMAGE_TYPES,
            PROPERTIES_FOLDER: _IMAGE_TYPES,
        }
    )

    def check(self, data: bytes, content_type: str, folder: str) -> None:
        """
        Raises:
            DocumentRejectedError: If the upload breaks a limit.
        """
        if not data:
            raise DocumentRejectedError(folder, "empty upload")
        if len(data) > self.max_upload_bytes:
            raise DocumentRejectedError(
                folder,
                f"{len(data)} bytes exceeds the {self.max_upload_bytes} byte limit",
            )
        allowed = self.allowed_content_types.get(folder, frozenset())
        if content_type not in allowed:
            raise DocumentRejectedError(
                folder, f"content type {content_type!r} is not allowed"
            )


class DocumentStore(ABC):
    """Blob storage returning an opaque URL per stored file."""

    @abstractmethod
    def store(self, data: bytes, content_type: str, folder: str) -> str:
        """Persist ``data`` and return its public URL."""
        ...

    @abstractmethod
    def delete(self, url: str) -> None:
        """Remove the file behind ``url``.  Unknown files are ignored."""
        ...


class LocalDocumentStore(DocumentStore):
    """
    Stores files under ``root/<folder>/<uuid><ext>``.

    URLs are ``<public_base_url>/<folder>/<uuid><ext>``.
    """

    def __init__(self, root: Path | str, public_base_url: str):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")

    def store(self, data: bytes, content_type: str, folder: str) -> str:
        extension = mimetypes.guess_extension(content_type) or ""
        name = f"{uuid4().hex}{extension}"
        directory = self.root / folder
        directory.mkdir(parents=True, exist_ok=True)
        (directory / name).write_bytes(data)
        return f"{self.public_base_url}/{folder}/{name}"

    def delete(self, url: str) -> None:
        self._path_for(url).unlink(missing_ok=True)

    def _path_for(self, url: str) -> Path:
        prefix = self.public_base_url + "/"
        if not url.startswith(prefix):
            raise ValueError(f"URL is not served by this store: {url}")
        relative = Path(url[len(prefix):])
        if relative.is_absolute() or ".." in relative.parts:
            raise ValueError(f"URL escapes the storage root: {url}")
        return self.root / relative


class DocumentService:
    """
    Stores uploads and records their URLs on entities.

    Returns the updated entity DTO from each ``attach_*`` call.
    """

    def __init__(
        self,
        session: Session,
        owner_id: UUID,
        store: DocumentStore,
        policy: DocumentPolicy | None = None,
        clock: Clock | None = None,
    ):
        self.session = session
        self.owner_id = owner_id
        self.store = store
        self.policy = policy or DocumentPolicy()
        self._contracts = ContractService(session, owner_id, clock)
        self._payments = PaymentService(session, owner_id, clock)
        self._tenants = TenantService(session, owner_id, clock)
        self._properties = PropertyService(session, owner_id, clock)

    def _store(self, data: bytes, content_type: str, folder: str) -> str:
        self.policy.check(data, content_type, folder)
        url = self.store.store(data, content_type, folder)
        logger.info(
            "document_stored",
            extra={"folder": folder, "size_bytes": len(data), "content_type": content_type},
        )
        return url

    def _discard(self, old_url: str | None, new_url: str | None) -> None:
        if old_url and old_url != new_url:
            self.store.delete(old_url)
            logger.info("document_deleted", extra={"url": old_url})

    def attach_contract_document(
        self, contract_id: UUID, data: bytes, content_type: str
    ) -> ContractInfo:
        old_url = self._contracts.get(contract_id).document_url
        url = self._store(data, content_type, CONTRACTS_FOLDER)
        info = self._contracts.set_document_url(contract_id, url)
        self._discard(old_url, url)
        return info

    def detach_contract_document(self, contract_id: UUID) -> ContractInfo:
        old_url = self._contracts.get(contract_id).document_url
        info = self._contracts.set_document_url(contract_id, None)
        self._discard(old_url, None)
        return info

    def attach_payment_receipt(
        self, payment_id: UUID, data: bytes, content_type: str
    ) -> PaymentInfo:
        old_url = self._payments.get(payment_id).receipt_url
        url = self._store(data, content_type, RECEIPTS_FOLDER)
        info = self._payments.set_receipt_url(payment_id, url)
        self._discard(old_url, url)
        return info

    def attach_tenant_avatar(
        self, tenant_id: UUID, data: bytes, content_type: str
    ) -> TenantInfo:
        old_url = self._tenants.get(tenant_id).avatar_url
        url = self._store(data, content_type, AVATARS_FOLDER)
        info = self._tenants.set_avatar_url(tenant_id, url)
        self._discard(old_url, url)
        return info

    def attach_property_image(
        self, property_id: UUID, data: bytes, content_type: str
    ) -> PropertyInfo:
        old_url = self._properties.get(property_id).image_url
        url = self._store(data, content_type, PROPERTIES_FOLDER)
        info = self._properties.set_image_url(property_id, url)
        self._discard(old_url, url)
        return info
