"""
Tests for DocumentService and LocalDocumentStore.

Covers:
- Upload limits checked before anything is stored
- URLs recorded on contracts, payments, tenants and properties
- Replaced documents removed from the store
"""

from datetime import date
from uuid import uuid4

import pytest

from lease_kernel.exceptions import ContractNotFoundError, DocumentRejectedError
from lease_kernel.services.document_service import (
    CONTRACTS_FOLDER,
    DocumentPolicy,
    DocumentService,
    LocalDocumentStore,
)

BASE_URL = "http://files.test/uploads"
PDF = b"%PDF-1.7 lease"
PNG = b"\x89PNG\r\n\x1a\n...."


@pytest.fixture
def store(tmp_path):
    return LocalDocumentStore(tmp_path, BASE_URL)


@pytest.fixture
def documents(session, owner_id, deterministic_clock, store):
    return DocumentService(
        session,
        owner_id,
        store,
        DocumentPolicy(max_upload_bytes=1024),
        deterministic_clock,
    )


@pytest.fixture
def contract(contract_service, tenant, prop):
    return contract_service.create_contract(
        tenant.id, prop.id, date(2024, 1, 1), date(2024, 12, 31), 1000
    )


def _path_of(tmp_path, url: str):
    return tmp_path / url[len(BASE_URL) + 1:]


class TestLocalDocumentStore:

    def test_store_writes_file(self, store, tmp_path):
        url = store.store(PDF, "application/pdf", CONTRACTS_FOLDER)

        assert url.startswith(f"{BASE_URL}/contracts/")
        assert url.endswith(".pdf")
        assert _path_of(tmp_path, url).read_bytes() == PDF

    def test_delete_is_quiet_for_missing_file(self, store):
        store.delete(f"{BASE_URL}/contracts/missing.pdf")

    def test_foreign_url_rejected(self, store):
        with pytest.raises(ValueError):
            store.delete("https://elsewhere.test/contracts/a.pdf")

    def test_traversal_rejected(self, store):
        with pytest.raises(ValueError):
            store.delete(f"{BASE_URL}/../secrets.txt")


class TestDocumentPolicy:

    def test_empty_upload_rejected(self):
        with pytest.raises(DocumentRejectedError):
            DocumentPolicy().check(b"", "application/pdf", CONTRACTS_FOLDER)

    def test_oversized_upload_rejected(self):
        with pytest.raises(DocumentRejectedError) as exc_info:
            DocumentPolicy(max_upload_bytes=4).check(PDF, "application/pdf", CONTRACTS_FOLDER)
        assert exc_info.value.folder == CONTRACTS_FOLDER

    def test_wrong_type_rejected(self):
        with pytest.raises(DocumentRejectedError):
            DocumentPolicy().check(PNG, "image/png", CONTRACTS_FOLDER)

    def test_unknown_folder_rejected(self):
        with pytest.raises(DocumentRejectedError):
            DocumentPolicy().check(PDF, "application/pdf", "misc")


class TestDocumentService:

    def test_attach_contract_document(self, documents, contract, tmp_path):
        info = documents.attach_contract_document(contract.id, PDF, "application/pdf")

        assert info.document_url.startswith(f"{BASE_URL}/contracts/")
        assert _path_of(tmp_path, info.document_url).exists()

    def test_replacing_deletes_previous_file(self, documents, contract, tmp_path):
        first = documents.attach_contract_document(contract.id, PDF, "application/pdf")
        second = documents.attach_contract_document(contract.id, PDF + b"v2", "application/pdf")

        assert second.document_url != first.document_url
        assert not _path_of(tmp_path, first.document_url).exists()
        assert _path_of(tmp_path, second.document_url).exists()

    def test_detach(self, documents, contract, tmp_path):
        attached = documents.attach_contract_document(contract.id, PDF, "application/pdf")
        info = documents.detach_contract_document(contract.id)

        assert info.document_url is None
        assert not _path_of(tmp_path, attached.document_url).exists()

    def test_rejected_upload_stores_nothing(self, documents, contract, tmp_path):
        with pytest.raises(DocumentRejectedError):
            documents.attach_contract_document(contract.id, PNG, "image/png")
        assert not (tmp_path / CONTRACTS_FOLDER).exists()

    def test_unknown_contract_stores_nothing(self, documents, tmp_path):
        with pytest.raises(ContractNotFoundError):
            documents.attach_contract_document(uuid4(), PDF, "application/pdf")
        assert not (tmp_path / CONTRACTS_FOLDER).exists()

    def test_receipt_avatar_and_image(self, documents, payment_service, tenant, prop):
        payment = payment_service.create_payment(tenant.id, prop.id, 1000, date(2024, 1, 5))

        receipt = documents.attach_payment_receipt(payment.id, PNG, "image/png")
        avatar = documents.attach_tenant_avatar(tenant.id, PNG, "image/png")
        image = documents.attach_property_image(prop.id, PNG, "image/png")

        assert "/receipts/" in receipt.receipt_url
        assert "/avatars/" in avatar.avatar_url
        assert "/properties/" in image.image_url

    def test_store_logged(self, documents, contract, captured_logs):
        documents.attach_contract_document(contract.id, PDF, "application/pdf")
        stored = [r for r in captured_logs() if r["message"] == "document_stored"]
        assert stored[-1]["size_bytes"] == len(PDF)
