"""Tests for TenantService: uniqueness, updates and the delete cascade."""

from datetime import date
from uuid import uuid4

import pytest

from lease_kernel.domain.statuses import PropertyStatus, TenantContractStatus
from lease_kernel.exceptions import (
    ContractNotFoundError,
    DuplicateTenantError,
    MissingFieldError,
    PaymentNotFoundError,
    TenantNotFoundError,
)
from lease_kernel.services.tenant_service import TenantService


class TestCreateTenant:

    def test_new_tenant_has_no_contract(self, tenant):
        assert tenant.contract_status == TenantContractStatus.NO_CONTRACT
        assert tenant.property_id is None
        assert tenant.contract_end is None
        assert tenant.full_name.startswith("Ana ")

    def test_duplicate_email_rejected_case_insensitive(self, make_tenant, tenant):
        with pytest.raises(DuplicateTenantError) as exc_info:
            make_tenant(email=tenant.email.upper())
        assert exc_info.value.field == "email"
        assert exc_info.value.code == "DUPLICATE_TENANT"

    def test_duplicate_document_rejected(self, make_tenant, tenant):
        with pytest.raises(DuplicateTenantError) as exc_info:
            make_tenant(document_number=tenant.document_number)
        assert exc_info.value.field == "document_number"

    def test_same_email_allowed_for_other_owner(self, session, other_owner_id, deterministic_clock, tenant):
        other = TenantService(session, other_owner_id, deterministic_clock)
        info = other.create_tenant("Ana", "Twin", tenant.email, tenant.document_number)
        assert info.owner_id == other_owner_id

    def test_blank_email_rejected(self, make_tenant):
        with pytest.raises(MissingFieldError):
            make_tenant(email="   ")

    def test_duplicate_logged(self, make_tenant, tenant, captured_logs):
        with pytest.raises(DuplicateTenantError):
            make_tenant(email=tenant.email)
        rejected = [r for r in captured_logs() if r["message"] == "duplicate_tenant_rejected"]
        assert rejected[-1]["field"] == "email"


class TestUpdateTenant:

    def test_partial_update(self, tenant_service, tenant):
        info = tenant_service.update_tenant(tenant.id, phone="+51 999", last_name="Diaz")
        assert info.phone == "+51 999"
        assert info.last_name == "Diaz"
        assert info.email == tenant.email

    def test_keeping_own_email_is_not_a_duplicate(self, tenant_service, tenant):
        info = tenant_service.update_tenant(tenant.id, email=tenant.email)
        assert info.email == tenant.email

    def test_taking_another_email_rejected(self, tenant_service, make_tenant, tenant):
        other = make_tenant()
        with pytest.raises(DuplicateTenantError):
            tenant_service.update_tenant(tenant.id, email=other.email)

    def test_unknown_tenant(self, tenant_service):
        with pytest.raises(TenantNotFoundError):
            tenant_service.update_tenant(uuid4(), phone="1")


class TestDeleteTenant:

    def test_cascade_frees_property(self, tenant_service, contract_service, payment_service, property_service, tenant, prop):
        contract = contract_service.create_contract(
            tenant.id, prop.id, date(2024, 1, 1), date(2024, 12, 31), 1000, status="active"
        )
        payment = payment_service.create_payment(tenant.id, prop.id, 1000, date(2024, 1, 5))
        assert property_service.get(prop.id).status == PropertyStatus.OCCUPIED

        tenant_service.delete_tenant(tenant.id)

        with pytest.raises(TenantNotFoundError):
            tenant_service.get(tenant.id)
        with pytest.raises(ContractNotFoundError):
            contract_service.get(contract.id)
        with pytest.raises(PaymentNotFoundError):
            payment_service.get(payment.id)
        assert property_service.get(prop.id).status == PropertyStatus.AVAILABLE


class TestQueries:

    def test_list_by_contract_status(self, tenant_service, contract_service, make_tenant, prop):
        bound = make_tenant()
        make_tenant()
        contract_service.create_contract(
            bound.id, prop.id, date(2024, 1, 1), date(2024, 12, 31), 1000, status="active"
        )

        assert tenant_service.count() == 2
        assert tenant_service.count("active") == 1
        assert [t.id for t in tenant_service.list_tenants(contract_status="active")] == [bound.id]

    def test_search_by_document(self, tenant_service, make_tenant):
        target = make_tenant(document_number="PASS-778")
        make_tenant()
        assert [t.id for t in tenant_service.search("pass-77")] == [target.id]
