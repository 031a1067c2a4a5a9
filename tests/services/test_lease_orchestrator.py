"""
Tests for LeaseOrchestrator.

Covers:
- One transaction per operation: failures roll back every partial write
- Bound log context (owner, operation, correlation id)
- The scheduled status sweep
- Document attachment through a configured store
"""

from datetime import date
from decimal import Decimal

import pytest

from lease_kernel.domain.statuses import (
    ContractStatus,
    PaymentStatus,
    PropertyStatus,
    TenantContractStatus,
)
from lease_kernel.exceptions import ContractOverlapError, InvalidDateRangeError
from lease_kernel.logging_config import LogContext
from lease_kernel.services.contract_service import ContractService
from lease_kernel.services.document_service import LocalDocumentStore
from lease_kernel.services.lease_orchestrator import LeaseOrchestrator, SweepResult

START = date(2024, 1, 1)
END = date(2024, 12, 31)


@pytest.fixture
def orchestrator(session, identity, deterministic_clock):
    return LeaseOrchestrator(session, identity, clock=deterministic_clock)


@pytest.fixture
def setup(orchestrator):
    prop = orchestrator.create_property("Loft", "1 Main St", Decimal("950"))
    tenant = orchestrator.create_tenant("Ana", "Lopez", "ana@example.com", "DNI-1")
    return tenant, prop


class TestTransactions:

    def test_contract_lifecycle_end_to_end(self, orchestrator, setup, property_service, tenant_service):
        tenant, prop = setup
        contract = orchestrator.create_contract(tenant.id, prop.id, START, END, 950)
        signed = orchestrator.sign_contract(contract.id)

        assert signed.status == ContractStatus.ACTIVE
        assert tenant_service.get(tenant.id).contract_status == TenantContractStatus.ACTIVE
        assert property_service.get(prop.id).status == PropertyStatus.OCCUPIED

        orchestrator.finalize_contract(contract.id)
        assert property_service.get(prop.id).status == PropertyStatus.AVAILABLE

    def test_failure_rolls_back_partial_writes(self, orchestrator, setup, monkeypatch, contract_service, tenant_service):
        tenant, prop = setup

        def _broken_sync(self, contract, tenant, prop):
            raise RuntimeError("sync failed")

        monkeypatch.setattr(ContractService, "_sync", _broken_sync)
        with pytest.raises(RuntimeError):
            orchestrator.create_contract(tenant.id, prop.id, START, END, 950)

        assert contract_service.count() == 0
        assert tenant_service.get(tenant.id).contract_status == TenantContractStatus.NO_CONTRACT

    def test_overlap_propagates_typed_error(self, orchestrator, setup):
        tenant, prop = setup
        first = orchestrator.create_contract(tenant.id, prop.id, START, END, 950)
        orchestrator.sign_contract(first.id)
        other = orchestrator.create_tenant("Bo", "Diaz", "bo@example.com", "DNI-2")

        with pytest.raises(ContractOverlapError):
            orchestrator.create_contract(other.id, prop.id, date(2024, 5, 1), date(2025, 4, 30), 950)

    def test_delete_contract_reverts(self, orchestrator, setup, tenant_service):
        tenant, prop = setup
        contract = orchestrator.create_contract(tenant.id, prop.id, START, END, 950, status="active")
        orchestrator.delete_contract(contract.id)
        assert tenant_service.get(tenant.id).contract_status == TenantContractStatus.NO_CONTRACT


class TestLogging:

    def test_completed_operation_logs_context(self, orchestrator, owner_id, captured_logs):
        orchestrator.create_property("Loft", "1 Main St", 950)

        done = [r for r in captured_logs() if r["message"] == "operation_completed"]
        assert done[-1]["operation"] == "create_property"
        assert done[-1]["owner_id"] == str(owner_id)
        assert done[-1]["correlation_id"]
        assert "duration_ms" in done[-1]

        created = [r for r in captured_logs() if r["message"] == "property_created"]
        assert created[-1]["correlation_id"] == done[-1]["correlation_id"]

    def test_failed_operation_logs_error_code(self, orchestrator, setup, captured_logs):
        tenant, prop = setup
        with pytest.raises(InvalidDateRangeError):
            orchestrator.create_contract(tenant.id, prop.id, END, START, 950)

        failed = [r for r in captured_logs() if r["message"] == "operation_failed"]
        assert failed[-1]["level"] == "ERROR"
        assert failed[-1]["exc_code"] == "INVALID_DATE_RANGE"

    def test_context_cleared_after_operation(self, orchestrator):
        orchestrator.create_property("Loft", "1 Main St", 950)
        assert "operation" not in LogContext.get_all()


class TestSweep:

    def test_sweep_updates_contracts_and_payments(self, orchestrator, setup, deterministic_clock, property_service):
        tenant, prop = setup
        orchestrator.create_contract(tenant.id, prop.id, START, date(2024, 3, 31), 950, status="active")
        payment = orchestrator.create_payment(tenant.id, prop.id, 950, date(2024, 1, 5))

        deterministic_clock.set_date(date(2024, 4, 2))
        result = orchestrator.run_status_sweep()

        assert isinstance(result, SweepResult)
        assert result.contracts_changed == 1
        assert result.payments_changed == 1
        assert property_service.get(prop.id).status == PropertyStatus.AVAILABLE

        paid = orchestrator.register_payment(payment.id)
        assert paid.status == PaymentStatus.PAID
        assert paid.paid_date == date(2024, 4, 2)


class TestDocuments:

    def test_attach_without_store_fails(self, orchestrator, setup):
        tenant, prop = setup
        contract = orchestrator.create_contract(tenant.id, prop.id, START, END, 950)
        with pytest.raises(RuntimeError):
            orchestrator.attach_contract_document(contract.id, b"%PDF", "application/pdf")

    def test_attach_with_store(self, session, identity, deterministic_clock, tmp_path):
        orchestrator = LeaseOrchestrator(
            session,
            identity,
            clock=deterministic_clock,
            document_store=LocalDocumentStore(tmp_path, "http://files.test"),
        )
        prop = orchestrator.create_property("Loft", "1 Main St", 950)
        tenant = orchestrator.create_tenant("Ana", "Lopez", "ana@example.com", "DNI-1")
        payment = orchestrator.create_payment(tenant.id, prop.id, 950, date(2024, 1, 5))

        info = orchestrator.attach_payment_receipt(payment.id, b"%PDF-1.7", "application/pdf")
        assert info.receipt_url.startswith("http://files.test/receipts/")
