"""
Tests for session_scope: one commit per logical operation, full rollback on
error.

These tests commit for real, so they use the module engine directly instead
of the per-test rolled-back ``session`` fixture, and remove what they write.
"""

from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import delete, func, select

from lease_kernel.db.engine import session_scope
from lease_kernel.exceptions import ContractOverlapError
from lease_kernel.models import Contract, Payment, Property, Tenant
from lease_kernel.services.contract_service import ContractService
from lease_kernel.services.property_service import PropertyService
from lease_kernel.services.tenant_service import TenantService


@pytest.fixture
def scoped_owner(db_tables):
    owner_id = uuid4()
    yield owner_id
    with session_scope() as session:
        session.execute(delete(Payment).where(Payment.owner_id == owner_id))
        session.execute(delete(Contract).where(Contract.owner_id == owner_id))
        session.execute(delete(Tenant).where(Tenant.owner_id == owner_id))
        session.execute(delete(Property).where(Property.owner_id == owner_id))


def _owned_count(session, model, owner_id):
    return session.execute(
        select(func.count()).select_from(model).where(model.owner_id == owner_id)
    ).scalar_one()


def test_commits_on_success(scoped_owner, deterministic_clock):
    with session_scope() as session:
        PropertyService(session, scoped_owner, deterministic_clock).create_property(
            "Loft", "1 Main St", Decimal("900.00")
        )

    with session_scope() as session:
        assert _owned_count(session, Property, scoped_owner) == 1


def test_rolls_back_everything_on_error(scoped_owner, deterministic_clock):
    with pytest.raises(RuntimeError):
        with session_scope() as session:
            PropertyService(session, scoped_owner, deterministic_clock).create_property(
                "Loft", "1 Main St", Decimal("900.00")
            )
            TenantService(session, scoped_owner, deterministic_clock).create_tenant(
                "Ana", "Lopez", "ana@example.com", "DNI-1"
            )
            raise RuntimeError("boom")

    with session_scope() as session:
        assert _owned_count(session, Property, scoped_owner) == 0
        assert _owned_count(session, Tenant, scoped_owner) == 0


def test_rejected_booking_leaves_no_trace(scoped_owner, deterministic_clock, captured_logs):
    with session_scope() as session:
        prop = PropertyService(session, scoped_owner, deterministic_clock).create_property(
            "Loft", "1 Main St", Decimal("900.00")
        )
        tenants = TenantService(session, scoped_owner, deterministic_clock)
        first = tenants.create_tenant("Ana", "Lopez", "ana@example.com", "DNI-1")
        second = tenants.create_tenant("Luis", "Diaz", "luis@example.com", "DNI-2")
        ContractService(session, scoped_owner, deterministic_clock).create_contract(
            first.id, prop.id, deterministic_clock.today(),
            deterministic_clock.today().replace(month=12, day=31),
            Decimal("900.00"), status="active",
        )

    with pytest.raises(ContractOverlapError):
        with session_scope() as session:
            ContractService(session, scoped_owner, deterministic_clock).create_contract(
                second.id, prop.id, deterministic_clock.today().replace(month=6),
                deterministic_clock.today().replace(year=2025),
                Decimal("900.00"), status="active",
            )

    with session_scope() as session:
        contracts = ContractService(session, scoped_owner, deterministic_clock)
        assert contracts.count() == 1
        assert TenantService(session, scoped_owner, deterministic_clock).get(
            second.id
        ).contract_status.value == "no_contract"

    messages = [r["message"] for r in captured_logs()]
    assert "transaction_rolled_back" in messages
