"""
Pytest fixtures for the rent ledger test suite.

No test touches the network or the real data directory: ledgers use the
in-memory store and settings are built explicitly.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from rent_ledger.config import LedgerSettings
from rent_ledger.models import Identity, Tenant
from rent_ledger.orchestrator import RentalLedger, open_ledger
from rent_ledger.services.storage import InMemoryLedgerStore, demo_snapshot

NOW = datetime(2026, 10, 19, 10, 30)


@pytest.fixture
def settings(tmp_path):
    """Ledger settings isolated from the environment."""
    return LedgerSettings(
        storage_backend="memory",
        data_dir=tmp_path,
        seed_demo_data=False,
        auth_latency_seconds=0,
    )


@pytest.fixture
def alice():
    return Identity(id="user-alice", name="Alice", email="alice@example.com")


@pytest.fixture
def bob():
    return Identity(id="user-bob", name="Bob", email="bob@example.com")


@pytest.fixture
def store():
    return InMemoryLedgerStore()


@pytest.fixture
def ledger(alice, store, settings):
    """An empty ledger owned by Alice."""
    return open_ledger(alice, store=store, settings=settings)


@pytest.fixture
def seeded_store():
    return InMemoryLedgerStore(seed_factory=lambda: demo_snapshot(NOW))


@pytest.fixture
def seeded_ledger(seeded_store, settings):
    """The demo ledger: tenants t1/t2/t3 owing 0 / 1500 / -200."""
    return RentalLedger("test_scope", seeded_store, settings=settings)


@pytest.fixture
def tenant():
    return Tenant(
        id="t-100",
        property_id="p-1",
        name="Carol Tenant",
        phone="555-0199",
        monthly_rent=Decimal("1200"),
        lease_start=date(2024, 1, 1),
    )
