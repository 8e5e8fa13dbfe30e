"""
Integration tests for the RentalLedger orchestrator.

Every ledger here runs against the in-memory store; a reload from the same
store is how persistence is checked.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from rent_ledger.audit import AuditLogger
from rent_ledger.errors import (
    BalanceDivergenceError,
    LedgerValidationError,
    NotFoundError,
    ScopeRequiredError,
)
from rent_ledger.models import AuditEventType, PropertyType, TransactionType
from rent_ledger.orchestrator import RentalLedger, open_ledger
from rent_ledger.services.storage import (
    TENANTS,
    InMemoryLedgerStore,
    StorageError,
    demo_snapshot,
)

NOW = datetime(2026, 10, 19, 10, 30)


class FlakyStore(InMemoryLedgerStore):
    """In-memory store whose writes to one collection can be made to fail."""

    def __init__(self, seed_factory=None):
        super().__init__(seed_factory)
        self.fail_on = None

    def _write_records(self, scope_key, collection, records):
        if collection == self.fail_on:
            raise StorageError(f"disk full while writing {collection}")
        super()._write_records(scope_key, collection, records)


def snapshot_of(ledger):
    return (ledger.properties, ledger.tenants, ledger.transactions)


def balances(ledger):
    return {t.id: t.current_balance for t in ledger.tenants}


@pytest.fixture
def populated(ledger):
    """Alice's ledger with one property and two tenants."""
    prop = ledger.add_property("Sunrise Apts", "123 Market St", PropertyType.APARTMENT, "John Doe")
    first = ledger.add_tenant(prop.id, "Dana", "1000", date(2025, 1, 1), phone="555-1000")
    second = ledger.add_tenant(prop.id, "Eli", "750.50", date(2025, 6, 1))
    return ledger, prop, first, second


class TestMasterData:
    """Tests for add_property and add_tenant."""

    def test_add_property_and_tenant(self, populated):
        ledger, prop, first, second = populated
        assert ledger.properties == (prop,)
        assert [t.id for t in ledger.tenants] == [first.id, second.id]
        assert first.current_balance == Decimal("0")
        assert second.monthly_rent == Decimal("750.50")

    def test_add_tenant_unknown_property(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.add_tenant("nope", "Dana", "1000", date(2025, 1, 1))
        assert ledger.tenants == ()

    def test_add_property_invalid_type(self, ledger):
        with pytest.raises(LedgerValidationError) as exc_info:
            ledger.add_property("X", "Y", "Castle", "Z")
        assert exc_info.value.issues[0].field == "type"
        assert ledger.properties == ()

    def test_add_tenant_rejects_zero_rent(self, populated):
        ledger, prop, _, _ = populated
        with pytest.raises(LedgerValidationError):
            ledger.add_tenant(prop.id, "Fay", "0", date(2025, 1, 1))
        assert len(ledger.tenants) == 2


class TestRecordPayment:
    """Tests for recording rent payments."""

    def test_payment_with_deduction(self, populated):
        ledger, _, first, _ = populated
        ledger.generate_monthly_rent(datetime(2026, 1, 1))
        ledger.generate_monthly_rent(datetime(2026, 2, 1))
        assert ledger.get_tenant_balance(first.id) == Decimal("2000")

        updated = ledger.record_payment(
            first.id, date(2026, 2, 5), "1500",
            deduction_amount="500", deduction_reason="Plumbing",
        )
        assert updated.current_balance == Decimal("0")
        assert ledger.get_tenant_balance(first.id) == Decimal("0")
        assert ledger.transactions[-1].deduction_reason == "Plumbing"

    def test_overpayment_shows_advance(self, populated, settings):
        ledger, _, first, _ = populated
        ledger.record_payment(first.id, NOW, "200")
        assert ledger.get_tenant_balance(first.id) == Decimal("-200")
        assert ledger.get_tenant_status(first.id) == f"Advance: {settings.currency_symbol}200"

    def test_rejected_payment_changes_nothing(self, populated):
        ledger, _, first, _ = populated
        before = snapshot_of(ledger)
        with pytest.raises(LedgerValidationError):
            ledger.record_payment(first.id, NOW, "900", splits=[("A", "400"), ("B", "400")])
        assert snapshot_of(ledger) == before

    def test_exponent_amount_rejected_cleanly(self, populated):
        ledger, _, first, _ = populated
        before = snapshot_of(ledger)
        with pytest.raises(LedgerValidationError):
            ledger.record_payment(first.id, NOW, "1e30")
        assert snapshot_of(ledger) == before

    def test_missing_tenant(self, populated):
        ledger, _, _, _ = populated
        with pytest.raises(LedgerValidationError) as exc_info:
            ledger.record_payment(None, NOW, "100")
        assert exc_info.value.issues[0].field == "tenant_id"

    def test_unknown_tenant(self, populated):
        ledger, _, _, _ = populated
        with pytest.raises(NotFoundError):
            ledger.record_payment("ghost", NOW, "100")

    def test_payment_persisted(self, populated, store, settings):
        ledger, _, first, _ = populated
        ledger.record_payment(first.id, NOW, "300")

        reopened = RentalLedger(ledger.scope_key, store, settings=settings)
        assert snapshot_of(reopened) == snapshot_of(ledger)
        reopened.verify_balances()

    def test_validation_failure_is_audited(self, store, settings):
        audit = AuditLogger("scope", history_size=10)
        ledger = RentalLedger("scope", store, settings=settings, audit_logger=audit)
        with pytest.raises(LedgerValidationError):
            ledger.record_payment(None, NOW, "-1")
        event = audit.recent_events()[0]
        assert event.event_type == AuditEventType.VALIDATION_FAILED
        assert event.details["command"] == "record_payment"


class TestMonthlyRent:
    """Tests for the monthly rent roll."""

    def test_rent_roll_on_seed(self, seeded_ledger):
        """Balances 0 / 1500 / -200 with rents 1200 / 1500 / 5000."""
        before = len(seeded_ledger.transactions)
        seeded_ledger.generate_monthly_rent(NOW)

        assert balances(seeded_ledger) == {
            "t1": Decimal("1200"),
            "t2": Decimal("3000"),
            "t3": Decimal("4800"),
        }
        new_events = seeded_ledger.transactions[before:]
        assert len(new_events) == 3
        assert all(e.type == TransactionType.RENT_DUE for e in new_events)
        assert len({e.id for e in seeded_ledger.transactions}) == before + 3
        seeded_ledger.verify_balances()

    def test_no_tenants_is_a_no_op(self, ledger):
        assert ledger.generate_monthly_rent(NOW) == []
        assert ledger.transactions == ()

    def test_failed_save_leaves_state_and_store_untouched(self, settings):
        store = FlakyStore(seed_factory=lambda: demo_snapshot(NOW))
        ledger = RentalLedger("scope", store, settings=settings)
        ledger.record_payment("t2", NOW, "500")
        before = snapshot_of(ledger)

        store.fail_on = TENANTS
        with pytest.raises(StorageError):
            ledger.generate_monthly_rent(NOW)
        assert snapshot_of(ledger) == before

        store.fail_on = None
        reopened = RentalLedger("scope", store, settings=settings)
        assert snapshot_of(reopened) == before
        reopened.verify_balances()

    def test_seeded_scope_fully_persisted_on_first_change(self, seeded_store, settings):
        ledger = RentalLedger("scope", seeded_store, settings=settings)
        ledger.generate_monthly_rent(NOW)

        reopened = RentalLedger("scope", seeded_store, settings=settings)
        assert reopened.warnings == ()
        assert snapshot_of(reopened) == snapshot_of(ledger)


class TestMarkAsPaid:
    """Tests for bulk settlement."""

    def test_settles_arrears_and_skips_advances(self, seeded_ledger):
        result = seeded_ledger.mark_as_paid(["t1", "t2", "t3"], NOW)
        assert [t.id for t in result] == ["t1", "t2", "t3"]
        assert balances(seeded_ledger) == {
            "t1": Decimal("0"),
            "t2": Decimal("0"),
            "t3": Decimal("-200"),
        }
        settlement = seeded_ledger.transactions[-1]
        assert settlement.tenant_id == "t2"
        assert settlement.total_amount == Decimal("1500")
        seeded_ledger.verify_balances()

    def test_duplicate_ids_settle_once(self, seeded_ledger):
        before = len(seeded_ledger.transactions)
        seeded_ledger.mark_as_paid(["t2", "t2"], NOW)
        assert len(seeded_ledger.transactions) == before + 1

    def test_unknown_id_rejects_batch(self, seeded_ledger):
        before = snapshot_of(seeded_ledger)
        with pytest.raises(LedgerValidationError) as exc_info:
            seeded_ledger.mark_as_paid(["t2", "ghost"], NOW)
        assert exc_info.value.issues[0].issue_type == "not_found"
        assert snapshot_of(seeded_ledger) == before

    def test_empty_selection_rejected(self, seeded_ledger):
        with pytest.raises(LedgerValidationError):
            seeded_ledger.mark_as_paid([], NOW)


class TestExpenses:
    """Repairs and payouts are recorded but never move balances."""

    def test_repair_and_payout(self, seeded_ledger):
        before = balances(seeded_ledger)
        repair = seeded_ledger.record_repair("1", NOW, "300", "Roof", tenant_id="t2")
        payout = seeded_ledger.record_owner_payout("2", NOW, "1000", splits=[("Jane Smith", "1000")])

        assert balances(seeded_ledger) == before
        assert seeded_ledger.transactions[-2:] == (repair, payout)
        assert seeded_ledger.get_reports().cash_by_receiver["Jane Smith"] == Decimal("1200")

    def test_repair_unknown_property(self, seeded_ledger):
        with pytest.raises(NotFoundError):
            seeded_ledger.record_repair("99", NOW, "10")


class TestQueries:
    """Tests for read-side queries."""

    def test_unknown_tenant_balance(self, seeded_ledger):
        with pytest.raises(NotFoundError):
            seeded_ledger.get_tenant_balance("ghost")

    def test_stats_on_seed(self, seeded_ledger):
        stats = seeded_ledger.get_stats(now=NOW)
        assert stats.total_arrears == Decimal("1500")
        assert stats.collected_this_month == Decimal("1200")
        assert stats.total_properties == 2
        assert stats.occupancy_rate == pytest.approx(75.0)
        assert stats.tenants_in_arrears == 1

    def test_list_transactions_newest_first(self, seeded_ledger):
        seeded_ledger.record_payment("t2", datetime(2024, 1, 1), "100")
        dates = [t.date for t in seeded_ledger.list_transactions()]
        assert dates == sorted(dates, reverse=True)
        assert len(seeded_ledger.recent_transactions(2)) == 2

    def test_tenant_ledger(self, seeded_ledger):
        view = seeded_ledger.get_tenant_ledger("t1", now=NOW)
        assert {t.id for t in view.transactions} == {"tx0", "tx1"}
        assert view.payment_history[-1].amount == Decimal("1200")

    def test_search(self, seeded_ledger):
        assert [t.id for t in seeded_ledger.search_tenants("tech")] == ["t3"]

    def test_divergence_detected(self, seeded_store, settings):
        tampered = demo_snapshot(NOW)
        tenants = [
            t.model_copy(update={"current_balance": Decimal("9")}) if t.id == "t1" else t
            for t in tampered.tenants
        ]
        seeded_store.save_snapshot("scope", tampered.model_copy(update={"tenants": tenants}))
        ledger = RentalLedger("scope", seeded_store, settings=settings)
        with pytest.raises(BalanceDivergenceError) as exc_info:
            ledger.verify_balances()
        assert exc_info.value.mismatches == {"t1": (Decimal("9"), Decimal("0"))}


class TestScopeIsolation:
    """Two identities never see each other's data."""

    def test_identities_are_isolated(self, alice, bob, store, settings):
        ledger_a = open_ledger(alice, store=store, settings=settings)
        ledger_b = open_ledger(bob, store=store, settings=settings)
        ledger_a.add_property("A's place", "1 Road", PropertyType.HOUSE, "Alice")

        assert ledger_b.properties == ()
        assert open_ledger(bob, store=store, settings=settings).properties == ()
        assert len(open_ledger(alice, store=store, settings=settings).properties) == 1
        assert ledger_a.scope_key != ledger_b.scope_key

    def test_no_identity_no_ledger(self, store, settings):
        with pytest.raises(ScopeRequiredError):
            open_ledger(None, store=store, settings=settings)
        assert store.scopes() == set()
