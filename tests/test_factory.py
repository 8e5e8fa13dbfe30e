"""
Tests for the event factory.

Every rejection must come back as a LedgerValidationError listing the
offending field; nothing is ever silently corrected.
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from rent_ledger.accounting import EventFactory
from rent_ledger.errors import LedgerValidationError
from rent_ledger.models import (
    Property,
    PropertyType,
    TransactionSplit,
    TransactionType,
)

WHEN = datetime(2026, 5, 10, 14, 0)


@pytest.fixture
def factory(settings):
    return EventFactory(settings)


@pytest.fixture
def prop():
    return Property(
        id="p-1",
        name="Sunrise Apts",
        address="123 Market St",
        type=PropertyType.APARTMENT,
        owner_name="John Doe",
    )


def issue_types(exc_info):
    return {(issue.field, issue.issue_type) for issue in exc_info.value.issues}


class TestBuildPayment:
    """Tests for RENT_PAYMENT construction."""

    def test_split_mismatch_rejected(self, factory, tenant):
        """Cash 900 with splits 400 + 400 is rejected, not rebalanced."""
        with pytest.raises(LedgerValidationError) as exc_info:
            factory.build_payment(
                tenant, WHEN, "900",
                splits=[("A", "400"), ("B", "400")],
            )
        assert ("splits", "split_mismatch") in issue_types(exc_info)
        assert "800" in str(exc_info.value)

    def test_matching_splits_accepted(self, factory, tenant):
        payment = factory.build_payment(
            tenant, WHEN, "900",
            splits=[
                {"receiver_name": "A", "amount": "400"},
                TransactionSplit(receiver_name="B", amount=Decimal("500")),
            ],
        )
        assert payment.total_amount == Decimal("900")
        assert [s.receiver_name for s in payment.splits] == ["A", "B"]
        assert payment.tenant_id == tenant.id
        assert payment.property_id == tenant.property_id

    def test_implicit_split_to_default_receiver(self, factory, tenant, settings):
        """Without splits the whole cash amount goes to one receiver."""
        payment = factory.build_payment(tenant, WHEN, "1200")
        assert len(payment.splits) == 1
        assert payment.splits[0].receiver_name == settings.default_receiver
        assert payment.splits[0].amount == Decimal("1200")

    def test_huge_exponent_amount_rejected(self, factory, tenant):
        """Exponent notation past the ceiling is a validation issue, not a crash."""
        with pytest.raises(LedgerValidationError) as exc_info:
            factory.build_payment(tenant, WHEN, "1e30")
        assert ("cash_amount", "suspicious_value") in issue_types(exc_info)

    def test_non_text_receiver_rejected(self, factory, tenant):
        with pytest.raises(LedgerValidationError) as exc_info:
            factory.build_payment(tenant, WHEN, "100", splits=[(5, "100")])
        assert ("splits[0].receiver_name", "invalid_format") in issue_types(exc_info)

    def test_overlong_receiver_reported_on_split(self, factory, tenant):
        with pytest.raises(LedgerValidationError) as exc_info:
            factory.build_payment(tenant, WHEN, "100", splits=[("x" * 201, "100")])
        assert ("splits[0].receiver_name", "string_too_long") in issue_types(exc_info)

    def test_empty_split_generator_uses_default_receiver(self, factory, tenant, settings):
        """An exhausted iterable counts as no splits at all."""
        payment = factory.build_payment(tenant, WHEN, "1200", splits=(s for s in []))
        assert len(payment.splits) == 1
        assert payment.splits[0].receiver_name == settings.default_receiver
        assert payment.splits[0].amount == Decimal("1200")

    def test_missing_tenant_rejected(self, factory):
        with pytest.raises(LedgerValidationError) as exc_info:
            factory.build_payment(None, WHEN, "100")
        assert ("tenant_id", "missing") in issue_types(exc_info)

    def test_negative_amount_rejected(self, factory, tenant):
        with pytest.raises(LedgerValidationError) as exc_info:
            factory.build_payment(tenant, WHEN, "-50")
        assert ("cash_amount", "negative") in issue_types(exc_info)

    @pytest.mark.parametrize("raw", ["abc", "12,00", True, "nan"])
    def test_non_numeric_amount_rejected(self, factory, tenant, raw):
        with pytest.raises(LedgerValidationError) as exc_info:
            factory.build_payment(tenant, WHEN, raw)
        assert ("cash_amount", "not_numeric") in issue_types(exc_info)

    def test_sub_cent_amount_rejected(self, factory, tenant):
        with pytest.raises(LedgerValidationError) as exc_info:
            factory.build_payment(tenant, WHEN, "10.005")
        assert ("cash_amount", "invalid_format") in issue_types(exc_info)

    def test_empty_payment_rejected(self, factory, tenant):
        """A payment must credit something."""
        with pytest.raises(LedgerValidationError) as exc_info:
            factory.build_payment(tenant, WHEN, "0")
        assert ("cash_amount", "invalid_value") in issue_types(exc_info)

    def test_deduction_only_payment_allowed(self, factory, tenant):
        payment = factory.build_payment(
            tenant, WHEN, "0", deduction_amount="300", deduction_reason="Roof fix",
        )
        assert payment.credit_amount == Decimal("300")
        assert payment.deduction_reason == "Roof fix"

    def test_deduction_reason_dropped_without_deduction(self, factory, tenant):
        payment = factory.build_payment(tenant, WHEN, "100", deduction_reason="none")
        assert payment.deduction_reason is None
        assert payment.deduction_amount == Decimal("0")

    def test_amount_above_ceiling_rejected(self, factory, tenant, settings):
        too_much = settings.max_amount + 1
        with pytest.raises(LedgerValidationError) as exc_info:
            factory.build_payment(tenant, WHEN, str(too_much))
        assert ("cash_amount", "suspicious_value") in issue_types(exc_info)

    def test_all_issues_reported_together(self, factory):
        with pytest.raises(LedgerValidationError) as exc_info:
            factory.build_payment(None, "not-a-date", "xyz")
        found = issue_types(exc_info)
        assert ("tenant_id", "missing") in found
        assert ("date", "invalid_format") in found
        assert ("cash_amount", "not_numeric") in found

    @pytest.mark.parametrize("raw,expected", [
        (date(2026, 5, 10), datetime(2026, 5, 10)),
        ("2026-05-10", datetime(2026, 5, 10)),
        (WHEN, WHEN),
    ])
    def test_date_inputs(self, factory, tenant, raw, expected):
        assert factory.build_payment(tenant, raw, "10").date == expected


class TestBuildRentRoll:
    """Tests for monthly accruals."""

    def test_one_event_per_tenant(self, factory, tenant, settings):
        other = tenant.model_copy(update={"id": "t-200", "monthly_rent": Decimal("800")})
        events = factory.build_rent_roll([tenant, other], WHEN)
        assert [e.tenant_id for e in events] == [tenant.id, "t-200"]
        assert [e.total_amount for e in events] == [Decimal("1200"), Decimal("800")]
        assert all(e.type == TransactionType.RENT_DUE for e in events)
        assert all(e.date == WHEN for e in events)
        assert all(e.description == settings.rent_due_description for e in events)

    def test_no_tenants(self, factory):
        assert factory.build_rent_roll([], WHEN) == []


class TestBuildSettlement:
    """Tests for mark-as-paid settlements."""

    def test_settles_full_arrears(self, factory, tenant):
        owing = tenant.model_copy(update={"current_balance": Decimal("1500")})
        settlement = factory.build_settlement(owing, WHEN)
        assert settlement.total_amount == Decimal("1500")
        assert settlement.splits[0].amount == Decimal("1500")

    @pytest.mark.parametrize("balance", [Decimal("0"), Decimal("-200")])
    def test_nothing_owed(self, factory, tenant, balance):
        settled = tenant.model_copy(update={"current_balance": balance})
        assert factory.build_settlement(settled, WHEN) is None


class TestBuildExpenses:
    """Tests for repairs and owner payouts."""

    def test_repair(self, factory, prop, tenant):
        repair = factory.build_repair(prop, WHEN, "250.50", "Boiler", tenant)
        assert repair.type == TransactionType.REPAIR
        assert repair.total_amount == Decimal("250.50")
        assert repair.tenant_id == tenant.id
        assert repair.property_id == prop.id

    def test_repair_requires_property(self, factory):
        with pytest.raises(LedgerValidationError) as exc_info:
            factory.build_repair(None, WHEN, "10")
        assert ("property_id", "missing") in issue_types(exc_info)

    def test_owner_payout_default_description(self, factory, prop):
        payout = factory.build_owner_payout(prop, WHEN, "5000")
        assert payout.description == "Payout to John Doe"
        assert payout.splits == []

    def test_owner_payout_split_mismatch(self, factory, prop):
        with pytest.raises(LedgerValidationError) as exc_info:
            factory.build_owner_payout(prop, WHEN, "5000", splits=[("John", "4000")])
        assert ("splits", "split_mismatch") in issue_types(exc_info)

    def test_owner_payout_split_generator(self, factory, prop):
        payout = factory.build_owner_payout(
            prop, WHEN, "5000", splits=(pair for pair in [("John", "3000"), ("Jane", "2000")]),
        )
        assert [s.amount for s in payout.splits] == [Decimal("3000"), Decimal("2000")]
