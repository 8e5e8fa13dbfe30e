"""
Demo Seed Data

Loaded for a scope that has never saved anything (when seeding is on).
Opening balances are expressed as ledger events, so the seed already
satisfies "balance == fold of events".
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from rent_ledger.accounting.balance import apply_events
from rent_ledger.models.ledger import (
    Property,
    PropertyType,
    RentDueTransaction,
    RentPaymentTransaction,
    Tenant,
    TransactionSplit,
)
from rent_ledger.services.storage.interface import LedgerSnapshot

OPENING_BALANCE = "Opening balance"


def demo_snapshot(now: Optional[datetime] = None) -> LedgerSnapshot:
    """Two properties, three tenants owing 0 / 1500 / -200."""
    now = now or datetime.now()

    properties = [
        Property(
            id="1",
            name="Sunrise Apts",
            address="123 Market St",
            type=PropertyType.APARTMENT,
            owner_name="John Doe",
        ),
        Property(
            id="2",
            name="Downtown Commercial",
            address="456 Main Blvd",
            type=PropertyType.COMMERCIAL,
            owner_name="Jane Smith",
        ),
    ]

    tenants = [
        Tenant(
            id="t1", property_id="1", name="Alice Johnson", phone="555-0101",
            monthly_rent=Decimal("1200"), lease_start=date(2023, 1, 1),
        ),
        Tenant(
            id="t2", property_id="1", name="Bob Williams", phone="555-0102",
            monthly_rent=Decimal("1500"), lease_start=date(2023, 2, 15),
        ),
        Tenant(
            id="t3", property_id="2", name="Tech Solutions Inc", phone="555-0103",
            monthly_rent=Decimal("5000"), lease_start=date(2022, 6, 1),
        ),
    ]

    transactions = [
        RentDueTransaction(
            id="tx0", tenant_id="t1", property_id="1", date=now,
            total_amount=Decimal("1200"), description="Monthly Rent Auto-Charge",
        ),
        RentPaymentTransaction(
            id="tx1", tenant_id="t1", property_id="1", date=now,
            total_amount=Decimal("1200"),
            splits=[TransactionSplit(receiver_name="John", amount=Decimal("1200"))],
        ),
        RentDueTransaction(
            id="tx2", tenant_id="t2", property_id="1",
            date=datetime(2023, 2, 15), total_amount=Decimal("1500"),
            description=OPENING_BALANCE,
        ),
        RentPaymentTransaction(
            id="tx3", tenant_id="t3", property_id="2",
            date=datetime(2022, 6, 1), total_amount=Decimal("200"),
            splits=[TransactionSplit(receiver_name="Jane Smith", amount=Decimal("200"))],
            description=OPENING_BALANCE,
        ),
    ]

    return LedgerSnapshot(
        properties=properties,
        tenants=apply_events(tenants, transactions),
        transactions=transactions,
    )
