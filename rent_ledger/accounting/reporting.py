"""
Reporting Engine

Pure reductions over the ledger, recomputed on every read. Nothing here is
cached: dataset sizes are bookkeeping-scale and the event log is the only
source of truth.

All month arithmetic uses the operator's local calendar. Pass `now` to
pin "the current month" (tests, back-dated reports).
"""

from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from rent_ledger.accounting.balance import tenant_status
from rent_ledger.models.ledger import (
    Property,
    RentPaymentTransaction,
    Tenant,
    Transaction,
    transaction_splits,
)
from rent_ledger.models.reports import (
    CollectionReport,
    DashboardStats,
    MonthlyCollection,
    TenantLedger,
)

ZERO = Decimal("0")


def _month_label(year: int, month: int) -> str:
    return datetime(year, month, 1).strftime("%b %Y")


def _payments(transactions: Iterable[Transaction]) -> Iterable[RentPaymentTransaction]:
    return (t for t in transactions if isinstance(t, RentPaymentTransaction))


def total_arrears(tenants: Iterable[Tenant]) -> Decimal:
    """Sum of positive balances. Advances are excluded, not netted."""
    return sum(
        (tenant.current_balance for tenant in tenants if tenant.current_balance > 0),
        ZERO,
    )


def collected_in_month(
    transactions: Iterable[Transaction],
    year: int,
    month: int,
) -> Decimal:
    """Cash received as rent payments in one calendar month."""
    return sum(
        (
            t.total_amount
            for t in _payments(transactions)
            if t.date.year == year and t.date.month == month
        ),
        ZERO,
    )


def occupancy_rate(
    tenant_count: int,
    property_count: int,
    units_per_property: int = 2,
) -> float:
    """
    Placeholder occupancy heuristic.

    Assumes every property has `units_per_property` units. Not a measured
    occupancy figure.
    """
    if property_count <= 0:
        return 0.0
    return tenant_count / (property_count * units_per_property) * 100


def cash_by_receiver(transactions: Iterable[Transaction]) -> dict[str, Decimal]:
    """Split amounts grouped by receiver, over every event that carries splits."""
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for transaction in transactions:
        for split in transaction_splits(transaction):
            totals[split.receiver_name] += split.amount
    return dict(totals)


def monthly_collection_series(
    transactions: Iterable[Transaction],
) -> list[MonthlyCollection]:
    """
    Rent payments grouped by calendar month, for the months present in the data.

    Months are keyed by (year, month) so January of two different years
    never merge. Returned oldest first.
    """
    totals: dict[tuple[int, int], Decimal] = defaultdict(lambda: ZERO)
    for payment in _payments(transactions):
        totals[(payment.date.year, payment.date.month)] += payment.total_amount
    return [
        MonthlyCollection(
            year=year,
            month=month,
            label=_month_label(year, month),
            amount=amount,
        )
        for (year, month), amount in sorted(totals.items())
    ]


def trailing_payment_history(
    transactions: Iterable[Transaction],
    tenant_id: str,
    months: int = 6,
    now: Optional[datetime] = None,
) -> list[MonthlyCollection]:
    """
    A tenant's payments over the last `months` calendar months, oldest first.

    Months without payments are present with a zero amount.
    """
    now = now or datetime.now()
    window = []
    for back in range(months - 1, -1, -1):
        index = now.year * 12 + (now.month - 1) - back
        window.append((index // 12, index % 12 + 1))

    totals = {key: ZERO for key in window}
    for payment in _payments(transactions):
        if payment.tenant_id != tenant_id:
            continue
        key = (payment.date.year, payment.date.month)
        if key in totals:
            totals[key] += payment.total_amount

    return [
        MonthlyCollection(
            year=year,
            month=month,
            label=_month_label(year, month),
            amount=totals[(year, month)],
        )
        for year, month in window
    ]


def dashboard_stats(
    properties: list[Property],
    tenants: list[Tenant],
    transactions: list[Transaction],
    units_per_property: int = 2,
    now: Optional[datetime] = None,
) -> DashboardStats:
    """Headline dashboard figures."""
    now = now or datetime.now()
    return DashboardStats(
        total_arrears=total_arrears(tenants),
        collected_this_month=collected_in_month(transactions, now.year, now.month),
        total_properties=len(properties),
        occupancy_rate=occupancy_rate(len(tenants), len(properties), units_per_property),
        tenants_in_arrears=sum(1 for tenant in tenants if tenant.in_arrears),
    )


def collection_report(transactions: list[Transaction]) -> CollectionReport:
    """Everything shown on the reports page."""
    return CollectionReport(
        cash_by_receiver=cash_by_receiver(transactions),
        monthly_collections=monthly_collection_series(transactions),
    )


def tenant_ledger(
    tenant: Tenant,
    transactions: list[Transaction],
    history_months: int = 6,
    now: Optional[datetime] = None,
) -> TenantLedger:
    """One tenant's events (newest first) and trailing payment history."""
    own = [t for t in transactions if getattr(t, "tenant_id", None) == tenant.id]
    # Stable sort keeps append order for events sharing a timestamp
    own.sort(key=lambda t: t.date, reverse=True)
    return TenantLedger(
        tenant=tenant,
        status=tenant_status(tenant.current_balance),
        transactions=own,
        payment_history=trailing_payment_history(
            own, tenant.id, months=history_months, now=now,
        ),
    )


def search_tenants(tenants: Iterable[Tenant], query: str) -> list[Tenant]:
    """Case-insensitive name match, or a substring of the phone number."""
    query = (query or "").strip()
    if not query:
        return list(tenants)
    lowered = query.lower()
    return [
        tenant for tenant in tenants
        if lowered in tenant.name.lower() or query in tenant.phone
    ]
