"""Accounting package: balance engine, event factory and reporting."""

from rent_ledger.accounting.balance import (
    apply_event,
    apply_events,
    balance_delta,
    find_divergences,
    fold_balance,
    replay_balances,
    tenant_status,
    verify_balances,
)
from rent_ledger.accounting.factory import EventFactory
from rent_ledger.accounting.reporting import (
    cash_by_receiver,
    collected_in_month,
    collection_report,
    dashboard_stats,
    monthly_collection_series,
    occupancy_rate,
    search_tenants,
    tenant_ledger,
    total_arrears,
    trailing_payment_history,
)

__all__ = [
    # Balance engine
    "apply_event",
    "apply_events",
    "balance_delta",
    "find_divergences",
    "fold_balance",
    "replay_balances",
    "tenant_status",
    "verify_balances",
    # Event factory
    "EventFactory",
    # Reporting
    "cash_by_receiver",
    "collected_in_month",
    "collection_report",
    "dashboard_stats",
    "monthly_collection_series",
    "occupancy_rate",
    "search_tenants",
    "tenant_ledger",
    "total_arrears",
    "trailing_payment_history",
]
