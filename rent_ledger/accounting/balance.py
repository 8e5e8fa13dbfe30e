"""
Balance Engine

The ONLY code allowed to change Tenant.current_balance.

    RENT_DUE       balance + total_amount
    RENT_PAYMENT   balance - (total_amount + deduction_amount)
    anything else  unchanged

Everything here is a pure function. Applying events one at a time as they
are appended must give the same balance as folding the whole history from
zero; verify_balances() checks that the cached balances still agree.
"""

from decimal import Decimal
from typing import Iterable, Optional

from rent_ledger.errors import BalanceDivergenceError
from rent_ledger.models.ledger import (
    RentDueTransaction,
    RentPaymentTransaction,
    Tenant,
    Transaction,
)

ZERO = Decimal("0")


def balance_delta(event: Transaction) -> Decimal:
    """Signed change an event makes to its tenant's balance."""
    if isinstance(event, RentDueTransaction):
        return event.total_amount
    if isinstance(event, RentPaymentTransaction):
        return -event.credit_amount
    return ZERO


def apply_event(tenant: Tenant, event: Transaction) -> Tenant:
    """
    Apply one event to a tenant, returning the updated tenant.

    Events addressed to another tenant (or to none) leave it untouched.
    """
    if getattr(event, "tenant_id", None) != tenant.id:
        return tenant
    delta = balance_delta(event)
    if delta == ZERO:
        return tenant
    return tenant.model_copy(
        update={"current_balance": tenant.current_balance + delta}
    )


def apply_events(
    tenants: list[Tenant],
    events: Iterable[Transaction],
) -> list[Tenant]:
    """Apply a batch of events to a tenant list, preserving list order."""
    by_id = {tenant.id: tenant for tenant in tenants}
    for event in events:
        tenant_id = getattr(event, "tenant_id", None)
        if tenant_id in by_id:
            by_id[tenant_id] = apply_event(by_id[tenant_id], event)
    return [by_id[tenant.id] for tenant in tenants]


def fold_balance(
    events: Iterable[Transaction],
    tenant_id: str,
    initial: Decimal = ZERO,
) -> Decimal:
    """Replay a tenant's full history from an initial balance."""
    balance = initial
    for event in events:
        if getattr(event, "tenant_id", None) == tenant_id:
            balance += balance_delta(event)
    return balance


def replay_balances(
    tenants: Iterable[Tenant],
    transactions: Iterable[Transaction],
) -> dict[str, Decimal]:
    """Recompute every tenant's balance from scratch."""
    balances = {tenant.id: ZERO for tenant in tenants}
    for event in transactions:
        tenant_id = getattr(event, "tenant_id", None)
        if tenant_id in balances:
            balances[tenant_id] += balance_delta(event)
    return balances


def find_divergences(
    tenants: list[Tenant],
    transactions: list[Transaction],
) -> dict[str, tuple[Decimal, Decimal]]:
    """Map tenant id -> (cached, replayed) for every tenant that disagrees."""
    replayed = replay_balances(tenants, transactions)
    return {
        tenant.id: (tenant.current_balance, replayed[tenant.id])
        for tenant in tenants
        if tenant.current_balance != replayed[tenant.id]
    }


def verify_balances(
    tenants: list[Tenant],
    transactions: list[Transaction],
) -> None:
    """Raise BalanceDivergenceError if any cached balance disagrees with the log."""
    mismatches = find_divergences(tenants, transactions)
    if mismatches:
        raise BalanceDivergenceError(mismatches)


def tenant_status(balance: Decimal, currency_symbol: Optional[str] = None) -> str:
    """
    Short label for a balance: 'Due', 'Advance' or 'Paid'.

    With a currency symbol the amount is included, e.g. 'Due: ₹1,500'.
    """
    if balance > 0:
        label, amount = "Due", balance
    elif balance < 0:
        label, amount = "Advance", -balance
    else:
        return "Paid"
    if currency_symbol is None:
        return label
    return f"{label}: {currency_symbol}{amount:,}"
