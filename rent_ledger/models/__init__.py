"""
Data Models Package

This package contains all Pydantic models used in the Rent Ledger system.
All data flowing through the system must conform to these schemas.
"""

from rent_ledger.models.ledger import (
    OwnerPayoutTransaction,
    Property,
    PropertyList,
    PropertyType,
    RentDueTransaction,
    RentPaymentTransaction,
    RepairTransaction,
    Tenant,
    TenantList,
    Transaction,
    TransactionList,
    TransactionSplit,
    TransactionType,
    new_id,
    transaction_splits,
)
from rent_ledger.models.reports import (
    CollectionReport,
    DashboardStats,
    MonthlyCollection,
    TenantLedger,
    ValidationIssue,
)
from rent_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from rent_ledger.models.identity import Identity

__all__ = [
    # Ledger models
    "OwnerPayoutTransaction",
    "Property",
    "PropertyList",
    "PropertyType",
    "RentDueTransaction",
    "RentPaymentTransaction",
    "RepairTransaction",
    "Tenant",
    "TenantList",
    "Transaction",
    "TransactionList",
    "TransactionSplit",
    "TransactionType",
    "new_id",
    "transaction_splits",
    # Report models
    "CollectionReport",
    "DashboardStats",
    "MonthlyCollection",
    "TenantLedger",
    "ValidationIssue",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Identity
    "Identity",
]
