"""
Reporting and Validation Models

Read-side views handed to the UI layer, plus the validation issue model
used to explain why a command was rejected.
"""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from rent_ledger.models.ledger import Tenant, Transaction


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """One reason a command was rejected."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'negative', 'split_mismatch')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


# =============================================================================
# DASHBOARD AND REPORT VIEWS
# =============================================================================

class DashboardStats(BaseModel):
    """Headline figures shown on the dashboard."""

    total_arrears: Decimal = Field(ge=0)
    collected_this_month: Decimal = Field(ge=0)
    total_properties: int = Field(ge=0)
    occupancy_rate: float = Field(
        ge=0,
        description="Placeholder heuristic: tenants / (properties * units_per_property) * 100"
    )
    tenants_in_arrears: int = Field(ge=0)


class MonthlyCollection(BaseModel):
    """Rent collected in one calendar month."""

    year: int
    month: int = Field(ge=1, le=12)
    label: str
    amount: Decimal = Field(ge=0)


class CollectionReport(BaseModel):
    """Report page: cash held per receiver and collections per month."""

    cash_by_receiver: dict[str, Decimal] = Field(default_factory=dict)
    monthly_collections: list[MonthlyCollection] = Field(default_factory=list)


class TenantLedger(BaseModel):
    """Per-tenant ledger view (newest events first)."""

    tenant: Tenant
    status: str
    transactions: list[Transaction] = Field(default_factory=list)
    payment_history: list[MonthlyCollection] = Field(
        default_factory=list,
        description="Trailing calendar months of payments, zero-filled"
    )
