"""
Core Ledger Models for Rent Ledger

These models define the strict schemas for every record the ledger keeps:
properties, tenants and the append-only transaction log.

DESIGN DECISION: Transactions are a tagged union over TransactionType.
Each variant declares exactly the fields it uses, so a rent payment can
carry splits and a deduction while a rent-due accrual cannot.

All records are frozen. A tenant's balance only changes by building a new
Tenant through the balance engine.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Literal, Optional, Union
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    model_validator,
)


def new_id() -> str:
    """Generate a new record identifier."""
    return str(uuid4())


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class PropertyType(str, Enum):
    """Supported property categories."""
    APARTMENT = "Apartment"
    HOUSE = "House"
    COMMERCIAL = "Commercial"


class TransactionType(str, Enum):
    """
    Kinds of ledger event.

    Only RENT_DUE and RENT_PAYMENT move a tenant's balance.
    REPAIR and OWNER_PAYOUT are recorded for reporting only.
    """
    RENT_PAYMENT = "RENT_PAYMENT"
    RENT_DUE = "RENT_DUE"
    REPAIR = "REPAIR"
    OWNER_PAYOUT = "OWNER_PAYOUT"


# =============================================================================
# PROPERTY AND TENANT
# =============================================================================

class Property(BaseModel):
    """A rental property owned by the operator (or a client of theirs)."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=200)
    address: str = Field(..., min_length=1, max_length=500)
    type: PropertyType
    owner_name: str = Field(..., min_length=1, max_length=200)


class Tenant(BaseModel):
    """
    A tenant occupying a property.

    current_balance is a materialised view of the tenant's event fold:
    positive = arrears (tenant owes), negative = advance, zero = settled.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(default_factory=new_id)
    property_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    phone: str = Field(default="", max_length=50)
    monthly_rent: Decimal = Field(..., gt=0, decimal_places=2)
    lease_start: date
    current_balance: Decimal = Field(default=Decimal("0"), decimal_places=2)

    @property
    def in_arrears(self) -> bool:
        return self.current_balance > 0


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionSplit(BaseModel):
    """How part of a cash amount was distributed to one receiver."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    receiver_name: str = Field(..., min_length=1, max_length=200)
    amount: Decimal = Field(..., ge=0, decimal_places=2)


def _check_splits(splits: list[TransactionSplit], total_amount: Decimal) -> None:
    if not splits:
        return
    split_total = sum((split.amount for split in splits), Decimal("0"))
    if split_total != total_amount:
        raise ValueError(
            f"Split amounts total {split_total} but the payment is {total_amount}"
        )


class _TransactionBase(BaseModel):
    """Fields shared by every ledger event."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(default_factory=new_id)
    property_id: Optional[str] = None
    date: datetime
    total_amount: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Cash actually moved, exclusive of any deduction credit"
    )
    description: Optional[str] = Field(default=None, max_length=500)


class RentPaymentTransaction(_TransactionBase):
    """
    Rent received from a tenant.

    The tenant is credited with total_amount + deduction_amount.
    """
    type: Literal[TransactionType.RENT_PAYMENT] = TransactionType.RENT_PAYMENT
    tenant_id: Optional[str] = None
    splits: list[TransactionSplit] = Field(default_factory=list)
    deduction_amount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    deduction_reason: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode='after')
    def validate_splits(self) -> 'RentPaymentTransaction':
        """Splits must add up to the cash amount exactly."""
        _check_splits(self.splits, self.total_amount)
        return self

    @property
    def credit_amount(self) -> Decimal:
        return self.total_amount + self.deduction_amount


class RentDueTransaction(_TransactionBase):
    """Rent accrued against a tenant for one period."""
    type: Literal[TransactionType.RENT_DUE] = TransactionType.RENT_DUE
    tenant_id: str = Field(..., min_length=1)


class RepairTransaction(_TransactionBase):
    """Repair expense paid by the operator. Never touches balances."""
    type: Literal[TransactionType.REPAIR] = TransactionType.REPAIR
    tenant_id: Optional[str] = None


class OwnerPayoutTransaction(_TransactionBase):
    """Cash handed over to a property owner."""
    type: Literal[TransactionType.OWNER_PAYOUT] = TransactionType.OWNER_PAYOUT
    tenant_id: Optional[str] = None
    splits: list[TransactionSplit] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_splits(self) -> 'OwnerPayoutTransaction':
        _check_splits(self.splits, self.total_amount)
        return self


Transaction = Annotated[
    Union[
        RentPaymentTransaction,
        RentDueTransaction,
        RepairTransaction,
        OwnerPayoutTransaction,
    ],
    Field(discriminator="type"),
]

# Adapters used by the storage layer to parse whole collections
PropertyList = TypeAdapter(list[Property])
TenantList = TypeAdapter(list[Tenant])
TransactionList = TypeAdapter(list[Transaction])


def transaction_splits(transaction: Transaction) -> list[TransactionSplit]:
    """Return the splits carried by a transaction (empty for kinds without splits)."""
    return list(getattr(transaction, "splits", []) or [])
