"""
Event Factory

Builds well-formed ledger events from raw operator input.

DESIGN DECISION: Input is checked in two stages, like every other
validation in this codebase:

STAGE 1 - SCHEMA:
- Required selections present (tenant, property)
- Money fields numeric, finite, non-negative, at most 2 decimal places
- Dates parseable

STAGE 2 - SEMANTIC (only if stage 1 passed):
- Splits add up to the cash amount EXACTLY
- A payment must credit something
- Amounts below the configured sanity ceiling

IMPORTANT: The factory NEVER silently fixes input. A split total of 800
against a 900 payment is rejected, not rebalanced.
"""

from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from rent_ledger.config import LedgerSettings, get_settings
from rent_ledger.errors import LedgerValidationError
from rent_ledger.models.ledger import (
    OwnerPayoutTransaction,
    Property,
    RentDueTransaction,
    RentPaymentTransaction,
    RepairTransaction,
    Tenant,
    TransactionSplit,
)
from rent_ledger.models.reports import ValidationIssue


def _error(field: str, issue_type: str, message: str, fix: Optional[str] = None) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type=issue_type,
        message=message,
        severity="error",
        suggested_fix=fix,
    )


def _within_cents(amount: Decimal) -> bool:
    """True when every digit past the second decimal place is zero."""
    _, digits, exponent = amount.as_tuple()
    extra = -exponent - 2
    return extra <= 0 or not any(digits[-extra:])


def _raise_if_errors(issues: list[ValidationIssue]) -> None:
    if any(issue.severity == "error" for issue in issues):
        raise LedgerValidationError(issues)


class EventFactory:
    """
    Turns operator input into transactions ready for admission.

    Every build_* method either returns valid transaction(s) or raises
    LedgerValidationError listing every problem found.
    """

    def __init__(self, settings: Optional[LedgerSettings] = None):
        self._settings = settings or get_settings().ledger

    # -------------------------------------------------------------------------
    # Stage 1 helpers
    # -------------------------------------------------------------------------

    def _parse_amount(
        self,
        value: Any,
        field: str,
        issues: list[ValidationIssue],
        required: bool = True,
    ) -> Optional[Decimal]:
        """Coerce a money field, recording an issue instead of raising."""
        if value is None or value == "":
            if required:
                issues.append(_error(field, "missing", f"{field} is required"))
            return None
        if isinstance(value, bool):
            issues.append(_error(field, "not_numeric", f"{field} must be a number"))
            return None
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            issues.append(_error(
                field, "not_numeric", f"{field} must be a number (got {value!r})",
                "Enter digits only, e.g. 1200 or 1200.50",
            ))
            return None
        if not amount.is_finite():
            issues.append(_error(field, "not_numeric", f"{field} must be a finite number"))
            return None
        if amount < 0:
            issues.append(_error(
                field, "negative", f"{field} cannot be negative ({amount})",
            ))
            return None
        if not _within_cents(amount):
            issues.append(_error(
                field, "invalid_format", f"{field} has more than 2 decimal places ({amount})",
            ))
            return None
        return amount

    def _parse_date(
        self,
        value: Any,
        field: str,
        issues: list[ValidationIssue],
    ) -> Optional[datetime]:
        if value is None or value == "":
            return datetime.now()
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime.combine(value, time())
        try:
            return datetime.fromisoformat(str(value))
        except ValueError:
            issues.append(_error(
                field, "invalid_format", f"{field} is not a valid date ({value!r})",
                "Use YYYY-MM-DD",
            ))
            return None

    def _parse_splits(
        self,
        splits: Iterable[Any],
        issues: list[ValidationIssue],
    ) -> list[TransactionSplit]:
        """Accept TransactionSplit objects, dicts or (receiver, amount) pairs."""
        parsed = []
        for index, raw in enumerate(splits):
            field = f"splits[{index}]"
            if isinstance(raw, TransactionSplit):
                parsed.append(raw)
                continue
            if isinstance(raw, dict):
                receiver = raw.get("receiver_name")
                raw_amount = raw.get("amount")
            else:
                try:
                    receiver, raw_amount = raw
                except (TypeError, ValueError):
                    issues.append(_error(field, "invalid_format", f"{field} is not a receiver/amount pair"))
                    continue
            if receiver is not None and not isinstance(receiver, str):
                issues.append(_error(
                    f"{field}.receiver_name", "invalid_format",
                    f"{field} receiver name must be text (got {receiver!r})",
                ))
                continue
            receiver = (receiver or "").strip()
            if not receiver:
                issues.append(_error(
                    f"{field}.receiver_name", "missing", f"{field} needs a receiver name",
                ))
                continue
            amount = self._parse_amount(raw_amount, f"{field}.amount", issues)
            if amount is None:
                continue
            try:
                parsed.append(TransactionSplit(receiver_name=receiver, amount=amount))
            except ValidationError as e:
                for issue in LedgerValidationError.from_pydantic(e).issues:
                    issues.append(issue.model_copy(update={"field": f"{field}.{issue.field}"}))
        return parsed

    def _check_ceiling(
        self,
        amount: Optional[Decimal],
        field: str,
        issues: list[ValidationIssue],
    ) -> None:
        if amount is not None and amount > self._settings.max_amount:
            issues.append(_error(
                field,
                "suspicious_value",
                f"{field} ({amount}) exceeds the maximum of {self._settings.max_amount}",
                "Please verify this amount is correct",
            ))

    @staticmethod
    def _check_split_sum(
        splits: list[TransactionSplit],
        cash: Decimal,
        issues: list[ValidationIssue],
    ) -> None:
        split_total = sum((split.amount for split in splits), Decimal("0"))
        if split_total != cash:
            issues.append(_error(
                "splits",
                "split_mismatch",
                f"Split amounts total {split_total} but the cash amount is {cash}",
                f"Adjust the splits by {cash - split_total} so they match",
            ))

    # -------------------------------------------------------------------------
    # Builders
    # -------------------------------------------------------------------------

    def build_payment(
        self,
        tenant: Optional[Tenant],
        payment_date: Any,
        cash_amount: Any,
        deduction_amount: Any = None,
        deduction_reason: Optional[str] = None,
        splits: Optional[Iterable[Any]] = None,
        description: Optional[str] = None,
    ) -> RentPaymentTransaction:
        """
        Build a RENT_PAYMENT event.

        With no splits, one implicit split sends the whole cash amount to
        the default receiver so receiver totals always add up.
        """
        issues: list[ValidationIssue] = []
        splits = list(splits or [])

        # Stage 1: schema
        if tenant is None:
            issues.append(_error(
                "tenant_id", "missing", "A tenant must be selected",
                "Choose the tenant who paid",
            ))
        when = self._parse_date(payment_date, "date", issues)
        cash = self._parse_amount(cash_amount, "cash_amount", issues)
        deduction = self._parse_amount(
            deduction_amount, "deduction_amount", issues, required=False,
        ) or Decimal("0")
        parsed_splits = self._parse_splits(splits, issues)
        _raise_if_errors(issues)

        # Stage 2: semantic
        if splits:
            self._check_split_sum(parsed_splits, cash, issues)
        else:
            parsed_splits = [
                TransactionSplit(receiver_name=self._settings.default_receiver, amount=cash)
            ]
        if cash == 0 and deduction == 0:
            issues.append(_error(
                "cash_amount", "invalid_value",
                "Payment must include a cash amount or a deduction",
            ))
        self._check_ceiling(cash, "cash_amount", issues)
        self._check_ceiling(deduction, "deduction_amount", issues)
        _raise_if_errors(issues)

        try:
            return RentPaymentTransaction(
                tenant_id=tenant.id,
                property_id=tenant.property_id,
                date=when,
                total_amount=cash,
                splits=parsed_splits,
                deduction_amount=deduction,
                deduction_reason=deduction_reason if deduction > 0 else None,
                description=description,
            )
        except ValidationError as e:
            raise LedgerValidationError.from_pydantic(e) from e

    def build_rent_roll(
        self,
        tenants: list[Tenant],
        when: Optional[datetime] = None,
    ) -> list[RentDueTransaction]:
        """One RENT_DUE event per tenant for its monthly rent, all dated the same instant."""
        when = when or datetime.now()
        return [
            RentDueTransaction(
                tenant_id=tenant.id,
                property_id=tenant.property_id,
                date=when,
                total_amount=tenant.monthly_rent,
                description=self._settings.rent_due_description,
            )
            for tenant in tenants
        ]

    def build_settlement(
        self,
        tenant: Tenant,
        when: Optional[datetime] = None,
    ) -> Optional[RentPaymentTransaction]:
        """
        Payment clearing a tenant's arrears in full.

        Returns None when the tenant owes nothing.
        """
        if not tenant.in_arrears:
            return None
        amount = tenant.current_balance
        return RentPaymentTransaction(
            tenant_id=tenant.id,
            property_id=tenant.property_id,
            date=when or datetime.now(),
            total_amount=amount,
            splits=[TransactionSplit(receiver_name=self._settings.default_receiver, amount=amount)],
            description="Marked as paid",
        )

    def build_repair(
        self,
        prop: Optional[Property],
        repair_date: Any,
        amount: Any,
        description: Optional[str] = None,
        tenant: Optional[Tenant] = None,
    ) -> RepairTransaction:
        """Build a REPAIR expense. Recorded for reporting, never credited to a tenant."""
        issues: list[ValidationIssue] = []
        if prop is None:
            issues.append(_error("property_id", "missing", "A property must be selected"))
        when = self._parse_date(repair_date, "date", issues)
        cash = self._parse_amount(amount, "amount", issues)
        self._check_ceiling(cash, "amount", issues)
        _raise_if_errors(issues)

        try:
            return RepairTransaction(
                property_id=prop.id,
                tenant_id=tenant.id if tenant else None,
                date=when,
                total_amount=cash,
                description=description,
            )
        except ValidationError as e:
            raise LedgerValidationError.from_pydantic(e) from e

    def build_owner_payout(
        self,
        prop: Optional[Property],
        payout_date: Any,
        amount: Any,
        splits: Optional[Iterable[Any]] = None,
        description: Optional[str] = None,
    ) -> OwnerPayoutTransaction:
        """Build an OWNER_PAYOUT. Splits, when given, must add up exactly."""
        issues: list[ValidationIssue] = []
        splits = list(splits or [])
        if prop is None:
            issues.append(_error("property_id", "missing", "A property must be selected"))
        when = self._parse_date(payout_date, "date", issues)
        cash = self._parse_amount(amount, "amount", issues)
        parsed_splits = self._parse_splits(splits, issues)
        _raise_if_errors(issues)

        if splits:
            self._check_split_sum(parsed_splits, cash, issues)
        self._check_ceiling(cash, "amount", issues)
        _raise_if_errors(issues)

        try:
            return OwnerPayoutTransaction(
                property_id=prop.id,
                date=when,
                total_amount=cash,
                splits=parsed_splits,
                description=description or f"Payout to {prop.owner_name}",
            )
        except ValidationError as e:
            raise LedgerValidationError.from_pydantic(e) from e
