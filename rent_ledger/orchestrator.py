"""
Rental Ledger Orchestrator

Ties the components together and exposes the operator commands the UI
layer calls:

    add_property, add_tenant, record_payment, generate_monthly_rent,
    mark_as_paid, record_repair, record_owner_payout,
    get_tenant_balance, get_stats, get_tenant_ledger, get_reports

Flow of every write:
1. Event factory validates input and builds event(s)   (may reject)
2. Balance engine computes the new tenant balances     (pure)
3. Store persists the changed collections              (may fail)
4. Only then is the in-memory state replaced

DESIGN DECISION: A RentalLedger is bound to exactly one scope. There is no
global store and no way to read another identity's data through it.
"""

from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Iterator, Optional

from pydantic import ValidationError

from rent_ledger.accounting import reporting
from rent_ledger.accounting.balance import (
    apply_event,
    apply_events,
    find_divergences,
    tenant_status,
)
from rent_ledger.accounting.factory import EventFactory
from rent_ledger.audit import AuditLogger, create_correlation_id
from rent_ledger.config import LedgerSettings, get_settings
from rent_ledger.errors import (
    BalanceDivergenceError,
    LedgerValidationError,
    NotFoundError,
)
from rent_ledger.models.identity import Identity
from rent_ledger.models.ledger import (
    OwnerPayoutTransaction,
    Property,
    RepairTransaction,
    Tenant,
    Transaction,
)
from rent_ledger.models.reports import (
    CollectionReport,
    DashboardStats,
    TenantLedger,
    ValidationIssue,
)
from rent_ledger.services.storage import (
    COLLECTIONS,
    PROPERTIES,
    TENANTS,
    TRANSACTIONS,
    LedgerStore,
    StorageError,
    StorageWarning,
    create_store,
)
from rent_ledger.session.scope import resolve_scope


class RentalLedger:
    """
    One identity's properties, tenants and transaction log.

    Collections are exposed read-only; every change goes through a command.
    """

    def __init__(
        self,
        scope_key: str,
        store: LedgerStore,
        settings: Optional[LedgerSettings] = None,
        factory: Optional[EventFactory] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._scope_key = scope_key
        self._store = store
        self._settings = settings or get_settings().ledger
        self._factory = factory or EventFactory(self._settings)
        self._audit = audit_logger or AuditLogger(scope_key)

        snapshot = store.load(scope_key)
        self._properties: list[Property] = list(snapshot.properties)
        self._tenants: list[Tenant] = list(snapshot.tenants)
        self._transactions: list[Transaction] = list(snapshot.transactions)
        self._warnings: list[StorageWarning] = list(snapshot.warnings)
        # A seeded scope is written out in full on its first change
        self._needs_full_save = snapshot.from_seed

        for warning in self._warnings:
            self._audit.log_storage_load_failed(warning.collection, warning.message)

    # -------------------------------------------------------------------------
    # Read-only state
    # -------------------------------------------------------------------------

    @property
    def scope_key(self) -> str:
        return self._scope_key

    @property
    def properties(self) -> tuple[Property, ...]:
        return tuple(self._properties)

    @property
    def tenants(self) -> tuple[Tenant, ...]:
        return tuple(self._tenants)

    @property
    def transactions(self) -> tuple[Transaction, ...]:
        """The event log in append order."""
        return tuple(self._transactions)

    @property
    def warnings(self) -> tuple[StorageWarning, ...]:
        """Storage problems recovered while loading."""
        return tuple(self._warnings)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @contextmanager
    def _command(self, name: str) -> Iterator[None]:
        """Audit validation failures of a command, then re-raise them."""
        try:
            yield
        except LedgerValidationError as e:
            self._audit.log_validation_failed(name, e.to_dicts())
            raise

    def _find_tenant(self, tenant_id: Optional[str]) -> Optional[Tenant]:
        return next((t for t in self._tenants if t.id == tenant_id), None)

    def _find_property(self, property_id: Optional[str]) -> Optional[Property]:
        return next((p for p in self._properties if p.id == property_id), None)

    def _require_tenant(self, tenant_id: str) -> Tenant:
        tenant = self._find_tenant(tenant_id)
        if tenant is None:
            raise NotFoundError("tenant_id", "Tenant", tenant_id)
        return tenant

    def _require_property(self, property_id: str) -> Property:
        prop = self._find_property(property_id)
        if prop is None:
            raise NotFoundError("property_id", "Property", property_id)
        return prop

    def _commit(self, **changes: list) -> None:
        """
        Persist changed collections, then swap them into memory.

        If any write fails, collections already written are put back to
        their previous contents and the error propagates; memory is left
        untouched.
        """
        current = {
            PROPERTIES: self._properties,
            TENANTS: self._tenants,
            TRANSACTIONS: self._transactions,
        }
        if self._needs_full_save:
            changes = {name: changes.get(name, current[name]) for name in COLLECTIONS}

        # Transactions are always written before tenants
        ordered = [name for name in (TRANSACTIONS, TENANTS, PROPERTIES) if name in changes]
        written = []
        try:
            for name in ordered:
                self._store.save(self._scope_key, name, changes[name])
                written.append(name)
        except StorageError as e:
            self._audit.log_storage_save_failed(name, str(e))
            for done in written:
                try:
                    self._store.save(self._scope_key, done, current[done])
                except StorageError as rollback_error:
                    self._audit.log_storage_save_failed(done, str(rollback_error))
            raise

        self._properties = list(changes.get(PROPERTIES, self._properties))
        self._tenants = list(changes.get(TENANTS, self._tenants))
        self._transactions = list(changes.get(TRANSACTIONS, self._transactions))
        self._needs_full_save = False

    # -------------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------------

    def add_property(
        self,
        name: str,
        address: str,
        property_type: Any,
        owner_name: str,
    ) -> Property:
        """Create a property."""
        with self._command("add_property"):
            try:
                prop = Property(
                    name=name,
                    address=address,
                    type=property_type,
                    owner_name=owner_name,
                )
            except ValidationError as e:
                raise LedgerValidationError.from_pydantic(e) from e

        self._commit(properties=self._properties + [prop])
        self._audit.log_property_added(prop.id, prop.name)
        return prop

    def add_tenant(
        self,
        property_id: str,
        name: str,
        monthly_rent: Any,
        lease_start: Any,
        phone: str = "",
    ) -> Tenant:
        """Create a tenant with a settled (zero) balance."""
        with self._command("add_tenant"):
            self._require_property(property_id)
            try:
                tenant = Tenant(
                    property_id=property_id,
                    name=name,
                    phone=phone,
                    monthly_rent=monthly_rent,
                    lease_start=lease_start,
                )
            except ValidationError as e:
                raise LedgerValidationError.from_pydantic(e) from e

        self._commit(tenants=self._tenants + [tenant])
        self._audit.log_tenant_added(tenant.id, tenant.name)
        return tenant

    def record_payment(
        self,
        tenant_id: Optional[str],
        date: Any,
        cash_amount: Any,
        deduction_amount: Any = None,
        deduction_reason: Optional[str] = None,
        splits: Optional[Iterable[Any]] = None,
        description: Optional[str] = None,
    ) -> Tenant:
        """
        Record rent received from a tenant.

        Returns:
            The tenant with its updated balance

        Raises:
            LedgerValidationError: Missing tenant, bad amounts or a split mismatch
        """
        with self._command("record_payment"):
            tenant = self._require_tenant(tenant_id) if tenant_id else None
            payment = self._factory.build_payment(
                tenant=tenant,
                payment_date=date,
                cash_amount=cash_amount,
                deduction_amount=deduction_amount,
                deduction_reason=deduction_reason,
                splits=splits,
                description=description,
            )

        updated = apply_event(tenant, payment)
        self._commit(
            transactions=self._transactions + [payment],
            tenants=[updated if t.id == updated.id else t for t in self._tenants],
        )
        self._audit.log_payment_recorded(
            transaction_id=payment.id,
            tenant_id=tenant.id,
            amount=str(payment.total_amount),
            deduction=str(payment.deduction_amount),
        )
        return updated

    def generate_monthly_rent(self, when: Optional[datetime] = None) -> list[Tenant]:
        """
        Post one RENT_DUE per tenant for its monthly rent.

        All-or-nothing: either every tenant is charged or none is.
        """
        events = self._factory.build_rent_roll(self._tenants, when)
        if not events:
            return []
        updated = apply_events(self._tenants, events)
        self._commit(
            transactions=self._transactions + events,
            tenants=updated,
        )
        total = sum((event.total_amount for event in events), Decimal("0"))
        self._audit.log_rent_roll_generated(
            tenant_count=len(events),
            total=str(total),
            correlation_id=create_correlation_id(),
        )
        return updated

    def mark_as_paid(
        self,
        tenant_ids: Iterable[str],
        when: Optional[datetime] = None,
    ) -> list[Tenant]:
        """
        Settle the arrears of every selected tenant in one batch.

        Tenants not in arrears are skipped. An unknown id rejects the
        whole batch.

        Returns:
            The selected tenants after settlement
        """
        with self._command("mark_as_paid"):
            selected = list(dict.fromkeys(tenant_ids))
            if not selected:
                raise LedgerValidationError([
                    ValidationIssue(
                        field="tenant_ids",
                        issue_type="missing",
                        message="Select at least one tenant",
                    )
                ])
            issues = []
            for tenant_id in selected:
                if self._find_tenant(tenant_id) is None:
                    issues.extend(NotFoundError("tenant_ids", "Tenant", tenant_id).issues)
            if issues:
                raise LedgerValidationError(issues)

        when = when or datetime.now()
        events = []
        skipped = []
        for tenant_id in selected:
            settlement = self._factory.build_settlement(self._find_tenant(tenant_id), when)
            if settlement is None:
                skipped.append(tenant_id)
            else:
                events.append(settlement)

        if events:
            self._commit(
                transactions=self._transactions + events,
                tenants=apply_events(self._tenants, events),
            )

        correlation_id = create_correlation_id()
        for event in events:
            self._audit.log_payment_recorded(
                transaction_id=event.id,
                tenant_id=event.tenant_id,
                amount=str(event.total_amount),
                deduction="0",
                correlation_id=correlation_id,
            )
        self._audit.log_bulk_payment(
            paid=[event.tenant_id for event in events],
            skipped=skipped,
            correlation_id=correlation_id,
        )
        return [self._find_tenant(tenant_id) for tenant_id in selected]

    def record_repair(
        self,
        property_id: Optional[str],
        date: Any,
        amount: Any,
        description: Optional[str] = None,
        tenant_id: Optional[str] = None,
    ) -> RepairTransaction:
        """Record a repair expense. Balances are not affected."""
        with self._command("record_repair"):
            prop = self._require_property(property_id) if property_id else None
            tenant = self._require_tenant(tenant_id) if tenant_id else None
            repair = self._factory.build_repair(prop, date, amount, description, tenant)

        self._commit(transactions=self._transactions + [repair])
        self._audit.log_expense_recorded(repair.id, repair.type.value, str(repair.total_amount))
        return repair

    def record_owner_payout(
        self,
        property_id: Optional[str],
        date: Any,
        amount: Any,
        splits: Optional[Iterable[Any]] = None,
        description: Optional[str] = None,
    ) -> OwnerPayoutTransaction:
        """Record cash handed to a property owner. Balances are not affected."""
        with self._command("record_owner_payout"):
            prop = self._require_property(property_id) if property_id else None
            payout = self._factory.build_owner_payout(prop, date, amount, splits, description)

        self._commit(transactions=self._transactions + [payout])
        self._audit.log_expense_recorded(payout.id, payout.type.value, str(payout.total_amount))
        return payout

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_tenant_balance(self, tenant_id: str) -> Decimal:
        """Current balance: positive = arrears, negative = advance."""
        return self._require_tenant(tenant_id).current_balance

    def get_tenant_status(self, tenant_id: str) -> str:
        """e.g. 'Due: ₹1,500', 'Advance: ₹200' or 'Paid'."""
        balance = self.get_tenant_balance(tenant_id)
        return tenant_status(balance, self._settings.currency_symbol)

    def get_stats(self, now: Optional[datetime] = None) -> DashboardStats:
        return reporting.dashboard_stats(
            self._properties,
            self._tenants,
            self._transactions,
            units_per_property=self._settings.units_per_property,
            now=now,
        )

    def get_tenant_ledger(self, tenant_id: str, now: Optional[datetime] = None) -> TenantLedger:
        return reporting.tenant_ledger(
            self._require_tenant(tenant_id),
            self._transactions,
            history_months=self._settings.ledger_history_months,
            now=now,
        )

    def get_reports(self) -> CollectionReport:
        return reporting.collection_report(self._transactions)

    def list_transactions(self) -> list[Transaction]:
        """All events, newest first."""
        return sorted(reversed(self._transactions), key=lambda t: t.date, reverse=True)

    def recent_transactions(self, limit: int = 5) -> list[Transaction]:
        return self.list_transactions()[:limit]

    def search_tenants(self, query: str) -> list[Tenant]:
        return reporting.search_tenants(self._tenants, query)

    def verify_balances(self) -> None:
        """
        Check every cached balance against a full replay of the event log.

        Raises:
            BalanceDivergenceError: If any tenant disagrees
        """
        mismatches = find_divergences(self._tenants, self._transactions)
        for tenant_id, (cached, replayed) in mismatches.items():
            self._audit.log_balance_divergence(tenant_id, str(cached), str(replayed))
        if mismatches:
            raise BalanceDivergenceError(mismatches)


def open_ledger(
    identity: Optional[Identity],
    store: Optional[LedgerStore] = None,
    settings: Optional[LedgerSettings] = None,
) -> RentalLedger:
    """
    Factory function: open the ledger owned by an identity.

    Raises:
        ScopeRequiredError: If identity is None
    """
    settings = settings or get_settings().ledger
    scope_key = resolve_scope(identity, settings.scope_key_prefix)
    store = store or create_store(settings)
    audit_logger = AuditLogger(scope_key)
    ledger = RentalLedger(scope_key, store, settings=settings, audit_logger=audit_logger)
    audit_logger.log_scope_opened(identity.id)
    return ledger
