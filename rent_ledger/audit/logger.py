"""
Audit Logger

DESIGN DECISION: Every operator command and every storage recovery is
logged. This provides:
1. Traceability of how each balance came to be
2. Debugging capability when a snapshot had to be replaced by the seed
3. A record of rejected input

The audit logger:
- Is synchronous, like every ledger operation
- Never raises (a logging failure must not break a command)
- Supports correlation IDs to trace the events of one batch command
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from rent_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# JSON lines with ISO timestamps, routed through stdlib logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Audit trail writer for one ledger scope.

    Writes every event to the structured log. Optionally keeps the most
    recent events in memory so the UI can show an activity feed.
    """

    def __init__(self, scope_key: Optional[str] = None, history_size: int = 0):
        """
        Initialize audit logger.

        Args:
            scope_key: Ledger namespace bound to every log line
            history_size: How many recent events to keep (0 = none)
        """
        self._scope_key = scope_key
        self._history_size = history_size
        self._history: list[AuditEvent] = []
        self._logger = structlog.get_logger("rent_ledger.audit")

    def log(self, event: AuditEvent) -> None:
        """Log an audit event at the level matching its severity."""
        try:
            log_dict = event.to_log_dict()
            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            # Audit failures are logged, never raised
            self._logger.error(
                "audit_log_failed",
                error=str(e),
                event_id=str(event.event_id),
            )

        if self._history_size:
            self._history.append(event)
            del self._history[:-self._history_size]

    def recent_events(self) -> list[AuditEvent]:
        """Recent events, newest first."""
        return list(reversed(self._history))

    def log_scope_opened(self, identity_id: str) -> None:
        self.log(AuditEventBuilder.scope_opened(self._scope_key, identity_id))

    def log_property_added(self, property_id: str, name: str) -> None:
        self.log(AuditEventBuilder.property_added(self._scope_key, property_id, name))

    def log_tenant_added(self, tenant_id: str, name: str) -> None:
        self.log(AuditEventBuilder.tenant_added(self._scope_key, tenant_id, name))

    def log_payment_recorded(
        self,
        transaction_id: str,
        tenant_id: Optional[str],
        amount: str,
        deduction: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a single rent payment."""
        self.log(AuditEventBuilder.payment_recorded(
            scope_key=self._scope_key,
            transaction_id=transaction_id,
            tenant_id=tenant_id,
            amount=amount,
            deduction=deduction,
            correlation_id=correlation_id,
        ))

    def log_rent_roll_generated(
        self,
        tenant_count: int,
        total: str,
        correlation_id: UUID,
    ) -> None:
        """Log a monthly rent roll."""
        self.log(AuditEventBuilder.rent_roll_generated(
            scope_key=self._scope_key,
            tenant_count=tenant_count,
            total=total,
            correlation_id=correlation_id,
        ))

    def log_bulk_payment(
        self,
        paid: list[str],
        skipped: list[str],
        correlation_id: UUID,
    ) -> None:
        self.log(AuditEventBuilder.bulk_payment_recorded(
            scope_key=self._scope_key,
            paid=paid,
            skipped=skipped,
            correlation_id=correlation_id,
        ))

    def log_expense_recorded(self, transaction_id: str, kind: str, amount: str) -> None:
        self.log(AuditEventBuilder.expense_recorded(
            self._scope_key, transaction_id, kind, amount,
        ))

    def log_validation_failed(self, command: str, issues: list[dict]) -> None:
        """Log rejected operator input."""
        self.log(AuditEventBuilder.validation_failed(self._scope_key, command, issues))

    def log_storage_load_failed(self, collection: str, error_message: str) -> None:
        self.log(AuditEventBuilder.storage_load_failed(
            self._scope_key, collection, error_message,
        ))

    def log_storage_save_failed(self, collection: str, error_message: str) -> None:
        self.log(AuditEventBuilder.storage_save_failed(
            self._scope_key, collection, error_message,
        ))

    def log_balance_divergence(self, tenant_id: str, cached: str, replayed: str) -> None:
        self.log(AuditEventBuilder.balance_divergence(
            self._scope_key, tenant_id, cached, replayed,
        ))


def create_correlation_id() -> UUID:
    """
    New id linking the events of one batch command.

    Use this at the start of a batch command (rent roll, bulk payment).
    """
    return uuid4()
