"""
Audit Models for Rent Ledger

Every operator command and every storage recovery produces an audit event.
This provides:
1. Traceability of how each balance came to be
2. Debugging information when a snapshot had to be recovered
3. A record of rejected input

DESIGN DECISION: Audit events are append-only, like the ledger itself.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Session
    SCOPE_OPENED = "scope_opened"

    # Master data
    PROPERTY_ADDED = "property_added"
    TENANT_ADDED = "tenant_added"

    # Ledger
    PAYMENT_RECORDED = "payment_recorded"
    RENT_ROLL_GENERATED = "rent_roll_generated"
    BULK_PAYMENT_RECORDED = "bulk_payment_recorded"
    EXPENSE_RECORDED = "expense_recorded"

    # Problems
    VALIDATION_FAILED = "validation_failed"
    STORAGE_LOAD_FAILED = "storage_load_failed"
    STORAGE_SAVE_FAILED = "storage_save_failed"
    BALANCE_DIVERGENCE = "balance_divergence"


class AuditSeverity(str, Enum):
    """How urgently an audit event needs attention."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    One entry in a scope's audit trail.
    """

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred (operator local time)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Which ledger namespace this happened in
    scope_key: Optional[str] = None

    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'tenant', 'transaction', 'snapshot')"
    )
    entity_id: Optional[str] = None

    # Links the events produced by one batch command
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """
        Flatten to plain values for the structlog JSON renderer.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "scope_key": self.scope_key,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Static constructors, one per ledger audit event.

    Usage:
        event = AuditEventBuilder.tenant_added(scope_key, tenant_id, name)
        event = AuditEventBuilder.rent_roll_generated(scope_key, 3, "5200.00", cid)
    """

    @staticmethod
    def scope_opened(scope_key: str, identity_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SCOPE_OPENED,
            scope_key=scope_key,
            entity_type="identity",
            entity_id=identity_id,
            description="Ledger opened for identity",
        )

    @staticmethod
    def property_added(scope_key: str, property_id: str, name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PROPERTY_ADDED,
            scope_key=scope_key,
            entity_type="property",
            entity_id=property_id,
            description=f"Property added: {name}",
            is_user_action=True,
        )

    @staticmethod
    def tenant_added(scope_key: str, tenant_id: str, name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TENANT_ADDED,
            scope_key=scope_key,
            entity_type="tenant",
            entity_id=tenant_id,
            description=f"Tenant added: {name}",
            is_user_action=True,
        )

    @staticmethod
    def payment_recorded(
        scope_key: str,
        transaction_id: str,
        tenant_id: Optional[str],
        amount: str,
        deduction: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYMENT_RECORDED,
            scope_key=scope_key,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Rent payment recorded: {amount}",
            details={
                "tenant_id": tenant_id,
                "amount": amount,
                "deduction_amount": deduction,
            },
            is_user_action=True,
        )

    @staticmethod
    def rent_roll_generated(
        scope_key: str,
        tenant_count: int,
        total: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RENT_ROLL_GENERATED,
            scope_key=scope_key,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Monthly rent posted for {tenant_count} tenants",
            details={
                "tenant_count": tenant_count,
                "total_due": total,
            },
            is_user_action=True,
        )

    @staticmethod
    def bulk_payment_recorded(
        scope_key: str,
        paid: list[str],
        skipped: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BULK_PAYMENT_RECORDED,
            scope_key=scope_key,
            entity_type="ledger",
            correlation_id=correlation_id,
            description=f"Marked {len(paid)} tenants as paid",
            details={
                "paid_tenant_ids": paid,
                "skipped_tenant_ids": skipped,
            },
            is_user_action=True,
        )

    @staticmethod
    def expense_recorded(
        scope_key: str,
        transaction_id: str,
        kind: str,
        amount: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSE_RECORDED,
            scope_key=scope_key,
            entity_type="transaction",
            entity_id=transaction_id,
            description=f"{kind} recorded: {amount}",
            details={"kind": kind, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        scope_key: str,
        command: str,
        issues: list[dict],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            scope_key=scope_key,
            description=f"{command} rejected with {len(issues)} issues",
            details={
                "command": command,
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def storage_load_failed(
        scope_key: str,
        collection: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_LOAD_FAILED,
            severity=AuditSeverity.WARNING,
            scope_key=scope_key,
            entity_type="snapshot",
            entity_id=collection,
            description=f"Stored {collection} unreadable, seed data loaded instead",
            error_message=error_message,
        )

    @staticmethod
    def storage_save_failed(
        scope_key: str,
        collection: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            scope_key=scope_key,
            entity_type="snapshot",
            entity_id=collection,
            description=f"Failed to save {collection}",
            error_message=error_message,
        )

    @staticmethod
    def balance_divergence(
        scope_key: str,
        tenant_id: str,
        cached: str,
        replayed: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCE_DIVERGENCE,
            severity=AuditSeverity.CRITICAL,
            scope_key=scope_key,
            entity_type="tenant",
            entity_id=tenant_id,
            description="Cached balance does not match the event log",
            details={
                "cached_balance": cached,
                "replayed_balance": replayed,
            },
        )
