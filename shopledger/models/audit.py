"""
Audit Models for Shop Ledger

Every ledger mutation is logged for audit purposes.
This provides:
1. Traceability of which entities changed together
2. Debugging information when a write fails halfway
3. A record of automatic repairs made on load

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every ledger operation has its own event type.
    """
    # Sales
    SALE_RECORDED = "sale_recorded"
    SALE_UPDATED = "sale_updated"
    SALE_DELETED = "sale_deleted"

    # Expenses
    EXPENSE_ADDED = "expense_added"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"

    # Credits
    CREDIT_CREATED = "credit_created"
    CREDIT_UPDATED = "credit_updated"
    CREDIT_DELETED = "credit_deleted"
    CREDIT_PAYMENT_RECORDED = "credit_payment_recorded"
    CREDIT_FORCE_CLOSED = "credit_force_closed"

    # Returns
    RETURN_RECORDED = "return_recorded"
    RETURN_DELETED = "return_deleted"

    # Inventory
    PRODUCT_ADDED = "product_added"
    PRODUCT_UPDATED = "product_updated"
    PRODUCT_DELETED = "product_deleted"
    STOCK_ADJUSTED = "stock_adjusted"

    # Contacts
    CONTACT_ADDED = "contact_added"
    CONTACT_UPDATED = "contact_updated"
    CONTACT_DELETED = "contact_deleted"

    # Settings
    SETTINGS_UPDATED = "settings_updated"
    INVOICE_NUMBER_ASSIGNED = "invoice_number_assigned"

    # Lifecycle
    DATA_LOADED = "data_loaded"
    ORPHAN_REPAIRED = "orphan_repaired"
    DATA_CLEARED = "data_cleared"
    DATA_RESTORED = "data_restored"

    # Failures
    OPERATION_REJECTED = "operation_rejected"
    PERSISTENCE_FAILED = "persistence_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every ledger mutation creates one or more of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=_utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'sale', 'credit', 'product')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - every event produced by one operation shares this
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate events of one ledger operation"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_storage_dict(self) -> dict:
        """Convert to the JSON-compatible shape kept in the audit collection."""
        return self.model_dump(mode="json", exclude_none=True)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entity_changed(AuditEventType.SALE_UPDATED, "sale", sale_id, ...)
        event = AuditEventBuilder.credit_force_closed(credit_id, sale_id, discarded)
    """

    @staticmethod
    def entity_changed(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        description: str,
        details: Optional[dict] = None,
        is_user_action: bool = True,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            details=details or {},
            is_user_action=is_user_action,
        )

    @staticmethod
    def sale_recorded(
        sale_id: str,
        total: str,
        paid: str,
        payment_method: str,
        credit_id: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SALE_RECORDED,
            entity_type="sale",
            entity_id=sale_id,
            description=f"Sale recorded: total {total}, paid {paid} ({payment_method})",
            details={
                "total_amount": total,
                "paid_amount": paid,
                "payment_method": payment_method,
                "linked_credit_id": credit_id,
            },
            is_user_action=True,
        )

    @staticmethod
    def stock_adjusted(
        product_id: str,
        before: int,
        after: int,
        reason: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STOCK_ADJUSTED,
            entity_type="product",
            entity_id=product_id,
            description=f"Stock {before} -> {after} ({reason})",
            details={
                "before": before,
                "after": after,
                "reason": reason,
            },
        )

    @staticmethod
    def credit_force_closed(
        credit_id: str,
        sale_id: str,
        discarded: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CREDIT_FORCE_CLOSED,
            severity=AuditSeverity.WARNING,
            entity_type="credit",
            entity_id=credit_id,
            description=f"Credit closed by return of sale {sale_id}; {discarded} owed balance discarded",
            details={
                "sale_id": sale_id,
                "discarded_balance": discarded,
            },
        )

    @staticmethod
    def orphan_repaired(
        entity_type: str,
        entity_id: str,
        action: str,
        missing_reference: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ORPHAN_REPAIRED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            description=f"Dangling reference to {missing_reference}: {action}",
            details={
                "action": action,
                "missing_reference": missing_reference,
            },
        )

    @staticmethod
    def operation_rejected(
        operation: str,
        error_type: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.OPERATION_REJECTED,
            severity=AuditSeverity.WARNING,
            description=f"Operation rejected: {operation}",
            error_code=error_type,
            error_message=error_message,
            details={"operation": operation},
            is_user_action=True,
        )

    @staticmethod
    def persistence_failed(
        operation: str,
        collection: str,
        written: list[str],
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_FAILED,
            severity=AuditSeverity.ERROR,
            description=f"Write of '{collection}' failed during {operation}",
            error_message=error_message,
            details={
                "operation": operation,
                "collection": collection,
                "already_written": written,
            },
        )

    @staticmethod
    def lifecycle(
        event_type: AuditEventType,
        description: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            description=description,
            details=details or {},
        )
