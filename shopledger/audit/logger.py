"""
Audit Logger

DESIGN DECISION: Every ledger mutation is logged.
This provides:
1. Traceability of which entities changed together
2. Debugging capability when a multi-collection write fails halfway
3. A visible record of automatic repairs made on load

The audit logger:
- Is async so it can share the persistence gateway
- Gracefully handles failures (a failed audit write never fails a sale)
- Supports correlation IDs to group the events of one operation
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from shopledger.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from shopledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
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
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit collection (when audit storage is configured)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("shopledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_all(
        self,
        events: list[AuditEvent],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log the events produced by one ledger operation."""
        for event in events:
            if correlation_id is not None:
                event = event.model_copy(update={"correlation_id": correlation_id})
            await self.log(event)

    async def log_operation_rejected(
        self,
        operation: str,
        error: Exception,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a validation/conflict/not-found rejection."""
        event = AuditEventBuilder.operation_rejected(
            operation=operation,
            error_type=type(error).__name__,
            error_message=str(error),
        )
        await self.log_all([event], correlation_id)

    async def log_persistence_failed(
        self,
        operation: str,
        collection: str,
        written: list[str],
        error: Exception,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a failed collection write, naming what was already written."""
        event = AuditEventBuilder.persistence_failed(
            operation=operation,
            collection=collection,
            written=written,
            error_message=str(error),
        )
        await self.log_all([event], correlation_id)

    async def log_lifecycle(
        self,
        event_type: AuditEventType,
        description: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log load/clear/restore events."""
        event = AuditEventBuilder.lifecycle(
            event_type=event_type,
            description=description,
            details=details,
        )
        await self.log_all([event], correlation_id)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of each ledger operation.
    """
    return uuid4()
