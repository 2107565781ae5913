"""
Gateway-backed audit storage.

Audit events live in their own key next to the ledger collections and are
not part of the backup document. The list is trimmed to the newest
max_events entries on every append.
"""

from uuid import UUID

from pydantic import ValidationError as SchemaError

from shopledger.models.audit import AuditEvent
from shopledger.services.storage.interface import (
    AUDIT_STORAGE_KEY,
    AuditStorageInterface,
    PersistenceGateway,
)


class GatewayAuditStorage(AuditStorageInterface):

    def __init__(
        self,
        gateway: PersistenceGateway,
        max_events: int = 1000,
        key: str = AUDIT_STORAGE_KEY,
    ):
        self._gateway = gateway
        self._max_events = max_events
        self._key = key

    async def _read_raw(self) -> list[dict]:
        stored = await self._gateway.get(self._key)
        return stored if isinstance(stored, list) else []

    async def append_event(self, event: AuditEvent) -> bool:
        events = await self._read_raw()
        events.append(event.to_storage_dict())
        if len(events) > self._max_events:
            events = events[-self._max_events:]
        return await self._gateway.set(self._key, events)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events: list[AuditEvent] = []
        for raw in reversed(await self._read_raw()):
            try:
                events.append(AuditEvent.model_validate(raw))
            except SchemaError:
                continue  # Skip malformed entries
            if len(events) >= limit:
                break
        return events

    async def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        """All events of one ledger operation, oldest first."""
        wanted = str(correlation_id)
        matches: list[AuditEvent] = []
        for raw in await self._read_raw():
            if raw.get("correlation_id") != wanted:
                continue
            try:
                matches.append(AuditEvent.model_validate(raw))
            except SchemaError:
                continue
        return matches
