"""
Abstract Persistence Gateway

DESIGN DECISION: The ledger persists whole collections, not rows.
Each collection is one serialized array under one storage key.
This allows us to:
1. Swap local files for Google Sheets (or anything key/value) freely
2. Use in-memory storage for testing
3. Keep the ledger engine decoupled from storage implementation

The interface is intentionally tiny - get and set a key, clear everything.
Bulk export/import are built on top of those three primitives.

There is NO atomic multi-key write. Callers that touch several
collections must order their writes (see shopledger.ledger.transactions).
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional

from shopledger.models.audit import AuditEvent
from shopledger.models.ledger import UserSettings


class CollectionKey(str, Enum):
    """One storage key per ledger collection."""
    SALES = "sales"
    EXPENSES = "expenses"
    CREDITS = "credits"
    SETTINGS = "settings"
    CONTACTS = "contacts"
    PRODUCTS = "products"
    RETURNS = "returns"

    @property
    def storage_key(self) -> str:
        return f"@shopledger_{self.value}"


AUDIT_STORAGE_KEY = "@shopledger_audit"

# Referenced collections are written before the ones referencing them.
IMPORT_ORDER = (
    CollectionKey.SETTINGS,
    CollectionKey.PRODUCTS,
    CollectionKey.CONTACTS,
    CollectionKey.EXPENSES,
    CollectionKey.CREDITS,
    CollectionKey.SALES,
    CollectionKey.RETURNS,
)


class PersistenceError(Exception):
    """Underlying storage read/write failure."""
    pass


class ConnectionError(PersistenceError):
    """Could not connect to storage backend."""
    pass


class PersistenceGateway(ABC):
    """
    Whole-collection key/value storage.

    Any storage implementation (local files, Google Sheets, memory)
    must implement get, set and clear.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """
        Read the value stored under a key.

        Returns:
            The decoded JSON value, or None if the key was never written

        Raises:
            PersistenceError: If the read fails or stored data is unreadable
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: Any) -> bool:
        """
        Replace the value stored under a key.

        Args:
            key: Storage key
            value: JSON-compatible value (a list for collections)

        Returns:
            True if written successfully

        Raises:
            PersistenceError: If the write fails
        """
        pass

    @abstractmethod
    async def clear(self) -> bool:
        """
        Remove every key this gateway owns.

        Raises:
            PersistenceError: If clearing fails
        """
        pass

    async def clear_all_data(self) -> bool:
        return await self.clear()

    async def export_all_data(self) -> dict[str, Any]:
        """
        Read every collection into the backup shape:
        {sales, expenses, credits, settings, contacts, products, returns, exportedAt}
        """
        data: dict[str, Any] = {}
        for key in CollectionKey:
            value = await self.get(key.storage_key)
            if key is CollectionKey.SETTINGS:
                data[key.value] = value
            else:
                data[key.value] = value if isinstance(value, list) else []
        data["exportedAt"] = datetime.now(timezone.utc).isoformat()
        return data

    async def import_all_data(self, data: Mapping[str, Any]) -> bool:
        """
        Write every collection verbatim, defaulting omitted ones.

        Omitted collections become empty arrays and omitted settings
        become the default settings. No cross-entity validation happens here.

        Raises:
            PersistenceError: If a write fails or is not acknowledged
        """
        for key in IMPORT_ORDER:
            value = data.get(key.value)
            if key is CollectionKey.SETTINGS:
                if not isinstance(value, Mapping):
                    value = UserSettings().to_wire()
            elif not isinstance(value, list):
                value = []
            if not await self.set(key.storage_key, value):
                raise PersistenceError(f"Write of {key.value} was not acknowledged")
        return True


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never modify individual events.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass
