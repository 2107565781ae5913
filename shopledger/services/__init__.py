"""Services package."""

from shopledger.services.storage import (
    AuditStorageInterface,
    CollectionKey,
    ConnectionError,
    GatewayAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsGateway,
    InMemoryGateway,
    JsonFileGateway,
    PersistenceError,
    PersistenceGateway,
)

__all__ = [
    "AuditStorageInterface",
    "CollectionKey",
    "ConnectionError",
    "GatewayAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsGateway",
    "InMemoryGateway",
    "JsonFileGateway",
    "PersistenceError",
    "PersistenceGateway",
]
