"""
Storage Services Package

Provides the persistence gateway interface and its implementations:
in-memory (tests), local JSON files (default) and Google Sheets.
"""

from shopledger.services.storage.interface import (
    AUDIT_STORAGE_KEY,
    IMPORT_ORDER,
    AuditStorageInterface,
    CollectionKey,
    ConnectionError,
    PersistenceError,
    PersistenceGateway,
)
from shopledger.services.storage.memory import InMemoryGateway
from shopledger.services.storage.json_file import JsonFileGateway
from shopledger.services.storage.audit_log import GatewayAuditStorage
from shopledger.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsGateway,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "PersistenceGateway",
    "CollectionKey",
    "AUDIT_STORAGE_KEY",
    "IMPORT_ORDER",
    # Exceptions
    "ConnectionError",
    "PersistenceError",
    # Implementations
    "GatewayAuditStorage",
    "InMemoryGateway",
    "JsonFileGateway",
    # Google Sheets implementation
    "GoogleSheetsClient",
    "GoogleSheetsGateway",
]
