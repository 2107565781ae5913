"""
Application wiring.

The root scope builds ONE LedgerEngine and hands it to every collaborator
(screens, importers, sync). Nothing else constructs gateways or engines.
"""

from typing import Optional

from shopledger.audit import AuditLogger
from shopledger.config import get_settings
from shopledger.config.settings import Settings
from shopledger.ledger import LedgerEngine
from shopledger.services.storage import (
    GatewayAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsGateway,
    InMemoryGateway,
    JsonFileGateway,
    PersistenceGateway,
)


def create_gateway(settings: Optional[Settings] = None) -> PersistenceGateway:
    """Build the persistence gateway for the configured backend."""
    settings = settings or get_settings()
    storage = settings.storage

    if storage.backend == "memory":
        return InMemoryGateway()
    if storage.backend == "sheets":
        return GoogleSheetsGateway(GoogleSheetsClient(settings.google_sheets))
    return JsonFileGateway(storage.data_dir)


def create_app_components(
    settings: Optional[Settings] = None,
    gateway: Optional[PersistenceGateway] = None,
) -> tuple[LedgerEngine, PersistenceGateway, AuditLogger]:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use (defaults to the cached environment settings)
        gateway: Pre-built gateway, e.g. an InMemoryGateway for tests

    Returns:
        (engine, gateway, audit_logger) - the engine is NOT loaded yet
    """
    settings = settings or get_settings()
    gateway = gateway or create_gateway(settings)

    if settings.storage.audit_enabled:
        audit_storage = GatewayAuditStorage(
            gateway, max_events=settings.storage.max_audit_events
        )
        audit_logger = AuditLogger(audit_storage)
    else:
        audit_logger = AuditLogger()  # Local-only logging

    engine = LedgerEngine(gateway, audit_logger)
    return engine, gateway, audit_logger


async def open_ledger(
    settings: Optional[Settings] = None,
    gateway: Optional[PersistenceGateway] = None,
) -> LedgerEngine:
    """Create the engine and load every collection."""
    engine, _, _ = create_app_components(settings, gateway)
    await engine.load()
    return engine
