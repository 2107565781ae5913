"""
Shared fixtures.

Test strategy:
1. Planners and metrics are pure - test them on hand-built snapshots
2. The engine runs against an in-memory gateway (no disk, no network)
3. Partial-write failures are injected with FailingGateway
"""

import json
from datetime import date
from typing import Any, Optional

import pytest
import pytest_asyncio

from shopledger.ledger import LedgerEngine
from shopledger.services.storage import CollectionKey, InMemoryGateway, PersistenceError


TODAY = date(2025, 3, 5)


class FailingGateway(InMemoryGateway):
    """
    In-memory gateway that can be told to fail.

    fail_on: writes to these collections raise PersistenceError
    refuse: writes to these collections return False
    """

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        super().__init__(initial)
        self.fail_keys: set[str] = set()
        self.refuse_keys: set[str] = set()
        self.fail_clear = False
        self.writes: list[str] = []

    def fail_on(self, *keys: CollectionKey) -> None:
        self.fail_keys.update(key.storage_key for key in keys)

    def refuse(self, *keys: CollectionKey) -> None:
        self.refuse_keys.update(key.storage_key for key in keys)

    def heal(self) -> None:
        self.fail_keys.clear()
        self.refuse_keys.clear()
        self.fail_clear = False

    async def set(self, key: str, value: Any) -> bool:
        if key in self.fail_keys:
            raise PersistenceError(f"Simulated write failure for {key}")
        if key in self.refuse_keys:
            return False
        self.writes.append(key)
        return await super().set(key, value)

    async def clear(self) -> bool:
        if self.fail_clear:
            raise PersistenceError("Simulated clear failure")
        return await super().clear()


def stored(gateway: InMemoryGateway, key: CollectionKey) -> Any:
    """Synchronously peek at what a gateway holds for a collection."""
    raw = gateway._data.get(key.storage_key)
    return None if raw is None else json.loads(raw)


@pytest.fixture
def gateway() -> FailingGateway:
    return FailingGateway()


@pytest_asyncio.fixture
async def engine(gateway: FailingGateway) -> LedgerEngine:
    """A loaded engine over an empty gateway, with a fixed 'today'."""
    ledger = LedgerEngine(gateway, clock=lambda: TODAY)
    await ledger.load()
    gateway.writes.clear()
    return ledger


@pytest_asyncio.fixture
async def product(engine: LedgerEngine, gateway: FailingGateway):
    item = await engine.add_product({"name": "Basmati Rice 5kg", "stock": 10, "unitPrice": 450})
    gateway.writes.clear()
    return item
