"""
In-Memory Persistence Gateway

Stores each key as a serialized JSON string, exactly like a device
key/value store would, so callers can never share mutable state with it.
Used for tests and for throwaway sessions.
"""

import json
from typing import Any, Optional

from shopledger.services.storage.interface import PersistenceError, PersistenceGateway


class InMemoryGateway(PersistenceGateway):

    def __init__(self, initial: Optional[dict[str, Any]] = None):
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self._data[key] = json.dumps(value)

    async def get(self, key: str) -> Optional[Any]:
        raw = self._data.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Stored value for {key} is not valid JSON: {e}")

    async def set(self, key: str, value: Any) -> bool:
        try:
            self._data[key] = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Value for {key} is not serializable: {e}")
        return True

    async def clear(self) -> bool:
        self._data.clear()
        return True

    def keys(self) -> list[str]:
        return sorted(self._data)
