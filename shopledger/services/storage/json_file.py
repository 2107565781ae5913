"""
Local JSON File Storage Implementation

DESIGN DECISION: Local files are the default backend because:
1. The ledger is single-user and local-first
2. No database setup required
3. Each file is a human-readable JSON array

Each storage key maps to one file in the data directory. Writes go to a
temporary file first and are moved into place with os.replace, so a
single collection is never half-written. Nothing spans several files.
"""

from __future__ import annotations

import json
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Optional

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from shopledger.services.storage.interface import (
    AUDIT_STORAGE_KEY,
    CollectionKey,
    PersistenceError,
    PersistenceGateway,
)


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class JsonFileGateway(PersistenceGateway):
    """
    One JSON file per key under data_dir.

    Transient OS errors (locked files, full buffers) are retried before
    surfacing as PersistenceError.
    """

    def __init__(self, data_dir: Path):
        self._data_dir = Path(data_dir)
        self._written: set[str] = set()

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def _path_for(self, key: str) -> Path:
        name = _UNSAFE_CHARS.sub("_", key.lstrip("@"))
        return self._data_dir / f"{name}.json"

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        retry=retry_if_exception_type(OSError),
        reraise=True,
    )
    def _read_text(self, path: Path) -> Optional[str]:
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        retry=retry_if_exception_type(OSError),
        reraise=True,
    )
    def _write_text(self, path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(text)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    async def get(self, key: str) -> Optional[Any]:
        path = self._path_for(key)
        try:
            text = self._read_text(path)
        except OSError as e:
            raise PersistenceError(f"Failed to read {key}: {e}")
        if text is None:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Stored value for {key} is not valid JSON: {e}")

    async def set(self, key: str, value: Any) -> bool:
        try:
            text = json.dumps(value, ensure_ascii=False, indent=2)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Value for {key} is not serializable: {e}")
        try:
            self._write_text(self._path_for(key), text)
        except OSError as e:
            raise PersistenceError(f"Failed to write {key}: {e}")
        self._written.add(key)
        return True

    def _owned_keys(self) -> set[str]:
        keys = {key.storage_key for key in CollectionKey}
        keys.add(AUDIT_STORAGE_KEY)
        return keys | self._written

    async def clear(self) -> bool:
        """Delete the files of the ledger keys only; other files in data_dir are left alone."""
        if not self._data_dir.exists():
            return True
        try:
            for key in self._owned_keys():
                self._path_for(key).unlink(missing_ok=True)
        except OSError as e:
            raise PersistenceError(f"Failed to clear {self._data_dir}: {e}")
        return True
