"""
Backup files.

A backup is one JSON document:
{sales, expenses, credits, settings, contacts, products, returns, exportedAt}

The same document is what a sync collaborator uploads (one object per
account, last writer wins), so its shape must stay stable.
"""

from pathlib import Path
from typing import Union

from pydantic import ValidationError as SchemaError

from shopledger.ledger.errors import ValidationError
from shopledger.models.ledger import BackupDocument
from shopledger.services.storage import PersistenceError


def dump_backup(document: BackupDocument) -> str:
    return document.model_dump_json(by_alias=True, exclude_none=True, indent=2)


def load_backup(text: Union[str, bytes]) -> BackupDocument:
    """
    Parse backup JSON.

    Raises:
        ValidationError: Not JSON, or not shaped like a backup
    """
    try:
        return BackupDocument.model_validate_json(text)
    except SchemaError as e:
        raise ValidationError(f"Invalid backup file: {e.error_count()} problem(s), "
                              f"first: {e.errors()[0]['msg']}") from e


def write_backup_file(document: BackupDocument, path: Union[str, Path]) -> Path:
    path = Path(path)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dump_backup(document), encoding="utf-8")
    except OSError as e:
        raise PersistenceError(f"Failed to write backup to {path}: {e}") from e
    return path


def read_backup_file(path: Union[str, Path]) -> BackupDocument:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise PersistenceError(f"Failed to read backup from {path}: {e}") from e
    return load_backup(text)
