"""
Ledger error taxonomy.

Validation, not-found, conflict and duplicate errors are raised while an
operation is being planned, before anything is written. Storage failures
surface as shopledger.services.storage.PersistenceError.
"""


class LedgerError(Exception):
    """Base exception for rejected ledger operations."""
    pass


class ValidationError(LedgerError):
    """Malformed or out-of-range input."""
    pass


class NotFoundError(LedgerError):
    """Mutation target id is absent."""

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type.capitalize()} not found: {entity_id}")


class ConflictError(LedgerError):
    """Delete blocked by a referencing entity."""
    pass


class DuplicateOperationError(LedgerError):
    """The operation was already applied (e.g. a second return for a sale)."""
    pass
