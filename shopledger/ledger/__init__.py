"""
Ledger Engine package.

Mutations are planned by pure functions (transactions), committed by the
LedgerEngine store object, and folded into balances by metrics.
"""

from shopledger.ledger.errors import (
    ConflictError,
    DuplicateOperationError,
    LedgerError,
    NotFoundError,
    ValidationError,
)
from shopledger.ledger.transactions import CREATE_ORDER, DELETE_ORDER, ChangeSet
from shopledger.ledger.reconcile import ReconciliationReport, reconcile
from shopledger.ledger.engine import LedgerEngine

__all__ = [
    # Errors
    "LedgerError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "DuplicateOperationError",
    # Transactions
    "ChangeSet",
    "CREATE_ORDER",
    "DELETE_ORDER",
    "ReconciliationReport",
    "reconcile",
    # Engine
    "LedgerEngine",
]
