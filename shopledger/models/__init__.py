"""
Data Models Package

This package contains all Pydantic models used by Shop Ledger.
All data flowing through the ledger must conform to these schemas.
"""

from shopledger.models.ledger import (
    BackupDocument,
    Contact,
    ContactInput,
    ContactType,
    Credit,
    CreditInput,
    CreditPayment,
    CreditPaymentInput,
    CreditStatus,
    CreditType,
    Expense,
    ExpenseInput,
    LedgerModel,
    LedgerSnapshot,
    Money,
    PaymentMethod,
    Product,
    ProductInput,
    ReturnInput,
    Sale,
    SaleInput,
    SaleItem,
    SaleReturn,
    Theme,
    UserSettings,
    new_id,
    party_key,
)
from shopledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "BackupDocument",
    "Contact",
    "ContactInput",
    "ContactType",
    "Credit",
    "CreditInput",
    "CreditPayment",
    "CreditPaymentInput",
    "CreditStatus",
    "CreditType",
    "Expense",
    "ExpenseInput",
    "LedgerModel",
    "LedgerSnapshot",
    "Money",
    "PaymentMethod",
    "Product",
    "ProductInput",
    "ReturnInput",
    "Sale",
    "SaleInput",
    "SaleItem",
    "SaleReturn",
    "Theme",
    "UserSettings",
    "new_id",
    "party_key",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
