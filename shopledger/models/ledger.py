"""
Core Data Models for Shop Ledger

These models define the strict schemas for every collection the ledger
owns. They are designed to:
1. Enforce type safety at runtime
2. Keep the persisted wire shape (camelCase keys, numeric amounts)
3. Be serializable for storage, backup files and logging
4. Expose derived values as computed projections, never as trusted input

DESIGN DECISION: Money is Decimal in memory and a plain JSON number on the
wire, so backups stay readable by any collaborator that consumes them.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    PlainSerializer,
)
from pydantic.alias_generators import to_camel


Money = Annotated[
    Decimal,
    PlainSerializer(lambda value: float(value), return_type=float, when_used="json"),
]

ZERO = Decimal("0")


def new_id() -> str:
    """Generate a fresh entity id."""
    return str(uuid4())


def party_key(name: Optional[str]) -> str:
    """Normalize a party/contact name for reference matching."""
    return (name or "").strip().casefold()


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class PaymentMethod(str, Enum):
    """Payment channel for sales, expenses and credit payments."""
    CASH = "Cash"
    UPI = "UPI"


class CreditType(str, Enum):
    """
    Direction of a credit.

    GIVEN: a customer owes the business.
    TAKEN: the business owes a supplier.
    """
    GIVEN = "given"
    TAKEN = "taken"


class CreditStatus(str, Enum):
    """Credit status. Always derived from amount and paid amount."""
    PENDING = "pending"
    PAID = "paid"


class ContactType(str, Enum):
    CUSTOMER = "Customer"
    VENDOR = "Vendor"
    BOTH = "Both"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


# =============================================================================
# BASE MODEL
# =============================================================================

class LedgerModel(BaseModel):
    """
    Base for every persisted ledger model.

    Attributes are snake_case in Python and camelCase on the wire.
    Both spellings are accepted on input.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    def to_wire(self) -> dict[str, Any]:
        """Convert to the JSON-compatible persisted shape."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# ENTITIES
# =============================================================================

class SaleItem(LedgerModel):
    """One line item of a sale (or of a return's frozen copy)."""

    product_id: str = Field(..., min_length=1)
    name: Optional[str] = None
    quantity: int = Field(..., ge=1)
    unit_price: Money = Field(..., ge=0)
    cost_price: Optional[Money] = Field(default=None, ge=0)

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class Sale(LedgerModel):
    """
    A recorded sale.

    paid_amount is optional only for legacy records; use received_amount
    whenever money actually collected is needed.
    """

    id: str = Field(default_factory=new_id)
    date: dt.date
    customer_name: str = ""
    total_amount: Money
    paid_amount: Optional[Money] = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    note: str = ""
    linked_credit_id: Optional[str] = None
    items: list[SaleItem] = Field(default_factory=list)

    # Optional billing fields
    subtotal: Optional[Money] = None
    discount_total: Optional[Money] = None
    tax_total: Optional[Money] = None
    cgst: Optional[Money] = None
    sgst: Optional[Money] = None
    igst: Optional[Money] = None
    invoice_number: Optional[str] = None

    @property
    def received_amount(self) -> Decimal:
        """Money collected at sale time (legacy records fall back to the total)."""
        if self.paid_amount is None:
            return self.total_amount
        return self.paid_amount

    @property
    def due_amount(self) -> Decimal:
        return max(self.total_amount - self.received_amount, ZERO)


class Expense(LedgerModel):
    """A business expense. Paid from the cash channel unless stated otherwise."""

    id: str = Field(default_factory=new_id)
    date: dt.date
    category: str = "other"
    amount: Money
    note: str = ""
    vendor_name: Optional[str] = None
    payment_method: PaymentMethod = PaymentMethod.CASH


class CreditPayment(LedgerModel):
    """A payment against a credit. Appended, never mutated or removed."""

    id: str = Field(default_factory=new_id)
    amount: Money
    payment_mode: PaymentMethod = PaymentMethod.CASH
    date: dt.date
    note: Optional[str] = None


class Credit(LedgerModel):
    """
    Money owed between the business and a party.

    CRITICAL: paid_amount and status are projections. They are
    recomputed on every load and every mutation via recomputed().
    """

    id: str = Field(default_factory=new_id)
    party: str
    type: CreditType
    amount: Money
    paid_amount: Money = ZERO
    status: CreditStatus = CreditStatus.PENDING
    date: dt.date
    linked_sale_id: Optional[str] = None
    payments: list[CreditPayment] = Field(default_factory=list)
    note: Optional[str] = None
    payment_mode: Optional[PaymentMethod] = None
    due_date: Optional[dt.date] = None

    @property
    def balance_due(self) -> Decimal:
        return max(self.amount - self.paid_amount, ZERO)

    def recomputed(self) -> "Credit":
        """
        Return a copy with paid_amount and status re-derived.

        Legacy credits that carry a paid amount but no payment history
        keep their stored paid amount.
        """
        paid = self.paid_amount
        if self.payments:
            paid = sum((p.amount for p in self.payments), ZERO)
        status = CreditStatus.PAID if paid >= self.amount else CreditStatus.PENDING
        return self.model_copy(update={"paid_amount": paid, "status": status})


class SaleReturn(LedgerModel):
    """
    Reversal of a previously recorded sale.

    items is an immutable copy of the sale's items at return time.
    """

    id: str = Field(default_factory=new_id)
    sale_id: str
    date: dt.date
    party: str = ""
    amount: Money
    note: str = ""
    items: list[SaleItem] = Field(default_factory=list)


class Product(LedgerModel):
    """An inventory product. Stock never goes below zero."""

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1)
    stock: int = Field(default=0, ge=0)
    unit_price: Money = Field(..., ge=0)
    cost_price: Optional[Money] = Field(default=None, ge=0)
    category: str = "General"
    min_stock_level: Optional[int] = Field(default=None, ge=0)
    created_at: dt.datetime = Field(default_factory=_utcnow)


class Contact(LedgerModel):
    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1)
    phone: Optional[str] = None
    type: ContactType = ContactType.CUSTOMER
    notes: Optional[str] = None
    created_at: dt.datetime = Field(default_factory=_utcnow)


class UserSettings(LedgerModel):
    """
    Application settings.

    last_invoice_number is a counter bumped exactly once per newly
    numbered sale.
    """

    theme: Theme = Theme.LIGHT
    currency: str = "₹"
    lock: bool = False

    business_name: Optional[str] = None
    business_address: Optional[str] = None
    business_phone: Optional[str] = None
    business_gstin: Optional[str] = Field(default=None, alias="businessGSTIN")
    business_logo: Optional[str] = None

    invoice_prefix: str = "INV"
    last_invoice_number: int = Field(default=0, ge=0)
    auto_invoice_number: bool = True

    tax_enabled: bool = False
    default_tax_rate: Money = Field(default=ZERO, ge=0, le=100)
    low_stock_threshold: int = Field(default=5, ge=0)


# =============================================================================
# SNAPSHOT / BACKUP
# =============================================================================

class LedgerSnapshot(LedgerModel):
    """
    The complete in-memory copy of all ledger collections.

    The engine never mutates a snapshot in place; every committed
    operation publishes a new one.
    """

    sales: list[Sale] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)
    credits: list[Credit] = Field(default_factory=list)
    settings: UserSettings = Field(default_factory=UserSettings)
    contacts: list[Contact] = Field(default_factory=list)
    products: list[Product] = Field(default_factory=list)
    returns: list[SaleReturn] = Field(default_factory=list)

    def find_sale(self, sale_id: str) -> Optional[Sale]:
        return next((s for s in self.sales if s.id == sale_id), None)

    def find_credit(self, credit_id: str) -> Optional[Credit]:
        return next((c for c in self.credits if c.id == credit_id), None)

    def find_product(self, product_id: str) -> Optional[Product]:
        return next((p for p in self.products if p.id == product_id), None)

    def return_for_sale(self, sale_id: str) -> Optional[SaleReturn]:
        return next((r for r in self.returns if r.sale_id == sale_id), None)


class BackupDocument(LedgerSnapshot):
    """
    Backup file shape:
    {sales, expenses, credits, settings, contacts, products, returns, exportedAt}
    """

    exported_at: dt.datetime = Field(default_factory=_utcnow)

    @classmethod
    def from_snapshot(cls, snapshot: LedgerSnapshot) -> "BackupDocument":
        return cls(
            sales=snapshot.sales,
            expenses=snapshot.expenses,
            credits=snapshot.credits,
            settings=snapshot.settings,
            contacts=snapshot.contacts,
            products=snapshot.products,
            returns=snapshot.returns,
        )

    def to_snapshot(self) -> LedgerSnapshot:
        return LedgerSnapshot(
            sales=self.sales,
            expenses=self.expenses,
            credits=self.credits,
            settings=self.settings,
            contacts=self.contacts,
            products=self.products,
            returns=self.returns,
        )


# =============================================================================
# OPERATION INPUTS
# =============================================================================
# Inputs only carry shape. Business rules (partial payment needs a
# customer, amounts in range...) are enforced by the ledger planners so
# they always surface as ledger errors.

class SaleInput(LedgerModel):
    date: dt.date = Field(default_factory=dt.date.today)
    customer_name: str = ""
    total_amount: Money
    paid_amount: Optional[Money] = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    note: str = ""
    items: list[SaleItem] = Field(default_factory=list)
    subtotal: Optional[Money] = None
    discount_total: Optional[Money] = None
    tax_total: Optional[Money] = None
    cgst: Optional[Money] = None
    sgst: Optional[Money] = None
    igst: Optional[Money] = None
    invoice_number: Optional[str] = None


class ExpenseInput(LedgerModel):
    date: dt.date = Field(default_factory=dt.date.today)
    category: str = "other"
    amount: Money
    note: str = ""
    vendor_name: Optional[str] = None
    payment_method: PaymentMethod = PaymentMethod.CASH


class CreditInput(LedgerModel):
    party: str
    type: CreditType
    amount: Money
    date: dt.date = Field(default_factory=dt.date.today)
    note: Optional[str] = None
    payment_mode: Optional[PaymentMethod] = None
    due_date: Optional[dt.date] = None


class CreditPaymentInput(LedgerModel):
    amount: Money
    payment_mode: PaymentMethod = PaymentMethod.CASH
    date: dt.date = Field(default_factory=dt.date.today)
    note: Optional[str] = None


class ReturnInput(LedgerModel):
    sale_id: str
    date: dt.date = Field(default_factory=dt.date.today)
    amount: Optional[Money] = None
    note: str = ""


class ProductInput(LedgerModel):
    name: str
    stock: int = 0
    unit_price: Money
    cost_price: Optional[Money] = None
    category: str = "General"
    min_stock_level: Optional[int] = None


class ContactInput(LedgerModel):
    name: str
    phone: Optional[str] = None
    type: ContactType = ContactType.CUSTOMER
    notes: Optional[str] = None
