"""
Ledger Transactions

DESIGN DECISION: Every user action is planned by ONE pure function that
reads the current snapshot and returns a ChangeSet - the complete list of
collections the action replaces, the order they must be written in, and
the audit events describing what changed together.

Planners never touch storage. They raise LedgerError subclasses before
anything is written, which gives us:
1. No partial state change on validation/conflict paths
2. Implicit side effects (sale -> credit, return -> restock + close credit)
   made explicit and testable in isolation
3. A single commit routine in the engine

WRITE ORDER: referenced collections are written before the ones that
reference them (a credit before the sale pointing at it). For deletions the
referencing record goes first. A crash between writes leaves at worst a
dangling link, which shopledger.ledger.reconcile repairs on load.
"""

from decimal import Decimal
from typing import Any, Mapping, Optional, Sequence, TypeVar

from pydantic import BaseModel, Field
from pydantic import ValidationError as SchemaError
from pydantic.alias_generators import to_camel

from shopledger import billing
from shopledger.ledger.errors import (
    ConflictError,
    DuplicateOperationError,
    NotFoundError,
    ValidationError,
)
from shopledger.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from shopledger.models.ledger import (
    Contact,
    ContactInput,
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
    Product,
    ProductInput,
    ReturnInput,
    Sale,
    SaleInput,
    SaleItem,
    SaleReturn,
    ZERO,
    UserSettings,
    new_id,
    party_key,
)
from shopledger.services.storage.interface import CollectionKey


CREATE_ORDER = (
    CollectionKey.SETTINGS,
    CollectionKey.PRODUCTS,
    CollectionKey.CONTACTS,
    CollectionKey.EXPENSES,
    CollectionKey.CREDITS,
    CollectionKey.SALES,
    CollectionKey.RETURNS,
)
DELETE_ORDER = tuple(reversed(CREATE_ORDER))

M = TypeVar("M", bound=LedgerModel)


class ChangeSet(BaseModel):
    """
    Full set of collection replacements produced by one ledger operation.

    A collection left as None is untouched and is not written.
    """

    operation: str
    result_id: Optional[str] = None

    settings: Optional[UserSettings] = None
    products: Optional[list[Product]] = None
    contacts: Optional[list[Contact]] = None
    expenses: Optional[list[Expense]] = None
    credits: Optional[list[Credit]] = None
    sales: Optional[list[Sale]] = None
    returns: Optional[list[SaleReturn]] = None

    write_order: tuple[CollectionKey, ...] = CREATE_ORDER
    events: list[AuditEvent] = Field(default_factory=list)

    def collection(self, key: CollectionKey) -> Any:
        return getattr(self, key.value)

    def touched(self) -> list[CollectionKey]:
        """Collections to write, in write order."""
        return [key for key in self.write_order if self.collection(key) is not None]

    def wire_value(self, key: CollectionKey) -> Any:
        value = self.collection(key)
        if isinstance(value, UserSettings):
            return value.to_wire()
        return [entity.to_wire() for entity in value]

    def apply_to(self, snapshot: LedgerSnapshot) -> LedgerSnapshot:
        """Return the snapshot that results from this change."""
        update = {key.value: self.collection(key) for key in self.touched()}
        return snapshot.model_copy(update=update)


# =============================================================================
# HELPERS
# =============================================================================

def _describe(error: SchemaError) -> str:
    parts = []
    for item in error.errors():
        location = ".".join(str(p) for p in item["loc"]) or "input"
        parts.append(f"{location}: {item['msg']}")
    return "; ".join(parts)


def parse_input(model_cls: type[M], data: Any) -> M:
    """Coerce caller data into an input model, raising ValidationError."""
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data)
    except SchemaError as e:
        raise ValidationError(_describe(e)) from e


def merge_patch(
    entity: M,
    patch: Mapping[str, Any],
    protected: Sequence[str] = ("id",),
) -> M:
    """
    Partial merge of a patch (snake_case or camelCase keys) over an entity.

    Protected fields are silently discarded. Unknown fields are rejected.
    """
    if not isinstance(patch, Mapping):
        raise ValidationError("Patch must be a mapping of field names to values")

    model_cls = type(entity)
    names: dict[str, str] = {}
    for name, field in model_cls.model_fields.items():
        names[name] = name
        names[to_camel(name)] = name
        if field.alias:
            names[field.alias] = name

    updates: dict[str, Any] = {}
    for key, value in patch.items():
        name = names.get(key)
        if name is None:
            raise ValidationError(f"Unknown field for {model_cls.__name__}: {key}")
        if name in protected:
            continue
        updates[name] = value

    merged = {**entity.model_dump(), **updates}
    try:
        return model_cls.model_validate(merged)
    except SchemaError as e:
        raise ValidationError(_describe(e)) from e


def _require(items: Sequence[M], entity_id: str, entity_type: str) -> M:
    for item in items:
        if item.id == entity_id:
            return item
    raise NotFoundError(entity_type, entity_id)


def _replaced(items: Sequence[M], entity: M) -> list[M]:
    return [entity if item.id == entity.id else item for item in items]


def _without(items: Sequence[M], entity_id: str) -> list[M]:
    return [item for item in items if item.id != entity_id]


def _adjust_stock(
    products: Sequence[Product],
    items: Sequence[SaleItem],
    direction: int,
    reason: str,
) -> tuple[Optional[list[Product]], list[AuditEvent]]:
    """
    Move stock for every line item, clamped at zero.

    Items whose product is unknown (quick sales) are ignored.
    Returns (None, []) when no product is affected.
    """
    quantities: dict[str, int] = {}
    for item in items:
        quantities[item.product_id] = quantities.get(item.product_id, 0) + item.quantity

    updated: list[Product] = []
    events: list[AuditEvent] = []
    for product in products:
        quantity = quantities.get(product.id)
        if quantity is None:
            updated.append(product)
            continue
        new_stock = max(0, product.stock + direction * quantity)
        updated.append(product.model_copy(update={"stock": new_stock}))
        events.append(
            AuditEventBuilder.stock_adjusted(product.id, product.stock, new_stock, reason)
        )

    if not events:
        return None, []
    return updated, events


def _money(value: Decimal) -> str:
    return str(value)


# =============================================================================
# SALES
# =============================================================================

def plan_record_sale(snapshot: LedgerSnapshot, data: SaleInput) -> ChangeSet:
    """
    Record a sale.

    Touches up to four collections:
    - settings: next invoice number (when auto numbering applies)
    - products: stock decremented per item, clamped at zero
    - credits: one 'given' credit for the unpaid remainder
    - sales: the new sale, cross-linked to its credit
    """
    total = data.total_amount
    if total <= 0:
        raise ValidationError("Total amount must be greater than zero")
    paid = total if data.paid_amount is None else data.paid_amount
    if paid < 0:
        raise ValidationError("Paid amount cannot be negative")
    if paid > total:
        raise ValidationError("Paid amount cannot exceed the total amount")

    customer = data.customer_name.strip()
    is_partial = paid < total
    if is_partial and not customer:
        raise ValidationError("Customer name is required when a sale is not fully paid")

    sale_id = new_id()
    events: list[AuditEvent] = []

    settings = None
    invoice_number = data.invoice_number
    if invoice_number is None and snapshot.settings.auto_invoice_number:
        number = snapshot.settings.last_invoice_number + 1
        invoice_number = billing.format_invoice_number(snapshot.settings.invoice_prefix, number)
        settings = snapshot.settings.model_copy(update={"last_invoice_number": number})
        events.append(AuditEventBuilder.entity_changed(
            AuditEventType.INVOICE_NUMBER_ASSIGNED,
            "sale",
            sale_id,
            f"Invoice number {invoice_number} assigned",
            {"invoice_number": invoice_number, "counter": number},
            is_user_action=False,
        ))

    credits = None
    credit_id = None
    if is_partial:
        credit = Credit(
            party=customer,
            type=CreditType.GIVEN,
            amount=total - paid,
            date=data.date,
            linked_sale_id=sale_id,
            note=f"Balance due on sale {invoice_number or sale_id}",
        ).recomputed()
        credit_id = credit.id
        credits = [*snapshot.credits, credit]
        events.append(AuditEventBuilder.entity_changed(
            AuditEventType.CREDIT_CREATED,
            "credit",
            credit.id,
            f"Credit of {_money(credit.amount)} created for {customer} from partial payment",
            {"linked_sale_id": sale_id, "amount": _money(credit.amount)},
            is_user_action=False,
        ))

    sale = Sale(
        id=sale_id,
        **data.model_dump(exclude={"customer_name", "paid_amount", "invoice_number"}),
        customer_name=customer,
        paid_amount=paid,
        invoice_number=invoice_number,
        linked_credit_id=credit_id,
    )
    products, stock_events = _adjust_stock(
        snapshot.products, sale.items, -1, f"sale {sale_id}"
    )

    events.insert(0, AuditEventBuilder.sale_recorded(
        sale_id=sale_id,
        total=_money(total),
        paid=_money(paid),
        payment_method=sale.payment_method.value,
        credit_id=credit_id,
    ))
    events.extend(stock_events)

    return ChangeSet(
        operation="record_sale",
        result_id=sale_id,
        settings=settings,
        products=products,
        credits=credits,
        sales=[*snapshot.sales, sale],
        events=events,
    )


def plan_update_sale(
    snapshot: LedgerSnapshot,
    sale_id: str,
    patch: Mapping[str, Any],
) -> ChangeSet:
    """
    Unguarded partial merge over an existing sale.

    Linked credit and stock are NOT re-derived, even when the total or the
    items change.
    """
    sale = _require(snapshot.sales, sale_id, "sale")
    updated = merge_patch(sale, patch)
    return ChangeSet(
        operation="update_sale",
        result_id=sale_id,
        sales=_replaced(snapshot.sales, updated),
        events=[AuditEventBuilder.entity_changed(
            AuditEventType.SALE_UPDATED,
            "sale",
            sale_id,
            "Sale updated",
            {"fields": sorted(patch.keys())},
        )],
    )


def plan_delete_sale(snapshot: LedgerSnapshot, sale_id: str) -> ChangeSet:
    """Remove a sale and fully delete its linked credit, if any."""
    sale = _require(snapshot.sales, sale_id, "sale")
    events = [AuditEventBuilder.entity_changed(
        AuditEventType.SALE_DELETED, "sale", sale_id, "Sale deleted",
        {"linked_credit_id": sale.linked_credit_id},
    )]

    credits = None
    if sale.linked_credit_id and snapshot.find_credit(sale.linked_credit_id):
        credits = _without(snapshot.credits, sale.linked_credit_id)
        events.append(AuditEventBuilder.entity_changed(
            AuditEventType.CREDIT_DELETED,
            "credit",
            sale.linked_credit_id,
            f"Linked credit deleted with sale {sale_id}",
            is_user_action=False,
        ))

    return ChangeSet(
        operation="delete_sale",
        result_id=sale_id,
        sales=_without(snapshot.sales, sale_id),
        credits=credits,
        write_order=DELETE_ORDER,
        events=events,
    )


# =============================================================================
# EXPENSES
# =============================================================================

def plan_add_expense(snapshot: LedgerSnapshot, data: ExpenseInput) -> ChangeSet:
    if data.amount <= 0:
        raise ValidationError("Expense amount must be greater than zero")
    expense = Expense(**data.model_dump())
    return ChangeSet(
        operation="add_expense",
        result_id=expense.id,
        expenses=[*snapshot.expenses, expense],
        events=[AuditEventBuilder.entity_changed(
            AuditEventType.EXPENSE_ADDED, "expense", expense.id,
            f"Expense of {_money(expense.amount)} added ({expense.category})",
        )],
    )


def plan_update_expense(
    snapshot: LedgerSnapshot,
    expense_id: str,
    patch: Mapping[str, Any],
) -> ChangeSet:
    expense = _require(snapshot.expenses, expense_id, "expense")
    updated = merge_patch(expense, patch)
    if updated.amount <= 0:
        raise ValidationError("Expense amount must be greater than zero")
    return ChangeSet(
        operation="update_expense",
        result_id=expense_id,
        expenses=_replaced(snapshot.expenses, updated),
        events=[AuditEventBuilder.entity_changed(
            AuditEventType.EXPENSE_UPDATED, "expense", expense_id, "Expense updated",
            {"fields": sorted(patch.keys())},
        )],
    )


def plan_delete_expense(snapshot: LedgerSnapshot, expense_id: str) -> ChangeSet:
    _require(snapshot.expenses, expense_id, "expense")
    return ChangeSet(
        operation="delete_expense",
        result_id=expense_id,
        expenses=_without(snapshot.expenses, expense_id),
        write_order=DELETE_ORDER,
        events=[AuditEventBuilder.entity_changed(
            AuditEventType.EXPENSE_DELETED, "expense", expense_id, "Expense deleted",
        )],
    )


# =============================================================================
# CREDITS
# =============================================================================

CREDIT_DERIVED_FIELDS = ("id", "status", "paid_amount", "payments")


def plan_add_credit(snapshot: LedgerSnapshot, data: CreditInput) -> ChangeSet:
    if data.amount <= 0:
        raise ValidationError("Credit amount must be greater than zero")
    if not data.party.strip():
        raise ValidationError("Party name is required for a credit")
    credit = Credit(**data.model_dump()).recomputed()
    return ChangeSet(
        operation="add_credit",
        result_id=credit.id,
        credits=[*snapshot.credits, credit],
        events=[AuditEventBuilder.entity_changed(
            AuditEventType.CREDIT_CREATED, "credit", credit.id,
            f"Credit ({credit.type.value}) of {_money(credit.amount)} for {credit.party}",
        )],
    )


def plan_update_credit(
    snapshot: LedgerSnapshot,
    credit_id: str,
    patch: Mapping[str, Any],
) -> ChangeSet:
    """
    Merge a patch, then recompute status.

    Caller-supplied status, paid amount and payment history are discarded.
    """
    credit = _require(snapshot.credits, credit_id, "credit")
    updated = merge_patch(credit, patch, protected=CREDIT_DERIVED_FIELDS).recomputed()
    if updated.amount < 0:
        raise ValidationError("Credit amount cannot be negative")
    return ChangeSet(
        operation="update_credit",
        result_id=credit_id,
        credits=_replaced(snapshot.credits, updated),
        events=[AuditEventBuilder.entity_changed(
            AuditEventType.CREDIT_UPDATED, "credit", credit_id,
            f"Credit updated, status {updated.status.value}",
            {"fields": sorted(patch.keys())},
        )],
    )


def plan_delete_credit(snapshot: LedgerSnapshot, credit_id: str) -> ChangeSet:
    """Delete a credit; a sale pointing at it loses its link first."""
    credit = _require(snapshot.credits, credit_id, "credit")
    events = [AuditEventBuilder.entity_changed(
        AuditEventType.CREDIT_DELETED, "credit", credit_id, "Credit deleted",
        {"linked_sale_id": credit.linked_sale_id},
    )]

    sales = None
    linked = snapshot.find_sale(credit.linked_sale_id) if credit.linked_sale_id else None
    if linked is not None and linked.linked_credit_id == credit_id:
        sales = _replaced(snapshot.sales, linked.model_copy(update={"linked_credit_id": None}))
        events.append(AuditEventBuilder.entity_changed(
            AuditEventType.SALE_UPDATED, "sale", linked.id,
            f"Link to deleted credit {credit_id} cleared",
            is_user_action=False,
        ))

    return ChangeSet(
        operation="delete_credit",
        result_id=credit_id,
        sales=sales,
        credits=_without(snapshot.credits, credit_id),
        write_order=DELETE_ORDER,
        events=events,
    )


def plan_add_credit_payment(
    snapshot: LedgerSnapshot,
    credit_id: str,
    data: CreditPaymentInput,
) -> ChangeSet:
    """Append a payment; paid amount and status are re-derived from history."""
    credit = _require(snapshot.credits, credit_id, "credit")
    if data.amount <= 0:
        raise ValidationError("Payment amount must be greater than zero")

    payment = CreditPayment(**data.model_dump())
    updated = credit.model_copy(
        update={"payments": [*credit.payments, payment]}
    ).recomputed()

    return ChangeSet(
        operation="add_credit_payment",
        result_id=payment.id,
        credits=_replaced(snapshot.credits, updated),
        events=[AuditEventBuilder.entity_changed(
            AuditEventType.CREDIT_PAYMENT_RECORDED, "credit", credit_id,
            f"Payment of {_money(payment.amount)} ({payment.payment_mode.value}) recorded; "
            f"paid {_money(updated.paid_amount)} of {_money(updated.amount)}",
            {
                "payment_id": payment.id,
                "paid_amount": _money(updated.paid_amount),
                "status": updated.status.value,
            },
        )],
    )


# =============================================================================
# RETURNS
# =============================================================================

def plan_record_return(snapshot: LedgerSnapshot, data: ReturnInput) -> ChangeSet:
    """
    Reverse a sale.

    - at most one return per sale
    - refund defaults to (and cannot exceed) what was collected at sale time
    - every item is restocked
    - a linked credit is force-closed: amount := paid amount, status := paid.
      The remaining owed balance is discarded for good.
    """
    sale = _require(snapshot.sales, data.sale_id, "sale")
    existing = snapshot.return_for_sale(sale.id)
    if existing is not None:
        raise DuplicateOperationError(
            f"Sale {sale.id} was already returned (return {existing.id})"
        )

    refund = sale.received_amount if data.amount is None else data.amount
    if refund < 0:
        raise ValidationError("Refund amount cannot be negative")
    if refund > sale.received_amount:
        raise ValidationError("Refund amount cannot exceed the amount paid for the sale")

    sale_return = SaleReturn(
        sale_id=sale.id,
        date=data.date,
        party=sale.customer_name,
        amount=refund,
        note=data.note,
        items=[item.model_copy() for item in sale.items],
    )
    events = [AuditEventBuilder.entity_changed(
        AuditEventType.RETURN_RECORDED, "return", sale_return.id,
        f"Sale {sale.id} returned, refund {_money(refund)}",
        {"sale_id": sale.id, "refund": _money(refund)},
    )]

    products, stock_events = _adjust_stock(
        snapshot.products, sale_return.items, +1, f"return {sale_return.id}"
    )
    events.extend(stock_events)

    credits = None
    credit = snapshot.find_credit(sale.linked_credit_id) if sale.linked_credit_id else None
    if credit is not None:
        discarded = credit.balance_due
        closed = credit.model_copy(
            update={"amount": credit.paid_amount, "status": CreditStatus.PAID}
        )
        credits = _replaced(snapshot.credits, closed)
        events.append(AuditEventBuilder.credit_force_closed(
            credit.id, sale.id, _money(discarded)
        ))

    return ChangeSet(
        operation="record_return",
        result_id=sale_return.id,
        products=products,
        credits=credits,
        returns=[*snapshot.returns, sale_return],
        events=events,
    )


def plan_delete_return(snapshot: LedgerSnapshot, return_id: str) -> ChangeSet:
    """
    Remove a return and take its frozen items back out of stock.

    A credit that the return force-closed stays closed.
    """
    sale_return = _require(snapshot.returns, return_id, "return")
    products, stock_events = _adjust_stock(
        snapshot.products, sale_return.items, -1, f"return {return_id} deleted"
    )
    events = [AuditEventBuilder.entity_changed(
        AuditEventType.RETURN_DELETED, "return", return_id,
        f"Return of sale {sale_return.sale_id} deleted",
        {"sale_id": sale_return.sale_id},
    )]
    events.extend(stock_events)
    return ChangeSet(
        operation="delete_return",
        result_id=return_id,
        returns=_without(snapshot.returns, return_id),
        products=products,
        write_order=DELETE_ORDER,
        events=events,
    )


# =============================================================================
# PRODUCTS
# =============================================================================

def plan_add_product(snapshot: LedgerSnapshot, data: ProductInput) -> ChangeSet:
    if not data.name.strip():
        raise ValidationError("Product name is required")
    try:
        product = Product(**data.model_dump())
    except SchemaError as e:
        raise ValidationError(_describe(e)) from e
    return ChangeSet(
        operation="add_product",
        result_id=product.id,
        products=[*snapshot.products, product],
        events=[AuditEventBuilder.entity_changed(
            AuditEventType.PRODUCT_ADDED, "product", product.id,
            f"Product added: {product.name} (stock {product.stock})",
        )],
    )


def plan_update_product(
    snapshot: LedgerSnapshot,
    product_id: str,
    patch: Mapping[str, Any],
) -> ChangeSet:
    product = _require(snapshot.products, product_id, "product")
    updated = merge_patch(product, patch, protected=("id", "created_at"))
    return ChangeSet(
        operation="update_product",
        result_id=product_id,
        products=_replaced(snapshot.products, updated),
        events=[AuditEventBuilder.entity_changed(
            AuditEventType.PRODUCT_UPDATED, "product", product_id, "Product updated",
            {"fields": sorted(patch.keys())},
        )],
    )


def plan_delete_product(snapshot: LedgerSnapshot, product_id: str) -> ChangeSet:
    product = _require(snapshot.products, product_id, "product")
    for sale in snapshot.sales:
        if any(item.product_id == product_id for item in sale.items):
            raise ConflictError(
                f"Product '{product.name}' is referenced by sale {sale.id} and cannot be deleted"
            )
    return ChangeSet(
        operation="delete_product",
        result_id=product_id,
        products=_without(snapshot.products, product_id),
        write_order=DELETE_ORDER,
        events=[AuditEventBuilder.entity_changed(
            AuditEventType.PRODUCT_DELETED, "product", product_id,
            f"Product deleted: {product.name}",
        )],
    )


# =============================================================================
# CONTACTS
# =============================================================================

def plan_add_contact(snapshot: LedgerSnapshot, data: ContactInput) -> ChangeSet:
    if not data.name.strip():
        raise ValidationError("Contact name is required")
    contact = Contact(**data.model_dump())
    return ChangeSet(
        operation="add_contact",
        result_id=contact.id,
        contacts=[*snapshot.contacts, contact],
        events=[AuditEventBuilder.entity_changed(
            AuditEventType.CONTACT_ADDED, "contact", contact.id,
            f"Contact added: {contact.name} ({contact.type.value})",
        )],
    )


def plan_update_contact(
    snapshot: LedgerSnapshot,
    contact_id: str,
    patch: Mapping[str, Any],
) -> ChangeSet:
    contact = _require(snapshot.contacts, contact_id, "contact")
    updated = merge_patch(contact, patch, protected=("id", "created_at"))
    return ChangeSet(
        operation="update_contact",
        result_id=contact_id,
        contacts=_replaced(snapshot.contacts, updated),
        events=[AuditEventBuilder.entity_changed(
            AuditEventType.CONTACT_UPDATED, "contact", contact_id, "Contact updated",
            {"fields": sorted(patch.keys())},
        )],
    )


def contact_references(snapshot: LedgerSnapshot, name: str) -> list[str]:
    """Describe every sale, credit or expense that names this party."""
    key = party_key(name)
    refs = [f"sale {s.id}" for s in snapshot.sales if party_key(s.customer_name) == key]
    refs += [f"credit {c.id}" for c in snapshot.credits if party_key(c.party) == key]
    refs += [f"expense {e.id}" for e in snapshot.expenses if party_key(e.vendor_name) == key]
    return refs


def plan_delete_contact(snapshot: LedgerSnapshot, contact_id: str) -> ChangeSet:
    contact = _require(snapshot.contacts, contact_id, "contact")
    refs = contact_references(snapshot, contact.name)
    if refs:
        raise ConflictError(
            f"Contact '{contact.name}' is referenced by {len(refs)} record(s): "
            + ", ".join(refs[:5])
        )
    return ChangeSet(
        operation="delete_contact",
        result_id=contact_id,
        contacts=_without(snapshot.contacts, contact_id),
        write_order=DELETE_ORDER,
        events=[AuditEventBuilder.entity_changed(
            AuditEventType.CONTACT_DELETED, "contact", contact_id,
            f"Contact deleted: {contact.name}",
        )],
    )


# =============================================================================
# SETTINGS
# =============================================================================

def plan_update_settings(snapshot: LedgerSnapshot, patch: Mapping[str, Any]) -> ChangeSet:
    updated = merge_patch(snapshot.settings, patch, protected=())
    if updated.last_invoice_number < snapshot.settings.last_invoice_number:
        raise ValidationError(
            "Invoice counter cannot go backwards "
            f"(currently {snapshot.settings.last_invoice_number})"
        )

    gstin = (updated.business_gstin or "").strip().upper()
    if gstin and len(gstin) != 15:
        raise ValidationError("GSTIN should be exactly 15 characters")
    prefix = updated.invoice_prefix.strip().upper() or "INV"
    updated = updated.model_copy(
        update={"business_gstin": gstin or None, "invoice_prefix": prefix}
    )

    return ChangeSet(
        operation="update_settings",
        settings=updated,
        events=[AuditEventBuilder.entity_changed(
            AuditEventType.SETTINGS_UPDATED, "settings", "settings", "Settings updated",
            {"fields": sorted(patch.keys())},
        )],
    )
