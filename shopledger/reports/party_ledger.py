"""
Party statements.

A chronological list of everything that moved between the business and
one customer or vendor, with a running balance. A positive balance means
the party owes the business.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from shopledger.ledger.metrics import money_sum
from shopledger.models.ledger import (
    CreditType,
    LedgerSnapshot,
    Money,
    PaymentMethod,
    ZERO,
    party_key,
)


class PartyType(str, Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"


class EntryKind(str, Enum):
    """CREDIT raises what the party owes, DEBIT lowers it."""
    CREDIT = "credit"
    DEBIT = "debit"


class LedgerEntry(BaseModel):
    id: str
    date: date
    description: str
    kind: EntryKind
    amount: Money
    payment_mode: Optional[PaymentMethod] = None
    reference: Optional[str] = None
    balance: Money = ZERO


class PartyStatement(BaseModel):
    party: str
    party_type: PartyType
    entries: list[LedgerEntry] = Field(default_factory=list)

    @property
    def total_credit(self) -> Decimal:
        return money_sum(e.amount for e in self.entries if e.kind == EntryKind.CREDIT)

    @property
    def total_debit(self) -> Decimal:
        return money_sum(e.amount for e in self.entries if e.kind == EntryKind.DEBIT)

    @property
    def final_balance(self) -> Decimal:
        return self.total_credit - self.total_debit


def _customer_entries(snapshot: LedgerSnapshot, key: str) -> list[LedgerEntry]:
    entries = []
    for sale in snapshot.sales:
        if party_key(sale.customer_name) != key:
            continue
        label = sale.invoice_number or sale.id[-6:]
        entries.append(LedgerEntry(
            id=sale.id,
            date=sale.date,
            description=f"Invoice {label}",
            kind=EntryKind.CREDIT,
            amount=sale.total_amount,
            payment_mode=sale.payment_method,
            reference=sale.invoice_number,
        ))
        received = sale.received_amount
        if received > 0:
            entries.append(LedgerEntry(
                id=f"{sale.id}-paid",
                date=sale.date,
                description="Full payment" if received >= sale.total_amount else "Payment received",
                kind=EntryKind.DEBIT,
                amount=received,
                payment_mode=sale.payment_method,
            ))

    for sale_return in snapshot.returns:
        if party_key(sale_return.party) != key:
            continue
        sale = snapshot.find_sale(sale_return.sale_id)
        if sale is not None:
            entries.append(LedgerEntry(
                id=sale_return.id,
                date=sale_return.date,
                description=f"Goods returned (sale {sale.invoice_number or sale.id[-6:]})",
                kind=EntryKind.DEBIT,
                amount=sale.total_amount,
            ))
        if sale_return.amount > 0:
            entries.append(LedgerEntry(
                id=f"{sale_return.id}-refund",
                date=sale_return.date,
                description="Refund paid",
                kind=EntryKind.CREDIT,
                amount=sale_return.amount,
                payment_mode=sale.payment_method if sale else None,
            ))
    return entries


def _vendor_entries(snapshot: LedgerSnapshot, key: str) -> list[LedgerEntry]:
    return [
        LedgerEntry(
            id=expense.id,
            date=expense.date,
            description=expense.category or "Expense",
            kind=EntryKind.DEBIT,
            amount=expense.amount,
            payment_mode=expense.payment_method,
        )
        for expense in snapshot.expenses
        if party_key(expense.vendor_name) == key
    ]


def _credit_entries(snapshot: LedgerSnapshot, key: str) -> list[LedgerEntry]:
    entries = []
    for credit in snapshot.credits:
        if party_key(credit.party) != key:
            continue
        given = credit.type == CreditType.GIVEN
        # the balance of a sale-linked credit is already carried by the invoice
        if credit.linked_sale_id is None:
            entries.append(LedgerEntry(
                id=credit.id,
                date=credit.date,
                description="Credit given" if given else "Credit taken",
                kind=EntryKind.CREDIT if given else EntryKind.DEBIT,
                amount=credit.amount,
                payment_mode=credit.payment_mode,
            ))
        for payment in credit.payments:
            entries.append(LedgerEntry(
                id=payment.id,
                date=payment.date,
                description="Payment received" if given else "Payment made",
                kind=EntryKind.DEBIT if given else EntryKind.CREDIT,
                amount=payment.amount,
                payment_mode=payment.payment_mode,
            ))
    return entries


def party_ledger(
    snapshot: LedgerSnapshot,
    party: str,
    party_type: PartyType = PartyType.CUSTOMER,
) -> PartyStatement:
    """Build a statement for one party, oldest entry first."""
    party_type = PartyType(party_type)
    key = party_key(party)

    if party_type == PartyType.CUSTOMER:
        entries = _customer_entries(snapshot, key)
    else:
        entries = _vendor_entries(snapshot, key)
    entries.extend(_credit_entries(snapshot, key))

    # stable: same-day entries keep their insertion order
    entries.sort(key=lambda entry: entry.date)

    running = ZERO
    for entry in entries:
        running += entry.amount if entry.kind == EntryKind.CREDIT else -entry.amount
        entry.balance = running

    return PartyStatement(party=party.strip(), party_type=party_type, entries=entries)
