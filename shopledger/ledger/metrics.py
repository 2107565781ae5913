"""
Derived metrics.

Pure folds over a LedgerSnapshot, recomputed on every call. Nothing here
is cached and nothing reads a stored total: a sale contributes its
received amount, a credit its paid amount re-derived from its payments.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from shopledger.models.ledger import (
    Credit,
    CreditType,
    LedgerSnapshot,
    PaymentMethod,
    ZERO,
)


def money_sum(values: Iterable[Decimal]) -> Decimal:
    return sum(values, ZERO)


def _today(today: Optional[date]) -> date:
    return today if today is not None else date.today()


def today_sales(snapshot: LedgerSnapshot, today: Optional[date] = None) -> Decimal:
    day = _today(today)
    return money_sum(s.total_amount for s in snapshot.sales if s.date == day)


def today_received(
    snapshot: LedgerSnapshot,
    method: PaymentMethod,
    today: Optional[date] = None,
) -> Decimal:
    day = _today(today)
    return money_sum(
        s.received_amount
        for s in snapshot.sales
        if s.date == day and s.payment_method == method
    )


def today_cash_received(snapshot: LedgerSnapshot, today: Optional[date] = None) -> Decimal:
    return today_received(snapshot, PaymentMethod.CASH, today)


def today_upi_received(snapshot: LedgerSnapshot, today: Optional[date] = None) -> Decimal:
    return today_received(snapshot, PaymentMethod.UPI, today)


def today_expenses(snapshot: LedgerSnapshot, today: Optional[date] = None) -> Decimal:
    day = _today(today)
    return money_sum(e.amount for e in snapshot.expenses if e.date == day)


def credit_payments_received(snapshot: LedgerSnapshot) -> Decimal:
    return money_sum(c.paid_amount for c in snapshot.credits if c.type == CreditType.GIVEN)


def credit_payments_made(snapshot: LedgerSnapshot) -> Decimal:
    return money_sum(c.paid_amount for c in snapshot.credits if c.type == CreditType.TAKEN)


def balance(snapshot: LedgerSnapshot) -> Decimal:
    """
    Overall balance:
    sales received + credit payments received
    - expenses - credit payments made - returns
    """
    return (
        money_sum(s.received_amount for s in snapshot.sales)
        + credit_payments_received(snapshot)
        - money_sum(e.amount for e in snapshot.expenses)
        - credit_payments_made(snapshot)
        - money_sum(r.amount for r in snapshot.returns)
    )


def credit_paid_via(credit: Credit, method: PaymentMethod) -> Decimal:
    """
    Portion of a credit's paid amount that moved through one channel.

    Each payment carries its own mode. A legacy credit with a paid amount
    but no history is attributed to its own payment mode, or Cash.
    """
    if credit.payments:
        return money_sum(p.amount for p in credit.payments if p.payment_mode == method)
    channel = credit.payment_mode or PaymentMethod.CASH
    return credit.paid_amount if channel == method else ZERO


def channel_balance(snapshot: LedgerSnapshot, method: PaymentMethod) -> Decimal:
    """
    balance() restricted to one payment channel.

    A return has no payment mode of its own and inherits the channel of the
    sale it reverses; a return whose sale is gone counts in no channel.
    """
    sales = money_sum(
        s.received_amount for s in snapshot.sales if s.payment_method == method
    )
    expenses = money_sum(
        e.amount for e in snapshot.expenses if e.payment_method == method
    )
    received = money_sum(
        credit_paid_via(c, method) for c in snapshot.credits if c.type == CreditType.GIVEN
    )
    made = money_sum(
        credit_paid_via(c, method) for c in snapshot.credits if c.type == CreditType.TAKEN
    )

    sale_methods = {s.id: s.payment_method for s in snapshot.sales}
    returns = money_sum(
        r.amount for r in snapshot.returns if sale_methods.get(r.sale_id) == method
    )

    return sales + received - expenses - made - returns


def cash_balance(snapshot: LedgerSnapshot) -> Decimal:
    return channel_balance(snapshot, PaymentMethod.CASH)


def upi_balance(snapshot: LedgerSnapshot) -> Decimal:
    return channel_balance(snapshot, PaymentMethod.UPI)
