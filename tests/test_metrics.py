"""Tests for derived balances and daily figures."""

from datetime import date, timedelta
from decimal import Decimal

import pytest

from conftest import TODAY
from shopledger.ledger import metrics
from shopledger.models import (
    Credit,
    CreditPayment,
    CreditType,
    Expense,
    LedgerSnapshot,
    PaymentMethod,
    Sale,
    SaleReturn,
)


YESTERDAY = TODAY - timedelta(days=1)


class TestBalanceScenario:

    @pytest.mark.asyncio
    async def test_single_sale_and_expense(self, engine):
        await engine.add_sale({"date": TODAY, "totalAmount": 500, "paidAmount": 500})
        await engine.add_expense({"date": TODAY, "amount": 200})

        assert engine.balance() == Decimal("300")
        assert engine.cash_balance() == Decimal("300")
        assert engine.upi_balance() == Decimal("0")

    @pytest.mark.asyncio
    async def test_balance_is_idempotent(self, engine):
        await engine.add_sale({"totalAmount": 750})
        assert engine.balance() == engine.balance() == Decimal("750")

    @pytest.mark.asyncio
    async def test_today_figures(self, engine):
        await engine.add_sale({"date": TODAY, "totalAmount": 1000, "paidAmount": 400,
                               "customerName": "Ravi", "paymentMethod": "UPI"})
        await engine.add_sale({"date": TODAY, "totalAmount": 300})
        await engine.add_sale({"date": YESTERDAY, "totalAmount": 9000})
        await engine.add_expense({"date": TODAY, "amount": 120})
        await engine.add_expense({"date": YESTERDAY, "amount": 80})

        assert engine.today_sales() == Decimal("1300")
        assert engine.today_cash_received() == Decimal("300")
        assert engine.today_upi_received() == Decimal("400")
        assert engine.today_expenses() == Decimal("120")
        assert engine.today_sales(today=YESTERDAY) == Decimal("9000")


def _snapshot(**collections) -> LedgerSnapshot:
    return LedgerSnapshot(**collections)


class TestMetricFunctions:
    """Pure metric folds over hand-built snapshots."""

    def test_legacy_sale_without_paid_amount_counts_total(self):
        snapshot = _snapshot(sales=[Sale(date=TODAY, total_amount=Decimal("450"))])

        assert metrics.balance(snapshot) == Decimal("450")
        assert metrics.today_cash_received(snapshot, TODAY) == Decimal("450")

    def test_credit_payments_split_by_channel(self):
        credit = Credit(
            party="Ravi",
            type=CreditType.GIVEN,
            amount=Decimal("1000"),
            date=TODAY,
            payments=[
                CreditPayment(amount=Decimal("300"), payment_mode=PaymentMethod.CASH, date=TODAY),
                CreditPayment(amount=Decimal("200"), payment_mode=PaymentMethod.UPI, date=TODAY),
            ],
        ).recomputed()
        snapshot = _snapshot(credits=[credit])

        assert metrics.credit_payments_received(snapshot) == Decimal("500")
        assert metrics.cash_balance(snapshot) == Decimal("300")
        assert metrics.upi_balance(snapshot) == Decimal("200")
        assert metrics.balance(snapshot) == Decimal("500")

    def test_credits_taken_reduce_balance(self):
        credit = Credit(
            party="Metro Wholesale",
            type=CreditType.TAKEN,
            amount=Decimal("800"),
            date=TODAY,
            payments=[CreditPayment(amount=Decimal("250"), payment_mode=PaymentMethod.UPI, date=TODAY)],
        ).recomputed()
        snapshot = _snapshot(credits=[credit])

        assert metrics.credit_payments_made(snapshot) == Decimal("250")
        assert metrics.balance(snapshot) == Decimal("-250")
        assert metrics.upi_balance(snapshot) == Decimal("-250")
        assert metrics.cash_balance(snapshot) == Decimal("0")

    def test_legacy_credit_uses_its_payment_mode(self):
        credit = Credit(
            party="Ravi",
            type=CreditType.GIVEN,
            amount=Decimal("100"),
            paid_amount=Decimal("60"),
            payment_mode=PaymentMethod.UPI,
            date=TODAY,
        )
        snapshot = _snapshot(credits=[credit])

        assert metrics.upi_balance(snapshot) == Decimal("60")
        assert metrics.cash_balance(snapshot) == Decimal("0")

    def test_return_inherits_sale_channel(self):
        sale = Sale(date=TODAY, total_amount=Decimal("600"), paid_amount=Decimal("600"),
                    payment_method=PaymentMethod.UPI)
        sale_return = SaleReturn(sale_id=sale.id, date=TODAY, amount=Decimal("600"))
        snapshot = _snapshot(sales=[sale], returns=[sale_return])

        assert metrics.balance(snapshot) == Decimal("0")
        assert metrics.upi_balance(snapshot) == Decimal("0")
        assert metrics.cash_balance(snapshot) == Decimal("0")

    def test_return_of_missing_sale_counts_in_no_channel(self):
        sale_return = SaleReturn(sale_id="gone", date=TODAY, amount=Decimal("100"))
        snapshot = _snapshot(returns=[sale_return])

        assert metrics.balance(snapshot) == Decimal("-100")
        assert metrics.cash_balance(snapshot) == Decimal("0")
        assert metrics.upi_balance(snapshot) == Decimal("0")

    def test_upi_expense_hits_upi_channel(self):
        snapshot = _snapshot(expenses=[
            Expense(date=TODAY, amount=Decimal("70"), payment_method=PaymentMethod.UPI),
        ])

        assert metrics.upi_balance(snapshot) == Decimal("-70")
        assert metrics.cash_balance(snapshot) == Decimal("0")

    def test_dates_compare_by_calendar_day(self):
        snapshot = _snapshot(sales=[Sale(date=date(2025, 3, 4), total_amount=Decimal("10"))])
        assert metrics.today_sales(snapshot, TODAY) == Decimal("0")
