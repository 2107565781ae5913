"""Tests for period summaries, party statements, inventory, CSV and billing."""

import csv
import io
from datetime import date, timedelta
from decimal import Decimal

import pytest

from conftest import TODAY
from shopledger.billing import compute_bill, format_invoice_number
from shopledger.ledger import ValidationError
from shopledger.models import (
    Credit,
    CreditPayment,
    CreditType,
    Expense,
    LedgerSnapshot,
    Product,
    Sale,
    SaleItem,
    SaleReturn,
    UserSettings,
)
from shopledger.reports import (
    DateRange,
    EntryKind,
    PartyType,
    daily_sales_trend,
    date_range,
    export_credits_csv,
    export_expenses_csv,
    export_report_csv,
    export_sales_csv,
    inventory_value,
    low_stock_products,
    party_ledger,
    period_summary,
    preset_summary,
)


def _rows(text: str) -> list[dict]:
    return list(csv.DictReader(io.StringIO(text)))


class TestDateRanges:

    def test_presets(self):
        assert date_range(DateRange.DAILY, TODAY) == (TODAY, TODAY)
        assert date_range(DateRange.WEEKLY, TODAY) == (date(2025, 2, 26), TODAY)
        assert date_range(DateRange.MONTHLY, TODAY) == (date(2025, 2, 5), TODAY)
        assert date_range("all", TODAY) == (None, TODAY)

    def test_month_back_clamps_day(self):
        assert date_range(DateRange.MONTHLY, date(2025, 3, 31))[0] == date(2025, 2, 28)
        assert date_range(DateRange.MONTHLY, date(2025, 1, 15))[0] == date(2024, 12, 15)


class TestPeriodSummary:

    def _snapshot(self) -> LedgerSnapshot:
        old = TODAY - timedelta(days=40)
        return LedgerSnapshot(
            sales=[
                Sale(date=TODAY, total_amount=Decimal("1000"), paid_amount=Decimal("800")),
                Sale(date=old, total_amount=Decimal("5000")),
            ],
            expenses=[
                Expense(date=TODAY, amount=Decimal("200"), category="rent"),
                Expense(date=TODAY, amount=Decimal("100"), category="food"),
                Expense(date=TODAY, amount=Decimal("50"), category="food"),
            ],
            credits=[
                Credit(party="Ravi", type=CreditType.GIVEN, amount=Decimal("500"), date=old,
                       payments=[
                           CreditPayment(amount=Decimal("100"), date=old),
                           CreditPayment(amount=Decimal("150"), date=TODAY),
                       ]).recomputed(),
                Credit(party="Metro", type=CreditType.TAKEN, amount=Decimal("300"),
                       paid_amount=Decimal("100"), date=TODAY),
            ],
            returns=[SaleReturn(sale_id="x", date=TODAY, amount=Decimal("50"))],
        )

    def test_weekly_summary(self):
        summary = preset_summary(self._snapshot(), DateRange.WEEKLY, TODAY)

        assert summary.sales_count == 1
        assert summary.total_sales == Decimal("800")
        assert summary.credit_received == Decimal("150")
        assert summary.credit_paid == Decimal("100")
        assert summary.total_returns == Decimal("50")
        assert summary.total_income == Decimal("950")
        assert summary.total_outflow == Decimal("500")
        assert summary.net_profit == Decimal("450")
        assert summary.profit_margin == Decimal("47.4")
        assert summary.expenses_by_category == {"rent": Decimal("200"), "food": Decimal("150")}
        assert not summary.is_loss

    def test_all_time_summary(self):
        summary = period_summary(self._snapshot())

        assert summary.total_sales == Decimal("5800")
        assert summary.credit_received == Decimal("250")
        assert summary.description == "all time"

    def test_empty_period_has_zero_margin(self):
        summary = period_summary(LedgerSnapshot(), TODAY, TODAY)
        assert summary.profit_margin == Decimal("0")

    def test_daily_trend(self):
        trend = daily_sales_trend(self._snapshot(), days=3, today=TODAY)

        assert [day for day, _ in trend] == [TODAY - timedelta(days=2), TODAY - timedelta(days=1), TODAY]
        assert trend[-1][1] == Decimal("800")


class TestPartyLedger:

    @pytest.mark.asyncio
    async def test_customer_statement(self, engine):
        sale = await engine.add_sale({
            "date": date(2025, 3, 1), "customerName": "Ravi",
            "totalAmount": 1000, "paidAmount": 400,
        })
        await engine.add_credit_payment(
            sale.linked_credit_id, {"amount": 250, "date": date(2025, 3, 3), "paymentMode": "UPI"}
        )

        statement = party_ledger(engine.snapshot, " ravi ", PartyType.CUSTOMER)

        assert [e.kind for e in statement.entries] == [
            EntryKind.CREDIT, EntryKind.DEBIT, EntryKind.DEBIT,
        ]
        assert [e.balance for e in statement.entries] == [
            Decimal("1000"), Decimal("600"), Decimal("350"),
        ]
        assert statement.final_balance == Decimal("350")
        assert statement.entries[0].description == "Invoice INV-0001"

    @pytest.mark.asyncio
    async def test_returned_sale_nets_out(self, engine):
        sale = await engine.add_sale({
            "date": date(2025, 3, 1), "customerName": "Ravi",
            "totalAmount": 1000, "paidAmount": 400,
        })
        await engine.record_return(sale.id, date=date(2025, 3, 2))

        statement = party_ledger(engine.snapshot, "Ravi")

        assert statement.final_balance == Decimal("0")

    def test_vendor_statement(self):
        snapshot = LedgerSnapshot(
            expenses=[Expense(date=TODAY, amount=Decimal("120"), vendor_name="Metro", category="stock")],
            credits=[Credit(
                party="Metro", type=CreditType.TAKEN, amount=Decimal("1000"), date=TODAY,
                payments=[CreditPayment(amount=Decimal("400"), date=TODAY)],
            ).recomputed()],
        )

        statement = party_ledger(snapshot, "Metro", PartyType.VENDOR)

        assert statement.total_debit == Decimal("1120")
        assert statement.total_credit == Decimal("400")
        assert statement.final_balance == Decimal("-720")


class TestInventoryReports:

    def test_low_stock_uses_product_minimum_or_threshold(self):
        snapshot = LedgerSnapshot(
            settings=UserSettings(low_stock_threshold=5),
            products=[
                Product(name="Rice", stock=4, unit_price=Decimal("50")),
                Product(name="Oil", stock=9, unit_price=Decimal("150"), min_stock_level=10),
                Product(name="Salt", stock=30, unit_price=Decimal("20")),
            ],
        )

        assert [p.name for p in low_stock_products(snapshot)] == ["Rice", "Oil"]
        assert inventory_value(snapshot) == Decimal("200") + Decimal("1350") + Decimal("600")


class TestCsvExport:

    def test_sales_csv(self, tmp_path):
        sale = Sale(date=date(2025, 3, 5), total_amount=Decimal("1000"), paid_amount=Decimal("600"),
                    invoice_number="INV-0003", note="festival, bulk")
        path = tmp_path / "sales.csv"

        text = export_sales_csv([sale], path)

        rows = _rows(text)
        assert rows[0]["Date"] == "05 Mar 2025"
        assert rows[0]["Customer"] == "Walk-in"
        assert rows[0]["Due Amount"] == "400"
        assert rows[0]["Note"] == "festival, bulk"
        assert path.read_bytes().decode("utf-8") == text

    def test_expense_and_credit_csv(self):
        expenses = _rows(export_expenses_csv([Expense(date=TODAY, amount=Decimal("75"))]))
        credits = _rows(export_credits_csv([Credit(
            party="Ravi", type=CreditType.TAKEN, amount=Decimal("300"), date=TODAY,
        )]))

        assert expenses[0]["Vendor"] == "-"
        assert credits[0]["Type"] == "Credit Taken"
        assert credits[0]["Payment Mode"] == "-"

    def test_combined_report_newest_first(self):
        text = export_report_csv(
            sales=[Sale(date=date(2025, 3, 1), total_amount=Decimal("100"))],
            expenses=[Expense(date=date(2025, 3, 4), amount=Decimal("40"), category="food")],
            credits=[Credit(party="Ravi", type=CreditType.GIVEN, amount=Decimal("90"),
                            paid_amount=Decimal("30"), date=date(2025, 3, 2))],
        )

        rows = _rows(text)
        assert [r["Type"] for r in rows] == ["Expense", "Credit Given", "Sale"]
        assert rows[0]["Party"] == "food"
        assert rows[0]["Debit (-)"] == "40"
        assert rows[1]["Credit (+)"] == "30"


class TestBilling:

    def test_intra_state_split(self):
        items = [
            SaleItem(product_id="p1", quantity=2, unit_price=Decimal("250")),
            SaleItem(product_id="p2", quantity=1, unit_price=Decimal("99.99")),
        ]

        bill = compute_bill(items, discount=Decimal("49.99"), tax_rate=Decimal("5"))

        assert bill.subtotal == Decimal("599.99")
        assert bill.taxable_amount == Decimal("550.00")
        assert bill.tax_total == Decimal("27.50")
        assert bill.cgst == Decimal("13.75")
        assert bill.sgst == Decimal("13.75")
        assert bill.igst == Decimal("0")
        assert bill.total_amount == Decimal("577.50")

    def test_inter_state_and_discount_cap(self):
        items = [SaleItem(product_id="p1", quantity=1, unit_price=Decimal("100"))]

        bill = compute_bill(items, discount=Decimal("500"), tax_rate=Decimal("18"), inter_state=True)

        assert bill.discount_total == Decimal("100.00")
        assert bill.total_amount == Decimal("0.00")
        assert bill.cgst == Decimal("0")

    def test_rate_out_of_range(self):
        with pytest.raises(ValidationError, match="between 0 and 100"):
            compute_bill([], tax_rate=Decimal("101"))

    @pytest.mark.asyncio
    async def test_bill_fields_flow_into_sale(self, engine):
        items = [SaleItem(product_id="p1", quantity=3, unit_price=Decimal("10"))]
        bill = compute_bill(items, tax_rate=Decimal("12"))

        sale = await engine.add_sale({"items": items, **bill.sale_fields()})

        assert sale.total_amount == Decimal("33.60")
        assert sale.cgst == Decimal("1.80")

    def test_invoice_number_format(self):
        assert format_invoice_number("inv", 7) == "INV-0007"
        assert format_invoice_number("", 12345) == "INV-12345"
