"""
CSV export for sales, expenses, credits and a combined transaction report.

Each exporter returns the CSV text and, when a path is given, also writes
it there (UTF-8, header row first).
"""

import csv
import io
from datetime import date
from pathlib import Path
from typing import Iterable, Optional, Union

from shopledger.models.ledger import Credit, CreditType, Expense, Sale

SALES_HEADERS = [
    "Date", "Invoice No", "Customer", "Subtotal", "Discount", "CGST", "SGST",
    "IGST", "Tax Total", "Grand Total", "Paid Amount", "Due Amount",
    "Payment Method", "Note",
]
EXPENSE_HEADERS = ["Date", "Category", "Amount", "Vendor", "Note"]
CREDIT_HEADERS = [
    "Date", "Party", "Type", "Amount", "Paid Amount", "Due Amount", "Status",
    "Payment Mode",
]
REPORT_HEADERS = ["Date", "Type", "Party", "Invoice/Ref", "Credit (+)", "Debit (-)", "Notes"]

PathLike = Union[str, Path]


def format_date(day: date) -> str:
    """e.g. 05 Mar 2025"""
    return day.strftime("%d %b %Y")


def default_filename(kind: str, today: Optional[date] = None) -> str:
    return f"ShopLedger_{kind}_{(today or date.today()).isoformat()}.csv"


def write_csv(
    rows: Iterable[dict],
    headers: list[str],
    path: Optional[PathLike] = None,
) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=headers, extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow({h: row.get(h, "") for h in headers})
    text = buffer.getvalue()

    if path is not None:
        with Path(path).open("w", newline="", encoding="utf-8") as fp:
            fp.write(text)
    return text


def sale_rows(sales: Iterable[Sale]) -> list[dict]:
    return [
        {
            "Date": format_date(s.date),
            "Invoice No": s.invoice_number or "-",
            "Customer": s.customer_name or "Walk-in",
            "Subtotal": s.subtotal if s.subtotal is not None else s.total_amount,
            "Discount": s.discount_total or 0,
            "CGST": s.cgst or 0,
            "SGST": s.sgst or 0,
            "IGST": s.igst or 0,
            "Tax Total": s.tax_total or 0,
            "Grand Total": s.total_amount,
            "Paid Amount": s.received_amount,
            "Due Amount": s.due_amount,
            "Payment Method": s.payment_method.value,
            "Note": s.note or "-",
        }
        for s in sales
    ]


def expense_rows(expenses: Iterable[Expense]) -> list[dict]:
    return [
        {
            "Date": format_date(e.date),
            "Category": e.category,
            "Amount": e.amount,
            "Vendor": e.vendor_name or "-",
            "Note": e.note or "-",
        }
        for e in expenses
    ]


def credit_rows(credits: Iterable[Credit]) -> list[dict]:
    return [
        {
            "Date": format_date(c.date),
            "Party": c.party,
            "Type": "Credit Given" if c.type == CreditType.GIVEN else "Credit Taken",
            "Amount": c.amount,
            "Paid Amount": c.paid_amount,
            "Due Amount": c.balance_due,
            "Status": c.status.value,
            "Payment Mode": c.payment_mode.value if c.payment_mode else "-",
        }
        for c in credits
    ]


def report_rows(
    sales: Iterable[Sale] = (),
    expenses: Iterable[Expense] = (),
    credits: Iterable[Credit] = (),
) -> list[dict]:
    """Combined transaction list, newest first."""
    dated: list[tuple[date, dict]] = []

    for s in sales:
        dated.append((s.date, {
            "Type": "Sale",
            "Party": s.customer_name or "Walk-in",
            "Invoice/Ref": s.invoice_number or "-",
            "Credit (+)": s.received_amount,
            "Debit (-)": "",
            "Notes": s.note or "-",
        }))

    for e in expenses:
        dated.append((e.date, {
            "Type": "Expense",
            "Party": e.vendor_name or e.category,
            "Invoice/Ref": "-",
            "Credit (+)": "",
            "Debit (-)": e.amount,
            "Notes": e.note or "-",
        }))

    for c in credits:
        given = c.type == CreditType.GIVEN
        dated.append((c.date, {
            "Type": "Credit Given" if given else "Credit Taken",
            "Party": c.party,
            "Invoice/Ref": "-",
            "Credit (+)": c.paid_amount if given else "",
            "Debit (-)": "" if given else c.paid_amount,
            "Notes": f"Amount: {c.amount}, Status: {c.status.value}",
        }))

    dated.sort(key=lambda pair: pair[0], reverse=True)
    return [{"Date": format_date(day), **row} for day, row in dated]


def export_sales_csv(sales: Iterable[Sale], path: Optional[PathLike] = None) -> str:
    return write_csv(sale_rows(sales), SALES_HEADERS, path)


def export_expenses_csv(expenses: Iterable[Expense], path: Optional[PathLike] = None) -> str:
    return write_csv(expense_rows(expenses), EXPENSE_HEADERS, path)


def export_credits_csv(credits: Iterable[Credit], path: Optional[PathLike] = None) -> str:
    return write_csv(credit_rows(credits), CREDIT_HEADERS, path)


def export_report_csv(
    sales: Iterable[Sale] = (),
    expenses: Iterable[Expense] = (),
    credits: Iterable[Credit] = (),
    path: Optional[PathLike] = None,
) -> str:
    return write_csv(report_rows(sales, expenses, credits), REPORT_HEADERS, path)
