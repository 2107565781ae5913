"""Reports over a ledger snapshot."""

from shopledger.reports.summary import (
    DateRange,
    PeriodSummary,
    daily_sales_trend,
    date_range,
    period_summary,
    preset_summary,
)
from shopledger.reports.party_ledger import (
    EntryKind,
    LedgerEntry,
    PartyStatement,
    PartyType,
    party_ledger,
)
from shopledger.reports.inventory import (
    inventory_cost,
    inventory_value,
    low_stock_products,
)
from shopledger.reports.csv_export import (
    export_credits_csv,
    export_expenses_csv,
    export_report_csv,
    export_sales_csv,
)

__all__ = [
    "DateRange",
    "PeriodSummary",
    "daily_sales_trend",
    "date_range",
    "period_summary",
    "preset_summary",
    "EntryKind",
    "LedgerEntry",
    "PartyStatement",
    "PartyType",
    "party_ledger",
    "inventory_cost",
    "inventory_value",
    "low_stock_products",
    "export_credits_csv",
    "export_expenses_csv",
    "export_report_csv",
    "export_sales_csv",
]
