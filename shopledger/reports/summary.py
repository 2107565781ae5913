"""
Period Summaries

DESIGN DECISION: Reports are DETERMINISTIC folds over a snapshot.
They never read stored totals; every figure is recomputed from the
entities inside the requested date range.
"""

import calendar
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from shopledger.ledger.metrics import money_sum
from shopledger.models.ledger import Credit, CreditType, LedgerSnapshot, Money, ZERO


class DateRange(str, Enum):
    """Preset report periods."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ALL = "all"


def _month_back(day: date) -> date:
    year, month = (day.year, day.month - 1) if day.month > 1 else (day.year - 1, 12)
    last_day = calendar.monthrange(year, month)[1]
    return day.replace(year=year, month=month, day=min(day.day, last_day))


def date_range(
    preset: DateRange,
    today: Optional[date] = None,
) -> tuple[Optional[date], date]:
    """
    Resolve a preset to (start, end). Start is None for ALL.

    WEEKLY reaches back 7 days and MONTHLY one calendar month,
    both inclusive of today.
    """
    end = today or date.today()
    preset = DateRange(preset)
    if preset == DateRange.DAILY:
        return end, end
    if preset == DateRange.WEEKLY:
        return end - timedelta(days=7), end
    if preset == DateRange.MONTHLY:
        return _month_back(end), end
    return None, end


def describe_range(date_from: Optional[date], date_to: Optional[date]) -> str:
    """Human-readable period label."""
    if date_from and date_to:
        if date_from == date_to:
            return f"on {date_from.strftime('%d %b %Y')}"
        elif date_from.year == date_to.year:
            return f"from {date_from.strftime('%d %b')} to {date_to.strftime('%d %b %Y')}"
        else:
            return f"from {date_from.strftime('%d %b %Y')} to {date_to.strftime('%d %b %Y')}"
    elif date_from:
        return f"from {date_from.strftime('%d %b %Y')}"
    elif date_to:
        return f"until {date_to.strftime('%d %b %Y')}"
    return "all time"


class PeriodSummary(BaseModel):
    """Income, outflow and profit for one period."""

    start: Optional[date] = None
    end: Optional[date] = None
    description: str = ""

    sales_count: int = 0
    expense_count: int = 0

    total_sales: Money = ZERO
    total_expenses: Money = ZERO
    credit_received: Money = ZERO
    credit_paid: Money = ZERO
    total_returns: Money = ZERO

    total_income: Money = ZERO
    total_outflow: Money = ZERO
    net_profit: Money = ZERO
    profit_margin: Money = ZERO

    expenses_by_category: dict[str, Money] = Field(default_factory=dict)

    @property
    def is_loss(self) -> bool:
        return self.net_profit < 0


def _credit_paid_between(
    credit: Credit,
    start: Optional[date],
    end: Optional[date],
) -> Decimal:
    """
    Money moved on a credit inside the period.

    Payments count on their own date; a legacy credit without history
    counts its paid amount on the credit date.
    """
    def inside(day: date) -> bool:
        return (start is None or day >= start) and (end is None or day <= end)

    if credit.payments:
        return money_sum(p.amount for p in credit.payments if inside(p.date))
    return credit.paid_amount if inside(credit.date) else ZERO


def period_summary(
    snapshot: LedgerSnapshot,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> PeriodSummary:
    """
    Summarize a period (inclusive bounds; None means open-ended).

    total income = sales received + credit payments received
    total outflow = expenses + credit payments made + refunds
    """
    def inside(day: date) -> bool:
        return (start is None or day >= start) and (end is None or day <= end)

    sales = [s for s in snapshot.sales if inside(s.date)]
    expenses = [e for e in snapshot.expenses if inside(e.date)]
    returns = [r for r in snapshot.returns if inside(r.date)]

    total_sales = money_sum(s.received_amount for s in sales)
    total_expenses = money_sum(e.amount for e in expenses)
    total_returns = money_sum(r.amount for r in returns)
    credit_received = money_sum(
        _credit_paid_between(c, start, end)
        for c in snapshot.credits if c.type == CreditType.GIVEN
    )
    credit_paid = money_sum(
        _credit_paid_between(c, start, end)
        for c in snapshot.credits if c.type == CreditType.TAKEN
    )

    total_income = total_sales + credit_received
    total_outflow = total_expenses + credit_paid + total_returns
    net_profit = total_income - total_outflow

    margin = ZERO
    if total_income > 0:
        margin = (net_profit / total_income * 100).quantize(
            Decimal("0.1"), rounding=ROUND_HALF_UP
        )

    by_category: dict[str, Decimal] = {}
    for expense in expenses:
        by_category[expense.category] = by_category.get(expense.category, ZERO) + expense.amount

    return PeriodSummary(
        start=start,
        end=end,
        description=describe_range(start, end),
        sales_count=len(sales),
        expense_count=len(expenses),
        total_sales=total_sales,
        total_expenses=total_expenses,
        credit_received=credit_received,
        credit_paid=credit_paid,
        total_returns=total_returns,
        total_income=total_income,
        total_outflow=total_outflow,
        net_profit=net_profit,
        profit_margin=margin,
        expenses_by_category=by_category,
    )


def preset_summary(
    snapshot: LedgerSnapshot,
    preset: DateRange,
    today: Optional[date] = None,
) -> PeriodSummary:
    start, end = date_range(preset, today)
    return period_summary(snapshot, start, end)


def daily_sales_trend(
    snapshot: LedgerSnapshot,
    days: int = 7,
    today: Optional[date] = None,
) -> list[tuple[date, Decimal]]:
    """Received sales amount per day for the last `days` days, oldest first."""
    end = today or date.today()
    trend = []
    for offset in range(days - 1, -1, -1):
        day = end - timedelta(days=offset)
        trend.append((day, money_sum(s.received_amount for s in snapshot.sales if s.date == day)))
    return trend
