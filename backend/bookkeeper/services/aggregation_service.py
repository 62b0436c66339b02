# Overview: Pure folds of a transaction list into dashboard and analytics metrics.

"""
Ledger aggregation

All functions here take immutable TransactionSnapshot sequences and return new
value objects. Nothing is fetched, cached or mutated; the same input and
window always produce identical output.

Window semantics
- resolve_window maps 1M/3M/6M/YTD/ALL to a start datetime; ALL is the epoch.
- A transaction is inside the window when its date is strictly after start.
- Growth splits the window at (start + now) / 2; dates strictly after the
  midpoint are "recent", the rest "previous".

Ranking
- Top-N lists sort descending by amount with a stable sort, so equal amounts
  keep first-encountered order. Products, customers, expense categories and
  suppliers are truncated to 5; time slots and weekdays return every bucket.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Sequence

from ..errors import InvalidInputError
from ..money import ZERO, money_str
from ..time_utils import EPOCH, to_day
from .ledger_types import TransactionSnapshot


RANGE_1M = "1M"
RANGE_3M = "3M"
RANGE_6M = "6M"
RANGE_YTD = "YTD"
RANGE_ALL = "ALL"
VALID_RANGES = [RANGE_1M, RANGE_3M, RANGE_6M, RANGE_YTD, RANGE_ALL]

TOP_N = 5

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


# =============================================================================
# WINDOWS
# =============================================================================

def subtract_months(value: datetime, months: int) -> datetime:
    """Calendar month subtraction, clamping the day (Mar 31 - 1M = Feb 28/29)."""
    month_index = value.month - 1 - months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def resolve_window(range_key: str | None, now: datetime) -> tuple[datetime, datetime]:
    """Return (start, now) for a range key. None falls back to 3M."""
    key = (range_key or RANGE_3M).upper()
    if key == RANGE_1M:
        start = subtract_months(now, 1)
    elif key == RANGE_3M:
        start = subtract_months(now, 3)
    elif key == RANGE_6M:
        start = subtract_months(now, 6)
    elif key == RANGE_YTD:
        start = now.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
    elif key == RANGE_ALL:
        start = EPOCH
    else:
        raise InvalidInputError(f"range must be one of {VALID_RANGES}")
    return start, now


def midpoint(start: datetime, now: datetime) -> datetime:
    return start + (now - start) / 2


def in_window(transactions: Iterable[TransactionSnapshot], start: datetime) -> list[TransactionSnapshot]:
    return [t for t in transactions if t.date > start]


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass(frozen=True)
class ProductPerformance:
    name: str
    quantity: int
    revenue: Decimal

    def to_dict(self) -> dict:
        return {"name": self.name, "quantity": self.quantity, "revenue": money_str(self.revenue)}


@dataclass(frozen=True)
class CustomerPerformance:
    name: str
    transactions: int
    revenue: Decimal

    def to_dict(self) -> dict:
        return {"name": self.name, "transactions": self.transactions, "revenue": money_str(self.revenue)}


@dataclass(frozen=True)
class AmountBreakdown:
    name: str
    amount: Decimal

    def to_dict(self) -> dict:
        return {"name": self.name, "amount": money_str(self.amount)}


@dataclass(frozen=True)
class TimeSlot:
    time: str
    sales: Decimal
    count: int

    def to_dict(self) -> dict:
        return {"time": self.time, "sales": money_str(self.sales), "count": self.count}


@dataclass(frozen=True)
class DaySales:
    day: str
    sales: Decimal

    def to_dict(self) -> dict:
        return {"day": self.day, "sales": money_str(self.sales)}


@dataclass(frozen=True)
class DailyPoint:
    date: str
    sales: Decimal
    expenses: Decimal
    profit: Decimal

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "sales": money_str(self.sales),
            "expenses": money_str(self.expenses),
            "profit": money_str(self.profit),
        }


@dataclass(frozen=True)
class DashboardMetrics:
    total_sales: Decimal
    total_expenses: Decimal
    sales_growth: float
    profit_margin: float
    total_orders: int

    def to_dict(self) -> dict:
        return {
            "total_sales": money_str(self.total_sales),
            "total_expenses": money_str(self.total_expenses),
            "sales_growth": round(self.sales_growth, 2),
            "profit_margin": round(self.profit_margin, 2),
            "total_orders": self.total_orders,
        }


@dataclass(frozen=True)
class LedgerMetrics:
    start: datetime
    end: datetime
    total_revenue: Decimal
    total_expenses: Decimal
    total_profit: Decimal
    total_orders: int
    average_order_value: Decimal
    profit_margin: float
    sales_growth: float
    repeat_customer_rate: float
    top_products: list[ProductPerformance] = field(default_factory=list)
    top_customers: list[CustomerPerformance] = field(default_factory=list)
    top_expenses: list[AmountBreakdown] = field(default_factory=list)
    top_suppliers: list[AmountBreakdown] = field(default_factory=list)
    best_sales_times: list[TimeSlot] = field(default_factory=list)
    sales_by_day: list[DaySales] = field(default_factory=list)
    sales_by_payment_method: list[AmountBreakdown] = field(default_factory=list)
    daily: list[DailyPoint] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "metrics": {
                "total_revenue": money_str(self.total_revenue),
                "total_expenses": money_str(self.total_expenses),
                "total_profit": money_str(self.total_profit),
                "total_orders": self.total_orders,
                "average_order_value": money_str(self.average_order_value),
                "profit_margin": round(self.profit_margin, 2),
                "sales_growth": round(self.sales_growth, 2),
                "repeat_customer_rate": round(self.repeat_customer_rate, 2),
            },
            "top_products": [p.to_dict() for p in self.top_products],
            "top_customers": [c.to_dict() for c in self.top_customers],
            "top_expenses": [e.to_dict() for e in self.top_expenses],
            "top_suppliers": [s.to_dict() for s in self.top_suppliers],
            "best_sales_times": [t.to_dict() for t in self.best_sales_times],
            "sales_by_day": [d.to_dict() for d in self.sales_by_day],
            "sales_by_payment_method": [m.to_dict() for m in self.sales_by_payment_method],
            "daily": [d.to_dict() for d in self.daily],
        }


# =============================================================================
# METRIC FORMULAS
# =============================================================================

def _total(transactions: Iterable[TransactionSnapshot]) -> Decimal:
    return sum((t.total for t in transactions), ZERO)


def percentage_change(recent: Decimal, previous: Decimal) -> float:
    """(recent - previous) / previous * 100, or 0 when previous is 0."""
    if previous <= 0:
        return 0.0
    return float((recent - previous) / previous * 100)


def profit_margin(total_sales: Decimal, total_expenses: Decimal) -> float:
    if total_sales <= 0:
        return 0.0
    return float((total_sales - total_expenses) / total_sales * 100)


def sales_growth(sales: Sequence[TransactionSnapshot], start: datetime, now: datetime) -> float:
    mid = midpoint(start, now)
    recent = _total(t for t in sales if t.date > mid)
    previous = _total(t for t in sales if t.date <= mid)
    return percentage_change(recent, previous)


def repeat_customer_rate(sales: Sequence[TransactionSnapshot]) -> float:
    """
    Unique contacts divided by sale count, times 100.

    Sales without a contact count as one shared "no contact" key. A lower value
    means more repeat business despite the name.
    """
    if not sales:
        return 0.0
    unique_contacts = len({t.contact_id for t in sales})
    return unique_contacts / len(sales) * 100


def _ranked(buckets: dict, key, limit: int | None) -> list:
    # sorted() is stable: dict insertion order is first-encountered order
    ranked = sorted(buckets.values(), key=key, reverse=True)
    return ranked[:limit] if limit is not None else ranked


def top_products(sales: Sequence[TransactionSnapshot], limit: int = TOP_N) -> list[ProductPerformance]:
    buckets: dict[str, list] = {}
    for txn in sales:
        for item in txn.items:
            bucket = buckets.setdefault(item.name, [item.name, 0, ZERO])
            bucket[1] += item.quantity_selected
            bucket[2] += item.subtotal
    rows = _ranked(buckets, key=lambda b: b[2], limit=limit)
    return [ProductPerformance(name=b[0], quantity=b[1], revenue=b[2]) for b in rows]


def top_customers(sales: Sequence[TransactionSnapshot], limit: int = TOP_N) -> list[CustomerPerformance]:
    buckets: dict[str, list] = {}
    for txn in sales:
        if not txn.contact_name:
            continue
        bucket = buckets.setdefault(txn.contact_name, [txn.contact_name, 0, ZERO])
        bucket[1] += 1
        bucket[2] += txn.total
    rows = _ranked(buckets, key=lambda b: b[2], limit=limit)
    return [CustomerPerformance(name=b[0], transactions=b[1], revenue=b[2]) for b in rows]


def top_expense_categories(expenses: Sequence[TransactionSnapshot], limit: int = TOP_N) -> list[AmountBreakdown]:
    buckets: dict[str, list] = {}
    for txn in expenses:
        for item in txn.items:
            bucket = buckets.setdefault(item.name, [item.name, ZERO])
            bucket[1] += item.subtotal
    rows = _ranked(buckets, key=lambda b: b[1], limit=limit)
    return [AmountBreakdown(name=b[0], amount=b[1]) for b in rows]


def top_suppliers(expenses: Sequence[TransactionSnapshot], limit: int = TOP_N) -> list[AmountBreakdown]:
    buckets: dict[str, list] = {}
    for txn in expenses:
        if not txn.contact_name:
            continue
        bucket = buckets.setdefault(txn.contact_name, [txn.contact_name, ZERO])
        bucket[1] += txn.total
    rows = _ranked(buckets, key=lambda b: b[1], limit=limit)
    return [AmountBreakdown(name=b[0], amount=b[1]) for b in rows]


def sales_by_time_of_day(sales: Sequence[TransactionSnapshot]) -> list[TimeSlot]:
    buckets: dict[str, list] = {}
    for txn in sales:
        slot = f"{txn.date.hour:02d}:00"
        bucket = buckets.setdefault(slot, [slot, ZERO, 0])
        bucket[1] += txn.total
        bucket[2] += 1
    rows = _ranked(buckets, key=lambda b: b[1], limit=None)
    return [TimeSlot(time=b[0], sales=b[1], count=b[2]) for b in rows]


def sales_by_weekday(sales: Sequence[TransactionSnapshot]) -> list[DaySales]:
    buckets: dict[str, list] = {}
    for txn in sales:
        day = WEEKDAYS[txn.date.weekday()]
        bucket = buckets.setdefault(day, [day, ZERO])
        bucket[1] += txn.total
    rows = _ranked(buckets, key=lambda b: b[1], limit=None)
    return [DaySales(day=b[0], sales=b[1]) for b in rows]


def sales_by_payment_method(sales: Sequence[TransactionSnapshot]) -> list[AmountBreakdown]:
    buckets: dict[str, list] = {}
    for txn in sales:
        bucket = buckets.setdefault(txn.payment_method, [txn.payment_method, ZERO])
        bucket[1] += txn.total
    rows = _ranked(buckets, key=lambda b: b[1], limit=None)
    return [AmountBreakdown(name=b[0], amount=b[1]) for b in rows]


def daily_series(transactions: Sequence[TransactionSnapshot]) -> list[DailyPoint]:
    """Per-day sales/expenses/profit, ordered by date."""
    buckets: dict[str, list] = {}
    for txn in transactions:
        bucket = buckets.setdefault(to_day(txn.date), [ZERO, ZERO])
        if txn.is_sale:
            bucket[0] += txn.total
        else:
            bucket[1] += txn.total
    return [
        DailyPoint(date=day, sales=values[0], expenses=values[1], profit=values[0] - values[1])
        for day, values in sorted(buckets.items())
    ]


# =============================================================================
# BUNDLES
# =============================================================================

def dashboard_metrics(transactions: Iterable[TransactionSnapshot], start: datetime, now: datetime) -> DashboardMetrics:
    window = in_window(transactions, start)
    sales = [t for t in window if t.is_sale]
    expenses = [t for t in window if t.is_expense]
    total_sales = _total(sales)
    total_expenses = _total(expenses)

    return DashboardMetrics(
        total_sales=total_sales,
        total_expenses=total_expenses,
        sales_growth=sales_growth(sales, start, now),
        profit_margin=profit_margin(total_sales, total_expenses),
        total_orders=len(sales),
    )


def aggregate(transactions: Iterable[TransactionSnapshot], start: datetime, now: datetime) -> LedgerMetrics:
    """Full analytics bundle for the window (start, now]."""
    window = in_window(transactions, start)
    sales = [t for t in window if t.is_sale]
    expenses = [t for t in window if t.is_expense]
    total_sales = _total(sales)
    total_expenses = _total(expenses)
    average = (total_sales / len(sales)) if sales else ZERO

    return LedgerMetrics(
        start=start,
        end=now,
        total_revenue=total_sales,
        total_expenses=total_expenses,
        total_profit=total_sales - total_expenses,
        total_orders=len(sales),
        average_order_value=average,
        profit_margin=profit_margin(total_sales, total_expenses),
        sales_growth=sales_growth(sales, start, now),
        repeat_customer_rate=repeat_customer_rate(sales),
        top_products=top_products(sales),
        top_customers=top_customers(sales),
        top_expenses=top_expense_categories(expenses),
        top_suppliers=top_suppliers(expenses),
        best_sales_times=sales_by_time_of_day(sales),
        sales_by_day=sales_by_weekday(sales),
        sales_by_payment_method=sales_by_payment_method(sales),
        daily=daily_series(window),
    )
