"""Trend metrics for the dashboard: spend totals, month-over-month change,
most-used category and daily average.

Callers pass in transactions that are already narrowed to a period (usually
"this month" and "last month"). Missing data comes back as ``None`` so the UI
can say "no data" instead of showing a misleading 0.
"""
import datetime as dt
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from pydantic import BaseModel

from models import Category, Transaction
from utils import Number, round_half_up, to_decimal

UNCATEGORIZED_LABEL = "uncategorized"
UNKNOWN_CATEGORY_LABEL = "unknown category"


class TrendSummary(BaseModel):
    has_current_data: bool
    has_previous_data: bool
    current_expense_total: Decimal
    previous_expense_total: Decimal
    month_over_month_change: Optional[float] = None
    most_used_category: Optional[str] = None
    daily_average_expense: Optional[int] = None


class CategoryBreakdownItem(BaseModel):
    category_id: Optional[int]
    name: str
    total: Decimal
    count: int


def expense_total(transactions: Iterable[Transaction]) -> Decimal:
    return sum((t.amount for t in transactions if t.type == "expense"), Decimal("0"))


def month_over_month_change(
    current_total: Number,
    previous_total: Number,
    has_current_data: bool,
    has_previous_data: bool,
) -> Optional[float]:
    """Percent change of spend versus the previous period.

    Returns None when either period had no transactions at all. A previous
    period that existed but spent nothing gives 100 (or 0 if nothing was spent
    now either) instead of dividing by zero.
    """
    if not has_current_data or not has_previous_data:
        return None

    if previous_total == 0:
        return 100.0 if current_total > 0 else 0.0

    current, previous = to_decimal(current_total), to_decimal(previous_total)
    return float((current - previous) / previous * 100)


def resolve_category_name(
    category_id: Optional[int], categories: Sequence[Category]
) -> str:
    if category_id is None:
        return UNCATEGORIZED_LABEL
    for c in categories:
        if c.id == category_id:
            return c.name
    return UNKNOWN_CATEGORY_LABEL


def most_used_category(
    transactions: Iterable[Transaction],
    categories: Sequence[Category],
    has_current_data: bool,
) -> Optional[str]:
    """Name of the category with the most expense transactions.

    Ties go to the category that was seen first in ``transactions``: counts
    live in an insertion-ordered dict and the leader only changes on a
    strictly greater count. Uncategorized expenses are counted as their own
    bucket.
    """
    if not has_current_data:
        return None

    usage: dict[Optional[int], int] = {}
    for t in transactions:
        if t.type != "expense":
            continue
        usage[t.category_id] = usage.get(t.category_id, 0) + 1

    if not usage:
        return None

    leader: Optional[int] = None
    max_count = 0
    for category_id, count in usage.items():
        if count > max_count:
            max_count = count
            leader = category_id

    return resolve_category_name(leader, categories)


def daily_average_expense(
    current_total: Number,
    has_current_data: bool,
    reference_date: dt.date,
) -> Optional[int]:
    """Spend per elapsed day of the reference month, today included."""
    if not has_current_data or current_total <= 0:
        return None

    days_elapsed = (reference_date - reference_date.replace(day=1)).days + 1
    return round_half_up(to_decimal(current_total) / days_elapsed)


def compute_trends(
    current: Sequence[Transaction],
    previous: Sequence[Transaction],
    categories: Sequence[Category],
    reference_date: dt.date,
) -> TrendSummary:
    """Everything the trend widget shows, for one current/previous pair of periods."""
    has_current = len(current) > 0
    has_previous = len(previous) > 0
    current_total = expense_total(current)
    previous_total = expense_total(previous)

    return TrendSummary(
        has_current_data=has_current,
        has_previous_data=has_previous,
        current_expense_total=current_total,
        previous_expense_total=previous_total,
        month_over_month_change=month_over_month_change(
            current_total, previous_total, has_current, has_previous
        ),
        most_used_category=most_used_category(current, categories, has_current),
        daily_average_expense=daily_average_expense(
            current_total, has_current, reference_date
        ),
    )


def category_breakdown(
    transactions: Iterable[Transaction],
    categories: Sequence[Category],
    tx_type: str = "expense",
) -> list[CategoryBreakdownItem]:
    """Totals and counts per category for one transaction type, in first-seen order."""
    totals: dict[Optional[int], list] = {}
    for t in transactions:
        if t.type != tx_type:
            continue
        bucket = totals.setdefault(t.category_id, [Decimal("0"), 0])
        bucket[0] += t.amount
        bucket[1] += 1

    return [
        CategoryBreakdownItem(
            category_id=category_id,
            name=resolve_category_name(category_id, categories),
            total=total,
            count=count,
        )
        for category_id, (total, count) in totals.items()
    ]
