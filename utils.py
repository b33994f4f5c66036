"""Utility functions for summary computation, dates, periods and rounding."""
import calendar
import datetime as dt
import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Iterable, Union

Number = Union[int, float, Decimal]

ISO_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")


def to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() first so floats like 0.015 keep their printed value
    return Decimal(str(value))


def _round_money(dec: Decimal) -> float:
    """Round a Decimal to 2 decimal places with HALF_UP (normal money rounding)."""
    return float(dec.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def round_half_up(value: Number) -> int:
    """Round to the nearest whole currency unit, halves away from zero.

    Python's round() uses banker's rounding (round(0.5) == 0), which would
    make fixtures like 2.5 -> 3 disagree with what the dashboard shows.
    """
    return int(to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def utcnow() -> dt.datetime:
    """Naive UTC timestamp, so created/updated values stay comparable."""
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


def compute_summary(transactions: Iterable[Any]) -> dict[str, float]:
    """Income total, expense total and balance for a list of transactions.

    Each item only needs ``.type`` ("income"/"expense") and ``.amount``.
    """
    income_total_dec = Decimal("0")
    expense_total_dec = Decimal("0")

    for t in transactions:
        if t.type == "income":
            income_total_dec += to_decimal(t.amount)
        elif t.type == "expense":
            expense_total_dec += to_decimal(t.amount)

    # money-safe rounding
    income_total = _round_money(income_total_dec)
    expense_total = _round_money(expense_total_dec)

    balance = income_total - expense_total

    return {
        "income_total": income_total,
        "expense_total": expense_total,
        "balance": _round_money(Decimal(str(balance))),
    }


def normalize_iso_date(value: Any) -> dt.date:
    """Normalize a value to a date or raise a ValueError."""
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value

    if isinstance(value, str) and ISO_DATE_RE.fullmatch(value.strip()):
        try:
            return dt.date.fromisoformat(value.strip())
        except ValueError:
            raise ValueError("Invalid date format. Expected YYYY-MM-DD.")

    raise ValueError("Invalid date format. Expected YYYY-MM-DD.")


def parse_month(value: str) -> tuple[int, int]:
    """Parse 'YYYY-MM' into (year, month) or raise a ValueError."""
    try:
        year_str, month_str = value.strip().split("-")
        year, month = int(year_str), int(month_str)
    except (AttributeError, ValueError):
        raise ValueError("Invalid month format. Expected YYYY-MM.")
    if not 1 <= month <= 12 or len(year_str) != 4:
        raise ValueError("Invalid month format. Expected YYYY-MM.")
    return year, month


def month_range(year: int, month: int) -> tuple[dt.date, dt.date]:
    """First and last day of a calendar month (both inclusive)."""
    last_day = calendar.monthrange(year, month)[1]
    return dt.date(year, month, 1), dt.date(year, month, last_day)


def current_month_range(reference: dt.date) -> tuple[dt.date, dt.date]:
    return month_range(reference.year, reference.month)


def previous_month_range(reference: dt.date) -> tuple[dt.date, dt.date]:
    """Calendar month before the one containing ``reference``."""
    last_of_previous = reference.replace(day=1) - dt.timedelta(days=1)
    return month_range(last_of_previous.year, last_of_previous.month)
