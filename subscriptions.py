"""Subscription cost and billing-date logic.

Costs are projected through a per-frequency multiplier (how many charges a
year brings). Billing dates move by calendar arithmetic, so a monthly charge
on the 31st lands on the last day of a shorter month instead of drifting
into the next one.
"""
import datetime as dt
from decimal import Decimal
from typing import Any, Iterable, Optional, Sequence

from dateutil.relativedelta import relativedelta

from models import Subscription
from utils import Number, month_range, round_half_up, to_decimal

ANNUAL_MULTIPLIERS: dict[str, int] = {
    "daily": 365,
    "weekly": 52,
    "monthly": 12,
    "yearly": 1,
}

_CYCLE_STEPS: dict[str, relativedelta] = {
    "daily": relativedelta(days=1),
    "weekly": relativedelta(days=7),
    "monthly": relativedelta(months=1),
    "yearly": relativedelta(years=1),
}


def annualized_cost(amount: Number, frequency: str) -> Decimal:
    return to_decimal(amount) * ANNUAL_MULTIPLIERS[frequency]


def monthly_equivalent(amount: Number, frequency: str) -> Decimal:
    """Annualized cost spread over 12 months. Not rounded; round when displaying."""
    return annualized_cost(amount, frequency) / 12


def advance_billing_date(current: dt.date, frequency: str) -> dt.date:
    """Date of the next charge, one billing cycle after ``current``."""
    try:
        step = _CYCLE_STEPS[frequency]
    except KeyError:
        raise ValueError(f"Unsupported frequency: {frequency}")
    return current + step


def activate(subscription: Subscription, today: dt.date) -> Subscription:
    """Copy of ``subscription`` switched on, billing again one cycle from today.

    Callers decide what to do with an already active subscription; this
    function does not check.
    """
    return subscription.model_copy(
        update={
            "is_active": True,
            "next_payment_date": advance_billing_date(today, subscription.frequency),
            "end_date": None,
        }
    )


def deactivate(subscription: Subscription, today: dt.date) -> Subscription:
    """Copy of ``subscription`` switched off as of today. Nothing is deleted."""
    return subscription.model_copy(
        update={
            "is_active": False,
            "next_payment_date": None,
            "end_date": today,
        }
    )


def subscription_totals(subscriptions: Iterable[Subscription]) -> dict[str, Decimal]:
    """Monthly and yearly cost of the active subscriptions. Inactive ones add nothing."""
    monthly_total = Decimal("0")
    yearly_total = Decimal("0")
    for sub in subscriptions:
        if not sub.is_active:
            continue
        monthly_total += monthly_equivalent(sub.amount, sub.frequency)
        yearly_total += annualized_cost(sub.amount, sub.frequency)
    return {"monthly_total": monthly_total, "yearly_total": yearly_total}


def subscription_stats(subscriptions: Sequence[Subscription]) -> dict[str, Any]:
    """Aggregate figures for the subscription dashboard, rounded for display."""
    active = [s for s in subscriptions if s.is_active]
    totals = subscription_totals(active)

    by_category: dict[Optional[int], dict[str, Any]] = {}
    for sub in active:
        entry = by_category.setdefault(
            sub.category_id,
            {"count": 0, "monthly": Decimal("0"), "yearly": Decimal("0")},
        )
        entry["count"] += 1
        entry["monthly"] += monthly_equivalent(sub.amount, sub.frequency)
        entry["yearly"] += annualized_cost(sub.amount, sub.frequency)

    category_breakdown = [
        {
            "categoryId": category_id,
            "count": entry["count"],
            "monthlyTotal": round_half_up(entry["monthly"]),
            "yearlyTotal": round_half_up(entry["yearly"]),
            "percentage": entry["count"] / len(active) * 100,
        }
        for category_id, entry in by_category.items()
    ]

    return {
        "totalCount": len(active),
        "monthlyTotal": round_half_up(totals["monthly_total"]),
        "yearlyTotal": round_half_up(totals["yearly_total"]),
        "averageMonthly": (
            round_half_up(totals["monthly_total"] / len(active)) if active else 0
        ),
        "categoryBreakdown": category_breakdown,
        "frequencyBreakdown": {
            frequency: sum(1 for s in active if s.frequency == frequency)
            for frequency in ANNUAL_MULTIPLIERS
        },
    }


def days_until_payment(
    next_payment_date: Optional[dt.date], today: dt.date
) -> Optional[int]:
    if next_payment_date is None:
        return None
    return (next_payment_date - today).days


def upcoming_payments(
    subscriptions: Iterable[Subscription], year: int, month: int
) -> list[Subscription]:
    """Active subscriptions charged within the given calendar month, soonest first."""
    first, last = month_range(year, month)
    due = [
        s
        for s in subscriptions
        if s.is_active
        and s.next_payment_date is not None
        and first <= s.next_payment_date <= last
    ]
    return sorted(due, key=lambda s: s.next_payment_date)


def sort_for_display(subscriptions: Iterable[Subscription]) -> list[Subscription]:
    """Active first, then by nearest next payment. Undated ones go last in each group."""
    return sorted(
        subscriptions,
        key=lambda s: (
            not s.is_active,
            s.next_payment_date is None,
            s.next_payment_date or dt.date.max,
        ),
    )
