"""Main FastAPI application for the Household Tracker."""
import datetime as dt
from typing import Any, Optional

import structlog
from fastapi import FastAPI, HTTPException, Depends, Query, status
from prometheus_fastapi_instrumentator import Instrumentator
from pydantic import ValidationError

from analytics import category_breakdown, compute_trends
from config import get_settings
from logging_config import configure_logging
from models import Subscription, Transaction
from query import filter_transactions, query_transactions
from schemas import (
    SubscriptionCreate,
    SubscriptionUpdate,
    TransactionCreate,
    TransactionListParams,
    TransactionUpdate,
    validation_details,
)
from store import InMemoryStore
from subscriptions import (
    activate,
    annualized_cost,
    days_until_payment,
    deactivate,
    monthly_equivalent,
    sort_for_display,
    subscription_stats,
    upcoming_payments,
)
from utils import (
    compute_summary,
    current_month_range,
    month_range,
    normalize_iso_date,
    parse_month,
    previous_month_range,
)

settings = get_settings()
configure_logging(settings.log_level, settings.log_json)
logger = structlog.get_logger(__name__)

app = FastAPI(title="Household Tracker", version=settings.app_version)
# Prometheus metrics at /metrics
Instrumentator().instrument(app).expose(app)

store = InMemoryStore()


@app.get("/")
def root():
    return {"message": "Household Tracker API is running. See /health for status."}


@app.get("/health")
def health():
    return {
        "status": "ok",
        "timestamp": dt.datetime.now(dt.timezone.utc).isoformat(),
        "app": settings.app_name,
        "version": settings.app_version,
    }


# The store is a dependency so tests (and anything embedding the app) can swap it.
def get_store() -> InMemoryStore:
    """Provide the record store for a request."""
    return store


def get_today() -> dt.date:
    """Today's date; overridden in tests to pin "this month"."""
    return dt.date.today()


def bad_request(error: str, details: Any = None) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail={"error": error, "details": details},
    )


def resolve_month(month: Optional[str], today: dt.date) -> tuple[int, int]:
    """'YYYY-MM' from the query string, or the current month when absent."""
    if month is None:
        return today.year, today.month
    try:
        return parse_month(month)
    except ValueError as exc:
        raise bad_request("Invalid month parameter", str(exc))


def check_type(tx_type: Optional[str]) -> None:
    if tx_type is not None and tx_type not in ("income", "expense"):
        raise bad_request("Invalid type parameter", "type must be 'income' or 'expense'")


def check_category(store: InMemoryStore, category_id: Optional[int], tx_type: str) -> None:
    """A given category must exist and be of the same type as the transaction."""
    if category_id is None:
        return
    category = store.get_category(category_id)
    if not category:
        raise HTTPException(status_code=400, detail="Category not found")
    if category.type != tx_type:
        raise HTTPException(
            status_code=400,
            detail="Category type does not match transaction type",
        )


def get_subscription_or_404(store: InMemoryStore, subscription_id: int) -> Subscription:
    """Fetch a subscription or raise a 404 if missing."""
    subscription = store.get_subscription(subscription_id)
    if not subscription:
        raise HTTPException(status_code=404, detail="Subscription not found")
    return subscription


def transactions_in_range(
    store: InMemoryStore, first: dt.date, last: dt.date
) -> list[Transaction]:
    return filter_transactions(store.list_transactions(), date_from=first, date_to=last)


@app.on_event("startup")
def on_startup() -> None:
    """
    Run once when the app starts:
    - Load the seed file, if one is configured
    - Seed default categories when none exist
    """
    if settings.seed_file:
        store.load_seed(settings.seed_file)
    if settings.seed_default_categories:
        store.seed_default_categories()
    logger.info("app_started", app=settings.app_name, version=settings.app_version)


# CATEGORY ENDPOINTS

@app.get("/api/categories")
def list_categories(
    type: Optional[str] = None,
    include_inactive: bool = False,
    store: InMemoryStore = Depends(get_store),
):
    """List categories ordered by display order. Inactive ones only on request."""
    check_type(type)
    rows = store.list_categories(tx_type=type, include_inactive=include_inactive)
    return {"data": [c.model_dump() for c in rows], "count": len(rows)}


# TRANSACTION ENDPOINTS

# Every query parameter arrives as a plain string and is validated in one place,
# so any bad value answers 400 with the list of problems.
@app.get("/api/transactions")
def list_transactions(
    type: Optional[str] = None,
    category_id: Optional[str] = None,
    date_from: Optional[str] = Query(default=None, alias="from"),
    date_to: Optional[str] = Query(default=None, alias="to"),
    search: Optional[str] = None,
    sort_by: Optional[str] = None,
    sort_order: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    store: InMemoryStore = Depends(get_store),
):
    """Filtered, sorted, paginated transaction list."""
    raw = {
        "type": type,
        "category_id": category_id,
        "from": date_from,
        "to": date_to,
        "search": search,
        "sort_by": sort_by,
        "sort_order": sort_order,
        "page": page,
        "limit": limit if limit is not None else settings.default_page_size,
    }
    try:
        params = TransactionListParams.model_validate(
            {k: v for k, v in raw.items() if v is not None}
        )
    except ValidationError as exc:
        raise bad_request("Invalid query parameters", validation_details(exc))

    if params.limit > settings.max_page_size:
        raise bad_request(
            "Invalid query parameters",
            [{"field": "limit", "message": f"limit must be at most {settings.max_page_size}"}],
        )

    result = query_transactions(store.list_transactions(), params)
    logger.debug(
        "transactions_listed",
        page=result.current_page,
        returned=len(result.items),
        total=result.total_count,
    )

    return {
        "data": [t.model_dump() for t in result.items],
        "count": len(result.items),
        "pagination": result.pagination(),
        "filters": params.filters(),
        "sort": params.sort(),
    }


@app.get("/api/transactions/{transaction_id}")
def get_transaction(transaction_id: int, store: InMemoryStore = Depends(get_store)):
    """Fetch one transaction."""
    transaction = store.get_transaction(transaction_id)
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return transaction.model_dump()


# Create a transaction. If a category is given it must exist and be of the same type.
@app.post("/api/transactions", status_code=201)
def create_transaction(
    payload: TransactionCreate, store: InMemoryStore = Depends(get_store)
):
    """Create an income or expense transaction."""
    check_category(store, payload.category_id, payload.type)

    row = store.add_transaction(payload.model_dump())
    logger.info("transaction_created", transaction_id=row.id, type=row.type)
    return row.model_dump()


# Partial update: only the fields sent are changed; the category rule is checked
# against the record as it will be after the change.
@app.put("/api/transactions/{transaction_id}")
def update_transaction(
    transaction_id: int,
    payload: TransactionUpdate,
    store: InMemoryStore = Depends(get_store),
):
    """Edit a transaction."""
    transaction = store.get_transaction(transaction_id)
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")

    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise bad_request("No fields to update")

    check_category(
        store,
        changes.get("category_id", transaction.category_id),
        changes.get("type", transaction.type),
    )

    row = store.update_transaction(transaction_id, changes)
    logger.info("transaction_updated", transaction_id=row.id, fields=sorted(changes))
    return row.model_dump()


@app.delete("/api/transactions/{transaction_id}", status_code=204)
def delete_transaction(transaction_id: int, store: InMemoryStore = Depends(get_store)):
    """Delete a transaction."""
    if not store.delete_transaction(transaction_id):
        raise HTTPException(status_code=404, detail="Transaction not found")
    logger.info("transaction_deleted", transaction_id=transaction_id)
    return


# SUMMARY / STATS

@app.get("/api/stats/summary")
def get_summary(
    month: Optional[str] = None,
    store: InMemoryStore = Depends(get_store),
    today: dt.date = Depends(get_today),
):
    """Income/expense totals and balance for one calendar month."""
    year, month_num = resolve_month(month, today)
    first, last = month_range(year, month_num)
    summary = compute_summary(transactions_in_range(store, first, last))
    return {"month": f"{year:04d}-{month_num:02d}", **summary}


@app.get("/api/stats/trends")
def get_trends(
    date: Optional[str] = None,
    store: InMemoryStore = Depends(get_store),
    today: dt.date = Depends(get_today),
):
    """This month versus last month, as of the reference date (default today)."""
    try:
        reference = normalize_iso_date(date) if date is not None else today
    except ValueError as exc:
        raise bad_request("Invalid date parameter", str(exc))

    current = transactions_in_range(store, *current_month_range(reference))
    previous = transactions_in_range(store, *previous_month_range(reference))
    trends = compute_trends(current, previous, store.all_categories(), reference)
    return {"reference_date": reference, **trends.model_dump()}


@app.get("/api/stats/categories")
def get_category_stats(
    month: Optional[str] = None,
    type: str = "expense",
    store: InMemoryStore = Depends(get_store),
    today: dt.date = Depends(get_today),
):
    """Per-category totals for one month and transaction type."""
    check_type(type)
    year, month_num = resolve_month(month, today)
    first, last = month_range(year, month_num)
    items = category_breakdown(
        transactions_in_range(store, first, last), store.all_categories(), type
    )
    return {
        "month": f"{year:04d}-{month_num:02d}",
        "type": type,
        "data": [item.model_dump() for item in items],
    }


# SUBSCRIPTION ENDPOINTS

def subscription_view(subscription: Subscription, today: dt.date) -> dict[str, Any]:
    return {
        **subscription.model_dump(),
        "monthly_amount": monthly_equivalent(subscription.amount, subscription.frequency),
        "annual_amount": annualized_cost(subscription.amount, subscription.frequency),
        "days_until_payment": days_until_payment(subscription.next_payment_date, today),
    }


@app.get("/api/subscriptions")
def list_subscriptions(
    status: str = "all",
    store: InMemoryStore = Depends(get_store),
    today: dt.date = Depends(get_today),
):
    """Subscriptions, active first and then by nearest payment."""
    if status not in ("all", "active", "inactive"):
        raise bad_request(
            "Invalid status parameter", "status must be 'all', 'active' or 'inactive'"
        )

    rows = store.list_subscriptions()
    if status == "active":
        rows = [s for s in rows if s.is_active]
    elif status == "inactive":
        rows = [s for s in rows if not s.is_active]

    ordered = sort_for_display(rows)
    return {"data": [subscription_view(s, today) for s in ordered], "count": len(ordered)}


# Create a subscription. A given category must exist; income categories are allowed
# but logged, since a recurring charge is normally an expense.
@app.post("/api/subscriptions", status_code=201)
def create_subscription(
    payload: SubscriptionCreate,
    store: InMemoryStore = Depends(get_store),
    today: dt.date = Depends(get_today),
):
    """Register a recurring charge."""
    if payload.category_id is not None:
        category = store.get_category(payload.category_id)
        if not category:
            raise HTTPException(status_code=400, detail="Category not found")
        if category.type == "income":
            logger.warning(
                "subscription_with_income_category",
                category_id=category.id,
                name=payload.name,
            )

    row = store.add_subscription(payload.model_dump())
    logger.info("subscription_created", subscription_id=row.id, frequency=row.frequency)
    return subscription_view(row, today)


@app.get("/api/subscriptions/stats")
def get_subscription_stats(store: InMemoryStore = Depends(get_store)):
    """Monthly/yearly cost of the active subscriptions with breakdowns."""
    return subscription_stats(store.list_subscriptions())


@app.get("/api/subscriptions/upcoming")
def get_upcoming_payments(
    month: Optional[str] = None,
    store: InMemoryStore = Depends(get_store),
    today: dt.date = Depends(get_today),
):
    """Active subscriptions due in the given month (default: this month)."""
    year, month_num = resolve_month(month, today)
    due = upcoming_payments(store.list_subscriptions(), year, month_num)
    return {
        "data": [subscription_view(s, today) for s in due],
        "count": len(due),
        "totalAmount": sum(s.amount for s in due),
        "targetMonth": f"{year:04d}-{month_num:02d}",
    }


@app.get("/api/subscriptions/{subscription_id}")
def get_subscription(
    subscription_id: int,
    store: InMemoryStore = Depends(get_store),
    today: dt.date = Depends(get_today),
):
    """Fetch one subscription."""
    return subscription_view(get_subscription_or_404(store, subscription_id), today)


@app.put("/api/subscriptions/{subscription_id}")
def update_subscription(
    subscription_id: int,
    payload: SubscriptionUpdate,
    store: InMemoryStore = Depends(get_store),
    today: dt.date = Depends(get_today),
):
    """Edit a subscription. Only the fields sent are changed."""
    get_subscription_or_404(store, subscription_id)

    changes = payload.model_dump(exclude_unset=True)
    if not changes:
        raise bad_request("No fields to update")
    if changes.get("category_id") is not None and not store.get_category(changes["category_id"]):
        raise HTTPException(status_code=400, detail="Category not found")

    try:
        updated = store.update_subscription(subscription_id, changes)
    except ValidationError as exc:
        raise bad_request("Invalid subscription", validation_details(exc))

    logger.info("subscription_updated", subscription_id=updated.id, fields=sorted(changes))
    return subscription_view(updated, today)


@app.post("/api/subscriptions/{subscription_id}/activate")
def activate_subscription(
    subscription_id: int,
    store: InMemoryStore = Depends(get_store),
    today: dt.date = Depends(get_today),
):
    """Switch a subscription back on; billing restarts one cycle from today."""
    subscription = get_subscription_or_404(store, subscription_id)
    if subscription.is_active:
        raise HTTPException(status_code=409, detail="Subscription is already active")

    updated = store.save_subscription(activate(subscription, today))
    logger.info(
        "subscription_activated",
        subscription_id=updated.id,
        next_payment_date=updated.next_payment_date.isoformat(),
    )
    return subscription_view(updated, today)


@app.post("/api/subscriptions/{subscription_id}/deactivate")
def deactivate_subscription(
    subscription_id: int,
    store: InMemoryStore = Depends(get_store),
    today: dt.date = Depends(get_today),
):
    """Switch a subscription off. It stays in the list as inactive."""
    subscription = get_subscription_or_404(store, subscription_id)
    if not subscription.is_active:
        raise HTTPException(status_code=409, detail="Subscription is already inactive")

    updated = store.save_subscription(deactivate(subscription, today))
    logger.info("subscription_deactivated", subscription_id=updated.id)
    return subscription_view(updated, today)
