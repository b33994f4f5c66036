"""Filter, sort and paginate transaction lists for the list views.

Every function returns a new list and leaves its input untouched. Parameter
validation (page >= 1, 1 <= limit <= 100, enum membership) happens in
``schemas.TransactionListParams`` before anything gets here.
"""
import datetime as dt
import math
from typing import Any, Callable, Iterable, Optional, Sequence

from pydantic import BaseModel

from models import Transaction
from schemas import TransactionListParams

_SORT_KEYS: dict[str, Callable[[Transaction], Any]] = {
    "transactionDate": lambda t: t.transaction_date,
    "amount": lambda t: t.amount,
    "createdAt": lambda t: t.created_at,
}


def filter_transactions(
    transactions: Iterable[Transaction],
    date_from: Optional[dt.date] = None,
    date_to: Optional[dt.date] = None,
    search: Optional[str] = None,
    tx_type: Optional[str] = None,
    category_id: Optional[int] = None,
) -> list[Transaction]:
    """Filter transactions by date range, description text, type and category.

    All given criteria must hold (AND); ``None`` means "don't filter on this".
    Date bounds are inclusive.
    """
    q = (search or "").lower()
    results: list[Transaction] = []

    for t in transactions:

        if tx_type and t.type != tx_type:
            continue

        # an uncategorized transaction never matches a category filter
        if category_id is not None and t.category_id != category_id:
            continue

        if date_from and t.transaction_date < date_from:
            continue
        if date_to and t.transaction_date > date_to:
            continue

        if q and q not in (t.description or "").lower():
            continue

        results.append(t)

    return results


def sort_transactions(
    transactions: Iterable[Transaction],
    sort_by: str = "transactionDate",
    sort_order: str = "desc",
) -> list[Transaction]:
    """Stable sort on one field. Equal keys keep their input order in both directions."""
    key = _SORT_KEYS[sort_by]
    return sorted(transactions, key=key, reverse=(sort_order == "desc"))


class Page(BaseModel):
    """One page of records plus the metadata the list view needs."""
    items: list[Any]
    current_page: int
    limit: int
    total_count: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool

    def pagination(self) -> dict[str, Any]:
        return {
            "currentPage": self.current_page,
            "totalPages": self.total_pages,
            "totalCount": self.total_count,
            "hasNextPage": self.has_next_page,
            "hasPrevPage": self.has_prev_page,
            "limit": self.limit,
        }


def paginate(records: Sequence[Any], page: int = 1, limit: int = 20) -> Page:
    """Slice out a 1-indexed page. Pages past the end come back empty, not as errors."""
    total_count = len(records)
    total_pages = math.ceil(total_count / limit)
    offset = (page - 1) * limit

    return Page(
        items=list(records[offset:offset + limit]),
        current_page=page,
        limit=limit,
        total_count=total_count,
        total_pages=total_pages,
        has_next_page=page < total_pages,
        has_prev_page=page > 1,
    )


def query_transactions(
    transactions: Iterable[Transaction], params: TransactionListParams
) -> Page:
    """Run filter -> sort -> paginate for a validated ``TransactionListParams``."""
    filtered = filter_transactions(
        transactions,
        date_from=params.date_from,
        date_to=params.date_to,
        search=params.search,
        tx_type=params.type,
        category_id=params.category_id,
    )
    ordered = sort_transactions(filtered, params.sort_by, params.sort_order)
    return paginate(ordered, params.page, params.limit)
