"""In-memory record store handed to the routes through ``main.get_store``.

Reads return tuples, so a request works on its own snapshot and the
query/analytics functions never see a list that changes under them.
Insertion order is kept; tie-breaking in the analytics depends on it.
"""
import json
from pathlib import Path
from typing import Any, Iterable, Optional

import structlog

from models import Category, Subscription, Transaction
from utils import utcnow

logger = structlog.get_logger(__name__)

DEFAULT_CATEGORIES = [
    ("Food", "expense"),
    ("Daily Goods", "expense"),
    ("Transport", "expense"),
    ("Housing", "expense"),
    ("Utilities", "expense"),
    ("Communication", "expense"),
    ("Entertainment", "expense"),
    ("Medical", "expense"),
    ("Education", "expense"),
    ("Subscriptions", "expense"),
    ("Other Expense", "expense"),
    ("Salary", "income"),
    ("Bonus", "income"),
    ("Side Income", "income"),
    ("Other Income", "income"),
]


class InMemoryStore:
    """Holds categories, transactions and subscriptions for the running app."""

    def __init__(
        self,
        categories: Iterable[Category] = (),
        transactions: Iterable[Transaction] = (),
        subscriptions: Iterable[Subscription] = (),
    ):
        self._categories: list[Category] = list(categories)
        self._transactions: list[Transaction] = list(transactions)
        self._subscriptions: list[Subscription] = list(subscriptions)

    # Categories

    def list_categories(
        self, tx_type: Optional[str] = None, include_inactive: bool = False
    ) -> tuple[Category, ...]:
        """Categories ordered by (display_order, id). Inactive ones only on request."""
        rows = [
            c
            for c in self._categories
            if (include_inactive or c.is_active) and (not tx_type or c.type == tx_type)
        ]
        return tuple(sorted(rows, key=lambda c: (c.display_order, c.id)))

    def all_categories(self) -> tuple[Category, ...]:
        """Every category, active or not, for resolving names of old records."""
        return tuple(self._categories)

    def get_category(self, category_id: int) -> Optional[Category]:
        return next((c for c in self._categories if c.id == category_id), None)

    def seed_default_categories(self) -> int:
        """Add the default categories if there are none yet. Returns how many were added."""
        if self._categories:
            logger.info("categories_already_present", count=len(self._categories))
            return 0

        for order, (name, tx_type) in enumerate(DEFAULT_CATEGORIES, start=1):
            self._categories.append(
                Category(id=order, name=name, type=tx_type, display_order=order)
            )
        logger.info("default_categories_seeded", count=len(DEFAULT_CATEGORIES))
        return len(DEFAULT_CATEGORIES)

    # Transactions

    def list_transactions(self) -> tuple[Transaction, ...]:
        return tuple(self._transactions)

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        return next((t for t in self._transactions if t.id == transaction_id), None)

    def add_transaction(self, data: dict[str, Any]) -> Transaction:
        """Create a transaction with the next free id and fresh timestamps."""
        now = utcnow()
        next_id = max((t.id for t in self._transactions), default=0) + 1
        row = Transaction.model_validate(
            {**data, "id": next_id, "created_at": now, "updated_at": now}
        )
        self._transactions.append(row)
        return row

    def update_transaction(
        self, transaction_id: int, changes: dict[str, Any]
    ) -> Optional[Transaction]:
        """Apply changes to a stored transaction and bump 'updated_at'.
        Returns None when there is no such transaction.
        """
        for index, existing in enumerate(self._transactions):
            if existing.id == transaction_id:
                row = Transaction.model_validate(
                    {**existing.model_dump(), **changes, "updated_at": utcnow()}
                )
                self._transactions[index] = row
                return row
        return None

    def delete_transaction(self, transaction_id: int) -> bool:
        for index, existing in enumerate(self._transactions):
            if existing.id == transaction_id:
                del self._transactions[index]
                return True
        return False

    # Subscriptions

    def list_subscriptions(self) -> tuple[Subscription, ...]:
        return tuple(self._subscriptions)

    def get_subscription(self, subscription_id: int) -> Optional[Subscription]:
        return next((s for s in self._subscriptions if s.id == subscription_id), None)

    def add_subscription(self, data: dict[str, Any]) -> Subscription:
        """Create a subscription with the next free id."""
        next_id = max((s.id for s in self._subscriptions), default=0) + 1
        row = Subscription.model_validate({**data, "id": next_id})
        self._subscriptions.append(row)
        return row

    def update_subscription(
        self, subscription_id: int, changes: dict[str, Any]
    ) -> Optional[Subscription]:
        """Apply changes and re-validate the whole record. Returns None when missing."""
        existing = self.get_subscription(subscription_id)
        if existing is None:
            return None
        row = Subscription.model_validate({**existing.model_dump(), **changes})
        return self.save_subscription(row)

    def save_subscription(self, subscription: Subscription) -> Subscription:
        """Replace the stored subscription with the same id, or append a new one."""
        for index, existing in enumerate(self._subscriptions):
            if existing.id == subscription.id:
                self._subscriptions[index] = subscription
                return subscription
        self._subscriptions.append(subscription)
        return subscription

    # Seeding

    def load_seed(self, path: str) -> dict[str, int]:
        """Load records from a JSON file with optional 'categories',
        'transactions' and 'subscriptions' lists. Raises ValueError on bad records.
        """
        raw = json.loads(Path(path).read_text(encoding="utf-8"))

        categories = [Category.model_validate(c) for c in raw.get("categories", [])]
        transactions = [Transaction.model_validate(t) for t in raw.get("transactions", [])]
        subscriptions = [Subscription.model_validate(s) for s in raw.get("subscriptions", [])]

        self._categories.extend(categories)
        self._transactions.extend(transactions)
        self._subscriptions.extend(subscriptions)

        counts = {
            "categories": len(categories),
            "transactions": len(transactions),
            "subscriptions": len(subscriptions),
        }
        logger.info("seed_file_loaded", path=path, **counts)
        return counts
