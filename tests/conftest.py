import os
import sys
import datetime as dt
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

ROOT_DIR = os.path.dirname(os.path.dirname(__file__))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from main import app, get_store, get_today  # noqa: E402
from models import Category, Subscription, Transaction  # noqa: E402
from store import InMemoryStore  # noqa: E402

TODAY = dt.date(2024, 6, 15)


def make_tx(
    id,
    amount,
    type_="expense",
    date_str="2024-06-01",
    category_id=None,
    description="",
    created_at=None,
):
    return Transaction(
        id=id,
        amount=Decimal(str(amount)),
        type=type_,
        category_id=category_id,
        description=description,
        transaction_date=date_str,
        created_at=created_at or dt.datetime(2024, 6, 1, 9, 0, 0),
        updated_at=created_at or dt.datetime(2024, 6, 1, 9, 0, 0),
    )


def make_category(id, name, type_="expense", is_active=True, display_order=0):
    return Category(
        id=id, name=name, type=type_, is_active=is_active, display_order=display_order
    )


def make_subscription(
    id,
    name,
    amount,
    frequency="monthly",
    next_payment_date="2024-06-20",
    is_active=True,
    category_id=None,
):
    return Subscription(
        id=id,
        name=name,
        amount=Decimal(str(amount)),
        frequency=frequency,
        next_payment_date=next_payment_date if is_active else None,
        is_active=is_active,
        category_id=category_id,
    )


@pytest.fixture
def store():
    """A small household: categories, two months of transactions and a few subscriptions."""
    return InMemoryStore(
        categories=[
            make_category(1, "Food", display_order=2),
            make_category(2, "Transport", display_order=1),
            make_category(3, "Salary", type_="income", display_order=3),
            make_category(4, "Old Hobby", is_active=False, display_order=4),
        ],
        transactions=[
            make_tx(1, 1000, date_str="2024-06-01", category_id=1, description="Lunch"),
            make_tx(2, 2000, date_str="2024-06-02", category_id=1, description="Supermarket"),
            make_tx(3, 500, date_str="2024-06-03", category_id=2, description="Train ticket"),
            make_tx(4, 300000, type_="income", date_str="2024-06-10", category_id=3, description="June salary"),
            make_tx(5, 2500, date_str="2024-05-20", category_id=2, description="Taxi"),
            make_tx(6, 800, date_str="2024-04-11", category_id=4, description="Model kit"),
        ],
        subscriptions=[
            make_subscription(1, "Video streaming", 1000, "monthly", "2024-06-20", category_id=4),
            make_subscription(2, "Cloud storage", 12000, "yearly", "2024-07-01", category_id=4),
            make_subscription(3, "Gym", 7000, "monthly", is_active=False, category_id=1),
        ],
    )


@pytest.fixture(scope="function")
def client(store):
    """Return a TestClient wired to a fresh in-memory store and a pinned 'today'."""
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_today] = lambda: TODAY

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
