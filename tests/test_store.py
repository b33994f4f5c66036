import datetime as dt
import json

import pytest

from conftest import make_category, make_subscription
from store import DEFAULT_CATEGORIES, InMemoryStore
from subscriptions import deactivate


def test_list_categories_hides_inactive_and_orders_by_display_order(store):
    names = [c.name for c in store.list_categories()]
    assert names == ["Transport", "Food", "Salary"]


def test_list_categories_by_type_and_including_inactive(store):
    expense = store.list_categories(tx_type="expense", include_inactive=True)
    assert [c.name for c in expense] == ["Transport", "Food", "Old Hobby"]


def test_inactive_category_still_resolves_by_id(store):
    assert store.get_category(4).name == "Old Hobby"
    assert any(c.id == 4 for c in store.all_categories())


def test_snapshots_are_tuples(store):
    snapshot = store.list_transactions()
    assert isinstance(snapshot, tuple)
    store.add_transaction(
        {"amount": 100, "type": "expense", "transaction_date": dt.date(2024, 6, 5)}
    )
    # an earlier snapshot does not see later writes
    assert len(snapshot) == 6
    assert len(store.list_transactions()) == 7


def test_add_transaction_assigns_next_id_and_timestamps(store):
    row = store.add_transaction(
        {"amount": 980, "type": "expense", "transaction_date": "2024-06-05", "category_id": 1}
    )
    assert row.id == 7
    assert row.created_at == row.updated_at
    assert store.get_transaction(7) == row


def test_add_transaction_to_empty_store_starts_at_one():
    row = InMemoryStore().add_transaction(
        {"amount": 1, "type": "income", "transaction_date": "2024-06-05"}
    )
    assert row.id == 1


def test_save_subscription_replaces_in_place(store):
    off = deactivate(store.get_subscription(1), dt.date(2024, 6, 15))
    store.save_subscription(off)
    assert [s.id for s in store.list_subscriptions()] == [1, 2, 3]
    assert store.get_subscription(1).is_active is False


def test_save_subscription_appends_new(store):
    store.save_subscription(make_subscription(9, "News", 500))
    assert store.list_subscriptions()[-1].id == 9


def test_seed_default_categories_only_when_empty(store):
    assert store.seed_default_categories() == 0

    empty = InMemoryStore()
    assert empty.seed_default_categories() == len(DEFAULT_CATEGORIES)
    assert {c.type for c in empty.list_categories()} == {"income", "expense"}
    assert empty.seed_default_categories() == 0


def test_load_seed_file(tmp_path):
    seed = {
        "categories": [{"id": 1, "name": "Food", "type": "expense"}],
        "transactions": [
            {"id": 1, "amount": 1200, "type": "expense", "category_id": 1,
             "description": "Dinner", "transaction_date": "2024-06-01"}
        ],
        "subscriptions": [
            {"id": 1, "name": "Music", "amount": 980, "frequency": "monthly",
             "next_payment_date": "2024-06-25"}
        ],
    }
    path = tmp_path / "seed.json"
    path.write_text(json.dumps(seed), encoding="utf-8")

    target = InMemoryStore(categories=[make_category(9, "Misc")])
    counts = target.load_seed(str(path))

    assert counts == {"categories": 1, "transactions": 1, "subscriptions": 1}
    assert target.get_transaction(1).transaction_date == dt.date(2024, 6, 1)
    assert target.get_subscription(1).next_payment_date == dt.date(2024, 6, 25)
    assert len(target.all_categories()) == 2


def test_load_seed_file_rejects_bad_records(tmp_path):
    path = tmp_path / "seed.json"
    path.write_text(
        json.dumps({"transactions": [{"id": 1, "amount": -5, "type": "expense",
                                      "transaction_date": "2024-06-01"}]}),
        encoding="utf-8",
    )
    with pytest.raises(ValueError):
        InMemoryStore().load_seed(str(path))


def test_load_seed_file_rejects_active_subscription_without_date(tmp_path):
    path = tmp_path / "seed.json"
    path.write_text(
        json.dumps({"subscriptions": [{"id": 1, "name": "Music", "amount": 980,
                                       "frequency": "monthly"}]}),
        encoding="utf-8",
    )
    with pytest.raises(ValueError):
        InMemoryStore().load_seed(str(path))


def test_update_and_delete_transaction(store):
    row = store.update_transaction(1, {"amount": 1200})
    assert row.amount == 1200
    assert row.created_at == dt.datetime(2024, 6, 1, 9, 0)
    assert row.updated_at > row.created_at
    assert store.get_transaction(1).amount == 1200

    assert store.update_transaction(99, {"amount": 1}) is None
    assert store.delete_transaction(1) is True
    assert store.get_transaction(1) is None
    assert store.delete_transaction(1) is False


def test_add_subscription_takes_next_id(store):
    row = store.add_subscription(
        {"name": "News", "amount": 500, "frequency": "monthly", "next_payment_date": "2024-06-30"}
    )
    assert row.id == 4
    assert store.list_subscriptions()[-1] is row


def test_update_subscription_revalidates_the_record(store):
    assert store.update_subscription(1, {"amount": 1490}).amount == 1490
    assert store.update_subscription(99, {"amount": 1}) is None

    with pytest.raises(ValueError):
        store.update_subscription(1, {"next_payment_date": None})
    assert store.get_subscription(1).next_payment_date == dt.date(2024, 6, 20)
