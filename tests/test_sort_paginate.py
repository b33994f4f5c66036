import datetime as dt

import pytest

from conftest import make_tx
from models import Transaction
from query import paginate, query_transactions, sort_transactions
from schemas import TransactionListParams


def sample():
    return [
        make_tx(1, 500, date_str="2024-06-03", created_at=dt.datetime(2024, 6, 3, 8)),
        make_tx(2, 1000, date_str="2024-06-01", created_at=dt.datetime(2024, 6, 5, 8)),
        make_tx(3, 500, date_str="2024-06-03", created_at=dt.datetime(2024, 6, 4, 8)),
        make_tx(4, 2000, date_str="2024-06-02", created_at=dt.datetime(2024, 6, 1, 8)),
        make_tx(5, 500, date_str="2024-06-01", created_at=dt.datetime(2024, 6, 2, 8)),
    ]


def ids(records):
    return [r.id for r in records]


def test_default_sort_is_transaction_date_desc():
    assert ids(sort_transactions(sample())) == [1, 3, 4, 2, 5]


def test_sort_by_transaction_date_asc():
    assert ids(sort_transactions(sample(), "transactionDate", "asc")) == [2, 5, 4, 1, 3]


def test_sort_by_amount_desc_keeps_input_order_for_ties():
    assert ids(sort_transactions(sample(), "amount", "desc")) == [4, 2, 1, 3, 5]


def test_sort_by_amount_asc_keeps_input_order_for_ties():
    assert ids(sort_transactions(sample(), "amount", "asc")) == [1, 3, 5, 2, 4]


def test_sort_by_created_at():
    assert ids(sort_transactions(sample(), "createdAt", "asc")) == [4, 5, 1, 3, 2]
    assert ids(sort_transactions(sample(), "createdAt", "desc")) == [2, 3, 1, 5, 4]


def test_sort_by_created_at_mixes_naive_and_utc_offset_timestamps():
    seeded = Transaction.model_validate(
        {"id": 10, "amount": 700, "type": "expense", "transaction_date": "2024-06-01",
         "created_at": "2024-06-01T18:00:00+09:00"}
    )
    assert seeded.created_at == dt.datetime(2024, 6, 1, 9, 0)
    assert seeded.created_at.tzinfo is None

    later = make_tx(11, 300, created_at=dt.datetime(2024, 6, 1, 10, 0))
    earlier = make_tx(12, 200, created_at=dt.datetime(2024, 6, 1, 8, 0))

    assert ids(sort_transactions([later, seeded, earlier], "createdAt", "asc")) == [12, 10, 11]


def test_sort_returns_new_list():
    txs = sample()
    result = sort_transactions(txs, "amount", "asc")
    assert result is not txs
    assert ids(txs) == [1, 2, 3, 4, 5]


def test_paginate_first_page_metadata():
    page = paginate(list(range(45)), page=1, limit=20)
    assert page.items == list(range(20))
    assert page.total_count == 45
    assert page.total_pages == 3
    assert page.has_next_page is True
    assert page.has_prev_page is False


def test_paginate_last_page_is_partial():
    page = paginate(list(range(45)), page=3, limit=20)
    assert page.items == list(range(40, 45))
    assert page.has_next_page is False
    assert page.has_prev_page is True


@pytest.mark.parametrize("total,limit", [(0, 5), (1, 1), (7, 3), (10, 5), (99, 100)])
def test_pages_cover_every_record_once(total, limit):
    records = list(range(total))
    first = paginate(records, 1, limit)
    collected = []
    for n in range(1, first.total_pages + 1):
        page = paginate(records, n, limit)
        assert len(page.items) <= limit
        collected.extend(page.items)
    assert collected == records
    if first.total_pages:
        assert paginate(records, first.total_pages, limit).has_next_page is False


def test_paginate_past_the_end_is_empty_not_an_error():
    page = paginate(list(range(5)), page=4, limit=2)
    assert page.items == []
    assert page.total_pages == 3
    assert page.total_count == 5
    assert page.has_next_page is False
    assert page.has_prev_page is True


def test_paginate_empty_input():
    page = paginate([], page=1, limit=20)
    assert page.items == []
    assert page.total_pages == 0
    assert page.has_next_page is False
    assert page.has_prev_page is False


def test_pagination_uses_wire_names():
    assert paginate(list(range(3)), 1, 2).pagination() == {
        "currentPage": 1,
        "totalPages": 2,
        "totalCount": 3,
        "hasNextPage": True,
        "hasPrevPage": False,
        "limit": 2,
    }


def test_query_transactions_runs_filter_sort_and_paginate():
    params = TransactionListParams.model_validate(
        {"from": "2024-06-02", "sort_by": "amount", "sort_order": "asc", "limit": "2"}
    )
    page = query_transactions(sample(), params)
    assert ids(page.items) == [1, 3]
    assert page.total_count == 3
    assert page.total_pages == 2
