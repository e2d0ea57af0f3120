from __future__ import annotations

import datetime as dt

from factories import make_tx

from stock_tracker.views import SortConfig, next_sort, sort_records, transactions_newest_first


def test_next_sort_toggles_desc_then_asc():
    first = next_sort(None, "roi")
    assert first == SortConfig("roi", "desc")
    second = next_sort(first, "roi")
    assert second == SortConfig("roi", "asc")
    assert next_sort(second, "roi") == SortConfig("roi", "desc")
    assert next_sort(second, "ticker") == SortConfig("ticker", "desc")


def test_sort_records_by_attribute_and_key():
    rows = [{"t": "B", "v": 2}, {"t": "A", "v": 3}, {"t": "C", "v": None}, {"t": "D", "v": 1}]
    assert [r["t"] for r in sort_records(rows, SortConfig("v", "desc"))] == ["A", "B", "D", "C"]
    assert [r["t"] for r in sort_records(rows, SortConfig("v", "asc"))] == ["D", "B", "A", "C"]
    assert sort_records(rows, None) == rows

    txs = [make_tx("1", "buy", 5, 50), make_tx("2", "buy", 1, 10), make_tx("3", "buy", 9, 90)]
    assert [t.id for t in sort_records(txs, SortConfig("shares", "asc"))] == ["2", "1", "3"]


def test_transactions_newest_first_with_filter():
    txs = [
        make_tx("1", "buy", 1, 10, ticker="AAA", date=dt.date(2025, 1, 1)),
        make_tx("2", "buy", 1, 10, ticker="BBB", date=dt.date(2025, 1, 3)),
        make_tx("3", "sell", 1, 12, ticker="AAA", date=dt.date(2025, 1, 2)),
    ]
    assert [t.id for t in transactions_newest_first(txs)] == ["2", "3", "1"]
    assert [t.id for t in transactions_newest_first(txs, "aaa")] == ["3", "1"]
