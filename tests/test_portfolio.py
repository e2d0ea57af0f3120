from __future__ import annotations

import datetime as dt

import pytest
from factories import make_tx

from stock_tracker.exceptions import InvalidTradeError
from stock_tracker.portfolio import Portfolio
from stock_tracker.transactions import TradeRequest
from stock_tracker.types import Market


def _buy(ticker: str, price: str, shares: str, date: str = "2025-01-02", market: str = "DOMESTIC") -> TradeRequest:
    return TradeRequest(date=date, ticker=ticker, side="buy", market=market, price=price, shares=shares)


def test_add_trade_records_buy_price_as_manual_price():
    p = Portfolio()
    p.add_trade(_buy("2330", "600", "1000"))
    assert p.get_price("2330") == 600.0
    h = p.derive().holdings["2330"]
    assert h.current_price == 600.0
    # cost includes the buy fee: floor(600000 * 0.001425 * 0.6) = 513
    assert h.total_cost_basis == 600_513


def test_sell_does_not_move_manual_price():
    p = Portfolio()
    p.add_trade(_buy("2330", "600", "1000"))
    p.add_trade(TradeRequest(date="2025-01-03", ticker="2330", side="sell", market="DOMESTIC", price="650", shares="500"))
    assert p.get_price("2330") == 600.0


def test_delete_transaction_by_id_rederives():
    p = Portfolio()
    a = p.add_trade(_buy("AAA", "10", "100"))
    b = p.add_trade(_buy("AAA", "20", "100", date="2025-01-03"))
    assert p.derive().holdings["AAA"].shares == 200
    assert p.delete_transaction(b.id) is True
    assert p.derive().holdings["AAA"].shares == 100
    assert p.delete_transaction("missing") is False
    assert [t.id for t in p.transactions] == [a.id]


def test_delete_ticker_drops_transactions_and_price():
    p = Portfolio()
    p.add_trade(_buy("AAA", "10", "100"))
    p.add_trade(_buy("BBB", "10", "100"))
    p.set_price("AAA", 12)
    assert p.delete_ticker("aaa") == 1
    assert p.get_price("AAA") is None
    assert p.get_price("BBB") == 10.0
    assert set(p.derive().holdings) == {"BBB"}


def test_derive_is_cached_until_a_mutation():
    p = Portfolio.from_transactions([make_tx("1", "buy", 10, 1_000)])
    first = p.derive()
    assert p.derive() is first
    p.set_price("AAA", 150)
    second = p.derive()
    assert second is not first
    assert second.holdings["AAA"].current_price == 150


def test_update_settings_keeps_stored_charges_but_changes_valuation():
    p = Portfolio()
    tx = p.add_trade(_buy("AAA", "100", "1000"))
    before = p.derive().holdings["AAA"].market_value
    p.update_settings(domestic_stock_tax_rate=0.0)
    assert p.transactions[0] == tx
    after = p.derive().holdings["AAA"].market_value
    assert after - before == 300


def test_preview_matches_booked_amounts():
    p = Portfolio()
    req = TradeRequest(date=dt.date(2025, 1, 2), ticker="AAPL", side="sell", market=Market.FOREIGN, price=150.5, shares=10)
    charges = p.preview(req)
    assert p.transactions == []
    tx = p.add_trade(req)
    assert (tx.fee, tx.tax, tx.settlement_amount) == (charges.fee, charges.tax, charges.settlement_amount)


def test_summary_reports_both_markets():
    p = Portfolio()
    p.add_trade(_buy("2330", "600", "1000"))
    p.add_trade(_buy("AAPL", "150", "2", market="FOREIGN"))
    summary = p.summary()
    assert summary[Market.DOMESTIC].positions == 1
    assert summary[Market.FOREIGN].positions == 1
    assert p.tickers() == ["2330", "AAPL"]


@pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf"), -1, "abc", None])
def test_set_price_rejects_non_finite_or_negative(bad):
    p = Portfolio()
    p.add_trade(_buy("AAA", "10", "100"))
    version = p.version
    with pytest.raises(InvalidTradeError):
        p.set_price("AAA", bad)
    assert p.get_price("AAA") == 10.0
    assert p.version == version
    assert p.derive().holdings["AAA"].current_price == 10.0


def test_set_price_accepts_zero_and_text():
    p = Portfolio()
    p.set_price("AAA", 0)
    assert p.get_price("AAA") == 0.0
    p.set_price("AAA", "1,250.5")
    assert p.get_price("AAA") == 1250.5


def test_direct_append_to_log_invalidates_cache():
    p = Portfolio.from_transactions([make_tx("1", "buy", 10, 1_000)])
    assert p.derive().holdings["AAA"].shares == 10
    p.transactions.append(make_tx("2", "buy", 5, 500, date=dt.date(2025, 1, 3)))
    assert p.derive().holdings["AAA"].shares == 15
