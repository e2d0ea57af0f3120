from __future__ import annotations

from stock_tracker.fees import compute_trade
from stock_tracker.settings import FeeSettings
from stock_tracker.types import Market, Side


def test_domestic_fee_is_floored():
    s = FeeSettings(domestic_fee_rate=0.001425, domestic_discount=0.6, domestic_min_fee=20)
    c = compute_trade(Side.BUY, Market.DOMESTIC, 100.0, 1000, False, s)
    # floor(100000 * 0.001425 * 0.6) = floor(85.5)
    assert c.fee == 85
    assert c.tax == 0
    assert c.settlement_amount == 100_085


def test_domestic_min_fee_applies_to_small_trades():
    s = FeeSettings()
    c = compute_trade(Side.BUY, Market.DOMESTIC, 10.0, 100, False, s)
    assert c.fee == 20
    assert c.settlement_amount == 1_020


def test_domestic_sell_tax_depends_on_fund_classification():
    s = FeeSettings()
    stock = compute_trade(Side.SELL, Market.DOMESTIC, 100.0, 1000, False, s)
    fund = compute_trade(Side.SELL, Market.DOMESTIC, 100.0, 1000, True, s)
    assert stock.tax == 300  # 0.3%
    assert fund.tax == 100  # 0.1%
    assert stock.settlement_amount == 100_000 - 85 - 300
    assert fund.settlement_amount == 100_000 - 85 - 100


def test_domestic_tax_is_floored():
    s = FeeSettings()
    c = compute_trade(Side.SELL, Market.DOMESTIC, 33.3, 100, False, s)
    # 3330 * 0.003 = 9.99
    assert c.tax == 9


def test_foreign_fee_is_not_rounded():
    s = FeeSettings(foreign_fee_rate=0.001, foreign_min_fee=0)
    c = compute_trade(Side.BUY, Market.FOREIGN, 150.5, 10, False, s)
    assert abs(c.fee - 1.505) < 1e-12
    assert abs(c.settlement_amount - 1506.505) < 1e-9


def test_foreign_sell_levy_and_min_fee():
    s = FeeSettings(foreign_fee_rate=0.001, foreign_min_fee=1.0, foreign_sale_levy_rate=0.000008)
    c = compute_trade(Side.SELL, Market.FOREIGN, 20.0, 10, True, s)
    assert c.fee == 1.0  # 0.2 below the floor
    assert abs(c.tax - 0.0016) < 1e-12
    assert abs(c.settlement_amount - (200.0 - 1.0 - 0.0016)) < 1e-12


def test_foreign_fund_flag_does_not_change_tax():
    s = FeeSettings()
    a = compute_trade(Side.SELL, Market.FOREIGN, 20.0, 10, True, s)
    b = compute_trade(Side.SELL, Market.FOREIGN, 20.0, 10, False, s)
    assert a == b
