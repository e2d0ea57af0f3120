"""Fee and transaction-tax computation for both markets.

Domestic regime (integer currency)
----------------------------------
  fee = max(min_fee, floor(gross × fee_rate × discount))
  tax = floor(gross × (fund_tax_rate if fund-like else stock_tax_rate))   # sells only

Foreign regime (fractional currency)
------------------------------------
  fee = max(min_fee, gross × fee_rate)
  tax = gross × sale_levy_rate                                            # sells only

Settlement is the signed-magnitude cash effect stored on each transaction:
``gross + fee`` for a buy, ``gross − fee − tax`` for a sell.

Inputs are not validated here; price and shares are checked at the trade
request boundary.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from stock_tracker.settings import FeeSettings
from stock_tracker.types import Market, Side


@dataclass(frozen=True)
class TradeCharges:
    gross_amount: float
    fee: float
    tax: float
    settlement_amount: float


def _domestic_charges(side: Side, gross: float, is_fund_like: bool, s: FeeSettings) -> tuple[float, float]:
    fee = max(s.domestic_min_fee, math.floor(gross * s.domestic_fee_rate * s.domestic_discount))
    tax = 0.0
    if side is Side.SELL:
        rate = s.domestic_fund_tax_rate if is_fund_like else s.domestic_stock_tax_rate
        tax = math.floor(gross * rate)
    return float(fee), float(tax)


def _foreign_charges(side: Side, gross: float, s: FeeSettings) -> tuple[float, float]:
    fee = max(s.foreign_min_fee, gross * s.foreign_fee_rate)
    tax = gross * s.foreign_sale_levy_rate if side is Side.SELL else 0.0
    return float(fee), float(tax)


def compute_trade(
    side: Side,
    market: Market,
    price: float,
    shares: float,
    is_fund_like: bool,
    settings: FeeSettings,
) -> TradeCharges:
    """Return fee, tax and settlement amount for one trade.

    ``is_fund_like`` only changes the domestic sell tax rate; for the foreign
    market it is a display tag.
    """
    gross = float(price) * float(shares)
    if market is Market.DOMESTIC:
        fee, tax = _domestic_charges(side, gross, is_fund_like, settings)
    else:
        fee, tax = _foreign_charges(side, gross, settings)

    if side is Side.BUY:
        settlement = gross + fee
    else:
        settlement = gross - fee - tax
    return TradeCharges(gross_amount=gross, fee=fee, tax=tax, settlement_amount=settlement)
