"""Replay of the transaction log into open positions and realized gains.

Cost basis uses a single moving weighted average per ticker: every buy adds
its settlement amount (fee included) to the cost pool, and every sell retires
``cost / shares × sold`` from it. Sells against a flat or unknown position are
dropped without effect so partial or out-of-order histories still replay.

The derivation is rebuilt from scratch on each call; nothing is cached here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping

from stock_tracker.fees import compute_trade
from stock_tracker.settings import FeeSettings
from stock_tracker.transactions import Transaction
from stock_tracker.types import Market, Side
from stock_tracker.util import is_closed, safe_pct

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Holding:
    ticker: str
    name: str
    market: Market
    is_fund_like: bool
    shares: float
    total_cost_basis: float
    avg_cost: float
    current_price: float
    market_value: float  # net of estimated liquidation fee and tax
    unrealized_pl: float
    roi: float

    @property
    def currency(self) -> str:
        return self.market.currency


@dataclass(frozen=True)
class RealizedItem:
    ticker: str
    name: str
    market: Market
    is_fund_like: bool
    realized_pl: float
    total_cost_retired: float
    total_revenue: float
    trade_count: int
    roi: float

    @property
    def currency(self) -> str:
        return self.market.currency


@dataclass(frozen=True)
class Derivation:
    holdings: dict[str, Holding]
    realized: dict[str, RealizedItem]


@dataclass
class _Position:
    name: str
    market: Market
    is_fund_like: bool
    shares: float = 0.0
    total_cost_basis: float = 0.0


@dataclass
class _Realized:
    name: str
    market: Market
    is_fund_like: bool
    realized_pl: float = 0.0
    total_cost_retired: float = 0.0
    total_revenue: float = 0.0
    trade_count: int = 0


def replay_order(transactions: Iterable[Transaction]) -> list[Transaction]:
    # sorted() is stable: same-day trades keep log insertion order.
    return sorted(transactions, key=lambda t: t.date)


def _apply(t: Transaction, pos: _Position, real: _Realized) -> None:
    if t.side is Side.BUY:
        pos.total_cost_basis += t.settlement_amount
        pos.shares += t.shares
    elif pos.shares > 0:
        avg_cost = pos.total_cost_basis / pos.shares
        cost_retired = avg_cost * t.shares
        real.realized_pl += t.settlement_amount - cost_retired
        real.total_cost_retired += cost_retired
        real.total_revenue += t.settlement_amount
        real.trade_count += 1
        pos.total_cost_basis -= cost_retired
        pos.shares -= t.shares
    else:
        logger.debug("Ignoring sell of %s %s on %s: no open position", t.shares, t.ticker, t.date)

    if is_closed(pos.shares):
        pos.shares = 0.0
        pos.total_cost_basis = 0.0


def replay(transactions: Iterable[Transaction]) -> tuple[dict[str, _Position], dict[str, _Realized]]:
    positions: dict[str, _Position] = {}
    realized: dict[str, _Realized] = {}
    for t in replay_order(transactions):
        if t.ticker not in positions:
            positions[t.ticker] = _Position(name=t.name, market=t.market, is_fund_like=t.is_fund_like)
            realized[t.ticker] = _Realized(name=t.name, market=t.market, is_fund_like=t.is_fund_like)
        _apply(t, positions[t.ticker], realized[t.ticker])
    return positions, realized


def value_position(
    ticker: str,
    pos: _Position,
    current_price: float,
    settings: FeeSettings,
) -> Holding:
    """Mark an open position as if sold in full at `current_price`."""
    est = compute_trade(Side.SELL, pos.market, current_price, pos.shares, pos.is_fund_like, settings)
    market_value = est.gross_amount - est.fee - est.tax
    unrealized = market_value - pos.total_cost_basis
    return Holding(
        ticker=ticker,
        name=pos.name,
        market=pos.market,
        is_fund_like=pos.is_fund_like,
        shares=pos.shares,
        total_cost_basis=pos.total_cost_basis,
        avg_cost=pos.total_cost_basis / pos.shares if pos.shares > 0 else 0.0,
        current_price=current_price,
        market_value=market_value,
        unrealized_pl=unrealized,
        roi=safe_pct(unrealized, pos.total_cost_basis) if pos.total_cost_basis > 0 else 0.0,
    )


def derive(
    transactions: Iterable[Transaction],
    current_prices: Mapping[str, float] | None,
    settings: FeeSettings,
) -> Derivation:
    """
    Replay the full log and return open holdings and realized gains by ticker.

    Missing prices mark at 0. The input log is not modified.
    """
    prices = current_prices or {}
    positions, realized = replay(transactions)

    holdings = {
        ticker: value_position(ticker, pos, float(prices.get(ticker) or 0.0), settings)
        for ticker, pos in positions.items()
        if pos.shares > 0
    }
    realized_items = {
        ticker: RealizedItem(
            ticker=ticker,
            name=r.name,
            market=r.market,
            is_fund_like=r.is_fund_like,
            realized_pl=r.realized_pl,
            total_cost_retired=r.total_cost_retired,
            total_revenue=r.total_revenue,
            trade_count=r.trade_count,
            roi=safe_pct(r.realized_pl, r.total_cost_retired) if r.total_cost_retired > 0 else 0.0,
        )
        for ticker, r in realized.items()
        if r.trade_count > 0
    }
    return Derivation(holdings=holdings, realized=realized_items)


@dataclass(frozen=True)
class MarketSummary:
    market: Market
    market_value: float = 0.0
    total_cost: float = 0.0
    unrealized_pl: float = 0.0
    roi: float = 0.0
    realized_pl: float = 0.0
    total_cost_retired: float = 0.0
    total_revenue: float = 0.0
    positions: int = 0

    @property
    def currency(self) -> str:
        return self.market.currency


def summarize(derivation: Derivation) -> dict[Market, MarketSummary]:
    """Per-market totals; amounts stay in each market's own currency."""
    out: dict[Market, MarketSummary] = {}
    for market in Market:
        hs = [h for h in derivation.holdings.values() if h.market is market]
        rs = [r for r in derivation.realized.values() if r.market is market]
        mv = sum(h.market_value for h in hs)
        cost = sum(h.total_cost_basis for h in hs)
        unrealized = mv - cost
        out[market] = MarketSummary(
            market=market,
            market_value=mv,
            total_cost=cost,
            unrealized_pl=unrealized,
            roi=safe_pct(unrealized, cost) if cost > 0 else 0.0,
            realized_pl=sum(r.realized_pl for r in rs),
            total_cost_retired=sum(r.total_cost_retired for r in rs),
            total_revenue=sum(r.total_revenue for r in rs),
            positions=len(hs),
        )
    return out
