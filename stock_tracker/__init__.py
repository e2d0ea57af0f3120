from __future__ import annotations

__all__ = [
    "FeeSettings",
    "Market",
    "Portfolio",
    "Side",
    "TradeRequest",
    "Transaction",
    "build_transaction",
    "compute_trade",
    "derive",
    "summarize",
]

from stock_tracker.engine import derive, summarize
from stock_tracker.fees import compute_trade
from stock_tracker.portfolio import Portfolio
from stock_tracker.settings import FeeSettings
from stock_tracker.transactions import Market, Side, TradeRequest, Transaction, build_transaction
