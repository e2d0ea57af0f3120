from __future__ import annotations

import datetime as dt
import logging
import math
import uuid
from dataclasses import dataclass
from typing import Any

from stock_tracker.exceptions import InvalidTradeError
from stock_tracker.fees import compute_trade
from stock_tracker.settings import FeeSettings
from stock_tracker.types import Market, Side, as_market, as_side
from stock_tracker.util import parse_date, parse_number

logger = logging.getLogger(__name__)


def _finite(value: Any, key: str) -> float:
    x = float(value)
    if not math.isfinite(x):
        raise ValueError(f"Stored {key} is not a finite number: {value!r}")
    return x


def _stored_number(data: dict[str, Any], key: str) -> float:
    return _finite(data.get(key) or 0.0, key)


@dataclass(frozen=True)
class Transaction:
    id: str
    date: dt.date
    ticker: str
    name: str
    side: Side
    market: Market
    price: float
    shares: float
    is_fund_like: bool

    # Computed once at creation; replay never recomputes them.
    fee: float
    tax: float
    # Buy: gross + fee (cost). Sell: gross - fee - tax (net proceeds).
    settlement_amount: float

    @property
    def currency(self) -> str:
        return self.market.currency

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "ticker": self.ticker,
            "name": self.name,
            "side": self.side.value,
            "market": self.market.value,
            "price": self.price,
            "shares": self.shares,
            "isFundLike": self.is_fund_like,
            "fee": self.fee,
            "tax": self.tax,
            "settlementAmount": self.settlement_amount,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Transaction":
        """
        Rebuild a stored transaction.

        Older state files used `type`, `isETF` and `totalAmount`, and may lack
        `market` entirely (those predate the foreign market and are domestic).
        """
        d = parse_date(data.get("date"))
        if d is None:
            raise ValueError(f"Transaction {data.get('id')!r} has no valid date: {data.get('date')!r}")
        ticker = str(data.get("ticker") or "").strip().upper()
        side_raw = data.get("side", data.get("type"))
        fund_raw = data.get("isFundLike", data.get("isETF", False))
        settle_raw = data.get("settlementAmount", data.get("totalAmount"))
        return cls(
            id=str(data.get("id") or uuid.uuid4().hex),
            date=d,
            ticker=ticker,
            name=str(data.get("name") or ticker),
            side=as_side(side_raw),
            market=as_market(data.get("market") or Market.DOMESTIC),
            price=_stored_number(data, "price"),
            shares=_stored_number(data, "shares"),
            is_fund_like=bool(fund_raw),
            fee=_stored_number(data, "fee"),
            tax=_stored_number(data, "tax"),
            settlement_amount=_finite(settle_raw or 0.0, "settlementAmount"),
        )


@dataclass(frozen=True)
class TradeRequest:
    """Raw trade input as entered by the user (numbers may still be text)."""

    date: Any
    ticker: str
    side: Side | str
    market: Market | str
    price: Any
    shares: Any
    is_fund_like: bool = False
    name: str | None = None

    def validate(self) -> tuple[dt.date, str, Side, Market, float, float]:
        ticker = (self.ticker or "").strip().upper()
        if not ticker:
            raise InvalidTradeError("Ticker is required.")
        d = parse_date(self.date)
        if d is None:
            raise InvalidTradeError(f"Invalid trade date: {self.date!r}")
        try:
            side = as_side(self.side)
            market = as_market(self.market)
        except ValueError as e:
            raise InvalidTradeError(str(e)) from e
        price = parse_number(self.price)
        if price is None or price <= 0:
            raise InvalidTradeError(f"Price must be a positive number; got {self.price!r}")
        shares = parse_number(self.shares)
        if shares is None or shares <= 0:
            raise InvalidTradeError(f"Shares must be a positive number; got {self.shares!r}")
        return d, ticker, side, market, price, shares


def new_transaction_id() -> str:
    return uuid.uuid4().hex


def build_transaction(request: TradeRequest, settings: FeeSettings, *, tx_id: str | None = None) -> Transaction:
    """
    Validate a trade request and return a fully populated Transaction with
    fee, tax and settlement amount computed under `settings`.
    """
    d, ticker, side, market, price, shares = request.validate()
    charges = compute_trade(side, market, price, shares, request.is_fund_like, settings)
    name = (request.name or "").strip() or ticker
    tx = Transaction(
        id=tx_id or new_transaction_id(),
        date=d,
        ticker=ticker,
        name=name,
        side=side,
        market=market,
        price=price,
        shares=shares,
        is_fund_like=bool(request.is_fund_like),
        fee=charges.fee,
        tax=charges.tax,
        settlement_amount=charges.settlement_amount,
    )
    logger.debug(
        "Built %s %s %s x %s @ %s (fee=%s tax=%s settlement=%s)",
        side.value, market.value, ticker, shares, price, tx.fee, tx.tax, tx.settlement_amount,
    )
    return tx
