from __future__ import annotations

from enum import Enum


class Side(str, Enum):
    BUY = "buy"
    SELL = "sell"


class Market(str, Enum):
    # Integer currency unit; fees and taxes are floored.
    DOMESTIC = "DOMESTIC"
    # Fractional currency; fees and taxes are left unrounded.
    FOREIGN = "FOREIGN"

    @property
    def currency(self) -> str:
        return "TWD" if self is Market.DOMESTIC else "USD"


def as_side(value: Side | str) -> Side:
    if isinstance(value, Side):
        return value
    s = str(value).strip().lower()
    if s in {"b", "buy"}:
        return Side.BUY
    if s in {"s", "sell"}:
        return Side.SELL
    raise ValueError(f"Unknown side: {value!r}. Use 'buy' or 'sell'.")


def as_market(value: Market | str) -> Market:
    if isinstance(value, Market):
        return value
    s = str(value).strip().upper()
    # Legacy state files use TW/US.
    if s in {"DOMESTIC", "TW"}:
        return Market.DOMESTIC
    if s in {"FOREIGN", "US"}:
        return Market.FOREIGN
    raise ValueError(f"Unknown market: {value!r}. Use 'DOMESTIC' or 'FOREIGN'.")
