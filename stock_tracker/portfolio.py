from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from stock_tracker.engine import Derivation, MarketSummary, derive, summarize
from stock_tracker.exceptions import InvalidTradeError
from stock_tracker.fees import TradeCharges, compute_trade
from stock_tracker.settings import DEFAULT_SETTINGS, FeeSettings
from stock_tracker.transactions import TradeRequest, Transaction, build_transaction
from stock_tracker.types import Market, Side
from stock_tracker.util import parse_number

logger = logging.getLogger(__name__)


@dataclass
class Portfolio:
    """
    Caller-owned state: the transaction log, manual prices and fee settings.

    Every mutation method bumps `version`; `derive()` re-runs the full replay
    only when the version has moved since the last call. Change the log and
    prices through the methods below: in-place edits that keep the list and
    dict sizes unchanged are not detected. Not thread-safe.
    """

    transactions: list[Transaction] = field(default_factory=list)
    manual_prices: dict[str, float] = field(default_factory=dict)
    settings: FeeSettings = field(default_factory=lambda: DEFAULT_SETTINGS)
    version: int = 0
    _cache: Optional[tuple[tuple[int, int, int], Derivation]] = field(default=None, init=False, repr=False, compare=False)

    def _touch(self) -> None:
        self.version += 1

    def _cache_key(self) -> tuple[int, int, int]:
        return (self.version, len(self.transactions), len(self.manual_prices))

    # ------------------------------------------------------------------
    # Log mutations
    # ------------------------------------------------------------------

    def add_transaction(self, tx: Transaction) -> Transaction:
        self.transactions.append(tx)
        if tx.side is Side.BUY:
            # The latest buy price is the default mark until the user overrides it.
            self.manual_prices[tx.ticker] = tx.price
        self._touch()
        return tx

    def add_trade(self, request: TradeRequest) -> Transaction:
        return self.add_transaction(build_transaction(request, self.settings))

    def delete_transaction(self, tx_id: str) -> bool:
        before = len(self.transactions)
        self.transactions = [t for t in self.transactions if t.id != tx_id]
        removed = len(self.transactions) != before
        if removed:
            self._touch()
        else:
            logger.debug("No transaction with id %s", tx_id)
        return removed

    def delete_ticker(self, ticker: str) -> int:
        """Drop every transaction and the manual price for `ticker`."""
        sym = ticker.strip().upper()
        before = len(self.transactions)
        self.transactions = [t for t in self.transactions if t.ticker != sym]
        removed = before - len(self.transactions)
        had_price = self.manual_prices.pop(sym, None) is not None
        if removed or had_price:
            self._touch()
        return removed

    # ------------------------------------------------------------------
    # Prices / settings
    # ------------------------------------------------------------------

    def set_price(self, ticker: str, price: Any) -> None:
        value = parse_number(price)
        if value is None or value < 0:
            raise InvalidTradeError(f"Price must be a finite, non-negative number; got {price!r}")
        self.manual_prices[ticker.strip().upper()] = value
        self._touch()

    def get_price(self, ticker: str) -> float | None:
        return self.manual_prices.get(ticker.strip().upper())

    def update_settings(self, **overrides: Any) -> FeeSettings:
        # Stored transactions keep the fee/tax they were created with.
        self.settings = self.settings.merged(overrides)
        self._touch()
        return self.settings

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def derive(self) -> Derivation:
        key = self._cache_key()
        if self._cache is not None and self._cache[0] == key:
            return self._cache[1]
        result = derive(self.transactions, self.manual_prices, self.settings)
        self._cache = (key, result)
        logger.debug(
            "Derived %d holdings, %d realized items from %d transactions (version %d)",
            len(result.holdings), len(result.realized), len(self.transactions), self.version,
        )
        return result

    def summary(self) -> dict[Market, MarketSummary]:
        return summarize(self.derive())

    def preview(self, request: TradeRequest) -> TradeCharges:
        """Fee/tax/settlement a request would be booked with, without adding it."""
        _, _, side, market, price, shares = request.validate()
        return compute_trade(side, market, price, shares, request.is_fund_like, self.settings)

    def tickers(self) -> list[str]:
        return sorted({t.ticker for t in self.transactions})

    @classmethod
    def from_transactions(
        cls,
        transactions: Iterable[Transaction],
        manual_prices: dict[str, float] | None = None,
        settings: FeeSettings | None = None,
    ) -> "Portfolio":
        return cls(
            transactions=list(transactions),
            manual_prices=dict(manual_prices or {}),
            settings=settings if settings is not None else DEFAULT_SETTINGS,
        )
