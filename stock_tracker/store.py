from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from stock_tracker.exceptions import StoreError
from stock_tracker.portfolio import Portfolio
from stock_tracker.settings import DEFAULT_SETTINGS, settings_from_dict
from stock_tracker.transactions import Transaction
from stock_tracker.util import parse_number

logger = logging.getLogger(__name__)

DEFAULT_STATE_PATH = Path("stock_tracker_state.json")

# Setting names used by state files written before the market rename.
_LEGACY_SETTING_KEYS = {
    "twFeeRate": "domestic_fee_rate",
    "twDiscount": "domestic_discount",
    "twTaxRateStock": "domestic_stock_tax_rate",
    "twTaxRateETF": "domestic_fund_tax_rate",
    "twMinFee": "domestic_min_fee",
    "usFeeRate": "foreign_fee_rate",
    "usMinFee": "foreign_min_fee",
    "usTaxRate": "foreign_sale_levy_rate",
}


def state_path_from_env() -> Path:
    p = os.getenv("STOCK_TRACKER_STATE")
    return Path(p) if p else DEFAULT_STATE_PATH


def _normalize_settings(raw: Any) -> dict[str, Any]:
    if not isinstance(raw, dict):
        return {}
    return {_LEGACY_SETTING_KEYS.get(k, k): v for k, v in raw.items()}


def portfolio_from_state(data: dict[str, Any]) -> Portfolio:
    """
    Build a Portfolio from the persisted shape
    `{transactions: [...], settings: {...}, manualPrices: {...}}`.

    Missing or malformed sections fall back to empty/defaults. Transactions
    and manual prices that cannot be decoded are skipped with a warning.
    """
    raw_txs = data.get("transactions")
    if raw_txs is not None and not isinstance(raw_txs, list):
        logger.warning("Ignoring transactions: expected a list, got %s", type(raw_txs).__name__)
        raw_txs = None
    txs: list[Transaction] = []
    for i, row in enumerate(raw_txs or []):
        if not isinstance(row, dict):
            logger.warning("Skipping stored transaction #%d: not an object", i)
            continue
        try:
            txs.append(Transaction.from_dict(row))
        except (TypeError, ValueError) as e:
            logger.warning("Skipping stored transaction #%d: %s", i, e)

    raw_prices = data.get("manualPrices")
    if raw_prices is not None and not isinstance(raw_prices, dict):
        logger.warning("Ignoring manualPrices: expected an object, got %s", type(raw_prices).__name__)
        raw_prices = None
    prices: dict[str, float] = {}
    for ticker, value in (raw_prices or {}).items():
        price = parse_number(value)
        if price is None or price < 0:
            logger.warning("Skipping invalid manual price for %s: %r", ticker, value)
            continue
        prices[str(ticker).strip().upper()] = price

    try:
        settings = settings_from_dict(_normalize_settings(data.get("settings")))
    except ValidationError as e:
        logger.warning("Ignoring stored settings, using defaults: %s", e)
        settings = DEFAULT_SETTINGS
    return Portfolio.from_transactions(txs, manual_prices=prices, settings=settings)


def portfolio_to_state(portfolio: Portfolio) -> dict[str, Any]:
    return {
        "transactions": [t.to_dict() for t in portfolio.transactions],
        "settings": portfolio.settings.model_dump(),
        "manualPrices": dict(portfolio.manual_prices),
    }


def load_portfolio(path: Path) -> Portfolio:
    if not path.exists():
        return Portfolio()
    try:
        data = json.loads(path.read_text(encoding="utf-8") or "{}")
    except json.JSONDecodeError as e:
        raise StoreError(f"State file {path} is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise StoreError(f"State file {path} must contain a JSON object.")
    return portfolio_from_state(data)


def save_portfolio(portfolio: Portfolio, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(portfolio_to_state(portfolio), indent=2, ensure_ascii=False), encoding="utf-8")
    tmp.replace(path)
