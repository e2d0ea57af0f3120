from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Literal, Optional, TypeVar

from stock_tracker.transactions import Transaction

T = TypeVar("T")

Direction = Literal["asc", "desc"]


@dataclass(frozen=True)
class SortConfig:
    key: str
    direction: Direction = "desc"


def next_sort(current: Optional[SortConfig], key: str) -> SortConfig:
    """Clicking a column sorts descending; clicking it again flips to ascending."""
    if current is not None and current.key == key and current.direction == "desc":
        return SortConfig(key=key, direction="asc")
    return SortConfig(key=key, direction="desc")


def field_selector(key: str) -> Callable[[Any], Any]:
    def _get(record: Any) -> Any:
        if isinstance(record, dict):
            return record.get(key)
        return getattr(record, key, None)

    return _get


def sort_records(records: Iterable[T], config: Optional[SortConfig]) -> list[T]:
    """
    Stable sort by an arbitrary field. Records missing the field sort last in
    either direction.
    """
    out = list(records)
    if config is None:
        return out
    get = field_selector(config.key)
    present = [r for r in out if get(r) is not None]
    missing = [r for r in out if get(r) is None]
    present.sort(key=get, reverse=config.direction == "desc")
    return present + missing


def filter_transactions(txs: Iterable[Transaction], ticker: Optional[str]) -> list[Transaction]:
    if not ticker:
        return list(txs)
    sym = ticker.strip().upper()
    return [t for t in txs if t.ticker == sym]


def transactions_newest_first(txs: Iterable[Transaction], ticker: Optional[str] = None) -> list[Transaction]:
    return sorted(filter_transactions(txs, ticker), key=lambda t: t.date, reverse=True)
