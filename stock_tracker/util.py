from __future__ import annotations

import datetime as dt
import math
import re
from typing import Any


_NUMBER_RE = re.compile(r"[-+]?\d[\d,]*\.?\d*(?:[eE][-+]?\d+)?")

# Positions at or below this share count are treated as closed.
SHARE_EPSILON = 1e-6


def parse_date(value: Any) -> dt.date | None:
    if value is None:
        return None
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    s = str(value).strip()
    if not s:
        return None
    try:
        return dt.date.fromisoformat(s[:10])
    except ValueError:
        pass
    for fmt in ("%Y/%m/%d", "%m/%d/%Y", "%d-%b-%Y"):
        try:
            return dt.datetime.strptime(s.split()[0], fmt).date()
        except ValueError:
            continue
    return None


def parse_number(value: Any) -> float | None:
    """
    Parse a user-entered quantity or price.

    - `None`, blanks and non-numeric text -> None
    - "1,000" -> 1000.0
    - NaN and infinities -> None
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        x = float(value)
        return x if math.isfinite(x) else None
    s = str(value).strip().replace("$", "")
    if not s:
        return None
    m = _NUMBER_RE.fullmatch(s)
    if not m:
        return None
    try:
        x = float(m.group(0).replace(",", ""))
    except ValueError:
        return None
    return x if math.isfinite(x) else None


def safe_pct(n: float, d: float) -> float:
    if d == 0:
        return 0.0
    return n / d * 100.0


def is_closed(shares: float) -> bool:
    return shares <= SHARE_EPSILON
