from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from stock_tracker.settings import FeeSettings


@pytest.fixture()
def settings() -> FeeSettings:
    return FeeSettings()


@pytest.fixture()
def state_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    p = tmp_path / "state.json"
    monkeypatch.setenv("STOCK_TRACKER_STATE", str(p))
    return p
