from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from stock_tracker.exceptions import SettingsError

logger = logging.getLogger(__name__)


class FeeSettings(BaseModel):
    """
    Fee/tax rates for both markets.

    Defaults are the reference values for a discounted domestic broker and a
    low-cost foreign broker. Unknown keys are ignored so older or newer state
    files still load.
    """

    model_config = ConfigDict(extra="ignore", frozen=True, allow_inf_nan=False)

    # Domestic (integer currency)
    domestic_fee_rate: float = Field(default=0.001425, ge=0)
    domestic_discount: float = Field(default=0.6, ge=0)
    domestic_stock_tax_rate: float = Field(default=0.003, ge=0)
    domestic_fund_tax_rate: float = Field(default=0.001, ge=0)
    domestic_min_fee: float = Field(default=20, ge=0)
    # Foreign (fractional currency)
    foreign_fee_rate: float = Field(default=0.001, ge=0)
    foreign_min_fee: float = Field(default=0, ge=0)
    foreign_sale_levy_rate: float = Field(default=0.000008, ge=0)

    def merged(self, overrides: dict[str, Any] | None) -> "FeeSettings":
        data = self.model_dump()
        data.update({k: v for k, v in (overrides or {}).items() if v is not None})
        return FeeSettings.model_validate(data)


DEFAULT_SETTINGS = FeeSettings()


def settings_from_dict(data: dict[str, Any] | None) -> FeeSettings:
    """Merge a possibly partial settings mapping over the defaults."""
    return DEFAULT_SETTINGS.merged(data)


def _candidate_paths() -> list[Path]:
    paths = [Path("stock_tracker.yaml")]
    env = os.getenv("STOCK_TRACKER_CONFIG")
    if env:
        paths.insert(0, Path(env))
    home = Path(os.path.expanduser("~"))
    paths.append(home / ".stock_tracker" / "stock_tracker.yaml")
    return paths


def load_settings(path: Optional[Path] = None) -> tuple[FeeSettings, Optional[str]]:
    """
    Load fee settings from YAML (if present).

    Search paths (first match wins):
      - $STOCK_TRACKER_CONFIG
      - ./stock_tracker.yaml
      - ~/.stock_tracker/stock_tracker.yaml

    The file may hold the settings at the top level or under a `fees:` key.
    Raises SettingsError if the file is not a YAML mapping or a value is out
    of range.
    """
    candidates = [Path(path)] if path is not None else _candidate_paths()
    for p in candidates:
        if p.exists():
            try:
                data = yaml.safe_load(p.read_text()) or {}
            except yaml.YAMLError as e:
                raise SettingsError(f"{p} is not valid YAML: {e}") from e
            if not isinstance(data, dict):
                raise SettingsError(f"{p} must contain a mapping of settings, got {type(data).__name__}")
            if isinstance(data.get("fees"), dict):
                data = data["fees"]
            try:
                settings = settings_from_dict(data)
            except ValidationError as e:
                raise SettingsError(f"Invalid settings in {p}: {e}") from e
            logger.debug("Loaded fee settings from %s", p)
            return settings, str(p)
    return DEFAULT_SETTINGS, None
