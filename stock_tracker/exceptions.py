from __future__ import annotations


class StockTrackerError(Exception):
    pass


class InvalidTradeError(StockTrackerError):
    """Raised when a trade request fails boundary validation."""


class StoreError(StockTrackerError):
    """Raised when the persisted state cannot be read or decoded."""


class SettingsError(StockTrackerError):
    """Raised when a settings file cannot be parsed or holds invalid values."""
