from __future__ import annotations

import datetime as dt
import json
import logging
import os
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from pydantic import ValidationError

from stock_tracker.exceptions import StockTrackerError
from stock_tracker.portfolio import Portfolio
from stock_tracker.settings import load_settings
from stock_tracker.store import load_portfolio, save_portfolio, state_path_from_env
from stock_tracker.transactions import TradeRequest
from stock_tracker.types import Market
from stock_tracker.views import SortConfig, sort_records, transactions_newest_first

app = typer.Typer(add_completion=False, no_args_is_help=True, help="Two-market stock holdings and P&L tracker.")
settings_app = typer.Typer(help="Show or change fee/tax settings.")
app.add_typer(settings_app, name="settings")


class _State:
    path: Path = Path()


_state = _State()


def _fmt_money(value: float, market: Market) -> str:
    digits = 0 if market is Market.DOMESTIC else 2
    return f"{value:,.{digits}f} {market.currency}"


def _load() -> Portfolio:
    try:
        portfolio = load_portfolio(_state.path)
    except StockTrackerError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    return portfolio


def _save(portfolio: Portfolio) -> None:
    save_portfolio(portfolio, _state.path)


def _sort(direction: str, key: Optional[str]) -> Optional[SortConfig]:
    if key is None:
        return None
    if direction not in {"asc", "desc"}:
        raise typer.BadParameter(f"Invalid --direction: {direction} (use asc|desc)")
    return SortConfig(key=key, direction=direction)  # type: ignore[arg-type]


@app.callback()
def main(
    state: Optional[Path] = typer.Option(None, help="State JSON file (default $STOCK_TRACKER_STATE or ./stock_tracker_state.json)."),
    log_level: str = typer.Option(os.getenv("STOCK_TRACKER_LOG_LEVEL", "WARNING"), help="Logging level."),
):
    load_dotenv()
    logging.basicConfig(level=log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    _state.path = state if state is not None else state_path_from_env()


def _request(
    side: str,
    ticker: str,
    shares: str,
    price: str,
    market: str,
    date: Optional[str],
    name: Optional[str],
    fund: bool,
) -> TradeRequest:
    return TradeRequest(
        date=date or dt.date.today().isoformat(),
        ticker=ticker,
        name=name,
        side=side,
        market=market,
        price=price,
        shares=shares,
        is_fund_like=fund,
    )


@app.command("add")
def add_cmd(
    side: str = typer.Argument(..., help="buy|sell"),
    ticker: str = typer.Argument(...),
    shares: str = typer.Argument(...),
    price: str = typer.Argument(...),
    market: str = typer.Option("DOMESTIC", help="DOMESTIC|FOREIGN"),
    date: Optional[str] = typer.Option(None, help="Trade date (YYYY-MM-DD), default today."),
    name: Optional[str] = typer.Option(None, help="Display name, default ticker."),
    fund: bool = typer.Option(False, "--fund/--stock", help="Fund-like instrument (lower domestic tax)."),
):
    """Record a trade."""
    portfolio = _load()
    try:
        tx = portfolio.add_trade(_request(side, ticker, shares, price, market, date, name, fund))
    except StockTrackerError as e:
        raise typer.BadParameter(str(e))
    _save(portfolio)
    typer.echo(
        f"Added {tx.id} {tx.date.isoformat()} {tx.side.value.upper()} {tx.ticker} {tx.shares:g} @ {tx.price:g} "
        f"fee={_fmt_money(tx.fee, tx.market)} tax={_fmt_money(tx.tax, tx.market)} "
        f"settlement={_fmt_money(tx.settlement_amount, tx.market)}"
    )


@app.command("preview")
def preview_cmd(
    side: str = typer.Argument(..., help="buy|sell"),
    ticker: str = typer.Argument(...),
    shares: str = typer.Argument(...),
    price: str = typer.Argument(...),
    market: str = typer.Option("DOMESTIC", help="DOMESTIC|FOREIGN"),
    fund: bool = typer.Option(False, "--fund/--stock"),
):
    """Show the fee, tax and settlement a trade would be booked with."""
    portfolio = _load()
    req = _request(side, ticker, shares, price, market, None, None, fund)
    try:
        charges = portfolio.preview(req)
        _, _, _, mkt, _, _ = req.validate()
    except StockTrackerError as e:
        raise typer.BadParameter(str(e))
    typer.echo(
        json.dumps(
            {
                "gross": charges.gross_amount,
                "fee": charges.fee,
                "tax": charges.tax,
                "settlement": charges.settlement_amount,
                "currency": mkt.currency,
            },
            indent=2,
        )
    )


@app.command("delete")
def delete_cmd(tx_id: str = typer.Argument(..., help="Transaction id")):
    """Delete one transaction by id."""
    portfolio = _load()
    if not portfolio.delete_transaction(tx_id):
        typer.echo(f"No transaction with id {tx_id}", err=True)
        raise typer.Exit(code=2)
    _save(portfolio)
    typer.echo(f"Deleted {tx_id}")


@app.command("delete-ticker")
def delete_ticker_cmd(ticker: str = typer.Argument(...)):
    """Delete every transaction and the manual price for a ticker."""
    portfolio = _load()
    removed = portfolio.delete_ticker(ticker)
    _save(portfolio)
    typer.echo(f"Deleted {removed} transaction(s) for {ticker.strip().upper()}")


@app.command("price")
def price_cmd(
    ticker: str = typer.Argument(...),
    value: Optional[float] = typer.Argument(None, help="New manual price; omit to show the current one."),
):
    """Show or set the manual current price for a ticker."""
    portfolio = _load()
    if value is None:
        current = portfolio.get_price(ticker)
        typer.echo(f"{ticker.strip().upper()}: {'-' if current is None else f'{current:g}'}")
        return
    try:
        portfolio.set_price(ticker, value)
    except StockTrackerError as e:
        raise typer.BadParameter(str(e))
    _save(portfolio)
    typer.echo(f"{ticker.strip().upper()}: {value:g}")


@app.command("holdings")
def holdings_cmd(
    sort: Optional[str] = typer.Option(None, help="Field to sort by (e.g. unrealized_pl, roi)."),
    direction: str = typer.Option("desc", help="asc|desc"),
):
    """List open positions with unrealized P&L."""
    portfolio = _load()
    rows = sort_records(portfolio.derive().holdings.values(), _sort(direction, sort))
    if not rows:
        typer.echo("No open positions.")
        return
    for h in rows:
        typer.echo(
            f"{h.ticker:<8} {h.name:<16} {h.market.value:<8} shares={h.shares:g} avg={h.avg_cost:,.2f} "
            f"price={h.current_price:g} cost={_fmt_money(h.total_cost_basis, h.market)} "
            f"value={_fmt_money(h.market_value, h.market)} pl={_fmt_money(h.unrealized_pl, h.market)} "
            f"roi={h.roi:+.2f}%"
        )


@app.command("realized")
def realized_cmd(
    sort: Optional[str] = typer.Option(None, help="Field to sort by (e.g. realized_pl, roi)."),
    direction: str = typer.Option("desc", help="asc|desc"),
):
    """List realized P&L per ticker."""
    portfolio = _load()
    rows = sort_records(portfolio.derive().realized.values(), _sort(direction, sort))
    if not rows:
        typer.echo("No realized trades.")
        return
    for r in rows:
        typer.echo(
            f"{r.ticker:<8} {r.name:<16} {r.market.value:<8} sells={r.trade_count} "
            f"revenue={_fmt_money(r.total_revenue, r.market)} cost={_fmt_money(r.total_cost_retired, r.market)} "
            f"pl={_fmt_money(r.realized_pl, r.market)} roi={r.roi:+.2f}%"
        )


@app.command("summary")
def summary_cmd():
    """Per-market totals."""
    portfolio = _load()
    for market, s in portfolio.summary().items():
        typer.echo(
            f"{market.value:<8} positions={s.positions} value={_fmt_money(s.market_value, market)} "
            f"cost={_fmt_money(s.total_cost, market)} unrealized={_fmt_money(s.unrealized_pl, market)} "
            f"roi={s.roi:+.2f}% realized={_fmt_money(s.realized_pl, market)}"
        )


@app.command("transactions")
def transactions_cmd(ticker: Optional[str] = typer.Option(None, help="Only this ticker.")):
    """List transactions, newest first."""
    portfolio = _load()
    txs = transactions_newest_first(portfolio.transactions, ticker)
    if not txs:
        typer.echo("No transactions.")
        return
    for t in txs:
        typer.echo(
            f"{t.id} {t.date.isoformat()} {t.side.value.upper():<4} {t.ticker:<8} {t.shares:g} @ {t.price:g} "
            f"fee={t.fee:g} tax={t.tax:g} settlement={_fmt_money(t.settlement_amount, t.market)}"
        )


@settings_app.command("show")
def settings_show_cmd():
    """Print the current fee/tax settings as JSON."""
    portfolio = _load()
    typer.echo(json.dumps(portfolio.settings.model_dump(), indent=2))


@settings_app.command("set")
def settings_set_cmd(
    key: str = typer.Argument(..., help="Setting name, e.g. domestic_discount"),
    value: float = typer.Argument(...),
):
    """Change one fee/tax setting."""
    portfolio = _load()
    if key not in type(portfolio.settings).model_fields:
        raise typer.BadParameter(f"Unknown setting: {key}")
    try:
        portfolio.update_settings(**{key: value})
    except ValidationError as e:
        raise typer.BadParameter(f"Invalid value for {key}: {value}") from e
    _save(portfolio)
    typer.echo(f"{key} = {getattr(portfolio.settings, key)}")


@settings_app.command("import")
def settings_import_cmd(path: Optional[Path] = typer.Argument(None, help="YAML file; default search path.")):
    """Replace settings with those from a YAML file."""
    portfolio = _load()
    try:
        settings, found = load_settings(path)
    except StockTrackerError as e:
        raise typer.BadParameter(str(e))
    if found is None:
        typer.echo("No settings file found.", err=True)
        raise typer.Exit(code=2)
    portfolio.update_settings(**settings.model_dump())
    _save(portfolio)
    typer.echo(f"Using config: {found}")


if __name__ == "__main__":
    app()
