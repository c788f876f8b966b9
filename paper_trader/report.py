"""
Portfolio report: table views of the watchlist and history, and a printed summary.
"""

from __future__ import annotations

import pandas as pd

from paper_trader.portfolio import pnl_for_symbol, summarize
from paper_trader.pricing import price_map_from
from paper_trader.state import ApplicationState

WATCHLIST_COLUMNS = ["symbol", "price", "qty", "avg", "pnl", "change"]
HISTORY_COLUMNS = ["id", "time", "side", "symbol", "qty", "price"]


def format_currency(value: float) -> str:
    """USD with thousands separators and two decimals, e.g. -$1,234.50."""
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_pct(fraction: float) -> str:
    """0.0123 -> '1.23%'."""
    return f"{fraction * 100:.2f}%"


def watchlist_frame(state: ApplicationState) -> pd.DataFrame:
    """
    One row per watched symbol, in watchlist order.

    qty/avg are 0 for symbols not held; pnl/change follow pnl_for_symbol.
    """
    prices = price_map_from(state.watchlist)
    rows = []
    for item in state.watchlist:
        held = state.holdings.get(item.symbol)
        pnl = pnl_for_symbol(item.symbol, state.holdings, prices)
        rows.append(
            {
                "symbol": item.symbol,
                "price": item.price,
                "qty": held.qty if held else 0,
                "avg": held.avg if held else 0.0,
                "pnl": pnl.pnl,
                "change": pnl.change,
            }
        )
    return pd.DataFrame(rows, columns=WATCHLIST_COLUMNS)


def history_frame(state: ApplicationState) -> pd.DataFrame:
    """Trade history, most recent first, with `time` as a datetime column."""
    rows = [t.to_dict() for t in state.history]
    df = pd.DataFrame(rows, columns=HISTORY_COLUMNS)
    df["time"] = pd.to_datetime(df["time"].astype("int64"), unit="ms")
    return df


def print_report(state: ApplicationState, *, max_trades: int = 10) -> None:
    """Print totals, watchlist cards and the most recent trades."""
    prices = price_map_from(state.watchlist)
    summary = summarize(state, prices)
    print("--- Paper Trader ---")
    print(f"Total value:  {format_currency(summary.total_value)}")
    print(f"Cash:         {format_currency(summary.cash)}")
    print(f"Invested:     {format_currency(summary.invested)}")
    print("--- Watchlist ---")
    for row in watchlist_frame(state).itertuples(index=False):
        line = f"{row.symbol:<12} {format_currency(row.price):>12}  {format_pct(row.change):>8} / {format_currency(row.pnl)} P&L"
        if row.qty:
            line += f"  (holding {row.qty} @ {format_currency(row.avg)})"
        print(line)
    print("--- Trade History ---")
    if not state.history:
        print("No trades yet.")
    for t in history_frame(state).head(max_trades).itertuples(index=False):
        print(f"{t.side:<4} {t.symbol:<12} x{t.qty:<5} {format_currency(t.price):>12}  {t.time:%Y-%m-%d %H:%M:%S}")
    print("--------------------")
