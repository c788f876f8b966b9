"""
paper-trader: simulated single-user stock trading core.

Mock portfolio (cash, holdings, history) traded against randomly drifting
watchlist prices. No market data, no broker, no server.
"""

__version__ = "0.1.0"

from paper_trader.trade import Side, TradeRecord
from paper_trader.state import ApplicationState, Position, Settings, WatchItem, initial_state
from paper_trader.pricing import drift
from paper_trader.portfolio import PortfolioLedger, pnl_for_symbol
from paper_trader.errors import InsufficientCash, InsufficientShares
from paper_trader.controller import ActionResult, ApplicationController

__all__ = [
    "Side",
    "TradeRecord",
    "ApplicationState",
    "Position",
    "Settings",
    "WatchItem",
    "initial_state",
    "drift",
    "PortfolioLedger",
    "pnl_for_symbol",
    "InsufficientCash",
    "InsufficientShares",
    "ActionResult",
    "ApplicationController",
]
