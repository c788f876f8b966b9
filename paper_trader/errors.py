"""
Error taxonomy for the trading core.

Ledger errors are raised by PortfolioLedger and turned into rejected actions by
the controller. Persistence errors are raised by the gateway's read/write and
recovered by its load/save wrappers.
"""

from __future__ import annotations


class PaperTraderError(Exception):
    """Base class for all paper-trader errors."""


class InsufficientCash(PaperTraderError):
    """Buy cost exceeds available cash."""

    def __init__(self, cost: float, cash: float) -> None:
        super().__init__(f"Not enough cash: cost {cost:.2f} exceeds cash {cash:.2f}")
        self.cost = cost
        self.cash = cash


class InsufficientShares(PaperTraderError):
    """Sell quantity exceeds the held position (or there is none)."""

    def __init__(self, symbol: str, requested: int, held: int) -> None:
        super().__init__(f"Not enough shares of {symbol}: requested {requested}, held {held}")
        self.symbol = symbol
        self.requested = requested
        self.held = held


class PersistenceReadFailure(PaperTraderError):
    """Saved state could not be read or decoded."""


class PersistenceWriteFailure(PaperTraderError):
    """State could not be written to the store."""
