"""
PortfolioLedger: buy/sell against an ApplicationState with average-cost accounting.

The ledger mutates the state it wraps. Each operation validates first and only
then writes, so a rejected trade leaves the state untouched.
"""

from __future__ import annotations

import itertools
import logging
import time
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from paper_trader.errors import InsufficientCash, InsufficientShares
from paper_trader.state import ApplicationState, Position
from paper_trader.trade import Side, TradeRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PnL:
    """Unrealized P&L for one symbol; change is a fraction of average cost."""

    pnl: float = 0.0
    change: float = 0.0


@dataclass(frozen=True)
class PortfolioSummary:
    cash: float
    invested: float
    total_value: float


def epoch_ms() -> int:
    """Current time in epoch milliseconds."""
    return int(time.time() * 1000)


def _check_trade_args(qty: int, price: float) -> None:
    if isinstance(qty, bool) or not isinstance(qty, int) or qty < 1:
        raise ValueError(f"qty must be an integer >= 1, got {qty!r}")
    if not price or price <= 0:
        raise ValueError(f"price must be positive, got {price!r}")


class PortfolioLedger:
    """
    Cash, holdings and history bookkeeping for one ApplicationState.

    Average cost is recomputed on buys and left alone on sells; realized gains
    show up only as cash.
    """

    def __init__(self, state: ApplicationState, *, clock: Callable[[], int] = epoch_ms) -> None:
        self.state = state
        self._clock = clock
        self._seq = itertools.count(1)

    def _record(self, side: Side, symbol: str, qty: int, price: float) -> TradeRecord:
        now = self._clock()
        trade = TradeRecord(
            id=f"{now}-{next(self._seq)}-{uuid.uuid4().hex[:8]}",
            time=now,
            side=side,
            symbol=symbol,
            qty=qty,
            price=price,
        )
        self.state.history.insert(0, trade)
        return trade

    def buy(self, symbol: str, qty: int, price: float) -> TradeRecord:
        """Buy qty at price. Raises InsufficientCash if cost exceeds cash."""
        _check_trade_args(qty, price)
        cost = qty * price
        if cost > self.state.cash:
            raise InsufficientCash(cost, self.state.cash)

        held = self.state.position(symbol) or Position(qty=0, avg=0.0)
        new_qty = held.qty + qty
        new_avg = (held.qty * held.avg + qty * price) / new_qty
        self.state.holdings[symbol] = Position(qty=new_qty, avg=new_avg)
        self.state.cash -= cost
        trade = self._record(Side.BUY, symbol, qty, price)
        logger.info("BUY %s x%d @ %.2f (cash %.2f)", symbol, qty, price, self.state.cash)
        return trade

    def sell(self, symbol: str, qty: int, price: float) -> TradeRecord:
        """Sell qty at price. Raises InsufficientShares if the position is smaller."""
        _check_trade_args(qty, price)
        held = self.state.position(symbol)
        if held is None or held.qty < qty:
            raise InsufficientShares(symbol, qty, held.qty if held else 0)

        remaining = held.qty - qty
        if remaining == 0:
            del self.state.holdings[symbol]
        else:
            self.state.holdings[symbol] = Position(qty=remaining, avg=held.avg)
        self.state.cash += qty * price
        trade = self._record(Side.SELL, symbol, qty, price)
        logger.info("SELL %s x%d @ %.2f (cash %.2f)", symbol, qty, price, self.state.cash)
        return trade

    def execute(self, side: Side, symbol: str, qty: int, price: float) -> TradeRecord:
        """Dispatch to buy or sell."""
        if side == Side.BUY:
            return self.buy(symbol, qty, price)
        return self.sell(symbol, qty, price)


def pnl_for_symbol(
    symbol: str,
    holdings: Mapping[str, Position],
    price_map: Mapping[str, float],
) -> PnL:
    """Unrealized P&L at the mapped price; a symbol missing from the map prices at 0."""
    held = holdings.get(symbol)
    if held is None:
        return PnL()
    last = price_map.get(symbol, 0.0)
    pnl = (last - held.avg) * held.qty
    change = (last - held.avg) / held.avg if held.avg else 0.0
    return PnL(pnl=pnl, change=change)


def summarize(state: ApplicationState, price_map: Mapping[str, float]) -> PortfolioSummary:
    """Cash, market value of holdings, and their total."""
    invested = sum(p.qty * price_map.get(sym, 0.0) for sym, p in state.holdings.items())
    return PortfolioSummary(cash=state.cash, invested=invested, total_value=state.cash + invested)
