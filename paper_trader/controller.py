"""
Application controller: owns the state, runs the price ticker, routes user
actions to the ledger and persists after every change.

Lifecycle is LOADING -> READY, once. User actions are rejected while loading.
Every action returns an ActionResult; nothing raises past this boundary.
Flow for a trade: normalize input -> price lookup -> ledger -> observers ->
StateChanged -> fire-and-forget save.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol

import numpy as np

from paper_trader.config import TraderConfig
from paper_trader.errors import InsufficientCash, InsufficientShares
from paper_trader.event_loop import EventLoop
from paper_trader.events import ChangeReason, StateChanged
from paper_trader.persistence.gateway import PersistenceGateway
from paper_trader.portfolio import PnL, PortfolioLedger, PortfolioSummary, epoch_ms, pnl_for_symbol, summarize
from paper_trader.pricing import drift_watchlist, price_map_from, seed_price
from paper_trader.state import ApplicationState, Settings, WatchItem, initial_state
from paper_trader.trade import Side, TradeRecord

logger = logging.getLogger(__name__)


class LifecycleState(Enum):
    LOADING = "loading"
    READY = "ready"


class TradeObserver(Protocol):
    """Post-trade callback."""

    def __call__(self, trade: TradeRecord, state: ApplicationState) -> None:
        ...


@dataclass(frozen=True)
class ActionResult:
    """Outcome of a user action. `message` is the user-visible rejection reason."""

    ok: bool
    message: str | None = None
    trade: TradeRecord | None = None


@dataclass
class RejectedAction:
    """One entry for a rejected user action."""

    action: str
    reason: str
    timestamp: datetime


def normalize_symbol(raw: str | None) -> str:
    return (raw or "").strip().upper()


def parse_quantity(raw: int | float | str | None) -> int:
    """
    Whole-share quantity from user input: blank -> 1, floored, at least 1.
    Raises ValueError if the input is not a number.
    """
    if raw is None:
        return 1
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return 1
    try:
        value = float(raw)
    except OverflowError as e:
        raise ValueError(f"quantity out of range: {raw!r}") from e
    if not math.isfinite(value):
        raise ValueError(f"quantity must be finite, got {raw!r}")
    return max(1, math.floor(value))


class ApplicationController:
    """
    Compose ledger, price simulator and persistence behind the user-facing
    operations: submit_trade, add_symbol, remove_symbol, reset_all,
    set_refresh_secs.
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        *,
        config: TraderConfig | None = None,
        rng: np.random.Generator | None = None,
        notify: Callable[[str], None] | None = None,
        observers: Sequence[TradeObserver] = (),
        clock: Callable[[], int] = epoch_ms,
    ) -> None:
        self.gateway = gateway
        self.config = config or TraderConfig()
        self._rng = rng if rng is not None else np.random.default_rng()
        self._notify = notify
        self.observers: list[TradeObserver] = list(observers)
        self.lifecycle = LifecycleState.LOADING
        self.state = ApplicationState(cash=self.config.initial_cash)
        self.ledger = PortfolioLedger(self.state, clock=clock)
        self.events = EventLoop()
        self.events.subscribe(self._persist)
        self._rejected_log: list[RejectedAction] = []
        self._pending_saves: set[asyncio.Task] = set()
        self._ticker: asyncio.Task | None = None
        self._ticker_interval: int | None = None
        self._ticker_enabled = False
        self._starting = False
        self._last_save: asyncio.Task | None = None

    # --- lifecycle ---

    @property
    def ready(self) -> bool:
        return self.lifecycle is LifecycleState.READY

    def _defaults(self) -> ApplicationState:
        return initial_state(self._rng, self.config)

    def _set_state(self, state: ApplicationState) -> None:
        self.state = state
        self.ledger.state = state

    async def start(self, *, run_ticker: bool = True) -> None:
        """
        Load saved state (or fall back to defaults), switch to READY and start
        the price ticker. A second call is a no-op.
        """
        if self.ready or self._starting:
            logger.warning("Controller already started; ignoring start()")
            return
        self._starting = True
        try:
            defaults = self._defaults()
            loaded = await self.gateway.load(defaults)
        finally:
            self._starting = False
        if loaded is None:
            logger.info("No saved state; starting with defaults")
            loaded = defaults
        self._set_state(loaded)
        self.lifecycle = LifecycleState.READY
        logger.info(
            "Controller ready: cash=%.2f, %d watched, %d held, %d trades",
            self.state.cash,
            len(self.state.watchlist),
            len(self.state.holdings),
            len(self.state.history),
        )
        self._emit(ChangeReason.LOAD)
        self._ticker_enabled = run_ticker
        if run_ticker:
            self._start_ticker()

    async def close(self) -> None:
        """Stop the ticker and wait for in-flight saves."""
        self._ticker_enabled = False
        await self._stop_ticker()
        await self.flush()

    async def flush(self) -> None:
        """Wait until every scheduled save has finished."""
        while self._pending_saves:
            await asyncio.gather(*list(self._pending_saves), return_exceptions=True)

    # --- ticker ---

    async def _run_ticker(self, interval: int) -> None:
        while True:
            self.tick()
            await asyncio.sleep(interval)

    def _start_ticker(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
        interval = self.state.settings.refresh_secs
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; price ticker not started")
            self._ticker = None
            self._ticker_interval = None
            return
        self._ticker = loop.create_task(self._run_ticker(interval))
        self._ticker_interval = interval
        logger.debug("Price ticker running every %ds", interval)

    async def _stop_ticker(self) -> None:
        ticker, self._ticker = self._ticker, None
        self._ticker_interval = None
        if ticker is None:
            return
        ticker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await ticker

    def _sync_ticker(self) -> None:
        """Restart the ticker if the configured interval no longer matches."""
        if self._ticker_enabled and self._ticker_interval != self.state.settings.refresh_secs:
            self._start_ticker()

    def tick(self) -> None:
        """Drift every watchlist price once, replacing the watchlist."""
        if not self.ready:
            return
        self.state.watchlist = drift_watchlist(self.state.watchlist, self._rng, self.config.volatility)
        logger.debug("Tick: %d prices updated", len(self.state.watchlist))
        self._emit(ChangeReason.TICK)

    # --- change events / persistence ---

    def _emit(self, reason: ChangeReason) -> None:
        self.events.dispatch(StateChanged(reason=reason, snapshot=self.state.to_dict(), timestamp=datetime.now()))

    async def _save_after(self, previous: asyncio.Task | None, snapshot: dict) -> None:
        """Write snapshot once the previous save has finished, so writes land in order."""
        if previous is not None and not previous.done():
            await asyncio.wait([previous])
        await self.gateway.save(snapshot)

    def _persist(self, event: StateChanged) -> None:
        """
        Queue a save of the snapshot; not awaited by later actions. Saves are
        chained, each waiting for the one before it.
        """
        if event.reason is ChangeReason.LOAD:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            asyncio.run(self.gateway.save(event.snapshot))
            return
        previous = self._last_save
        if previous is not None and previous.get_loop() is not loop:
            previous = None
        task = loop.create_task(self._save_after(previous, event.snapshot))
        self._last_save = task
        self._pending_saves.add(task)
        task.add_done_callback(self._pending_saves.discard)

    # --- rejections ---

    def _reject(self, action: str, reason: str, *, notify: bool = False) -> ActionResult:
        self._rejected_log.append(RejectedAction(action=action, reason=reason, timestamp=datetime.now()))
        logger.info("%s rejected: %s", action, reason)
        if notify and self._notify is not None:
            try:
                self._notify(reason)
            except Exception:  # noqa: BLE001
                logger.exception("notify callback failed")
        return ActionResult(ok=False, message=reason)

    def get_rejected_log(self) -> list[RejectedAction]:
        """Rejected actions, oldest first."""
        return list(self._rejected_log)

    # --- user actions ---

    def submit_trade(self, symbol: str, qty: int | float | str | None, side: Side | str) -> ActionResult:
        """Fill a market trade at the symbol's current simulated price."""
        if not self.ready:
            return self._reject("trade", "Still loading", notify=True)
        sym = normalize_symbol(symbol)
        if not sym:
            return self._reject("trade", "Enter a symbol", notify=True)
        try:
            trade_side = side if isinstance(side, Side) else Side(str(side).strip().upper())
        except ValueError:
            return self._reject("trade", f"Unknown side {side!r}", notify=True)
        try:
            quantity = parse_quantity(qty)
        except (TypeError, ValueError):
            return self._reject("trade", "Invalid quantity", notify=True)
        price = self.price_map().get(sym, 0.0)
        if not price:
            return self._reject("trade", f"No price for {sym}", notify=True)

        try:
            trade = self.ledger.execute(trade_side, sym, quantity, price)
        except InsufficientCash:
            return self._reject("trade", "Not enough cash", notify=True)
        except InsufficientShares:
            return self._reject("trade", "Not enough shares", notify=True)

        for obs in self.observers:
            try:
                obs(trade, self.state)
            except Exception:  # noqa: BLE001
                logger.exception("Trade observer failed for %s", trade.id)
        self._emit(ChangeReason.TRADE)
        return ActionResult(ok=True, trade=trade)

    def add_symbol(self, symbol: str) -> ActionResult:
        """Prepend a symbol with a random seed price. Blank or duplicate is a no-op."""
        if not self.ready:
            return self._reject("add_symbol", "Still loading")
        sym = normalize_symbol(symbol)
        if not sym:
            return self._reject("add_symbol", "Enter a symbol")
        if self.state.has_symbol(sym):
            return self._reject("add_symbol", f"{sym} is already on the watchlist")
        self.state.watchlist = [WatchItem(symbol=sym, price=seed_price(self._rng)), *self.state.watchlist]
        logger.info("Watching %s", sym)
        self._emit(ChangeReason.WATCHLIST)
        return ActionResult(ok=True)

    def remove_symbol(self, symbol: str) -> ActionResult:
        """Drop a symbol from the watchlist. Holdings and history are kept."""
        if not self.ready:
            return self._reject("remove_symbol", "Still loading")
        sym = normalize_symbol(symbol)
        if not self.state.has_symbol(sym):
            return self._reject("remove_symbol", f"{sym or symbol!r} is not on the watchlist")
        self.state.watchlist = [w for w in self.state.watchlist if w.symbol != sym]
        logger.info("Stopped watching %s", sym)
        self._emit(ChangeReason.WATCHLIST)
        return ActionResult(ok=True)

    def reset_all(self, confirm: Callable[[], bool]) -> ActionResult:
        """Discard everything and start over, only if confirm() returns True."""
        if not self.ready:
            return self._reject("reset", "Still loading")
        try:
            confirmed = bool(confirm())
        except Exception:  # noqa: BLE001
            logger.exception("Reset confirmation failed")
            confirmed = False
        if not confirmed:
            return self._reject("reset", "Reset cancelled")
        self._set_state(self._defaults())
        logger.info("All data reset")
        self._emit(ChangeReason.RESET)
        self._sync_ticker()
        return ActionResult(ok=True)

    def set_refresh_secs(self, secs: int | str) -> ActionResult:
        """Change the tick interval; the ticker restarts with the new value."""
        if not self.ready:
            return self._reject("settings", "Still loading")
        try:
            settings = Settings(refresh_secs=int(secs))
        except (TypeError, ValueError):
            return self._reject("settings", "Refresh interval must be a positive whole number of seconds")
        self.state.settings = settings
        self._emit(ChangeReason.SETTINGS)
        self._sync_ticker()
        return ActionResult(ok=True)

    # --- read helpers ---

    def price_map(self) -> dict[str, float]:
        return price_map_from(self.state.watchlist)

    def pnl(self, symbol: str) -> PnL:
        return pnl_for_symbol(normalize_symbol(symbol), self.state.holdings, self.price_map())

    def summary(self) -> PortfolioSummary:
        return summarize(self.state, self.price_map())
