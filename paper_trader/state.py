"""
ApplicationState: the single aggregate holding cash, watchlist, holdings,
trade history and settings.

Owned by the controller and mutated in place by the ledger. Serializes to the
persisted JSON shape (camelCase keys) via to_dict / from_dict.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

import numpy as np

from paper_trader.config import DEFAULT_REFRESH_SECS, TraderConfig
from paper_trader.pricing import seed_price
from paper_trader.trade import TradeRecord


@dataclass(frozen=True)
class WatchItem:
    """A watched symbol and its latest simulated price."""

    symbol: str
    price: float


@dataclass(frozen=True)
class Position:
    """Quantity held and volume-weighted average cost for one symbol."""

    qty: int
    avg: float


@dataclass(frozen=True)
class Settings:
    refresh_secs: int = DEFAULT_REFRESH_SECS

    def __post_init__(self) -> None:
        if int(self.refresh_secs) < 1:
            raise ValueError(f"refresh_secs must be a positive integer, got {self.refresh_secs!r}")
        object.__setattr__(self, "refresh_secs", int(self.refresh_secs))


@dataclass
class ApplicationState:
    """
    Cash, watchlist, holdings, history and settings. Mutable container;
    nested values are immutable and replaced rather than edited.
    """

    cash: float = 0.0
    watchlist: list[WatchItem] = field(default_factory=list)
    holdings: dict[str, Position] = field(default_factory=dict)
    history: list[TradeRecord] = field(default_factory=list)
    settings: Settings = field(default_factory=Settings)

    def position(self, symbol: str) -> Position | None:
        """Position in symbol, or None if not held."""
        return self.holdings.get(symbol)

    def has_symbol(self, symbol: str) -> bool:
        """True if symbol is on the watchlist."""
        return any(w.symbol == symbol for w in self.watchlist)

    def to_dict(self) -> dict[str, Any]:
        """Plain JSON-ready dict in the persisted schema."""
        return {
            "cash": self.cash,
            "watchlist": [{"symbol": w.symbol, "price": w.price} for w in self.watchlist],
            "holdings": {sym: {"qty": p.qty, "avg": p.avg} for sym, p in self.holdings.items()},
            "history": [t.to_dict() for t in self.history],
            "settings": {"refreshSecs": self.settings.refresh_secs},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ApplicationState:
        """
        Build state from the persisted schema. All top-level keys except
        settings are required; merge over defaults first (see merge_over_defaults).
        Raises KeyError, TypeError, ValueError or OverflowError on malformed input.
        """
        return cls(
            cash=float(data["cash"]),
            watchlist=[WatchItem(symbol=str(w["symbol"]), price=float(w["price"])) for w in data["watchlist"]],
            holdings={
                str(sym): Position(qty=int(p["qty"]), avg=float(p["avg"]))
                for sym, p in data["holdings"].items()
            },
            history=[TradeRecord.from_dict(t) for t in data["history"]],
            settings=Settings(refresh_secs=_saved_refresh_secs(data.get("settings"))),
        )


def _saved_refresh_secs(settings: Any) -> int:
    """Saved refresh interval; a missing, non-positive or fractional value means the default."""
    value = settings.get("refreshSecs") if isinstance(settings, dict) else None
    if isinstance(value, bool):
        return DEFAULT_REFRESH_SECS
    if isinstance(value, int):
        return value if value >= 1 else DEFAULT_REFRESH_SECS
    if isinstance(value, float) and math.isfinite(value) and value >= 1 and value.is_integer():
        return int(value)
    return DEFAULT_REFRESH_SECS


def merge_over_defaults(saved: dict[str, Any], defaults: ApplicationState) -> ApplicationState:
    """
    Shallow-merge a saved (possibly partial) object over the defaults:
    missing top-level keys take the default value.
    """
    if not isinstance(saved, dict):
        raise TypeError(f"saved state must be a JSON object, got {type(saved).__name__}")
    merged = {**defaults.to_dict(), **saved}
    return ApplicationState.from_dict(merged)


def initial_state(
    rng: np.random.Generator | None = None,
    config: TraderConfig | None = None,
) -> ApplicationState:
    """Fresh portfolio: default cash, seeded default watchlist, nothing held."""
    rng = rng if rng is not None else np.random.default_rng()
    config = config or TraderConfig()
    return ApplicationState(
        cash=config.initial_cash,
        watchlist=[WatchItem(symbol=s, price=seed_price(rng)) for s in config.default_symbols],
        holdings={},
        history=[],
        settings=Settings(refresh_secs=config.refresh_secs),
    )
