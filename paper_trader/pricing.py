"""
Price simulation: bounded random walk for watchlist prices.

No market data feed. Every function is pure apart from the injected
numpy Generator, so a seeded generator makes a run reproducible.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from paper_trader.state import WatchItem

DEFAULT_VOLATILITY = 0.015
TICK_LOW = 0.85
TICK_HIGH = 1.15
PRICE_FLOOR = 1.0


def _clamp(value: float, lo: float, hi: float) -> float:
    """Clamp value to [lo, hi]; hi wins when the range is empty."""
    return min(max(value, lo), hi)


def drift(
    price: float,
    volatility: float = DEFAULT_VOLATILITY,
    rng: np.random.Generator | None = None,
) -> float:
    """
    One simulated price step.

    Draws a uniform fraction in [-volatility, +volatility], applies it
    multiplicatively, then clamps to [max(1, price*0.85), price*1.15].
    """
    rng = rng if rng is not None else np.random.default_rng()
    change = float(rng.uniform(-volatility, volatility))
    moved = price * (1 + change)
    return _clamp(
        moved,
        max(PRICE_FLOOR, price * TICK_LOW),
        price * TICK_HIGH,
    )


def seed_price(rng: np.random.Generator | None = None) -> float:
    """Starting price for a newly listed symbol: uniform in [100, 300)."""
    rng = rng if rng is not None else np.random.default_rng()
    return 100.0 + float(rng.random()) * 200.0


def drift_watchlist(
    watchlist: Iterable[WatchItem],
    rng: np.random.Generator | None = None,
    volatility: float = DEFAULT_VOLATILITY,
) -> list[WatchItem]:
    """Return a new watchlist with every price drifted once."""
    rng = rng if rng is not None else np.random.default_rng()
    return [replace(w, price=drift(w.price, volatility, rng)) for w in watchlist]


def price_map_from(watchlist: Iterable[WatchItem]) -> dict[str, float]:
    """Symbol -> latest price."""
    return {w.symbol: w.price for w in watchlist}
