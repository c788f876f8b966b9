"""
Configuration: defaults for a fresh portfolio and where state is stored.

Values can be overridden from the environment (see TraderConfig.from_env).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_SYMBOLS: tuple[str, ...] = (
    "AAPL",
    "MSFT",
    "TSLA",
    "GOOGL",
    "AMZN",
    "NVDA",
    "RELIANCE.NS",
    "TCS.NS",
    "HDFCBANK.NS",
)
DEFAULT_CASH = 10_000.0
DEFAULT_REFRESH_SECS = 8
STORAGE_KEY = "paper-trader-mobile-v1"

# Environment variables read by TraderConfig.from_env().
INITIAL_CASH_ENV = "PAPER_TRADER_INITIAL_CASH"
REFRESH_SECS_ENV = "PAPER_TRADER_REFRESH_SECS"
STORE_PATH_ENV = "PAPER_TRADER_STORE_PATH"


@dataclass(frozen=True)
class TraderConfig:
    """Defaults used to build the initial state and the local store."""

    initial_cash: float = DEFAULT_CASH
    default_symbols: tuple[str, ...] = DEFAULT_SYMBOLS
    refresh_secs: int = DEFAULT_REFRESH_SECS
    volatility: float = 0.015
    storage_key: str = STORAGE_KEY
    store_path: Path = field(default_factory=lambda: Path.home() / ".paper_trader" / "state.json")

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> TraderConfig:
        """
        Build a config from defaults plus environment overrides.

        Invalid values are logged and ignored; the default is kept.
        """
        env = os.environ if environ is None else environ
        config = cls()

        raw_cash = env.get(INITIAL_CASH_ENV)
        if raw_cash:
            try:
                cash = float(raw_cash)
                if cash < 0:
                    raise ValueError("negative")
                config = replace(config, initial_cash=cash)
            except ValueError:
                logger.warning("Ignoring %s=%r: expected a non-negative number", INITIAL_CASH_ENV, raw_cash)

        raw_refresh = env.get(REFRESH_SECS_ENV)
        if raw_refresh:
            try:
                secs = int(raw_refresh)
                if secs < 1:
                    raise ValueError("not positive")
                config = replace(config, refresh_secs=secs)
            except ValueError:
                logger.warning("Ignoring %s=%r: expected a positive integer", REFRESH_SECS_ENV, raw_refresh)

        raw_path = env.get(STORE_PATH_ENV)
        if raw_path:
            config = replace(config, store_path=Path(raw_path).expanduser())

        return config
