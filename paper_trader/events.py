"""
State-change events.

Events are immutable notices that the application state moved on. Handlers
(persistence, UI refresh) react to them; events carry no business logic.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any


class ChangeReason(Enum):
    LOAD = "load"
    TICK = "tick"
    TRADE = "trade"
    WATCHLIST = "watchlist"
    SETTINGS = "settings"
    RESET = "reset"


@dataclass(frozen=True)
class StateChanged:
    """
    Emitted after a mutation has settled. `snapshot` is the persisted-schema
    dict captured at dispatch time, so later mutations cannot leak into it.
    """

    reason: ChangeReason
    snapshot: dict[str, Any]
    timestamp: datetime
