"""
Change dispatcher: synchronous fan-out of StateChanged events.

Handlers run in subscription order on the caller's thread. Nothing here
awaits; handlers that do I/O schedule it themselves.
"""

from __future__ import annotations

from collections.abc import Callable

from paper_trader.events import StateChanged

Handler = Callable[[StateChanged], None]


class EventLoop:
    """Deterministic dispatcher for state-change events."""

    def __init__(self) -> None:
        self._handlers: list[Handler] = []

    def subscribe(self, handler: Handler) -> None:
        """Add a handler; it sees every event dispatched after this call."""
        self._handlers.append(handler)

    def dispatch(self, event: StateChanged) -> None:
        """Call each handler with the event, in subscription order."""
        for h in self._handlers:
            h(event)
