"""
PersistenceGateway: load/save the full ApplicationState as JSON under one key.

read()/write() raise PersistenceReadFailure / PersistenceWriteFailure.
load()/save() wrap them for best-effort use: failures are logged and treated
as "no saved state" or ignored.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from paper_trader.config import STORAGE_KEY
from paper_trader.errors import PersistenceReadFailure, PersistenceWriteFailure
from paper_trader.persistence.stores import KeyValueStore
from paper_trader.state import ApplicationState, merge_over_defaults

logger = logging.getLogger(__name__)


class PersistenceGateway:
    """Reads and writes the application state blob through a KeyValueStore."""

    def __init__(self, store: KeyValueStore, key: str = STORAGE_KEY) -> None:
        self.store = store
        self.key = key

    async def read(self, defaults: ApplicationState) -> ApplicationState | None:
        """
        Return the saved state merged over defaults, or None if nothing is saved.
        Raises PersistenceReadFailure if the store fails or the payload is malformed.
        """
        try:
            raw = await self.store.get(self.key)
        except Exception as e:  # noqa: BLE001
            raise PersistenceReadFailure(f"store read failed: {e!s}") from e
        if not raw:
            return None
        try:
            parsed = json.loads(raw)
            return merge_over_defaults(parsed, defaults)
        except (ValueError, TypeError, KeyError, AttributeError, OverflowError, RecursionError) as e:
            raise PersistenceReadFailure(f"saved state is malformed: {e!s}") from e

    async def load(self, defaults: ApplicationState) -> ApplicationState | None:
        """Best-effort read: any failure is logged and reported as no saved state."""
        try:
            return await self.read(defaults)
        except PersistenceReadFailure as e:
            logger.warning("Ignoring saved state: %s", e)
            return None

    async def write(self, state: ApplicationState | dict[str, Any]) -> None:
        """Serialize and store. Accepts a state or an already captured to_dict() snapshot."""
        payload = state.to_dict() if isinstance(state, ApplicationState) else state
        try:
            raw = json.dumps(payload)
        except (TypeError, ValueError) as e:
            raise PersistenceWriteFailure(f"state is not serializable: {e!s}") from e
        try:
            await self.store.set(self.key, raw)
        except Exception as e:  # noqa: BLE001
            raise PersistenceWriteFailure(f"store write failed: {e!s}") from e

    async def save(self, state: ApplicationState | dict[str, Any]) -> bool:
        """Best-effort write. Returns False (after logging) on failure; never retries."""
        try:
            await self.write(state)
        except PersistenceWriteFailure as e:
            logger.warning("State not saved: %s", e)
            return False
        logger.debug("State saved under %s", self.key)
        return True
