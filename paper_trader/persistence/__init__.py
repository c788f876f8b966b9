"""
Persistence layer: async key-value store abstraction and the gateway that
loads/saves the whole ApplicationState as one JSON blob.

Reads and writes are best-effort: load() and save() never raise.
"""

from paper_trader.persistence.gateway import PersistenceGateway
from paper_trader.persistence.stores import InMemoryStore, JsonFileStore, KeyValueStore

__all__ = [
    "KeyValueStore",
    "InMemoryStore",
    "JsonFileStore",
    "PersistenceGateway",
]
