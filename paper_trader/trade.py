"""
Trade side and the immutable trade record kept in history.

Records are audit entries: created on every successful fill, never modified.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class Side(Enum):
    BUY = "BUY"
    SELL = "SELL"


@dataclass(frozen=True)
class TradeRecord:
    """One fill. `time` is epoch milliseconds."""

    id: str
    time: int
    side: Side
    symbol: str
    qty: int
    price: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "time": self.time,
            "side": self.side.value,
            "symbol": self.symbol,
            "qty": self.qty,
            "price": self.price,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TradeRecord:
        return cls(
            id=str(data["id"]),
            time=int(data["time"]),
            side=Side(str(data["side"]).upper()),
            symbol=str(data["symbol"]),
            qty=int(data["qty"]),
            price=float(data["price"]),
        )
