"""
Paper trading session: drive the controller from a script.

Shows: file-backed persistence, startup load, a few trades (one rejected),
watchlist edits, manual price ticks, observers and the printed report.
Run twice to see state restored from the store file.
"""

from __future__ import annotations

import asyncio
import logging

import numpy as np

from paper_trader import ApplicationController, Side, TradeRecord
from paper_trader.config import TraderConfig
from paper_trader.persistence import JsonFileStore, PersistenceGateway
from paper_trader.report import print_report
from paper_trader.state import ApplicationState


def print_fill_observer(trade: TradeRecord, state: ApplicationState) -> None:
    """Observer: post-trade log."""
    print(f"  [Observer] FILL {trade.side.value} {trade.qty} {trade.symbol} @ {trade.price:.2f} (cash {state.cash:.2f})")


def print_notice(message: str) -> None:
    print(f"  [Notice] {message}")


async def main() -> None:
    config = TraderConfig.from_env()
    gateway = PersistenceGateway(JsonFileStore(config.store_path), key=config.storage_key)
    controller = ApplicationController(
        gateway,
        config=config,
        rng=np.random.default_rng(7),
        notify=print_notice,
        observers=[print_fill_observer],
    )

    print(f"--- Loading state from {config.store_path} ---")
    await controller.start(run_ticker=False)

    print("\n--- Trades ---")
    controller.submit_trade("AAPL", "10", Side.BUY)
    controller.submit_trade("msft", 3, "BUY")
    controller.submit_trade("AAPL", 4, Side.SELL)
    controller.submit_trade("TSLA", 1_000_000, Side.BUY)  # rejected: not enough cash

    print("\n--- Watchlist edits ---")
    controller.add_symbol(" spy ")
    controller.add_symbol("AAPL")  # already present
    controller.remove_symbol("HDFCBANK.NS")

    print("\n--- Price ticks ---")
    for _ in range(3):
        controller.tick()
    for sym in ("AAPL", "MSFT"):
        pnl = controller.pnl(sym)
        print(f"  {sym}: pnl={pnl.pnl:.2f} change={pnl.change:.4f}")

    print()
    print_report(controller.state)

    print("\n--- Rejected log ---")
    for entry in controller.get_rejected_log():
        print(f"  Rejected: action={entry.action}, reason={entry.reason}")

    await controller.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(main())
