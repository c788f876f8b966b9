"""
Tests for paper_trader core: TradeRecord, ApplicationState, pricing, PortfolioLedger.
"""

import json

import numpy as np
import pytest

from paper_trader import (
    ApplicationState,
    InsufficientCash,
    InsufficientShares,
    PortfolioLedger,
    Position,
    Settings,
    Side,
    TradeRecord,
    WatchItem,
    drift,
    initial_state,
    pnl_for_symbol,
)
from paper_trader.config import DEFAULT_SYMBOLS
from paper_trader.portfolio import summarize
from paper_trader.pricing import drift_watchlist, price_map_from, seed_price
from paper_trader.state import merge_over_defaults


def _ledger(cash: float = 10_000.0, clock=lambda: 1_700_000_000_000) -> PortfolioLedger:
    return PortfolioLedger(ApplicationState(cash=cash), clock=clock)


# --- TradeRecord ---


def test_trade_record_to_dict_uses_persisted_shape():
    t = TradeRecord(id="1-1-ab", time=1_700_000_000_000, side=Side.SELL, symbol="AAPL", qty=3, price=101.5)
    assert t.to_dict() == {
        "id": "1-1-ab",
        "time": 1_700_000_000_000,
        "side": "SELL",
        "symbol": "AAPL",
        "qty": 3,
        "price": 101.5,
    }


def test_trade_record_immutable():
    t = TradeRecord(id="x", time=0, side=Side.BUY, symbol="AAPL", qty=1, price=1.0)
    with pytest.raises(AttributeError):
        t.qty = 2


# --- ApplicationState ---


def test_initial_state_defaults():
    s = initial_state(np.random.default_rng(0))
    assert s.cash == 10_000.0
    assert [w.symbol for w in s.watchlist] == list(DEFAULT_SYMBOLS)
    assert len(s.watchlist) == 9
    assert all(100.0 <= w.price < 300.0 for w in s.watchlist)
    assert s.holdings == {}
    assert s.history == []
    assert s.settings.refresh_secs == 8


def test_initial_state_is_reproducible_with_seed():
    a = initial_state(np.random.default_rng(5))
    b = initial_state(np.random.default_rng(5))
    assert a.to_dict() == b.to_dict()


def test_state_from_dict_reads_persisted_schema():
    data = {
        "cash": 500.0,
        "watchlist": [{"symbol": "AAPL", "price": 150.0}],
        "holdings": {"AAPL": {"qty": 2, "avg": 140.0}},
        "history": [{"id": "a", "time": 1, "side": "BUY", "symbol": "AAPL", "qty": 2, "price": 140.0}],
        "settings": {"refreshSecs": 5},
    }
    s = ApplicationState.from_dict(data)
    assert s.cash == 500.0
    assert s.watchlist == [WatchItem(symbol="AAPL", price=150.0)]
    assert s.holdings == {"AAPL": Position(qty=2, avg=140.0)}
    assert s.history[0].side == Side.BUY
    assert s.settings == Settings(refresh_secs=5)
    assert s.to_dict() == data


def test_merge_over_defaults_fills_missing_settings():
    defaults = initial_state(np.random.default_rng(1))
    s = merge_over_defaults({"cash": 1234.0, "holdings": {}, "history": []}, defaults)
    assert s.cash == 1234.0
    assert s.settings.refresh_secs == 8
    assert [w.symbol for w in s.watchlist] == list(DEFAULT_SYMBOLS)


def test_merge_over_defaults_rejects_non_object():
    with pytest.raises(TypeError):
        merge_over_defaults([1, 2, 3], initial_state(np.random.default_rng(1)))


def test_settings_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        Settings(refresh_secs=0)


# --- Pricing ---


def test_drift_stays_within_bounds():
    rng = np.random.default_rng(0)
    for _ in range(10_000):
        p = drift(100.0, 0.015, rng)
        assert 85.0 <= p <= 115.0
        assert p > 0


def test_drift_clamps_large_volatility():
    rng = np.random.default_rng(3)
    prices = [drift(100.0, 0.9, rng) for _ in range(2_000)]
    assert min(prices) >= 85.0
    assert max(prices) <= 115.0
    assert min(prices) == pytest.approx(85.0)
    assert max(prices) == pytest.approx(115.0)


def test_drift_never_below_floor_for_low_prices():
    rng = np.random.default_rng(11)
    p = 1.0
    for _ in range(1_000):
        p = drift(p, 0.5, rng)
        assert p >= 1.0


def test_drift_tiny_price_stays_positive():
    assert drift(0.5, 0.015, np.random.default_rng(0)) == pytest.approx(0.575)


def test_drift_is_deterministic_with_seed():
    a = drift(120.0, rng=np.random.default_rng(9))
    b = drift(120.0, rng=np.random.default_rng(9))
    assert a == b


def test_seed_price_range():
    rng = np.random.default_rng(2)
    for _ in range(500):
        assert 100.0 <= seed_price(rng) < 300.0


def test_drift_watchlist_returns_new_list():
    wl = [WatchItem("AAPL", 100.0), WatchItem("MSFT", 200.0)]
    out = drift_watchlist(wl, np.random.default_rng(4))
    assert out is not wl
    assert [w.symbol for w in out] == ["AAPL", "MSFT"]
    assert wl[0].price == 100.0
    assert price_map_from(out).keys() == {"AAPL", "MSFT"}


# --- PortfolioLedger: buy ---


def test_buy_creates_position_and_debits_cash():
    ledger = _ledger()
    trade = ledger.buy("AAPL", 10, 150.0)
    assert ledger.state.cash == 8500.0
    assert ledger.state.holdings["AAPL"] == Position(qty=10, avg=150.0)
    assert ledger.state.history == [trade]
    assert trade.side == Side.BUY
    assert trade.qty == 10
    assert trade.price == 150.0


def test_buy_weighted_average_cost():
    ledger = _ledger(cash=1_000_000.0)
    ledger.buy("MSFT", 7, 31.25)
    ledger.buy("MSFT", 13, 47.5)
    assert ledger.state.holdings["MSFT"].qty == 20
    assert ledger.state.holdings["MSFT"].avg == (7 * 31.25 + 13 * 47.5) / (7 + 13)


def test_buy_insufficient_cash_leaves_state_unchanged():
    ledger = _ledger(cash=1000.0)
    ledger.buy("AAPL", 2, 100.0)
    before = json.dumps(ledger.state.to_dict())
    with pytest.raises(InsufficientCash):
        ledger.buy("AAPL", 9, 100.0)
    assert json.dumps(ledger.state.to_dict()) == before


def test_buy_exactly_all_cash():
    ledger = _ledger(cash=1500.0)
    ledger.buy("AAPL", 10, 150.0)
    assert ledger.state.cash == 0.0


def test_buy_rejects_bad_arguments():
    ledger = _ledger()
    with pytest.raises(ValueError):
        ledger.buy("AAPL", 0, 100.0)
    with pytest.raises(ValueError):
        ledger.buy("AAPL", 1, 0.0)
    assert ledger.state.history == []


def test_buy_cash_conservation():
    ledger = _ledger(cash=50_000.0)
    buys = [("AAPL", 3, 101.25), ("MSFT", 5, 250.5), ("AAPL", 2, 99.75), ("NVDA", 1, 880.0)]
    for sym, qty, price in buys:
        ledger.buy(sym, qty, price)
    spent = sum(qty * price for _, qty, price in buys)
    assert 50_000.0 - ledger.state.cash == pytest.approx(spent)
    cost_basis = sum(p.qty * p.avg for p in ledger.state.holdings.values())
    assert cost_basis == pytest.approx(spent)


# --- PortfolioLedger: sell ---


def test_sell_partial_keeps_average():
    ledger = _ledger()
    ledger.buy("AAPL", 10, 150.0)
    ledger.sell("AAPL", 4, 170.0)
    assert ledger.state.holdings["AAPL"] == Position(qty=6, avg=150.0)
    assert ledger.state.cash == 8500.0 + 4 * 170.0


def test_sell_full_position_removes_it():
    ledger = _ledger()
    ledger.buy("AAPL", 10, 150.0)
    trade = ledger.sell("AAPL", 10, 140.0)
    assert "AAPL" not in ledger.state.holdings
    assert ledger.state.cash == 8500.0 + 1400.0
    assert trade.side == Side.SELL
    assert ledger.state.history[0] is trade


def test_sell_more_than_held_leaves_state_unchanged():
    ledger = _ledger()
    ledger.buy("AAPL", 3, 100.0)
    before = json.dumps(ledger.state.to_dict())
    with pytest.raises(InsufficientShares):
        ledger.sell("AAPL", 4, 100.0)
    assert json.dumps(ledger.state.to_dict()) == before


def test_sell_without_position():
    ledger = _ledger()
    with pytest.raises(InsufficientShares) as exc:
        ledger.sell("TSLA", 1, 100.0)
    assert exc.value.held == 0
    assert ledger.state.cash == 10_000.0


def test_example_scenario():
    ledger = _ledger(cash=10_000.0)
    ledger.buy("AAPL", 10, 150.0)
    assert ledger.state.cash == 8500.0
    assert ledger.state.holdings["AAPL"] == Position(qty=10, avg=150.0)
    ledger.buy("AAPL", 5, 160.0)
    assert ledger.state.holdings["AAPL"].avg == pytest.approx(153.3333333)
    assert ledger.state.cash == 7700.0
    ledger.sell("AAPL", 8, 170.0)
    assert ledger.state.holdings["AAPL"].qty == 7
    assert ledger.state.holdings["AAPL"].avg == pytest.approx(153.3333333)
    assert ledger.state.cash == 9060.0
    assert [t.side for t in ledger.state.history] == [Side.SELL, Side.BUY, Side.BUY]


def test_trade_ids_unique_within_same_millisecond():
    ledger = _ledger(cash=1_000_000.0, clock=lambda: 42)
    ids = {ledger.buy("AAPL", 1, 10.0).id for _ in range(200)}
    assert len(ids) == 200
    assert all(t.time == 42 for t in ledger.state.history)


def test_execute_dispatches_by_side():
    ledger = _ledger()
    ledger.execute(Side.BUY, "AAPL", 2, 100.0)
    ledger.execute(Side.SELL, "AAPL", 1, 110.0)
    assert ledger.state.holdings["AAPL"].qty == 1


# --- P&L queries ---


def test_pnl_for_symbol_without_position():
    pnl = pnl_for_symbol("AAPL", {}, {"AAPL": 100.0})
    assert pnl.pnl == 0.0
    assert pnl.change == 0.0


def test_pnl_for_symbol_with_position():
    holdings = {"AAPL": Position(qty=10, avg=150.0)}
    pnl = pnl_for_symbol("AAPL", holdings, {"AAPL": 165.0})
    assert pnl.pnl == 150.0
    assert pnl.change == pytest.approx(0.1)


def test_pnl_for_symbol_missing_price_reads_zero():
    holdings = {"AAPL": Position(qty=2, avg=50.0)}
    pnl = pnl_for_symbol("AAPL", holdings, {})
    assert pnl.pnl == -100.0
    assert pnl.change == -1.0


def test_summarize_totals():
    state = ApplicationState(cash=1000.0, holdings={"AAPL": Position(qty=2, avg=90.0), "X": Position(qty=1, avg=5.0)})
    summary = summarize(state, {"AAPL": 100.0})
    assert summary.cash == 1000.0
    assert summary.invested == 200.0
    assert summary.total_value == 1200.0
