"""Strategy Controller Unit Tests
==============================

Tests for per-bar gating, order submission and lifecycle.

Author: SURIOTA Team
"""
import pytest
from dataclasses import replace
from datetime import date, datetime

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from elgran.analysis.signals import CrossSignal, TrendState
from elgran.core import BarClock, TradeDirection
from elgran.errors import ConfigurationError, OrderExecutionFailure
from elgran.trading.controller import (
    ActionType,
    ControllerState,
    SkipReason,
    StrategyConfig,
    StrategyController,
    StrategyState,
    evaluate_entry,
)
from elgran.trading.trade_throttle import TradeThrottleState
from tests.fakes import FakeAccount, crossover_closes, make_bars


def warmed_controller(config: StrategyConfig = None, closes=None):
    """Controller seeded with all but the last bar, plus that last bar"""
    bars = make_bars(closes or crossover_closes())
    controller = StrategyController(config)
    controller.warmup(bars[:-1])
    return controller, bars[-1]


def no_positions():
    return 0


def mirrored_closes():
    return [200.0 - c for c in crossover_closes()]


class TestStrategyConfig:
    """Tests for StrategyConfig"""

    def test_defaults(self):
        config = StrategyConfig()
        assert config.symbol_filter == "UKOILm"
        assert config.risk_percent == 1.0
        assert (config.trend_ma_period, config.fast_ma_period, config.slow_ma_period) == (90, 3, 6)
        assert config.stop_loss_pips == 20
        assert config.take_profit_pips == 60
        assert config.max_daily_trades == 3
        assert config.order_label == "ElGranBot"

    def test_min_bars(self):
        assert StrategyConfig().min_bars == 95
        assert StrategyConfig(trend_ma_period=4, slow_ma_period=10).min_bars == 15


class TestEntry:
    """End-to-end bar processing"""

    def test_bullish_crossover_opens_buy(self, context, gateway):
        controller, last_bar = warmed_controller()
        action = controller.on_bar(last_bar, context)

        assert action.type == ActionType.TRADE_EXECUTED
        assert action.decision.direction == TradeDirection.BUY
        assert action.decision.trend == TrendState.UP
        assert action.decision.signal == CrossSignal.BULLISH
        assert action.volume == pytest.approx(5.00)

        assert len(gateway.orders) == 1
        order = gateway.orders[0]
        assert order["direction"] == TradeDirection.BUY
        assert order["symbol"] == "UKOILm"
        assert order["volume"] == pytest.approx(5.00)
        assert order["label"] == "ElGranBot"
        assert order["stop_loss_distance"] == 20
        assert order["take_profit_distance"] == 60

        assert controller.state.throttle.trades_opened_today == 1
        assert controller.controller_state == ControllerState.IDLE

    def test_bearish_crossover_opens_sell(self, context, gateway):
        controller, last_bar = warmed_controller(closes=mirrored_closes())
        action = controller.on_bar(last_bar, context)

        assert action.type == ActionType.TRADE_EXECUTED
        assert action.decision.direction == TradeDirection.SELL
        assert action.decision.trend == TrendState.DOWN
        assert gateway.orders[0]["direction"] == TradeDirection.SELL

    def test_streaming_bars_trade_once(self, context, gateway):
        """Bars before min_bars are skipped; only the crossing bar trades"""
        controller = StrategyController()
        actions = [controller.on_bar(bar, context) for bar in make_bars(crossover_closes())]

        executed = [a for a in actions if a.type == ActionType.TRADE_EXECUTED]
        assert len(executed) == 1
        assert actions[-1] is executed[0]
        assert all(a.decision.skip_reason == SkipReason.INSUFFICIENT_HISTORY for a in actions[:94])
        assert len(gateway.orders) == 1

    def test_no_crossover_on_steady_trend(self, context, gateway):
        closes = [100.0 + 0.1 * i for i in range(100)]
        controller, last_bar = warmed_controller(closes=closes)
        action = controller.on_bar(last_bar, context)

        assert action.type == ActionType.NONE
        assert action.decision.skip_reason == SkipReason.NO_CROSSOVER
        assert action.decision.trend == TrendState.UP
        assert gateway.orders == []

    def test_flat_trend_blocks(self, context, gateway):
        controller, last_bar = warmed_controller(closes=[80.0] * 100)
        action = controller.on_bar(last_bar, context)

        assert action.decision.skip_reason == SkipReason.FLAT_TREND
        assert gateway.orders == []

    def test_insufficient_history(self, context, gateway):
        closes = crossover_closes()[:50]
        controller, last_bar = warmed_controller(closes=closes)
        action = controller.on_bar(last_bar, context)

        assert action.decision.skip_reason == SkipReason.INSUFFICIENT_HISTORY
        assert controller.state.bar_count == 50
        assert gateway.orders == []


class TestGates:
    """Window, daily cap and position gates"""

    def test_outside_window(self, context, gateway, clock, positions):
        clock.current = datetime(2025, 3, 7, 10, 0)
        controller, last_bar = warmed_controller()
        action = controller.on_bar(last_bar, context)

        assert action.decision.skip_reason == SkipReason.OUTSIDE_WINDOW
        assert gateway.orders == []
        assert positions.queries == 0

    def test_positions_queried_after_window_and_cap_pass(self, context, positions):
        controller, last_bar = warmed_controller()
        controller.on_bar(last_bar, context)
        assert positions.queries == 1

    def test_window_end_is_exclusive(self, context, gateway, clock):
        clock.current = datetime(2025, 3, 7, 22, 0)
        controller, last_bar = warmed_controller()
        action = controller.on_bar(last_bar, context)
        assert action.decision.skip_reason == SkipReason.OUTSIDE_WINDOW

    def test_open_position_blocks(self, context, gateway, positions):
        positions.count = 1
        controller, last_bar = warmed_controller()
        action = controller.on_bar(last_bar, context)

        assert action.decision.skip_reason == SkipReason.POSITION_OPEN
        assert gateway.orders == []
        assert controller.state.throttle.trades_opened_today == 0

    def test_daily_limit_blocks(self, context, gateway, positions):
        controller, last_bar = warmed_controller()
        controller.state.throttle.state = TradeThrottleState(
            trades_opened_today=3, last_reset_date=date(2025, 3, 7)
        )
        action = controller.on_bar(last_bar, context)

        assert action.decision.skip_reason == SkipReason.DAILY_LIMIT
        assert gateway.orders == []
        assert controller.state.throttle.trades_opened_today == 3
        assert positions.queries == 0

    def test_daily_limit_lifts_next_day(self, context, gateway, clock):
        controller, last_bar = warmed_controller()
        controller.state.throttle.state = TradeThrottleState(
            trades_opened_today=3, last_reset_date=date(2025, 3, 6)
        )
        action = controller.on_bar(last_bar, context)

        assert action.type == ActionType.TRADE_EXECUTED
        assert controller.state.throttle.state.last_reset_date == date(2025, 3, 7)
        assert controller.state.throttle.trades_opened_today == 1

    def test_zero_cap_never_trades(self, context, gateway):
        controller, last_bar = warmed_controller(StrategyConfig(max_daily_trades=0))
        action = controller.on_bar(last_bar, context)
        assert action.decision.skip_reason == SkipReason.DAILY_LIMIT


class TestEvaluateEntry:
    """Tests for the pure gating function"""

    @pytest.fixture
    def state(self):
        config = StrategyConfig()
        state = StrategyState.create(config)
        for bar in make_bars(crossover_closes()):
            state.append(bar)
        return state

    def test_idempotent(self, state):
        config = StrategyConfig()
        now = datetime(2025, 3, 7, 18, 0)
        throttle_before = replace(state.throttle.state)
        bars_before = state.bar_count

        first = evaluate_entry(state, config, now, no_positions)
        second = evaluate_entry(state, config, now, no_positions)

        assert first == second
        assert first.direction == TradeDirection.BUY
        assert state.throttle.state == throttle_before
        assert state.bar_count == bars_before

    def test_reads_cap_for_current_date_without_reset(self, state):
        config = StrategyConfig()
        state.throttle.state = TradeThrottleState(3, date(2025, 3, 6))

        blocked = evaluate_entry(state, config, datetime(2025, 3, 6, 18, 0), no_positions)
        allowed = evaluate_entry(state, config, datetime(2025, 3, 7, 18, 0), no_positions)

        assert blocked.skip_reason == SkipReason.DAILY_LIMIT
        assert allowed.tradable
        # Still not reset: evaluation never mutates
        assert state.throttle.state.last_reset_date == date(2025, 3, 6)

    def test_gate_order(self, state):
        """Window is checked before the position gate"""
        decision = evaluate_entry(state, StrategyConfig(), datetime(2025, 3, 7, 9, 0), lambda: 2)
        assert decision.skip_reason == SkipReason.OUTSIDE_WINDOW


class TestExecutionFailures:
    """Sizing and gateway failures"""

    def test_gateway_rejection(self, context, gateway):
        gateway.success = False
        gateway.error = "Not enough money"
        events = []
        controller, last_bar = warmed_controller()
        controller.add_listener(events.append)

        action = controller.on_bar(last_bar, context)

        assert action.type == ActionType.TRADE_FAILED
        assert action.order.error_detail == "Not enough money"
        assert len(gateway.orders) == 1
        assert controller.state.throttle.trades_opened_today == 0
        assert [e.kind for e in events] == ["failed"]
        assert events[0].message == "Not enough money"

    def test_gateway_exception_becomes_failure(self, context, gateway):
        gateway.raises = RuntimeError("terminal disconnected")
        controller, last_bar = warmed_controller()

        action = controller.on_bar(last_bar, context)

        assert action.type == ActionType.TRADE_FAILED
        assert "terminal disconnected" in action.order.error_detail
        assert controller.state.throttle.trades_opened_today == 0
        assert controller.controller_state == ControllerState.IDLE

    def test_gateway_declines_with_exception(self, context, gateway):
        gateway.raises = OrderExecutionFailure("Market closed")
        events = []
        controller, last_bar = warmed_controller()
        controller.add_listener(events.append)

        action = controller.on_bar(last_bar, context)

        assert action.type == ActionType.TRADE_FAILED
        assert action.order.error_detail == "Market closed"
        assert [e.kind for e in events] == ["failed"]

    def test_no_retry_after_failure(self, context, gateway):
        gateway.success = False
        controller, last_bar = warmed_controller()
        controller.on_bar(last_bar, context)
        assert len(gateway.orders) == 1

    def test_zero_volume_skips(self, context, gateway):
        context.account = FakeAccount(1.0)
        controller, last_bar = warmed_controller()
        action = controller.on_bar(last_bar, context)

        assert action.decision.skip_reason == SkipReason.ZERO_VOLUME
        assert gateway.orders == []

    def test_invalid_equity_skips(self, context, gateway):
        context.account = FakeAccount(0.0)
        controller, last_bar = warmed_controller()
        action = controller.on_bar(last_bar, context)

        assert action.decision.skip_reason == SkipReason.INVALID_RISK
        assert gateway.orders == []
        assert controller.controller_state == ControllerState.IDLE


class TestLifecycle:
    """start, stop, warmup, events and status"""

    def test_start_emits_event(self):
        events = []
        controller = StrategyController()
        controller.add_listener(events.append)
        controller.start("UKOILm", now=datetime(2025, 3, 7, 17, 0))

        assert controller.controller_state == ControllerState.IDLE
        assert [e.kind for e in events] == ["started"]
        assert events[0].symbol == "UKOILm"
        assert events[0].timestamp == datetime(2025, 3, 7, 17, 0)

    def test_start_rejects_other_symbol(self, context, gateway):
        controller, last_bar = warmed_controller()
        with pytest.raises(ConfigurationError):
            controller.start("XAUUSD")

        assert controller.controller_state == ControllerState.STOPPED
        action = controller.on_bar(last_bar, context)
        assert action.decision.skip_reason == SkipReason.STOPPED
        assert gateway.orders == []

    def test_stop_reports_daily_trades(self, context, clock):
        events = []
        controller, last_bar = warmed_controller()
        controller.add_listener(events.append)
        controller.on_bar(last_bar, context)
        controller.stop(now=clock.now())

        assert controller.controller_state == ControllerState.STOPPED
        assert [e.kind for e in events] == ["executed", "stopped"]
        assert events[0].trade_number == 1
        assert events[0].equity == pytest.approx(10000.0)
        assert events[1].trade_number == 1
        # Event times come from the context clock
        assert events[0].timestamp == clock.current
        assert events[1].timestamp == clock.current

    def test_stopped_controller_ignores_bars(self, context):
        controller, last_bar = warmed_controller()
        controller.stop()
        bars_before = controller.state.bar_count

        controller.on_bar(last_bar, context)
        assert controller.state.bar_count == bars_before

    def test_warmup(self):
        controller = StrategyController()
        bars = make_bars(crossover_closes())

        assert controller.warmup(bars[:50]) == 50
        assert not controller.is_warmup_complete
        controller.warmup(bars[50:])
        assert controller.is_warmup_complete

    def test_get_status(self, context):
        controller, last_bar = warmed_controller()
        controller.on_bar(last_bar, context)

        status = controller.get_status(now=datetime(2025, 3, 7, 18, 30))
        assert status["state"] == "idle"
        assert status["bars"] == 95
        assert status["warmup_complete"] is True
        assert status["throttle"]["trades"] == 1
        assert status["last_decision"] == "BUY"
        assert status["window"]["is_open"] is True


class TestBarClockReplay:
    """Replaying recorded bars with the clock following bar time"""

    def test_clock_requires_a_bar(self):
        with pytest.raises(RuntimeError):
            BarClock().now()

    def test_daily_reset_follows_bar_dates(self, context, gateway):
        # Last bar closes 2025-03-07 18:00, inside the window
        bars = make_bars(crossover_closes(), start=datetime(2025, 3, 3, 20, 0))
        controller = StrategyController(StrategyConfig(max_daily_trades=1))
        controller.warmup(bars[:-1])
        controller.state.throttle.state = TradeThrottleState(1, date(2025, 3, 6))

        bar_clock = BarClock()
        context.clock = bar_clock
        bar_clock.advance(bars[-1])
        action = controller.on_bar(bars[-1], context)

        assert action.type == ActionType.TRADE_EXECUTED
        assert controller.state.throttle.state.last_reset_date == date(2025, 3, 7)
        assert len(gateway.orders) == 1

    def test_replayed_trade_event_carries_bar_time(self, context):
        bars = make_bars(crossover_closes(), start=datetime(2025, 3, 3, 20, 0))
        controller = StrategyController()
        controller.warmup(bars[:-1])
        events = []
        controller.add_listener(events.append)

        bar_clock = BarClock()
        context.clock = bar_clock
        bar_clock.advance(bars[-1])
        controller.on_bar(bars[-1], context)

        assert [e.kind for e in events] == ["executed"]
        assert events[0].timestamp == bars[-1].timestamp
