"""Trade Throttle Unit Tests
==========================

Tests for the daily trade cap, date reset and trading window.

Author: SURIOTA Team
"""
import pytest
from datetime import date, datetime

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from elgran.trading.trade_throttle import TradeThrottle, TradeThrottleState
from elgran.utils.trading_window import TradingWindow, is_within_trading_window


class TestTradeThrottle:
    """Tests for TradeThrottle"""

    @pytest.fixture
    def throttle(self):
        t = TradeThrottle()
        t.roll_over(date(2025, 3, 3))
        return t

    def test_initial_state(self):
        throttle = TradeThrottle()
        assert throttle.trades_opened_today == 0
        assert throttle.state.last_reset_date is None
        assert throttle.should_reset(date(2025, 3, 3))

    def test_record_and_exhaust(self, throttle):
        assert not throttle.is_exhausted(3)
        for _ in range(3):
            throttle.record_trade()
        assert throttle.trades_opened_today == 3
        assert throttle.is_exhausted(3)

    def test_zero_cap_always_exhausted(self, throttle):
        assert throttle.is_exhausted(0)

    def test_same_day_no_reset(self, throttle):
        throttle.record_trade()
        assert not throttle.roll_over(date(2025, 3, 3))
        assert throttle.trades_opened_today == 1

    def test_resets_at_date_boundary(self, throttle):
        """Cap reached on day D no longer blocks on D+1"""
        for _ in range(3):
            throttle.record_trade()
        assert throttle.is_exhausted(3)

        assert throttle.roll_over(date(2025, 3, 4))
        assert throttle.trades_opened_today == 0
        assert throttle.state.last_reset_date == date(2025, 3, 4)
        assert not throttle.is_exhausted(3)

    def test_trades_on_is_read_only(self, throttle):
        throttle.record_trade()
        assert throttle.trades_on(date(2025, 3, 3)) == 1
        assert throttle.trades_on(date(2025, 3, 4)) == 0
        # Peeking at the next day did not reset anything
        assert throttle.trades_opened_today == 1
        assert throttle.state.last_reset_date == date(2025, 3, 3)

    def test_explicit_state(self):
        state = TradeThrottleState(trades_opened_today=2, last_reset_date=date(2025, 1, 1))
        throttle = TradeThrottle(state)
        assert throttle.is_exhausted(2)
        assert throttle.state is state

    def test_daily_stats(self, throttle):
        throttle.record_trade()
        stats = throttle.get_daily_stats(3)
        assert stats["trades"] == 1
        assert stats["max_trades"] == 3
        assert stats["exhausted"] is False


class TestTradingWindow:
    """Tests for the half-open hour window"""

    @pytest.mark.parametrize("hour,expected", [
        (16, False),
        (17, True),
        (21, True),
        (22, False),
    ])
    def test_half_open_interval(self, hour, expected):
        assert is_within_trading_window(hour, 17, 22) is expected
        assert TradeThrottle.is_within_trading_window(hour, 17, 22) is expected

    def test_wrapping_window_never_opens(self):
        """start > end is not supported: no hour qualifies"""
        assert not any(is_within_trading_window(h, 22, 5) for h in range(24))

    def test_window_is_open(self):
        window = TradingWindow(17, 22)
        assert window.is_open(datetime(2025, 3, 3, 18, 30))
        assert not window.is_open(datetime(2025, 3, 3, 9, 0))
        assert not window.is_open(datetime(2025, 3, 3, 22, 0))

    def test_wrapping_window_info(self):
        info = TradingWindow(22, 5).get_window_info(datetime(2025, 3, 3, 23, 0))
        assert not info.is_open
        assert info.minutes_until_open == -1

    def test_window_info(self):
        window = TradingWindow(17, 22)

        info = window.get_window_info(datetime(2025, 3, 3, 20, 15))
        assert info.is_open
        assert info.minutes_remaining == 105

        info = window.get_window_info(datetime(2025, 3, 3, 15, 0))
        assert not info.is_open
        assert info.minutes_until_open == 120

        info = window.get_window_info(datetime(2025, 3, 3, 23, 0))
        assert info.minutes_until_open == 18 * 60

        d = info.to_dict()
        assert d["start_time"] == "17:00"
        assert d["end_time"] == "22:00"

    def test_window_until_midnight(self):
        info = TradingWindow(20, 24).get_window_info(datetime(2025, 3, 3, 23, 0))
        assert info.is_open
        assert info.to_dict()["end_time"] == "24:00"
