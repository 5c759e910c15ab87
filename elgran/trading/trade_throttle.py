"""Trade Throttle - Daily Trade Cap and Trading Hours
===================================================

Counts trades opened on the current calendar day and gates new
entries on:
- Daily cap (trades_opened_today >= max_daily_trades blocks)
- Trading window (start_hour <= hour < end_hour)

The counter resets on the first evaluation of a new date. Which date
that is depends on the Clock's timezone (strategy.timezone setting).

Author: SURIOTA Team
"""
from dataclasses import dataclass
from datetime import date
from typing import Dict, Optional

from loguru import logger

from ..utils.trading_window import is_within_trading_window as _in_window


@dataclass
class TradeThrottleState:
    """Daily trade counter"""
    trades_opened_today: int = 0
    last_reset_date: Optional[date] = None


class TradeThrottle:
    """Daily trade cap with calendar-date reset"""

    def __init__(self, state: TradeThrottleState = None):
        self.state = state or TradeThrottleState()

    def should_reset(self, current_date: date) -> bool:
        """True when current_date differs from the stored reset date"""
        return current_date != self.state.last_reset_date

    def reset(self, current_date: date):
        """Zero the counter and remember current_date"""
        previous = self.state.last_reset_date
        self.state.trades_opened_today = 0
        self.state.last_reset_date = current_date
        if previous is not None:
            logger.info(f"Daily reset: {previous} -> {current_date}")

    def roll_over(self, current_date: date) -> bool:
        """Reset if a new date started

        Returns:
            True if the counter was reset
        """
        if not self.should_reset(current_date):
            return False
        self.reset(current_date)
        return True

    def record_trade(self):
        """Register a successfully opened trade"""
        self.state.trades_opened_today += 1
        logger.debug(f"Trades today: {self.state.trades_opened_today}")

    def trades_on(self, current_date: date) -> int:
        """Trades counted for current_date, 0 if it is a new day

        Read-only: does not perform the reset.
        """
        if self.should_reset(current_date):
            return 0
        return self.state.trades_opened_today

    def is_exhausted(self, max_daily_trades: int) -> bool:
        return self.state.trades_opened_today >= max_daily_trades

    @staticmethod
    def is_within_trading_window(current_hour: int, start_hour: int, end_hour: int) -> bool:
        return _in_window(current_hour, start_hour, end_hour)

    @property
    def trades_opened_today(self) -> int:
        return self.state.trades_opened_today

    def get_daily_stats(self, max_daily_trades: int) -> Dict:
        return {
            "date": str(self.state.last_reset_date),
            "trades": self.state.trades_opened_today,
            "max_trades": max_daily_trades,
            "exhausted": self.is_exhausted(max_daily_trades),
        }
