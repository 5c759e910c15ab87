"""Trading Window
===============

Hour-of-day filter. Trading is permitted iff

    start_hour <= hour < end_hour

on whole hours of the configured trading timezone (default window
17:00-22:00, the focus hours of the original strategy).

A window whose start is after its end (e.g. 22 -> 5) would have to
wrap midnight. That is not supported: such a window never opens.
Config loading warns about it instead of guessing intent.

Author: SURIOTA Team
"""
from dataclasses import dataclass
from datetime import datetime, time
from typing import Optional


def is_within_trading_window(current_hour: int, start_hour: int, end_hour: int) -> bool:
    """Half-open hour check: start_hour <= current_hour < end_hour"""
    return start_hour <= current_hour < end_hour


def window_wraps_midnight(start_hour: int, end_hour: int) -> bool:
    return start_hour > end_hour


@dataclass
class WindowInfo:
    """Trading window status"""
    is_open: bool
    start_time: time
    end_time: Optional[time]  # None means 24:00
    minutes_remaining: int
    minutes_until_open: int

    def to_dict(self):
        return {
            'is_open': self.is_open,
            'start_time': self.start_time.strftime('%H:%M'),
            'end_time': self.end_time.strftime('%H:%M') if self.end_time else '24:00',
            'minutes_remaining': self.minutes_remaining,
            'minutes_until_open': self.minutes_until_open,
        }


class TradingWindow:
    """Focus-hours window status for reporting"""

    def __init__(self, start_hour: int = 17, end_hour: int = 22):
        """Initialize Trading Window

        Args:
            start_hour: First tradable hour (inclusive)
            end_hour: First non-tradable hour (exclusive)
        """
        self.start_hour = start_hour
        self.end_hour = end_hour

    def is_open(self, dt: datetime) -> bool:
        return is_within_trading_window(dt.hour, self.start_hour, self.end_hour)

    def get_window_info(self, dt: datetime) -> WindowInfo:
        """Get detailed window status for dt"""
        is_open = self.is_open(dt)
        minutes_now = dt.hour * 60 + dt.minute

        if is_open:
            remaining = self.end_hour * 60 - minutes_now
            until_open = 0
        else:
            remaining = 0
            if window_wraps_midnight(self.start_hour, self.end_hour):
                until_open = -1  # never opens
            elif dt.hour < self.start_hour:
                until_open = self.start_hour * 60 - minutes_now
            else:
                until_open = (24 + self.start_hour) * 60 - minutes_now

        return WindowInfo(
            is_open=is_open,
            start_time=time(self.start_hour % 24, 0),
            end_time=time(self.end_hour, 0) if self.end_hour < 24 else None,
            minutes_remaining=max(0, remaining),
            minutes_until_open=until_open
        )
