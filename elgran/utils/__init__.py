"""Utilities Module

Components:
- TradingWindow: Focus-hours filter
- Logger: Loguru configuration
"""

from .trading_window import TradingWindow, WindowInfo, is_within_trading_window
from .logger import setup_logger

__all__ = [
    "TradingWindow",
    "WindowInfo",
    "is_within_trading_window",
    "setup_logger",
]
