"""Trend Classification and Crossover Detection
=============================================

TrendClassifier compares the trend WMA now against five bars ago.
CrossoverDetector fires only on the bar where fast/slow flip sides,
and only when the flip agrees with the trend.

Author: SURIOTA Team
"""
from enum import Enum

from .moving_average import WeightedMovingAverage


# Bars between the two trend samples
TREND_LOOKBACK = 5


class TrendState(Enum):
    """Trend direction of the trend WMA"""
    UP = "UP"
    DOWN = "DOWN"
    FLAT = "FLAT"


class CrossSignal(Enum):
    """Fast/slow crossover signal"""
    NONE = "NONE"
    BULLISH = "BULLISH"
    BEARISH = "BEARISH"


class TrendClassifier:
    """Two-point trend classifier, no smoothing or hysteresis"""

    def __init__(self, lookback: int = TREND_LOOKBACK):
        self.lookback = lookback

    def classify(self, trend_ma: WeightedMovingAverage) -> TrendState:
        """Classify trend from the trend WMA

        Raises:
            InsufficientDataError: history shorter than period + lookback
        """
        current = trend_ma.value_at_lag(0)
        previous = trend_ma.value_at_lag(self.lookback)

        if current > previous:
            return TrendState.UP
        if current < previous:
            return TrendState.DOWN
        return TrendState.FLAT


class CrossoverDetector:
    """Single-bar edge detector for fast/slow WMA crossings"""

    def detect(
        self,
        fast_ma: WeightedMovingAverage,
        slow_ma: WeightedMovingAverage,
        trend: TrendState
    ) -> CrossSignal:
        """Detect a trend-aligned crossover on the newest bar

        Args:
            fast_ma: Fast WMA
            slow_ma: Slow WMA
            trend: Current trend state

        Returns:
            BULLISH, BEARISH or NONE
        """
        fast_now = fast_ma.value_at_lag(0)
        fast_prev = fast_ma.value_at_lag(1)
        slow_now = slow_ma.value_at_lag(0)
        slow_prev = slow_ma.value_at_lag(1)

        if trend == TrendState.UP and fast_prev <= slow_prev and fast_now > slow_now:
            return CrossSignal.BULLISH

        if trend == TrendState.DOWN and fast_prev >= slow_prev and fast_now < slow_now:
            return CrossSignal.BEARISH

        return CrossSignal.NONE
