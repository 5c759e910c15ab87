"""Analysis Layer Module

Components:
- PriceHistory: Append-only closed bars
- WeightedMovingAverage: Linearly weighted MA with lag queries
- TrendClassifier: Up/Down/Flat from the trend WMA
- CrossoverDetector: Trend-aligned fast/slow crossings
"""

from .moving_average import PriceHistory, WeightedMovingAverage
from .signals import TrendClassifier, TrendState, CrossoverDetector, CrossSignal

__all__ = [
    "PriceHistory",
    "WeightedMovingAverage",
    "TrendClassifier",
    "TrendState",
    "CrossoverDetector",
    "CrossSignal",
]
