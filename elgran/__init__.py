"""ElGran - WMA Crossover Trading Bot

Per-bar decision engine:
1. Weighted Moving Averages - trend (90), fast (3), slow (6)
2. Trend Filter - trend WMA now vs 5 bars ago
3. Crossover - fast/slow flip aligned with trend
4. Risk Sizing - fixed % of equity per stop distance
5. Trade Throttle - daily cap + focus hours
"""

__version__ = "1.0.0"
__author__ = "SURIOTA Team"
