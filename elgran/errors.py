"""Error Taxonomy
===============

- ConfigurationError: fatal, halts the strategy
- InsufficientDataError: not enough bars for a lookback (no-op bar)
- InvalidRiskInput: sizing input not usable (bar abandoned)
- OrderExecutionFailure: broker declined the order (reported)

Author: SURIOTA Team
"""


class ElGranError(Exception):
    """Base class for all strategy errors"""


class ConfigurationError(ElGranError):
    """Bad configuration or instrument mismatch at startup"""


class InsufficientDataError(ElGranError):
    """Requested lookback exceeds available history"""

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(f"Need {required} bars, have {available}")


class InvalidRiskInput(ElGranError):
    """Non-positive equity, stop distance, pip value or granularity"""


class OrderExecutionFailure(ElGranError):
    """Order rejected by the execution gateway"""
