"""Risk Manager - Fixed-Fractional Position Sizing
================================================

Volume is sized so that hitting the stop loses a fixed share of
equity:

    risk_amount = equity * risk_percent / 100
    raw_volume  = risk_amount / (stop_loss_distance * pip_value)
    volume      = raw_volume rounded to nearest multiple of granularity

Rounding is to nearest (half away from zero), never truncation.
No clamping: a result of 0 is returned as-is and the caller must not
submit it.

Author: SURIOTA Team
"""
import math
from dataclasses import dataclass
from decimal import Decimal

from loguru import logger

from ..errors import InvalidRiskInput


@dataclass(frozen=True)
class RiskParameters:
    """Sizing inputs supplied per evaluation"""
    equity: float
    risk_percent: float
    stop_loss_distance: float
    pip_value: float
    volume_granularity: float


@dataclass
class SizingResult:
    """Risk calculation result"""
    volume: float
    raw_volume: float
    risk_amount: float
    risk_percent: float
    stop_loss_distance: float


def _decimals(step: float) -> int:
    """Number of decimal places in a volume step (0.01 -> 2)"""
    exponent = Decimal(repr(step)).normalize().as_tuple().exponent
    return max(0, -exponent)


def round_to_granularity(value: float, granularity: float) -> float:
    """Round value to the nearest multiple of granularity"""
    steps = math.floor(value / granularity + 0.5)
    return round(steps * granularity, _decimals(granularity))


class RiskSizer:
    """Converts equity, risk % and stop distance into order volume"""

    def compute_volume(
        self,
        equity: float,
        risk_percent: float,
        stop_loss_distance: float,
        pip_value: float,
        granularity: float
    ) -> float:
        """Calculate order volume

        Args:
            equity: Account equity
            risk_percent: Percent of equity risked (1.0 = 1%)
            stop_loss_distance: Stop distance in pips
            pip_value: Value of one pip per unit of volume
            granularity: Volume step

        Returns:
            Volume rounded to nearest granularity (may be 0)

        Raises:
            InvalidRiskInput: on non-positive equity, stop, pip value,
                granularity or risk percent
        """
        return self.size(RiskParameters(
            equity=equity,
            risk_percent=risk_percent,
            stop_loss_distance=stop_loss_distance,
            pip_value=pip_value,
            volume_granularity=granularity
        )).volume

    def size(self, params: RiskParameters) -> SizingResult:
        """Calculate volume with full breakdown"""
        self._validate(params)

        risk_amount = params.equity * params.risk_percent / 100
        raw_volume = risk_amount / (params.stop_loss_distance * params.pip_value)
        volume = round_to_granularity(raw_volume, params.volume_granularity)

        logger.debug(
            f"Sizing: equity={params.equity:.2f} risk={params.risk_percent}% "
            f"(${risk_amount:.2f}) SL={params.stop_loss_distance} "
            f"pip=${params.pip_value} -> {raw_volume:.6f} -> {volume}"
        )

        return SizingResult(
            volume=volume,
            raw_volume=raw_volume,
            risk_amount=risk_amount,
            risk_percent=params.risk_percent,
            stop_loss_distance=params.stop_loss_distance
        )

    @staticmethod
    def _validate(params: RiskParameters):
        if params.equity <= 0:
            raise InvalidRiskInput(f"Equity must be positive, got {params.equity}")
        if params.stop_loss_distance <= 0:
            raise InvalidRiskInput(f"Stop loss distance must be positive, got {params.stop_loss_distance}")
        if params.pip_value <= 0:
            raise InvalidRiskInput(f"Pip value must be positive, got {params.pip_value}")
        if params.volume_granularity <= 0:
            raise InvalidRiskInput(f"Volume granularity must be positive, got {params.volume_granularity}")
        if params.risk_percent <= 0:
            raise InvalidRiskInput(f"Risk percent must be positive, got {params.risk_percent}")
