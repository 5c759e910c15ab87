"""Risk Sizer Unit Tests
======================

Tests for fixed-fractional position sizing.

Author: SURIOTA Team
"""
import pytest

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent))

from elgran.errors import InvalidRiskInput
from elgran.trading.risk_manager import RiskParameters, RiskSizer, round_to_granularity


class TestRoundToGranularity:
    """Tests for round_to_granularity"""

    def test_rounds_to_nearest_not_down(self):
        assert round_to_granularity(0.128, 0.01) == 0.13
        assert round_to_granularity(0.123, 0.01) == 0.12

    def test_half_rounds_up(self):
        assert round_to_granularity(2.5, 1.0) == 3.0
        assert round_to_granularity(3.5, 1.0) == 4.0

    def test_unit_granularity(self):
        assert round_to_granularity(1234.4, 1.0) == 1234.0
        assert round_to_granularity(1234.6, 1000.0) == 1000.0

    def test_can_round_to_zero(self):
        assert round_to_granularity(0.004, 0.01) == 0.0


class TestRiskSizer:
    """Tests for RiskSizer"""

    @pytest.fixture
    def sizer(self):
        return RiskSizer()

    def test_reference_example(self, sizer):
        """10000 * 1% / (20 * 1.0) = 5.00"""
        volume = sizer.compute_volume(
            equity=10000, risk_percent=1.0, stop_loss_distance=20,
            pip_value=1.0, granularity=0.01
        )
        assert volume == pytest.approx(5.00)

    def test_pip_value_scales_volume(self, sizer):
        # 10000 * 0.5% = 50; 50 / (25 * 10) = 0.2 lots
        volume = sizer.compute_volume(10000, 0.5, 25, 10.0, 0.01)
        assert volume == pytest.approx(0.20)

    def test_rounds_to_nearest_step(self, sizer):
        # 5000 * 1% = 50; 50 / (30 * 10) = 0.1666.. -> 0.17
        volume = sizer.compute_volume(5000, 1.0, 30, 10.0, 0.01)
        assert volume == pytest.approx(0.17)

    def test_zero_volume_not_clamped(self, sizer):
        # 100 * 0.1% = 0.1; 0.1 / (50 * 10) = 0.0002 -> 0.00
        volume = sizer.compute_volume(100, 0.1, 50, 10.0, 0.01)
        assert volume == 0.0

    @pytest.mark.parametrize("equity,sl,pip,step", [
        (0, 20, 1.0, 0.01),
        (-100, 20, 1.0, 0.01),
        (10000, 0, 1.0, 0.01),
        (10000, -5, 1.0, 0.01),
        (10000, 20, 0, 0.01),
        (10000, 20, -1.0, 0.01),
        (10000, 20, 1.0, 0),
    ])
    def test_invalid_inputs(self, sizer, equity, sl, pip, step):
        with pytest.raises(InvalidRiskInput):
            sizer.compute_volume(equity, 1.0, sl, pip, step)

    def test_size_breakdown(self, sizer):
        result = sizer.size(RiskParameters(
            equity=20000,
            risk_percent=2.0,
            stop_loss_distance=40,
            pip_value=1.0,
            volume_granularity=0.1
        ))
        assert result.risk_amount == pytest.approx(400.0)
        assert result.raw_volume == pytest.approx(10.0)
        assert result.volume == pytest.approx(10.0)
        assert result.stop_loss_distance == 40
