"""Shared fixtures for strategy tests"""
import sys
from datetime import datetime
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from elgran.core import BarContext
from tests.fakes import FakeAccount, FakeGateway, FakePositions, FakeSymbol, FixedClock


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def positions():
    return FakePositions()


@pytest.fixture
def clock():
    # Inside the default 17-22 window
    return FixedClock(datetime(2025, 3, 7, 18, 0))


@pytest.fixture
def context(gateway, positions, clock):
    return BarContext(
        account=FakeAccount(10000.0),
        symbol=FakeSymbol(pip_value=1.0, volume_step=0.01),
        positions=positions,
        gateway=gateway,
        clock=clock
    )
