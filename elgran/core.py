"""Core Types and Collaborator Contracts
======================================

The strategy core talks to the outside world only through the
protocols below. The MT5 connector implements them for live trading,
tests implement them with in-memory fakes.

Author: SURIOTA Team
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Protocol


@dataclass(frozen=True)
class PriceBar:
    """One closed bar; only the close is used"""
    timestamp: datetime
    close: float


class TradeDirection(Enum):
    """Trade direction"""
    BUY = "BUY"
    SELL = "SELL"


@dataclass
class OrderResult:
    """Order execution gateway response"""
    success: bool
    error_detail: str = ""
    ticket: int = 0
    price: float = 0.0


class AccountInfo(Protocol):
    def equity(self) -> float:
        """Current account equity, queried fresh each evaluation"""
        ...


class SymbolInfo(Protocol):
    def pip_value(self) -> float:
        """Money value of one pip per unit of volume"""
        ...

    def volume_step(self) -> float:
        """Minimum volume increment"""
        ...

    def normalize_volume(self, volume: float) -> float:
        """Map a raw volume to the nearest tradable size"""
        ...


class PositionQuery(Protocol):
    def open_position_count(self, symbol: str) -> int:
        ...


class OrderExecutionGateway(Protocol):
    def submit_market_order(
        self,
        direction: TradeDirection,
        symbol: str,
        volume: float,
        label: str,
        stop_loss_distance: float,
        take_profit_distance: float
    ) -> OrderResult:
        """Synchronous, one call per trade attempt"""
        ...


class Clock(Protocol):
    def now(self) -> datetime:
        """Current time in the configured trading timezone"""
        ...


@dataclass
class BarContext:
    """External collaborators handed to the controller on every bar"""
    account: AccountInfo
    symbol: SymbolInfo
    positions: PositionQuery
    gateway: OrderExecutionGateway
    clock: Clock


class BarClock:
    """Clock that reports the timestamp of the last bar it was given

    Useful for replaying recorded bars: the trading window and daily
    reset follow bar time instead of wall time.
    """

    def __init__(self, tz=None):
        self.tz = tz
        self._last: Optional[datetime] = None

    def advance(self, bar: PriceBar):
        self._last = bar.timestamp

    def now(self) -> datetime:
        if self._last is None:
            raise RuntimeError("BarClock has not seen a bar yet")
        if self.tz is not None and self._last.tzinfo is not None:
            return self._last.astimezone(self.tz)
        return self._last


class SystemClock:
    """Wall clock in a fixed timezone"""

    def __init__(self, tz):
        self.tz = tz

    def now(self) -> datetime:
        return datetime.now(self.tz)
