"""Strategy Controller - Per-Bar Decision Engine
==============================================

Runs once per closed bar:
1. History check  → enough bars for every lag query
2. Daily reset    → trade counter follows the calendar date
3. Trading window → focus hours only
4. Daily cap      → max trades per day
5. Position gate  → one position at a time
6. Trend filter   → trend WMA now vs 5 bars ago
7. Crossover      → fast WMA crosses slow WMA with the trend
8. Risk sizing    → volume from equity, risk % and stop distance
9. Execute        → market order with SL/TP distances
10. Record        → count the trade, notify listeners

Steps 1-7 only gate: they never raise and never mutate state.
`evaluate_entry` implements them as a pure function of StrategyState.

Author: SURIOTA Team
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from ..analysis.moving_average import PriceHistory, WeightedMovingAverage
from ..analysis.signals import (
    TREND_LOOKBACK,
    CrossoverDetector,
    CrossSignal,
    TrendClassifier,
    TrendState,
)
from ..core import BarContext, OrderResult, PriceBar, TradeDirection
from ..errors import (
    ConfigurationError,
    InsufficientDataError,
    InvalidRiskInput,
    OrderExecutionFailure,
)
from ..utils.logger import get_strategy_logger
from ..utils.trading_window import TradingWindow
from .risk_manager import RiskSizer
from .trade_throttle import TradeThrottle

log = get_strategy_logger()


class ControllerState(Enum):
    """Controller state"""
    IDLE = "idle"
    EVALUATING = "evaluating"
    ORDER_SUBMITTED = "order_submitted"
    STOPPED = "stopped"


class SkipReason(Enum):
    """Why a bar produced no trade"""
    INSUFFICIENT_HISTORY = "insufficient_history"
    OUTSIDE_WINDOW = "outside_window"
    DAILY_LIMIT = "daily_limit"
    POSITION_OPEN = "position_open"
    FLAT_TREND = "flat_trend"
    NO_CROSSOVER = "no_crossover"
    INVALID_RISK = "invalid_risk"
    ZERO_VOLUME = "zero_volume"
    STOPPED = "stopped"


class ActionType(Enum):
    """Outcome of one on_bar call"""
    NONE = "none"
    TRADE_EXECUTED = "trade_executed"
    TRADE_FAILED = "trade_failed"


@dataclass
class StrategyConfig:
    """Strategy parameters (defaults match the UKOIL setup)"""
    symbol_filter: str = "UKOILm"
    risk_percent: float = 1.0
    trend_ma_period: int = 90
    fast_ma_period: int = 3
    slow_ma_period: int = 6
    stop_loss_pips: float = 20.0
    take_profit_pips: float = 60.0
    max_daily_trades: int = 3
    trading_window_start_hour: int = 17
    trading_window_end_hour: int = 22
    order_label: str = "ElGranBot"

    @property
    def min_bars(self) -> int:
        return max(self.trend_ma_period, self.slow_ma_period) + TREND_LOOKBACK


@dataclass
class StrategyState:
    """Everything the controller owns between bars"""
    history: PriceHistory
    trend_ma: WeightedMovingAverage
    fast_ma: WeightedMovingAverage
    slow_ma: WeightedMovingAverage
    throttle: TradeThrottle

    @classmethod
    def create(cls, config: StrategyConfig) -> "StrategyState":
        return cls(
            history=PriceHistory(),
            trend_ma=WeightedMovingAverage(config.trend_ma_period, name="trend"),
            fast_ma=WeightedMovingAverage(config.fast_ma_period, name="fast"),
            slow_ma=WeightedMovingAverage(config.slow_ma_period, name="slow"),
            throttle=TradeThrottle()
        )

    def append(self, bar: PriceBar):
        """Append a bar and update all three averages"""
        self.history.append(bar)
        self.trend_ma.update(bar.close)
        self.fast_ma.update(bar.close)
        self.slow_ma.update(bar.close)

    @property
    def bar_count(self) -> int:
        return len(self.history)


@dataclass(frozen=True)
class EntryDecision:
    """Result of the gating steps for one bar"""
    direction: Optional[TradeDirection] = None
    skip_reason: Optional[SkipReason] = None
    trend: Optional[TrendState] = None
    signal: CrossSignal = CrossSignal.NONE

    @property
    def tradable(self) -> bool:
        return self.direction is not None


@dataclass
class Action:
    """What the controller did with a bar"""
    type: ActionType
    decision: EntryDecision
    volume: float = 0.0
    order: Optional[OrderResult] = None


@dataclass
class TradeEvent:
    """Observation emitted to listeners"""
    kind: str  # started, executed, failed, stopped
    symbol: str
    direction: Optional[TradeDirection] = None
    volume: float = 0.0
    equity: float = 0.0
    trade_number: int = 0
    message: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


_trend_classifier = TrendClassifier()
_crossover_detector = CrossoverDetector()


def evaluate_entry(
    state: StrategyState,
    config: StrategyConfig,
    now: datetime,
    open_positions: Callable[[], int]
) -> EntryDecision:
    """Gating steps 1 and 3-7 as a pure function

    The daily cap is read through `trades_on(now.date())`, so the result
    is the same whether or not the daily reset was already applied.

    Args:
        state: Strategy state
        config: Strategy parameters
        now: Current time in the trading timezone
        open_positions: Returns open positions for the traded symbol;
            called only once the window and daily cap checks pass

    Returns:
        EntryDecision with a direction, or a skip reason
    """
    if state.bar_count < config.min_bars:
        return EntryDecision(skip_reason=SkipReason.INSUFFICIENT_HISTORY)

    if not TradeThrottle.is_within_trading_window(
        now.hour, config.trading_window_start_hour, config.trading_window_end_hour
    ):
        return EntryDecision(skip_reason=SkipReason.OUTSIDE_WINDOW)

    if state.throttle.trades_on(now.date()) >= config.max_daily_trades:
        return EntryDecision(skip_reason=SkipReason.DAILY_LIMIT)

    if open_positions() > 0:
        return EntryDecision(skip_reason=SkipReason.POSITION_OPEN)

    try:
        trend = _trend_classifier.classify(state.trend_ma)
        if trend == TrendState.FLAT:
            return EntryDecision(skip_reason=SkipReason.FLAT_TREND, trend=trend)

        signal = _crossover_detector.detect(state.fast_ma, state.slow_ma, trend)
    except InsufficientDataError:
        return EntryDecision(skip_reason=SkipReason.INSUFFICIENT_HISTORY)

    if signal == CrossSignal.BULLISH:
        return EntryDecision(direction=TradeDirection.BUY, trend=trend, signal=signal)
    if signal == CrossSignal.BEARISH:
        return EntryDecision(direction=TradeDirection.SELL, trend=trend, signal=signal)
    return EntryDecision(skip_reason=SkipReason.NO_CROSSOVER, trend=trend, signal=signal)


class StrategyController:
    """WMA crossover strategy for a single symbol"""

    def __init__(self, config: StrategyConfig = None, state: StrategyState = None):
        """Initialize Strategy Controller

        Args:
            config: Strategy parameters
            state: Pre-built state (default: fresh state from config)
        """
        self.config = config or StrategyConfig()
        self.state = state or StrategyState.create(self.config)
        self.risk_sizer = RiskSizer()
        self.window = TradingWindow(
            start_hour=self.config.trading_window_start_hour,
            end_hour=self.config.trading_window_end_hour
        )

        self.controller_state = ControllerState.IDLE
        self.symbol: str = self.config.symbol_filter
        self.last_decision: Optional[EntryDecision] = None
        self._listeners: List[Callable[[TradeEvent], None]] = []

    def add_listener(self, callback: Callable[[TradeEvent], None]):
        """Subscribe to trade observations"""
        self._listeners.append(callback)

    def _lifecycle_event(self, kind: str, now: Optional[datetime], **fields) -> TradeEvent:
        if now is None:
            return TradeEvent(kind=kind, symbol=self.symbol, **fields)
        return TradeEvent(kind=kind, symbol=self.symbol, timestamp=now, **fields)

    def _emit(self, event: TradeEvent):
        for callback in self._listeners:
            callback(event)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self, symbol_name: str, now: Optional[datetime] = None):
        """Validate the instrument and announce start

        Args:
            symbol_name: Symbol the bot is attached to
            now: Event time from the context clock (default: wall clock UTC)

        Raises:
            ConfigurationError: symbol_name differs from symbol_filter
        """
        if symbol_name != self.config.symbol_filter:
            self.controller_state = ControllerState.STOPPED
            log.error(f"Bot configured for {self.config.symbol_filter} only. Current: {symbol_name}")
            raise ConfigurationError(
                f"Bot configured for {self.config.symbol_filter} only, got {symbol_name}"
            )

        self.symbol = symbol_name
        self.controller_state = ControllerState.IDLE
        log.info(
            f"ElGran bot ACTIVE | {self.symbol} | Risk: {self.config.risk_percent}% | "
            f"SL: {self.config.stop_loss_pips}p | TP: {self.config.take_profit_pips}p"
        )
        self._emit(self._lifecycle_event("started", now))

    def stop(self, now: Optional[datetime] = None):
        """Stop controller"""
        self.controller_state = ControllerState.STOPPED
        trades = self.state.throttle.trades_opened_today
        log.info(f"ElGran bot STOPPED | Daily Trades: {trades}")
        self._emit(self._lifecycle_event("stopped", now, trade_number=trades))

    def warmup(self, bars: Iterable[PriceBar]) -> int:
        """Seed history without evaluating

        Returns:
            Number of bars appended
        """
        count = 0
        for bar in bars:
            self.state.append(bar)
            count += 1
        log.info(f"Warmup: {count} bars, history={self.state.bar_count}/{self.config.min_bars}")
        return count

    @property
    def is_warmup_complete(self) -> bool:
        return self.state.bar_count >= self.config.min_bars

    # ------------------------------------------------------------------
    # Per-bar evaluation
    # ------------------------------------------------------------------

    def on_bar(self, bar: PriceBar, context: BarContext) -> Action:
        """Process one closed bar

        Args:
            bar: Newly closed bar
            context: External collaborators

        Returns:
            Action taken for this bar
        """
        if self.controller_state == ControllerState.STOPPED:
            return self._skip(EntryDecision(skip_reason=SkipReason.STOPPED))

        self.state.append(bar)

        if self.state.bar_count < self.config.min_bars:
            return self._skip(EntryDecision(skip_reason=SkipReason.INSUFFICIENT_HISTORY))

        self.controller_state = ControllerState.EVALUATING
        try:
            now = context.clock.now()
            self.state.throttle.roll_over(now.date())

            decision = evaluate_entry(
                self.state,
                self.config,
                now,
                lambda: context.positions.open_position_count(self.symbol)
            )
            if not decision.tradable:
                return self._skip(decision)

            return self._execute_trade(decision, context, now)
        finally:
            if self.controller_state != ControllerState.STOPPED:
                self.controller_state = ControllerState.IDLE

    def _skip(self, decision: EntryDecision) -> Action:
        self.last_decision = decision
        log.debug(f"No trade: {decision.skip_reason.value}")
        return Action(type=ActionType.NONE, decision=decision)

    def _execute_trade(self, decision: EntryDecision, context: BarContext, now: datetime) -> Action:
        """Size and submit the order for a tradable decision"""
        try:
            volume = self.risk_sizer.compute_volume(
                equity=context.account.equity(),
                risk_percent=self.config.risk_percent,
                stop_loss_distance=self.config.stop_loss_pips,
                pip_value=context.symbol.pip_value(),
                granularity=context.symbol.volume_step()
            )
        except InvalidRiskInput as e:
            log.warning(f"Sizing rejected, skipping bar: {e}")
            return self._skip(EntryDecision(
                skip_reason=SkipReason.INVALID_RISK,
                trend=decision.trend,
                signal=decision.signal
            ))

        if volume <= 0:
            log.warning(f"Volume rounds to zero for {decision.direction.value}, skipping bar")
            return self._skip(EntryDecision(
                skip_reason=SkipReason.ZERO_VOLUME,
                trend=decision.trend,
                signal=decision.signal
            ))

        volume = context.symbol.normalize_volume(volume)

        self.controller_state = ControllerState.ORDER_SUBMITTED
        self.last_decision = decision
        try:
            result = context.gateway.submit_market_order(
                direction=decision.direction,
                symbol=self.symbol,
                volume=volume,
                label=self.config.order_label,
                stop_loss_distance=self.config.stop_loss_pips,
                take_profit_distance=self.config.take_profit_pips
            )
        except OrderExecutionFailure as e:
            result = OrderResult(success=False, error_detail=str(e))
        except Exception as e:
            log.exception(f"Gateway raised while submitting {decision.direction.value}")
            result = OrderResult(success=False, error_detail=str(e))

        if result.success:
            self.state.throttle.record_trade()
            trade_number = self.state.throttle.trades_opened_today
            equity = context.account.equity()
            log.info(
                f"TRADE #{trade_number} | {decision.direction.value} | "
                f"Vol: {volume} | Equity: {equity:.2f}"
            )
            self._emit(TradeEvent(
                kind="executed",
                symbol=self.symbol,
                direction=decision.direction,
                volume=volume,
                equity=equity,
                trade_number=trade_number,
                timestamp=now
            ))
            return Action(type=ActionType.TRADE_EXECUTED, decision=decision, volume=volume, order=result)

        log.error(f"Trade failed: {result.error_detail}")
        self._emit(TradeEvent(
            kind="failed",
            symbol=self.symbol,
            direction=decision.direction,
            volume=volume,
            message=result.error_detail,
            timestamp=now
        ))
        return Action(type=ActionType.TRADE_FAILED, decision=decision, volume=volume, order=result)

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def get_status(self, now: Optional[datetime] = None) -> Dict:
        """Get controller status"""
        status = {
            'state': self.controller_state.value,
            'symbol': self.symbol,
            'bars': self.state.bar_count,
            'warmup_complete': self.is_warmup_complete,
            'trend_ma': self.state.trend_ma.current,
            'fast_ma': self.state.fast_ma.current,
            'slow_ma': self.state.slow_ma.current,
            'throttle': self.state.throttle.get_daily_stats(self.config.max_daily_trades),
            'last_decision': (
                self.last_decision.skip_reason.value
                if self.last_decision and self.last_decision.skip_reason
                else (self.last_decision.direction.value if self.last_decision else None)
            ),
        }
        if now is not None:
            status['window'] = self.window.get_window_info(now).to_dict()
        return status
