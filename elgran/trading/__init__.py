"""Trading Layer Module

Components:
- RiskSizer: Fixed-fractional position sizing
- TradeThrottle: Daily trade cap and trading hours
- StrategyController: Per-bar orchestration and order submission
"""

from .risk_manager import RiskSizer, RiskParameters, SizingResult
from .trade_throttle import TradeThrottle, TradeThrottleState
from .controller import (
    StrategyController,
    StrategyConfig,
    StrategyState,
    ControllerState,
    EntryDecision,
    SkipReason,
    Action,
    ActionType,
    TradeEvent,
    evaluate_entry,
)

__all__ = [
    "RiskSizer",
    "RiskParameters",
    "SizingResult",
    "TradeThrottle",
    "TradeThrottleState",
    "StrategyController",
    "StrategyConfig",
    "StrategyState",
    "ControllerState",
    "EntryDecision",
    "SkipReason",
    "Action",
    "ActionType",
    "TradeEvent",
    "evaluate_entry",
]
