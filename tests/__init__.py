"""ElGran Test Suite
==================

Unit tests for all modules:
- test_moving_average: Price history and WMA tests
- test_signals: Trend classifier and crossover tests
- test_risk_manager: Position sizing tests
- test_trade_throttle: Daily cap and trading window tests
- test_controller: Per-bar strategy controller tests
- test_config: Settings loading tests
- test_telegram: Notification formatting tests

Usage:
    pytest tests/ -v
    pytest tests/test_controller.py -v

Author: SURIOTA Team
"""
