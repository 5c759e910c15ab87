"""Data Layer Module

Components:
- MT5Connector: MetaTrader 5 bars, account, symbol and order access
- rates_to_frame: MT5 rate arrays to UTC-indexed OHLCV frames
"""
