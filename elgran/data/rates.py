"""Rate Conversion - MT5 rate arrays to pandas frames

MT5 stamps rates with broker server time expressed as epoch seconds,
not true UTC. Most brokers run their server clock at UTC+2/UTC+3, so
the configured offset is subtracted to get UTC bar times.

Author: SURIOTA Team
"""
from typing import Any

import pandas as pd


def rates_to_frame(rates: Any, server_utc_offset_hours: float = 0.0) -> pd.DataFrame:
    """Build an OHLCV frame indexed by UTC bar open time

    Args:
        rates: Structured array or records from copy_rates_*
        server_utc_offset_hours: Broker server clock offset from UTC

    Returns:
        DataFrame with Open/High/Low/Close/Volume columns
    """
    df = pd.DataFrame(rates)
    server_time = pd.to_datetime(df['time'], unit='s', utc=True)
    df['time'] = server_time - pd.Timedelta(hours=server_utc_offset_hours)
    df.set_index('time', inplace=True)
    df.rename(columns={
        'open': 'Open',
        'high': 'High',
        'low': 'Low',
        'close': 'Close',
        'tick_volume': 'Volume',
    }, inplace=True)
    return df
