"""MT5 Connector - MetaTrader 5 Integration for ElGran

Connection, market data and order routing against a MetaTrader 5
terminal. The connector implements the collaborator protocols the
strategy core consumes:

- AccountInfo:           equity()
- SymbolInfo:            pip_value(), volume_step(), normalize_volume()
- PositionQuery:         open_position_count()
- OrderExecutionGateway: submit_market_order()

Volumes are in lots; stop/target distances are in pips.

Author: SURIOTA Team
"""
import MetaTrader5 as mt5
from datetime import datetime
from typing import Optional, Dict, List, Any
import pandas as pd

from ..core import OrderResult, PriceBar, TradeDirection
from .rates import rates_to_frame
from ..trading.risk_manager import round_to_granularity
from ..utils.logger import get_broker_logger

logger = get_broker_logger()


class MT5Connector:
    """MetaTrader 5 connector for a single traded symbol"""

    # MT5 Timeframe constants mapping
    TIMEFRAMES = {
        "M1": mt5.TIMEFRAME_M1,
        "M5": mt5.TIMEFRAME_M5,
        "M15": mt5.TIMEFRAME_M15,
        "M30": mt5.TIMEFRAME_M30,
        "H1": mt5.TIMEFRAME_H1,
        "H4": mt5.TIMEFRAME_H4,
        "D1": mt5.TIMEFRAME_D1,
    }

    def __init__(
        self,
        symbol: str,
        terminal_path: Optional[str] = None,
        login: Optional[int] = None,
        password: Optional[str] = None,
        server: Optional[str] = None,
        magic_number: int = 20250125,
        deviation: int = 20,
        server_utc_offset_hours: float = 0.0
    ):
        """Initialize MT5 Connector

        Args:
            symbol: Traded symbol
            terminal_path: Path to MT5 terminal executable
            login: MT5 account login
            password: MT5 account password
            server: MT5 server name
            magic_number: Magic number stamped on orders
            deviation: Max price deviation in points for market orders
            server_utc_offset_hours: Broker server clock offset from UTC
        """
        self.symbol = symbol
        self.terminal_path = terminal_path
        self.login = login
        self.password = password
        self.server = server
        self.magic_number = magic_number
        self.deviation = deviation
        self.server_utc_offset_hours = server_utc_offset_hours
        self.connected = False
        self._last_error = None

    def connect(self) -> bool:
        """Initialize MT5 connection

        Returns:
            True if connection successful, False otherwise
        """
        try:
            # Prefer the already logged-in terminal
            if mt5.initialize():
                self.connected = True
                self._log_connected()
                return True

            if self.terminal_path and mt5.initialize(path=self.terminal_path):
                self.connected = True
                self._log_connected()
                return True

            if self.login and self.password:
                init_args = {"login": self.login, "password": self.password}
                if self.server:
                    init_args["server"] = self.server
                if self.terminal_path:
                    init_args["path"] = self.terminal_path

                if mt5.initialize(**init_args):
                    self.connected = True
                    self._log_connected()
                    return True

            self._last_error = mt5.last_error()
            logger.error(f"MT5 initialization failed: {self._last_error}")
            return False

        except Exception as e:
            logger.error(f"MT5 connection error: {e}")
            self._last_error = str(e)
            return False

    def _log_connected(self):
        terminal_info = mt5.terminal_info()
        account_info = mt5.account_info()
        logger.info(f"MT5 connected: {terminal_info.name} - Build {terminal_info.build}")
        if account_info:
            logger.info(f"Account: {account_info.login} ({account_info.server})")

    def disconnect(self) -> None:
        """Shutdown MT5 connection"""
        if self.connected:
            mt5.shutdown()
            self.connected = False
            logger.info("MT5 disconnected")

    def ensure_connected(self) -> bool:
        """Ensure MT5 is connected, reconnect if needed"""
        if not self.connected:
            return self.connect()

        if mt5.terminal_info() is None:
            self.connected = False
            return self.connect()
        return True

    def is_autotrading_enabled(self) -> bool:
        """Check if AutoTrading is enabled in MT5 terminal"""
        if not self.ensure_connected():
            return False

        terminal_info = mt5.terminal_info()
        if terminal_info is None:
            logger.warning("Failed to get terminal info for AutoTrading check")
            return False
        return bool(terminal_info.trade_allowed)

    # ------------------------------------------------------------------
    # Account
    # ------------------------------------------------------------------

    def get_account_info_sync(self) -> Optional[Dict[str, Any]]:
        """Get account balance and equity information"""
        if not self.ensure_connected():
            return None

        info = mt5.account_info()
        if info is None:
            return None

        return {
            "login": info.login,
            "server": info.server,
            "currency": info.currency,
            "balance": info.balance,
            "equity": info.equity,
            "margin": info.margin,
            "free_margin": info.margin_free,
            "profit": info.profit,
            "leverage": info.leverage,
        }

    def equity(self) -> float:
        """Current equity (0.0 when unavailable, rejected by the sizer)"""
        info = self.get_account_info_sync()
        return float(info["equity"]) if info else 0.0

    # ------------------------------------------------------------------
    # Symbol
    # ------------------------------------------------------------------

    def get_symbol_info(self, symbol: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Get symbol information including pip size and pip value per lot"""
        symbol = symbol or self.symbol
        if not self.ensure_connected():
            return None

        info = mt5.symbol_info(symbol)
        if info is None:
            logger.warning(f"Failed to get info for {symbol}")
            return None

        # 3/5-digit quotes carry a fractional pip
        pip_size = info.point * 10 if info.digits in (3, 5) else info.point
        pip_value = (
            info.trade_tick_value * pip_size / info.trade_tick_size
            if info.trade_tick_size > 0 else 0.0
        )

        return {
            "symbol": symbol,
            "point": info.point,
            "digits": info.digits,
            "pip_size": pip_size,
            "pip_value": pip_value,
            "volume_min": info.volume_min,
            "volume_max": info.volume_max,
            "volume_step": info.volume_step,
            "contract_size": info.trade_contract_size,
        }

    def pip_value(self) -> float:
        info = self.get_symbol_info()
        return float(info["pip_value"]) if info else 0.0

    def volume_step(self) -> float:
        info = self.get_symbol_info()
        return float(info["volume_step"]) if info else 0.0

    def normalize_volume(self, volume: float) -> float:
        """Round to volume_step and cap at volume_max

        A volume below volume_min is left as-is for the broker to reject.
        """
        info = self.get_symbol_info()
        if info is None:
            return volume
        normalized = round_to_granularity(volume, info["volume_step"])
        return min(normalized, info["volume_max"])

    # ------------------------------------------------------------------
    # Market data
    # ------------------------------------------------------------------

    def get_ohlcv(
        self,
        timeframe: str = "H1",
        bars: int = 100,
        start_pos: int = 0
    ) -> Optional[pd.DataFrame]:
        """Get OHLCV data indexed by UTC time (start_pos=0 includes the forming bar)"""
        if not self.ensure_connected():
            return None

        tf = self.TIMEFRAMES.get(timeframe, mt5.TIMEFRAME_H1)
        rates = mt5.copy_rates_from_pos(self.symbol, tf, start_pos, bars)

        if rates is None or len(rates) == 0:
            logger.warning(f"Failed to get OHLCV for {self.symbol} {timeframe}")
            return None

        return rates_to_frame(rates, self.server_utc_offset_hours)

    def get_closed_bars(self, timeframe: str = "H1", bars: int = 100) -> List[PriceBar]:
        """Get closed bars, oldest first"""
        df = self.get_ohlcv(timeframe=timeframe, bars=bars, start_pos=1)
        if df is None:
            return []
        return [
            PriceBar(timestamp=ts.to_pydatetime(), close=float(close))
            for ts, close in df['Close'].items()
        ]

    # ------------------------------------------------------------------
    # Positions
    # ------------------------------------------------------------------

    def get_positions_sync(self, symbol: Optional[str] = None) -> List[Dict[str, Any]]:
        """Get open positions"""
        if not self.ensure_connected():
            return []

        if symbol:
            positions = mt5.positions_get(symbol=symbol)
        else:
            positions = mt5.positions_get()

        if positions is None:
            return []

        return [self._position_to_dict(p) for p in positions]

    def _position_to_dict(self, position) -> Dict[str, Any]:
        """Convert MT5 position to dictionary"""
        return {
            "ticket": position.ticket,
            "symbol": position.symbol,
            "type": "BUY" if position.type == 0 else "SELL",
            "volume": position.volume,
            "price_open": position.price_open,
            "sl": position.sl,
            "tp": position.tp,
            "profit": position.profit,
            "time": datetime.fromtimestamp(position.time),
            "magic": position.magic,
            "comment": getattr(position, 'comment', ''),
        }

    def open_position_count(self, symbol: str) -> int:
        return len(self.get_positions_sync(symbol))

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    def submit_market_order(
        self,
        direction: TradeDirection,
        symbol: str,
        volume: float,
        label: str,
        stop_loss_distance: float,
        take_profit_distance: float
    ) -> OrderResult:
        """Place market order with SL/TP given as pip distances

        Returns:
            OrderResult (success=False with error detail on rejection)
        """
        if not self.ensure_connected():
            return OrderResult(success=False, error_detail=f"Not connected: {self.get_last_error()}")

        if not self.is_autotrading_enabled():
            return OrderResult(success=False, error_detail="AutoTrading is disabled in MT5 terminal")

        tick = mt5.symbol_info_tick(symbol)
        info = self.get_symbol_info(symbol)
        if tick is None or info is None:
            return OrderResult(success=False, error_detail=f"No tick/symbol info for {symbol}")

        pip_size = info["pip_size"]
        if direction == TradeDirection.BUY:
            price = tick.ask
            mt5_type = mt5.ORDER_TYPE_BUY
            sl = price - stop_loss_distance * pip_size
            tp = price + take_profit_distance * pip_size
        else:
            price = tick.bid
            mt5_type = mt5.ORDER_TYPE_SELL
            sl = price + stop_loss_distance * pip_size
            tp = price - take_profit_distance * pip_size

        # MT5 comment field is limited to 31 characters
        comment = label[:31]

        request = {
            "action": mt5.TRADE_ACTION_DEAL,
            "symbol": symbol,
            "volume": volume,
            "type": mt5_type,
            "price": price,
            "sl": round(sl, info["digits"]),
            "tp": round(tp, info["digits"]),
            "deviation": self.deviation,
            "magic": self.magic_number,
            "comment": comment,
            "type_time": mt5.ORDER_TIME_GTC,
        }

        # Try the symbol's preferred filling mode first
        filling_mode = mt5.symbol_info(symbol).filling_mode
        if filling_mode & 1:
            preferred = mt5.ORDER_FILLING_FOK
        elif filling_mode & 2:
            preferred = mt5.ORDER_FILLING_IOC
        else:
            preferred = mt5.ORDER_FILLING_RETURN

        filling_types = [preferred]
        for ft in [mt5.ORDER_FILLING_FOK, mt5.ORDER_FILLING_IOC, mt5.ORDER_FILLING_RETURN]:
            if ft not in filling_types:
                filling_types.append(ft)

        result = None
        for ft in filling_types:
            request["type_filling"] = ft
            result = mt5.order_send(request)

            if result is None:
                logger.error(f"Order send returned None (filling={ft}): {mt5.last_error()}")
                continue

            if result.retcode == mt5.TRADE_RETCODE_DONE:
                break

            # Only filling-mode rejections are worth another attempt
            if result.retcode not in (mt5.TRADE_RETCODE_INVALID_FILL, mt5.TRADE_RETCODE_INVALID_ORDER):
                logger.error(f"Order rejected: retcode={result.retcode}, comment='{result.comment}'")
                return OrderResult(
                    success=False,
                    error_detail=f"retcode={result.retcode} {result.comment}"
                )

        if result is None or result.retcode != mt5.TRADE_RETCODE_DONE:
            detail = (
                f"retcode={result.retcode} {result.comment}" if result else str(mt5.last_error())
            )
            logger.error(f"Order failed all filling types: {detail}")
            return OrderResult(success=False, error_detail=detail)

        logger.info(f"Order placed: {direction.value} {volume} {symbol} @ {result.price}")
        return OrderResult(success=True, ticket=result.order, price=result.price)

    def get_last_error(self) -> Optional[str]:
        """Get last error message"""
        if self._last_error:
            return str(self._last_error)
        error = mt5.last_error()
        return str(error) if error else None
