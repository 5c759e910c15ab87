"""ElGran Configuration Module"""
from pathlib import Path
from typing import Optional, Dict, Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import os

import yaml
from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings

from elgran.errors import ConfigurationError
from elgran.trading.controller import StrategyConfig
from elgran.utils.trading_window import window_wraps_midnight

# Load environment variables
load_dotenv()

# Config directory
CONFIG_DIR = Path(__file__).parent
CONFIG_FILE = CONFIG_DIR / "settings.yaml"


class MT5Settings(BaseModel):
    """MetaTrader 5 connection settings"""
    login: Optional[int] = None
    password: Optional[str] = None
    server: Optional[str] = None
    terminal_path: Optional[str] = None
    # Broker server clock offset from UTC; rate times are server time
    server_utc_offset_hours: float = Field(0.0, ge=-12, le=14)


class TelegramSettings(BaseModel):
    """Telegram bot settings"""
    bot_token: Optional[str] = None
    chat_id: Optional[str] = None
    enabled: bool = True


class StrategySettings(BaseModel):
    """WMA crossover strategy parameters"""
    symbol_filter: str = "UKOILm"
    risk_percent: float = Field(1.0, ge=0.1, le=2.0)
    trend_ma_period: int = Field(90, ge=1)
    fast_ma_period: int = Field(3, ge=1)
    slow_ma_period: int = Field(6, ge=1)
    stop_loss_pips: float = Field(20.0, ge=10)
    take_profit_pips: float = Field(60.0, ge=30)
    max_daily_trades: int = Field(3, ge=0)
    trading_window_start_hour: int = Field(17, ge=0, le=23)
    trading_window_end_hour: int = Field(22, ge=0, le=24)
    order_label: str = "ElGranBot"
    # Timezone of the trading window hours and of the daily reset date
    timezone: str = "UTC"

    @field_validator("timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {value}") from e
        return value

    @model_validator(mode="after")
    def _flag_wrapping_window(self):
        if window_wraps_midnight(self.trading_window_start_hour, self.trading_window_end_hour):
            logger.warning(
                f"Trading window {self.trading_window_start_hour}-{self.trading_window_end_hour} "
                "wraps midnight; wrapping windows are not supported and no hour will be tradable"
            )
        return self

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def to_strategy_config(self) -> StrategyConfig:
        return StrategyConfig(
            symbol_filter=self.symbol_filter,
            risk_percent=self.risk_percent,
            trend_ma_period=self.trend_ma_period,
            fast_ma_period=self.fast_ma_period,
            slow_ma_period=self.slow_ma_period,
            stop_loss_pips=self.stop_loss_pips,
            take_profit_pips=self.take_profit_pips,
            max_daily_trades=self.max_daily_trades,
            trading_window_start_hour=self.trading_window_start_hour,
            trading_window_end_hour=self.trading_window_end_hour,
            order_label=self.order_label,
        )


class TradingSettings(BaseModel):
    """General trading settings"""
    symbol: str = "UKOILm"
    magic_number: int = 20250125
    enabled: bool = False
    mode: str = "demo"  # demo or live
    timeframe: str = "H1"
    poll_seconds: int = Field(5, ge=1)
    warmup_bars: int = Field(300, ge=1)


class LoggingSettings(BaseModel):
    """Loguru settings"""
    level: str = "INFO"
    file: Optional[str] = "logs/elgran.log"
    json_format: bool = False


class Settings(BaseSettings):
    """Main configuration class"""
    mt5: MT5Settings = MT5Settings()
    telegram: TelegramSettings = TelegramSettings()
    strategy: StrategySettings = StrategySettings()
    trading: TradingSettings = TradingSettings()
    logging: LoggingSettings = LoggingSettings()

    class Config:
        env_prefix = ""
        case_sensitive = False


def _env_overrides() -> Dict[str, Dict[str, Any]]:
    """Collect environment variable overrides per section"""
    overrides: Dict[str, Dict[str, Any]] = {
        "mt5": {}, "telegram": {}, "strategy": {}, "trading": {}, "logging": {},
    }

    # Raw strings; pydantic coerces and validates them
    for key, env in (("login", "MT5_LOGIN"), ("password", "MT5_PASSWORD"),
                     ("server", "MT5_SERVER"), ("terminal_path", "MT5_TERMINAL_PATH"),
                     ("server_utc_offset_hours", "MT5_SERVER_UTC_OFFSET")):
        if os.getenv(env):
            overrides["mt5"][key] = os.getenv(env)

    if os.getenv("TELEGRAM_BOT_TOKEN"):
        overrides["telegram"]["bot_token"] = os.getenv("TELEGRAM_BOT_TOKEN")
    if os.getenv("TELEGRAM_CHAT_ID"):
        overrides["telegram"]["chat_id"] = os.getenv("TELEGRAM_CHAT_ID")
    if os.getenv("TELEGRAM_ENABLED"):
        overrides["telegram"]["enabled"] = os.getenv("TELEGRAM_ENABLED").lower() == "true"

    if os.getenv("TRADING_ENABLED"):
        overrides["trading"]["enabled"] = os.getenv("TRADING_ENABLED").lower() == "true"
    if os.getenv("TRADING_MODE"):
        overrides["trading"]["mode"] = os.getenv("TRADING_MODE")
    if os.getenv("SYMBOL"):
        overrides["trading"]["symbol"] = os.getenv("SYMBOL")

    if os.getenv("TRADING_TIMEZONE"):
        overrides["strategy"]["timezone"] = os.getenv("TRADING_TIMEZONE")

    if os.getenv("LOG_LEVEL"):
        overrides["logging"]["level"] = os.getenv("LOG_LEVEL")

    return overrides


def load_config(config_file: Path = CONFIG_FILE) -> Settings:
    """Load configuration from YAML and environment variables

    Raises:
        ConfigurationError: a value fails validation
    """
    data: Dict[str, Dict[str, Any]] = {}

    if config_file.exists():
        with open(config_file) as f:
            yaml_config = yaml.safe_load(f)
        if yaml_config:
            for section, values in yaml_config.items():
                if section in Settings.model_fields and isinstance(values, dict):
                    data[section] = dict(values)

    for section, values in _env_overrides().items():
        if values:
            data.setdefault(section, {}).update(values)

    try:
        return Settings(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

