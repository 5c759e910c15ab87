"""Telegram Notifications
=======================

Pushes strategy observations (start, stop, trade executed, trade
failed) to a Telegram chat in compact HTML messages.

Author: SURIOTA Team
"""
from datetime import datetime, timezone, timedelta
from typing import Dict, List, Optional

from telegram import Bot

from .logger import get_telegram_logger

log = get_telegram_logger()


class TelegramFormatter:
    """Message formatter for Telegram"""

    CHECK = "✅"
    CROSS = "❌"
    STOP = "🛑"
    TARGET = "🎯"
    CHART = "📊"

    GREEN = "🟢"
    RED = "🔴"

    BRANCH = "├"
    LAST = "└"

    @classmethod
    def direction_indicator(cls, direction: str) -> str:
        """Get direction with color indicator"""
        if direction.upper() == "BUY":
            return f"{cls.GREEN} BUY"
        return f"{cls.RED} SELL"

    @classmethod
    def tree_item(cls, label: str, value, last: bool = False) -> str:
        connector = cls.LAST if last else cls.BRANCH
        return f"{connector} {label}: <b>{value}</b>\n"

    @classmethod
    def started(cls, symbol: str, risk_percent: float, sl_pips: float, tp_pips: float) -> str:
        msg = f"{cls.CHECK} <b>ElGran ACTIVE</b> • {symbol}\n"
        msg += cls.tree_item("Risk", f"{risk_percent}%")
        msg += cls.tree_item("SL", f"{sl_pips}p")
        msg += cls.tree_item("TP", f"{tp_pips}p", last=True)
        return msg

    @classmethod
    def stopped(cls, symbol: str, daily_trades: int) -> str:
        return f"{cls.STOP} <b>ElGran STOPPED</b> • {symbol}\nDaily Trades: {daily_trades}"

    @classmethod
    def trade_executed(
        cls,
        symbol: str,
        direction: str,
        volume: float,
        equity: float,
        trade_number: int
    ) -> str:
        """Format compact trade execution alert"""
        msg = f"{cls.TARGET} <b>TRADE #{trade_number}</b>\n"
        msg += f"{cls.direction_indicator(direction)} <b>{symbol}</b>\n"
        msg += "<pre>"
        msg += f"Vol:    {volume}\n"
        msg += f"Equity: {equity:,.2f}\n"
        msg += "</pre>"
        return msg

    @classmethod
    def trade_failed(cls, symbol: str, direction: str, error: str) -> str:
        return f"{cls.CROSS} <b>Trade failed</b> • {symbol} {direction.upper()}\n<code>{error}</code>"

    @classmethod
    def status(cls, status: Dict) -> str:
        throttle = status.get('throttle', {})
        msg = f"{cls.CHART} <b>STATUS</b> • {status.get('symbol')}\n"
        msg += cls.tree_item("State", status.get('state'))
        msg += cls.tree_item("Bars", status.get('bars'))
        msg += cls.tree_item("Trades", f"{throttle.get('trades', 0)}/{throttle.get('max_trades', 0)}")
        window = status.get('window')
        if window:
            span = f"{window['start_time']}-{window['end_time']}"
            msg += cls.tree_item("Window", f"{span} {'open' if window['is_open'] else 'closed'}")
        msg += cls.tree_item("Last", status.get('last_decision') or "-", last=True)
        return msg


class TelegramNotifier:
    """Send-only Telegram bot"""

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        enabled: bool = True
    ):
        """Initialize Telegram notifier

        Args:
            bot_token: Bot token from BotFather
            chat_id: Chat ID to send messages to
            enabled: Enable notifications
        """
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.enabled = enabled

        self._bot: Optional[Bot] = None

        # Rate limiting (max 20 messages per minute for Telegram API)
        self._message_times: List[datetime] = []
        self._rate_limit_messages = 15
        self._rate_limit_window = 60  # seconds

    async def initialize(self) -> bool:
        """Initialize bot

        Returns:
            True if successful
        """
        if not self.bot_token or not self.chat_id:
            log.warning("Telegram not configured")
            return False

        try:
            self._bot = Bot(token=self.bot_token)
            await self._bot.get_me()
            log.info("Telegram bot initialized")
            return True
        except Exception as e:
            log.error(f"Telegram init failed: {e}")
            self._bot = None
            return False

    async def send(self, message: str, force: bool = False):
        """Send message to chat with rate limiting

        Args:
            message: HTML formatted message
            force: Bypass rate limiting for critical messages
        """
        if not self.enabled or not self._bot:
            return

        now = datetime.now(timezone.utc)
        cutoff = now - timedelta(seconds=self._rate_limit_window)
        self._message_times = [t for t in self._message_times if t > cutoff]

        if not force and len(self._message_times) >= self._rate_limit_messages:
            log.warning(
                f"Telegram rate limit reached ({len(self._message_times)}/{self._rate_limit_messages}), "
                "skipping message"
            )
            return

        try:
            await self._bot.send_message(
                chat_id=self.chat_id,
                text=message,
                parse_mode='HTML'
            )
            self._message_times.append(now)
        except Exception as e:
            log.error(f"Telegram send failed: {e}")
