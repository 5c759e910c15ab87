"""ElGran Main Orchestrator
=========================

Wires MetaTrader 5 to the WMA crossover strategy:
1. Connect MT5 → validate symbol
2. Warmup → seed history with closed bars
3. Poll → deliver each newly closed bar once to the controller
4. Notify → forward trade observations to Telegram

Usage:
    python main.py [--demo] [--live] [--verbose]

Author: SURIOTA Team
"""
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from loguru import logger
from config import Settings, load_config
from elgran.core import BarContext, OrderResult, SystemClock, TradeDirection
from elgran.data.mt5_connector import MT5Connector
from elgran.errors import ConfigurationError
from elgran.trading.controller import StrategyController, TradeEvent
from elgran.utils.logger import setup_logger
from elgran.utils.telegram import TelegramNotifier, TelegramFormatter as TF


class SignalOnlyGateway:
    """Order gateway used when trading is disabled: logs and declines"""

    def submit_market_order(
        self,
        direction: TradeDirection,
        symbol: str,
        volume: float,
        label: str,
        stop_loss_distance: float,
        take_profit_distance: float
    ) -> OrderResult:
        logger.info(
            f"[SIGNAL] {direction.value} {volume} {symbol} "
            f"SL={stop_loss_distance}p TP={take_profit_distance}p"
        )
        return OrderResult(success=False, error_detail="Trading disabled (signal-only mode)")


class ElGran:
    """Main ElGran Application"""

    def __init__(self, settings: Settings, mode: str = "demo", verbose: bool = False):
        """Initialize ElGran

        Args:
            settings: Loaded configuration
            mode: Trading mode ('demo', 'live')
            verbose: Enable verbose logging
        """
        self.settings = settings
        self.mode = mode
        self._running = False

        setup_logger(
            log_level="DEBUG" if verbose else settings.logging.level,
            log_file=settings.logging.file,
            json_format=settings.logging.json_format,
            console=True
        )

        logger.info("=" * 60)
        logger.info(f"ElGran Starting - Mode: {mode.upper()}")
        logger.info("=" * 60)

        self.symbol = settings.trading.symbol
        self.timeframe = settings.trading.timeframe

        self.mt5 = MT5Connector(
            symbol=self.symbol,
            login=settings.mt5.login,
            password=settings.mt5.password,
            server=settings.mt5.server,
            terminal_path=settings.mt5.terminal_path,
            magic_number=settings.trading.magic_number,
            server_utc_offset_hours=settings.mt5.server_utc_offset_hours
        )

        self.controller = StrategyController(settings.strategy.to_strategy_config())
        self.clock = SystemClock(settings.strategy.tzinfo)

        gateway = self.mt5 if settings.trading.enabled else SignalOnlyGateway()
        self.context = BarContext(
            account=self.mt5,
            symbol=self.mt5,
            positions=self.mt5,
            gateway=gateway,
            clock=self.clock
        )

        self.telegram: Optional[TelegramNotifier] = None
        if settings.telegram.enabled and settings.telegram.bot_token:
            self.telegram = TelegramNotifier(
                bot_token=settings.telegram.bot_token,
                chat_id=settings.telegram.chat_id
            )

        self._pending_events: List[TradeEvent] = []
        self.controller.add_listener(self._pending_events.append)
        self._last_bar_time = None

    async def initialize(self) -> bool:
        """Connect MT5 and Telegram, validate symbol"""
        if not self.mt5.connect():
            logger.error("MT5 connection failed")
            return False

        if not self.settings.trading.enabled:
            logger.warning("TRADING_ENABLED is false: running signal-only")

        try:
            self.controller.start(self.symbol, now=self.clock.now())
        except ConfigurationError as e:
            logger.error(f"Startup aborted: {e}")
            return False

        if self.telegram:
            await self.telegram.initialize()

        return True

    async def warmup(self) -> bool:
        """Seed the controller with closed bars"""
        bars = self.mt5.get_closed_bars(self.timeframe, self.settings.trading.warmup_bars)
        if not bars:
            logger.error("No history available for warmup")
            return False

        self.controller.warmup(bars)
        self._last_bar_time = bars[-1].timestamp

        if not self.controller.is_warmup_complete:
            logger.warning(
                f"Only {len(bars)} bars of history; "
                f"need {self.controller.config.min_bars} before trading"
            )
        return True

    async def _flush_events(self):
        while self._pending_events:
            event = self._pending_events.pop(0)
            if not self.telegram:
                continue
            if event.kind == "executed":
                msg = TF.trade_executed(
                    event.symbol, event.direction.value, event.volume,
                    event.equity, event.trade_number
                )
            elif event.kind == "failed":
                msg = TF.trade_failed(event.symbol, event.direction.value, event.message)
            elif event.kind == "started":
                cfg = self.controller.config
                msg = TF.started(event.symbol, cfg.risk_percent, cfg.stop_loss_pips, cfg.take_profit_pips)
            else:
                msg = TF.stopped(event.symbol, event.trade_number)
            await self.telegram.send(msg, force=event.kind != "executed")

    async def _send_status(self):
        if self.telegram:
            status = self.controller.get_status(self.clock.now())
            await self.telegram.send(TF.status(status), force=True)

    async def run(self, interval_seconds: int):
        """Main run loop

        Args:
            interval_seconds: Polling interval
        """
        self._running = True
        await self._flush_events()
        await self._send_status()

        try:
            while self._running:
                # Newest two closed bars are enough to spot a new one
                bars = self.mt5.get_closed_bars(self.timeframe, 2)
                for bar in bars:
                    if self._last_bar_time is not None and bar.timestamp <= self._last_bar_time:
                        continue
                    action = self.controller.on_bar(bar, self.context)
                    self._last_bar_time = bar.timestamp
                    logger.debug(f"Bar {bar.timestamp} close={bar.close} -> {action.type.value}")

                await self._flush_events()
                await asyncio.sleep(interval_seconds)
        except asyncio.CancelledError:
            pass
        finally:
            await self.shutdown()

    async def shutdown(self):
        """Cleanup and shutdown"""
        logger.info("Shutting down...")
        self._running = False
        self.controller.stop(now=self.clock.now())
        await self._flush_events()
        await self._send_status()
        self.mt5.disconnect()
        logger.info("Shutdown complete")


async def main():
    """Entry point"""
    import argparse

    parser = argparse.ArgumentParser(description="ElGran WMA Crossover Bot")
    parser.add_argument("--demo", action="store_true", help="Run in demo mode")
    parser.add_argument("--live", action="store_true", help="Run in live mode")
    parser.add_argument("--interval", type=int, default=None,
                        help="Polling interval (seconds, default: trading.poll_seconds)")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    args = parser.parse_args()

    mode = "live" if args.live else "demo"

    try:
        settings = load_config()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    app = ElGran(settings, mode=mode, verbose=args.verbose)

    if not await app.initialize():
        logger.error("Initialization failed")
        sys.exit(1)

    if not await app.warmup():
        logger.error("Warmup failed")
        app.mt5.disconnect()
        sys.exit(1)

    await app.run(interval_seconds=args.interval or settings.trading.poll_seconds)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass
