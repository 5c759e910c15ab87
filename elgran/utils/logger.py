"""Loguru Logger Configuration
==============================

Configures logging with:
- Console output with colors
- File rotation
- JSON format option
- Level filtering

Author: SURIOTA Team
"""
import sys
from pathlib import Path
from loguru import logger
from typing import Optional


def setup_logger(
    log_level: str = "INFO",
    log_file: Optional[str] = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
    json_format: bool = False,
    console: bool = True
):
    """Setup loguru logger

    Args:
        log_level: Minimum log level
        log_file: Path to log file (None = no file logging)
        rotation: When to rotate (size or time)
        retention: How long to keep old logs
        json_format: Use JSON format for file
        console: Enable console output
    """
    logger.remove()

    console_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<magenta>{extra[component]: <8}</magenta> | "
        "<level>{message}</level>"
    )

    file_format = (
        "{time:YYYY-MM-DD HH:mm:ss.SSS} | "
        "{level: <8} | "
        "{extra[component]} | "
        "{name}:{function}:{line} | "
        "{message}"
    )

    # Records logged without bind() still need extra[component]
    logger.configure(extra={"component": "main"})

    if console:
        logger.add(
            sys.stderr,
            format=console_format,
            level=log_level,
            colorize=True,
            backtrace=True,
            diagnose=False
        )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            str(log_path),
            format=file_format,
            serialize=json_format,
            level=log_level,
            rotation=rotation,
            retention=retention,
            compression="gz",
            enqueue=True,
            backtrace=True,
            diagnose=False
        )

    logger.info(f"Logger configured: level={log_level}, file={log_file}")


# Component-specific loggers
def get_strategy_logger():
    """Get logger for the strategy controller"""
    return logger.bind(component="strategy")


def get_broker_logger():
    """Get logger for the MT5 connector"""
    return logger.bind(component="broker")


def get_telegram_logger():
    """Get logger for telegram module"""
    return logger.bind(component="telegram")
