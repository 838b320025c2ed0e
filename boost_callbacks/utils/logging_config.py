"""Logging configuration for training runs using callbacks."""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger
from rich.console import Console
from rich.logging import RichHandler

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    rich_console: bool = False,
) -> None:
    """
    Configure loguru sinks for a training run.

    Args:
        level: Minimum level for the console sink
        log_file: Optional file receiving DEBUG and above, rotated at 10 MB
        rich_console: Render console logs through rich instead of plain stderr
    """
    # Remove default logger
    logger.remove()

    if rich_console:
        logger.add(
            RichHandler(console=Console(stderr=True), markup=False, show_path=False),
            format="{message}",
            level=level,
        )
    else:
        logger.add(
            sys.stderr,
            format=CONSOLE_FORMAT,
            level=level,
            colorize=True,
        )

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            format=FILE_FORMAT,
            level="DEBUG",
            rotation="10 MB",
            retention="7 days",
            backtrace=True,
        )
