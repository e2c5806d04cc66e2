"""Logging utilities for LockShield."""

import logging
import sys
from pathlib import Path
from typing import Optional, Any
from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme


class LockShieldLogger:
    """Logger wrapper with rich formatting."""

    def __init__(self, name: str, level: int = logging.INFO) -> None:
        self.logger = logging.getLogger(name)
        if self.logger.level == logging.NOTSET:
            self.logger.setLevel(level)
        self._setup_handlers()

    def _setup_handlers(self) -> None:
        """Attach a rich stderr handler once per named logger."""
        if any(isinstance(h, RichHandler) for h in self.logger.handlers):
            return

        console = Console(stderr=True, theme=Theme({
            "info": "cyan",
            "warning": "yellow",
            "error": "red",
            "critical": "red bold",
            "debug": "dim",
        }))

        handler = RichHandler(
            console=console,
            show_time=True,
            show_path=False,
            markup=False,
        )
        handler.setFormatter(logging.Formatter(
            fmt="%(name)s: %(message)s",
            datefmt="[%X]"
        ))

        self.logger.addHandler(handler)
        self.logger.propagate = False

    def setLevel(self, level: int) -> None:
        self.logger.setLevel(level)

    def isEnabledFor(self, level: int) -> bool:
        return self.logger.isEnabledFor(level)

    def info(self, msg: str, **kwargs: Any) -> None:
        """Log info message."""
        self.logger.info(msg, extra=kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        """Log warning message."""
        self.logger.warning(msg, extra=kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        """Log error message."""
        self.logger.error(msg, extra=kwargs)

    def debug(self, msg: str, **kwargs: Any) -> None:
        """Log debug message."""
        self.logger.debug(msg, extra=kwargs)


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[Path] = None,
    verbose: bool = False
) -> None:
    """Setup logging configuration for LockShield.

    Args:
        level: Logging level
        log_file: Optional log file path
        verbose: Enable verbose logging
    """
    if verbose:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr),
            *([logging.FileHandler(log_file)] if log_file else [])
        ]
    )

    # Named LockShield loggers don't propagate, so their level is set directly
    for name in ("AdvisoryMatcher", "SecurityChecker", "AdvisoryDatabase", "AdvisoryFetcher", "ComposerLockParser"):
        logging.getLogger(name).setLevel(level)

    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_logger(name: str) -> LockShieldLogger:
    """Get a LockShield logger instance.

    Args:
        name: Logger name

    Returns:
        Configured logger instance
    """
    return LockShieldLogger(name)
