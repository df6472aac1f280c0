"""
Centralized logging configuration for the Multiplier API backend.
"""
import logging
import sys
from typing import Optional


class ColoredFormatter(logging.Formatter):
    """Formatter that color codes the level name for console output."""

    COLORS = {
        'DEBUG': '\033[36m',    # Cyan
        'INFO': '\033[32m',     # Green
        'WARNING': '\033[33m',  # Yellow
        'ERROR': '\033[31m',    # Red
        'CRITICAL': '\033[35m', # Magenta
        'ENDC': '\033[0m',
    }

    def format(self, record):
        levelname = record.levelname
        if levelname in self.COLORS:
            record = logging.makeLogRecord(record.__dict__)
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.COLORS['ENDC']}"
        return super().format(record)


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    enable_colors: bool = True
) -> logging.Logger:
    """
    Set up the ``multiplier`` logger hierarchy.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path to write logs to
        enable_colors: Whether to enable colored console output

    Returns:
        Configured root logger of the application
    """
    logger = logging.getLogger("multiplier")
    logger.setLevel(getattr(logging, level.upper()))
    logger.handlers.clear()

    fmt = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    console_formatter = ColoredFormatter(fmt) if enable_colors else logging.Formatter(fmt)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a specific module."""
    return logging.getLogger(f"multiplier.{name}")


def _configure_from_settings() -> logging.Logger:
    from multiplier_api.config import get_settings
    settings = get_settings()
    return setup_logging(
        level="DEBUG" if settings.debug else "INFO",
        log_file=settings.log_file,
        enable_colors=sys.stdout.isatty()
    )


# Initialize main logger
main_logger = _configure_from_settings()
