"""Logging setup for the statement engine.

Everything logs under the ``owner_statements`` namespace. The file handler
records at the level configured in settings.yaml; the optional console
handler follows the CLI verbosity.
"""

import logging
import sys
import time
from pathlib import Path
from typing import Optional

DEFAULT_LOG_FILE = "owner_statements.log"
ROOT_LOGGER = "owner_statements"

# Substrings of context keys masked in LogContext output (owner contact and bank details)
SENSITIVE_KEYS = ("password", "token", "secret", "api_key", "email", "phone", "account_number", "routing")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def mask_context(context: dict[str, object]) -> dict[str, object]:
    """Replace values of sensitive keys (e.g. ``owner_email``) with ``***``."""
    return {
        key: "***" if any(marker in key.lower() for marker in SENSITIVE_KEYS) else value
        for key, value in context.items()
    }


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = DEFAULT_LOG_FILE,
    console_level: Optional[str] = None,
) -> logging.Logger:
    """Configure the package logger.

    Calling this again replaces (and closes) the previous handlers.

    Args:
        level: Level for the log file (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: Log file path, or None for no file.
        console_level: Level for stderr output, or None for no console output.

    Returns:
        The package logger.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    levels = []

    if log_file:
        file_handler = logging.FileHandler(Path(log_file), encoding="utf-8")
        file_handler.setLevel(_level(level))
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        levels.append(_level(level))

    if console_level:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(_level(console_level))
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)
        levels.append(_level(console_level))

    logger.setLevel(min(levels) if levels else logging.WARNING)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a module (``get_logger(__name__)``)."""
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


class LogContext:
    """Logs the start, duration and failure of one operation.

    Example:
        with LogContext(logger, "statement calculation", period="2024-06-04 to 2024-06-10"):
            ...
    """

    def __init__(self, logger: logging.Logger, operation: str, **context: object):
        self.logger = logger
        self.operation = operation
        self.context = mask_context(context)
        self._started = 0.0

    def __enter__(self) -> "LogContext":
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        self.logger.debug(f"Starting {self.operation}: {details}")
        self._started = time.perf_counter()
        return self

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._started) * 1000

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: object,
    ) -> bool:
        if exc_type is None:
            self.logger.debug(f"Completed {self.operation} in {self.elapsed_ms:.1f} ms")
        else:
            self.logger.error(
                f"{self.operation} failed after {self.elapsed_ms:.1f} ms: {exc_type.__name__}: {exc_val}",
                exc_info=True,
            )
        return False
