"""Logging configuration for the pairing service."""

import logging
from pathlib import Path

from wapair.config import Config

# Module-level logger cache
_logger: logging.Logger | None = None

# Third-party loggers that are chatty at INFO (one line per HTTP request,
# one per protocol frame). Raised to WARNING unless running at DEBUG.
NOISY_LOGGERS = ("aiohttp.access", "pyaileys")


def setup_logging(config: Config) -> logging.Logger:
    """Set up logging based on configuration.

    Args:
        config: Configuration object with log settings.

    Returns:
        Configured ``wapair`` logger. Module loggers (``wapair.server``,
        ``wapair.connection.supervisor``, ...) inherit its handlers.
    """
    global _logger

    # Return existing logger if already set up (idempotent)
    if _logger is not None:
        return _logger

    level = getattr(logging, config.log_level.upper(), logging.INFO)
    logger = logging.getLogger("wapair")
    logger.setLevel(level)

    # Clear any existing handlers
    logger.handlers.clear()

    # Log format: 2025-01-27 10:30:45 [INFO] Status: ✅ ONLINE - Ready for Pairing
    formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(message)s")
    formatter.datefmt = "%Y-%m-%d %H:%M:%S"

    # File handler if log_file is configured (may use ~)
    if config.log_file:
        log_path = Path(config.log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # Prevent propagation to root logger
    logger.propagate = False

    if level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    _logger = logger
    return logger


def reset_logging() -> None:
    """Reset logging state. Used for testing."""
    global _logger
    if _logger is not None:
        _logger.handlers.clear()
        _logger.propagate = True
        _logger = None
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET)
