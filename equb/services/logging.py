"""Root logger setup for the CLI and any process embedding the engine.

Engine modules log through ``logging.getLogger(__name__)`` and never configure
handlers themselves. The level comes from LOG_LEVEL, then from settings.
"""

import logging
import os
import sys
from pathlib import Path

from equb.config import settings

LOG_FORMAT = "[%(asctime)s] %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def get_log_level() -> int:
    """Resolve the configured level name; unknown names mean INFO."""
    level_name = os.getenv("LOG_LEVEL", settings.log_level).upper()
    return LOG_LEVEL_MAP.get(level_name, logging.INFO)


def _build_handlers(log_path: Path, level: int) -> list[logging.Handler]:
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers: list[logging.Handler] = [
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(log_path),
    ]
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def setup_logging(log_file: str | None = None) -> logging.Logger:
    """Send every logger to stdout and to a log file.

    Replaces handlers left on the root logger by an earlier call.

    Args:
        log_file: Log file path, created with its directory if missing
            (default: settings.log_file)

    Returns:
        The "equb" package logger
    """
    log_path = Path(log_file or settings.log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    level = get_log_level()

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(level)
    for handler in _build_handlers(log_path, level):
        root_logger.addHandler(handler)

    return logging.getLogger("equb")
