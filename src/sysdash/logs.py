"""Log file setup. The terminal belongs to the UI, so logs go to a file."""

import logging
import os
from pathlib import Path

from sysdash.config import Config

LOG_ENV = "SYSDASH_LOGLEVEL"
LOG_FILE = "sysdash.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_handler: logging.Handler | None = None


def initialize_logging(config: Config) -> Path:
    """
    Route the sysdash loggers to <data_dir>/sysdash.log.

    The level comes from the config unless SYSDASH_LOGLEVEL is set. Calling
    it again replaces the handler installed by the previous call.

    Returns:
        Path of the log file.
    """
    global _handler

    config.data_dir.mkdir(parents=True, exist_ok=True)
    log_path = config.data_dir / LOG_FILE
    level = os.environ.get(LOG_ENV) or config.log_level
    if not isinstance(logging.getLevelName(level.upper()), int):
        level = config.log_level

    root = logging.getLogger("sysdash")
    if _handler is not None:
        root.removeHandler(_handler)
        _handler.close()

    _handler = logging.FileHandler(log_path, encoding="utf-8")
    _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(_handler)
    root.setLevel(level.upper())

    return log_path
