# === FILE: spa_settle/logger.py ===
"""Logging setup of **spa_settle**.

* One project logger, ``SpaSettle``; nothing is configured at import time.
* Components take a ``logger`` argument and fall back to
  :func:`get_logger`, a child of the project logger::

      from spa_settle.logger import get_logger
      manager = SpaMetricsManager(logger=get_logger("routes"))

* The CLI calls :func:`init_logging`; libraries embedding spa_settle may call
  :func:`configure` or attach their own handlers.
"""
from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Final, List, Optional, Union

_DEFAULT_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_LOGGER_NAME: Final[str] = "SpaSettle"
_LOG_FILE_MAX_BYTES: Final[int] = 5 * 1024 * 1024
_LOG_FILE_BACKUPS: Final[int] = 3

_LevelT = Union[int, str]


# --------------------------------------------------------------------------- #
# Handlers                                                                    #
# --------------------------------------------------------------------------- #


def _build_handlers(log_file: str | Path | None, fmt: str) -> List[logging.Handler]:
    """Console handler, plus a rotating file handler when *log_file* is set."""
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        handlers.append(
            RotatingFileHandler(
                filename=str(log_file),
                maxBytes=_LOG_FILE_MAX_BYTES,
                backupCount=_LOG_FILE_BACKUPS,
                encoding="utf-8",
            )
        )
    formatter = logging.Formatter(fmt)
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


# --------------------------------------------------------------------------- #
# Public API                                                                  #
# --------------------------------------------------------------------------- #


def configure(
    *,
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = _DEFAULT_FORMAT,
    replace_handlers: bool = True,
) -> logging.Logger:
    """Set level and handlers of the ``SpaSettle`` logger.

    Parameters
    ----------
    level
        Numeric or textual logging level (``"DEBUG"`` shows every resource
        event the manager receives).
    log_file
        Optional logfile, rotated at 5 MiB.
    log_format
        Format string for :class:`logging.Formatter`.
    replace_handlers
        Drop (and close) previously installed handlers first.
    """
    lg = logging.getLogger(_LOGGER_NAME)
    lg.setLevel(level)

    if replace_handlers:
        for handler in lg.handlers[:]:
            lg.removeHandler(handler)
            handler.close()

    for handler in _build_handlers(log_file, log_format):
        lg.addHandler(handler)

    lg.propagate = False
    return lg


def init_logging(
    level: _LevelT = "INFO",
    log_file: str | Path | None = None,
    log_format: str = _DEFAULT_FORMAT,
) -> logging.Logger:
    """Entry point used by the CLI."""
    return configure(level=level, log_file=log_file, log_format=log_format, replace_handlers=True)


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """``get_logger()`` → ``SpaSettle``; ``get_logger("manager")`` → ``SpaSettle.manager``."""
    if not name:
        return logging.getLogger(_LOGGER_NAME)
    return logging.getLogger(f"{_LOGGER_NAME}.{name}")


logger: logging.Logger = get_logger()

__all__ = ["logger", "configure", "init_logging", "get_logger"]
