"""Centralized logging configuration for the ``ledger_ingest`` package.

Two public helpers:

- ``configure_logging(...)``: attach a single ``StreamHandler`` to the package
  root logger (``"ledger_ingest"``). Called once by entrypoints (the CLI) at
  process startup.
- ``get_logger(name)``: acquire a logger by name, making sure the package root
  logger has at least a ``NullHandler`` when nothing configured it yet.

Library modules never attach their own handlers. They call
``get_logger("ledger_ingest.<module>")`` and rely on the host application.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO

_PKG_LOGGER_NAME = "ledger_ingest"
_LEVEL_ENV_VAR = "LEDGER_INGEST_LOG_LEVEL"
_CONFIGURED = False


def _level_from_name(value: str) -> int | None:
    # Numeric strings or standard level names (INFO/DEBUG/etc.).
    name = value.strip().upper()
    if name.isdigit():
        return int(name)
    numeric = getattr(logging, name, None)
    return numeric if isinstance(numeric, int) else None


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        parsed = _level_from_name(level)
        if parsed is not None:
            return parsed
    env_val = os.getenv(_LEVEL_ENV_VAR)
    if env_val:
        parsed = _level_from_name(env_val)
        if parsed is not None:
            return parsed
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: IO[str] = sys.stderr,
) -> None:
    """Configure the package root logger exactly once.

    Parameters
    ----------
    level:
        Logging level as ``int`` or level-name string. When ``None``, the
        ``LEDGER_INGEST_LOG_LEVEL`` environment variable is used if set,
        otherwise ``logging.INFO``.
    fmt:
        Optional format string. Defaults to
        ``"%(asctime)s %(name)s %(levelname)s %(message)s"``.
    stream:
        Output stream for the single ``StreamHandler``.
    """

    global _CONFIGURED
    if _CONFIGURED:
        return

    logger = logging.getLogger(_PKG_LOGGER_NAME)

    # NullHandlers added by get_logger() would otherwise stay attached.
    for h in list(logger.handlers):
        if isinstance(h, logging.NullHandler):
            logger.removeHandler(h)

    resolved = _parse_level(level)
    handler = logging.StreamHandler(stream)
    handler.setLevel(resolved)
    handler.setFormatter(
        logging.Formatter(fmt or "%(asctime)s %(name)s %(levelname)s %(message)s")
    )

    logger.setLevel(resolved)
    logger.addHandler(handler)
    logger.propagate = False

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger by name with library-safe defaults."""

    pkg_logger = logging.getLogger(_PKG_LOGGER_NAME)
    if not _CONFIGURED and not pkg_logger.handlers:
        pkg_logger.addHandler(logging.NullHandler())
    return logging.getLogger(name)
