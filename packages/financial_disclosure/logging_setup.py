"""Logging for the ``financial_disclosure`` package.

Library modules log under the ``financial_disclosure`` root through
:func:`get_logger` and never attach handlers; until the CLI calls
:func:`configure_logging` the root carries only a ``NullHandler``, so the
parsers' notes about skipped CSV rows stay silent for library callers.

The level comes from :attr:`Settings.log_level
<financial_disclosure.settings.Settings.log_level>`
(``FINANCIAL_DISCLOSURE_LOG_LEVEL``); this module does not read the
environment itself.
"""

from __future__ import annotations

import logging
import sys

PACKAGE_LOGGER = "financial_disclosure"
LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"

logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())


class StderrHandler(logging.StreamHandler):
    """Stream handler bound to whatever ``sys.stderr`` is when a record is emitted.

    The CLI keeps JSON on stdout and diagnostics on stderr; resolving the
    stream late keeps the handler valid when stderr is swapped (test runners,
    ``contextlib.redirect_stderr``).
    """

    def __init__(self, level: int = logging.NOTSET) -> None:
        logging.Handler.__init__(self, level)

    @property
    def stream(self):
        return sys.stderr


def parse_level(value: int | str | None, default: int = logging.INFO) -> int:
    """Numeric level for ``value`` (``"debug"``, ``"10"``, ``logging.DEBUG``).

    Unknown names and ``None`` give ``default``.
    """

    if isinstance(value, int):
        return value
    name = (value or "").strip().upper()
    if name.isdigit():
        return int(name)
    level = logging.getLevelName(name) if name else None
    return level if isinstance(level, int) else default


def configure_logging(level: int | str | None = None) -> logging.Logger:
    """Route package records to stderr at ``level``.

    Safe to call once per CLI invocation: the stderr handler is attached on
    the first call and later calls only adjust the level.
    """

    resolved = parse_level(level)
    logger = logging.getLogger(PACKAGE_LOGGER)
    handler = next((h for h in logger.handlers if isinstance(h, StderrHandler)), None)
    if handler is None:
        for h in list(logger.handlers):
            if isinstance(h, logging.NullHandler):
                logger.removeHandler(h)
        handler = StderrHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.propagate = False
    handler.setLevel(resolved)
    logger.setLevel(resolved)
    return logger


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


__all__ = [
    "LOG_FORMAT",
    "PACKAGE_LOGGER",
    "StderrHandler",
    "configure_logging",
    "get_logger",
    "parse_level",
]
