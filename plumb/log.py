"""Logging setup for the CLI and a scoped verbosity handle.

Library modules only ever call ``logging.getLogger(__name__)``; handlers are
attached here, once, by the CLI entry point.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional, Union

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "plumb"


def configure_logging(level: str = "INFO", console: Optional[Console] = None) -> logging.Logger:
    """Attach a RichHandler to the ``plumb`` logger (idempotent)."""
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level.upper())
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


class _MinimumLevelFilter(logging.Filter):
    def __init__(self, level: int):
        super().__init__()
        self.level = level

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= self.level


@contextmanager
def log_verbosity(logger: Union[str, logging.Logger], level: int) -> Iterator[logging.Logger]:
    """Drop records below *level* from *logger* for the duration of the block.

    Logger levels are never touched: a filter is pushed on entry and popped
    on exit, so nested users do not clobber each other. The filter goes on
    *logger* and on every descendant logger that already exists (module
    loggers are created at import time).

    Example::

        with log_verbosity("plumb.plugins", logging.WARNING):
            registry = IdentifierRegistry(path)
    """
    target = logging.getLogger(logger) if isinstance(logger, str) else logger
    prefix = target.name + "."
    scoped = [target] + [
        existing
        for name, existing in list(logging.Logger.manager.loggerDict.items())
        if name.startswith(prefix) and isinstance(existing, logging.Logger)
    ]
    quiet = _MinimumLevelFilter(level)
    for each in scoped:
        each.addFilter(quiet)
    try:
        yield target
    finally:
        for each in scoped:
            each.removeFilter(quiet)
