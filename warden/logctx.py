"""Logger carried along with the current execution context."""

import logging
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import timedelta

_current = ContextVar("warden_logger", default=None)


@contextmanager
def bind_logger(logger):
    """Make logger the current logger for the duration of the block."""
    token = _current.set(logger)
    try:
        yield logger
    finally:
        _current.reset(token)


def current_logger():
    """Return the bound logger, or a fallback that warns it was not bound."""
    logger = _current.get()
    if logger is None:
        logger = logging.LoggerAdapter(
            logging.getLogger("warden.uninitialized"),
            {"WARNING": "uninitialized logger from context"},
        )
        logger.warning("couldn't find logger in context")
    return logger


def log_start_time(message):
    """Log the start of an operation; the returned callable logs its end and duration."""
    current_logger().debug("%s start", message)
    start_time = time.monotonic()
    return lambda: log_end_time(message, start_time)


def log_end_time(message, start_time):
    """Log the end of an operation started at start_time (a time.monotonic() value)."""
    elapsed = timedelta(seconds=time.monotonic() - start_time)
    current_logger().debug("%s end, exec-time: %s", message, elapsed)