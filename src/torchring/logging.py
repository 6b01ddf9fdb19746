"""
Logging utilities for torchring.

Provides consistent logging and error handling across the library.
"""

import logging
import os
import sys
from functools import wraps

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Configure torchring logger
logger = logging.getLogger("torchring")
logger.setLevel(_LEVELS.get(os.environ.get("TORCHRING_LOG_LEVEL", "INFO").upper(), logging.INFO))

# Create console handler if none exists
if not logger.handlers:
    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_errors(func):
    """Decorator to log exceptions before re-raising."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            logger.error(f"Error in {func.__name__}: {str(e)}")
            raise

    return wrapper


def log_performance(func):
    """Decorator to log performance metrics."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        import time

        start_time = time.perf_counter()
        try:
            result = func(*args, **kwargs)
            end_time = time.perf_counter()
            logger.debug(
                f"{func.__name__} completed in {(end_time - start_time) * 1000:.2f}ms"
            )
            return result
        except Exception as e:
            end_time = time.perf_counter()
            logger.error(
                f"{func.__name__} failed after {(end_time - start_time) * 1000:.2f}ms: {str(e)}"
            )
            raise

    return wrapper


def set_log_level(level: str):
    """Set logging level for torchring."""
    logger.setLevel(_LEVELS.get(level.upper(), logging.INFO))


def log_geometry(kind: str, nrings: int, npix: int):
    """Log a summary of a freshly built ring geometry."""
    logger.debug(f"Built {kind} geometry: nrings={nrings}, npix={npix}")
