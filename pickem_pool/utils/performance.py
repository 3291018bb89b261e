"""
Timing helpers for scoring runs and other heavy read paths
"""

import functools
import time

from flask import current_app

from pickem_pool.utils.logging_config import get_logger

logger = get_logger(__name__)


def timer(func):
    """Log how long ``func`` took; warn above SLOW_FUNCTION_THRESHOLD seconds"""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        started = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception:
            logger.error(
                f"{func.__qualname__} failed after {time.perf_counter() - started:.3f}s"
            )
            raise

        elapsed = time.perf_counter() - started
        threshold = current_app.config.get("SLOW_FUNCTION_THRESHOLD", 1.0)
        if elapsed > threshold:
            logger.warning(
                f"Slow call {func.__qualname__}: {elapsed:.3f}s (threshold {threshold}s)"
            )
        else:
            logger.debug(f"{func.__qualname__} took {elapsed:.3f}s")
        return result

    return wrapper
