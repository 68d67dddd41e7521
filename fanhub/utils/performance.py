"""
Timing for the request-time aggregations (leaderboard builds in particular)
"""

import functools
import logging
import time

from flask import current_app, has_app_context

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 1.0


def _slow_threshold():
    if has_app_context():
        return current_app.config.get("SLOW_FUNCTION_THRESHOLD", DEFAULT_THRESHOLD)
    return DEFAULT_THRESHOLD


def timer(func):
    """Log how long func took; calls over SLOW_FUNCTION_THRESHOLD seconds log a warning"""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        started = time.perf_counter()
        try:
            return func(*args, **kwargs)
        except Exception as e:
            logger.error(f"{func.__qualname__} failed after {time.perf_counter() - started:.2f}s: {e}")
            raise
        finally:
            elapsed = time.perf_counter() - started
            threshold = _slow_threshold()
            if elapsed > threshold:
                logger.warning(f"Slow call {func.__qualname__}: {elapsed:.2f}s (threshold {threshold}s)")
            else:
                logger.debug(f"{func.__qualname__} took {elapsed:.3f}s")

    return wrapper
