"""Decorator utilities for cross-cutting concerns."""
import time
import logging
import functools
from typing import Any, Callable, TypeVar, cast

# Setup logging
logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])


def async_log_transfer_time(func: F) -> F:
    """Decorator to log how long an async object transfer took.

    The object key is taken from the ``key`` keyword argument. If the result
    carries a ``size_bytes`` attribute, the byte count and throughput are
    logged with it.

    Args:
        func: The async transfer function to decorate

    Returns:
        Decorated async function that logs key, duration and size
    """
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        key = kwargs.get("key", "<unknown key>")
        start_time = time.perf_counter()
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            duration = time.perf_counter() - start_time
            logger.error("%s of %s failed after %.2fs: %s", func.__name__, key, duration, e)
            raise

        duration = time.perf_counter() - start_time
        size_bytes = getattr(result, "size_bytes", None)
        if size_bytes is None:
            logger.info("%s of %s completed in %.2fs", func.__name__, key, duration)
        else:
            rate = size_bytes / 1024 / duration if duration > 0 else 0.0
            logger.info(
                "%s of %s completed in %.2fs: %d bytes (%.1f KiB/s)",
                func.__name__, key, duration, size_bytes, rate,
            )
        return result
    return cast(F, wrapper)
