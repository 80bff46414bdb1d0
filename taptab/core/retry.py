"""
Retry decorator for transient backend errors.
"""

import asyncio
import functools
import logging

logger = logging.getLogger(__name__)


def retry_transient(max_attempts: int = 4, base_delay: float = 0.3):
    """
    Retry an async callable while it raises a transient error.

    The delay grows linearly: ``base_delay * attempt``. Errors whose
    ``transient`` attribute is not true propagate immediately; the last
    transient error propagates once attempts run out.
    """

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if not getattr(e, "transient", False) or attempt == max_attempts:
                        raise
                    delay = base_delay * attempt
                    logger.warning(
                        f"{func.__name__}:: transient error ({e}), "
                        f"retry {attempt}/{max_attempts - 1} in {delay:.1f}s"
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator
