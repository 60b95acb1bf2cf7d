"""
Bounded retry for optimistic-concurrency conflicts.

A handler that lost a compare-and-set is re-run from scratch (fresh
transaction, fresh reads). After the last attempt the conflict surfaces
to the caller.
"""

from functools import wraps
from typing import Callable, Tuple, Type
import logging

logger = logging.getLogger(__name__)


def retry_on(exceptions: Tuple[Type[BaseException], ...], attempts: int | Callable[[], int] = 3):
    """
    Decorator re-running the wrapped callable when one of `exceptions` is raised

    `attempts` may be a callable so the bound can come from settings at
    call time.
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            limit = attempts() if callable(attempts) else attempts
            limit = max(int(limit), 1)
            for attempt in range(1, limit + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if attempt == limit:
                        logger.warning(
                            f"{func.__qualname__} gave up after {attempt} attempts: {e}"
                        )
                        raise
                    logger.info(
                        f"{func.__qualname__} hit {e.__class__.__name__}, "
                        f"retrying ({attempt}/{limit})"
                    )
        return wrapper

    return decorator
