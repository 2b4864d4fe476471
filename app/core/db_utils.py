"""
Database utilities for retrying gateway calls on dropped connections
"""
import asyncio
import functools
import logging
from typing import Callable, Any, Optional, TypeVar, cast, Awaitable

from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Exception class names treated as transient connection trouble
CONNECTION_ERROR_NAMES = (
    "ConnectionError",
    "OperationalError",
    "ConnectionDoesNotExistError",
    "ConnectionRefusedError",
)

def is_connection_error(exc: BaseException) -> bool:
    error_name = type(exc).__name__
    return any(err in error_name for err in CONNECTION_ERROR_NAMES)

def find_session(args: tuple, kwargs: dict) -> Optional[AsyncSession]:
    for value in (*args, *kwargs.values()):
        if isinstance(value, AsyncSession):
            return value
    return None

def with_db_retry(
    max_retries: int = 3,
    retry_delay: float = 0.5
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator that retries gateway calls on connection errors.

    Only use it on calls that are safe to repeat: reads, or writes that set
    an absolute value. Appends (deposit inserts) must not be retried.

    The session passed to the wrapped call is rolled back before each retry;
    it cannot run another statement until its failed transaction is cleared.

    Args:
        max_retries: Maximum number of retries before giving up
        retry_delay: Base delay between retries in seconds, doubled each attempt
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            retries = 0

            while True:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if not is_connection_error(e):
                        raise
                    retries += 1
                    if retries > max_retries:
                        logger.error(f"Database operation {func.__name__} failed after {max_retries} retries: {e}")
                        raise
                    delay = retry_delay * (2 ** (retries - 1))  # Exponential backoff
                    logger.warning(
                        f"Database connection error: {str(e)}. "
                        f"Retrying in {delay:.2f}s... (Attempt {retries}/{max_retries})"
                    )
                    session = find_session(args, kwargs)
                    if session is not None:
                        await session.rollback()
                    await asyncio.sleep(delay)

        return cast(Callable[..., Awaitable[T]], wrapper)

    return decorator
