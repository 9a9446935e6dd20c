"""Retry with exponential backoff for flaky I/O (payment gateway, SMTP, DB ping)."""
import functools
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Tuple, Type

logger = logging.getLogger(__name__)

DEFAULT_RETRYABLE_ERRORS: Tuple[str, ...] = (
    "network error",
    "timeout",
    "timed out",
    "server error",
    "database connection lost",
    "connection refused",
    "econnreset",
    "enotfound",
    "eai_again",
)


@dataclass
class RetryConfig:
    """Configuration for retry behavior.

    An exception is retried when it is an instance of one of ``retry_on`` or
    when its lower-cased message contains one of ``retryable_errors``.
    """

    max_attempts: int = 3
    initial_delay: float = 0.1
    backoff_multiplier: float = 2.0
    max_delay: float = 10.0
    retry_on: Tuple[Type[BaseException], ...] = ()
    retryable_errors: Tuple[str, ...] = field(default_factory=lambda: DEFAULT_RETRYABLE_ERRORS)

    def delay_for(self, attempt: int) -> float:
        """Delay before the retry that follows ``attempt`` (1-based)."""
        delay = self.initial_delay * (self.backoff_multiplier ** (attempt - 1))
        return min(delay, self.max_delay)


class RetryError(Exception):
    """Raised when all retry attempts are exhausted."""

    def __init__(self, message: str, last_exception: BaseException, attempts: int):
        super().__init__(message)
        self.last_exception = last_exception
        self.attempts = attempts


def is_retryable(error: BaseException, config: RetryConfig) -> bool:
    if config.retry_on and isinstance(error, config.retry_on):
        return True
    message = str(error).lower()
    return any(fragment in message for fragment in config.retryable_errors)


def call_with_retry(
    fn: Callable[..., Any],
    *args,
    config: Optional[RetryConfig] = None,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs,
) -> Any:
    """Call ``fn`` and retry on retryable errors.

    Non-retryable errors propagate unchanged on the first occurrence.
    """
    config = config or RetryConfig()
    name = getattr(fn, "__name__", repr(fn))

    for attempt in range(1, config.max_attempts + 1):
        try:
            result = fn(*args, **kwargs)
            if attempt > 1:
                logger.info(f"{name} succeeded on attempt {attempt}")
            return result
        except Exception as e:
            if not is_retryable(e, config):
                raise
            if attempt == config.max_attempts:
                logger.error(f"{name} failed after {attempt} attempts: {e}")
                raise RetryError(
                    f"{name} failed after {attempt} attempts: {e}",
                    last_exception=e,
                    attempts=attempt,
                ) from e

            delay = config.delay_for(attempt)
            logger.warning(f"{name} attempt {attempt} failed ({e}); retrying in {delay:.2f}s")
            sleep(delay)


def retry(config: Optional[RetryConfig] = None) -> Callable:
    """Decorator form of :func:`call_with_retry`."""

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            return call_with_retry(func, *args, config=config, **kwargs)

        return wrapper

    return decorator
