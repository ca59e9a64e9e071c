"""
Retry policy.

Bounded retry with exponential backoff, applied only to errors the
predicate marks as retryable.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from google.api_core import exceptions as google_exceptions

logger = logging.getLogger(__name__)


RETRYABLE_STATUS_CODES = (429, 503)


def is_rate_limited_or_unavailable(error: BaseException) -> bool:
    """
    True for 429 / 503 style failures.

    Recognizes google-api-core exception classes and any exception that
    carries an integer `code` or `status` attribute.
    """
    if isinstance(
        error,
        (
            google_exceptions.ResourceExhausted,
            google_exceptions.TooManyRequests,
            google_exceptions.ServiceUnavailable,
        ),
    ):
        return True

    for attr in ("code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int) and value in RETRYABLE_STATUS_CODES:
            return True
    return False


@dataclass
class RetryPolicy:
    """
    Reusable retry policy.

    Attributes:
        max_attempts: Total attempts including the first call
        base_delay: Delay before the second attempt, in seconds
        multiplier: Growth factor between consecutive delays
        retryable: Predicate deciding whether an error is worth retrying
        sleep: Injected for tests
    """
    max_attempts: int = 4
    base_delay: float = 1.0
    multiplier: float = 2.0
    retryable: Callable[[BaseException], bool] = is_rate_limited_or_unavailable
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")

    def delay_for(self, attempt: int) -> float:
        """Delay after failed attempt number `attempt` (1-based)."""
        return self.base_delay * (self.multiplier ** (attempt - 1))

    def call(self, fn: Callable[..., Any], *args, **kwargs) -> Any:
        """
        Call `fn` until it succeeds, raises a non-retryable error, or
        attempts run out. The last error is re-raised.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                return fn(*args, **kwargs)
            except Exception as e:
                if not self.retryable(e) or attempt == self.max_attempts:
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    f"Retryable error (attempt {attempt}/{self.max_attempts}): {e}. "
                    f"Retrying in {delay:.1f}s"
                )
                self.sleep(delay)
