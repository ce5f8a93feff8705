# File: app/core/retry.py
"""Bounded retry combinator used for collision-prone writes."""

import logging
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryExhausted(Exception):
    """Raised when every attempt failed with a retryable error."""

    def __init__(self, attempts: int, last_error: BaseException):
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")
        self.attempts = attempts
        self.last_error = last_error


def with_retry(
    attempts: int,
    fn: Callable[[int], T],
    is_retryable: Callable[[BaseException], bool],
) -> T:
    """Call ``fn(attempt)`` until it succeeds, at most ``attempts`` times.

    ``attempt`` is 1-based. Exceptions rejected by ``is_retryable`` propagate
    immediately; retryable ones are swallowed until the bound is reached, then
    surfaced as ``RetryExhausted``.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    last_error: BaseException = RuntimeError("no attempt made")
    for attempt in range(1, attempts + 1):
        try:
            return fn(attempt)
        except Exception as exc:
            if not is_retryable(exc):
                raise
            last_error = exc
            logger.warning(f"🔁 Retryable failure on attempt {attempt}/{attempts}: {exc}")

    raise RetryExhausted(attempts, last_error)
