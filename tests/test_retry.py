import pytest

from app.core.retry import RetryExhausted, with_retry


class Collision(Exception):
    pass


def test_returns_first_success_and_passes_attempt_number():
    seen = []

    def fn(attempt):
        seen.append(attempt)
        if attempt < 3:
            raise Collision()
        return "ok"

    assert with_retry(5, fn, lambda e: isinstance(e, Collision)) == "ok"
    assert seen == [1, 2, 3]


def test_non_retryable_error_propagates_immediately():
    calls = []

    def fn(attempt):
        calls.append(attempt)
        raise KeyError("boom")

    with pytest.raises(KeyError):
        with_retry(5, fn, lambda e: isinstance(e, Collision))
    assert calls == [1]


def test_exhaustion_reports_attempts_and_last_error():
    def fn(attempt):
        raise Collision(f"attempt {attempt}")

    with pytest.raises(RetryExhausted) as exc_info:
        with_retry(4, fn, lambda e: isinstance(e, Collision))

    assert exc_info.value.attempts == 4
    assert str(exc_info.value.last_error) == "attempt 4"


def test_attempts_must_be_positive():
    with pytest.raises(ValueError):
        with_retry(0, lambda attempt: None, lambda e: True)
