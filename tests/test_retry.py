"""Tests for bounded retries and deadlines around outbound calls."""

import asyncio

import pytest

from app.core.errors import DownloadError, ProviderError, SchemaValidationError
from app.services.retry import RetryPolicy, call_with_retry


class Flaky:
    def __init__(self, errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


def test_retries_retryable_errors_until_success():
    op = Flaky([ProviderError("503", stage="text", retryable=True)] * 2)
    assert asyncio.run(call_with_retry(op, stage="text", attempts=3, backoff=0)) == "ok"
    assert op.calls == 3


def test_gives_up_after_attempts():
    op = Flaky([DownloadError("502", status=502, retryable=True)] * 5)
    with pytest.raises(DownloadError):
        asyncio.run(call_with_retry(op, stage="image", attempts=3, backoff=0))
    assert op.calls == 3


def test_non_retryable_errors_fail_immediately():
    op = Flaky([ProviderError("400 bad request", stage="text", retryable=False)])
    with pytest.raises(ProviderError):
        asyncio.run(call_with_retry(op, stage="text", attempts=3, backoff=0))
    assert op.calls == 1

    op = Flaky([SchemaValidationError("bad json")])
    with pytest.raises(SchemaValidationError):
        asyncio.run(call_with_retry(op, stage="text", attempts=3, backoff=0))
    assert op.calls == 1


def test_deadline_overrun_becomes_retryable_provider_error():
    calls = []

    async def slow():
        calls.append(1)
        await asyncio.sleep(1)

    with pytest.raises(ProviderError) as exc:
        asyncio.run(call_with_retry(slow, stage="image", attempts=2, timeout=0.01, backoff=0))
    assert exc.value.stage == "image"
    assert exc.value.retryable
    assert len(calls) == 2


def test_policy_per_call_timeout_overrides_default():
    async def slow():
        await asyncio.sleep(0.2)
        return "late"

    policy = RetryPolicy(attempts=1, timeout=0.01, backoff=0)
    assert asyncio.run(policy.run(slow, stage="text", timeout=5)) == "late"
    with pytest.raises(ProviderError):
        asyncio.run(policy.run(slow, stage="text"))
