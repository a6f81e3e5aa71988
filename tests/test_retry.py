"""Tests for repolens/retry.py"""

from unittest.mock import Mock

import httpx
import openai
import pytest
from github import GithubException

from repolens.gh import translate_github_error
from repolens.retry import RetryPolicy, extract_retry_delay, is_throttling_error, with_retry


class Counter:
    def __init__(self, error=None, succeed_after=None, result="done"):
        self.calls = 0
        self.error = error
        self.succeed_after = succeed_after
        self.result = result

    async def __call__(self):
        self.calls += 1
        if self.succeed_after is not None and self.calls > self.succeed_after:
            return self.result
        raise self.error


def rate_limit_error(headers=None):
    request = httpx.Request("POST", "https://api.openai.com/v1/embeddings")
    response = httpx.Response(429, headers=headers or {}, request=request)
    return openai.RateLimitError("Rate limit reached", response=response, body=None)


class TestClassification:

    @pytest.mark.parametrize("message", [
        "429 Too Many Requests",
        "You exceeded your current quota, please check your plan",
        "[429] Resource has been exhausted",
        "rate limit exceeded",
        "RESOURCE_EXHAUSTED",
    ])
    def test_throttling_messages(self, message):
        assert is_throttling_error(RuntimeError(message))

    @pytest.mark.parametrize("message", [
        "Invalid API key",
        "Connection reset by peer",
        "500 Internal Server Error",
    ])
    def test_other_messages(self, message):
        assert not is_throttling_error(RuntimeError(message))

    def test_structured_rate_limit_error(self):
        assert is_throttling_error(rate_limit_error())

    def test_translated_github_forbidden_is_not_throttling(self):
        error = translate_github_error(GithubException(403, {"message": "Forbidden"}, None), "acme/widgets")
        assert "rate limiting" in str(error)
        assert not is_throttling_error(error)

    def test_status_code_attribute(self):
        error = RuntimeError("slow down")
        error.status_code = 429
        assert is_throttling_error(error)


class TestRetryDelay:

    def test_header_preferred_over_text(self):
        error = rate_limit_error(headers={"retry-after": "7"})
        assert extract_retry_delay(error) == 7.0

    def test_millisecond_header(self):
        error = rate_limit_error(headers={"retry-after-ms": "1500"})
        assert extract_retry_delay(error) == 1.5

    def test_text_fallback(self):
        error = RuntimeError("429 quota exceeded. Please retry in 12.5s.")
        assert extract_retry_delay(error) == 12.5

    def test_retry_after_text(self):
        assert extract_retry_delay(RuntimeError("Rate limited, retry after 30 seconds")) == 30.0

    def test_no_delay(self):
        assert extract_retry_delay(RuntimeError("429 Too Many Requests")) is None


class TestWithRetry:

    @pytest.mark.asyncio
    async def test_returns_result(self):
        sleep = Mock()
        operation = Counter(succeed_after=0, result=42)
        assert await with_retry(operation, sleep=sleep) == 42
        assert operation.calls == 1
        sleep.assert_not_called()

    @pytest.mark.asyncio
    async def test_throttling_exhausts_attempts_and_returns_none(self, clock):
        operation = Counter(error=RuntimeError("429 Too Many Requests"))
        result = await with_retry(operation, max_attempts=3, sleep=clock.sleep)
        assert result is None
        assert operation.calls == 3
        # no sleep after the final attempt
        assert len(clock.sleeps) == 2

    @pytest.mark.asyncio
    async def test_non_throttling_error_raises_after_one_attempt(self, clock):
        operation = Counter(error=ValueError("bad request"))
        with pytest.raises(ValueError):
            await with_retry(operation, max_attempts=3, sleep=clock.sleep)
        assert operation.calls == 1
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_forbidden_github_error_fails_fast(self, clock):
        error = translate_github_error(GithubException(403, {"message": "Forbidden"}, None), "acme/widgets")
        operation = Counter(error=error)
        with pytest.raises(type(error)):
            await with_retry(operation, max_attempts=3, sleep=clock.sleep)
        assert operation.calls == 1
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_uses_suggested_delay(self, clock):
        operation = Counter(error=RuntimeError("quota exceeded, retry in 3s"), succeed_after=1)
        assert await with_retry(operation, sleep=clock.sleep) == "done"
        assert clock.sleeps == [3.0]

    @pytest.mark.asyncio
    async def test_fallback_delay_backs_off(self, clock):
        operation = Counter(error=RuntimeError("429"), succeed_after=2)
        await with_retry(operation, max_attempts=3, fallback_delay=60.0, sleep=clock.sleep)
        assert clock.sleeps == [60.0, 120.0]

    @pytest.mark.asyncio
    async def test_delay_is_bounded(self, clock):
        operation = Counter(error=RuntimeError("429 retry in 900s"), succeed_after=1)
        await with_retry(operation, max_delay=300.0, sleep=clock.sleep)
        assert clock.sleeps == [300.0]

    @pytest.mark.asyncio
    async def test_policy_run(self, clock):
        policy = RetryPolicy(max_attempts=2, fallback_delay=1.0, sleep=clock.sleep)
        operation = Counter(error=RuntimeError("Too Many Requests"))
        assert await policy.run(operation, context="test") is None
        assert operation.calls == 2
        assert clock.sleeps == [1.0]
