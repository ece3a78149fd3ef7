"""Tests for the retry policy."""

import asyncio

import pytest

from ollama_stream.config import ClientConfig
from ollama_stream.errors import (
    ChatFailedError,
    DecodeError,
    RemoteError,
    StreamError,
    TransportError,
)
from ollama_stream.resilience import (
    JitterStrategy,
    RetryConfig,
    RetryPolicy,
    with_retry,
)


def _fast(max_attempts: int = 3) -> RetryConfig:
    return RetryConfig(max_attempts=max_attempts, min_delay_ms=0, max_delay_ms=0)


class TestRetryConfig:
    """Tests for RetryConfig."""

    def test_defaults(self) -> None:
        """Test default values."""
        config = RetryConfig()
        assert config.max_attempts == 3
        assert config.min_delay_ms == 250
        assert config.max_delay_ms == 2000
        assert 503 in config.retry_on_status

    def test_from_client_config(self) -> None:
        """Test mapping from client configuration."""
        config = RetryConfig.from_client_config(
            ClientConfig(max_attempts=5, retry_min_delay_ms=10, retry_max_delay_ms=100)
        )
        assert config.max_attempts == 5
        assert config.min_delay_ms == 10
        assert config.max_delay_ms == 100

    def test_single_attempt(self) -> None:
        """Test the no-retry config."""
        assert RetryConfig.single_attempt().max_attempts == 1


class TestCalculateDelay:
    """Tests for backoff calculation."""

    def test_exponential_without_jitter(self) -> None:
        """Test delays double per attempt."""
        policy = RetryPolicy(RetryConfig(jitter=JitterStrategy.NONE))
        assert policy.calculate_delay(1) == pytest.approx(0.25)
        assert policy.calculate_delay(2) == pytest.approx(0.5)
        assert policy.calculate_delay(3) == pytest.approx(1.0)

    def test_delay_capped(self) -> None:
        """Test delays never exceed the maximum."""
        policy = RetryPolicy(RetryConfig(jitter=JitterStrategy.NONE))
        assert policy.calculate_delay(10) == pytest.approx(2.0)

    def test_full_jitter_bounds(self) -> None:
        """Test full jitter stays within the base delay."""
        policy = RetryPolicy(RetryConfig(jitter=JitterStrategy.FULL))
        for _ in range(50):
            assert 0.0 <= policy.calculate_delay(2) <= 0.5

    def test_equal_jitter_bounds(self) -> None:
        """Test equal jitter keeps at least half the base delay."""
        policy = RetryPolicy(RetryConfig(jitter=JitterStrategy.EQUAL))
        for _ in range(50):
            assert 0.25 <= policy.calculate_delay(2) <= 0.5

    def test_retry_after_honored_and_capped(self) -> None:
        """Test a server retry-after hint is used up to the cap."""
        policy = RetryPolicy(RetryConfig())
        assert policy.calculate_delay(1, retry_after=1.5) == pytest.approx(1.5)
        assert policy.calculate_delay(1, retry_after=30) == pytest.approx(2.0)


class TestIsRetryable:
    """Tests for error classification."""

    @pytest.mark.parametrize(
        "error",
        [
            TransportError("connection refused"),
            StreamError("Server reported error: oom"),
            DecodeError("nothing decodable"),
            RemoteError.from_response(503, {"error": "loading"}),
            RemoteError.from_response(429),
        ],
    )
    def test_retryable(self, error: Exception) -> None:
        """Test transient failures are retryable."""
        assert RetryPolicy().is_retryable(error) is True

    @pytest.mark.parametrize(
        "error",
        [
            RemoteError.from_response(404, {"error": "model not found"}),
            RemoteError.from_response(400, {"error": "invalid options"}),
            ValueError("bug"),
        ],
    )
    def test_not_retryable(self, error: Exception) -> None:
        """Test permanent failures are not retried."""
        assert RetryPolicy().is_retryable(error) is False

    def test_should_retry_respects_budget(self) -> None:
        """Test no retry once the last attempt has failed."""
        policy = RetryPolicy(_fast(max_attempts=2))
        error = TransportError("reset")
        assert policy.should_retry(error, 1) is True
        assert policy.should_retry(error, 2) is False


class TestRetryPolicyExecute:
    """Tests for RetryPolicy.execute."""

    @pytest.mark.asyncio
    async def test_first_attempt_succeeds(self) -> None:
        """Test success without retries."""

        async def op(attempt: int) -> str:
            return f"ok-{attempt}"

        result = await RetryPolicy(_fast()).execute(op)
        assert result.success is True
        assert result.value == "ok-1"
        assert result.attempts == 1

    @pytest.mark.asyncio
    async def test_fail_twice_then_succeed(self) -> None:
        """Test attempt numbers and the final value."""
        seen: list[int] = []

        async def op(attempt: int) -> str:
            seen.append(attempt)
            if attempt < 3:
                raise TransportError("connection reset")
            return "answer"

        result = await RetryPolicy(_fast()).execute(op)
        assert result.success is True
        assert result.value == "answer"
        assert result.attempts == 3
        assert seen == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_exhausted(self) -> None:
        """Test every attempt failing."""

        async def op(attempt: int) -> str:
            raise TransportError(f"down {attempt}")

        result = await RetryPolicy(_fast()).execute(op)
        assert result.success is False
        assert result.attempts == 3
        assert result.exhausted is True
        assert isinstance(result.error, TransportError)
        assert "down 3" in str(result.error)

        with pytest.raises(ChatFailedError) as exc_info:
            result.unwrap()
        assert exc_info.value.attempts == 3
        assert exc_info.value.exhausted is True
        assert "after 3 attempt(s)" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_non_retryable_stops_immediately(self) -> None:
        """Test a 404 is not retried."""
        calls = 0

        async def op(attempt: int) -> str:
            nonlocal calls
            calls += 1
            raise RemoteError.from_response(404, {"error": "model 'x' not found"})

        result = await RetryPolicy(_fast()).execute(op)
        assert calls == 1
        assert result.exhausted is False
        with pytest.raises(ChatFailedError, match="failed on attempt 1"):
            result.unwrap()

    @pytest.mark.asyncio
    async def test_attempts_are_sequential(self) -> None:
        """Test no two attempts overlap."""
        active = 0
        peak = 0

        async def op(attempt: int) -> str:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            if attempt < 3:
                raise StreamError("dropped")
            return "ok"

        await RetryPolicy(_fast()).execute(op)
        assert peak == 1

    @pytest.mark.asyncio
    async def test_on_retry_callback(self) -> None:
        """Test the retry callback sees each failed attempt."""
        retries: list[int] = []

        async def op(attempt: int) -> str:
            if attempt < 3:
                raise TransportError("flaky")
            return "ok"

        await RetryPolicy(_fast()).execute(op, on_retry=lambda n, e, d: retries.append(n))
        assert retries == [1, 2]

    @pytest.mark.asyncio
    async def test_with_retry_raises(self) -> None:
        """Test the convenience wrapper raises ChatFailedError."""

        async def op(attempt: int) -> str:
            raise DecodeError("garbage")

        with pytest.raises(ChatFailedError) as exc_info:
            await with_retry(op, _fast(max_attempts=2))
        assert isinstance(exc_info.value.last_error, DecodeError)
