"""
Bounded-attempt retry policy with exponential backoff and jitter.

Attempts run strictly one after another; a failed attempt's partial output
is never carried into the next one because each attempt is a fresh call of
the operation.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, TypeVar

from ollama_stream.errors import (
    ChatFailedError,
    DecodeError,
    RemoteError,
    StreamError,
    TransportError,
)
from ollama_stream.telemetry import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from ollama_stream.config import ClientConfig

T = TypeVar("T")

logger = get_logger(__name__)


class JitterStrategy(str, Enum):
    """Jitter strategy for retry delays."""

    NONE = "none"
    FULL = "full"
    EQUAL = "equal"


@dataclass
class RetryConfig:
    """Configuration for retry policy.

    Attributes:
        max_attempts: Total attempts per logical call (1 = no retries)
        min_delay_ms: Base delay before the first retry
        max_delay_ms: Delay cap
        jitter: Jitter strategy (none, full, equal)
        retry_on_status: HTTP status codes worth retrying
    """

    max_attempts: int = 3
    min_delay_ms: int = 250
    max_delay_ms: int = 2000
    jitter: JitterStrategy = JitterStrategy.FULL
    retry_on_status: set[int] = field(
        default_factory=lambda: {408, 429, 500, 502, 503, 504}
    )
    exponential_base: float = 2.0

    @classmethod
    def from_client_config(cls, config: ClientConfig) -> RetryConfig:
        """Create a retry config from client configuration."""
        return cls(
            max_attempts=config.max_attempts,
            min_delay_ms=config.retry_min_delay_ms,
            max_delay_ms=config.retry_max_delay_ms,
        )

    @classmethod
    def single_attempt(cls) -> RetryConfig:
        """Create a config that disables retries."""
        return cls(max_attempts=1)


@dataclass
class RetryResult:
    """Result of a retried operation.

    Attributes:
        success: Whether some attempt succeeded
        value: The result value (if success)
        error: The last error (if failed)
        attempts: Number of attempts made
        exhausted: True if it failed because no attempts were left
        total_delay_ms: Total backoff delay in milliseconds
    """

    success: bool
    value: Any = None
    error: Exception | None = None
    attempts: int = 0
    exhausted: bool = False
    total_delay_ms: float = 0.0

    def unwrap(self) -> Any:
        """Return the value, or raise ChatFailedError describing the failure."""
        if self.success:
            return self.value
        raise ChatFailedError(
            attempts=self.attempts,
            last_error=self.error,
            exhausted=self.exhausted,
        )


class RetryPolicy:
    """Retry policy with exponential backoff and jitter.

    Example:
        >>> policy = RetryPolicy(RetryConfig(max_attempts=3))
        >>> result = await policy.execute(run_attempt)
        >>> if result.success:
        ...     print(result.value)
        ... else:
        ...     print(f"Failed after {result.attempts} attempts")
    """

    def __init__(self, config: RetryConfig | None = None) -> None:
        self._config = config or RetryConfig()

    @property
    def config(self) -> RetryConfig:
        return self._config

    def calculate_delay(self, attempt: int, retry_after: float | None = None) -> float:
        """Calculate delay before the next attempt.

        Args:
            attempt: Number of the attempt that just failed (1-based)
            retry_after: Optional retry-after hint from the server

        Returns:
            Delay in seconds
        """
        max_delay_s = self._config.max_delay_ms / 1000.0
        if retry_after is not None and retry_after > 0:
            return min(retry_after, max_delay_s)

        base_delay_ms = self._config.min_delay_ms * (
            self._config.exponential_base ** (attempt - 1)
        )
        base_delay_ms = min(base_delay_ms, self._config.max_delay_ms)

        if self._config.jitter == JitterStrategy.FULL:
            delay_ms = random.uniform(0, base_delay_ms)
        elif self._config.jitter == JitterStrategy.EQUAL:
            delay_ms = base_delay_ms / 2 + random.uniform(0, base_delay_ms / 2)
        else:
            delay_ms = base_delay_ms

        return delay_ms / 1000.0

    def is_retryable(self, error: BaseException) -> bool:
        """Check whether an error class is worth another attempt."""
        if isinstance(error, RemoteError):
            return error.retryable or error.status_code in self._config.retry_on_status
        return isinstance(error, (TransportError, StreamError, DecodeError))

    def should_retry(self, error: BaseException, attempt: int) -> bool:
        """Check if a failed attempt should be followed by another.

        Args:
            error: The exception raised by the attempt
            attempt: Number of the attempt that failed (1-based)
        """
        if attempt >= self._config.max_attempts:
            return False
        return self.is_retryable(error)

    async def execute(
        self,
        operation: Callable[[int], Awaitable[T]],
        on_retry: Callable[[int, Exception, float], None] | None = None,
    ) -> RetryResult:
        """Run an operation under the retry policy.

        Args:
            operation: Async attempt; receives the 1-based attempt number
            on_retry: Optional callback before each retry (attempt, error, delay)

        Returns:
            RetryResult with success status and value/error
        """
        total_delay = 0.0
        attempt = 0

        while True:
            attempt += 1
            try:
                value = await operation(attempt)
            except Exception as e:
                if not self.should_retry(e, attempt):
                    exhausted = attempt >= self._config.max_attempts and self.is_retryable(e)
                    logger.warning(
                        "Attempt failed; giving up",
                        attempt=attempt,
                        max_attempts=self._config.max_attempts,
                        error=str(e),
                    )
                    return RetryResult(
                        success=False,
                        error=e,
                        attempts=attempt,
                        exhausted=exhausted,
                        total_delay_ms=total_delay * 1000,
                    )

                retry_after = e.retry_after if isinstance(e, RemoteError) else None
                delay = self.calculate_delay(attempt, retry_after)
                total_delay += delay

                logger.info(
                    "Attempt failed; retrying",
                    attempt=attempt,
                    max_attempts=self._config.max_attempts,
                    delay_s=round(delay, 3),
                    error=str(e),
                )
                if on_retry:
                    on_retry(attempt, e, delay)

                await asyncio.sleep(delay)
                continue

            return RetryResult(
                success=True,
                value=value,
                attempts=attempt,
                total_delay_ms=total_delay * 1000,
            )


async def with_retry(
    operation: Callable[[int], Awaitable[T]],
    config: RetryConfig | None = None,
    on_retry: Callable[[int, Exception, float], None] | None = None,
) -> T:
    """Execute an operation with retry, raising on failure.

    Raises:
        ChatFailedError: Carrying the attempt count and last error
    """
    result = await RetryPolicy(config).execute(operation, on_retry)
    return result.unwrap()
