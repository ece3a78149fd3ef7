"""
Resilience layer - retry, deadline and cancellation.

Two orthogonal policies are composed around a single-attempt primitive:
- RetryPolicy: bounded, strictly sequential attempts with backoff
- DeadlinePolicy: wall-clock deadline over the whole logical call,
  enforced through a CancelToken plus task cancellation
"""

from ollama_stream.resilience.cancel import (
    CancellableStream,
    CancelReason,
    CancelState,
    CancelToken,
)
from ollama_stream.resilience.deadline import DeadlinePolicy, with_deadline
from ollama_stream.resilience.retry import (
    JitterStrategy,
    RetryConfig,
    RetryPolicy,
    RetryResult,
    with_retry,
)

__all__ = [
    "CancelReason",
    "CancelState",
    "CancelToken",
    "CancellableStream",
    "DeadlinePolicy",
    "JitterStrategy",
    "RetryConfig",
    "RetryPolicy",
    "RetryResult",
    "with_deadline",
    "with_retry",
]
