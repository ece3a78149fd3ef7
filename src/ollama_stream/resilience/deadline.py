"""
Wall-clock deadline for a logical call.

The deadline covers the whole call, retries and backoff included. When it
fires, the call's cancel token is cancelled first so the attempt can stop at
the next fragment boundary. Then the task itself is cancelled, so a
connection that never sends another byte is still torn down. Nothing is
retried after a timeout.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, TypeVar

from ollama_stream.errors import DeadlineExceededError, StreamCancelledError
from ollama_stream.resilience.cancel import CancelReason, CancelToken
from ollama_stream.telemetry import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

T = TypeVar("T")

logger = get_logger(__name__)


class DeadlinePolicy:
    """Run an operation under a hard deadline with cooperative cancellation.

    Example:
        >>> policy = DeadlinePolicy(80.0)
        >>> result = await policy.execute(lambda token: run_call(token))
    """

    def __init__(self, timeout_s: float) -> None:
        if timeout_s <= 0:
            raise ValueError("timeout_s must be positive")
        self._timeout_s = timeout_s

    @property
    def timeout_s(self) -> float:
        return self._timeout_s

    async def execute(
        self,
        operation: Callable[[CancelToken], Awaitable[T]],
        cancel_token: CancelToken | None = None,
    ) -> T:
        """Run an operation, failing it if the deadline passes first.

        Args:
            operation: Async operation; receives the token it must honor
            cancel_token: Optional caller token; cancelling it aborts the call

        Returns:
            The operation's result

        Raises:
            DeadlineExceededError: If the deadline fired
            StreamCancelledError: If the caller cancelled through its token
        """
        token = cancel_token or CancelToken()
        task: asyncio.Task[T] = asyncio.ensure_future(operation(token))
        cancel_waiter = asyncio.ensure_future(token.wait())

        try:
            done, _ = await asyncio.wait(
                {task, cancel_waiter},
                timeout=self._timeout_s,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            # Our own caller went away; take the call down with us
            await self._abort(task, token, CancelReason.SHUTDOWN)
            raise
        finally:
            cancel_waiter.cancel()

        if task in done and not task.cancelled():
            return task.result()

        if cancel_waiter in done or token.is_cancelled:
            reason = token.reason or CancelReason.USER_REQUEST
            await self._abort(task, token, reason)
            logger.info("Chat stream cancelled by caller", reason=reason.value)
            raise StreamCancelledError(reason.value)

        if task in done:
            # Cancelled from outside both the deadline and the token
            return task.result()

        logger.warning("Chat stream deadline exceeded", timeout_s=self._timeout_s)
        await self._abort(task, token, CancelReason.TIMEOUT)
        raise DeadlineExceededError(self._timeout_s)

    @staticmethod
    async def _abort(
        task: asyncio.Task[T], token: CancelToken, reason: CancelReason
    ) -> None:
        token.cancel(reason)
        task.cancel()
        # Wait for the attempt to unwind so its stream is closed before we return
        await asyncio.gather(task, return_exceptions=True)


async def with_deadline(
    operation: Callable[[CancelToken], Awaitable[T]],
    timeout_s: float,
    cancel_token: CancelToken | None = None,
) -> T:
    """Execute an operation under a deadline."""
    return await DeadlinePolicy(timeout_s).execute(operation, cancel_token)
