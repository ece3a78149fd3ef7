"""
Cooperative cancellation for streaming calls.

A CancelToken is shared between whoever may abort a call (the caller, the
deadline policy) and the attempt reading the stream.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from ollama_stream.telemetry import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

logger = get_logger(__name__)


class CancelReason(str, Enum):
    """Reasons for cancellation."""

    USER_REQUEST = "user_request"
    TIMEOUT = "timeout"
    SHUTDOWN = "shutdown"


@dataclass
class CancelState:
    """State of a cancellation token."""

    cancelled: bool = False
    reason: CancelReason | None = None
    timestamp: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class CancelToken:
    """Cancellation token for a logical call.

    Example:
        >>> token = CancelToken()
        >>> task = asyncio.create_task(client.chat_stream(msgs, cancel_token=token))
        >>> token.cancel()  # from anywhere on the same loop
    """

    def __init__(self) -> None:
        self._state = CancelState()
        self._event = asyncio.Event()
        self._callbacks: list[Callable[[CancelReason], Any]] = []

    def cancel(
        self,
        reason: CancelReason = CancelReason.USER_REQUEST,
        **metadata: Any,
    ) -> bool:
        """Request cancellation.

        Returns:
            True if cancellation was newly requested, False if already cancelled
        """
        if self._state.cancelled:
            return False

        self._state.cancelled = True
        self._state.reason = reason
        self._state.timestamp = time.time()
        self._state.metadata.update(metadata)
        self._event.set()

        for callback in self._callbacks:
            self._invoke(callback, reason)

        return True

    @staticmethod
    def _invoke(callback: Callable[[CancelReason], Any], reason: CancelReason) -> None:
        try:
            callback(reason)
        except Exception as e:
            logger.warning("Cancel callback raised", error=str(e))

    @property
    def is_cancelled(self) -> bool:
        return self._state.cancelled

    @property
    def reason(self) -> CancelReason | None:
        return self._state.reason

    @property
    def state(self) -> CancelState:
        return self._state

    async def wait(self) -> CancelReason:
        """Wait until cancellation is requested."""
        await self._event.wait()
        return self._state.reason or CancelReason.USER_REQUEST

    def on_cancel(self, callback: Callable[[CancelReason], Any]) -> CancelToken:
        """Register a callback; runs immediately if already cancelled."""
        self._callbacks.append(callback)
        if self._state.cancelled and self._state.reason:
            self._invoke(callback, self._state.reason)
        return self

    def raise_if_cancelled(self) -> None:
        """Raise CancelledError if cancelled.

        Raises:
            asyncio.CancelledError: If cancellation was requested
        """
        if self._state.cancelled:
            reason = self._state.reason or CancelReason.USER_REQUEST
            raise asyncio.CancelledError(reason.value)


class CancellableStream:
    """Async iterator wrapper that aborts once its token is cancelled.

    Checked between items, so a cancelled stream stops at the next
    fragment boundary with CancelledError instead of looking like a
    normal end of body.
    """

    def __init__(self, stream: AsyncIterator[Any], token: CancelToken) -> None:
        self._stream = stream
        self._token = token
        self._finished = False

    def __aiter__(self) -> CancellableStream:
        return self

    async def __anext__(self) -> Any:
        if self._token.is_cancelled:
            self._finished = True
            self._token.raise_if_cancelled()
        if self._finished:
            raise StopAsyncIteration

        try:
            return await self._stream.__anext__()
        except StopAsyncIteration:
            self._finished = True
            raise

    async def aclose(self) -> None:
        """Close the wrapped stream."""
        self._finished = True
        aclose = getattr(self._stream, "aclose", None)
        if aclose is not None:
            await aclose()

    @property
    def finished(self) -> bool:
        return self._finished
