"""
Stateful accumulation of a streamed chat answer.

StreamAccumulator owns the text of one transport attempt. Every fragment is
appended and forwarded to a live sink in the same step, and the call is
finalized at most once, by end or by error.
"""

from __future__ import annotations

import sys
from enum import Enum
from typing import TYPE_CHECKING, Any, TextIO

from ollama_stream.errors import StreamError
from ollama_stream.telemetry import get_logger
from ollama_stream.types.results import ChatResult, StreamDelta

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    Sink = Callable[[str], Any]

logger = get_logger(__name__)


class StreamState(str, Enum):
    """Lifecycle of one accumulated stream."""

    IDLE = "idle"
    STREAMING = "streaming"
    FINALIZING = "finalizing"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (StreamState.DONE, StreamState.FAILED)


class StreamAccumulator:
    """Per-attempt accumulator with guarded state transitions.

    Example:
        >>> acc = StreamAccumulator(sink=stdout_sink)
        >>> acc.start()
        >>> acc.on_delta("Hello")
        >>> acc.on_delta(" world")
        >>> acc.on_end().full_text
        'Hello world'
    """

    def __init__(self, sink: Sink | None = None) -> None:
        self._sink = sink
        self._parts: list[str] = []
        self._state = StreamState.IDLE
        self._result: ChatResult | None = None
        self._error: BaseException | None = None
        self._done_reason: str | None = None
        self.metadata: dict[str, Any] = {}

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def text(self) -> str:
        """Text accumulated so far (untrimmed)."""
        return "".join(self._parts)

    @property
    def result(self) -> ChatResult | None:
        return self._result

    @property
    def error(self) -> BaseException | None:
        return self._error

    @property
    def finalized(self) -> bool:
        return self._state.is_terminal

    def start(self) -> None:
        """Move from IDLE to STREAMING."""
        if self._state is StreamState.IDLE:
            self._state = StreamState.STREAMING

    def on_delta(self, text: str) -> bool:
        """Append a fragment and forward it to the sink.

        Args:
            text: Fragment text

        Returns:
            True if the fragment was accepted, False if ignored
        """
        if self._state.is_terminal:
            logger.debug("Ignoring fragment after finalization", state=self._state.value)
            return False
        if not text:
            return False

        self.start()
        self._parts.append(text)
        if self._sink is not None:
            try:
                self._sink(text)
            except Exception as e:
                logger.warning("Output sink raised; continuing", error=str(e))
        return True

    def on_end(self) -> ChatResult:
        """Finalize the stream.

        Returns:
            The result; the same object on repeated calls

        Raises:
            The recorded error if the stream already failed
        """
        if self._state is StreamState.FAILED:
            raise self._error  # type: ignore[misc]
        if self._result is not None:
            return self._result

        self._state = StreamState.FINALIZING
        self._result = ChatResult.from_text(self.text, done_reason=self._done_reason)
        self._state = StreamState.DONE
        return self._result

    def on_error(self, error: BaseException) -> bool:
        """Fail the stream.

        Args:
            error: Cause of the failure

        Returns:
            True if this call failed the stream, False if already finalized
        """
        if self._state.is_terminal:
            logger.debug("Ignoring error after finalization", state=self._state.value)
            return False
        self._error = error
        self._state = StreamState.FAILED
        return True

    def feed(self, delta: StreamDelta) -> ChatResult | None:
        """Route a decoded delta through the state machine.

        Args:
            delta: Decoded delta

        Returns:
            The result if this delta finalized the stream, else None
        """
        if self._state.is_terminal:
            logger.debug("Ignoring delta after finalization", state=self._state.value)
            return None

        if delta.error is not None:
            self.on_error(StreamError(f"Server reported error: {delta.error}"))
            return None

        self.on_delta(delta.content)

        if delta.is_final:
            self._done_reason = delta.done_reason
            self.metadata.update(delta.metadata)
            return self.on_end()
        return None

    async def consume(self, deltas: AsyncIterator[StreamDelta]) -> ChatResult:
        """Drive the accumulator from a delta stream until it finalizes.

        Each delta is fully applied before the next one is pulled. The
        stream ending without a final marker also finalizes.

        Raises:
            StreamError: If the server reported an error frame
        """
        self.start()
        try:
            async for delta in deltas:
                self.feed(delta)
                if self._state.is_terminal:
                    break
        finally:
            aclose = getattr(deltas, "aclose", None)
            if aclose is not None:
                await aclose()
        return self.on_end()


def make_writer_sink(stream: TextIO) -> Sink:
    """Create a sink that writes each fragment to a text stream and flushes."""

    def _write(text: str) -> None:
        stream.write(text)
        stream.flush()

    return _write


def stdout_sink(text: str) -> None:
    """Echo a fragment to stdout immediately."""
    sys.stdout.write(text)
    sys.stdout.flush()
