"""
Chunk decoding for newline-delimited JSON chat streams.

Each line of the body is one object shaped like::

    {"message": {"role": "assistant", "content": "Hel"}, "done": false}
    {"message": {"role": "assistant", "content": ""}, "done": true, "done_reason": "stop"}
"""

from __future__ import annotations

import codecs
import json
from typing import TYPE_CHECKING, Any

from ollama_stream.pipeline.base import Decoder
from ollama_stream.telemetry import get_logger
from ollama_stream.types.results import StreamDelta

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = get_logger(__name__)

# Counters the server attaches to the final frame
_METADATA_KEYS = (
    "total_duration",
    "load_duration",
    "prompt_eval_count",
    "prompt_eval_duration",
    "eval_count",
    "eval_duration",
)


def _to_text(fragment: bytes | str) -> str:
    if isinstance(fragment, bytes):
        return fragment.decode("utf-8", errors="replace")
    return fragment


def decode_chunk(fragment: bytes | str) -> StreamDelta | None:
    """Decode one fragment of a chat stream.

    Never raises: a fragment that is not a JSON object is logged and yields
    no delta. Objects without ``message.content`` (status or keep-alive
    frames) yield a delta with empty content.

    Args:
        fragment: One raw line of the body

    Returns:
        The decoded delta, or None if there was nothing to decode
    """
    text = _to_text(fragment).strip()
    if not text:
        return None

    try:
        data: Any = json.loads(text)
    except json.JSONDecodeError as e:
        logger.warning("Skipping undecodable stream fragment", error=e.msg, size=len(text))
        return None

    if not isinstance(data, dict):
        logger.warning(
            "Skipping undecodable stream fragment",
            error=f"expected object, got {type(data).__name__}",
            size=len(text),
        )
        return None

    if data.get("error"):
        return StreamDelta(error=str(data["error"]), is_final=True)

    message = data.get("message")
    content = message.get("content") if isinstance(message, dict) else None

    return StreamDelta(
        content=content if isinstance(content, str) else "",
        is_final=bool(data.get("done", False)),
        done_reason=data.get("done_reason"),
        metadata={k: data[k] for k in _METADATA_KEYS if k in data},
    )


class NdjsonDecoder(Decoder):
    """Newline-delimited JSON decoder.

    Reassembles objects that the transport split across fragment
    boundaries, then applies decode_chunk to every complete line.

    Attributes:
        frames_decoded: Lines that parsed into a delta
        frames_failed: Non-blank lines that could not be decoded
    """

    def __init__(self, delimiter: str = "\n") -> None:
        self._delimiter = delimiter
        self.frames_decoded = 0
        self.frames_failed = 0

    def _decode_line(self, line: str) -> StreamDelta | None:
        if not line.strip():
            return None
        delta = decode_chunk(line)
        if delta is None:
            self.frames_failed += 1
        else:
            self.frames_decoded += 1
        return delta

    async def decode(
        self, byte_stream: AsyncIterator[bytes]
    ) -> AsyncIterator[StreamDelta]:
        """Decode a streamed body into deltas.

        Args:
            byte_stream: Async iterator of raw bytes

        Yields:
            Deltas in arrival order
        """
        buffer = ""
        # Incremental so multi-byte characters split across fragments survive
        utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")

        async for chunk in byte_stream:
            buffer += utf8.decode(chunk) if isinstance(chunk, bytes) else chunk

            while self._delimiter in buffer:
                line, buffer = buffer.split(self._delimiter, 1)
                delta = self._decode_line(line)
                if delta is not None:
                    yield delta

        # Tail without a trailing newline
        buffer += utf8.decode(b"", final=True)
        delta = self._decode_line(buffer)
        if delta is not None:
            yield delta

    @property
    def undecodable(self) -> bool:
        """True if fragments arrived but none of them decoded."""
        return self.frames_failed > 0 and self.frames_decoded == 0
