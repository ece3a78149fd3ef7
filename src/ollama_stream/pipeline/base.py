"""
Base abstractions for the pipeline layer.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from ollama_stream.types.results import StreamDelta


class Decoder(ABC):
    """Abstract decoder that converts a streamed body into message deltas.

    Decoders never raise on malformed input: undecodable fragments are
    logged and skipped so an otherwise healthy stream keeps flowing.
    """

    @abstractmethod
    def decode(self, byte_stream: AsyncIterator[bytes]) -> AsyncIterator[StreamDelta]:
        """Decode a byte stream into deltas.

        Args:
            byte_stream: Async iterator of raw body fragments

        Yields:
            Decoded deltas in arrival order
        """
        ...
