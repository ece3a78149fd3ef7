"""
Pipeline layer - stream processing operators.

- Decoder: turns the streamed NDJSON body into StreamDelta objects
- StreamAccumulator: folds deltas into the answer and forwards them live
"""

from ollama_stream.pipeline.accumulate import (
    StreamAccumulator,
    StreamState,
    make_writer_sink,
    stdout_sink,
)
from ollama_stream.pipeline.base import Decoder
from ollama_stream.pipeline.decode import NdjsonDecoder, decode_chunk

__all__ = [
    "Decoder",
    "NdjsonDecoder",
    "StreamAccumulator",
    "StreamState",
    "decode_chunk",
    "make_writer_sink",
    "stdout_sink",
]
