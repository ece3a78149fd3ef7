"""ollama-stream: async client for a local Ollama server.

Streamed chat with live output, bounded retries and a per-call deadline,
structured-JSON chat, and model directory lookups.
"""
from __future__ import annotations

from ollama_stream.client import ModelDirectory, OllamaClient
from ollama_stream.config import ClientConfig
from ollama_stream.errors import (
    ChatFailedError,
    DeadlineExceededError,
    DecodeError,
    OllamaStreamError,
    RemoteError,
    StreamCancelledError,
    StreamError,
    TransportError,
    ValidationError,
)
from ollama_stream.pipeline import make_writer_sink, stdout_sink
from ollama_stream.resilience import CancelReason, CancelToken
from ollama_stream.types import (
    NO_RESPONSE_SENTINEL,
    ChatMessage,
    ChatResult,
    Message,
    MessageRole,
    ModelInfo,
    ModelSummary,
    StreamDelta,
)

__version__ = "0.1.0"

__all__ = [
    # Client
    "ClientConfig",
    "ModelDirectory",
    "OllamaClient",
    # Cancellation
    "CancelReason",
    "CancelToken",
    # Errors
    "ChatFailedError",
    "DeadlineExceededError",
    "DecodeError",
    "OllamaStreamError",
    "RemoteError",
    "StreamCancelledError",
    "StreamError",
    "TransportError",
    "ValidationError",
    # Types
    "NO_RESPONSE_SENTINEL",
    "ChatMessage",
    "ChatResult",
    "Message",
    "MessageRole",
    "ModelInfo",
    "ModelSummary",
    "StreamDelta",
    # Sinks
    "make_writer_sink",
    "stdout_sink",
    # Version
    "__version__",
]
