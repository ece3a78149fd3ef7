"""
Type definitions for ollama-stream.
"""

from ollama_stream.types.message import (
    ChatMessage,
    Message,
    MessageRole,
    coerce_messages,
)
from ollama_stream.types.results import (
    NO_RESPONSE_SENTINEL,
    ChatResult,
    ModelInfo,
    ModelSummary,
    StreamDelta,
)

__all__ = [
    "NO_RESPONSE_SENTINEL",
    "ChatMessage",
    "ChatResult",
    "Message",
    "MessageRole",
    "ModelInfo",
    "ModelSummary",
    "StreamDelta",
    "coerce_messages",
]
