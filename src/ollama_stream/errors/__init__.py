"""
Error hierarchy for ollama-stream.
"""

from ollama_stream.errors.base import (
    ChatFailedError,
    DeadlineExceededError,
    DecodeError,
    ErrorContext,
    OllamaStreamError,
    PipelineError,
    RemoteError,
    StreamCancelledError,
    StreamError,
    TransportError,
    ValidationError,
)
from ollama_stream.errors.classification import (
    ErrorClass,
    classify_http_status,
    is_retryable,
)

__all__ = [
    "ChatFailedError",
    "DeadlineExceededError",
    "DecodeError",
    "ErrorClass",
    "ErrorContext",
    "OllamaStreamError",
    "PipelineError",
    "RemoteError",
    "StreamCancelledError",
    "StreamError",
    "TransportError",
    "ValidationError",
    "classify_http_status",
    "is_retryable",
]
