"""
Client layer - user-facing API.

This module provides:
- OllamaClient: Main entry point (streamed, buffered and JSON chat)
- ModelDirectory: Model listing and introspection
- Cancellation: cooperative cancel tokens for streaming calls
"""

from ollama_stream.client.core import OllamaClient
from ollama_stream.client.directory import ModelDirectory
from ollama_stream.resilience.cancel import (
    CancellableStream,
    CancelReason,
    CancelState,
    CancelToken,
)

__all__ = [
    "CancelReason",
    "CancelState",
    "CancelToken",
    "CancellableStream",
    "ModelDirectory",
    "OllamaClient",
]
