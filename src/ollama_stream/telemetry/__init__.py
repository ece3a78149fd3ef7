"""
Telemetry module for ollama-stream: structured, context-aware logging.
"""

from ollama_stream.telemetry.logger import (
    JsonFormatter,
    LogContext,
    LogLevel,
    StreamLogger,
    TextFormatter,
    clear_log_context,
    get_log_context,
    get_logger,
    set_log_context,
)

__all__ = [
    "JsonFormatter",
    "LogContext",
    "LogLevel",
    "StreamLogger",
    "TextFormatter",
    "clear_log_context",
    "get_log_context",
    "get_logger",
    "set_log_context",
]
