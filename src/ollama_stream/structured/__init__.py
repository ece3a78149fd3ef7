"""
Structured output support (JSON mode).
"""

from ollama_stream.structured.json_mode import (
    NO_STRUCTURED_DATA,
    PARSE_FAILED,
    REQUEST_FAILED,
    build_json_request,
    error_payload,
    parse_structured_content,
)

__all__ = [
    "NO_STRUCTURED_DATA",
    "PARSE_FAILED",
    "REQUEST_FAILED",
    "build_json_request",
    "error_payload",
    "parse_structured_content",
]
