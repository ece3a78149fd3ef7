"""
Structured-JSON mode: ask the server to constrain output to JSON and turn
whatever comes back into a well-formed structured value.

Callers always get a dict (or list) back, never a parse exception: failures
are reported as ``{"error": ...}`` payloads.
"""

from __future__ import annotations

import json
from typing import Any

from ollama_stream.telemetry import get_logger

logger = get_logger(__name__)

PARSE_FAILED = "parse failed"
NO_STRUCTURED_DATA = "no structured data"
REQUEST_FAILED = "request failed"


def error_payload(error: str, detail: str | None = None) -> dict[str, Any]:
    """Build the structured error shape returned instead of raising."""
    payload: dict[str, Any] = {"error": error}
    if detail:
        payload["detail"] = detail
    return payload


def build_json_request(
    model: str,
    messages: list[dict[str, Any]],
    *,
    max_tokens: int,
    options: dict[str, Any] | None = None,
    extra: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build a buffered chat request body in JSON mode.

    Args:
        model: Model identifier
        messages: Wire-format messages
        max_tokens: Output cap, sent as ``options.num_predict``
        options: Extra generation options
        extra: Top-level request fields such as ``keep_alive``; cannot
            override the JSON-mode fields

    Returns:
        Request body
    """
    return {
        **(extra or {}),
        "model": model,
        "messages": messages,
        "stream": False,
        "format": "json",
        "options": {**(options or {}), "num_predict": max_tokens},
    }


def parse_structured_content(raw: Any) -> Any:
    """Normalize JSON-mode message content into structured data.

    - Non-blank text is parsed strictly; on failure an error payload is
      returned.
    - Content that is already structured (non-empty dict or list) passes
      through unchanged.
    - Anything else becomes a "no structured data" payload.

    Args:
        raw: ``message.content`` from the response

    Returns:
        Parsed value or an error payload
    """
    if isinstance(raw, str) and raw.strip():
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Failed to parse JSON-mode content", error=e.msg)
            return error_payload(PARSE_FAILED, e.msg)

    if isinstance(raw, (dict, list)) and raw:
        return raw

    return error_payload(NO_STRUCTURED_DATA)
