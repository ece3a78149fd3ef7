"""
Base error classes for ollama-stream.

Provides a layered error hierarchy:
- OllamaStreamError: Base class for all library errors
- ValidationError: Bad caller input, raised before any network I/O
- TransportError: HTTP/network errors
- RemoteError: Non-2xx responses from the model server
- PipelineError: Stream processing errors (DecodeError, StreamError)
- DeadlineExceededError: Logical call ran past its wall-clock deadline
- StreamCancelledError: Caller cancelled the logical call
- ChatFailedError: A logical chat call failed (carries attempt count)
"""

from __future__ import annotations

import contextlib
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ollama_stream.errors.classification import ErrorClass


@dataclass
class ErrorContext:
    """Structured error context for diagnostics."""

    field_path: str | None = None
    """Path to the problematic argument (e.g., 'messages[0].role')"""

    details: dict[str, Any] = field(default_factory=dict)
    """Additional details about the error"""

    source: str | None = None
    """Error source (e.g., 'validation', 'transport', 'pipeline')"""

    hint: str | None = None
    """Actionable hint for resolving the error"""

    def __str__(self) -> str:
        parts = []
        if self.source:
            parts.append(f"[{self.source}]")
        if self.field_path:
            parts.append(f"at '{self.field_path}'")
        if self.hint:
            parts.append(f"(hint: {self.hint})")
        return " ".join(parts)


class OllamaStreamError(Exception):
    """Base class for all ollama-stream errors.

    Attributes:
        message: Human-readable error message
        context: Structured error context
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
    ) -> None:
        self.message = message
        self.context = context or ErrorContext()
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        ctx_str = str(self.context)
        if ctx_str:
            return f"{self.message} {ctx_str}"
        return self.message

    def with_hint(self, hint: str) -> OllamaStreamError:
        """Add a hint to this error."""
        self.context.hint = hint
        self.args = (self._format_message(),)
        return self


class ValidationError(OllamaStreamError):
    """Invalid caller arguments.

    Raised synchronously, before anything is sent to the network:
    - messages is not a sequence of chat messages
    - empty or non-string model name
    - non-string prompt
    """

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        field: str | None = None,
        expected: Any = None,
        actual: Any = None,
    ) -> None:
        ctx = context or ErrorContext(source="validation")
        if field:
            ctx.field_path = field
        if expected is not None:
            ctx.details["expected"] = expected
        if actual is not None:
            ctx.details["actual"] = actual
        super().__init__(message, ctx)
        self.field = field
        self.expected = expected
        self.actual = actual


class TransportError(OllamaStreamError):
    """Error during HTTP transport (connection refused, dropped stream, timeouts)."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        url: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="transport")
        if url:
            ctx.details["url"] = url
        super().__init__(message, ctx)
        self.url = url
        self.__cause__ = cause


class RemoteError(OllamaStreamError):
    """Non-2xx response from the model server.

    Attributes:
        status_code: HTTP status code
        error_class: Standardized error classification
        retryable: Whether the error class is normally worth retrying
        raw_error: Parsed error body, if any
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        error_class: ErrorClass,
        retryable: bool = False,
        raw_error: dict[str, Any] | None = None,
        retry_after: float | None = None,
    ) -> None:
        ctx = ErrorContext(source="remote")
        ctx.details["status_code"] = status_code
        ctx.details["error_class"] = error_class.value
        super().__init__(message, ctx)

        self.status_code = status_code
        self.error_class = error_class
        self.retryable = retryable
        self.raw_error = raw_error or {}
        self.retry_after = retry_after

    @classmethod
    def from_response(
        cls,
        status_code: int,
        body: Any = None,
        headers: dict[str, str] | None = None,
    ) -> RemoteError:
        """Create RemoteError from an HTTP error response.

        Ollama reports failures as ``{"error": "..."}``; any other body shape
        falls back to the bare status line.
        """
        from ollama_stream.errors.classification import (
            classify_http_status,
            is_retryable,
        )

        error_class = classify_http_status(status_code)

        message = f"HTTP {status_code}"
        if isinstance(body, dict) and body.get("error"):
            message = f"HTTP {status_code}: {body['error']}"

        retry_after = None
        if headers:
            retry_after_str = headers.get("retry-after") or headers.get("Retry-After")
            if retry_after_str:
                with contextlib.suppress(ValueError):
                    retry_after = float(retry_after_str)

        return cls(
            message=message,
            status_code=status_code,
            error_class=error_class,
            retryable=is_retryable(error_class),
            raw_error=body if isinstance(body, dict) else None,
            retry_after=retry_after,
        )


class PipelineError(OllamaStreamError):
    """Error during stream processing."""

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        *,
        operator: str | None = None,
    ) -> None:
        ctx = context or ErrorContext(source="pipeline")
        if operator:
            ctx.details["operator"] = operator
        super().__init__(message, ctx)
        self.operator = operator


class DecodeError(PipelineError):
    """A stream delivered fragments but none of them could be decoded."""

    def __init__(self, message: str, *, frames_failed: int = 0) -> None:
        super().__init__(message, operator="decoder")
        self.frames_failed = frames_failed
        self.context.details["frames_failed"] = frames_failed


class StreamError(PipelineError):
    """The server reported an error inside an otherwise healthy stream."""

    def __init__(self, message: str) -> None:
        super().__init__(message, operator="accumulator")


class DeadlineExceededError(OllamaStreamError):
    """The logical call did not finish before its deadline."""

    def __init__(self, timeout_s: float) -> None:
        ctx = ErrorContext(source="deadline")
        ctx.details["timeout_s"] = timeout_s
        super().__init__(f"Chat stream exceeded deadline of {timeout_s:g}s", ctx)
        self.timeout_s = timeout_s


class StreamCancelledError(OllamaStreamError):
    """The caller cancelled the logical call through its cancel token."""

    def __init__(self, reason: str | None = None) -> None:
        ctx = ErrorContext(source="cancel")
        if reason:
            ctx.details["reason"] = reason
        super().__init__("Chat stream cancelled", ctx)
        self.reason = reason


class ChatFailedError(OllamaStreamError):
    """A logical chat call failed.

    Attributes:
        attempts: Number of transport attempts made
        last_error: The error raised by the final attempt
        exhausted: True if the call failed because every attempt was used up
    """

    def __init__(
        self,
        *,
        attempts: int,
        last_error: Exception | None,
        exhausted: bool,
    ) -> None:
        cause = getattr(last_error, "message", None) or str(last_error)
        if exhausted:
            message = f"Chat stream failed after {attempts} attempt(s): {cause}"
        else:
            message = f"Chat stream failed on attempt {attempts}: {cause}"
        ctx = ErrorContext(source="retry")
        ctx.details["attempts"] = attempts
        super().__init__(message, ctx)
        self.attempts = attempts
        self.last_error = last_error
        self.exhausted = exhausted
        self.__cause__ = last_error
