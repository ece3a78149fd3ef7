"""Tests for errors module."""

import pytest

from ollama_stream.errors import (
    ChatFailedError,
    DeadlineExceededError,
    DecodeError,
    ErrorClass,
    ErrorContext,
    OllamaStreamError,
    PipelineError,
    RemoteError,
    StreamCancelledError,
    StreamError,
    TransportError,
    ValidationError,
    classify_http_status,
    is_retryable,
)


class TestErrorHierarchy:
    """Tests for the error hierarchy."""

    @pytest.mark.parametrize(
        "error",
        [
            ValidationError("bad"),
            TransportError("down"),
            RemoteError.from_response(500),
            DecodeError("garbage"),
            StreamError("oom"),
            DeadlineExceededError(80),
            StreamCancelledError(),
            ChatFailedError(attempts=1, last_error=None, exhausted=False),
        ],
    )
    def test_all_derive_from_base(self, error: Exception) -> None:
        """Test every error is an OllamaStreamError."""
        assert isinstance(error, OllamaStreamError)

    def test_pipeline_errors(self) -> None:
        """Test decode and stream errors are pipeline errors."""
        assert isinstance(DecodeError("x"), PipelineError)
        assert StreamError("x").operator == "accumulator"
        assert DecodeError("x", frames_failed=4).context.details["frames_failed"] == 4


class TestErrorContext:
    """Tests for ErrorContext."""

    def test_str(self) -> None:
        """Test context formatting."""
        ctx = ErrorContext(source="validation", field_path="messages[0]", hint="use Message")
        assert str(ctx) == "[validation] at 'messages[0]' (hint: use Message)"

    def test_with_hint(self) -> None:
        """Test adding a hint updates the message."""
        error = TransportError("Connection failed").with_hint("is ollama serve running?")
        assert "hint: is ollama serve running?" in str(error)


class TestValidationError:
    """Tests for ValidationError."""

    def test_fields(self) -> None:
        """Test details are recorded."""
        error = ValidationError("bad", field="prompt", expected="str", actual="int")
        assert error.field == "prompt"
        assert error.context.details == {"expected": "str", "actual": "int"}
        assert "at 'prompt'" in str(error)


class TestRemoteError:
    """Tests for RemoteError."""

    def test_from_response_with_error_body(self) -> None:
        """Test the server's error text is used."""
        error = RemoteError.from_response(404, {"error": "model 'x' not found"})
        assert error.message == "HTTP 404: model 'x' not found"
        assert error.status_code == 404
        assert error.error_class == ErrorClass.NOT_FOUND
        assert error.retryable is False
        assert error.raw_error == {"error": "model 'x' not found"}

    def test_from_response_without_body(self) -> None:
        """Test the bare status line."""
        error = RemoteError.from_response(503, "Service Unavailable")
        assert error.message == "HTTP 503"
        assert error.retryable is True
        assert error.raw_error == {}

    def test_retry_after_header(self) -> None:
        """Test retry-after parsing."""
        error = RemoteError.from_response(429, headers={"retry-after": "2"})
        assert error.retry_after == 2.0
        bad = RemoteError.from_response(429, headers={"retry-after": "soon"})
        assert bad.retry_after is None


class TestChatFailedError:
    """Tests for ChatFailedError."""

    def test_exhausted_message(self) -> None:
        """Test the exhausted message names the attempt count and cause."""
        cause = TransportError("Connection failed: refused")
        error = ChatFailedError(attempts=3, last_error=cause, exhausted=True)
        assert error.message == "Chat stream failed after 3 attempt(s): Connection failed: refused"
        assert error.__cause__ is cause

    def test_non_retryable_message(self) -> None:
        """Test the message for a failure that was not retried."""
        error = ChatFailedError(
            attempts=1,
            last_error=RemoteError.from_response(400, {"error": "bad"}),
            exhausted=False,
        )
        assert error.message == "Chat stream failed on attempt 1: HTTP 400: bad"


class TestDeadlineExceededError:
    """Tests for DeadlineExceededError."""

    def test_message(self) -> None:
        """Test the message carries the deadline."""
        assert DeadlineExceededError(80).message == "Chat stream exceeded deadline of 80s"
        assert DeadlineExceededError(0.5).message == "Chat stream exceeded deadline of 0.5s"


class TestClassification:
    """Tests for HTTP status classification."""

    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (400, ErrorClass.INVALID_REQUEST),
            (404, ErrorClass.NOT_FOUND),
            (408, ErrorClass.TIMEOUT),
            (429, ErrorClass.RATE_LIMITED),
            (500, ErrorClass.SERVER_ERROR),
            (503, ErrorClass.OVERLOADED),
            (599, ErrorClass.SERVER_ERROR),
            (418, ErrorClass.INVALID_REQUEST),
            (302, ErrorClass.OTHER),
        ],
    )
    def test_classify(self, status: int, expected: ErrorClass) -> None:
        """Test status mapping with family fallbacks."""
        assert classify_http_status(status) == expected

    def test_is_retryable(self) -> None:
        """Test retryable classes."""
        assert is_retryable(ErrorClass.OVERLOADED) is True
        assert is_retryable(ErrorClass.NOT_FOUND) is False
