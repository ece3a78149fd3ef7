"""Tests for structured-JSON mode helpers."""

import logging

import pytest

from ollama_stream.structured import (
    NO_STRUCTURED_DATA,
    PARSE_FAILED,
    build_json_request,
    error_payload,
    parse_structured_content,
)


class TestBuildJsonRequest:
    """Tests for build_json_request."""

    def test_shape(self) -> None:
        """Test JSON mode, no streaming and the output cap."""
        messages = [{"role": "user", "content": "colors as JSON"}]
        body = build_json_request("llama3.1", messages, max_tokens=200)
        assert body == {
            "model": "llama3.1",
            "messages": messages,
            "stream": False,
            "format": "json",
            "options": {"num_predict": 200},
        }

    def test_cap_overrides_options(self) -> None:
        """Test the explicit cap wins over a passed num_predict."""
        body = build_json_request(
            "m", [], max_tokens=50, options={"temperature": 0, "num_predict": 999}
        )
        assert body["options"] == {"temperature": 0, "num_predict": 50}


class TestParseStructuredContent:
    """Tests for parse_structured_content."""

    def test_object(self) -> None:
        """Test a JSON object string."""
        assert parse_structured_content('{"colors": ["red", "blue"]}') == {
            "colors": ["red", "blue"]
        }

    def test_array(self) -> None:
        """Test a JSON array string."""
        assert parse_structured_content("[1, 2]") == [1, 2]

    def test_already_structured(self) -> None:
        """Test structured content passes through."""
        assert parse_structured_content({"a": 1}) == {"a": 1}
        assert parse_structured_content(["x"]) == ["x"]

    def test_parse_failure(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test malformed JSON yields an error payload with detail."""
        with caplog.at_level(logging.WARNING):
            result = parse_structured_content('{"colors": [')
        assert result["error"] == PARSE_FAILED
        assert result["detail"]
        assert "Failed to parse JSON-mode content" in caplog.text

    @pytest.mark.parametrize("raw", [None, "", "   ", {}, [], 42])
    def test_no_structured_data(self, raw: object) -> None:
        """Test empty or scalar content."""
        assert parse_structured_content(raw) == {"error": NO_STRUCTURED_DATA}


class TestErrorPayload:
    """Tests for error_payload."""

    def test_without_detail(self) -> None:
        """Test the bare shape."""
        assert error_payload("request failed") == {"error": "request failed"}

    def test_with_detail(self) -> None:
        """Test detail is included."""
        assert error_payload("parse failed", "line 1") == {
            "error": "parse failed",
            "detail": "line 1",
        }
