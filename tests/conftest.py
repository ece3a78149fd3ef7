"""Root pytest fixtures for ollama-stream tests."""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from ollama_stream.telemetry import StreamLogger, clear_log_context


@pytest.fixture(autouse=True)
def _isolated_logging():
    """Keep package loggers propagating to caplog between tests."""
    yield
    StreamLogger.reset()
    clear_log_context()


@pytest.fixture
def clean_env():
    """Run a test with no OLLAMA_* variables set."""
    env = {k: v for k, v in os.environ.items() if not k.startswith("OLLAMA_")}
    with patch.dict(os.environ, env, clear=True):
        yield
