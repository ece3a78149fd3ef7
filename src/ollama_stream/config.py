"""
Client configuration.

A ClientConfig value is threaded into each OllamaClient at construction;
there is no process-wide default state.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ollama_stream.errors import ValidationError

DEFAULT_HOST = "http://127.0.0.1:11434"
DEFAULT_MODEL = "llama3.1:8b-instruct-q4_1"

# Environment variable -> config field
_ENV_FIELDS: dict[str, str] = {
    "OLLAMA_HOST": "host",
    "OLLAMA_MODEL": "model",
    "OLLAMA_MAX_ATTEMPTS": "max_attempts",
    "OLLAMA_DEADLINE_SECS": "deadline_s",
    "OLLAMA_TIMEOUT_SECS": "request_timeout_s",
}


class ClientConfig(BaseModel):
    """Configuration for an OllamaClient.

    Example:
        >>> config = ClientConfig(model="qwen2.5:7b", deadline_s=30)
        >>> config = ClientConfig.from_env()
        >>> config = ClientConfig.from_file("ollama.yaml", max_attempts=5)
    """

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    host: str = Field(default=DEFAULT_HOST, description="Base URL of the model server")
    model: str = Field(default=DEFAULT_MODEL, description="Model identifier")

    max_attempts: int = Field(default=3, description="Transport attempts per logical chat call")
    deadline_s: float = Field(default=80.0, description="Wall-clock deadline per logical chat call")
    retry_min_delay_ms: int = Field(default=250, ge=0, description="Base backoff between attempts")
    retry_max_delay_ms: int = Field(default=2000, ge=0, description="Backoff cap")

    connect_timeout_s: float = Field(default=10.0, gt=0, description="TCP connect timeout")
    request_timeout_s: float = Field(
        default=60.0, gt=0, description="Timeout for buffered (non-streaming) requests"
    )

    json_max_tokens: int = Field(
        default=200, gt=0, description="Output cap for structured-JSON chat calls"
    )
    options: dict[str, Any] = Field(
        default_factory=dict, description="Generation options sent with every chat call"
    )
    escalate_undecodable_stream: bool = Field(
        default=True,
        description="Fail an attempt whose stream contained no decodable fragment",
    )

    chat_path: str = "/api/chat"
    tags_path: str = "/api/tags"
    show_path: str = "/api/show"

    @field_validator("host")
    @classmethod
    def _normalize_host(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("host must not be empty")
        if not value.startswith(("http://", "https://")):
            value = f"http://{value}"
        return value.rstrip("/")

    @field_validator("model")
    @classmethod
    def _check_model(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("model must not be empty")
        return value

    @field_validator("max_attempts")
    @classmethod
    def _check_attempts(cls, value: int) -> int:
        if value < 1:
            raise ValueError("max_attempts must be at least 1")
        return value

    @field_validator("deadline_s")
    @classmethod
    def _check_deadline(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("deadline_s must be positive")
        return value

    @classmethod
    def from_env(cls, **overrides: Any) -> ClientConfig:
        """Build a config from OLLAMA_* environment variables.

        Args:
            **overrides: Explicit values taking precedence over the environment

        Returns:
            ClientConfig instance
        """
        values: dict[str, Any] = {}
        for env_name, field_name in _ENV_FIELDS.items():
            raw = os.getenv(env_name)
            if raw:
                values[field_name] = raw
        values.update(overrides)
        return cls.model_validate(values)

    @classmethod
    def from_file(cls, path: str | Path, **overrides: Any) -> ClientConfig:
        """Load a config from a YAML or JSON file.

        Args:
            path: Path to a .yaml/.yml or .json file
            **overrides: Explicit values taking precedence over the file

        Returns:
            ClientConfig instance

        Raises:
            ValidationError: If the file is missing or not a mapping
        """
        file_path = Path(path)
        if not file_path.exists():
            raise ValidationError(
                f"Config file not found: {file_path}", field="path", actual=str(file_path)
            )

        text = file_path.read_text(encoding="utf-8")
        if file_path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValidationError(
                "Config file must contain a mapping",
                field="path",
                expected="mapping",
                actual=type(data).__name__,
            )

        return cls.model_validate({**data, **overrides})
