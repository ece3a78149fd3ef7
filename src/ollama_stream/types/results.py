"""
Value types produced by the client: stream deltas, chat results and model
directory entries.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Returned as full_text when a call produced no text. Never paired with succeeded=True.
NO_RESPONSE_SENTINEL = "Error: No response received."


class StreamDelta(BaseModel):
    """One decoded fragment of a streamed chat response."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(default="", description="Partial answer text, possibly empty")
    is_final: bool = Field(default=False, description="Server marked the stream done")
    done_reason: str | None = Field(default=None, description="Why generation stopped")
    error: str | None = Field(default=None, description="Error reported inside the stream")
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Counters sent with the final frame"
    )

    @property
    def has_content(self) -> bool:
        return bool(self.content)


class ChatResult(BaseModel):
    """Terminal value of one logical chat call.

    Attributes:
        full_text: Concatenated answer, or NO_RESPONSE_SENTINEL
        succeeded: False when no text was received
        attempts: Transport attempts used
        done_reason: Server's stop reason, if reported
    """

    model_config = ConfigDict(frozen=True)

    full_text: str
    succeeded: bool
    attempts: int = 1
    done_reason: str | None = None

    @classmethod
    def from_text(
        cls,
        text: str,
        *,
        attempts: int = 1,
        done_reason: str | None = None,
    ) -> ChatResult:
        """Build a result from accumulated text, applying the empty-result rule."""
        text = text.strip()
        if not text:
            return cls(
                full_text=NO_RESPONSE_SENTINEL,
                succeeded=False,
                attempts=attempts,
                done_reason=done_reason,
            )
        return cls(full_text=text, succeeded=True, attempts=attempts, done_reason=done_reason)

    def with_attempts(self, attempts: int) -> ChatResult:
        return self.model_copy(update={"attempts": attempts})

    def __str__(self) -> str:
        return self.full_text


class ModelSummary(BaseModel):
    """One entry of the model listing. Extra server fields are kept."""

    model_config = ConfigDict(extra="allow", frozen=True)

    name: str


class ModelInfo(BaseModel):
    """Metadata for one model."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Model name as supplied by the caller")
    format: str = Field(default="Unknown", description="Weights format, e.g. gguf")
    parameter_size: str = Field(default="Unknown", description="e.g. 8.0B")
    families: list[str] = Field(default_factory=list, description="Model families")

    @property
    def supported_families(self) -> list[str]:
        return list(self.families)

    @classmethod
    def from_show_response(cls, name: str, data: dict[str, Any]) -> ModelInfo:
        """Map an /api/show body onto ModelInfo, defaulting missing fields.

        Args:
            name: Caller-supplied model name
            data: Response body

        Returns:
            ModelInfo with name always populated
        """
        details = data.get("details")
        if not isinstance(details, dict):
            details = {}

        families = details.get("families")
        if not isinstance(families, list):
            families = []

        return cls(
            name=name,
            format=_detail_text(details.get("format")),
            parameter_size=_detail_text(details.get("parameter_size")),
            families=[str(f) for f in families],
        )


def _detail_text(value: Any) -> str:
    """Render a scalar detail field, defaulting when absent or structured."""
    if value is None or value == "" or isinstance(value, (dict, list)):
        return "Unknown"
    return str(value)
