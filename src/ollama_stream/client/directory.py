"""
Model directory: read-only listing and introspection of installed models.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ollama_stream.errors import OllamaStreamError, ValidationError
from ollama_stream.telemetry import get_logger
from ollama_stream.types.results import ModelInfo, ModelSummary

if TYPE_CHECKING:
    from ollama_stream.config import ClientConfig
    from ollama_stream.transport import HttpTransport

logger = get_logger(__name__)


class ModelDirectory:
    """Model listing and metadata lookups.

    Listing never raises: a missing or malformed payload, or a transport
    failure, yields an empty list. Lookups return None when the model's
    info is unavailable.
    """

    def __init__(self, transport: HttpTransport, config: ClientConfig) -> None:
        self._transport = transport
        self._config = config

    async def _get_json(self, method: str, path: str, **kwargs: Any) -> Any:
        response = await self._transport.request(method, path, **kwargs)
        try:
            return response.json()
        except ValueError:
            return None

    async def list_model_summaries(self) -> list[ModelSummary]:
        """List installed models with their full directory entries."""
        path = self._config.tags_path
        try:
            data = await self._get_json("GET", path)
        except OllamaStreamError as e:
            logger.warning("Failed to list models", error=e.message)
            return []

        models = data.get("models") if isinstance(data, dict) else None
        if not isinstance(models, list):
            logger.warning("Unexpected model listing payload", path=path)
            return []

        summaries: list[ModelSummary] = []
        seen: set[str] = set()
        for entry in models:
            if not isinstance(entry, dict) or not isinstance(entry.get("name"), str):
                logger.warning("Skipping malformed model entry", path=path)
                continue
            if entry["name"] in seen:
                continue
            seen.add(entry["name"])
            summaries.append(ModelSummary.model_validate(entry))
        return summaries

    async def list_models(self) -> list[str]:
        """List installed model names, in the order the server returned them."""
        return [summary.name for summary in await self.list_model_summaries()]

    async def get_model_info(self, name: str) -> ModelInfo | None:
        """Fetch metadata for one model.

        Args:
            name: Model name

        Returns:
            ModelInfo with defaults for missing fields, or None if unavailable

        Raises:
            ValidationError: If name is empty or not a string (no request is made)
        """
        if not isinstance(name, str) or not name.strip():
            raise ValidationError(
                "Model name is required.", field="name", expected="non-empty str"
            )

        try:
            data = await self._get_json("POST", self._config.show_path, json={"model": name})
        except OllamaStreamError as e:
            logger.warning("Failed to retrieve model info", model=name, error=e.message)
            return None

        if not data or not isinstance(data, dict):
            logger.warning("Model info response was empty", model=name)
            return None

        return ModelInfo.from_show_response(name, data)
