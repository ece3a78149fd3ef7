"""
Core OllamaClient implementation.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import TYPE_CHECKING, Any

from ollama_stream.client.directory import ModelDirectory
from ollama_stream.config import ClientConfig
from ollama_stream.errors import (
    DecodeError,
    OllamaStreamError,
    StreamCancelledError,
    ValidationError,
)
from ollama_stream.pipeline import NdjsonDecoder, StreamAccumulator
from ollama_stream.resilience import (
    CancellableStream,
    CancelReason,
    CancelToken,
    DeadlinePolicy,
    RetryConfig,
    RetryPolicy,
)
from ollama_stream.structured.json_mode import (
    REQUEST_FAILED,
    build_json_request,
    error_payload,
    parse_structured_content,
)
from ollama_stream.telemetry import (
    LogContext,
    clear_log_context,
    get_log_context,
    get_logger,
    set_log_context,
)
from ollama_stream.transport import HttpTransport
from ollama_stream.types.message import Message, coerce_messages
from ollama_stream.types.results import ChatResult

if TYPE_CHECKING:
    import httpx

    from ollama_stream.pipeline.accumulate import Sink
    from ollama_stream.types.results import ModelInfo, ModelSummary

logger = get_logger(__name__)

# Keys that belong under "options" in the request body; anything else passes
# through at the top level (keep_alive, format, ...).
GENERATION_OPTION_KEYS = frozenset(
    {
        "temperature",
        "top_p",
        "top_k",
        "num_predict",
        "num_ctx",
        "seed",
        "stop",
        "repeat_penalty",
    }
)


class OllamaClient:
    """Client for a local Ollama server.

    Example:
        >>> async with OllamaClient(ClientConfig(model="llama3.1")) as client:
        ...     result = await client.chat_stream(
        ...         [Message.user("Why is the sky blue?")], sink=stdout_sink
        ...     )
        ...     print(result.full_text)

        >>> # Structured output
        >>> data = await client.chat_json([Message.user("List three colors as JSON")])

        >>> # Model directory
        >>> names = await client.list_models()
        >>> info = await client.get_model_info("llama3.1")
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        *,
        sink: Sink | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Client configuration; defaults to ClientConfig()
            sink: Default live-output sink for streamed fragments
            http_transport: Optional httpx transport (e.g. httpx.MockTransport)
        """
        self._config = config or ClientConfig()
        self._sink = sink
        self._transport = HttpTransport(self._config, http_transport=http_transport)
        self._directory = ModelDirectory(self._transport, self._config)
        self._retry = RetryPolicy(RetryConfig.from_client_config(self._config))
        self._deadline = DeadlinePolicy(self._config.deadline_s)

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def directory(self) -> ModelDirectory:
        return self._directory

    def _split_options(
        self, options: dict[str, Any]
    ) -> tuple[dict[str, Any], dict[str, Any]]:
        """Split call options into generation options and top-level fields.

        Generation options are layered over the configured defaults; an
        explicit ``options`` dict is merged in as generation options.
        """
        generation = dict(self._config.options)
        top_level: dict[str, Any] = {}
        for key, value in options.items():
            if key == "options" and isinstance(value, dict):
                generation.update(value)
            elif key in GENERATION_OPTION_KEYS:
                generation[key] = value
            else:
                top_level[key] = value
        return generation, top_level

    def _build_payload(
        self,
        messages: list[Message],
        *,
        stream: bool,
        options: dict[str, Any],
    ) -> dict[str, Any]:
        """Build a chat request body, merging passthrough options.

        Generation options are sent under ``options``; other keys are merged
        at the top level.
        """
        generation, top_level = self._split_options(options)

        payload: dict[str, Any] = {
            "model": self._config.model,
            "messages": [m.to_wire() for m in messages],
            "stream": stream,
        }
        if generation:
            payload["options"] = generation
        payload.update(top_level)
        return payload

    async def _stream_attempt(
        self,
        payload: dict[str, Any],
        sink: Sink | None,
        token: CancelToken,
        attempt: int,
    ) -> ChatResult:
        """Run one transport attempt from an empty accumulator.

        Raises:
            TransportError / RemoteError: Transport-level failure
            StreamError: Server error frame inside the stream
            DecodeError: Nothing in the body could be decoded
        """
        token.raise_if_cancelled()
        context = get_log_context()
        context.attempt = attempt
        set_log_context(context)
        logger.info("Starting chat stream attempt", attempt=attempt)

        accumulator = StreamAccumulator(sink=sink)
        decoder = NdjsonDecoder()

        async with self._transport.stream_post(self._config.chat_path, json=payload) as response:
            byte_stream = CancellableStream(response.aiter_bytes(), token)
            result = await accumulator.consume(decoder.decode(byte_stream))

        if decoder.undecodable and self._config.escalate_undecodable_stream:
            raise DecodeError(
                f"No decodable fragment in stream ({decoder.frames_failed} failed)",
                frames_failed=decoder.frames_failed,
            )

        logger.info(
            "Streaming complete",
            attempt=attempt,
            succeeded=result.succeeded,
            chars=len(result.full_text) if result.succeeded else 0,
        )
        return result.with_attempts(attempt)

    async def chat_stream(
        self,
        messages: list[Message] | list[dict[str, Any]],
        *,
        sink: Sink | None = None,
        cancel_token: CancelToken | None = None,
        **options: Any,
    ) -> ChatResult:
        """Stream a chat response under the retry and deadline policies.

        Each attempt starts accumulation from scratch; the deadline covers
        the whole call.

        Args:
            messages: Conversation history, oldest first
            sink: Live-output sink for this call (defaults to the client's)
            cancel_token: Optional token to cancel the call from elsewhere
            **options: Generation options and request passthroughs

        Returns:
            ChatResult; succeeded=False with the sentinel text if the model
            returned nothing

        Raises:
            ValidationError: Bad messages (before any request is sent)
            ChatFailedError: Every attempt failed, or a non-retryable failure
            DeadlineExceededError: The deadline passed
            StreamCancelledError: The caller cancelled through cancel_token
        """
        history = coerce_messages(messages)
        payload = self._build_payload(history, stream=True, options=options)
        live_sink = sink if sink is not None else self._sink

        async def logical_call(token: CancelToken) -> ChatResult:
            result = await self._retry.execute(
                lambda attempt: self._stream_attempt(payload, live_sink, token, attempt)
            )
            return result.unwrap()

        set_log_context(LogContext(request_id=str(uuid.uuid4()), model=self._config.model))
        try:
            return await self._deadline.execute(logical_call, cancel_token)
        finally:
            clear_log_context()

    async def stream_once(
        self,
        messages: list[Message] | list[dict[str, Any]],
        *,
        sink: Sink | None = None,
        cancel_token: CancelToken | None = None,
        **options: Any,
    ) -> ChatResult:
        """Stream a chat response with a single attempt and no deadline.

        Raises:
            ValidationError: Bad messages
            TransportError / RemoteError / StreamError / DecodeError: The attempt failed
            StreamCancelledError: The caller cancelled through cancel_token
        """
        history = coerce_messages(messages)
        payload = self._build_payload(history, stream=True, options=options)
        live_sink = sink if sink is not None else self._sink
        token = cancel_token or CancelToken()

        set_log_context(LogContext(request_id=str(uuid.uuid4()), model=self._config.model))
        try:
            return await self._stream_attempt(payload, live_sink, token, 1)
        except asyncio.CancelledError:
            # Task cancellation from outside the token propagates unchanged
            if not token.is_cancelled:
                raise
            reason = token.reason or CancelReason.USER_REQUEST
            logger.info("Chat stream cancelled", reason=reason.value)
            raise StreamCancelledError(reason.value) from None
        finally:
            clear_log_context()

    async def generate(
        self,
        prompt: str,
        *,
        sink: Sink | None = None,
        **options: Any,
    ) -> ChatResult:
        """Complete a single prompt, streamed.

        Raises:
            ValidationError: If prompt is not a string
        """
        if not isinstance(prompt, str):
            raise ValidationError(
                "Text prompt must be a string.",
                field="prompt",
                expected="str",
                actual=type(prompt).__name__,
            )
        return await self.chat_stream([Message.user(prompt)], sink=sink, **options)

    async def chat(
        self,
        messages: list[Message] | list[dict[str, Any]],
        **options: Any,
    ) -> ChatResult:
        """Buffered (non-streaming) chat call.

        Raises:
            ValidationError: Bad messages
            TransportError / RemoteError: The request failed
        """
        history = coerce_messages(messages)
        payload = self._build_payload(history, stream=False, options=options)

        response = await self._transport.post(self._config.chat_path, json=payload)
        try:
            data = response.json()
        except ValueError:
            data = None

        message = data.get("message") if isinstance(data, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        return ChatResult.from_text(
            content if isinstance(content, str) else "",
            done_reason=data.get("done_reason") if isinstance(data, dict) else None,
        )

    async def _json_call(
        self,
        messages: list[Message] | list[dict[str, Any]],
        max_tokens: int | None,
        options: dict[str, Any],
    ) -> tuple[dict[str, Any] | None, Any]:
        history = coerce_messages(messages)
        generation, top_level = self._split_options(options)
        payload = build_json_request(
            self._config.model,
            [m.to_wire() for m in history],
            max_tokens=max_tokens or self._config.json_max_tokens,
            options=generation,
            extra=top_level,
        )

        try:
            response = await self._transport.post(self._config.chat_path, json=payload)
            data = response.json()
        except (OllamaStreamError, ValueError) as e:
            detail = e.message if isinstance(e, OllamaStreamError) else str(e)
            logger.warning("Structured chat request failed", error=detail)
            return None, error_payload(REQUEST_FAILED, detail)

        if not isinstance(data, dict) or not isinstance(data.get("message"), dict):
            logger.warning("Structured chat response had no message")
            return None, error_payload(REQUEST_FAILED, "empty response")

        return data, parse_structured_content(data["message"].get("content"))

    async def chat_json(
        self,
        messages: list[Message] | list[dict[str, Any]],
        *,
        max_tokens: int | None = None,
        **options: Any,
    ) -> Any:
        """Chat in structured-JSON mode.

        Never raises for transport or parse failures; those come back as
        ``{"error": ...}`` payloads.

        Args:
            messages: Conversation history
            max_tokens: Output cap (defaults to config.json_max_tokens)
            **options: Extra generation options

        Returns:
            Parsed structured data or an error payload

        Raises:
            ValidationError: Bad messages
        """
        _, content = await self._json_call(messages, max_tokens, options)
        return content

    async def chat_json_response(
        self,
        messages: list[Message] | list[dict[str, Any]],
        *,
        max_tokens: int | None = None,
        **options: Any,
    ) -> dict[str, Any]:
        """Like chat_json, but return the whole response envelope with
        ``message.content`` replaced by the parsed value."""
        data, content = await self._json_call(messages, max_tokens, options)
        if data is None:
            return content
        return {**data, "message": {**data["message"], "content": content}}

    async def list_models(self) -> list[str]:
        """List installed model names; empty on any failure."""
        return await self._directory.list_models()

    async def list_model_summaries(self) -> list[ModelSummary]:
        """List installed models with full entries; empty on any failure."""
        return await self._directory.list_model_summaries()

    async def get_model_info(self, name: str) -> ModelInfo | None:
        """Fetch metadata for one model; None if unavailable."""
        return await self._directory.get_model_info(name)

    async def close(self) -> None:
        """Close the client and release resources."""
        await self._transport.close()

    async def __aenter__(self) -> OllamaClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
