"""
Integration test helpers.

Scripted httpx transports standing in for the model server.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
import pytest
import pytest_asyncio

from ollama_stream import ClientConfig, OllamaClient

TEST_HOST = "http://ollama.test:11434"
TEST_MODEL = "test-model"


def frame(content: str = "", done: bool = False, **extra: Any) -> bytes:
    """Encode one NDJSON chat frame."""
    body: dict[str, Any] = {
        "model": TEST_MODEL,
        "message": {"role": "assistant", "content": content},
        "done": done,
    }
    body.update(extra)
    return (json.dumps(body) + "\n").encode()


def final_frame(done_reason: str = "stop", **extra: Any) -> bytes:
    """Encode the terminal frame of a chat stream."""
    return frame("", done=True, done_reason=done_reason, **extra)


class ChunkStream(httpx.AsyncByteStream):
    """Response body that yields the given chunks, optionally hanging afterwards."""

    def __init__(self, chunks: list[bytes], hang: bool = False) -> None:
        self._chunks = chunks
        self._hang = hang
        self.closed = False

    async def __aiter__(self):
        for chunk in self._chunks:
            yield chunk
            await asyncio.sleep(0)
        if self._hang:
            await asyncio.Event().wait()

    async def aclose(self) -> None:
        self.closed = True


def stream_response(chunks: list[bytes], hang: bool = False) -> httpx.Response:
    """Build a streamed 200 response."""
    return httpx.Response(
        200,
        headers={"Content-Type": "application/x-ndjson"},
        stream=ChunkStream(chunks, hang=hang),
    )


class ScriptedServer:
    """MockTransport handler replaying one scripted reply per request.

    Each reply is an httpx.Response or an exception to raise.
    """

    def __init__(self, *replies: httpx.Response | Exception) -> None:
        self._replies = list(replies)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self._replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def body(self, index: int = -1) -> dict[str, Any]:
        """JSON body of a recorded request."""
        return json.loads(self.requests[index].content)


@pytest.fixture
def config() -> ClientConfig:
    """Fast-retrying config pointed at the test host."""
    return ClientConfig(
        host=TEST_HOST,
        model=TEST_MODEL,
        retry_min_delay_ms=0,
        retry_max_delay_ms=0,
        deadline_s=5,
    )


@pytest_asyncio.fixture
async def make_client(config: ClientConfig):
    """Factory for clients backed by a ScriptedServer."""
    clients: list[OllamaClient] = []

    def _make(server: ScriptedServer, **overrides: Any) -> OllamaClient:
        client_config = config.model_copy(update=overrides) if overrides else config
        client = OllamaClient(client_config, http_transport=server.transport)
        clients.append(client)
        return client

    yield _make

    for client in clients:
        await client.close()


@pytest.fixture
def sink_calls() -> list[str]:
    """List collecting every fragment forwarded to a sink."""
    return []
