#!/usr/bin/env python3
"""
Streaming chat example.

Prints the answer as it is generated, then lists installed models and asks
for a structured answer.

Usage:
    ollama serve &
    export OLLAMA_MODEL="llama3.1:8b-instruct-q4_1"
    python examples/streaming_chat.py
"""

import asyncio

from ollama_stream import (
    ChatFailedError,
    ClientConfig,
    DeadlineExceededError,
    Message,
    OllamaClient,
    stdout_sink,
)
from ollama_stream.telemetry import StreamLogger


async def main() -> None:
    """Run the streaming chat example."""
    StreamLogger.configure(level="warning")
    config = ClientConfig.from_env(deadline_s=60)

    async with OllamaClient(config, sink=stdout_sink) as client:
        print(f"Installed models: {', '.join(await client.list_models()) or '(none)'}")

        info = await client.get_model_info(config.model)
        if info:
            print(f"{info.name}: {info.parameter_size} ({info.format})")
        print()

        messages = [
            Message.system("Answer in two sentences."),
            Message.user("Why is the sky blue?"),
        ]
        try:
            result = await client.chat_stream(messages, temperature=0.3)
        except DeadlineExceededError as e:
            print(f"\nGave up: {e.message}")
            return
        except ChatFailedError as e:
            print(f"\nFailed: {e.message}")
            return

        print()
        print(f"[attempts={result.attempts} succeeded={result.succeeded}]")
        print()

        colors = await client.chat_json(
            [Message.user("Return a JSON object listing three primary colors.")]
        )
        print(f"Structured answer: {colors}")


if __name__ == "__main__":
    asyncio.run(main())
