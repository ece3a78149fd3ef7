"""
Chat message types.

A conversation is an ordered list of messages, oldest first.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from ollama_stream.errors import ValidationError


class MessageRole(str, Enum):
    """Message role enumeration."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """One chat message. Immutable once built.

    Examples:
        >>> msg = Message.user("Why is the sky blue?")
        >>> msg = Message.system("Answer in one sentence.")
    """

    model_config = ConfigDict(frozen=True, use_enum_values=True)

    role: MessageRole = Field(description="Message role")
    content: str = Field(description="Message text")

    @classmethod
    def system(cls, text: str) -> Message:
        """Create a system message."""
        return cls(role=MessageRole.SYSTEM, content=text)

    @classmethod
    def user(cls, text: str) -> Message:
        """Create a user message."""
        return cls(role=MessageRole.USER, content=text)

    @classmethod
    def assistant(cls, text: str) -> Message:
        """Create an assistant message."""
        return cls(role=MessageRole.ASSISTANT, content=text)

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the request body shape."""
        return {"role": self.role, "content": self.content}


ChatMessage = Message


def coerce_messages(messages: Any) -> list[Message]:
    """Validate a conversation and normalize it to a list of Message.

    Accepts a list or tuple whose items are Message instances or mappings
    with ``role`` and ``content``.

    Args:
        messages: Conversation history, oldest first

    Returns:
        List of Message, order preserved

    Raises:
        ValidationError: If the input is not a sequence of valid messages
    """
    if isinstance(messages, (str, bytes)) or not isinstance(messages, Sequence):
        raise ValidationError(
            "Messages must be a list of chat messages.",
            field="messages",
            expected="list",
            actual=type(messages).__name__,
        )

    result: list[Message] = []
    for index, item in enumerate(messages):
        if isinstance(item, Message):
            result.append(item)
            continue
        if not isinstance(item, Mapping):
            raise ValidationError(
                "Each message must be a Message or a mapping with role and content.",
                field=f"messages[{index}]",
                actual=type(item).__name__,
            )
        try:
            result.append(Message.model_validate(dict(item)))
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid chat message: {e.errors()[0]['msg']}",
                field=f"messages[{index}]",
            ) from e

    return result
