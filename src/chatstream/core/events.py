"""Canonical chat event schema shared by all provider normalizers."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Mapping, Type, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ChatEventType(str, Enum):
    """Event kinds a normalizer may emit."""

    ASSISTANT_CHUNK = "assistant_chunk"
    ASSISTANT_DONE = "assistant_done"
    THINKING_CHUNK = "thinking_chunk"
    THINKING_DONE = "thinking_done"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"


class TextPayload(BaseModel):
    """Payload for assistant and thinking chunk/done events."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    text: str = Field(..., description="Incremental delta for chunks, full text for done events.")


class ToolCallPayload(BaseModel):
    """Payload announcing a tool invocation."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    tool_call_id: str = Field(..., alias="toolCallId", description="Canonical tool call identifier.")
    tool_name: str = Field(..., alias="toolName", description="Provider tool name.")
    args: Dict[str, Any] = Field(default_factory=dict, description="Tool arguments as a JSON object.")


class ToolResultPayload(BaseModel):
    """Payload carrying the output of a previously announced tool call."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    tool_call_id: str = Field(..., alias="toolCallId", description="Canonical tool call identifier.")
    result: Any = Field(..., description="Provider result payload, passed through untouched.")


ChatEventPayload = Union[TextPayload, ToolCallPayload, ToolResultPayload]

PAYLOAD_MODELS: Mapping[ChatEventType, Type[BaseModel]] = {
    ChatEventType.ASSISTANT_CHUNK: TextPayload,
    ChatEventType.ASSISTANT_DONE: TextPayload,
    ChatEventType.THINKING_CHUNK: TextPayload,
    ChatEventType.THINKING_DONE: TextPayload,
    ChatEventType.TOOL_CALL: ToolCallPayload,
    ChatEventType.TOOL_RESULT: ToolResultPayload,
}


class ChatEvent(BaseModel):
    """A single provider-agnostic chat event."""

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    id: str = Field(..., description="Globally unique event identifier.")
    timestamp: int = Field(..., ge=0, description="Millisecond clock value at emission time.")
    session_id: str = Field(..., alias="sessionId")
    turn_id: str = Field(..., alias="turnId")
    response_id: str = Field(..., alias="responseId")
    type: ChatEventType
    payload: ChatEventPayload

    @model_validator(mode="after")
    def check_payload_matches_type(self) -> "ChatEvent":
        expected = PAYLOAD_MODELS[self.type]
        if not isinstance(self.payload, expected):
            msg = f"{self.type.value} events require a {expected.__name__}"
            raise ValueError(msg)
        return self

    def to_wire(self) -> Dict[str, Any]:
        """Return the camelCase JSON shape consumed by renderers and storage."""

        return self.model_dump(mode="json", by_alias=True)


def validate_chat_event(data: Mapping[str, Any]) -> ChatEvent:
    """Parse a wire-format mapping into a :class:`ChatEvent`.

    Raises :class:`pydantic.ValidationError` when the mapping is not a valid
    canonical event.
    """

    return ChatEvent.model_validate(data)


__all__ = [
    "ChatEvent",
    "ChatEventPayload",
    "ChatEventType",
    "PAYLOAD_MODELS",
    "TextPayload",
    "ToolCallPayload",
    "ToolResultPayload",
    "validate_chat_event",
]
