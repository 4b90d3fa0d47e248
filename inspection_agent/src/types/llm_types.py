# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Content, usage and stop-reason types shared by every model provider."""

from enum import Enum
from typing import Union
from pydantic import BaseModel, Field


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


class MessageStatus(str, Enum):
    PENDING = "pending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"


class StopReason(str, Enum):
    """Normalised reason a provider stopped generating."""

    COMPLETE = "complete"
    LENGTH = "length"
    TOOL_CALL = "tool_call"
    ERROR = "error"


class TokenUsage(BaseModel):
    """Token accounting for one model call, or a sum of several."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0
    cached_tokens: int = 0

    def __add__(self, other: "TokenUsage") -> "TokenUsage":
        return TokenUsage(
            input_tokens=self.input_tokens + other.input_tokens,
            output_tokens=self.output_tokens + other.output_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
            cached_tokens=self.cached_tokens + other.cached_tokens,
        )

    def __str__(self) -> str:
        return (
            f"input={self.input_tokens} (cached={self.cached_tokens}) "
            f"output={self.output_tokens} total={self.total_tokens}"
        )


class TextContent(BaseModel):
    text: str

    def __str__(self) -> str:
        return self.text


class ToolCallContent(BaseModel):
    """A tool invocation requested by the model.

    The arguments are kept as the raw JSON text the model produced, so that a
    malformed payload reaches the tool (and is reported back) unchanged.
    """

    call_id: str
    tool_name: str
    tool_args: str = Field(default="{}", description="JSON-encoded request payload")

    def __str__(self) -> str:
        return f"Tool call {self.tool_name} (id: {self.call_id}): {self.tool_args}"


class ToolResultContent(BaseModel):
    call_id: str
    tool_name: str
    content: str = Field(default="", description="Response payload, usually JSON text")

    def __str__(self) -> str:
        return f"Tool result {self.tool_name} (id: {self.call_id}): {self.content}"


ContentTypes = Union[TextContent, ToolCallContent, ToolResultContent]
