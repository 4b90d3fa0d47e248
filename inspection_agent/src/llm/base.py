# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Base models and shared functionality for LLM interactions."""

import os

from typing import Any, Optional
from datetime import datetime, timedelta
from pydantic import BaseModel, Field

from ..types.llm_types import (
    Role,
    MessageStatus,
    TokenUsage,
    StopReason,
    TextContent,
    ToolCallContent,
    ToolResultContent,
    ContentTypes,
)


class Message(BaseModel):
    """A message in a conversation with an LLM."""

    id: str = Field(default_factory=lambda: os.urandom(8).hex())
    role: Role
    content: list[ContentTypes] = Field(default_factory=list)
    author: Optional[str] = None
    status: MessageStatus = MessageStatus.COMPLETED
    usage: TokenUsage = Field(default_factory=TokenUsage)
    actions: dict[str, Any] = Field(default_factory=dict)

    @property
    def text(self) -> str:
        """Concatenation of every text part, in order."""
        return "".join(c.text for c in self.content if isinstance(c, TextContent))

    @property
    def tool_calls(self) -> list[ToolCallContent]:
        return [c for c in self.content if isinstance(c, ToolCallContent)]

    @property
    def tool_results(self) -> list[ToolResultContent]:
        return [c for c in self.content if isinstance(c, ToolResultContent)]

    def __str__(self) -> str:
        header = f"Message from role={self.role.value}"
        if self.author:
            header += f" author={self.author}"
        parts = [header]
        for c in self.content:
            if isinstance(c, TextContent):
                parts.append(f"Text {'-'*10}\n{c.text}")
            elif isinstance(c, ToolCallContent):
                parts.append(f"{'-'*10}\n{c}\n{'-'*10}")
            elif isinstance(c, ToolResultContent):
                parts.append(f"{'-'*10}\n{c}\n{'-'*10}")
        return "\n".join(parts)


def user_message(text: str) -> Message:
    return Message(role=Role.USER, content=[TextContent(text=text)])


def assistant_message(
    text: str,
    author: Optional[str] = None,
    status: MessageStatus = MessageStatus.COMPLETED,
    usage: Optional[TokenUsage] = None,
) -> Message:
    return Message(
        role=Role.ASSISTANT,
        content=[TextContent(text=text)],
        author=author,
        status=status,
        usage=usage or TokenUsage(),
    )


def system_message(text: str) -> Message:
    return Message(role=Role.SYSTEM, content=[TextContent(text=text)])


class TimingInfo(BaseModel):
    """Timing information for LLM interactions."""

    start_time: datetime = Field(description="When the request started")
    end_time: datetime = Field(description="When the response completed")
    total_duration: timedelta = Field(description="Total duration of the request")
    tokens_per_second: Optional[float] = Field(
        None, description="Average tokens per second for completion"
    )

    def __str__(self) -> str:
        fmt = "%Y-%m-%d %H:%M:%S"
        parts = [
            f"- Start {self.start_time.strftime(fmt)}, End {self.end_time.strftime(fmt)}",
            f"- Duration: {self.total_duration}",
        ]
        if self.tokens_per_second is not None:
            parts.append(f"- TPS: {self.tokens_per_second:.2f}")
        return "\n".join(parts)


class ToolSpec(BaseModel):
    """Provider-neutral description of a tool offered to the model."""

    name: str
    description: str
    parameters: dict[str, Any] = Field(default_factory=dict)


class ModelRequest(BaseModel):
    """Everything a provider needs for one generation call."""

    instruction: str = ""
    messages: list[Message] = Field(default_factory=list)
    tools: list[ToolSpec] = Field(default_factory=list)
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None


# Completion Types ============================================================

class Completion(BaseModel):
    """A completion response from an LLM."""

    id: str
    content: list[ContentTypes]
    model: str
    usage: TokenUsage
    timing: Optional[TimingInfo] = None
    stop_reason: StopReason = StopReason.COMPLETE
    raw_response: Optional[dict] = Field(default=None, exclude=True)

    @property
    def errored(self) -> bool:
        return self.stop_reason == StopReason.ERROR

    @property
    def tool_calls(self) -> list[ToolCallContent]:
        return [c for c in self.content if isinstance(c, ToolCallContent)]

    def to_message(self, author: Optional[str] = None) -> Message:
        """Wrap the completion as an assistant message, still streaming."""
        return Message(
            role=Role.ASSISTANT,
            content=list(self.content),
            author=author,
            status=MessageStatus.STREAMING,
            usage=self.usage,
        )

    def __str__(self) -> str:
        comp_str = f"{'='*80}\n"
        for block in self.content:
            comp_str += str(block) + "\n"
        comp_str += f"\n{'-'*80}\n"
        comp_str += f"Model: {self.model}\n"
        comp_str += f"Tokens used: {self.usage}\n"
        if self.stop_reason != StopReason.COMPLETE:
            comp_str += f"Stop reason: {self.stop_reason}\n"
        if self.timing is not None:
            comp_str += f"Timing:\n{self.timing}\n"
        comp_str += f"{'='*80}"
        return comp_str
