# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import os
import json

from abc import ABC, abstractmethod
from typing import Any, TYPE_CHECKING
from pydantic import BaseModel, Field

from ..llm.base import ToolSpec

if TYPE_CHECKING:
    from ..session.session import Session


class ToolResult(BaseModel):
    """Represents the result of a tool execution."""

    tool_name: str
    success: bool
    duration: float = 0.0  # on tool error paths, duration is often 0
    output: str | None = None
    errors: str | None = None
    invocation_id: str = Field(default_factory=lambda: os.urandom(4).hex())

    def to_content(self) -> str:
        """The payload handed back to the model.

        Successful calls pass the tool's own output through untouched; failed
        ones are wrapped so the model can see what went wrong and retry.
        """
        if self.success:
            return self.output or ""
        return json.dumps({"success": False, "error": self.errors or "tool call failed"})


class ToolContext:
    """Request-scoped side channel handed to every tool handler.

    Tools use it to reach the session of the current turn and to emit control
    actions, which the calling agent copies onto the assistant message it
    yields.
    """

    def __init__(self, invocation_id: str, session: "Session | None" = None):
        self.invocation_id = invocation_id
        self.session = session
        self.actions: dict[str, Any] = {}

    def set_action(self, key: str, value: Any) -> None:
        # First write wins, so a second handoff in the same turn is ignored
        self.actions.setdefault(key, value)


class ToolInterface(ABC):
    """Abstract interface for all tools"""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        pass

    @abstractmethod
    def input_schema(self) -> dict[str, Any]:
        """JSON schema of the accepted input."""
        pass

    def output_schema(self) -> dict[str, Any] | None:
        return None

    def to_spec(self) -> ToolSpec:
        """The declaration handed to the model."""
        return ToolSpec(name=self.name, description=self.description, parameters=self.input_schema())

    @abstractmethod
    async def handle(self, ctx: ToolContext, input_json: str) -> str:
        """Run the tool on a raw JSON input.

        Raises:
            InvalidInputError: the input does not match the input schema
            ToolError: the handler itself failed
        """
        pass
