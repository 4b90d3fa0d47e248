# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import json
import time
import logging

from typing import Any, Awaitable, Callable, Generic, Type, TypeVar
from pydantic import BaseModel, ValidationError

from ..types.errors import InvalidInputError, ToolError
from ..types.llm_types import ToolCallContent
from ..types.tool_types import ToolContext, ToolInterface, ToolResult

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

Req = TypeVar("Req", bound=BaseModel)
Resp = TypeVar("Resp", bound=BaseModel)

Handler = Callable[[ToolContext, Req], Awaitable[Resp | str]]


class BaseTool(ToolInterface):
    """Abstract base class for all tools with a fixed name and description."""

    def __init__(self, name: str, description: str):
        self._name = name
        self._description = description

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class FuncTool(BaseTool, Generic[Req, Resp]):
    """A tool made of a pydantic request model and an async handler.

    The request model is the input schema. Input that fails to parse or
    validate raises ``InvalidInputError``; anything else the handler raises
    is wrapped in ``ToolError`` unless it already is one.
    """

    def __init__(
        self,
        name: str,
        description: str,
        request_model: Type[Req],
        handler: Handler,
        response_model: Type[Resp] | None = None,
    ):
        super().__init__(name, description)
        self.request_model = request_model
        self.response_model = response_model
        self._handler = handler

    def input_schema(self) -> dict[str, Any]:
        return self.request_model.model_json_schema()

    def output_schema(self) -> dict[str, Any] | None:
        if self.response_model is None:
            return None
        return self.response_model.model_json_schema()

    def parse_input(self, input_json: str) -> Req:
        try:
            return self.request_model.model_validate_json(input_json or "{}")
        except ValidationError as e:
            raise InvalidInputError(f"invalid input for tool {self.name}: {e}") from e

    async def handle(self, ctx: ToolContext, input_json: str) -> str:
        request = self.parse_input(input_json)
        try:
            response = await self._handler(ctx, request)
        except (InvalidInputError, ToolError):
            raise
        except Exception as e:
            raise ToolError(f"tool {self.name} failed: {e}") from e

        if isinstance(response, BaseModel):
            return response.model_dump_json(exclude_none=True)
        return response


async def handle_tool_call(
    tool_content: ToolCallContent,
    tools: dict[str, ToolInterface],
    ctx: ToolContext,
) -> ToolResult:
    """Run one tool call requested by the model.

    Unknown tools and invalid input come back as failed results so the model
    can correct itself. ``ToolError`` propagates and aborts the turn.
    """
    start = time.perf_counter()
    tool = tools.get(tool_content.tool_name)
    if tool is None:
        logger.warning(f"Model called unknown tool {tool_content.tool_name}")
        return ToolResult(
            tool_name=tool_content.tool_name,
            success=False,
            errors=f"{tool_content.tool_name} does not correspond to an available tool",
            invocation_id=ctx.invocation_id,
        )

    try:
        json.loads(tool_content.tool_args or "{}")
        output = await tool.handle(ctx, tool_content.tool_args)
    except json.JSONDecodeError as e:
        logger.info(f"Tool {tool.name} called with malformed JSON: {e}")
        return ToolResult(
            tool_name=tool.name,
            success=False,
            errors=f"Could not parse tool arguments as JSON: {e}",
            duration=time.perf_counter() - start,
            invocation_id=ctx.invocation_id,
        )
    except InvalidInputError as e:
        logger.info(f"Tool parse error: {e}")
        return ToolResult(
            tool_name=tool.name,
            success=False,
            errors=str(e),
            duration=time.perf_counter() - start,
            invocation_id=ctx.invocation_id,
        )

    return ToolResult(
        tool_name=tool.name,
        success=True,
        output=output,
        duration=time.perf_counter() - start,
        invocation_id=ctx.invocation_id,
    )
