# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""The reserved tool a routing agent uses to transfer control to a child."""

from pydantic import BaseModel, Field

from .base_tool import FuncTool
from ..types.errors import InvalidInputError
from ..types.tool_types import ToolContext

HANDOFF_TOOL_NAME = "handoff_to_agent"
HANDOFF_ACTION = "handoff_to_agent"

HANDOFF_DESCRIPTION = (
    "Transfer the question to another agent.\n"
    "Use this tool to hand off control to a more suitable agent based on the "
    "agents' descriptions."
)


class HandoffRequest(BaseModel):
    agentName: str = Field(
        ..., description="The name of the target agent to hand off the request to."
    )

    class Config:
        extra = "forbid"


async def _handoff(ctx: ToolContext, request: HandoffRequest) -> str:
    name = request.agentName.strip()
    if not name:
        raise InvalidInputError("agentName must be a non-empty string")
    ctx.set_action(HANDOFF_ACTION, name)
    return ""


def handoff_tool() -> FuncTool:
    return FuncTool(
        name=HANDOFF_TOOL_NAME,
        description=HANDOFF_DESCRIPTION,
        request_model=HandoffRequest,
        handler=_handoff,
    )
