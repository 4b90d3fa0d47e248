# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from typing import Optional, Sequence

from ..base_agent import LeafAgent
from ..names import GENERAL_AGENT
from ..prompts import GENERAL_AGENT_DESCRIPTION, GENERAL_AGENT_INSTRUCTION
from ...llm.providers import BaseProvider
from ...memory.store import MemoryStore
from ...middleware import default_middleware
from ...persistence.context_tools import load_context_tool, save_context_tool
from ...tools.memory_tool import memory_tool
from ...types.tool_types import ToolInterface


class GeneralAgent(LeafAgent):
    """Housekeeping tasks: recalling earlier conversation, saving and restoring it."""

    AGENT_NAME = GENERAL_AGENT
    AGENT_DESCRIPTION = GENERAL_AGENT_DESCRIPTION
    SYSTEM_PROMPT = GENERAL_AGENT_INSTRUCTION

    def __init__(
        self,
        model: BaseProvider,
        memory: Optional[MemoryStore] = None,
        extra_tools: Sequence[ToolInterface] = (),
    ):
        tools: list[ToolInterface] = [memory_tool(memory)] if memory is not None else []
        tools += [save_context_tool(), load_context_tool(), *extra_tools]
        super().__init__(
            name=self.AGENT_NAME,
            description=self.AGENT_DESCRIPTION,
            instruction=self.SYSTEM_PROMPT,
            model=model,
            tools=tools,
            middleware=default_middleware(),
        )
