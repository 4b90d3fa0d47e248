# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import logging

from contextlib import aclosing
from typing import AsyncIterator, Sequence

from ..llm.base import Message
from ..types.agent_types import AgentInterface, Invocation

logger = logging.getLogger(__name__)


class SequentialAgent(AgentInterface):
    """Runs its children one after another on the same prompt.

    Outputs are not piped from one child to the next. Children share the
    session instead, so a later child sees what earlier ones said once those
    messages have been appended to it. The first failure ends the sequence.
    """

    def __init__(self, name: str, description: str, agents: Sequence[AgentInterface]):
        if not agents:
            raise ValueError(f"sequential agent {name} needs at least one child")
        self._name = name
        self._description = description
        self.agents = tuple(agents)

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    async def run(self, invocation: Invocation) -> AsyncIterator[Message]:
        for index, agent in enumerate(self.agents):
            logger.info(
                f"[{invocation.invocation_id}] {self.name}: step {index + 1}/{len(self.agents)} "
                f"-> {agent.name}"
            )
            async with aclosing(agent.run(invocation)) as stream:
                async for message in stream:
                    yield message
