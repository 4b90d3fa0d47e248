# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import logging

from contextlib import aclosing
from typing import AsyncIterator, Sequence

from .base_agent import LeafAgent
from .prompts import ROUTING_INSTRUCTION_TEMPLATE
from ..llm.base import Message
from ..llm.providers import BaseProvider
from ..middleware import default_middleware
from ..tools.handoff import HANDOFF_ACTION, handoff_tool
from ..types.agent_types import AgentInterface, Invocation
from ..types.errors import TargetNotFoundError

logger = logging.getLogger(__name__)


def build_routing_instruction(base_instruction: str, agents: Sequence[AgentInterface]) -> str:
    listing = "".join(
        f"Agent Name: {agent.name}\nAgent Description: {agent.description}\n"
        for agent in agents
    )
    return ROUTING_INSTRUCTION_TEMPLATE.format(
        base_instruction=base_instruction.strip(),
        agents=listing,
    ).strip()


class RoutingAgent(AgentInterface):
    """Lets a model pick at most one child per turn.

    An internal leaf agent, whose only tool is ``handoff_to_agent``, either
    answers the prompt itself or hands off. On handoff the internal agent is
    stopped and the chosen child's stream is passed through unchanged.
    """

    def __init__(
        self,
        name: str,
        description: str,
        instruction: str,
        model: BaseProvider,
        agents: Sequence[AgentInterface],
    ):
        if not agents:
            raise ValueError(f"routing agent {name} needs at least one child")
        self._name = name
        self._description = description
        self.agents = tuple(agents)
        self.targets: dict[str, AgentInterface] = {}
        for agent in self.agents:
            if agent.name in self.targets:
                raise ValueError(f"routing agent {name}: duplicate child {agent.name}")
            self.targets[agent.name] = agent

        self.router = LeafAgent(
            name=name,
            description=description,
            instruction=build_routing_instruction(instruction, self.agents),
            model=model,
            tools=[handoff_tool()],
            middleware=default_middleware(),
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def instruction(self) -> str:
        return self.router.instruction

    async def run(self, invocation: Invocation) -> AsyncIterator[Message]:
        target_name = None
        async with aclosing(self.router.run(invocation)) as stream:
            async for message in stream:
                yield message
                target_name = message.actions.get(HANDOFF_ACTION)
                if target_name is not None:
                    break

        if target_name is None:
            return

        target = self.targets.get(target_name)
        if target is None or target_name == self.name:
            logger.warning(
                f"[{invocation.invocation_id}] {self.name}: handoff to unknown agent {target_name}"
            )
            raise TargetNotFoundError(target_name)

        logger.info(f"[{invocation.invocation_id}] {self.name}: handing off to {target_name}")
        async with aclosing(target.run(invocation)) as stream:
            async for message in stream:
                yield message
