# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import logging

from typing import Sequence

from ..base_agent import LeafAgent
from ..names import SERVICE_AGENT
from ..prompts import SERVICE_AGENT_DESCRIPTION, SERVICE_AGENT_INSTRUCTION
from ...llm.providers import BaseProvider
from ...middleware import default_middleware
from ...services.base import ServiceInterface

logger = logging.getLogger(__name__)


def describe_services(services: Sequence[ServiceInterface]) -> str:
    return "\n".join(
        f"{i}. **{s.name}** ({s.type.value}) - {s.description}"
        for i, s in enumerate(services, start=1)
    )


class ServiceAgent(LeafAgent):
    """Talks to the external systems, one tool per configured service."""

    AGENT_NAME = SERVICE_AGENT
    AGENT_DESCRIPTION = SERVICE_AGENT_DESCRIPTION
    SYSTEM_PROMPT = SERVICE_AGENT_INSTRUCTION

    def __init__(self, model: BaseProvider, services: Sequence[ServiceInterface]):
        self.services = tuple(services)
        tools = [s.as_tool() for s in self.services]
        super().__init__(
            name=self.AGENT_NAME,
            description=self.AGENT_DESCRIPTION,
            instruction=self.SYSTEM_PROMPT.format(services=describe_services(self.services)),
            model=model,
            tools=tools,
            middleware=default_middleware(),
        )
        logger.info(f"Service agent created with tools {[t.name for t in tools]}")
