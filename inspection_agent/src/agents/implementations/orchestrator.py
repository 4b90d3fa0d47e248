# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Assembly of the agent tree served by the application.

The orchestrator routes each turn to one of: the analysis pipeline (service,
then prediction, then report, skipping disabled ones) or any single enabled
leaf agent directly.
"""

import logging

from typing import Iterable, Optional, Sequence

from .general_agent import GeneralAgent
from .prediction_agent import PredictionAgent
from .report_agent import ReportAgent
from .service_agent import ServiceAgent
from ..names import (
    ANALYSIS_AGENT,
    GENERAL_AGENT,
    ORCHESTRATOR,
    PREDICTION_AGENT,
    REPORT_AGENT,
    SERVICE_AGENT,
)
from ..prompts import (
    ANALYSIS_AGENT_DESCRIPTION,
    ORCHESTRATOR_DESCRIPTION,
    ORCHESTRATOR_INSTRUCTION,
)
from ..routing import RoutingAgent
from ..sequential import SequentialAgent
from ...llm.registry import ModelRegistry
from ...memory.store import MemoryStore
from ...services.base import ServiceInterface
from ...types.agent_types import AgentInterface

logger = logging.getLogger(__name__)

ANALYSIS_ORDER = [SERVICE_AGENT, PREDICTION_AGENT, REPORT_AGENT]
LEAF_ORDER = [SERVICE_AGENT, PREDICTION_AGENT, REPORT_AGENT, GENERAL_AGENT]


def build_leaf_agents(
    models: ModelRegistry,
    enabled_agents: Iterable[str],
    services: Sequence[ServiceInterface],
    memory: Optional[MemoryStore] = None,
) -> dict[str, AgentInterface]:
    enabled = set(enabled_agents)
    agents: dict[str, AgentInterface] = {}
    for name in LEAF_ORDER:
        if name not in enabled:
            continue
        model = models.get(name)
        if name == SERVICE_AGENT:
            agents[name] = ServiceAgent(model, services)
        elif name == PREDICTION_AGENT:
            agents[name] = PredictionAgent(model)
        elif name == REPORT_AGENT:
            agents[name] = ReportAgent(model)
        else:
            agents[name] = GeneralAgent(model, memory)
        logger.info(f"Created agent {name}")
    return agents


def build_analysis_agent(agents: dict[str, AgentInterface]) -> SequentialAgent | None:
    steps = [agents[name] for name in ANALYSIS_ORDER if name in agents]
    if not steps:
        return None
    return SequentialAgent(ANALYSIS_AGENT, ANALYSIS_AGENT_DESCRIPTION, steps)


def build_orchestrator(
    models: ModelRegistry,
    enabled_agents: Iterable[str],
    services: Sequence[ServiceInterface],
    memory: Optional[MemoryStore] = None,
) -> RoutingAgent:
    leaves = build_leaf_agents(models, enabled_agents, services, memory)
    analysis = build_analysis_agent(leaves)

    children: list[AgentInterface] = ([analysis] if analysis else []) + list(leaves.values())
    logger.info(
        f"Orchestrator created with {len(children)} sub-agents: {[a.name for a in children]}"
    )
    return RoutingAgent(
        name=ORCHESTRATOR,
        description=ORCHESTRATOR_DESCRIPTION,
        instruction=ORCHESTRATOR_INSTRUCTION,
        model=models.get(ORCHESTRATOR),
        agents=children,
    )
