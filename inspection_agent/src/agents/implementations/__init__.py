# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""The built-in agents and the orchestrator tree built from them."""

from .general_agent import GeneralAgent
from .orchestrator import build_analysis_agent, build_leaf_agents, build_orchestrator
from .prediction_agent import PredictionAgent
from .report_agent import ReportAgent
from .service_agent import ServiceAgent, describe_services

__all__ = [
    "GeneralAgent",
    "PredictionAgent",
    "ReportAgent",
    "ServiceAgent",
    "build_analysis_agent",
    "build_leaf_agents",
    "build_orchestrator",
    "describe_services",
]
