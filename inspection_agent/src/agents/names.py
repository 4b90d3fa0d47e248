# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Well-known agent names, which double as keys of the ``[agents]`` table."""

ORCHESTRATOR = "orchestrator"
SERVICE_AGENT = "service_agent"
PREDICTION_AGENT = "prediction_agent"
REPORT_AGENT = "report_agent"
ANALYSIS_AGENT = "analysis_agent"
GENERAL_AGENT = "general_agent"

# At least one of these must be enabled for the orchestrator to be useful
REQUIRED_SUB_AGENTS = [SERVICE_AGENT, PREDICTION_AGENT, REPORT_AGENT]
