# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from ..base_agent import LeafAgent
from ..names import REPORT_AGENT
from ..prompts import REPORT_AGENT_DESCRIPTION, REPORT_AGENT_INSTRUCTION
from ...llm.providers import BaseProvider
from ...middleware import default_middleware


class ReportAgent(LeafAgent):
    AGENT_NAME = REPORT_AGENT
    AGENT_DESCRIPTION = REPORT_AGENT_DESCRIPTION
    SYSTEM_PROMPT = REPORT_AGENT_INSTRUCTION

    def __init__(self, model: BaseProvider):
        super().__init__(
            name=self.AGENT_NAME,
            description=self.AGENT_DESCRIPTION,
            instruction=self.SYSTEM_PROMPT,
            model=model,
            middleware=default_middleware(),
        )
