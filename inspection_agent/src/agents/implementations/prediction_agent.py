# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from ..base_agent import LeafAgent
from ..names import PREDICTION_AGENT
from ..prompts import PREDICTION_AGENT_DESCRIPTION, PREDICTION_AGENT_INSTRUCTION
from ...llm.providers import BaseProvider
from ...middleware import default_middleware


class PredictionAgent(LeafAgent):
    """Forecasts trends and risks from the data already in the conversation."""

    AGENT_NAME = PREDICTION_AGENT
    AGENT_DESCRIPTION = PREDICTION_AGENT_DESCRIPTION
    SYSTEM_PROMPT = PREDICTION_AGENT_INSTRUCTION

    def __init__(self, model: BaseProvider):
        super().__init__(
            name=self.AGENT_NAME,
            description=self.AGENT_DESCRIPTION,
            instruction=self.SYSTEM_PROMPT,
            model=model,
            middleware=default_middleware(),
        )
