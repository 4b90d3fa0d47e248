# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for sequential composition."""
import pytest

from conftest import FakeLLM
from src.agents.base_agent import LeafAgent
from src.agents.sequential import SequentialAgent
from src.llm.base import user_message
from src.types.agent_types import Invocation
from src.types.errors import ModelError


async def collect(stream) -> list:
    return [m async for m in stream]


def child(name: str, *steps) -> LeafAgent:
    return LeafAgent(name, name, f"You are {name}.", FakeLLM.provider(*steps))


class TestSequentialAgent:

    def test_requires_children(self):
        with pytest.raises(ValueError):
            SequentialAgent("seq", "empty", [])

    @pytest.mark.asyncio
    async def test_runs_children_in_order(self):
        first = child("first", FakeLLM.text("one"))
        second = child("second", FakeLLM.text("two"))
        seq = SequentialAgent("seq", "pipeline", [first, second])

        prompt = user_message("go")
        messages = await collect(seq.run(Invocation(message=prompt)))

        assert [(m.author, m.text) for m in messages] == [("first", "one"), ("second", "two")]
        # both children receive the same prompt
        assert second.model.requests[0].messages[-1].id == prompt.id

    @pytest.mark.asyncio
    async def test_first_failure_stops_sequence(self):
        first = child("first", RuntimeError("boom"))
        second = child("second", FakeLLM.text("two"))
        seq = SequentialAgent("seq", "pipeline", [first, second])

        with pytest.raises(ModelError, match="agent first"):
            await collect(seq.run(Invocation(message=user_message("go"))))
        assert second.model.requests == []
