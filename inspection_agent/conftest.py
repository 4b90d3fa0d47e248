# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import json
import os
import textwrap

from typing import Any, Callable

import pytest

from src.llm.base import Completion, ModelRequest, ToolSpec
from src.llm.providers import BaseProvider
from src.types.llm_types import StopReason, TextContent, TokenUsage, ToolCallContent


# Optional: Define custom command-line options for your markers
def pytest_addoption(parser):
    parser.addoption(
        "--run-llm",
        action="store_true",
        default=False,
        help="Run tests marked with 'uses_llm'",
    )
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="Run tests marked with 'slow'",
    )

# Skip tests based on markers unless the corresponding option is provided
def pytest_collection_modifyitems(config, items):
    if not config.getoption("--run-llm"):
        skip_llm = pytest.mark.skip(reason="need --run-llm option to run")
        for item in items:
            if "uses_llm" in item.keywords:
                item.add_marker(skip_llm)
    if not config.getoption("--run-slow"):
        skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
        for item in items:
            if "slow" in item.keywords:
                item.add_marker(skip_slow)


Step = Completion | Exception | Callable[[ModelRequest], Completion]


class ScriptedProvider(BaseProvider):
    """A provider that replays a fixed script instead of calling an API.

    Each step is a completion to return, an exception to raise, or a
    callable computing the completion from the request. Every request is
    recorded for later inspection.
    """

    provider_name = "scripted"

    def __init__(self, steps: list[Step], model: str = "scripted-model"):
        super().__init__(model)
        self.steps = list(steps)
        self.requests: list[ModelRequest] = []
        self.closed = 0

    def _create_token_usage(self, response: Any) -> TokenUsage:
        return TokenUsage()

    def _prepare_messages(self, messages):
        return messages

    def tool_to_native(self, tool: ToolSpec):
        return tool.model_dump()

    async def generate(self, request: ModelRequest) -> Completion:
        self.requests.append(request)
        if not self.steps:
            raise AssertionError(f"{self.model}: script exhausted after {len(self.requests)} call(s)")
        step = self.steps.pop(0)
        if isinstance(step, Exception):
            raise step
        if callable(step):
            return step(request)
        return step

    async def close(self) -> None:
        self.closed += 1


class FakeLLM:
    """Builders for scripted completions and providers."""

    @staticmethod
    def text(text: str, input_tokens: int = 0, stop_reason: StopReason = StopReason.COMPLETE) -> Completion:
        return Completion(
            id=os.urandom(4).hex(),
            content=[TextContent(text=text)] if text else [],
            model="scripted-model",
            usage=TokenUsage(
                input_tokens=input_tokens,
                output_tokens=len(text.split()),
                total_tokens=input_tokens + len(text.split()),
            ),
            stop_reason=stop_reason,
        )

    @staticmethod
    def tool_call(tool_name: str, args: dict | str, call_id: str | None = None, text: str = "") -> Completion:
        content: list = [TextContent(text=text)] if text else []
        content.append(
            ToolCallContent(
                call_id=call_id or f"call_{os.urandom(3).hex()}",
                tool_name=tool_name,
                tool_args=args if isinstance(args, str) else json.dumps(args),
            )
        )
        return Completion(
            id=os.urandom(4).hex(),
            content=content,
            model="scripted-model",
            usage=TokenUsage(),
            stop_reason=StopReason.TOOL_CALL,
        )

    @staticmethod
    def handoff(agent_name: str) -> Completion:
        return FakeLLM.tool_call("handoff_to_agent", {"agentName": agent_name})

    @staticmethod
    def provider(*steps: Step, model: str = "scripted-model") -> ScriptedProvider:
        return ScriptedProvider(list(steps), model=model)


@pytest.fixture
def fake_llm() -> type[FakeLLM]:
    return FakeLLM


@pytest.fixture
def write_config(tmp_path):
    """Write a TOML document (dedented) to a temporary config.toml."""

    def _write(content: str) -> str:
        path = tmp_path / "config.toml"
        path.write_text(textwrap.dedent(content), encoding="utf-8")
        return str(path)

    return _write
