# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for the leaf agent's tool-calling loop."""
import json
import pytest

from pydantic import BaseModel

from conftest import FakeLLM
from src.agents.base_agent import LeafAgent
from src.llm.base import user_message
from src.tools.base_tool import FuncTool
from src.types.agent_types import Invocation
from src.types.errors import ModelError, ToolError
from src.types.llm_types import MessageStatus, Role, StopReason
from src.types.tool_types import ToolContext


class EchoRequest(BaseModel):
    text: str


async def _echo(ctx: ToolContext, request: EchoRequest) -> str:
    return request.text.upper()


async def _broken(ctx: ToolContext, request: EchoRequest) -> str:
    raise ToolError("backend unreachable")


def echo_tool(handler=_echo) -> FuncTool:
    return FuncTool("echo", "Echo text in upper case", EchoRequest, handler)


async def collect(stream) -> list:
    return [m async for m in stream]


def make_agent(model, tools=(), **kwargs) -> LeafAgent:
    return LeafAgent(
        name="worker",
        description="test worker",
        instruction="Be brief.",
        model=model,
        tools=list(tools),
        **kwargs,
    )


class TestLeafAgent:

    @pytest.mark.asyncio
    async def test_plain_answer(self):
        model = FakeLLM.provider(FakeLLM.text("hello"))
        prompt = user_message("hi")
        messages = await collect(make_agent(model).run(Invocation(message=prompt)))

        assert len(messages) == 1
        assert messages[0].role == Role.ASSISTANT
        assert messages[0].status == MessageStatus.COMPLETED
        assert messages[0].author == "worker"
        assert messages[0].text == "hello"

        request = model.requests[0]
        assert request.instruction == "Be brief."
        assert [m.id for m in request.messages] == [prompt.id]

    @pytest.mark.asyncio
    async def test_prompt_not_duplicated(self):
        model = FakeLLM.provider(FakeLLM.text("ok"))
        prompt = user_message("hi")
        await collect(make_agent(model).run(Invocation(message=prompt, history=[prompt])))
        assert len(model.requests[0].messages) == 1

    @pytest.mark.asyncio
    async def test_tool_round(self):
        model = FakeLLM.provider(
            FakeLLM.tool_call("echo", {"text": "ping"}, call_id="c1"),
            FakeLLM.text("done"),
        )
        agent = make_agent(model, [echo_tool()])
        messages = await collect(agent.run(Invocation(message=user_message("go"))))

        assert [(m.role, m.status) for m in messages] == [
            (Role.ASSISTANT, MessageStatus.STREAMING),
            (Role.TOOL, MessageStatus.STREAMING),
            (Role.ASSISTANT, MessageStatus.COMPLETED),
        ]
        result = messages[1].tool_results[0]
        assert result.call_id == "c1"
        assert result.content == "PING"

        second = model.requests[1]
        assert [m.role for m in second.messages] == [Role.USER, Role.ASSISTANT, Role.TOOL]
        assert second.tools[0].name == "echo"

    @pytest.mark.asyncio
    async def test_tools_declared_from_specs(self):
        model = FakeLLM.provider(FakeLLM.text("ok"))
        tool = echo_tool()
        await collect(make_agent(model, [tool]).run(Invocation(message=user_message("go"))))
        assert model.requests[0].tools == [tool.to_spec()]
        assert model.requests[0].tools[0].parameters == EchoRequest.model_json_schema()

    @pytest.mark.asyncio
    async def test_failed_tool_call_is_reported_to_model(self):
        model = FakeLLM.provider(
            FakeLLM.tool_call("echo", '{"wrong": 1}'),
            FakeLLM.tool_call("missing_tool", {}),
            FakeLLM.text("gave up"),
        )
        messages = await collect(make_agent(model, [echo_tool()]).run(Invocation(message=user_message("go"))))

        first = json.loads(messages[1].tool_results[0].content)
        assert first["success"] is False
        second = json.loads(messages[3].tool_results[0].content)
        assert "does not correspond to an available tool" in second["error"]
        assert messages[-1].text == "gave up"

    @pytest.mark.asyncio
    async def test_tool_error_aborts(self):
        model = FakeLLM.provider(FakeLLM.tool_call("echo", {"text": "x"}))
        with pytest.raises(ToolError, match="backend unreachable"):
            await collect(make_agent(model, [echo_tool(_broken)]).run(Invocation(message=user_message("go"))))

    @pytest.mark.asyncio
    async def test_model_failure(self):
        model = FakeLLM.provider(RuntimeError("503 from upstream"))
        with pytest.raises(ModelError, match="model generation failed: 503 from upstream"):
            await collect(make_agent(model).run(Invocation(message=user_message("go"))))

    @pytest.mark.asyncio
    async def test_errored_completion_without_content(self):
        model = FakeLLM.provider(FakeLLM.text("", stop_reason=StopReason.ERROR))
        with pytest.raises(ModelError):
            await collect(make_agent(model).run(Invocation(message=user_message("go"))))

    @pytest.mark.asyncio
    async def test_max_iterations(self):
        model = FakeLLM.provider(*[FakeLLM.tool_call("echo", {"text": "x"}) for _ in range(2)])
        agent = make_agent(model, [echo_tool()], max_iterations=2)
        with pytest.raises(ModelError, match=r"max iterations \(2\) exceeded"):
            await collect(agent.run(Invocation(message=user_message("go"))))

    def test_duplicate_tools_rejected(self):
        with pytest.raises(ValueError, match="duplicate tool names"):
            make_agent(FakeLLM.provider(), [echo_tool(), echo_tool()])

    @pytest.mark.asyncio
    async def test_closing_early_stops_the_loop(self):
        model = FakeLLM.provider(
            FakeLLM.tool_call("echo", {"text": "a"}),
            FakeLLM.text("never reached"),
        )
        stream = make_agent(model, [echo_tool()]).run(Invocation(message=user_message("go")))
        first = await stream.__anext__()
        assert first.tool_calls
        await stream.aclose()
        assert len(model.requests) == 1
