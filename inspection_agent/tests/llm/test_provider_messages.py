# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for the message and tool mappings of each provider."""
import pytest

from pydantic import BaseModel, Field

from src.llm.base import Message, ModelRequest, ToolSpec, system_message, user_message
from src.llm.providers import AnthropicProvider, GeminiProvider, OpenAIProvider
from src.types.llm_types import Role, TextContent, ToolCallContent, ToolResultContent


def tool_round() -> list[Message]:
    return [
        user_message("what is firing?"),
        Message(
            role=Role.ASSISTANT,
            content=[
                TextContent(text="Checking."),
                ToolCallContent(call_id="c1", tool_name="prometheus_service", tool_args='{"operation": "query_instant"}'),
            ],
        ),
        Message(
            role=Role.TOOL,
            content=[ToolResultContent(call_id="c1", tool_name="prometheus_service", content='{"success": true}')],
        ),
    ]


class TestOpenAIMessages:

    @pytest.fixture
    def provider(self):
        return OpenAIProvider(model="gpt-test", api_key="test-key")

    def test_tool_round(self, provider):
        out = provider._prepare_messages(tool_round())
        assert out[0] == {"role": "user", "content": "what is firing?"}
        assert out[1]["role"] == "assistant"
        assert out[1]["content"] == "Checking."
        assert out[1]["tool_calls"][0]["id"] == "c1"
        assert out[1]["tool_calls"][0]["function"]["name"] == "prometheus_service"
        assert out[2] == {"role": "tool", "tool_call_id": "c1", "content": '{"success": true}'}

    def test_tool_spec(self, provider):
        native = provider.tool_to_native(ToolSpec(name="t", description="d", parameters={"type": "object"}))
        assert native["type"] == "function"
        assert native["function"]["parameters"] == {"type": "object"}


class TestAnthropicMessages:

    @pytest.fixture
    def provider(self):
        return AnthropicProvider(model="claude-test", api_key="test-key")

    def test_tool_round(self, provider):
        out = provider._prepare_messages(tool_round())
        assert [m["role"] for m in out] == ["user", "assistant", "user"]
        tool_use = out[1]["content"][1]
        assert tool_use == {
            "type": "tool_use",
            "id": "c1",
            "name": "prometheus_service",
            "input": {"operation": "query_instant"},
        }
        assert out[2]["content"][0]["type"] == "tool_result"
        assert out[2]["content"][0]["tool_use_id"] == "c1"

    def test_consecutive_roles_are_merged(self, provider):
        out = provider._prepare_messages([user_message("a"), user_message("b")])
        assert len(out) == 1
        assert [b["text"] for b in out[0]["content"]] == ["a", "b"]

    def test_malformed_tool_args_become_empty_input(self, provider):
        msg = Message(
            role=Role.ASSISTANT,
            content=[ToolCallContent(call_id="c", tool_name="t", tool_args="{oops")],
        )
        assert provider._prepare_messages([msg])[0]["content"][0]["input"] == {}

    def test_system_messages_fold_into_instruction(self, provider):
        request = ModelRequest(
            instruction="base",
            messages=[system_message("summary so far"), user_message("hi")],
        )
        system, rest = provider._split_system(request)
        assert system == "base\n\nsummary so far"
        assert [m.role for m in rest] == [Role.USER]


class Nested(BaseModel):
    name: str


class Params(BaseModel):
    query: str = Field(..., description="PromQL")
    step: str = Field(default="1m", description="Resolution")
    nested: Nested | None = None
    tags: list[str] = Field(default_factory=list)


class Empty(BaseModel):
    pass


class TestGeminiSchema:

    @pytest.fixture
    def provider(self):
        return GeminiProvider(model="gemini-test", api_key="test-key")

    def test_schema_conversion(self, provider):
        schema = provider.openapi_schema_to_genai(Params.model_json_schema())
        assert schema["type"] == "OBJECT"
        props = schema["properties"]
        assert props["query"] == {"type": "STRING", "description": "PromQL"}
        assert props["step"]["description"] == "Resolution (default: '1m')"
        assert props["nested"]["nullable"] is True
        assert props["nested"]["properties"]["name"]["type"] == "STRING"
        assert props["tags"]["items"] == {"type": "STRING"}
        assert schema["required"] == ["query"]

    def test_empty_object_gets_placeholder(self, provider):
        schema = provider.openapi_schema_to_genai(Empty.model_json_schema())
        assert "_dummy" in schema["properties"]

    def test_roles(self, provider):
        contents = provider._prepare_messages(tool_round())
        assert [c.role for c in contents] == ["user", "model", "user"]
        assert contents[1].parts[1].function_call.name == "prometheus_service"
        assert contents[2].parts[0].function_response.response == {"output": '{"success": true}'}
