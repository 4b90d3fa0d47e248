# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Google genai SDK provider implementation."""

import json
import logging

from uuid import uuid4
from typing import Any, Optional
from datetime import datetime
from google import genai
from google.genai import types

from ..base import Message, ModelRequest, Completion, ToolSpec
from .base_provider import BaseProvider
from ...types.llm_types import (
    TokenUsage,
    StopReason,
    TextContent,
    ToolCallContent,
    ToolResultContent,
    ContentTypes,
)

logger = logging.getLogger(__name__)
logger.setLevel(logging.WARNING)


class GeminiProvider(BaseProvider):

    provider_name = "gemini"

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_tokens: int = 2048,
        temperature: float = 0.7,
        client: genai.Client | None = None,
    ):
        super().__init__(model, max_tokens=max_tokens, temperature=temperature)
        if client is None:
            http_options = types.HttpOptions(
                base_url=base_url or None,
                # the SDK expects milliseconds
                timeout=int(timeout * 1000) if timeout else None,
            )
            client = genai.Client(api_key=api_key, http_options=http_options)
        self._client = client
        self._closed = False

    def map_stop_reason(self, response: types.GenerateContentResponse) -> StopReason:
        candidates = response.candidates or []
        if len(candidates) < 1 or not candidates[-1].finish_reason:
            return StopReason.COMPLETE

        finish_reason = candidates[-1].finish_reason

        match finish_reason:
            case types.FinishReason.STOP:
                return StopReason.COMPLETE
            case types.FinishReason.MAX_TOKENS:
                return StopReason.LENGTH
            case (
                types.FinishReason.SAFETY
                | types.FinishReason.BLOCKLIST
                | types.FinishReason.PROHIBITED_CONTENT
                | types.FinishReason.SPII
                | types.FinishReason.MALFORMED_FUNCTION_CALL
            ):
                logger.warning(f"Gemini stop reason: {finish_reason}")
                return StopReason.ERROR
            case _:
                logger.warning(f"Unrecognized gemini stop reason: {finish_reason}")
                return StopReason.COMPLETE

    def _content_mapping(self, block: ContentTypes) -> types.Part:
        """Maps our message content types, into gemini-specific message formats"""
        if isinstance(block, TextContent):
            return types.Part.from_text(text=block.text)
        elif isinstance(block, ToolCallContent):
            try:
                args = json.loads(block.tool_args or "{}")
            except json.JSONDecodeError:
                args = {}
            return types.Part(
                function_call=types.FunctionCall(
                    id=block.call_id,
                    name=block.tool_name,
                    args=args if isinstance(args, dict) else {},
                )
            )
        elif isinstance(block, ToolResultContent):
            return types.Part(
                function_response=types.FunctionResponse(
                    id=block.call_id,
                    name=block.tool_name,
                    response=dict(output=block.content),
                )
            )
        raise ValueError(f"Unhandled content type in provider Gemini: {block}")

    def _role_mapping(self, role: str) -> str:
        match role:
            case "assistant":
                return "model"
            case "user" | "tool":
                return "user"
            case _:
                logger.warning(f"Unexpected role: {role}")
                return "user"  # return user as a general fallback

    def _create_token_usage(self, response: types.GenerateContentResponse) -> TokenUsage:
        usage_meta = response.usage_metadata
        if not usage_meta:
            return TokenUsage()

        input_tokens = usage_meta.prompt_token_count or 0
        output_tokens = usage_meta.candidates_token_count or 0
        return TokenUsage(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=usage_meta.total_token_count or (input_tokens + output_tokens),
            cached_tokens=usage_meta.cached_content_token_count or 0,
        )

    def _prepare_messages(self, messages: list[Message]) -> list[types.Content]:
        contents = []
        for msg in messages:
            parts = [self._content_mapping(block) for block in msg.content]
            if not parts:
                continue
            contents.append(types.Content(
                role=self._role_mapping(msg.role.value),
                parts=parts,
            ))
        return contents

    def openapi_schema_to_genai(self, schema: dict) -> dict:
        """Convert a pydantic JSON schema to the Gemini API schema dialect.

        References are inlined, ``Optional[X]`` becomes a nullable ``X`` and
        defaults are folded into descriptions.
        """
        defs = schema.get("$defs", {})

        def format_default_value(value: Any) -> str:
            if isinstance(value, str):
                return f"'{value}'"
            elif isinstance(value, (list, dict)):
                return repr(value)
            elif value is None:
                return "None"
            return str(value)

        def process_schema_node(node: dict) -> dict:
            if not isinstance(node, dict):
                return node

            if "$ref" in node:
                ref_name = node["$ref"].split("/")[-1]
                if ref_name not in defs:
                    raise ValueError(f"Schema reference {ref_name} not found")
                resolved = process_schema_node(defs[ref_name])
                if node.get("description"):
                    resolved["description"] = node["description"]
                return resolved

            if "anyOf" in node or "oneOf" in node:
                union_key = "anyOf" if "anyOf" in node else "oneOf"
                variants = [s for s in node[union_key] if s.get("type") != "null"]
                if len(variants) != 1:
                    raise ValueError("Complex union types are not supported in Gemini API")
                merged = dict(variants[0])
                for key in ("description", "default"):
                    if key in node:
                        merged[key] = node[key]
                result = process_schema_node(merged)
                result["nullable"] = True
                return result

            result: dict[str, Any] = {}
            if "type" in node:
                result["type"] = node["type"].upper()

            if result.get("type") == "OBJECT" and not node.get("properties"):
                if not node.get("additionalProperties"):
                    # Parameter-less object needs dummy property
                    return {
                        "type": "OBJECT",
                        "properties": {
                            "_dummy": {
                                "type": "STRING",
                                "description": "This object takes no properties.",
                            }
                        },
                    }

            if result.get("type") == "ARRAY":
                if "items" not in node:
                    raise ValueError("Array type must have items defined")
                result["items"] = process_schema_node(node["items"])

            if node.get("properties"):
                result["properties"] = {
                    name: process_schema_node(prop)
                    for name, prop in node["properties"].items()
                }
                if "required" in node:
                    result["required"] = node["required"]
                if len(node["properties"]) > 1:
                    result["property_ordering"] = list(node["properties"].keys())

            if "enum" in node:
                result["enum"] = [str(v) for v in node["enum"]]

            description = node.get("description", "")
            if "default" in node:
                default_str = format_default_value(node["default"])
                description = (
                    f"{description} (default: {default_str})"
                    if description
                    else f"(default: {default_str})"
                )
            if description:
                result["description"] = description

            return result

        return process_schema_node(schema)

    def tool_to_native(self, tool: ToolSpec) -> types.FunctionDeclaration:
        return types.FunctionDeclaration(
            name=tool.name,
            description=tool.description,
            parameters=self.openapi_schema_to_genai(tool.parameters),
        )

    async def generate(self, request: ModelRequest) -> Completion:
        start_time = datetime.now()
        max_tokens, temperature = self._resolve_params(request)
        system, messages = self._split_system(request)

        tools = None
        if request.tools:
            tools = [types.Tool(
                function_declarations=[self.tool_to_native(t) for t in request.tools]
            )]

        response = await self._client.aio.models.generate_content(
            model=self.model,
            contents=self._prepare_messages(messages),
            config=types.GenerateContentConfig(
                system_instruction=system or None,
                temperature=temperature,
                max_output_tokens=max_tokens,
                tools=tools,
            ),
        )

        usage = self._create_token_usage(response)
        logger.debug(usage)

        response_content: list[ContentTypes] = []
        if response.candidates and response.candidates[0].content is not None:
            for part in response.candidates[0].content.parts or []:
                if part.function_call is not None:
                    fc = part.function_call
                    fc_args = dict(fc.args or {})
                    fc_args.pop("_dummy", None)
                    response_content.append(ToolCallContent(
                        call_id=fc.id or f"gemini_tool_call_{uuid4().hex[-8:]}",
                        tool_name=fc.name or "unknown_tool",
                        tool_args=json.dumps(fc_args),
                    ))
                elif part.text:
                    response_content.append(TextContent(text=part.text))
                else:
                    logger.warning(f"Unhandled gemini response content block type: {part}")

        return Completion(
            id=response.response_id or uuid4().hex[-8:],
            content=response_content,
            model=self.model,
            usage=usage,
            timing=self._get_timing_info(start_time, usage.output_tokens),
            stop_reason=self.map_stop_reason(response),
        )

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self._client.aio.aclose()
