# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Anthropic messages API provider implementation."""

import json
import logging

from typing import Any, Optional
from datetime import datetime
from anthropic import AsyncAnthropic

from ..base import Message, ModelRequest, Completion, ToolSpec
from .base_provider import BaseProvider
from ...types.llm_types import (
    TokenUsage,
    StopReason,
    TextContent,
    ToolCallContent,
    ToolResultContent,
)

logger = logging.getLogger(__name__)


class AnthropicProvider(BaseProvider):

    provider_name = "anthropic"

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_tokens: int = 2048,
        temperature: float = 0.7,
        client: AsyncAnthropic | None = None,
    ):
        super().__init__(model, max_tokens=max_tokens, temperature=temperature)
        self.client = client or AsyncAnthropic(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
        )
        self._closed = False

    def map_stop_reason(self, response: Any) -> StopReason:
        match getattr(response, "stop_reason", None):
            case "max_tokens":
                return StopReason.LENGTH
            case "tool_use":
                return StopReason.TOOL_CALL
            case "end_turn" | "stop_sequence" | None:
                return StopReason.COMPLETE
            case other:
                logger.warning(f"Unrecognized anthropic stop reason: {other}")
                return StopReason.COMPLETE

    def _create_token_usage(self, response: Any) -> TokenUsage:
        usage = getattr(response, "usage", None)
        if not usage:
            return TokenUsage()
        cached = getattr(usage, "cache_read_input_tokens", 0) or 0
        input_tokens = (usage.input_tokens or 0) + cached
        output_tokens = usage.output_tokens or 0
        return TokenUsage(
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            total_tokens=input_tokens + output_tokens,
            cached_tokens=cached,
        )

    def tool_to_native(self, tool: ToolSpec) -> dict:
        return {
            "name": tool.name,
            "description": tool.description,
            "input_schema": tool.parameters,
        }

    @staticmethod
    def _tool_input(raw_args: str) -> dict:
        try:
            parsed = json.loads(raw_args or "{}")
        except json.JSONDecodeError:
            return {}
        return parsed if isinstance(parsed, dict) else {}

    def _prepare_messages(self, messages: list[Message]) -> list[dict]:
        """Map our messages onto alternating user / assistant turns.

        Tool results travel as ``tool_result`` blocks in a user turn, and
        consecutive turns with the same role are merged.
        """
        result: list[dict] = []
        for msg in messages:
            role = "assistant" if msg.role.value == "assistant" else "user"
            blocks = []
            for block in msg.content:
                if isinstance(block, TextContent):
                    if block.text:
                        blocks.append({"type": "text", "text": block.text})
                elif isinstance(block, ToolCallContent):
                    blocks.append({
                        "type": "tool_use",
                        "id": block.call_id,
                        "name": block.tool_name,
                        "input": self._tool_input(block.tool_args),
                    })
                elif isinstance(block, ToolResultContent):
                    blocks.append({
                        "type": "tool_result",
                        "tool_use_id": block.call_id,
                        "content": block.content,
                    })
            if not blocks:
                continue
            if result and result[-1]["role"] == role:
                result[-1]["content"].extend(blocks)
            else:
                result.append({"role": role, "content": blocks})
        return result

    async def generate(self, request: ModelRequest) -> Completion:
        start_time = datetime.now()
        max_tokens, temperature = self._resolve_params(request)
        system, messages = self._split_system(request)

        args: dict[str, Any] = {
            "model": self.model,
            "messages": self._prepare_messages(messages),
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        if system:
            args["system"] = system
        if request.tools:
            args["tools"] = [self.tool_to_native(t) for t in request.tools]

        response = await self.client.messages.create(**args)

        usage = self._create_token_usage(response)
        response_content = []
        for block in response.content:
            if block.type == "text":
                response_content.append(TextContent(text=block.text))
            elif block.type == "tool_use":
                response_content.append(ToolCallContent(
                    call_id=block.id,
                    tool_name=block.name,
                    tool_args=json.dumps(block.input or {}),
                ))
            else:
                logger.debug(f"Skipping anthropic content block of type {block.type}")

        return Completion(
            id=response.id,
            content=response_content,
            model=response.model or self.model,
            usage=usage,
            timing=self._get_timing_info(start_time, usage.output_tokens),
            stop_reason=self.map_stop_reason(response),
        )

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.client.close()
