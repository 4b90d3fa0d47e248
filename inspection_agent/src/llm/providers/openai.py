# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""OpenAI chat-completions provider implementation."""

import logging

from typing import Any, Optional
from datetime import datetime
from openai import AsyncOpenAI

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


class OpenAIProvider(BaseProvider):
    """Provider implementation for OpenAI and OpenAI-compatible endpoints."""

    provider_name = "openai"

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_tokens: int = 2048,
        temperature: float = 0.7,
        client: AsyncOpenAI | None = None,
    ):
        super().__init__(model, max_tokens=max_tokens, temperature=temperature)
        self.client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
        )
        self._closed = False

    def map_stop_reason(self, response: Any) -> StopReason:
        finish_reason = None
        if getattr(response, "choices", None):
            finish_reason = response.choices[0].finish_reason

        if finish_reason == "length":
            return StopReason.LENGTH
        elif finish_reason == "tool_calls":
            return StopReason.TOOL_CALL
        elif finish_reason == "content_filter":
            return StopReason.ERROR
        else:  # 'stop' or others
            return StopReason.COMPLETE

    def _create_token_usage(self, response: Any) -> TokenUsage:
        usage = getattr(response, "usage", None)
        if not usage:
            logger.warning("Missing usage information from OpenAI API response. Setting to 0")
            return TokenUsage()

        details = getattr(usage, "prompt_tokens_details", None)
        cached = getattr(details, "cached_tokens", 0) if details else 0
        return TokenUsage(
            input_tokens=usage.prompt_tokens or 0,
            output_tokens=usage.completion_tokens or 0,
            total_tokens=usage.total_tokens or 0,
            cached_tokens=cached or 0,
        )

    def tool_to_native(self, tool: ToolSpec) -> dict:
        return {
            "type": "function",
            "function": {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.parameters,
            },
        }

    def _prepare_messages(self, messages: list[Message]) -> list[dict]:
        oai_messages = []
        for msg in messages:
            if msg.role.value == "assistant":
                msg_content = ""
                tool_calls = []
                for block in msg.content:
                    if isinstance(block, TextContent):
                        msg_content += block.text
                    elif isinstance(block, ToolCallContent):
                        tool_calls.append({
                            "id": block.call_id,
                            "type": "function",
                            "function": {
                                "name": block.tool_name,
                                "arguments": block.tool_args,
                            },
                        })
                entry: dict[str, Any] = {"role": "assistant", "content": msg_content or None}
                if tool_calls:
                    entry["tool_calls"] = tool_calls
                oai_messages.append(entry)
            else:
                msg_content = ""
                for block in msg.content:
                    if isinstance(block, TextContent):
                        msg_content += block.text
                    elif isinstance(block, ToolResultContent):
                        # Append what we have so far
                        if msg_content != "":
                            oai_messages.append({"role": msg.role.value, "content": msg_content})
                            msg_content = ""
                        oai_messages.append({
                            "role": "tool",
                            "tool_call_id": block.call_id,
                            "content": block.content,
                        })
                if msg_content != "":
                    oai_messages.append({"role": msg.role.value, "content": msg_content})

        return oai_messages

    async def generate(self, request: ModelRequest) -> Completion:
        start_time = datetime.now()
        max_tokens, temperature = self._resolve_params(request)

        api_messages = []
        if request.instruction:
            api_messages.append({"role": "system", "content": request.instruction})
        api_messages.extend(self._prepare_messages(request.messages))

        args: dict[str, Any] = {
            "messages": api_messages,
            "model": self.model,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if request.tools:
            args["tools"] = [self.tool_to_native(t) for t in request.tools]

        response = await self.client.chat.completions.create(**args)

        token_usage = self._create_token_usage(response)
        timing_info = self._get_timing_info(start_time, token_usage.output_tokens)
        stop_reason = self.map_stop_reason(response)

        message = response.choices[0].message

        response_content = []
        if message.content:
            response_content.append(TextContent(text=message.content))
        if message.tool_calls:
            for tc in message.tool_calls:
                response_content.append(ToolCallContent(
                    call_id=tc.id,
                    tool_name=tc.function.name,
                    tool_args=tc.function.arguments or "{}",
                ))

        return Completion(
            id=response.id,
            content=response_content,
            model=response.model or self.model,
            usage=token_usage,
            timing=timing_info,
            stop_reason=stop_reason,
            raw_response={
                "finish_reason": response.choices[0].finish_reason,
                "created": response.created,
            },
        )

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.client.close()
