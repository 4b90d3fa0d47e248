# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Base provider interface for LLM interactions."""

import logging

from abc import ABC, abstractmethod
from typing import Any, Optional
from datetime import datetime

from ..base import Message, ModelRequest, Completion, TimingInfo, ToolSpec
from ...types.llm_types import TokenUsage, StopReason

logger = logging.getLogger(__name__)


class BaseProvider(ABC):
    """Abstract base class for LLM providers.

    A provider is bound to one model identifier and its generation
    parameters; per-request overrides on the ``ModelRequest`` take precedence.
    """

    provider_name: str = "base"

    def __init__(
        self,
        model: str,
        max_tokens: int = 2048,
        temperature: float = 0.7,
    ):
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature

    def map_stop_reason(self, response: Any) -> StopReason:
        """Map provider-specific stop information to standard format."""
        # Default implementation assumes a normal completion
        return StopReason.COMPLETE

    def _get_timing_info(
        self,
        start_time: datetime,
        output_token_count: int,
        end_time: datetime | None = None,
    ) -> TimingInfo:
        if end_time is None:
            end_time = datetime.now()
        total_duration = end_time - start_time
        return TimingInfo(
            start_time=start_time,
            end_time=end_time,
            total_duration=total_duration,
            tokens_per_second=(
                output_token_count / total_duration.total_seconds()
                if total_duration.total_seconds() > 0
                else None
            ),
        )

    def _resolve_params(self, request: ModelRequest) -> tuple[int, float]:
        max_tokens = request.max_tokens or self.max_tokens
        temperature = (
            request.temperature if request.temperature is not None else self.temperature
        )
        return max_tokens, temperature

    @staticmethod
    def _split_system(request: ModelRequest) -> tuple[str, list[Message]]:
        """Fold the instruction and any system messages into one system prompt."""
        system_parts = [request.instruction] if request.instruction else []
        rest = []
        for msg in request.messages:
            if msg.role.value == "system":
                if msg.text:
                    system_parts.append(msg.text)
            else:
                rest.append(msg)
        return "\n\n".join(system_parts), rest

    # Abstract methods --------------------------------------------------------

    @abstractmethod
    def _create_token_usage(self, response: Any) -> TokenUsage:
        pass

    @abstractmethod
    def _prepare_messages(self, messages: list[Message]) -> Any:
        """Maps our framework-specific message list into provider-specific messages

        Note that this might involve agglomerating content blocks, or splitting
        out into multiple messages.
        """
        pass

    @abstractmethod
    def tool_to_native(self, tool: ToolSpec) -> Any:
        """Converts a tool description into this provider's native tool schema."""
        pass

    @abstractmethod
    async def generate(self, request: ModelRequest) -> Completion:
        """Run one non-streaming generation."""
        pass

    async def close(self) -> None:
        """Release the underlying client. Safe to call more than once."""
        return None

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(model={self.model!r})"
