# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Rolling conversation summaries produced by a model."""

import logging

from abc import ABC, abstractmethod

from ..llm.base import Message, ModelRequest, user_message
from ..llm.providers import BaseProvider
from ..types.errors import ModelError
from ..types.llm_types import Role, TokenUsage

logger = logging.getLogger(__name__)


class SummarizerInterface(ABC):
    @abstractmethod
    async def summarize(
        self, previous_summary: str, messages: list[Message]
    ) -> tuple[str, TokenUsage]:
        """Return a summary that replaces ``previous_summary``.

        ``messages`` is the slice of history being folded in; it never
        contains the previous summary itself.
        """
        pass


def build_summary_instruction(max_output_tokens: int, max_summary_chars: int) -> str:
    lines = [
        "You compress conversation context. Turn a piece of conversation history into a "
        "summary that completely replaces it, so that the conversation can continue from it.",
        "",
        "Requirements:",
        "- Output only the summary body, with no preamble or closing remarks.",
        "- The summary must be usable as-is as system context for the rest of the conversation.",
        "- You receive previous_summary (possibly empty) and delta_transcript (newly added "
        "history). The new summary must merge both, and delta_transcript may correct or "
        "update wrong or stale information in previous_summary.",
        "- Drop repetition, small talk and irrelevant content; keep actionable information.",
        "- Output structure (keep this order):",
        "  1) Key facts",
        "  2) Confirmed conclusions",
        "  3) User preferences and constraints",
        "  4) Open questions",
        "  5) Next steps",
    ]
    if max_summary_chars > 0:
        lines.append(f"- Length limit: at most {max_summary_chars} characters (shorter is better).")
    if max_output_tokens > 0:
        lines.append(f"- Output token target: at most {max_output_tokens} (shorter is better).")
    return "\n".join(lines) + "\n"


def render_transcript(messages: list[Message], include_tool_details: bool = False) -> str:
    out = []
    for m in messages:
        text = m.text.strip()
        if m.role == Role.USER:
            out.append(f"User: {text}\n")
        elif m.role == Role.ASSISTANT:
            out.append(f"Assistant: {text}\n")
        elif m.role == Role.SYSTEM:
            if text:
                out.append(f"System: {text}\n")
        elif m.role == Role.TOOL and include_tool_details:
            if text:
                out.append(f"Tool: {text}\n")
                continue
            for result in m.tool_results:
                line = f"Tool: {result.tool_name or 'tool_call'}"
                if result.content.strip():
                    line += f" => {result.content.strip()}"
                out.append(line + "\n")
    return "".join(out)


def build_summary_input(
    previous_summary: str, messages: list[Message], include_tool_details: bool = False
) -> str:
    parts = ["previous_summary:\n"]
    if not previous_summary.strip():
        parts.append("(empty)\n")
    else:
        parts.append(previous_summary)
        if not previous_summary.endswith("\n"):
            parts.append("\n")
    parts.append("\n")
    parts.append("delta_transcript:\n")
    parts.append(render_transcript(messages, include_tool_details))
    return "".join(parts)


class Summarizer(SummarizerInterface):
    """Summarises with one model call per round."""

    def __init__(
        self,
        model: BaseProvider,
        max_output_tokens: int = 0,
        max_summary_chars: int = 0,
        include_tool_details: bool = False,
    ):
        if model is None:
            raise ValueError("summary model is required")
        self.model = model
        self.max_output_tokens = max_output_tokens
        self.max_summary_chars = max_summary_chars
        self.include_tool_details = include_tool_details

    async def summarize(
        self, previous_summary: str, messages: list[Message]
    ) -> tuple[str, TokenUsage]:
        request = ModelRequest(
            instruction=build_summary_instruction(self.max_output_tokens, self.max_summary_chars),
            messages=[
                user_message(
                    build_summary_input(previous_summary, messages, self.include_tool_details)
                )
            ],
            max_tokens=self.max_output_tokens or None,
        )

        logger.info(
            f"Summarization start: previous_len={len(previous_summary)} delta_count={len(messages)}"
        )
        try:
            completion = await self.model.generate(request)
        except ModelError:
            raise
        except Exception as e:
            logger.error(f"Summarization failed: {e}")
            raise ModelError(f"summary generation failed: {e}") from e

        text = "".join(getattr(c, "text", "") for c in completion.content).strip()
        if not text:
            logger.error("Summarization failed: empty response")
            raise ModelError("summary model returned empty response")

        logger.info(
            f"Summarization complete: input_tokens={completion.usage.input_tokens} "
            f"output_tokens={completion.usage.output_tokens}"
        )
        return text, completion.usage
