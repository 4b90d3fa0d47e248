# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for conversation compression in the managed session."""
import asyncio
import pytest

from src.config.models import ConversationConfig
from src.llm.base import assistant_message, user_message
from src.session.managed_session import (
    ManagedSession,
    STATE_KEY_CONVERSATION_SUMMARY,
    STATE_KEY_LAST_PROMPT_TOKENS,
    STATE_KEY_SUMMARY_UPDATED_AT,
)
from src.summary.summarizer import SummarizerInterface
from src.types.errors import ModelError
from src.types.llm_types import MessageStatus, Role, TokenUsage


class RecordingSummarizer(SummarizerInterface):
    def __init__(self, result: str = "the summary", error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls: list[tuple[str, list]] = []

    async def summarize(self, previous_summary, messages):
        self.calls.append((previous_summary, list(messages)))
        if self.error is not None:
            raise self.error
        return self.result, TokenUsage()


def conversation(**overrides) -> ConversationConfig:
    values = dict(
        context_window_tokens=1000,
        compression_threshold=0.8,
        max_in_context_messages=6,
        retain_recent_messages=2,
        summary_max_output_tokens=100,
        summary_model_agent="orchestrator",
    )
    values.update(overrides)
    return ConversationConfig(**values)


def reply(text: str, input_tokens: int = 10, status=MessageStatus.COMPLETED):
    return assistant_message(
        text, author="orchestrator", status=status, usage=TokenUsage(input_tokens=input_tokens, total_tokens=input_tokens + 5)
    )


class TestManagedSession:

    def test_requires_summarizer(self):
        with pytest.raises(ValueError):
            ManagedSession(conversation(), None)

    @pytest.mark.asyncio
    async def test_below_thresholds_no_summary(self):
        summarizer = RecordingSummarizer()
        session = ManagedSession(conversation(), summarizer)
        await session.append(user_message("hi"))
        await session.append(reply("hello"))

        assert summarizer.calls == []
        assert session.summary() == ""
        assert [m.role for m in session.history()] == [Role.USER, Role.ASSISTANT]
        assert session.state()[STATE_KEY_LAST_PROMPT_TOKENS] == 10

    @pytest.mark.asyncio
    async def test_trigger_by_tokens(self):
        summarizer = RecordingSummarizer()
        session = ManagedSession(conversation(), summarizer)
        msgs = [user_message("q1"), reply("a1"), user_message("q2")]
        for m in msgs:
            await session.append(m)
        last = reply("a2", input_tokens=800)
        await session.append(last)

        assert len(summarizer.calls) == 1
        previous, delta = summarizer.calls[0]
        assert previous == ""
        assert [m.id for m in delta] == [m.id for m in msgs[:2]]

        assert [m.id for m in session.real_history()] == [msgs[2].id, last.id]
        history = session.history()
        assert history[0].role == Role.SYSTEM
        assert history[0].text == "the summary"
        assert len(history) == 3
        assert STATE_KEY_SUMMARY_UPDATED_AT in session.state()

    @pytest.mark.asyncio
    async def test_trigger_by_count(self):
        summarizer = RecordingSummarizer()
        session = ManagedSession(conversation(), summarizer)
        for i in range(3):
            await session.append(user_message(f"q{i}"))
            await session.append(reply(f"a{i}"))
        assert summarizer.calls == []

        await session.append(user_message("q3"))
        await session.append(reply("a3"))

        assert len(summarizer.calls) == 1
        assert len(summarizer.calls[0][1]) == 6
        assert len(session) == 2

    @pytest.mark.asyncio
    async def test_streaming_messages_do_not_trigger(self):
        summarizer = RecordingSummarizer()
        session = ManagedSession(conversation(), summarizer)
        await session.append(user_message("q"))
        await session.append(reply("partial", input_tokens=999, status=MessageStatus.STREAMING))
        assert summarizer.calls == []

    @pytest.mark.asyncio
    async def test_previous_summary_is_passed_on(self):
        summarizer = RecordingSummarizer()
        session = ManagedSession(conversation(), summarizer)
        session.set_state(STATE_KEY_CONVERSATION_SUMMARY, "older facts")
        for m in [user_message("q1"), reply("a1"), user_message("q2"), reply("a2", input_tokens=900)]:
            await session.append(m)

        assert summarizer.calls[0][0] == "older facts"
        # the injected summary never reaches the summariser
        assert all(m.role != Role.SYSTEM for m in summarizer.calls[0][1])

    @pytest.mark.asyncio
    async def test_too_short_history_is_left_alone(self):
        summarizer = RecordingSummarizer()
        session = ManagedSession(conversation(retain_recent_messages=5), summarizer)
        await session.append(user_message("q"))
        await session.append(reply("a", input_tokens=900))
        assert summarizer.calls == []
        assert len(session) == 2

    @pytest.mark.asyncio
    async def test_failure_leaves_session_unchanged(self):
        summarizer = RecordingSummarizer(error=ModelError("summary model returned empty response"))
        session = ManagedSession(conversation(), summarizer)
        for m in [user_message("q1"), reply("a1"), user_message("q2")]:
            await session.append(m)

        with pytest.raises(ModelError):
            await session.append(reply("a2", input_tokens=900))

        assert len(session) == 4
        assert session.summary() == ""
        assert STATE_KEY_CONVERSATION_SUMMARY not in session.state()

    @pytest.mark.asyncio
    async def test_messages_appended_during_summary_are_kept(self):
        gate = asyncio.Event()

        class SlowSummarizer(RecordingSummarizer):
            async def summarize(self, previous_summary, messages):
                await gate.wait()
                return await super().summarize(previous_summary, messages)

        session = ManagedSession(conversation(), SlowSummarizer())
        for m in [user_message("q1"), reply("a1"), user_message("q2")]:
            await session.append(m)

        task = asyncio.create_task(session.append(reply("a2", input_tokens=900)))
        await asyncio.sleep(0)
        late = user_message("q3")
        await session.append(late)
        gate.set()
        await task

        assert session.real_history()[-1].id == late.id
        assert len(session) == 3
