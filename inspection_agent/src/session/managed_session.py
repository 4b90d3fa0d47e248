# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""A session that compresses older history into a rolling summary.

History only ever stores real turns. The summary lives in session state and
is injected as a system message at the head of ``history()``. Compression is
evaluated after each completed assistant message and fires when either the
last prompt came close to the context window or the history grew too long.
"""

import logging

from datetime import datetime, timezone
from typing import Any

from .session import Session
from ..config.models import ConversationConfig
from ..llm.base import Message, system_message
from ..summary.summarizer import SummarizerInterface
from ..types.llm_types import MessageStatus, Role

logger = logging.getLogger(__name__)

STATE_KEY_CONVERSATION_SUMMARY = "conversation_summary"
STATE_KEY_SUMMARY_UPDATED_AT = "conversation_summary_updated_at"
STATE_KEY_LAST_PROMPT_TOKENS = "last_prompt_tokens"
STATE_KEY_LAST_TOTAL_TOKENS = "last_total_tokens"


class ManagedSession(Session):

    def __init__(
        self,
        conversation: ConversationConfig,
        summarizer: SummarizerInterface,
        session_id: str | None = None,
    ):
        if summarizer is None:
            raise ValueError("summarizer is required")
        super().__init__(session_id)
        self.conversation = conversation
        self.summarizer = summarizer
        # bumped every time history is replaced (summary round or restore)
        self._generation = 0
        logger.info(f"Session created: {self.id}")

    def summary(self) -> str:
        with self._lock:
            value = self._state.get(STATE_KEY_CONVERSATION_SUMMARY)
        return value if isinstance(value, str) else ""

    def restore(self, state: dict[str, Any], history: list[Message]) -> None:
        with self._lock:
            super().restore(state, history)
            self._generation += 1

    def real_history(self) -> list[Message]:
        """History without the injected summary."""
        return super().history()

    def history(self) -> list[Message]:
        with self._lock:
            summary_text = self._state.get(STATE_KEY_CONVERSATION_SUMMARY)
            base = []
            if isinstance(summary_text, str) and summary_text:
                base.append(system_message(summary_text))
            base.extend(self._history)
            return base

    def __len__(self) -> int:
        return len(self.real_history())

    def _should_summarize(self, message: Message) -> bool:
        conv = self.conversation
        threshold = int(conv.context_window_tokens * conv.compression_threshold)
        need_by_tokens = message.usage.input_tokens >= threshold
        need_by_count = len(self._history) > conv.max_in_context_messages
        logger.debug(
            f"Session {self.id} check_threshold: input_tokens={message.usage.input_tokens} "
            f"threshold={threshold} count={len(self._history)} "
            f"max_count={conv.max_in_context_messages} need_by_tokens={need_by_tokens} "
            f"need_by_count={need_by_count}"
        )
        return need_by_tokens or need_by_count

    async def append(self, message: Message) -> None:
        if message is None:
            return
        logger.debug(
            f"Session {self.id} append: role={message.role.value} len={len(message.text)} "
            f"input_tokens={message.usage.input_tokens}"
        )

        with self._lock:
            self._history.append(message)

            if message.role != Role.ASSISTANT or message.status != MessageStatus.COMPLETED:
                return

            # Token usage of the latest prompt is the proxy for the next one
            self._state[STATE_KEY_LAST_PROMPT_TOKENS] = message.usage.input_tokens
            self._state[STATE_KEY_LAST_TOTAL_TOKENS] = message.usage.total_tokens

            if not self._should_summarize(message):
                return

            logger.info(f"Session {self.id}: triggering summarization")
            cutoff = len(self._history) - self.conversation.retain_recent_messages
            if cutoff <= 0:
                return

            delta = list(self._history[:cutoff])
            tail = list(self._history[cutoff:])
            length_before = len(self._history)
            generation = self._generation
            previous = self._state.get(STATE_KEY_CONVERSATION_SUMMARY)
            previous_summary = previous if isinstance(previous, str) else ""

        try:
            new_summary, _ = await self.summarizer.summarize(previous_summary, delta)
        except Exception as e:
            logger.error(f"Session {self.id}: summarization failed: {e}")
            raise

        with self._lock:
            if self._generation != generation:
                # Another round replaced history meanwhile; its result covers ours
                logger.warning(f"Session {self.id}: discarding stale summarization round")
                return

            if len(self._history) > length_before:
                tail.extend(self._history[length_before:])

            self._state[STATE_KEY_CONVERSATION_SUMMARY] = new_summary
            self._state[STATE_KEY_SUMMARY_UPDATED_AT] = datetime.now(timezone.utc).isoformat()
            self._history = tail
            self._generation += 1

        logger.info(f"Session {self.id}: summarization complete")
        logger.debug(f"Session {self.id} summary content: {new_summary}")
