# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Process-wide recall of earlier conversation, kept in memory only.

The application records every user prompt and final answer here, and the
general agent reads it back through the Memory tool. Nothing is persisted;
use SaveContext for that.
"""

import os
import re
import logging
import threading

from datetime import datetime, timezone
from typing import Iterable, Optional
from pydantic import BaseModel, Field

from ..llm.base import Message
from ..types.llm_types import Role

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 1000

_TERM = re.compile(r"\w+")


class Memory(BaseModel):
    id: str = Field(default_factory=lambda: os.urandom(4).hex())
    content: str
    role: Optional[str] = None
    author: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def _terms(text: str) -> set[str]:
    return {t.lower() for t in _TERM.findall(text)}


class MemoryStore:
    """Bounded, thread-safe list of memories; the oldest are dropped first."""

    def __init__(self, max_entries: int = DEFAULT_MAX_ENTRIES):
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self.max_entries = max_entries
        self._memories: list[Memory] = []
        self._lock = threading.Lock()

    def add(self, content: str, role: Optional[str] = None, author: Optional[str] = None) -> Memory:
        content = content.strip()
        if not content:
            raise ValueError("memory content must not be empty")
        memory = Memory(content=content, role=role, author=author)
        with self._lock:
            self._memories.append(memory)
            overflow = len(self._memories) - self.max_entries
            if overflow > 0:
                del self._memories[:overflow]
        return memory

    def add_messages(self, messages: Iterable[Message]) -> int:
        """Remember user and assistant messages with text; returns how many were kept."""
        added = 0
        for m in messages:
            if m is None or m.role not in (Role.USER, Role.ASSISTANT) or not m.text.strip():
                continue
            self.add(m.text, role=m.role.value, author=m.author)
            added += 1
        if added:
            logger.debug(f"Memory store: added {added} message(s), size={len(self)}")
        return added

    def recent(self, limit: int = 0) -> list[Memory]:
        """Oldest first; with a limit, only the most recent ``limit`` entries."""
        with self._lock:
            memories = list(self._memories)
        return memories[-limit:] if limit > 0 else memories

    def search(self, query: str, limit: int = 0) -> list[Memory]:
        """Memories sharing words with ``query``, best match first, newest on ties."""
        wanted = _terms(query)
        if not wanted:
            return []
        with self._lock:
            memories = list(self._memories)

        scored = []
        for position, memory in enumerate(memories):
            score = len(wanted & _terms(memory.content))
            if score:
                scored.append((score, position, memory))
        scored.sort(key=lambda item: (item[0], item[1]), reverse=True)
        found = [memory for _, _, memory in scored]
        return found[:limit] if limit > 0 else found

    def __len__(self) -> int:
        with self._lock:
            return len(self._memories)
