# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import os
import logging
import threading

from typing import Any

from ..llm.base import Message

logger = logging.getLogger(__name__)


class Session:
    """Conversation state shared by every agent serving one user.

    History is append-only from the session's point of view. All accessors
    return copies; the lock is never held across an ``await``.
    """

    def __init__(self, session_id: str | None = None):
        self._id = session_id or os.urandom(8).hex()
        self._state: dict[str, Any] = {}
        self._history: list[Message] = []
        self._lock = threading.RLock()

    @property
    def id(self) -> str:
        return self._id

    def state(self) -> dict[str, Any]:
        with self._lock:
            return dict(self._state)

    def set_state(self, key: str, value: Any) -> None:
        with self._lock:
            self._state[key] = value

    def history(self) -> list[Message]:
        with self._lock:
            return list(self._history)

    async def append(self, message: Message) -> None:
        with self._lock:
            self._history.append(message)

    def restore(self, state: dict[str, Any], history: list[Message]) -> None:
        """Replace state and history wholesale, e.g. from a saved dump."""
        with self._lock:
            self._state = dict(state)
            self._history = list(history)

    def __len__(self) -> int:
        with self._lock:
            return len(self._history)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(id={self._id!r}, messages={len(self)})"
