# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import os

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Callable, Optional, TYPE_CHECKING
from pydantic import BaseModel, Field

from .tool_types import ToolInterface

if TYPE_CHECKING:
    from ..llm.base import Message


class Invocation(BaseModel):
    """Per-turn bundle handed through the middleware pipeline.

    Frozen: middleware derives modified copies with ``model_copy(update=...)``.
    """

    invocation_id: str = Field(default_factory=lambda: os.urandom(4).hex())
    agent_name: str = ""
    model: str = ""
    instruction: str = ""
    message: Optional[Any] = None  # the prompt Message
    history: list[Any] = Field(default_factory=list)  # list[Message]
    tools: list[ToolInterface] = Field(default_factory=list)
    session: Optional[Any] = None  # Session

    class Config:
        frozen = True
        arbitrary_types_allowed = True


Handler = Callable[[Invocation], AsyncIterator["Message"]]
Middleware = Callable[[Handler], Handler]


class AgentInterface(ABC):
    """Something that turns a prompt and a session into a stream of messages.

    ``run`` is an async generator: lazy, single-pass and pull-driven. Closing
    it stops the producer; errors are raised out of the iteration.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        pass

    @abstractmethod
    def run(self, invocation: Invocation) -> AsyncIterator["Message"]:
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


