# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import logging

from contextlib import aclosing
from typing import AsyncIterator, Optional

from ..llm.base import Message
from ..session.session import Session
from ..types.agent_types import AgentInterface, Invocation
from ..types.errors import ModelError
from ..types.llm_types import MessageStatus, Role

logger = logging.getLogger(__name__)


class Runner:
    """Drives one agent for one turn against a session.

    The prompt is appended to the session before the agent starts, and every
    completed assistant message is appended as it streams past, so children
    of a sequence see the outputs of the children before them.
    """

    def __init__(self, agent: AgentInterface):
        self.agent = agent

    def _invocation(self, message: Message, session: Session) -> Invocation:
        return Invocation(
            agent_name=self.agent.name,
            message=message,
            history=session.history(),
            session=session,
        )

    async def run_stream(
        self, message: Message, session: Optional[Session] = None
    ) -> AsyncIterator[Message]:
        session = session if session is not None else Session()
        invocation = self._invocation(message, session)
        await session.append(message)

        async with aclosing(self.agent.run(invocation)) as stream:
            async for out in stream:
                if out.role == Role.ASSISTANT and out.status == MessageStatus.COMPLETED:
                    await session.append(out)
                yield out

    async def run(self, message: Message, session: Optional[Session] = None) -> Message:
        """Run to completion and return the last completed assistant message."""
        last: Message | None = None
        async with aclosing(self.run_stream(message, session)) as stream:
            async for out in stream:
                if out.role == Role.ASSISTANT and out.status == MessageStatus.COMPLETED:
                    last = out
        if last is None:
            raise ModelError(f"agent {self.agent.name} produced no final message")
        return last
