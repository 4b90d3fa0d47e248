# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
from contextlib import aclosing
from typing import AsyncIterator

from ..llm.base import Message
from ..types.agent_types import Handler, Invocation, Middleware


def load_session_history() -> Middleware:
    """Replace the invocation's history with the session's, when there is one.

    Sub-agents in a routing flow need this to see earlier turns.
    """

    def middleware(next_handler: Handler) -> Handler:
        async def handler(invocation: Invocation) -> AsyncIterator[Message]:
            session = invocation.session
            if session is not None:
                history = session.history()
                if history:
                    invocation = invocation.model_copy(update={"history": list(history)})
            async with aclosing(next_handler(invocation)) as stream:
                async for message in stream:
                    yield message

        return handler

    return middleware
