# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""The leaf agent: a model, an instruction and tools, run in a tool-calling loop."""

import asyncio
import logging

from typing import AsyncIterator, Sequence

from ..llm.base import Message, ModelRequest, ToolSpec
from ..llm.providers import BaseProvider
from ..tools.base_tool import handle_tool_call
from ..types.agent_types import AgentInterface, Handler, Invocation, Middleware
from ..types.errors import ModelError
from ..types.llm_types import MessageStatus, Role, ToolResultContent
from ..types.tool_types import ToolContext, ToolInterface

logger = logging.getLogger(__name__)

MAX_ITERATIONS = 20


def compose(handler: Handler, middleware: Sequence[Middleware]) -> Handler:
    """Wrap ``handler`` so that ``middleware[0]`` is the outermost layer."""
    for mw in reversed(middleware):
        handler = mw(handler)
    return handler


class LeafAgent(AgentInterface):
    """An agent whose behaviour is a model, an instruction and a set of tools.

    Each run alternates between the model and the tools it calls until the
    model answers without calling any tool. Every assistant message that
    requested tools is yielded with ``status=streaming``, followed by the
    tool message carrying one result per call. The final answer is yielded
    with ``status=completed``.
    """

    def __init__(
        self,
        name: str,
        description: str,
        instruction: str,
        model: BaseProvider,
        tools: Sequence[ToolInterface] | None = None,
        middleware: Sequence[Middleware] | None = None,
        max_iterations: int = MAX_ITERATIONS,
    ):
        if model is None:
            raise ValueError(f"agent {name}: model is required")
        self._name = name
        self._description = description
        self.instruction = instruction
        self.model = model
        self.tools: tuple[ToolInterface, ...] = tuple(tools or ())
        self.middleware: tuple[Middleware, ...] = tuple(middleware or ())
        self.max_iterations = max_iterations

        names = [t.name for t in self.tools]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"agent {name}: duplicate tool names {sorted(duplicates)}")

        self._handler = compose(self._handle, self.middleware)

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    def run(self, invocation: Invocation) -> AsyncIterator[Message]:
        invocation = invocation.model_copy(
            update={
                "agent_name": self.name,
                "model": self.model.model,
                "instruction": self.instruction,
                "tools": list(self.tools),
            }
        )
        return self._handler(invocation)

    def _tool_specs(self, tools: Sequence[ToolInterface]) -> list[ToolSpec]:
        return [t.to_spec() for t in tools]

    async def _generate(self, request: ModelRequest):
        try:
            return await self.model.generate(request)
        except (asyncio.CancelledError, ModelError):
            raise
        except Exception as e:
            raise ModelError(f"agent {self.name}: model generation failed: {e}") from e

    async def _handle(self, invocation: Invocation) -> AsyncIterator[Message]:
        messages: list[Message] = list(invocation.history)
        prompt = invocation.message
        if prompt is not None and not (messages and messages[-1].id == prompt.id):
            messages.append(prompt)

        tools = {t.name: t for t in invocation.tools}
        specs = self._tool_specs(invocation.tools)

        for iteration in range(self.max_iterations):
            completion = await self._generate(
                ModelRequest(
                    instruction=invocation.instruction,
                    messages=messages,
                    tools=specs,
                )
            )
            message = completion.to_message(author=self.name)
            calls = message.tool_calls

            if not calls:
                if completion.errored and not message.text:
                    raise ModelError(
                        f"agent {self.name}: model stopped with an error and no content"
                    )
                message.status = MessageStatus.COMPLETED
                yield message
                return

            ctx = ToolContext(invocation_id=invocation.invocation_id, session=invocation.session)
            results = []
            for call in calls:
                result = await handle_tool_call(call, tools, ctx)
                if not result.success:
                    logger.info(
                        f"Agent {self.name}: tool {call.tool_name} failed: {result.errors}"
                    )
                results.append(
                    ToolResultContent(
                        call_id=call.call_id,
                        tool_name=call.tool_name,
                        content=result.to_content(),
                    )
                )

            message.actions = dict(ctx.actions)
            tool_message = Message(
                role=Role.TOOL,
                content=results,
                author=self.name,
                status=MessageStatus.STREAMING,
            )

            yield message
            yield tool_message

            messages.extend([message, tool_message])
            logger.debug(
                f"Agent {self.name}: iteration {iteration} ran {len(calls)} tool call(s)"
            )

        raise ModelError(
            f"agent {self.name}: max iterations ({self.max_iterations}) exceeded"
        )
