# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import time
import asyncio
import logging

from contextlib import aclosing
from typing import AsyncIterator

from ..llm.base import Message
from ..types.agent_types import Handler, Invocation

logger = logging.getLogger(__name__)


def agent_logging(next_handler: Handler) -> Handler:
    """Log start, completion and failure of each invocation.

    Errors are logged and re-raised, never swallowed.
    """

    async def handler(invocation: Invocation) -> AsyncIterator[Message]:
        start = time.perf_counter()
        count = 0
        logger.info(
            f"[{invocation.invocation_id}] agent {invocation.agent_name} start "
            f"(model={invocation.model}, history={len(invocation.history)}, "
            f"tools={len(invocation.tools)})"
        )
        try:
            async with aclosing(next_handler(invocation)) as stream:
                async for message in stream:
                    count += 1
                    for call in message.tool_calls:
                        logger.info(
                            f"[{invocation.invocation_id}] agent {invocation.agent_name} "
                            f"tool call {call.tool_name} (id: {call.call_id}) args={call.tool_args}"
                        )
                    yield message
        except asyncio.CancelledError:
            logger.warning(
                f"[{invocation.invocation_id}] agent {invocation.agent_name} cancelled "
                f"after {time.perf_counter() - start:.3f}s"
            )
            raise
        except Exception as e:
            logger.error(
                f"[{invocation.invocation_id}] agent {invocation.agent_name} error "
                f"after {time.perf_counter() - start:.3f}s: {e}"
            )
            raise
        logger.info(
            f"[{invocation.invocation_id}] agent {invocation.agent_name} complete "
            f"in {time.perf_counter() - start:.3f}s, messages={count}"
        )

    return handler
