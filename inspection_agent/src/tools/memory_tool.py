# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import logging

from typing import Optional
from pydantic import BaseModel, Field

from .base_tool import FuncTool
from ..memory.store import Memory, MemoryStore
from ..types.tool_types import ToolContext

logger = logging.getLogger(__name__)

OPERATIONS = ["add_memory", "list_memories", "search_memories"]


class AddMemoryParams(BaseModel):
    content: str = Field(..., description="The fact or note to remember")


class ListMemoriesParams(BaseModel):
    limit: int = Field(default=20, ge=0, description="How many of the most recent memories to return, 0 for all")


class SearchMemoriesParams(BaseModel):
    query: str = Field(..., description="Words to look for in earlier conversation")
    limit: int = Field(default=10, ge=0, description="Maximum number of matches, 0 for all")


class MemoryRequest(BaseModel):
    operation: str = Field(
        ...,
        description="The type of operation to perform",
        json_schema_extra={"enum": OPERATIONS},
    )
    add_memory: Optional[AddMemoryParams] = None
    list_memories: Optional[ListMemoriesParams] = None
    search_memories: Optional[SearchMemoriesParams] = None


class MemoryResponse(BaseModel):
    operation: str
    success: bool
    message: Optional[str] = None
    memories: Optional[list[Memory]] = None


def memory_tool(store: MemoryStore) -> FuncTool:
    async def _handle(ctx: ToolContext, request: MemoryRequest) -> MemoryResponse:
        op = request.operation
        if op not in OPERATIONS:
            return MemoryResponse(operation=op, success=False, message=f"unknown operation: {op}")
        params = getattr(request, op)
        if params is None:
            return MemoryResponse(operation=op, success=False, message=f"missing {op} params")

        if op == "add_memory":
            try:
                memory = store.add(params.content, role="note")
            except ValueError as e:
                return MemoryResponse(operation=op, success=False, message=str(e))
            logger.info(f"Memory added: {memory.id}")
            return MemoryResponse(operation=op, success=True, message="Memory added", memories=[memory])

        if op == "list_memories":
            memories = store.recent(params.limit)
        else:
            memories = store.search(params.query, params.limit)
        return MemoryResponse(
            operation=op,
            success=True,
            message=f"Found {len(memories)} memories",
            memories=memories,
        )

    return FuncTool(
        name="Memory",
        description=(
            "Recall information mentioned earlier in the conversation, or remember a new note. "
            "Use search_memories when unsure whether something was said before."
        ),
        request_model=MemoryRequest,
        handler=_handle,
        response_model=MemoryResponse,
    )
