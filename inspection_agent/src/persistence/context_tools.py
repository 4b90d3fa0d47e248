# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import logging

from pathlib import Path
from pydantic import BaseModel, Field

from .markdown import SessionDump, encode_markdown, read_session_dump
from ..session.session import Session
from ..tools.base_tool import FuncTool
from ..types.errors import ToolError
from ..types.tool_types import ToolContext

logger = logging.getLogger(__name__)

SESSIONS_DIR = "sessions"


class SaveContextRequest(BaseModel):
    path: str = Field(
        default="",
        description="The output file path. If empty, defaults to ./sessions/<session_id>.md.",
    )
    title: str = Field(default="", description="Optional markdown title.")


class SaveContextResponse(BaseModel):
    path: str
    message_count: int


class LoadContextRequest(BaseModel):
    path: str = Field(
        ...,
        description="The input markdown file path that contains an embedded session dump.",
    )


class LoadContextResponse(BaseModel):
    message_count: int
    has_state: bool


def _require_session(ctx: ToolContext) -> Session:
    if ctx.session is None:
        raise ToolError("session not found in context")
    return ctx.session


async def save_context(ctx: ToolContext, request: SaveContextRequest) -> SaveContextResponse:
    session = _require_session(ctx)
    dump = SessionDump.from_session(session)

    path = Path(request.path.strip() or Path(SESSIONS_DIR) / f"{session.id}.md")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(encode_markdown(dump, request.title), encoding="utf-8")

    logger.info(f"Saved session {session.id} ({len(dump.messages)} messages) to {path}")
    return SaveContextResponse(path=str(path), message_count=len(dump.messages))


async def load_context(ctx: ToolContext, request: LoadContextRequest) -> LoadContextResponse:
    path = request.path.strip()
    if not path:
        raise ToolError("path is required")
    session = _require_session(ctx)

    dump = read_session_dump(path)

    for key, value in (dump.state or {}).items():
        session.set_state(key, value)
    # appended into the live session, which keeps its own id
    for message in dump.to_messages():
        await session.append(message)

    logger.info(f"Loaded {len(dump.messages)} messages from {path} into session {session.id}")
    return LoadContextResponse(message_count=len(dump.messages), has_state=bool(dump.state))


def save_context_tool() -> FuncTool:
    return FuncTool(
        name="SaveContext",
        description=(
            "Save the current conversation context (session history + state) into a local "
            "markdown file. The file is human readable and contains an embedded JSON dump "
            "for loading."
        ),
        request_model=SaveContextRequest,
        handler=save_context,
        response_model=SaveContextResponse,
    )


def load_context_tool() -> FuncTool:
    return FuncTool(
        name="LoadContext",
        description=(
            "Load conversation context from a local markdown file that contains an embedded "
            "JSON dump, and append it to the current session. Note: loaded history affects "
            "subsequent turns."
        ),
        request_model=LoadContextRequest,
        handler=load_context,
        response_model=LoadContextResponse,
    )
