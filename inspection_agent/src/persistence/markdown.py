# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Human readable session files with an embedded machine readable dump.

The document is plain markdown, one fenced block per message, followed by
a JSON dump of the session between two HTML comment markers. Only the dump
is read back when loading.
"""

import json

from pathlib import Path
from typing import Any, Optional
from pydantic import BaseModel, Field

from ..llm.base import Message
from ..session.session import Session
from ..types.llm_types import MessageStatus, Role, TextContent

MARKDOWN_HEADER = "<!-- inspection-agent-session:v1 -->"
BEGIN_JSON_DUMP = "<!-- BEGIN_SESSION_JSON -->"
END_JSON_DUMP = "<!-- END_SESSION_JSON -->"


class DumpedMessage(BaseModel):
    role: str
    author: Optional[str] = None
    text: str = ""


class SessionDump(BaseModel):
    session_id: str
    state: Optional[dict[str, Any]] = None
    messages: list[DumpedMessage] = Field(default_factory=list)

    @classmethod
    def from_session(cls, session: Session) -> "SessionDump":
        messages = [
            DumpedMessage(role=m.role.value, author=m.author or None, text=m.text)
            for m in session.history()
            if m.role in (Role.USER, Role.ASSISTANT)
        ]
        return cls(session_id=session.id, state=session.state() or None, messages=messages)

    def to_messages(self) -> list[Message]:
        """Completed user and assistant turns; other roles are skipped."""
        out = []
        for m in self.messages:
            role = m.role.strip()
            if role not in (Role.USER.value, Role.ASSISTANT.value):
                continue
            out.append(
                Message(
                    role=Role(role),
                    content=[TextContent(text=m.text)],
                    author=m.author,
                    status=MessageStatus.COMPLETED,
                )
            )
        return out

    def restore_into(self, session: Session) -> None:
        session.restore(self.state or {}, self.to_messages())

    def to_session(self) -> Session:
        session = Session(self.session_id)
        self.restore_into(session)
        return session


def encode_markdown(dump: SessionDump, title: str = "") -> str:
    parts = [MARKDOWN_HEADER, "\n\n"]

    if title.strip():
        parts.append(f"# {title.strip()}\n\n")

    if dump.messages:
        parts.append("## Conversation\n\n")
        for m in dump.messages:
            heading = m.role.strip() or "unknown"
            if m.author and m.author.strip():
                heading += f" ({m.author.strip()})"
            parts.append(f"### {heading}\n\n```text\n{m.text}\n```\n\n")

    body = json.dumps(
        dump.model_dump(exclude_none=True), indent=2, ensure_ascii=False, default=str
    )
    parts.append(f"{BEGIN_JSON_DUMP}\n{body}\n{END_JSON_DUMP}\n")
    return "".join(parts)


def decode_markdown(markdown: str) -> SessionDump:
    """Extract the embedded dump.

    Raises:
        ValueError: a marker is missing or the dump is not valid JSON
    """
    begin = markdown.find(BEGIN_JSON_DUMP)
    if begin < 0:
        raise ValueError("missing json dump begin marker")
    begin += len(BEGIN_JSON_DUMP)

    end = markdown.find(END_JSON_DUMP, begin)
    if end < 0:
        raise ValueError("missing json dump end marker")

    return SessionDump.model_validate_json(markdown[begin:end].strip())


def read_session_dump(path: str | Path) -> SessionDump:
    return decode_markdown(Path(path).read_text(encoding="utf-8"))


def restore_session(path: str | Path) -> Session:
    """Rebuild the saved session: same id, state and user/assistant turns."""
    return read_session_dump(path).to_session()
