# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for the plain session."""
import pytest

from src.llm.base import assistant_message, user_message
from src.session.session import Session


class TestSession:

    def test_generated_id(self):
        assert Session().id != Session().id
        assert Session("fixed").id == "fixed"

    def test_state_is_copied(self):
        session = Session()
        session.set_state("k", 1)
        state = session.state()
        state["k"] = 2
        assert session.state() == {"k": 1}

    @pytest.mark.asyncio
    async def test_history_order_and_copy(self):
        session = Session()
        first, second = user_message("hi"), assistant_message("hello")
        await session.append(first)
        await session.append(second)

        history = session.history()
        assert [m.id for m in history] == [first.id, second.id]
        history.clear()
        assert len(session) == 2
