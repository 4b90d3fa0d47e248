# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Cross-cutting wrappers around an agent's handler."""

from ..types.agent_types import Middleware
from .agent_logging import agent_logging
from .history import load_session_history


def default_middleware() -> list[Middleware]:
    """The stack every built-in agent runs with, outermost first."""
    return [agent_logging, load_session_history()]


__all__ = ["agent_logging", "default_middleware", "load_session_history"]
