# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Error kinds raised by the runtime.

Remote failures reported by an external system are not exceptions: services
return them as ``success=False`` responses. Cancellation is
``asyncio.CancelledError`` and is never wrapped.
"""


class AgentRuntimeError(Exception):
    """Base class for every error raised by the runtime."""


class ConfigError(AgentRuntimeError):
    """Invalid or missing configuration. Always fatal at start-up."""


class InitError(AgentRuntimeError):
    """A service or model could not be constructed."""


class InvalidInputError(AgentRuntimeError):
    """A tool was invoked with input that does not match its schema."""


class ToolError(AgentRuntimeError):
    """A tool handler failed for a reason other than its input."""


class ModelError(AgentRuntimeError):
    """The model provider returned an error or an unusable response."""


class TargetNotFoundError(AgentRuntimeError):
    """A routing agent handed off to a child it does not have."""

    def __init__(self, target: str):
        self.target = target
        super().__init__(f"target agent not found: {target}")
