# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""LLM integration module.

This module provides a unified interface for interacting with the supported
model providers: OpenAI, Anthropic and Gemini.
"""

import logging

from .base import (
    Message,
    ModelRequest,
    Completion,
    TimingInfo,
    ToolSpec,
    user_message,
    assistant_message,
    system_message,
)
from .registry import ModelRegistry

# Quieten LLM API call logs to make stdout more useful
logging.getLogger("httpx").setLevel(logging.WARNING)

__all__ = [
    "Message",
    "ModelRequest",
    "Completion",
    "TimingInfo",
    "ToolSpec",
    "user_message",
    "assistant_message",
    "system_message",
    "ModelRegistry",
]
