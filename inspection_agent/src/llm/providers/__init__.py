# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Provider-specific implementations for different LLM services."""

from .base_provider import BaseProvider
from .anthropic import AnthropicProvider
from .openai import OpenAIProvider
from .gemini import GeminiProvider

__all__ = [
    "BaseProvider",
    "AnthropicProvider",
    "OpenAIProvider",
    "GeminiProvider",
]
