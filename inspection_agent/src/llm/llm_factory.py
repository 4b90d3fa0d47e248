# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Builds a model provider from one agent's ``llm`` configuration."""

import os
import logging

from datetime import timedelta
from typing import Callable

from .providers import BaseProvider, OpenAIProvider, AnthropicProvider, GeminiProvider
from ..config.models import AgentLLMConfig
from ..types.errors import InitError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = timedelta(seconds=60)
DEFAULT_MAX_TOKENS = 2048
DEFAULT_TEMPERATURE = 0.7

DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_ANTHROPIC_BASE_URL = "https://api.anthropic.com"

# Environment variables consulted, in order, when api_key is blank
API_KEY_ENV = {
    "openai": ["OPENAI_API_KEY"],
    "anthropic": ["ANTHROPIC_API_KEY"],
    "gemini": ["GEMINI_API_KEY", "GOOGLE_API_KEY"],
}


def resolve_api_key(provider: str, configured: str) -> str:
    if configured:
        return configured
    for env_name in API_KEY_ENV[provider]:
        value = os.environ.get(env_name, "")
        if value:
            return value
    env_names = " / ".join(API_KEY_ENV[provider])
    raise InitError(f"{provider} api key not configured (api_key or {env_names})")


def _build_openai(cfg: AgentLLMConfig, api_key: str, timeout: float, max_tokens: int, temperature: float) -> BaseProvider:
    return OpenAIProvider(
        model=cfg.model,
        api_key=api_key,
        base_url=cfg.base_url or DEFAULT_OPENAI_BASE_URL,
        timeout=timeout,
        max_tokens=max_tokens,
        temperature=temperature,
    )


def _build_anthropic(cfg: AgentLLMConfig, api_key: str, timeout: float, max_tokens: int, temperature: float) -> BaseProvider:
    return AnthropicProvider(
        model=cfg.model,
        api_key=api_key,
        base_url=cfg.base_url or DEFAULT_ANTHROPIC_BASE_URL,
        timeout=timeout,
        max_tokens=max_tokens,
        temperature=temperature,
    )


def _build_gemini(cfg: AgentLLMConfig, api_key: str, timeout: float, max_tokens: int, temperature: float) -> BaseProvider:
    return GeminiProvider(
        model=cfg.model,
        api_key=api_key,
        base_url=cfg.base_url or None,
        timeout=timeout,
        max_tokens=max_tokens,
        temperature=temperature,
    )


BUILDERS: dict[str, Callable[..., BaseProvider]] = {
    "openai": _build_openai,
    "anthropic": _build_anthropic,
    "gemini": _build_gemini,
}


def create_provider(agent_name: str, cfg: AgentLLMConfig) -> BaseProvider:
    """Create the provider for one agent, applying timeout and sampling defaults.

    Raises:
        InitError: unknown provider or missing credentials
    """
    provider = cfg.provider.strip().lower()
    builder = BUILDERS.get(provider)
    if builder is None:
        raise InitError(f"unsupported model provider {cfg.provider!r} for agent {agent_name}")

    api_key = resolve_api_key(provider, cfg.api_key)
    timeout = (cfg.timeout or DEFAULT_TIMEOUT).total_seconds()
    max_tokens = cfg.max_tokens or DEFAULT_MAX_TOKENS
    temperature = cfg.temperature if cfg.temperature is not None else DEFAULT_TEMPERATURE

    try:
        model = builder(cfg, api_key, timeout, max_tokens, temperature)
    except Exception as e:
        raise InitError(f"build {provider} model for agent {agent_name}: {e}") from e

    logger.info(
        f"Built {provider} model {cfg.model} for agent {agent_name} "
        f"(max_tokens={max_tokens}, temperature={temperature}, timeout={timeout}s)"
    )
    return model
