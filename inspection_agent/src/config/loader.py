# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import os
import re
import logging
import tomllib

from pathlib import Path
from typing import Any
from pydantic import ValidationError

from .models import (
    AppConfig,
    ConversationConfig,
    DEFAULT_CONTEXT_WINDOW_TOKENS,
    DEFAULT_COMPRESSION_THRESHOLD,
    DEFAULT_MAX_IN_CONTEXT_MESSAGES,
    DEFAULT_RETAIN_RECENT_MESSAGES,
    DEFAULT_SUMMARY_MAX_OUTPUT_TOKENS,
)
from ..agents.names import ORCHESTRATOR
from ..types.errors import ConfigError

logger = logging.getLogger(__name__)

_ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::([^}]*))?\}")


def expand_env(text: str) -> str:
    """Expand ``${VAR}`` and ``${VAR:default}`` placeholders.

    A non-empty environment value wins; otherwise the default is used, and a
    placeholder without a default expands to the empty string.
    """

    def _replace(match: re.Match) -> str:
        value = os.environ.get(match.group(1), "")
        if value:
            return value
        return match.group(2) or ""

    return _ENV_PATTERN.sub(_replace, text)


def apply_conversation_defaults(conv: ConversationConfig) -> None:
    defaults = [
        ("context_window_tokens", DEFAULT_CONTEXT_WINDOW_TOKENS),
        ("compression_threshold", DEFAULT_COMPRESSION_THRESHOLD),
        ("max_in_context_messages", DEFAULT_MAX_IN_CONTEXT_MESSAGES),
        ("retain_recent_messages", DEFAULT_RETAIN_RECENT_MESSAGES),
        ("summary_max_output_tokens", DEFAULT_SUMMARY_MAX_OUTPUT_TOKENS),
    ]
    for field, default in defaults:
        if getattr(conv, field) == 0:
            logger.warning(f"conversation.{field} is 0, using default value {default}")
            setattr(conv, field, default)
    if not conv.summary_model_agent:
        logger.warning(
            f"conversation.summary_model_agent is empty, using default value {ORCHESTRATOR}"
        )
        conv.summary_model_agent = ORCHESTRATOR


def validate_conversation(conv: ConversationConfig) -> None:
    if conv.context_window_tokens < 0:
        raise ConfigError("validate config: conversation.context_window_tokens must be > 0")
    if not 0 < conv.compression_threshold <= 1:
        raise ConfigError("validate config: conversation.compression_threshold must be in (0, 1]")
    if conv.max_in_context_messages < 0 or conv.retain_recent_messages < 0:
        raise ConfigError("validate config: conversation message limits must be > 0")
    if conv.summary_max_output_tokens < 0:
        raise ConfigError("validate config: conversation.summary_max_output_tokens must be > 0")
    if conv.summary_max_chars < 0:
        raise ConfigError("validate config: conversation.summary_max_chars must be >= 0")
    if conv.retain_recent_messages >= conv.max_in_context_messages:
        raise ConfigError(
            "validate config: conversation.retain_recent_messages must be < "
            "conversation.max_in_context_messages"
        )


def _format_loc(loc: tuple) -> str:
    return ".".join(str(part) for part in loc)


class Loader:
    """Loads, validates and filters the configuration file.

    The configuration is loaded once; there is no reload.
    """

    def __init__(self, config_path: str | Path):
        self.config_path = Path(config_path)
        self._config: AppConfig | None = None

    def load(self) -> AppConfig:
        try:
            content = self.config_path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"load config file {self.config_path}: {e}") from e

        try:
            raw = tomllib.loads(expand_env(content))
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"parse config file {self.config_path}: {e}") from e

        cfg = self.parse(raw)

        # Only enabled entries survive loading
        cfg.agents = {name: a for name, a in cfg.agents.items() if a.enabled}
        cfg.services = {name: s for name, s in cfg.services.items() if s.enabled}

        self._config = cfg
        logger.debug(
            f"Loaded config {self.config_path}: agents={list(cfg.agents)} "
            f"services={list(cfg.services)}"
        )
        return cfg

    def parse(self, raw: dict[str, Any]) -> AppConfig:
        """Validate an already-parsed document and apply defaults."""
        try:
            cfg = AppConfig.model_validate(raw)
        except ValidationError as e:
            unknown = [
                _format_loc(err["loc"]) for err in e.errors() if err["type"] == "extra_forbidden"
            ]
            if unknown:
                raise ConfigError(
                    f"parse config file {self.config_path}: unknown keys: {unknown}"
                ) from e
            raise ConfigError(f"validate config: {e}") from e

        apply_conversation_defaults(cfg.conversation)
        validate_conversation(cfg.conversation)
        return cfg

    def get(self) -> AppConfig:
        if self._config is None:
            raise ConfigError("config not loaded")
        return self._config

    def get_service_options(self, service_name: str) -> dict[str, Any]:
        """The raw, undecoded ``options`` table of an enabled service."""
        cfg = self.get()
        if service_name not in cfg.services:
            raise ConfigError(f"service {service_name} not found")
        return dict(cfg.services[service_name].options)
