# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Typed view of the TOML configuration file.

Every section forbids unknown keys, except ``services.<name>.options`` which
is kept as a raw table and decoded later by the parser registered for the
service's type.
"""

from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator

from ..utils.duration import Duration

PROVIDERS = ("openai", "anthropic", "gemini")

DEFAULT_CONTEXT_WINDOW_TOKENS = 128000
DEFAULT_COMPRESSION_THRESHOLD = 0.8
DEFAULT_MAX_IN_CONTEXT_MESSAGES = 50
DEFAULT_RETAIN_RECENT_MESSAGES = 16
DEFAULT_SUMMARY_MAX_OUTPUT_TOKENS = 768


class ServerConfig(BaseModel):
    addr: str
    timeout: Optional[Duration] = None

    class Config:
        extra = "forbid"

    @field_validator("addr")
    @classmethod
    def _check_addr(cls, v: str) -> str:
        host, sep, port = v.rpartition(":")
        if not sep or not port.isdigit() or not 0 < int(port) <= 65535:
            raise ValueError(f"server.addr must be host:port, got {v!r}")
        if host.startswith("[") != host.endswith("]"):
            raise ValueError(f"server.addr has a malformed IPv6 host: {v!r}")
        if any(ch.isspace() for ch in host):
            raise ValueError(f"server.addr host contains whitespace: {v!r}")
        return v


class LogConfig(BaseModel):
    level: str = "info"
    format: str = "text"
    output: str = "stdout"

    class Config:
        extra = "forbid"

    @field_validator("level")
    @classmethod
    def _check_level(cls, v: str) -> str:
        v = v or "info"
        if v not in ("debug", "info", "warn", "error"):
            raise ValueError(f"log.level must be one of debug, info, warn, error, got {v!r}")
        return v

    @field_validator("format")
    @classmethod
    def _check_format(cls, v: str) -> str:
        v = v or "text"
        if v not in ("text", "json"):
            raise ValueError(f"log.format must be text or json, got {v!r}")
        return v


class ConversationConfig(BaseModel):
    """Conversation compression policy.

    Zero values mean "use the default"; the loader fills them in.
    """

    context_window_tokens: int = 0
    compression_threshold: float = 0.0
    max_in_context_messages: int = 0
    retain_recent_messages: int = 0
    summary_max_output_tokens: int = 0
    summary_model_agent: str = ""
    summary_max_chars: int = 0
    summary_include_tool_details: bool = False

    class Config:
        extra = "forbid"


class AgentLLMConfig(BaseModel):
    """Model parameters of one agent. Agents never inherit from each other."""

    provider: str
    model: str
    api_key: str = ""
    base_url: str = ""
    timeout: Optional[Duration] = None
    max_tokens: Optional[int] = Field(default=None, gt=0)
    temperature: Optional[float] = Field(default=None, ge=0, le=2)

    class Config:
        extra = "forbid"

    @field_validator("provider")
    @classmethod
    def _check_provider(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in PROVIDERS:
            raise ValueError(f"provider must be one of {', '.join(PROVIDERS)}, got {v!r}")
        return v

    @field_validator("model")
    @classmethod
    def _check_model(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("model is required")
        return v.strip()


class AgentConfig(BaseModel):
    enabled: bool = False
    llm: AgentLLMConfig

    class Config:
        extra = "forbid"


class ServiceConfig(BaseModel):
    type: str
    description: str = ""
    enabled: bool = False
    options: dict[str, Any] = Field(default_factory=dict)

    class Config:
        extra = "forbid"

    @field_validator("type")
    @classmethod
    def _check_type(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("service type is required")
        return v.strip()


class AppConfig(BaseModel):
    """Root configuration object."""

    server: ServerConfig
    log: LogConfig = Field(default_factory=LogConfig)
    conversation: ConversationConfig = Field(default_factory=ConversationConfig)
    agents: dict[str, AgentConfig]
    services: dict[str, ServiceConfig] = Field(default_factory=dict)

    class Config:
        extra = "forbid"
