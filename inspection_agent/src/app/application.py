# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Application lifecycle: configuration, services, models and the agent tree."""

import asyncio
import logging

from contextlib import aclosing
from pathlib import Path
from typing import AsyncIterator, Callable, Optional

from .. import services as _builtin_services  # noqa: F401  registers service types
from ..agents.implementations import build_orchestrator
from ..agents.names import ORCHESTRATOR, REQUIRED_SUB_AGENTS
from ..agents.routing import RoutingAgent
from ..agents.runner import Runner
from ..config.loader import Loader
from ..config.models import AgentLLMConfig, AppConfig
from ..llm.base import Message, user_message
from ..llm.llm_factory import create_provider
from ..llm.providers import BaseProvider
from ..llm.registry import ModelRegistry
from ..memory.store import MemoryStore
from ..persistence.markdown import read_session_dump
from ..services.registry import ServiceRegistry
from ..session.managed_session import ManagedSession
from ..summary.summarizer import Summarizer
from ..types.errors import ConfigError, InitError
from ..types.llm_types import MessageStatus, Role
from ..utils.logger import initialize_logging

logger = logging.getLogger(__name__)

SHUTDOWN_TIMEOUT = 5.0

ProviderFactory = Callable[[str, AgentLLMConfig], BaseProvider]


def validate_rules(cfg: AppConfig) -> None:
    """Checks that need the whole configuration, after loading."""
    orchestrator = cfg.agents.get(ORCHESTRATOR)
    # disabled agents are dropped by the loader, so a disabled orchestrator is missing here
    if orchestrator is None:
        raise ConfigError(f"orchestrator agent {ORCHESTRATOR} is required but not found")

    enabled = [name for name in REQUIRED_SUB_AGENTS if name in cfg.agents]
    if not enabled:
        raise ConfigError(
            f"at least one sub agent ({', '.join(REQUIRED_SUB_AGENTS)}) must be enabled"
        )


class Application:
    """Owns every long-lived resource of the runtime.

    ``initialize`` builds, in order: configuration, logging, services,
    models, the summariser and the orchestrator. ``shutdown`` releases the
    services and then the models.
    """

    def __init__(
        self,
        config_path: str | Path,
        provider_factory: ProviderFactory = create_provider,
    ):
        self.loader = Loader(config_path)
        self.provider_factory = provider_factory
        self.config: AppConfig | None = None
        self.services = ServiceRegistry()
        self.models = ModelRegistry()
        self.memory = MemoryStore()
        self.summarizer: Summarizer | None = None
        self.orchestrator: RoutingAgent | None = None
        self.runner: Runner | None = None
        self._shut_down = False

    @property
    def initialized(self) -> bool:
        return self.runner is not None

    async def initialize(self) -> None:
        """Build everything. On failure, whatever was built is released again.

        Raises:
            ConfigError: the configuration cannot be loaded or breaks a rule
            InitError: a service, model or agent cannot be built
        """
        try:
            cfg = self.loader.load()
        except ConfigError as e:
            raise ConfigError(f"load config: {e}") from e
        try:
            validate_rules(cfg)
        except ConfigError as e:
            raise ConfigError(f"validate app rules: {e}") from e
        self.config = cfg

        initialize_logging(cfg.log)
        logger.info(f"Initializing application from {self.loader.config_path}")

        try:
            await self._init_services()
            self._init_models(cfg)
            self._init_summarizer(cfg)
            self._init_orchestrator(cfg)
        except BaseException:
            await self.shutdown()
            raise

        logger.info(f"Application initialized with agents {sorted(cfg.agents)}")

    async def _init_services(self) -> None:
        logger.info("Initializing services")
        try:
            await self.services.init_from_config(self.loader)
        except InitError as e:
            raise InitError(f"init registry: {e}") from e
        services = self.services.all()
        logger.info(
            f"Initialized {len(services)} service(s): "
            f"{[f'{s.name} ({s.type.value})' for s in services]}"
        )

    def _init_models(self, cfg: AppConfig) -> None:
        logger.info("Initializing models")
        for name, agent_cfg in cfg.agents.items():
            self.models.register(name, self.provider_factory(name, agent_cfg.llm))
        logger.info(f"Initialized {len(cfg.agents)} model(s)")

    def _init_summarizer(self, cfg: AppConfig) -> None:
        conv = cfg.conversation
        try:
            model = self.models.get(conv.summary_model_agent)
        except InitError as e:
            raise InitError(
                f"summary model agent {conv.summary_model_agent} is not enabled: {e}"
            ) from e
        self.summarizer = Summarizer(
            model,
            max_output_tokens=conv.summary_max_output_tokens,
            max_summary_chars=conv.summary_max_chars,
            include_tool_details=conv.summary_include_tool_details,
        )

    def _init_orchestrator(self, cfg: AppConfig) -> None:
        try:
            self.orchestrator = build_orchestrator(
                self.models, list(cfg.agents), self.services.all(), self.memory
            )
        except ValueError as e:
            raise InitError(f"create orchestrator: {e}") from e
        self.runner = Runner(self.orchestrator)

    def new_session(self, session_id: Optional[str] = None) -> ManagedSession:
        if self.config is None or self.summarizer is None:
            raise InitError("application not initialized")
        return ManagedSession(self.config.conversation, self.summarizer, session_id)

    def restore_session(self, path: str | Path) -> ManagedSession:
        """Resume a session saved with SaveContext under its original id."""
        dump = read_session_dump(path)
        session = self.new_session(dump.session_id)
        dump.restore_into(session)
        logger.info(f"Restored session {session.id} ({len(dump.messages)} messages) from {path}")
        return session

    def _prepare(self, message: Message | str, session: Optional[ManagedSession]):
        if self.runner is None:
            raise InitError("application not initialized")
        if isinstance(message, str):
            message = user_message(message)
        return message, session if session is not None else self.new_session()

    async def run(
        self, message: Message | str, session: Optional[ManagedSession] = None
    ) -> Message:
        """Run one turn and return the final assistant message."""
        message, session = self._prepare(message, session)
        reply = await self.runner.run(message, session)
        self.memory.add_messages([message, reply])
        return reply

    async def run_stream(
        self, message: Message | str, session: Optional[ManagedSession] = None
    ) -> AsyncIterator[Message]:
        message, session = self._prepare(message, session)
        final: Message | None = None
        async with aclosing(self.runner.run_stream(message, session)) as stream:
            async for out in stream:
                if out.role == Role.ASSISTANT and out.status == MessageStatus.COMPLETED:
                    final = out
                yield out
        self.memory.add_messages([message, final])

    async def shutdown(self) -> list[Exception]:
        """Close services, then models. Errors are logged and returned."""
        if self._shut_down:
            return []
        self._shut_down = True

        errors: list[Exception] = []
        errors.extend(await self.services.close())
        errors.extend(await self.models.close())
        for e in errors:
            logger.warning(f"Shutdown error: {e}")
        logger.info("Application shut down")
        return errors

    async def shutdown_with_timeout(self, timeout: float = SHUTDOWN_TIMEOUT) -> list[Exception]:
        try:
            async with asyncio.timeout(timeout):
                return await self.shutdown()
        except TimeoutError as e:
            logger.error(f"Shutdown did not finish within {timeout}s")
            return [e]
