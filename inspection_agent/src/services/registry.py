# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import asyncio
import logging
import threading

from enum import Enum
from typing import Callable
from pydantic import BaseModel

from .base import ServiceInterface, ServiceMeta
from .options import get_options_parser, type_key
from ..config.loader import Loader
from ..config.models import ServiceConfig
from ..types.errors import InitError

logger = logging.getLogger(__name__)

ServiceFactory = Callable[[ServiceMeta, BaseModel], ServiceInterface]

# Process-wide map of service type -> factory, filled at import time by the
# service modules.
service_factories: dict[str, ServiceFactory] = {}
_factories_lock = threading.RLock()


def register_service(service_type: str | Enum, factory: ServiceFactory) -> None:
    key = type_key(service_type)
    with _factories_lock:
        if key in service_factories:
            logger.warning(f"Service factory for {key} already registered")
            return
        service_factories[key] = factory


def get_service_factory(service_type: str | Enum) -> ServiceFactory | None:
    with _factories_lock:
        return service_factories.get(type_key(service_type))


class ServiceRegistry:
    """Owns the enabled services from start-up until shutdown."""

    def __init__(self):
        self._services: dict[str, ServiceInterface] = {}
        self._lock = threading.RLock()
        self._closed = False

    async def init_from_config(self, loader: Loader) -> None:
        """Build every enabled service concurrently.

        Partial failure is logged; failure of every enabled service raises.
        """
        cfg = loader.get()
        enabled = dict(cfg.services)
        if not enabled:
            return

        names = list(enabled)
        results = await asyncio.gather(
            *(self._init_service(loader, name, enabled[name]) for name in names),
            return_exceptions=True,
        )

        errors: list[BaseException] = []
        created: dict[str, ServiceInterface] = {}
        for name, result in zip(names, results):
            if isinstance(result, BaseException):
                errors.append(result)
            else:
                created[name] = result
                logger.info(f"Initialized service {name} ({result.type.value})")

        if not created:
            raise InitError(
                f"all {len(enabled)} enabled service(s) failed to initialize: "
                f"{[str(e) for e in errors]}"
            )
        if errors:
            logger.warning(
                f"{len(errors)} service(s) failed to initialize, {len(created)} succeeded"
            )
            for e in errors:
                logger.warning(f"  - {e}")

        with self._lock:
            self._services.update(created)

    async def _init_service(
        self, loader: Loader, name: str, service_cfg: ServiceConfig
    ) -> ServiceInterface:
        raw_options = loader.get_service_options(name)

        parser = get_options_parser(service_cfg.type)
        if parser is None:
            raise InitError(
                f"no parser registered for service type {service_cfg.type} (service: {name})"
            )
        try:
            options = parser(raw_options)
        except ValueError as e:
            raise InitError(f"parse options for {name}: {e}") from e

        factory = get_service_factory(service_cfg.type)
        if factory is None:
            raise InitError(
                f"unknown service type: {service_cfg.type} (no factory registered)"
            )
        meta = ServiceMeta(name=name, description=service_cfg.description)
        try:
            return factory(meta, options)
        except Exception as e:
            raise InitError(f"create service {name}: {e}") from e

    def add(self, service: ServiceInterface) -> None:
        with self._lock:
            self._services[service.name] = service

    def get(self, name: str) -> ServiceInterface | None:
        with self._lock:
            return self._services.get(name)

    def all(self) -> list[ServiceInterface]:
        with self._lock:
            return [self._services[name] for name in sorted(self._services)]

    async def close(self) -> list[Exception]:
        """Close every service once. Returns the errors instead of raising them."""
        with self._lock:
            if self._closed:
                return []
            self._closed = True
            services = list(self._services.items())

        errors: list[Exception] = []
        for name, service in services:
            try:
                await service.close()
            except Exception as e:
                logger.warning(f"Failed to close service {name}: {e}")
                errors.append(RuntimeError(f"close {name}: {e}"))
        return errors
