# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import logging
import threading

from .providers import BaseProvider
from ..types.errors import InitError

logger = logging.getLogger(__name__)


class ModelRegistry:
    """One model provider per agent name.

    Written at start-up and shutdown only; read concurrently in between.
    """

    def __init__(self):
        self._models: dict[str, BaseProvider] = {}
        self._lock = threading.RLock()
        self._closed = False

    def register(self, agent_name: str, model: BaseProvider) -> None:
        with self._lock:
            self._models[agent_name] = model

    def get(self, agent_name: str) -> BaseProvider:
        with self._lock:
            model = self._models.get(agent_name)
        if model is None:
            raise InitError(f"model provider for agent {agent_name} not found")
        return model

    def names(self) -> list[str]:
        with self._lock:
            return list(self._models)

    async def close(self) -> list[Exception]:
        """Close every model once. Returns the errors instead of raising them."""
        with self._lock:
            if self._closed:
                return []
            self._closed = True
            models = list(self._models.items())

        errors: list[Exception] = []
        for name, model in models:
            try:
                await model.close()
            except Exception as e:
                logger.warning(f"Failed to close model {name}: {e}")
                errors.append(RuntimeError(f"close model {name}: {e}"))
        return errors
