# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Common shape of every external service exposed to the model as one tool.

A service turns a typed request with an ``operation`` discriminator into a
typed response ``{operation, success, message, ...}``. Failures reported by
the remote system (error statuses, unusable bodies) come back as
``success=False`` so the model can react to them. Transport failures such as
timeouts or refused connections are raised as ``ToolError`` and abort the turn.
"""

import asyncio
import logging

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, ClassVar, Generic, Type, TypeVar
from pydantic import BaseModel, Field

import httpx

from ..tools.base_tool import FuncTool
from ..types.errors import ToolError
from ..types.tool_types import ToolContext

logger = logging.getLogger(__name__)

HEALTH_TIMEOUT = 5.0
DEFAULT_TIMEOUT = 60.0


class ServiceType(str, Enum):
    PROMETHEUS = "prometheus"
    PAGERDUTY = "pagerduty"
    OPENSEARCH = "opensearch"
    JIRA = "jira"


class ServiceMeta(BaseModel):
    name: str
    description: str = ""


class ServiceResponse(BaseModel):
    operation: str
    success: bool
    message: str | None = None


def operation_field(operations: list[str]) -> Any:
    """The ``operation`` discriminator: a plain string advertised as an enum.

    Unknown values are answered with ``success=False`` rather than rejected
    as invalid input.
    """
    return Field(
        ...,
        description="The type of operation to perform",
        json_schema_extra={"enum": list(operations)},
    )


Req = TypeVar("Req", bound=BaseModel)
Resp = TypeVar("Resp", bound=ServiceResponse)


class ServiceInterface(ABC):
    """Abstract interface for all services"""

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def type(self) -> ServiceType:
        pass

    @property
    @abstractmethod
    def description(self) -> str:
        pass

    @abstractmethod
    def as_tool(self) -> FuncTool:
        pass

    @abstractmethod
    async def handle(self, request: Any) -> Any:
        pass

    @abstractmethod
    async def health(self) -> None:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass


class BaseService(ServiceInterface, Generic[Req, Resp]):
    """Dispatches requests to per-operation coroutines over an httpx client.

    Subclasses declare ``OPERATIONS``; the request model carries one optional
    parameter object per operation, named after it. ``_dispatch`` returns the
    coroutine handling each operation.
    """

    SERVICE_TYPE: ClassVar[ServiceType]
    TOOL_NAME: ClassVar[str | None] = None  # None: use the service's name
    REQUEST_MODEL: ClassVar[Type[BaseModel]]
    RESPONSE_MODEL: ClassVar[Type[ServiceResponse]]
    OPERATIONS: ClassVar[list[str]]

    def __init__(self, meta: ServiceMeta, client: httpx.AsyncClient):
        self._meta = meta
        self.client = client
        self._closed = False

    @property
    def name(self) -> str:
        return self._meta.name

    @property
    def type(self) -> ServiceType:
        return self.SERVICE_TYPE

    @property
    def description(self) -> str:
        return self._meta.description or f"{self.SERVICE_TYPE.value} service {self.name}"

    @property
    def tool_name(self) -> str:
        return self.TOOL_NAME or self.name

    def as_tool(self) -> FuncTool:
        async def _handler(ctx: ToolContext, request: Req) -> Resp:
            return await self.handle(request)

        return FuncTool(
            name=self.tool_name,
            description=self.description,
            request_model=self.REQUEST_MODEL,
            handler=_handler,
            response_model=self.RESPONSE_MODEL,
        )

    def failure(self, operation: str, message: str) -> Resp:
        return self.RESPONSE_MODEL(operation=operation, success=False, message=message)

    @abstractmethod
    def _dispatch(self, operation: str) -> Callable[[Any], Awaitable[Resp]]:
        pass

    async def handle(self, request: Req) -> Resp:
        operation = request.operation
        logger.info(f"[{self.SERVICE_TYPE.value}] {self.name}: handle operation {operation}")

        if operation not in self.OPERATIONS:
            return self.failure(operation, f"unknown operation: {operation}")
        params = getattr(request, operation, None)
        if params is None:
            logger.info(f"[{self.SERVICE_TYPE.value}] {self.name}: {operation} params missing")
            return self.failure(operation, f"missing {operation} params")

        try:
            return await self._dispatch(operation)(params)
        except httpx.HTTPStatusError as e:
            logger.warning(f"[{self.SERVICE_TYPE.value}] {self.name}: {operation} failed: {e}")
            return self.failure(operation, describe_status_error(e))
        except httpx.TransportError as e:
            logger.error(f"[{self.SERVICE_TYPE.value}] {self.name}: {operation} transport error: {e}")
            raise ToolError(f"{self.SERVICE_TYPE.value} {operation}: {type(e).__name__}: {e}") from e
        except ValueError as e:
            # unusable payload from the remote end
            logger.warning(f"[{self.SERVICE_TYPE.value}] {self.name}: {operation} bad response: {e}")
            return self.failure(operation, f"invalid response: {e}")

    @abstractmethod
    async def _health_probe(self) -> None:
        pass

    async def health(self) -> None:
        try:
            async with asyncio.timeout(HEALTH_TIMEOUT):
                await self._health_probe()
        except (httpx.HTTPError, TimeoutError) as e:
            raise RuntimeError(
                f"{self.SERVICE_TYPE.value} health check failed: {type(e).__name__}: {e}"
            ) from e

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        await self.client.aclose()


def describe_status_error(e: httpx.HTTPStatusError) -> str:
    response = e.response
    body = response.text.strip()
    if len(body) > 500:
        body = body[:500] + "..."
    message = f"HTTP {response.status_code} {response.reason_phrase}".strip()
    return f"{message}: {body}" if body else message


async def get_json(client: httpx.AsyncClient, url: str, **kwargs) -> Any:
    response = await client.get(url, **kwargs)
    response.raise_for_status()
    return response.json()


def build_client(
    base_url: str = "",
    timeout: float | None = None,
    headers: dict[str, str] | None = None,
    auth: httpx.Auth | tuple[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=timeout or DEFAULT_TIMEOUT,
        headers=headers,
        auth=auth,
        transport=transport,
    )


def parse_rfc3339(value: str) -> datetime:
    """Parse an RFC 3339 timestamp; a UTC offset or ``Z`` is required."""
    parsed = datetime.fromisoformat(value.strip())
    if parsed.tzinfo is None:
        raise ValueError(f"timestamp {value!r} has no UTC offset")
    return parsed


def format_rfc3339(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
