# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import json
import logging

from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator

import httpx

from .base import (
    BaseService,
    ServiceMeta,
    ServiceResponse,
    ServiceType,
    build_client,
    operation_field,
)
from .options import parse_options, register_options_parser
from .registry import register_service
from ..utils.duration import Duration

logger = logging.getLogger(__name__)

OPERATIONS = ["search"]


class OpenSearchOptions(BaseModel):
    addresses: list[str] = Field(..., min_length=1)
    username: str = ""
    password: str = ""
    index: str = Field(..., min_length=1)
    timeout: Optional[Duration] = None

    class Config:
        extra = "forbid"

    @field_validator("addresses")
    @classmethod
    def validate_addresses(cls, v: list[str]) -> list[str]:
        cleaned = []
        for address in v:
            address = address.strip()
            if not address.startswith(("http://", "https://")):
                raise ValueError(f"address must be an http(s) URL, got {address!r}")
            cleaned.append(address.rstrip("/"))
        return cleaned


class SearchParams(BaseModel):
    index: Optional[str] = Field(
        default=None, description="Index pattern to search, defaults to configured index"
    )
    body: Optional[dict[str, Any]] = Field(
        default=None, description="OpenSearch DSL query body in JSON format, required"
    )

    @field_validator("body", mode="before")
    @classmethod
    def decode_body(cls, v: Any) -> Any:
        # models sometimes send the DSL as a JSON string
        if isinstance(v, str):
            return json.loads(v) if v.strip() else None
        return v


class OpenSearchRequest(BaseModel):
    operation: str = operation_field(OPERATIONS)
    search: Optional[SearchParams] = None


class OpenSearchResponse(ServiceResponse):
    data: Optional[dict[str, Any]] = None


class OpenSearchService(BaseService[OpenSearchRequest, OpenSearchResponse]):
    """Query DSL searches against an OpenSearch cluster.

    Each request goes to the configured addresses in order until one of them
    answers at the transport level.
    """

    SERVICE_TYPE = ServiceType.OPENSEARCH
    TOOL_NAME = "opensearch_service"
    REQUEST_MODEL = OpenSearchRequest
    RESPONSE_MODEL = OpenSearchResponse
    OPERATIONS = OPERATIONS

    def __init__(
        self,
        meta: ServiceMeta,
        options: OpenSearchOptions,
        client: httpx.AsyncClient | None = None,
    ):
        if client is None:
            timeout = options.timeout.total_seconds() if options.timeout else None
            auth = (options.username, options.password) if options.username else None
            client = build_client(timeout=timeout, auth=auth)
        super().__init__(meta, client)
        self.options = options

    def _dispatch(self, operation: str):
        return self._search

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Try each address in order; the last transport error is raised if all fail."""
        last_error: httpx.TransportError | None = None
        for address in self.options.addresses:
            try:
                return await self.client.request(method, f"{address}{path}", **kwargs)
            except httpx.TransportError as e:
                logger.warning(f"[opensearch] {method} {address}{path} failed: {e}")
                last_error = e
        if last_error is None:
            raise httpx.TransportError("no opensearch addresses configured")
        raise last_error

    async def _search(self, params: SearchParams) -> OpenSearchResponse:
        index = params.index or self.options.index
        if not params.body:
            return self.failure("search", "body is required for opensearch query")

        logger.info(f"[opensearch] search index={index}")
        response = await self._request("POST", f"/{index}/_search", json=params.body)
        if response.is_error:
            return self.failure(
                "search", f"opensearch error: [{response.status_code}] {response.text[:500]}"
            )
        return OpenSearchResponse(operation="search", success=True, data=response.json())

    async def _health_probe(self) -> None:
        response = await self._request("HEAD", "/")
        response.raise_for_status()


def new_opensearch_service(meta: ServiceMeta, options: BaseModel) -> OpenSearchService:
    if not isinstance(options, OpenSearchOptions):
        raise TypeError(f"invalid opensearch options type, got {type(options).__name__}")
    return OpenSearchService(meta, options)


register_options_parser(
    ServiceType.OPENSEARCH,
    lambda raw: parse_options(OpenSearchOptions, raw, ServiceType.OPENSEARCH.value),
)
register_service(ServiceType.OPENSEARCH, new_opensearch_service)
