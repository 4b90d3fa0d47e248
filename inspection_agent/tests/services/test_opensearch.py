# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for the OpenSearch service."""
import json
import httpx
import pytest

from src.services.base import ServiceMeta
from src.services.opensearch import (
    OpenSearchOptions,
    OpenSearchRequest,
    OpenSearchService,
    SearchParams,
)
from src.types.errors import ToolError

QUERY = {"query": {"match": {"level": "error"}}}


def make_service(handler, addresses=("http://os-1:9200",)):
    seen: list[httpx.Request] = []

    def _record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(_record))
    opts = OpenSearchOptions(addresses=list(addresses), index="logs-*")
    return OpenSearchService(ServiceMeta(name="logs"), opts, client=client), seen


class TestOpenSearchOptions:

    def test_addresses_cleaned(self):
        opts = OpenSearchOptions(addresses=[" http://a:9200/ "], index="logs")
        assert opts.addresses == ["http://a:9200"]

    @pytest.mark.parametrize(
        "raw",
        [
            {"addresses": [], "index": "logs"},
            {"addresses": ["a:9200"], "index": "logs"},
            {"addresses": ["http://a:9200"]},
        ],
    )
    def test_invalid(self, raw):
        with pytest.raises(ValueError):
            OpenSearchOptions.model_validate(raw)

    def test_string_body_is_decoded(self):
        assert SearchParams(body=json.dumps(QUERY)).body == QUERY
        assert SearchParams(body="  ").body is None


class TestOpenSearchService:

    @pytest.mark.asyncio
    async def test_search(self):
        hits = {"hits": {"total": {"value": 1}, "hits": [{"_source": {"msg": "oom"}}]}}
        service, seen = make_service(lambda r: httpx.Response(200, json=hits))
        response = await service.handle(OpenSearchRequest(operation="search", search={"body": QUERY}))

        assert response.success
        assert response.data == hits
        assert str(seen[0].url) == "http://os-1:9200/logs-*/_search"
        assert json.loads(seen[0].content) == QUERY

    @pytest.mark.asyncio
    async def test_index_override(self):
        service, seen = make_service(lambda r: httpx.Response(200, json={}))
        await service.handle(
            OpenSearchRequest(operation="search", search={"index": "audit", "body": QUERY})
        )
        assert seen[0].url.path == "/audit/_search"

    @pytest.mark.asyncio
    async def test_body_required(self):
        service, seen = make_service(lambda r: httpx.Response(200, json={}))
        response = await service.handle(OpenSearchRequest(operation="search", search={}))
        assert not response.success
        assert response.message == "body is required for opensearch query"
        assert seen == []

    @pytest.mark.asyncio
    async def test_error_status(self):
        service, _ = make_service(lambda r: httpx.Response(400, text="parsing_exception"))
        response = await service.handle(OpenSearchRequest(operation="search", search={"body": QUERY}))
        assert not response.success
        assert response.message == "opensearch error: [400] parsing_exception"

    @pytest.mark.asyncio
    async def test_falls_over_to_next_address(self):
        def handler(request):
            if request.url.host == "os-1":
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json={"hits": {}})

        service, seen = make_service(handler, addresses=("http://os-1:9200", "http://os-2:9200"))
        response = await service.handle(OpenSearchRequest(operation="search", search={"body": QUERY}))
        assert response.success
        assert [r.url.host for r in seen] == ["os-1", "os-2"]

    @pytest.mark.asyncio
    async def test_all_addresses_down(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        service, _ = make_service(handler, addresses=("http://os-1:9200", "http://os-2:9200"))
        with pytest.raises(ToolError):
            await service.handle(OpenSearchRequest(operation="search", search={"body": QUERY}))

    @pytest.mark.asyncio
    async def test_no_addresses(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
        opts = OpenSearchOptions.model_construct(addresses=[], index="logs-*")
        service = OpenSearchService(ServiceMeta(name="logs"), opts, client=client)
        with pytest.raises(ToolError, match="no opensearch addresses configured"):
            await service.handle(OpenSearchRequest(operation="search", search={"body": QUERY}))
        with pytest.raises(RuntimeError, match="opensearch health check failed: TransportError"):
            await service.health()
