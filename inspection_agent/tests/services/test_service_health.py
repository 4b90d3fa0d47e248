# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for service health checks."""
import asyncio
import httpx
import pytest

from src.services import base
from src.services.base import ServiceMeta
from src.services.pagerduty import PagerDutyOptions, PagerDutyService
from src.services.prometheus import PrometheusOptions, PrometheusService

PROM = "http://prom.local:9090"


def prometheus(handler) -> PrometheusService:
    client = httpx.AsyncClient(base_url=PROM, transport=httpx.MockTransport(handler))
    return PrometheusService(ServiceMeta(name="prom"), PrometheusOptions(address=PROM), client=client)


class TestServiceHealth:

    def test_fixed_timeout(self):
        assert base.HEALTH_TIMEOUT == 5.0

    @pytest.mark.asyncio
    async def test_connect_error_is_wrapped(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        service = prometheus(refuse)
        with pytest.raises(RuntimeError, match="prometheus health check failed: ConnectError") as exc:
            await service.health()
        assert isinstance(exc.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_error_status_is_wrapped(self):
        service = prometheus(lambda r: httpx.Response(503, text="unavailable"))
        with pytest.raises(RuntimeError, match="prometheus health check failed: HTTPStatusError"):
            await service.health()

    @pytest.mark.asyncio
    async def test_timeout_is_wrapped(self, monkeypatch):
        monkeypatch.setattr(base, "HEALTH_TIMEOUT", 0.01)

        async def slow(request):
            await asyncio.sleep(1)
            return httpx.Response(200, json={"status": "success", "data": {}})

        service = prometheus(slow)
        with pytest.raises(RuntimeError, match="prometheus health check failed: TimeoutError"):
            await service.health()

    @pytest.mark.asyncio
    async def test_prefix_names_the_service_type(self):
        client = httpx.AsyncClient(
            base_url="https://pd.local",
            transport=httpx.MockTransport(lambda r: httpx.Response(401, json={"error": "nope"})),
        )
        service = PagerDutyService(ServiceMeta(name="pd"), PagerDutyOptions(api_key="k"), client=client)
        with pytest.raises(RuntimeError, match="pagerduty health check failed: HTTPStatusError"):
            await service.health()
