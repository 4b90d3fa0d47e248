# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import logging

from datetime import datetime, timezone
from typing import Any, Optional
from pydantic import BaseModel, Field, field_validator

import httpx

from .base import (
    BaseService,
    ServiceMeta,
    ServiceResponse,
    ServiceType,
    build_client,
    format_rfc3339,
    get_json,
    operation_field,
    parse_rfc3339,
)
from .options import parse_options, register_options_parser
from .registry import register_service
from ..utils.duration import Duration, parse_duration

logger = logging.getLogger(__name__)

OPERATIONS = ["query_range", "query_instant"]


class PrometheusOptions(BaseModel):
    address: str = Field(..., min_length=1)
    timeout: Optional[Duration] = None

    class Config:
        extra = "forbid"

    @field_validator("address")
    @classmethod
    def validate_address(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"address must be an http(s) URL, got {v!r}")
        return v.rstrip("/")


class QueryRangeParams(BaseModel):
    promql: str = Field(..., description="PromQL query expression")
    start_time: str = Field(..., description="Start time in RFC3339 format")
    end_time: str = Field(..., description="End time in RFC3339 format")
    step: str = Field(default="1m", description="Query resolution step, e.g. 30s, 1m, 5m")


class QueryInstantParams(BaseModel):
    promql: str = Field(..., description="PromQL query expression")
    time: Optional[str] = Field(
        default=None, description="Evaluation time in RFC3339 format, defaults to now"
    )


class PrometheusRequest(BaseModel):
    operation: str = operation_field(OPERATIONS)
    query_range: Optional[QueryRangeParams] = None
    query_instant: Optional[QueryInstantParams] = None


class PrometheusResponse(ServiceResponse):
    data: Any = None
    warnings: Optional[list[str]] = None


class PrometheusService(BaseService[PrometheusRequest, PrometheusResponse]):
    """PromQL range and instant queries against the Prometheus HTTP API."""

    SERVICE_TYPE = ServiceType.PROMETHEUS
    TOOL_NAME = "prometheus_service"
    REQUEST_MODEL = PrometheusRequest
    RESPONSE_MODEL = PrometheusResponse
    OPERATIONS = OPERATIONS

    def __init__(
        self,
        meta: ServiceMeta,
        options: PrometheusOptions,
        client: httpx.AsyncClient | None = None,
    ):
        timeout = options.timeout.total_seconds() if options.timeout else None
        super().__init__(meta, client or build_client(options.address, timeout))
        self.options = options

    def _dispatch(self, operation: str):
        return {
            "query_range": self._query_range,
            "query_instant": self._query_instant,
        }[operation]

    async def _query_range(self, params: QueryRangeParams) -> PrometheusResponse:
        op = "query_range"
        try:
            start = parse_rfc3339(params.start_time)
        except ValueError as e:
            return self.failure(op, f"parse start_time: {e}")
        try:
            end = parse_rfc3339(params.end_time)
        except ValueError as e:
            return self.failure(op, f"parse end_time: {e}")
        try:
            step = parse_duration(params.step or "1m")
        except ValueError as e:
            return self.failure(op, f"parse step: {e}")
        if step.total_seconds() <= 0:
            return self.failure(op, "parse step: step must be positive")

        logger.info(
            f"[prometheus] query_range promql={params.promql} start={params.start_time} "
            f"end={params.end_time} step={params.step}"
        )
        return await self._query(
            op,
            "/api/v1/query_range",
            {
                "query": params.promql,
                "start": format_rfc3339(start),
                "end": format_rfc3339(end),
                "step": f"{step.total_seconds():g}",
            },
        )

    async def _query_instant(self, params: QueryInstantParams) -> PrometheusResponse:
        op = "query_instant"
        if params.time:
            try:
                ts = parse_rfc3339(params.time)
            except ValueError as e:
                return self.failure(op, f"parse time: {e}")
        else:
            ts = datetime.now(timezone.utc)

        logger.info(f"[prometheus] query_instant promql={params.promql} time={format_rfc3339(ts)}")
        return await self._query(
            op, "/api/v1/query", {"query": params.promql, "time": format_rfc3339(ts)}
        )

    async def _query(self, op: str, path: str, query: dict[str, str]) -> PrometheusResponse:
        response = await self.client.get(path, params=query)
        # Prometheus reports bad queries with a 4xx and a JSON error body
        try:
            body = response.json()
        except ValueError:
            response.raise_for_status()
            raise
        if not isinstance(body, dict):
            raise ValueError(f"unexpected body type {type(body).__name__}")

        warnings = body.get("warnings") or None
        if body.get("status") != "success":
            error_type = body.get("errorType", "error")
            message = body.get("error") or f"HTTP {response.status_code}"
            logger.warning(f"[prometheus] {op} failed: {error_type}: {message}")
            return PrometheusResponse(
                operation=op,
                success=False,
                message=f"{error_type}: {message}",
                warnings=warnings,
            )
        response.raise_for_status()
        return PrometheusResponse(
            operation=op, success=True, data=body.get("data"), warnings=warnings
        )

    async def _health_probe(self) -> None:
        await get_json(self.client, "/api/v1/status/config")


def new_prometheus_service(meta: ServiceMeta, options: BaseModel) -> PrometheusService:
    if not isinstance(options, PrometheusOptions):
        raise TypeError(f"invalid prometheus options type, got {type(options).__name__}")
    return PrometheusService(meta, options)


register_options_parser(
    ServiceType.PROMETHEUS,
    lambda raw: parse_options(PrometheusOptions, raw, ServiceType.PROMETHEUS.value),
)
register_service(ServiceType.PROMETHEUS, new_prometheus_service)
