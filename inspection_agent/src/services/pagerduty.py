# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
import logging

from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from pydantic import BaseModel, Field

import httpx

from .base import (
    BaseService,
    ServiceMeta,
    ServiceResponse,
    ServiceType,
    build_client,
    describe_status_error,
    format_rfc3339,
    get_json,
    operation_field,
)
from .options import parse_options, register_options_parser
from .registry import register_service
from ..utils.duration import Duration

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.pagerduty.com"
DEFAULT_LIMIT = 50
DEFAULT_WINDOW = timedelta(hours=24)
SERVICES_PAGE_SIZE = 100

OPERATIONS = [
    "list_incidents",
    "snooze_alert",
    "acknowledge_incident",
    "resolve_incident",
    "get_incident",
]


class PagerDutyOptions(BaseModel):
    api_key: str = Field(..., min_length=1)
    # requester email sent as the From header on mutating calls
    from_: str = Field(default="", alias="from")
    base_url: str = DEFAULT_BASE_URL
    timeout: Optional[Duration] = None

    class Config:
        extra = "forbid"
        populate_by_name = True


class ListIncidentsParams(BaseModel):
    since: Optional[str] = Field(
        default=None,
        description="Start time in RFC3339 format, defaults to 24 hours ago if not provided",
    )
    until: Optional[str] = Field(
        default=None, description="End time in RFC3339 format, defaults to now if not provided"
    )
    service_ids: Optional[list[str]] = Field(default=None, description="Filter by service IDs")
    service_names: Optional[list[str]] = Field(
        default=None,
        description="Filter by service names (will be converted to service IDs)",
    )
    statuses: Optional[list[str]] = Field(
        default=None, description="Filter by statuses: triggered, acknowledged, resolved"
    )
    limit: int = Field(default=0, ge=0)


class SnoozeAlertParams(BaseModel):
    incident_id: str
    duration: int = Field(..., gt=0, description="Snooze duration in minutes")


class IncidentParams(BaseModel):
    incident_id: str


class PagerDutyRequest(BaseModel):
    operation: str = operation_field(OPERATIONS)
    list_incidents: Optional[ListIncidentsParams] = None
    snooze_alert: Optional[SnoozeAlertParams] = None
    acknowledge_incident: Optional[IncidentParams] = None
    resolve_incident: Optional[IncidentParams] = None
    get_incident: Optional[IncidentParams] = None


class Incident(BaseModel):
    id: str = ""
    title: str = ""
    status: str = ""
    urgency: str = ""
    service_name: str = ""
    service_id: str = ""
    created_at: str = ""
    html_url: str = ""

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "Incident":
        service = raw.get("service") or {}
        return cls(
            id=raw.get("id") or "",
            title=raw.get("title") or "",
            status=raw.get("status") or "",
            urgency=raw.get("urgency") or "",
            service_name=service.get("summary") or "",
            service_id=service.get("id") or "",
            created_at=raw.get("created_at") or "",
            html_url=raw.get("html_url") or "",
        )


class PagerDutyResponse(ServiceResponse):
    incidents: Optional[list[Incident]] = None
    total: Optional[int] = None
    incident: Optional[Incident] = None
    snooze_until: Optional[str] = None


class ServiceNamesNotFound(Exception):
    def __init__(self, names: list[str]):
        super().__init__(f"service names not found: {names}")
        self.names = names


class PagerDutyService(BaseService[PagerDutyRequest, PagerDutyResponse]):
    """Incident listing and triage through the PagerDuty REST API v2."""

    SERVICE_TYPE = ServiceType.PAGERDUTY
    TOOL_NAME = "pagerduty_service"
    REQUEST_MODEL = PagerDutyRequest
    RESPONSE_MODEL = PagerDutyResponse
    OPERATIONS = OPERATIONS

    def __init__(
        self,
        meta: ServiceMeta,
        options: PagerDutyOptions,
        client: httpx.AsyncClient | None = None,
    ):
        if client is None:
            timeout = options.timeout.total_seconds() if options.timeout else None
            client = build_client(
                options.base_url.rstrip("/"),
                timeout,
                headers={
                    "Authorization": f"Token token={options.api_key}",
                    "Accept": "application/vnd.pagerduty+json;version=2",
                    "Content-Type": "application/json",
                },
            )
        super().__init__(meta, client)
        self.options = options

    def _dispatch(self, operation: str):
        return {
            "list_incidents": self._list_incidents,
            "snooze_alert": self._snooze_alert,
            "acknowledge_incident": self._acknowledge_incident,
            "resolve_incident": self._resolve_incident,
            "get_incident": self._get_incident,
        }[operation]

    def _from_header(self) -> dict[str, str]:
        return {"From": self.options.from_} if self.options.from_ else {}

    async def _list_incidents(self, params: ListIncidentsParams) -> PagerDutyResponse:
        op = "list_incidents"
        logger.info(
            f"[pagerduty] list_incidents limit={params.limit} statuses={params.statuses} "
            f"service_ids={params.service_ids} service_names={params.service_names}"
        )
        limit = params.limit or DEFAULT_LIMIT
        now = datetime.now(timezone.utc)
        since = params.since or format_rfc3339(now - DEFAULT_WINDOW)
        until = params.until or format_rfc3339(now)

        service_ids = list(params.service_ids or [])
        if params.service_names:
            try:
                resolved = await self._resolve_service_names(params.service_names)
            except ServiceNamesNotFound as e:
                logger.warning(f"[pagerduty] resolve service names failed: {e}")
                return self.failure(op, f"failed to resolve service names: {e}")
            except httpx.HTTPStatusError as e:
                logger.warning(f"[pagerduty] list services failed: {e}")
                return self.failure(
                    op, f"failed to resolve service names: list services: {describe_status_error(e)}"
                )
            service_ids = list(dict.fromkeys(service_ids + resolved))

        query: list[tuple[str, Any]] = [("since", since), ("until", until), ("limit", limit)]
        query += [("service_ids[]", sid) for sid in service_ids]
        query += [("statuses[]", status) for status in params.statuses or []]

        body = await get_json(self.client, "/incidents", params=query)
        incidents = [Incident.from_api(raw) for raw in body.get("incidents") or []]
        logger.info(f"[pagerduty] list_incidents found {len(incidents)} incidents")
        return PagerDutyResponse(
            operation=op, success=True, incidents=incidents, total=len(incidents)
        )

    async def _resolve_service_names(self, names: list[str]) -> list[str]:
        name_to_id: dict[str, str] = {}
        offset = 0
        while True:
            body = await get_json(
                self.client,
                "/services",
                params={"limit": SERVICES_PAGE_SIZE, "offset": offset},
            )
            services = body.get("services") or []
            for svc in services:
                name_to_id[svc.get("name", "")] = svc.get("id", "")
            if not body.get("more") or not services:
                break
            offset += len(services)

        not_found = [name for name in names if name not in name_to_id]
        if not_found:
            raise ServiceNamesNotFound(not_found)
        return [name_to_id[name] for name in names]

    async def _snooze_alert(self, params: SnoozeAlertParams) -> PagerDutyResponse:
        logger.info(
            f"[pagerduty] snooze_alert incident_id={params.incident_id} "
            f"duration={params.duration} minutes"
        )
        response = await self.client.post(
            f"/incidents/{params.incident_id}/snooze",
            json={"duration": params.duration * 60},
            headers=self._from_header(),
        )
        response.raise_for_status()
        raw = response.json().get("incident") or {}
        snooze_until = datetime.now(timezone.utc) + timedelta(minutes=params.duration)
        return PagerDutyResponse(
            operation="snooze_alert",
            success=True,
            message=f"Snoozed incident {params.incident_id} for {params.duration} minutes",
            incident=Incident(id=raw.get("id") or params.incident_id, status=raw.get("status") or ""),
            snooze_until=format_rfc3339(snooze_until),
        )

    async def _manage_incident(self, incident_id: str, status: str) -> None:
        response = await self.client.put(
            "/incidents",
            json={
                "incidents": [
                    {"id": incident_id, "type": "incident_reference", "status": status}
                ]
            },
            headers=self._from_header(),
        )
        response.raise_for_status()

    async def _acknowledge_incident(self, params: IncidentParams) -> PagerDutyResponse:
        logger.info(f"[pagerduty] acknowledge_incident incident_id={params.incident_id}")
        await self._manage_incident(params.incident_id, "acknowledged")
        return PagerDutyResponse(
            operation="acknowledge_incident",
            success=True,
            message=f"Acknowledged incident {params.incident_id}",
        )

    async def _resolve_incident(self, params: IncidentParams) -> PagerDutyResponse:
        logger.info(f"[pagerduty] resolve_incident incident_id={params.incident_id}")
        await self._manage_incident(params.incident_id, "resolved")
        return PagerDutyResponse(
            operation="resolve_incident",
            success=True,
            message=f"Resolved incident {params.incident_id}",
        )

    async def _get_incident(self, params: IncidentParams) -> PagerDutyResponse:
        logger.info(f"[pagerduty] get_incident incident_id={params.incident_id}")
        body = await get_json(self.client, f"/incidents/{params.incident_id}")
        return PagerDutyResponse(
            operation="get_incident",
            success=True,
            incident=Incident.from_api(body.get("incident") or {}),
        )

    async def _health_probe(self) -> None:
        await get_json(self.client, "/abilities")


def new_pagerduty_service(meta: ServiceMeta, options: BaseModel) -> PagerDutyService:
    if not isinstance(options, PagerDutyOptions):
        raise TypeError(f"invalid pagerduty options type, got {type(options).__name__}")
    return PagerDutyService(meta, options)


register_options_parser(
    ServiceType.PAGERDUTY,
    lambda raw: parse_options(PagerDutyOptions, raw, ServiceType.PAGERDUTY.value),
)
register_service(ServiceType.PAGERDUTY, new_pagerduty_service)
