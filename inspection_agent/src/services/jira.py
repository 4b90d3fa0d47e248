# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
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
    describe_status_error,
    get_json,
    operation_field,
)
from .options import parse_options, register_options_parser
from .registry import register_service
from ..utils.duration import Duration

logger = logging.getLogger(__name__)

API_PREFIX = "/rest/api/2"
DEFAULT_MAX_RESULTS = 30
DEFAULT_PROJECT_KEY = "ONEPOINT"
SEARCH_FIELDS = [
    "id", "key", "summary", "status",
    "assignee", "reporter", "priority",
    "created", "updated", "duedate",
]

OPERATIONS = [
    "list_issues",
    "create_issue",
    "get_issue",
    "update_issue",
    "add_comment",
    "delete_issue",
]


class JiraOptions(BaseModel):
    url: str = Field(..., min_length=1)
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    timeout: Optional[Duration] = None

    class Config:
        extra = "forbid"

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"url must be an http(s) URL, got {v!r}")
        return v.rstrip("/")


class Person(BaseModel):
    display_name: str = ""
    email: str = ""


class Priority(BaseModel):
    name: str = ""
    description: str = ""


class Comment(BaseModel):
    body: str
    author: Optional[Person] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Issue(BaseModel):
    id: Optional[str] = None
    key: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = Field(
        default=None, description="Target status name; update_issue moves the issue there"
    )
    assignee: Optional[Person] = None
    reporter: Optional[Person] = None
    labels: Optional[list[str]] = None
    comments: Optional[list[Comment]] = Field(
        default=None, description="For add_comment, the last entry is posted"
    )
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    due_date: Optional[str] = None
    priority: Optional[Priority] = None
    project: Optional[str] = None
    type: Optional[str] = None

    @property
    def id_or_key(self) -> str:
        return self.id or self.key or ""

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "Issue":
        fields = raw.get("fields") or {}

        def person(value: Any) -> Optional[Person]:
            if not value:
                return None
            return Person(
                display_name=value.get("displayName") or "",
                email=value.get("emailAddress") or "",
            )

        priority = fields.get("priority")
        return cls(
            id=raw.get("id"),
            key=raw.get("key"),
            summary=fields.get("summary"),
            description=fields.get("description"),
            status=(fields.get("status") or {}).get("name"),
            assignee=person(fields.get("assignee")),
            reporter=person(fields.get("reporter")),
            labels=fields.get("labels") or None,
            created_at=fields.get("created"),
            updated_at=fields.get("updated"),
            due_date=fields.get("duedate"),
            priority=Priority(
                name=priority.get("name") or "", description=priority.get("description") or ""
            ) if priority else None,
            project=(fields.get("project") or {}).get("key"),
            type=(fields.get("issuetype") or {}).get("name"),
        )


class ListIssuesParams(BaseModel):
    jql: str = Field(default="", description="JQL query string to search issues")
    max_results: int = Field(default=0, ge=0, description="Maximum number of results to return")


class CreateIssueParams(BaseModel):
    project: str = Field(
        default="", description=f"Project key (default: {DEFAULT_PROJECT_KEY} if not specified)"
    )
    type: str = Field(default="", description="Issue type name or id (e.g., 'DevOps' or '10001')")
    summary: str = Field(default="", description="Issue summary/title, required")
    description: str = Field(default="", description="Issue description")
    labels: Optional[list[str]] = Field(default=None, description="Issue labels")
    priority: Optional[Priority] = Field(default=None, description="Issue priority")
    assignee: Optional[Person] = Field(default=None, description="Issue assignee")


class JiraRequest(BaseModel):
    operation: str = operation_field(OPERATIONS)
    list_issues: Optional[ListIssuesParams] = Field(
        default=None, description="Required when operation is list_issues"
    )
    create_issue: Optional[CreateIssueParams] = Field(
        default=None, description="Required when operation is create_issue"
    )
    get_issue: Optional[Issue] = Field(
        default=None, description="Required when operation is get_issue; needs id or key"
    )
    update_issue: Optional[Issue] = Field(
        default=None,
        description="Required when operation is update_issue; id or key plus the fields to change",
    )
    add_comment: Optional[Issue] = Field(
        default=None,
        description="Required when operation is add_comment; id or key plus comments",
    )
    delete_issue: Optional[Issue] = Field(
        default=None, description="Required when operation is delete_issue; needs id or key"
    )


class JiraResponse(ServiceResponse):
    issue: Optional[Issue] = None
    issues: Optional[list[Issue]] = None


def _editable_fields(
    summary: Optional[str],
    description: Optional[str],
    labels: Optional[list[str]],
    priority: Optional[Priority],
    assignee: Optional[Person],
) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    if summary:
        fields["summary"] = summary
    if description:
        fields["description"] = description
    if labels:
        fields["labels"] = labels
    if priority is not None:
        fields["priority"] = {"name": priority.name}
    if assignee is not None:
        fields["assignee"] = {"name": assignee.display_name}
    return fields


class JiraService(BaseService[JiraRequest, JiraResponse]):
    """Issue tracking through the Jira REST API v2 with basic auth.

    Unlike the other services the tool is named after the configured
    service, so several Jira instances can be exposed side by side.
    """

    SERVICE_TYPE = ServiceType.JIRA
    REQUEST_MODEL = JiraRequest
    RESPONSE_MODEL = JiraResponse
    OPERATIONS = OPERATIONS

    def __init__(
        self,
        meta: ServiceMeta,
        options: JiraOptions,
        client: httpx.AsyncClient | None = None,
    ):
        if client is None:
            timeout = options.timeout.total_seconds() if options.timeout else None
            client = build_client(
                options.url + API_PREFIX,
                timeout,
                headers={"Accept": "application/json"},
                auth=(options.username, options.password),
            )
        super().__init__(meta, client)
        self.options = options

    def _dispatch(self, operation: str):
        return {
            "list_issues": self._list_issues,
            "create_issue": self._create_issue,
            "get_issue": self._get_issue,
            "update_issue": self._update_issue,
            "add_comment": self._add_comment,
            "delete_issue": self._delete_issue,
        }[operation]

    def _api_failure(self, op: str, action: str, e: httpx.HTTPStatusError) -> JiraResponse:
        logger.warning(f"[jira] {op} failed: {e}")
        return self.failure(op, f"failed to {action}: {describe_status_error(e)}")

    async def _list_issues(self, params: ListIssuesParams) -> JiraResponse:
        op = "list_issues"
        logger.info(f"[jira] list_issues jql={params.jql} max_results={params.max_results}")
        if not params.jql.strip():
            return self.failure(op, "JQL query is required")

        try:
            body = await get_json(
                self.client,
                "/search",
                params={
                    "jql": params.jql,
                    "maxResults": params.max_results or DEFAULT_MAX_RESULTS,
                    "fields": ",".join(SEARCH_FIELDS),
                },
            )
        except httpx.HTTPStatusError as e:
            return self._api_failure(op, "list issues", e)

        issues = [Issue.from_api(raw) for raw in body.get("issues") or []]
        logger.info(f"[jira] list_issues found {len(issues)} issues")
        return JiraResponse(
            operation=op, success=True, message="Issues listed successfully", issues=issues
        )

    async def _create_issue(self, params: CreateIssueParams) -> JiraResponse:
        op = "create_issue"
        logger.info(
            f"[jira] create_issue project={params.project} type={params.type} summary={params.summary}"
        )
        if not params.type:
            return self.failure(op, "issue type is required for creating issue")
        if not params.summary:
            return self.failure(op, "summary is required for creating issue")

        fields = {
            "project": {"key": params.project or DEFAULT_PROJECT_KEY},
            # the API accepts either the type's name or its id here
            "issuetype": {"name": params.type},
        }
        fields.update(
            _editable_fields(
                params.summary, params.description, params.labels, params.priority, params.assignee
            )
        )
        try:
            response = await self.client.post("/issue", json={"fields": fields})
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            return self._api_failure(op, "create issue", e)

        created = Issue.from_api(response.json())
        logger.info(f"[jira] create_issue succeeded, issue key={created.key}")
        return JiraResponse(
            operation=op, success=True, message="Issue created successfully", issue=created
        )

    async def _get_issue(self, issue: Issue) -> JiraResponse:
        op = "get_issue"
        if not issue.id_or_key:
            return self.failure(op, "missing issue id or key")
        logger.info(f"[jira] get_issue id_or_key={issue.id_or_key}")

        try:
            body = await get_json(self.client, f"/issue/{issue.id_or_key}")
        except httpx.HTTPStatusError as e:
            return self._api_failure(op, "get issue", e)
        return JiraResponse(
            operation=op,
            success=True,
            message="Issue retrieved successfully",
            issue=Issue.from_api(body),
        )

    async def _transition_to(self, id_or_key: str, status: str) -> None:
        body = await get_json(self.client, f"/issue/{id_or_key}/transitions")
        for transition in body.get("transitions") or []:
            if (transition.get("to") or {}).get("name") == status:
                response = await self.client.post(
                    f"/issue/{id_or_key}/transitions",
                    json={"transition": {"id": transition["id"]}},
                )
                response.raise_for_status()
                return
        raise LookupError(f"no transition found to status: {status}")

    async def _update_issue(self, issue: Issue) -> JiraResponse:
        op = "update_issue"
        if not issue.id_or_key:
            return self.failure(op, "missing issue id or key")
        logger.info(f"[jira] update_issue id_or_key={issue.id_or_key}")

        if issue.status:
            try:
                await self._transition_to(issue.id_or_key, issue.status)
            except LookupError as e:
                return self.failure(op, f"failed to update status: {e}")
            except httpx.HTTPStatusError as e:
                return self._api_failure(op, "update status", e)

        fields = _editable_fields(
            issue.summary, issue.description, issue.labels, issue.priority, issue.assignee
        )
        if fields:
            try:
                response = await self.client.put(f"/issue/{issue.id_or_key}", json={"fields": fields})
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                return self._api_failure(op, "update issue", e)

        return JiraResponse(operation=op, success=True, message="Issue updated successfully")

    async def _add_comment(self, issue: Issue) -> JiraResponse:
        op = "add_comment"
        if not issue.id_or_key:
            return self.failure(op, "missing issue id or key")
        if not issue.comments or not issue.comments[-1].body.strip():
            return self.failure(op, "missing comment body")
        logger.info(f"[jira] add_comment id_or_key={issue.id_or_key}")

        try:
            response = await self.client.post(
                f"/issue/{issue.id_or_key}/comment", json={"body": issue.comments[-1].body}
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            return self._api_failure(op, "add comment", e)
        return JiraResponse(operation=op, success=True, message="Comment added successfully")

    async def _delete_issue(self, issue: Issue) -> JiraResponse:
        op = "delete_issue"
        if not issue.id_or_key:
            return self.failure(op, "missing issue id or key")
        logger.info(f"[jira] delete_issue id_or_key={issue.id_or_key}")

        try:
            response = await self.client.delete(f"/issue/{issue.id_or_key}")
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            return self._api_failure(op, "delete issue", e)
        return JiraResponse(operation=op, success=True, message="Issue deleted successfully")

    async def _health_probe(self) -> None:
        await get_json(self.client, "/myself")


def new_jira_service(meta: ServiceMeta, options: BaseModel) -> JiraService:
    if not isinstance(options, JiraOptions):
        raise TypeError(f"invalid jira options type, got {type(options).__name__}")
    return JiraService(meta, options)


register_options_parser(
    ServiceType.JIRA,
    lambda raw: parse_options(JiraOptions, raw, ServiceType.JIRA.value),
)
register_service(ServiceType.JIRA, new_jira_service)
