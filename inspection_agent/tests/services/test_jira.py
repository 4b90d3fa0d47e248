# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for the Jira service."""
import json
import httpx
import pytest

from src.services.base import ServiceMeta
from src.services.jira import Issue, JiraOptions, JiraRequest, JiraService
from src.types.tool_types import ToolContext

API = "https://jira.local/rest/api/2"

RAW_ISSUE = {
    "id": "10001",
    "key": "OPS-1",
    "fields": {
        "summary": "Latency spike",
        "status": {"name": "Open"},
        "assignee": {"displayName": "Sam Oncall", "emailAddress": "sam@example.com"},
        "labels": ["sre"],
        "priority": {"name": "High"},
        "project": {"key": "OPS"},
        "issuetype": {"name": "Incident"},
        "created": "2024-05-01T10:00:00.000+0000",
    },
}


def make_service(handler):
    seen: list[httpx.Request] = []

    def _record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    client = httpx.AsyncClient(base_url=API, transport=httpx.MockTransport(_record))
    opts = JiraOptions(url="https://jira.local", username="bot", password="pw")
    return JiraService(ServiceMeta(name="jira_ops", description="Ops Jira"), opts, client=client), seen


def request(operation: str, **fields) -> JiraRequest:
    return JiraRequest.model_validate({"operation": operation, **fields})


class TestIssue:

    def test_from_api(self):
        issue = Issue.from_api(RAW_ISSUE)
        assert issue.key == "OPS-1"
        assert issue.status == "Open"
        assert issue.assignee.display_name == "Sam Oncall"
        assert issue.assignee.email == "sam@example.com"
        assert issue.priority.name == "High"
        assert issue.project == "OPS"
        assert issue.type == "Incident"
        assert issue.id_or_key == "10001"


class TestJiraService:

    def test_tool_named_after_service(self):
        service, _ = make_service(lambda r: httpx.Response(200))
        tool = service.as_tool()
        assert tool.name == "jira_ops"
        assert tool.description == "Ops Jira"

    def test_default_client(self):
        service = JiraService(
            ServiceMeta(name="j"), JiraOptions(url="https://jira.local/", username="u", password="p")
        )
        assert str(service.client.base_url).rstrip("/") == API
        assert isinstance(service.client.auth, httpx.BasicAuth)

    def test_params_named_after_operations(self):
        service, _ = make_service(lambda r: httpx.Response(200))
        properties = service.as_tool().input_schema()["properties"]
        assert sorted(properties) == sorted(
            ["operation", "list_issues", "create_issue", "get_issue",
             "update_issue", "add_comment", "delete_issue"]
        )
        assert properties["operation"]["enum"] == [
            "list_issues", "create_issue", "get_issue",
            "update_issue", "add_comment", "delete_issue",
        ]

    @pytest.mark.asyncio
    async def test_tool_call_with_operation_object(self):
        service, seen = make_service(lambda r: httpx.Response(200, json={"issues": [RAW_ISSUE]}))
        out = await service.as_tool().handle(
            ToolContext("inv"),
            json.dumps({"operation": "list_issues", "list_issues": {"jql": "project = X"}}),
        )
        result = json.loads(out)
        assert result["success"] is True
        assert result["issues"][0]["key"] == "OPS-1"
        assert seen[0].url.params["jql"] == "project = X"

    @pytest.mark.asyncio
    async def test_issue_operation_missing_object(self):
        service, seen = make_service(lambda r: httpx.Response(200))
        response = await service.handle(request("get_issue", delete_issue={"key": "OPS-1"}))
        assert not response.success
        assert response.message == "missing get_issue params"
        assert seen == []

    @pytest.mark.asyncio
    async def test_list_issues(self):
        service, seen = make_service(lambda r: httpx.Response(200, json={"issues": [RAW_ISSUE]}))
        response = await service.handle(
            request("list_issues", list_issues={"jql": "project = OPS"})
        )
        assert response.success
        assert response.message == "Issues listed successfully"
        assert response.issues[0].key == "OPS-1"
        assert seen[0].url.path == "/rest/api/2/search"
        assert seen[0].url.params["maxResults"] == "30"

    @pytest.mark.asyncio
    async def test_list_issues_requires_jql(self):
        service, seen = make_service(lambda r: httpx.Response(200))
        response = await service.handle(request("list_issues", list_issues={}))
        assert response.message == "JQL query is required"
        assert seen == []

    @pytest.mark.asyncio
    async def test_missing_params(self):
        service, _ = make_service(lambda r: httpx.Response(200))
        response = await service.handle(request("list_issues"))
        assert not response.success
        assert response.message == "missing list_issues params"

    @pytest.mark.asyncio
    async def test_create_issue(self):
        service, seen = make_service(
            lambda r: httpx.Response(201, json={"id": "10002", "key": "ONEPOINT-7"})
        )
        response = await service.handle(
            request(
                "create_issue",
                create_issue={"type": "Task", "summary": "Rotate certs", "labels": ["tls"]},
            )
        )
        assert response.success
        assert response.issue.key == "ONEPOINT-7"
        fields = json.loads(seen[0].content)["fields"]
        assert fields["project"] == {"key": "ONEPOINT"}
        assert fields["issuetype"] == {"name": "Task"}
        assert fields["labels"] == ["tls"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "params,message",
        [
            ({"summary": "x"}, "issue type is required for creating issue"),
            ({"type": "Task"}, "summary is required for creating issue"),
        ],
    )
    async def test_create_issue_validation(self, params, message):
        service, seen = make_service(lambda r: httpx.Response(201))
        response = await service.handle(request("create_issue", create_issue=params))
        assert response.message == message
        assert seen == []

    @pytest.mark.asyncio
    async def test_update_issue_transitions_status(self):
        def handler(r):
            if r.method == "GET":
                return httpx.Response(
                    200, json={"transitions": [{"id": "31", "to": {"name": "Done"}}]}
                )
            return httpx.Response(204)

        service, seen = make_service(handler)
        response = await service.handle(
            request("update_issue", update_issue={"key": "OPS-1", "status": "Done", "summary": "Fixed"})
        )
        assert response.success
        assert [(r.method, r.url.path) for r in seen] == [
            ("GET", "/rest/api/2/issue/OPS-1/transitions"),
            ("POST", "/rest/api/2/issue/OPS-1/transitions"),
            ("PUT", "/rest/api/2/issue/OPS-1"),
        ]
        assert json.loads(seen[1].content) == {"transition": {"id": "31"}}

    @pytest.mark.asyncio
    async def test_update_issue_unknown_status(self):
        service, _ = make_service(lambda r: httpx.Response(200, json={"transitions": []}))
        response = await service.handle(
            request("update_issue", update_issue={"key": "OPS-1", "status": "Nowhere"})
        )
        assert not response.success
        assert response.message == "failed to update status: no transition found to status: Nowhere"

    @pytest.mark.asyncio
    async def test_add_comment(self):
        service, seen = make_service(lambda r: httpx.Response(201, json={}))
        response = await service.handle(
            request("add_comment", add_comment={"key": "OPS-1", "comments": [{"body": "old"}, {"body": "new"}]})
        )
        assert response.message == "Comment added successfully"
        assert json.loads(seen[0].content) == {"body": "new"}

        response = await service.handle(request("add_comment", add_comment={"key": "OPS-1"}))
        assert response.message == "missing comment body"

    @pytest.mark.asyncio
    async def test_issue_key_required(self):
        service, _ = make_service(lambda r: httpx.Response(200))
        response = await service.handle(request("get_issue", get_issue={}))
        assert response.message == "missing issue id or key"

    @pytest.mark.asyncio
    async def test_api_error(self):
        service, _ = make_service(lambda r: httpx.Response(404, text="Issue does not exist"))
        response = await service.handle(request("delete_issue", delete_issue={"key": "OPS-404"}))
        assert not response.success
        assert response.message == "failed to delete issue: HTTP 404 Not Found: Issue does not exist"
