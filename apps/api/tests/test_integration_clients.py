"""Tests for the Zendesk and Jira fetch clients (httpx MockTransport)."""

import base64
from types import SimpleNamespace

import httpx
import pytest

from flowlink.core.config import settings
from flowlink.services.integration_clients import (
    ExternalFetchError,
    FetchPage,
    IntegrationAuthError,
    IntegrationConfigError,
    JiraClient,
    TransientFetchError,
    ZendeskClient,
    build_jql_query,
    client_for_credential,
    fetch_all_pages,
    jira_description,
    normalize_jira_issue,
    normalize_zendesk_ticket,
    strip_jira_markup,
)


@pytest.fixture(autouse=True)
def single_attempt(monkeypatch):
    monkeypatch.setattr(settings, "HTTP_MAX_ATTEMPTS", 1)


def _mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


ZENDESK_TICKET = {
    "id": 42,
    "subject": "Cannot log in",
    "description": "Password reset loop",
    "status": "open",
    "priority": "high",
    "assignee_id": 7,
    "requester_id": 8,
    "tags": ["login", "vip"],
    "url": "https://acme.zendesk.com/api/v2/tickets/42.json",
    "created_at": "2024-03-01T09:30:00Z",
    "updated_at": "2024-03-02T10:00:00Z",
    "via": {"channel": "email"},
    "group_id": 99,
    "custom_fields": [{"id": 360, "value": "PAL-14571"}, {"id": 361, "value": None}],
}
ZENDESK_USERS = [
    {"id": 7, "name": "Alex Agent", "email": "alex@acme.test"},
    {"id": 8, "name": "Riley Customer", "email": "riley@example.com"},
]


# =============================================================================
# Zendesk
# =============================================================================


def test_normalize_zendesk_ticket():
    users = {user["id"]: user for user in ZENDESK_USERS}

    record = normalize_zendesk_ticket(ZENDESK_TICKET, users)

    assert record.source_id == "42"
    assert record.record_type == "ticket"
    assert record.title == "Cannot log in"
    assert record.assignee_name == "Alex Agent"
    assert record.reporter_email == "riley@example.com"
    assert record.labels == ["login", "vip"]
    assert record.source_created_at.year == 2024
    assert record.source_created_at.tzinfo is not None
    assert record.custom_fields == {"360": "PAL-14571"}
    assert record.system_fields["channel"] == "email"
    assert record.system_fields["group_id"] == 99
    assert "problem_id" not in record.system_fields


@pytest.mark.asyncio
async def test_zendesk_lists_tickets_with_side_loaded_users():
    seen = []

    def handler(request):
        seen.append(request)
        if "page=2" in str(request.url):
            return httpx.Response(200, json={"tickets": [{"id": 43, "subject": "Second"}], "next_page": None})
        return httpx.Response(
            200,
            json={
                "tickets": [ZENDESK_TICKET],
                "users": ZENDESK_USERS,
                "next_page": "https://acme.zendesk.com/api/v2/tickets.json?page=2",
            },
        )

    async with _mock_client(handler) as http_client:
        client = ZendeskClient(
            subdomain="acme", email="agent@acme.test", api_token="tok", http_client=http_client
        )
        records = await fetch_all_pages(client.fetch_page, page_delay=0)

    assert [record.source_id for record in records] == ["42", "43"]
    assert records[0].assignee_name == "Alex Agent"
    first = seen[0]
    assert first.url.path == "/api/v2/tickets.json"
    assert first.url.params["include"] == "users"
    expected_auth = "Basic " + base64.b64encode(b"agent@acme.test/token:tok").decode()
    assert first.headers["Authorization"] == expected_auth
    assert str(seen[1].url) == "https://acme.zendesk.com/api/v2/tickets.json?page=2"


@pytest.mark.asyncio
async def test_zendesk_search_keeps_only_tickets():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "results": [
                    {"id": 1, "result_type": "ticket", "subject": "One"},
                    {"id": 2, "result_type": "user", "name": "Someone"},
                ],
                "next_page": None,
            },
        )

    async with _mock_client(handler) as http_client:
        client = ZendeskClient(
            subdomain="acme",
            email="agent@acme.test",
            api_token="tok",
            search_query="type:ticket status<solved",
            page_size=50,
            http_client=http_client,
        )
        page = await client.fetch_page(None)

    assert [item.source_id for item in page.items] == ["1"]
    assert page.next_cursor is None
    assert seen[0].url.path == "/api/v2/search.json"
    assert seen[0].url.params["query"] == "type:ticket status<solved"
    assert seen[0].url.params["per_page"] == "50"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, error_type",
    [
        (401, IntegrationAuthError),
        (403, IntegrationAuthError),
        (429, TransientFetchError),
        (503, TransientFetchError),
        (404, ExternalFetchError),
    ],
)
async def test_http_errors_are_typed(status, error_type):
    async with _mock_client(lambda request: httpx.Response(status)) as http_client:
        client = ZendeskClient(
            subdomain="acme", email="agent@acme.test", api_token="tok", http_client=http_client
        )
        with pytest.raises(error_type) as exc_info:
            await client.fetch_page(None)

    assert exc_info.value.status_code == status
    assert exc_info.value.system == "zendesk"


@pytest.mark.asyncio
async def test_transport_failure_is_transient():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    async with _mock_client(handler) as http_client:
        client = ZendeskClient(
            subdomain="acme", email="agent@acme.test", api_token="tok", http_client=http_client
        )
        with pytest.raises(TransientFetchError):
            await client.fetch_page(None)


@pytest.mark.asyncio
async def test_invalid_json_is_a_fetch_error():
    async with _mock_client(lambda request: httpx.Response(200, content=b"<html>")) as http_client:
        client = ZendeskClient(
            subdomain="acme", email="agent@acme.test", api_token="tok", http_client=http_client
        )
        with pytest.raises(ExternalFetchError, match="invalid JSON"):
            await client.fetch_page(None)


# =============================================================================
# Jira
# =============================================================================


def test_build_jql_query():
    assert build_jql_query() == ""
    assert build_jql_query(project_key="PAL") == 'project = "PAL"'
    assert (
        build_jql_query(project_key="PAL", components="API, Billing", exclude_closed_issues=True)
        == 'project = "PAL" AND component in ("API", "Billing") AND '
        "status not in (Closed, Resolved, Done, Cancel)"
    )
    assert (
        build_jql_query(components=["API"], additional_jql="labels = vip")
        == 'component = "API" AND (labels = vip)'
    )


def test_strip_jira_markup():
    text = "{code}x = 1{code} *Bold* and _italic_ see [the docs|https://x.test]\n\n  done"
    assert strip_jira_markup(text) == "x = 1 Bold and italic see the docs done"
    assert strip_jira_markup("") is None
    assert len(strip_jira_markup("a" * 5000)) == 1000


def test_jira_description_flattens_adf():
    adf = {
        "type": "doc",
        "content": [
            {"type": "paragraph", "content": [{"type": "text", "text": "First"}]},
            {"type": "paragraph", "content": [{"type": "text", "text": "*second*"}]},
        ],
    }
    assert jira_description(adf) == "First second"
    assert jira_description(None) is None


def test_normalize_jira_issue():
    issue = {
        "key": "PAL-7",
        "fields": {
            "summary": "Crash on save",
            "status": {"name": "In Progress", "statusCategory": {"name": "In Progress"}},
            "priority": {"name": "High"},
            "assignee": {"displayName": "Dev One", "emailAddress": "dev@acme.test"},
            "reporter": None,
            "components": [{"name": "API"}, {"name": "Editor"}],
            "project": {"key": "PAL", "name": "Platform"},
            "issuetype": {"name": "Bug"},
            "created": "2024-03-01T09:30:00.000+0000",
        },
    }

    record = normalize_jira_issue(issue, "https://acme.atlassian.net/")

    assert record.source_id == "PAL-7"
    assert record.record_type == "issue"
    assert record.status == "In Progress"
    assert record.assignee_email == "dev@acme.test"
    assert record.reporter_name is None
    assert record.labels == ["API", "Editor"]
    assert record.source_url == "https://acme.atlassian.net/browse/PAL-7"
    assert record.system_fields["project"] == {"key": "PAL", "name": "Platform"}
    assert record.system_fields["statusCategory"] == "In Progress"
    assert record.custom_fields == {}


@pytest.mark.asyncio
async def test_jira_follows_next_page_token():
    seen = []

    def handler(request):
        seen.append(request)
        token = request.url.params.get("nextPageToken")
        if token is None:
            return httpx.Response(
                200, json={"issues": [{"key": "PAL-1", "fields": {}}], "nextPageToken": "t2"}
            )
        return httpx.Response(
            200,
            json={"issues": [{"key": "PAL-2", "fields": {}}], "nextPageToken": "t3", "isLast": True},
        )

    async with _mock_client(handler) as http_client:
        client = JiraClient(
            url="https://acme.atlassian.net",
            email="dev@acme.test",
            api_token="tok",
            jql='project = "PAL"',
            http_client=http_client,
        )
        records = await fetch_all_pages(client.fetch_page, page_delay=0)

    assert [record.source_id for record in records] == ["PAL-1", "PAL-2"]
    assert len(seen) == 2
    assert seen[0].url.path == "/rest/api/3/search/jql"
    assert seen[0].url.params["jql"] == 'project = "PAL"'
    assert seen[1].url.params["nextPageToken"] == "t2"


# =============================================================================
# Pagination / factory
# =============================================================================


@pytest.mark.asyncio
async def test_fetch_all_pages_stops_on_short_final_page():
    from flowlink.services.integration_clients import ExternalRecord

    sizes = [100, 100, 45]
    calls = []

    async def fetch_page(cursor):
        calls.append(cursor)
        index = int(cursor or 0)
        items = [
            ExternalRecord(source_id=f"{index}-{n}", record_type="ticket") for n in range(sizes[index])
        ]
        next_cursor = str(index + 1) if index + 1 < len(sizes) else None
        return FetchPage(items=items, next_cursor=next_cursor)

    records = await fetch_all_pages(fetch_page, page_delay=0)

    assert len(records) == 245
    assert calls == [None, "1", "2"]


@pytest.mark.asyncio
async def test_fetch_all_pages_respects_max_pages():
    async def fetch_page(cursor):
        return FetchPage(items=[], next_cursor="again")

    assert await fetch_all_pages(fetch_page, page_delay=0, max_pages=3) == []


def _credential(system, **overrides):
    values = {
        "system_type": system,
        "subdomain": "acme",
        "email": "agent@acme.test",
        "api_token": "tok",
        "custom_config": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def test_client_for_credential_builds_clients():
    zendesk = client_for_credential(_credential("zendesk", custom_config={"searchQuery": " status<solved "}))
    assert isinstance(zendesk, ZendeskClient)
    assert zendesk.search_query == "status<solved"
    assert zendesk.base_url == "https://acme.zendesk.com/api/v2"

    jira = client_for_credential(
        _credential("jira", custom_config={"projectKey": "PAL", "excludeClosedIssues": True})
    )
    assert isinstance(jira, JiraClient)
    assert jira.url == "https://acme.atlassian.net"
    assert jira.jql.startswith('project = "PAL" AND status not in')


def test_client_for_credential_rejects_incomplete_credentials():
    with pytest.raises(IntegrationConfigError):
        client_for_credential(_credential("zendesk", api_token=None))
    with pytest.raises(IntegrationConfigError):
        client_for_credential(_credential("jira", subdomain=None))
    with pytest.raises(IntegrationConfigError):
        client_for_credential(_credential("jira", custom_config={"url": "not a url"}))
    with pytest.raises(IntegrationConfigError):
        client_for_credential(_credential("slack"))
