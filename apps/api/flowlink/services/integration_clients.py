"""
External system clients for record sync.

Each client exposes `fetch_page(cursor)` returning a FetchPage of
ExternalRecord items plus the cursor for the next page (None on the last
page). HTTP failures surface as typed errors: IntegrationAuthError for
rejected credentials, TransientFetchError for rate limits, server errors
and transport failures that outlast the retries.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable
from urllib.parse import urlsplit

import httpx

from flowlink.core.config import settings
from flowlink.db.enums import RecordType, SourceSystem
from flowlink.services.http_service import request_with_retries

logger = logging.getLogger(__name__)


# =============================================================================
# Errors
# =============================================================================


class ExternalFetchError(Exception):
    """Fetching from an external system failed."""

    def __init__(self, message: str, *, system: str, status_code: int | None = None):
        super().__init__(message)
        self.system = system
        self.status_code = status_code


class IntegrationAuthError(ExternalFetchError):
    """Credentials were rejected (401/403)."""


class TransientFetchError(ExternalFetchError):
    """Rate limit, server error or transport failure; the next pass may succeed."""


AUTH_FAILURE_STATUSES = frozenset({401, 403})


def raise_for_fetch_status(response: httpx.Response, system: str) -> None:
    status = response.status_code
    if status < 400:
        return
    message = f"{system} API error: {status} {response.reason_phrase}".strip()
    if status in AUTH_FAILURE_STATUSES:
        raise IntegrationAuthError(message, system=system, status_code=status)
    if status == 429 or status >= 500:
        raise TransientFetchError(message, system=system, status_code=status)
    raise ExternalFetchError(message, system=system, status_code=status)


# =============================================================================
# Data
# =============================================================================


@dataclass
class ExternalRecord:
    """A fetched upstream item normalized to the record shape."""

    source_id: str
    record_type: str
    title: str | None = None
    description: str | None = None
    status: str | None = None
    priority: str | None = None
    assignee_name: str | None = None
    assignee_email: str | None = None
    reporter_name: str | None = None
    reporter_email: str | None = None
    labels: list[str] | None = None
    source_url: str | None = None
    source_created_at: datetime | None = None
    source_updated_at: datetime | None = None
    # Owned by the upstream system; refreshed every sync
    system_fields: dict[str, Any] = field(default_factory=dict)
    # Upstream custom field values keyed by their upstream id
    custom_fields: dict[str, Any] = field(default_factory=dict)


@dataclass
class FetchPage:
    items: list[ExternalRecord]
    next_cursor: str | None = None


FetchPageFn = Callable[[str | None], Awaitable[FetchPage]]


def parse_timestamp(value: Any) -> datetime | None:
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Unparsable upstream timestamp: %s", value)
        return None


def drop_missing(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


# =============================================================================
# Pagination
# =============================================================================


async def fetch_all_pages(
    fetch_page: FetchPageFn,
    *,
    page_delay: float | None = None,
    max_pages: int | None = None,
) -> list[ExternalRecord]:
    """
    Follow cursors until a page reports no next cursor.

    Sleeps page_delay between requests. max_pages caps runaway pagination.
    """
    delay = settings.SYNC_PAGE_DELAY_SECONDS if page_delay is None else page_delay
    items: list[ExternalRecord] = []
    cursor: str | None = None
    pages = 0

    while True:
        page = await fetch_page(cursor)
        pages += 1
        items.extend(page.items)
        if not page.next_cursor:
            break
        if max_pages is not None and pages >= max_pages:
            logger.warning("Stopping pagination after %s pages", pages)
            break
        cursor = page.next_cursor
        if delay:
            await asyncio.sleep(delay)

    return items


# =============================================================================
# Base client
# =============================================================================


class _IntegrationClient:
    system: str = ""

    def __init__(
        self,
        *,
        auth: tuple[str, str],
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        self._auth = httpx.BasicAuth(*auth)
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout or settings.HTTP_TIMEOUT_SECONDS
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def _get_json(self, url: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        try:
            response = await request_with_retries(
                lambda: self._client.get(
                    url,
                    params=params,
                    auth=self._auth,
                    headers={"Accept": "application/json"},
                )
            )
        except httpx.RequestError as exc:
            raise TransientFetchError(
                f"{self.system} request failed: {type(exc).__name__}", system=self.system
            ) from exc
        raise_for_fetch_status(response, self.system)
        try:
            return response.json()
        except ValueError as exc:
            raise ExternalFetchError(
                f"{self.system} returned invalid JSON",
                system=self.system,
                status_code=response.status_code,
            ) from exc

    async def fetch_page(self, cursor: str | None = None) -> FetchPage:
        raise NotImplementedError


# =============================================================================
# Zendesk
# =============================================================================

ZENDESK_SYSTEM_FIELDS = (
    "via",
    "satisfaction_rating",
    "ticket_form_id",
    "brand_id",
    "group_id",
    "organization_id",
    "forum_topic_id",
    "problem_id",
    "has_incidents",
    "is_public",
    "due_at",
    "collaborator_ids",
    "follower_ids",
    "email_cc_ids",
)


def zendesk_system_fields(ticket: dict[str, Any]) -> dict[str, Any]:
    values = {name: ticket.get(name) for name in ZENDESK_SYSTEM_FIELDS}
    via = ticket.get("via")
    values["channel"] = via.get("channel") if isinstance(via, dict) else None
    return drop_missing(values)


def zendesk_custom_fields(ticket: dict[str, Any]) -> dict[str, Any]:
    """[{id: 123, value: "x"}] -> {"123": "x"}; empty values are skipped."""
    fields: dict[str, Any] = {}
    for item in ticket.get("custom_fields") or []:
        if not isinstance(item, dict) or item.get("id") is None:
            continue
        if item.get("value") is None:
            continue
        fields[str(item["id"])] = item["value"]
    return fields


def normalize_zendesk_ticket(
    ticket: dict[str, Any], users: dict[Any, dict[str, Any]] | None = None
) -> ExternalRecord:
    users = users or {}
    assignee = users.get(ticket.get("assignee_id")) or {}
    requester = users.get(ticket.get("requester_id")) or {}
    tags = ticket.get("tags")

    return ExternalRecord(
        source_id=str(ticket["id"]),
        record_type=RecordType.TICKET.value,
        title=ticket.get("subject"),
        description=ticket.get("description"),
        status=ticket.get("status"),
        priority=ticket.get("priority"),
        assignee_name=assignee.get("name") or ticket.get("assignee_name"),
        assignee_email=assignee.get("email") or ticket.get("assignee_email"),
        reporter_name=requester.get("name") or ticket.get("requester_name"),
        reporter_email=requester.get("email") or ticket.get("requester_email"),
        labels=list(tags) if tags else None,
        source_url=ticket.get("url"),
        source_created_at=parse_timestamp(ticket.get("created_at")),
        source_updated_at=parse_timestamp(ticket.get("updated_at")),
        system_fields=zendesk_system_fields(ticket),
        custom_fields=zendesk_custom_fields(ticket),
    )


class ZendeskClient(_IntegrationClient):
    """Zendesk Support API v2 ticket fetcher."""

    system = SourceSystem.ZENDESK.value

    def __init__(
        self,
        *,
        subdomain: str,
        email: str,
        api_token: str,
        search_query: str | None = None,
        page_size: int | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        super().__init__(
            auth=(f"{email}/token", api_token), http_client=http_client, timeout=timeout
        )
        self.subdomain = subdomain
        self.search_query = (search_query or "").strip() or None
        self.page_size = page_size or settings.ZENDESK_PAGE_SIZE

    @property
    def base_url(self) -> str:
        return f"https://{self.subdomain}.zendesk.com/api/v2"

    async def fetch_page(self, cursor: str | None = None) -> FetchPage:
        if cursor:
            # next_page is a complete URL including the query string
            data = await self._get_json(cursor)
        elif self.search_query:
            data = await self._get_json(
                f"{self.base_url}/search.json",
                params={"query": self.search_query, "per_page": self.page_size},
            )
        else:
            data = await self._get_json(
                f"{self.base_url}/tickets.json",
                params={"include": "users", "per_page": self.page_size},
            )

        users = {user.get("id"): user for user in data.get("users") or [] if isinstance(user, dict)}
        if "results" in data:
            tickets = [
                item
                for item in data.get("results") or []
                if item.get("result_type", "ticket") == "ticket"
            ]
        else:
            tickets = data.get("tickets") or []

        items = []
        for ticket in tickets:
            if ticket.get("id") is None:
                continue
            items.append(normalize_zendesk_ticket(ticket, users))
        return FetchPage(items=items, next_cursor=data.get("next_page") or None)


# =============================================================================
# Jira
# =============================================================================

JIRA_FIELDS = (
    "summary,status,priority,assignee,reporter,created,updated,"
    "components,project,issuetype,description"
)
JIRA_CLOSED_STATUSES = "status not in (Closed, Resolved, Done, Cancel)"
DESCRIPTION_MAX_LENGTH = 1000


def build_jql_query(
    project_key: str | None = None,
    components: str | list[str] | None = None,
    exclude_closed_issues: bool = False,
    additional_jql: str | None = None,
) -> str:
    """
    Build the JQL filter for an issue sync.

    components is a comma-separated string or a list of names.
    """
    conditions: list[str] = []
    if project_key:
        conditions.append(f'project = "{project_key}"')

    if components:
        if isinstance(components, str):
            components = components.split(",")
        names = [name.strip() for name in components if name and name.strip()]
        if len(names) == 1:
            conditions.append(f'component = "{names[0]}"')
        elif names:
            quoted = ", ".join(f'"{name}"' for name in names)
            conditions.append(f"component in ({quoted})")

    if exclude_closed_issues:
        conditions.append(JIRA_CLOSED_STATUSES)
    if additional_jql:
        conditions.append(f"({additional_jql})")
    return " AND ".join(conditions)


def flatten_adf(node: Any) -> str:
    """Collect the text of an Atlassian Document Format tree."""
    if isinstance(node, str):
        return node
    if isinstance(node, list):
        return " ".join(part for part in (flatten_adf(child) for child in node) if part)
    if not isinstance(node, dict):
        return ""
    if node.get("type") == "text":
        return node.get("text") or ""
    return flatten_adf(node.get("content") or [])


_WIKI_BLOCKS = re.compile(r"\{[^}]+\}")
_WIKI_BOLD = re.compile(r"\*([^*]+)\*")
_WIKI_ITALIC = re.compile(r"_([^_]+)_")
_WIKI_LINK = re.compile(r"\[([^\]]+)\|[^\]]+\]")
_WHITESPACE = re.compile(r"\s+")


def strip_jira_markup(text: str | None) -> str | None:
    """Drop wiki markup, collapse whitespace, cap the length."""
    if not text:
        return None
    text = _WIKI_BLOCKS.sub("", text)
    text = _WIKI_BOLD.sub(r"\1", text)
    text = _WIKI_ITALIC.sub(r"\1", text)
    text = _WIKI_LINK.sub(r"\1", text)
    text = _WHITESPACE.sub(" ", text).strip()
    return text[:DESCRIPTION_MAX_LENGTH] or None


def jira_description(value: Any) -> str | None:
    if isinstance(value, dict):
        value = flatten_adf(value)
    if not isinstance(value, str):
        return None
    return strip_jira_markup(value)


def jira_system_fields(fields: dict[str, Any]) -> dict[str, Any]:
    project = fields.get("project") or {}
    issue_type = fields.get("issuetype") or {}
    status = fields.get("status") or {}
    return drop_missing(
        {
            "project": drop_missing({"key": project.get("key"), "name": project.get("name")}),
            "issueType": drop_missing(
                {"name": issue_type.get("name"), "iconUrl": issue_type.get("iconUrl")}
            ),
            "components": [
                drop_missing({"name": item.get("name"), "description": item.get("description")})
                for item in fields.get("components") or []
            ],
            "statusCategory": (status.get("statusCategory") or {}).get("name"),
        }
    )


def normalize_jira_issue(issue: dict[str, Any], base_url: str) -> ExternalRecord:
    fields = issue.get("fields") or {}
    assignee = fields.get("assignee") or {}
    reporter = fields.get("reporter") or {}
    component_names = [
        item["name"] for item in fields.get("components") or [] if item.get("name")
    ]
    key = issue["key"]

    return ExternalRecord(
        source_id=key,
        record_type=RecordType.ISSUE.value,
        title=fields.get("summary"),
        description=jira_description(fields.get("description")),
        status=(fields.get("status") or {}).get("name"),
        priority=(fields.get("priority") or {}).get("name"),
        assignee_name=assignee.get("displayName"),
        assignee_email=assignee.get("emailAddress"),
        reporter_name=reporter.get("displayName"),
        reporter_email=reporter.get("emailAddress"),
        labels=component_names or None,
        source_url=f"{base_url.rstrip('/')}/browse/{key}",
        source_created_at=parse_timestamp(fields.get("created")),
        source_updated_at=parse_timestamp(fields.get("updated")),
        system_fields=jira_system_fields(fields),
    )


class JiraClient(_IntegrationClient):
    """Jira Cloud REST v3 issue fetcher (enhanced JQL search)."""

    system = SourceSystem.JIRA.value

    def __init__(
        self,
        *,
        url: str,
        email: str,
        api_token: str,
        jql: str = "",
        page_size: int | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        super().__init__(auth=(email, api_token), http_client=http_client, timeout=timeout)
        self.url = url.rstrip("/")
        self.jql = jql
        self.page_size = page_size or settings.JIRA_PAGE_SIZE

    async def fetch_page(self, cursor: str | None = None) -> FetchPage:
        params: dict[str, Any] = {
            "jql": self.jql,
            "maxResults": self.page_size,
            "fields": JIRA_FIELDS,
        }
        if cursor:
            params["nextPageToken"] = cursor
        data = await self._get_json(f"{self.url}/rest/api/3/search/jql", params=params)

        items = [
            normalize_jira_issue(issue, self.url)
            for issue in data.get("issues") or []
            if issue.get("key")
        ]
        next_token = data.get("nextPageToken")
        if data.get("isLast") or not next_token:
            next_token = None
        return FetchPage(items=items, next_cursor=next_token)


# =============================================================================
# Factory
# =============================================================================


class IntegrationConfigError(ValueError):
    """Credential is missing something the client needs."""


def client_for_credential(
    credential: Any, *, http_client: httpx.AsyncClient | None = None
) -> _IntegrationClient:
    """Build the fetch client for an IntegrationCredential row."""
    config = credential.custom_config or {}
    system = (credential.system_type or "").lower()

    if system == SourceSystem.ZENDESK.value:
        if not credential.subdomain or not credential.email or not credential.api_token:
            raise IntegrationConfigError("Zendesk credential requires subdomain, email and token")
        return ZendeskClient(
            subdomain=credential.subdomain,
            email=credential.email,
            api_token=credential.api_token,
            search_query=config.get("searchQuery"),
            http_client=http_client,
        )

    if system == SourceSystem.JIRA.value:
        url = config.get("url")
        if not url and credential.subdomain:
            url = f"https://{credential.subdomain}.atlassian.net"
        if not url or not credential.email or not credential.api_token:
            raise IntegrationConfigError("Jira credential requires url, email and token")
        parts = urlsplit(url)
        if not parts.scheme or not parts.netloc:
            raise IntegrationConfigError(f"Invalid Jira url: {url}")
        return JiraClient(
            url=url,
            email=credential.email,
            api_token=credential.api_token,
            jql=build_jql_query(
                project_key=config.get("projectKey"),
                components=config.get("components"),
                exclude_closed_issues=bool(config.get("excludeClosedIssues")),
                additional_jql=config.get("additionalJql"),
            ),
            http_client=http_client,
        )

    raise IntegrationConfigError(f"No sync client for system: {credential.system_type}")
