"""Enum definitions for application constants."""

from enum import Enum


class SourceSystem(str, Enum):
    """External systems records can originate from."""

    ZENDESK = "zendesk"
    JIRA = "jira"
    SLACK = "slack"
    GITHUB = "github"
    SALESFORCE = "salesforce"
    TEAMS = "teams"


# Systems with a sync client implementation
SYNCABLE_SYSTEMS = (SourceSystem.ZENDESK, SourceSystem.JIRA)


class RecordType(str, Enum):
    """Kind of upstream object a record was built from."""

    TICKET = "ticket"
    ISSUE = "issue"
    MESSAGE = "message"


class TransformationType(str, Enum):
    """Field transformation kinds available to field mappings."""

    EXTRACT_JIRA_KEY = "extract_jira_key"
    REGEX_EXTRACT = "regex_extract"
    URL_PATH_EXTRACT = "url_path_extract"
    SUBSTRING = "substring"
    SPLIT_EXTRACT = "split_extract"


class LinkType(str, Enum):
    """How a record link came to exist."""

    FIELD_MAPPING = "field_mapping"
    MANUAL = "manual"


class CustomColumnType(str, Enum):
    """Data type of an org-defined custom column."""

    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    SELECT = "select"


class SyncStatus(str, Enum):
    """Outcome of a sync pass."""

    SUCCESS = "success"
    ERROR = "error"
    SKIPPED = "skipped"


class SyncType(str, Enum):
    """What a sync log entry describes."""

    ZENDESK_TICKETS = "zendesk_tickets"
    JIRA_ISSUES = "jira_issues"


SYNC_TYPE_BY_SYSTEM = {
    SourceSystem.ZENDESK: SyncType.ZENDESK_TICKETS,
    SourceSystem.JIRA: SyncType.JIRA_ISSUES,
}
