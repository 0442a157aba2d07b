"""Jira Cloud API client using httpx."""

import base64
from dataclasses import dataclass, field
from typing import Any

from stud.clients.adf import adf_to_text
from stud.clients.base import ApiClient
from stud.core.exceptions import AuthenticationError, JiraError

NO_DESCRIPTION = "No description provided."

ISSUE_FIELDS = [
    "key",
    "summary",
    "status",
    "description",
    "assignee",
    "labels",
    "issuetype",
    "components",
]


@dataclass
class WorkItem:
    """A Jira issue as stud uses it."""

    key: str
    title: str
    status: str
    assignee: str
    description: str
    labels: list[str] = field(default_factory=list)
    issue_type: str = ""
    components: list[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "WorkItem":
        """Build a WorkItem from a Jira REST issue payload."""
        fields = data.get("fields", {})
        description = adf_to_text(fields.get("description")) or NO_DESCRIPTION
        assignee = fields.get("assignee") or {}
        return cls(
            key=data["key"],
            title=fields.get("summary", ""),
            status=(fields.get("status") or {}).get("name", ""),
            assignee=assignee.get("displayName", "Unassigned"),
            description=description,
            labels=list(fields.get("labels") or []),
            issue_type=(fields.get("issuetype") or {}).get("name", ""),
            components=[c["name"] for c in fields.get("components") or [] if c.get("name")],
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "key": self.key,
            "title": self.title,
            "status": self.status,
            "assignee": self.assignee,
            "type": self.issue_type,
            "labels": ", ".join(self.labels),
        }


@dataclass
class Project:
    """A Jira project."""

    key: str
    name: str


class JiraClient(ApiClient):
    """Client for the Jira Cloud REST API (v3).

    Authenticates with Basic auth built from the account email and an API
    token.
    """

    service = "Jira"
    error_class = JiraError

    @property
    def url(self) -> str | None:
        """Configured Jira site URL."""
        return self._config.get_url()

    def _connection(self) -> tuple[str, dict[str, str]]:
        url = self._config.get_url()
        email = self._config.get_email()
        api_token = self._config.get_api_token()

        if not url:
            raise JiraError("Jira URL not configured")
        if not email:
            raise AuthenticationError("Jira email not configured")
        if not api_token:
            raise AuthenticationError("Jira API token not configured")

        credentials = base64.b64encode(f"{email}:{api_token}".encode()).decode()
        return url, {
            "Authorization": f"Basic {credentials}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _error_message(self, payload: Any) -> str | None:
        if not isinstance(payload, dict):
            return None
        messages = payload.get("errorMessages") or []
        errors = payload.get("errors") or {}
        if messages:
            return "; ".join(messages)
        if errors:
            return "; ".join(f"{field}: {text}" for field, text in errors.items())
        return None

    def get(self, path: str, **kwargs: Any) -> Any:
        return self._request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> Any:
        return self._request("POST", path, **kwargs)

    def put(self, path: str, **kwargs: Any) -> Any:
        return self._request("PUT", path, **kwargs)

    # Issue operations
    def get_issue(self, issue_key: str) -> WorkItem:
        """Get issue by key."""
        data = self.get(
            f"/rest/api/3/issue/{issue_key}",
            params={"fields": ",".join(ISSUE_FIELDS)},
        )
        if not data:
            raise JiraError(f'Could not find Jira issue with key "{issue_key}".', status_code=404)
        return WorkItem.from_api(data)

    def search_issues(self, jql: str, max_results: int = 50) -> list[WorkItem]:
        """Search issues using JQL."""
        payload = {
            "jql": jql,
            "maxResults": max_results,
            "fields": ISSUE_FIELDS,
        }
        result = self.post("/rest/api/3/search/jql", json=payload) or {}
        return [WorkItem.from_api(issue) for issue in result.get("issues", [])]

    def get_projects(self) -> list[Project]:
        """List projects visible to the current user."""
        result = self.get("/rest/api/3/project/search") or {}
        return [
            Project(key=project["key"], name=project.get("name", ""))
            for project in result.get("values", [])
        ]

    def get_myself(self) -> dict[str, Any]:
        """Get the authenticated user."""
        return self.get("/rest/api/3/myself") or {}

    def assign_issue(self, issue_key: str, account_id: str | None) -> None:
        """Assign an issue to a user. Pass None to unassign."""
        self.put(f"/rest/api/3/issue/{issue_key}/assignee", json={"accountId": account_id})

    def assign_issue_to_current_user(self, issue_key: str) -> None:
        """Assign an issue to the authenticated user."""
        account_id = self.get_myself().get("accountId")
        if not account_id:
            raise JiraError("Could not determine the current Jira user")
        self.assign_issue(issue_key, account_id)

    def get_transitions(self, issue_key: str) -> list[dict[str, Any]]:
        """Get available transitions for an issue."""
        result = self.get(f"/rest/api/3/issue/{issue_key}/transitions") or {}
        return result.get("transitions", [])

    def transition_issue(self, issue_key: str, transition_id: str | int) -> None:
        """Transition an issue to a new status."""
        payload = {"transition": {"id": str(transition_id)}}
        self.post(f"/rest/api/3/issue/{issue_key}/transitions", json=payload)

    def browse_url(self, issue_key: str) -> str:
        """Web link to an issue."""
        return f"{self.url or ''}/browse/{issue_key}"
