"""GitLab REST (v4) client.

Merge requests are exposed under the same method names as GitHub pull
requests so commands can use either provider. A merge request's ``iid`` is
copied to ``number``.
"""

from typing import Any
from urllib.parse import quote

from stud.clients.base import ApiClient
from stud.config import GitProviderConfig
from stud.core.exceptions import AuthenticationError, GitProviderError

PAGE_SIZE = 100
DRAFT_PREFIX = "Draft: "
STATE_MAP = {"open": "opened", "closed": "closed", "merged": "merged", "all": "all"}


class GitLabClient(ApiClient):
    """Client for one GitLab project, addressed by its URL-encoded path."""

    name = "gitlab"
    service = "GitLab API"
    error_class = GitProviderError

    def __init__(self, config: GitProviderConfig, owner: str, repo: str):
        super().__init__(config)
        self.owner = owner
        self.repo = repo

    def _connection(self) -> tuple[str, dict[str, str]]:
        token = self._config.get_token()
        if not token:
            raise AuthenticationError("GitLab token not configured")
        return self._config.get_base_url(), {"PRIVATE-TOKEN": token, "Accept": "application/json"}

    def _error_message(self, payload: Any) -> str | None:
        if not isinstance(payload, dict):
            return None
        message = payload.get("message") or payload.get("error")
        if isinstance(message, list):
            return "; ".join(str(m) for m in message)
        return str(message) if message else None

    @property
    def _project_path(self) -> str:
        return "/projects/" + quote(f"{self.owner}/{self.repo}", safe="")

    def _paginate(self, path: str, params: dict[str, Any] | None = None) -> list[Any]:
        """Collect every page of a list endpoint, following ``X-Next-Page``."""
        results: list[Any] = []
        page = "1"
        while page:
            response = self._send("GET", path, params={**(params or {}), "per_page": PAGE_SIZE, "page": page})
            results.extend(response.json() if response.content else [])
            page = response.headers.get("X-Next-Page", "").strip()
        return results

    @staticmethod
    def _with_number(merge_request: dict[str, Any]) -> dict[str, Any]:
        return {**merge_request, "number": merge_request.get("iid")}

    def list_pull_requests(self, state: str = "open") -> list[dict[str, Any]]:
        requests = self._paginate(f"{self._project_path}/merge_requests", {"state": STATE_MAP.get(state, state)})
        return [self._with_number(mr) for mr in requests]

    def find_pull_request_by_branch(self, branch: str) -> dict[str, Any] | None:
        """Open merge request from ``branch``; an ``owner:`` prefix is ignored."""
        source = branch.split(":", 1)[-1]
        requests = self._request(
            "GET",
            f"{self._project_path}/merge_requests",
            params={"source_branch": source, "state": "opened"},
        )
        return self._with_number(requests[0]) if requests else None

    def create_pull_request(
        self,
        title: str,
        head: str,
        base: str,
        body: str,
        draft: bool = False,
        labels: list[str] | None = None,
    ) -> dict[str, Any]:
        """Open a merge request from ``head`` into ``base``.

        Draft merge requests are marked through the title prefix.
        """
        payload: dict[str, Any] = {
            "source_branch": head.split(":", 1)[-1],
            "target_branch": base,
            "title": f"{DRAFT_PREFIX}{title}" if draft else title,
            "description": body,
        }
        if labels:
            payload["labels"] = ",".join(labels)
        merge_request = self._request("POST", f"{self._project_path}/merge_requests", json=payload)
        return self._with_number(merge_request)

    def create_comment(self, number: int, body: str) -> dict[str, Any]:
        return self._request("POST", f"{self._project_path}/merge_requests/{number}/notes", json={"body": body})

    def get_labels(self) -> list[dict[str, Any]]:
        return self._paginate(f"{self._project_path}/labels")

    @staticmethod
    def head_branch(pull_request: dict[str, Any]) -> str:
        return pull_request.get("source_branch", "")

    @staticmethod
    def web_url(pull_request: dict[str, Any]) -> str:
        return pull_request.get("web_url", "")

    @staticmethod
    def is_same_repository(pull_request: dict[str, Any]) -> bool:
        """False for merge requests opened from a fork."""
        source = pull_request.get("source_project_id")
        return source is not None and source == pull_request.get("target_project_id")
