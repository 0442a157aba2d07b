"""GitHub REST client for the pull request data stud needs."""

from typing import Any

from stud.clients.base import ApiClient
from stud.config import GitProviderConfig
from stud.core.exceptions import AuthenticationError, GitProviderError

PAGE_SIZE = 100


class GitHubClient(ApiClient):
    """Client for one GitHub repository."""

    name = "github"
    service = "GitHub API"
    error_class = GitProviderError

    def __init__(self, config: GitProviderConfig, owner: str, repo: str):
        super().__init__(config)
        self.owner = owner
        self.repo = repo

    def _connection(self) -> tuple[str, dict[str, str]]:
        token = self._config.get_token()
        if not token:
            raise AuthenticationError("GitHub token not configured")
        return self._config.get_base_url(), {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _error_message(self, payload: Any) -> str | None:
        """``message`` plus any validation error details."""
        if not isinstance(payload, dict):
            return None
        errors = [e.get("message") for e in payload.get("errors") or [] if isinstance(e, dict)]
        return "; ".join(part for part in [payload.get("message"), *errors] if part) or None

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    def _paginate(self, path: str, params: dict[str, Any] | None = None) -> list[Any]:
        """Collect every page of a list endpoint. A short page is the last one."""
        results: list[Any] = []
        page = 1
        while True:
            batch = self._request("GET", path, params={**(params or {}), "per_page": PAGE_SIZE, "page": page})
            if not batch:
                break
            results.extend(batch)
            if len(batch) < PAGE_SIZE:
                break
            page += 1
        return results

    def list_pull_requests(self, state: str = "open") -> list[dict[str, Any]]:
        return self._paginate(f"{self._repo_path}/pulls", {"state": state})

    def find_pull_request_by_branch(self, branch: str) -> dict[str, Any] | None:
        """Open pull request whose head is ``branch`` (``owner:branch`` is accepted)."""
        head = branch if ":" in branch else f"{self.owner}:{branch}"
        pulls = self._request("GET", f"{self._repo_path}/pulls", params={"head": head, "state": "open"})
        return pulls[0] if pulls else None

    def create_pull_request(
        self,
        title: str,
        head: str,
        base: str,
        body: str,
        draft: bool = False,
        labels: list[str] | None = None,
    ) -> dict[str, Any]:
        """Open a pull request from ``head`` (``owner:branch`` is accepted) into ``base``."""
        pull = self._request(
            "POST",
            f"{self._repo_path}/pulls",
            json={
                "title": title,
                "head": head if ":" in head else f"{self.owner}:{head}",
                "base": base,
                "body": body,
                "draft": draft,
            },
        )
        if labels:
            self._request("POST", f"{self._repo_path}/issues/{pull['number']}/labels", json={"labels": labels})
        return pull

    def create_comment(self, number: int, body: str) -> dict[str, Any]:
        # Pull request conversation comments live on the issues endpoint
        return self._request("POST", f"{self._repo_path}/issues/{number}/comments", json={"body": body})

    def get_labels(self) -> list[dict[str, Any]]:
        return self._paginate(f"{self._repo_path}/labels")

    @staticmethod
    def head_branch(pull_request: dict[str, Any]) -> str:
        return pull_request.get("head", {}).get("ref", "")

    @staticmethod
    def web_url(pull_request: dict[str, Any]) -> str:
        return pull_request.get("html_url", "")

    @staticmethod
    def is_same_repository(pull_request: dict[str, Any]) -> bool:
        """False for pull requests opened from a fork."""
        head_repo = (pull_request.get("head", {}).get("repo") or {}).get("full_name")
        base_repo = (pull_request.get("base", {}).get("repo") or {}).get("full_name")
        return head_repo is not None and head_repo == base_repo
