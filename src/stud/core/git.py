"""Thin wrapper around the ``git`` binary."""

import os
import re
import shutil
import subprocess
from pathlib import Path
from typing import Any

import yaml

from stud.core.exceptions import GitError
from stud.core.logging import StructuredLogger
from stud.core.utils import project_key_from_issue_key

logger = StructuredLogger("git")

PROJECT_CONFIG_FILENAME = "stud.config"

BRANCH_KEY_PATTERN = re.compile(r"([A-Za-z]+-\d+)")

# git@github.com:owner/repo.git, https://gitlab.com/group/sub/repo.git, ...
REMOTE_URL_PATTERN = re.compile(
    r"^(?:[\w+.-]+://)?(?:[^@/]+@)?[^:/]+(?::\d+)?[:/](?P<path>.+?)(?:\.git)?/?$"
)

FIXUP_GREPS = ["--grep=^fixup!", "--grep=^squash!"]


class GitRepository:
    """Runs git commands in a working tree.

    Mandatory commands go through :meth:`run` and raise :class:`GitError` on
    failure. Read-only queries go through :meth:`run_quietly` and report
    failure through their return value.
    """

    def __init__(self, cwd: str | Path | None = None, remote: str = "origin"):
        self.cwd = str(cwd) if cwd else None
        self.remote = remote

    def _git(self) -> str:
        git_path = shutil.which("git")
        if not git_path:
            raise GitError("git not found. Install git and make sure it is on PATH")
        return git_path

    def run_quietly(
        self,
        args: list[str],
        env: dict[str, str] | None = None,
    ) -> subprocess.CompletedProcess:
        """Run a git command and return the completed process, whatever its exit code."""
        cmd = [self._git()] + args

        run_env = None
        if env:
            run_env = os.environ.copy()
            run_env.update(env)

        logger.debug("Running git", args=" ".join(args))
        try:
            return subprocess.run(
                cmd,
                cwd=self.cwd,
                capture_output=True,
                text=True,
                env=run_env,
            )
        except (OSError, subprocess.SubprocessError) as e:
            raise GitError(f"Failed to run git: {e}", command=cmd)

    def run(self, args: list[str], env: dict[str, str] | None = None) -> str:
        """Run a git command, raising GitError if it fails.

        Returns:
            The command's stdout
        """
        result = self.run_quietly(args, env=env)
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            raise GitError(
                f"git {' '.join(args)} failed: {stderr or f'exit code {result.returncode}'}",
                command=["git"] + args,
                stderr=stderr,
            )
        return result.stdout or ""

    # Branches

    def get_current_branch_name(self) -> str:
        return self.run(["rev-parse", "--abbrev-ref", "HEAD"]).strip()

    def get_jira_key_from_branch_name(self) -> str | None:
        """Extract the issue key from the current branch name, upper-cased."""
        result = self.run_quietly(["rev-parse", "--abbrev-ref", "HEAD"])
        if result.returncode != 0:
            return None
        return jira_key_from_branch(result.stdout.strip())

    def fetch(self) -> None:
        self.run(["fetch", self.remote])

    def create_branch(self, branch_name: str, base_branch: str) -> None:
        """Create ``branch_name`` from ``base_branch`` and switch to it."""
        self.run(["switch", "-c", branch_name, base_branch])

    def local_branch_exists(self, branch_name: str) -> bool:
        result = self.run_quietly(["rev-parse", "--verify", "--quiet", f"refs/heads/{branch_name}"])
        return result.returncode == 0

    def remote_branch_exists(self, branch_name: str, remote: str | None = None) -> bool:
        result = self.run_quietly(["ls-remote", "--heads", remote or self.remote, branch_name])
        return result.returncode == 0 and bool(result.stdout.strip())

    def get_all_local_branches(self) -> list[str]:
        output = self.run(["for-each-ref", "--format=%(refname:short)", "refs/heads/"])
        return [line.strip() for line in output.splitlines() if line.strip()]

    def get_all_remote_branches(self, remote: str | None = None) -> list[str]:
        """Branch names on ``remote`` without the ``<remote>/`` prefix."""
        remote = remote or self.remote
        result = self.run_quietly(
            ["for-each-ref", "--format=%(refname:short)", f"refs/remotes/{remote}/"]
        )
        if result.returncode != 0:
            return []
        prefix = f"{remote}/"
        branches = []
        for line in result.stdout.splitlines():
            name = line.strip()
            if not name.startswith(prefix):
                continue
            name = name[len(prefix):]
            if name and name != "HEAD":
                branches.append(name)
        return branches

    def find_branches_for_key(self, key: str) -> tuple[list[str], list[str]]:
        """Local and remote branches whose name carries the issue ``key``."""
        key = key.upper()
        local = [b for b in self.get_all_local_branches() if jira_key_from_branch(b) == key]
        remote = [b for b in self.get_all_remote_branches() if jira_key_from_branch(b) == key]
        return local, remote

    def switch_branch(self, branch_name: str) -> None:
        self.run(["switch", branch_name])

    def switch_to_remote_branch(self, branch_name: str, remote: str | None = None) -> None:
        """Create a local branch tracking ``<remote>/<branch_name>`` and switch to it."""
        self.run(["switch", "-c", branch_name, "--track", f"{remote or self.remote}/{branch_name}"])

    def delete_branch(self, branch_name: str) -> None:
        """Delete a local branch that is fully merged."""
        self.run(["branch", "-d", branch_name])

    def delete_remote_branch(self, branch_name: str, remote: str | None = None) -> None:
        self.run(["push", remote or self.remote, "--delete", branch_name])

    def is_branch_merged_into(self, branch_name: str, target: str) -> bool:
        """Check whether ``branch_name`` is an ancestor of ``target``."""
        result = self.run_quietly(["merge-base", "--is-ancestor", branch_name, target])
        return result.returncode == 0

    def rename_local_branch(self, old_name: str, new_name: str) -> None:
        self.run(["branch", "-m", old_name, new_name])

    def rename_remote_branch(self, old_name: str, new_name: str, remote: str | None = None) -> None:
        """Push ``new_name`` to the remote and delete ``old_name`` there."""
        remote = remote or self.remote
        source = new_name if self.local_branch_exists(new_name) else f"{remote}/{old_name}"
        self.run(["push", remote, f"{source}:refs/heads/{new_name}"])
        self.run(["push", remote, "--delete", old_name])
        if self.local_branch_exists(new_name):
            self.run_quietly(["branch", "--set-upstream-to", f"{remote}/{new_name}", new_name])

    def push_to_origin(self, branch_name: str) -> bool:
        """Push a branch and set its upstream. Returns False if the push failed."""
        result = self.run_quietly(["push", "--set-upstream", self.remote, branch_name])
        if result.returncode != 0:
            logger.warning("Push failed", branch=branch_name, stderr=result.stderr.strip())
        return result.returncode == 0

    def get_upstream_branch(self) -> str | None:
        result = self.run_quietly(["rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{u}"])
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def force_push_with_lease(self) -> None:
        self.run(["push", "--force-with-lease"])

    def get_commits_behind(self, local_branch: str, remote_branch: str) -> int:
        """Number of commits on ``remote_branch`` missing from ``local_branch``."""
        result = self.run_quietly(["rev-list", "--count", f"{local_branch}..{remote_branch}"])
        if result.returncode != 0:
            return 0
        try:
            return int(result.stdout.strip())
        except ValueError:
            return 0

    def rebase(self, onto: str) -> None:
        self.run(["rebase", onto])

    def pull_rebase(self, branch_name: str) -> None:
        self.run(["pull", "--rebase", self.remote, branch_name])

    # Working tree and commits

    def get_porcelain_status(self) -> str:
        return self.run(["status", "--porcelain"])

    def stage_all_changes(self) -> None:
        self.run(["add", "-A"])

    def add(self, paths: list[str]) -> None:
        self.run(["add", "--"] + paths)

    def commit(self, message: str) -> None:
        self.run(["commit", "-m", message])

    def commit_fixup(self, sha: str) -> None:
        self.run(["commit", "--fixup", sha])

    def get_merge_base(self, base_branch: str, head: str = "HEAD") -> str:
        return self.run(["merge-base", base_branch, head]).strip()

    def find_latest_logical_sha(self, base_branch: str) -> str | None:
        """Latest commit since ``base_branch`` that is not a fixup/squash commit."""
        result = self.run_quietly(
            ["log", f"{base_branch}..HEAD", "--format=%H", *FIXUP_GREPS, "--invert-grep", "--max-count=1"]
        )
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def find_first_logical_sha(self, base_sha: str) -> str | None:
        """Oldest commit after ``base_sha`` that is not a fixup/squash commit."""
        result = self.run_quietly(
            ["log", "--reverse", f"{base_sha}..HEAD", "--format=%H", *FIXUP_GREPS, "--invert-grep"]
        )
        if result.returncode != 0:
            return None
        shas = result.stdout.split()
        return shas[0] if shas else None

    def get_commit_subject(self, sha: str) -> str:
        return self.run(["log", "-1", "--format=%s", sha]).strip()

    def has_commits(self) -> bool:
        return self.run_quietly(["rev-parse", "--verify", "--quiet", "HEAD"]).returncode == 0

    def is_head_pushed(self) -> bool:
        """Check whether any remote-tracking branch already contains HEAD."""
        result = self.run_quietly(["branch", "-r", "--contains", "HEAD"])
        return result.returncode == 0 and bool(result.stdout.strip())

    def undo_last_commit(self) -> None:
        """Drop the last commit and keep its changes staged."""
        self.run(["reset", "--soft", "HEAD~1"])

    def has_fixup_commits(self, base_sha: str) -> bool:
        result = self.run_quietly(["log", f"{base_sha}..HEAD", "--format=%s", *FIXUP_GREPS])
        if result.returncode != 0:
            return False
        return bool(result.stdout.strip())

    def rebase_autosquash(self, base_sha: str) -> None:
        """Squash fixup commits into their targets without opening an editor."""
        self.run(
            ["rebase", "-i", "--autosquash", base_sha],
            env={"GIT_SEQUENCE_EDITOR": "true", "GIT_EDITOR": "true"},
        )

    # Remote

    def get_remote_url(self, remote: str | None = None) -> str | None:
        result = self.run_quietly(["config", "--get", f"remote.{remote or self.remote}.url"])
        if result.returncode != 0:
            return None
        url = result.stdout.strip().rstrip(".")
        return url or None

    def get_repository_path(self, remote: str | None = None) -> tuple[str, str] | None:
        """Owner (or GitLab group path) and repository name of a remote."""
        url = self.get_remote_url(remote)
        if not url:
            return None
        return parse_remote_url(url)

    def get_repository_owner(self, remote: str | None = None) -> str | None:
        parsed = self.get_repository_path(remote)
        return parsed[0] if parsed else None

    def get_repository_name(self, remote: str | None = None) -> str | None:
        parsed = self.get_repository_path(remote)
        return parsed[1] if parsed else None

    # Per-repository state

    def get_project_config_path(self) -> Path:
        """Path of the stud state file inside the git directory."""
        result = self.run_quietly(["rev-parse", "--git-dir"])
        if result.returncode != 0:
            raise GitError("Not in a git repository.")
        git_dir = Path(result.stdout.strip())
        if self.cwd and not git_dir.is_absolute():
            git_dir = Path(self.cwd) / git_dir
        return git_dir / PROJECT_CONFIG_FILENAME

    def read_project_config(self) -> dict[str, Any]:
        """Read ``.git/stud.config``. Missing or unreadable files read as empty."""
        path = self.get_project_config_path()
        if not path.exists():
            return {}
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning("Ignoring unreadable project config", path=str(path), error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def write_project_config(self, data: dict[str, Any]) -> None:
        path = self.get_project_config_path()
        if not path.parent.is_dir():
            raise GitError(f"Git directory not found: {path.parent}")
        with open(path, "w") as f:
            yaml.safe_dump(data, f, default_flow_style=False)

    @staticmethod
    def get_project_key_from_issue_key(issue_key: str) -> str:
        try:
            return project_key_from_issue_key(issue_key)
        except ValueError as e:
            raise GitError(str(e))


def parse_remote_url(url: str) -> tuple[str, str] | None:
    """Split a remote URL into ``(owner, name)``.

    Handles SSH (``git@host:owner/repo.git``) and HTTP(S) URLs. For GitLab
    subgroups the owner is the full group path (``group/sub``).
    """
    match = REMOTE_URL_PATTERN.match(url.strip())
    if not match:
        return None
    parts = [part for part in match.group("path").split("/") if part]
    if len(parts) < 2:
        return None
    return "/".join(parts[:-1]), parts[-1]


def jira_key_from_branch(branch_name: str) -> str | None:
    """Find the issue key in a branch name (``feat/proj-12-x`` -> ``PROJ-12``)."""
    match = BRANCH_KEY_PATTERN.search(branch_name)
    return match.group(1).upper() if match else None
