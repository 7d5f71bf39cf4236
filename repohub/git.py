"""Git command helpers and access rules for repositories served over HTTP."""

from __future__ import annotations

import os
import subprocess
from enum import Enum

DEFAULT_BRANCH = "main"


class GitError(Exception):
    """Raised when a git command fails or a git operation is refused."""


class GitOperation(Enum):
    """Kind of operation a git HTTP request performs."""

    PUSH = "push"
    PULL = "pull"
    OTHER = "other"


def _run_git(repo_path: str | os.PathLike | None, *args: str, merge_output: bool = False):
    """Run git with ``args`` and return the completed process.

    Raises GitError when git cannot be started.
    """
    try:
        return subprocess.run(
            ["git", *args],
            cwd=os.fspath(repo_path) if repo_path is not None else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if merge_output else subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
        )
    except OSError as exc:
        raise GitError(str(exc)) from exc


def list_branches(repo_path: str | os.PathLike) -> list[str]:
    """Return the names of the local branches, sorted by name."""
    result = _run_git(repo_path, "for-each-ref", "--format=%(refname:short)", "refs/heads")
    if result.returncode != 0:
        raise GitError(f"failed to list branches: exit status {result.returncode}")
    return [line.strip() for line in result.stdout.splitlines() if line.strip()]


def current_branch(repo_path: str | os.PathLike) -> str:
    """Return the checked-out branch, else the first branch, else ``"main"``."""
    try:
        result = _run_git(repo_path, "rev-parse", "--abbrev-ref", "HEAD")
    except GitError:
        result = None
    if result is not None and result.returncode == 0:
        return result.stdout.strip()
    try:
        branches = list_branches(repo_path)
    except GitError:
        return DEFAULT_BRANCH
    return branches[0] if branches else DEFAULT_BRANCH


def commit_diff(repo_path: str | os.PathLike, commit: str) -> str:
    """Return the output of ``git show`` for a commit."""
    if not commit:
        raise GitError("commit hash required")
    try:
        result = _run_git(repo_path, "show", commit)
    except GitError as exc:
        raise GitError(f"failed to get commit diff: {exc}") from exc
    if result.returncode != 0:
        raise GitError(f"failed to get commit diff: exit status {result.returncode}")
    return result.stdout


def clone_repository(url: str, destination: str | os.PathLike) -> None:
    """Clone ``url`` into ``destination``; git's output is in the error on failure."""
    if not url:
        raise GitError("Git URL is required")
    try:
        result = _run_git(None, "clone", url, os.fspath(destination), merge_output=True)
    except GitError as exc:
        raise GitError(f"failed to clone repository: {exc}") from exc
    if result.returncode != 0:
        raise GitError(f"failed to clone repository: {result.stdout}")


def classify_operation(path: str, service: str) -> GitOperation:
    """Tell from the URL path and ``service`` parameter whether a request pushes or pulls."""
    if "git-receive-pack" in path or "git-receive-pack" in service:
        return GitOperation.PUSH
    if "git-upload-pack" in path or "git-upload-pack" in service:
        return GitOperation.PULL
    return GitOperation.OTHER


def check_access(operation: GitOperation, is_admin: bool, visibility: str) -> None:
    """Refuse pushes by non-admins and pulls of non-public repositories by non-admins."""
    if operation is GitOperation.PUSH:
        if not is_admin:
            raise GitError("only admins can push to repositories")
    elif operation is GitOperation.PULL:
        if visibility != "public" and not is_admin:
            raise GitError("access denied - private repository")


def is_git_request(path: str) -> bool:
    """Tell whether a request path addresses the git HTTP server."""
    return path.startswith("/repo/") and (
        ".git" in path or "git-upload-pack" in path or "git-receive-pack" in path
    )


def normalize_visibility(value: str) -> str:
    """Return ``value`` if it is ``"public"`` or ``"private"``, else ``"private"``."""
    return value if value in ("public", "private") else "private"