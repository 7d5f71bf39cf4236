import subprocess
from unittest.mock import patch

import pytest

from repohub.git import (
    GitError,
    GitOperation,
    check_access,
    classify_operation,
    clone_repository,
    commit_diff,
    current_branch,
    is_git_request,
    list_branches,
    normalize_visibility,
)


def _fake_git(responses):
    calls = []

    def run(args, **kwargs):
        calls.append((args, kwargs))
        code, out = responses.get(args[1], (0, ""))
        return subprocess.CompletedProcess(args, code, stdout=out, stderr="")

    return run, calls


def test_current_branch_uses_rev_parse(tmp_path):
    run, calls = _fake_git({"rev-parse": (0, "feature\n")})
    with patch("repohub.git.subprocess.run", side_effect=run):
        assert current_branch(tmp_path) == "feature"
    assert calls[0][0][:2] == ["git", "rev-parse"]
    assert calls[0][1]["cwd"] == str(tmp_path)


def test_current_branch_falls_back_to_first_branch(tmp_path):
    run, _ = _fake_git({"rev-parse": (128, ""), "for-each-ref": (0, "develop\nmain\n")})
    with patch("repohub.git.subprocess.run", side_effect=run):
        assert current_branch(tmp_path) == "develop"


def test_current_branch_defaults_to_main(tmp_path):
    run, _ = _fake_git({"rev-parse": (128, ""), "for-each-ref": (0, "")})
    with patch("repohub.git.subprocess.run", side_effect=run):
        assert current_branch(tmp_path) == "main"


def test_current_branch_in_missing_directory(tmp_path):
    assert current_branch(tmp_path / "absent") == "main"


def test_list_branches_parses_lines(tmp_path):
    run, _ = _fake_git({"for-each-ref": (0, "main\n  topic  \n\n")})
    with patch("repohub.git.subprocess.run", side_effect=run):
        assert list_branches(tmp_path) == ["main", "topic"]


def test_list_branches_failure_raises(tmp_path):
    run, _ = _fake_git({"for-each-ref": (128, "")})
    with patch("repohub.git.subprocess.run", side_effect=run):
        with pytest.raises(GitError):
            list_branches(tmp_path)


def test_commit_diff_requires_hash(tmp_path):
    with pytest.raises(GitError, match="commit hash required"):
        commit_diff(tmp_path, "")


def test_commit_diff_returns_output(tmp_path):
    run, calls = _fake_git({"show": (0, "diff --git a/x b/x\n")})
    with patch("repohub.git.subprocess.run", side_effect=run):
        assert commit_diff(tmp_path, "abc123") == "diff --git a/x b/x\n"
    assert calls[0][0] == ["git", "show", "abc123"]


def test_commit_diff_failure(tmp_path):
    with pytest.raises(GitError, match="failed to get commit diff"):
        commit_diff(tmp_path / "absent", "abc123")


def test_clone_failure_reports_output(tmp_path):
    run, _ = _fake_git({"clone": (128, "fatal: repository not found")})
    with patch("repohub.git.subprocess.run", side_effect=run):
        with pytest.raises(GitError, match="fatal: repository not found"):
            clone_repository("https://example.com/none.git", tmp_path / "dest")


def test_clone_requires_url(tmp_path):
    with pytest.raises(GitError):
        clone_repository("", tmp_path / "dest")


def test_classify_operation():
    assert classify_operation("/test/git-receive-pack", "") is GitOperation.PUSH
    assert classify_operation("/test/info/refs", "git-receive-pack") is GitOperation.PUSH
    assert classify_operation("/test/git-upload-pack", "") is GitOperation.PULL
    assert classify_operation("/test/info/refs", "git-upload-pack") is GitOperation.PULL
    assert classify_operation("/test/HEAD", "") is GitOperation.OTHER


def test_push_requires_admin():
    with pytest.raises(GitError, match="only admins can push to repositories"):
        check_access(GitOperation.PUSH, False, "public")
    assert check_access(GitOperation.PUSH, True, "private") is None


def test_pull_of_private_repository():
    with pytest.raises(GitError, match="access denied - private repository"):
        check_access(GitOperation.PULL, False, "private")
    assert check_access(GitOperation.PULL, False, "public") is None
    assert check_access(GitOperation.PULL, True, "private") is None


def test_is_git_request():
    assert is_git_request("/repo/test.git/info/refs") is True
    assert is_git_request("/repo/test/git-upload-pack") is True
    assert is_git_request("/repos/test.git") is False
    assert is_git_request("/repo/test/files") is False


def test_normalize_visibility():
    assert normalize_visibility("public") == "public"
    assert normalize_visibility("private") == "private"
    assert normalize_visibility("internal") == "private"
    assert normalize_visibility("") == "private"