"""Tests for the git client."""

import subprocess
from pathlib import Path
from unittest.mock import call, patch

import pytest

from pysgit.exceptions import SgitCloneError, SgitGitError
from pysgit.git import GitClient

REPO = Path("/code/go/foo")


def completed(stdout="", returncode=0, stderr=""):
    return subprocess.CompletedProcess(
        args=["git"], returncode=returncode, stdout=stdout, stderr=stderr
    )


@pytest.fixture
def mock_run():
    with patch("pysgit.git.subprocess.run") as mock_run:
        yield mock_run


@pytest.fixture
def git():
    return GitClient(timeout=10.0)


class TestRun:
    """Tests for command execution and error mapping."""

    def test_command_and_options(self, git, mock_run):
        mock_run.return_value = completed()

        git.has_uncommitted_changes(REPO)

        mock_run.assert_called_once_with(
            ["git", "status", "--porcelain"],
            cwd=str(REPO),
            capture_output=True,
            text=True,
            timeout=10.0,
            check=False,
        )

    def test_timeout_override(self, git, mock_run):
        mock_run.return_value = completed()

        git.has_uncommitted_changes(REPO, timeout=2.0)

        assert mock_run.call_args.kwargs["timeout"] == 2.0

    def test_non_zero_exit(self, git, mock_run):
        mock_run.return_value = completed(
            returncode=128, stderr="fatal: not a git repository\n"
        )

        with pytest.raises(SgitGitError) as exc_info:
            git.has_uncommitted_changes(REPO)

        assert exc_info.value.returncode == 128
        assert "not a git repository" in str(exc_info.value)

    def test_timeout_expired(self, git, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="git", timeout=10.0)

        with pytest.raises(SgitGitError, match="timed out"):
            git.has_uncommitted_changes(REPO)

    def test_git_missing(self, git, mock_run):
        mock_run.side_effect = FileNotFoundError("git")

        with pytest.raises(SgitGitError, match="Failed to run git"):
            git.has_uncommitted_changes(REPO)


class TestStatus:
    """Tests for working copy status checks."""

    def test_clean(self, git, mock_run):
        mock_run.return_value = completed("")

        assert git.has_uncommitted_changes(REPO) is False

    @pytest.mark.parametrize("line", [" M main.go", "?? new.txt", "A  added.go"])
    def test_dirty(self, git, mock_run, line):
        mock_run.return_value = completed(f"{line}\n")

        assert git.has_uncommitted_changes(REPO) is True

    def test_merge_conflicts(self, git, mock_run):
        mock_run.return_value = completed(" M main.go\nUU conflict.go\n")

        assert git.has_merge_conflicts(REPO) is True

    def test_no_merge_conflicts(self, git, mock_run):
        mock_run.return_value = completed(" M main.go\n")

        assert git.has_merge_conflicts(REPO) is False


class TestRemoteUrl:
    """Tests for GitClient.get_remote_url."""

    def test_first_remote(self, git, mock_run):
        mock_run.side_effect = [
            completed("origin\nupstream\n"),
            completed("git@github.com:me/foo.git\n"),
        ]

        assert git.get_remote_url(REPO) == "git@github.com:me/foo.git"
        assert mock_run.call_args.args[0] == ["git", "remote", "get-url", "origin"]

    def test_no_remote(self, git, mock_run):
        mock_run.return_value = completed("")

        assert git.get_remote_url(REPO) == ""
        assert mock_run.call_count == 1


class TestClone:
    """Tests for GitClient.clone."""

    def test_clone(self, git, mock_run):
        mock_run.return_value = completed()
        target = Path("/code/go/foo")

        assert git.clone("git@github.com:me/foo.git", target) == target
        args, kwargs = mock_run.call_args
        assert args[0] == [
            "git",
            "clone",
            "--quiet",
            "git@github.com:me/foo.git",
            str(target),
        ]
        assert kwargs["cwd"] == str(target.parent)

    def test_clone_failure(self, git, mock_run):
        mock_run.return_value = completed(
            returncode=128, stderr="Repository not found."
        )

        with pytest.raises(SgitCloneError) as exc_info:
            git.clone("git@github.com:me/foo.git", REPO)

        assert "Repository not found." in str(exc_info.value)
        assert exc_info.value.returncode == 128


class TestMutations:
    """Tests for pull, push, stash and reset."""

    def test_pull(self, git, mock_run):
        mock_run.return_value = completed()

        git.pull(REPO)

        commands = [c.args[0][1:] for c in mock_run.call_args_list]
        assert commands == [["fetch"], ["pull", "--ff-only"]]

    def test_push_clean_working_copy(self, git, mock_run):
        mock_run.return_value = completed("")

        assert git.push(REPO) is False
        assert mock_run.call_count == 1

    def test_push_commits_and_pushes(self, git, mock_run):
        mock_run.return_value = completed(" M main.go\n")

        assert git.push(REPO, message="wip") is True

        commands = [c.args[0][1:] for c in mock_run.call_args_list]
        assert commands == [
            ["status", "--porcelain"],
            ["add", "--all"],
            ["commit", "--quiet", "-m", "wip"],
            ["push", "--quiet"],
        ]

    def test_stash(self, git, mock_run):
        mock_run.return_value = completed()

        git.stash(REPO)

        assert mock_run.call_args == call(
            ["git", "stash", "push", "--include-untracked"],
            cwd=str(REPO),
            capture_output=True,
            text=True,
            timeout=10.0,
            check=False,
        )

    def test_reset(self, git, mock_run):
        mock_run.return_value = completed()

        git.reset(REPO)

        assert mock_run.call_args.args[0] == ["git", "reset", "--hard"]
