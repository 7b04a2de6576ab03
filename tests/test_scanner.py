"""Tests for the local directory scanner."""

import logging
import tempfile
from pathlib import Path
from unittest.mock import Mock

import pytest

from pysgit.exceptions import SgitCancelledError, SgitConfigError, SgitGitError
from pysgit.git import GitClient
from pysgit.sync import DirectoryScanner, RunContext


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def project_tree(temp_dir):
    """Create a small <language>/<name> tree.

    go/foo   git repository
    go/baz   plain directory
    rust/bar git repository
    """
    (temp_dir / "go" / "foo" / ".git").mkdir(parents=True)
    (temp_dir / "go" / "baz").mkdir(parents=True)
    (temp_dir / "rust" / "bar" / ".git").mkdir(parents=True)
    (temp_dir / "README.md").write_text("not a language")
    (temp_dir / "go" / "notes.txt").write_text("not a repository")
    (temp_dir / ".cache" / "thing").mkdir(parents=True)
    return temp_dir


@pytest.fixture
def git():
    git = Mock(spec=GitClient)
    git.timeout = 60.0
    git.get_remote_url.return_value = "git@github.com:me/repo.git"
    git.has_uncommitted_changes.return_value = False
    return git


class TestListDirectories:
    """Tests for DirectoryScanner.list_directories."""

    def test_leaf_directories(self, project_tree, git):
        scanner = DirectoryScanner(project_tree, git)

        directories = scanner.list_directories()

        assert directories == [
            project_tree / "go" / "baz",
            project_tree / "go" / "foo",
            project_tree / "rust" / "bar",
        ]

    def test_missing_base_dir(self, temp_dir, git):
        scanner = DirectoryScanner(temp_dir / "missing", git)

        with pytest.raises(SgitConfigError, match="does not exist"):
            scanner.list_directories()

    def test_base_dir_is_file(self, temp_dir, git):
        path = temp_dir / "file"
        path.write_text("x")
        scanner = DirectoryScanner(path, git)

        with pytest.raises(SgitConfigError, match="not a directory"):
            scanner.list_directories()

    def test_empty_base_dir(self, temp_dir, git):
        assert DirectoryScanner(temp_dir, git).list_directories() == []

    def test_owner_layout(self, temp_dir, git):
        (temp_dir / "me" / "go" / "foo").mkdir(parents=True)
        (temp_dir / "org" / "rust" / "bar").mkdir(parents=True)
        scanner = DirectoryScanner(temp_dir, git, owner_directories=True)

        directories = scanner.list_directories()

        assert directories == [
            temp_dir / "me" / "go" / "foo",
            temp_dir / "org" / "rust" / "bar",
        ]

    def test_dot_named_repository_is_listed(self, project_tree, git):
        """Hidden directories are skipped as languages but kept as repositories."""
        (project_tree / "unknown" / ".github" / ".git").mkdir(parents=True)
        (project_tree / ".trash" / "old").mkdir(parents=True)

        directories = DirectoryScanner(project_tree, git).list_directories()

        assert project_tree / "unknown" / ".github" in directories
        assert project_tree / ".trash" / "old" not in directories
        assert project_tree / ".cache" / "thing" not in directories

    def test_dot_named_repository_in_owner_layout(self, temp_dir, git):
        (temp_dir / "me" / "go" / ".dotfiles").mkdir(parents=True)
        (temp_dir / ".me" / "go" / "foo").mkdir(parents=True)
        (temp_dir / "me" / ".go" / "bar").mkdir(parents=True)
        scanner = DirectoryScanner(temp_dir, git, owner_directories=True)

        assert scanner.list_directories() == [temp_dir / "me" / "go" / ".dotfiles"]


class TestListRepos:
    """Tests for DirectoryScanner.list_repos."""

    def test_probes_git_repositories(self, project_tree, git):
        scanner = DirectoryScanner(project_tree, git, max_workers=2)

        result = scanner.list_repos()

        repos = {repo.name: repo for repo in result.items}
        assert set(repos) == {"foo", "bar", "baz"}
        assert repos["foo"].language == "go"
        assert repos["foo"].git_repo is True
        assert repos["foo"].remote_url == "git@github.com:me/repo.git"
        assert repos["bar"].language == "rust"
        assert repos["baz"].git_repo is False
        assert repos["baz"].remote_url == ""
        assert result.errors == []

    def test_plain_directories_are_not_probed(self, project_tree, git):
        scanner = DirectoryScanner(project_tree, git)

        scanner.list_repos()

        probed = {call.args[0].name for call in git.has_uncommitted_changes.call_args_list}
        assert probed == {"foo", "bar"}

    def test_sorted_by_language_then_name(self, project_tree, git):
        result = DirectoryScanner(project_tree, git).list_repos()

        assert [(r.language, r.name) for r in result.items] == [
            ("go", "baz"),
            ("go", "foo"),
            ("rust", "bar"),
        ]

    def test_uncommitted_changes(self, project_tree, git):
        git.has_uncommitted_changes.side_effect = lambda path, timeout=None: (
            path.name == "foo"
        )

        result = DirectoryScanner(project_tree, git).list_repos()

        dirty = {repo.name for repo in result.items if repo.uncommitted_changes}
        assert dirty == {"foo"}

    def test_probe_failure_degrades_to_defaults(self, project_tree, git, caplog):
        """A failed git probe keeps safe defaults and is reported."""
        git.has_uncommitted_changes.side_effect = SgitGitError("git status failed")
        git.get_remote_url.side_effect = SgitGitError("git remote failed")

        with caplog.at_level(logging.WARNING):
            result = DirectoryScanner(project_tree, git).list_repos()

        repos = {repo.name: repo for repo in result.items}
        assert repos["foo"].git_repo is True
        assert repos["foo"].uncommitted_changes is False
        assert repos["foo"].remote_url == ""
        assert len(result.errors) == 4
        assert "assuming no uncommitted changes" in caplog.text

    def test_owner_layout(self, temp_dir, git):
        (temp_dir / "org" / "go" / "foo" / ".git").mkdir(parents=True)
        scanner = DirectoryScanner(temp_dir, git, owner_directories=True)

        result = scanner.list_repos()

        repo = result.items[0]
        assert (repo.owner, repo.language, repo.name) == ("org", "go", "foo")
        assert repo.identity(by_owner=True) == ("org", "foo")

    def test_cancelled_context(self, project_tree, git):
        context = RunContext()
        context.cancel()

        with pytest.raises(SgitCancelledError):
            DirectoryScanner(project_tree, git).list_repos(context)

    def test_missing_base_dir_raises(self, temp_dir, git):
        with pytest.raises(SgitConfigError):
            DirectoryScanner(temp_dir / "missing", git).list_repos()
