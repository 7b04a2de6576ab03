"""Tests for the GitHub remote source."""

from unittest.mock import Mock

import pytest

from pysgit.api import GitHubClient
from pysgit.exceptions import (
    SgitAPIError,
    SgitAuthenticationError,
    SgitCancelledError,
    SgitNetworkError,
)
from pysgit.sync import GitHubRemoteSource, RunContext
from pysgit.sync.remote import repo_from_api


def api_repo(name, owner="me", fork=False):
    return {
        "name": name,
        "full_name": f"{owner}/{name}",
        "owner": {"login": owner},
        "ssh_url": f"git@github.com:{owner}/{name}.git",
        "clone_url": f"https://github.com/{owner}/{name}.git",
        "fork": fork,
    }


@pytest.fixture
def client():
    client = Mock(spec=GitHubClient)
    client.timeout = 5.0
    return client


class TestRepoFromApi:
    """Tests for repo_from_api."""

    def test_fields(self):
        repo = repo_from_api(api_repo("foo", owner="org", fork=True))

        assert repo.name == "foo"
        assert repo.owner == "org"
        assert repo.language == "unknown"
        assert repo.clone_url == "git@github.com:org/foo.git"
        assert repo.fork is True

    def test_falls_back_to_https_clone_url(self):
        data = api_repo("foo")
        del data["ssh_url"]

        assert repo_from_api(data).clone_url == "https://github.com/me/foo.git"

    def test_owner_from_full_name(self):
        repo = repo_from_api({"full_name": "org/foo"})

        assert (repo.owner, repo.name) == ("org", "foo")


class TestGitHubRemoteSource:
    """Tests for GitHubRemoteSource.list_repos."""

    def test_resolves_primary_languages(self, client):
        client.list_repos.return_value = [api_repo("foo"), api_repo("bar")]
        client.get_languages.side_effect = lambda owner, name, timeout=None: {
            "foo": {"Go": 5000, "Shell": 120},
            "bar": {"Rust": 10, "Python": 10},
        }[name]

        result = GitHubRemoteSource(client, max_workers=2).list_repos()

        languages = {repo.name: repo.language for repo in result.items}
        assert languages == {"foo": "go", "bar": "rust"}
        assert result.errors == []

    def test_no_languages_is_unknown(self, client):
        client.list_repos.return_value = [api_repo("empty")]
        client.get_languages.return_value = {}

        result = GitHubRemoteSource(client).list_repos()

        assert result.items[0].language == "unknown"

    def test_sorted_by_owner_and_name(self, client):
        client.list_repos.return_value = [
            api_repo("b", owner="org"),
            api_repo("z"),
            api_repo("a"),
        ]
        client.get_languages.return_value = {"Go": 1}

        result = GitHubRemoteSource(client).list_repos()

        assert [(r.owner, r.name) for r in result.items] == [
            ("me", "a"),
            ("me", "z"),
            ("org", "b"),
        ]

    def test_language_lookup_failure_is_reported(self, client):
        """A failed lookup keeps the repository but marks it and records the error."""
        network_error = SgitNetworkError("Network error: timed out")

        def get_languages(owner, name, timeout=None):
            if name == "bar":
                raise network_error
            return {"Go": 1}

        client.list_repos.return_value = [api_repo("foo"), api_repo("bar")]
        client.get_languages.side_effect = get_languages

        result = GitHubRemoteSource(client).list_repos()

        repos = {repo.name: repo for repo in result.items}
        assert repos["foo"].language_error is None
        assert repos["bar"].language == "unknown"
        assert isinstance(repos["bar"].language_error, SgitAPIError)
        assert repos["bar"].language_error.__cause__ is network_error
        assert result.errors == [repos["bar"].language_error]
        assert "me/bar" in str(result.errors[0])

    def test_listing_failure_is_fatal(self, client):
        client.list_repos.side_effect = SgitAuthenticationError("bad token", 401)

        with pytest.raises(SgitAuthenticationError):
            GitHubRemoteSource(client).list_repos()

        client.get_languages.assert_not_called()

    def test_timeout_bounded_by_context(self, client):
        client.list_repos.return_value = []

        GitHubRemoteSource(client).list_repos(RunContext(timeout=1.0))

        timeout = client.list_repos.call_args.kwargs["timeout"]
        assert 0 < timeout <= 1.0

    def test_cancelled_context(self, client):
        context = RunContext()
        context.cancel()

        with pytest.raises(SgitCancelledError):
            GitHubRemoteSource(client).list_repos(context)

        client.list_repos.assert_not_called()
