"""Tests for utility functions."""

import pytest

from pysgit.utils import RepoReference, parse_comma_separated, parse_repo_argument


class TestParseCommaSeparated:
    """Tests for parse_comma_separated function."""

    def test_none(self):
        assert parse_comma_separated(None) == []

    def test_empty(self):
        assert parse_comma_separated("") == []

    def test_single(self):
        assert parse_comma_separated("go") == ["go"]

    def test_strips_and_drops_empty_parts(self):
        assert parse_comma_separated(" go, ,rust,, ") == ["go", "rust"]


class TestParseRepoArgument:
    """Tests for parse_repo_argument function."""

    def test_name_only_uses_default_owner(self):
        assert parse_repo_argument("sgit", "me") == RepoReference("me", "sgit")

    def test_owner_and_name(self):
        assert parse_repo_argument("org/sgit", "me") == RepoReference("org", "sgit")

    def test_scp_like_url(self):
        ref = parse_repo_argument("git@github.com:org/sgit.git", "me")

        assert ref == RepoReference("org", "sgit")

    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/org/sgit",
            "https://github.com/org/sgit.git",
            "https://github.com/org/sgit/",
        ],
    )
    def test_https_url(self, url):
        assert parse_repo_argument(url, "me") == RepoReference("org", "sgit")

    def test_full_name(self):
        assert parse_repo_argument("org/sgit", "me").full_name == "org/sgit"

    @pytest.mark.parametrize("argument", ["", "/", "https://github.com"])
    def test_unparseable(self, argument):
        with pytest.raises(ValueError, match="Cannot parse repository"):
            parse_repo_argument(argument, "me")
