"""Remote source: repositories hosted on the GitHub account."""

import logging
from typing import Any, Optional

from ..api import UNKNOWN_LANGUAGE, GitHubClient, select_primary_language
from ..exceptions import SgitAPIError
from .context import RunContext, map_bounded
from .models import RemoteRepo
from .protocols import CollectionResult

logger = logging.getLogger(__name__)


def repo_from_api(data: dict[str, Any]) -> RemoteRepo:
    """Build a RemoteRepo (without language) from an API repository object."""
    full_name = data.get("full_name") or data.get("name", "")
    name = data.get("name") or full_name.split("/")[-1]
    owner_data = data.get("owner") or {}
    owner = owner_data.get("login") or (
        full_name.split("/")[0] if "/" in full_name else ""
    )
    return RemoteRepo(
        name=name,
        owner=owner,
        language=UNKNOWN_LANGUAGE,
        clone_url=data.get("ssh_url") or data.get("clone_url", ""),
        fork=bool(data.get("fork", False)),
    )


class GitHubRemoteSource:
    """Lists hosted repositories and resolves each one's primary language.

    The listing call is fatal when it fails. Language lookups run
    concurrently on a bounded pool; a failed lookup keeps the repository with
    language ``"unknown"`` and records the error on it and in the result.
    """

    def __init__(self, client: GitHubClient, max_workers: int = 8):
        """Initialize remote source.

        Args:
            client: GitHub API client
            max_workers: Maximum number of concurrent language lookups
        """
        self.client = client
        self.max_workers = max_workers

    def list_repos(
        self, context: Optional[RunContext] = None
    ) -> CollectionResult[RemoteRepo]:
        context = context or RunContext()
        context.check()

        raw_repos = self.client.list_repos(
            timeout=context.remaining(self.client.timeout)
        )
        repos = [repo_from_api(data) for data in raw_repos]

        def resolve(repo: RemoteRepo) -> str:
            languages = self.client.get_languages(
                repo.owner,
                repo.name,
                timeout=context.remaining(self.client.timeout),
            )
            return select_primary_language(languages)

        result: CollectionResult[RemoteRepo] = CollectionResult()
        for repo, language, error in map_bounded(
            resolve, repos, self.max_workers, context
        ):
            if error is not None:
                logger.warning(
                    "Language lookup failed for %s/%s, excluding it from "
                    "matching: %s",
                    repo.owner,
                    repo.name,
                    error,
                )
                lookup_error = SgitAPIError(
                    f"Failed to determine language of {repo.owner}/{repo.name}: "
                    f"{error}"
                )
                lookup_error.__cause__ = error
                repo.language_error = lookup_error
                result.errors.append(lookup_error)
            else:
                repo.language = language or UNKNOWN_LANGUAGE
            result.items.append(repo)

        result.items.sort(key=lambda r: (r.owner, r.name))
        logger.debug(
            "Collected %d remote repositories (%d language lookup failures)",
            len(result.items),
            len(result.errors),
        )
        return result
