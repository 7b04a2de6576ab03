"""Repository operations: clone remediation, creation and deletion."""

import logging
import shutil
import threading
from pathlib import Path
from typing import Optional

from ..api import UNKNOWN_LANGUAGE, GitHubClient
from ..config import Config
from ..exceptions import SgitCloneError, SgitError
from ..git import GitClient
from ..utils import parse_repo_argument
from .context import RunContext
from .models import RemoteRepo, RepoStatePair
from .remote import repo_from_api

logger = logging.getLogger(__name__)


def repo_target_path(config: Config, repo: RemoteRepo) -> Path:
    """Directory a remote repository lives in under the configured layout."""
    base = config.base_dir
    if config.owner_directories:
        base = base / repo.owner
    return base / repo.language / repo.name


class RepoOperations:
    """Mutating operations on the local tree and the remote account."""

    def __init__(self, config: Config, client: GitHubClient, git: GitClient):
        """Initialize repository operations.

        Args:
            config: Run configuration
            client: GitHub API client
            git: Git client
        """
        self.config = config
        self.client = client
        self.git = git
        self._locks: dict[Path, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, path: Path) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(path, threading.Lock())

    def target_path(self, repo: RemoteRepo) -> Path:
        """Directory a remote repository is cloned into."""
        return repo_target_path(self.config, repo)

    def clone(self, repo: RemoteRepo, context: Optional[RunContext] = None) -> Path:
        """Clone a remote repository into its language directory.

        Clones targeting the same directory are serialized. A clone that has
        not started is skipped when the run is cancelled; one that has started
        is left to finish. When a clone fails, the partially created target
        directory is removed so that a later scan does not see it.

        Args:
            repo: Repository to clone
            context: Run context

        Returns:
            Path of the new working copy

        Raises:
            SgitCancelledError: If the run was cancelled before the clone started
            SgitCloneError: If the target exists or the clone fails
        """
        context = context or RunContext()
        target = self.target_path(repo)

        with self._lock_for(target):
            context.check()
            if target.exists():
                raise SgitCloneError(f"Clone target already exists: {target}")

            try:
                target.parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise SgitCloneError(
                    f"Failed to create directory {target.parent}: {e}"
                ) from e

            logger.debug(f"Cloning {repo.owner}/{repo.name} into {target}...")
            try:
                self.git.clone(repo.clone_url, target)
            except SgitCloneError:
                if target.exists():
                    logger.debug(f"Removing incomplete clone at {target}")
                    shutil.rmtree(target, ignore_errors=True)
                raise

        logger.info(f"Cloned {repo.owner}/{repo.name} into {target}")
        return target

    def create_remote(self, name: str, private: bool = False) -> RemoteRepo:
        """Create a repository on the account.

        The language of a fresh repository is unknown, so it is placed under
        the ``unknown`` language directory.
        """
        data = self.client.create_repo(name, private=private)
        repo = repo_from_api(data) if data else None
        if repo is None or not repo.name:
            repo = RemoteRepo(
                name=name,
                owner=self.config.username,
                language=UNKNOWN_LANGUAGE,
                clone_url=f"git@github.com:{self.config.username}/{name}.git",
            )
        logger.info(f"Created remote repository {repo.owner}/{repo.name}")
        return repo

    def resolve_remote(
        self, argument: str, context: Optional[RunContext] = None
    ) -> RemoteRepo:
        """Look up a repository named on the command line.

        Args:
            argument: ``name``, ``owner/name`` or a clone URL
            context: Run context used to bound request timeouts

        Returns:
            RemoteRepo with its primary language
        """
        context = context or RunContext()
        ref = parse_repo_argument(argument, self.config.username)
        timeout = context.remaining(self.client.timeout)

        repo = repo_from_api(self.client.get_repo(ref.owner, ref.name, timeout=timeout))
        repo.owner = repo.owner or ref.owner
        repo.language = self.client.get_primary_language(
            repo.owner, repo.name, timeout=timeout
        )
        return repo

    def delete_remote(self, pair: RepoStatePair) -> None:
        """Delete the hosted repository behind a classified pair."""
        owner = pair.owner or self.config.username
        self.client.delete_repo(owner, pair.name)
        logger.info(f"Deleted remote repository {owner}/{pair.name}")

    def delete_local(self, pair: RepoStatePair) -> bool:
        """Delete the local directory behind a classified pair.

        Returns:
            True if a directory was removed, False if none existed

        Raises:
            SgitError: If the path is not a leaf directory of the project tree
        """
        path = pair.path
        base = self.config.base_dir.resolve()
        depth = 3 if self.config.owner_directories else 2
        try:
            relative = path.resolve().relative_to(base)
        except ValueError as e:
            raise SgitError(f"Refusing to delete {path}: outside {base}") from e
        if len(relative.parts) != depth:
            raise SgitError(f"Refusing to delete {path}: not a repository directory")

        if not path.exists():
            return False
        shutil.rmtree(path)
        logger.info(f"Deleted local directory {path}")
        return True
