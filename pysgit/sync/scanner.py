"""Local source: scanning the ``<base>/<language>/<name>`` project tree."""

import logging
from pathlib import Path
from typing import Optional

from ..exceptions import SgitConfigError, SgitError, SgitGitError
from ..git import GitClient
from .context import RunContext, map_bounded
from .models import LocalRepo
from .protocols import CollectionResult

logger = logging.getLogger(__name__)

GIT_METADATA_DIR = ".git"


class DirectoryScanner:
    """Scans the local project tree and probes each leaf directory.

    The tree has a fixed depth: ``<base>/<language>/<name>``, or
    ``<base>/<owner>/<language>/<name>`` when ``owner_directories`` is set.
    Files are ignored at every level. Dot-directories are ignored at the
    owner and language levels; at the leaf level they are repositories such
    as ``.github``.

    A failed probe never aborts the scan. The affected field keeps its safe
    default (no git metadata, no uncommitted changes, no remote URL), a
    warning is logged and the error is returned alongside the repositories.

    Examples:
        >>> scanner = DirectoryScanner(Path("~/code").expanduser(), GitClient())
        >>> result = scanner.list_repos()
        >>> for repo in result.items:
        ...     print(repo.language, repo.name, repo.git_repo)
    """

    def __init__(
        self,
        base_dir: Path,
        git: GitClient,
        max_workers: int = 8,
        owner_directories: bool = False,
    ):
        """Initialize directory scanner.

        Args:
            base_dir: Root of the project tree
            git: Git client used for status probes
            max_workers: Maximum number of concurrent probes
            owner_directories: Whether an owner level precedes the language level
        """
        self.base_dir = Path(base_dir)
        self.git = git
        self.max_workers = max_workers
        self.owner_directories = owner_directories

    @staticmethod
    def _subdirectories(directory: Path, include_hidden: bool = False) -> list[Path]:
        """List child directories, sorted by name."""
        try:
            children = [
                item
                for item in directory.iterdir()
                if item.is_dir()
                and (include_hidden or not item.name.startswith("."))
            ]
        except PermissionError as e:
            logger.warning(f"Permission denied, skipping {directory}: {e}")
            return []
        return sorted(children, key=lambda p: p.name)

    def list_directories(self) -> list[Path]:
        """Enumerate leaf directories of the project tree.

        Returns:
            Sorted list of absolute leaf directory paths

        Raises:
            SgitConfigError: If the base directory does not exist or is not a
                directory
        """
        if not self.base_dir.exists():
            raise SgitConfigError(f"Base directory does not exist: {self.base_dir}")
        if not self.base_dir.is_dir():
            raise SgitConfigError(f"Base path is not a directory: {self.base_dir}")

        levels = 3 if self.owner_directories else 2
        current = [self.base_dir]
        for level in range(1, levels + 1):
            # Repository names may start with a dot (".github")
            leaf = level == levels
            current = [
                child
                for parent in current
                for child in self._subdirectories(parent, include_hidden=leaf)
            ]
        return current

    def probe(
        self, directory: Path, context: Optional[RunContext] = None
    ) -> tuple[LocalRepo, list[Exception]]:
        """Build a LocalRepo for one leaf directory.

        Args:
            directory: Leaf directory to probe
            context: Run context used to bound git command timeouts

        Returns:
            Tuple of (LocalRepo, errors tolerated while probing)
        """
        context = context or RunContext()
        errors: list[Exception] = []
        repo = LocalRepo(
            name=directory.name,
            language=directory.parent.name,
            path=directory,
            owner=directory.parent.parent.name if self.owner_directories else "",
        )

        metadata = directory / GIT_METADATA_DIR
        try:
            repo.git_repo = metadata.exists()
        except OSError as e:
            logger.warning(
                "Git metadata check failed for %s/%s (%s), assuming not a git "
                "repository: %s",
                repo.language,
                repo.name,
                metadata,
                e,
            )
            errors.append(
                SgitError(f"Failed to check git metadata of {directory}: {e}")
            )
            return repo, errors

        if not repo.git_repo:
            return repo, errors

        timeout = context.remaining(self.git.timeout)
        try:
            repo.remote_url = self.git.get_remote_url(directory, timeout=timeout)
        except SgitGitError as e:
            logger.warning(
                "Remote URL lookup failed for %s/%s (%s), assuming no remote: %s",
                repo.language,
                repo.name,
                directory,
                e,
            )
            errors.append(e)

        try:
            repo.uncommitted_changes = self.git.has_uncommitted_changes(
                directory, timeout=timeout
            )
        except SgitGitError as e:
            logger.warning(
                "Status check failed for %s/%s (%s), assuming no uncommitted "
                "changes: %s",
                repo.language,
                repo.name,
                directory,
                e,
            )
            errors.append(e)

        return repo, errors

    def list_repos(
        self, context: Optional[RunContext] = None
    ) -> CollectionResult[LocalRepo]:
        context = context or RunContext()
        context.check()

        directories = self.list_directories()
        logger.debug(f"Found {len(directories)} local director(ies) to probe")

        result: CollectionResult[LocalRepo] = CollectionResult()
        for directory, probed, error in map_bounded(
            lambda d: self.probe(d, context),
            directories,
            self.max_workers,
            context,
        ):
            if error is not None:
                # Only reachable through cancellation or an unexpected failure
                result.errors.append(error)
                continue
            repo, probe_errors = probed  # type: ignore[misc]
            result.items.append(repo)
            result.errors.extend(probe_errors)

        result.items.sort(key=lambda r: (r.owner, r.language, r.name))
        return result
