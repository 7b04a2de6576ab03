"""Git operations used to probe and mutate working copies."""

import logging
import subprocess
from pathlib import Path
from typing import Optional, Union

from .exceptions import SgitCloneError, SgitGitError

logger = logging.getLogger(__name__)

DEFAULT_GIT_TIMEOUT = 60.0
DEFAULT_CLONE_TIMEOUT = 600.0

WIP_COMMIT_MESSAGE = "work in progress"

PathLike = Union[str, Path]


class GitClient:
    """Typed wrapper around the ``git`` executable.

    Every operation runs against a working-copy root and raises
    :class:`SgitGitError` when git exits non-zero or cannot be started.
    """

    def __init__(
        self,
        git_executable: str = "git",
        timeout: float = DEFAULT_GIT_TIMEOUT,
    ):
        """Initialize git client.

        Args:
            git_executable: Name or path of the git binary
            timeout: Default timeout for a single git command in seconds
        """
        self.git_executable = git_executable
        self.timeout = timeout

    def _run(
        self,
        args: list[str],
        cwd: Optional[PathLike] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """Run a git command and return its stdout.

        Args:
            args: Arguments after ``git``
            cwd: Working directory
            timeout: Timeout override in seconds

        Returns:
            Standard output of the command

        Raises:
            SgitGitError: If the command fails, times out or git is missing
        """
        command = [self.git_executable, *args]
        effective_timeout = self.timeout if timeout is None else timeout
        logger.debug("Running %s in %s", " ".join(command), cwd)
        try:
            proc = subprocess.run(
                command,
                cwd=str(cwd) if cwd is not None else None,
                capture_output=True,
                text=True,
                timeout=effective_timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise SgitGitError(
                f"git {args[0]} timed out after {effective_timeout:.0f}s",
                command=command,
            ) from e
        except OSError as e:
            raise SgitGitError(f"Failed to run git {args[0]}: {e}", command=command) from e

        if proc.returncode != 0:
            raise SgitGitError(
                f"git {args[0]} failed in {cwd}",
                command=command,
                returncode=proc.returncode,
                stderr=proc.stderr,
            )
        return proc.stdout

    def _porcelain_status(self, path: PathLike, timeout: Optional[float]) -> list[str]:
        output = self._run(["status", "--porcelain"], cwd=path, timeout=timeout)
        return [line for line in output.splitlines() if line.strip()]

    def has_uncommitted_changes(
        self, path: PathLike, timeout: Optional[float] = None
    ) -> bool:
        """Check whether the working copy has staged, unstaged or untracked changes."""
        return bool(self._porcelain_status(path, timeout))

    def has_merge_conflicts(
        self, path: PathLike, timeout: Optional[float] = None
    ) -> bool:
        """Check whether the working copy has unmerged paths."""
        conflict_codes = {"DD", "AU", "UD", "UA", "DU", "AA", "UU"}
        return any(
            line[:2] in conflict_codes
            for line in self._porcelain_status(path, timeout)
        )

    def get_remote_url(self, path: PathLike, timeout: Optional[float] = None) -> str:
        """Get the URL of the first configured remote.

        Returns:
            Remote URL, or an empty string when no remote is configured
        """
        remotes = self._run(["remote"], cwd=path, timeout=timeout).split()
        if not remotes:
            return ""
        url = self._run(["remote", "get-url", remotes[0]], cwd=path, timeout=timeout)
        return url.strip()

    def clone(
        self,
        url: str,
        target: PathLike,
        timeout: Optional[float] = None,
    ) -> Path:
        """Clone a repository into ``target``.

        Args:
            url: Clone address
            target: Directory to create; its parent must exist
            timeout: Timeout override in seconds

        Returns:
            Path of the new working copy

        Raises:
            SgitCloneError: If the clone fails
        """
        target = Path(target)
        try:
            self._run(
                ["clone", "--quiet", url, str(target)],
                cwd=target.parent,
                timeout=DEFAULT_CLONE_TIMEOUT if timeout is None else timeout,
            )
        except SgitGitError as e:
            raise SgitCloneError(
                f"Failed to clone {url} into {target}: {e}",
                command=e.command,
                returncode=e.returncode,
            ) from e
        return target

    def pull(self, path: PathLike, timeout: Optional[float] = None) -> None:
        """Fetch and fast-forward the current branch."""
        self._run(["fetch"], cwd=path, timeout=timeout)
        self._run(["pull", "--ff-only"], cwd=path, timeout=timeout)

    def push(
        self,
        path: PathLike,
        message: str = WIP_COMMIT_MESSAGE,
        timeout: Optional[float] = None,
    ) -> bool:
        """Commit all local changes and push them.

        Returns:
            True if a commit was pushed, False if the working copy was clean
        """
        if not self.has_uncommitted_changes(path, timeout=timeout):
            return False
        self._run(["add", "--all"], cwd=path, timeout=timeout)
        self._run(["commit", "--quiet", "-m", message], cwd=path, timeout=timeout)
        self._run(["push", "--quiet"], cwd=path, timeout=timeout)
        return True

    def stash(self, path: PathLike, timeout: Optional[float] = None) -> None:
        """Stash all local changes, including untracked files."""
        self._run(["stash", "push", "--include-untracked"], cwd=path, timeout=timeout)

    def reset(self, path: PathLike, timeout: Optional[float] = None) -> None:
        """Discard all local changes to tracked files."""
        self._run(["reset", "--hard"], cwd=path, timeout=timeout)
