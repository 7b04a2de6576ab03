"""Data types shared by the remote source, local source and reconciler."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Union

IdentityKey = Union[str, tuple[str, str]]


class RepoState(str, Enum):
    """Classification of a repository after reconciliation."""

    UP_TO_DATE = "UpToDate"
    """Cloned under the right language directory with a clean working copy"""

    UNCOMMITTED_CHANGES = "UncommittedChanges"
    """Cloned under the right language directory with local modifications"""

    NOT_GIT_REPO = "NotGitRepo"
    """Local directory without git metadata and no remote counterpart"""

    NO_REMOTE_REPO = "NoRemoteRepo"
    """Local working copy with no remote counterpart"""

    INCORRECT_LANGUAGE_PARENT_DIRECTORY = "IncorrectLanguageParentDirectory"
    """Cloned, but under a directory that differs from the primary language"""

    NOT_CLONED = "NotCloned"
    """Remote repository without a local directory"""

    FAILED_TO_CLONE = "FailedToClone"
    """Remote repository whose clone was attempted and failed"""

    def __str__(self) -> str:
        return self.value

    @classmethod
    def canonical_names(cls) -> list[str]:
        """Canonical state names in declaration order."""
        return [state.value for state in cls]


@dataclass
class RemoteRepo:
    """A repository hosted on the remote account."""

    name: str
    """Repository name"""

    owner: str
    """Owner login"""

    language: str
    """Lower-cased primary language, ``"unknown"`` when not determined"""

    clone_url: str
    """Address passed to ``git clone``"""

    fork: bool = False
    """Whether the repository is a fork"""

    language_error: Optional[Exception] = field(default=None, compare=False)
    """Error raised by the language lookup, if it failed"""

    def identity(self, by_owner: bool = False) -> IdentityKey:
        """Key used to match this repository with a local directory."""
        return (self.owner, self.name) if by_owner else self.name


@dataclass
class LocalRepo:
    """A leaf directory of the local project tree."""

    name: str
    """Directory name"""

    language: str
    """Name of the parent (language) directory"""

    path: Path
    """Absolute path of the directory"""

    owner: str = ""
    """Name of the owner directory when the owner layout is used"""

    git_repo: bool = False
    """Whether the directory contains git metadata"""

    uncommitted_changes: bool = False
    """Whether the working copy has local modifications"""

    remote_url: str = ""
    """URL of the first configured remote, empty when none"""

    def identity(self, by_owner: bool = False) -> IdentityKey:
        """Key used to match this directory with a remote repository."""
        return (self.owner, self.name) if by_owner else self.name


@dataclass
class RepoStatePair:
    """A classified repository, the unit that is filtered and displayed."""

    name: str
    """Repository name"""

    language: str
    """Language used for grouping (the remote language when matched)"""

    path: Path
    """Where the repository lives, or would live once cloned"""

    state: RepoState
    """Classification"""

    owner: str = ""
    """Owner login (empty for local-only directories)"""

    fork: bool = False
    """Whether the remote repository is a fork"""

    clone_url: str = ""
    """Remote clone address, or the local remote URL for local-only entries"""

    local_language: Optional[str] = None
    """Parent directory language when a local directory exists"""

    expected_path: Optional[Path] = None
    """Path implied by the remote language, when a remote match exists"""

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}" if self.owner else self.name
