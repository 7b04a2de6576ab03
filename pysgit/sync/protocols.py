"""Capability interfaces injected into the reconciler."""

from dataclasses import dataclass, field
from typing import Generic, Protocol, TypeVar

from .context import RunContext
from .models import LocalRepo, RemoteRepo

T = TypeVar("T")


@dataclass
class CollectionResult(Generic[T]):
    """Items collected by a source plus the item-level errors it tolerated."""

    items: list[T] = field(default_factory=list)
    errors: list[Exception] = field(default_factory=list)


class RemoteSource(Protocol):
    """Lists the repositories hosted on the remote account."""

    def list_repos(self, context: RunContext) -> CollectionResult[RemoteRepo]:
        """Fetch repositories with their primary language.

        Raises:
            SgitAPIError: If the repository listing itself fails
        """
        ...


class LocalSource(Protocol):
    """Lists the leaf directories of the local project tree."""

    def list_repos(self, context: RunContext) -> CollectionResult[LocalRepo]:
        """Scan the base directory and probe each leaf.

        Raises:
            SgitConfigError: If the base directory cannot be read
        """
        ...
