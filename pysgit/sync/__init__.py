"""Reconciliation engine for pysgit - remote/local collection and classification."""

from .context import RunContext, map_bounded
from .filter import RepoFilter, resolve_states
from .models import LocalRepo, RemoteRepo, RepoState, RepoStatePair
from .operations import RepoOperations, repo_target_path
from .protocols import CollectionResult, LocalSource, RemoteSource
from .reconciler import ReconcileResult, Reconciler
from .remote import GitHubRemoteSource
from .scanner import DirectoryScanner

__all__ = [
    "Reconciler",
    "ReconcileResult",
    "RepoFilter",
    "resolve_states",
    "RepoOperations",
    "repo_target_path",
    "RunContext",
    "map_bounded",
    "CollectionResult",
    "LocalSource",
    "RemoteSource",
    "GitHubRemoteSource",
    "DirectoryScanner",
    "LocalRepo",
    "RemoteRepo",
    "RepoState",
    "RepoStatePair",
]
