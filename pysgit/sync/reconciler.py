"""Reconciliation of remote repositories with the local project tree."""

import logging
import time
from collections import defaultdict
from collections.abc import Iterator
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from typing import Optional

from ..config import Config
from ..exceptions import SgitAggregateError, SgitCancelledError, SgitConfigError
from .context import RunContext, map_bounded
from .filter import RepoFilter
from .models import IdentityKey, LocalRepo, RemoteRepo, RepoState, RepoStatePair
from .operations import RepoOperations, repo_target_path
from .protocols import CollectionResult, LocalSource, RemoteSource

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Classified repositories grouped by language, plus item-level errors."""

    groups: dict[str, list[RepoStatePair]] = field(default_factory=dict)
    """Language -> pairs sorted by name"""

    errors: list[Exception] = field(default_factory=list)
    """Errors tolerated during collection and remediation"""

    @property
    def error(self) -> Optional[SgitAggregateError]:
        """All item-level errors joined into one, or None."""
        return SgitAggregateError(self.errors) if self.errors else None

    def pairs(self) -> Iterator[RepoStatePair]:
        """Iterate over all pairs, language by language."""
        for language in self.groups:
            yield from self.groups[language]

    def stats(self) -> dict[str, int]:
        """Count pairs per state (canonical state name -> count)."""
        counts = {name: 0 for name in RepoState.canonical_names()}
        for pair in self.pairs():
            counts[pair.state.value] += 1
        return counts

    def __len__(self) -> int:
        return sum(len(pairs) for pairs in self.groups.values())


class Reconciler:
    """Joins remote and local repositories and classifies each one.

    Classification happens in two strictly ordered passes. The remote-driven
    pass classifies every remote repository (cloning missing ones when
    remediation is enabled). The local-only pass then classifies local
    directories that no remote repository claimed; it never overwrites an
    identity already classified by the remote pass.

    Examples:
        >>> reconciler = Reconciler(remote_source, local_source, config)
        >>> result = reconciler.reconcile(RepoFilter.from_strings(languages="go"))
        >>> for pair in result.groups.get("go", []):
        ...     print(pair.name, pair.state)
    """

    def __init__(
        self,
        remote_source: RemoteSource,
        local_source: LocalSource,
        config: Config,
        operations: Optional[RepoOperations] = None,
        remediate: bool = False,
    ):
        """Initialize reconciler.

        Args:
            remote_source: Source of hosted repositories
            local_source: Source of local directories
            config: Run configuration (base directory, layout, pool size)
            operations: Repository operations, required for remediation
            remediate: Whether to clone repositories that are not cloned
        """
        self.remote_source = remote_source
        self.local_source = local_source
        self.config = config
        self.operations = operations
        self.remediate = remediate

    # =========================
    # Collection
    # =========================

    def _collect(
        self, context: RunContext
    ) -> tuple[CollectionResult[RemoteRepo], CollectionResult[LocalRepo]]:
        """Run both sources concurrently and wait for both to finish.

        Raises:
            SgitCancelledError: If the run deadline passes while collecting
            SgitAPIError: If the remote listing fails
            SgitConfigError: If the local tree cannot be read
        """
        start = time.time()
        with ThreadPoolExecutor(max_workers=2) as executor:
            remote_future = executor.submit(self.remote_source.list_repos, context)
            local_future = executor.submit(self.local_source.list_repos, context)
            try:
                remote = remote_future.result(timeout=context.remaining())
                local = local_future.result(timeout=context.remaining())
            except FutureTimeoutError as e:
                context.cancel()
                raise SgitCancelledError("Timed out while collecting repositories") from e
            except BaseException:
                # Stop the sibling collector from starting new work
                context.cancel()
                executor.shutdown(wait=True, cancel_futures=True)
                raise

        logger.debug(
            "Collected %d remote and %d local repositories in %.2fs",
            len(remote.items),
            len(local.items),
            time.time() - start,
        )
        return remote, local

    # =========================
    # Classification
    # =========================

    @staticmethod
    def _classify_matched(remote: RemoteRepo, local: LocalRepo) -> RepoState:
        if local.language != remote.language:
            return RepoState.INCORRECT_LANGUAGE_PARENT_DIRECTORY
        if local.uncommitted_changes:
            return RepoState.UNCOMMITTED_CHANGES
        return RepoState.UP_TO_DATE

    @staticmethod
    def _classify_local_only(local: LocalRepo) -> RepoState:
        if not local.git_repo:
            return RepoState.NOT_GIT_REPO
        return RepoState.NO_REMOTE_REPO

    def _remote_pair(
        self,
        remote: RemoteRepo,
        state: RepoState,
        local: Optional[LocalRepo] = None,
    ) -> RepoStatePair:
        expected = repo_target_path(self.config, remote)
        return RepoStatePair(
            name=remote.name,
            language=remote.language,
            path=local.path if local is not None else expected,
            state=state,
            owner=remote.owner,
            fork=remote.fork,
            clone_url=remote.clone_url,
            local_language=local.language if local is not None else None,
            expected_path=expected,
        )

    @staticmethod
    def _local_pair(local: LocalRepo) -> RepoStatePair:
        return RepoStatePair(
            name=local.name,
            language=local.language,
            path=local.path,
            state=Reconciler._classify_local_only(local),
            owner=local.owner,
            clone_url=local.remote_url,
            local_language=local.language,
        )

    @staticmethod
    def _pick_local(remote: RemoteRepo, candidates: list[LocalRepo]) -> LocalRepo:
        """Prefer the directory under the remote language."""
        for local in candidates:
            if local.language == remote.language:
                return local
        return candidates[0]

    def _remediate(
        self,
        missing: list[RemoteRepo],
        pairs: dict[IdentityKey, RepoStatePair],
        errors: list[Exception],
        context: RunContext,
    ) -> None:
        """Clone missing repositories and record their resulting state."""
        if self.operations is None:
            raise SgitConfigError("Remediation requires repository operations")

        operations = self.operations
        by_owner = self.config.owner_directories
        logger.debug(f"Cloning {len(missing)} missing repositories")

        for remote, path, error in map_bounded(
            lambda r: operations.clone(r, context),
            missing,
            self.config.max_workers,
            context,
        ):
            key = remote.identity(by_owner)
            if error is None:
                pairs[key] = self._remote_pair(remote, RepoState.UP_TO_DATE)
            elif isinstance(error, SgitCancelledError):
                logger.warning(
                    f"Run cancelled before cloning {remote.owner}/{remote.name}"
                )
                pairs[key] = self._remote_pair(remote, RepoState.NOT_CLONED)
                errors.append(error)
            else:
                logger.error(f"Failed to clone {remote.owner}/{remote.name}: {error}")
                pairs[key] = self._remote_pair(remote, RepoState.FAILED_TO_CLONE)
                errors.append(error)

    def classify(
        self,
        remote_repos: list[RemoteRepo],
        local_repos: list[LocalRepo],
        remediate: bool = False,
        context: Optional[RunContext] = None,
        repo_filter: Optional[RepoFilter] = None,
    ) -> tuple[list[RepoStatePair], list[Exception]]:
        """Classify collected repositories.

        Args:
            remote_repos: Remote repositories (with languages resolved)
            local_repos: Local directories (with probes done)
            remediate: Whether to clone remote repositories with no local copy
            context: Run context
            repo_filter: Limits remediation to repositories whose language,
                fork flag and name pass the filter

        Returns:
            Tuple of (pairs, remediation errors)
        """
        context = context or RunContext()
        by_owner = self.config.owner_directories
        errors: list[Exception] = []

        local_map: dict[IdentityKey, list[LocalRepo]] = defaultdict(list)
        for local in local_repos:
            local_map[local.identity(by_owner)].append(local)

        pairs: dict[IdentityKey, RepoStatePair] = {}
        claimed: set[IdentityKey] = set()
        missing: list[RemoteRepo] = []

        # Remote-driven pass
        for remote in remote_repos:
            key = remote.identity(by_owner)
            if key in claimed:
                logger.warning(f"Duplicate remote repository {key} ignored")
                continue
            claimed.add(key)

            if remote.language_error is not None:
                # Intended path is unknown, so the repository is not matched
                continue

            candidates = local_map.get(key)
            if not candidates:
                pair = self._remote_pair(remote, RepoState.NOT_CLONED)
                wanted = repo_filter is None or repo_filter.include(
                    pair, check_state=False
                )
                if remediate and wanted:
                    missing.append(remote)
                else:
                    pairs[key] = pair
                continue

            local = self._pick_local(remote, candidates)
            for extra in candidates:
                if extra is not local:
                    logger.warning(
                        f"Ignoring duplicate local directory {extra.path} for "
                        f"{remote.owner}/{remote.name}"
                    )
            pairs[key] = self._remote_pair(
                remote, self._classify_matched(remote, local), local
            )

        if missing:
            self._remediate(missing, pairs, errors, context)

        remote_pairs = list(pairs.values())

        # Local-only pass, first write wins
        local_pairs: list[RepoStatePair] = []
        for key, candidates in local_map.items():
            if key in claimed:
                continue
            local_pairs.extend(self._local_pair(local) for local in candidates)

        return remote_pairs + local_pairs, errors

    # =========================
    # Entry point
    # =========================

    def reconcile(
        self,
        repo_filter: Optional[RepoFilter] = None,
        context: Optional[RunContext] = None,
        remediate: Optional[bool] = None,
    ) -> ReconcileResult:
        """Collect, classify, filter and group repositories.

        Args:
            repo_filter: Filter applied to classified pairs (None keeps all)
            context: Run context (defaults to one using ``config.run_timeout``)
            remediate: Override the reconciler's remediation toggle

        Returns:
            ReconcileResult with language-grouped pairs and item-level errors

        Raises:
            SgitAPIError: If the remote repository listing fails
            SgitConfigError: If the local tree cannot be read
            SgitCancelledError: If the run is cancelled while collecting
        """
        context = context or RunContext(self.config.run_timeout)
        remediate = self.remediate if remediate is None else remediate
        repo_filter = repo_filter or RepoFilter()

        remote, local = self._collect(context)
        pairs, remediation_errors = self.classify(
            remote.items,
            local.items,
            remediate=remediate,
            context=context,
            repo_filter=repo_filter,
        )

        groups: dict[str, list[RepoStatePair]] = defaultdict(list)
        for pair in pairs:
            if repo_filter.include(pair):
                groups[pair.language].append(pair)

        result = ReconcileResult(
            groups={
                language: sorted(groups[language], key=lambda p: (p.name, str(p.path)))
                for language in sorted(groups)
            },
            errors=[*remote.errors, *local.errors, *remediation_errors],
        )
        logger.debug(
            "Reconciled %d repositories (%d after filtering, %d errors)",
            len(pairs),
            len(result),
            len(result.errors),
        )
        return result
