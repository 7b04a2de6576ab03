"""Cancellation and deadline handling for a reconciliation run."""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Optional, Sequence, TypeVar

from ..exceptions import SgitCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class RunContext:
    """A single cancellation signal shared by every task in a run.

    Examples:
        >>> context = RunContext(timeout=30)
        >>> context.check()  # raises SgitCancelledError once cancelled/expired
        >>> client.list_repos(timeout=context.remaining(5.0))
    """

    def __init__(self, timeout: Optional[float] = None):
        """Initialize run context.

        Args:
            timeout: Seconds until the run is considered cancelled
                (None for no deadline)
        """
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        """Cancel the run."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """Whether the run was cancelled or its deadline has passed."""
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self._event.set()
            return True
        return False

    def remaining(self, default: Optional[float] = None) -> Optional[float]:
        """Seconds left before the deadline, capped at ``default``.

        Args:
            default: Value to return (or cap to) for per-call timeouts

        Returns:
            Remaining seconds, ``default`` when there is no deadline
        """
        if self._deadline is None:
            return default
        left = max(self._deadline - time.monotonic(), 0.0)
        if default is None:
            return left
        return min(left, default)

    def check(self) -> None:
        """Raise if the run has been cancelled.

        Raises:
            SgitCancelledError: If cancelled or past the deadline
        """
        if self.cancelled:
            raise SgitCancelledError("Run cancelled")


def map_bounded(
    func: Callable[[T], R],
    items: Sequence[T],
    max_workers: int,
    context: RunContext,
) -> list[tuple[T, Optional[R], Optional[Exception]]]:
    """Run ``func`` over ``items`` on a bounded thread pool.

    Tasks that have not started when the context is cancelled fail with
    :class:`SgitCancelledError` instead of running. Tasks already running are
    left to finish. An interrupt while waiting cancels the context, drops
    queued tasks and is re-raised once running tasks are done.

    Args:
        func: Callable applied to each item
        items: Items to process
        max_workers: Maximum number of concurrent tasks
        context: Run context checked before each task starts

    Returns:
        List of (item, result, error) tuples in completion order; exactly one
        of result/error is meaningful per tuple
    """
    if not items:
        return []

    def guarded(item: T) -> R:
        context.check()
        return func(item)

    results: list[tuple[T, Optional[R], Optional[Exception]]] = []
    workers = max(1, min(max_workers, len(items)))
    start = time.time()

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {executor.submit(guarded, item): item for item in items}
        try:
            for future in as_completed(futures):
                item = futures[future]
                try:
                    results.append((item, future.result(), None))
                except Exception as e:
                    results.append((item, None, e))
        except BaseException:
            # Interrupted while waiting, queued tasks must not start
            context.cancel()
            executor.shutdown(wait=True, cancel_futures=True)
            raise

    logger.debug(
        "Processed %d task(s) with %d worker(s) in %.2fs",
        len(items),
        workers,
        time.time() - start,
    )
    return results
