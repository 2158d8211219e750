# src/batch/completion.py — v1
"""Completion table — final task results plus per-id completion signals.

Dependents block on an asyncio.Event per dependency id instead of polling.
Recording is a synchronous check-and-set, so on the event loop a result is
recorded at most once even with many tasks finishing concurrently.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping

from revycore.batch.models import BatchResult

logger = logging.getLogger(__name__)


class DependencyTimeoutError(Exception):
    """Dependencies did not complete within the wait bound."""

    def __init__(self, pending: list[str], waited_s: float):
        self.pending = pending
        self.waited_s = waited_s
        super().__init__(
            f"Timeout after {waited_s:.1f}s waiting for dependencies: {', '.join(pending)}"
        )


class DependencyFailedError(Exception):
    """A dependency finished but did not succeed."""

    def __init__(self, failed: list[str]):
        self.failed = failed
        super().__init__(f"Dependencies failed: {', '.join(failed)}")


class CompletionTable:
    """Write-once map of task id -> BatchResult."""

    def __init__(self) -> None:
        self._results: dict[str, BatchResult] = {}
        self._events: dict[str, asyncio.Event] = {}

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._results

    def __len__(self) -> int:
        return len(self._results)

    @property
    def results(self) -> Mapping[str, BatchResult]:
        """Read-only copy of recorded results."""
        return dict(self._results)

    def get(self, task_id: str) -> BatchResult | None:
        return self._results.get(task_id)

    def record(self, result: BatchResult) -> bool:
        """Record a final result and wake its dependents.

        Returns:
            False if a result for this task id was already recorded.
        """
        if result.task_id in self._results:
            logger.warning("Result for task %s already recorded, ignoring", result.task_id)
            return False
        self._results[result.task_id] = result
        self._event_for(result.task_id).set()
        return True

    def unresolved(self, task_ids: Iterable[str]) -> list[str]:
        """Ids without a successful recorded result."""
        return [
            t for t in task_ids
            if t not in self._results or not self._results[t].success
        ]

    async def wait_for(self, task_ids: Iterable[str], timeout_s: float) -> None:
        """Block until every id has a successful result.

        Raises:
            DependencyTimeoutError: Some ids were not recorded within timeout_s.
            DependencyFailedError: Some ids were recorded as failed.
        """
        ids = list(dict.fromkeys(task_ids))
        pending = [t for t in ids if t not in self._results]
        if pending:
            waiters = [self._event_for(t).wait() for t in pending]
            try:
                await asyncio.wait_for(asyncio.gather(*waiters), timeout=timeout_s)
            except asyncio.TimeoutError:
                still_pending = [t for t in ids if t not in self._results]
                if still_pending:
                    raise DependencyTimeoutError(still_pending, timeout_s) from None

        failed = [t for t in ids if not self._results[t].success]
        if failed:
            raise DependencyFailedError(failed)

    def _event_for(self, task_id: str) -> asyncio.Event:
        event = self._events.get(task_id)
        if event is None:
            event = asyncio.Event()
            self._events[task_id] = event
        return event
