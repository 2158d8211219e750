# src/batch/scheduler.py — v2
"""Batch scheduler — dependency/priority ordered execution with retries.

Walks the queued tasks batch by batch. Batches run strictly one after
another; inside a batch at most ``concurrency`` processing calls are in
flight at once.

Per task:
  1. Cache lookup (a hit skips the dependency wait and the processor)
  2. Bounded wait for every dependency to complete successfully
  3. Processor call raced against the task timeout
  4. Linear backoff retry (retry_delay_s x attempt) up to max_retries
  5. Exactly one BatchResult recorded, success or failure

Failures never escape start_processing(); they come back as BatchResult
entries with success=False.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
import uuid
from collections.abc import Callable, Iterable, Mapping
from typing import TYPE_CHECKING, Any

from revycore.batch.completion import (
    CompletionTable,
    DependencyFailedError,
    DependencyTimeoutError,
)
from revycore.batch.models import (
    PRIORITY_WEIGHT,
    BatchOptions,
    BatchResult,
    ProcessingStats,
    Task,
)
from revycore.logging.context import reset_context, set_batch_context, set_task_context

if TYPE_CHECKING:
    from revycore.cache.manager import CacheManager

logger = logging.getLogger(__name__)

Processor = Callable[[Any], Any]
StatusCallback = Callable[[ProcessingStats], None]


class TaskTimeoutError(Exception):
    """A single processing attempt exceeded the task timeout."""

    def __init__(self, task_id: str, timeout_s: float):
        self.task_id = task_id
        self.timeout_s = timeout_s
        super().__init__(f"Task {task_id} timed out after {timeout_s:.2f}s")


class BatchScheduler:
    """Run submitted tasks through an injected processor.

    Args:
        processor: Callable(payload) -> result, sync or async.
        options: Scheduler tuning; defaults to BatchOptions().
        cache: Optional CacheManager consulted for tasks with a cache_key.
        clock: Monotonic clock used for completion timestamps.
    """

    def __init__(
        self,
        processor: Processor,
        options: BatchOptions | None = None,
        cache: CacheManager | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._processor = processor
        self._options = options or BatchOptions()
        self._cache = cache
        self._clock = clock

        self._queue: list[Task] = []
        self._completed = CompletionTable()
        self._stats = ProcessingStats()
        self._callbacks: list[StatusCallback] = []

    @property
    def options(self) -> BatchOptions:
        return self._options

    @property
    def completed(self) -> Mapping[str, BatchResult]:
        """Read-only view of every recorded result."""
        return self._completed.results

    @property
    def pending_count(self) -> int:
        return len(self._queue)

    # --- Submission ---

    def add_tasks(self, tasks: Iterable[Task | Mapping[str, Any]]) -> None:
        """Queue tasks, filling in default retry and timeout settings.

        Raises:
            ValueError: If a task id is duplicated or was already processed.
        """
        known = {t.id for t in self._queue} | set(self._completed.results)
        new_tasks: list[Task] = []

        for raw in tasks:
            task = raw if isinstance(raw, Task) else Task.model_validate(raw)
            if task.id in known:
                raise ValueError(f"Duplicate task id: {task.id!r}")
            known.add(task.id)
            new_tasks.append(
                task.model_copy(
                    update={
                        "retry_count": 0,
                        "max_retries": (
                            self._options.default_max_retries
                            if task.max_retries is None else task.max_retries
                        ),
                        "timeout_s": task.timeout_s or self._options.default_timeout_s,
                    }
                )
            )

        self._queue.extend(new_tasks)
        self._stats.total_tasks += len(new_tasks)
        logger.info("Added %d tasks to batch queue", len(new_tasks))
        self._notify_status()

    def on_status_update(self, callback: StatusCallback) -> None:
        """Subscribe to stats snapshots (after submission and each batch)."""
        self._callbacks.append(callback)

    def get_stats(self) -> ProcessingStats:
        """Return a snapshot of processing statistics."""
        return self._stats.model_copy()

    # --- Execution ---

    async def start_processing(self) -> list[BatchResult]:
        """Drain the queue. Returns one result per queued task."""
        if not self._queue:
            logger.warning("No tasks to process")
            return []

        started = time.perf_counter()
        run_id = uuid.uuid4().hex[:8]
        ordered = self._order_tasks(self._queue)
        self._queue = []
        batches = self._create_batches(ordered)

        logger.info(
            "Starting batch processing of %d tasks in %d batches",
            len(ordered), len(batches),
        )

        results: list[BatchResult] = []
        for idx, batch in enumerate(batches):
            token = set_batch_context(f"{run_id}:{idx + 1}")
            try:
                logger.info(
                    "Processing batch %d/%d with %d tasks",
                    idx + 1, len(batches), len(batch),
                )
                batch_results = await self._process_batch(batch)
            finally:
                reset_context(token)
            results.extend(batch_results)

            self._update_stats(batch_results)
            self._notify_status()

            if idx < len(batches) - 1 and self._options.delay_between_batches_s > 0:
                await asyncio.sleep(self._options.delay_between_batches_s)

        elapsed = time.perf_counter() - started
        succeeded = sum(1 for r in results if r.success)
        self._stats.throughput = succeeded / elapsed if elapsed > 0 else float(succeeded)

        logger.info(
            "Batch processing completed in %.0fms: %d/%d succeeded",
            elapsed * 1000, succeeded, len(results),
        )
        return results

    async def _process_batch(self, batch: list[Task]) -> list[BatchResult]:
        """Run one batch; at most ``concurrency`` processor calls at once."""
        slots = asyncio.Semaphore(self._options.concurrency)
        outcomes = await asyncio.gather(
            *(self._process_task(task, slots) for task in batch),
            return_exceptions=True,
        )

        results: list[BatchResult] = []
        for task, outcome in zip(batch, outcomes):
            if isinstance(outcome, BatchResult):
                results.append(outcome)
                continue
            if not isinstance(outcome, Exception):
                raise outcome
            logger.error("Task %s crashed outside the retry loop: %s", task.id, outcome)
            results.append(
                self._completed.get(task.id)
                or self._record(task, started=time.perf_counter(), error=outcome)
            )
        return results

    async def _process_task(self, task: Task, slots: asyncio.Semaphore) -> BatchResult:
        set_task_context(task.id)
        started = time.perf_counter()
        use_cache = (
            self._cache is not None
            and self._options.enable_caching
            and task.cache_key is not None
        )

        if use_cache:
            cached = await self._cache.get(task.cache_key, self._options.cache_strategy)
            if cached is not None:
                logger.info("Cache hit for task %s", task.id)
                return self._record(task, started=started, data=cached, from_cache=True)

        if task.dependencies:
            try:
                await self._completed.wait_for(
                    task.dependencies, self._options.dependency_max_wait_s,
                )
            except (DependencyTimeoutError, DependencyFailedError) as exc:
                logger.error("Task %s not started: %s", task.id, exc)
                return self._record(task, started=started, error=exc)

        max_retries = task.max_retries or 0
        attempts = 0
        while True:
            attempts += 1
            try:
                async with slots:
                    data = await self._invoke(task)
                break
            except Exception as exc:
                logger.error(
                    "Task %s failed (attempt %d/%d): %s",
                    task.id, attempts, max_retries + 1, exc,
                )
                if task.retry_count >= max_retries:
                    return self._record(task, started=started, error=exc, attempts=attempts)
                task.retry_count += 1
                delay = self._options.retry_delay_s * task.retry_count
                logger.info(
                    "Retrying task %s in %.2fs (retry %d/%d)",
                    task.id, delay, task.retry_count, max_retries,
                )
                await asyncio.sleep(delay)

        if use_cache and data is not None:
            await self._cache.set(
                task.cache_key, data, self._options.cache_strategy, task.metadata,
            )

        result = self._record(task, started=started, data=data, attempts=attempts)
        logger.info("Task %s completed in %.0fms", task.id, result.duration_ms)
        return result

    async def _invoke(self, task: Task) -> Any:
        """One processor call raced against the task timeout."""
        timeout_s = task.timeout_s or self._options.default_timeout_s
        try:
            return await asyncio.wait_for(self._call_processor(task.payload), timeout_s)
        except asyncio.TimeoutError:
            raise TaskTimeoutError(task.id, timeout_s) from None

    async def _call_processor(self, payload: Any) -> Any:
        if _is_async_callable(self._processor):
            return await self._processor(payload)
        # Sync processors run off-loop; a timed-out thread is abandoned, not killed
        result = await asyncio.to_thread(self._processor, payload)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _record(
        self,
        task: Task,
        *,
        started: float,
        data: Any = None,
        error: Exception | None = None,
        from_cache: bool = False,
        attempts: int = 0,
    ) -> BatchResult:
        result = BatchResult(
            task_id=task.id,
            success=error is None,
            data=data,
            error=None if error is None else f"{type(error).__name__}: {error}",
            duration_ms=(time.perf_counter() - started) * 1000.0,
            from_cache=from_cache,
            attempts=attempts,
            completed_at=self._clock(),
        )
        self._completed.record(result)
        return result

    # --- Ordering ---

    def _order_tasks(self, tasks: list[Task]) -> list[Task]:
        """Fewest unresolved dependencies first, then highest priority."""
        if not self._options.priority_weighting:
            return list(tasks)
        return sorted(
            tasks,
            key=lambda t: (
                len(self._completed.unresolved(t.dependencies)),
                -PRIORITY_WEIGHT[t.priority],
            ),
        )

    def _create_batches(self, tasks: list[Task]) -> list[list[Task]]:
        size = self._options.batch_size
        return [tasks[i:i + size] for i in range(0, len(tasks), size)]

    # --- Stats ---

    def _update_stats(self, results: list[BatchResult]) -> None:
        if not results:
            return
        successful = sum(1 for r in results if r.success)
        cached = sum(1 for r in results if r.from_cache)
        batch_avg = sum(r.duration_ms for r in results) / len(results)

        self._stats.completed_tasks += successful
        self._stats.failed_tasks += len(results) - successful
        self._stats.cached_results += cached

        finished = self._stats.completed_tasks + self._stats.failed_tasks
        previous = finished - len(results)
        self._stats.average_processing_time_ms = (
            self._stats.average_processing_time_ms * previous
            + batch_avg * len(results)
        ) / finished

    def _notify_status(self) -> None:
        snapshot = self.get_stats()
        for callback in self._callbacks:
            try:
                callback(snapshot)
            except Exception as e:
                logger.warning("Status callback failed: %s", e)


def _is_async_callable(fn: Any) -> bool:
    return inspect.iscoroutinefunction(fn) or inspect.iscoroutinefunction(
        getattr(fn, "__call__", None)
    )
