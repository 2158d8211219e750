# src/batch/models.py — v2
"""Batch scheduling models: Task, BatchResult, ProcessingStats, BatchOptions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from revycore.config.settings import Settings

TaskPriority = Literal["low", "medium", "high"]

PRIORITY_WEIGHT: dict[str, int] = {"high": 3, "medium": 2, "low": 1}


class Task(BaseModel):
    """A unit of work submitted to the scheduler.

    max_retries and timeout_s left as None pick up the scheduler's
    defaults at submission time.
    """

    id: str
    payload: Any = None
    priority: TaskPriority = "medium"
    retry_count: int = 0
    max_retries: int | None = Field(default=None, ge=0)
    timeout_s: float | None = Field(default=None, gt=0)
    dependencies: list[str] = Field(default_factory=list)
    cache_key: str | None = None
    metadata: dict[str, Any] | None = None


class BatchResult(BaseModel):
    """Outcome of one task. Exactly one is produced per submitted task."""

    task_id: str
    success: bool
    data: Any = None
    error: str | None = None
    duration_ms: float = 0.0
    from_cache: bool = False
    attempts: int = 0
    completed_at: float = 0.0


class ProcessingStats(BaseModel):
    """Running counters for a scheduler instance."""

    total_tasks: int = 0
    completed_tasks: int = 0
    failed_tasks: int = 0
    cached_results: int = 0
    average_processing_time_ms: float = 0.0
    throughput: float = 0.0

    @property
    def success_rate(self) -> float:
        """Completed share of all submitted tasks (0.0-1.0)."""
        if self.total_tasks == 0:
            return 0.0
        return self.completed_tasks / self.total_tasks


@dataclass(frozen=True)
class BatchOptions:
    """Scheduler tuning knobs."""

    concurrency: int = 3
    batch_size: int = 10
    delay_between_batches_s: float = 1.0
    enable_caching: bool = True
    cache_strategy: str = "document-analysis"
    retry_delay_s: float = 2.0
    priority_weighting: bool = True
    dependency_max_wait_s: float = 30.0
    default_max_retries: int = 2
    default_timeout_s: float = 30.0

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1")

    @classmethod
    def from_settings(cls, settings: Settings) -> BatchOptions:
        """Build options from the BATCH_* / TASK_* settings group."""
        return cls(
            concurrency=settings.batch_concurrency,
            batch_size=settings.batch_size,
            delay_between_batches_s=settings.batch_delay_between_s,
            enable_caching=settings.batch_enable_caching,
            cache_strategy=settings.batch_cache_strategy,
            retry_delay_s=settings.batch_retry_delay_s,
            priority_weighting=settings.batch_priority_weighting,
            dependency_max_wait_s=settings.batch_dependency_max_wait_s,
            default_max_retries=settings.task_default_max_retries,
            default_timeout_s=settings.task_default_timeout_s,
        )
