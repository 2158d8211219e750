# src/api/facade.py — v2
"""Public API facade: one context object per process or test.

Usage:
    from revycore.api.facade import build_context

    async with build_context() as ctx:
        scheduler = ctx.new_scheduler(process_document)
        scheduler.add_tasks(tasks)
        results = await scheduler.start_processing()

        roster = await ctx.coordinator.recommend_agents("Revenue recognition")

The context owns the CacheManager (and its durable tier) and the
ConversationCoordinator. Schedulers are cheap and created per submission.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from revycore.batch.models import BatchOptions
from revycore.batch.scheduler import BatchScheduler, Processor
from revycore.cache.cache_factory import create_durable_store
from revycore.cache.manager import CacheManager
from revycore.config.settings import Settings
from revycore.conversation.coordinator import ConversationCoordinator

if TYPE_CHECKING:
    from revycore.cache.base_durable_store import BaseDurableStore
    from revycore.conversation.analyzer import BaseContextAnalyzer
    from revycore.conversation.summary import BaseSummarizer

logger = logging.getLogger(__name__)


class OrchestrationContext:
    """Owns the shared cache and coordinator for one application.

    Use as an async context manager so the cache sweeper starts and the
    durable tier is drained and closed on exit.
    """

    def __init__(
        self,
        settings: Settings,
        cache: CacheManager,
        coordinator: ConversationCoordinator,
    ) -> None:
        self.settings = settings
        self.cache = cache
        self.coordinator = coordinator

    def new_scheduler(
        self,
        processor: Processor,
        options: BatchOptions | None = None,
    ) -> BatchScheduler:
        """Create a scheduler bound to the shared cache."""
        return BatchScheduler(
            processor,
            options=options or BatchOptions.from_settings(self.settings),
            cache=self.cache,
        )

    async def start(self) -> None:
        self.cache.start()

    async def aclose(self) -> None:
        await self.cache.aclose()

    async def __aenter__(self) -> OrchestrationContext:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


def build_context(
    settings: Settings | None = None,
    durable_store: BaseDurableStore | None = None,
    analyzer: BaseContextAnalyzer | None = None,
    summarizer: BaseSummarizer | None = None,
    clock: Callable[[], float] = time.time,
) -> OrchestrationContext:
    """Wire a context from settings.

    Args:
        settings: Global settings. Loaded from .env if None.
        durable_store: Explicit durable tier; overrides CACHE_DURABLE_BACKEND.
        analyzer: Context analyzer for roster recommendation.
        summarizer: Summarizer for generate_summary.
        clock: Wall clock for cache timestamps.

    Raises:
        ConfigurationError: If settings are internally inconsistent.
    """
    settings = settings or Settings()
    store = durable_store if durable_store is not None else create_durable_store(settings)

    cache = CacheManager(
        durable_store=store,
        sweep_interval_s=settings.cache_sweep_interval_s,
        clock=clock,
    )
    coordinator = ConversationCoordinator.from_settings(
        settings, cache=cache, analyzer=analyzer, summarizer=summarizer,
    )
    logger.info(
        "Orchestration context ready (durable tier: %s)",
        type(store).__name__ if store is not None else "none",
    )
    return OrchestrationContext(settings, cache, coordinator)
