# tests/integration/test_int_orchestration.py — v1
"""End-to-end: settings -> context -> scheduler + coordinator over a real durable tier.

Uses the SQLite and JSON durable backends in a temp directory; no network.
"""

from __future__ import annotations

import asyncio
import re

import pytest

from revycore.api.facade import build_context
from revycore.batch.models import Task
from revycore.config.settings import Settings
from revycore.conversation.models import RecommendationRequest, TranscriptMessage


def _settings(tmp_cache_dir, backend: str = "sqlite") -> Settings:
    return Settings(
        _env_file=None,
        cache_durable_backend=backend,
        cache_root=tmp_cache_dir,
        batch_concurrency=2,
        batch_size=3,
        batch_delay_between_s=0,
        batch_retry_delay_s=0,
        task_default_timeout_s=2,
    )


async def _analyze_document(payload: dict) -> dict:
    await asyncio.sleep(0.01)
    if payload.get("corrupt"):
        raise ValueError(f"cannot parse {payload['name']}")
    return {"name": payload["name"], "pages": len(payload["name"])}


class TestBatchPipeline:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("backend", ["sqlite", "json"])
    async def test_results_survive_restart(self, tmp_cache_dir, backend):
        tasks = [
            Task(id="ledger", payload={"name": "ledger.csv"}, cache_key="doc:ledger"),
            Task(
                id="notes",
                payload={"name": "notes.pdf"},
                cache_key="doc:notes",
                dependencies=["ledger"],
            ),
            Task(id="broken", payload={"name": "x", "corrupt": True}, max_retries=1),
            Task(id="summary", payload={"name": "summary"}, dependencies=["notes", "ledger"]),
        ]

        async with build_context(_settings(tmp_cache_dir, backend)) as ctx:
            scheduler = ctx.new_scheduler(_analyze_document)
            scheduler.add_tasks(tasks)
            results = {r.task_id: r for r in await scheduler.start_processing()}

        assert len(results) == 4
        assert results["ledger"].success and results["notes"].success
        assert results["summary"].success
        assert results["broken"].success is False
        assert results["broken"].attempts == 2
        assert results["notes"].completed_at >= results["ledger"].completed_at

        # A fresh context over the same durable tier serves cached analyses
        async with build_context(_settings(tmp_cache_dir, backend)) as ctx:
            calls: list[str] = []

            async def tracking(payload):
                calls.append(payload["name"])
                return await _analyze_document(payload)

            scheduler = ctx.new_scheduler(tracking)
            scheduler.add_tasks([
                Task(id="ledger-again", payload={"name": "ledger.csv"}, cache_key="doc:ledger"),
            ])
            (again,) = await scheduler.start_processing()

            assert again.from_cache
            assert again.data == {"name": "ledger.csv", "pages": 10}
            assert calls == []

            removed = await ctx.cache.invalidate(re.compile(r"^doc:"))
            assert removed >= 2


class TestConversationFlow:
    @pytest.mark.asyncio
    async def test_session(self, tmp_cache_dir):
        async with build_context(_settings(tmp_cache_dir)) as ctx:
            coordinator = ctx.coordinator
            request = RecommendationRequest(
                topic="Revenue law",
                current_context="audit",
                document_context={"filename": "balance.xlsx", "content": "material risk"},
            )
            roster = (await coordinator.recommend_agents("Revenue law", request)).agents
            assert roster[0].key == "moderator"

            transcript: list[TranscriptMessage] = []
            for turn in range(len(roster) * 3):
                selection = coordinator.determine_next_speaker(transcript, roster)
                if turn == 0:
                    assert selection.agent.key == "moderator"
                transcript.append(
                    TranscriptMessage(
                        agent_key=selection.agent.key,
                        agent_name=selection.agent.name,
                        content=(
                            f"Turn {turn}: the audit risk and the internal control "
                            "environment must be documented before we conclude on "
                            "the accounting treatment of these contracts."
                        ),
                        position=turn,
                    )
                )

            state = coordinator.build_state(transcript, roster)
            assert state.stage == "conclusion"
            assert set(state.participation) == {a.key for a in roster}

            report = coordinator.analyze_conversation_quality(transcript)
            assert report.overall_score >= 80

            summary = await coordinator.generate_summary(transcript, "Revenue law")
            assert summary.fallback is False
            assert summary.action_items

            # Memoized recommendation is served from the cache
            hits_before = ctx.cache.get_metrics().hits
            await coordinator.recommend_agents("Revenue law", request)
            assert ctx.cache.get_metrics().hits == hits_before + 1
