# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides a controllable clock, catalog agents, transcript builders and temp
directories. No external services; all I/O is local or mocked.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path

import pytest

from revycore.config.agents import AGENT_CATALOG
from revycore.conversation.models import Agent, TranscriptMessage


class FakeClock:
    """Manually advanced clock usable wherever a ``clock`` callable is injected."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# === FIXTURES: Clock ===


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


# === FIXTURES: Conversation ===


@pytest.fixture
def moderator() -> Agent:
    return AGENT_CATALOG["moderator"]


@pytest.fixture
def expert() -> Agent:
    """An agent with no registered role."""
    return Agent(key="expert", name="Domain expert", directive="You know the domain.")


@pytest.fixture
def roster_of_four() -> list[Agent]:
    return [
        AGENT_CATALOG["moderator"],
        AGENT_CATALOG["auditor"],
        AGENT_CATALOG["optimist"],
        AGENT_CATALOG["notetaker"],
    ]


@pytest.fixture
def make_transcript() -> Callable[..., list[TranscriptMessage]]:
    """Build a transcript from (agent, content) pairs or bare agents."""

    def _make(
        turns: Sequence[Agent | tuple[Agent, str]],
        default_content: str = "I agree with the previous point.",
    ) -> list[TranscriptMessage]:
        messages: list[TranscriptMessage] = []
        for position, turn in enumerate(turns):
            agent, content = turn if isinstance(turn, tuple) else (turn, default_content)
            messages.append(
                TranscriptMessage(
                    agent_key=agent.key,
                    agent_name=agent.name,
                    content=content,
                    position=position,
                )
            )
        return messages

    return _make


# === FIXTURES: Temp dirs ===


@pytest.fixture
def tmp_cache_dir(tmp_path: Path) -> Path:
    """Temporary cache directory."""
    cache = tmp_path / "cache"
    cache.mkdir()
    return cache
