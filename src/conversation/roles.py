# src/conversation/roles.py — v1
"""Role registry: per-role scoring bonuses and roster inclusion rules.

Speaker scoring and roster recommendation look roles up here by agent key
instead of branching on it, so new roles plug in with register_role().
Registration order is the order in which recommend_agents() considers roles.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from revycore.conversation.models import Agent, ContextSignals

logger = logging.getLogger(__name__)

InclusionRule = Callable[[str, "ContextSignals", Sequence["Agent"]], bool]

LEGAL_TOPIC_KEYWORDS: tuple[str, ...] = ("law", "legal", "regulation", "statute")


@dataclass(frozen=True)
class RoleDescriptor:
    """How one role scores and when it joins a recommended roster."""

    key: str
    stage_bonus: dict[str, int] = field(default_factory=dict)
    selection_reason: str = ""
    rationale: str | None = None
    high_priority_stages: frozenset[str] = frozenset()
    include: InclusionRule | None = None

    def bonus_for(self, stage: str) -> int:
        return self.stage_bonus.get(stage, 0)


def _always(topic: str, signals: ContextSignals, roster: Sequence[Agent]) -> bool:
    return True


def _legal_content(topic: str, signals: ContextSignals, roster: Sequence[Agent]) -> bool:
    lowered = topic.lower()
    return "legal" in signals.document_types or any(
        kw in lowered for kw in LEGAL_TOPIC_KEYWORDS
    )


def _financial_content(topic: str, signals: ContextSignals, roster: Sequence[Agent]) -> bool:
    return (
        "financial" in signals.document_types
        or "audit" in signals.primary_context.lower()
    )


def _needs_challenge(topic: str, signals: ContextSignals, roster: Sequence[Agent]) -> bool:
    return signals.complexity == "high" or len(roster) < 3


def _broad_discussion(topic: str, signals: ContextSignals, roster: Sequence[Agent]) -> bool:
    return len(roster) >= 3


_REGISTRY: dict[str, RoleDescriptor] = {}


def register_role(descriptor: RoleDescriptor) -> None:
    """Add or replace a role descriptor."""
    if descriptor.key in _REGISTRY:
        logger.warning("Overwriting existing role: %s", descriptor.key)
    _REGISTRY[descriptor.key] = descriptor


def get_role(key: str) -> RoleDescriptor | None:
    """Look up a role by agent key, or None for roles with no special rules."""
    return _REGISTRY.get(key)


def registered_roles() -> list[RoleDescriptor]:
    """All descriptors in registration order."""
    return list(_REGISTRY.values())


for _descriptor in (
    RoleDescriptor(
        key="moderator",
        stage_bonus={"opening": 30, "synthesis": 15, "conclusion": 25},
        selection_reason="Steers the discussion and keeps it structured",
        rationale="Moderator keeps the discussion structured",
        high_priority_stages=frozenset({"opening"}),
        include=_always,
    ),
    RoleDescriptor(
        key="lawyer",
        stage_bonus={"analysis": 20},
        selection_reason="Contributes legal expertise",
        rationale="Legal advisor recommended because of legal content",
        include=_legal_content,
    ),
    RoleDescriptor(
        key="auditor",
        stage_bonus={"analysis": 20},
        selection_reason="Brings the audit perspective",
        rationale="Auditor included for financial expertise",
        include=_financial_content,
    ),
    RoleDescriptor(
        key="devils_advocate",
        selection_reason="Challenges assumptions and asks critical questions",
        rationale="Critical voice added to challenge assumptions",
        include=_needs_challenge,
    ),
    RoleDescriptor(
        key="notetaker",
        stage_bonus={"conclusion": 25},
        selection_reason="Summarizes and structures the main points",
        rationale="Note-taker added to capture decisions and actions",
        high_priority_stages=frozenset({"conclusion"}),
        include=_broad_discussion,
    ),
    RoleDescriptor(
        key="optimist",
        stage_bonus={"exploration": 15},
        selection_reason="Focuses on opportunities and positive aspects",
    ),
    RoleDescriptor(
        key="creative",
        stage_bonus={"exploration": 15},
        selection_reason="Proposes unconventional alternatives",
    ),
    RoleDescriptor(
        key="strategist",
        stage_bonus={"synthesis": 15},
        selection_reason="Connects findings into a plan",
    ),
):
    register_role(_descriptor)
