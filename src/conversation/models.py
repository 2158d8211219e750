# src/conversation/models.py — v1
"""Conversation domain models: agents, transcript, state and coordinator outputs."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

ConversationStage = Literal["opening", "exploration", "analysis", "synthesis", "conclusion"]
SpeakerPriority = Literal["high", "medium", "low"]
Level = Literal["low", "medium", "high"]

STAGE_ORDER: tuple[str, ...] = (
    "opening", "exploration", "analysis", "synthesis", "conclusion",
)


class Agent(BaseModel):
    """A configured AI participant. Immutable for the session's lifetime."""

    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    directive: str
    model: str | None = None
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    data_scopes: tuple[str, ...] = ()


class TranscriptMessage(BaseModel):
    """One utterance in a session transcript."""

    agent_key: str
    agent_name: str
    content: str
    position: int = 0


class ConversationState(BaseModel):
    """Snapshot of a conversation, recomputed from the transcript each turn."""

    current_speaker: str
    topic_focus: str
    stage: ConversationStage
    participation: dict[str, int] = Field(default_factory=dict)
    quality_score: float = 0.0


class SpeakerSelection(BaseModel):
    """Next-speaker decision."""

    agent: Agent
    reason: str
    priority: SpeakerPriority
    score: float = 0.0


class ContextSignals(BaseModel):
    """Structured signals from the context analyzer."""

    primary_context: str = "general"
    confidence: float = Field(default=0.5, ge=0.0)
    document_types: list[str] = Field(default_factory=list)
    complexity: Level = "low"
    risk_level: Level = "low"
    client_size: Literal["small", "medium", "large"] = "small"
    user_role: str = "employee"
    audit_phase: str = "unknown"

    @property
    def normalized_confidence(self) -> float:
        """Confidence on a 0-1 scale; percentages are divided down."""
        value = self.confidence / 100.0 if self.confidence > 1.0 else self.confidence
        return min(value, 1.0)


class RecommendationRequest(BaseModel):
    """Inputs to a roster recommendation."""

    topic: str
    current_context: str = "general"
    user_role: str = "employee"
    client_data: dict[str, Any] | None = None
    document_context: dict[str, Any] | None = None


class RosterRecommendation(BaseModel):
    """Recommended agent roster with rationale."""

    agents: list[Agent]
    reasoning: str
    confidence: float
    signals: ContextSignals | None = None
    fallback: bool = False


class QualityReport(BaseModel):
    """Heuristic evaluation of a discussion."""

    overall_score: int = 0
    strengths: list[str] = Field(default_factory=list)
    improvements: list[str] = Field(default_factory=list)
    participation: dict[str, int] = Field(default_factory=dict)
    topic_coverage: list[str] = Field(default_factory=list)


class ConversationSummary(BaseModel):
    """Structured digest of a transcript."""

    executive_summary: str
    key_points: list[str] = Field(default_factory=list)
    decisions: list[str] = Field(default_factory=list)
    action_items: list[str] = Field(default_factory=list)
    contributions: dict[str, str] = Field(default_factory=dict)
    follow_up_topics: list[str] = Field(default_factory=list)
    fallback: bool = False
