# src/conversation/coordinator.py — v2
"""Conversation coordinator.

Turn-level decisions (stage, next speaker, state, quality) are pure functions
of the transcript and roster. Roster recommendation and summaries consult
external collaborators and are memoized in the cache; any failure there
degrades to a fixed default instead of raising.
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
from collections import Counter
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

from revycore.config.agents import AGENT_CATALOG, DEFAULT_ROSTER
from revycore.conversation.analyzer import (
    AnalyzerError,
    BaseContextAnalyzer,
    HeuristicContextAnalyzer,
)
from revycore.conversation.models import (
    Agent,
    ContextSignals,
    ConversationState,
    ConversationSummary,
    QualityReport,
    RecommendationRequest,
    RosterRecommendation,
    SpeakerSelection,
    TranscriptMessage,
)
from revycore.conversation.quality import analyze_quality, current_topic, rolling_quality_score
from revycore.conversation.roles import get_role, registered_roles
from revycore.conversation.stages import derive_stage
from revycore.conversation.summary import BaseSummarizer, HeuristicSummarizer, fallback_summary
from revycore.logging.context import reset_context, set_agent_context, set_session_context

if TYPE_CHECKING:
    from revycore.cache.manager import CacheManager
    from revycore.config.settings import Settings

logger = logging.getLogger(__name__)

UNDER_PARTICIPATION_BONUS = 20
OVER_PARTICIPATION_PENALTY = 10
OVER_PARTICIPATION_FACTOR = 1.5
CONSECUTIVE_PENALTY = 15

FALLBACK_CONFIDENCE = 0.5
BASE_CONFIDENCE = 0.6
MAX_CONFIDENCE = 0.95


class ConversationCoordinator:
    """Speaker selection, roster recommendation, quality and summaries.

    Args:
        cache: Optional cache for recommendations and summaries.
        analyzer: Context analyzer; defaults to HeuristicContextAnalyzer.
        summarizer: Summarizer; defaults to HeuristicSummarizer.
        catalog: Agent catalog keyed by agent key.
        moderator_key: Agent key treated as the moderator.
        max_roster: Upper bound on recommended roster size.
        analyzer_timeout_s: Bound on a single analyzer call.
        recommendation_strategy: Cache strategy for recommendations.
        summary_strategy: Cache strategy for summaries.
    """

    def __init__(
        self,
        cache: CacheManager | None = None,
        analyzer: BaseContextAnalyzer | None = None,
        summarizer: BaseSummarizer | None = None,
        catalog: Mapping[str, Agent] | None = None,
        moderator_key: str = "moderator",
        max_roster: int = 5,
        analyzer_timeout_s: float = 10.0,
        recommendation_strategy: str = "context-analysis",
        summary_strategy: str = "ai-responses",
    ) -> None:
        self._cache = cache
        self._analyzer = analyzer or HeuristicContextAnalyzer()
        self._summarizer = summarizer or HeuristicSummarizer()
        self._catalog = dict(catalog if catalog is not None else AGENT_CATALOG)
        self._moderator_key = moderator_key
        self._max_roster = max_roster
        self._analyzer_timeout_s = analyzer_timeout_s
        self._recommendation_strategy = recommendation_strategy
        self._summary_strategy = summary_strategy

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        cache: CacheManager | None = None,
        analyzer: BaseContextAnalyzer | None = None,
        summarizer: BaseSummarizer | None = None,
    ) -> ConversationCoordinator:
        return cls(
            cache=cache,
            analyzer=analyzer,
            summarizer=summarizer,
            moderator_key=settings.coordinator_moderator_key,
            max_roster=settings.coordinator_max_roster,
            analyzer_timeout_s=settings.coordinator_analyzer_timeout_s,
            recommendation_strategy=settings.coordinator_recommendation_strategy,
            summary_strategy=settings.coordinator_summary_strategy,
        )

    @property
    def catalog(self) -> dict[str, Agent]:
        return dict(self._catalog)

    # --- Turn-level decisions ---

    def build_state(
        self,
        transcript: Sequence[TranscriptMessage],
        agents: Sequence[Agent],
    ) -> ConversationState | None:
        """Snapshot of the conversation, or None before anyone has spoken."""
        if not transcript:
            return None
        return ConversationState(
            current_speaker=transcript[-1].agent_key,
            topic_focus=current_topic(transcript),
            stage=derive_stage(len(transcript), len(agents)),
            participation=dict(Counter(m.agent_key for m in transcript)),
            quality_score=rolling_quality_score(transcript),
        )

    def determine_next_speaker(
        self,
        transcript: Sequence[TranscriptMessage],
        agents: Sequence[Agent],
        moderator_key: str | None = None,
    ) -> SpeakerSelection:
        """Pick the next speaker by participation balance and stage role.

        Raises:
            ValueError: If the roster is empty.
        """
        if not agents:
            raise ValueError("Cannot select a speaker from an empty roster")

        moderator_key = moderator_key or self._moderator_key
        if not transcript:
            opener = next((a for a in agents if a.key == moderator_key), agents[0])
            return SpeakerSelection(
                agent=opener,
                reason="Opens the discussion",
                priority="high",
            )

        stage = derive_stage(len(transcript), len(agents))
        counts = Counter(m.agent_key for m in transcript)
        expected = len(transcript) / len(agents)
        last_key = transcript[-1].agent_key

        best: Agent = agents[0]
        best_score = float("-inf")
        for agent in agents:
            spoken = counts.get(agent.key, 0)
            score = 0.0
            if spoken < expected:
                score += UNDER_PARTICIPATION_BONUS
            elif spoken > expected * OVER_PARTICIPATION_FACTOR:
                score -= OVER_PARTICIPATION_PENALTY

            role = get_role(agent.key)
            if role is not None:
                score += role.bonus_for(stage)
            if agent.key == last_key:
                score -= CONSECUTIVE_PENALTY

            # Strict comparison keeps the earliest agent on ties
            if score > best_score:
                best, best_score = agent, score

        role = get_role(best.key)
        base_reason = (
            role.selection_reason
            if role is not None and role.selection_reason
            else f"{best.name} contributes their perspective"
        )

        if role is not None and stage in role.high_priority_stages:
            priority = "high"
        elif counts.get(best.key, 0) < 2:
            priority = "medium"
        else:
            priority = "low"

        token = set_agent_context(best.key)
        try:
            logger.debug(
                "Next speaker selected (score %.0f, %s stage, %s priority)",
                best_score, stage, priority,
            )
        finally:
            reset_context(token)

        return SpeakerSelection(
            agent=best,
            reason=f"{base_reason} ({stage} stage)",
            priority=priority,
            score=best_score,
        )

    def analyze_conversation_quality(
        self, transcript: Sequence[TranscriptMessage],
    ) -> QualityReport:
        return analyze_quality(transcript, moderator_key=self._moderator_key)

    # --- Roster recommendation ---

    async def recommend_agents(
        self,
        topic: str,
        request: RecommendationRequest | Mapping[str, Any] | None = None,
        session_id: str | None = None,
    ) -> RosterRecommendation:
        """Recommend an initial roster for a topic.

        ``request`` carries the remaining context (current context, user
        role, client data, document context). ``session_id`` tags the log
        records emitted during the call. Never raises: analyzer failure
        yields the default roster with fallback=True.
        """
        token = set_session_context(session_id) if session_id else None
        try:
            return await self._recommend(topic, request)
        finally:
            if token is not None:
                reset_context(token)

    async def _recommend(
        self,
        topic: str,
        request: RecommendationRequest | Mapping[str, Any] | None,
    ) -> RosterRecommendation:
        try:
            req = self._build_request(topic, request)
        except Exception as e:
            logger.warning("Invalid recommendation request, using default roster: %s", e)
            return self._default_recommendation()

        cache_key = "agent-recommendation-" + _digest(req.model_dump(mode="json"))
        cached = await self._cache_get(cache_key, self._recommendation_strategy)
        if cached is not None:
            try:
                return RosterRecommendation.model_validate(cached)
            except Exception as e:
                logger.warning("Discarding malformed cached recommendation: %s", e)

        try:
            signals = await self._analyze(req)
            recommendation = self._recommend_from_signals(req.topic, signals)
        except AnalyzerError as e:
            logger.warning("Context analysis rejected the request, using default roster: %s", e)
            return self._default_recommendation()
        except Exception as e:
            logger.warning("Agent recommendation failed, using default roster: %s", e)
            return self._default_recommendation()

        await self._cache_set(
            cache_key,
            recommendation.model_dump(mode="json"),
            self._recommendation_strategy,
        )
        logger.info(
            "Recommended %d agents for %r (confidence %.2f)",
            len(recommendation.agents), req.topic, recommendation.confidence,
        )
        return recommendation

    def _build_request(
        self,
        topic: str,
        request: RecommendationRequest | Mapping[str, Any] | None,
    ) -> RecommendationRequest:
        if request is None:
            return RecommendationRequest(topic=topic)
        if isinstance(request, RecommendationRequest):
            return request.model_copy(update={"topic": topic})
        return RecommendationRequest.model_validate({**request, "topic": topic})

    async def _analyze(self, request: RecommendationRequest) -> ContextSignals:
        raw = await asyncio.wait_for(
            self._analyzer.analyze(request), timeout=self._analyzer_timeout_s,
        )
        if isinstance(raw, ContextSignals):
            return raw
        return ContextSignals.model_validate(raw)

    def _recommend_from_signals(self, topic: str, signals: ContextSignals) -> RosterRecommendation:
        roster: list[Agent] = []
        rationales: list[str] = []
        for role in registered_roles():
            if len(roster) >= self._max_roster:
                break
            agent = self._catalog.get(role.key)
            if agent is None or role.include is None:
                continue
            if role.include(topic, signals, roster):
                roster.append(agent)
                if role.rationale:
                    rationales.append(role.rationale)

        if rationales:
            reasoning = ". ".join(rationales) + "."
        else:
            reasoning = "Standard roster for a general discussion."

        confidence = BASE_CONFIDENCE
        if signals.normalized_confidence > 0.8:
            confidence += 0.2
        if signals.document_types:
            confidence += 0.1
        if signals.primary_context != "general":
            confidence += 0.1

        return RosterRecommendation(
            agents=roster,
            reasoning=reasoning,
            confidence=min(MAX_CONFIDENCE, confidence),
            signals=signals,
        )

    def _default_recommendation(self) -> RosterRecommendation:
        return RosterRecommendation(
            agents=[self._catalog[k] for k in DEFAULT_ROSTER if k in self._catalog],
            reasoning="Default roster: context analysis was unavailable.",
            confidence=FALLBACK_CONFIDENCE,
            fallback=True,
        )

    # --- Summaries ---

    async def generate_summary(
        self,
        transcript: Sequence[TranscriptMessage],
        topic: str,
        session_id: str | None = None,
    ) -> ConversationSummary:
        """Summarize a transcript. Never raises; failure yields a generic summary."""
        token = set_session_context(session_id) if session_id else None
        try:
            return await self._summarize(transcript, topic)
        finally:
            if token is not None:
                reset_context(token)

    async def _summarize(
        self,
        transcript: Sequence[TranscriptMessage],
        topic: str,
    ) -> ConversationSummary:
        cache_key = "conversation-summary-" + _digest(
            {"topic": topic, "transcript": [m.model_dump(mode="json") for m in transcript]}
        )
        cached = await self._cache_get(cache_key, self._summary_strategy)
        if cached is not None:
            try:
                return ConversationSummary.model_validate(cached)
            except Exception as e:
                logger.warning("Discarding malformed cached summary: %s", e)

        try:
            quality = self.analyze_conversation_quality(transcript)
            summary = await self._summarizer.summarize(transcript, topic, quality)
        except Exception as e:
            logger.warning("Summary generation failed, using generic summary: %s", e)
            return fallback_summary(transcript, topic)

        await self._cache_set(cache_key, summary.model_dump(mode="json"), self._summary_strategy)
        logger.info("Summarized %d messages on %r", len(transcript), topic)
        return summary

    # --- Cache helpers ---

    async def _cache_get(self, key: str, strategy: str) -> Any | None:
        if self._cache is None:
            return None
        return await self._cache.get(key, strategy)

    async def _cache_set(self, key: str, value: Any, strategy: str) -> None:
        if self._cache is not None:
            await self._cache.set(key, value, strategy)


def _digest(payload: Any) -> str:
    """Stable SHA-256 digest (first 32 hex chars) of a JSON-able payload."""
    encoded = json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()[:32]
