# src/conversation/summary.py — v1
"""Transcript summarizers.

HeuristicSummarizer is the default and makes no external call. A
model-backed summarizer can replace it by implementing BaseSummarizer.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from collections.abc import Sequence

from revycore.conversation.models import ConversationSummary, QualityReport, TranscriptMessage
from revycore.conversation.quality import extract_topics

DECISION_KEYWORDS: tuple[str, ...] = ("decided", "concluded", "agreed on", "agreed to", "resolution")
ACTION_KEYWORDS: tuple[str, ...] = ("must", "should", "will", "next step", "follow-up", "follow up")

KEY_POINT_MIN_LENGTH = 100
MAX_KEY_POINTS = 5
MAX_DECISIONS = 3
MAX_ACTION_ITEMS = 4
MAX_FOLLOW_UPS = 4
PREVIEW_CHARS = 150

_SENTENCE_END = re.compile(r"(?<=[.!?])\s+")


class BaseSummarizer(ABC):
    """Turns a transcript into a ConversationSummary."""

    @abstractmethod
    async def summarize(
        self,
        transcript: Sequence[TranscriptMessage],
        topic: str,
        quality: QualityReport,
    ) -> ConversationSummary:
        """Summarize a transcript about ``topic``."""


class HeuristicSummarizer(BaseSummarizer):
    """Keyword and sentence heuristics over the raw transcript."""

    def __init__(
        self,
        decision_keywords: Sequence[str] = DECISION_KEYWORDS,
        action_keywords: Sequence[str] = ACTION_KEYWORDS,
    ) -> None:
        self._decision_re = _keyword_pattern(decision_keywords)
        self._action_re = _keyword_pattern(action_keywords)

    async def summarize(
        self,
        transcript: Sequence[TranscriptMessage],
        topic: str,
        quality: QualityReport,
    ) -> ConversationSummary:
        return ConversationSummary(
            executive_summary=executive_summary(transcript, topic, quality),
            key_points=key_points(transcript),
            decisions=matching_sentences(transcript, self._decision_re, MAX_DECISIONS),
            action_items=matching_sentences(transcript, self._action_re, MAX_ACTION_ITEMS),
            contributions=contributions(transcript),
            follow_up_topics=follow_up_topics(transcript, topic),
        )


def executive_summary(
    transcript: Sequence[TranscriptMessage], topic: str, quality: QualityReport,
) -> str:
    covered = ", ".join(quality.topic_coverage) or "general aspects"
    return (
        f"Discussion of {topic} with {len(quality.participation)} participants "
        f"and {len(transcript)} messages. "
        f"Quality assessment: {quality.overall_score}/100. "
        f"Main topics covered: {covered}."
    )


def first_sentence(text: str) -> str:
    sentence = _SENTENCE_END.split(text.strip(), maxsplit=1)[0].strip()
    if sentence and sentence[-1] not in ".!?":
        sentence += "."
    return sentence


def key_points(transcript: Sequence[TranscriptMessage]) -> list[str]:
    """First sentence of every long message."""
    return [
        first_sentence(m.content)
        for m in transcript
        if len(m.content) > KEY_POINT_MIN_LENGTH
    ][:MAX_KEY_POINTS]


def matching_sentences(
    transcript: Sequence[TranscriptMessage], pattern: re.Pattern[str], limit: int,
) -> list[str]:
    """First keyword-bearing sentence of each matching message."""
    found: list[str] = []
    for message in transcript:
        for sentence in _SENTENCE_END.split(message.content.strip()):
            if pattern.search(sentence):
                found.append(first_sentence(sentence))
                break
        if len(found) >= limit:
            break
    return found


def contributions(transcript: Sequence[TranscriptMessage]) -> dict[str, str]:
    """Preview of each speaker's first message."""
    previews: dict[str, str] = {}
    for message in transcript:
        speaker = message.agent_name or "Unknown"
        if speaker not in previews:
            previews[speaker] = message.content[:PREVIEW_CHARS] + "..."
    return previews


def follow_up_topics(transcript: Sequence[TranscriptMessage], topic: str) -> list[str]:
    topics = extract_topics(" ".join(m.content for m in transcript))
    return [
        f"Deeper analysis of {topic}",
        *(f"Explore the {t} aspect further" for t in topics),
        "Implementation of the discussed solutions",
        "Risk assessment of the proposed measures",
    ][:MAX_FOLLOW_UPS]


def fallback_summary(transcript: Sequence[TranscriptMessage], topic: str) -> ConversationSummary:
    """Generic summary used when summarization fails."""
    return ConversationSummary(
        executive_summary=(
            f"Discussion of {topic} with {len(transcript)} messages from different perspectives."
        ),
        key_points=["The discussion covered several important aspects"],
        decisions=["No specific decisions identified"],
        action_items=["Consider follow-up based on the discussion"],
        contributions={},
        follow_up_topics=["Dig deeper into specific aspects of the discussion"],
        fallback=True,
    )


def _keyword_pattern(keywords: Sequence[str]) -> re.Pattern[str]:
    alternatives = "|".join(re.escape(k) for k in keywords)
    return re.compile(rf"\b(?:{alternatives})\b", re.IGNORECASE)
