# src/conversation/quality.py — v1
"""Discussion quality heuristics.

Everything here is deterministic text statistics over the transcript:
speaker diversity, message length, moderator presence and a fixed-vocabulary
topic scan. No model calls.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence

from revycore.conversation.models import QualityReport, TranscriptMessage

TOPIC_VOCABULARY: tuple[str, ...] = (
    "risk",
    "control",
    "compliance",
    "accounting",
    "audit",
    "legal",
    "law",
    "regulation",
    "documentation",
    "quality assurance",
)

DEFAULT_TOPIC = "general discussion"

BASE_SCORE = 50
MIN_DIVERSE_SPEAKERS = 3
MIN_COVERED_TOPICS = 3
BALANCED_LENGTH = (100, 500)


def extract_topics(text: str, vocabulary: Sequence[str] = TOPIC_VOCABULARY) -> list[str]:
    """Vocabulary terms occurring as substrings of text (case-insensitive)."""
    lowered = text.lower()
    return [topic for topic in vocabulary if topic.lower() in lowered]


def current_topic(
    transcript: Sequence[TranscriptMessage],
    vocabulary: Sequence[str] = TOPIC_VOCABULARY,
) -> str:
    """First vocabulary topic in the last three messages."""
    recent = " ".join(m.content for m in transcript[-3:])
    topics = extract_topics(recent, vocabulary)
    return topics[0] if topics else DEFAULT_TOPIC


def rolling_quality_score(transcript: Sequence[TranscriptMessage]) -> float:
    """Cheap per-turn score used in ConversationState (0-100)."""
    if not transcript:
        return 0.0
    avg_length = sum(len(m.content) for m in transcript) / len(transcript)
    unique_speakers = len({m.agent_key for m in transcript})

    score = 50
    if 100 < avg_length < 400:
        score += 20
    if unique_speakers >= MIN_DIVERSE_SPEAKERS:
        score += 20
    if len(transcript) >= 5:
        score += 10
    return float(min(100, score))


def analyze_quality(
    transcript: Sequence[TranscriptMessage],
    moderator_key: str = "moderator",
    vocabulary: Sequence[str] = TOPIC_VOCABULARY,
) -> QualityReport:
    """Score a discussion 0-100 and list strengths and improvements."""
    report = QualityReport()
    if not transcript:
        return report

    speaker_counts = Counter(m.agent_name or "unknown" for m in transcript)
    total = len(transcript)
    report.participation = {
        speaker: round(count / total * 100) for speaker, count in speaker_counts.items()
    }

    avg_length = sum(len(m.content) for m in transcript) / total
    has_moderator = any(m.agent_key == moderator_key for m in transcript)
    score = BASE_SCORE

    if len(speaker_counts) >= MIN_DIVERSE_SPEAKERS:
        score += 15
        report.strengths.append("Good participation from several agents")
    else:
        report.improvements.append("More agents should take part in the discussion")

    low, high = BALANCED_LENGTH
    if low < avg_length < high:
        score += 10
        report.strengths.append("Balanced contribution lengths")
    elif avg_length <= low:
        report.improvements.append("Agents should give more detailed answers")
    else:
        report.improvements.append("Agents should be more concise")

    if has_moderator:
        score += 10
        report.strengths.append("Structured discussion with a moderator")
    else:
        report.improvements.append("No moderator is steering the discussion")

    report.topic_coverage = extract_topics(" ".join(m.content for m in transcript), vocabulary)
    if len(report.topic_coverage) >= MIN_COVERED_TOPICS:
        score += 10
        report.strengths.append(f"Covers {len(report.topic_coverage)} main topics")
    else:
        report.improvements.append("The discussion could cover more aspects")

    report.overall_score = max(0, min(100, score))
    return report
