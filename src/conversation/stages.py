# src/conversation/stages.py — v1
"""Conversation stage derivation.

The stage is a pure function of transcript length and roster size. Bounds
are inclusive upper limits that scale with the roster; each bound is at
least the previous one, so the stage never regresses as messages arrive.
"""

from __future__ import annotations

import math

from revycore.conversation.models import STAGE_ORDER, ConversationStage

MIN_OPENING_MESSAGES = 2

# Upper bound for each stage, as a multiple of roster size
STAGE_MULTIPLIERS: dict[str, float] = {
    "opening": 0.5,
    "exploration": 1.0,
    "analysis": 2.0,
    "synthesis": 2.5,
}


def stage_bounds(roster_size: int) -> dict[str, int]:
    """Inclusive upper message count for every stage before conclusion."""
    n = max(roster_size, 1)
    bounds: dict[str, int] = {}
    floor = MIN_OPENING_MESSAGES
    for stage in STAGE_ORDER[:-1]:
        floor = max(floor, math.ceil(STAGE_MULTIPLIERS[stage] * n))
        bounds[stage] = floor
    return bounds


def derive_stage(message_count: int, roster_size: int) -> ConversationStage:
    """Map a transcript length to its conversation stage.

    >>> derive_stage(1, 4), derive_stage(12, 4)
    ('opening', 'conclusion')
    """
    for stage, upper in stage_bounds(roster_size).items():
        if message_count <= upper:
            return stage  # type: ignore[return-value]
    return "conclusion"
