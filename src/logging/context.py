# src/logging/context.py — v3
"""Contextual logging support — attach session, batch, task and agent to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging. asyncio copies them per task,
# so a value set inside one scheduled task never leaks into its siblings.
_session_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "session_id", default=None
)
_batch_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "batch_id", default=None
)
_task_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "task_id", default=None
)
_agent: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "agent", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    session_id: str | None = None
    batch_id: str | None = None
    task_id: str | None = None
    agent: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        session_id=_session_id.get(),
        batch_id=_batch_id.get(),
        task_id=_task_id.get(),
        agent=_agent.get(),
    )


def set_session_context(session_id: str) -> contextvars.Token:
    """Set conversation-session context. Returns a token for reset_context()."""
    return _session_id.set(session_id)


def set_batch_context(batch_id: str) -> contextvars.Token:
    """Set batch context (called once per scheduler batch)."""
    return _batch_id.set(batch_id)


def set_task_context(task_id: str) -> contextvars.Token:
    """Set task context (called inside each task's own asyncio task)."""
    return _task_id.set(task_id)


def set_agent_context(agent: str) -> contextvars.Token:
    """Set the agent currently being scored or recommended."""
    return _agent.set(agent)


def reset_context(token: contextvars.Token) -> None:
    """Restore the variable behind ``token`` to its previous value."""
    token.var.reset(token)


def clear_context() -> None:
    """Reset all context variables."""
    _session_id.set(None)
    _batch_id.set(None)
    _task_id.set(None)
    _agent.set(None)
