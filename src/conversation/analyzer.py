# src/conversation/analyzer.py — v2
"""Context analyzers supplying ContextSignals to roster recommendation.

BaseContextAnalyzer is the collaborator contract. HeuristicContextAnalyzer
is an in-process default that derives signals from filename/content
keywords and client figures; deployments with a richer analysis service
implement the base class instead.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from revycore.conversation.models import ContextSignals, RecommendationRequest

logger = logging.getLogger(__name__)


class AnalyzerError(Exception):
    """The analyzer could not produce usable signals."""


class BaseContextAnalyzer(ABC):
    """Produces structured signals about documents, client and risk."""

    @abstractmethod
    async def analyze(self, request: RecommendationRequest) -> ContextSignals | Mapping[str, Any]:
        """Analyze a recommendation request.

        May return a plain mapping; the coordinator validates it into
        ContextSignals and treats validation failure as an analyzer failure.
        """


# filename keyword -> document type
_FILENAME_TYPES: dict[str, str] = {
    "ledger": "ledger",
    "balance": "balance_sheet",
    "income": "income_statement",
    "notes": "notes",
    "cash": "cash_flow",
    "contract": "legal",
    "agreement": "legal",
}

# content keyword -> document type
_CONTENT_TYPES: dict[str, str] = {
    "accounting": "accounting",
    "audit": "audit",
    "control": "control",
    "statute": "legal",
    "regulation": "legal",
    "contract": "legal",
}

_STATEMENT_TYPES = frozenset({"ledger", "balance_sheet", "income_statement", "notes", "cash_flow"})
_HIGH_RISK_TYPES = frozenset({"balance_sheet", "income_statement", "cash_flow", "notes"})
_RISK_INDICATORS = ("material", "risk", "error", "deviation", "uncertainty")
_HIGH_RISK_INDUSTRIES = frozenset({"finance", "construction", "oil", "technology"})

LONG_DOCUMENT_CHARS = 10_000


def _grade(value: float) -> str:
    if value > 0.7:
        return "high"
    if value > 0.4:
        return "medium"
    return "low"


def _figure(client: Mapping[str, Any], name: str) -> float | None:
    value = client.get(name)
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise AnalyzerError(f"Client {name} is not numeric: {value!r}") from e


class HeuristicContextAnalyzer(BaseContextAnalyzer):
    """Keyword-driven analyzer with no external calls."""

    async def analyze(self, request: RecommendationRequest) -> ContextSignals:
        doc = request.document_context or {}
        client = request.client_data or {}

        types = self.document_types(doc)
        signals = ContextSignals(
            primary_context=request.current_context,
            confidence=self.confidence(request, types),
            document_types=types,
            complexity=self.complexity(doc, types),  # type: ignore[arg-type]
            risk_level=self.risk_level(doc, types, client),  # type: ignore[arg-type]
            client_size=self.client_size(client),  # type: ignore[arg-type]
            user_role=request.user_role,
            audit_phase=self.audit_phase(doc, types),
        )
        logger.debug(
            "Context analysis: types=%s complexity=%s risk=%s",
            signals.document_types, signals.complexity, signals.risk_level,
        )
        return signals

    @staticmethod
    def document_types(doc: Mapping[str, Any]) -> list[str]:
        types: list[str] = []
        filename = str(doc.get("filename", "")).lower()
        content = str(doc.get("content", "")).lower()

        types.extend(t for kw, t in _FILENAME_TYPES.items() if kw in filename)
        types.extend(t for kw, t in _CONTENT_TYPES.items() if kw in content)
        types.extend(str(t).lower() for t in doc.get("types", []) or [])
        if _STATEMENT_TYPES.intersection(types):
            types.append("financial")
        return list(dict.fromkeys(types))

    @staticmethod
    def complexity(doc: Mapping[str, Any], types: list[str]) -> str:
        score = len(types) * 0.2
        if "notes" in types or "cash_flow" in types:
            score += 0.3
        if len(str(doc.get("content", ""))) > LONG_DOCUMENT_CHARS:
            score += 0.2
        return _grade(score)

    @staticmethod
    def risk_level(doc: Mapping[str, Any], types: list[str], client: Mapping[str, Any]) -> str:
        score = sum(0.25 for t in types if t in _HIGH_RISK_TYPES)
        content = str(doc.get("content", "")).lower()
        score += sum(0.1 for indicator in _RISK_INDICATORS if indicator in content)
        if str(client.get("industry", "")).lower() in _HIGH_RISK_INDUSTRIES:
            score += 0.2
        if client.get("audit_issues"):
            score += 0.3
        return _grade(score)

    @staticmethod
    def client_size(client: Mapping[str, Any]) -> str:
        """Grade by revenue, else by employee count.

        Raises:
            AnalyzerError: If a present figure is not numeric.
        """
        revenue = _figure(client, "revenue")
        if revenue is not None:
            if revenue > 100_000_000:
                return "large"
            if revenue > 10_000_000:
                return "medium"
            return "small"
        employees = _figure(client, "employees")
        if employees is not None:
            if employees > 100:
                return "large"
            if employees > 20:
                return "medium"
            return "small"
        return "medium"

    @staticmethod
    def audit_phase(doc: Mapping[str, Any], types: list[str]) -> str:
        content = str(doc.get("content", "")).lower()
        if not content:
            return "unknown"
        if "planning" in content or "prepar" in content:
            return "planning"
        if "conclusion" in content or "report" in content:
            return "completion"
        if "notes" in types:
            return "completion"
        return "execution"

    @staticmethod
    def confidence(request: RecommendationRequest, types: list[str]) -> float:
        confidence = 0.5
        if types:
            confidence += 0.2
        if request.current_context != "general":
            confidence += 0.2
        if request.client_data:
            confidence += 0.1
        return min(0.95, confidence)
