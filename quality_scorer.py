"""
quality_scorer.py – Heuristic readiness score (0–100) for a work item.

The score starts at 100 and every failed check subtracts its penalty; the
checks are independent, so several can apply at once.  The result is
clamped at zero and an item is *ready* only when it scores above 80.
"""

from __future__ import annotations

import logging

from html_normalizer import normalize
from models import QualityAssessment, WorkItemFields

logger = logging.getLogger("pbi-analyzer")

AMBIGUITY_KEYWORDS = ("maybe", "might", "roughly", "approx", "tbd", "unknown")
GHERKIN_TOKENS = ("given", "when", "then")

MIN_TITLE_LENGTH = 10
MIN_DESCRIPTION_LENGTH = 50

TITLE_PENALTY = 10
MISSING_DESCRIPTION_PENALTY = 30
BRIEF_DESCRIPTION_PENALTY = 10
MISSING_AC_PENALTY = 40
NON_GHERKIN_PENALTY = 10
AMBIGUITY_PENALTY = 5


def find_ambiguities(text: str) -> list[str]:
    """Return the ambiguity keywords present in *text*, in keyword order."""
    lower = text.lower()
    return [word for word in AMBIGUITY_KEYWORDS if word in lower]


def score(fields: WorkItemFields) -> QualityAssessment:
    """Assess how ready *fields* is for development."""
    issues: list[str] = []
    suggestions: list[str] = []
    total = 100

    title = (fields.title or "").strip()
    description = normalize(fields.description)
    criteria = normalize(fields.acceptance_criteria)

    if len(title) < MIN_TITLE_LENGTH:
        total -= TITLE_PENALTY
        issues.append("Title is too short; it should be descriptive")

    if not description:
        total -= MISSING_DESCRIPTION_PENALTY
        issues.append("Description is missing")
    elif len(description) < MIN_DESCRIPTION_LENGTH:
        total -= BRIEF_DESCRIPTION_PENALTY
        suggestions.append("Description seems brief. Consider adding more context.")

    if not criteria:
        total -= MISSING_AC_PENALTY
        issues.append("Acceptance Criteria field is empty")
    elif not all(token in criteria.lower() for token in GHERKIN_TOKENS):
        total -= NON_GHERKIN_PENALTY
        suggestions.append(
            "Acceptance Criteria does not appear to use Gherkin "
            "(Given/When/Then) format."
        )

    found = find_ambiguities(" ".join((title, description, criteria)))
    if found:
        total -= AMBIGUITY_PENALTY * len(found)
        issues.append(f"Found ambiguous terms: {', '.join(found)}")

    total = max(0, total)
    logger.debug("Quality score for #%s: %d", fields.id, total)
    return QualityAssessment(score=total, issues=issues, suggestions=suggestions)
