"""
report_assembler.py – Run the text pipeline for one work item and collect
every derived result into an AnalysisReport.

    fields ─▶ normalize/extract ─▶ synthesize ─▶ renderers
                                  └▶ quality score, questions, duplicates

The assembler is pure: it performs no I/O and holds no state between calls.
"""

from __future__ import annotations

import logging
from typing import Iterable

from automation_renderer import render_cypress, render_playwright
from criterion_extractor import extract_criteria, extract_requirements
from dedup_engine import DEFAULT_THRESHOLD, DedupEngine
from gherkin_renderer import render_gherkin
from html_normalizer import normalize
from manual_test_renderer import render_manual_tests
from models import (
    TEST_TAGS,
    AnalysisReport,
    Criterion,
    ImpactAnalysis,
    QualityAssessment,
    RelatedItem,
    TestHealth,
    TestScenario,
    WorkItemFields,
)
from quality_scorer import score
from scenario_generator import synthesize

logger = logging.getLogger("pbi-analyzer")

VAGUE_PATTERNS = (
    "should work", "properly", "correctly", "as expected", "appropriate",
    "fast", "slow", "secure", "safe", "easy", "simple", "good",
)

NFR_CHECKS = (
    ("performance", "No performance requirements mentioned. Are there response time or throughput targets?"),
    ("security", "No security requirements mentioned. Are there authentication, authorization, or data protection needs?"),
    ("accessibility", "No accessibility requirements mentioned. Should this be WCAG 2.1 AA compliant?"),
    ("error", "No error handling mentioned. How should the system handle failures or invalid input?"),
    ("validation", "No validation mentioned. What input validation is required?"),
    ("logging", "No logging/monitoring mentioned. What should be logged for debugging and auditing?"),
)

DONE_STATES = ("Closed", "Done")
CRITICAL_TAGS = frozenset({"critical", "high-priority", "p0", "p1"})
LONG_DESCRIPTION = 1000


# ── Questions ───────────────────────────────────────────────────────────

def generate_questions(
    fields: WorkItemFields,
    criteria: list[str],
    related: Iterable[RelatedItem] = (),
) -> list[str]:
    """Clarifying questions a refinement session should answer."""
    related = list(related)
    description = normalize(fields.description)
    questions: list[str] = []

    if len(description.strip()) < 20:
        questions.append("The description is missing or very brief. What is the detailed requirement?")
    if not criteria:
        questions.append("No acceptance criteria defined. What are the conditions of satisfaction?")
    elif len(criteria) < 3:
        questions.append(
            "Only a few acceptance criteria are listed. Are there additional "
            "edge cases or scenarios to cover?"
        )

    reported: set[str] = set()
    for i, criterion in enumerate(criteria, 1):
        lower = criterion.lower()
        for pattern in VAGUE_PATTERNS:
            if pattern in lower and pattern not in reported:
                questions.append(
                    f'AC {i} uses vague language ("{pattern}"). '
                    "Can you define specific measurable outcomes?"
                )
                reported.add(pattern)
                break

    description_lower = description.lower()
    ac_text = " ".join(criteria).lower()
    if "read-only" in description_lower and "edit" in ac_text:
        questions.append(
            'Potential contradiction: Description mentions "read-only" but AC '
            'includes "edit" functionality.'
        )
    if "simple" in description_lower and len(criteria) > 5:
        questions.append(
            'Potential complexity mismatch: Description says "simple" but there '
            "are many acceptance criteria."
        )

    all_text = f"{description_lower} {ac_text}"
    questions.extend(q for keyword, q in NFR_CHECKS if keyword not in all_text)

    if not any(word in ac_text for word in ("empty", "null", "invalid")):
        questions.append(
            "No edge cases mentioned (empty, null, invalid data). "
            "What are the boundary conditions?"
        )

    if any(word in ac_text for word in ("api", "service", "integration")):
        if not any(word in ac_text for word in ("timeout", "retry", "fallback")):
            questions.append("Integration mentioned but no timeout, retry, or fallback strategy defined.")

    if not any(item.relationship == "Parent" for item in related):
        questions.append("No parent epic/feature linked. What is the broader goal this PBI contributes to?")

    open_children = [
        item for item in related
        if item.relationship == "Child" and item.state not in DONE_STATES
    ]
    if open_children:
        questions.append(
            f"{len(open_children)} child task(s) are not complete. "
            "Should they be done before this PBI?"
        )

    if any(word in ac_text for word in ("form", "input", "field")):
        if "required" not in ac_text and "optional" not in ac_text:
            questions.append("Form/input mentioned but required vs. optional fields not specified.")

    return questions


# ── Impact ──────────────────────────────────────────────────────────────

def functional_area(fields: WorkItemFields) -> str:
    """First tag, else the leaf of the area path."""
    if fields.tags:
        return fields.tags[0]
    return fields.area_path.split("\\")[-1] or "General"


def analyze_impact(
    fields: WorkItemFields, related: Iterable[RelatedItem] = ()
) -> ImpactAnalysis:
    """Smoke eligibility, complexity and regression candidates for *fields*.

    Complexity starts at 1, gains a point per *Related* link and one more
    for a description longer than ``LONG_DESCRIPTION`` characters.
    """
    related = list(related)
    tags = {tag.lower() for tag in fields.tags}

    complexity = 1 + sum(1 for item in related if item.relationship == "Related")
    if len(normalize(fields.description)) > LONG_DESCRIPTION:
        complexity += 1

    return ImpactAnalysis(
        functional_area=functional_area(fields),
        is_critical=fields.priority == 1 or bool(tags & CRITICAL_TAGS),
        is_smoke_candidate=fields.priority <= 2 or "critical" in tags,
        complexity_score=complexity,
        regression_candidates=[
            item.id for item in related if item.relationship == "Tested By"
        ],
    )


# ── Story analysis (Markdown summary) ───────────────────────────────────

def _numbered(items: Iterable[str], prefix: str = "") -> list[str]:
    return [f"{i}. {prefix}{item}" for i, item in enumerate(items, 1)]


def render_story_analysis(report: AnalysisReport) -> str:
    f = report.fields
    criteria = [c.text for c in report.criteria]
    quality = report.quality
    lines = [
        f"# Story Analysis: {f.title}",
        "",
        f"**PBI ID:** {f.id}  ",
        f"**Type:** {f.work_item_type}  ",
        f"**State:** {f.state}  ",
        f"**Priority:** {f.priority}  ",
    ]
    if f.assigned_to:
        lines.append(f"**Assigned To:** {f.assigned_to}  ")
    lines += [
        f"**Area:** {f.area_path}  ",
        f"**Iteration:** {f.iteration_path}  ",
    ]
    if f.tags:
        lines.append(f"**Tags:** {', '.join(f.tags)}  ")
    lines.append("")

    parents = [item for item in report.related if item.relationship == "Parent"]
    if parents:
        lines += ["## Parent Epic / Feature", ""]
        for parent in parents:
            lines += [f"**{parent.work_item_type} #{parent.id}:** {parent.title}", ""]
            parent_description = normalize(parent.description)
            if parent_description:
                lines += ["> " + parent_description.replace("\n", "\n> "), ""]
        lines += [f"This PBI contributes to the above by delivering: **{f.title}**.", ""]

    description = normalize(f.description)
    lines += ["## Description", "", description or "*No description provided.*", ""]

    if report.requirements:
        lines += ["## Requirements", ""]
        lines += _numbered(report.requirements)
        lines.append("")

    lines += ["## Acceptance Criteria", ""]
    lines += _numbered(criteria) or ["*No acceptance criteria defined.*"]
    lines.append("")

    verdict = "Ready" if quality.is_ready else "Not ready"
    lines += ["## Readiness", "", f"**Score:** {quality.score}/100 ({verdict})", ""]
    if quality.issues:
        lines += ["**Issues:**", ""] + [f"- {issue}" for issue in quality.issues] + [""]
    if quality.suggestions:
        lines += ["**Suggestions:**", ""] + [f"- {s}" for s in quality.suggestions] + [""]

    impact = report.impact
    regression = ", ".join(f"#{i}" for i in impact.regression_candidates) or "None"
    lines += [
        "## Impact Analysis",
        "",
        f"**Functional Area:** {impact.functional_area}  ",
        f"**Critical:** {'Yes' if impact.is_critical else 'No'}  ",
        f"**Smoke Candidate:** {'Yes' if impact.is_smoke_candidate else 'No'}  ",
        f"**Complexity Score:** {impact.complexity_score}  ",
        f"**Regression Candidates:** {regression}  ",
        "",
    ]

    lines += ["## Expected Flow", "", "### Developer Perspective", ""]
    if criteria:
        lines += ["The implementation should satisfy the following flow:", ""]
        lines += _numbered(criteria, "Implement logic for: ")
    else:
        lines.append("*Derive implementation steps from the description above.*")
    lines += ["", "### Test Engineer Perspective", ""]
    if criteria:
        lines += ["Validate each acceptance criterion:", ""]
        lines += _numbered(criteria, "**Verify:** ")
    else:
        lines.append("*Derive test cases from the description above.*")
    lines.append("")

    lines += ["## Test Scenarios", ""]
    if report.scenarios:
        counts = {tag: 0 for tag in TEST_TAGS}
        for scenario in report.scenarios:
            counts[scenario.tag] = counts.get(scenario.tag, 0) + 1
        lines.append(
            ", ".join(f"**{tag}:** {n}" for tag, n in counts.items())
            + f" (total {len(report.scenarios)})"
        )
    else:
        lines.append("*No test scenarios generated.*")
    lines.append("")

    if report.duplicate_titles:
        lines += ["### Probable Duplicate Scenarios", ""]
        for title, original, similarity in report.duplicate_titles:
            lines.append(f"- {title} ≈ {original} ({similarity:.0%})")
        lines.append("")

    if report.test_health:
        lines += [
            "## Linked Test Cases",
            "",
            "| ID | Title | State | Action Required |",
            "| --- | --- | --- | --- |",
        ]
        for health in report.test_health:
            lines.append(
                f"| {health.id} | {health.title} | {health.state} | {health.action_required} |"
            )
        lines.append("")

    lines += ["## Unknowns & Questions", ""]
    lines += _numbered(report.questions) or ["*No obvious unknowns identified.*"]
    lines.append("")

    if report.related:
        lines += [
            "## Related Work Items",
            "",
            "| ID | Title | Type | State | Relationship |",
            "| --- | --- | --- | --- | --- |",
        ]
        for item in report.related:
            lines.append(
                f"| {item.id} | {item.title} | {item.work_item_type} | "
                f"{item.state} | {item.relationship} |"
            )
        lines.append("")

    return "\n".join(lines)


# ── Public API ──────────────────────────────────────────────────────────

def render_artifacts(title: str, scenarios: list[TestScenario]) -> dict[str, str]:
    """Run every scenario renderer; each sees the same read-only list."""
    return {
        "gherkin": render_gherkin(title, scenarios),
        "manual_tests": render_manual_tests(title, scenarios),
        "cypress": render_cypress(title, scenarios),
        "playwright": render_playwright(title, scenarios),
    }


class ReportAssembler:
    """Composes extraction, synthesis, scoring and rendering for one item."""

    def __init__(self, dedup_threshold: float = DEFAULT_THRESHOLD) -> None:
        self._dedup = DedupEngine(threshold=dedup_threshold)

    def assemble(
        self,
        fields: WorkItemFields,
        related: Iterable[RelatedItem] = (),
    ) -> AnalysisReport:
        related = list(related)
        criteria: list[Criterion] = extract_criteria(fields.acceptance_criteria)
        texts = [c.text for c in criteria]
        scenarios = synthesize(texts)
        quality: QualityAssessment = score(fields)

        titles = [s.title for s in scenarios]
        duplicates = [
            (titles[i], dup.matched_title, dup.score)
            for i, dup in enumerate(self._dedup.find_duplicates(titles))
            if dup.is_duplicate
        ]

        report = AnalysisReport(
            fields=fields,
            criteria=criteria,
            scenarios=scenarios,
            quality=quality,
            impact=analyze_impact(fields, related),
            requirements=extract_requirements(fields.description),
            related=related,
            questions=generate_questions(fields, texts, related),
            duplicate_titles=duplicates,
        )
        report.artifacts = render_artifacts(fields.title, scenarios)
        report.artifacts["story_analysis"] = render_story_analysis(report)

        logger.info(
            "Analysed #%s: %d criteria, %d scenarios, score %d",
            fields.id,
            len(criteria),
            len(scenarios),
            quality.score,
        )
        return report

    def attach_test_health(
        self, report: AnalysisReport, health: Iterable[TestHealth]
    ) -> None:
        """Add a linked-test review to *report* and refresh its summary."""
        report.test_health = list(health)
        report.artifacts["story_analysis"] = render_story_analysis(report)
