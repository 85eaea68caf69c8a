"""
models.py – Plain data-classes shared across every module.
"""

from __future__ import annotations

from dataclasses import dataclass, field

TAG_CRITICAL = "critical"
TAG_SMOKE = "smoke"
TAG_NON_REGRESSION = "non-regression"
TEST_TAGS = (TAG_CRITICAL, TAG_SMOKE, TAG_NON_REGRESSION)


@dataclass(frozen=True)
class WorkItemRef:
    """Where a work item lives: organization, project and numeric ID."""

    organization: str
    project: str
    work_item_id: int
    org_url: str = ""


@dataclass(frozen=True)
class WorkItemFields:
    """Snapshot of the fields of one Azure DevOps work item.

    Rich-text fields (description, acceptance criteria) are kept as the
    raw HTML returned by the service.
    """

    id: int
    title: str = ""
    description: str = ""
    acceptance_criteria: str = ""
    work_item_type: str = ""
    state: str = ""
    priority: int = 2
    tags: tuple[str, ...] = ()
    area_path: str = ""
    iteration_path: str = ""
    assigned_to: str = ""


@dataclass(frozen=True)
class Criterion:
    """One acceptance criterion; *index* is 1-based."""

    index: int
    text: str


@dataclass(frozen=True)
class TestScenario:
    """A tagged test scenario derived from a single criterion."""

    __test__ = False

    title: str
    steps: tuple[str, ...]
    expected: str
    tag: str = TAG_NON_REGRESSION


@dataclass
class QualityAssessment:
    """Readiness score of a work item (0–100)."""

    score: int
    issues: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    @property
    def is_ready(self) -> bool:
        return self.score > 80


@dataclass(frozen=True)
class RelatedItem:
    """A work item linked to the analysed one."""

    id: int
    title: str
    work_item_type: str
    state: str
    relationship: str
    description: str = ""


@dataclass(frozen=True)
class ExistingTestCase:
    """A test case that already exists in ADO, linked to the story."""

    id: int
    title: str
    state: str = ""


@dataclass
class DedupResult:
    """Outcome of a single de-dup check."""

    is_duplicate: bool = False
    matched_id: int = 0
    matched_title: str = ""
    score: float = 0.0


@dataclass
class TestHealth:
    """Review outcome for one linked test case."""

    __test__ = False

    id: int
    title: str
    state: str
    is_duplicate: bool = False
    duplicate_of_id: int | None = None
    action_required: str = "None"


@dataclass
class ImpactAnalysis:
    """Test-planning impact of a work item."""

    functional_area: str = "General"
    is_critical: bool = False
    is_smoke_candidate: bool = False
    complexity_score: int = 1
    regression_candidates: list[int] = field(default_factory=list)


@dataclass
class AnalysisReport:
    """Everything derived from one work item in a single analysis run."""

    fields: WorkItemFields
    criteria: list[Criterion] = field(default_factory=list)
    scenarios: list[TestScenario] = field(default_factory=list)
    quality: QualityAssessment = field(default_factory=lambda: QualityAssessment(100))
    impact: ImpactAnalysis = field(default_factory=ImpactAnalysis)
    requirements: list[str] = field(default_factory=list)
    related: list[RelatedItem] = field(default_factory=list)
    questions: list[str] = field(default_factory=list)
    duplicate_titles: list[tuple[str, str, float]] = field(default_factory=list)
    artifacts: dict[str, str] = field(default_factory=dict)
    test_health: list[TestHealth] = field(default_factory=list)
