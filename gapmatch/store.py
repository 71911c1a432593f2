"""In-memory data store for gapmatch.

Holds the snapshots the engine computes over: templates, assessments and
their answer ledgers, the vendor catalog, staged weight edits and the latest
extracted gaps. In production these come from the surrounding application's
persistence; the engine only ever reads a consistent snapshot.
"""

from __future__ import annotations

import threading

from gapmatch.errors import NotFoundError
from gapmatch.models.assessment import Assessment, AssessmentSnapshot
from gapmatch.models.enums import AssessmentStatus
from gapmatch.models.gap import Gap
from gapmatch.models.template import Template
from gapmatch.models.vendor import Solution, Vendor
from gapmatch.services.evidence_ingestor import AnswerLedger
from gapmatch.services.weight_normalizer import WeightEditSession


class DataStore:
    """Thread-safe in-memory data store for development and testing."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.templates: dict[str, Template] = {}
        self.assessments: dict[str, Assessment] = {}
        self.answers: dict[str, AnswerLedger] = {}  # assessment_id -> ledger
        self.vendors: dict[str, Vendor] = {}
        self.solutions: dict[str, Solution] = {}
        self.weight_sessions: dict[str, WeightEditSession] = {}  # template_id -> session
        self.gaps: dict[str, dict[str, Gap]] = {}  # assessment_id -> gap_id -> gap

    def reset(self) -> None:
        """Clear all data; used in tests."""
        self.__init__()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    # Templates

    def add_template(self, template: Template) -> None:
        with self._lock:
            self.templates[template.id] = template

    def get_template(self, template_id: str) -> Template:
        template = self.templates.get(template_id)
        if template is None:
            raise NotFoundError(f"Template '{template_id}' not found", template_id=template_id)
        return template

    def replace_template(self, template: Template) -> None:
        """Swap in a new committed template in one step."""
        with self._lock:
            self.templates[template.id] = template

    def weight_session(self, template_id: str) -> WeightEditSession:
        self.get_template(template_id)
        with self._lock:
            return self.weight_sessions.setdefault(template_id, WeightEditSession(template_id))

    # Assessments

    def add_assessment(self, assessment: Assessment) -> None:
        with self._lock:
            self.assessments[assessment.id] = assessment
            self.answers.setdefault(assessment.id, AnswerLedger())

    def get_assessment(self, assessment_id: str) -> Assessment:
        assessment = self.assessments.get(assessment_id)
        if assessment is None:
            raise NotFoundError(f"Assessment '{assessment_id}' not found", assessment_id=assessment_id)
        return assessment

    def get_ledger(self, assessment_id: str) -> AnswerLedger:
        self.get_assessment(assessment_id)
        return self.answers.setdefault(assessment_id, AnswerLedger())

    def snapshot(self, assessment_id: str) -> AssessmentSnapshot:
        """Consistent view of an assessment's latest answers and committed template."""
        with self._lock:
            assessment = self.get_assessment(assessment_id)
            template = self.get_template(assessment.template_id)
            return AssessmentSnapshot(
                assessment_id=assessment.id,
                template=template,
                answers=self.get_ledger(assessment_id).latest_all(),
                completed=assessment.status == AssessmentStatus.COMPLETED,
                answer_set_version=assessment.answer_set_version,
                in_flight=frozenset(assessment.in_flight),
                unevaluated=frozenset(assessment.unevaluated),
            )

    # Gaps

    def supersede_gaps(self, assessment_id: str, gaps: list[Gap]) -> None:
        """Replace the assessment's gap set; gaps for resolved nodes drop out."""
        with self._lock:
            self.gaps[assessment_id] = {g.id: g for g in gaps}

    def get_gaps(self, assessment_id: str) -> list[Gap]:
        return list(self.gaps.get(assessment_id, {}).values())

    # Vendor catalog

    def add_vendor(self, vendor: Vendor, solutions: list[Solution] | None = None) -> None:
        with self._lock:
            self.vendors[vendor.id] = vendor
            for sid in [sid for sid, s in self.solutions.items() if s.vendor_id == vendor.id]:
                del self.solutions[sid]
            for solution in solutions or []:
                self.solutions[solution.id] = solution

    def get_vendor_solutions(self, vendor_id: str) -> list[Solution]:
        return [s for s in self.solutions.values() if s.vendor_id == vendor_id]


# Global singleton — replaced in tests
data_store = DataStore()
