"""Assessment model: answers, progress, and the snapshot handed to the scoring pipeline."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from gapmatch.models.enums import AssessmentStatus, EvidenceTier
from gapmatch.models.template import Template


class Answer(BaseModel):
    """One evaluated answer version. Superseded, never mutated, on re-evaluation."""

    model_config = ConfigDict(frozen=True)

    id: str
    assessment_id: str
    question_id: str
    version: int = Field(..., ge=1)
    response_text: str
    evidence_tier: EvidenceTier
    ai_score: float = Field(..., ge=0.0, le=1.0)
    confidence: float = Field(..., ge=0.0, le=1.0)
    created_at: datetime


class Assessment(BaseModel):
    """An organisation's run of a template. Mutated only through the store."""

    id: str
    organization_id: str
    template_id: str
    status: AssessmentStatus = AssessmentStatus.DRAFT
    answered_questions: int = 0
    total_questions: int = 0
    answer_set_version: int = 0
    in_flight: set[str] = Field(default_factory=set)
    unevaluated: dict[str, str] = Field(default_factory=dict)  # question_id -> failure reason
    scored: bool = False
    created_at: datetime
    completed_at: datetime | None = None

    @property
    def completion_pct(self) -> float:
        if self.total_questions == 0:
            return 0.0
        return round(self.answered_questions / self.total_questions * 100, 1)

    def __repr__(self) -> str:
        return f"<Assessment {self.id[:8]} org={self.organization_id[:8]}>"


class AssessmentSnapshot(BaseModel):
    """Immutable view of an assessment's answer set at one moment."""

    model_config = ConfigDict(frozen=True)

    assessment_id: str
    template: Template
    answers: dict[str, Answer]  # question_id -> latest version
    completed: bool
    answer_set_version: int
    in_flight: frozenset[str] = frozenset()
    unevaluated: frozenset[str] = frozenset()
