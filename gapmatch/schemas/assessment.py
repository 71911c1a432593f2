"""Schemas for assessment, scoring, gap and matching endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from gapmatch.models.enums import AssessmentStatus, ScoringState
from gapmatch.models.gap import Gap
from gapmatch.models.scoring import ScoreNode
from gapmatch.models.vendor import VendorMatch


class AssessmentCreate(BaseModel):
    organization_id: str
    template_id: str
    id: str | None = None


class AssessmentResponse(BaseModel):
    id: str
    organization_id: str
    template_id: str
    status: AssessmentStatus
    answered_questions: int
    total_questions: int
    completion_pct: float
    created_at: datetime
    completed_at: datetime | None = None


class AnswerSubmit(BaseModel):
    """An evaluation result for one question.

    Scores stay loosely typed here so that range and type problems come back
    as structured engine validation reasons.
    """

    question_id: str
    response_text: str = ""
    evidence_tier: Any
    ai_score: Any
    confidence: Any


class AnswerResponse(BaseModel):
    id: str
    question_id: str
    version: int
    evidence_tier: str
    ai_score: float
    confidence: float
    created_at: datetime


class EvaluationFailure(BaseModel):
    question_id: str
    reason: str = Field(default="Evaluation failed", max_length=500)


class EvaluateRequest(BaseModel):
    """Responses to send to the evidence-evaluation service, keyed by question id."""

    responses: dict[str, str]


class EvaluateResponse(BaseModel):
    assessment_id: str
    requested: int
    evaluated: list[str]
    failed: dict[str, str]


class ProgressResponse(BaseModel):
    assessment_id: str
    status: AssessmentStatus
    answered_questions: int
    total_questions: int
    completion_pct: float
    in_flight: list[str]
    unevaluated: dict[str, str]
    answer_set_version: int
    scored: bool
    open_gaps: int = 0


class ScoreResponse(BaseModel):
    assessment_id: str
    state: ScoringState
    reason: dict[str, Any] | None = None
    overall_score: float = Field(..., ge=0.0, le=100.0)
    risk_band: str
    sections: list[ScoreNode]
    evidence_distribution: dict[str, int]
    evidence_tiers: dict[str, dict[str, Any]]
    section_stats: dict[str, Any]
    answered_questions: int
    total_questions: int
    completion_pct: float
    answer_set_version: int


class GapListResponse(BaseModel):
    assessment_id: str
    total: int
    severity_counts: dict[str, int]
    gaps: list[Gap]


class VendorMatchesResponse(BaseModel):
    assessment_id: str
    threshold: float
    limit: int
    gaps: list[Gap]
    matches_by_gap: dict[str, list[VendorMatch]]
