"""Assessment endpoints: evidence ingestion, scoring, gaps, vendor matches and strategy."""

from __future__ import annotations

from fastapi import APIRouter, Query, Request

from gapmatch.errors import InvalidOperation
from gapmatch.models.assessment import Assessment
from gapmatch.models.enums import ComplianceCategory, Priority, Severity
from gapmatch.models.strategy import StrategyMatrix
from gapmatch.routers.health import evaluation_client
from gapmatch.schemas.assessment import (
    AnswerResponse,
    AnswerSubmit,
    AssessmentCreate,
    AssessmentResponse,
    EvaluateRequest,
    EvaluateResponse,
    EvaluationFailure,
    GapListResponse,
    ProgressResponse,
    ScoreResponse,
    VendorMatchesResponse,
)
from gapmatch.services import pipeline
from gapmatch.services.gap_extractor import severity_counts
from gapmatch.store import data_store

router = APIRouter(prefix="/api/assessments", tags=["assessments"])


def _assessment_response(a: Assessment) -> AssessmentResponse:
    return AssessmentResponse(
        id=a.id,
        organization_id=a.organization_id,
        template_id=a.template_id,
        status=a.status,
        answered_questions=a.answered_questions,
        total_questions=a.total_questions,
        completion_pct=a.completion_pct,
        created_at=a.created_at,
        completed_at=a.completed_at,
    )


@router.post("", response_model=AssessmentResponse, status_code=201)
async def create_assessment(body: AssessmentCreate) -> AssessmentResponse:
    assessment = pipeline.create_assessment(body.organization_id, body.template_id, body.id, data_store)
    return _assessment_response(assessment)


@router.get("/{assessment_id}", response_model=AssessmentResponse)
async def get_assessment(assessment_id: str) -> AssessmentResponse:
    return _assessment_response(data_store.get_assessment(assessment_id))


@router.post("/{assessment_id}/answers", response_model=AnswerResponse, status_code=201)
async def submit_answer(assessment_id: str, body: AnswerSubmit) -> AnswerResponse:
    """Ingest one evaluation result; a repeat submission supersedes the earlier answer."""
    answer = pipeline.submit_answer(
        assessment_id,
        body.question_id,
        body.response_text,
        body.evidence_tier,
        body.ai_score,
        body.confidence,
        data_store,
    )
    return AnswerResponse(
        id=answer.id,
        question_id=answer.question_id,
        version=answer.version,
        evidence_tier=answer.evidence_tier.value,
        ai_score=answer.ai_score,
        confidence=answer.confidence,
        created_at=answer.created_at,
    )


@router.post("/{assessment_id}/evaluation-failures", response_model=ProgressResponse)
async def record_evaluation_failure(assessment_id: str, body: EvaluationFailure) -> ProgressResponse:
    """Mark a question unevaluated after the evaluation service failed for it."""
    pipeline.record_evaluation_failure(assessment_id, body.question_id, body.reason, data_store)
    return ProgressResponse(**pipeline.progress(assessment_id, data_store))


@router.post("/{assessment_id}/evaluate", response_model=EvaluateResponse)
async def evaluate(assessment_id: str, body: EvaluateRequest, request: Request) -> EvaluateResponse:
    """Send responses to the evidence-evaluation service and ingest the results."""
    client = evaluation_client(request)
    if client is None:
        raise InvalidOperation("Evidence evaluation service is not configured")
    result = await pipeline.evaluate_many(
        assessment_id, body.responses, client, request.app.state.settings, data_store
    )
    return EvaluateResponse(assessment_id=assessment_id, **result)


@router.post("/{assessment_id}/complete", response_model=AssessmentResponse)
async def complete_assessment(assessment_id: str) -> AssessmentResponse:
    return _assessment_response(pipeline.complete_assessment(assessment_id, data_store))


@router.get("/{assessment_id}/progress", response_model=ProgressResponse)
async def get_progress(assessment_id: str) -> ProgressResponse:
    return ProgressResponse(**pipeline.progress(assessment_id, data_store))


@router.get("/{assessment_id}/score", response_model=ScoreResponse)
async def get_score(assessment_id: str, request: Request) -> ScoreResponse:
    """Overall 0-100 score and section tree.

    ``state`` is ``processing`` while evaluations are pending or the
    assessment is incomplete, ``evaluation_failed`` when some answers could
    not be evaluated, and ``scored`` for a final result.
    """
    result = pipeline.compute_assessment_score(assessment_id, request.app.state.settings, data_store)
    return ScoreResponse(
        assessment_id=result.assessment_id,
        state=result.state,
        reason=result.reason,
        overall_score=result.overall_score,
        risk_band=result.risk_band,
        sections=list(result.root.children),
        evidence_distribution=result.evidence_distribution,
        evidence_tiers=result.evidence_tiers,
        section_stats=result.section_stats,
        answered_questions=result.answered_questions,
        total_questions=result.total_questions,
        completion_pct=result.completion_pct,
        answer_set_version=result.answer_set_version,
    )


@router.get("/{assessment_id}/gaps", response_model=GapListResponse)
async def get_gaps(
    assessment_id: str,
    request: Request,
    severity: Severity | None = None,
    category: ComplianceCategory | None = None,
    priority: Priority | None = None,
) -> GapListResponse:
    gaps = pipeline.get_gaps(
        assessment_id, severity, category, priority, request.app.state.settings, data_store
    )
    return GapListResponse(
        assessment_id=assessment_id,
        total=len(gaps),
        severity_counts=severity_counts(gaps),
        gaps=gaps,
    )


@router.get("/{assessment_id}/vendor-matches", response_model=VendorMatchesResponse)
async def get_vendor_matches(
    assessment_id: str,
    request: Request,
    threshold: float = Query(default=0.0, ge=0.0, le=1.0),
    limit: int = Query(default=50, ge=1, le=500),
) -> VendorMatchesResponse:
    """Ranked solutions per gap; a gap with no suitable vendor maps to an empty list."""
    gaps, matches = pipeline.get_vendor_matches(
        assessment_id, threshold, limit, request.app.state.settings, data_store
    )
    return VendorMatchesResponse(
        assessment_id=assessment_id,
        threshold=threshold,
        limit=limit,
        gaps=gaps,
        matches_by_gap=matches,
    )


@router.get("/{assessment_id}/strategy-matrix", response_model=StrategyMatrix)
async def get_strategy_matrix(assessment_id: str, request: Request) -> StrategyMatrix:
    return pipeline.get_strategy_matrix(assessment_id, request.app.state.settings, data_store)
