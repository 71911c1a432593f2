"""Boundary operations: score, gaps, matches and strategy over store snapshots.

Every read recomputes from a consistent snapshot of the committed template and
the latest answer versions, so running an operation twice over the same
answer set yields the same output.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import pydantic
import structlog

from gapmatch.config import Settings, get_settings
from gapmatch.errors import EngineError, EvaluationError, FailureKind, NotFoundError, ValidationError
from gapmatch.models.assessment import Answer, Assessment, AssessmentSnapshot
from gapmatch.models.enums import (
    AssessmentStatus,
    ComplianceCategory,
    Priority,
    ScoringState,
    Severity,
)
from gapmatch.models.gap import Gap
from gapmatch.models.scoring import ScoreNode
from gapmatch.models.strategy import StrategyMatrix
from gapmatch.models.template import Question, Section, Template
from gapmatch.models.vendor import Solution, Vendor, VendorMatch
from gapmatch.services import evidence_ingestor
from gapmatch.services.evidence_client import EvidenceEvaluationClient
from gapmatch.services.gap_extractor import GapThresholds, extract_gaps, filter_gaps, severity_counts
from gapmatch.services.score_aggregator import (
    aggregate,
    evidence_distribution,
    evidence_tier_legend,
    overall_display_score,
    risk_band,
    score_stats,
)
from gapmatch.services.strategy_matrix import build_matrix
from gapmatch.services.vendor_matcher import MatchConfig, eligible_candidates, match_all
from gapmatch.services.weight_normalizer import (
    TEMPLATE_PARENT,
    normalize_weights,
    overlay_weights,
    question_weights,
    require_valid_weights,
    section_weights,
)
from gapmatch.store import DataStore, data_store

logger = structlog.get_logger()


@dataclass(frozen=True)
class ScoreResult:
    """Outcome of one scoring pass, including why it is not final yet."""

    assessment_id: str
    state: ScoringState
    reason: dict[str, Any] | None
    root: ScoreNode
    overall_score: float
    risk_band: str
    evidence_distribution: dict[str, int]
    evidence_tiers: dict[str, dict[str, Any]]
    section_stats: dict[str, Any]
    answered_questions: int
    total_questions: int
    completion_pct: float
    answer_set_version: int


def thresholds_from_settings(settings: Settings) -> GapThresholds:
    return GapThresholds(
        critical=settings.gap_threshold_critical,
        high=settings.gap_threshold_high,
        medium=settings.gap_threshold_medium,
        low=settings.gap_threshold_low,
    )


def match_config_from_settings(settings: Settings) -> MatchConfig:
    return MatchConfig(
        category_weight=settings.match_category_weight,
        keyword_weight=settings.match_keyword_weight,
        boost_weight=settings.match_boost_weight,
        related_category_score=settings.related_category_score,
        featured_bonus=settings.featured_bonus,
        verified_bonus=settings.verified_bonus,
        min_reason_contribution=settings.min_reason_contribution,
    )


# Templates and weights


def build_template(data: Mapping[str, Any], normalize: bool = False) -> Template:
    """Construct a template from a loosely-typed payload.

    With ``normalize`` the section weights and each section's question
    weights are rescaled proportionally, so raw importance values such as
    1, 2, 3 are accepted.
    """
    payload = dict(data)
    sections = [dict(s) for s in payload.get("sections", [])]
    if normalize:
        for section, weight in zip(sections, normalize_weights([s.get("weight", 0.0) for s in sections])):
            section["weight"] = weight
        for section in sections:
            questions = [dict(q) for q in section.get("questions", [])]
            for question, weight in zip(questions, normalize_weights([q.get("weight", 0.0) for q in questions])):
                question["weight"] = weight
            section["questions"] = questions
    payload["sections"] = sections
    try:
        return Template.model_validate(payload)
    except pydantic.ValidationError as exc:
        raise ValidationError(
            "Malformed template",
            errors=[{"loc": list(e["loc"]), "msg": e["msg"]} for e in exc.errors()],
        ) from None


def register_template(
    template: Template,
    settings: Settings | None = None,
    store: DataStore = data_store,
) -> Template:
    """Check ids and weight invariants, then store ``template`` as committed."""
    settings = settings or get_settings()
    seen: set[str] = set()
    for node_id in [s.id for s in template.sections] + [q.id for q in template.questions]:
        if node_id in seen or node_id == TEMPLATE_PARENT:
            raise ValidationError(f"Duplicate or reserved node id '{node_id}'", node_id=node_id)
        seen.add(node_id)

    if not template.sections:
        raise ValidationError("Template has no sections", template_id=template.id)
    require_valid_weights(
        [s.weight for s in template.sections],
        "Section weights",
        settings.weight_tolerance,
        settings.weight_epsilon,
    )
    for section in template.sections:
        if not section.questions:
            raise ValidationError(f"Section '{section.id}' has no questions", section_id=section.id)
        require_valid_weights(
            [q.weight for q in section.questions],
            f"Question weights of section '{section.id}'",
            settings.weight_tolerance,
            settings.weight_epsilon,
        )

    store.add_template(template)
    logger.info(
        "template_registered",
        template_id=template.id,
        sections=len(template.sections),
        questions=len(template.questions),
    )
    return template


def staged_template(template_id: str, store: DataStore = data_store) -> Template:
    """The template as it would look if pending weight edits were committed."""
    template = store.get_template(template_id)
    session = store.weight_sessions.get(template_id)
    if session is None or not session.is_dirty:
        return template
    return overlay_weights(template, session.proposed)


def update_section_weight(
    template_id: str,
    section_id: str,
    new_weight: float,
    settings: Settings | None = None,
    store: DataStore = data_store,
) -> list[Section]:
    """Stage a section weight edit and return the staged sections."""
    settings = settings or get_settings()
    with store.lock:
        template = store.get_template(template_id)
        if template.section(section_id) is None:
            raise NotFoundError(f"Section '{section_id}' not found", section_id=section_id)
        session = store.weight_session(template_id)
        session.stage(
            TEMPLATE_PARENT,
            section_weights(template),
            section_id,
            new_weight,
            settings.weight_min,
            settings.weight_max,
        )
        staged = staged_template(template_id, store)
    logger.info("weights_staged", template_id=template_id, parent=TEMPLATE_PARENT, target=section_id, weight=new_weight)
    return list(staged.sections)


def update_question_weight(
    template_id: str,
    section_id: str,
    question_id: str,
    new_weight: float,
    settings: Settings | None = None,
    store: DataStore = data_store,
) -> list[Question]:
    """Stage a question weight edit and return the section's staged questions."""
    settings = settings or get_settings()
    with store.lock:
        template = store.get_template(template_id)
        session = store.weight_session(template_id)
        session.stage(
            section_id,
            question_weights(template, section_id),
            question_id,
            new_weight,
            settings.weight_min,
            settings.weight_max,
        )
        staged = staged_template(template_id, store)
    logger.info("weights_staged", template_id=template_id, parent=section_id, target=question_id, weight=new_weight)
    return list(staged.section(section_id).questions)


def pending_weights(template_id: str, store: DataStore = data_store) -> dict[str, Any]:
    with store.lock:
        store.get_template(template_id)
        session = store.weight_sessions.get(template_id)
        return {
            "template_id": template_id,
            "dirty": bool(session and session.is_dirty),
            "dirty_parents": sorted(session.dirty_parents) if session else [],
            "proposed": dict(session.proposed) if session else {},
            "template": staged_template(template_id, store),
        }


def commit_weights(
    template_id: str,
    settings: Settings | None = None,
    store: DataStore = data_store,
) -> Template:
    """Apply every staged edit in one swap, or none of them.

    A rejected commit keeps the staged edits so they can be corrected or
    discarded; readers keep seeing the previous committed template.
    """
    settings = settings or get_settings()
    with store.lock:
        template = store.get_template(template_id)
        session = store.weight_session(template_id)
        if not session.is_dirty:
            return template
        parents = sorted(session.dirty_parents)
        try:
            committed = session.apply(template, settings.weight_tolerance, settings.weight_epsilon)
        except EngineError as exc:
            logger.warning("weights_rejected", template_id=template_id, parents=parents, error=str(exc))
            raise
        store.replace_template(committed)
        session.discard()
        for assessment in store.assessments.values():
            if assessment.template_id == template_id:
                assessment.scored = False
    logger.info("weights_committed", template_id=template_id, parents=parents)
    return committed


def discard_weights(template_id: str, store: DataStore = data_store) -> None:
    with store.lock:
        store.weight_session(template_id).discard()
    logger.info("weights_discarded", template_id=template_id)


# Assessments and evidence


def create_assessment(
    organization_id: str,
    template_id: str,
    assessment_id: str | None = None,
    store: DataStore = data_store,
) -> Assessment:
    template = store.get_template(template_id)
    assessment = Assessment(
        id=assessment_id or str(uuid.uuid4()),
        organization_id=organization_id,
        template_id=template_id,
        total_questions=len(template.questions),
        created_at=datetime.now(timezone.utc),
    )
    store.add_assessment(assessment)
    logger.info("assessment_created", assessment_id=assessment.id, template_id=template_id)
    return assessment


def submit_answer(
    assessment_id: str,
    question_id: str,
    response_text: Any,
    evidence_tier: Any,
    ai_score: Any,
    confidence: Any,
    store: DataStore = data_store,
) -> Answer:
    """Ingest one evaluation result as the question's newest answer version."""
    with store.lock:
        assessment = store.get_assessment(assessment_id)
        template = store.get_template(assessment.template_id)
        return evidence_ingestor.ingest(
            assessment,
            template,
            store.get_ledger(assessment_id),
            question_id,
            response_text,
            evidence_tier,
            ai_score,
            confidence,
        )


def record_evaluation_failure(
    assessment_id: str,
    question_id: str,
    reason: str,
    store: DataStore = data_store,
) -> Assessment:
    with store.lock:
        assessment = store.get_assessment(assessment_id)
        template = store.get_template(assessment.template_id)
        if template.find_question(question_id) is None:
            raise NotFoundError(f"Question '{question_id}' not in template '{template.id}'", question_id=question_id)
        evidence_ingestor.mark_unevaluated(assessment, question_id, reason)
        return assessment


def complete_assessment(assessment_id: str, store: DataStore = data_store) -> Assessment:
    """Mark an assessment complete; unanswered questions now count against it."""
    with store.lock:
        assessment = store.get_assessment(assessment_id)
        if assessment.status != AssessmentStatus.COMPLETED:
            assessment.status = AssessmentStatus.COMPLETED
            assessment.completed_at = datetime.now(timezone.utc)
            assessment.scored = False
    logger.info(
        "assessment_completed",
        assessment_id=assessment_id,
        answered=assessment.answered_questions,
        total=assessment.total_questions,
    )
    return assessment


async def evaluate_many(
    assessment_id: str,
    responses: Mapping[str, str],
    client: EvidenceEvaluationClient,
    settings: Settings | None = None,
    store: DataStore = data_store,
) -> dict[str, Any]:
    """Evaluate responses concurrently and ingest each result as it lands.

    At most ``evaluation_concurrency`` requests run at once. A failed or
    invalid evaluation marks its question unevaluated without affecting the
    rest. Cancellation leaves unfinished questions unanswered and keeps every
    answer already ingested.
    """
    settings = settings or get_settings()
    with store.lock:
        assessment = store.get_assessment(assessment_id)
        template = store.get_template(assessment.template_id)
        work = []
        for question_id, text in responses.items():
            located = template.find_question(question_id)
            if located is None:
                raise NotFoundError(
                    f"Question '{question_id}' not in template '{template.id}'",
                    question_id=question_id,
                )
            work.append((located[1], text))
        for question, _ in work:
            evidence_ingestor.mark_in_flight(assessment, question.id)

    semaphore = asyncio.Semaphore(settings.evaluation_concurrency)
    evaluated: list[str] = []
    failed: dict[str, str] = {}

    async def _evaluate_one(question: Question, text: str) -> None:
        try:
            async with semaphore:
                result = await client.evaluate(question, text)
            with store.lock:
                evidence_ingestor.ingest(
                    assessment,
                    store.get_template(assessment.template_id),
                    store.get_ledger(assessment_id),
                    question.id,
                    text,
                    result["evidence_tier"],
                    result["ai_score"],
                    result["confidence"],
                )
            evaluated.append(question.id)
        except (EvaluationError, ValidationError) as exc:
            failed[question.id] = exc.message
        except asyncio.CancelledError:
            with store.lock:
                evidence_ingestor.cancel_in_flight(assessment, question.id)
            raise
        except Exception as exc:
            failed[question.id] = f"Unexpected evaluation error: {exc}"
            logger.exception("evaluation_crashed", assessment_id=assessment_id, question_id=question.id)
        finally:
            if question.id in failed:
                with store.lock:
                    evidence_ingestor.mark_unevaluated(assessment, question.id, failed[question.id])

    try:
        await asyncio.gather(*(_evaluate_one(q, t) for q, t in work))
    finally:
        # Tasks cancelled before their first step never reach their own cleanup
        with store.lock:
            for question, _ in work:
                if question.id in assessment.in_flight:
                    evidence_ingestor.cancel_in_flight(assessment, question.id)
    logger.info(
        "evaluations_finished",
        assessment_id=assessment_id,
        requested=len(work),
        evaluated=len(evaluated),
        failed=len(failed),
    )
    return {"requested": len(work), "evaluated": sorted(evaluated), "failed": failed}


def progress(assessment_id: str, store: DataStore = data_store) -> dict[str, Any]:
    assessment = store.get_assessment(assessment_id)
    return {
        "assessment_id": assessment.id,
        "status": assessment.status,
        "answered_questions": assessment.answered_questions,
        "total_questions": assessment.total_questions,
        "completion_pct": assessment.completion_pct,
        "in_flight": sorted(assessment.in_flight),
        "unevaluated": dict(assessment.unevaluated),
        "answer_set_version": assessment.answer_set_version,
        "scored": assessment.scored,
        "open_gaps": len(store.get_gaps(assessment_id)),
    }


# Scoring, gaps, matching


def _scoring_state(snapshot: AssessmentSnapshot) -> tuple[ScoringState, dict[str, Any] | None]:
    if snapshot.in_flight:
        return ScoringState.PROCESSING, {
            "kind": FailureKind.PROCESSING.value,
            "message": "Evidence evaluation still in progress",
            "details": {"question_ids": sorted(snapshot.in_flight)},
        }
    if snapshot.unevaluated:
        return ScoringState.EVALUATION_FAILED, {
            "kind": FailureKind.EVALUATION_FAILED.value,
            "message": "Some answers could not be evaluated",
            "details": {"question_ids": sorted(snapshot.unevaluated)},
        }
    if not snapshot.completed:
        return ScoringState.PROCESSING, {
            "kind": FailureKind.PROCESSING.value,
            "message": "Assessment not yet completed; scores reflect answered questions only",
            "details": {},
        }
    return ScoringState.SCORED, None


def compute_assessment_score(
    assessment_id: str,
    settings: Settings | None = None,
    store: DataStore = data_store,
) -> ScoreResult:
    """Aggregate the latest answer set into a score tree and overall 0-100 score.

    The assessment is marked scored only when a pass over a complete,
    fully-evaluated answer set finishes and no newer answer arrived meanwhile.
    """
    settings = settings or get_settings()
    snapshot = store.snapshot(assessment_id)
    root = aggregate(snapshot.template, snapshot.answers, snapshot.completed, settings.apply_tier_multiplier)
    state, reason = _scoring_state(snapshot)
    overall = overall_display_score(root)

    with store.lock:
        assessment = store.get_assessment(assessment_id)
        if state == ScoringState.SCORED and assessment.answer_set_version == snapshot.answer_set_version:
            assessment.scored = True
        answered, total, pct = (
            assessment.answered_questions,
            assessment.total_questions,
            assessment.completion_pct,
        )

    band = risk_band(overall)
    logger.info(
        "assessment_scored",
        assessment_id=assessment_id,
        state=state.value,
        overall_score=overall,
        risk_band=band.value,
        answer_set_version=snapshot.answer_set_version,
    )
    return ScoreResult(
        assessment_id=assessment_id,
        state=state,
        reason=reason,
        root=root,
        overall_score=overall,
        risk_band=band.value,
        evidence_distribution=evidence_distribution(root),
        evidence_tiers=evidence_tier_legend(),
        section_stats=score_stats([s.score for s in root.children]),
        answered_questions=answered,
        total_questions=total,
        completion_pct=pct,
        answer_set_version=snapshot.answer_set_version,
    )


def get_gaps(
    assessment_id: str,
    severity: Severity | None = None,
    category: ComplianceCategory | None = None,
    priority: Priority | None = None,
    settings: Settings | None = None,
    store: DataStore = data_store,
) -> list[Gap]:
    """Extract gaps from a fresh score tree, supersede the stored set, then filter."""
    settings = settings or get_settings()
    result = compute_assessment_score(assessment_id, settings, store)
    gaps = extract_gaps(result.root, assessment_id, thresholds_from_settings(settings))
    store.supersede_gaps(assessment_id, gaps)
    logger.info("gaps_extracted", assessment_id=assessment_id, total=len(gaps), **severity_counts(gaps))
    return filter_gaps(gaps, severity, category, priority)


def _catalog(store: DataStore) -> tuple[dict[str, Vendor], list[Solution]]:
    with store.lock:
        return dict(store.vendors), list(store.solutions.values())


def get_vendor_matches(
    assessment_id: str,
    threshold: float = 0.0,
    limit: int | None = None,
    settings: Settings | None = None,
    store: DataStore = data_store,
) -> tuple[list[Gap], dict[str, list[VendorMatch]]]:
    settings = settings or get_settings()
    gaps = get_gaps(assessment_id, settings=settings, store=store)
    vendors, solutions = _catalog(store)
    matches = match_all(
        gaps,
        eligible_candidates(vendors, solutions),
        threshold,
        limit or settings.default_match_limit,
        match_config_from_settings(settings),
    )
    return gaps, matches


def get_strategy_matrix(
    assessment_id: str,
    settings: Settings | None = None,
    store: DataStore = data_store,
) -> StrategyMatrix:
    settings = settings or get_settings()
    gaps, matches = get_vendor_matches(assessment_id, settings=settings, store=store)
    return build_matrix(assessment_id, gaps, matches, settings.strategy_top_matches)
