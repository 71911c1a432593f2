"""Evidence Ingestor: turns evaluation results into immutable answer versions."""

from __future__ import annotations

import math
import uuid
from datetime import date, datetime, timezone
from typing import Any

import structlog

from gapmatch.errors import NotFoundError, ValidationError
from gapmatch.models.assessment import Answer, Assessment
from gapmatch.models.enums import AssessmentStatus, EvidenceTier, QuestionType
from gapmatch.models.template import Question, Template

logger = structlog.get_logger()

BOOLEAN_VALUES = {"true", "false", "yes", "no", "y", "n", "1", "0"}
RATING_RANGE = (1, 5)


class AnswerLedger:
    """Append-only answer versions for one assessment."""

    def __init__(self) -> None:
        self._versions: dict[str, list[Answer]] = {}

    def append(self, answer: Answer) -> None:
        self._versions.setdefault(answer.question_id, []).append(answer)

    def next_version(self, question_id: str) -> int:
        return len(self._versions.get(question_id, [])) + 1

    def latest(self, question_id: str) -> Answer | None:
        versions = self._versions.get(question_id)
        return versions[-1] if versions else None

    def latest_all(self) -> dict[str, Answer]:
        return {qid: versions[-1] for qid, versions in self._versions.items() if versions}

    def history(self, question_id: str) -> list[Answer]:
        return list(self._versions.get(question_id, []))

    def __len__(self) -> int:
        return sum(len(v) for v in self._versions.values())


def parse_evidence_tier(value: Any) -> EvidenceTier:
    """Accept an ``EvidenceTier``, its name, or a bare tier number."""
    if isinstance(value, EvidenceTier):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        value = f"TIER_{value}"
    if isinstance(value, str):
        candidate = value.strip().upper()
        if candidate.isdigit():
            candidate = f"TIER_{candidate}"
        try:
            return EvidenceTier(candidate)
        except ValueError:
            pass
    raise ValidationError(f"Unknown evidence tier: {value!r}", evidence_tier=str(value))


def best_tier(tiers: list[EvidenceTier | str]) -> EvidenceTier:
    """Highest-quality tier in ``tiers``; TIER_0 when empty."""
    parsed = [parse_evidence_tier(t) for t in tiers]
    for tier in (EvidenceTier.TIER_2, EvidenceTier.TIER_1):
        if tier in parsed:
            return tier
    return EvidenceTier.TIER_0


def _unit_interval(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number", field=name, value=str(value))
    if not isinstance(value, (int, float)):
        try:
            value = float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{name} must be a number", field=name, value=str(value)) from None
    value = float(value)
    if math.isnan(value) or not 0.0 <= value <= 1.0:
        raise ValidationError(f"{name} must be within [0, 1]", field=name, value=value)
    return value


def validate_response(question: Question, response_text: str) -> None:
    """Check a non-empty response against the question type."""
    text = response_text.strip()
    qtype = question.type

    if qtype in (QuestionType.TEXT, QuestionType.FILE):
        return
    if qtype == QuestionType.NUMBER:
        try:
            float(text)
        except ValueError:
            raise ValidationError("Response must be a number", question_id=question.id) from None
    elif qtype == QuestionType.BOOLEAN:
        if text.lower() not in BOOLEAN_VALUES:
            raise ValidationError("Response must be yes/no or true/false", question_id=question.id)
    elif qtype == QuestionType.RATING:
        try:
            rating = int(text)
        except ValueError:
            raise ValidationError("Rating must be an integer", question_id=question.id) from None
        if not RATING_RANGE[0] <= rating <= RATING_RANGE[1]:
            raise ValidationError(
                f"Rating must be between {RATING_RANGE[0]} and {RATING_RANGE[1]}",
                question_id=question.id,
            )
    elif qtype == QuestionType.DATE:
        try:
            date.fromisoformat(text)
        except ValueError:
            raise ValidationError("Response must be an ISO date", question_id=question.id) from None
    elif qtype == QuestionType.SELECT:
        if question.options and text not in question.options:
            raise ValidationError(
                f"'{text}' is not one of the question options",
                question_id=question.id,
                options=list(question.options),
            )
    elif qtype == QuestionType.MULTISELECT:
        chosen = [c.strip() for c in text.split(",") if c.strip()]
        unknown = [c for c in chosen if question.options and c not in question.options]
        if unknown:
            raise ValidationError(
                "Selections not in question options",
                question_id=question.id,
                unknown=unknown,
            )


def refresh_progress(assessment: Assessment, template: Template, ledger: AnswerLedger) -> None:
    """Recount answered/total questions on the assessment."""
    latest = ledger.latest_all()
    questions = template.questions
    assessment.total_questions = len(questions)
    assessment.answered_questions = sum(1 for q in questions if q.id in latest)


def ingest(
    assessment: Assessment,
    template: Template,
    ledger: AnswerLedger,
    question_id: str,
    response_text: Any,
    evidence_tier: Any,
    ai_score: Any,
    confidence: Any,
    now: datetime | None = None,
) -> Answer:
    """Validate one evaluation result and append it as the question's newest answer.

    Rejects out-of-range ``ai_score``/``confidence``, unknown tiers, empty
    responses to required questions and responses that do not fit the
    question type. On success the assessment's progress counters and
    answer-set version move forward and any earlier evaluation failure for
    the question is cleared.
    """
    located = template.find_question(question_id)
    if located is None:
        raise NotFoundError(
            f"Question '{question_id}' not in template '{template.id}'",
            question_id=question_id,
        )
    _, question = located

    text = "" if response_text is None else str(response_text)
    if question.required and not text.strip():
        raise ValidationError("Required question has an empty response", question_id=question_id)
    if text.strip():
        validate_response(question, text)

    tier = parse_evidence_tier(evidence_tier)
    score = _unit_interval("ai_score", ai_score)
    conf = _unit_interval("confidence", confidence)

    version = ledger.next_version(question_id)
    answer = Answer(
        id=str(uuid.uuid4()),
        assessment_id=assessment.id,
        question_id=question_id,
        version=version,
        response_text=text,
        evidence_tier=tier,
        ai_score=score,
        confidence=conf,
        created_at=now or datetime.now(timezone.utc),
    )
    ledger.append(answer)

    assessment.in_flight.discard(question_id)
    assessment.unevaluated.pop(question_id, None)
    assessment.answer_set_version += 1
    assessment.scored = False
    if assessment.status == AssessmentStatus.DRAFT:
        assessment.status = AssessmentStatus.IN_PROGRESS
    refresh_progress(assessment, template, ledger)

    logger.info(
        "answer_superseded" if version > 1 else "answer_ingested",
        assessment_id=assessment.id,
        question_id=question_id,
        version=version,
        evidence_tier=tier.value,
        answered=assessment.answered_questions,
        total=assessment.total_questions,
    )
    return answer


def mark_unevaluated(assessment: Assessment, question_id: str, reason: str) -> None:
    """Record that evaluation failed; prior answers for the question are untouched."""
    assessment.in_flight.discard(question_id)
    assessment.unevaluated[question_id] = reason
    assessment.scored = False
    logger.warning("evaluation_failed", assessment_id=assessment.id, question_id=question_id, reason=reason)


def mark_in_flight(assessment: Assessment, question_id: str) -> None:
    assessment.in_flight.add(question_id)
    assessment.scored = False
    if assessment.status == AssessmentStatus.DRAFT:
        assessment.status = AssessmentStatus.IN_PROGRESS


def cancel_in_flight(assessment: Assessment, question_id: str) -> None:
    """Drop an in-flight evaluation; the question simply stays unanswered."""
    assessment.in_flight.discard(question_id)
    logger.info("evaluation_cancelled", assessment_id=assessment.id, question_id=question_id)
