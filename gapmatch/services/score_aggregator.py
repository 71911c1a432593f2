"""Score Aggregator: weighted questions rolled up into an auditable score tree."""

from __future__ import annotations

import statistics
from collections.abc import Mapping, Sequence
from typing import Any

from gapmatch.models.assessment import Answer
from gapmatch.models.enums import EvidenceTier, NodeKind, RiskBand
from gapmatch.models.scoring import ScoreNode
from gapmatch.models.template import Question, Section, Template

# Decimal places kept on every node so repeated runs serialise identically
SCORE_PRECISION = 6

RISK_BANDS = [
    (80.0, RiskBand.LOW),
    (60.0, RiskBand.MEDIUM),
    (40.0, RiskBand.HIGH),
]


def _r(value: float) -> float:
    return round(value, SCORE_PRECISION)


def weighted_sum(values: Sequence[float], weights: Sequence[float]) -> float:
    """Σ(value × weight). Empty input yields 0."""
    if not values or not weights:
        return 0.0
    if len(values) != len(weights):
        raise ValueError(f"Values length ({len(values)}) must match weights length ({len(weights)})")
    return sum(v * w for v, w in zip(values, weights))


def weighted_average(values: Sequence[float], weights: Sequence[float]) -> float:
    total_weight = sum(weights) if weights else 0.0
    if total_weight == 0:
        return 0.0
    return weighted_sum(values, weights) / total_weight


def scale_score(score: float, from_min: float, from_max: float, to_min: float, to_max: float) -> float:
    """Clamp ``score`` to the source range and map it linearly onto the target range."""
    clamped = max(from_min, min(from_max, score))
    from_range = from_max - from_min
    if from_range == 0:
        return to_min
    return to_min + (clamped - from_min) / from_range * (to_max - to_min)


def score_stats(scores: Sequence[float]) -> dict[str, Any]:
    """Min, max, mean and median of a set of scores."""
    if not scores:
        return {"min": 0.0, "max": 0.0, "mean": 0.0, "median": 0.0, "count": 0}
    return {
        "min": round(min(scores), 4),
        "max": round(max(scores), 4),
        "mean": round(statistics.mean(scores), 4),
        "median": round(statistics.median(scores), 4),
        "count": len(scores),
    }


def risk_band(overall_score: float) -> RiskBand:
    """Map a 0-100 overall score to a risk band."""
    for floor, band in RISK_BANDS:
        if overall_score >= floor:
            return band
    return RiskBand.CRITICAL


def question_raw_score(answer: Answer | None, apply_tier_multiplier: bool = False) -> float:
    """aiScore × confidence, optionally discounted by the evidence tier. 0 when unanswered."""
    if answer is None:
        return 0.0
    raw = answer.ai_score * answer.confidence
    if apply_tier_multiplier:
        raw *= answer.evidence_tier.multiplier
    return raw


def _question_node(section: Section, question: Question, answer: Answer | None, apply_tier_multiplier: bool) -> ScoreNode:
    raw = question_raw_score(answer, apply_tier_multiplier)
    return ScoreNode(
        node_id=question.id,
        path=f"{section.id}/{question.id}",
        kind=NodeKind.QUESTION,
        title=question.text,
        weight=question.weight,
        raw_score=_r(raw),
        effective_score=_r(raw * question.weight),
        score=_r(raw),
        answered=answer is not None,
        required=question.required,
        foundational=question.foundational,
        category=question.category or section.category,
        keywords=question.keywords,
        evidence_tier=answer.evidence_tier if answer is not None else None,
    )


def _section_node(
    section: Section,
    answers: Mapping[str, Answer],
    completed: bool,
    apply_tier_multiplier: bool,
) -> ScoreNode:
    children = tuple(
        _question_node(section, q, answers.get(q.id), apply_tier_multiplier) for q in section.questions
    )
    total_effective = sum(c.effective_score for c in children)
    if completed:
        # Unanswered questions still consume their weight share
        denominator = sum(c.weight for c in children)
    else:
        denominator = sum(c.weight for c in children if c.answered)

    score = total_effective / denominator if denominator > 0 else 0.0
    score = max(0.0, min(1.0, score))

    return ScoreNode(
        node_id=section.id,
        path=section.id,
        kind=NodeKind.SECTION,
        title=section.title,
        weight=section.weight,
        raw_score=_r(score),
        effective_score=_r(score * section.weight),
        score=_r(score),
        answered=any(c.answered for c in children),
        foundational=any(c.foundational for c in children),
        category=section.category,
        keywords=tuple(dict.fromkeys(k for q in section.questions for k in q.keywords)),
        children=children,
    )


def aggregate(
    template: Template,
    answers: Mapping[str, Answer],
    completed: bool = False,
    apply_tier_multiplier: bool = False,
) -> ScoreNode:
    """Build a fresh score tree for ``template`` from the latest answers.

    Question effective score is ``ai_score × confidence × weight``. A section
    score divides the summed effective scores by the weight of the answered
    questions while the assessment is in progress, and by the full question
    weight once it is complete. The root's score is the section-weighted sum
    of section scores on a 0-1 scale. Inputs are never mutated.
    """
    sections = tuple(_section_node(s, answers, completed, apply_tier_multiplier) for s in template.sections)
    overall = weighted_sum([s.score for s in sections], [s.weight for s in sections])
    overall = max(0.0, min(1.0, overall))

    return ScoreNode(
        node_id=template.id,
        path="",
        kind=NodeKind.TEMPLATE,
        title=template.name,
        weight=1.0,
        raw_score=_r(overall),
        effective_score=_r(overall),
        score=_r(overall),
        answered=any(s.answered for s in sections),
        children=sections,
    )


def overall_display_score(root: ScoreNode) -> float:
    """Root score scaled to the 0-100 display range."""
    return round(scale_score(root.score, 0.0, 1.0, 0.0, 100.0), 2)


def evidence_distribution(root: ScoreNode) -> dict[str, int]:
    """Count answered questions per evidence tier."""
    counts = {tier.value: 0 for tier in EvidenceTier}
    for node in root.walk():
        if node.kind == NodeKind.QUESTION and node.evidence_tier is not None:
            counts[node.evidence_tier.value] += 1
    return counts


def evidence_tier_legend() -> dict[str, dict[str, Any]]:
    """Display label and score multiplier of every evidence tier."""
    return {tier.value: {"label": tier.label, "multiplier": tier.multiplier} for tier in EvidenceTier}
