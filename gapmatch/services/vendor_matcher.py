"""Vendor Matcher: explainable scoring of marketplace solutions against gaps.

matchScore = 0.6 × categoryOverlap + 0.3 × featureKeywordOverlap + 0.1 × priorityBoost

Every contributing factor is reported as a human-readable reason so each
number can be traced back to what produced it.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import NamedTuple

import structlog

from gapmatch.errors import ValidationError
from gapmatch.models.enums import ComplianceCategory, Severity, VendorStatus
from gapmatch.models.gap import Gap
from gapmatch.models.vendor import Solution, Vendor, VendorMatch

logger = structlog.get_logger()

C = ComplianceCategory

# Adjacent risk areas whose tooling partially addresses each other
RELATED_CATEGORIES: dict[ComplianceCategory, frozenset[ComplianceCategory]] = {
    C.KYC_AML: frozenset({C.TRANSACTION_MONITORING, C.SANCTIONS_SCREENING}),
    C.TRANSACTION_MONITORING: frozenset({C.KYC_AML, C.TRADE_SURVEILLANCE, C.SANCTIONS_SCREENING}),
    C.SANCTIONS_SCREENING: frozenset({C.KYC_AML, C.TRANSACTION_MONITORING}),
    C.TRADE_SURVEILLANCE: frozenset({C.TRANSACTION_MONITORING, C.REGULATORY_REPORTING}),
    C.RISK_ASSESSMENT: frozenset({C.REGULATORY_REPORTING, C.DATA_GOVERNANCE}),
    C.COMPLIANCE_TRAINING: frozenset(),
    C.REGULATORY_REPORTING: frozenset({C.RISK_ASSESSMENT, C.TRADE_SURVEILLANCE, C.DATA_GOVERNANCE}),
    C.DATA_GOVERNANCE: frozenset({C.REGULATORY_REPORTING, C.RISK_ASSESSMENT}),
}

BOOSTED_SEVERITIES = {Severity.CRITICAL, Severity.HIGH}

MATCH_SUMMARIES = [
    (0.85, "Excellent match - Highly recommended"),
    (0.7, "Strong match - Recommended"),
    (0.5, "Good match - Worth considering"),
]


class Candidate(NamedTuple):
    vendor: Vendor
    solution: Solution


@dataclass(frozen=True)
class MatchConfig:
    """Weights and bonuses of the matching formula."""

    category_weight: float = 0.6
    keyword_weight: float = 0.3
    boost_weight: float = 0.1
    related_category_score: float = 0.5
    featured_bonus: float = 0.5
    verified_bonus: float = 0.5
    min_reason_contribution: float = 0.01
    related_categories: Mapping[ComplianceCategory, frozenset[ComplianceCategory]] = field(
        default_factory=lambda: RELATED_CATEGORIES
    )


def category_overlap(
    gap_category: ComplianceCategory,
    solution_category: ComplianceCategory,
    related: Mapping[ComplianceCategory, frozenset[ComplianceCategory]] = RELATED_CATEGORIES,
    related_score: float = 0.5,
) -> float:
    """1.0 for the same category, ``related_score`` for an adjacent one, else 0."""
    if gap_category == solution_category:
        return 1.0
    if solution_category in related.get(gap_category, frozenset()):
        return related_score
    return 0.0


def feature_keyword_overlap(keywords: Sequence[str], features: Sequence[str]) -> tuple[float, tuple[str, ...]]:
    """Fraction of gap keywords found in any solution feature, plus the keywords found."""
    if not keywords:
        return 0.0, ()
    haystack = [f.lower() for f in features]
    matched = tuple(k for k in keywords if any(k.lower() in f for f in haystack))
    return len(matched) / len(keywords), matched


def priority_boost(
    severity: Severity,
    featured: bool,
    verified: bool,
    featured_bonus: float = 0.5,
    verified_bonus: float = 0.5,
) -> float:
    """Bonus for featured/verified vendors on CRITICAL or HIGH gaps, capped at 1.0."""
    if severity not in BOOSTED_SEVERITIES:
        return 0.0
    boost = (featured_bonus if featured else 0.0) + (verified_bonus if verified else 0.0)
    return min(1.0, boost)


def match_summary(match_score: float) -> str:
    for floor, label in MATCH_SUMMARIES:
        if match_score >= floor:
            return label
    return "Partial match - May require evaluation"


def _reasons(
    gap: Gap,
    candidate: Candidate,
    config: MatchConfig,
    category_score: float,
    keyword_score: float,
    matched: tuple[str, ...],
    boost: float,
) -> list[str]:
    vendor, solution = candidate
    contributions = [
        (config.category_weight * category_score, "category"),
        (config.keyword_weight * keyword_score, "keyword"),
        (config.boost_weight * boost, "boost"),
    ]
    reasons = []
    listed = {name for amount, name in contributions if amount >= config.min_reason_contribution}
    if not listed and any(amount > 0 for amount, _ in contributions):
        listed = {max(contributions)[1]}

    if "category" in listed:
        if category_score == 1.0:
            reasons.append(f"Exact category match: {solution.category.value}")
        else:
            reasons.append(
                f"Related category: {solution.category.value} supports {gap.category.value}"
            )
    if "keyword" in listed:
        reasons.append(
            f"Feature coverage: {len(matched)} of {len(gap.keywords)} gap keywords ({', '.join(matched)})"
        )
    if "boost" in listed:
        flags = [label for label, on in (("Featured", vendor.featured), ("verified", vendor.verified)) if on]
        who = " and ".join(flags).capitalize()
        reasons.append(f"{who} vendor prioritised for a {gap.severity.value} gap")
    return reasons


def score_candidate(gap: Gap, candidate: Candidate, config: MatchConfig | None = None) -> VendorMatch:
    """Score one solution against one gap."""
    config = config or MatchConfig()
    vendor, solution = candidate

    category_score = category_overlap(
        gap.category, solution.category, config.related_categories, config.related_category_score
    )
    keyword_score, matched = feature_keyword_overlap(gap.keywords, solution.features)
    boost = priority_boost(
        gap.severity, vendor.featured, vendor.verified, config.featured_bonus, config.verified_bonus
    )

    total = (
        config.category_weight * category_score
        + config.keyword_weight * keyword_score
        + config.boost_weight * boost
    )
    match_score = round(max(0.0, min(1.0, total)), 4)

    return VendorMatch(
        gap_id=gap.id,
        vendor_id=vendor.id,
        solution_id=solution.id,
        vendor_name=vendor.company_name,
        solution_name=solution.name,
        match_score=match_score,
        category_score=round(category_score, 4),
        keyword_score=round(keyword_score, 4),
        boost_score=round(boost, 4),
        matched_keywords=matched,
        match_reasons=tuple(_reasons(gap, candidate, config, category_score, keyword_score, matched, boost)),
        summary=match_summary(match_score),
        rating=vendor.rating,
        review_count=vendor.review_count,
    )


def _rank_key(match: VendorMatch) -> tuple:
    return (-match.match_score, -(match.rating or 0.0), -match.review_count, match.vendor_id, match.solution_id)


def match_vendors(
    gap: Gap,
    candidates: Iterable[Candidate],
    threshold: float = 0.0,
    limit: int = 50,
    config: MatchConfig | None = None,
) -> list[VendorMatch]:
    """Rank candidate solutions for ``gap``.

    Matches scoring 0 or below ``threshold`` are dropped. The rest are sorted
    by descending score, then vendor rating, then review count, and cut to
    ``limit``. An empty list is a valid result.
    """
    if not 0.0 <= threshold <= 1.0:
        raise ValidationError("threshold must be within [0, 1]", threshold=threshold)
    if limit < 1:
        raise ValidationError("limit must be at least 1", limit=limit)

    config = config or MatchConfig()
    matches = [score_candidate(gap, c, config) for c in candidates]
    kept = [m for m in matches if m.match_score > 0 and m.match_score >= threshold]
    kept.sort(key=_rank_key)
    return kept[:limit]


def eligible_candidates(vendors: Mapping[str, Vendor], solutions: Iterable[Solution]) -> list[Candidate]:
    """Active solutions of approved vendors, in catalog order."""
    candidates = []
    for solution in solutions:
        vendor = vendors.get(solution.vendor_id)
        if vendor is None or vendor.status != VendorStatus.APPROVED or not solution.is_active:
            continue
        candidates.append(Candidate(vendor, solution))
    return candidates


def match_all(
    gaps: Sequence[Gap],
    candidates: Sequence[Candidate],
    threshold: float = 0.0,
    limit: int = 50,
    config: MatchConfig | None = None,
) -> dict[str, list[VendorMatch]]:
    """Match every gap; gaps without candidates map to an empty list."""
    matches_by_gap = {g.id: match_vendors(g, candidates, threshold, limit, config) for g in gaps}
    logger.info(
        "vendor_matching_completed",
        gap_count=len(gaps),
        candidate_count=len(candidates),
        matched_gaps=sum(1 for m in matches_by_gap.values() if m),
        threshold=threshold,
    )
    return matches_by_gap
