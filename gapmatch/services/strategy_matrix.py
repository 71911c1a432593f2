"""Strategy Matrix Builder: buckets gaps and their top matches into remediation phases."""

from __future__ import annotations

from collections.abc import Mapping, Sequence

import structlog

from gapmatch.models.enums import CostRange, EffortRange, Severity, TimelinePhase
from gapmatch.models.gap import Gap
from gapmatch.models.strategy import EffortDistribution, StrategyEntry, StrategyMatrix, TimelineBucket
from gapmatch.models.vendor import VendorMatch
from gapmatch.services.gap_extractor import sort_gaps

logger = structlog.get_logger()

PHASE_BY_SEVERITY = {
    Severity.CRITICAL: TimelinePhase.IMMEDIATE,
    Severity.HIGH: TimelinePhase.SHORT_TERM,
    Severity.MEDIUM: TimelinePhase.LONG_TERM,
    Severity.LOW: TimelinePhase.LONG_TERM,
}

COST_RANGE_MIDPOINTS = {
    CostRange.UNDER_10K: 5_000,
    CostRange.RANGE_10K_50K: 30_000,
    CostRange.RANGE_50K_100K: 75_000,
    CostRange.RANGE_100K_250K: 175_000,
    CostRange.OVER_250K: 350_000,
}


def phase_for(severity: Severity) -> TimelinePhase:
    return PHASE_BY_SEVERITY[severity]


def estimate_cost_range(gaps: Sequence[Gap]) -> str:
    """Sum of cost-range midpoints as a ±30% euro range."""
    if not gaps:
        return "€0"
    total = sum(COST_RANGE_MIDPOINTS[g.estimated_cost] for g in gaps)
    if total < 10_000:
        return f"€{round(total / 1000)}K estimated"
    lower = round(total * 0.7 / 1000)
    upper = round(total * 1.3 / 1000)
    return f"€{lower}K-€{upper}K estimated"


def _bucket(
    phase: TimelinePhase,
    gaps: Sequence[Gap],
    matches_by_gap: Mapping[str, Sequence[VendorMatch]],
    top_n: int,
) -> TimelineBucket:
    ordered = sort_gaps(gaps)
    entries = tuple(
        StrategyEntry(gap=g, top_matches=tuple(matches_by_gap.get(g.id, ())[:top_n])) for g in ordered
    )
    effort = EffortDistribution(
        SMALL=sum(1 for g in ordered if g.estimated_effort == EffortRange.SMALL),
        MEDIUM=sum(1 for g in ordered if g.estimated_effort == EffortRange.MEDIUM),
        LARGE=sum(1 for g in ordered if g.estimated_effort == EffortRange.LARGE),
    )
    return TimelineBucket(
        phase=phase,
        timeline=phase.window,
        entries=entries,
        gap_count=len(ordered),
        effort_distribution=effort,
        estimated_cost_range=estimate_cost_range(ordered),
    )


def build_matrix(
    assessment_id: str,
    gaps: Sequence[Gap],
    matches_by_gap: Mapping[str, Sequence[VendorMatch]],
    top_n: int = 3,
) -> StrategyMatrix:
    """Partition ``gaps`` by severity into immediate, short-term and long-term buckets.

    Matches are taken as already ranked; each gap keeps its first ``top_n``.
    Gaps with no matches are kept with an empty match list.
    """
    by_phase: dict[TimelinePhase, list[Gap]] = {phase: [] for phase in TimelinePhase}
    for gap in gaps:
        by_phase[phase_for(gap.severity)].append(gap)

    matrix = StrategyMatrix(
        assessment_id=assessment_id,
        immediate=_bucket(TimelinePhase.IMMEDIATE, by_phase[TimelinePhase.IMMEDIATE], matches_by_gap, top_n),
        short_term=_bucket(TimelinePhase.SHORT_TERM, by_phase[TimelinePhase.SHORT_TERM], matches_by_gap, top_n),
        long_term=_bucket(TimelinePhase.LONG_TERM, by_phase[TimelinePhase.LONG_TERM], matches_by_gap, top_n),
    )
    logger.info(
        "strategy_matrix_built",
        assessment_id=assessment_id,
        immediate=matrix.immediate.gap_count,
        short_term=matrix.short_term.gap_count,
        long_term=matrix.long_term.gap_count,
    )
    return matrix
