"""Gap Extractor: sections and questions scoring below threshold become prioritised gaps."""

from __future__ import annotations

import re
import uuid
from collections.abc import Iterable
from dataclasses import dataclass

from gapmatch.errors import ValidationError
from gapmatch.models.enums import (
    ComplianceCategory,
    CostRange,
    EffortRange,
    NodeKind,
    Priority,
    Severity,
)
from gapmatch.models.gap import Gap
from gapmatch.models.scoring import ScoreNode

GAP_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "https://gapmatch.dev/gaps")

MAX_DERIVED_KEYWORDS = 8

STOPWORDS = {
    "about", "across", "after", "also", "been", "before", "being", "does", "each",
    "from", "have", "into", "more", "other", "over", "such", "than", "that", "their",
    "them", "there", "these", "they", "this", "those", "what", "when", "where",
    "which", "while", "with", "within", "your", "yours", "will", "would", "should",
    "could", "must", "every", "there", "describe", "explain", "provide", "please",
}


@dataclass(frozen=True)
class GapThresholds:
    """Upper bounds (exclusive) of each severity band on the normalised 0-1 score.

    ``low`` is off by default; set it above ``medium`` to surface near-misses.
    """

    critical: float = 0.25
    high: float = 0.5
    medium: float = 0.75
    low: float | None = None

    def __post_init__(self) -> None:
        bands = [self.critical, self.high, self.medium] + ([self.low] if self.low is not None else [])
        if any(not 0.0 <= b <= 1.0 for b in bands) or bands != sorted(bands):
            raise ValidationError("Gap thresholds must be ascending within [0, 1]", thresholds=bands)

    def classify(self, score: float) -> Severity | None:
        if score < self.critical:
            return Severity.CRITICAL
        if score < self.high:
            return Severity.HIGH
        if score < self.medium:
            return Severity.MEDIUM
        if self.low is not None and score < self.low:
            return Severity.LOW
        return None


def gap_id(assessment_id: str, node_path: str) -> str:
    """Stable identifier for the gap at ``node_path`` of an assessment."""
    return str(uuid.uuid5(GAP_NAMESPACE, f"{assessment_id}:{node_path}"))


def extract_keywords(text: str, limit: int = MAX_DERIVED_KEYWORDS) -> tuple[str, ...]:
    """Distinctive lowercase words of ``text``, in order of first appearance."""
    words = re.findall(r"[a-z0-9]+", text.lower())
    keywords = [w for w in words if len(w) >= 4 and w not in STOPWORDS and not w.isdigit()]
    return tuple(dict.fromkeys(keywords))[:limit]


def calculate_priority_score(score: float, foundational: bool, section_weight: float) -> int:
    """Numeric 1-10 remediation priority.

    Lower scores rank higher, foundational questions add 2 and heavier
    sections add up to 5.
    """
    priority = (1.0 - score) * 10
    if foundational:
        priority += 2
    priority += section_weight * 5
    return max(1, min(10, round(priority)))


def score_to_priority(priority_score: int) -> Priority:
    if priority_score >= 9:
        return Priority.IMMEDIATE
    if priority_score >= 6:
        return Priority.SHORT_TERM
    if priority_score >= 3:
        return Priority.MEDIUM_TERM
    return Priority.LONG_TERM


def estimate_effort(section_weight: float, foundational: bool, score: float) -> EffortRange:
    if section_weight > 0.25 and foundational and score < 0.4:
        return EffortRange.LARGE
    if 0.15 <= section_weight <= 0.25 or foundational:
        return EffortRange.MEDIUM
    return EffortRange.SMALL


def estimate_cost(
    effort: EffortRange,
    severity: Severity,
    section_weight: float,
    foundational: bool,
) -> CostRange:
    if effort == EffortRange.LARGE and severity == Severity.CRITICAL and section_weight > 0.20:
        return CostRange.OVER_250K
    if effort == EffortRange.LARGE and severity == Severity.CRITICAL:
        return CostRange.RANGE_100K_250K
    if effort == EffortRange.LARGE or (effort == EffortRange.MEDIUM and foundational):
        return CostRange.RANGE_50K_100K
    if effort == EffortRange.MEDIUM or foundational:
        return CostRange.RANGE_10K_50K
    return CostRange.UNDER_10K


def _describe(node: ScoreNode, section: ScoreNode) -> tuple[str, str]:
    if node.kind == NodeKind.SECTION:
        title = node.title or node.node_id
        status = "answered" if node.answered else "no evidence"
        return title, f"Section '{title}' scored {node.score:.0%} ({status})"
    title = node.title or node.node_id
    if not node.answered:
        return title, f"No evaluated evidence for: {title}"
    return title, f"{title} scored {node.score:.0%} in section '{section.title or section.node_id}'"


def _build_gap(assessment_id: str, node: ScoreNode, section: ScoreNode, severity: Severity) -> Gap:
    title, description = _describe(node, section)
    keywords = tuple(k.lower() for k in node.keywords) or extract_keywords(title)
    priority_score = calculate_priority_score(node.score, node.foundational, section.weight)
    effort = estimate_effort(section.weight, node.foundational, node.score)
    return Gap(
        id=gap_id(assessment_id, node.path),
        assessment_id=assessment_id,
        node_path=node.path,
        node_kind=node.kind,
        category=node.category or section.category,
        title=title,
        description=description,
        keywords=keywords,
        severity=severity,
        score=node.score,
        deficit=round(1.0 - node.score, 6),
        priority=score_to_priority(priority_score),
        priority_score=priority_score,
        estimated_effort=effort,
        estimated_cost=estimate_cost(effort, severity, section.weight, node.foundational),
    )


def extract_gaps(root: ScoreNode, assessment_id: str, thresholds: GapThresholds | None = None) -> list[Gap]:
    """Walk a score tree and emit one gap per section or question below threshold.

    Gaps are keyed by ``(assessment_id, node path)`` so at most one gap exists
    per node, and are returned CRITICAL first, then by descending deficit.
    """
    thresholds = thresholds or GapThresholds()
    gaps: dict[str, Gap] = {}

    for section in root.children:
        for node in (section, *section.children):
            severity = thresholds.classify(node.score)
            if severity is None:
                continue
            gap = _build_gap(assessment_id, node, section, severity)
            gaps[gap.id] = gap

    return sort_gaps(gaps.values())


def sort_gaps(gaps: Iterable[Gap]) -> list[Gap]:
    return sorted(gaps, key=lambda g: g.sort_key())


def filter_gaps(
    gaps: Iterable[Gap],
    severity: Severity | None = None,
    category: ComplianceCategory | None = None,
    priority: Priority | None = None,
) -> list[Gap]:
    """Apply the optional severity/category/priority filters, keeping order."""
    return [
        g
        for g in gaps
        if (severity is None or g.severity == severity)
        and (category is None or g.category == category)
        and (priority is None or g.priority == priority)
    ]


def severity_counts(gaps: Iterable[Gap]) -> dict[str, int]:
    counts = {s.value: 0 for s in Severity}
    for g in gaps:
        counts[g.severity.value] += 1
    return counts
