"""Strategy matrix: gaps and their top vendor matches bucketed by remediation timeline."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from gapmatch.models.enums import TimelinePhase
from gapmatch.models.gap import Gap
from gapmatch.models.vendor import VendorMatch


class StrategyEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    gap: Gap
    top_matches: tuple[VendorMatch, ...] = ()


class EffortDistribution(BaseModel):
    model_config = ConfigDict(frozen=True)

    SMALL: int = 0
    MEDIUM: int = 0
    LARGE: int = 0


class TimelineBucket(BaseModel):
    model_config = ConfigDict(frozen=True)

    phase: TimelinePhase
    timeline: str
    entries: tuple[StrategyEntry, ...] = ()
    gap_count: int = 0
    effort_distribution: EffortDistribution = EffortDistribution()
    estimated_cost_range: str = "€0"


class StrategyMatrix(BaseModel):
    model_config = ConfigDict(frozen=True)

    assessment_id: str
    immediate: TimelineBucket
    short_term: TimelineBucket
    long_term: TimelineBucket

    @property
    def buckets(self) -> tuple[TimelineBucket, TimelineBucket, TimelineBucket]:
        return (self.immediate, self.short_term, self.long_term)
