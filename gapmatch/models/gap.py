"""Gap model: a scored deficiency surfaced for remediation."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from gapmatch.models.enums import (
    ComplianceCategory,
    CostRange,
    EffortRange,
    NodeKind,
    Priority,
    Severity,
)


class Gap(BaseModel):
    """A section or question whose normalised score fell below a severity threshold."""

    model_config = ConfigDict(frozen=True)

    id: str
    assessment_id: str
    node_path: str
    node_kind: NodeKind
    category: ComplianceCategory
    title: str
    description: str
    keywords: tuple[str, ...] = ()
    severity: Severity
    score: float = Field(..., ge=0.0, le=1.0)
    deficit: float = Field(..., ge=0.0, le=1.0)
    priority: Priority
    priority_score: int = Field(..., ge=1, le=10)
    estimated_effort: EffortRange
    estimated_cost: CostRange

    def sort_key(self) -> tuple[int, float, str]:
        """Severity first (CRITICAL leads), then larger deficit, then path for stability."""
        return (self.severity.rank, -self.deficit, self.node_path)
