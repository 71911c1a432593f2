"""Domain models for gapmatch."""

from gapmatch.models.enums import (
    AssessmentStatus,
    ComplianceCategory,
    CostRange,
    EffortRange,
    EvidenceTier,
    NodeKind,
    PricingModel,
    Priority,
    QuestionType,
    RiskBand,
    ScoringState,
    Severity,
    TemplateCategory,
    TimelinePhase,
    VendorStatus,
)
from gapmatch.models.template import Question, Section, Template
from gapmatch.models.assessment import Answer, Assessment, AssessmentSnapshot
from gapmatch.models.scoring import ScoreNode
from gapmatch.models.gap import Gap
from gapmatch.models.vendor import Solution, Vendor, VendorMatch
from gapmatch.models.strategy import EffortDistribution, StrategyEntry, StrategyMatrix, TimelineBucket

__all__ = [
    "AssessmentStatus",
    "ComplianceCategory",
    "CostRange",
    "EffortRange",
    "EvidenceTier",
    "NodeKind",
    "PricingModel",
    "Priority",
    "QuestionType",
    "RiskBand",
    "ScoringState",
    "Severity",
    "TemplateCategory",
    "TimelinePhase",
    "VendorStatus",
    "Question",
    "Section",
    "Template",
    "Answer",
    "Assessment",
    "AssessmentSnapshot",
    "ScoreNode",
    "Gap",
    "Solution",
    "Vendor",
    "VendorMatch",
    "EffortDistribution",
    "StrategyEntry",
    "StrategyMatrix",
    "TimelineBucket",
]
