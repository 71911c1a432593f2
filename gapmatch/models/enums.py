"""Closed enumerations shared across the engine."""

from __future__ import annotations

from enum import Enum


class QuestionType(str, Enum):
    TEXT = "TEXT"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    SELECT = "SELECT"
    MULTISELECT = "MULTISELECT"
    FILE = "FILE"
    DATE = "DATE"
    RATING = "RATING"


class EvidenceTier(str, Enum):
    """Quality class the evaluation service assigns to an answer's evidence."""

    TIER_0 = "TIER_0"  # self-declared
    TIER_1 = "TIER_1"  # policy documents
    TIER_2 = "TIER_2"  # system-generated

    @property
    def multiplier(self) -> float:
        return TIER_MULTIPLIERS[self]

    @property
    def label(self) -> str:
        return TIER_LABELS[self]


TIER_MULTIPLIERS = {
    EvidenceTier.TIER_0: 0.6,
    EvidenceTier.TIER_1: 0.8,
    EvidenceTier.TIER_2: 1.0,
}

TIER_LABELS = {
    EvidenceTier.TIER_0: "Self-Declared",
    EvidenceTier.TIER_1: "Policy Documents",
    EvidenceTier.TIER_2: "System-Generated",
}


class Severity(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        """Sort rank, CRITICAL first."""
        return SEVERITY_RANK[self]


SEVERITY_RANK = {
    Severity.CRITICAL: 0,
    Severity.HIGH: 1,
    Severity.MEDIUM: 2,
    Severity.LOW: 3,
}


class Priority(str, Enum):
    IMMEDIATE = "IMMEDIATE"
    SHORT_TERM = "SHORT_TERM"
    MEDIUM_TERM = "MEDIUM_TERM"
    LONG_TERM = "LONG_TERM"


class EffortRange(str, Enum):
    SMALL = "SMALL"
    MEDIUM = "MEDIUM"
    LARGE = "LARGE"


class CostRange(str, Enum):
    UNDER_10K = "UNDER_10K"
    RANGE_10K_50K = "RANGE_10K_50K"
    RANGE_50K_100K = "RANGE_50K_100K"
    RANGE_100K_250K = "RANGE_100K_250K"
    OVER_250K = "OVER_250K"


class RiskBand(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class NodeKind(str, Enum):
    TEMPLATE = "TEMPLATE"
    SECTION = "SECTION"
    QUESTION = "QUESTION"


class AssessmentStatus(str, Enum):
    DRAFT = "DRAFT"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class ScoringState(str, Enum):
    """Outcome of a scoring pass as reported to the UI."""

    PROCESSING = "processing"
    SCORED = "scored"
    EVALUATION_FAILED = "evaluation_failed"


class VendorStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    SUSPENDED = "SUSPENDED"


class PricingModel(str, Enum):
    SUBSCRIPTION = "SUBSCRIPTION"
    LICENSE = "LICENSE"
    USAGE = "USAGE"
    CUSTOM = "CUSTOM"


class TimelinePhase(str, Enum):
    IMMEDIATE = "immediate"
    SHORT_TERM = "short_term"
    LONG_TERM = "long_term"

    @property
    def window(self) -> str:
        return PHASE_WINDOWS[self]


PHASE_WINDOWS = {
    TimelinePhase.IMMEDIATE: "0-30 days",
    TimelinePhase.SHORT_TERM: "30-90 days",
    TimelinePhase.LONG_TERM: "90+ days",
}


class TemplateCategory(str, Enum):
    FINANCIAL_CRIME = "FINANCIAL_CRIME"
    TRADE_COMPLIANCE = "TRADE_COMPLIANCE"
    DATA_PRIVACY = "DATA_PRIVACY"
    CYBERSECURITY = "CYBERSECURITY"
    ESG = "ESG"


class ComplianceCategory(str, Enum):
    """Risk area shared by gaps and vendor solutions."""

    KYC_AML = "KYC_AML"
    TRANSACTION_MONITORING = "TRANSACTION_MONITORING"
    SANCTIONS_SCREENING = "SANCTIONS_SCREENING"
    TRADE_SURVEILLANCE = "TRADE_SURVEILLANCE"
    RISK_ASSESSMENT = "RISK_ASSESSMENT"
    COMPLIANCE_TRAINING = "COMPLIANCE_TRAINING"
    REGULATORY_REPORTING = "REGULATORY_REPORTING"
    DATA_GOVERNANCE = "DATA_GOVERNANCE"

    @classmethod
    def _missing_(cls, value: object) -> ComplianceCategory | None:
        # Accept "transaction-monitoring" and "kyc aml" spellings
        if isinstance(value, str):
            normalised = value.strip().upper().replace("-", "_").replace(" ", "_")
            for member in cls:
                if member.value == normalised:
                    return member
        return None
