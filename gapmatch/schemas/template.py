"""Schemas for template registration and weight editing endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from gapmatch.models.enums import ComplianceCategory, QuestionType, TemplateCategory
from gapmatch.models.template import Question, Section, Template


class QuestionCreate(BaseModel):
    """A question as authored; ``weight`` may be a raw importance when normalising."""

    id: str
    text: str = ""
    type: QuestionType = QuestionType.TEXT
    required: bool = False
    weight: float = Field(..., ge=0.0)
    options: list[str] = Field(default_factory=list)
    foundational: bool = False
    category: ComplianceCategory | None = None
    keywords: list[str] = Field(default_factory=list)


class SectionCreate(BaseModel):
    id: str
    title: str = ""
    weight: float = Field(..., ge=0.0)
    category: ComplianceCategory
    questions: list[QuestionCreate] = Field(default_factory=list)


class TemplateCreate(BaseModel):
    """Request to register a questionnaire template."""

    id: str
    name: str = ""
    category: TemplateCategory
    version: str = "1.0"
    sections: list[SectionCreate] = Field(default_factory=list)
    normalize: bool = Field(
        default=False,
        description="Rescale section and question weights proportionally so each sibling set sums to 1.0",
    )


class WeightUpdate(BaseModel):
    """Staged weight edit; range checks happen in the weight normalizer."""

    weight: float


class PendingWeightsResponse(BaseModel):
    template_id: str
    dirty: bool
    dirty_parents: list[str]
    proposed: dict[str, float]
    template: Template


class WeightCommitResponse(BaseModel):
    template: Template
    message: str


class StagedSectionsResponse(BaseModel):
    template_id: str
    sections: list[Section]


class StagedQuestionsResponse(BaseModel):
    template_id: str
    section_id: str
    questions: list[Question]
