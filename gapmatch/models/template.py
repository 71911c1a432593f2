"""Questionnaire templates: the weighted Template -> Section -> Question hierarchy."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from gapmatch.models.enums import ComplianceCategory, QuestionType, TemplateCategory


class Question(BaseModel):
    """A single weighted question within a section."""

    model_config = ConfigDict(frozen=True)

    id: str
    text: str = ""
    type: QuestionType = QuestionType.TEXT
    required: bool = False
    weight: float = Field(..., gt=0.0, le=1.0)
    options: tuple[str, ...] = ()
    foundational: bool = False
    category: ComplianceCategory | None = None
    keywords: tuple[str, ...] = ()


class Section(BaseModel):
    """An ordered group of questions sharing one weight in the template."""

    model_config = ConfigDict(frozen=True)

    id: str
    title: str = ""
    weight: float = Field(..., gt=0.0, le=1.0)
    category: ComplianceCategory
    questions: tuple[Question, ...] = ()

    def question(self, question_id: str) -> Question | None:
        for q in self.questions:
            if q.id == question_id:
                return q
        return None


class Template(BaseModel):
    """An administrator-authored questionnaire. Section weights sum to 1.0."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    category: TemplateCategory
    version: str = "1.0"
    sections: tuple[Section, ...] = ()

    def section(self, section_id: str) -> Section | None:
        for s in self.sections:
            if s.id == section_id:
                return s
        return None

    def find_question(self, question_id: str) -> tuple[Section, Question] | None:
        """Locate a question and its owning section."""
        for s in self.sections:
            q = s.question(question_id)
            if q is not None:
                return s, q
        return None

    @property
    def questions(self) -> list[Question]:
        return [q for s in self.sections for q in s.questions]
