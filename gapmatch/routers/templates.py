"""Template registration and staged weight editing endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request

from gapmatch.models.template import Template
from gapmatch.schemas.template import (
    PendingWeightsResponse,
    StagedQuestionsResponse,
    StagedSectionsResponse,
    TemplateCreate,
    WeightCommitResponse,
    WeightUpdate,
)
from gapmatch.services import pipeline
from gapmatch.store import data_store

router = APIRouter(prefix="/api/templates", tags=["templates"])


@router.post("", response_model=Template, status_code=201)
async def register_template(body: TemplateCreate, request: Request) -> Template:
    """Register a template; sibling weights must sum to 1.0 unless ``normalize`` is set."""
    template = pipeline.build_template(body.model_dump(exclude={"normalize"}), normalize=body.normalize)
    return pipeline.register_template(template, request.app.state.settings, data_store)


@router.get("/{template_id}", response_model=Template)
async def get_template(template_id: str) -> Template:
    """Get the committed template; staged edits are not included."""
    return data_store.get_template(template_id)


@router.put("/{template_id}/sections/{section_id}/weight", response_model=StagedSectionsResponse)
async def update_section_weight(
    template_id: str,
    section_id: str,
    body: WeightUpdate,
    request: Request,
) -> StagedSectionsResponse:
    """Stage a section weight; the other sections share the remainder evenly."""
    sections = pipeline.update_section_weight(
        template_id, section_id, body.weight, request.app.state.settings, data_store
    )
    return StagedSectionsResponse(template_id=template_id, sections=sections)


@router.put(
    "/{template_id}/sections/{section_id}/questions/{question_id}/weight",
    response_model=StagedQuestionsResponse,
)
async def update_question_weight(
    template_id: str,
    section_id: str,
    question_id: str,
    body: WeightUpdate,
    request: Request,
) -> StagedQuestionsResponse:
    questions = pipeline.update_question_weight(
        template_id, section_id, question_id, body.weight, request.app.state.settings, data_store
    )
    return StagedQuestionsResponse(template_id=template_id, section_id=section_id, questions=questions)


@router.get("/{template_id}/weights/pending", response_model=PendingWeightsResponse)
async def pending_weights(template_id: str) -> PendingWeightsResponse:
    return PendingWeightsResponse(**pipeline.pending_weights(template_id, data_store))


@router.post("/{template_id}/weights/commit", response_model=WeightCommitResponse)
async def commit_weights(template_id: str, request: Request) -> WeightCommitResponse:
    """Apply all staged edits atomically; a drifting sibling set rejects the whole batch."""
    template = pipeline.commit_weights(template_id, request.app.state.settings, data_store)
    return WeightCommitResponse(template=template, message="Weights committed")


@router.post("/{template_id}/weights/discard")
async def discard_weights(template_id: str) -> dict[str, str]:
    pipeline.discard_weights(template_id, data_store)
    return {"template_id": template_id, "message": "Pending weight changes discarded"}
