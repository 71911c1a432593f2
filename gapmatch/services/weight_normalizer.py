"""Weight Normalizer: sibling weights that sum to 1.0 under live editing.

Sections within a template and questions within a section are sibling sets.
Editing one sibling redistributes the remainder evenly across the others;
edits are staged in a ``WeightEditSession`` and applied to a template as one
atomic commit, or discarded.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from gapmatch.errors import InvalidOperation, InvariantViolation, NotFoundError, ValidationError
from gapmatch.models.template import Template

WEIGHT_MIN = 0.01
WEIGHT_MAX = 0.99
WEIGHT_TOLERANCE = 0.01  # user-facing
WEIGHT_EPSILON = 1e-6  # internal float noise

# Parent key for the section siblings of a template
TEMPLATE_PARENT = "__template__"


def clamp_weight(weight: float, weight_min: float = WEIGHT_MIN, weight_max: float = WEIGHT_MAX) -> float:
    return max(weight_min, min(weight_max, weight))


def set_weight(
    siblings: Mapping[str, float],
    target_id: str,
    new_weight: float,
    weight_min: float = WEIGHT_MIN,
    weight_max: float = WEIGHT_MAX,
) -> dict[str, float]:
    """Set one sibling's weight and split the remainder evenly across the rest.

    Returns a new mapping in the input order; ``siblings`` is never mutated.
    The even split is ``(1.0 - new_weight) / (count - 1)``, then every weight
    is clamped to ``[weight_min, weight_max]``. Clamping can push the sum off
    1.0 by up to ``(count - 1) * weight_min``; callers compare against a
    tolerance, not for equality.

    Raises:
        ValidationError: ``new_weight`` is outside ``[weight_min, weight_max]``.
        NotFoundError: ``target_id`` is not one of the siblings.
        InvalidOperation: fewer than two siblings, so nothing can absorb the change.
    """
    if isinstance(new_weight, bool) or not isinstance(new_weight, (int, float)):
        raise ValidationError("Weight must be a number", weight=new_weight)
    if not (weight_min <= new_weight <= weight_max):
        raise ValidationError(
            f"Weight {new_weight} outside [{weight_min}, {weight_max}]",
            weight=new_weight,
            min=weight_min,
            max=weight_max,
        )
    if target_id not in siblings:
        raise NotFoundError(f"'{target_id}' is not in this sibling set", target_id=target_id)

    count = len(siblings)
    if count < 2:
        raise InvalidOperation(
            "Weight redistribution requires at least two siblings",
            target_id=target_id,
            sibling_count=count,
        )

    each_other = (1.0 - new_weight) / (count - 1)
    return {
        sibling_id: clamp_weight(new_weight if sibling_id == target_id else each_other, weight_min, weight_max)
        for sibling_id in siblings
    }


def sum_weights(weights: Sequence[float]) -> float:
    return sum(weights) if weights else 0.0


def validate_weights(weights: Sequence[float], tolerance: float = WEIGHT_TOLERANCE) -> bool:
    """True when ``weights`` is non-empty and sums to 1.0 within ``tolerance``."""
    if not weights:
        return False
    return abs(sum_weights(weights) - 1.0) <= tolerance + WEIGHT_EPSILON


def normalize_weights(weights: Sequence[float]) -> list[float]:
    """Rescale proportionally so the weights sum to 1.0.

    All-zero input is split equally. Used to load templates authored with
    raw importance values such as 1, 2, 3.
    """
    if not weights:
        return []
    total = sum_weights(weights)
    if total == 0:
        return [1.0 / len(weights)] * len(weights)
    return [w / total for w in weights]


def require_valid_weights(
    weights: Sequence[float],
    context: str = "weights",
    tolerance: float = WEIGHT_TOLERANCE,
    epsilon: float = WEIGHT_EPSILON,
) -> None:
    """Raise ``ValidationError`` unless ``weights`` sum to 1.0 within tolerance."""
    total = sum_weights(weights)
    if abs(total - 1.0) > tolerance + epsilon:
        raise ValidationError(
            f"{context} sum to {total:.4f}, must equal 1.0 (±{tolerance})",
            total=round(total, 6),
            tolerance=tolerance,
        )


def section_weights(template: Template) -> dict[str, float]:
    return {s.id: s.weight for s in template.sections}


def question_weights(template: Template, section_id: str) -> dict[str, float]:
    section = template.section(section_id)
    if section is None:
        raise NotFoundError(f"Section '{section_id}' not found", section_id=section_id)
    return {q.id: q.weight for q in section.questions}


def overlay_weights(template: Template, proposed: Mapping[str, float]) -> Template:
    """Copy of ``template`` with ``proposed`` weights swapped in, unchecked."""
    sections = []
    for section in template.sections:
        questions = tuple(
            q.model_copy(update={"weight": proposed[q.id]}) if q.id in proposed else q
            for q in section.questions
        )
        update: dict = {"questions": questions}
        if section.id in proposed:
            update["weight"] = proposed[section.id]
        sections.append(section.model_copy(update=update))
    return template.model_copy(update={"sections": tuple(sections)})


@dataclass
class WeightEditSession:
    """Pending sibling-weight edits for one template.

    ``proposed`` maps sibling id to its staged weight and ``dirty_parents``
    names the sibling sets touched (``TEMPLATE_PARENT`` for sections, a
    section id for its questions). Nothing here is visible to scoring until
    ``apply`` produces a new template and the caller swaps it in.
    """

    template_id: str
    proposed: dict[str, float] = field(default_factory=dict)
    dirty_parents: set[str] = field(default_factory=set)

    @property
    def is_dirty(self) -> bool:
        return bool(self.dirty_parents)

    def view(self, committed: Mapping[str, float]) -> dict[str, float]:
        """Committed weights overlaid with any staged edits."""
        return {sid: self.proposed.get(sid, w) for sid, w in committed.items()}

    def stage(
        self,
        parent_key: str,
        committed: Mapping[str, float],
        target_id: str,
        new_weight: float,
        weight_min: float = WEIGHT_MIN,
        weight_max: float = WEIGHT_MAX,
    ) -> dict[str, float]:
        """Stage ``set_weight`` on top of earlier edits to the same sibling set."""
        updated = set_weight(self.view(committed), target_id, new_weight, weight_min, weight_max)
        self.proposed.update(updated)
        self.dirty_parents.add(parent_key)
        return updated

    def discard(self) -> None:
        self.proposed.clear()
        self.dirty_parents.clear()

    def apply(
        self,
        template: Template,
        tolerance: float = WEIGHT_TOLERANCE,
        epsilon: float = WEIGHT_EPSILON,
    ) -> Template:
        """Build the template with every staged weight applied.

        Each dirty sibling set is checked against the sum invariant first; a
        single failure raises ``InvariantViolation`` and nothing is applied.
        """
        violations = []
        for parent_key in sorted(self.dirty_parents):
            if parent_key == TEMPLATE_PARENT:
                weights = self.view(section_weights(template))
            else:
                weights = self.view(question_weights(template, parent_key))
            total = sum_weights(list(weights.values()))
            if abs(total - 1.0) > tolerance + epsilon:
                violations.append({"parent": parent_key, "total": round(total, 6)})

        if violations:
            raise InvariantViolation(
                "Staged weights drift beyond tolerance; commit rejected",
                template_id=template.id,
                tolerance=tolerance,
                violations=violations,
            )

        return overlay_weights(template, self.proposed)
