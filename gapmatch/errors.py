"""Engine errors and the structured failure reasons reported to callers."""

from __future__ import annotations

from enum import Enum
from typing import Any


class FailureKind(str, Enum):
    """Why a scoring, matching or weight operation did not yield a result."""

    VALIDATION = "validation"
    INVALID_OPERATION = "invalid_operation"
    INVARIANT_VIOLATION = "invariant_violation"
    NOT_FOUND = "not_found"
    PROCESSING = "processing"
    EVALUATION_FAILED = "evaluation_failed"


class EngineError(Exception):
    """Base class for every error raised by the engine."""

    kind: FailureKind = FailureKind.VALIDATION
    status_code: int = 400

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_reason(self) -> dict[str, Any]:
        """Serialise as a structured reason for the surrounding UI."""
        return {"kind": self.kind.value, "message": self.message, "details": self.details}


class ValidationError(EngineError):
    """Out-of-range weight, score or confidence, or a malformed payload."""

    kind = FailureKind.VALIDATION
    status_code = 422


class InvalidOperation(EngineError):
    """The operation cannot be applied to the given input, e.g. redistributing a singleton."""

    kind = FailureKind.INVALID_OPERATION
    status_code = 409


class InvariantViolation(EngineError):
    """A batch commit would break a weight-sum invariant."""

    kind = FailureKind.INVARIANT_VIOLATION
    status_code = 409


class NotFoundError(EngineError):
    """A referenced template, section, question, assessment or vendor is unknown."""

    kind = FailureKind.NOT_FOUND
    status_code = 404


class EvaluationError(EngineError):
    """The external evidence-evaluation service failed or timed out."""

    kind = FailureKind.EVALUATION_FAILED
    status_code = 502
