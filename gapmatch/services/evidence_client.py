"""Client for the external evidence-evaluation service."""

from __future__ import annotations

from typing import Any

import httpx

from gapmatch.config import Settings
from gapmatch.errors import EvaluationError
from gapmatch.models.template import Question

EXPECTED_FIELDS = ("evidence_tier", "ai_score", "confidence")


class EvidenceEvaluationClient:
    """HTTP client that asks the evaluation service to grade one answer."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 30.0,
        verify_ssl: bool = True,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.verify_ssl = verify_ssl
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Settings) -> EvidenceEvaluationClient:
        return cls(
            base_url=settings.evaluation_service_url,
            api_key=settings.evaluation_api_key,
            timeout=settings.evaluation_timeout_seconds,
            verify_ssl=settings.evaluation_verify_ssl,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            verify=self.verify_ssl,
            transport=self._transport,
        )

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            return {}
        return {"Authorization": f"Bearer {self.api_key}"}

    async def evaluate(self, question: Question, response_text: str) -> dict[str, Any]:
        """Return ``{evidence_tier, ai_score, confidence}`` for one response.

        Range checks are left to the ingestor; this only guarantees the
        fields are present.
        """
        payload = {
            "question_id": question.id,
            "question_text": question.text,
            "question_type": question.type.value,
            "response_text": response_text,
        }
        try:
            async with self._client() as client:
                response = await client.post("/evaluations", json=payload, headers=self._headers())
        except httpx.TimeoutException as exc:
            raise EvaluationError(
                "Evaluation timed out", question_id=question.id, error=str(exc)
            ) from exc
        except httpx.HTTPError as exc:
            raise EvaluationError(
                "Evaluation service unreachable", question_id=question.id, error=str(exc)
            ) from exc

        if response.status_code != 200:
            raise EvaluationError(
                f"Evaluation failed: {response.status_code} {response.text[:200]}",
                question_id=question.id,
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError:
            raise EvaluationError(
                "Evaluation response is not JSON",
                question_id=question.id,
                body=response.text[:200],
            ) from None
        if not isinstance(data, dict):
            raise EvaluationError("Evaluation response is not an object", question_id=question.id)
        missing = [f for f in EXPECTED_FIELDS if f not in data]
        if missing:
            raise EvaluationError("Evaluation response incomplete", question_id=question.id, missing=missing)
        return {f: data[f] for f in EXPECTED_FIELDS}

    async def test_connection(self) -> bool:
        """Check that the evaluation service answers its health endpoint."""
        try:
            async with self._client() as client:
                response = await client.get("/health", headers=self._headers())
            return response.status_code == 200
        except httpx.HTTPError:
            return False
