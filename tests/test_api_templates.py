"""API tests for template registration and staged weight editing."""

from __future__ import annotations

import pytest

from gapmatch.store import data_store


@pytest.fixture
def template_payload(sample_template):
    return sample_template.model_dump(mode="json")


@pytest.fixture
def registered(client, template_payload):
    response = client.post("/api/templates", json=template_payload)
    assert response.status_code == 201
    return response.json()


def _weights(sections):
    return {s["id"]: s["weight"] for s in sections}


# ─── Registration ────────────────────────────────────────────────────────────

class TestRegisterTemplate:
    """POST /api/templates"""

    def test_register(self, registered):
        assert registered["id"] == "fincrime-v1"
        assert _weights(registered["sections"]) == {"kyc": 0.5, "tm": 0.3, "training": 0.2}
        assert "fincrime-v1" in data_store.templates

    def test_get_template(self, client, registered):
        response = client.get("/api/templates/fincrime-v1")
        assert response.status_code == 200
        assert response.json()["name"] == "Financial Crime Controls"

    def test_get_unknown_template(self, client):
        response = client.get("/api/templates/nope")
        assert response.status_code == 404
        assert response.json()["detail"]["kind"] == "not_found"

    def test_section_sum_rejected(self, client, template_payload):
        template_payload["sections"][0]["weight"] = 0.7
        response = client.post("/api/templates", json=template_payload)
        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["kind"] == "validation"
        assert "Section weights" in detail["message"]

    def test_question_sum_rejected(self, client, template_payload):
        template_payload["sections"][1]["questions"][0]["weight"] = 0.2
        response = client.post("/api/templates", json=template_payload)
        assert response.status_code == 422
        assert "tm" in response.json()["detail"]["message"]

    def test_sum_within_tolerance_accepted(self, client, template_payload):
        template_payload["sections"][0]["weight"] = 0.505
        response = client.post("/api/templates", json=template_payload)
        assert response.status_code == 201

    def test_normalize_raw_weights(self, client, template_payload):
        for section, raw in zip(template_payload["sections"], (5, 3, 2)):
            section["weight"] = raw
        template_payload["sections"][1]["questions"][0]["weight"] = 3
        template_payload["sections"][1]["questions"][1]["weight"] = 1
        template_payload["normalize"] = True
        response = client.post("/api/templates", json=template_payload)
        assert response.status_code == 201
        weights = _weights(response.json()["sections"])
        assert weights["kyc"] == pytest.approx(0.5)
        assert weights["training"] == pytest.approx(0.2)
        tm = response.json()["sections"][1]["questions"]
        assert [q["weight"] for q in tm] == pytest.approx([0.75, 0.25])

    def test_raw_weights_without_normalize_rejected(self, client, template_payload):
        for section, raw in zip(template_payload["sections"], (5, 3, 2)):
            section["weight"] = raw
        response = client.post("/api/templates", json=template_payload)
        assert response.status_code == 422
        assert response.json()["detail"]["kind"] == "validation"

    def test_duplicate_ids_rejected(self, client, template_payload):
        template_payload["sections"][1]["questions"][0]["id"] = "kyc_policy"
        response = client.post("/api/templates", json=template_payload)
        assert response.status_code == 422

    def test_empty_section_rejected(self, client, template_payload):
        template_payload["sections"][2]["questions"] = []
        response = client.post("/api/templates", json=template_payload)
        assert response.status_code == 422

    def test_unknown_category_rejected(self, client, template_payload):
        template_payload["sections"][0]["category"] = "ASTROLOGY"
        response = client.post("/api/templates", json=template_payload)
        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["kind"] == "validation"
        assert detail["details"]["errors"][0]["loc"] == ["body", "sections", "0", "category"]

    def test_category_spelling_normalised(self, client, template_payload):
        template_payload["sections"][0]["category"] = "kyc-aml"
        response = client.post("/api/templates", json=template_payload)
        assert response.status_code == 201
        assert response.json()["sections"][0]["category"] == "KYC_AML"


# ─── Weight editing ──────────────────────────────────────────────────────────

class TestWeightEditing:
    """Staged edits, commit and discard."""

    def test_stage_section_weight(self, client, registered):
        response = client.put("/api/templates/fincrime-v1/sections/kyc/weight", json={"weight": 0.7})
        assert response.status_code == 200
        weights = _weights(response.json()["sections"])
        assert weights["kyc"] == pytest.approx(0.7)
        assert weights["tm"] == pytest.approx(0.15)
        assert weights["training"] == pytest.approx(0.15)

    def test_staged_edit_not_visible_until_commit(self, client, registered):
        client.put("/api/templates/fincrime-v1/sections/kyc/weight", json={"weight": 0.7})
        committed = client.get("/api/templates/fincrime-v1").json()
        assert _weights(committed["sections"])["kyc"] == 0.5

        pending = client.get("/api/templates/fincrime-v1/weights/pending").json()
        assert pending["dirty"] is True
        assert pending["dirty_parents"] == ["__template__"]
        assert _weights(pending["template"]["sections"])["kyc"] == pytest.approx(0.7)

    def test_commit(self, client, registered):
        client.put("/api/templates/fincrime-v1/sections/kyc/weight", json={"weight": 0.7})
        client.put("/api/templates/fincrime-v1/sections/tm/questions/tm_rules/weight", json={"weight": 0.9})
        response = client.post("/api/templates/fincrime-v1/weights/commit")
        assert response.status_code == 200
        template = client.get("/api/templates/fincrime-v1").json()
        assert _weights(template["sections"])["kyc"] == pytest.approx(0.7)
        assert template["sections"][1]["questions"][1]["weight"] == pytest.approx(0.1)
        assert client.get("/api/templates/fincrime-v1/weights/pending").json()["dirty"] is False

    def test_commit_without_changes_is_noop(self, client, registered):
        response = client.post("/api/templates/fincrime-v1/weights/commit")
        assert response.status_code == 200
        assert _weights(response.json()["template"]["sections"])["kyc"] == 0.5

    def test_discard(self, client, registered):
        client.put("/api/templates/fincrime-v1/sections/kyc/weight", json={"weight": 0.7})
        response = client.post("/api/templates/fincrime-v1/weights/discard")
        assert response.status_code == 200
        assert _weights(client.get("/api/templates/fincrime-v1").json()["sections"])["kyc"] == 0.5
        assert client.get("/api/templates/fincrime-v1/weights/pending").json()["dirty"] is False

    def test_stage_question_weight(self, client, registered):
        response = client.put(
            "/api/templates/fincrime-v1/sections/kyc/questions/kyc_policy/weight", json={"weight": 0.3}
        )
        assert response.status_code == 200
        questions = {q["id"]: q["weight"] for q in response.json()["questions"]}
        assert questions == pytest.approx({"kyc_policy": 0.3, "kyc_refresh": 0.7})

    def test_singleton_sibling_set(self, client, registered):
        response = client.put(
            "/api/templates/fincrime-v1/sections/training/questions/training_cadence/weight",
            json={"weight": 0.5},
        )
        assert response.status_code == 409
        assert response.json()["detail"]["kind"] == "invalid_operation"
        assert client.get("/api/templates/fincrime-v1/weights/pending").json()["dirty"] is False

    def test_out_of_range_weight(self, client, registered):
        response = client.put("/api/templates/fincrime-v1/sections/kyc/weight", json={"weight": 1.5})
        assert response.status_code == 422
        assert response.json()["detail"]["kind"] == "validation"

    def test_unknown_section(self, client, registered):
        response = client.put("/api/templates/fincrime-v1/sections/nope/weight", json={"weight": 0.5})
        assert response.status_code == 404

    def test_drifting_commit_rejected_in_full(self, client, template_payload):
        """Clamping drift beyond tolerance rejects the batch and keeps the committed weights."""
        template_payload["sections"].append({
            "id": "reporting",
            "title": "Reporting",
            "weight": 0.0,
            "category": "REGULATORY_REPORTING",
            "questions": [{"id": "sar_filing", "text": "SAR filing", "weight": 1.0}],
        })
        for section in template_payload["sections"]:
            section["weight"] = 0.25
        assert client.post("/api/templates", json=template_payload).status_code == 201

        client.put("/api/templates/fincrime-v1/sections/tm/questions/tm_rules/weight", json={"weight": 0.5})
        client.put("/api/templates/fincrime-v1/sections/kyc/weight", json={"weight": 0.99})
        response = client.post("/api/templates/fincrime-v1/weights/commit")
        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["kind"] == "invariant_violation"
        assert detail["details"]["violations"][0]["parent"] == "__template__"

        template = client.get("/api/templates/fincrime-v1").json()
        assert all(s["weight"] == 0.25 for s in template["sections"])
        assert template["sections"][1]["questions"][0]["weight"] == 0.6
