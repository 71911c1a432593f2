"""Shared test fixtures for the gapmatch test suite."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from gapmatch.app import create_app
from gapmatch.config import Settings
from gapmatch.models import (
    Answer,
    Assessment,
    ComplianceCategory,
    EvidenceTier,
    Question,
    QuestionType,
    Section,
    Solution,
    Template,
    TemplateCategory,
    Vendor,
    VendorStatus,
)
from gapmatch.services import pipeline
from gapmatch.store import data_store


def _test_settings(**overrides) -> Settings:
    """Return settings suitable for testing."""
    values = dict(
        environment="development",
        debug=True,
        log_format="console",
        rate_limit_default="1000/minute",
        rate_limit_burst="2000/minute",
        allowed_origins="http://localhost:3000,http://localhost:5015",
        evaluation_service_url="",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings():
    """Test settings."""
    return _test_settings()


@pytest.fixture
def app(settings):
    """Create a fresh FastAPI app for testing."""
    return create_app(settings)


@pytest.fixture
def client(app):
    """HTTP test client."""
    return TestClient(app)


@pytest.fixture(autouse=True)
def reset_store():
    """Reset the global data store before each test."""
    data_store.reset()
    yield
    data_store.reset()


def build_sample_template() -> Template:
    """Three sections weighted 0.5/0.3/0.2 covering five questions."""
    return Template(
        id="fincrime-v1",
        name="Financial Crime Controls",
        category=TemplateCategory.FINANCIAL_CRIME,
        sections=(
            Section(
                id="kyc",
                title="Customer Due Diligence",
                weight=0.5,
                category=ComplianceCategory.KYC_AML,
                questions=(
                    Question(
                        id="kyc_policy",
                        text="Describe your customer identity verification process",
                        required=True,
                        weight=0.5,
                        foundational=True,
                        keywords=("identity verification", "document", "sanctions"),
                    ),
                    Question(
                        id="kyc_refresh",
                        text="Are customer records refreshed periodically?",
                        type=QuestionType.BOOLEAN,
                        weight=0.5,
                    ),
                ),
            ),
            Section(
                id="tm",
                title="Transaction Monitoring",
                weight=0.3,
                category=ComplianceCategory.TRANSACTION_MONITORING,
                questions=(
                    Question(
                        id="tm_rules",
                        text="How are monitoring rules maintained?",
                        weight=0.6,
                        keywords=("real-time", "alerts"),
                    ),
                    Question(
                        id="tm_tuning",
                        text="Rate the maturity of rule tuning",
                        type=QuestionType.RATING,
                        weight=0.4,
                    ),
                ),
            ),
            Section(
                id="training",
                title="Staff Training",
                weight=0.2,
                category=ComplianceCategory.COMPLIANCE_TRAINING,
                questions=(
                    Question(
                        id="training_cadence",
                        text="How often is AML training delivered?",
                        type=QuestionType.SELECT,
                        weight=1.0,
                        options=("Annual", "Quarterly", "None"),
                    ),
                ),
            ),
        ),
    )


@pytest.fixture
def sample_template():
    """The sample template, not registered in the store."""
    return build_sample_template()


@pytest.fixture
def registered_template(settings):
    """The sample template registered in the global store."""
    return pipeline.register_template(build_sample_template(), settings, data_store)


@pytest.fixture
def sample_assessment(registered_template):
    """A draft assessment of the sample template."""
    return pipeline.create_assessment("acme-bank", registered_template.id, "assess-1", data_store)


@pytest.fixture
def fresh_assessment(sample_template):
    """A standalone assessment not stored anywhere."""
    return Assessment(
        id="assess-local",
        organization_id="acme-bank",
        template_id=sample_template.id,
        created_at=datetime.now(timezone.utc),
    )


@pytest.fixture
def answer_factory():
    """Build answers without going through ingestion."""

    def _make(question_id, ai_score, confidence=1.0, tier=EvidenceTier.TIER_2, version=1):
        return Answer(
            id=str(uuid.uuid4()),
            assessment_id="assess-local",
            question_id=question_id,
            version=version,
            response_text="evidence",
            evidence_tier=tier,
            ai_score=ai_score,
            confidence=confidence,
            created_at=datetime.now(timezone.utc),
        )

    return _make


@pytest.fixture
def sample_catalog():
    """Approved, pending and inactive vendor solutions in the global store."""
    acme = Vendor(
        id="v-acme",
        company_name="Acme RegTech",
        categories=(ComplianceCategory.KYC_AML,),
        featured=True,
        verified=True,
        rating=4.5,
        review_count=20,
    )
    beta = Vendor(
        id="v-beta",
        company_name="Beta Monitoring",
        categories=(ComplianceCategory.TRANSACTION_MONITORING,),
        rating=4.0,
        review_count=8,
    )
    pending = Vendor(
        id="v-pending",
        company_name="Pending Inc",
        categories=(ComplianceCategory.KYC_AML,),
        featured=True,
        verified=True,
        rating=5.0,
        status=VendorStatus.PENDING,
    )
    data_store.add_vendor(acme, [
        Solution(
            id="s-acme-kyc",
            vendor_id="v-acme",
            name="Acme Onboard",
            category=ComplianceCategory.KYC_AML,
            features=("Identity verification API", "Document authentication"),
        ),
        Solution(
            id="s-acme-legacy",
            vendor_id="v-acme",
            name="Acme Legacy",
            category=ComplianceCategory.KYC_AML,
            features=("Identity verification",),
            is_active=False,
        ),
    ])
    data_store.add_vendor(beta, [
        Solution(
            id="s-beta-tm",
            vendor_id="v-beta",
            name="Beta Watch",
            category=ComplianceCategory.TRANSACTION_MONITORING,
            features=("Real-time alerts", "Case management"),
        ),
    ])
    data_store.add_vendor(pending, [
        Solution(
            id="s-pending-kyc",
            vendor_id="v-pending",
            name="Pending KYC",
            category=ComplianceCategory.KYC_AML,
            features=("Identity verification", "Document checks", "Sanctions"),
        ),
    ])
    return {"acme": acme, "beta": beta, "pending": pending}
