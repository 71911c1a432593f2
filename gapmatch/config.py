"""Application configuration via environment variables."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Central configuration for the gapmatch scoring and matching service."""

    # Application
    app_name: str = "gapmatch"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = Field(default="development", pattern=r"^(development|staging|production)$")
    log_level: str = "INFO"
    log_format: str = "json"

    # API
    api_prefix: str = "/api"
    allowed_origins: str = "http://localhost:3000"
    rate_limit_default: str = "100/minute"
    rate_limit_burst: str = "200/minute"

    # Weight normalisation
    weight_min: float = Field(default=0.01, gt=0.0, lt=0.5)
    weight_max: float = Field(default=0.99, gt=0.5, lt=1.0)
    weight_tolerance: float = Field(default=0.01, gt=0.0, le=0.1)
    weight_epsilon: float = Field(default=1e-6, gt=0.0)

    # Gap severity thresholds (normalised 0-1 scores)
    gap_threshold_critical: float = Field(default=0.25, ge=0.0, le=1.0)
    gap_threshold_high: float = Field(default=0.5, ge=0.0, le=1.0)
    gap_threshold_medium: float = Field(default=0.75, ge=0.0, le=1.0)
    gap_threshold_low: float | None = Field(default=None, ge=0.0, le=1.0)

    # Vendor matching
    match_category_weight: float = 0.6
    match_keyword_weight: float = 0.3
    match_boost_weight: float = 0.1
    related_category_score: float = Field(default=0.5, ge=0.0, le=1.0)
    featured_bonus: float = Field(default=0.5, ge=0.0, le=1.0)
    verified_bonus: float = Field(default=0.5, ge=0.0, le=1.0)
    min_reason_contribution: float = Field(default=0.01, ge=0.0)
    default_match_limit: int = Field(default=50, ge=1)
    strategy_top_matches: int = Field(default=3, ge=1)

    # Scoring
    apply_tier_multiplier: bool = False

    # External evidence-evaluation service
    evaluation_service_url: str = ""
    evaluation_api_key: str = ""
    evaluation_timeout_seconds: float = Field(default=30.0, gt=0.0)
    evaluation_concurrency: int = Field(default=4, ge=1, le=64)
    evaluation_verify_ssl: bool = True

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",")]

    model_config = {"env_prefix": "GAPMATCH_", "env_file": ".env", "extra": "ignore"}


def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
