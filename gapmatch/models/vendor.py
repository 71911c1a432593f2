"""Vendor marketplace models and the per-gap match result."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from gapmatch.models.enums import ComplianceCategory, PricingModel, VendorStatus


class Vendor(BaseModel):
    """A compliance-technology vendor in the marketplace catalog."""

    model_config = ConfigDict(frozen=True)

    id: str
    company_name: str
    categories: tuple[ComplianceCategory, ...] = ()
    featured: bool = False
    verified: bool = False
    rating: float | None = Field(default=None, ge=0.0, le=5.0)
    review_count: int = Field(default=0, ge=0)
    status: VendorStatus = VendorStatus.APPROVED

    def __repr__(self) -> str:
        return f"<Vendor {self.company_name}>"


class Solution(BaseModel):
    """A product offered by exactly one vendor."""

    model_config = ConfigDict(frozen=True)

    id: str
    vendor_id: str
    name: str
    description: str = ""
    category: ComplianceCategory
    features: tuple[str, ...] = ()
    pricing_model: PricingModel = PricingModel.SUBSCRIPTION
    starting_price: float | None = Field(default=None, ge=0.0)
    is_active: bool = True


class VendorMatch(BaseModel):
    """How well one solution addresses one gap, with the reasons behind the number."""

    model_config = ConfigDict(frozen=True)

    gap_id: str
    vendor_id: str
    solution_id: str
    vendor_name: str
    solution_name: str
    match_score: float = Field(..., ge=0.0, le=1.0)
    category_score: float
    keyword_score: float
    boost_score: float
    matched_keywords: tuple[str, ...] = ()
    match_reasons: tuple[str, ...] = ()
    summary: str = ""
    rating: float | None = None
    review_count: int = 0
