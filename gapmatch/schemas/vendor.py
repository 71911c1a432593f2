"""Schemas for the vendor catalog endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from gapmatch.models.vendor import Solution, Vendor


class VendorUpsert(BaseModel):
    """A vendor together with its full solution list; replaces earlier solutions."""

    vendor: Vendor
    solutions: list[Solution] = Field(default_factory=list)


class VendorCatalogEntry(BaseModel):
    vendor: Vendor
    solutions: list[Solution]


class VendorCatalogResponse(BaseModel):
    total: int
    vendors: list[VendorCatalogEntry]
