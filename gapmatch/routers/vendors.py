"""Vendor catalog endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from gapmatch.errors import ValidationError
from gapmatch.schemas.vendor import VendorCatalogEntry, VendorCatalogResponse, VendorUpsert
from gapmatch.store import data_store

router = APIRouter(prefix="/api/vendors", tags=["vendors"])


@router.post("", response_model=VendorCatalogEntry, status_code=201)
async def upsert_vendor(body: VendorUpsert) -> VendorCatalogEntry:
    """Add or replace a vendor and its solutions."""
    foreign = [s.id for s in body.solutions if s.vendor_id != body.vendor.id]
    if foreign:
        raise ValidationError("Solutions must belong to the submitted vendor", solution_ids=foreign)
    data_store.add_vendor(body.vendor, body.solutions)
    return VendorCatalogEntry(vendor=body.vendor, solutions=data_store.get_vendor_solutions(body.vendor.id))


@router.get("", response_model=VendorCatalogResponse)
async def list_vendors() -> VendorCatalogResponse:
    entries = [
        VendorCatalogEntry(vendor=v, solutions=data_store.get_vendor_solutions(v.id))
        for v in data_store.vendors.values()
    ]
    return VendorCatalogResponse(total=len(entries), vendors=entries)
