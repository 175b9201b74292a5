"""
Vendor Performance - Tier API
Spend-tier classification, batch reclassification and manual overrides
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, Query

from vendorperf.core.errors import VendorPerfError
from vendorperf.dependencies import get_tier_service, http_error
from vendorperf.models.tiers import (
    ReclassificationSummary,
    TierClassificationResult,
    TierDistribution,
    TierHistoryEntry,
    TierOverrideRequest,
)
from vendorperf.services.tier_service import VendorTierService

router = APIRouter(prefix="/vendor-tiers", tags=["Vendor Tiers"])


@router.post("/vendors/{vendor_id}/classify", response_model=TierClassificationResult)
async def classify_vendor(
    vendor_id: uuid.UUID,
    tenant_id: uuid.UUID = Query(...),
    service: VendorTierService = Depends(get_tier_service),
) -> TierClassificationResult:
    """Classify one vendor from trailing twelve-month spend."""
    try:
        return await service.classify_vendor_tier(tenant_id, vendor_id)
    except VendorPerfError as e:
        raise http_error(e)


@router.post("/reclassify", response_model=ReclassificationSummary)
async def reclassify_all(
    tenant_id: uuid.UUID = Query(...),
    service: VendorTierService = Depends(get_tier_service),
) -> ReclassificationSummary:
    """
    Reclassify every active vendor of the tenant.
    
    All-or-nothing: on failure no vendor's tier changes.
    """
    try:
        return await service.reclassify_all(tenant_id)
    except VendorPerfError as e:
        raise http_error(e)


@router.put("/vendors/{vendor_id}/override", response_model=TierHistoryEntry)
async def override_vendor_tier(
    vendor_id: uuid.UUID,
    request: TierOverrideRequest,
    tenant_id: uuid.UUID = Query(...),
    service: VendorTierService = Depends(get_tier_service),
) -> TierHistoryEntry:
    try:
        return await service.update_vendor_tier(
            tenant_id, vendor_id, request.tier, request.reason, request.user_id,
        )
    except VendorPerfError as e:
        raise http_error(e)


@router.get("/vendors/{vendor_id}/history", response_model=List[TierHistoryEntry])
async def tier_history(
    vendor_id: uuid.UUID,
    tenant_id: uuid.UUID = Query(...),
    limit: int = Query(50, ge=1, le=500),
    service: VendorTierService = Depends(get_tier_service),
) -> List[TierHistoryEntry]:
    try:
        return await service.get_tier_history(tenant_id, vendor_id, limit)
    except VendorPerfError as e:
        raise http_error(e)


@router.get("/distribution", response_model=TierDistribution)
async def tier_distribution(
    tenant_id: uuid.UUID = Query(...),
    service: VendorTierService = Depends(get_tier_service),
) -> TierDistribution:
    """Active vendors per tier."""
    try:
        return await service.get_tier_distribution(tenant_id)
    except VendorPerfError as e:
        raise http_error(e)
