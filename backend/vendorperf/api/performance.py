"""
Vendor Performance - Scorecard API
Period metrics, rolling scorecards, comparison reports, scorecard
configuration and ESG metrics
"""

import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from vendorperf.core.errors import VendorPerfError
from vendorperf.dependencies import get_performance_service, http_error
from vendorperf.models.performance import (
    ESGMetricsInput,
    ESGMetricsRecord,
    ManualScoresUpdate,
    PeriodEvaluation,
    ScorecardConfigInput,
    ScorecardConfigRecord,
    VendorComparisonReport,
    VendorPerformanceRecord,
    VendorScorecard,
)
from vendorperf.services.performance_service import VendorPerformanceService

router = APIRouter(prefix="/vendor-performance", tags=["Vendor Performance"])


# =============================================================================
# PERIOD METRICS
# =============================================================================

@router.post(
    "/vendors/{vendor_id}/periods/{year}/{month}/calculate",
    response_model=VendorPerformanceRecord,
)
async def calculate_vendor_performance(
    vendor_id: uuid.UUID,
    year: int,
    month: int,
    tenant_id: uuid.UUID = Query(...),
    service: VendorPerformanceService = Depends(get_performance_service),
) -> VendorPerformanceRecord:
    """Recompute one vendor's metrics for a calendar month. Idempotent."""
    try:
        return await service.calculate_vendor_performance(tenant_id, vendor_id, year, month)
    except VendorPerfError as e:
        raise http_error(e)


@router.post("/periods/{year}/{month}/calculate", response_model=List[VendorPerformanceRecord])
async def calculate_all_vendors_performance(
    year: int,
    month: int,
    tenant_id: uuid.UUID = Query(...),
    service: VendorPerformanceService = Depends(get_performance_service),
) -> List[VendorPerformanceRecord]:
    try:
        return await service.calculate_all_vendors_performance(tenant_id, year, month)
    except VendorPerfError as e:
        raise http_error(e)


@router.post(
    "/vendors/{vendor_id}/periods/{year}/{month}/evaluate",
    response_model=PeriodEvaluation,
)
async def evaluate_vendor_period(
    vendor_id: uuid.UUID,
    year: int,
    month: int,
    tenant_id: uuid.UUID = Query(...),
    service: VendorPerformanceService = Depends(get_performance_service),
) -> PeriodEvaluation:
    """
    Full monthly path for one vendor.
    
    Returns the period record, its weighted score and the ids of any
    alerts raised (new or deduplicated).
    """
    try:
        return await service.evaluate_vendor_period(tenant_id, vendor_id, year, month)
    except VendorPerfError as e:
        raise http_error(e)


@router.put(
    "/vendors/{vendor_id}/periods/{year}/{month}/manual-scores",
    response_model=VendorPerformanceRecord,
)
async def update_manual_scores(
    vendor_id: uuid.UUID,
    year: int,
    month: int,
    scores: ManualScoresUpdate,
    tenant_id: uuid.UUID = Query(...),
    service: VendorPerformanceService = Depends(get_performance_service),
) -> VendorPerformanceRecord:
    try:
        return await service.update_manual_scores(tenant_id, vendor_id, year, month, scores)
    except VendorPerfError as e:
        raise http_error(e)


# =============================================================================
# SCORECARDS & REPORTS
# =============================================================================

@router.get("/vendors/{vendor_id}/scorecard", response_model=VendorScorecard)
async def vendor_scorecard(
    vendor_id: uuid.UUID,
    tenant_id: uuid.UUID = Query(...),
    service: VendorPerformanceService = Depends(get_performance_service),
) -> VendorScorecard:
    """Rolling twelve-month scorecard with trend, tier and ESG risk."""
    try:
        return await service.get_vendor_scorecard(tenant_id, vendor_id)
    except VendorPerfError as e:
        raise http_error(e)


@router.get("/comparison", response_model=VendorComparisonReport)
async def vendor_comparison(
    tenant_id: uuid.UUID = Query(...),
    year: int = Query(...),
    month: int = Query(..., ge=1, le=12),
    vendor_type: Optional[str] = Query(None),
    top_n: int = Query(5, ge=1, le=50),
    service: VendorPerformanceService = Depends(get_performance_service),
) -> VendorComparisonReport:
    try:
        return await service.get_vendor_comparison_report(tenant_id, year, month, vendor_type, top_n)
    except VendorPerfError as e:
        raise http_error(e)


# =============================================================================
# SCORECARD CONFIGURATION
# =============================================================================

@router.get("/scorecard-configs", response_model=List[ScorecardConfigRecord])
async def list_scorecard_configs(
    tenant_id: uuid.UUID = Query(...),
    active_only: bool = Query(False),
    service: VendorPerformanceService = Depends(get_performance_service),
) -> List[ScorecardConfigRecord]:
    return await service.list_scorecard_configs(tenant_id, active_only)


@router.get("/scorecard-configs/active", response_model=ScorecardConfigRecord)
async def active_scorecard_config(
    tenant_id: uuid.UUID = Query(...),
    vendor_type: Optional[str] = Query(None),
    vendor_tier: Optional[str] = Query(None),
    as_of: Optional[date] = Query(None),
    service: VendorPerformanceService = Depends(get_performance_service),
) -> ScorecardConfigRecord:
    """Config that would score a vendor of this type and tier."""
    try:
        return await service.get_active_scorecard_config(tenant_id, vendor_type, vendor_tier, as_of)
    except VendorPerfError as e:
        raise http_error(e)


@router.post("/scorecard-configs", response_model=ScorecardConfigRecord, status_code=201)
async def create_scorecard_config(
    config: ScorecardConfigInput,
    tenant_id: uuid.UUID = Query(...),
    user_id: Optional[uuid.UUID] = Query(None),
    service: VendorPerformanceService = Depends(get_performance_service),
) -> ScorecardConfigRecord:
    """
    Add a configuration version.
    
    Weights must each lie in [0, 100] and sum to 100; thresholds must be
    ordered acceptable < good < excellent.
    """
    try:
        return await service.create_scorecard_config(tenant_id, config, user_id)
    except VendorPerfError as e:
        raise http_error(e)


# =============================================================================
# ESG
# =============================================================================

@router.post("/esg-metrics", response_model=ESGMetricsRecord)
async def record_esg_metrics(
    metrics: ESGMetricsInput,
    tenant_id: uuid.UUID = Query(...),
    service: VendorPerformanceService = Depends(get_performance_service),
) -> ESGMetricsRecord:
    try:
        return await service.record_esg_metrics(tenant_id, metrics)
    except VendorPerfError as e:
        raise http_error(e)


@router.get("/vendors/{vendor_id}/esg-metrics", response_model=List[ESGMetricsRecord])
async def vendor_esg_metrics(
    vendor_id: uuid.UUID,
    tenant_id: uuid.UUID = Query(...),
    limit: int = Query(12, ge=1, le=120),
    service: VendorPerformanceService = Depends(get_performance_service),
) -> List[ESGMetricsRecord]:
    try:
        return await service.get_vendor_esg_metrics(tenant_id, vendor_id, limit)
    except VendorPerfError as e:
        raise http_error(e)
