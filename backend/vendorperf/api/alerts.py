"""
Vendor Performance - Alert API
Alert listing, statistics and the acknowledge / resolve / dismiss workflow
"""

import uuid
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from vendorperf.core.errors import VendorPerfError
from vendorperf.dependencies import get_alert_engine, http_error
from vendorperf.models.alerts import (
    AcknowledgeAlertRequest,
    AlertRecord,
    AlertSeverity,
    AlertStatistics,
    AlertStatus,
    DismissAlertRequest,
    ResolveAlertRequest,
)
from vendorperf.services.alert_engine import OPEN_LIST_LIMIT, VendorAlertEngine

router = APIRouter(prefix="/vendor-alerts", tags=["Vendor Alerts"])


# =============================================================================
# QUERIES
# =============================================================================

@router.get("", response_model=List[AlertRecord])
async def list_alerts(
    tenant_id: uuid.UUID = Query(...),
    severity: Optional[AlertSeverity] = Query(None),
    status: Optional[AlertStatus] = Query(None),
    vendor_id: Optional[uuid.UUID] = Query(None),
    limit: int = Query(OPEN_LIST_LIMIT, ge=1, le=500),
    engine: VendorAlertEngine = Depends(get_alert_engine),
) -> List[AlertRecord]:
    """
    Alerts for the dashboard, CRITICAL first then newest first.
    
    Without `status`, only OPEN and ACKNOWLEDGED alerts are listed.
    """
    return await engine.get_open_alerts(tenant_id, severity, status, vendor_id, limit)


@router.get("/statistics", response_model=AlertStatistics)
async def alert_statistics(
    tenant_id: uuid.UUID = Query(...),
    engine: VendorAlertEngine = Depends(get_alert_engine),
) -> AlertStatistics:
    return await engine.get_alert_statistics(tenant_id)


@router.get("/{alert_id}", response_model=AlertRecord)
async def get_alert(
    alert_id: uuid.UUID,
    tenant_id: uuid.UUID = Query(...),
    engine: VendorAlertEngine = Depends(get_alert_engine),
) -> AlertRecord:
    try:
        return await engine.get_alert(tenant_id, alert_id)
    except VendorPerfError as e:
        raise http_error(e)


# =============================================================================
# WORKFLOW
# =============================================================================

@router.post("/{alert_id}/acknowledge", response_model=AlertRecord)
async def acknowledge_alert(
    alert_id: uuid.UUID,
    request: AcknowledgeAlertRequest,
    tenant_id: uuid.UUID = Query(...),
    engine: VendorAlertEngine = Depends(get_alert_engine),
) -> AlertRecord:
    """OPEN -> ACKNOWLEDGED. 409 if the alert is in any other state."""
    try:
        return await engine.acknowledge_alert(tenant_id, alert_id, request.user_id, request.notes)
    except VendorPerfError as e:
        raise http_error(e)


@router.post("/{alert_id}/resolve", response_model=AlertRecord)
async def resolve_alert(
    alert_id: uuid.UUID,
    request: ResolveAlertRequest,
    tenant_id: uuid.UUID = Query(...),
    engine: VendorAlertEngine = Depends(get_alert_engine),
) -> AlertRecord:
    """
    Resolve an alert.
    
    CRITICAL alerts need at least 10 characters of resolution notes (400).
    """
    try:
        return await engine.resolve_alert(tenant_id, alert_id, request.user_id, request.resolution_notes)
    except VendorPerfError as e:
        raise http_error(e)


@router.post("/{alert_id}/dismiss", response_model=AlertRecord)
async def dismiss_alert(
    alert_id: uuid.UUID,
    request: DismissAlertRequest,
    tenant_id: uuid.UUID = Query(...),
    engine: VendorAlertEngine = Depends(get_alert_engine),
) -> AlertRecord:
    try:
        return await engine.dismiss_alert(tenant_id, alert_id, request.user_id, request.reason)
    except VendorPerfError as e:
        raise http_error(e)


# =============================================================================
# SWEEPS
# =============================================================================

@router.post("/esg-audit-sweep")
async def run_esg_audit_sweep(
    tenant_id: uuid.UUID = Query(...),
    as_of: Optional[date] = Query(None),
    engine: VendorAlertEngine = Depends(get_alert_engine),
) -> dict:
    """Raise REVIEW_DUE alerts for audits due within 30 days or overdue."""
    try:
        evaluated = await engine.check_esg_audit_due_dates(tenant_id, as_of)
    except VendorPerfError as e:
        raise http_error(e)
    return {"tenant_id": str(tenant_id), "alerts_generated": evaluated}
