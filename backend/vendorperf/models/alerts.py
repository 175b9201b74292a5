"""
Vendor Performance - Alert Schemas
Alert candidates, persisted alert views and workflow requests
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class AlertType(str, Enum):
    THRESHOLD_BREACH = "THRESHOLD_BREACH"
    TIER_CHANGE = "TIER_CHANGE"
    ESG_RISK = "ESG_RISK"
    REVIEW_DUE = "REVIEW_DUE"


class AlertSeverity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class AlertStatus(str, Enum):
    """
    Alert lifecycle.
    
    OPEN -> ACKNOWLEDGED -> RESOLVED | DISMISSED
    OPEN -> RESOLVED | DISMISSED
    """
    OPEN = "OPEN"
    ACKNOWLEDGED = "ACKNOWLEDGED"
    RESOLVED = "RESOLVED"
    DISMISSED = "DISMISSED"


class MetricCategory(str, Enum):
    OVERALL_SCORE = "OVERALL_SCORE"
    QUALITY = "QUALITY"
    DELIVERY = "DELIVERY"
    DEFECT_RATE = "DEFECT_RATE"
    ESG_RISK = "ESG_RISK"
    ESG_AUDIT = "ESG_AUDIT"
    TIER_CLASSIFICATION = "TIER_CLASSIFICATION"


# Dashboard ordering: most severe first
SEVERITY_ORDER = {
    AlertSeverity.CRITICAL: 1,
    AlertSeverity.WARNING: 2,
    AlertSeverity.INFO: 3,
}


class AlertCandidate(BaseModel):
    """An alert the engine wants raised. Deduplicated on insert."""
    tenant_id: uuid.UUID
    vendor_id: uuid.UUID
    alert_type: AlertType
    severity: AlertSeverity
    metric_category: Optional[str] = None
    current_value: Optional[float] = None
    threshold_value: Optional[float] = None
    message: str


class AlertAnnotationRecord(BaseModel):
    """One operator note, in insertion order."""
    sequence: int
    kind: AlertStatus
    actor_id: uuid.UUID
    text: str
    created_at: datetime


class AlertRecord(BaseModel):
    """Persisted alert as returned to callers."""
    id: uuid.UUID
    tenant_id: uuid.UUID
    vendor_id: uuid.UUID
    vendor_code: Optional[str] = None
    vendor_name: Optional[str] = None
    alert_type: AlertType
    severity: AlertSeverity
    metric_category: Optional[str] = None
    current_value: Optional[float] = None
    threshold_value: Optional[float] = None
    message: str
    status: AlertStatus
    
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[uuid.UUID] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[uuid.UUID] = None
    dismissed_at: Optional[datetime] = None
    dismissed_by: Optional[uuid.UUID] = None
    dismissal_reason: Optional[str] = None
    
    annotations: List[AlertAnnotationRecord] = Field(default_factory=list)
    created_at: datetime


class AlertStatistics(BaseModel):
    """Dashboard counters for a tenant."""
    total_open: int = 0
    critical_open: int = 0
    warning_open: int = 0
    info_open: int = 0
    resolved_last_30_days: int = 0
    average_resolution_time_hours: float = 0.0


class AlertEvent(BaseModel):
    """Notification sink payload for a newly created alert."""
    alert_id: uuid.UUID
    tenant_id: uuid.UUID
    vendor_id: uuid.UUID
    severity: AlertSeverity
    alert_type: AlertType
    message: str
    timestamp: datetime


# =============================================================================
# WORKFLOW REQUESTS
# =============================================================================

class AcknowledgeAlertRequest(BaseModel):
    user_id: uuid.UUID
    notes: Optional[str] = None


class ResolveAlertRequest(BaseModel):
    user_id: uuid.UUID
    resolution_notes: str = ""


class DismissAlertRequest(BaseModel):
    user_id: uuid.UUID
    reason: str = ""
