"""
Vendor Performance - Tier Classification Schemas
Spend-tier data contracts
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class VendorTier(str, Enum):
    """Spend-based vendor tier."""
    STRATEGIC = "STRATEGIC"          # Top spend, >= 85th percentile
    PREFERRED = "PREFERRED"          # 60th-85th percentile
    TRANSACTIONAL = "TRANSACTIONAL"  # Bottom 60%


class TierChangeType(str, Enum):
    """How a tier assignment came about."""
    INITIAL = "INITIAL"
    PROMOTION = "PROMOTION"
    DEMOTION = "DEMOTION"
    MANUAL_OVERRIDE = "MANUAL_OVERRIDE"


TIER_RANK = {
    VendorTier.TRANSACTIONAL: 1,
    VendorTier.PREFERRED: 2,
    VendorTier.STRATEGIC: 3,
}


class TierClassificationResult(BaseModel):
    """Outcome of classifying one vendor. Not persisted as its own entity."""
    vendor_id: uuid.UUID
    tier: VendorTier
    total_spend: float = 0.0
    percentile_rank: float = 0.0
    previous_tier: Optional[VendorTier] = None
    tier_changed: bool = False
    mission_critical: bool = False


class TierChange(BaseModel):
    """A vendor whose tier moved during reclassification."""
    vendor_id: uuid.UUID
    vendor_code: str
    vendor_name: str
    old_tier: VendorTier
    new_tier: VendorTier
    total_spend: float
    percentile_rank: float


class ReclassificationSummary(BaseModel):
    """Result of a batch reclassification run."""
    tenant_id: uuid.UUID
    tier_counts: Dict[VendorTier, int] = Field(
        default_factory=lambda: {tier: 0 for tier in VendorTier}
    )
    tier_changes: List[TierChange] = Field(default_factory=list)
    vendors_analyzed: int = 0
    execution_time_ms: int = 0
    alert_ids: List[uuid.UUID] = Field(default_factory=list)


class TierOverrideRequest(BaseModel):
    """Manual tier override with justification."""
    tier: str
    reason: str
    user_id: uuid.UUID


class TierHistoryEntry(BaseModel):
    """Single entry in tier history."""
    previous_tier: Optional[VendorTier]
    new_tier: VendorTier
    change_type: TierChangeType
    percentile_rank: Optional[float] = None
    total_spend: Optional[float] = None
    reason: Optional[str] = None
    changed_by: Optional[uuid.UUID] = None
    recorded_at: datetime


class TierDistribution(BaseModel):
    """Active vendors by current tier."""
    strategic: int = 0
    preferred: int = 0
    transactional: int = 0
    unclassified: int = 0
    total: int = 0
