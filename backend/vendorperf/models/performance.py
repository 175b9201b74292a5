"""
Vendor Performance - Scorecard Schemas
Period metrics, scorecard configuration and ESG data contracts
"""

import uuid
from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from vendorperf.core.types import Percentage, StarScore
from vendorperf.models.tiers import VendorTier


class ESGRiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"
    UNKNOWN = "UNKNOWN"


class PerformanceTrend(str, Enum):
    """Direction of the recent overall rating."""
    IMPROVING = "IMPROVING"
    STABLE = "STABLE"
    DECLINING = "DECLINING"


# =============================================================================
# RAW METRICS
# =============================================================================

class ScorecardMetrics(BaseModel):
    """
    Inputs to the weighted scorecard. Every field is optional; a family
    with no inputs is left out of the score entirely.
    """
    quality_percentage: Optional[Percentage] = None
    on_time_percentage: Optional[Percentage] = None
    cost_index: Optional[float] = Field(None, ge=0)  # total cost of ownership, 100 = par
    responsiveness_score: Optional[StarScore] = None
    communication_score: Optional[StarScore] = None
    issue_resolution_rate: Optional[Percentage] = None
    innovation_score: Optional[StarScore] = None
    defect_rate_ppm: Optional[float] = Field(None, ge=0)


class VendorPerformanceRecord(BaseModel):
    """One vendor, one calendar month."""
    id: uuid.UUID
    tenant_id: uuid.UUID
    vendor_id: uuid.UUID
    vendor_code: Optional[str] = None
    vendor_name: Optional[str] = None
    evaluation_period_year: int
    evaluation_period_month: int
    
    total_pos_issued: int = 0
    total_pos_value: float = 0.0
    total_deliveries: int = 0
    on_time_deliveries: int = 0
    quality_acceptances: int = 0
    quality_rejections: int = 0
    
    on_time_percentage: Optional[float] = None
    quality_percentage: Optional[float] = None
    defect_rate_ppm: Optional[float] = None
    cost_index: Optional[float] = None
    issue_resolution_rate: Optional[float] = None
    
    price_competitiveness_score: Optional[float] = None
    responsiveness_score: Optional[float] = None
    innovation_score: Optional[float] = None
    communication_score: Optional[float] = None
    
    overall_rating: Optional[float] = None
    weighted_score: Optional[float] = None
    vendor_tier: Optional[VendorTier] = None
    tier_classification_date: Optional[datetime] = None
    
    def to_metrics(self) -> ScorecardMetrics:
        return ScorecardMetrics(
            quality_percentage=self.quality_percentage,
            on_time_percentage=self.on_time_percentage,
            cost_index=self.cost_index,
            responsiveness_score=self.responsiveness_score,
            communication_score=self.communication_score,
            issue_resolution_rate=self.issue_resolution_rate,
            innovation_score=self.innovation_score,
            defect_rate_ppm=self.defect_rate_ppm,
        )


class ManualScoresUpdate(BaseModel):
    """Buyer-entered scores for a period. Omitted fields are left unchanged."""
    price_competitiveness_score: Optional[StarScore] = None
    responsiveness_score: Optional[StarScore] = None
    innovation_score: Optional[StarScore] = None
    communication_score: Optional[StarScore] = None
    cost_index: Optional[float] = Field(None, ge=0)
    issue_resolution_rate: Optional[Percentage] = None
    notes: Optional[str] = None


# =============================================================================
# SCORECARD CONFIGURATION
# =============================================================================

class ScorecardWeights(BaseModel):
    """Category weights in percent. Must sum to 100."""
    quality_weight: float = 30.0
    delivery_weight: float = 25.0
    cost_weight: float = 20.0
    service_weight: float = 15.0
    innovation_weight: float = 5.0
    esg_weight: float = 5.0


class ScorecardConfigInput(ScorecardWeights):
    """New scorecard configuration version."""
    config_name: str
    vendor_type: Optional[str] = None
    vendor_tier: Optional[VendorTier] = None
    excellent_threshold: int = 90
    good_threshold: int = 75
    acceptable_threshold: int = 60
    review_frequency_months: int = 3
    effective_from_date: Optional[date] = None


class ScorecardConfigRecord(ScorecardConfigInput):
    id: Optional[uuid.UUID] = None  # None for the built-in default
    tenant_id: Optional[uuid.UUID] = None
    is_active: bool = True
    effective_to_date: Optional[date] = None
    created_by: Optional[uuid.UUID] = None


# =============================================================================
# ESG
# =============================================================================

class ESGMetricsInput(BaseModel):
    """ESG assessment for one vendor and period."""
    vendor_id: uuid.UUID
    evaluation_period_year: int = Field(..., ge=2000, le=2100)
    evaluation_period_month: int = Field(..., ge=1, le=12)
    
    carbon_footprint_tons_co2e: Optional[float] = Field(None, ge=0)
    waste_reduction_percentage: Optional[Percentage] = None
    renewable_energy_percentage: Optional[Percentage] = None
    
    environmental_score: Optional[StarScore] = None
    social_score: Optional[StarScore] = None
    governance_score: Optional[StarScore] = None
    esg_overall_score: Optional[StarScore] = None
    esg_risk_level: ESGRiskLevel = ESGRiskLevel.UNKNOWN
    
    certifications: Optional[str] = None
    last_audit_date: Optional[date] = None
    next_audit_due_date: Optional[date] = None
    notes: Optional[str] = None


class ESGMetricsRecord(ESGMetricsInput):
    id: uuid.UUID
    tenant_id: uuid.UUID


# =============================================================================
# SCORECARDS & REPORTS
# =============================================================================

class MonthlyPerformance(BaseModel):
    year: int
    month: int
    on_time_percentage: Optional[float] = None
    quality_percentage: Optional[float] = None
    overall_rating: Optional[float] = None
    weighted_score: Optional[float] = None


class VendorScorecard(BaseModel):
    """Rolling twelve-month view of one vendor."""
    vendor_id: uuid.UUID
    vendor_code: str
    vendor_name: str
    current_tier: Optional[VendorTier] = None
    mission_critical: bool = False
    
    rolling_on_time_percentage: Optional[float] = None
    rolling_quality_percentage: Optional[float] = None
    rolling_avg_rating: Optional[float] = None
    months_tracked: int = 0
    
    last_month_rating: Optional[float] = None
    last_3_months_avg_rating: Optional[float] = None
    last_6_months_avg_rating: Optional[float] = None
    trend: PerformanceTrend = PerformanceTrend.STABLE
    
    latest_weighted_score: Optional[float] = None
    esg_risk_level: Optional[ESGRiskLevel] = None
    esg_overall_score: Optional[float] = None
    
    monthly_performance: List[MonthlyPerformance] = Field(default_factory=list)


class VendorRanking(BaseModel):
    vendor_id: uuid.UUID
    vendor_code: str
    vendor_name: str
    overall_rating: Optional[float] = None
    weighted_score: Optional[float] = None
    on_time_percentage: Optional[float] = None
    quality_percentage: Optional[float] = None


class VendorComparisonReport(BaseModel):
    year: int
    month: int
    vendor_type: Optional[str] = None
    top_performers: List[VendorRanking] = Field(default_factory=list)
    bottom_performers: List[VendorRanking] = Field(default_factory=list)
    total_vendors_evaluated: int = 0
    avg_on_time_percentage: Optional[float] = None
    avg_quality_percentage: Optional[float] = None
    avg_overall_rating: Optional[float] = None


class PeriodEvaluation(BaseModel):
    """Outcome of the monthly evaluation path for one vendor."""
    record: VendorPerformanceRecord
    weighted_score: Optional[float] = None
    previous_score: Optional[float] = None
    alert_ids: List[uuid.UUID] = Field(default_factory=list)
