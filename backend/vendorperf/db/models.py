"""
Vendor Performance - SQLAlchemy ORM Models
Authoritative database schema implementation

Column types are the portable SQLAlchemy generics (Uuid, Numeric, Date)
so the same metadata serves PostgreSQL (asyncpg) and SQLite (aiosqlite).
"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all ORM models."""
    pass


class Vendor(Base):
    """Supplier master row. Holds the current spend tier."""
    
    __tablename__ = "vendors"
    
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    vendor_code: Mapped[str] = mapped_column(String(50), nullable=False)
    vendor_name: Mapped[str] = mapped_column(String(255), nullable=False)
    vendor_type: Mapped[Optional[str]] = mapped_column(String(50))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    mission_critical: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    
    # Current tier (null until first classification)
    vendor_tier: Mapped[Optional[str]] = mapped_column(String(20))
    tier_classification_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    tier_override_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    tier_override_reason: Mapped[Optional[str]] = mapped_column(Text)
    
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    
    purchase_orders: Mapped[list["PurchaseOrder"]] = relationship(back_populates="vendor")
    
    __table_args__ = (
        UniqueConstraint("tenant_id", "vendor_code", name="uq_vendors_tenant_code"),
        CheckConstraint(
            "vendor_tier IN ('STRATEGIC', 'PREFERRED', 'TRANSACTIONAL')",
            name="vendors_tier_valid",
        ),
        Index("idx_vendors_tenant_active", "tenant_id", "is_active"),
    )


class PurchaseOrder(Base):
    """Purchase order header. Source of spend, delivery and quality counts."""
    
    __tablename__ = "purchase_orders"
    
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False
    )
    po_number: Mapped[str] = mapped_column(String(50), nullable=False)
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="ISSUED")
    total_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False, default=0)
    
    requested_delivery_date: Mapped[Optional[date]] = mapped_column(Date)
    promised_delivery_date: Mapped[Optional[date]] = mapped_column(Date)
    received_date: Mapped[Optional[date]] = mapped_column(Date)
    quantity_received: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 4))
    quantity_rejected: Mapped[Optional[Decimal]] = mapped_column(Numeric(18, 4))
    notes: Mapped[Optional[str]] = mapped_column(Text)
    
    vendor: Mapped["Vendor"] = relationship(back_populates="purchase_orders")
    
    __table_args__ = (
        CheckConstraint(
            "status IN ('DRAFT', 'ISSUED', 'PARTIALLY_RECEIVED', 'RECEIVED', 'CLOSED', 'CANCELLED')",
            name="purchase_orders_status_valid",
        ),
        CheckConstraint("total_amount >= 0", name="purchase_orders_amount_non_negative"),
        Index("idx_purchase_orders_vendor_date", "tenant_id", "vendor_id", "order_date"),
    )


class VendorPerformance(Base):
    """One evaluation period (calendar month) of vendor metrics."""
    
    __tablename__ = "vendor_performance"
    
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False
    )
    evaluation_period_year: Mapped[int] = mapped_column(Integer, nullable=False)
    evaluation_period_month: Mapped[int] = mapped_column(Integer, nullable=False)
    
    # Raw counts
    total_pos_issued: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_pos_value: Mapped[float] = mapped_column(
        Numeric(18, 2, asdecimal=False), nullable=False, default=0
    )
    total_deliveries: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    on_time_deliveries: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quality_acceptances: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    quality_rejections: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    
    # Derived
    on_time_percentage: Mapped[Optional[float]] = mapped_column(Numeric(5, 2, asdecimal=False))
    quality_percentage: Mapped[Optional[float]] = mapped_column(Numeric(5, 2, asdecimal=False))
    defect_rate_ppm: Mapped[Optional[float]] = mapped_column(Numeric(12, 2, asdecimal=False))
    cost_index: Mapped[Optional[float]] = mapped_column(Numeric(6, 2, asdecimal=False))
    issue_resolution_rate: Mapped[Optional[float]] = mapped_column(Numeric(5, 2, asdecimal=False))
    
    # Manual 0-5 scores
    price_competitiveness_score: Mapped[Optional[float]] = mapped_column(Numeric(3, 1, asdecimal=False))
    responsiveness_score: Mapped[Optional[float]] = mapped_column(Numeric(3, 1, asdecimal=False))
    innovation_score: Mapped[Optional[float]] = mapped_column(Numeric(3, 1, asdecimal=False))
    communication_score: Mapped[Optional[float]] = mapped_column(Numeric(3, 1, asdecimal=False))
    
    # Composites
    overall_rating: Mapped[Optional[float]] = mapped_column(Numeric(3, 1, asdecimal=False))
    weighted_score: Mapped[Optional[float]] = mapped_column(Numeric(5, 2, asdecimal=False))
    
    # Tier snapshot at evaluation time
    vendor_tier: Mapped[Optional[str]] = mapped_column(String(20))
    tier_classification_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    
    notes: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )
    
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "vendor_id", "evaluation_period_year", "evaluation_period_month",
            name="uq_vendor_performance_period",
        ),
        CheckConstraint(
            "evaluation_period_month BETWEEN 1 AND 12",
            name="vendor_performance_month_valid",
        ),
        Index("idx_vendor_performance_period", "tenant_id", "evaluation_period_year", "evaluation_period_month"),
    )


class ScorecardConfig(Base):
    """Versioned weight set. Closed by effective_to, never edited."""
    
    __tablename__ = "vendor_scorecard_configs"
    
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    config_name: Mapped[str] = mapped_column(String(100), nullable=False)
    vendor_type: Mapped[Optional[str]] = mapped_column(String(50))
    vendor_tier: Mapped[Optional[str]] = mapped_column(String(20))
    
    quality_weight: Mapped[float] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=False)
    delivery_weight: Mapped[float] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=False)
    cost_weight: Mapped[float] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=False)
    service_weight: Mapped[float] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=False)
    innovation_weight: Mapped[float] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=False)
    esg_weight: Mapped[float] = mapped_column(Numeric(5, 2, asdecimal=False), nullable=False)
    
    excellent_threshold: Mapped[int] = mapped_column(Integer, nullable=False)
    good_threshold: Mapped[int] = mapped_column(Integer, nullable=False)
    acceptable_threshold: Mapped[int] = mapped_column(Integer, nullable=False)
    review_frequency_months: Mapped[int] = mapped_column(Integer, nullable=False, default=3)
    
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    effective_from_date: Mapped[date] = mapped_column(Date, nullable=False)
    effective_to_date: Mapped[Optional[date]] = mapped_column(Date)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    
    __table_args__ = (
        CheckConstraint(
            "acceptable_threshold < good_threshold AND good_threshold < excellent_threshold",
            name="scorecard_thresholds_ordered",
        ),
        CheckConstraint(
            "review_frequency_months BETWEEN 1 AND 12",
            name="scorecard_review_frequency_valid",
        ),
        Index("idx_scorecard_configs_lookup", "tenant_id", "vendor_type", "vendor_tier", "is_active"),
    )


class VendorESGMetrics(Base):
    """Environmental, social and governance assessment for one period."""
    
    __tablename__ = "vendor_esg_metrics"
    
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False
    )
    evaluation_period_year: Mapped[int] = mapped_column(Integer, nullable=False)
    evaluation_period_month: Mapped[int] = mapped_column(Integer, nullable=False)
    
    carbon_footprint_tons_co2e: Mapped[Optional[float]] = mapped_column(Numeric(14, 2, asdecimal=False))
    waste_reduction_percentage: Mapped[Optional[float]] = mapped_column(Numeric(5, 2, asdecimal=False))
    renewable_energy_percentage: Mapped[Optional[float]] = mapped_column(Numeric(5, 2, asdecimal=False))
    
    environmental_score: Mapped[Optional[float]] = mapped_column(Numeric(3, 1, asdecimal=False))
    social_score: Mapped[Optional[float]] = mapped_column(Numeric(3, 1, asdecimal=False))
    governance_score: Mapped[Optional[float]] = mapped_column(Numeric(3, 1, asdecimal=False))
    esg_overall_score: Mapped[Optional[float]] = mapped_column(Numeric(3, 1, asdecimal=False))
    esg_risk_level: Mapped[str] = mapped_column(String(20), nullable=False, default="UNKNOWN")
    
    certifications: Mapped[Optional[str]] = mapped_column(Text)
    last_audit_date: Mapped[Optional[date]] = mapped_column(Date)
    next_audit_due_date: Mapped[Optional[date]] = mapped_column(Date)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "vendor_id", "evaluation_period_year", "evaluation_period_month",
            name="uq_vendor_esg_period",
        ),
        CheckConstraint(
            "esg_risk_level IN ('LOW', 'MEDIUM', 'HIGH', 'CRITICAL', 'UNKNOWN')",
            name="vendor_esg_risk_valid",
        ),
        Index("idx_vendor_esg_audit_due", "tenant_id", "next_audit_due_date"),
    )


class PerformanceAlert(Base):
    """Alert raised by the engine. OPEN until an operator acts."""
    
    __tablename__ = "vendor_performance_alerts"
    
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False
    )
    alert_type: Mapped[str] = mapped_column(String(30), nullable=False)
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    metric_category: Mapped[Optional[str]] = mapped_column(String(50))
    current_value: Mapped[Optional[float]] = mapped_column(Numeric(14, 4, asdecimal=False))
    threshold_value: Mapped[Optional[float]] = mapped_column(Numeric(14, 4, asdecimal=False))
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="OPEN")
    
    acknowledged_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    acknowledged_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    resolved_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    dismissed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    dismissed_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    dismissal_reason: Mapped[Optional[str]] = mapped_column(Text)
    
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    
    annotations: Mapped[list["AlertAnnotation"]] = relationship(
        back_populates="alert",
        cascade="all, delete-orphan",
        order_by="AlertAnnotation.sequence",
    )
    
    __table_args__ = (
        CheckConstraint(
            "alert_type IN ('THRESHOLD_BREACH', 'TIER_CHANGE', 'ESG_RISK', 'REVIEW_DUE')",
            name="alerts_type_valid",
        ),
        CheckConstraint(
            "severity IN ('INFO', 'WARNING', 'CRITICAL')",
            name="alerts_severity_valid",
        ),
        CheckConstraint(
            "status IN ('OPEN', 'ACKNOWLEDGED', 'RESOLVED', 'DISMISSED')",
            name="alerts_status_valid",
        ),
        Index("idx_alerts_dedup", "tenant_id", "vendor_id", "alert_type", "metric_category", "status"),
        Index("idx_alerts_tenant_status", "tenant_id", "status", "severity"),
    )


class AlertAnnotation(Base):
    """Append-only operator note on an alert. Never updated or deleted."""
    
    __tablename__ = "vendor_alert_annotations"
    
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    alert_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("vendor_performance_alerts.id", ondelete="CASCADE"), nullable=False
    )
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    actor_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    
    alert: Mapped["PerformanceAlert"] = relationship(back_populates="annotations")
    
    __table_args__ = (
        UniqueConstraint("alert_id", "sequence", name="uq_alert_annotation_sequence"),
        CheckConstraint(
            "kind IN ('ACKNOWLEDGED', 'RESOLVED', 'DISMISSED')",
            name="alert_annotation_kind_valid",
        ),
    )


class VendorTierHistory(Base):
    """Audit trail of tier assignments."""
    
    __tablename__ = "vendor_tier_history"
    
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("vendors.id", ondelete="CASCADE"), nullable=False
    )
    previous_tier: Mapped[Optional[str]] = mapped_column(String(20))
    new_tier: Mapped[str] = mapped_column(String(20), nullable=False)
    change_type: Mapped[str] = mapped_column(String(20), nullable=False)
    percentile_rank: Mapped[Optional[float]] = mapped_column(Numeric(6, 2, asdecimal=False))
    total_spend: Mapped[Optional[float]] = mapped_column(Numeric(18, 2, asdecimal=False))
    reason: Mapped[Optional[str]] = mapped_column(Text)
    changed_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    
    __table_args__ = (
        CheckConstraint(
            "change_type IN ('INITIAL', 'PROMOTION', 'DEMOTION', 'MANUAL_OVERRIDE')",
            name="tier_history_change_type_valid",
        ),
        Index("idx_tier_history_vendor", "tenant_id", "vendor_id", "recorded_at"),
    )
