"""Vendor Performance - scorecards, spend tiers, alerts

Revision ID: 001_vendor_performance
Revises:
Create Date: 2026-10-19

Implements:
- vendors: supplier master with current spend tier
- purchase_orders: spend, delivery and quality source data
- vendor_performance: one row per vendor per calendar month
- vendor_scorecard_configs: versioned weight sets
- vendor_esg_metrics: ESG assessment per vendor period
- vendor_performance_alerts: alert lifecycle OPEN -> ACKNOWLEDGED -> RESOLVED | DISMISSED
- vendor_alert_annotations: append-only operator notes
- vendor_tier_history: audit trail of tier assignments
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = '001_vendor_performance'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # =========================================================================
    # VENDORS - Supplier master
    # Tier is null until the first classification
    # =========================================================================
    op.create_table(
        'vendors',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('vendor_code', sa.String(50), nullable=False),
        sa.Column('vendor_name', sa.String(255), nullable=False),
        sa.Column('vendor_type', sa.String(50), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('mission_critical', sa.Boolean(), nullable=False, server_default=sa.false()),
        
        sa.Column('vendor_tier', sa.String(20), nullable=True),
        sa.Column('tier_classification_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('tier_override_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('tier_override_reason', sa.Text(), nullable=True),
        
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        
        sa.UniqueConstraint('tenant_id', 'vendor_code', name='uq_vendors_tenant_code'),
        sa.CheckConstraint("vendor_tier IN ('STRATEGIC', 'PREFERRED', 'TRANSACTIONAL')", name='vendors_tier_valid'),
    )
    
    op.create_index('idx_vendors_tenant_active', 'vendors', ['tenant_id', 'is_active'])

    # =========================================================================
    # PURCHASE_ORDERS - Spend and delivery source
    # =========================================================================
    op.create_table(
        'purchase_orders',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('vendor_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('vendors.id', ondelete='CASCADE'), nullable=False),
        sa.Column('po_number', sa.String(50), nullable=False),
        sa.Column('order_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(30), nullable=False, server_default='ISSUED'),
        sa.Column('total_amount', sa.Numeric(18, 2), nullable=False, server_default='0'),
        
        sa.Column('requested_delivery_date', sa.Date(), nullable=True),
        sa.Column('promised_delivery_date', sa.Date(), nullable=True),
        sa.Column('received_date', sa.Date(), nullable=True),
        sa.Column('quantity_received', sa.Numeric(18, 4), nullable=True),
        sa.Column('quantity_rejected', sa.Numeric(18, 4), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        
        sa.CheckConstraint(
            "status IN ('DRAFT', 'ISSUED', 'PARTIALLY_RECEIVED', 'RECEIVED', 'CLOSED', 'CANCELLED')",
            name='purchase_orders_status_valid',
        ),
        sa.CheckConstraint('total_amount >= 0', name='purchase_orders_amount_non_negative'),
    )
    
    op.create_index('idx_purchase_orders_vendor_date', 'purchase_orders', ['tenant_id', 'vendor_id', 'order_date'])

    # =========================================================================
    # VENDOR_PERFORMANCE - Monthly metrics
    # One row per (tenant, vendor, year, month); recalculation upserts
    # =========================================================================
    op.create_table(
        'vendor_performance',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('vendor_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('vendors.id', ondelete='CASCADE'), nullable=False),
        sa.Column('evaluation_period_year', sa.Integer(), nullable=False),
        sa.Column('evaluation_period_month', sa.Integer(), nullable=False),
        
        # Raw counts
        sa.Column('total_pos_issued', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_pos_value', sa.Numeric(18, 2), nullable=False, server_default='0'),
        sa.Column('total_deliveries', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('on_time_deliveries', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quality_acceptances', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quality_rejections', sa.Integer(), nullable=False, server_default='0'),
        
        # Derived
        sa.Column('on_time_percentage', sa.Numeric(5, 2), nullable=True),
        sa.Column('quality_percentage', sa.Numeric(5, 2), nullable=True),
        sa.Column('defect_rate_ppm', sa.Numeric(12, 2), nullable=True),
        sa.Column('cost_index', sa.Numeric(6, 2), nullable=True),
        sa.Column('issue_resolution_rate', sa.Numeric(5, 2), nullable=True),
        
        # Manual 0-5 scores
        sa.Column('price_competitiveness_score', sa.Numeric(3, 1), nullable=True),
        sa.Column('responsiveness_score', sa.Numeric(3, 1), nullable=True),
        sa.Column('innovation_score', sa.Numeric(3, 1), nullable=True),
        sa.Column('communication_score', sa.Numeric(3, 1), nullable=True),
        
        sa.Column('overall_rating', sa.Numeric(3, 1), nullable=True),
        sa.Column('weighted_score', sa.Numeric(5, 2), nullable=True),
        
        sa.Column('vendor_tier', sa.String(20), nullable=True),
        sa.Column('tier_classification_date', sa.DateTime(timezone=True), nullable=True),
        
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), onupdate=sa.func.now()),
        
        sa.UniqueConstraint('tenant_id', 'vendor_id', 'evaluation_period_year', 'evaluation_period_month',
                            name='uq_vendor_performance_period'),
        sa.CheckConstraint('evaluation_period_month BETWEEN 1 AND 12', name='vendor_performance_month_valid'),
    )
    
    op.create_index('idx_vendor_performance_period', 'vendor_performance',
                    ['tenant_id', 'evaluation_period_year', 'evaluation_period_month'])

    # =========================================================================
    # VENDOR_SCORECARD_CONFIGS - Versioned weight sets
    # A new version closes the previous one; rows are never edited in place
    # =========================================================================
    op.create_table(
        'vendor_scorecard_configs',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('config_name', sa.String(100), nullable=False),
        sa.Column('vendor_type', sa.String(50), nullable=True),
        sa.Column('vendor_tier', sa.String(20), nullable=True),
        
        # Weights (percent, must sum to 100)
        sa.Column('quality_weight', sa.Numeric(5, 2), nullable=False),
        sa.Column('delivery_weight', sa.Numeric(5, 2), nullable=False),
        sa.Column('cost_weight', sa.Numeric(5, 2), nullable=False),
        sa.Column('service_weight', sa.Numeric(5, 2), nullable=False),
        sa.Column('innovation_weight', sa.Numeric(5, 2), nullable=False),
        sa.Column('esg_weight', sa.Numeric(5, 2), nullable=False),
        
        sa.Column('excellent_threshold', sa.Integer(), nullable=False),
        sa.Column('good_threshold', sa.Integer(), nullable=False),
        sa.Column('acceptable_threshold', sa.Integer(), nullable=False),
        sa.Column('review_frequency_months', sa.Integer(), nullable=False, server_default='3'),
        
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('effective_from_date', sa.Date(), nullable=False),
        sa.Column('effective_to_date', sa.Date(), nullable=True),
        sa.Column('created_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        
        sa.CheckConstraint('acceptable_threshold < good_threshold AND good_threshold < excellent_threshold',
                           name='scorecard_thresholds_ordered'),
        sa.CheckConstraint('review_frequency_months BETWEEN 1 AND 12', name='scorecard_review_frequency_valid'),
    )
    
    op.create_index('idx_scorecard_configs_lookup', 'vendor_scorecard_configs',
                    ['tenant_id', 'vendor_type', 'vendor_tier', 'is_active'])

    # =========================================================================
    # VENDOR_ESG_METRICS - ESG assessment per vendor period
    # =========================================================================
    op.create_table(
        'vendor_esg_metrics',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('vendor_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('vendors.id', ondelete='CASCADE'), nullable=False),
        sa.Column('evaluation_period_year', sa.Integer(), nullable=False),
        sa.Column('evaluation_period_month', sa.Integer(), nullable=False),
        
        sa.Column('carbon_footprint_tons_co2e', sa.Numeric(14, 2), nullable=True),
        sa.Column('waste_reduction_percentage', sa.Numeric(5, 2), nullable=True),
        sa.Column('renewable_energy_percentage', sa.Numeric(5, 2), nullable=True),
        
        sa.Column('environmental_score', sa.Numeric(3, 1), nullable=True),
        sa.Column('social_score', sa.Numeric(3, 1), nullable=True),
        sa.Column('governance_score', sa.Numeric(3, 1), nullable=True),
        sa.Column('esg_overall_score', sa.Numeric(3, 1), nullable=True),
        sa.Column('esg_risk_level', sa.String(20), nullable=False, server_default='UNKNOWN'),
        
        sa.Column('certifications', sa.Text(), nullable=True),
        sa.Column('last_audit_date', sa.Date(), nullable=True),
        sa.Column('next_audit_due_date', sa.Date(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        
        sa.UniqueConstraint('tenant_id', 'vendor_id', 'evaluation_period_year', 'evaluation_period_month',
                            name='uq_vendor_esg_period'),
        sa.CheckConstraint("esg_risk_level IN ('LOW', 'MEDIUM', 'HIGH', 'CRITICAL', 'UNKNOWN')",
                           name='vendor_esg_risk_valid'),
    )
    
    op.create_index('idx_vendor_esg_audit_due', 'vendor_esg_metrics', ['tenant_id', 'next_audit_due_date'])

    # =========================================================================
    # VENDOR_PERFORMANCE_ALERTS - Alert lifecycle
    # At most one OPEN alert per (vendor, type, category) inside the dedup window
    # =========================================================================
    op.create_table(
        'vendor_performance_alerts',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('vendor_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('vendors.id', ondelete='CASCADE'), nullable=False),
        sa.Column('alert_type', sa.String(30), nullable=False),
        sa.Column('severity', sa.String(20), nullable=False),
        sa.Column('metric_category', sa.String(50), nullable=True),
        sa.Column('current_value', sa.Numeric(14, 4), nullable=True),
        sa.Column('threshold_value', sa.Numeric(14, 4), nullable=True),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='OPEN'),
        
        sa.Column('acknowledged_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('acknowledged_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('resolved_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('dismissed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('dismissed_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('dismissal_reason', sa.Text(), nullable=True),
        
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        
        sa.CheckConstraint("alert_type IN ('THRESHOLD_BREACH', 'TIER_CHANGE', 'ESG_RISK', 'REVIEW_DUE')",
                           name='alerts_type_valid'),
        sa.CheckConstraint("severity IN ('INFO', 'WARNING', 'CRITICAL')", name='alerts_severity_valid'),
        sa.CheckConstraint("status IN ('OPEN', 'ACKNOWLEDGED', 'RESOLVED', 'DISMISSED')", name='alerts_status_valid'),
    )
    
    op.create_index('idx_alerts_dedup', 'vendor_performance_alerts',
                    ['tenant_id', 'vendor_id', 'alert_type', 'metric_category', 'status'])
    op.create_index('idx_alerts_tenant_status', 'vendor_performance_alerts', ['tenant_id', 'status', 'severity'])
    op.create_index('idx_alerts_open', 'vendor_performance_alerts', ['tenant_id', 'created_at'],
                    postgresql_where=sa.text("status = 'OPEN'"))

    # =========================================================================
    # VENDOR_ALERT_ANNOTATIONS - Append-only operator notes
    # Never update or delete
    # =========================================================================
    op.create_table(
        'vendor_alert_annotations',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('alert_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('vendor_performance_alerts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(20), nullable=False),
        sa.Column('actor_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        
        sa.UniqueConstraint('alert_id', 'sequence', name='uq_alert_annotation_sequence'),
        sa.CheckConstraint("kind IN ('ACKNOWLEDGED', 'RESOLVED', 'DISMISSED')", name='alert_annotation_kind_valid'),
    )

    # =========================================================================
    # VENDOR_TIER_HISTORY - Audit trail of tier assignments
    # =========================================================================
    op.create_table(
        'vendor_tier_history',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('vendor_id', postgresql.UUID(as_uuid=True),
                  sa.ForeignKey('vendors.id', ondelete='CASCADE'), nullable=False),
        sa.Column('previous_tier', sa.String(20), nullable=True),
        sa.Column('new_tier', sa.String(20), nullable=False),
        sa.Column('change_type', sa.String(20), nullable=False),
        sa.Column('percentile_rank', sa.Numeric(6, 2), nullable=True),
        sa.Column('total_spend', sa.Numeric(18, 2), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('changed_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('recorded_at', sa.DateTime(timezone=True), nullable=False),
        
        sa.CheckConstraint("change_type IN ('INITIAL', 'PROMOTION', 'DEMOTION', 'MANUAL_OVERRIDE')",
                           name='tier_history_change_type_valid'),
    )
    
    op.create_index('idx_tier_history_vendor', 'vendor_tier_history', ['tenant_id', 'vendor_id', 'recorded_at'])


def downgrade() -> None:
    op.drop_table('vendor_tier_history')
    op.drop_table('vendor_alert_annotations')
    op.drop_table('vendor_performance_alerts')
    op.drop_table('vendor_esg_metrics')
    op.drop_table('vendor_scorecard_configs')
    op.drop_table('vendor_performance')
    op.drop_table('purchase_orders')
    op.drop_table('vendors')
