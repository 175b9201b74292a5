"""
Vendor Performance - Alert Rule Tests

Threshold evaluation, tier-change and audit-due alert construction.
"""

import uuid
from datetime import date

import pytest

from conftest import add_vendor
from vendorperf.models.alerts import AlertSeverity, AlertType, MetricCategory
from vendorperf.models.performance import ESGRiskLevel, ScorecardMetrics
from vendorperf.models.tiers import VendorTier
from vendorperf.services.alert_engine import (
    audit_due_alert,
    build_tier_change_alert,
    check_performance_thresholds,
    tier_change_severity,
)

TENANT = uuid.uuid4()
VENDOR = uuid.uuid4()


def _check(score, esg=None, previous=None, **metrics):
    return check_performance_thresholds(
        TENANT, VENDOR, ScorecardMetrics(**metrics), esg, score, previous,
    )


def _summary(candidates):
    return {(c.severity, c.metric_category) for c in candidates}


class TestThresholds:
    """Independent alert rules over one vendor period."""
    
    def test_healthy_vendor_raises_nothing(self):
        assert _check(92.0, ESGRiskLevel.LOW, quality_percentage=99, on_time_percentage=97) == []
    
    def test_score_below_60_is_critical(self):
        alerts = _check(55.0)
        assert _summary(alerts) == {(AlertSeverity.CRITICAL, "OVERALL_SCORE")}
        assert alerts[0].threshold_value == 60.0
        assert "below acceptable threshold" in alerts[0].message
    
    def test_score_below_75_is_warning(self):
        alerts = _check(70.0)
        assert _summary(alerts) == {(AlertSeverity.WARNING, "OVERALL_SCORE")}
        assert alerts[0].threshold_value == 75.0
    
    def test_score_boundaries(self):
        """60 is a warning, 75 is clean."""
        assert _summary(_check(60.0)) == {(AlertSeverity.WARNING, "OVERALL_SCORE")}
        assert _check(75.0) == []
    
    def test_unscored_period_skips_overall_rules(self):
        """No score means no overall or improvement alert; category rules still apply."""
        assert _check(None, previous=40.0) == []
        alerts = _check(None, quality_percentage=50)
        assert _summary(alerts) == {(AlertSeverity.CRITICAL, "QUALITY")}
    
    def test_quality_breach_only(self):
        """Quality 65 with on-time 90 and score 80 is one CRITICAL quality alert."""
        alerts = _check(80.0, quality_percentage=65, on_time_percentage=90)
        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.severity is AlertSeverity.CRITICAL
        assert alert.alert_type is AlertType.THRESHOLD_BREACH
        assert alert.metric_category == MetricCategory.QUALITY.value
        assert alert.current_value == 65.0
        assert alert.threshold_value == 70.0
    
    def test_delivery_breach(self):
        alerts = _check(80.0, on_time_percentage=74.9)
        assert _summary(alerts) == {(AlertSeverity.CRITICAL, "DELIVERY")}
    
    def test_defect_rate_breach(self):
        alerts = _check(80.0, defect_rate_ppm=1500)
        assert _summary(alerts) == {(AlertSeverity.WARNING, "DEFECT_RATE")}
        assert "1500 PPM" in alerts[0].message
    
    def test_defect_rate_at_limit_is_clean(self):
        assert _check(80.0, defect_rate_ppm=1000) == []
    
    def test_rules_are_independent(self):
        alerts = _check(50.0, quality_percentage=60, on_time_percentage=50, defect_rate_ppm=5000)
        assert _summary(alerts) == {
            (AlertSeverity.CRITICAL, "OVERALL_SCORE"),
            (AlertSeverity.CRITICAL, "QUALITY"),
            (AlertSeverity.CRITICAL, "DELIVERY"),
            (AlertSeverity.WARNING, "DEFECT_RATE"),
        }
    
    def test_improvement_is_info(self):
        """+10 points over the previous period is positive reinforcement."""
        alerts = _check(85.0, previous=75.0)
        assert _summary(alerts) == {(AlertSeverity.INFO, "OVERALL_SCORE")}
        assert alerts[0].threshold_value == 75.0
        assert "+10.0 points" in alerts[0].message
    
    def test_small_improvement_ignored(self):
        assert _check(85.0, previous=76.0) == []
    
    @pytest.mark.parametrize("level", [ESGRiskLevel.HIGH, ESGRiskLevel.CRITICAL, ESGRiskLevel.UNKNOWN])
    def test_esg_critical_levels(self, level):
        alerts = _check(90.0, level)
        assert len(alerts) == 1
        assert alerts[0].alert_type is AlertType.ESG_RISK
        assert alerts[0].severity is AlertSeverity.CRITICAL
        assert level.value in alerts[0].message
    
    def test_esg_medium_is_warning(self):
        alerts = _check(90.0, ESGRiskLevel.MEDIUM)
        assert _summary(alerts) == {(AlertSeverity.WARNING, "ESG_RISK")}
    
    def test_no_esg_data_raises_nothing(self):
        assert _check(90.0, None) == []


class TestTierChangeAlerts:
    """Severity and wording of tier-change alerts."""
    
    def test_severity_rules(self):
        assert tier_change_severity(VendorTier.PREFERRED, VendorTier.STRATEGIC) is AlertSeverity.INFO
        assert tier_change_severity(None, VendorTier.STRATEGIC) is AlertSeverity.INFO
        assert tier_change_severity(VendorTier.STRATEGIC, VendorTier.PREFERRED) is AlertSeverity.WARNING
        assert tier_change_severity(VendorTier.PREFERRED, VendorTier.TRANSACTIONAL) is AlertSeverity.WARNING
        assert tier_change_severity(VendorTier.TRANSACTIONAL, VendorTier.PREFERRED) is AlertSeverity.INFO
    
    def test_automatic_message_includes_spend(self):
        alert = build_tier_change_alert(
            TENANT, VENDOR, VendorTier.PREFERRED, VendorTier.STRATEGIC,
            total_spend=125000.5, percentile_rank=90.0,
        )
        assert alert.alert_type is AlertType.TIER_CHANGE
        assert alert.metric_category == "TIER_CLASSIFICATION"
        assert alert.current_value == 90.0
        assert "$125,000.50" in alert.message
        assert "90.00%" in alert.message
    
    def test_manual_message_includes_reason(self):
        alert = build_tier_change_alert(
            TENANT, VENDOR, None, VendorTier.PREFERRED, manual_reason="Backup mill",
        )
        assert "from UNCLASSIFIED to PREFERRED" in alert.message
        assert alert.message.endswith("Reason: Backup mill")


class TestAuditDueAlerts:
    """ESG audit due-date severity."""
    
    AS_OF = date(2026, 6, 15)
    
    def test_upcoming_audit_is_info(self):
        alert = audit_due_alert(TENANT, VENDOR, date(2026, 7, 1), None, self.AS_OF)
        assert alert.severity is AlertSeverity.INFO
        assert alert.alert_type is AlertType.REVIEW_DUE
        assert "due in 16 days" in alert.message
        assert "Last audit: NEVER" in alert.message
    
    def test_recently_overdue_is_warning(self):
        alert = audit_due_alert(TENANT, VENDOR, date(2026, 6, 1), date(2025, 6, 1), self.AS_OF)
        assert alert.severity is AlertSeverity.WARNING
        assert "overdue by 14 days" in alert.message
    
    def test_twelve_months_overdue_is_warning(self):
        alert = audit_due_alert(TENANT, VENDOR, date(2025, 5, 1), None, self.AS_OF)
        assert alert.severity is AlertSeverity.WARNING
        assert "overdue by 13 months" in alert.message
    
    def test_eighteen_months_overdue_is_critical(self):
        alert = audit_due_alert(TENANT, VENDOR, date(2024, 11, 1), None, self.AS_OF)
        assert alert.severity is AlertSeverity.CRITICAL
        assert "CRITICALLY overdue by 19 months" in alert.message


class TestEvaluationAlerts:
    """Rule output flowing through the engine."""
    
    async def test_quality_breach_creates_single_alert(self, session_maker, alerts, tenant_id):
        vendor = await add_vendor(session_maker, tenant_id, "V-A")
        candidates = check_performance_thresholds(
            tenant_id, vendor,
            ScorecardMetrics(quality_percentage=65, on_time_percentage=90),
            None, 80.0,
        )
        ids = [await alerts.generate_alert(c) for c in candidates]
        
        stored = await alerts.get_open_alerts(tenant_id)
        assert [a.id for a in stored] == ids
        assert stored[0].severity is AlertSeverity.CRITICAL
        assert stored[0].metric_category == "QUALITY"
        assert stored[0].vendor_code == "V-A"
