"""
Vendor Performance - Alert Workflow Tests

Deduplication, lifecycle transitions, post-commit publishing, dashboard
queries and the ESG audit sweep.
"""

import uuid
from datetime import date

import pytest

from conftest import FailingPublisher, add_esg, add_vendor
from vendorperf.core.errors import AlertNotFound, ConflictError, ValidationError
from vendorperf.models.alerts import AlertCandidate, AlertSeverity, AlertStatus, AlertType
from vendorperf.services.alert_engine import VendorAlertEngine


def _candidate(tenant_id, vendor_id, severity=AlertSeverity.CRITICAL, category="QUALITY", message=None):
    return AlertCandidate(
        tenant_id=tenant_id,
        vendor_id=vendor_id,
        alert_type=AlertType.THRESHOLD_BREACH,
        severity=severity,
        metric_category=category,
        current_value=65.0,
        threshold_value=70.0,
        message=message or "Quality performance (65.0%) is critically low.",
    )


@pytest.fixture
async def vendor_id(session_maker, tenant_id):
    return await add_vendor(session_maker, tenant_id, "V-A")


class TestDeduplication:
    """At most one OPEN alert per vendor, type and category per week."""
    
    async def test_repeat_returns_same_id(self, alerts, publisher, tenant_id, vendor_id):
        """Second trigger reuses the alert; the first message wins."""
        first = await alerts.generate_alert(_candidate(tenant_id, vendor_id))
        second = await alerts.generate_alert(
            _candidate(tenant_id, vendor_id, message="Quality is still low.")
        )
        
        assert first == second
        stored = await alerts.get_alert(tenant_id, first)
        assert stored.message.startswith("Quality performance (65.0%)")
        assert len(publisher.get_event_log()) == 1
    
    async def test_window_expires_after_seven_days(self, alerts, clock, tenant_id, vendor_id):
        first = await alerts.generate_alert(_candidate(tenant_id, vendor_id))
        clock.advance(days=7, seconds=1)
        second = await alerts.generate_alert(_candidate(tenant_id, vendor_id))
        assert first != second
    
    async def test_inside_window_still_deduplicated(self, alerts, clock, tenant_id, vendor_id):
        first = await alerts.generate_alert(_candidate(tenant_id, vendor_id))
        clock.advance(days=6, hours=23)
        assert await alerts.generate_alert(_candidate(tenant_id, vendor_id)) == first
    
    async def test_different_category_is_separate(self, alerts, tenant_id, vendor_id):
        quality = await alerts.generate_alert(_candidate(tenant_id, vendor_id, category="QUALITY"))
        delivery = await alerts.generate_alert(_candidate(tenant_id, vendor_id, category="DELIVERY"))
        assert quality != delivery
    
    async def test_null_category_matches_null(self, alerts, tenant_id, vendor_id):
        first = await alerts.generate_alert(_candidate(tenant_id, vendor_id, category=None))
        assert await alerts.generate_alert(_candidate(tenant_id, vendor_id, category=None)) == first
    
    async def test_acknowledged_alert_does_not_absorb_new_trigger(self, alerts, tenant_id, vendor_id, user_id):
        """Only OPEN alerts deduplicate."""
        first = await alerts.generate_alert(_candidate(tenant_id, vendor_id))
        await alerts.acknowledge_alert(tenant_id, first, user_id)
        assert await alerts.generate_alert(_candidate(tenant_id, vendor_id)) != first
    
    async def test_publish_failure_does_not_fail_caller(self, session_maker, clock, tenant_id, vendor_id):
        """The alert is committed even when the sink is down."""
        failing = FailingPublisher()
        engine = VendorAlertEngine(session_maker=session_maker, publisher=failing, clock=clock)
        
        alert_id = await engine.generate_alert(_candidate(tenant_id, vendor_id))
        
        assert failing.attempts == 1
        assert (await engine.get_alert(tenant_id, alert_id)).status is AlertStatus.OPEN
    
    async def test_event_payload(self, alerts, publisher, clock, tenant_id, vendor_id):
        alert_id = await alerts.generate_alert(_candidate(tenant_id, vendor_id))
        event = publisher.get_event_log()[0]
        assert event["alert_id"] == str(alert_id)
        assert event["severity"] == "CRITICAL"
        assert event["alert_type"] == "THRESHOLD_BREACH"


class TestLifecycle:
    """OPEN -> ACKNOWLEDGED -> RESOLVED | DISMISSED."""
    
    async def test_acknowledge(self, alerts, clock, tenant_id, vendor_id, user_id):
        alert_id = await alerts.generate_alert(_candidate(tenant_id, vendor_id))
        
        record = await alerts.acknowledge_alert(tenant_id, alert_id, user_id, "Looking into it")
        
        assert record.status is AlertStatus.ACKNOWLEDGED
        assert record.acknowledged_by == user_id
        assert record.acknowledged_at == clock()
        assert [(a.kind, a.text) for a in record.annotations] == [
            (AlertStatus.ACKNOWLEDGED, "Looking into it"),
        ]
    
    async def test_acknowledge_twice_conflicts(self, alerts, tenant_id, vendor_id, user_id):
        alert_id = await alerts.generate_alert(_candidate(tenant_id, vendor_id))
        await alerts.acknowledge_alert(tenant_id, alert_id, user_id)
        
        with pytest.raises(ConflictError) as exc:
            await alerts.acknowledge_alert(tenant_id, alert_id, user_id)
        assert exc.value.current_status == "ACKNOWLEDGED"
    
    async def test_critical_needs_ten_characters(self, alerts, tenant_id, vendor_id, user_id):
        """Five characters fail and leave the alert untouched; ten succeed."""
        alert_id = await alerts.generate_alert(_candidate(tenant_id, vendor_id))
        
        with pytest.raises(ValidationError, match="minimum 10 characters"):
            await alerts.resolve_alert(tenant_id, alert_id, user_id, "fixed")
        assert (await alerts.get_alert(tenant_id, alert_id)).status is AlertStatus.OPEN
        
        record = await alerts.resolve_alert(tenant_id, alert_id, user_id, "  QA re-run!  ")
        assert record.status is AlertStatus.RESOLVED
        assert record.resolved_by == user_id
    
    async def test_notes_are_trimmed_before_counting(self, alerts, tenant_id, vendor_id, user_id):
        alert_id = await alerts.generate_alert(_candidate(tenant_id, vendor_id))
        with pytest.raises(ValidationError):
            await alerts.resolve_alert(tenant_id, alert_id, user_id, "    fixed       ")
    
    async def test_warning_resolves_without_notes(self, alerts, tenant_id, vendor_id, user_id):
        alert_id = await alerts.generate_alert(
            _candidate(tenant_id, vendor_id, severity=AlertSeverity.WARNING)
        )
        record = await alerts.resolve_alert(tenant_id, alert_id, user_id, "")
        assert record.status is AlertStatus.RESOLVED
        assert record.annotations == []
    
    async def test_resolve_from_acknowledged(self, alerts, tenant_id, vendor_id, user_id):
        alert_id = await alerts.generate_alert(_candidate(tenant_id, vendor_id))
        await alerts.acknowledge_alert(tenant_id, alert_id, user_id, "On it")
        
        record = await alerts.resolve_alert(tenant_id, alert_id, user_id, "Supplier replaced the press")
        
        assert [a.sequence for a in record.annotations] == [1, 2]
        assert record.annotations[1].kind is AlertStatus.RESOLVED
    
    async def test_resolved_is_terminal(self, alerts, tenant_id, vendor_id, user_id):
        alert_id = await alerts.generate_alert(_candidate(tenant_id, vendor_id))
        await alerts.resolve_alert(tenant_id, alert_id, user_id, "Supplier replaced the press")
        
        with pytest.raises(ConflictError):
            await alerts.resolve_alert(tenant_id, alert_id, user_id, "Supplier replaced the press")
        with pytest.raises(ConflictError):
            await alerts.dismiss_alert(tenant_id, alert_id, user_id, "noise")
        with pytest.raises(ConflictError):
            await alerts.acknowledge_alert(tenant_id, alert_id, user_id)
    
    async def test_dismiss(self, alerts, tenant_id, vendor_id, user_id):
        """Dismissal has no minimum reason length, even for CRITICAL."""
        alert_id = await alerts.generate_alert(_candidate(tenant_id, vendor_id))
        
        record = await alerts.dismiss_alert(tenant_id, alert_id, user_id, "dup")
        
        assert record.status is AlertStatus.DISMISSED
        assert record.dismissal_reason == "dup"
        assert record.dismissed_by == user_id
    
    async def test_dismissed_cannot_be_resolved(self, alerts, tenant_id, vendor_id, user_id):
        """Resolve checks state before notes, so short notes still conflict."""
        alert_id = await alerts.generate_alert(_candidate(tenant_id, vendor_id))
        await alerts.dismiss_alert(tenant_id, alert_id, user_id, "")
        
        with pytest.raises(ConflictError):
            await alerts.resolve_alert(tenant_id, alert_id, user_id, "x")
    
    async def test_unknown_alert(self, alerts, tenant_id, user_id):
        with pytest.raises(AlertNotFound):
            await alerts.acknowledge_alert(tenant_id, uuid.uuid4(), user_id)
    
    async def test_other_tenant_cannot_touch_alert(self, alerts, tenant_id, vendor_id, user_id):
        alert_id = await alerts.generate_alert(_candidate(tenant_id, vendor_id))
        with pytest.raises(AlertNotFound):
            await alerts.dismiss_alert(uuid.uuid4(), alert_id, user_id, "not mine")


class TestQueries:
    """Dashboard listing and statistics."""
    
    async def test_open_alerts_ordered_by_severity_then_newest(self, session_maker, alerts, clock, tenant_id, vendor_id):
        info = await alerts.generate_alert(
            _candidate(tenant_id, vendor_id, severity=AlertSeverity.INFO, category="OVERALL_SCORE")
        )
        clock.advance(minutes=1)
        critical_old = await alerts.generate_alert(_candidate(tenant_id, vendor_id, category="QUALITY"))
        clock.advance(minutes=1)
        warning = await alerts.generate_alert(
            _candidate(tenant_id, vendor_id, severity=AlertSeverity.WARNING, category="DEFECT_RATE")
        )
        clock.advance(minutes=1)
        critical_new = await alerts.generate_alert(_candidate(tenant_id, vendor_id, category="DELIVERY"))
        
        listed = [a.id for a in await alerts.get_open_alerts(tenant_id)]
        
        assert listed == [critical_new, critical_old, warning, info]
    
    async def test_filters(self, alerts, tenant_id, vendor_id, user_id):
        critical = await alerts.generate_alert(_candidate(tenant_id, vendor_id, category="QUALITY"))
        warning = await alerts.generate_alert(
            _candidate(tenant_id, vendor_id, severity=AlertSeverity.WARNING, category="DEFECT_RATE")
        )
        await alerts.resolve_alert(tenant_id, warning, user_id, "")
        
        assert [a.id for a in await alerts.get_open_alerts(tenant_id)] == [critical]
        resolved = await alerts.get_open_alerts(tenant_id, status=AlertStatus.RESOLVED)
        assert [a.id for a in resolved] == [warning]
        assert await alerts.get_open_alerts(tenant_id, severity=AlertSeverity.INFO) == []
        assert await alerts.get_open_alerts(tenant_id, vendor_id=uuid.uuid4()) == []
    
    async def test_statistics(self, alerts, clock, tenant_id, vendor_id, user_id):
        await alerts.generate_alert(_candidate(tenant_id, vendor_id, category="QUALITY"))
        warning = await alerts.generate_alert(
            _candidate(tenant_id, vendor_id, severity=AlertSeverity.WARNING, category="DEFECT_RATE")
        )
        info = await alerts.generate_alert(
            _candidate(tenant_id, vendor_id, severity=AlertSeverity.INFO, category="OVERALL_SCORE")
        )
        await alerts.acknowledge_alert(tenant_id, info, user_id)
        clock.advance(hours=2)
        await alerts.resolve_alert(tenant_id, warning, user_id, "")
        
        stats = await alerts.get_alert_statistics(tenant_id)
        
        assert stats.total_open == 2
        assert stats.critical_open == 1
        assert stats.warning_open == 0
        assert stats.info_open == 1
        assert stats.resolved_last_30_days == 1
        assert stats.average_resolution_time_hours == pytest.approx(2.0)

    async def test_statistics_resolution_window(self, alerts, clock, tenant_id, vendor_id, user_id):
        """Old resolutions count toward the average but not the 30-day total."""
        old = await alerts.generate_alert(_candidate(tenant_id, vendor_id, category="QUALITY"))
        clock.advance(hours=4)
        await alerts.resolve_alert(tenant_id, old, user_id, "Reworked the coating run")

        clock.advance(days=40)
        recent = await alerts.generate_alert(
            _candidate(tenant_id, vendor_id, severity=AlertSeverity.WARNING, category="DEFECT_RATE")
        )
        clock.advance(hours=2)
        await alerts.resolve_alert(tenant_id, recent, user_id, "")

        stats = await alerts.get_alert_statistics(tenant_id)

        assert stats.total_open == 0
        assert stats.resolved_last_30_days == 1
        assert stats.average_resolution_time_hours == pytest.approx(3.0)

    async def test_statistics_without_history(self, alerts, tenant_id):
        stats = await alerts.get_alert_statistics(tenant_id)
        assert stats.resolved_last_30_days == 0
        assert stats.average_resolution_time_hours == 0.0


class TestESGAuditSweep:
    """REVIEW_DUE alerts from the latest ESG record per vendor."""
    
    AS_OF = date(2026, 6, 15)
    
    async def test_sweep_severities(self, session_maker, alerts, tenant_id):
        due_dates = {
            "V-A": date(2024, 11, 1),   # 19 months overdue
            "V-B": date(2025, 5, 1),    # 13 months overdue
            "V-C": date(2026, 6, 1),    # 14 days overdue
            "V-D": date(2026, 7, 1),    # due in 16 days
            "V-E": date(2026, 9, 1),    # outside the lookahead
        }
        vendors = {}
        for code, due in due_dates.items():
            vendors[code] = await add_vendor(session_maker, tenant_id, code)
            await add_esg(session_maker, tenant_id, vendors[code], next_audit_due_date=due)
        await add_vendor(session_maker, tenant_id, "V-F")  # no ESG data
        
        evaluated = await alerts.check_esg_audit_due_dates(tenant_id, self.AS_OF)
        
        assert evaluated == 4
        severity_by_code = {a.vendor_code: a.severity for a in await alerts.get_open_alerts(tenant_id)}
        assert severity_by_code == {
            "V-A": AlertSeverity.CRITICAL,
            "V-B": AlertSeverity.WARNING,
            "V-C": AlertSeverity.WARNING,
            "V-D": AlertSeverity.INFO,
        }
    
    async def test_only_latest_record_counts(self, session_maker, alerts, tenant_id):
        """An old overdue record is superseded by a newer assessment."""
        vendor = await add_vendor(session_maker, tenant_id, "V-A")
        await add_esg(session_maker, tenant_id, vendor, year=2025, month=1, next_audit_due_date=date(2025, 3, 1))
        await add_esg(session_maker, tenant_id, vendor, year=2026, month=5, next_audit_due_date=date(2027, 5, 1))
        
        assert await alerts.check_esg_audit_due_dates(tenant_id, self.AS_OF) == 0
    
    async def test_repeat_sweep_is_deduplicated(self, session_maker, alerts, tenant_id):
        vendor = await add_vendor(session_maker, tenant_id, "V-A")
        await add_esg(session_maker, tenant_id, vendor, next_audit_due_date=date(2026, 6, 1))
        
        await alerts.check_esg_audit_due_dates(tenant_id, self.AS_OF)
        await alerts.check_esg_audit_due_dates(tenant_id, self.AS_OF)
        
        assert len(await alerts.get_open_alerts(tenant_id)) == 1
    
    async def test_inactive_vendor_skipped(self, session_maker, alerts, tenant_id):
        vendor = await add_vendor(session_maker, tenant_id, "V-A", is_active=False)
        await add_esg(session_maker, tenant_id, vendor, next_audit_due_date=date(2026, 6, 1))
        assert await alerts.check_esg_audit_due_dates(tenant_id, self.AS_OF) == 0
