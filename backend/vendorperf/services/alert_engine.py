"""
Vendor Performance - Alert Engine

Single writer of vendor performance alerts and the only place they are
deduplicated or moved through their workflow.

ALERT SOURCES:
- Threshold breaches (overall weighted score, quality, delivery, defects)
- Score improvement (positive reinforcement)
- ESG risk level
- Tier changes (automated or manual)
- ESG audit due dates

DEDUPLICATION:
At most one OPEN alert per (tenant, vendor, alert type, metric category)
inside a 7-day window. A repeat trigger returns the existing id; the
first writer's message wins.

WORKFLOW:
OPEN -> ACKNOWLEDGED -> RESOLVED | DISMISSED
OPEN -> RESOLVED | DISMISSED
RESOLVED and DISMISSED are terminal. CRITICAL alerts need resolution
notes of at least 10 characters.

Notifications go out only after commit and never fail the caller.
"""

import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import selectinload

from vendorperf.core.config import settings
from vendorperf.core.errors import AlertNotFound, ConflictError, ValidationError
from vendorperf.db.models import (
    AlertAnnotation,
    PerformanceAlert,
    Vendor,
    VendorESGMetrics,
)
from vendorperf.db.session import advisory_lock, async_session_maker, transaction
from vendorperf.models.alerts import (
    AlertAnnotationRecord,
    AlertCandidate,
    AlertEvent,
    AlertRecord,
    AlertSeverity,
    AlertStatistics,
    AlertStatus,
    AlertType,
    MetricCategory,
    SEVERITY_ORDER,
)
from vendorperf.models.performance import ESGRiskLevel, ScorecardMetrics
from vendorperf.models.tiers import VendorTier
from vendorperf.services.events.publisher import AlertPublisher, alert_publisher

logger = logging.getLogger(__name__)


# =============================================================================
# THRESHOLDS
# =============================================================================

SCORE_CRITICAL_THRESHOLD = 60.0     # weighted score < 60: unacceptable
SCORE_WARNING_THRESHOLD = 75.0      # weighted score < 75: needs improvement
SCORE_IMPROVEMENT_POINTS = 10.0     # +10 vs previous period: positive signal

QUALITY_CRITICAL_THRESHOLD = 70.0   # quality % < 70
DELIVERY_CRITICAL_THRESHOLD = 75.0  # on-time % < 75
DEFECT_RATE_WARNING_PPM = 1000.0    # defects > 1000 PPM

ESG_CRITICAL_LEVELS = {ESGRiskLevel.HIGH, ESGRiskLevel.CRITICAL, ESGRiskLevel.UNKNOWN}
ESG_WARNING_LEVELS = {ESGRiskLevel.MEDIUM}

AUDIT_CRITICAL_MONTHS = 18
AUDIT_WARNING_MONTHS = 12

CRITICAL_RESOLUTION_MIN_CHARS = 10
OPEN_LIST_LIMIT = 100
RESOLVED_STATS_WINDOW_DAYS = 30

ACTIVE_STATUSES = (AlertStatus.OPEN.value, AlertStatus.ACKNOWLEDGED.value)
TERMINAL_STATUSES = (AlertStatus.RESOLVED.value, AlertStatus.DISMISSED.value)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stores without timezone support hand back naive UTC values."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _resolution_hours(dialect_name: str):
    """SQL expression for hours between creation and resolution."""
    if dialect_name == "postgresql":
        return func.extract("epoch", PerformanceAlert.resolved_at - PerformanceAlert.created_at) / 3600.0
    # SQLite stores timestamps as text; julianday() works in days
    return (func.julianday(PerformanceAlert.resolved_at) - func.julianday(PerformanceAlert.created_at)) * 24.0


# =============================================================================
# THRESHOLD EVALUATION (pure)
# =============================================================================

def check_performance_thresholds(
    tenant_id: uuid.UUID,
    vendor_id: uuid.UUID,
    performance: ScorecardMetrics,
    esg_risk_level: Optional[ESGRiskLevel],
    weighted_score: Optional[float],
    previous_score: Optional[float] = None,
) -> List[AlertCandidate]:
    """
    Evaluate one vendor period against every alert rule.

    Rules are independent; a vendor may trip several at once.
    `weighted_score` is None when no scorecard family had data, which
    skips the overall-score rules. `previous_score` is the prior
    period's weighted score when known.
    """
    alerts: List[AlertCandidate] = []

    def breach(severity, category, current, threshold, message, alert_type=AlertType.THRESHOLD_BREACH):
        alerts.append(AlertCandidate(
            tenant_id=tenant_id,
            vendor_id=vendor_id,
            alert_type=alert_type,
            severity=severity,
            metric_category=category.value,
            current_value=current,
            threshold_value=threshold,
            message=message,
        ))

    # Overall weighted score; None when the period had nothing to score
    if weighted_score is not None:
        if weighted_score < SCORE_CRITICAL_THRESHOLD:
            breach(
                AlertSeverity.CRITICAL, MetricCategory.OVERALL_SCORE,
                weighted_score, SCORE_CRITICAL_THRESHOLD,
                f"Overall vendor performance score ({weighted_score:.1f}) is below acceptable "
                f"threshold ({SCORE_CRITICAL_THRESHOLD:.0f}). Immediate review required.",
            )
        elif weighted_score < SCORE_WARNING_THRESHOLD:
            breach(
                AlertSeverity.WARNING, MetricCategory.OVERALL_SCORE,
                weighted_score, SCORE_WARNING_THRESHOLD,
                f"Overall vendor performance score ({weighted_score:.1f}) is below good "
                f"threshold ({SCORE_WARNING_THRESHOLD:.0f}). Performance improvement needed.",
            )

        # Improvement vs previous period
        if previous_score is not None and weighted_score - previous_score >= SCORE_IMPROVEMENT_POINTS:
            gain = weighted_score - previous_score
            breach(
                AlertSeverity.INFO, MetricCategory.OVERALL_SCORE,
                weighted_score, previous_score,
                f"Vendor performance improved significantly from {previous_score:.1f} to "
                f"{weighted_score:.1f} (+{gain:.1f} points). Excellent progress!",
            )

    # Category thresholds
    quality = performance.quality_percentage
    if quality is not None and quality < QUALITY_CRITICAL_THRESHOLD:
        breach(
            AlertSeverity.CRITICAL, MetricCategory.QUALITY,
            quality, QUALITY_CRITICAL_THRESHOLD,
            f"Quality performance ({quality:.1f}%) is critically low. "
            f"Threshold: {QUALITY_CRITICAL_THRESHOLD:.0f}%. Quality audit recommended.",
        )

    on_time = performance.on_time_percentage
    if on_time is not None and on_time < DELIVERY_CRITICAL_THRESHOLD:
        breach(
            AlertSeverity.CRITICAL, MetricCategory.DELIVERY,
            on_time, DELIVERY_CRITICAL_THRESHOLD,
            f"On-time delivery performance ({on_time:.1f}%) is critically low. "
            f"Threshold: {DELIVERY_CRITICAL_THRESHOLD:.0f}%. Review vendor capacity.",
        )

    defects = performance.defect_rate_ppm
    if defects is not None and defects > DEFECT_RATE_WARNING_PPM:
        breach(
            AlertSeverity.WARNING, MetricCategory.DEFECT_RATE,
            defects, DEFECT_RATE_WARNING_PPM,
            f"Defect rate ({defects:.0f} PPM) exceeds acceptable threshold "
            f"({DEFECT_RATE_WARNING_PPM:.0f} PPM). Quality improvement plan required.",
        )

    # ESG risk
    if esg_risk_level is not None:
        level = ESGRiskLevel(esg_risk_level)
        if level in ESG_CRITICAL_LEVELS:
            breach(
                AlertSeverity.CRITICAL, MetricCategory.ESG_RISK, None, None,
                f"ESG risk level is {level.value}. Immediate ESG audit and remediation plan "
                f"required. Consider vendor relationship review.",
                alert_type=AlertType.ESG_RISK,
            )
        elif level in ESG_WARNING_LEVELS:
            breach(
                AlertSeverity.WARNING, MetricCategory.ESG_RISK, None, None,
                f"ESG risk level is {level.value}. ESG improvement initiatives recommended. "
                f"Monitor compliance closely.",
                alert_type=AlertType.ESG_RISK,
            )

    return alerts


def tier_change_severity(old_tier: Optional[VendorTier], new_tier: VendorTier) -> AlertSeverity:
    """Promotion to STRATEGIC is INFO; losing STRATEGIC or falling to TRANSACTIONAL warns."""
    if new_tier is VendorTier.STRATEGIC and old_tier is not VendorTier.STRATEGIC:
        return AlertSeverity.INFO
    if old_tier is VendorTier.STRATEGIC and new_tier is not VendorTier.STRATEGIC:
        return AlertSeverity.WARNING
    if new_tier is VendorTier.TRANSACTIONAL and old_tier is not VendorTier.TRANSACTIONAL:
        return AlertSeverity.WARNING
    return AlertSeverity.INFO


def build_tier_change_alert(
    tenant_id: uuid.UUID,
    vendor_id: uuid.UUID,
    old_tier: Optional[VendorTier],
    new_tier: VendorTier,
    total_spend: Optional[float] = None,
    percentile_rank: Optional[float] = None,
    manual_reason: Optional[str] = None,
) -> AlertCandidate:
    old_label = old_tier.value if old_tier else "UNCLASSIFIED"

    if manual_reason is not None:
        message = (
            f"Vendor tier manually changed from {old_label} to {new_tier.value}. "
            f"Reason: {manual_reason}"
        )
    else:
        message = (
            f"Vendor tier automatically reclassified from {old_label} to {new_tier.value} "
            f"based on 12-month spend analysis."
        )
        if total_spend is not None and percentile_rank is not None:
            message += f" Total spend: ${total_spend:,.2f}, Percentile rank: {percentile_rank:.2f}%"

    return AlertCandidate(
        tenant_id=tenant_id,
        vendor_id=vendor_id,
        alert_type=AlertType.TIER_CHANGE,
        severity=tier_change_severity(old_tier, new_tier),
        metric_category=MetricCategory.TIER_CLASSIFICATION.value,
        current_value=percentile_rank,
        message=message,
    )


def audit_due_alert(
    tenant_id: uuid.UUID,
    vendor_id: uuid.UUID,
    next_audit_due_date: date,
    last_audit_date: Optional[date],
    as_of: date,
) -> AlertCandidate:
    """REVIEW_DUE candidate for an audit due within the lookahead or overdue."""
    days_overdue = (as_of - next_audit_due_date).days
    months_overdue = days_overdue // 30
    due = next_audit_due_date.isoformat()
    last = last_audit_date.isoformat() if last_audit_date else "NEVER"

    if days_overdue > 0:
        if months_overdue >= AUDIT_CRITICAL_MONTHS:
            severity = AlertSeverity.CRITICAL
            message = (
                f"ESG audit is CRITICALLY overdue by {months_overdue} months (due: {due}). "
                f"Last audit: {last}. Immediate action required."
            )
        elif months_overdue >= AUDIT_WARNING_MONTHS:
            severity = AlertSeverity.WARNING
            message = (
                f"ESG audit is overdue by {months_overdue} months (due: {due}). "
                f"Last audit: {last}. Schedule audit immediately."
            )
        else:
            severity = AlertSeverity.WARNING
            message = (
                f"ESG audit is overdue by {days_overdue} days (due: {due}). "
                f"Last audit: {last}. Schedule audit soon."
            )
    else:
        severity = AlertSeverity.INFO
        message = (
            f"ESG audit due in {abs(days_overdue)} days (due: {due}). "
            f"Last audit: {last}. Plan audit logistics."
        )

    return AlertCandidate(
        tenant_id=tenant_id,
        vendor_id=vendor_id,
        alert_type=AlertType.REVIEW_DUE,
        severity=severity,
        metric_category=MetricCategory.ESG_AUDIT.value,
        current_value=float(days_overdue),
        message=message,
    )


# =============================================================================
# ALERT ENGINE
# =============================================================================

class VendorAlertEngine:
    """
    Persists, deduplicates and walks alerts through their lifecycle.

    Each public operation runs in its own transaction. The clock is
    injectable so dedup windows and audit ages can be tested.
    """

    def __init__(
        self,
        session_maker: Optional[async_sessionmaker[AsyncSession]] = None,
        publisher: Optional[AlertPublisher] = None,
        clock: Optional[Callable[[], datetime]] = None,
        dedup_window_days: Optional[int] = None,
        audit_lookahead_days: Optional[int] = None,
    ):
        self._session_maker = session_maker or async_session_maker
        self._publisher = publisher or alert_publisher
        self._clock = clock or _utcnow
        self.dedup_window = timedelta(days=dedup_window_days or settings.ALERT_DEDUP_WINDOW_DAYS)
        self.audit_lookahead = timedelta(days=audit_lookahead_days or settings.ESG_AUDIT_LOOKAHEAD_DAYS)

    def now(self) -> datetime:
        return self._clock()

    # =========================================================================
    # CREATION
    # =========================================================================

    async def generate_alert(self, candidate: AlertCandidate) -> uuid.UUID:
        """
        Create an alert unless an equivalent OPEN one is recent enough.

        Returns the new or existing alert id. The notification is sent
        after commit, and only for a newly created alert.
        """
        async with transaction(self._session_maker) as session:
            alert_id, event = await self.create_alert_in_session(session, candidate)

        if event is not None:
            await self.publish_events([event])
        return alert_id

    async def create_alert_in_session(
        self,
        session: AsyncSession,
        candidate: AlertCandidate,
    ) -> Tuple[uuid.UUID, Optional[AlertEvent]]:
        """
        Dedup-or-insert inside the caller's transaction.

        Returns (alert id, event to publish once the caller commits).
        The event is None when an existing alert was reused.
        """
        await advisory_lock(
            session,
            f"vendor-alert:{candidate.tenant_id}:{candidate.vendor_id}:"
            f"{candidate.alert_type.value}:{candidate.metric_category or ''}",
        )

        existing_id = await self._find_recent_open(session, candidate)
        if existing_id is not None:
            logger.info(
                f"Alert deduplicated for vendor {candidate.vendor_id}: "
                f"{candidate.alert_type.value}/{candidate.metric_category} -> {existing_id}"
            )
            return existing_id, None

        created_at = self.now()
        alert = PerformanceAlert(
            id=uuid.uuid4(),
            tenant_id=candidate.tenant_id,
            vendor_id=candidate.vendor_id,
            alert_type=candidate.alert_type.value,
            severity=candidate.severity.value,
            metric_category=candidate.metric_category,
            current_value=candidate.current_value,
            threshold_value=candidate.threshold_value,
            message=candidate.message,
            status=AlertStatus.OPEN.value,
            created_at=created_at,
        )
        session.add(alert)
        await session.flush()

        logger.info(
            f"Alert {alert.id} created for vendor {candidate.vendor_id}: "
            f"{candidate.severity.value} {candidate.alert_type.value}/{candidate.metric_category}"
        )

        event = AlertEvent(
            alert_id=alert.id,
            tenant_id=candidate.tenant_id,
            vendor_id=candidate.vendor_id,
            severity=candidate.severity,
            alert_type=candidate.alert_type,
            message=candidate.message,
            timestamp=created_at,
        )
        return alert.id, event

    async def _find_recent_open(
        self,
        session: AsyncSession,
        candidate: AlertCandidate,
    ) -> Optional[uuid.UUID]:
        if candidate.metric_category is None:
            category_match = PerformanceAlert.metric_category.is_(None)
        else:
            category_match = PerformanceAlert.metric_category == candidate.metric_category

        result = await session.execute(
            select(PerformanceAlert.id)
            .where(
                PerformanceAlert.tenant_id == candidate.tenant_id,
                PerformanceAlert.vendor_id == candidate.vendor_id,
                PerformanceAlert.alert_type == candidate.alert_type.value,
                category_match,
                PerformanceAlert.status == AlertStatus.OPEN.value,
                PerformanceAlert.created_at > self.now() - self.dedup_window,
            )
            .order_by(PerformanceAlert.created_at.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def publish_events(self, events: Sequence[AlertEvent]) -> None:
        """Best-effort publish. Failures are logged, never raised."""
        for event in events:
            try:
                await self._publisher.publish(event)
            except Exception as e:
                logger.warning(f"Failed to publish alert {event.alert_id}: {e}")

    # =========================================================================
    # WORKFLOW
    # =========================================================================

    async def acknowledge_alert(
        self,
        tenant_id: uuid.UUID,
        alert_id: uuid.UUID,
        user_id: uuid.UUID,
        notes: Optional[str] = None,
    ) -> AlertRecord:
        """OPEN -> ACKNOWLEDGED."""
        async with transaction(self._session_maker) as session:
            alert = await self._load_for_update(session, tenant_id, alert_id)

            if alert.status != AlertStatus.OPEN.value:
                raise ConflictError(f"Alert {alert_id} is already {alert.status}", alert.status)

            now = self.now()
            alert.status = AlertStatus.ACKNOWLEDGED.value
            alert.acknowledged_at = now
            alert.acknowledged_by = user_id
            alert.updated_at = now
            self._annotate(alert, AlertStatus.ACKNOWLEDGED, user_id, notes, now)
            await session.flush()

            logger.info(f"Alert {alert_id} acknowledged by {user_id}")
            return self._to_record(alert)

    async def resolve_alert(
        self,
        tenant_id: uuid.UUID,
        alert_id: uuid.UUID,
        user_id: uuid.UUID,
        resolution_notes: str,
    ) -> AlertRecord:
        """
        OPEN | ACKNOWLEDGED -> RESOLVED.

        Raises:
            ConflictError: alert already RESOLVED or DISMISSED.
            ValidationError: CRITICAL alert with fewer than 10 characters
                of resolution notes.
        """
        async with transaction(self._session_maker) as session:
            alert = await self._load_for_update(session, tenant_id, alert_id)

            if alert.status in TERMINAL_STATUSES:
                raise ConflictError(f"Alert {alert_id} is already {alert.status}", alert.status)

            notes = (resolution_notes or "").strip()
            if alert.severity == AlertSeverity.CRITICAL.value and len(notes) < CRITICAL_RESOLUTION_MIN_CHARS:
                raise ValidationError(
                    f"Resolution notes required for CRITICAL alerts "
                    f"(minimum {CRITICAL_RESOLUTION_MIN_CHARS} characters)"
                )

            now = self.now()
            alert.status = AlertStatus.RESOLVED.value
            alert.resolved_at = now
            alert.resolved_by = user_id
            alert.updated_at = now
            self._annotate(alert, AlertStatus.RESOLVED, user_id, resolution_notes, now)
            await session.flush()

            logger.info(f"Alert {alert_id} resolved by {user_id}")
            return self._to_record(alert)

    async def dismiss_alert(
        self,
        tenant_id: uuid.UUID,
        alert_id: uuid.UUID,
        user_id: uuid.UUID,
        reason: str,
    ) -> AlertRecord:
        """OPEN | ACKNOWLEDGED -> DISMISSED. No minimum reason length."""
        async with transaction(self._session_maker) as session:
            alert = await self._load_for_update(session, tenant_id, alert_id)

            if alert.status not in ACTIVE_STATUSES:
                raise ConflictError(f"Alert {alert_id} is already {alert.status}", alert.status)

            now = self.now()
            alert.status = AlertStatus.DISMISSED.value
            alert.dismissed_at = now
            alert.dismissed_by = user_id
            alert.dismissal_reason = reason
            alert.updated_at = now
            self._annotate(alert, AlertStatus.DISMISSED, user_id, reason, now)
            await session.flush()

            logger.info(f"Alert {alert_id} dismissed by {user_id}")
            return self._to_record(alert)

    async def _load_for_update(
        self,
        session: AsyncSession,
        tenant_id: uuid.UUID,
        alert_id: uuid.UUID,
    ) -> PerformanceAlert:
        result = await session.execute(
            select(PerformanceAlert)
            .options(selectinload(PerformanceAlert.annotations))
            .where(PerformanceAlert.id == alert_id, PerformanceAlert.tenant_id == tenant_id)
            .with_for_update()
        )
        alert = result.scalar_one_or_none()
        if alert is None:
            raise AlertNotFound(alert_id)
        return alert

    @staticmethod
    def _annotate(
        alert: PerformanceAlert,
        kind: AlertStatus,
        actor_id: uuid.UUID,
        text: Optional[str],
        at: datetime,
    ) -> None:
        if not text or not text.strip():
            return
        alert.annotations.append(AlertAnnotation(
            id=uuid.uuid4(),
            sequence=len(alert.annotations) + 1,
            kind=kind.value,
            actor_id=actor_id,
            text=text.strip(),
            created_at=at,
        ))

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def get_alert(self, tenant_id: uuid.UUID, alert_id: uuid.UUID) -> AlertRecord:
        async with transaction(self._session_maker) as session:
            result = await session.execute(
                select(PerformanceAlert, Vendor)
                .options(selectinload(PerformanceAlert.annotations))
                .outerjoin(Vendor, Vendor.id == PerformanceAlert.vendor_id)
                .where(PerformanceAlert.id == alert_id, PerformanceAlert.tenant_id == tenant_id)
            )
            row = result.first()
            if row is None:
                raise AlertNotFound(alert_id)
            return self._to_record(row[0], row[1])

    async def get_open_alerts(
        self,
        tenant_id: uuid.UUID,
        severity: Optional[AlertSeverity] = None,
        status: Optional[AlertStatus] = None,
        vendor_id: Optional[uuid.UUID] = None,
        limit: int = OPEN_LIST_LIMIT,
    ) -> List[AlertRecord]:
        """
        Dashboard list, most severe first then newest first.

        Without a status filter only OPEN and ACKNOWLEDGED alerts are
        returned.
        """
        severity_rank = case(
            {level.value: rank for level, rank in SEVERITY_ORDER.items()},
            value=PerformanceAlert.severity,
            else_=len(SEVERITY_ORDER),
        )

        query = (
            select(PerformanceAlert, Vendor)
            .options(selectinload(PerformanceAlert.annotations))
            .outerjoin(Vendor, Vendor.id == PerformanceAlert.vendor_id)
            .where(PerformanceAlert.tenant_id == tenant_id)
        )
        if severity is not None:
            query = query.where(PerformanceAlert.severity == AlertSeverity(severity).value)
        if status is not None:
            query = query.where(PerformanceAlert.status == AlertStatus(status).value)
        else:
            query = query.where(PerformanceAlert.status.in_(ACTIVE_STATUSES))
        if vendor_id is not None:
            query = query.where(PerformanceAlert.vendor_id == vendor_id)

        query = query.order_by(severity_rank, PerformanceAlert.created_at.desc()).limit(limit)

        async with transaction(self._session_maker) as session:
            result = await session.execute(query)
            return [self._to_record(alert, vendor) for alert, vendor in result.all()]

    async def get_alert_statistics(self, tenant_id: uuid.UUID) -> AlertStatistics:
        """Open counts by severity plus resolution throughput."""
        window_start = self.now() - timedelta(days=RESOLVED_STATS_WINDOW_DAYS)
        stats = AlertStatistics()

        async with transaction(self._session_maker) as session:
            open_counts = await session.execute(
                select(PerformanceAlert.severity, func.count())
                .where(
                    PerformanceAlert.tenant_id == tenant_id,
                    PerformanceAlert.status.in_(ACTIVE_STATUSES),
                )
                .group_by(PerformanceAlert.severity)
            )
            by_severity: Dict[str, int] = {sev: count for sev, count in open_counts.all()}

            hours = _resolution_hours(session.bind.dialect.name)
            resolved = await session.execute(
                select(
                    func.coalesce(
                        func.sum(case((PerformanceAlert.resolved_at >= window_start, 1), else_=0)), 0
                    ),
                    func.avg(hours),
                )
                .where(
                    PerformanceAlert.tenant_id == tenant_id,
                    PerformanceAlert.status == AlertStatus.RESOLVED.value,
                    PerformanceAlert.resolved_at.is_not(None),
                )
            )
            resolved_last_30_days, average_hours = resolved.one()

        stats.critical_open = by_severity.get(AlertSeverity.CRITICAL.value, 0)
        stats.warning_open = by_severity.get(AlertSeverity.WARNING.value, 0)
        stats.info_open = by_severity.get(AlertSeverity.INFO.value, 0)
        stats.total_open = sum(by_severity.values())
        stats.resolved_last_30_days = int(resolved_last_30_days)
        if average_hours is not None:
            stats.average_resolution_time_hours = round(float(average_hours), 2)
        return stats

    # =========================================================================
    # ESG AUDIT SWEEP
    # =========================================================================

    async def check_esg_audit_due_dates(
        self,
        tenant_id: uuid.UUID,
        as_of: Optional[date] = None,
    ) -> int:
        """
        Raise a REVIEW_DUE alert for every vendor whose latest ESG record
        has an audit due within the lookahead window or already overdue.

        Returns the number of vendors evaluated; dedup may have reused
        existing alerts for some of them.
        """
        as_of = as_of or self.now().date()
        horizon = as_of + self.audit_lookahead

        async with transaction(self._session_maker) as session:
            result = await session.execute(
                select(
                    VendorESGMetrics.vendor_id,
                    VendorESGMetrics.next_audit_due_date,
                    VendorESGMetrics.last_audit_date,
                )
                .join(Vendor, and_(
                    Vendor.id == VendorESGMetrics.vendor_id,
                    Vendor.tenant_id == VendorESGMetrics.tenant_id,
                ))
                .where(
                    VendorESGMetrics.tenant_id == tenant_id,
                    Vendor.is_active.is_(True),
                )
                .order_by(
                    VendorESGMetrics.vendor_id,
                    VendorESGMetrics.evaluation_period_year.desc(),
                    VendorESGMetrics.evaluation_period_month.desc(),
                )
            )
            rows = result.all()

        latest: Dict[uuid.UUID, Tuple[Optional[date], Optional[date]]] = {}
        for vendor_id, next_due, last_audit in rows:
            latest.setdefault(vendor_id, (next_due, last_audit))

        due = sorted(
            (
                (vendor_id, next_due, last_audit)
                for vendor_id, (next_due, last_audit) in latest.items()
                if next_due is not None and next_due < horizon
            ),
            key=lambda row: row[1],
        )

        for vendor_id, next_due, last_audit in due:
            await self.generate_alert(
                audit_due_alert(tenant_id, vendor_id, next_due, last_audit, as_of)
            )

        logger.info(f"ESG audit sweep for tenant {tenant_id}: {len(due)} vendors due or overdue")
        return len(due)

    # =========================================================================
    # MAPPING
    # =========================================================================

    @staticmethod
    def _to_record(alert: PerformanceAlert, vendor: Optional[Vendor] = None) -> AlertRecord:
        return AlertRecord(
            id=alert.id,
            tenant_id=alert.tenant_id,
            vendor_id=alert.vendor_id,
            vendor_code=vendor.vendor_code if vendor else None,
            vendor_name=vendor.vendor_name if vendor else None,
            alert_type=AlertType(alert.alert_type),
            severity=AlertSeverity(alert.severity),
            metric_category=alert.metric_category,
            current_value=alert.current_value,
            threshold_value=alert.threshold_value,
            message=alert.message,
            status=AlertStatus(alert.status),
            acknowledged_at=_as_utc(alert.acknowledged_at),
            acknowledged_by=alert.acknowledged_by,
            resolved_at=_as_utc(alert.resolved_at),
            resolved_by=alert.resolved_by,
            dismissed_at=_as_utc(alert.dismissed_at),
            dismissed_by=alert.dismissed_by,
            dismissal_reason=alert.dismissal_reason,
            annotations=[
                AlertAnnotationRecord(
                    sequence=a.sequence,
                    kind=AlertStatus(a.kind),
                    actor_id=a.actor_id,
                    text=a.text,
                    created_at=_as_utc(a.created_at),
                )
                for a in alert.annotations
            ],
            created_at=_as_utc(alert.created_at),
        )


# Singleton instance
alert_engine = VendorAlertEngine()
