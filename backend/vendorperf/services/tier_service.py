"""
Vendor Performance - Tier Classification Service

Persists tier assignments computed by the tier classifier.

SNAPSHOT:
Trailing-twelve-month spend per active vendor comes from one aggregate
query over purchase orders (excluding CANCELLED and DRAFT). Every
vendor in a run is ranked from that same snapshot.

ATOMICITY:
A batch run holds one transaction for the whole tenant. Tier updates,
history rows and tier-change alerts commit together or not at all.
Notifications for new alerts go out after the commit.
"""

import calendar
import logging
import time
import uuid
from datetime import date, datetime, timezone
from typing import Callable, Dict, List, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vendorperf.core.config import settings
from vendorperf.core.errors import ValidationError, VendorNotFound
from vendorperf.db.models import PurchaseOrder, Vendor, VendorPerformance, VendorTierHistory
from vendorperf.db.session import advisory_lock, async_session_maker, transaction
from vendorperf.models.alerts import AlertCandidate, AlertEvent
from vendorperf.models.tiers import (
    ReclassificationSummary,
    TierChange,
    TierChangeType,
    TierClassificationResult,
    TierDistribution,
    TierHistoryEntry,
    VendorTier,
)
from vendorperf.services import tier_classifier
from vendorperf.services.alert_engine import (
    VendorAlertEngine,
    alert_engine,
    build_tier_change_alert,
)

logger = logging.getLogger(__name__)


EXCLUDED_SPEND_STATUSES = ("CANCELLED", "DRAFT")


def subtract_months(day: date, months: int) -> date:
    """Same day `months` earlier, clamped to the month's last day (Feb 29 -> Feb 28)."""
    total = day.year * 12 + (day.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def _tier_or_none(value: Optional[str]) -> Optional[VendorTier]:
    return VendorTier(value) if value else None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VendorTierService:
    """
    Classifies vendors into spend tiers with hysteresis.

    One tenant-scoped advisory lock serializes classification runs for
    the same tenant on PostgreSQL.
    """

    def __init__(
        self,
        session_maker: Optional[async_sessionmaker[AsyncSession]] = None,
        alerts: Optional[VendorAlertEngine] = None,
        clock: Optional[Callable[[], datetime]] = None,
        trailing_months: Optional[int] = None,
    ):
        self._session_maker = session_maker or async_session_maker
        self._alerts = alerts or alert_engine
        self._clock = clock or _utcnow
        self.trailing_months = trailing_months or settings.SPEND_TRAILING_MONTHS

    # =========================================================================
    # SNAPSHOT
    # =========================================================================

    async def _load_active_vendors(self, session: AsyncSession, tenant_id: uuid.UUID) -> List[Vendor]:
        result = await session.execute(
            select(Vendor)
            .where(Vendor.tenant_id == tenant_id, Vendor.is_active.is_(True))
            .order_by(Vendor.vendor_code)
        )
        return list(result.scalars().all())

    async def _spend_snapshot(
        self,
        session: AsyncSession,
        tenant_id: uuid.UUID,
        as_of: date,
    ) -> Dict[uuid.UUID, float]:
        """Trailing spend for every active vendor of the tenant, zero when none."""
        window_start = subtract_months(as_of, self.trailing_months)

        result = await session.execute(
            select(
                Vendor.id,
                func.coalesce(func.sum(PurchaseOrder.total_amount), 0),
            )
            .outerjoin(PurchaseOrder, and_(
                PurchaseOrder.vendor_id == Vendor.id,
                PurchaseOrder.tenant_id == Vendor.tenant_id,
                PurchaseOrder.order_date >= window_start,
                PurchaseOrder.status.not_in(EXCLUDED_SPEND_STATUSES),
            ))
            .where(Vendor.tenant_id == tenant_id, Vendor.is_active.is_(True))
            .group_by(Vendor.id)
        )
        return {vendor_id: float(spend or 0) for vendor_id, spend in result.all()}

    # =========================================================================
    # CLASSIFICATION
    # =========================================================================

    async def classify_vendor_tier(
        self,
        tenant_id: uuid.UUID,
        vendor_id: uuid.UUID,
    ) -> TierClassificationResult:
        """
        Classify a single vendor against the tenant's spend snapshot.

        Raises:
            VendorNotFound: vendor absent, or not part of the active snapshot.
        """
        events: List[AlertEvent] = []

        async with transaction(self._session_maker) as session:
            await advisory_lock(session, f"vendor-tier:{tenant_id}")

            vendor = await session.get(Vendor, vendor_id)
            if vendor is None or vendor.tenant_id != tenant_id:
                raise VendorNotFound(vendor_id)

            now = self._clock()
            spend = await self._spend_snapshot(session, tenant_id, now.date())
            result = tier_classifier.classify(
                vendor_id,
                spend,
                _tier_or_none(vendor.vendor_tier),
                vendor.mission_critical,
            )

            candidate = await self._apply_classification(session, vendor, result, now)
            if candidate is not None:
                _, event = await self._alerts.create_alert_in_session(session, candidate)
                if event is not None:
                    events.append(event)

        await self._alerts.publish_events(events)

        logger.info(
            f"Tier classified for vendor {vendor_id}: {result.tier.value} "
            f"(rank={result.percentile_rank:.2f}, spend={result.total_spend:.2f})"
        )
        return result

    async def reclassify_all(self, tenant_id: uuid.UUID) -> ReclassificationSummary:
        """
        Reclassify every active vendor of a tenant in one transaction.

        Any failure rolls back the whole batch; no vendor keeps a new
        tier unless every vendor was processed.
        """
        started = time.monotonic()
        summary = ReclassificationSummary(tenant_id=tenant_id)
        events: List[AlertEvent] = []

        async with transaction(self._session_maker) as session:
            await advisory_lock(session, f"vendor-tier:{tenant_id}")

            now = self._clock()
            vendors = await self._load_active_vendors(session, tenant_id)
            spend = await self._spend_snapshot(session, tenant_id, now.date())
            ranks = tier_classifier.compute_percentile_ranks(spend)

            for vendor in vendors:
                result = tier_classifier.classify(
                    vendor.id,
                    spend,
                    _tier_or_none(vendor.vendor_tier),
                    vendor.mission_critical,
                    percentile_ranks=ranks,
                )
                summary.tier_counts[result.tier] += 1
                summary.vendors_analyzed += 1

                candidate = await self._apply_classification(session, vendor, result, now)

                if result.tier_changed:
                    summary.tier_changes.append(TierChange(
                        vendor_id=vendor.id,
                        vendor_code=vendor.vendor_code,
                        vendor_name=vendor.vendor_name,
                        old_tier=result.previous_tier,
                        new_tier=result.tier,
                        total_spend=result.total_spend,
                        percentile_rank=result.percentile_rank,
                    ))

                if candidate is not None:
                    alert_id, event = await self._alerts.create_alert_in_session(session, candidate)
                    summary.alert_ids.append(alert_id)
                    if event is not None:
                        events.append(event)

        await self._alerts.publish_events(events)

        summary.execution_time_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            f"Tier reclassification for tenant {tenant_id}: {summary.vendors_analyzed} vendors, "
            f"{len(summary.tier_changes)} changes, "
            f"{', '.join(f'{t.value}={n}' for t, n in summary.tier_counts.items())} "
            f"in {summary.execution_time_ms}ms"
        )
        return summary

    async def _apply_classification(
        self,
        session: AsyncSession,
        vendor: Vendor,
        result: TierClassificationResult,
        now: datetime,
    ) -> Optional[AlertCandidate]:
        """
        Persist a classification when it changes anything.

        Returns the tier-change alert to raise, or None for an unchanged
        tier or a first assignment.
        """
        if not result.tier_changed and result.previous_tier is not None:
            return None

        await self._set_tier(session, vendor, result.tier, now)
        session.add(VendorTierHistory(
            id=uuid.uuid4(),
            tenant_id=vendor.tenant_id,
            vendor_id=vendor.id,
            previous_tier=result.previous_tier.value if result.previous_tier else None,
            new_tier=result.tier.value,
            change_type=tier_classifier.change_type(result.previous_tier, result.tier).value,
            percentile_rank=result.percentile_rank,
            total_spend=result.total_spend,
            reason="Mission-critical vendor" if result.mission_critical else "12-month spend analysis",
            recorded_at=now,
        ))

        if not result.tier_changed:
            return None

        logger.info(
            f"Vendor {vendor.vendor_code} tier {result.previous_tier.value} -> {result.tier.value}"
        )
        return build_tier_change_alert(
            vendor.tenant_id,
            vendor.id,
            result.previous_tier,
            result.tier,
            total_spend=result.total_spend,
            percentile_rank=result.percentile_rank,
        )

    async def _set_tier(
        self,
        session: AsyncSession,
        vendor: Vendor,
        tier: VendorTier,
        now: datetime,
    ) -> None:
        """Write the tier on the vendor and mirror it onto its latest period record."""
        vendor.vendor_tier = tier.value
        vendor.tier_classification_date = now

        latest = await session.execute(
            select(VendorPerformance)
            .where(
                VendorPerformance.tenant_id == vendor.tenant_id,
                VendorPerformance.vendor_id == vendor.id,
            )
            .order_by(
                VendorPerformance.evaluation_period_year.desc(),
                VendorPerformance.evaluation_period_month.desc(),
            )
            .limit(1)
        )
        record = latest.scalar_one_or_none()
        if record is not None:
            record.vendor_tier = tier.value
            record.tier_classification_date = now

        await session.flush()

    # =========================================================================
    # MANUAL OVERRIDE
    # =========================================================================

    async def update_vendor_tier(
        self,
        tenant_id: uuid.UUID,
        vendor_id: uuid.UUID,
        tier: str,
        reason: str,
        user_id: uuid.UUID,
    ) -> TierHistoryEntry:
        """
        Manually set a vendor's tier with a justification.

        Raises:
            ValidationError: unknown tier or empty reason.
            VendorNotFound: vendor absent for the tenant.
        """
        try:
            new_tier = VendorTier(tier)
        except ValueError:
            raise ValidationError(
                f"Invalid tier: {tier}. Must be STRATEGIC, PREFERRED, or TRANSACTIONAL"
            )
        if not reason or not reason.strip():
            raise ValidationError("A reason is required to override a vendor tier")

        events: List[AlertEvent] = []

        async with transaction(self._session_maker) as session:
            await advisory_lock(session, f"vendor-tier:{tenant_id}")

            vendor = await session.get(Vendor, vendor_id)
            if vendor is None or vendor.tenant_id != tenant_id:
                raise VendorNotFound(vendor_id)

            now = self._clock()
            old_tier = _tier_or_none(vendor.vendor_tier)

            await self._set_tier(session, vendor, new_tier, now)
            vendor.tier_override_by = user_id
            vendor.tier_override_reason = reason.strip()

            history = VendorTierHistory(
                id=uuid.uuid4(),
                tenant_id=tenant_id,
                vendor_id=vendor_id,
                previous_tier=old_tier.value if old_tier else None,
                new_tier=new_tier.value,
                change_type=TierChangeType.MANUAL_OVERRIDE.value,
                reason=reason.strip(),
                changed_by=user_id,
                recorded_at=now,
            )
            session.add(history)

            if old_tier != new_tier:
                candidate = build_tier_change_alert(
                    tenant_id, vendor_id, old_tier, new_tier, manual_reason=reason.strip(),
                )
                _, event = await self._alerts.create_alert_in_session(session, candidate)
                if event is not None:
                    events.append(event)

        await self._alerts.publish_events(events)

        logger.info(
            f"Manual tier override for vendor {vendor_id}: "
            f"{old_tier.value if old_tier else 'UNCLASSIFIED'} -> {new_tier.value} by {user_id}"
        )
        return self._history_entry(history)

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def get_tier_history(
        self,
        tenant_id: uuid.UUID,
        vendor_id: uuid.UUID,
        limit: int = 50,
    ) -> List[TierHistoryEntry]:
        """Tier assignments for a vendor, newest first."""
        async with transaction(self._session_maker) as session:
            vendor = await session.get(Vendor, vendor_id)
            if vendor is None or vendor.tenant_id != tenant_id:
                raise VendorNotFound(vendor_id)

            result = await session.execute(
                select(VendorTierHistory)
                .where(
                    VendorTierHistory.tenant_id == tenant_id,
                    VendorTierHistory.vendor_id == vendor_id,
                )
                .order_by(VendorTierHistory.recorded_at.desc())
                .limit(limit)
            )
            return [self._history_entry(row) for row in result.scalars().all()]

    async def get_tier_distribution(self, tenant_id: uuid.UUID) -> TierDistribution:
        async with transaction(self._session_maker) as session:
            result = await session.execute(
                select(Vendor.vendor_tier, func.count())
                .where(Vendor.tenant_id == tenant_id, Vendor.is_active.is_(True))
                .group_by(Vendor.vendor_tier)
            )
            counts: Dict[Optional[str], int] = dict(result.all())

        distribution = TierDistribution(
            strategic=counts.get(VendorTier.STRATEGIC.value, 0),
            preferred=counts.get(VendorTier.PREFERRED.value, 0),
            transactional=counts.get(VendorTier.TRANSACTIONAL.value, 0),
            unclassified=counts.get(None, 0),
        )
        distribution.total = sum(counts.values())
        return distribution

    @staticmethod
    def _history_entry(row: VendorTierHistory) -> TierHistoryEntry:
        recorded_at = row.recorded_at
        if recorded_at.tzinfo is None:
            recorded_at = recorded_at.replace(tzinfo=timezone.utc)
        return TierHistoryEntry(
            previous_tier=_tier_or_none(row.previous_tier),
            new_tier=VendorTier(row.new_tier),
            change_type=TierChangeType(row.change_type),
            percentile_rank=row.percentile_rank,
            total_spend=row.total_spend,
            reason=row.reason,
            changed_by=row.changed_by,
            recorded_at=recorded_at,
        )


# Singleton instance
tier_service = VendorTierService()
