"""
Vendor Performance - Metric Aggregator & Scorecard Service

Computes monthly vendor metrics from purchase orders and drives the
monthly evaluation path:

    aggregate period -> weighted score -> threshold checks -> alerts

METRICS (one calendar month, by order date):
- POs issued / value:   all orders except CANCELLED
- Deliveries:           PARTIALLY_RECEIVED, RECEIVED, CLOSED
- On time:              RECEIVED/CLOSED on or before the promised date,
                        or within 7 days of the requested date when no
                        promise was given
- Quality:              received without rejects = acceptance;
                        received with rejects, or cancelled for quality
                        = rejection
- Defect rate:          rejected / received quantity, in PPM

OVERALL RATING (0-5 stars):
    OTD 40% + quality 40% + price competitiveness 10% + responsiveness 10%
    Manual scores not yet entered count as a neutral 3.0.

Period records are upserted on (tenant, vendor, year, month); manual
scores survive recomputation.
"""

import calendar
import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vendorperf.core.errors import PerformanceRecordNotFound, ValidationError, VendorNotFound
from vendorperf.db.models import (
    PurchaseOrder,
    ScorecardConfig,
    Vendor,
    VendorESGMetrics,
    VendorPerformance,
)
from vendorperf.db.session import advisory_lock, async_session_maker, transaction
from vendorperf.models.performance import (
    ESGMetricsInput,
    ESGMetricsRecord,
    ESGRiskLevel,
    ManualScoresUpdate,
    MonthlyPerformance,
    PerformanceTrend,
    PeriodEvaluation,
    ScorecardConfigInput,
    ScorecardConfigRecord,
    VendorComparisonReport,
    VendorPerformanceRecord,
    VendorRanking,
    VendorScorecard,
)
from vendorperf.models.tiers import VendorTier
from vendorperf.services.alert_engine import (
    VendorAlertEngine,
    alert_engine,
    check_performance_thresholds,
)
from vendorperf.services.scorecard_calculator import (
    DEFAULT_SCORECARD_CONFIG,
    calculate_weighted_score,
    score_components,
    validate_scorecard_config,
)

logger = logging.getLogger(__name__)


DELIVERED_STATUSES = ("PARTIALLY_RECEIVED", "RECEIVED", "CLOSED")
COMPLETED_STATUSES = ("RECEIVED", "CLOSED")
REQUESTED_DATE_GRACE_DAYS = 7

OTD_RATING_WEIGHT = 0.4
QUALITY_RATING_WEIGHT = 0.4
PRICE_RATING_WEIGHT = 0.1
RESPONSIVENESS_RATING_WEIGHT = 0.1
NEUTRAL_STAR_SCORE = 3.0

SCORECARD_MONTHS = 12
TREND_THRESHOLD_STARS = 0.3


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _validate_period(year: int, month: int) -> None:
    if month < 1 or month > 12:
        raise ValidationError(f"Evaluation month must be between 1 and 12, got {month}")
    if year < 2000 or year > 2100:
        raise ValidationError(f"Evaluation year out of range: {year}")


def previous_period(year: int, month: int) -> Tuple[int, int]:
    return (year - 1, 12) if month == 1 else (year, month - 1)


def _period_end(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def _mean(values: List[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


def _round(value: Optional[float], places: int) -> Optional[float]:
    return round(value, places) if value is not None else None


# =============================================================================
# PERIOD AGGREGATION (pure)
# =============================================================================

def _is_on_time(po: PurchaseOrder) -> bool:
    if po.status not in COMPLETED_STATUSES or po.received_date is None:
        return False
    if po.promised_delivery_date is not None:
        return po.received_date <= po.promised_delivery_date
    if po.requested_delivery_date is not None:
        return po.received_date <= po.requested_delivery_date + timedelta(days=REQUESTED_DATE_GRACE_DAYS)
    return False


def aggregate_purchase_orders(orders: List[PurchaseOrder]) -> Dict[str, object]:
    """Raw counts and percentages for one vendor period."""
    issued = [po for po in orders if po.status != "CANCELLED"]
    delivered = [po for po in orders if po.status in DELIVERED_STATUSES]
    on_time = sum(1 for po in delivered if _is_on_time(po))

    acceptances = 0
    rejections = 0
    received_qty = 0.0
    rejected_qty = 0.0
    for po in orders:
        rejected = float(po.quantity_rejected or 0)
        if po.status in COMPLETED_STATUSES:
            if rejected > 0:
                rejections += 1
            else:
                acceptances += 1
        elif po.status == "CANCELLED" and po.notes and "quality" in po.notes.lower():
            rejections += 1

        if po.status in DELIVERED_STATUSES and po.quantity_received:
            received_qty += float(po.quantity_received)
            rejected_qty += rejected

    quality_events = acceptances + rejections

    return {
        "total_pos_issued": len(issued),
        "total_pos_value": round(sum(float(po.total_amount or 0) for po in issued), 2),
        "total_deliveries": len(delivered),
        "on_time_deliveries": on_time,
        "quality_acceptances": acceptances,
        "quality_rejections": rejections,
        "on_time_percentage": round(on_time / len(delivered) * 100, 2) if delivered else None,
        "quality_percentage": round(acceptances / quality_events * 100, 2) if quality_events else None,
        "defect_rate_ppm": round(rejected_qty / received_qty * 1_000_000, 2) if received_qty > 0 else None,
    }


def calculate_overall_rating(
    on_time_percentage: Optional[float],
    quality_percentage: Optional[float],
    price_competitiveness_score: Optional[float],
    responsiveness_score: Optional[float],
) -> Optional[float]:
    """0-5 star composite, or None without both delivery and quality data."""
    if on_time_percentage is None or quality_percentage is None:
        return None

    price = price_competitiveness_score if price_competitiveness_score is not None else NEUTRAL_STAR_SCORE
    responsiveness = responsiveness_score if responsiveness_score is not None else NEUTRAL_STAR_SCORE

    rating = (
        on_time_percentage / 100 * 5 * OTD_RATING_WEIGHT
        + quality_percentage / 100 * 5 * QUALITY_RATING_WEIGHT
        + price * PRICE_RATING_WEIGHT
        + responsiveness * RESPONSIVENESS_RATING_WEIGHT
    )
    return round(rating, 1)


def performance_trend(ratings: List[float]) -> PerformanceTrend:
    """Compare the newest three ratings with the three before them."""
    if len(ratings) < 3:
        return PerformanceTrend.STABLE

    recent = _mean(ratings[:3])
    older = _mean(ratings[3:6])
    if older is None:
        older = recent

    change = recent - older
    if change > TREND_THRESHOLD_STARS:
        return PerformanceTrend.IMPROVING
    if change < -TREND_THRESHOLD_STARS:
        return PerformanceTrend.DECLINING
    return PerformanceTrend.STABLE


# =============================================================================
# HISTORY LOOKUP
# =============================================================================

class PerformanceHistory:
    """
    Previous-period lookups for the improvement alert.

    The default reads the weighted score stored on the prior calendar
    month's record. Swap in another implementation to change the
    lookback.
    """

    async def previous_weighted_score(
        self,
        session: AsyncSession,
        tenant_id: uuid.UUID,
        vendor_id: uuid.UUID,
        year: int,
        month: int,
    ) -> Optional[float]:
        prev_year, prev_month = previous_period(year, month)
        result = await session.execute(
            select(VendorPerformance.weighted_score).where(
                VendorPerformance.tenant_id == tenant_id,
                VendorPerformance.vendor_id == vendor_id,
                VendorPerformance.evaluation_period_year == prev_year,
                VendorPerformance.evaluation_period_month == prev_month,
            )
        )
        return result.scalar_one_or_none()


# =============================================================================
# SERVICE
# =============================================================================

class VendorPerformanceService:
    """Monthly vendor metrics, scorecards, scorecard configs and ESG data."""

    def __init__(
        self,
        session_maker: Optional[async_sessionmaker[AsyncSession]] = None,
        alerts: Optional[VendorAlertEngine] = None,
        history: Optional[PerformanceHistory] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._session_maker = session_maker or async_session_maker
        self._alerts = alerts or alert_engine
        self._history = history or PerformanceHistory()
        self._clock = clock or _utcnow

    # =========================================================================
    # AGGREGATION
    # =========================================================================

    async def calculate_vendor_performance(
        self,
        tenant_id: uuid.UUID,
        vendor_id: uuid.UUID,
        year: int,
        month: int,
    ) -> VendorPerformanceRecord:
        """
        Aggregate one vendor period and upsert it.

        Safe to repeat; manual scores already on the record are kept.
        """
        _validate_period(year, month)

        async with transaction(self._session_maker) as session:
            vendor = await self._get_vendor(session, tenant_id, vendor_id)
            row = await self._aggregate_period(session, vendor, year, month)
            return self._to_record(row, vendor)

    async def _get_vendor(
        self,
        session: AsyncSession,
        tenant_id: uuid.UUID,
        vendor_id: uuid.UUID,
    ) -> Vendor:
        vendor = await session.get(Vendor, vendor_id)
        if vendor is None or vendor.tenant_id != tenant_id:
            raise VendorNotFound(vendor_id)
        return vendor

    async def _aggregate_period(
        self,
        session: AsyncSession,
        vendor: Vendor,
        year: int,
        month: int,
    ) -> VendorPerformance:
        start = date(year, month, 1)
        end = _period_end(year, month)

        result = await session.execute(
            select(PurchaseOrder).where(
                PurchaseOrder.tenant_id == vendor.tenant_id,
                PurchaseOrder.vendor_id == vendor.id,
                PurchaseOrder.order_date >= start,
                PurchaseOrder.order_date <= end,
            )
        )
        metrics = aggregate_purchase_orders(list(result.scalars().all()))

        row = await self._find_period(session, vendor.tenant_id, vendor.id, year, month)
        if row is None:
            row = VendorPerformance(
                id=uuid.uuid4(),
                tenant_id=vendor.tenant_id,
                vendor_id=vendor.id,
                evaluation_period_year=year,
                evaluation_period_month=month,
                vendor_tier=vendor.vendor_tier,
                tier_classification_date=vendor.tier_classification_date,
            )
            session.add(row)

        for field, value in metrics.items():
            setattr(row, field, value)
        row.overall_rating = calculate_overall_rating(
            row.on_time_percentage,
            row.quality_percentage,
            row.price_competitiveness_score,
            row.responsiveness_score,
        )

        await session.flush()
        logger.info(
            f"Performance calculated for vendor {vendor.vendor_code} {year}-{month:02d}: "
            f"OTD={row.on_time_percentage} quality={row.quality_percentage} rating={row.overall_rating}"
        )
        return row

    async def _find_period(
        self,
        session: AsyncSession,
        tenant_id: uuid.UUID,
        vendor_id: uuid.UUID,
        year: int,
        month: int,
    ) -> Optional[VendorPerformance]:
        result = await session.execute(
            select(VendorPerformance).where(
                VendorPerformance.tenant_id == tenant_id,
                VendorPerformance.vendor_id == vendor_id,
                VendorPerformance.evaluation_period_year == year,
                VendorPerformance.evaluation_period_month == month,
            )
        )
        return result.scalar_one_or_none()

    async def _active_vendor_ids(self, tenant_id: uuid.UUID) -> List[uuid.UUID]:
        async with transaction(self._session_maker) as session:
            result = await session.execute(
                select(Vendor.id)
                .where(Vendor.tenant_id == tenant_id, Vendor.is_active.is_(True))
                .order_by(Vendor.vendor_code)
            )
            return list(result.scalars().all())

    async def calculate_all_vendors_performance(
        self,
        tenant_id: uuid.UUID,
        year: int,
        month: int,
    ) -> List[VendorPerformanceRecord]:
        """Aggregate every active vendor; a failing vendor is logged and skipped."""
        _validate_period(year, month)
        records: List[VendorPerformanceRecord] = []

        for vendor_id in await self._active_vendor_ids(tenant_id):
            try:
                records.append(await self.calculate_vendor_performance(tenant_id, vendor_id, year, month))
            except Exception as e:
                logger.error(f"Performance calculation failed for vendor {vendor_id}: {e}")

        return records

    async def update_manual_scores(
        self,
        tenant_id: uuid.UUID,
        vendor_id: uuid.UUID,
        year: int,
        month: int,
        scores: ManualScoresUpdate,
    ) -> VendorPerformanceRecord:
        """Set buyer-entered scores on an existing period record."""
        _validate_period(year, month)

        async with transaction(self._session_maker) as session:
            vendor = await self._get_vendor(session, tenant_id, vendor_id)
            row = await self._find_period(session, tenant_id, vendor_id, year, month)
            if row is None:
                raise PerformanceRecordNotFound(vendor_id, year, month)

            for field, value in scores.model_dump(exclude_none=True).items():
                setattr(row, field, value)

            row.overall_rating = calculate_overall_rating(
                row.on_time_percentage,
                row.quality_percentage,
                row.price_competitiveness_score,
                row.responsiveness_score,
            )
            await session.flush()
            return self._to_record(row, vendor)

    # =========================================================================
    # MONTHLY EVALUATION
    # =========================================================================

    async def evaluate_vendor_period(
        self,
        tenant_id: uuid.UUID,
        vendor_id: uuid.UUID,
        year: int,
        month: int,
    ) -> PeriodEvaluation:
        """
        Monthly path for one vendor: aggregate, score, alert.

        Weights come from the scorecard config in effect on the last day
        of the period, so re-running an old period scores it the same way.
        A period with no scorable data is left unscored (weighted_score
        None) and raises no overall-score alert.

        The period record and its weighted score commit first; each
        alert then goes through the dedup path in its own transaction.
        """
        _validate_period(year, month)

        async with transaction(self._session_maker) as session:
            vendor = await self._get_vendor(session, tenant_id, vendor_id)
            row = await self._aggregate_period(session, vendor, year, month)
            record = self._to_record(row, vendor)

            config = await self._select_config(
                session, tenant_id, vendor.vendor_type, vendor.vendor_tier, _period_end(year, month),
            )
            esg = await self._latest_esg(session, tenant_id, vendor_id, year, month)

            metrics = record.to_metrics()
            esg_score = esg.esg_overall_score if esg else None
            weighted_score: Optional[float] = None
            if any(weight > 0 for _, _, weight in score_components(metrics, esg_score, config)):
                weighted_score = calculate_weighted_score(metrics, esg_score, config)
            row.weighted_score = weighted_score
            record.weighted_score = weighted_score

            previous_score = await self._history.previous_weighted_score(
                session, tenant_id, vendor_id, year, month,
            )
            await session.flush()

        candidates = check_performance_thresholds(
            tenant_id,
            vendor_id,
            metrics,
            ESGRiskLevel(esg.esg_risk_level) if esg else None,
            weighted_score,
            previous_score,
        )
        alert_ids = [await self._alerts.generate_alert(candidate) for candidate in candidates]

        logger.info(
            f"Evaluated vendor {vendor_id} {year}-{month:02d}: score={weighted_score} "
            f"previous={previous_score} alerts={len(alert_ids)}"
        )
        return PeriodEvaluation(
            record=record,
            weighted_score=weighted_score,
            previous_score=previous_score,
            alert_ids=alert_ids,
        )

    async def evaluate_all_vendors(
        self,
        tenant_id: uuid.UUID,
        year: int,
        month: int,
    ) -> List[PeriodEvaluation]:
        """Monthly path for every active vendor; failures are logged and skipped."""
        _validate_period(year, month)
        evaluations: List[PeriodEvaluation] = []

        for vendor_id in await self._active_vendor_ids(tenant_id):
            try:
                evaluations.append(await self.evaluate_vendor_period(tenant_id, vendor_id, year, month))
            except Exception as e:
                logger.error(f"Evaluation failed for vendor {vendor_id}: {e}")

        return evaluations

    async def _latest_esg(
        self,
        session: AsyncSession,
        tenant_id: uuid.UUID,
        vendor_id: uuid.UUID,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> Optional[VendorESGMetrics]:
        query = select(VendorESGMetrics).where(
            VendorESGMetrics.tenant_id == tenant_id,
            VendorESGMetrics.vendor_id == vendor_id,
        )
        if year is not None and month is not None:
            query = query.where(or_(
                VendorESGMetrics.evaluation_period_year < year,
                and_(
                    VendorESGMetrics.evaluation_period_year == year,
                    VendorESGMetrics.evaluation_period_month <= month,
                ),
            ))
        result = await session.execute(
            query.order_by(
                VendorESGMetrics.evaluation_period_year.desc(),
                VendorESGMetrics.evaluation_period_month.desc(),
            ).limit(1)
        )
        return result.scalar_one_or_none()

    # =========================================================================
    # SCORECARDS & REPORTS
    # =========================================================================

    async def get_vendor_scorecard(
        self,
        tenant_id: uuid.UUID,
        vendor_id: uuid.UUID,
    ) -> VendorScorecard:
        """Rolling twelve-month scorecard with trend."""
        async with transaction(self._session_maker) as session:
            vendor = await self._get_vendor(session, tenant_id, vendor_id)

            result = await session.execute(
                select(VendorPerformance)
                .where(
                    VendorPerformance.tenant_id == tenant_id,
                    VendorPerformance.vendor_id == vendor_id,
                )
                .order_by(
                    VendorPerformance.evaluation_period_year.desc(),
                    VendorPerformance.evaluation_period_month.desc(),
                )
                .limit(SCORECARD_MONTHS)
            )
            rows = list(result.scalars().all())
            esg = await self._latest_esg(session, tenant_id, vendor_id)

        on_time = [r.on_time_percentage for r in rows if r.on_time_percentage is not None]
        quality = [r.quality_percentage for r in rows if r.quality_percentage is not None]
        ratings = [r.overall_rating for r in rows if r.overall_rating is not None]
        scored = [r.weighted_score for r in rows if r.weighted_score is not None]

        return VendorScorecard(
            vendor_id=vendor.id,
            vendor_code=vendor.vendor_code,
            vendor_name=vendor.vendor_name,
            current_tier=VendorTier(vendor.vendor_tier) if vendor.vendor_tier else None,
            mission_critical=vendor.mission_critical,
            rolling_on_time_percentage=_round(_mean(on_time), 2),
            rolling_quality_percentage=_round(_mean(quality), 2),
            rolling_avg_rating=_round(_mean(ratings), 1),
            months_tracked=len(rows),
            last_month_rating=ratings[0] if ratings else None,
            last_3_months_avg_rating=_round(_mean(ratings[:3]), 1),
            last_6_months_avg_rating=_round(_mean(ratings[:6]), 1),
            trend=performance_trend(ratings),
            latest_weighted_score=scored[0] if scored else None,
            esg_risk_level=ESGRiskLevel(esg.esg_risk_level) if esg else None,
            esg_overall_score=esg.esg_overall_score if esg else None,
            monthly_performance=[
                MonthlyPerformance(
                    year=r.evaluation_period_year,
                    month=r.evaluation_period_month,
                    on_time_percentage=r.on_time_percentage,
                    quality_percentage=r.quality_percentage,
                    overall_rating=r.overall_rating,
                    weighted_score=r.weighted_score,
                )
                for r in rows
            ],
        )

    async def get_vendor_comparison_report(
        self,
        tenant_id: uuid.UUID,
        year: int,
        month: int,
        vendor_type: Optional[str] = None,
        top_n: int = 5,
    ) -> VendorComparisonReport:
        """Top and bottom performers for a period by overall rating."""
        _validate_period(year, month)

        query = (
            select(VendorPerformance, Vendor)
            .join(Vendor, Vendor.id == VendorPerformance.vendor_id)
            .where(
                VendorPerformance.tenant_id == tenant_id,
                VendorPerformance.evaluation_period_year == year,
                VendorPerformance.evaluation_period_month == month,
            )
        )
        if vendor_type:
            query = query.where(Vendor.vendor_type == vendor_type)

        async with transaction(self._session_maker) as session:
            result = await session.execute(query)
            rows = result.all()

        rankings = sorted(
            (
                VendorRanking(
                    vendor_id=vendor.id,
                    vendor_code=vendor.vendor_code,
                    vendor_name=vendor.vendor_name,
                    overall_rating=perf.overall_rating,
                    weighted_score=perf.weighted_score,
                    on_time_percentage=perf.on_time_percentage,
                    quality_percentage=perf.quality_percentage,
                )
                for perf, vendor in rows
            ),
            key=lambda r: (r.overall_rating is not None, r.overall_rating or 0.0, r.vendor_code),
            reverse=True,
        )
        rated = [r for r in rankings if r.overall_rating is not None]

        return VendorComparisonReport(
            year=year,
            month=month,
            vendor_type=vendor_type,
            top_performers=rated[:top_n],
            bottom_performers=list(reversed(rated[-top_n:])) if rated else [],
            total_vendors_evaluated=len(rankings),
            avg_on_time_percentage=_round(_mean(
                [r.on_time_percentage for r in rankings if r.on_time_percentage is not None]
            ), 2),
            avg_quality_percentage=_round(_mean(
                [r.quality_percentage for r in rankings if r.quality_percentage is not None]
            ), 2),
            avg_overall_rating=_round(_mean([r.overall_rating for r in rated]), 1),
        )

    # =========================================================================
    # SCORECARD CONFIGURATION
    # =========================================================================

    async def get_active_scorecard_config(
        self,
        tenant_id: uuid.UUID,
        vendor_type: Optional[str] = None,
        vendor_tier: Optional[str] = None,
        as_of: Optional[date] = None,
    ) -> ScorecardConfigRecord:
        """Most specific active config, or the built-in default."""
        async with transaction(self._session_maker) as session:
            return await self._select_config(
                session, tenant_id, vendor_type, vendor_tier, as_of or self._clock().date(),
            )

    async def _select_config(
        self,
        session: AsyncSession,
        tenant_id: uuid.UUID,
        vendor_type: Optional[str],
        vendor_tier: Optional[str],
        as_of: date,
    ) -> ScorecardConfigRecord:
        result = await session.execute(
            select(ScorecardConfig).where(
                ScorecardConfig.tenant_id == tenant_id,
                ScorecardConfig.is_active.is_(True),
                ScorecardConfig.effective_from_date <= as_of,
                or_(
                    ScorecardConfig.effective_to_date.is_(None),
                    ScorecardConfig.effective_to_date >= as_of,
                ),
            )
        )

        def specificity(config: ScorecardConfig) -> Optional[int]:
            type_match = config.vendor_type is not None and config.vendor_type == vendor_type
            tier_match = config.vendor_tier is not None and config.vendor_tier == vendor_tier
            if config.vendor_type is not None and not type_match:
                return None
            if config.vendor_tier is not None and not tier_match:
                return None
            if type_match and tier_match:
                return 0
            if type_match:
                return 1
            if tier_match:
                return 2
            return 3

        candidates = []
        for config in result.scalars().all():
            rank = specificity(config)
            if rank is not None:
                candidates.append((rank, -config.effective_from_date.toordinal(), config))

        if not candidates:
            return DEFAULT_SCORECARD_CONFIG

        candidates.sort(key=lambda c: (c[0], c[1]))
        return self._to_config_record(candidates[0][2])

    async def create_scorecard_config(
        self,
        tenant_id: uuid.UUID,
        config: ScorecardConfigInput,
        user_id: Optional[uuid.UUID] = None,
    ) -> ScorecardConfigRecord:
        """
        Store a new configuration version.

        The active config for the same (vendor type, vendor tier) scope is
        closed the day before the new one takes effect.
        """
        validate_scorecard_config(config)
        effective_from = config.effective_from_date or self._clock().date()
        tier_value = config.vendor_tier.value if config.vendor_tier else None

        async with transaction(self._session_maker) as session:
            await advisory_lock(session, f"scorecard-config:{tenant_id}")

            scope = [
                ScorecardConfig.tenant_id == tenant_id,
                ScorecardConfig.is_active.is_(True),
                ScorecardConfig.effective_to_date.is_(None),
                ScorecardConfig.vendor_type.is_(None) if config.vendor_type is None
                else ScorecardConfig.vendor_type == config.vendor_type,
                ScorecardConfig.vendor_tier.is_(None) if tier_value is None
                else ScorecardConfig.vendor_tier == tier_value,
            ]
            result = await session.execute(select(ScorecardConfig).where(*scope))
            for previous in result.scalars().all():
                if previous.effective_from_date >= effective_from:
                    # fully superseded before it ever took effect
                    previous.is_active = False
                else:
                    previous.effective_to_date = effective_from - timedelta(days=1)

            row = ScorecardConfig(
                id=uuid.uuid4(),
                tenant_id=tenant_id,
                config_name=config.config_name.strip(),
                vendor_type=config.vendor_type,
                vendor_tier=tier_value,
                quality_weight=config.quality_weight,
                delivery_weight=config.delivery_weight,
                cost_weight=config.cost_weight,
                service_weight=config.service_weight,
                innovation_weight=config.innovation_weight,
                esg_weight=config.esg_weight,
                excellent_threshold=config.excellent_threshold,
                good_threshold=config.good_threshold,
                acceptable_threshold=config.acceptable_threshold,
                review_frequency_months=config.review_frequency_months,
                is_active=True,
                effective_from_date=effective_from,
                created_by=user_id,
            )
            session.add(row)
            await session.flush()

            logger.info(f"Scorecard config '{row.config_name}' created for tenant {tenant_id}")
            return self._to_config_record(row)

    async def list_scorecard_configs(
        self,
        tenant_id: uuid.UUID,
        active_only: bool = False,
    ) -> List[ScorecardConfigRecord]:
        query = select(ScorecardConfig).where(ScorecardConfig.tenant_id == tenant_id)
        if active_only:
            query = query.where(ScorecardConfig.is_active.is_(True))

        async with transaction(self._session_maker) as session:
            result = await session.execute(
                query.order_by(ScorecardConfig.effective_from_date.desc(), ScorecardConfig.created_at.desc())
            )
            return [self._to_config_record(row) for row in result.scalars().all()]

    # =========================================================================
    # ESG
    # =========================================================================

    async def record_esg_metrics(
        self,
        tenant_id: uuid.UUID,
        metrics: ESGMetricsInput,
    ) -> ESGMetricsRecord:
        """Upsert ESG metrics for a vendor period."""
        async with transaction(self._session_maker) as session:
            await self._get_vendor(session, tenant_id, metrics.vendor_id)

            result = await session.execute(
                select(VendorESGMetrics).where(
                    VendorESGMetrics.tenant_id == tenant_id,
                    VendorESGMetrics.vendor_id == metrics.vendor_id,
                    VendorESGMetrics.evaluation_period_year == metrics.evaluation_period_year,
                    VendorESGMetrics.evaluation_period_month == metrics.evaluation_period_month,
                )
            )
            row = result.scalar_one_or_none()
            if row is None:
                row = VendorESGMetrics(id=uuid.uuid4(), tenant_id=tenant_id)
                session.add(row)

            for field, value in metrics.model_dump().items():
                if field == "esg_risk_level":
                    value = ESGRiskLevel(value).value
                setattr(row, field, value)

            await session.flush()
            return self._to_esg_record(row)

    async def get_vendor_esg_metrics(
        self,
        tenant_id: uuid.UUID,
        vendor_id: uuid.UUID,
        limit: int = 12,
    ) -> List[ESGMetricsRecord]:
        """ESG history, newest period first."""
        async with transaction(self._session_maker) as session:
            await self._get_vendor(session, tenant_id, vendor_id)
            result = await session.execute(
                select(VendorESGMetrics)
                .where(
                    VendorESGMetrics.tenant_id == tenant_id,
                    VendorESGMetrics.vendor_id == vendor_id,
                )
                .order_by(
                    VendorESGMetrics.evaluation_period_year.desc(),
                    VendorESGMetrics.evaluation_period_month.desc(),
                )
                .limit(limit)
            )
            return [self._to_esg_record(row) for row in result.scalars().all()]

    # =========================================================================
    # MAPPING
    # =========================================================================

    @staticmethod
    def _to_record(row: VendorPerformance, vendor: Optional[Vendor] = None) -> VendorPerformanceRecord:
        return VendorPerformanceRecord(
            id=row.id,
            tenant_id=row.tenant_id,
            vendor_id=row.vendor_id,
            vendor_code=vendor.vendor_code if vendor else None,
            vendor_name=vendor.vendor_name if vendor else None,
            evaluation_period_year=row.evaluation_period_year,
            evaluation_period_month=row.evaluation_period_month,
            total_pos_issued=row.total_pos_issued,
            total_pos_value=row.total_pos_value or 0.0,
            total_deliveries=row.total_deliveries,
            on_time_deliveries=row.on_time_deliveries,
            quality_acceptances=row.quality_acceptances,
            quality_rejections=row.quality_rejections,
            on_time_percentage=row.on_time_percentage,
            quality_percentage=row.quality_percentage,
            defect_rate_ppm=row.defect_rate_ppm,
            cost_index=row.cost_index,
            issue_resolution_rate=row.issue_resolution_rate,
            price_competitiveness_score=row.price_competitiveness_score,
            responsiveness_score=row.responsiveness_score,
            innovation_score=row.innovation_score,
            communication_score=row.communication_score,
            overall_rating=row.overall_rating,
            weighted_score=row.weighted_score,
            vendor_tier=VendorTier(row.vendor_tier) if row.vendor_tier else None,
            tier_classification_date=row.tier_classification_date,
        )

    @staticmethod
    def _to_config_record(row: ScorecardConfig) -> ScorecardConfigRecord:
        return ScorecardConfigRecord(
            id=row.id,
            tenant_id=row.tenant_id,
            config_name=row.config_name,
            vendor_type=row.vendor_type,
            vendor_tier=VendorTier(row.vendor_tier) if row.vendor_tier else None,
            quality_weight=row.quality_weight,
            delivery_weight=row.delivery_weight,
            cost_weight=row.cost_weight,
            service_weight=row.service_weight,
            innovation_weight=row.innovation_weight,
            esg_weight=row.esg_weight,
            excellent_threshold=row.excellent_threshold,
            good_threshold=row.good_threshold,
            acceptable_threshold=row.acceptable_threshold,
            review_frequency_months=row.review_frequency_months,
            is_active=row.is_active,
            effective_from_date=row.effective_from_date,
            effective_to_date=row.effective_to_date,
            created_by=row.created_by,
        )

    @staticmethod
    def _to_esg_record(row: VendorESGMetrics) -> ESGMetricsRecord:
        return ESGMetricsRecord(
            id=row.id,
            tenant_id=row.tenant_id,
            vendor_id=row.vendor_id,
            evaluation_period_year=row.evaluation_period_year,
            evaluation_period_month=row.evaluation_period_month,
            carbon_footprint_tons_co2e=row.carbon_footprint_tons_co2e,
            waste_reduction_percentage=row.waste_reduction_percentage,
            renewable_energy_percentage=row.renewable_energy_percentage,
            environmental_score=row.environmental_score,
            social_score=row.social_score,
            governance_score=row.governance_score,
            esg_overall_score=row.esg_overall_score,
            esg_risk_level=ESGRiskLevel(row.esg_risk_level),
            certifications=row.certifications,
            last_audit_date=row.last_audit_date,
            next_audit_due_date=row.next_audit_due_date,
            notes=row.notes,
        )


# Singleton instance
performance_service = VendorPerformanceService()
