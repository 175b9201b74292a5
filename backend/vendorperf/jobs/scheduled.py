"""
Vendor Performance - Scheduled Jobs

Entry points for the scheduler:

    monthly    aggregate + score + alert every active vendor for a period
               (defaults to the previous calendar month)
    reclassify recompute spend tiers for every active vendor
    esg-audit  raise alerts for ESG audits due within the lookahead window

Usage:
    python -m vendorperf.jobs.scheduled monthly --tenant-id UUID [--year Y --month M]
    python -m vendorperf.jobs.scheduled reclassify --tenant-id UUID
    python -m vendorperf.jobs.scheduled esg-audit --tenant-id UUID
"""

import argparse
import asyncio
import logging
import uuid
from datetime import date
from typing import List, Optional, Sequence

from vendorperf.core.config import settings
from vendorperf.models.performance import PeriodEvaluation
from vendorperf.models.tiers import ReclassificationSummary
from vendorperf.services.alert_engine import VendorAlertEngine, alert_engine
from vendorperf.services.performance_service import (
    VendorPerformanceService,
    performance_service,
    previous_period,
)
from vendorperf.services.tier_service import VendorTierService, tier_service

logger = logging.getLogger(__name__)


async def run_monthly_evaluation(
    tenant_id: uuid.UUID,
    year: Optional[int] = None,
    month: Optional[int] = None,
    service: Optional[VendorPerformanceService] = None,
) -> List[PeriodEvaluation]:
    """Evaluate every active vendor; defaults to last month."""
    service = service or performance_service
    if year is None or month is None:
        today = date.today()
        year, month = previous_period(today.year, today.month)

    evaluations = await service.evaluate_all_vendors(tenant_id, year, month)
    alerts = sum(len(e.alert_ids) for e in evaluations)
    logger.info(
        f"Monthly evaluation {year}-{month:02d} for tenant {tenant_id}: "
        f"{len(evaluations)} vendors, {alerts} alerts"
    )
    return evaluations


async def run_reclassification(
    tenant_id: uuid.UUID,
    service: Optional[VendorTierService] = None,
) -> ReclassificationSummary:
    service = service or tier_service
    summary = await service.reclassify_all(tenant_id)
    logger.info(
        f"Reclassified {summary.vendors_analyzed} vendors for tenant {tenant_id}: "
        f"{len(summary.tier_changes)} changes in {summary.execution_time_ms}ms"
    )
    return summary


async def run_audit_sweep(
    tenant_id: uuid.UUID,
    engine: Optional[VendorAlertEngine] = None,
) -> int:
    engine = engine or alert_engine
    evaluated = await engine.check_esg_audit_due_dates(tenant_id)
    logger.info(f"ESG audit sweep for tenant {tenant_id}: {evaluated} vendors with audits due")
    return evaluated


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Vendor performance scheduled jobs")
    sub = parser.add_subparsers(dest="job", required=True)

    monthly = sub.add_parser("monthly", help="Monthly vendor evaluation")
    monthly.add_argument("--tenant-id", type=uuid.UUID, required=True)
    monthly.add_argument("--year", type=int)
    monthly.add_argument("--month", type=int)

    reclassify = sub.add_parser("reclassify", help="Spend tier reclassification")
    reclassify.add_argument("--tenant-id", type=uuid.UUID, required=True)

    audit = sub.add_parser("esg-audit", help="ESG audit due-date sweep")
    audit.add_argument("--tenant-id", type=uuid.UUID, required=True)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    args = build_parser().parse_args(argv)

    if args.job == "monthly":
        asyncio.run(run_monthly_evaluation(args.tenant_id, args.year, args.month))
    elif args.job == "reclassify":
        asyncio.run(run_reclassification(args.tenant_id))
    else:
        asyncio.run(run_audit_sweep(args.tenant_id))


if __name__ == "__main__":
    main()
