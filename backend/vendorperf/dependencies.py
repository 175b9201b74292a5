"""Dependency injection helpers for FastAPI."""

from fastapi import HTTPException

from vendorperf.core.errors import VendorPerfError
from vendorperf.services.alert_engine import VendorAlertEngine, alert_engine
from vendorperf.services.performance_service import VendorPerformanceService, performance_service
from vendorperf.services.tier_service import VendorTierService, tier_service


def get_alert_engine() -> VendorAlertEngine:
    return alert_engine


def get_tier_service() -> VendorTierService:
    return tier_service


def get_performance_service() -> VendorPerformanceService:
    return performance_service


def http_error(error: VendorPerfError) -> HTTPException:
    """Typed engine error -> HTTP response. Store internals stay hidden."""
    return HTTPException(status_code=error.status_code, detail=error.message)
