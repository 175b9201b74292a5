"""
Vendor Performance - Test Fixtures

Every test gets its own SQLite database (aiosqlite) built from the ORM
metadata, a fixed clock and a recording publisher. Services are built
with those collaborators instead of the module singletons.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./vendorperf-test.db")
os.environ.setdefault("ALERT_WEBHOOK_URL", "")

import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from vendorperf.db.models import Base, PurchaseOrder, Vendor, VendorESGMetrics
from vendorperf.services.alert_engine import VendorAlertEngine
from vendorperf.services.events.publisher import AlertPublisher
from vendorperf.services.performance_service import VendorPerformanceService
from vendorperf.services.tier_service import VendorTierService


class FixedClock:
    """Deterministic replacement for datetime.now(timezone.utc)."""
    
    def __init__(self, now: datetime):
        self.current = now
    
    def __call__(self) -> datetime:
        return self.current
    
    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class FailingPublisher(AlertPublisher):
    """Notification sink that is always down."""
    
    def __init__(self):
        super().__init__(webhook_url="")
        self.attempts = 0
    
    async def publish(self, event) -> None:
        self.attempts += 1
        raise httpx.ConnectError("notification sink unreachable")


# =============================================================================
# INFRASTRUCTURE
# =============================================================================

@pytest.fixture
async def session_maker(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'vendorperf.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    
    await engine.dispose()


@pytest.fixture
async def unreachable_session_maker(tmp_path):
    """Sessions on a database file sqlite cannot open."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'vendorperf.db'}")
    
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    
    await engine.dispose()


@pytest.fixture
def clock():
    return FixedClock(datetime(2026, 6, 15, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def publisher():
    return AlertPublisher(webhook_url="")


@pytest.fixture
def tenant_id():
    return uuid.uuid4()


@pytest.fixture
def user_id():
    return uuid.uuid4()


# =============================================================================
# SERVICES
# =============================================================================

@pytest.fixture
def alerts(session_maker, publisher, clock):
    return VendorAlertEngine(session_maker=session_maker, publisher=publisher, clock=clock)


@pytest.fixture
def tiers(session_maker, alerts, clock):
    return VendorTierService(session_maker=session_maker, alerts=alerts, clock=clock)


@pytest.fixture
def performance(session_maker, alerts, clock):
    return VendorPerformanceService(session_maker=session_maker, alerts=alerts, clock=clock)


# =============================================================================
# SEED HELPERS
# =============================================================================

async def add_vendor(
    session_maker,
    tenant_id: uuid.UUID,
    code: str,
    *,
    vendor_type: Optional[str] = None,
    vendor_tier: Optional[str] = None,
    mission_critical: bool = False,
    is_active: bool = True,
) -> uuid.UUID:
    vendor_id = uuid.uuid4()
    async with session_maker() as session:
        async with session.begin():
            session.add(Vendor(
                id=vendor_id,
                tenant_id=tenant_id,
                vendor_code=code,
                vendor_name=f"{code} Supply Co",
                vendor_type=vendor_type,
                vendor_tier=vendor_tier,
                mission_critical=mission_critical,
                is_active=is_active,
            ))
    return vendor_id


async def add_po(
    session_maker,
    tenant_id: uuid.UUID,
    vendor_id: uuid.UUID,
    amount: float,
    *,
    order_date: date = date(2026, 5, 1),
    status: str = "RECEIVED",
    promised: Optional[date] = None,
    requested: Optional[date] = None,
    received: Optional[date] = None,
    quantity_received: Optional[float] = None,
    quantity_rejected: Optional[float] = None,
    notes: Optional[str] = None,
) -> uuid.UUID:
    po_id = uuid.uuid4()
    async with session_maker() as session:
        async with session.begin():
            session.add(PurchaseOrder(
                id=po_id,
                tenant_id=tenant_id,
                vendor_id=vendor_id,
                po_number=f"PO-{po_id.hex[:8]}",
                order_date=order_date,
                status=status,
                total_amount=Decimal(str(amount)),
                promised_delivery_date=promised,
                requested_delivery_date=requested,
                received_date=received,
                quantity_received=Decimal(str(quantity_received)) if quantity_received is not None else None,
                quantity_rejected=Decimal(str(quantity_rejected)) if quantity_rejected is not None else None,
                notes=notes,
            ))
    return po_id


async def add_esg(
    session_maker,
    tenant_id: uuid.UUID,
    vendor_id: uuid.UUID,
    *,
    year: int = 2026,
    month: int = 5,
    risk_level: str = "LOW",
    overall_score: Optional[float] = None,
    next_audit_due_date: Optional[date] = None,
    last_audit_date: Optional[date] = None,
) -> None:
    async with session_maker() as session:
        async with session.begin():
            session.add(VendorESGMetrics(
                id=uuid.uuid4(),
                tenant_id=tenant_id,
                vendor_id=vendor_id,
                evaluation_period_year=year,
                evaluation_period_month=month,
                esg_risk_level=risk_level,
                esg_overall_score=overall_score,
                next_audit_due_date=next_audit_due_date,
                last_audit_date=last_audit_date,
            ))
