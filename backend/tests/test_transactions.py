"""
Vendor Performance - Transaction Boundary Tests

Store failures inside `transaction()` roll back and surface as
TransientStoreError without the driver's message.
"""

import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from vendorperf.core.errors import TransientStoreError
from vendorperf.db.models import Vendor
from vendorperf.db.session import transaction
from vendorperf.services.alert_engine import VendorAlertEngine
from vendorperf.services.performance_service import VendorPerformanceService


STORE_FAILURES = [
    lambda: OperationalError("UPDATE vendors", {}, Exception("server closed the connection unexpectedly")),
    lambda: InterfaceError("UPDATE vendors", {}, Exception("connection already closed")),
    lambda: PoolTimeoutError("QueuePool limit of size 5 overflow 10 reached"),
]


class TestTransaction:
    """Unit of work around one AsyncSession."""

    @pytest.mark.parametrize("failure", STORE_FAILURES)
    async def test_store_failure_rolls_back(self, session_maker, tenant_id, failure):
        with pytest.raises(TransientStoreError) as excinfo:
            async with transaction(session_maker) as session:
                session.add(Vendor(
                    id=uuid.uuid4(),
                    tenant_id=tenant_id,
                    vendor_code="V-A",
                    vendor_name="V-A Supply Co",
                ))
                await session.flush()
                raise failure()

        assert excinfo.value.status_code == 503
        assert excinfo.value.message.startswith("Data store unavailable")
        assert "connection" not in excinfo.value.message
        assert "QueuePool" not in excinfo.value.message

        async with session_maker() as session:
            count = (await session.execute(select(func.count()).select_from(Vendor))).scalar_one()
        assert count == 0

    async def test_other_errors_pass_through(self, session_maker):
        """Only store failures are translated."""
        with pytest.raises(RuntimeError):
            async with transaction(session_maker):
                raise RuntimeError("boom")

    async def test_commit_on_clean_exit(self, session_maker, tenant_id):
        async with transaction(session_maker) as session:
            session.add(Vendor(
                id=uuid.uuid4(),
                tenant_id=tenant_id,
                vendor_code="V-A",
                vendor_name="V-A Supply Co",
            ))

        async with session_maker() as session:
            count = (await session.execute(select(func.count()).select_from(Vendor))).scalar_one()
        assert count == 1


class TestUnreachableStore:
    """Services never leak driver errors."""

    async def test_alert_statistics(self, unreachable_session_maker, publisher, clock, tenant_id):
        engine = VendorAlertEngine(session_maker=unreachable_session_maker, publisher=publisher, clock=clock)

        with pytest.raises(TransientStoreError) as excinfo:
            await engine.get_alert_statistics(tenant_id)

        assert excinfo.value.message == "Data store unavailable: OperationalError"
        assert isinstance(excinfo.value.__cause__, OperationalError)

    async def test_performance_calculation(self, unreachable_session_maker, alerts, clock, tenant_id):
        service = VendorPerformanceService(session_maker=unreachable_session_maker, alerts=alerts, clock=clock)

        with pytest.raises(TransientStoreError):
            await service.calculate_vendor_performance(tenant_id, uuid.uuid4(), 2026, 5)
