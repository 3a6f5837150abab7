import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from provider_admin.core.errors import TransportFailure
from provider_admin.models.provider import Provider
from provider_admin.services import metrics_service


@pytest.mark.asyncio
async def test_metrics_empty_store(db_session: AsyncSession):
    metrics = await metrics_service.fetch_metrics(db_session)
    assert metrics == metrics_service.DashboardMetrics(total=0, pending=0, active=0)


@pytest.mark.asyncio
async def test_metrics_counts(db_session: AsyncSession):
    for i, status in enumerate(["pending", "pending", "active", "rejected", "active", "active"]):
        db_session.add(Provider(id=f"p{i}", status=status))
    await db_session.commit()

    metrics = await metrics_service.fetch_metrics(db_session)
    assert metrics.total == 6
    assert metrics.pending == 2
    assert metrics.active == 3
    assert metrics.payments_pending == 0


@pytest.mark.asyncio
async def test_metrics_store_failure(db_session: AsyncSession, monkeypatch):
    async def _offline(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("store offline"))

    monkeypatch.setattr(db_session, "execute", _offline)

    with pytest.raises(TransportFailure):
        await metrics_service.fetch_metrics(db_session)
