"""Dashboard metrics: provider counts for the stat cards."""

import logging
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from provider_admin.core.errors import TransportFailure
from provider_admin.models.provider import Provider, ProviderStatus

logger = logging.getLogger("provider_admin.metrics")


@dataclass(frozen=True)
class DashboardMetrics:
    total: int
    pending: int
    active: int
    # No payment-tracking source exists yet; always reported as zero.
    payments_pending: int = 0


async def fetch_metrics(db: AsyncSession) -> DashboardMetrics:
    """Total, pending and active counts, gathered in a single round trip."""
    stmt = select(
        func.count(Provider.id),
        func.count(Provider.id).filter(Provider.status == ProviderStatus.pending.value),
        func.count(Provider.id).filter(Provider.status == ProviderStatus.active.value),
    )
    try:
        result = await db.execute(stmt)
    except SQLAlchemyError as exc:
        logger.exception("Error fetching metrics")
        raise TransportFailure("Could not load dashboard metrics") from exc

    total, pending, active = result.one()
    return DashboardMetrics(total=total or 0, pending=pending or 0, active=active or 0)
