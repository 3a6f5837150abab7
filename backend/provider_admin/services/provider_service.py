"""Provider service: reads, partial updates and admin actions on providers.

Reads return canonical ``ProviderRecord`` objects. Store failures raise
``TransportFailure``; a missing provider raises ``NotFoundError``.
Every admin action is written to the activity log. Plain
``update_provider`` is not, so batch callers can log one summary entry.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from provider_admin.config import settings
from provider_admin.core.errors import NotFoundError, ValidationFailure
from provider_admin.derived_views.status import add_one_month
from provider_admin.models.provider import PaymentStatus, Provider, ProviderStatus
from provider_admin.models.user import User
from provider_admin.schemas.provider import ProviderRecord
from provider_admin.services import activity_service, store

logger = logging.getLogger("provider_admin.providers")

ADMIN_ACTOR = "admin"
MONTHLY_BILLING_CYCLE = "monthly"

UPDATABLE_FIELDS = frozenset({
    "status",
    "verified",
    "payment_status",
    "amount_paid",
    "availability_status",
    "subscription_start_date",
    "subscription_end_date",
    "grace_period_end_date",
    "last_payment_date",
    "billing_cycle",
    "documents",
    "admin_notes",
    "rejection_reason",
})


@dataclass
class QueryResult:
    """Fetched records. ``degraded`` is set when the fallback query ran."""

    data: list[ProviderRecord] = field(default_factory=list)
    degraded: bool = False


def _recent_statement(limit: int, status: str | None, *, ordered: bool) -> Select:
    stmt = select(Provider)
    if status:
        stmt = stmt.where(Provider.status == status)
    if ordered:
        stmt = stmt.order_by(Provider.created_at.desc())
    return stmt.limit(limit)


async def fetch_recent_providers(
    db: AsyncSession,
    limit: int = 10,
    status: str | None = None,
) -> QueryResult:
    """Newest providers first, optionally filtered by status.

    If the filtered, ordered query is rejected by the store, the query is
    retried without ordering and the result is marked degraded.
    """
    try:
        async with db.begin_nested():
            result = await db.execute(_recent_statement(limit, status, ordered=True))
            providers = list(result.scalars().all())
        return QueryResult(data=[ProviderRecord.from_model(p) for p in providers])
    except SQLAlchemyError as exc:
        logger.warning(
            "Ordered provider query failed (status=%s), fetching without order: %s",
            status,
            exc,
        )

    providers = await store.fetch_all(
        db, _recent_statement(limit, status, ordered=False), context="providers"
    )
    return QueryResult(data=[ProviderRecord.from_model(p) for p in providers], degraded=True)


async def fetch_providers_by_status(db: AsyncSession, status: str) -> list[ProviderRecord]:
    """All providers with the given lifecycle status, unordered."""
    providers = await store.fetch_all(
        db,
        select(Provider).where(Provider.status == status),
        context=f"{status} providers",
    )
    return [ProviderRecord.from_model(p) for p in providers]


async def _load(db: AsyncSession, provider_id: str) -> Provider:
    provider = await store.fetch_one(
        db, select(Provider).where(Provider.id == provider_id), context="provider"
    )
    if provider is None:
        raise NotFoundError(f"Provider {provider_id} not found")
    return provider


async def fetch_provider_by_id(db: AsyncSession, provider_id: str) -> ProviderRecord:
    """Point lookup. Raises NotFoundError if no such provider exists."""
    return ProviderRecord.from_model(await _load(db, provider_id))


async def update_provider(
    db: AsyncSession,
    provider_id: str,
    fields: dict[str, Any],
    *,
    now: datetime | None = None,
) -> ProviderRecord:
    """Merge ``fields`` into the stored provider.

    Fields not mentioned are left untouched. The update is stamped with
    ``updatedAt`` and ``lastProcessedBy``.
    """
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationFailure(f"Unknown provider fields: {sorted(unknown)}")

    provider = await _load(db, provider_id)
    for name, value in fields.items():
        setattr(provider, name, value)
    provider.updated_at = now or datetime.now(timezone.utc)
    provider.last_processed_by = ADMIN_ACTOR
    await store.flush(db, context="provider")

    logger.info("provider=%s updated fields=%s", provider_id, sorted(fields))
    return ProviderRecord.from_model(provider)


async def approve_provider(
    db: AsyncSession,
    provider_id: str,
    *,
    admin: User | None = None,
) -> ProviderRecord:
    """Activate and verify a provider. They go live on the public listing."""
    record = await update_provider(
        db,
        provider_id,
        {"status": ProviderStatus.active.value, "verified": True},
    )
    await activity_service.append_audit_log(
        db,
        "provider.approved",
        {"provider_id": provider_id, "provider_name": record.display_name},
        **activity_service.actor(admin),
    )
    return record


async def reject_provider(
    db: AsyncSession,
    provider_id: str,
    reason: str,
    *,
    admin: User | None = None,
) -> ProviderRecord:
    """Reject a provider. A non-empty reason is required."""
    note = (reason or "").strip()
    if not note:
        raise ValidationFailure("Please provide a reason for rejection.")

    record = await update_provider(
        db,
        provider_id,
        {"status": ProviderStatus.rejected.value, "rejection_reason": note},
    )
    await activity_service.append_audit_log(
        db,
        "provider.rejected",
        {
            "provider_id": provider_id,
            "provider_name": record.display_name,
            "reason": note,
        },
        **activity_service.actor(admin),
    )
    return record


async def confirm_registration_payment(
    db: AsyncSession,
    provider_id: str,
    *,
    admin: User | None = None,
) -> ProviderRecord:
    """Mark the once-off registration fee as paid."""
    record = await update_provider(
        db, provider_id, {"payment_status": PaymentStatus.paid.value}
    )
    await activity_service.append_audit_log(
        db,
        "payment.registration_confirmed",
        {
            "provider_id": provider_id,
            "provider_name": record.display_name,
            "amount": settings.registration_fee,
        },
        **activity_service.actor(admin),
    )
    return record


async def confirm_subscription_payment(
    db: AsyncSession,
    provider_id: str,
    *,
    admin: User | None = None,
    now: datetime | None = None,
) -> ProviderRecord:
    """Start a fresh one-month subscription period from ``now``.

    Any remaining time on a previous period is discarded, not extended.
    """
    now = now or datetime.now(timezone.utc)
    end = add_one_month(now)
    grace_end = end + timedelta(days=settings.grace_period_days)

    record = await update_provider(
        db,
        provider_id,
        {
            "subscription_start_date": now,
            "subscription_end_date": end,
            "grace_period_end_date": grace_end,
            "last_payment_date": now,
            "billing_cycle": MONTHLY_BILLING_CYCLE,
            "payment_status": PaymentStatus.paid.value,
        },
        now=now,
    )
    await activity_service.append_audit_log(
        db,
        "payment.subscription_confirmed",
        {
            "provider_id": provider_id,
            "provider_name": record.display_name,
            "amount": settings.subscription_fee,
            "subscription_end_date": end.isoformat(),
            "grace_period_end_date": grace_end.isoformat(),
        },
        **activity_service.actor(admin),
    )
    return record


async def update_admin_notes(
    db: AsyncSession,
    provider_id: str,
    notes: str,
    *,
    admin: User | None = None,
) -> ProviderRecord:
    record = await update_provider(db, provider_id, {"admin_notes": notes})
    await activity_service.append_audit_log(
        db,
        "provider.notes_updated",
        {"provider_id": provider_id, "provider_name": record.display_name},
        **activity_service.actor(admin),
    )
    return record
