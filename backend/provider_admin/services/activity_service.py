"""Activity log service: append-only record of admin actions.

All writes are append-only. No update or delete methods are exposed.
"""

import json

from sqlalchemy import String, and_, cast, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from provider_admin.models.activity_log import ActivityLogEntry
from provider_admin.models.user import User
from provider_admin.services import store

BULK_ACTION_PREFIX = "provider.bulk_"


def actor(admin: User | None) -> dict:
    """Admin identity fields for ``append_audit_log``.

    Read these before any rollback: a rolled back session expires the
    admin instance.
    """
    if admin is None:
        return {"admin_id": None, "admin_email": None}
    return {"admin_id": str(admin.id), "admin_email": admin.email}


async def append_audit_log(
    db: AsyncSession,
    action: str,
    details: dict | None = None,
    *,
    admin_id: str | None = None,
    admin_email: str | None = None,
) -> ActivityLogEntry:
    """Create an append-only activity log entry."""
    entry = ActivityLogEntry(
        action=action,
        details=details,
        admin_id=admin_id,
        admin_email=admin_email,
    )
    db.add(entry)
    await store.flush(db, context="activity log entry")
    return entry


async def fetch_activity_log(
    db: AsyncSession,
    *,
    action: str | None = None,
    limit: int = 100,
) -> list[ActivityLogEntry]:
    """Most recent entries first, optionally filtered by action kind."""
    stmt = select(ActivityLogEntry).order_by(ActivityLogEntry.timestamp.desc())
    if action is not None:
        stmt = stmt.where(ActivityLogEntry.action == action)
    stmt = stmt.limit(limit)
    return await store.fetch_all(db, stmt, context="activity log")


async def fetch_provider_history(
    db: AsyncSession,
    provider_id: str,
    *,
    limit: int = 100,
) -> list[ActivityLogEntry]:
    """The ``limit`` most recent entries that touched one provider, oldest first.

    Single-provider actions record ``provider_id`` in their details and are
    matched on that JSON field. Bulk actions record the full ``provider_ids``
    list; the query narrows them to entries whose serialized details mention
    the id, and membership is confirmed here.
    """
    details = ActivityLogEntry.details
    stmt = (
        select(ActivityLogEntry)
        .where(
            or_(
                details["provider_id"].as_string() == provider_id,
                and_(
                    ActivityLogEntry.action.startswith(BULK_ACTION_PREFIX, autoescape=True),
                    cast(details, String).contains(json.dumps(provider_id), autoescape=True),
                ),
            )
        )
        .order_by(ActivityLogEntry.timestamp.desc())
        .limit(limit)
    )
    entries = await store.fetch_all(db, stmt, context="activity log")
    return [entry for entry in reversed(entries) if _touches(entry, provider_id)]


def _touches(entry: ActivityLogEntry, provider_id: str) -> bool:
    details = entry.details or {}
    return details.get("provider_id") == provider_id or provider_id in (
        details.get("provider_ids") or []
    )
