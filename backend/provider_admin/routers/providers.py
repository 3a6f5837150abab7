"""Provider routes: listing, profile, admin actions and reviews.

Endpoints:
- GET /providers: Recent providers, optionally filtered by status
- GET /providers/hidden: Providers missing from the public listing, with reasons
- GET /providers/{provider_id}: Profile view
- GET /providers/{provider_id}/history: Activity log entries for the provider
- GET /providers/{provider_id}/reviews: Cursor-paginated reviews
- POST /providers/{provider_id}/approve
- POST /providers/{provider_id}/reject
- POST /providers/{provider_id}/payments/registration
- POST /providers/{provider_id}/payments/subscription
- PATCH /providers/{provider_id}/notes
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from provider_admin.config import settings
from provider_admin.core.auth import get_current_admin
from provider_admin.derived_views import tables
from provider_admin.dependencies import get_db
from provider_admin.models.provider import ProviderStatus
from provider_admin.models.user import User
from provider_admin.schemas.activity import ActivityLogRead
from provider_admin.schemas.provider import (
    AdminNotesRequest,
    HiddenProviderRead,
    ProviderRecord,
    RecentProvidersRead,
    RejectRequest,
)
from provider_admin.schemas.review import ReviewPageRead
from provider_admin.services import (
    activity_service,
    hidden_provider_service,
    provider_service,
    review_service,
)

router = APIRouter(prefix="/providers", tags=["providers"])


@router.get("", response_model=RecentProvidersRead)
async def list_providers(
    limit: int = Query(settings.filtered_providers_limit, ge=1, le=500),
    status: ProviderStatus | None = None,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """Newest first. ``degraded`` is true when ordering had to be dropped."""
    result = await provider_service.fetch_recent_providers(
        db, limit, status.value if status else None
    )
    return {"data": result.data, "degraded": result.degraded}


@router.get("/hidden", response_model=list[HiddenProviderRead])
async def list_hidden_providers(
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    hidden = await hidden_provider_service.fetch_hidden_providers(db)
    return [{"provider": h.provider, "reasons": h.reasons} for h in hidden]


@router.get("/{provider_id}")
async def get_provider_profile(
    provider_id: str,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    provider = await provider_service.fetch_provider_by_id(db, provider_id)
    return tables.profile_view(provider, datetime.now(timezone.utc))


@router.get("/{provider_id}/history", response_model=list[ActivityLogRead])
async def get_provider_history(
    provider_id: str,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    await provider_service.fetch_provider_by_id(db, provider_id)
    return await activity_service.fetch_provider_history(
        db, provider_id, limit=settings.activity_log_limit
    )


@router.get("/{provider_id}/reviews", response_model=ReviewPageRead)
async def list_reviews(
    provider_id: str,
    page_size: int = Query(settings.reviews_page_size, ge=1, le=100),
    cursor: str | None = None,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    page = await review_service.fetch_paginated_reviews(db, provider_id, page_size, cursor)
    return {"reviews": page.reviews, "next_cursor": page.next_cursor, "has_more": page.has_more}


@router.post("/{provider_id}/approve", response_model=ProviderRecord)
async def approve(
    provider_id: str,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """Activate a provider. They go live on the public site."""
    record = await provider_service.approve_provider(db, provider_id, admin=current_admin)
    await db.commit()
    return record


@router.post("/{provider_id}/reject", response_model=ProviderRecord)
async def reject(
    provider_id: str,
    body: RejectRequest,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    record = await provider_service.reject_provider(
        db, provider_id, body.reason, admin=current_admin
    )
    await db.commit()
    return record


@router.post("/{provider_id}/payments/registration", response_model=ProviderRecord)
async def confirm_registration_payment(
    provider_id: str,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    record = await provider_service.confirm_registration_payment(
        db, provider_id, admin=current_admin
    )
    await db.commit()
    return record


@router.post("/{provider_id}/payments/subscription", response_model=ProviderRecord)
async def confirm_subscription_payment(
    provider_id: str,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """Start a new one-month subscription period from today."""
    record = await provider_service.confirm_subscription_payment(
        db, provider_id, admin=current_admin
    )
    await db.commit()
    return record


@router.patch("/{provider_id}/notes", response_model=ProviderRecord)
async def update_notes(
    provider_id: str,
    body: AdminNotesRequest,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    record = await provider_service.update_admin_notes(
        db, provider_id, body.notes, admin=current_admin
    )
    await db.commit()
    return record
