"""Activity log routes: the admin audit trail."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from provider_admin.core.auth import get_current_admin
from provider_admin.dependencies import get_db
from provider_admin.models.user import User
from provider_admin.schemas.activity import ActivityLogRead
from provider_admin.services import activity_service

router = APIRouter(prefix="/activity", tags=["activity"])


@router.get("", response_model=list[ActivityLogRead])
async def list_activity(
    action: str | None = None,
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """Most recent admin actions first."""
    return await activity_service.fetch_activity_log(db, action=action, limit=limit)
