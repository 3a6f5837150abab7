"""Dashboard routes: metrics and the admin's view state.

Each admin session has one controller. Only POST /dashboard/filter
fetches; search, sort and selection re-render the rows already loaded.
"""

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from provider_admin.core.auth import get_current_admin, session_token
from provider_admin.core.middleware import mark_dashboard_action
from provider_admin.dependencies import get_db
from provider_admin.models.user import User
from provider_admin.schemas.dashboard import (
    FilterRequest,
    SearchRequest,
    SelectAllRequest,
    SelectionRequest,
    SortRequest,
)
from provider_admin.schemas.provider import MetricsRead
from provider_admin.services import metrics_service
from provider_admin.services.dashboard_controller import DashboardController, get_controller

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


def _controller(request: Request, action: str) -> DashboardController:
    controller = get_controller(session_token(request))
    mark_dashboard_action(request, action, controller)
    return controller


@router.get("/metrics", response_model=MetricsRead)
async def get_metrics(
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    metrics = await metrics_service.fetch_metrics(db)
    return {
        "total": metrics.total,
        "pending": metrics.pending,
        "active": metrics.active,
        "payments_pending": metrics.payments_pending,
    }


@router.get("/view")
async def get_view(
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    controller = _controller(request, "view")
    await controller.ensure_loaded(db)
    return controller.render()


@router.post("/filter")
async def select_filter(
    body: FilterRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    controller = _controller(request, f"filter:{body.filter_key}")
    try:
        await controller.select_filter(db, body.filter_key)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return controller.render()


@router.post("/search")
async def search(
    body: SearchRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    controller = _controller(request, "search")
    await controller.ensure_loaded(db)
    controller.search(body.term)
    return controller.render()


@router.post("/sort")
async def sort(
    body: SortRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    controller = _controller(request, f"sort:{body.key}")
    await controller.ensure_loaded(db)
    controller.sort(body.key)
    return controller.render()


@router.post("/selection")
async def toggle_selection(
    body: SelectionRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    controller = _controller(request, "select")
    await controller.ensure_loaded(db)
    controller.toggle_row(body.provider_id, body.checked)
    return controller.render()


@router.post("/selection/all")
async def toggle_select_all(
    body: SelectAllRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    controller = _controller(request, "select_all")
    await controller.ensure_loaded(db)
    controller.toggle_all(body.checked)
    return controller.render()


@router.post("/bulk/{action}")
async def bulk_action(
    action: str,
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """Approve or reject every selected provider.

    A failure part way returns 502 with the ids already updated.
    """
    controller = _controller(request, f"bulk:{action}")
    await controller.ensure_loaded(db)
    await controller.bulk_apply(db, action, admin=current_admin)
    return controller.render()
