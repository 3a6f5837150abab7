"""Auth routes: login, logout, current admin."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from provider_admin.core.auth import get_current_admin, login_admin, logout_admin, session_token
from provider_admin.dependencies import get_db
from provider_admin.models.user import User
from provider_admin.schemas.user import AdminRead, LoginRequest, LoginResponse
from provider_admin.services.dashboard_controller import drop_controller

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    ip = request.client.host if request.client else None
    user, token = await login_admin(db, email=body.email, password=body.password, ip_address=ip)
    await db.commit()
    return {"token": token, "user_id": user.id, "email": user.email}


@router.post("/logout", status_code=204)
async def logout(
    request: Request,
    db: AsyncSession = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    token = session_token(request)
    ip = request.client.host if request.client else None
    await logout_admin(db, token=token, ip_address=ip)
    await db.commit()
    drop_controller(token)


@router.get("/me", response_model=AdminRead)
async def me(current_admin: User = Depends(get_current_admin)):
    return current_admin
