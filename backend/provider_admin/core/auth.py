"""Authentication: admin login, logout, get_current_admin.

Session-based auth with bcrypt password hashing. A user is an admin when
their ``role`` is ``admin`` or they are listed in the admin registry;
either one grants access. Login and logout are written to the activity log.
"""

import secrets
from datetime import datetime, timedelta, timezone

import bcrypt
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from provider_admin.config import settings
from provider_admin.core.errors import UnauthorizedError
from provider_admin.dependencies import get_db
from provider_admin.models.session import Session
from provider_admin.models.user import ADMIN_ROLE, AdminGrant, User, UserStatus
from provider_admin.services import activity_service, store
from provider_admin.services.dashboard_controller import drop_controller

SESSION_TOKEN_HEADER = "X-Session-Token"


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against a bcrypt hash."""
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def _generate_token() -> str:
    """Generate a cryptographically secure session token."""
    return secrets.token_hex(32)


async def is_admin(db: AsyncSession, user: User) -> bool:
    """Role field on the user record, or membership in the admin registry."""
    if user.role == ADMIN_ROLE:
        return True
    grant = await store.fetch_one(
        db, select(AdminGrant).where(AdminGrant.user_id == user.id), context="admin registry"
    )
    return grant is not None


async def login_admin(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    ip_address: str | None = None,
) -> tuple[User, str]:
    """Authenticate an admin, create a session, return (user, token).

    Raises HTTPException 401 on bad credentials and UnauthorizedError when
    the account is valid but not an admin. No session is created then.
    """
    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if user is None or not verify_password(password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    if user.status != UserStatus.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is not active",
        )

    if not await is_admin(db, user):
        raise UnauthorizedError("Unauthorized access. Admin role required.")

    token = _generate_token()
    session = Session(
        user_id=user.id,
        token=token,
        expires_at=datetime.now(timezone.utc) + timedelta(hours=settings.session_duration_hours),
    )
    db.add(session)
    await db.flush()

    await activity_service.append_audit_log(
        db,
        "auth.login",
        {"ip_address": ip_address},
        **activity_service.actor(user),
    )

    return user, token


async def logout_admin(
    db: AsyncSession,
    *,
    token: str,
    ip_address: str | None = None,
) -> None:
    """Revoke a session token."""
    result = await db.execute(select(Session).where(Session.token == token))
    session = result.scalar_one_or_none()
    if session is None:
        return

    session.revoked = True
    await db.flush()

    await activity_service.append_audit_log(
        db,
        "auth.logout",
        {"ip_address": ip_address},
        admin_id=str(session.user_id),
    )


async def get_current_admin(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> User:
    """FastAPI dependency: validate the session token and admin status.

    Raises HTTPException 401 if the token is missing, invalid, expired or
    revoked, and UnauthorizedError if the user is no longer an admin. A
    rejected token also loses its dashboard controller.
    """
    token = request.headers.get(SESSION_TOKEN_HEADER)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )

    result = await db.execute(select(Session).where(Session.token == token))
    session = result.scalar_one_or_none()

    if session is None or session.revoked:
        drop_controller(token)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or revoked session",
        )

    expires_at = session.expires_at
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    if expires_at < datetime.now(timezone.utc):
        drop_controller(token)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired",
        )

    result = await db.execute(select(User).where(User.id == session.user_id))
    user = result.scalar_one_or_none()

    if user is None or user.status != UserStatus.active:
        drop_controller(token)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )

    if not await is_admin(db, user):
        drop_controller(token)
        raise UnauthorizedError("Unauthorized access. Admin role required.")

    request.state.user_id = str(user.id)
    request.state.session_token = token
    return user


async def create_admin(
    db: AsyncSession,
    *,
    email: str,
    password: str,
    via_registry: bool = False,
) -> User:
    """Create an admin account, by role or by registry membership."""
    user = User(
        email=email,
        password_hash=hash_password(password),
        role=None if via_registry else ADMIN_ROLE,
        status=UserStatus.active,
    )
    db.add(user)
    await db.flush()
    if via_registry:
        db.add(AdminGrant(user_id=user.id))
        await db.flush()
    return user


def session_token(request: Request) -> str:
    return request.headers.get(SESSION_TOKEN_HEADER, "")

