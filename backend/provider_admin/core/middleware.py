"""Middleware: request ID injection and the admin access log.

Every line carries the hashed admin id. Dashboard requests also record
which view the admin ended on and what they did to it, e.g.
``view=pending action=bulk:approve``, so an operator can follow a
moderation session from the log alone.
"""

import hashlib
import logging
import time
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger("provider_admin.access")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Inject a unique request ID into each request and response."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def mark_dashboard_action(request: Request, action: str, controller) -> None:
    """Tag the request so the access log records the dashboard view and action."""
    request.state.dashboard_action = action
    request.state.dashboard_controller = controller


def _dashboard_fields(request: Request) -> tuple[str, str, str]:
    controller = getattr(request.state, "dashboard_controller", None)
    if controller is None:
        return "-", "-", "-"
    selected = len(controller.state.selected_ids)
    return controller.state.filter_key, request.state.dashboard_action, str(selected)


class AccessLogMiddleware(BaseHTTPMiddleware):
    """One line per request: admin (hashed), endpoint, status, dashboard view/action."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start = time.monotonic()
        response = await call_next(request)
        elapsed_ms = round((time.monotonic() - start) * 1000, 1)

        admin_id_raw = getattr(request.state, "user_id", None)
        view, action, selected = _dashboard_fields(request)

        logger.info(
            "request_id=%s admin=%s ip=%s method=%s path=%s status=%d "
            "view=%s action=%s selected=%s elapsed_ms=%.1f",
            getattr(request.state, "request_id", "-"),
            _hash_admin_id(admin_id_raw) if admin_id_raw else "-",
            request.client.host if request.client else "-",
            request.method,
            request.url.path,
            response.status_code,
            view,
            action,
            selected,
            elapsed_ms,
        )
        return response


def _hash_admin_id(uid: str) -> str:
    """First 12 hex chars of SHA-256; raw admin ids stay out of the log."""
    return hashlib.sha256(str(uid).encode()).hexdigest()[:12]
