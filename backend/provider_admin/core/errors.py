"""Structured error responses: consistent JSON format for all errors.

Domain exceptions raised by services are mapped to status codes here so
routers only translate what is specific to them.
"""

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


class AdminServiceError(Exception):
    """Base class for domain errors surfaced to the admin UI."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(AdminServiceError):
    """A point lookup found no record."""

    status_code = status.HTTP_404_NOT_FOUND


class UnauthorizedError(AdminServiceError):
    """The session does not belong to an admin."""

    status_code = status.HTTP_403_FORBIDDEN


class TransportFailure(AdminServiceError):
    """The backing store could not be read or written."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class ValidationFailure(AdminServiceError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class BulkActionError(AdminServiceError):
    """A bulk action stopped part way. Completed updates are not rolled back."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, detail: str, *, completed_ids: list[str], failed_id: str):
        super().__init__(detail)
        self.completed_ids = completed_ids
        self.failed_id = failed_id


def _error_body(request: Request, status_code: int, detail, **extra) -> dict:
    body = {
        "error": True,
        "status_code": status_code,
        "detail": detail,
        "request_id": getattr(request.state, "request_id", None),
    }
    body.update(extra)
    return body


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.status_code, exc.detail),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=_error_body(
                request, 422, "Validation error", errors=jsonable_errors(exc)
            ),
        )

    @app.exception_handler(BulkActionError)
    async def bulk_action_exception_handler(request: Request, exc: BulkActionError):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(
                request,
                exc.status_code,
                exc.detail,
                completed_ids=exc.completed_ids,
                failed_id=exc.failed_id,
            ),
        )

    @app.exception_handler(AdminServiceError)
    async def admin_service_exception_handler(request: Request, exc: AdminServiceError):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.status_code, exc.detail),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=_error_body(request, 500, "Internal server error"),
        )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    # ctx may hold exception instances, which are not JSON serializable
    return [
        {key: value for key, value in err.items() if key != "ctx"}
        for err in exc.errors()
    ]
