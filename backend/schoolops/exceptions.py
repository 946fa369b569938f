import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None
    status_code: int


class AppError(Exception):
    """Base application exception."""

    default_status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code if status_code is not None else self.default_status_code
        super().__init__(self.message)


class UnauthorizedError(AppError):
    """Caller identity is missing or unknown."""

    default_status_code = status.HTTP_401_UNAUTHORIZED


class ForbiddenError(AppError):
    """Caller is known but not allowed to perform the action."""

    default_status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(AppError):
    """Requested entity does not exist within the caller's tenant."""

    default_status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    """Write lost against a concurrent modification or a uniqueness rule."""

    default_status_code = status.HTTP_409_CONFLICT


class InvalidTransitionError(ConflictError):
    """The requisition workflow refused a state transition."""

    def __init__(self, current_status: str, action: str) -> None:
        self.current_status = current_status
        self.action = action
        super().__init__(f"Cannot {action} a requisition in status '{current_status}'")


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            detail=exc.message,
            status_code=exc.status_code,
        ).model_dump(),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            detail=str(exc.errors()),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ).model_dump(),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
