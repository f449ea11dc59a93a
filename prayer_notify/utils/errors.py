from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .logging import get_logger
from .responses import ResponseBuilder

logger = get_logger()


class AppError(Exception):
    """Base for errors that map onto one API status code."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = "INTERNAL_ERROR"
    error_type = "INTERNAL_ERROR"

    def __init__(self, message: str, error_code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code

    def meta(self) -> Dict[str, Any]:
        return {"error_type": self.error_type}


class DatabaseError(AppError):
    """A read from the schedule, preference, device or venue store failed."""

    default_code = "DB_ERROR"
    error_type = "DATABASE_ERROR"


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_code = "AUTH_ERROR"
    error_type = "AUTHENTICATION_ERROR"

    def __init__(
        self, message: str = "Authentication failed", error_code: Optional[str] = None
    ):
        super().__init__(message, error_code)


class PushValidationError(AppError):
    """A push request lacks pushAddress, title or body."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = "MISSING_REQUIRED_FIELDS"
    error_type = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str = "Missing required fields",
        error_code: Optional[str] = None,
        missing_fields: Optional[List[str]] = None,
    ):
        super().__init__(message, error_code)
        self.missing_fields = list(missing_fields or [])

    def meta(self) -> Dict[str, Any]:
        return {**super().meta(), "missing_fields": self.missing_fields}


class PushDeliveryError(AppError):
    """FCM rejected a send or could not be reached."""

    default_code = "PUSH_SEND_FAILED"
    error_type = "PUSH_DELIVERY_ERROR"

    def __init__(self, message: str = "Failed", error_code: Optional[str] = None):
        super().__init__(message, error_code)


def setup_error_handlers(app: FastAPI):
    """Register handlers that render every failure in the ApiResponse envelope."""

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        log = logger.warning if exc.status_code < 500 else logger.error
        log(f"{type(exc).__name__} [{exc.error_code}]: {exc.message}")

        return ResponseBuilder.error(
            request=request,
            message=exc.message,
            error_code=exc.error_code,
            status_code=exc.status_code,
            meta=exc.meta(),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger.warning(f"HTTP {exc.status_code} on {request.url.path}: {exc.detail}")

        return ResponseBuilder.error(
            request=request,
            message=str(exc.detail),
            error_code="HTTP_ERROR",
            status_code=exc.status_code,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"],
            }
            for error in exc.errors()
        ]
        logger.warning(f"Request validation failed on {request.url.path}: {errors}")

        return ResponseBuilder.error(
            request=request,
            message="Request validation failed",
            errors=errors,
            error_code="VALIDATION_ERROR",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        )

    @app.exception_handler(SQLAlchemyError)
    async def sqlalchemy_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"Unwrapped SQLAlchemy error: {str(exc)}")

        # Don't expose internal database errors to callers
        return ResponseBuilder.error(
            request=request,
            message="A database error occurred",
            error_code="DATABASE_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.opt(exception=exc).error(f"Unhandled exception on {request.url.path}")

        return ResponseBuilder.error(
            request=request,
            message="An internal server error occurred",
            error_code="INTERNAL_ERROR",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )
