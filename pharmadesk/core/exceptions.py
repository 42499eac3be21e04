"""
Error types and safe HTTP error responses.

Two error categories reach the user:
- validation / business-rule errors, raised by services before any write,
  returned with their message (the user caused them);
- backend / database errors, logged in full internally and returned as a
  generic 500.
"""
import logging

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class PharmaDeskError(Exception):
    """Base class for errors raised by the service layer."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(PharmaDeskError):
    """Input rejected before any request is made to the database."""


class NotFoundError(PharmaDeskError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(PharmaDeskError):
    status_code = status.HTTP_409_CONFLICT


class InsufficientStockError(PharmaDeskError):
    """Availability check failed. Carries every shortfall, not just the first."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str, shortfalls=None):
        super().__init__(message)
        self.shortfalls = shortfalls or []


class BusinessError:
    """HTTP exceptions with safe (non-leaky) messages."""

    @staticmethod
    def server_error(original_error: Exception = None) -> HTTPException:
        """Generic 500 - logs the actual error internally, hides it from the user."""
        if original_error:
            logger.error(
                f"Internal server error: {type(original_error).__name__}: {str(original_error)}",
                exc_info=original_error,
            )
        else:
            logger.error("Internal server error occurred", exc_info=True)

        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="An internal error occurred. Please try again later.",
        )


async def pharmadesk_error_handler(request: Request, exc: PharmaDeskError) -> JSONResponse:
    logger.info(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    content = {"detail": exc.message}
    if isinstance(exc, InsufficientStockError):
        content["shortfalls"] = exc.shortfalls
    return JSONResponse(status_code=exc.status_code, content=content)


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    http_exc = BusinessError.server_error(exc)
    return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})
