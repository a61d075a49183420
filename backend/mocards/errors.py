"""Domain errors for the card lifecycle and their HTTP mapping."""
import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class CardLifecycleError(Exception):
    """Base class for card lifecycle failures."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "CARD_LIFECYCLE_ERROR"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFoundError(CardLifecycleError):
    """Referenced record does not exist or a lookup matched nothing."""

    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"


class ConflictError(CardLifecycleError):
    """Uniqueness violation or a state that no longer allows the operation."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "CONFLICT"


class ValidationError(CardLifecycleError):
    """Malformed input or a business rule rejected the request."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "VALIDATION_ERROR"


class TransientStoreError(CardLifecycleError):
    """The record store stayed unavailable after all retries."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "STORE_UNAVAILABLE"


async def handle_card_lifecycle_error(request: Request, exc: CardLifecycleError) -> JSONResponse:
    """Convert a domain error into a consistent API response."""
    if isinstance(exc, TransientStoreError):
        logger.error(f"Store unavailable at {request.url.path}: {exc.detail}")
    else:
        logger.info(f"{exc.error_code} at {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "error_code": exc.error_code,
            "path": str(request.url.path),
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register domain error handlers with the FastAPI app."""
    app.add_exception_handler(CardLifecycleError, handle_card_lifecycle_error)
