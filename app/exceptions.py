from fastapi import Request
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
import logging

logger = logging.getLogger(__name__)


class TransitError(Exception):
    """Base class for failures reported back to the caller."""

    status_code = 400
    kind = "TransitError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(TransitError):
    status_code = 404
    kind = "NotFound"


class InvalidInputError(TransitError):
    status_code = 400
    kind = "InvalidInput"


class TripStateError(TransitError):
    """Requested status change is not a legal trip transition."""

    status_code = 409
    kind = "InvalidTransition"


async def transit_error_handler(request: Request, exc: TransitError):
    logger.info(f"{request.method} {request.url.path} -> {exc.kind}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind, "detail": exc.message},
    )


async def database_error_handler(request: Request, exc: PyMongoError):
    logger.exception(f"Database failure on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"error": "InternalError", "detail": "Internal server error"},
    )
