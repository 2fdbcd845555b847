"""Structured error responses.

Custom exception hierarchy for the hotels-api service and the mapping of
exceptions to stable, client-facing error bodies.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

_logger = logging.getLogger(__name__)

NOT_FOUND_CODE = "HOTELS-ERROR-00404"
UNEXPECTED_ERROR_CODE = "HOTELS-ERROR-00500"


class HotelsApiError(Exception):
    """Base exception for all hotels-api errors."""


class HotelNotFoundError(HotelsApiError):
    """Raised when a hotel id does not resolve to a stored hotel."""

    def __init__(self, hotel_id: object) -> None:
        self.hotel_id = hotel_id
        super().__init__(f"Hotel not found: {hotel_id}")


class SanitizationConfigError(HotelsApiError):
    """Raised when the ``SanitizeHTML`` marker is misapplied.

    Covers a marker on a non-string field, a marked field that cannot be
    written back, and a payload type whose declared fields cannot be
    resolved.  Always fatal for the request; never retried.
    """

    def __init__(self, owner: str, field_name: str = "", detail: str = "") -> None:
        self.owner = owner
        self.field_name = field_name
        self.detail = detail
        target = f"{owner}.{field_name}" if field_name else owner
        msg = f"Invalid sanitization config for {target}"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)


class StructuredErrorResponse(BaseModel):
    """Error body returned to clients — ``{"error", "message", "request_id"}``.

    Never carries stack traces or internal details.
    """

    error: str
    message: str
    request_id: str

    @classmethod
    def from_exception(cls, exc: Exception, request_id: str) -> "StructuredErrorResponse":
        """Create from an exception, mapping to machine-readable codes."""
        if isinstance(exc, HotelNotFoundError):
            return cls(error=NOT_FOUND_CODE, message="Hotel not found", request_id=request_id)
        # Configuration errors and anything unhandled look the same to clients
        return cls(error=UNEXPECTED_ERROR_CODE, message="Unexpected error", request_id=request_id)


def status_code_for(exc: Exception) -> int:
    """HTTP status code for *exc*."""
    if isinstance(exc, HotelNotFoundError):
        return 404
    return 500


def _request_id(request: Request) -> str:
    rid = getattr(request.state, "request_id", None)
    if isinstance(rid, str) and rid:
        return rid
    return request.headers.get("X-Request-ID", "-")


def register_error_handlers(app: FastAPI) -> None:
    """Install the exception handlers that render ``StructuredErrorResponse``."""

    @app.exception_handler(HotelsApiError)
    async def handle_hotels_api_error(request: Request, exc: HotelsApiError) -> JSONResponse:
        if isinstance(exc, SanitizationConfigError):
            _logger.error("Sanitization misconfigured on %s %s: %s", request.method, request.url.path, exc)
        payload = StructuredErrorResponse.from_exception(exc, _request_id(request))
        return JSONResponse(status_code=status_code_for(exc), content=payload.model_dump())

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        _logger.exception("Unhandled exception in API request", exc_info=exc)
        payload = StructuredErrorResponse.from_exception(exc, _request_id(request))
        return JSONResponse(status_code=500, content=payload.model_dump())
