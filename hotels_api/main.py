"""FastAPI application entrypoint.

Provides the hotels API with a ``/health`` endpoint, request-ID middleware,
structured error handlers, and the HTML sanitization pipeline wired into the
``/v1/hotels`` router.
"""

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response

from hotels_api.api.v1.hotels import HotelsController, create_router
from hotels_api.core.config import Settings
from hotels_api.core.errors import register_error_handlers
from hotels_api.core.logging import configure_logging, shutdown_logging
from hotels_api.models.schemas import Facility, FacilityInput, HealthResponse, Hotel, HotelInput
from hotels_api.sanitization.fields import configure_field_sanitizer
from hotels_api.sanitization.hooks import PayloadSanitizationHooks
from hotels_api.sanitization.scope import ScopeFilter
from hotels_api.sanitization.service import build_html_sanitizer
from hotels_api.services.hotel_store import HotelStore

logger = logging.getLogger(__name__)

settings = Settings()

_start_time = time.monotonic()

# ── Sanitization pipeline ───────────────────────────────────────────────

sanitizer = build_html_sanitizer(settings)
# Misapplied markers fail here, not on the first request
sanitizer.schemas.register(HotelInput, Hotel, FacilityInput, Facility)
configure_field_sanitizer(sanitizer)

hooks = PayloadSanitizationHooks(
    sanitizer,
    ScopeFilter(settings.SANITIZE_SCOPE_PATTERN),
    enabled=settings.SANITIZE_ENABLED,
)

store = HotelStore()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings)
    sanitizer.sink.bind_loop(asyncio.get_running_loop())
    logger.info(
        "%s %s started (sanitization %s)",
        settings.SERVICE_NAME,
        settings.SERVICE_VERSION,
        "enabled" if settings.SANITIZE_ENABLED else "disabled",
    )
    yield
    await sanitizer.sink.drain()
    sanitizer.sink.bind_loop(None)
    shutdown_logging()


app = FastAPI(
    title=settings.SERVICE_NAME,
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
)

register_error_handlers(app)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next) -> Response:
    """Assign or preserve a unique request ID on every request."""
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Return service health with name, version, status, uptime and cache size."""
    return HealthResponse(
        service=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
        status="healthy",
        uptime_seconds=round(time.monotonic() - _start_time, 2),
        sanitizer_cache_entries=len(sanitizer.cache),
    )


app.include_router(create_router(HotelsController(store), hooks))


def run() -> None:
    """Serve the app with uvicorn (``hotels-api`` console script)."""
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_level=settings.LOG_LEVEL.lower())
