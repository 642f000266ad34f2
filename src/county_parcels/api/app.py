"""FastAPI application for county parcel lookup.

Read-only endpoints over the parcel store, mounted under ``/api/v1``, plus a
``/health`` liveness check. Every response uses the ``{success, data|error}``
envelope.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from county_parcels.api.ratelimit import RateLimiter
from county_parcels.api.routes.parcels import router as parcels_router
from county_parcels.api.schemas import HealthStatus, envelope, error_envelope
from county_parcels.config import Settings, get_settings
from county_parcels.errors import ParcelsError
from county_parcels.logs import log_event


API_PREFIX = "/api/v1"
logger = logging.getLogger("parcels.api")


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the API app; tests pass explicit settings for an isolated DB."""
    if settings is None:
        settings = get_settings()

    app = FastAPI(title="County Parcels", version="0.1.0")
    app.state.settings = settings

    limiter = None
    if settings.rate_limit_enabled:
        limiter = RateLimiter(
            per_minute=settings.rate_limit_per_minute,
            burst=settings.rate_limit_burst,
            prefix="/api/",
        )
    app.state.rate_limiter = limiter

    @app.middleware("http")
    async def rate_limit(request: Request, call_next):
        if limiter is not None and limiter.applies_to(request.url.path):
            wait = limiter.check(_client_key(request))
            if wait > 0:
                log_event(
                    logger,
                    "rate_limited",
                    level=logging.WARNING,
                    path=request.url.path,
                    retry_after=round(wait, 3),
                )
                return JSONResponse(
                    error_envelope("Too many requests, please try again later"),
                    status_code=429,
                    headers={"Retry-After": str(max(1, math.ceil(wait)))},
                )
        return await call_next(request)

    # Outermost, so 429 responses carry CORS headers as well.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.exception_handler(ParcelsError)
    async def parcels_error(request: Request, exc: ParcelsError):
        message = exc.message
        if exc.status_code >= 500 and settings.is_development and exc.cause is not None:
            message = f"{exc.message}: {exc.cause}"
        return JSONResponse(error_envelope(message), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        fields = sorted(
            {".".join(str(p) for p in err.get("loc", ())[1:]) or "body" for err in exc.errors()}
        )
        return JSONResponse(
            error_envelope("Invalid request: " + ", ".join(fields)), status_code=400
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException):
        message = "Endpoint not found" if exc.status_code == 404 else str(exc.detail)
        return JSONResponse(
            error_envelope(message), status_code=exc.status_code, headers=exc.headers
        )

    @app.exception_handler(Exception)
    async def internal_error(request: Request, exc: Exception):
        logger.exception("Server error on %s", request.url.path)
        message = str(exc) if settings.is_development else "Internal server error"
        return JSONResponse(error_envelope(message), status_code=500)

    app.include_router(parcels_router, prefix=API_PREFIX)

    @app.get("/health")
    def health():
        status = HealthStatus(
            timestamp=datetime.now(timezone.utc).isoformat(),
            environment=settings.environment,
        )
        return envelope(status.model_dump())

    return app


app = create_app()
