"""
FastAPI application for the driver analytics endpoint.

One factory serves both variants; they differ only in the service wired into
``app.state.service`` and in whether pagination query parameters are read.
The gateway is created when the app starts and closed when it stops.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from driver_analytics.api.router import router
from driver_analytics.config import Settings, get_settings
from driver_analytics.domain.models import ErrorResponse
from driver_analytics.errors import AnalyticsError, InvalidRequestError, NotFoundError
from driver_analytics.service import AnalyticsService, build_service
from driver_analytics.utils.logging import get_logger

log = get_logger(__name__)


def _error(status_code: int, message: str, error: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(message=message, error=error).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)


async def _not_found_handler(_: Request, exc: NotFoundError) -> JSONResponse:
    return _error(404, exc.public_message)


async def _invalid_request_handler(_: Request, exc: InvalidRequestError) -> JSONResponse:
    return _error(400, exc.public_message)


async def _validation_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    fields = ", ".join(str(err["loc"][-1]) for err in exc.errors())
    return _error(400, f"Invalid request parameter: {fields}")


async def _analytics_error_handler(_: Request, exc: AnalyticsError) -> JSONResponse:
    return _error(exc.status_code, "Internal server error", exc.public_message)


async def _unhandled_handler(request: Request, exc: Exception) -> JSONResponse:
    log.exception("Unhandled error", extra={"path": request.url.path})
    return _error(500, "Internal server error")


def create_app(
    variant: str = "optimized",
    settings: Optional[Settings] = None,
    service: Optional[AnalyticsService] = None,
) -> FastAPI:
    """
    Build the app for ``variant``.

    Parameters
    ----------
    variant : str
        ``"optimized"`` or ``"unoptimized"``.
    settings : Settings, optional
        Defaults to the cached environment settings.
    service : AnalyticsService, optional
        Pre-built service (tests inject one with a fake gateway). When given,
        the caller owns its lifecycle.
    """
    settings = settings or get_settings()
    owns_service = service is None
    if service is None:
        service = build_service(variant, settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        log.info("Analytics API starting", extra={"variant": variant})
        try:
            yield
        finally:
            if owns_service:
                await service.close()
            log.info("Analytics API stopped", extra={"variant": variant})

    app = FastAPI(
        title=f"Driver Analytics API ({variant})",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.service = service
    app.state.variant = variant
    app.state.max_page_limit = settings.max_page_limit
    if service.paginate:
        app.add_middleware(GZipMiddleware, minimum_size=1000)

    app.add_exception_handler(NotFoundError, _not_found_handler)
    app.add_exception_handler(InvalidRequestError, _invalid_request_handler)
    app.add_exception_handler(RequestValidationError, _validation_handler)
    app.add_exception_handler(AnalyticsError, _analytics_error_handler)
    app.add_exception_handler(Exception, _unhandled_handler)

    app.include_router(router)
    return app


__all__ = ["create_app"]
