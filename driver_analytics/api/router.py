"""
Analytics API endpoints.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from driver_analytics.errors import AnalyticsError, InvalidRequestError, NotFoundError
from driver_analytics.pagination import parse_cursor, parse_limit
from driver_analytics.service import AnalyticsService
from driver_analytics.utils.logging import get_logger

log = get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health(request: Request) -> dict:
    return {"status": "ok", "variant": request.app.state.variant}


@router.get("/api/v1/drivers/{driver_id}/analytics")
async def driver_analytics(
    request: Request,
    driver_id: int,
    limit: Optional[str] = None,
    cursor_date: Optional[str] = None,
    cursor_id: Optional[str] = None,
) -> JSONResponse:
    service: AnalyticsService = request.app.state.service
    context = {"driver_id": driver_id, "variant": service.name}

    try:
        if service.paginate:
            page_limit = parse_limit(
                limit,
                default=service.default_limit,
                maximum=request.app.state.max_page_limit,
            )
            cursor = parse_cursor(cursor_date, cursor_id)
            result = await service.get_driver_analytics(driver_id, limit=page_limit, cursor=cursor)
        else:
            # Unoptimized variant: whole history, query parameters ignored.
            result = await service.get_driver_analytics(driver_id)
    except (NotFoundError, InvalidRequestError) as exc:
        log.info("Analytics request rejected", extra={**context, "reason": str(exc)})
        raise
    except AnalyticsError as exc:
        log.error(
            "Analytics request failed",
            extra={**context, "error_type": type(exc).__name__, "error": str(exc)},
        )
        raise

    return JSONResponse(content=result.model_dump(mode="json", by_alias=True))
