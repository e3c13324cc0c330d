"""
Analytics service: one read path, two interchangeable wirings.

    request -> gateway -> aggregation strategy (+ trip page) -> assembler

``build_service`` maps a variant name to concrete components:

    unoptimized  single connection, client-side aggregation, whole history
    optimized    connection pool, store-side aggregation, keyset pages

Gateway and aggregation can be overridden per variant through settings so
the two can be A/B benchmarked component by component.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from driver_analytics.assembler import assemble_trips, build_response
from driver_analytics.config import Settings, get_settings
from driver_analytics.domain.models import DriverAnalytics
from driver_analytics.errors import NotFoundError
from driver_analytics.infrastructure.gateway import DataGateway, Row, create_gateway
from driver_analytics.pagination import DEFAULT_PAGE_LIMIT, Cursor, fetch_trip_page
from driver_analytics.strategies import AggregationStrategy, create_aggregation
from driver_analytics.strategies.naive import FULL_JOIN_SQL
from driver_analytics.utils.logging import get_logger

log = get_logger(__name__)

VARIANTS = ("optimized", "unoptimized")


@dataclass(frozen=True)
class VariantConfig:
    name: str
    gateway: str
    aggregation: str
    paginate: bool


def variant_configs(settings: Optional[Settings] = None) -> Dict[str, VariantConfig]:
    """Resolve both variants from settings."""
    settings = settings or get_settings()
    return {
        "optimized": VariantConfig(
            name="optimized",
            gateway=settings.optimized_gateway,
            aggregation=settings.optimized_aggregation,
            paginate=True,
        ),
        "unoptimized": VariantConfig(
            name="unoptimized",
            gateway=settings.unoptimized_gateway,
            aggregation=settings.unoptimized_aggregation,
            paginate=False,
        ),
    }


class AnalyticsService:
    """
    Driver analytics over an injected gateway and aggregation strategy.

    With ``paginate`` the trips come from a separate keyset page query; without
    it they are the full history (reusing the strategy's rows when it already
    fetched them).
    """

    def __init__(
        self,
        gateway: DataGateway,
        aggregation: AggregationStrategy,
        paginate: bool,
        name: str = "custom",
        default_limit: int = DEFAULT_PAGE_LIMIT,
    ) -> None:
        self.gateway = gateway
        self.aggregation = aggregation
        self.paginate = paginate
        self.name = name
        self.default_limit = default_limit

    async def get_driver_analytics(
        self,
        driver_id: int,
        limit: Optional[int] = None,
        cursor: Optional[Cursor] = None,
    ) -> DriverAnalytics:
        """
        Compute aggregates and trips for one driver.

        Raises
        ------
        NotFoundError
            If the driver does not exist.
        DatabaseConnectionError, QueryError
            If the store cannot be reached or a query fails.
        """
        if driver_id <= 0:
            raise NotFoundError(f"Driver {driver_id} not found")

        result = await self.aggregation.summarize(self.gateway, driver_id)

        if self.paginate:
            page_limit = self.default_limit if limit is None else limit
            page = await fetch_trip_page(self.gateway, driver_id, page_limit, cursor)
            return build_response(result.summary, assemble_trips(page.rows), page)

        rows = result.trip_rows
        if rows is None:
            rows = await self._full_history(driver_id)
        return build_response(result.summary, assemble_trips(rows))

    async def _full_history(self, driver_id: int) -> List[Row]:
        # Store-side aggregation fetched no trip rows; read them in one go.
        return await self.gateway.execute(FULL_JOIN_SQL, (driver_id,))

    async def close(self) -> None:
        await self.gateway.close()


def build_service(
    variant: str,
    settings: Optional[Settings] = None,
    dsn_override: Optional[str] = None,
    gateway: Optional[DataGateway] = None,
) -> AnalyticsService:
    """
    Wire an AnalyticsService for ``variant``.

    Raises
    ------
    ValueError
        If the variant, gateway kind or aggregation name is unknown.
    """
    settings = settings or get_settings()
    configs = variant_configs(settings)
    if variant not in configs:
        raise ValueError(f"Unknown variant '{variant}'. Available: {', '.join(VARIANTS)}")
    config = configs[variant]

    if gateway is None:
        gateway = create_gateway(config.gateway, settings=settings, dsn_override=dsn_override)
    aggregation = create_aggregation(config.aggregation)
    log.info(
        "Analytics service wired",
        extra={
            "variant": config.name,
            "gateway": gateway.kind,
            "aggregation": aggregation.name,
            "paginate": config.paginate,
        },
    )
    return AnalyticsService(
        gateway=gateway,
        aggregation=aggregation,
        paginate=config.paginate,
        name=config.name,
        default_limit=settings.default_page_limit,
    )


__all__ = ["VARIANTS", "AnalyticsService", "VariantConfig", "build_service", "variant_configs"]
