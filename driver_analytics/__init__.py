"""
Driver Analytics - two implementations of one read path, side by side.

Given a driver id, the service returns trip count, total earnings, average
rating and the driver's trips (newest first) with optional payment and rating
data. Two wirings of the same read path are provided so their behavior under
concurrent load can be compared:

- unoptimized: one shared connection, full join, aggregation in Python,
  whole trip history per response
- optimized: connection pool, aggregation in PostgreSQL, keyset pagination
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from driver_analytics.config import Settings, get_settings
from driver_analytics.errors import (
    AnalyticsError,
    DatabaseConnectionError,
    InvalidRequestError,
    NotFoundError,
    QueryError,
)
from driver_analytics.infrastructure.gateway import (
    DataGateway,
    PooledGateway,
    SingleConnectionGateway,
    create_gateway,
)
from driver_analytics.pagination import Cursor, parse_cursor, parse_limit
from driver_analytics.service import AnalyticsService, build_service
from driver_analytics.strategies import (
    AggregationStrategy,
    NaiveAggregation,
    StoreSideAggregation,
)
from driver_analytics.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Errors
    "AnalyticsError",
    "DatabaseConnectionError",
    "InvalidRequestError",
    "NotFoundError",
    "QueryError",
    # Gateways
    "DataGateway",
    "PooledGateway",
    "SingleConnectionGateway",
    "create_gateway",
    # Pagination
    "Cursor",
    "parse_cursor",
    "parse_limit",
    # Service
    "AnalyticsService",
    "build_service",
    # Aggregation strategies
    "AggregationStrategy",
    "NaiveAggregation",
    "StoreSideAggregation",
    # Logging
    "configure_logging",
    "get_logger",
]
