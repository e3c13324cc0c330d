"""
Infrastructure package for the driver analytics service.

Owns database connectivity (single connection and pooled gateways). Keep this
layer focused on I/O and resource management, decoupled from aggregation,
pagination and HTTP concerns.
"""

from driver_analytics.infrastructure.gateway import (
    GATEWAY_KINDS,
    DataGateway,
    GatewayStats,
    PooledGateway,
    SingleConnectionGateway,
    build_dsn,
    create_gateway,
)

__all__ = [
    "GATEWAY_KINDS",
    "DataGateway",
    "GatewayStats",
    "PooledGateway",
    "SingleConnectionGateway",
    "build_dsn",
    "create_gateway",
]
