"""
Domain package for the driver analytics service.

Exports the entity snapshots and response models shared by the assembler,
service and HTTP layers. Keep this package focused on data definitions.
"""

from driver_analytics.domain.models import (
    CursorPayload,
    Driver,
    DriverAnalytics,
    ErrorResponse,
    FullHistoryDriverAnalytics,
    PaginatedDriverAnalytics,
    Pagination,
    Payment,
    Rating,
    TripDetail,
)

__all__ = [
    "CursorPayload",
    "Driver",
    "DriverAnalytics",
    "ErrorResponse",
    "FullHistoryDriverAnalytics",
    "PaginatedDriverAnalytics",
    "Pagination",
    "Payment",
    "Rating",
    "TripDetail",
]
