"""
Utilities package for the driver analytics service.

Exports shared helpers for logging and profiling. Keep this package
lightweight and free of analytics-specific logic.
"""

from driver_analytics.utils.logging import configure_logging, get_logger
from driver_analytics.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
