"""
HTTP surface for the driver analytics service (FastAPI).
"""

from driver_analytics.api.app import create_app

__all__ = ["create_app"]
