"""
Domain models for the driver analytics service.

Read-only snapshots of rows from `db/init.sql` (drivers, trips, payments,
ratings) plus the response contract of the analytics endpoint. JSON field
names follow the public API (`totalTrips`, `hasNextPage`, ...) through
aliases, while Python code uses snake_case attributes.
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer

# Decimals stay exact in Python and render as JSON numbers.
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class Driver(_Frozen):
    """
    Driver identity fields. The onboarding date is reported as stored, even
    when it is later than some of the driver's trips.
    """

    driver_id: int = Field(..., description="Primary key.")
    driver_name: str = Field(..., description="Display name.")
    phone_number: Optional[str] = Field(None, description="Contact number.")
    onboarding_date: Optional[date] = Field(None, description="Date the driver joined.")


class Payment(_Frozen):
    amount: Money = Field(..., ge=0, description="Amount paid, two fractional digits.")
    payment_date: Optional[date] = None


class Rating(_Frozen):
    rating_value: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None


class TripDetail(_Frozen):
    """
    A trip with its optional payment and rating.

    ``payment`` / ``rating`` are None when nothing was recorded; they are never
    replaced by zero-valued placeholders.
    """

    trip_id: int
    start_location: Optional[str] = None
    end_location: Optional[str] = None
    trip_date: date
    payment: Optional[Payment] = None
    rating: Optional[Rating] = None


class CursorPayload(_Frozen):
    cursor_date: date
    cursor_id: int


class Pagination(_Frozen):
    limit: int
    has_next_page: bool = Field(..., alias="hasNextPage")
    total_trips: int = Field(..., alias="totalTrips")
    showing_trips: int = Field(..., alias="showingTrips")
    next_cursor: Optional[CursorPayload] = Field(None, alias="nextCursor")


class DriverAnalytics(_Frozen):
    """Aggregates and trips for one driver."""

    driver: Driver
    total_trips: int = Field(..., ge=0, alias="totalTrips")
    total_earnings: Money = Field(..., ge=0, alias="totalEarnings")
    average_rating: Money = Field(..., ge=0, le=5, alias="averageRating")
    trips: List[TripDetail] = Field(default_factory=list)


class PaginatedDriverAnalytics(DriverAnalytics):
    """Response of the optimized variant: one page of trips plus cursor state."""

    pagination: Pagination


class FullHistoryDriverAnalytics(DriverAnalytics):
    """Response of the unoptimized variant: the whole trip history at once."""

    success: bool = True


class ErrorResponse(_Frozen):
    success: bool = False
    message: str
    error: Optional[str] = None


__all__ = [
    "CursorPayload",
    "Driver",
    "DriverAnalytics",
    "ErrorResponse",
    "FullHistoryDriverAnalytics",
    "Money",
    "PaginatedDriverAnalytics",
    "Pagination",
    "Payment",
    "Rating",
    "TripDetail",
]
