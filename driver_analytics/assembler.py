"""
Analytics assembler: rows + summary -> response model.

A pure single-pass transform with no state kept between requests.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Set

from driver_analytics.domain.models import (
    DriverAnalytics,
    FullHistoryDriverAnalytics,
    PaginatedDriverAnalytics,
    Pagination,
    Payment,
    Rating,
    TripDetail,
)
from driver_analytics.infrastructure.gateway import Row
from driver_analytics.pagination import TripPage
from driver_analytics.strategies.abstract import DriverSummary


def assemble_trip(row: Row) -> TripDetail:
    """
    Build one trip. Payment and rating are present only when the joined row
    carries a value; an amount of 0.00 is still a recorded payment.
    """
    payment = None
    if row.get("amount") is not None:
        payment = Payment(amount=row["amount"], payment_date=row.get("payment_date"))

    rating = None
    if row.get("rating_value") is not None:
        rating = Rating(rating_value=int(row["rating_value"]), comment=row.get("comment"))

    return TripDetail(
        trip_id=row["trip_id"],
        start_location=row.get("start_location"),
        end_location=row.get("end_location"),
        trip_date=row["trip_date"],
        payment=payment,
        rating=rating,
    )


def assemble_trips(rows: Iterable[Row]) -> List[TripDetail]:
    """
    Build trips in row order, keeping the first row of each trip_id.

    Rows without a trip_id (LEFT JOIN placeholder for a driver with no trips)
    are skipped.
    """
    seen: Set[int] = set()
    trips: List[TripDetail] = []
    for row in rows:
        trip_id = row.get("trip_id")
        if trip_id is None or trip_id in seen:
            continue
        seen.add(trip_id)
        trips.append(assemble_trip(row))
    return trips


def build_response(
    summary: DriverSummary,
    trips: List[TripDetail],
    page: Optional[TripPage] = None,
) -> DriverAnalytics:
    """
    Compose the endpoint payload.

    With a page the result carries a ``pagination`` block (optimized variant);
    without one it is the full-history shape (unoptimized variant).
    """
    fields = {
        "driver": summary.driver,
        "total_trips": summary.total_trips,
        "total_earnings": summary.total_earnings,
        "average_rating": summary.average_rating,
        "trips": trips,
    }
    if page is None:
        return FullHistoryDriverAnalytics(**fields)

    pagination = Pagination(
        limit=page.limit,
        has_next_page=page.has_next_page,
        total_trips=summary.total_trips,
        showing_trips=len(trips),
        next_cursor=page.next_cursor.as_payload() if page.next_cursor else None,
    )
    return PaginatedDriverAnalytics(**fields, pagination=pagination)


__all__ = ["assemble_trip", "assemble_trips", "build_response"]
