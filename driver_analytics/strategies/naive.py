"""
Naive (baseline) aggregation: fetch the full join, reduce in Python.

Intended as the simplest possible baseline to compare against the store-side
aggregate query. The rows it fetches double as the driver's full trip
history, so the unoptimized variant needs no second query.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Set

from driver_analytics.errors import NotFoundError
from driver_analytics.infrastructure.gateway import DataGateway, Row
from driver_analytics.strategies.abstract import (
    AbstractAggregationStrategy,
    AggregationResult,
    DriverSummary,
    driver_from_row,
    round_money,
)

FULL_JOIN_SQL = """
    SELECT
        d.driver_id, d.driver_name, d.phone_number, d.onboarding_date,
        t.trip_id, t.start_location, t.end_location, t.trip_date,
        p.amount, p.payment_date,
        r.rating_value, r.comment
    FROM drivers d
    LEFT JOIN trips t ON d.driver_id = t.driver_id
    LEFT JOIN payments p ON t.trip_id = p.trip_id
    LEFT JOIN ratings r ON t.trip_id = r.trip_id
    WHERE d.driver_id = %s
    ORDER BY t.trip_date DESC, t.trip_id DESC
"""


def accumulate(rows: Iterable[Row]) -> tuple[int, Decimal, Decimal]:
    """
    Reduce joined rows to (trip count, total earnings, average rating).

    A row with a NULL trip_id is the LEFT JOIN placeholder of a driver without
    trips and contributes nothing.
    """
    seen_trips: Set[int] = set()
    earnings = Decimal("0")
    rating_sum = 0
    rating_count = 0

    for row in rows:
        if row.get("trip_id") is None:
            continue
        seen_trips.add(row["trip_id"])
        if row.get("amount") is not None:
            earnings += Decimal(str(row["amount"]))
        if row.get("rating_value") is not None:
            rating_sum += int(row["rating_value"])
            rating_count += 1

    average = Decimal(rating_sum) / Decimal(rating_count) if rating_count else Decimal("0")
    return len(seen_trips), round_money(earnings), round_money(average)


class NaiveAggregation(AbstractAggregationStrategy):
    """
    Full denormalized join with client-side accumulation.

    WARNING: loads every trip of the driver into memory. Keep as a baseline.
    "Driver not found" is derived from an empty result set.
    """

    name: str = "naive"
    description: str = "Full join + in-memory count/sum/average (no grouping in SQL)."

    async def summarize(self, gateway: DataGateway, driver_id: int) -> AggregationResult:
        rows = await gateway.execute(FULL_JOIN_SQL, (driver_id,))
        if not rows:
            raise NotFoundError(f"Driver {driver_id} not found")

        total_trips, total_earnings, average_rating = accumulate(rows)
        summary = DriverSummary(
            driver=driver_from_row(rows[0]),
            total_trips=total_trips,
            total_earnings=total_earnings,
            average_rating=average_rating,
        )
        return AggregationResult(summary=summary, trip_rows=rows)


__all__ = ["FULL_JOIN_SQL", "NaiveAggregation", "accumulate"]
