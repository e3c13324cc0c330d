"""
Store-side aggregation: let PostgreSQL count, sum and average.

One grouped query returns exactly zero rows (unknown driver) or one row with
the already-reduced metrics. LEFT JOINs keep drivers without trips, payments
or ratings; COALESCE turns the missing SUM/AVG into zero.
"""

from __future__ import annotations

from driver_analytics.errors import NotFoundError
from driver_analytics.infrastructure.gateway import DataGateway
from driver_analytics.strategies.abstract import (
    AbstractAggregationStrategy,
    AggregationResult,
    DriverSummary,
    driver_from_row,
    round_money,
)

SUMMARY_SQL = """
    SELECT
        d.driver_id,
        d.driver_name,
        d.phone_number,
        d.onboarding_date,
        COUNT(t.trip_id) AS total_trips,
        COALESCE(SUM(p.amount), 0) AS total_earnings,
        COALESCE(AVG(r.rating_value), 0) AS average_rating
    FROM drivers d
    LEFT JOIN trips t ON d.driver_id = t.driver_id
    LEFT JOIN payments p ON t.trip_id = p.trip_id
    LEFT JOIN ratings r ON t.trip_id = r.trip_id
    WHERE d.driver_id = %s
    GROUP BY d.driver_id, d.driver_name, d.phone_number, d.onboarding_date
"""


class StoreSideAggregation(AbstractAggregationStrategy):
    """
    Single aggregate query; no trip rows cross the wire.
    """

    name: str = "store_side"
    description: str = "COUNT/SUM/AVG grouped by driver inside PostgreSQL."

    async def summarize(self, gateway: DataGateway, driver_id: int) -> AggregationResult:
        rows = await gateway.execute(SUMMARY_SQL, (driver_id,))
        if not rows:
            raise NotFoundError(f"Driver {driver_id} not found")

        row = rows[0]
        summary = DriverSummary(
            driver=driver_from_row(row),
            total_trips=int(row["total_trips"] or 0),
            total_earnings=round_money(row["total_earnings"]),
            average_rating=round_money(row["average_rating"]),
        )
        return AggregationResult(summary=summary)


__all__ = ["SUMMARY_SQL", "StoreSideAggregation"]
