"""
Aggregation strategy interfaces and result contracts.

Concrete strategies (store-side aggregate query, client-side accumulation over
a full join) implement the AggregationStrategy protocol and return an
AggregationResult so the service layer can swap them by configuration.
"""

from __future__ import annotations

import abc
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, List, Optional, Protocol, runtime_checkable

from driver_analytics.domain.models import Driver
from driver_analytics.infrastructure.gateway import DataGateway, Row

TWO_PLACES = Decimal("0.01")


def round_money(value: Any) -> Decimal:
    """Round a numeric value to two decimal places, half up."""
    if value is None:
        return Decimal("0.00")
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def driver_from_row(row: Row) -> Driver:
    return Driver(
        driver_id=row["driver_id"],
        driver_name=row["driver_name"],
        phone_number=row.get("phone_number"),
        onboarding_date=row.get("onboarding_date"),
    )


@dataclass(frozen=True)
class DriverSummary:
    """
    The three summary metrics for one driver.

    total_earnings and average_rating are already rounded to two places.
    """

    driver: Driver
    total_trips: int
    total_earnings: Decimal
    average_rating: Decimal


@dataclass(frozen=True)
class AggregationResult:
    """
    Output of a strategy.

    ``trip_rows`` holds the raw joined rows when the strategy had to fetch them
    anyway (client-side accumulation) and is None otherwise.
    """

    summary: DriverSummary
    trip_rows: Optional[List[Row]] = field(default=None)


@runtime_checkable
class AggregationStrategy(Protocol):
    """
    Common interface all aggregation strategies implement.

    Attributes
    ----------
    name : str
        A short machine-friendly identifier.
    description : str
        A human-friendly summary of the approach.
    """

    name: str
    description: str

    async def summarize(self, gateway: DataGateway, driver_id: int) -> AggregationResult:
        """
        Compute the summary metrics for one driver.

        Raises
        ------
        NotFoundError
            If the driver does not exist.
        """
        ...


class AbstractAggregationStrategy(abc.ABC):
    """
    ABC helper for class-based implementations.

    Subclasses set `name` and `description` and implement `summarize`.
    """

    name: str
    description: str

    @abc.abstractmethod
    async def summarize(
        self, gateway: DataGateway, driver_id: int
    ) -> AggregationResult:  # pragma: no cover - interface only
        """Compute summary metrics for the driver."""
        raise NotImplementedError


__all__ = [
    "AbstractAggregationStrategy",
    "AggregationResult",
    "AggregationStrategy",
    "DriverSummary",
    "driver_from_row",
    "round_money",
]
