"""
Aggregation strategies package.

Re-exports the abstract interfaces and the concrete strategy classes so
downstream code can import from `driver_analytics.strategies` directly, and
exposes a small registry for selecting a strategy by name.
"""

from typing import Callable, Dict, List

from driver_analytics.strategies.abstract import (
    AbstractAggregationStrategy,
    AggregationResult,
    AggregationStrategy,
    DriverSummary,
)
from driver_analytics.strategies.naive import NaiveAggregation
from driver_analytics.strategies.store_side import StoreSideAggregation


def _strategy_factories() -> Dict[str, Callable[[], AggregationStrategy]]:
    """Registry of available aggregation strategies."""
    return {
        NaiveAggregation.name: NaiveAggregation,
        StoreSideAggregation.name: StoreSideAggregation,
    }


def available_strategies() -> List[str]:
    """List available aggregation strategy names."""
    return sorted(_strategy_factories().keys())


def create_aggregation(name: str) -> AggregationStrategy:
    factories = _strategy_factories()
    if name not in factories:
        raise ValueError(f"Unknown aggregation strategy '{name}'. Available: {', '.join(factories)}")
    return factories[name]()


__all__ = [
    # Abstracts
    "AbstractAggregationStrategy",
    "AggregationResult",
    "AggregationStrategy",
    "DriverSummary",
    # Concrete strategies
    "NaiveAggregation",
    "StoreSideAggregation",
    # Registry
    "available_strategies",
    "create_aggregation",
]
