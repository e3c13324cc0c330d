"""
Pytest configuration for the driver analytics service.

Provides fixtures for:
- An in-memory stand-in for the store that answers the service's queries
- A fake gateway recording every query it receives
- Database connection management and seeding for integration tests
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List, Optional, Tuple

import psycopg
import pytest

from driver_analytics.config import Settings
from driver_analytics.infrastructure.gateway import GatewayStats
from driver_analytics.strategies.naive import FULL_JOIN_SQL
from driver_analytics.strategies.store_side import SUMMARY_SQL

Responder = Callable[[str, Tuple[Any, ...]], Any]


class FakeGateway:
    """
    Gateway double: hands every query to ``responder`` and records it.

    A responder may return rows or an exception instance, which is raised.
    """

    kind = "fake"

    def __init__(self, responder: Responder) -> None:
        self.responder = responder
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.stats = GatewayStats()
        self.closed = False

    async def acquire_handle(self) -> "FakeGateway":
        return self

    async def execute(self, query: str, params: Any = None) -> List[Dict[str, Any]]:
        params = tuple(params or ())
        self.calls.append((query, params))
        self.stats.enter()
        failed = False
        try:
            result = self.responder(query, params)
            if isinstance(result, BaseException):
                failed = True
                raise result
            return [dict(row) for row in result]
        finally:
            self.stats.exit(failed=failed)

    async def close(self) -> None:
        self.closed = True


@dataclass
class InMemoryStore:
    """
    Tiny relational stand-in that answers the three queries the service issues
    (driver summary, full join, trip page) with the same semantics as SQL.
    """

    drivers: Dict[int, Dict[str, Any]] = field(default_factory=dict)
    trips: Dict[int, Dict[str, Any]] = field(default_factory=dict)
    payments: Dict[int, Dict[str, Any]] = field(default_factory=dict)
    ratings: Dict[int, Dict[str, Any]] = field(default_factory=dict)

    def add_driver(self, driver_id: int, name: str, onboarding: Optional[date] = None) -> None:
        self.drivers[driver_id] = {
            "driver_id": driver_id,
            "driver_name": name,
            "phone_number": f"+1234567{driver_id:03d}",
            "onboarding_date": onboarding or date(2023, 1, 1),
        }

    def add_trip(
        self,
        trip_id: int,
        driver_id: int,
        trip_date: date,
        amount: Optional[str] = None,
        rating: Optional[int] = None,
    ) -> None:
        self.trips[trip_id] = {
            "trip_id": trip_id,
            "driver_id": driver_id,
            "start_location": "Airport",
            "end_location": "Downtown",
            "trip_date": trip_date,
        }
        if amount is not None:
            self.payments[trip_id] = {"amount": Decimal(amount), "payment_date": trip_date}
        if rating is not None:
            self.ratings[trip_id] = {"rating_value": rating, "comment": f"{rating} stars"}

    def delete_trip(self, trip_id: int) -> None:
        self.trips.pop(trip_id, None)
        self.payments.pop(trip_id, None)
        self.ratings.pop(trip_id, None)

    def _trip_row(self, trip: Dict[str, Any]) -> Dict[str, Any]:
        payment = self.payments.get(trip["trip_id"], {})
        rating = self.ratings.get(trip["trip_id"], {})
        return {
            "trip_id": trip["trip_id"],
            "start_location": trip["start_location"],
            "end_location": trip["end_location"],
            "trip_date": trip["trip_date"],
            "amount": payment.get("amount"),
            "payment_date": payment.get("payment_date"),
            "rating_value": rating.get("rating_value"),
            "comment": rating.get("comment"),
        }

    def _ordered_trips(self, driver_id: int) -> List[Dict[str, Any]]:
        trips = [t for t in self.trips.values() if t["driver_id"] == driver_id]
        return sorted(trips, key=lambda t: (t["trip_date"], t["trip_id"]), reverse=True)

    def respond(self, query: str, params: Tuple[Any, ...]) -> List[Dict[str, Any]]:
        driver_id = params[0]
        if query == SUMMARY_SQL:
            return self._summary(driver_id)
        if query == FULL_JOIN_SQL:
            return self._full_join(driver_id)
        if "FROM trips t" in query:
            return self._page(params)
        raise AssertionError(f"Unexpected query: {query}")

    def _summary(self, driver_id: int) -> List[Dict[str, Any]]:
        if driver_id not in self.drivers:
            return []
        rows = [self._trip_row(t) for t in self._ordered_trips(driver_id)]
        amounts = [r["amount"] for r in rows if r["amount"] is not None]
        ratings = [r["rating_value"] for r in rows if r["rating_value"] is not None]
        return [
            {
                **self.drivers[driver_id],
                "total_trips": len(rows),
                "total_earnings": sum(amounts, Decimal("0")),
                "average_rating": (
                    Decimal(sum(ratings)) / Decimal(len(ratings)) if ratings else Decimal("0")
                ),
            }
        ]

    def _full_join(self, driver_id: int) -> List[Dict[str, Any]]:
        if driver_id not in self.drivers:
            return []
        driver = self.drivers[driver_id]
        trips = self._ordered_trips(driver_id)
        if not trips:
            return [{**driver, **dict.fromkeys(_TRIP_COLUMNS)}]
        return [{**driver, **self._trip_row(t)} for t in trips]

    def _page(self, params: Tuple[Any, ...]) -> List[Dict[str, Any]]:
        driver_id, fetch = params[0], params[-1]
        trips = self._ordered_trips(driver_id)
        if len(params) == 5:
            cursor_date, _, cursor_id = params[1:4]
            trips = [
                t
                for t in trips
                if t["trip_date"] < cursor_date
                or (t["trip_date"] == cursor_date and t["trip_id"] < cursor_id)
            ]
        return [self._trip_row(t) for t in trips[:fetch]]


_TRIP_COLUMNS = (
    "trip_id",
    "start_location",
    "end_location",
    "trip_date",
    "amount",
    "payment_date",
    "rating_value",
    "comment",
)


@pytest.fixture
def store() -> InMemoryStore:
    """
    Sample data:

    - driver 1: five trips, two share a date, one without payment, one
      without rating, one with a 0.00 payment
    - driver 2: no trips
    - driver 3: 25 trips over 10 days (ties on every date)
    """
    store = InMemoryStore()
    store.add_driver(1, "Driver 1")
    store.add_driver(2, "Driver 2", onboarding=date(2024, 6, 1))
    store.add_driver(3, "Driver 3")

    store.add_trip(101, 1, date(2024, 3, 1), amount="25.50", rating=5)
    store.add_trip(102, 1, date(2024, 3, 1), amount="10.25", rating=None)
    store.add_trip(103, 1, date(2024, 2, 15), amount=None, rating=4)
    store.add_trip(104, 1, date(2024, 1, 10), amount="0.00", rating=4)
    store.add_trip(105, 1, date(2024, 4, 2), amount="33.33", rating=3)

    for n in range(25):
        store.add_trip(300 + n, 3, date(2024, 5, 1 + n % 10), amount="20.00", rating=1 + n % 5)
    return store


@pytest.fixture
def store_gateway(store: InMemoryStore) -> FakeGateway:
    return FakeGateway(store.respond)


@pytest.fixture
def make_gateway() -> Callable[[Responder], FakeGateway]:
    return FakeGateway


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "driver_analytics"),
        pool_min_size=1,
        pool_max_size=3,
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped database connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn, autocommit=True)
    try:
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="session")
def db_schema_initialized(db_connection: psycopg.Connection) -> bool:
    """
    Ensure the schema from db/init.sql exists (it is idempotent).
    """
    init_sql_path = Path(__file__).parent.parent / "db" / "init.sql"
    with db_connection.cursor() as cur:
        cur.execute(init_sql_path.read_text(encoding="utf-8"))
    return True


@pytest.fixture(scope="function")
def clean_tables(db_connection: psycopg.Connection, db_schema_initialized: bool):
    """
    Empty all tables before and after each test function.
    """
    truncate = "TRUNCATE TABLE ratings, payments, trips, drivers RESTART IDENTITY CASCADE;"
    with db_connection.cursor() as cur:
        cur.execute(truncate)
    yield
    with db_connection.cursor() as cur:
        cur.execute(truncate)


@pytest.fixture(scope="function")
def seeded_db_small(clean_tables, test_dsn: str):
    """
    Seed 5 drivers x 30 trips with partial payment/rating coverage.

    Returns the generation counts.
    """
    from scripts.seed_data import _copy_into_db, _generate_csvs

    with tempfile.TemporaryDirectory() as tmpdir:
        counts = _generate_csvs(
            Path(tmpdir),
            drivers=5,
            trips_per_driver=30,
            payment_ratio=0.7,
            rating_ratio=0.6,
            seed=42,
        )
        _copy_into_db(test_dsn, Path(tmpdir))
    return counts
