"""
Data generation and loading script for the driver analytics service.

Implements deterministic pseudo-random generation of drivers, trips, payments
and ratings, CSV emission, and Postgres COPY loading for maximum throughput.
Runs out-of-band, once, before the API is started.
"""

from __future__ import annotations

import csv
import random
import sys
import tempfile
import time
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path
from typing import Dict

import psycopg
import typer
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from driver_analytics.infrastructure.gateway import build_dsn

app = typer.Typer(help="Generate synthetic driver data and load into Postgres (CSV + COPY).")

INIT_SQL_PATH = Path(__file__).resolve().parent.parent / "db" / "init.sql"

LOCATIONS = [
    "Downtown", "Airport", "Mall", "University", "Hospital",
    "Suburb", "Business District", "Residential Area", "Shopping Center",
    "Train Station", "Bus Terminal", "Park", "Restaurant", "Hotel",
]

COMMENTS = [
    "Great service", "Good ride", "Excellent driver", "Safe trip",
    "On time", "Clean car", "Professional", "Friendly", "Comfortable",
    "Smooth ride", "Very helpful", "Great communication", "Punctual",
    "Courteous driver", "Well maintained vehicle", "Good navigation",
]

# Load order matters: children reference parents.
TABLE_COLUMNS: Dict[str, list[str]] = {
    "drivers": ["driver_id", "driver_name", "phone_number", "onboarding_date"],
    "trips": ["trip_id", "driver_id", "start_location", "end_location", "trip_date"],
    "payments": ["trip_id", "amount", "payment_date"],
    "ratings": ["trip_id", "rating_value", "comment"],
}

SERIAL_COLUMNS = {
    "drivers": "driver_id",
    "trips": "trip_id",
    "payments": "payment_id",
    "ratings": "rating_id",
}


@dataclass(frozen=True)
class SeedCounts:
    drivers: int
    trips: int
    payments: int
    ratings: int


def _build_dsn(dsn_override: str | None) -> str:
    if dsn_override:
        return dsn_override
    return build_dsn()


def _random_day(rng: random.Random, year: int) -> date:
    return date(year, 1, 1) + timedelta(days=rng.randrange(365))


def _generate_csvs(
    out_dir: Path,
    drivers: int,
    trips_per_driver: int,
    payment_ratio: float,
    rating_ratio: float,
    seed: int,
) -> SeedCounts:
    """
    Write drivers.csv, trips.csv, payments.csv and ratings.csv into ``out_dir``.

    Ids are assigned explicitly (1..N) so the output is reproducible for a
    given seed. Each trip gets a payment with probability ``payment_ratio``
    and a rating with probability ``rating_ratio``.
    """
    rng = random.Random(seed)
    out_dir.mkdir(parents=True, exist_ok=True)
    files = {name: (out_dir / f"{name}.csv").open("w", newline="", encoding="utf-8") for name in TABLE_COLUMNS}
    try:
        writers = {name: csv.writer(f) for name, f in files.items()}
        for name, columns in TABLE_COLUMNS.items():
            writers[name].writerow(columns)

        trip_id = 0
        payments = 0
        ratings = 0
        for driver_id in range(1, drivers + 1):
            writers["drivers"].writerow(
                [
                    driver_id,
                    f"Driver {driver_id}",
                    f"+1234567{driver_id:03d}",
                    _random_day(rng, 2023).isoformat(),
                ]
            )
            for _ in range(trips_per_driver):
                trip_id += 1
                writers["trips"].writerow(
                    [
                        trip_id,
                        driver_id,
                        rng.choice(LOCATIONS),
                        rng.choice(LOCATIONS),
                        _random_day(rng, 2024).isoformat(),
                    ]
                )
                if rng.random() < payment_ratio:
                    amount = round(rng.uniform(15, 115), 2)
                    writers["payments"].writerow(
                        [trip_id, f"{amount:.2f}", _random_day(rng, 2024).isoformat()]
                    )
                    payments += 1
                if rng.random() < rating_ratio:
                    writers["ratings"].writerow(
                        [trip_id, rng.randint(1, 5), rng.choice(COMMENTS)]
                    )
                    ratings += 1
    finally:
        for f in files.values():
            f.close()

    return SeedCounts(drivers=drivers, trips=trip_id, payments=payments, ratings=ratings)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def _connect(dsn: str) -> psycopg.Connection:
    """
    Open a connection for seeding, retrying transient failures up to 3 times.
    """
    return psycopg.connect(dsn)


def _init_schema(dsn: str, sql_path: Path = INIT_SQL_PATH) -> None:
    with _connect(dsn) as conn:
        with conn.cursor() as cur:
            cur.execute(sql_path.read_text(encoding="utf-8"))
        conn.commit()


def _truncate(dsn: str) -> None:
    with _connect(dsn) as conn:
        with conn.cursor() as cur:
            cur.execute("TRUNCATE TABLE ratings, payments, trips, drivers RESTART IDENTITY CASCADE;")
        conn.commit()


def _copy_into_db(dsn: str, csv_dir: Path) -> None:
    """COPY every generated CSV in dependency order, then advance the id sequences."""
    with _connect(dsn) as conn:
        with conn.cursor() as cur:
            for table, columns in TABLE_COLUMNS.items():
                sql = (
                    f"COPY {table} ({', '.join(columns)}) "
                    "FROM STDIN WITH (FORMAT csv, HEADER TRUE)"
                )
                with cur.copy(sql) as copy:
                    with (csv_dir / f"{table}.csv").open("r", encoding="utf-8") as f:
                        for line in f:
                            copy.write(line)
            for table, column in SERIAL_COLUMNS.items():
                cur.execute(
                    f"SELECT setval(pg_get_serial_sequence('{table}', '{column}'), "
                    f"COALESCE((SELECT MAX({column}) FROM {table}), 0) + 1, false)"
                )
        conn.commit()


@app.command()
def main(
    drivers: int = typer.Option(1_000, "--drivers", "-d", help="Number of drivers to generate."),
    trips_per_driver: int = typer.Option(
        1_000, "--trips-per-driver", "-t", help="Trips generated for every driver."
    ),
    payment_ratio: float = typer.Option(
        1.0, "--payment-ratio", help="Probability that a trip has a payment (0..1)."
    ),
    rating_ratio: float = typer.Option(
        1.0, "--rating-ratio", help="Probability that a trip has a rating (0..1)."
    ),
    seed: int = typer.Option(42, "--seed", help="Deterministic RNG seed."),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Optional directory for the CSV files (if omitted, a temp dir will be used).",
    ),
    dsn: str | None = typer.Option(None, "--dsn", help="Optional DSN override for Postgres."),
    init_schema: bool = typer.Option(False, "--init-schema", help="Run db/init.sql before loading."),
    truncate: bool = typer.Option(False, "--truncate", help="Empty all tables before loading."),
    no_load: bool = typer.Option(False, "--no-load", help="Only generate CSV; skip loading into Postgres."),
) -> None:
    """
    Generate synthetic drivers/trips/payments/ratings and optionally COPY them into Postgres.
    """
    start = time.perf_counter()
    csv_dir = output or Path(tempfile.mkdtemp(prefix="driver_analytics_csv_"))

    typer.echo(
        f"Generating {drivers:,} drivers x {trips_per_driver:,} trips -> {csv_dir} (seed={seed})"
    )
    counts = _generate_csvs(
        csv_dir,
        drivers=drivers,
        trips_per_driver=trips_per_driver,
        payment_ratio=payment_ratio,
        rating_ratio=rating_ratio,
        seed=seed,
    )
    gen_duration = time.perf_counter() - start
    typer.echo(
        f"CSV generation completed in {gen_duration:.2f}s: trips={counts.trips:,} "
        f"payments={counts.payments:,} ratings={counts.ratings:,}"
    )

    if no_load:
        typer.echo("Skipping load (no-load flag set).")
        return

    conn_dsn = _build_dsn(dsn)
    if init_schema:
        typer.echo("Initializing schema from db/init.sql...")
        _init_schema(conn_dsn)
    if truncate:
        typer.echo("Truncating tables...")
        _truncate(conn_dsn)

    load_start = time.perf_counter()
    typer.echo("Loading CSV into Postgres via COPY...")
    _copy_into_db(conn_dsn, csv_dir)
    load_duration = time.perf_counter() - load_start

    total_duration = time.perf_counter() - start
    typer.echo(f"Load completed in {load_duration:.2f}s. Total time {total_duration:.2f}s.")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
