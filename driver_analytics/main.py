from __future__ import annotations

import json
import sys
from typing import Optional

import typer
import uvicorn

from driver_analytics.api.app import create_app
from driver_analytics.config import get_settings
from driver_analytics.infrastructure.gateway import GATEWAY_KINDS
from driver_analytics.loadgen import LoadConfig, available_variants, run_load
from driver_analytics.reporter import print_results
from driver_analytics.service import variant_configs
from driver_analytics.strategies import available_strategies
from driver_analytics.utils.logging import configure_logging

app = typer.Typer(help="Driver analytics service CLI.")


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"pool=({settings.pool_min_size},{settings.pool_max_size}) "
        f"limit={settings.default_page_limit} max_limit={settings.max_page_limit}"
    )
    for config in variant_configs(settings).values():
        typer.echo(
            f"{config.name}: gateway={config.gateway} aggregation={config.aggregation} "
            f"paginate={config.paginate}"
        )


@app.command()
def strategies() -> None:
    """
    List variants, gateways and aggregation strategies.
    """
    typer.echo("Variants: " + ", ".join(available_variants()))
    typer.echo("Gateways: " + ", ".join(GATEWAY_KINDS))
    typer.echo("Aggregation strategies: " + ", ".join(available_strategies()))


@app.command()
def serve(
    variant: str = typer.Option(
        "optimized",
        "--variant",
        "-v",
        help="Variant to serve (optimized or unoptimized).",
    ),
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default from settings)."),
    port: Optional[int] = typer.Option(
        None,
        "--port",
        "-p",
        help="Port (default 5002 optimized, 5000 unoptimized).",
    ),
) -> None:
    """
    Serve GET /api/v1/drivers/{driverId}/analytics with uvicorn.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    if variant not in available_variants():
        raise typer.BadParameter(f"Unknown variant '{variant}'. Available: {', '.join(available_variants())}")

    default_port = settings.optimized_port if variant == "optimized" else settings.unoptimized_port
    uvicorn.run(
        create_app(variant, settings=settings),
        host=host or settings.server_host,
        port=port or default_port,
        log_config=None,
    )


@app.command()
def load(
    variant: str = typer.Option(
        "all",
        "--variant",
        "--variants",
        "-v",
        help="Variant to drive (optimized, unoptimized, all).",
    ),
    requests: Optional[int] = typer.Option(None, "--requests", "-n", help="Total requests per variant."),
    concurrency: Optional[int] = typer.Option(
        None, "--concurrency", "-c", help="Requests in flight at once."
    ),
    drivers: Optional[int] = typer.Option(
        None, "--drivers", "-d", help="Pick driver ids uniformly from 1..N."
    ),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", help="Page size for the optimized variant."),
    seed: int = typer.Option(42, "--seed", help="Deterministic RNG seed for driver ids."),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON instead of a table."),
) -> None:
    """
    Drive concurrent load through the service layer and report per variant.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    results = run_load(
        LoadConfig(
            variants=[variant],
            requests=requests,
            concurrency=concurrency,
            driver_range=drivers,
            page_limit=limit,
            seed=seed,
        )
    )
    if as_json:
        typer.echo(json.dumps(results, indent=2))
    else:
        print_results(results)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
