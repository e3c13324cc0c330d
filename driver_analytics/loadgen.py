"""
In-process load generator for comparing the analytics variants.

Fires many concurrent analytics requests straight at the service layer (no
HTTP hop), profiles each variant, and records latency percentiles together
with the gateway's peak number of in-flight queries. With the default wiring
the single-connection variant never exceeds one query in flight while the
pooled variant stays at or below the pool size.

Usage (example from CLI):
    from driver_analytics.loadgen import LoadConfig, run_load

    results = run_load(LoadConfig(variants=["optimized"], requests=200, concurrency=20))

Outputs are saved to `results/` by default:
- `results/latest.json` (last run)
- `results/load-<timestamp>.json` (timestamped archive)
"""

from __future__ import annotations

import asyncio
import json
import math
import random
import statistics
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Optional

from driver_analytics.config import get_settings
from driver_analytics.errors import AnalyticsError, NotFoundError
from driver_analytics.service import VARIANTS, AnalyticsService, build_service
from driver_analytics.utils.logging import get_logger
from driver_analytics.utils.profiler import ProfileStats, profile_block

log = get_logger(__name__)


@dataclass
class LoadConfig:
    variants: List[str] = field(default_factory=lambda: ["all"])
    requests: Optional[int] = None
    concurrency: Optional[int] = None
    driver_range: Optional[int] = None
    page_limit: Optional[int] = None
    seed: int = 42
    results_dir: Path | str = "results"
    persist: bool = True


@dataclass
class _Outcome:
    latency_ms: float
    status: str


def _service_factories() -> Dict[str, Callable[[], AnalyticsService]]:
    """Registry of variants the load generator can drive."""
    return {name: (lambda name=name: build_service(name)) for name in VARIANTS}


def available_variants() -> List[str]:
    return sorted(_service_factories().keys())


def _percentile(sorted_values: List[float], pct: float) -> float:
    """Nearest-rank percentile of an already sorted list."""
    if not sorted_values:
        return 0.0
    rank = max(1, math.ceil(pct / 100.0 * len(sorted_values)))
    return sorted_values[min(rank, len(sorted_values)) - 1]


def summarize_outcomes(outcomes: List[_Outcome], duration_seconds: float) -> dict:
    """Reduce per-request outcomes to latency/throughput statistics (ms, rounded)."""
    latencies = sorted(o.latency_ms for o in outcomes)
    ok = sum(1 for o in outcomes if o.status == "ok")
    not_found = sum(1 for o in outcomes if o.status == "not_found")
    errors = sum(1 for o in outcomes if o.status == "error")
    return {
        "requests": len(outcomes),
        "ok": ok,
        "not_found": not_found,
        "errors": errors,
        "duration_seconds": round(duration_seconds, 2),
        "throughput_rps": round(len(outcomes) / duration_seconds, 2) if duration_seconds > 0 else 0.0,
        "latency_ms": {
            "mean": round(statistics.mean(latencies), 2) if latencies else 0.0,
            "p50": round(_percentile(latencies, 50), 2),
            "p95": round(_percentile(latencies, 95), 2),
            "p99": round(_percentile(latencies, 99), 2),
            "max": round(latencies[-1], 2) if latencies else 0.0,
        },
    }


async def _timed_request(
    service: AnalyticsService,
    driver_id: int,
    limit: Optional[int],
    semaphore: asyncio.Semaphore,
) -> _Outcome:
    async with semaphore:
        start = time.perf_counter()
        try:
            await service.get_driver_analytics(driver_id, limit=limit)
            status = "ok"
        except NotFoundError:
            status = "not_found"
        except AnalyticsError as exc:
            log.warning(
                "Load request failed",
                extra={"variant": service.name, "driver_id": driver_id, "error": str(exc)},
            )
            status = "error"
        except Exception:
            # One bad response must not abort the rest of the run.
            log.exception(
                "Load request raised unexpectedly",
                extra={"variant": service.name, "driver_id": driver_id},
            )
            status = "error"
        return _Outcome(latency_ms=(time.perf_counter() - start) * 1000.0, status=status)


async def drive_service(
    service: AnalyticsService,
    driver_ids: List[int],
    concurrency: int,
    limit: Optional[int] = None,
) -> List[_Outcome]:
    """Run one request per driver id with at most ``concurrency`` outstanding."""
    semaphore = asyncio.Semaphore(max(concurrency, 1))
    tasks = [_timed_request(service, driver_id, limit, semaphore) for driver_id in driver_ids]
    return list(await asyncio.gather(*tasks))


async def _run_variant(
    service: AnalyticsService, driver_ids: List[int], concurrency: int, limit: Optional[int]
) -> List[_Outcome]:
    try:
        return await drive_service(service, driver_ids, concurrency, limit)
    finally:
        await service.close()


def _merge_profile(summary: dict, stats: ProfileStats) -> dict:
    merged = dict(summary)
    merged["peak_rss_bytes"] = stats.peak_rss_bytes
    merged["cpu_percent"] = round(stats.cpu_percent, 1) if stats.cpu_percent else None
    merged["profile"] = {
        "label": stats.label,
        "duration_seconds": round(stats.duration_seconds, 2),
        "peak_traced_bytes": stats.peak_traced_bytes,
    }
    return merged


def _persist_results(payload: dict, results_dir: Path) -> None:
    results_dir.mkdir(parents=True, exist_ok=True)
    latest_path = results_dir / "latest.json"
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    archive_path = results_dir / f"load-{timestamp}.json"

    for path in (latest_path, archive_path):
        with path.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, sort_keys=True)

    log.info("Results persisted", extra={"latest": str(latest_path), "archive": str(archive_path)})


def run_load(config: Optional[LoadConfig] = None) -> List[dict]:
    """
    Drive each requested variant with the same sequence of driver ids.

    Returns
    -------
    List[dict]
        One entry per variant with latency statistics, gateway counters and
        profiler measurements.
    """
    config = config or LoadConfig()
    settings = get_settings()
    total_requests = config.requests or settings.load_requests
    concurrency = config.concurrency or settings.load_concurrency
    driver_range = config.driver_range or settings.load_driver_range

    names = list(config.variants)
    if len(names) == 1 and names[0] == "all":
        names = available_variants()
    factories = _service_factories()
    unknown = [name for name in names if name not in factories]
    if unknown:
        raise ValueError(f"Unknown variant(s) {unknown}. Available: {', '.join(factories)}")

    rng = random.Random(config.seed)
    driver_ids = [rng.randint(1, driver_range) for _ in range(total_requests)]

    results: List[dict] = []
    for name in names:
        log.info(
            f"[LOAD START] {name}",
            extra={"variant": name, "requests": total_requests, "concurrency": concurrency},
        )
        service = factories[name]()
        with profile_block(name) as stats:
            outcomes = asyncio.run(_run_variant(service, driver_ids, concurrency, config.page_limit))

        result = _merge_profile(summarize_outcomes(outcomes, stats.duration_seconds), stats)
        result["variant"] = name
        result["gateway"] = service.gateway.kind
        result["aggregation"] = service.aggregation.name
        result["concurrency"] = concurrency
        result["gateway_stats"] = service.gateway.stats.as_dict()
        results.append(result)
        log.info(
            f"[LOAD COMPLETE] {name}",
            extra={
                "variant": name,
                "throughput_rps": result["throughput_rps"],
                "p95_ms": result["latency_ms"]["p95"],
                "peak_in_flight": result["gateway_stats"]["peak_in_flight"],
            },
        )

    if config.persist:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "requests": total_requests,
            "concurrency": concurrency,
            "driver_range": driver_range,
            "variants": names,
            "results": results,
        }
        _persist_results(payload, Path(config.results_dir))

    return results


__all__ = [
    "LoadConfig",
    "available_variants",
    "drive_service",
    "run_load",
    "summarize_outcomes",
]
