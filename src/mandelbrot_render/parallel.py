"""Band-parallel dispatch of the Mandelbrot renderer."""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Tuple

from .computation import allocate_image, check_render_request, render_band
from .config import DEFAULT_LIMIT, RenderConfig, available_workers, format_complex
from .report import RenderReport
from .scheduling import Band, BandScheduler

__all__ = ["render_parallel", "run_parallel_render"]


def _band_record(band: Band, worker: str, comp_time: float) -> Dict[str, Any]:
    """Create a uniform band metadata record."""
    return {
        "band": int(band.index),
        "worker": worker,
        "start_row": int(band.top),
        "end_row": int(band.end_row - 1),
        "upper_left": format_complex(band.upper_left),
        "lower_right": format_complex(band.lower_right),
        "comp_time": comp_time,
    }


def _render_band_timed(
    band: Band,
    bounds: Tuple[int, int],
    upper_left: complex,
    lower_right: complex,
    limit: int,
) -> Dict[str, Any]:
    """Render one band into its own view and return its record."""
    comp_start = time.perf_counter()
    render_band(band.pixels, bounds, band.top, upper_left, lower_right, limit)
    comp_time = time.perf_counter() - comp_start
    return _band_record(band, threading.current_thread().name, comp_time)


def render_parallel(
    pixels,
    bounds: Tuple[int, int],
    upper_left: complex,
    lower_right: complex,
    workers: Optional[int] = None,
    limit: int = DEFAULT_LIMIT,
) -> List[Dict[str, Any]]:
    """Render ``pixels`` with one worker per horizontal band.

    Bands map their pixels through the full image's bounds and viewport,
    so the result is byte-identical to ``render`` on the whole buffer.
    Workers are started for this call only and all of them have finished
    when it returns; an exception in any band is re-raised here.

    Returns one record per band (index, worker, rows, band viewport,
    computation time).
    """
    array = check_render_request(pixels, bounds, upper_left, lower_right, limit)
    upper_left, lower_right = complex(upper_left), complex(lower_right)

    scheduler = BandScheduler(tuple(bounds), available_workers() if workers is None else workers)
    bands = scheduler.split(array, upper_left, lower_right)

    with ThreadPoolExecutor(max_workers=len(bands), thread_name_prefix="band") as executor:
        futures = [
            executor.submit(_render_band_timed, band, scheduler.bounds, upper_left, lower_right, limit)
            for band in bands
        ]
        # result() re-raises a failing band; leaving the block joins the rest
        records = [future.result() for future in futures]

    return records


def run_parallel_render(config: RenderConfig) -> RenderReport:
    """Allocate a buffer, render it band-parallel and collect timings."""
    pixels = allocate_image(config)

    start_time = time.perf_counter()
    records = render_parallel(
        pixels,
        config.bounds,
        config.upper_left,
        config.lower_right,
        workers=config.resolved_workers,
        limit=config.limit,
    )
    total_time = time.perf_counter() - start_time

    timing = _aggregate_timing(records, total_time, config.width * config.height)
    return RenderReport(pixels, config.bounds, timing, records)


def _aggregate_timing(records: List[Dict[str, Any]], total_time: float, n_pixels: int) -> Dict[str, Any]:
    """Aggregate wall-clock timing plus per-worker statistics."""
    worker_stats: Dict[str, Dict[str, Any]] = {}
    comp_total = 0.0

    for record in records:
        comp = float(record["comp_time"])
        stats = worker_stats.setdefault(record["worker"], {"worker": record["worker"], "comp_time": 0.0, "bands": 0})
        stats["comp_time"] += comp
        stats["bands"] += 1
        comp_total += comp

    comp_max = max((float(r["comp_time"]) for r in records), default=0.0)

    return {
        "wall_time": float(total_time),
        "comp_total": comp_total,
        "comp_max": comp_max,
        "total_bands": len(records),
        "pixels_per_second": n_pixels / total_time if total_time > 0 else 0.0,
        "worker_stats": list(worker_stats.values()),
    }
