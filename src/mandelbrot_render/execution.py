"""Execution helpers for Mandelbrot CLI workflows."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Optional

from .config import RenderConfig, load_sweep_configs
from .image import ImageEncodingError, write_image
from .logging import log_to_mlflow
from .parallel import run_parallel_render
from .report import RenderReport


def run_single_render(
    config: RenderConfig,
    suite_name: Optional[str] = None,
) -> RenderReport:
    """Render one configuration in parallel, write the image and track the run."""
    print(
        f"[Run] Starting render '{config.run_name}' "
        f"(size={config.image_size}, workers={config.resolved_workers}, "
        f"bands={config.total_bands}, limit={config.limit})",
        flush=True,
    )

    report = run_parallel_render(config)

    for record in report.bands:
        print(
            f"[Band {record['band']}] rows {record['start_row']}:{record['end_row']} "
            f"on {record['worker']} took {record['comp_time']:.4f}s",
            flush=True,
        )

    output = config.output_path
    output.parent.mkdir(parents=True, exist_ok=True)
    write_image(output, report.pixels, config.bounds)
    print(f"[Run] Wrote {output}", flush=True)

    suite = suite_name or os.environ.get("MANDELBROT_SUITE") or "default"

    if os.environ.get("SKIP_MLFLOW"):
        print("[Run] SKIP_MLFLOW set - skipping MLflow logging.", flush=True)
    else:
        print("[Run] Render finished, logging to MLflow...", flush=True)

    log_to_mlflow(config, report, suite, image_path=output)

    wall_time = report.timing.get("wall_time", 0.0)
    print(f"[Timing] Total: {wall_time:.4f}s")
    return report


def run_sweep(
    config_path: str | Path | None,
    task_id: Optional[int] = None,
    suite_name: Optional[str] = None,
    configs: Optional[list[RenderConfig]] = None,
    descriptor: Optional[str] = None,
) -> int:
    """Run a sweep defined in a YAML configuration file or a pre-loaded list."""
    if configs is None:
        if config_path is None:
            raise ValueError("config_path must be provided when configs is None")
        configs = load_sweep_configs(config_path)
        descriptor = descriptor or str(config_path)
    else:
        descriptor = descriptor or (str(config_path) if config_path else "sweep")

    if not configs:
        print("ERROR: No configurations found in sweep", file=sys.stderr)
        return 1

    if task_id is not None:
        if task_id < 0 or task_id >= len(configs):
            print(f"ERROR: task-id {task_id} out of range [0, {len(configs) - 1}]", file=sys.stderr)
            return 1
        config = configs[task_id]
        print(f"[Task {task_id}] Running: {config.run_name}")
        return 0 if _run_config(config, task_id, len(configs), suite_name) else 1

    print("=" * 70)
    print(f"Running {len(configs)} configurations from {descriptor}")
    print("=" * 70)

    successes = 0
    failures: list[tuple[int, str]] = []

    for idx, cfg in enumerate(configs):
        if _run_config(cfg, idx, len(configs), suite_name):
            successes += 1
        else:
            failures.append((idx, cfg.run_name))

    print("\n" + "=" * 70)
    print("Summary")
    print("=" * 70)
    print(f"Total:      {len(configs)}")
    print(f"Successful: {successes}")
    print(f"Failed:     {len(failures)}")

    if failures:
        print("\nFailed configurations:")
        for idx, name in failures:
            print(f"  [{idx}] {name}")
        return 1

    return 0


def _run_config(
    config: RenderConfig,
    config_idx: int,
    total_configs: int,
    suite_name: Optional[str],
) -> bool:
    """Run one configuration, reporting I/O and encoding failures instead of raising."""
    print(f"\n[{config_idx + 1}/{total_configs}] {config.run_name}")
    print(
        "    size=%s, workers=%s, limit=%s, output=%s"
        % (config.image_size, config.resolved_workers, config.limit, config.output_path)
    )

    try:
        run_single_render(config, suite_name)
    except (OSError, ImageEncodingError) as exc:
        print(f"    ✗ FAILED: {exc}", file=sys.stderr)
        return False

    print("    ✓ Completed")
    return True
