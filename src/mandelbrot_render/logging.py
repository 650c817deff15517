"""MLflow logging for banded Mandelbrot renders."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import matplotlib
import mlflow
import pandas as pd

matplotlib.use("Agg")

from matplotlib import pyplot as plt  # noqa: E402

from .config import RenderConfig
from .report import RenderReport

DEFAULT_TRACKING_URI = "file:./mlruns"
EXPERIMENT_NAME = "mandelbrot_render"


def log_to_mlflow(
    config: RenderConfig,
    report: RenderReport,
    suite_name: str = "default",
    image_path: Optional[Path] = None,
) -> None:
    """Log a render to MLflow with its image, timings and band table.

    Args:
        config: Render configuration
        report: Combined outputs (pixels, timing stats, band table)
        suite_name: Name of the suite the render belongs to, used as a tag
        image_path: Written image to attach as an artifact, if any
    """
    if os.environ.get("SKIP_MLFLOW"):
        return

    mlflow.set_tracking_uri(_resolve_tracking_uri())
    mlflow.set_experiment(EXPERIMENT_NAME)

    with mlflow.start_run(run_name=config.run_name) as run:
        mlflow.set_tags(
            {
                "node_name": os.uname().nodename,
                "suite": suite_name,
            }
        )

        band_records = report.copy_bands()
        if band_records:
            mlflow.log_table(_records_to_table(band_records), "bands.json")

        worker_records = report.timing.get("worker_stats")
        if isinstance(worker_records, list) and worker_records:
            mlflow.log_table(_records_to_table(worker_records), "workers.json")

        mlflow.log_params(config.to_dict())

        metrics = {
            "wall_time": float(report.timing.get("wall_time", 0.0)),
            "comp_total": float(report.timing.get("comp_total", 0.0)),
            "comp_max": float(report.timing.get("comp_max", 0.0)),
            "total_bands": float(report.timing.get("total_bands", 0)),
            "pixels_per_second": float(report.timing.get("pixels_per_second", 0.0)),
        }
        for key, value in metrics.items():
            mlflow.log_metric(key, value)

        fig, ax = plt.subplots(figsize=(6, 6))
        ax.imshow(report.image, cmap="gray", vmin=0, vmax=255)
        ax.set_axis_off()
        mlflow.log_figure(fig, "figures/mandelbrot.png")
        plt.close(fig)

        if image_path is not None and Path(image_path).exists():
            mlflow.log_artifact(str(image_path), "images")

        print(f"[MLflow] Logged run: {config.run_name} (suite: {suite_name})")
        print(f"[MLflow] Run ID: {run.info.run_id}")


def _records_to_table(records: Sequence[Dict[str, Any]]) -> Dict[str, List[Any]]:
    """Convert row-wise records into MLflow table format."""

    frame = pd.DataFrame.from_records(records)
    return frame.to_dict(orient="list")


def _resolve_tracking_uri() -> str:
    """Resolve tracking URI."""
    return os.environ.get("MLFLOW_TRACKING_URI") or DEFAULT_TRACKING_URI
