"""Banded Mandelbrot renderer - grayscale PNG output with MLflow tracking."""

__version__ = "1.0.0"

# Core computation and config - lightweight, no tracking dependencies
from .computation import escape_time, pixel_to_point, render
from .config import RenderConfig, default_render_config
from .image import ImageEncodingError, read_image, write_image
from .parallel import render_parallel, run_parallel_render
from .report import RenderReport


# Conditional imports - only loaded when needed
def __getattr__(name):
    """Lazy loading of heavy modules."""
    if name == "run_single_render":
        from .execution import run_single_render

        return run_single_render
    elif name == "run_sweep":
        from .execution import run_sweep

        return run_sweep
    elif name == "load_sweep_configs":
        from .config import load_sweep_configs

        return load_sweep_configs
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "RenderConfig",
    "default_render_config",
    "pixel_to_point",
    "escape_time",
    "render",
    "render_parallel",
    "run_parallel_render",
    "RenderReport",
    "write_image",
    "read_image",
    "ImageEncodingError",
    "run_single_render",
    "run_sweep",
    "load_sweep_configs",
]
