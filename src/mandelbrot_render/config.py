"""Configuration objects and YAML loading for banded Mandelbrot renders."""

from __future__ import annotations

import hashlib
import os
from dataclasses import asdict, dataclass, replace
from itertools import product
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import yaml

DEFAULT_LIMIT = 255


@dataclass(frozen=True)
class RenderConfig:
    """Runtime configuration for a single render."""

    width: int
    height: int
    upper_left: complex = complex(-1.20, 0.35)
    lower_right: complex = complex(-1.0, 0.20)
    workers: Optional[int] = None  # None uses every available core
    limit: int = DEFAULT_LIMIT
    output: Optional[str] = None
    output_dir: str = "output"

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Image size must be positive, got {self.width}x{self.height}")
        if not (self.upper_left.real < self.lower_right.real and self.upper_left.imag > self.lower_right.imag):
            raise ValueError(
                f"Degenerate viewport: upper_left={self.upper_left}, lower_right={self.lower_right}"
            )
        if self.workers is not None and self.workers <= 0:
            raise ValueError(f"workers must be positive, got {self.workers}")
        if self.limit <= 0:
            raise ValueError(f"limit must be positive, got {self.limit}")

    @property
    def bounds(self) -> Tuple[int, int]:
        return self.width, self.height

    @property
    def image_size(self) -> str:
        return f"{self.width}x{self.height}"

    @property
    def resolved_workers(self) -> int:
        return self.workers or available_workers()

    @property
    def rows_per_band(self) -> int:
        return self.height // self.resolved_workers + 1

    @property
    def total_bands(self) -> int:
        return (self.height + self.rows_per_band - 1) // self.rows_per_band

    @property
    def run_name(self) -> str:
        """Generate unique run name embedding all parameters."""
        viewport = f"{format_complex(self.upper_left)}_{format_complex(self.lower_right)}"
        digest = hashlib.md5(viewport.encode()).hexdigest()[:8]
        workers = self.workers if self.workers is not None else "auto"
        return f"mandel_{self.image_size}_w{workers}_l{self.limit}_{digest}"

    @property
    def output_path(self) -> Path:
        if self.output:
            return Path(self.output)
        return Path(self.output_dir) / f"{self.run_name}.png"

    def to_dict(self) -> dict:
        """Convert to dictionary for MLflow logging."""
        data = asdict(self)
        data["upper_left"] = format_complex(self.upper_left)
        data["lower_right"] = format_complex(self.lower_right)
        data["workers"] = self.resolved_workers
        data["output"] = str(self.output_path)
        return data


DEFAULT_RENDER_CONFIG = RenderConfig(
    width=1000,
    height=750,
    upper_left=complex(-1.20, 0.35),
    lower_right=complex(-1.0, 0.20),
)


def available_workers() -> int:
    return os.cpu_count() or 1


def default_render_config(**overrides: object) -> RenderConfig:
    """Return the canonical default config optionally overridden with kwargs."""
    return replace(DEFAULT_RENDER_CONFIG, **_coerce_fields(overrides))


def load_sweep_configs(yaml_path: str | Path) -> List[RenderConfig]:
    """Load YAML config and generate all parameter sweep combinations.

    Supports a single top-level ``sweep`` as well as the suite format that
    nests multiple named experiments under ``experiments``.
    """
    with open(yaml_path) as f:
        cfg = yaml.safe_load(f) or {}

    global_defaults: Dict[str, object] = cfg.get("defaults", {}) or {}

    if "experiments" in cfg:
        experiments = cfg.get("experiments") or []
        configs: List[RenderConfig] = []
        for exp in experiments:
            sweep = exp.get("sweep")
            if not sweep:
                continue
            exp_defaults = {**global_defaults, **(exp.get("defaults", {}) or {})}
            configs.extend(_expand_sweep(exp_defaults, sweep))
        return configs

    sweep: Dict[str, object] = cfg.get("sweep", {}) or {}
    return _expand_sweep(global_defaults, sweep)


def load_named_sweep_configs(
    yaml_path: str | Path,
    suite: str | None = None,
) -> List[tuple[str, List[RenderConfig]]]:
    with open(yaml_path) as f:
        cfg = yaml.safe_load(f) or {}

    defaults: Dict[str, object] = cfg.get("defaults", {}) or {}
    experiments = cfg.get("experiments")
    results: List[tuple[str, List[RenderConfig]]] = []

    if experiments:
        for exp in experiments:
            name = exp.get("name")
            if not name:
                continue
            if suite and name != suite:
                continue
            sweep = exp.get("sweep") or {}
            exp_defaults = {**defaults, **(exp.get("defaults", {}) or {})}
            results.append((name, _expand_sweep(exp_defaults, sweep)))
        if suite and not results:
            raise ValueError(f"Suite '{suite}' not found in {yaml_path}")
        return results

    sweep: Dict[str, object] = cfg.get("sweep", {}) or {}
    label = cfg.get("name") or Path(yaml_path).stem
    return [(label, _expand_sweep(defaults, sweep))]


def get_config_by_index(yaml_path: str | Path, index: int) -> RenderConfig:
    """Get a specific config by index from sweep."""
    configs = load_sweep_configs(yaml_path)
    if index < 0 or index >= len(configs):
        raise ValueError(f"Config index {index} out of range [0, {len(configs) - 1}]")
    return configs[index]


def parse_pair(text: str, separator: str) -> Tuple[str, str]:
    """Split ``text`` around a single ``separator`` into two stripped halves."""
    left, sep, right = text.partition(separator)
    if not sep or not left.strip() or not right.strip():
        raise ValueError(f"Expected two values separated by {separator!r}, got {text!r}")
    return left.strip(), right.strip()


def parse_image_size(value: str) -> Tuple[int, int]:
    width_str, height_str = parse_pair(value.lower(), "x")
    return int(width_str), int(height_str)


def parse_complex(value: str) -> complex:
    """Parse ``"re,im"`` into a complex number, e.g. ``"-1.20,0.35"``."""
    re_str, im_str = parse_pair(value, ",")
    return complex(float(re_str), float(im_str))


def format_complex(value: complex) -> str:
    return f"{value.real!r},{value.imag!r}"


def _build_render_config(raw_data: Dict[str, object]) -> RenderConfig:
    return RenderConfig(**_coerce_fields(raw_data))  # type: ignore[arg-type]


def _expand_sweep(defaults: Dict[str, object], sweep: Dict[str, object]) -> List[RenderConfig]:
    """Expand sweep definition into RenderConfig instances."""
    configs: List[RenderConfig] = []

    viewports = sweep.get("viewports")
    param_grid = {k: sweep[k] for k in sweep if k not in {"viewports", "image_shape"}}
    shape_options = sweep.get("image_shape")

    keys = list(param_grid.keys())
    combos = list(product(*[param_grid[k] for k in keys])) if keys else [()]

    if viewports:
        for viewport in viewports:
            upper_left, lower_right = _normalize_viewport_entry(viewport)
            for combo in combos:
                data = {**defaults, **dict(zip(keys, combo))}
                data["upper_left"] = upper_left
                data["lower_right"] = lower_right
                configs.extend(_expand_shapes(data, shape_options))
    else:
        for combo in combos:
            data = {**defaults, **dict(zip(keys, combo))}
            configs.extend(_expand_shapes(data, shape_options))

    return configs


def _coerce_fields(data: Dict[str, object]) -> Dict[str, object]:
    result = dict(data)
    image = result.pop("image_size", None)
    if image is not None:
        width, height = _normalize_shape_entry(image)
        result.setdefault("width", width)
        result.setdefault("height", height)
    shape = result.pop("image_shape", None)
    if shape is not None:
        width, height = _normalize_shape_entry(shape)
        result.setdefault("width", width)
        result.setdefault("height", height)
    for key in ("width", "height", "limit"):
        if key in result:
            result[key] = int(result[key])
    if result.get("workers") is not None:
        result["workers"] = int(result["workers"])
    for key in ("upper_left", "lower_right"):
        if key in result:
            result[key] = _normalize_complex_entry(result[key])
    return result


def _normalize_complex_entry(entry: object) -> complex:
    if isinstance(entry, complex):
        return entry
    if isinstance(entry, str):
        return parse_complex(entry)
    if isinstance(entry, dict):
        if "re" not in entry or "im" not in entry:
            raise ValueError("complex dict must include 're' and 'im'")
        return complex(float(entry["re"]), float(entry["im"]))
    if isinstance(entry, (list, tuple)) and len(entry) == 2:
        return complex(float(entry[0]), float(entry[1]))
    raise ValueError(f"Unsupported complex specification: {entry!r}")


def _normalize_viewport_entry(entry: object) -> Tuple[complex, complex]:
    if isinstance(entry, dict):
        if "upper_left" not in entry or "lower_right" not in entry:
            raise ValueError("viewport dict must include 'upper_left' and 'lower_right'")
        return _normalize_complex_entry(entry["upper_left"]), _normalize_complex_entry(entry["lower_right"])
    if isinstance(entry, (list, tuple)) and len(entry) == 2:
        return _normalize_complex_entry(entry[0]), _normalize_complex_entry(entry[1])
    raise ValueError(f"Unsupported viewport specification: {entry!r}")


def _normalize_shape_entry(entry: object) -> Tuple[int, int]:
    if isinstance(entry, dict):
        width = entry.get("width")
        height = entry.get("height")
        if width is None or height is None:
            raise ValueError("image_shape dict must include 'width' and 'height'")
        return int(width), int(height)
    if isinstance(entry, (list, tuple)) and len(entry) == 2:
        return int(entry[0]), int(entry[1])
    if isinstance(entry, str):
        return parse_image_size(entry)
    raise ValueError(f"Unsupported image shape specification: {entry!r}")


def _expand_shapes(base: Dict[str, object], shape_options: object) -> List[RenderConfig]:
    if not shape_options:
        return [_build_render_config(base)]

    shapes: Iterable[Tuple[int, int]]
    if isinstance(shape_options, (list, tuple)):
        shapes = [_normalize_shape_entry(opt) for opt in shape_options]
    else:
        shapes = [_normalize_shape_entry(shape_options)]

    configs = []
    for width, height in shapes:
        data = {**base, "width": width, "height": height}
        configs.append(_build_render_config(data))
    return configs
