"""Test that band-parallel rendering matches the serial and baseline renderers."""

from dataclasses import replace
from pathlib import Path

import numpy as np
import pytest

from mandelbrot_render.baseline import compute_mandelbrot
from mandelbrot_render.computation import allocate_image, render, render_band
from mandelbrot_render.config import default_render_config, load_named_sweep_configs, load_sweep_configs
from mandelbrot_render.parallel import render_parallel, run_parallel_render

TEST_CONFIGS = load_sweep_configs(Path(__file__).parent / "test_configs.yaml")
SWEEPS = dict(load_named_sweep_configs(Path(__file__).parent.parent / "configs" / "sweeps.yaml"))


@pytest.mark.parametrize("config", TEST_CONFIGS, ids=lambda c: c.run_name)
def test_parallel_matches_serial(config):
    serial = allocate_image(config)
    render(serial, config.bounds, config.upper_left, config.lower_right, config.limit)

    banded = allocate_image(config)
    records = render_parallel(
        banded, config.bounds, config.upper_left, config.lower_right, workers=config.workers, limit=config.limit
    )

    np.testing.assert_array_equal(banded, serial, err_msg=f"Mismatch: {config.run_name}")
    assert len(records) == config.total_bands


@pytest.mark.parametrize(
    "bounds, workers",
    [((1000, 750), 8), ((400, 300), 7), ((640, 480), 3), ((333, 101), 16)],
)
@pytest.mark.parametrize("viewport_config", SWEEPS["viewports"], ids=lambda c: c.run_name)
def test_parallel_matches_serial_on_repository_viewports(viewport_config, bounds, workers):
    config = replace(viewport_config, width=bounds[0], height=bounds[1], workers=workers)

    serial = allocate_image(config)
    render(serial, config.bounds, config.upper_left, config.lower_right, config.limit)
    report = run_parallel_render(config)

    mismatches = int(np.count_nonzero(report.pixels != serial))
    assert mismatches == 0, f"{mismatches} pixels differ for {config.run_name}"


def test_band_rows_match_whole_image_rows():
    bounds = (100, 75)
    upper_left, lower_right = complex(-2.2, 1.3), complex(0.75, -1.3)
    whole = np.zeros(100 * 75, dtype=np.uint8)
    render(whole, bounds, upper_left, lower_right)

    band = np.zeros(100 * 11, dtype=np.uint8)
    render_band(band, bounds, 30, upper_left, lower_right)
    np.testing.assert_array_equal(band, whole[30 * 100:41 * 100])


@pytest.mark.parametrize("length, top", [(250, 0), (300, 73), (300, -1)])
def test_render_band_rejects_rows_outside_image(length, top):
    with pytest.raises(ValueError):
        render_band(np.zeros(length, dtype=np.uint8), (100, 75), top, complex(-2, 1), complex(1, -1))


@pytest.mark.parametrize("config", TEST_CONFIGS[:4], ids=lambda c: c.run_name)
def test_parallel_matches_baseline(config):
    baseline = compute_mandelbrot(config.bounds, config.upper_left, config.lower_right, config.limit)
    report = run_parallel_render(config)
    np.testing.assert_array_equal(report.pixels, baseline, err_msg=f"Mismatch: {config.run_name}")


def test_serial_matches_baseline_on_default_viewport():
    config = default_render_config(image_size="120x90")
    serial = allocate_image(config)
    render(serial, config.bounds, config.upper_left, config.lower_right)
    baseline = compute_mandelbrot(config.bounds, config.upper_left, config.lower_right)
    np.testing.assert_array_equal(serial, baseline)


def test_parallel_is_deterministic():
    config = default_render_config(image_size="90x61", workers=6)
    first = run_parallel_render(config)
    second = run_parallel_render(config)
    np.testing.assert_array_equal(first.pixels, second.pixels)


def test_parallel_covers_every_row():
    # 255 is never produced by the renderer, so any untouched pixel stays visible
    bounds = (24, 16)
    pixels = np.full(24 * 16, 255, dtype=np.uint8)
    render_parallel(pixels, bounds, complex(-2.0, 1.0), complex(1.0, -1.0), workers=5)
    assert (pixels != 255).all()


@pytest.mark.parametrize("length", [0, 24 * 16 - 1, 24 * 16 + 1])
def test_parallel_rejects_length_mismatch(length):
    pixels = np.full(length, 7, dtype=np.uint8)
    with pytest.raises(ValueError):
        render_parallel(pixels, (24, 16), complex(-2.0, 1.0), complex(1.0, -1.0), workers=4)
    assert (pixels == 7).all()


def test_parallel_worker_failure_fails_the_call(monkeypatch):
    from mandelbrot_render import parallel

    def failing_render_band(pixels, bounds, top, upper_left, lower_right, limit):
        if top > 0:
            raise RuntimeError("band exploded")
        return render_band(pixels, bounds, top, upper_left, lower_right, limit)

    monkeypatch.setattr(parallel, "render_band", failing_render_band)
    pixels = np.zeros(24 * 16, dtype=np.uint8)
    with pytest.raises(RuntimeError, match="band exploded"):
        render_parallel(pixels, (24, 16), complex(-2.0, 1.0), complex(1.0, -1.0), workers=4)


def test_run_parallel_render_report():
    config = default_render_config(image_size="40x30", workers=4)
    report = run_parallel_render(config)

    assert report.image.shape == (30, 40)
    assert report.timing["total_bands"] == config.total_bands == 4
    assert report.timing["wall_time"] > 0
    assert sum(stats["bands"] for stats in report.timing["worker_stats"]) == 4

    rows = sorted((r["start_row"], r["end_row"]) for r in report.copy_bands())
    assert rows == [(0, 7), (8, 15), (16, 23), (24, 29)]


@pytest.mark.parametrize(
    "pixels, bounds, upper_left, lower_right",
    [
        (np.full(6, 7, dtype=np.uint8), (-2, -3), complex(-1, 1), complex(1, -1)),
        (np.full(0, 7, dtype=np.uint8), (0, 5), complex(-1, 1), complex(1, -1)),
        (np.full(4, 7, dtype=np.uint8), (2, 2), complex(1, -1), complex(-1, 1)),
        (np.full(4, 7, dtype=np.uint8), (2, 2), complex(-1, -1), complex(1, 1)),
        (np.full(4, 7, dtype=np.uint8), (2, 2), complex(-1, 1), complex(-1, -1)),
    ],
)
def test_serial_and_parallel_reject_invalid_requests_alike(pixels, bounds, upper_left, lower_right):
    with pytest.raises(ValueError):
        render(pixels, bounds, upper_left, lower_right)
    with pytest.raises(ValueError):
        render_parallel(pixels, bounds, upper_left, lower_right, workers=2)
    assert (pixels == 7).all()
