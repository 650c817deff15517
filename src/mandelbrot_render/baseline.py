"""Baseline Mandelbrot implementation."""

from __future__ import annotations

from typing import Tuple

import numpy as np


def compute_mandelbrot(
    size: Tuple[int, int],
    upper_left: complex,
    lower_right: complex,
    limit: int = 255,
) -> np.ndarray:
    """Compute the grayscale image for provided bounds in plain Python."""
    width, height = size
    image = np.zeros(width * height, dtype=np.uint8)

    plane_width = lower_right.real - upper_left.real
    plane_height = upper_left.imag - lower_right.imag

    for row in range(height):
        ci = upper_left.imag - row * plane_height / height
        for column in range(width):
            cr = upper_left.real + column * plane_width / width
            zr, zi = 0.0, 0.0
            for i in range(limit):
                if zr * zr + zi * zi > 4.0:
                    image[row * width + column] = max(255 - i, 0)
                    break
                zr, zi = zr * zr - zi * zi + cr, 2.0 * zr * zi + ci

    return image
