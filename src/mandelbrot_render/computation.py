from __future__ import annotations

from typing import Optional, Tuple

import numpy as np
from numba import njit

from .config import DEFAULT_LIMIT, RenderConfig

__all__ = [
    "allocate_image",
    "as_pixel_buffer",
    "check_render_request",
    "escape_time",
    "pixel_to_point",
    "render",
    "render_band",
]

ESCAPE_FREE = -1


@njit(nogil=True)
def _pixel_to_point(
    width: int,
    height: int,
    column: int,
    row: int,
    upper_left: complex,
    lower_right: complex,
) -> complex:
    plane_width = lower_right.real - upper_left.real
    plane_height = upper_left.imag - lower_right.imag
    return complex(
        upper_left.real + column * plane_width / width,
        upper_left.imag - row * plane_height / height,
    )


@njit(nogil=True)
def _escape_time(c: complex, limit: int) -> int:
    zr = 0.0
    zi = 0.0
    for i in range(limit):
        if zr * zr + zi * zi > 4.0:
            return i
        zr, zi = zr * zr - zi * zi + c.real, 2.0 * zr * zi + c.imag
    return ESCAPE_FREE


@njit(nogil=True)
def _render(
    pixels: np.ndarray,
    width: int,
    height: int,
    top: int,
    rows: int,
    upper_left: complex,
    lower_right: complex,
    limit: int,
) -> None:
    # pixels holds rows [top, top + rows) of the full width x height image
    for local_row in range(rows):
        row = top + local_row
        for column in range(width):
            point = _pixel_to_point(width, height, column, row, upper_left, lower_right)
            count = _escape_time(point, limit)
            if count == ESCAPE_FREE:
                pixels[local_row * width + column] = 0
            elif count >= 255:
                pixels[local_row * width + column] = 0
            else:
                pixels[local_row * width + column] = 255 - count


def allocate_image(config: RenderConfig) -> np.ndarray:
    return np.zeros(config.width * config.height, dtype=np.uint8)


def as_pixel_buffer(pixels) -> np.ndarray:
    """View ``pixels`` as a flat, writable uint8 array without copying."""
    if isinstance(pixels, np.ndarray):
        array = pixels
    else:
        array = np.frombuffer(pixels, dtype=np.uint8)
    if array.dtype != np.uint8 or array.ndim != 1:
        raise ValueError(f"Pixel buffer must be a flat uint8 array, got {array.dtype} with shape {array.shape}")
    if not array.flags.writeable:
        raise ValueError("Pixel buffer is read-only")
    return array


def check_render_request(
    pixels,
    bounds: Tuple[int, int],
    upper_left: complex,
    lower_right: complex,
    limit: int,
) -> np.ndarray:
    """Validate a whole-image render request and return the writable buffer view."""
    array = as_pixel_buffer(pixels)
    width, height = bounds
    if width <= 0 or height <= 0:
        raise ValueError(f"Image size must be positive, got {width}x{height}")
    if len(array) != width * height:
        raise ValueError(
            f"Pixel buffer holds {len(array)} values but bounds {width}x{height} need {width * height}"
        )
    upper_left, lower_right = complex(upper_left), complex(lower_right)
    if not (upper_left.real < lower_right.real and upper_left.imag > lower_right.imag):
        raise ValueError(f"Degenerate viewport: upper_left={upper_left}, lower_right={lower_right}")
    if limit <= 0:
        raise ValueError(f"limit must be positive, got {limit}")
    return array


def pixel_to_point(
    bounds: Tuple[int, int],
    pixel: Tuple[int, int],
    upper_left: complex,
    lower_right: complex,
) -> complex:
    """Map the pixel ``(column, row)`` of an image of size ``bounds`` to the plane.

    Row 0 is the top of the image and maps to ``upper_left.imag``; the
    pixel ``bounds`` itself maps to ``lower_right``.
    """
    width, height = bounds
    column, row = pixel
    return complex(
        _pixel_to_point(
            int(width), int(height), int(column), int(row), complex(upper_left), complex(lower_right)
        )
    )


def escape_time(c: complex, limit: int) -> Optional[int]:
    """Return the iteration at which the orbit of ``c`` left radius 2.

    ``None`` means the orbit stayed bounded for ``limit`` iterations and
    ``c`` is presumed to belong to the set.
    """
    if limit <= 0:
        raise ValueError(f"limit must be positive, got {limit}")
    count = _escape_time(complex(c), int(limit))
    return None if count == ESCAPE_FREE else int(count)


def render(
    pixels,
    bounds: Tuple[int, int],
    upper_left: complex,
    lower_right: complex,
    limit: int = DEFAULT_LIMIT,
) -> None:
    """Fill ``pixels`` row-major with grayscale escape-time intensities.

    Escape-free points are written as 0; a point escaping after ``count``
    iterations is written as ``255 - count`` (0 once ``count`` reaches 255).
    """
    array = check_render_request(pixels, bounds, upper_left, lower_right, limit)
    width, height = bounds
    _render(array, int(width), int(height), 0, int(height), complex(upper_left), complex(lower_right), int(limit))


def render_band(
    pixels,
    bounds: Tuple[int, int],
    top: int,
    upper_left: complex,
    lower_right: complex,
    limit: int = DEFAULT_LIMIT,
) -> None:
    """Fill the rows of a full image that start at ``top`` and fit in ``pixels``.

    ``bounds`` and the viewport describe the full image, so every pixel is
    mapped exactly as ``render`` maps it on the whole buffer.
    """
    array = as_pixel_buffer(pixels)
    width, height = bounds
    if width <= 0 or len(array) % width != 0:
        raise ValueError(f"Band of {len(array)} values is not a whole number of {width}-pixel rows")
    rows = len(array) // width
    if top < 0 or top + rows > height:
        raise ValueError(f"Rows {top}:{top + rows} fall outside an image {height} rows high")
    _render(array, int(width), int(height), int(top), rows, complex(upper_left), complex(lower_right), int(limit))
