"""Grayscale raster encoding of rendered intensity buffers."""

from __future__ import annotations

from pathlib import Path
from typing import Tuple

import numpy as np
from PIL import Image

__all__ = ["ImageEncodingError", "read_image", "write_image"]


class ImageEncodingError(ValueError):
    """Raised when a buffer and its bounds do not describe a valid image."""


def _pil_format_name(ext: str) -> str:
    upper = ext.upper().lstrip(".")
    if upper == "JPG":
        return "JPEG"
    if upper == "TIF":
        return "TIFF"
    return upper


def write_image(
    path: str | Path,
    pixels,
    bounds: Tuple[int, int],
    image_format: str = "png",
) -> None:
    """Write ``pixels`` as an 8-bit single-channel image at ``path``.

    Raises ``ImageEncodingError`` if ``pixels`` does not hold exactly
    ``width * height`` values; errors creating or writing the file
    propagate as ``OSError``.
    """
    width, height = bounds
    if width <= 0 or height <= 0:
        raise ImageEncodingError(f"Image size must be positive, got {width}x{height}")

    data = np.asarray(pixels, dtype=np.uint8).ravel()
    if data.size != width * height:
        raise ImageEncodingError(
            f"Pixel buffer holds {data.size} values but bounds {width}x{height} need {width * height}"
        )

    pil_format = _pil_format_name(image_format)
    Image.init()
    if pil_format not in Image.SAVE:
        raise ImageEncodingError(f"Unsupported image format: {image_format!r}")

    image = Image.frombytes("L", (int(width), int(height)), data.tobytes())
    image.save(str(path), format=pil_format)


def read_image(path: str | Path) -> Tuple[np.ndarray, Tuple[int, int]]:
    """Decode a grayscale image into a flat buffer and its bounds."""
    with Image.open(path) as image:
        if image.mode != "L":
            image = image.convert("L")
        pixels = np.asarray(image, dtype=np.uint8).ravel().copy()
        return pixels, image.size
