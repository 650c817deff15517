"""Partitioning of the pixel buffer into horizontal bands."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple

import numpy as np

from .computation import pixel_to_point


@dataclass(frozen=True)
class Band:
    """A run of full rows owned by a single worker."""

    index: int
    top: int
    pixels: np.ndarray
    bounds: Tuple[int, int]
    upper_left: complex
    lower_right: complex

    @property
    def end_row(self) -> int:
        return self.top + self.bounds[1]


@dataclass
class BandScheduler:
    """Static band partition - rows are split into consecutive bands of equal height.

    ``rows_per_band`` is ``height // workers + 1`` so the bands always cover
    every row; the last band takes whatever is left and there may be fewer
    bands than workers.
    """

    bounds: Tuple[int, int]
    workers: int
    rows_per_band: int = field(init=False)

    def __post_init__(self) -> None:
        width, height = self.bounds
        if width <= 0 or height <= 0:
            raise ValueError(f"Image size must be positive, got {width}x{height}")
        if self.workers <= 0:
            raise ValueError(f"workers must be positive, got {self.workers}")
        self.rows_per_band = height // self.workers + 1

    @property
    def total_bands(self) -> int:
        height = self.bounds[1]
        return (height + self.rows_per_band - 1) // self.rows_per_band

    def rows_for_band(self, index: int) -> Tuple[int, int]:
        """Get the ``[top, end)`` row range of a band."""
        top = index * self.rows_per_band
        return top, min(top + self.rows_per_band, self.bounds[1])

    def split(self, pixels: np.ndarray, upper_left: complex, lower_right: complex) -> List[Band]:
        """Split ``pixels`` into disjoint writable views, one per band.

        Each band's viewport is obtained by mapping its corner pixels through
        the full image's bounds and viewport. It is kept for reporting;
        pixels are always mapped through the full image.
        """
        width, height = self.bounds
        chunk = self.rows_per_band * width
        bands: List[Band] = []
        for index in range(self.total_bands):
            view = pixels[index * chunk:(index + 1) * chunk]
            top = self.rows_per_band * index
            band_height = len(view) // width
            bands.append(
                Band(
                    index=index,
                    top=top,
                    pixels=view,
                    bounds=(width, band_height),
                    upper_left=pixel_to_point(self.bounds, (0, top), upper_left, lower_right),
                    lower_right=pixel_to_point(
                        self.bounds, (width, top + band_height), upper_left, lower_right
                    ),
                )
            )
        return bands
