"""Structured results returned from a banded render."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

import numpy as np


@dataclass(frozen=True)
class RenderReport:
    """Container for outputs produced by ``run_parallel_render``."""

    pixels: np.ndarray
    bounds: Tuple[int, int]
    timing: Dict[str, Any]
    bands: List[Dict[str, Any]]

    @property
    def image(self) -> np.ndarray:
        """The buffer as a ``(height, width)`` array."""
        width, height = self.bounds
        return self.pixels.reshape(height, width)

    def copy_bands(self) -> List[Dict[str, Any]]:
        return [record.copy() for record in self.bands]
