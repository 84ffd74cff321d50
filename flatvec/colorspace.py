"""Color distance and averaging on 8-bit RGBA colors.

Distances are Euclidean over R, G, B scaled to [0, 1]. Alpha is left out so
that transparent pixels are not pulled toward black.
"""
import math
from typing import Iterable, List, Optional, Sequence

import numpy as np

from flatvec.types import Color, InvalidInputError, InvariantViolationError


def distance(a: Color, b: Color) -> float:
    """Euclidean distance between two colors over normalized RGB."""
    dr = (a.r - b.r) / 255.0
    dg = (a.g - b.g) / 255.0
    db = (a.b - b.b) / 255.0
    return math.sqrt(dr * dr + dg * dg + db * db)


def round_half_up(values: np.ndarray) -> np.ndarray:
    """Round to the nearest integer, halves away from zero for non-negatives."""
    return np.floor(np.asarray(values, dtype=np.float64) + 0.5)


def average(colors: Sequence[Color], weights: Optional[Sequence[int]] = None) -> Color:
    """
    Component-wise mean of colors, alpha included.

    Args:
        colors: Non-empty sequence of colors
        weights: Optional per-color counts (a multiset given as counts)

    Returns:
        Mean color, each channel rounded to the nearest integer

    Raises:
        InvalidInputError: If colors is empty or weights do not match
        InvariantViolationError: If a channel mean falls outside 0..255
    """
    if len(colors) == 0:
        raise InvalidInputError("Cannot average an empty color sequence")
    arr = colors_to_array(colors)
    mean = weighted_mean(arr, weights)
    return _to_color(mean)


def weighted_mean(arr: np.ndarray, weights: Optional[Sequence[int]] = None) -> np.ndarray:
    """Rounded (weighted) mean of an (N, 4) color array."""
    if weights is None:
        mean = arr.astype(np.float64).mean(axis=0)
    else:
        w = np.asarray(weights, dtype=np.float64)
        if w.shape[0] != arr.shape[0]:
            raise InvalidInputError(
                f"Got {w.shape[0]} weights for {arr.shape[0]} colors"
            )
        total = w.sum()
        if total <= 0:
            raise InvalidInputError("Weights must sum to a positive value")
        mean = (arr.astype(np.float64) * w[:, None]).sum(axis=0) / total
    return round_half_up(mean)


def _to_color(channels: np.ndarray) -> Color:
    if np.any(channels < 0) or np.any(channels > 255) or not np.all(np.isfinite(channels)):
        raise InvariantViolationError(f"Averaged color out of range: {channels.tolist()}")
    r, g, b, a = (int(c) for c in channels)
    return Color(r, g, b, a)


def colors_to_array(colors: Iterable[Color]) -> np.ndarray:
    """Stack colors into an (N, 4) uint8 array."""
    data = [c.as_tuple() for c in colors]
    if not data:
        return np.zeros((0, 4), dtype=np.uint8)
    return np.array(data, dtype=np.uint8)


def array_to_colors(arr: np.ndarray) -> List[Color]:
    """Convert an (N, 4) array of channel values into Colors."""
    result = []
    for row in np.asarray(arr):
        result.append(_to_color(np.asarray(row, dtype=np.float64)))
    return result


def nearest_index(colors: np.ndarray, palette: np.ndarray) -> np.ndarray:
    """Index of the nearest palette entry per color; ties go to the first entry."""
    # Integer squared distances order the same as `distance` and tie exactly
    a = np.asarray(colors, dtype=np.int64)[:, :3]
    b = np.asarray(palette, dtype=np.int64)[:, :3]
    diff = a[:, None, :] - b[None, :, :]
    return np.argmin(np.einsum("nkc,nkc->nk", diff, diff), axis=1)
