"""Palette construction by deterministic K-means over observed colors."""
import logging
from typing import Dict, Iterable, List, Mapping, Tuple, Union

import numpy as np

from flatvec.colorspace import (
    array_to_colors,
    colors_to_array,
    distance,
    nearest_index,
    weighted_mean,
)
from flatvec.types import Color, InvalidInputError, Palette, Raster

logger = logging.getLogger(__name__)

DEFAULT_ITERATIONS = 10

ColorMultiset = Union[Iterable[Color], Mapping[Color, int]]


def count_colors(raster: Raster) -> Dict[Color, int]:
    """
    Count distinct colors of a raster.

    Returns one entry per distinct color in first-seen row-major order,
    which bounds palette work by the number of distinct colors instead of
    the image resolution.
    """
    packed = raster.packed().ravel()
    values, first_index, counts = np.unique(packed, return_index=True, return_counts=True)
    order = np.argsort(first_index, kind="stable")
    flat = raster.pixels.reshape(-1, 4)
    result = {}
    for i in order:
        r, g, b, a = (int(c) for c in flat[first_index[i]])
        result[Color(r, g, b, a)] = int(counts[i])
    return result


def _distinct_with_counts(colors: ColorMultiset) -> Tuple[List[Color], List[int]]:
    if isinstance(colors, Mapping):
        items = [(c, int(n)) for c, n in colors.items() if n > 0]
        return [c for c, _ in items], [n for _, n in items]

    counts: Dict[Color, int] = {}
    for color in colors:
        counts[color] = counts.get(color, 0) + 1
    return list(counts.keys()), list(counts.values())


def seed_indices(n: int, size: int) -> List[int]:
    """Evenly strided seed positions into a list of n distinct colors."""
    return [(i * n) // size for i in range(size)]


def kmeans(
    colors: np.ndarray,
    weights: np.ndarray,
    size: int,
    iterations: int = DEFAULT_ITERATIONS,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Refine `size` centroids over weighted distinct colors.

    Runs a fixed number of assign/update rounds. A centroid with no members
    keeps its previous value. The result approximates a clustering; it is not
    guaranteed optimal.

    Args:
        colors: (N, 4) distinct colors, N > size
        weights: (N,) pixel counts
        size: Number of centroids
        iterations: Maximum refinement rounds

    Returns:
        Tuple of (centroids, populations):
        - centroids: (size, 4) integer channel values
        - populations: (size,) summed weight per centroid
    """
    centroids = colors[seed_indices(len(colors), size)].astype(np.int64)
    assignment = None

    for round_idx in range(iterations):
        new_assignment = nearest_index(colors, centroids)
        if assignment is not None and np.array_equal(new_assignment, assignment):
            # Fixed point: further rounds would repeat the same update
            logger.debug(f"K-means settled after {round_idx} rounds")
            break
        assignment = new_assignment

        for k in range(size):
            members = assignment == k
            if not np.any(members):
                continue
            centroids[k] = weighted_mean(colors[members], weights[members]).astype(np.int64)

    assignment = nearest_index(colors, centroids)
    populations = np.bincount(assignment, weights=weights, minlength=size)
    return centroids, populations


def merge_similar(
    palette: List[Color],
    populations: List[float],
    tolerance: float,
) -> Tuple[List[Color], List[float]]:
    """
    Fuse palette entries closer than `tolerance` to an earlier entry.

    Entries are visited in order; each one joins the first kept group whose
    color lies strictly within `tolerance`, otherwise it starts a new group.
    A group's color is the population-weighted average of its members.

    Args:
        palette: Colors in palette order
        populations: Pixel count represented by each entry
        tolerance: Distance threshold in normalized RGB units (0 keeps all)

    Returns:
        Tuple of (merged colors, merged populations)
    """
    if tolerance <= 0 or len(palette) < 2:
        return list(palette), list(populations)

    groups: List[List[int]] = []
    representatives: List[Color] = []
    for i, color in enumerate(palette):
        for g, rep in enumerate(representatives):
            if distance(color, rep) < tolerance:
                groups[g].append(i)
                break
        else:
            groups.append([i])
            representatives.append(color)

    merged_colors = []
    merged_populations = []
    arr = colors_to_array(palette)
    pops = np.asarray(populations, dtype=np.float64)
    for members in groups:
        weights = pops[members]
        if weights.sum() <= 0:
            weights = np.ones(len(members))
        mean = weighted_mean(arr[members], weights)
        merged_colors.extend(array_to_colors(mean[None, :]))
        merged_populations.append(float(pops[members].sum()))

    if len(merged_colors) < len(palette):
        logger.debug(
            f"Tolerance {tolerance} merged palette {len(palette)} -> {len(merged_colors)}"
        )
    return merged_colors, merged_populations


def build_palette(
    colors: ColorMultiset,
    size: int,
    iterations: int = DEFAULT_ITERATIONS,
    tolerance: float = 0.0,
) -> Palette:
    """
    Reduce observed colors to at most `size` representative colors.

    If there are no more distinct colors than `size`, those colors are the
    palette as-is. Otherwise centroids are seeded by striding evenly through
    the distinct colors and refined for a fixed number of rounds, so the same
    input always yields the same palette.

    Args:
        colors: Observed colors, either repeated Colors or a Color -> count map
        size: Requested palette size (>= 1)
        iterations: Refinement rounds
        tolerance: Merge threshold for near-identical palette entries

    Returns:
        Palette tuple

    Raises:
        InvalidInputError: If colors is empty, size is 0 or tolerance < 0
    """
    if size < 1:
        raise InvalidInputError(f"Palette size must be >= 1, got {size}")
    if tolerance < 0:
        raise InvalidInputError(f"tolerance must be >= 0, got {tolerance}")

    distinct, counts = _distinct_with_counts(colors)
    if not distinct:
        raise InvalidInputError("Cannot build a palette from no colors")

    if len(distinct) <= size:
        logger.debug(f"{len(distinct)} distinct colors <= {size}, using them directly")
        palette, populations = list(distinct), [float(c) for c in counts]
    else:
        centroids, populations = kmeans(
            colors_to_array(distinct),
            np.asarray(counts, dtype=np.float64),
            size,
            iterations,
        )
        palette = array_to_colors(centroids)
        populations = populations.tolist()

    palette, _ = merge_similar(palette, populations, tolerance)
    logger.info(f"Built palette of {len(palette)} colors from {len(distinct)} distinct")
    return tuple(palette)
