"""Connected-region extraction over a quantized raster."""
import logging
from typing import List, Tuple

import numpy as np
from scipy import ndimage
from skimage.measure import label

from flatvec.types import Color, InvariantViolationError, Raster, Region

logger = logging.getLogger(__name__)


def label_regions(raster: Raster) -> Tuple[np.ndarray, int]:
    """
    Label maximal 4-connected components of identical color.

    Labels are renumbered 0..count-1 in the order their first pixel appears
    in a row-major scan, so identical rasters always get identical labels.

    Args:
        raster: Quantized raster

    Returns:
        Tuple of (label_map, count):
        - label_map: (H, W) int array of region indices
        - count: Number of regions
    """
    packed = raster.packed().astype(np.int64)

    # connectivity=1 is the von Neumann neighborhood; no value is background
    labels = label(packed, background=-1, connectivity=1)

    flat = labels.ravel()
    values, first_index = np.unique(flat, return_index=True)
    order = np.argsort(first_index, kind="stable")

    lookup = np.zeros(int(values.max()) + 1, dtype=np.int64)
    lookup[values[order]] = np.arange(len(values))
    label_map = lookup[labels]

    return label_map, len(values)


def extract_regions(raster: Raster) -> List[Region]:
    """
    Split a quantized raster into its 4-connected single-color regions.

    Every pixel belongs to exactly one region. Regions are ordered by where
    their first pixel is found in a row-major scan.

    Args:
        raster: Quantized raster (width > 0, height > 0)

    Returns:
        List of Region objects with label equal to their list index
    """
    label_map, count = label_regions(raster)
    # find_objects skips label 0, so shift by one
    slices = ndimage.find_objects(label_map + 1)

    flat_labels = label_map.ravel()
    _, first_index = np.unique(flat_labels, return_index=True)
    flat_pixels = raster.pixels.reshape(-1, 4)

    regions = []
    for idx in range(count):
        slc = slices[idx]
        if slc is None:
            raise InvariantViolationError(f"Region {idx} has no pixels")
        rows, cols = slc
        mask = label_map[slc] == idx
        r, g, b, a = (int(c) for c in flat_pixels[first_index[idx]])
        regions.append(
            Region(
                color=Color(r, g, b, a),
                mask=mask,
                offset=(cols.start, rows.start),
                label=idx,
            )
        )

    logger.info(f"Extracted {len(regions)} regions from {raster.width}x{raster.height} raster")
    return regions
