"""Map raster pixels onto a palette."""
import logging
from typing import Sequence

import numpy as np

from flatvec.colorspace import colors_to_array, nearest_index
from flatvec.palette import count_colors
from flatvec.types import Color, InvalidInputError, Palette, Raster

logger = logging.getLogger(__name__)

# Distinct colors matched per block; bounds the (block, K) distance matrix
CHUNK_SIZE = 65536


def quantize(raster: Raster, palette: Sequence[Color]) -> Raster:
    """
    Replace every pixel with its nearest palette color.

    Nearest is by `colorspace.distance`; ties go to the earliest palette
    entry. A pixel whose exact color is in the palette keeps it.

    The search runs once per distinct input color and the result is
    scattered back through the inverse index, so no per-pixel objects are
    created.

    Args:
        raster: Source raster
        palette: Non-empty palette

    Returns:
        New raster of the same size whose colors are palette entries

    Raises:
        InvalidInputError: If the palette is empty
    """
    if len(palette) == 0:
        raise InvalidInputError("Cannot quantize with an empty palette")

    palette_arr = colors_to_array(palette)
    packed = raster.packed().ravel()
    values, inverse = np.unique(packed, return_inverse=True)
    inverse = inverse.ravel()

    # Representative channels for each distinct packed value
    distinct = np.stack(
        [(values >> 24) & 0xFF, (values >> 16) & 0xFF, (values >> 8) & 0xFF, values & 0xFF],
        axis=1,
    ).astype(np.uint8)

    choice = np.empty(len(distinct), dtype=np.int64)
    for start in range(0, len(distinct), CHUNK_SIZE):
        block = distinct[start:start + CHUNK_SIZE]
        choice[start:start + CHUNK_SIZE] = nearest_index(block, palette_arr)

    # Exact palette members map to themselves (first occurrence in palette)
    for idx in reversed(range(len(palette))):
        key = np.uint32(_pack(palette[idx]))
        pos = int(np.searchsorted(values, key))
        if pos < len(values) and values[pos] == key:
            choice[pos] = idx

    mapped = palette_arr[choice][inverse]
    logger.debug(
        f"Quantized {raster.width}x{raster.height} ({len(distinct)} colors) to {len(palette)}"
    )
    return Raster(mapped.reshape(raster.height, raster.width, 4))


def _pack(color: Color) -> int:
    return (color.r << 24) | (color.g << 16) | (color.b << 8) | color.a


def palette_of(raster: Raster) -> Palette:
    """Distinct colors of a raster in first-seen row-major order."""
    return tuple(count_colors(raster).keys())
