"""Assemble traced regions into a vector document."""
import logging
from typing import Dict, Iterable, List, Sequence, Tuple

from flatvec.types import (
    Color,
    Contour,
    InvalidInputError,
    InvariantViolationError,
    VectorDocument,
    VectorShape,
)

logger = logging.getLogger(__name__)


def build_document(
    width: int,
    height: int,
    traced: Iterable[Tuple[Color, Sequence[Contour]]],
) -> VectorDocument:
    """
    Group traced regions by fill color into a VectorDocument.

    Each distinct color becomes one shape, in order of first appearance;
    its contours are the contours of every region of that color, each
    region's outer contour followed by its holes.

    Args:
        width: Canvas width (source raster width)
        height: Canvas height (source raster height)
        traced: Ordered (color, contours) pairs, one per region

    Returns:
        VectorDocument

    Raises:
        InvalidInputError: If the canvas size is not positive
        InvariantViolationError: If a region has no contours
    """
    if width <= 0 or height <= 0:
        raise InvalidInputError(f"Invalid canvas size {width}x{height}")

    shapes: Dict[Color, VectorShape] = {}
    order: List[Color] = []
    region_count = 0
    for color, contours in traced:
        if not contours:
            raise InvariantViolationError(f"Region {region_count} has no contours")
        if color not in shapes:
            shapes[color] = VectorShape(color=color)
            order.append(color)
        shapes[color].contours.extend(contours)
        region_count += 1

    document = VectorDocument(
        width=width,
        height=height,
        shapes=[shapes[c] for c in order],
        region_count=region_count,
    )
    logger.debug(
        f"Document {width}x{height}: {len(document.shapes)} shapes from {region_count} regions"
    )
    return document
