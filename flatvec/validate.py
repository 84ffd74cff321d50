"""Coverage checks of vector documents against their quantized raster."""
import logging

import numpy as np
from skimage.measure import points_in_poly

from flatvec.types import InvalidInputError, Raster, VectorDocument, VectorShape

logger = logging.getLogger(__name__)


def rasterize_shape(shape: VectorShape, width: int, height: int) -> np.ndarray:
    """
    Sample a shape at every pixel center with the even-odd rule.

    Args:
        shape: Shape whose contours are combined
        width: Canvas width
        height: Canvas height

    Returns:
        (height, width) boolean array, True where the shape is filled
    """
    filled = np.zeros((height, width), dtype=bool)
    for contour in shape.contours:
        verts = contour.as_array()
        x0 = max(int(verts[:, 0].min()), 0)
        x1 = min(int(verts[:, 0].max()), width)
        y0 = max(int(verts[:, 1].min()), 0)
        y1 = min(int(verts[:, 1].max()), height)
        if x1 <= x0 or y1 <= y0:
            continue
        ys, xs = np.mgrid[y0:y1, x0:x1]
        centers = np.column_stack([xs.ravel() + 0.5, ys.ravel() + 0.5])
        inside = points_in_poly(centers, verts.astype(np.float64))
        filled[y0:y1, x0:x1] ^= inside.reshape(y1 - y0, x1 - x0)
    return filled


def check_coverage(document: VectorDocument, quantized: Raster) -> dict:
    """
    Compare a document's fills with the raster it was traced from.

    Every pixel center must be covered by exactly one shape, and that
    shape's color must equal the pixel's color.

    Args:
        document: Vector document
        quantized: Quantized raster the document was built from

    Returns:
        Dictionary with coverage statistics
    """
    if (document.width, document.height) != (quantized.width, quantized.height):
        raise InvalidInputError(
            f"Document {document.width}x{document.height} does not match "
            f"raster {quantized.width}x{quantized.height}"
        )

    width, height = document.width, document.height
    hits = np.zeros((height, width), dtype=np.int32)
    correct = np.zeros((height, width), dtype=bool)

    for shape in document.shapes:
        filled = rasterize_shape(shape, width, height)
        hits += filled
        color_match = np.all(quantized.pixels == np.array(shape.color.as_tuple(), dtype=np.uint8), axis=2)
        correct |= filled & color_match

    pixels = width * height
    covered = int(np.count_nonzero((hits == 1) & correct))
    results = {
        'pixels': pixels,
        'covered': covered,
        'mismatched': pixels - covered,
        'coverage': covered / pixels,
        'overall_pass': covered == pixels,
    }

    if not results['overall_pass']:
        logger.warning(f"Coverage check: {results['mismatched']} of {pixels} pixels mismatched")
    return results
