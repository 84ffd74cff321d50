"""Boundary tracing of pixel regions into closed lattice polygons.

Every pixel is a unit square. A boundary edge separates a member cell from a
non-member (or out-of-bounds) cell and is directed so the member cell is on
its right, with screen coordinates (x right, y down). Following these edges
gives clockwise outer boundaries and counter-clockwise holes.
"""
import logging
from typing import Dict, List, Tuple

import numpy as np

from flatvec.types import Contour, InvalidInputError, InvariantViolationError, Region

logger = logging.getLogger(__name__)

# Directions in clockwise screen order: east, south, west, north
EAST, SOUTH, WEST, NORTH = 0, 1, 2, 3
DX = (1, 0, -1, 0)
DY = (0, 1, 0, -1)

Vertex = Tuple[int, int]


def boundary_edges(mask: np.ndarray) -> Dict[Vertex, int]:
    """
    Collect directed boundary edges of a binary mask.

    Args:
        mask: (H, W) boolean array

    Returns:
        Dict mapping each start vertex (x, y) to a bitmask of outgoing
        directions (bit d set for direction d)
    """
    mask = np.asarray(mask, dtype=bool)
    padded = np.pad(mask, 1, mode="constant", constant_values=False)
    up = padded[:-2, 1:-1]
    down = padded[2:, 1:-1]
    left = padded[1:-1, :-2]
    right = padded[1:-1, 2:]

    edges: Dict[Vertex, int] = {}

    def add(exposed: np.ndarray, dx: int, dy: int, direction: int):
        ys, xs = np.nonzero(exposed)
        bit = 1 << direction
        for x, y in zip((xs + dx).tolist(), (ys + dy).tolist()):
            edges[(x, y)] = edges.get((x, y), 0) | bit

    add(mask & ~up, 0, 0, EAST)       # top side, left to right
    add(mask & ~right, 1, 0, SOUTH)   # right side, top to bottom
    add(mask & ~down, 1, 1, WEST)     # bottom side, right to left
    add(mask & ~left, 0, 1, NORTH)    # left side, bottom to top
    return edges


def _next_direction(bits: int, incoming: int) -> int:
    # Right turn first keeps diagonally touching cells apart (4-connectivity)
    for candidate in ((incoming + 1) % 4, incoming, (incoming + 3) % 4):
        if bits & (1 << candidate):
            return candidate
    raise InvariantViolationError("Boundary edge chain is broken")


def _follow_loop(
    edges: Dict[Vertex, int],
    remaining: Dict[Vertex, int],
    start: Vertex,
    start_dir: int,
) -> List[Vertex]:
    """Walk one closed boundary, emitting only the vertices where it turns."""
    remaining[start] &= ~(1 << start_dir)
    points = [start]
    x, y = start
    direction = start_dir

    while True:
        x += DX[direction]
        y += DY[direction]
        bits = edges.get((x, y), 0)
        nxt = _next_direction(bits, direction)

        if (x, y) == start and nxt == start_dir:
            if direction == start_dir:
                # Start vertex lies mid-run; it is not a corner
                points.pop(0)
            return points

        if not remaining[(x, y)] & (1 << nxt):
            raise InvariantViolationError(f"Boundary edge at {(x, y)} visited twice")
        remaining[(x, y)] &= ~(1 << nxt)

        if nxt != direction:
            points.append((x, y))
        direction = nxt


def trace_mask(mask: np.ndarray) -> List[List[Vertex]]:
    """
    Trace all boundary loops of a binary mask in local coordinates.

    Loops are started from the top-most, left-most vertex that still has an
    unused edge, so the output order is deterministic.
    """
    edges = boundary_edges(mask)
    remaining = dict(edges)
    loops = []
    for vertex in sorted(edges, key=lambda v: (v[1], v[0])):
        while remaining[vertex]:
            bits = remaining[vertex]
            start_dir = (bits & -bits).bit_length() - 1
            loops.append(_follow_loop(edges, remaining, vertex, start_dir))
    return loops


def trace_contours(region: Region, width: int, height: int) -> List[Contour]:
    """
    Convert a region into its outer contour followed by its hole contours.

    Contours follow pixel-cell edges, with collinear edges merged into single
    segments. The outer contour is clockwise on screen and holes are
    counter-clockwise, so both even-odd and nonzero fill rules render holes.

    Args:
        region: Region with a non-empty mask
        width: Raster width
        height: Raster height

    Returns:
        List of contours: outer first, then holes in discovery order

    Raises:
        InvariantViolationError: If the region has no pixels
        InvalidInputError: If the region does not fit the raster
    """
    if region.mask.size == 0 or not np.any(region.mask):
        raise InvariantViolationError(f"Region {region.label} has no pixels")

    ox, oy, w, h = region.bbox
    if ox < 0 or oy < 0 or ox + w > width or oy + h > height:
        raise InvalidInputError(
            f"Region {region.label} bbox {region.bbox} outside {width}x{height} raster"
        )

    outers = []
    holes = []
    for loop in trace_mask(region.mask):
        contour = Contour(tuple((x + ox, y + oy) for x, y in loop))
        if contour.signed_area() > 0:
            outers.append(contour)
        else:
            holes.append(contour)

    if not outers:
        raise InvariantViolationError(f"Region {region.label} produced no outer contour")
    if len(outers) > 1:
        logger.warning(
            f"Region {region.label} traced {len(outers)} outer contours; it is not 4-connected"
        )

    return outers + holes
