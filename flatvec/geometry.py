"""Polygon helpers for lattice contours."""
from typing import Sequence, Tuple

import numpy as np


def signed_area(points: Sequence[Tuple[float, float]]) -> float:
    """
    Shoelace area of a closed polygon.

    With screen coordinates (y pointing down) a clockwise polygon has a
    positive area. The closing edge is implicit; a repeated first point at
    the end is harmless.

    Args:
        points: Polygon vertices as (x, y)

    Returns:
        Signed area
    """
    if len(points) < 3:
        return 0.0
    pts = np.asarray(points, dtype=np.float64)
    x = pts[:, 0]
    y = pts[:, 1]
    x_next = np.roll(x, -1)
    y_next = np.roll(y, -1)
    return float(0.5 * np.sum(x * y_next - x_next * y))


def point_in_polygon(x: float, y: float, points: Sequence[Tuple[float, float]]) -> bool:
    """
    Even-odd ray casting test.

    Points lying exactly on an edge give an unspecified answer; callers
    sample pixel centers, which never lie on lattice edges.
    """
    inside = False
    n = len(points)
    if n < 3:
        return False
    x1, y1 = points[-1]
    for x2, y2 in points:
        if (y1 > y) != (y2 > y):
            cross_x = x1 + (y - y1) * (x2 - x1) / (y2 - y1)
            if x < cross_x:
                inside = not inside
        x1, y1 = x2, y2
    return inside


def is_axis_aligned(points: Sequence[Tuple[float, float]]) -> bool:
    """Check that every edge, including the closing one, is horizontal or vertical."""
    n = len(points)
    for i in range(n):
        x1, y1 = points[i]
        x2, y2 = points[(i + 1) % n]
        if x1 != x2 and y1 != y2:
            return False
    return True


def has_collinear_vertices(points: Sequence[Tuple[float, float]]) -> bool:
    """True if any vertex sits in the middle of a straight run."""
    n = len(points)
    if n < 3:
        return False
    for i in range(n):
        x0, y0 = points[i - 1]
        x1, y1 = points[i]
        x2, y2 = points[(i + 1) % n]
        if (x1 - x0) * (y2 - y1) - (y1 - y0) * (x2 - x1) == 0:
            return True
    return False
