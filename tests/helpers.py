"""Shared colors and raster builders for the test suite."""

from flatvec.types import Color, Raster

RED = Color(255, 0, 0)
GREEN = Color(0, 255, 0)
BLUE = Color(0, 0, 255)
WHITE = Color(255, 255, 255)
BLACK = Color(0, 0, 0)


def raster_from_rows(rows):
    """Build a raster from a list of rows of Colors."""
    height = len(rows)
    width = len(rows[0])
    return Raster.from_colors(width, height, [c for row in rows for c in row])
