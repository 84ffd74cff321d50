"""Core types for the flatvec vectorization pipeline."""
from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from flatvec import geometry

# Type aliases
Point = Tuple[int, int]
ImageArray = np.ndarray


class VectorizationError(Exception):
    """Base exception for vectorization errors."""
    pass


class InvalidInputError(VectorizationError, ValueError):
    """Raised when a caller breaks a stage's input contract."""
    pass


class InvariantViolationError(VectorizationError):
    """Raised when an internal invariant does not hold (a logic defect)."""
    pass


class ConversionCancelled(VectorizationError):
    """Raised when the caller cancels a conversion between stages."""
    pass


@dataclass(frozen=True)
class Color:
    """RGBA color with 8-bit channels."""
    r: int
    g: int
    b: int
    a: int = 255

    def __post_init__(self):
        for name in ("r", "g", "b", "a"):
            value = getattr(self, name)
            if not isinstance(value, (int, np.integer)):
                raise InvalidInputError(f"Channel {name}={value!r} is not an integer")
            if not 0 <= value <= 255:
                raise InvalidInputError(f"Channel {name}={value} outside 0..255")

    @property
    def rgb(self) -> Tuple[int, int, int]:
        return (self.r, self.g, self.b)

    @property
    def opacity(self) -> float:
        return self.a / 255.0

    def as_tuple(self) -> Tuple[int, int, int, int]:
        return (self.r, self.g, self.b, self.a)

    def to_hex(self) -> str:
        """Format as a 6-digit #RRGGBB string (alpha dropped)."""
        return f"#{self.r:02X}{self.g:02X}{self.b:02X}"


Palette = Tuple[Color, ...]


@dataclass(eq=False)
class Raster:
    """Row-major RGBA image.

    `pixels` is a (height, width, 4) uint8 array. A Raster never shares its
    array with another stage: constructors copy, and the array is read-only.
    """
    pixels: np.ndarray

    def __post_init__(self):
        pixels = np.asarray(self.pixels)
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise InvalidInputError(f"Expected (H, W, 4) array, got shape {pixels.shape}")
        if pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise InvalidInputError("Raster must have non-zero width and height")
        if not np.issubdtype(pixels.dtype, np.integer):
            raise InvalidInputError(f"Expected integer channels, got dtype {pixels.dtype}")
        if pixels.dtype != np.uint8 and (pixels.min() < 0 or pixels.max() > 255):
            raise InvalidInputError("Channel values must lie in 0..255")
        pixels = np.array(pixels, dtype=np.uint8, copy=True)
        pixels.setflags(write=False)
        self.pixels = pixels

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @classmethod
    def from_colors(cls, width: int, height: int, colors: Sequence[Color]) -> "Raster":
        """Build a raster from a row-major sequence of colors."""
        if width <= 0 or height <= 0:
            raise InvalidInputError(f"Invalid raster size {width}x{height}")
        if len(colors) != width * height:
            raise InvalidInputError(
                f"Expected {width * height} colors, got {len(colors)}"
            )
        data = np.array([c.as_tuple() for c in colors], dtype=np.uint8)
        return cls(data.reshape(height, width, 4))

    def pixel(self, x: int, y: int) -> Color:
        r, g, b, a = (int(v) for v in self.pixels[y, x])
        return Color(r, g, b, a)

    def colors(self) -> Iterator[Color]:
        """Iterate pixel colors in row-major order."""
        for y in range(self.height):
            for x in range(self.width):
                yield self.pixel(x, y)

    def packed(self) -> np.ndarray:
        """Pack each RGBA pixel into a single uint32, shape (H, W)."""
        p = self.pixels.astype(np.uint32)
        return (p[..., 0] << 24) | (p[..., 1] << 16) | (p[..., 2] << 8) | p[..., 3]

    def __eq__(self, other):
        if not isinstance(other, Raster):
            return NotImplemented
        return self.pixels.shape == other.pixels.shape and np.array_equal(
            self.pixels, other.pixels
        )

    def __repr__(self):
        return f"Raster(width={self.width}, height={self.height})"


@dataclass
class Region:
    """One maximal 4-connected component of a single color.

    The mask is cropped to the region's bounding box; `offset` is the (x, y)
    position of that box in the raster.
    """
    color: Color
    mask: np.ndarray
    offset: Point = (0, 0)
    label: int = 0

    @property
    def pixel_count(self) -> int:
        return int(np.count_nonzero(self.mask))

    @property
    def bbox(self) -> Tuple[int, int, int, int]:
        """Bounding box as (x, y, w, h)."""
        return (self.offset[0], self.offset[1], self.mask.shape[1], self.mask.shape[0])

    def pixels(self) -> List[Point]:
        """Absolute (x, y) coordinates of member pixels, row-major."""
        ys, xs = np.nonzero(self.mask)
        ox, oy = self.offset
        return [(int(x) + ox, int(y) + oy) for y, x in zip(ys, xs)]

    def full_mask(self, width: int, height: int) -> np.ndarray:
        """Expand the cropped mask to a (height, width) boolean array."""
        full = np.zeros((height, width), dtype=bool)
        x, y, w, h = self.bbox
        full[y:y + h, x:x + w] = self.mask
        return full


@dataclass(frozen=True)
class Contour:
    """Closed polygon on the pixel lattice.

    The closing edge from the last point back to the first is implicit.
    Outer boundaries run clockwise on screen (positive signed area with
    y pointing down); holes run counter-clockwise.
    """
    points: Tuple[Point, ...]

    def __len__(self):
        return len(self.points)

    def signed_area(self) -> float:
        return geometry.signed_area(self.points)

    @property
    def area(self) -> float:
        return abs(self.signed_area())

    @property
    def is_hole(self) -> bool:
        return self.signed_area() < 0

    def contains(self, x: float, y: float) -> bool:
        return geometry.point_in_polygon(x, y, self.points)

    def as_array(self) -> np.ndarray:
        return np.array(self.points, dtype=np.int64).reshape(-1, 2)


@dataclass
class VectorShape:
    """All contours of one fill color."""
    color: Color
    contours: List[Contour] = field(default_factory=list)


@dataclass
class VectorDocument:
    """Canvas size plus ordered (color, contours) shapes."""
    width: int
    height: int
    shapes: List[VectorShape] = field(default_factory=list)
    region_count: int = 0

    @property
    def colors(self) -> List[Color]:
        return [shape.color for shape in self.shapes]

    def contours(self) -> Iterable[Contour]:
        for shape in self.shapes:
            yield from shape.contours


@dataclass
class PipelineConfig:
    """Configuration for the vectorization pipeline."""

    # Palette
    n_colors: int = 6
    tolerance: float = 0.0  # Palette entries closer than this are fused
    iterations: int = 10

    # Tracing
    workers: int = 1  # >1 traces regions in a process pool

    # Output: "vector", "preview" or "embed"
    mode: str = "vector"

    def __post_init__(self):
        if self.n_colors < 1:
            raise InvalidInputError(f"n_colors must be >= 1, got {self.n_colors}")
        if self.tolerance < 0:
            raise InvalidInputError(f"tolerance must be >= 0, got {self.tolerance}")
        if self.iterations < 1:
            raise InvalidInputError(f"iterations must be >= 1, got {self.iterations}")
        if self.workers < 1:
            raise InvalidInputError(f"workers must be >= 1, got {self.workers}")
        if self.mode not in ("vector", "preview", "embed"):
            raise InvalidInputError(f"Unknown mode: {self.mode}")


CancelCheck = Optional[Callable[[], bool]]
