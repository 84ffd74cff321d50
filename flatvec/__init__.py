"""flatvec: posterize raster images and trace flat color regions into SVG."""
from flatvec.types import (
    Color,
    Contour,
    ConversionCancelled,
    InvalidInputError,
    InvariantViolationError,
    Palette,
    PipelineConfig,
    Raster,
    Region,
    VectorDocument,
    VectorizationError,
    VectorShape,
)
from flatvec.palette import build_palette
from flatvec.quantize import quantize
from flatvec.regions import extract_regions
from flatvec.trace import trace_contours
from flatvec.pipeline import (
    Pipeline,
    convert_to_vector_document,
    posterize_preview,
)

__version__ = "0.1.0"

__all__ = [
    "Color",
    "Contour",
    "ConversionCancelled",
    "InvalidInputError",
    "InvariantViolationError",
    "Palette",
    "PipelineConfig",
    "Raster",
    "Region",
    "VectorDocument",
    "VectorizationError",
    "VectorShape",
    "build_palette",
    "quantize",
    "extract_regions",
    "trace_contours",
    "Pipeline",
    "convert_to_vector_document",
    "posterize_preview",
]
