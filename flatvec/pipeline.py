"""Main pipeline orchestrator for flatvec.

Two entry points with different costs:

- preview: build palette and quantize only, cheap enough for interactive
  parameter changes
- export: the full pipeline through region extraction, tracing and the
  vector document
"""
import logging
import os
import time
from concurrent.futures import ProcessPoolExecutor
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from flatvec.document import build_document
from flatvec.palette import build_palette, count_colors
from flatvec.quantize import quantize
from flatvec.raster_ingest import load_raster, save_raster
from flatvec.regions import extract_regions
from flatvec.svg import document_to_svg, embed_raster_svg, save_svg
from flatvec.trace import trace_contours
from flatvec.types import (
    CancelCheck,
    Color,
    Contour,
    ConversionCancelled,
    Palette,
    PipelineConfig,
    Raster,
    Region,
    VectorDocument,
)
from flatvec.validate import check_coverage

logger = logging.getLogger(__name__)

# Regions handed to the process pool between cancellation checks
TRACE_BATCH_SIZE = 1024


def _checkpoint(should_cancel: CancelCheck, stage: str) -> None:
    if should_cancel is not None and should_cancel():
        logger.info(f"Conversion cancelled before {stage}")
        raise ConversionCancelled(f"Conversion cancelled before {stage}")


def _trace_single_region(args: Tuple[Region, int, int]) -> Tuple[Color, List[Contour]]:
    region, width, height = args
    return region.color, trace_contours(region, width, height)


def trace_regions(
    regions: Sequence[Region],
    width: int,
    height: int,
    workers: int = 1,
    should_cancel: CancelCheck = None,
) -> List[Tuple[Color, List[Contour]]]:
    """
    Trace every region, keeping region order.

    Args:
        regions: Regions in discovery order
        width: Raster width
        height: Raster height
        workers: Process pool size; 1 traces in-process
        should_cancel: Optional callable polled between regions, or between
            batches of TRACE_BATCH_SIZE regions when a pool is used

    Returns:
        List of (color, contours) pairs, one per region
    """
    region_data = [(region, width, height) for region in regions]

    if workers > 1 and len(regions) > 10:
        workers = min(workers, os.cpu_count() or 1)
        logger.info(f"Tracing {len(regions)} regions using {workers} workers...")
        traced = []
        with ProcessPoolExecutor(max_workers=workers) as executor:
            for start in range(0, len(region_data), TRACE_BATCH_SIZE):
                _checkpoint(should_cancel, "tracing")
                batch = region_data[start:start + TRACE_BATCH_SIZE]
                # map() yields results in submission order
                traced.extend(executor.map(_trace_single_region, batch, chunksize=64))
        return traced

    traced = []
    for data in region_data:
        _checkpoint(should_cancel, "tracing")
        traced.append(_trace_single_region(data))
    return traced


def make_palette(raster: Raster, color_count: int, tolerance: float = 0.0, iterations: int = 10) -> Palette:
    """Build a palette from one sample per distinct raster color."""
    return build_palette(count_colors(raster), color_count, iterations, tolerance)


def posterize_preview(
    raster: Raster,
    color_count: int,
    tolerance: float = 0.0,
    iterations: int = 10,
    should_cancel: CancelCheck = None,
) -> Raster:
    """
    Cheap preview path: palette plus quantization, no tracing.

    Args:
        raster: Source raster
        color_count: Requested palette size
        tolerance: Palette merge threshold
        iterations: K-means refinement rounds
        should_cancel: Optional callable polled at stage boundaries

    Returns:
        Quantized raster
    """
    _checkpoint(should_cancel, "palette")
    palette = make_palette(raster, color_count, tolerance, iterations)
    _checkpoint(should_cancel, "quantization")
    return quantize(raster, palette)


def vectorize_quantized(
    quantized: Raster,
    workers: int = 1,
    should_cancel: CancelCheck = None,
) -> VectorDocument:
    """Extract, trace and assemble an already quantized raster."""
    _checkpoint(should_cancel, "region extraction")
    regions = extract_regions(quantized)
    _checkpoint(should_cancel, "tracing")
    traced = trace_regions(regions, quantized.width, quantized.height, workers, should_cancel)
    _checkpoint(should_cancel, "document assembly")
    return build_document(quantized.width, quantized.height, traced)


def convert_to_vector_document(
    raster: Raster,
    color_count: int,
    tolerance: float = 0.0,
    iterations: int = 10,
    workers: int = 1,
    should_cancel: CancelCheck = None,
) -> VectorDocument:
    """
    Full export path from raster to vector document.

    Either a complete document is returned or an exception propagates;
    there is no partial output.

    Args:
        raster: Source raster
        color_count: Requested palette size
        tolerance: Palette merge threshold (0 disables merging)
        iterations: K-means refinement rounds
        workers: Process pool size for tracing
        should_cancel: Optional callable polled at stage boundaries

    Returns:
        VectorDocument with one shape per distinct quantized color

    Raises:
        InvalidInputError: On bad parameters
        ConversionCancelled: If should_cancel returned True
    """
    quantized = posterize_preview(raster, color_count, tolerance, iterations, should_cancel)
    return vectorize_quantized(quantized, workers, should_cancel)


class Pipeline:
    """File-level vectorization pipeline."""

    def __init__(self, config: Optional[PipelineConfig] = None):
        """
        Initialize pipeline with configuration.

        Args:
            config: Pipeline configuration. Uses defaults if None.
        """
        self.config = config or PipelineConfig()
        self.last_quantized: Optional[Raster] = None
        self.last_document: Optional[VectorDocument] = None

    def preview(self, raster: Raster, should_cancel: CancelCheck = None) -> Raster:
        """Quantize a raster with the configured palette settings."""
        quantized = posterize_preview(
            raster,
            self.config.n_colors,
            self.config.tolerance,
            self.config.iterations,
            should_cancel,
        )
        self.last_quantized = quantized
        return quantized

    def vectorize(self, raster: Raster, should_cancel: CancelCheck = None) -> VectorDocument:
        """Run the export path on a raster."""
        start = time.time()
        quantized = self.preview(raster, should_cancel)
        document = vectorize_quantized(quantized, self.config.workers, should_cancel)
        self.last_document = document
        logger.info(
            f"Vectorized {raster.width}x{raster.height} into {len(document.shapes)} shapes, "
            f"{document.region_count} regions in {time.time() - start:.2f}s"
        )
        return document

    def process(
        self,
        input_path: Union[str, Path],
        output_path: Optional[Union[str, Path]] = None,
        should_cancel: CancelCheck = None,
    ) -> Union[str, Raster]:
        """
        Process an image file according to the configured mode.

        Args:
            input_path: Path to input image
            output_path: Optional path to write the result to
            should_cancel: Optional callable polled at stage boundaries

        Returns:
            SVG string for "vector" and "embed" modes, quantized Raster for
            "preview" mode

        Raises:
            FileNotFoundError: If input file doesn't exist
            VectorizationError: If processing fails
        """
        raster = load_raster(input_path)
        mode = self.config.mode

        if mode == "preview":
            quantized = self.preview(raster, should_cancel)
            if output_path:
                save_raster(quantized, output_path)
            return quantized

        if mode == "embed":
            svg_string = embed_raster_svg(self.preview(raster, should_cancel))
        else:
            svg_string = document_to_svg(self.vectorize(raster, should_cancel))

        if output_path:
            save_svg(svg_string, str(output_path))
            logger.info(f"Saved SVG to {output_path}")
        return svg_string

    def validate(self, input_path: Union[str, Path], svg_string: str) -> dict:
        """
        Validate the last vectorization against its quantized raster.

        Args:
            input_path: Path to original image
            svg_string: Generated SVG string

        Returns:
            Dictionary with validation results
        """
        import xml.etree.ElementTree as ET

        if self.last_document is None or self.last_quantized is None:
            raise RuntimeError("validate() requires a prior vector conversion")

        root = ET.fromstring(svg_string)
        path_count = len(root.findall('.//{http://www.w3.org/2000/svg}path'))

        svg_size = len(svg_string.encode('utf-8'))
        original_size = Path(input_path).stat().st_size

        results = check_coverage(self.last_document, self.last_quantized)
        results.update({
            'path_count': path_count,
            'region_count': self.last_document.region_count,
            'svg_size_bytes': svg_size,
            'original_size_bytes': original_size,
            'size_reduction': (1 - svg_size / original_size) * 100 if original_size > 0 else 0,
        })
        results['overall_pass'] = results['overall_pass'] and path_count == len(self.last_document.shapes)
        return results


def process_image(
    image_path: Union[str, Path],
    output_path: Optional[Union[str, Path]] = None,
    config: Optional[PipelineConfig] = None,
) -> Union[str, Raster]:
    """
    Process an image through the pipeline.

    Convenience function for one-off processing.

    Example:
        >>> svg = process_image("input.png", "output.svg")
        >>> svg = process_image("input.png", config=PipelineConfig(n_colors=8))
    """
    pipeline = Pipeline(config)
    return pipeline.process(image_path, output_path)
