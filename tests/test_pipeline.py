"""Tests for the composed preview and export paths."""

from xml.etree import ElementTree as ET

import numpy as np
import pytest

from flatvec import pipeline as pipeline_module
from flatvec.pipeline import (
    Pipeline,
    convert_to_vector_document,
    posterize_preview,
    process_image,
    trace_regions,
    vectorize_quantized,
)
from flatvec.quantize import palette_of
from flatvec.raster_ingest import load_raster
from flatvec.regions import extract_regions
from flatvec.svg import document_to_svg
from flatvec.types import ConversionCancelled, InvalidInputError, PipelineConfig, Raster
from flatvec.validate import check_coverage

from tests.helpers import BLUE, RED, WHITE

NS = "{http://www.w3.org/2000/svg}"


class TestConvertToVectorDocument:
    """Test cases for the export path."""

    def test_two_by_two_scenario(self, two_by_two):
        document = convert_to_vector_document(two_by_two, 2)

        assert (document.width, document.height) == (2, 2)
        assert document.colors == [RED, BLUE]
        assert document.region_count == 2
        red, blue = document.shapes
        assert red.contours[0].points == ((0, 0), (2, 0), (2, 2), (1, 2), (1, 1), (0, 1))
        assert blue.contours[0].points == ((0, 1), (1, 1), (1, 2), (0, 2))

    def test_uniform_scenario(self, white_10x10):
        document = convert_to_vector_document(white_10x10, 6)

        assert document.colors == [WHITE]
        assert document.region_count == 1
        assert document.shapes[0].contours[0].points == ((0, 0), (10, 0), (10, 10), (0, 10))

    def test_shape_count_equals_distinct_colors(self, noisy_photo):
        document = convert_to_vector_document(noisy_photo, 5)
        quantized = posterize_preview(noisy_photo, 5)

        assert len(document.shapes) == len(palette_of(quantized))
        assert document.region_count == len(extract_regions(quantized))
        assert (document.width, document.height) == (noisy_photo.width, noisy_photo.height)

    def test_area_matches_canvas(self, noisy_photo):
        """Signed areas of all contours add up to the full canvas."""
        document = convert_to_vector_document(noisy_photo, 4)
        total = sum(c.signed_area() for c in document.contours())
        assert total == noisy_photo.width * noisy_photo.height

    def test_covers_every_pixel(self, noisy_photo):
        document = convert_to_vector_document(noisy_photo, 6)
        quantized = posterize_preview(noisy_photo, 6)

        results = check_coverage(document, quantized)

        assert results['overall_pass']
        assert results['coverage'] == 1.0

    def test_deterministic_output(self, noisy_photo):
        """Repeated runs serialize to identical bytes."""
        first = document_to_svg(convert_to_vector_document(noisy_photo, 6))
        second = document_to_svg(convert_to_vector_document(noisy_photo, 6))
        assert first == second

    def test_tolerance_merges_colors(self, make_raster):
        raster = make_raster([[RED, RED, BLUE], [RED, RED, BLUE]])
        raster_near = make_raster([[RED, RED, BLUE], [RED, BLUE, BLUE]])
        near_red = np.array(raster_near.pixels)
        near_red[1, 1] = (250, 0, 0, 255)
        raster_near = Raster(near_red)

        plain = convert_to_vector_document(raster_near, 3)
        merged = convert_to_vector_document(raster_near, 3, tolerance=0.1)

        assert len(plain.shapes) == 3
        assert len(merged.shapes) == 2
        assert merged.region_count == len(extract_regions(raster))

    def test_invalid_color_count(self, two_by_two):
        with pytest.raises(InvalidInputError):
            convert_to_vector_document(two_by_two, 0)

    def test_cancel_before_start(self, two_by_two):
        with pytest.raises(ConversionCancelled):
            convert_to_vector_document(two_by_two, 2, should_cancel=lambda: True)

    def test_cancel_mid_way(self, random_three_color):
        """Cancellation between stages raises and yields no document."""
        calls = []

        def cancel_on_third():
            calls.append(1)
            return len(calls) >= 3

        with pytest.raises(ConversionCancelled):
            convert_to_vector_document(random_three_color, 3, should_cancel=cancel_on_third)
        assert len(calls) == 3


class TestTraceRegions:
    """Test cases for region fan-out."""

    def test_keeps_region_order(self, random_three_color):
        regions = extract_regions(random_three_color)

        traced = trace_regions(regions, 16, 16)

        assert [color for color, _ in traced] == [r.color for r in regions]

    def test_process_pool_matches_serial(self, random_three_color):
        regions = extract_regions(random_three_color)

        serial = trace_regions(regions, 16, 16, workers=1)
        parallel = trace_regions(regions, 16, 16, workers=2)

        assert parallel == serial

    def test_process_pool_checks_cancel_between_batches(self, random_three_color, monkeypatch):
        monkeypatch.setattr(pipeline_module, "TRACE_BATCH_SIZE", 8)
        regions = extract_regions(random_three_color)
        assert len(regions) > 16
        calls = []

        def cancel_on_second():
            calls.append(1)
            return len(calls) >= 2

        with pytest.raises(ConversionCancelled):
            trace_regions(regions, 16, 16, workers=2, should_cancel=cancel_on_second)
        assert len(calls) == 2

    def test_process_pool_batches_keep_order(self, random_three_color, monkeypatch):
        monkeypatch.setattr(pipeline_module, "TRACE_BATCH_SIZE", 5)
        regions = extract_regions(random_three_color)

        traced = trace_regions(regions, 16, 16, workers=2, should_cancel=lambda: False)

        assert traced == trace_regions(regions, 16, 16)


class TestPreview:
    """Test cases for the preview path."""

    def test_preview_skips_tracing(self, noisy_photo):
        result = posterize_preview(noisy_photo, 3)

        assert isinstance(result, Raster)
        assert len(palette_of(result)) <= 3

    def test_vectorize_quantized_reuses_preview(self, noisy_photo):
        quantized = posterize_preview(noisy_photo, 4)
        assert document_to_svg(vectorize_quantized(quantized)) == document_to_svg(
            convert_to_vector_document(noisy_photo, 4)
        )


class TestPipeline:
    """Test cases for the file-level Pipeline."""

    def test_process_writes_svg(self, png_file, tmp_path):
        output = tmp_path / "out.svg"

        svg = Pipeline(PipelineConfig(n_colors=4)).process(png_file, output)

        assert output.read_text(encoding="utf-8") == svg
        root = ET.fromstring(svg)
        assert root.get("width") == "24"
        assert root.get("height") == "20"
        assert 1 <= len(root.findall(f"{NS}path")) <= 4

    def test_preview_mode_writes_png(self, png_file, tmp_path):
        output = tmp_path / "preview.png"

        result = Pipeline(PipelineConfig(n_colors=3, mode="preview")).process(png_file, output)

        assert isinstance(result, Raster)
        assert load_raster(output) == result

    def test_embed_mode(self, png_file):
        svg = Pipeline(PipelineConfig(mode="embed")).process(png_file)
        root = ET.fromstring(svg)
        assert root.find(f"{NS}image") is not None
        assert root.find(f"{NS}path") is None

    def test_validate(self, png_file):
        pipeline = Pipeline(PipelineConfig(n_colors=5))
        svg = pipeline.process(png_file)

        results = pipeline.validate(png_file, svg)

        assert results['overall_pass']
        assert results['path_count'] == len(pipeline.last_document.shapes)
        assert results['svg_size_bytes'] == len(svg.encode('utf-8'))

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            process_image(tmp_path / "missing.png")

    def test_config_validation(self):
        with pytest.raises(InvalidInputError):
            PipelineConfig(n_colors=0)
        with pytest.raises(InvalidInputError):
            PipelineConfig(tolerance=-1.0)
        with pytest.raises(InvalidInputError):
            PipelineConfig(mode="rects")
