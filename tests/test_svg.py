"""Tests for document assembly and SVG generation."""

import base64
import io
from xml.etree import ElementTree as ET

import pytest
from PIL import Image

from flatvec.document import build_document
from flatvec.svg import (
    color_to_hex,
    contour_to_path,
    document_to_svg,
    embed_raster_svg,
    format_opacity,
    save_svg,
)
from flatvec.types import (
    Color,
    Contour,
    InvalidInputError,
    InvariantViolationError,
    VectorDocument,
    VectorShape,
)

from tests.helpers import BLUE, RED

NS = "{http://www.w3.org/2000/svg}"
SQUARE = Contour(((0, 0), (1, 0), (1, 1), (0, 1)))
OTHER_SQUARE = Contour(((2, 0), (3, 0), (3, 1), (2, 1)))


class TestBuildDocument:
    """Test cases for build_document."""

    def test_groups_regions_by_color(self):
        """Regions of one color become one shape, in first-appearance order."""
        middle = Contour(((1, 0), (2, 0), (2, 1), (1, 1)))
        traced = [(RED, [SQUARE]), (BLUE, [middle]), (RED, [OTHER_SQUARE])]

        document = build_document(3, 1, traced)

        assert (document.width, document.height) == (3, 1)
        assert document.colors == [RED, BLUE]
        assert document.shapes[0].contours == [SQUARE, OTHER_SQUARE]
        assert document.region_count == 3

    def test_zero_size_raises(self):
        with pytest.raises(InvalidInputError):
            build_document(0, 5, [])

    def test_region_without_contours_raises(self):
        with pytest.raises(InvariantViolationError):
            build_document(2, 2, [(RED, [])])


class TestPathData:
    """Test cases for path conversion."""

    def test_color_to_hex(self):
        assert color_to_hex(Color(255, 0, 0)) == "#FF0000"
        assert color_to_hex(Color(0, 128, 255, 3)) == "#0080FF"

    def test_absolute_commands(self):
        assert contour_to_path(SQUARE) == "M0,0 L1,0 L1,1 L0,1 Z"

    def test_format_opacity(self):
        assert format_opacity(0) == "0"
        assert format_opacity(128) == "0.502"
        assert format_opacity(255) == "1"


class TestDocumentToSvg:
    """Test cases for document_to_svg."""

    def _document(self):
        hole = Contour(((1, 1), (1, 2), (2, 2), (2, 1)))
        outer = Contour(((0, 0), (3, 0), (3, 3), (0, 3)))
        return VectorDocument(
            width=3,
            height=3,
            shapes=[
                VectorShape(RED, [outer, hole]),
                VectorShape(Color(0, 0, 255, 128), [Contour(((1, 1), (2, 1), (2, 2), (1, 2)))]),
            ],
            region_count=2,
        )

    def test_valid_xml(self):
        root = ET.fromstring(document_to_svg(self._document()))

        assert root.tag == f"{NS}svg"
        assert root.get("width") == "3"
        assert root.get("height") == "3"
        assert root.get("viewBox") == "0 0 3 3"

    def test_one_path_per_shape(self):
        root = ET.fromstring(document_to_svg(self._document()))
        paths = root.findall(f"{NS}path")

        assert len(paths) == 2
        assert paths[0].get("fill") == "#FF0000"
        assert paths[0].get("d") == "M0,0 L3,0 L3,3 L0,3 Z M1,1 L1,2 L2,2 L2,1 Z"
        assert paths[0].get("fill-opacity") is None

    def test_partial_alpha_opacity(self):
        root = ET.fromstring(document_to_svg(self._document()))
        blue = root.findall(f"{NS}path")[1]

        assert blue.get("fill") == "#0000FF"
        assert blue.get("fill-opacity") == "0.502"

    def test_save_svg(self, tmp_path):
        path = tmp_path / "out.svg"
        svg = document_to_svg(self._document())

        save_svg(svg, str(path))

        assert path.read_text(encoding="utf-8") == svg


class TestEmbedFallback:
    """Test cases for the embedded-raster fallback."""

    def test_embeds_png(self, two_by_two):
        svg = embed_raster_svg(two_by_two)
        root = ET.fromstring(svg)
        image = root.find(f"{NS}image")

        assert image is not None
        assert root.find(f"{NS}path") is None

        href = image.get("href")
        assert href.startswith("data:image/png;base64,")
        decoded = Image.open(io.BytesIO(base64.b64decode(href.split(",", 1)[1])))
        assert decoded.size == (2, 2)
        assert decoded.convert("RGBA").getpixel((0, 1)) == BLUE.as_tuple()
