"""SVG serialization for vector documents."""
import base64
import io
from typing import List, Sequence

from PIL import Image

from flatvec.types import Color, Contour, Raster, VectorDocument, VectorShape

SVG_NS = "http://www.w3.org/2000/svg"


def color_to_hex(color: Color) -> str:
    """
    Format a color as a 6-digit hex string.

    Args:
        color: RGBA color (alpha ignored)

    Returns:
        Hex string such as "#FF0000"
    """
    return color.to_hex()


def format_opacity(alpha: int) -> str:
    """Format an 8-bit alpha as an SVG opacity with at most 3 decimals."""
    formatted = f"{alpha / 255.0:.3f}"
    if '.' in formatted:
        formatted = formatted.rstrip('0').rstrip('.')
    return formatted


def contour_to_path(contour: Contour) -> str:
    """
    Convert a contour to absolute SVG path commands.

    Args:
        contour: Closed lattice polygon

    Returns:
        Path data like "M0,0 L2,0 L2,2 L0,2 Z"
    """
    if len(contour) == 0:
        return ""
    first, *rest = contour.points
    commands = [f"M{first[0]},{first[1]}"]
    commands.extend(f"L{x},{y}" for x, y in rest)
    commands.append("Z")
    return ' '.join(commands)


def shape_to_path_data(contours: Sequence[Contour]) -> str:
    """Join contours into one compound path (outer contours then their holes)."""
    return ' '.join(p for p in (contour_to_path(c) for c in contours) if p)


def shape_to_svg(shape: VectorShape) -> str:
    """
    Convert a shape to an SVG path element.

    Args:
        shape: Color plus its contours

    Returns:
        SVG path element string
    """
    path_data = shape_to_path_data(shape.contours)
    if not path_data:
        return ""
    attrs = [
        f'd="{path_data}"',
        f'fill="{color_to_hex(shape.color)}"',
        'fill-rule="evenodd"',
    ]
    if shape.color.a < 255:
        attrs.append(f'fill-opacity="{format_opacity(shape.color.a)}"')
    return f"<path {' '.join(attrs)}/>"


def document_to_svg(document: VectorDocument) -> str:
    """
    Serialize a vector document as a standalone SVG string.

    Args:
        document: Vector document

    Returns:
        Complete SVG string
    """
    path_elements: List[str] = []
    for shape in document.shapes:
        element = shape_to_svg(shape)
        if element:
            path_elements.append(element)

    svg_content = '\n  '.join(path_elements)
    width, height = document.width, document.height

    return f'''<?xml version="1.0" encoding="UTF-8"?>
<svg xmlns="{SVG_NS}" width="{width}" height="{height}" viewBox="0 0 {width} {height}">
  {svg_content}
</svg>'''


def raster_to_data_uri(raster: Raster) -> str:
    """Encode a raster as a base64 PNG data URI."""
    buffer = io.BytesIO()
    Image.fromarray(raster.pixels.copy()).save(buffer, format="PNG")
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def embed_raster_svg(raster: Raster) -> str:
    """
    Wrap a raster in an SVG document as an embedded PNG image.

    This is an explicit fallback output and is never used by the vector
    export path.

    Args:
        raster: Raster to embed (typically the quantized preview)

    Returns:
        SVG string with a single <image> element
    """
    width, height = raster.width, raster.height
    uri = raster_to_data_uri(raster)
    return f'''<?xml version="1.0" encoding="UTF-8"?>
<svg xmlns="{SVG_NS}" width="{width}" height="{height}" viewBox="0 0 {width} {height}">
  <image x="0" y="0" width="{width}" height="{height}" href="{uri}"/>
</svg>'''


def save_svg(svg_string: str, output_path: str) -> None:
    """
    Save SVG string to file.

    Args:
        svg_string: SVG content
        output_path: Output file path
    """
    with open(output_path, 'w', encoding='utf-8') as f:
        f.write(svg_string)
