"""Command-line interface for flatvec."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from .pipeline import Pipeline
from .types import PipelineConfig, VectorizationError

OUTPUT_SUFFIX = {"vector": ".svg", "embed": ".svg", "preview": ".png"}


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="flatvec",
        description="Posterize a raster image and trace its flat color regions into SVG",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Vector export (default)
  flatvec -i photo.jpg -o photo.svg --colors 8

  # Fuse near-identical palette colors
  flatvec -i logo.png --colors 12 --tolerance 0.1

  # Posterized PNG preview only
  flatvec -i photo.jpg --mode preview

  # Embedded-image fallback (no tracing)
  flatvec -i photo.jpg --mode embed
        """,
    )

    parser.add_argument("-i", "--input", required=True, help="Input image file path")

    parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Output file path (default: input name with .svg, or .png for preview)",
    )

    parser.add_argument(
        "-m",
        "--mode",
        choices=["vector", "preview", "embed"],
        default="vector",
        help="vector: traced SVG; preview: posterized PNG; embed: SVG wrapping the PNG",
    )

    parser.add_argument(
        "--colors",
        "-c",
        type=int,
        default=6,
        help="Number of palette colors (default: 6)",
    )

    parser.add_argument(
        "--tolerance",
        "-t",
        type=float,
        default=0.0,
        help="Fuse palette colors closer than this RGB distance, 0..1.73 (default: 0)",
    )

    parser.add_argument(
        "--iterations",
        type=int,
        default=10,
        help="K-means refinement rounds (default: 10)",
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Processes used for tracing (default: 1)",
    )

    parser.add_argument(
        "--validate",
        action="store_true",
        help="Check that the SVG covers every quantized pixel (vector mode)",
    )

    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )

    return parser


def main(args: Optional[list] = None) -> int:
    """Main entry point for CLI.

    Args:
        args: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, 1 for error)
    """
    parser = create_parser()
    parsed = parser.parse_args(args)

    logging.basicConfig(
        level=logging.DEBUG if parsed.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    input_path = Path(parsed.input)
    if parsed.output:
        output_path = parsed.output
    else:
        output_path = str(input_path.with_suffix(OUTPUT_SUFFIX[parsed.mode]))

    try:
        config = PipelineConfig(
            n_colors=parsed.colors,
            tolerance=parsed.tolerance,
            iterations=parsed.iterations,
            workers=parsed.workers,
            mode=parsed.mode,
        )
    except VectorizationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # Create output directory if it doesn't exist
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)

    try:
        print(f"Processing: {parsed.input}")
        print(f"  Mode: {parsed.mode}")
        print(f"  Colors: {config.n_colors}")
        print(f"  Tolerance: {config.tolerance}")

        pipeline = Pipeline(config)
        result = pipeline.process(input_path, output_path)

        print(f"  Output saved: {output_path}")

        if parsed.validate and parsed.mode == "vector":
            results = pipeline.validate(input_path, result)
            print(f"\nValidation Results:")
            print(f"  Regions: {results['region_count']}")
            print(f"  Paths: {results['path_count']}")
            print(f"  Coverage: {results['coverage'] * 100:.2f}%")
            print(f"  SVG size: {results['svg_size_bytes']:,} bytes")
            print(f"  Overall: {'PASS' if results['overall_pass'] else 'FAIL'}")
            return 0 if results['overall_pass'] else 1

        return 0

    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except VectorizationError as e:
        print(f"Error processing image: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
