#!/usr/bin/env python3
"""Extract the color palette of a single image."""

import argparse
import sys
from pathlib import Path

from color_thief import (
    DEFAULT_COUNT, DEFAULT_QUALITY, PaletteError,
    extract_swatches, load_image,
)
from report import render, render_html, visualize_palette


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Extract the dominant colors of an image with median cut quantization.'
    )
    parser.add_argument(
        '--input', '-i',
        required=True,
        help='Path to the image file'
    )
    parser.add_argument(
        '--count', '-c',
        type=int,
        default=DEFAULT_COUNT,
        help=f'Number of colors to extract, at least 2 (default: {DEFAULT_COUNT})'
    )
    parser.add_argument(
        '--quality', '-q',
        type=int,
        default=DEFAULT_QUALITY,
        help=f'Sample every Nth pixel; 1 is slowest and most exact (default: {DEFAULT_QUALITY})'
    )
    parser.add_argument(
        '--dominant',
        action='store_true',
        help='Print only the single dominant color'
    )
    parser.add_argument(
        '--format',
        choices=['hex', 'rgb'],
        default='hex',
        help='Color output format'
    )
    parser.add_argument(
        '--output', '-o',
        nargs='?',
        const=True,
        default=None,
        help='Write HTML report. Optionally specify path, otherwise auto-names from input.'
    )
    parser.add_argument(
        '--swatch',
        default=None,
        help='Write a PNG swatch strip to this path'
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    image_path = Path(args.input)

    if not args.dominant and args.count < 2:
        print("Error: --count must be at least 2 (use --dominant for one color)", file=sys.stderr)
        return 1

    count = 1 if args.dominant else args.count

    try:
        image = load_image(str(image_path))
        swatches = extract_swatches(image, quality=args.quality, count=count)
    except FileNotFoundError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except PaletteError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error analyzing image: {e}", file=sys.stderr)
        return 1

    print(render(swatches, fmt=args.format))

    if len(swatches) < count:
        print(f"Note: only {len(swatches)} distinct colors found", file=sys.stderr)

    try:
        if args.output:
            if args.output is True:
                output_path = image_path.with_name(f"{image_path.stem}-palette.html")
            else:
                output_path = Path(args.output)
            output_path.write_text(render_html(swatches, str(image_path)))
            print(f"\nWrote: {output_path}")

        if args.swatch:
            visualize_palette(swatches, args.swatch)
            print(f"Wrote: {args.swatch}")
    except OSError as e:
        print(f"Error writing output: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
