#!/usr/bin/env python3
"""Profile palette extraction to identify performance bottlenecks."""

import argparse
import cProfile
import io
import pstats
import sys
import time
from pathlib import Path

from batch_extract import find_images
from color_thief import DEFAULT_COUNT, DEFAULT_QUALITY, load_image, sample_pixels
from mmcq import get_histogram, quantize


def profile_image(image_path: str, quality: int = DEFAULT_QUALITY,
                  count: int = DEFAULT_COUNT, verbose: bool = True) -> dict:
    """Time each stage of the pipeline for one image."""
    if verbose:
        print(f"\n{'='*60}")
        print(f"Profiling: {Path(image_path).name}")
        print(f"{'='*60}")

    timings = {}

    start = time.perf_counter()
    image = load_image(image_path)
    timings['load'] = time.perf_counter() - start

    start = time.perf_counter()
    samples = sample_pixels(image, quality)
    timings['sample'] = time.perf_counter() - start

    start = time.perf_counter()
    histo = get_histogram(samples)
    timings['histogram'] = time.perf_counter() - start

    start = time.perf_counter()
    boxes = quantize(histo, count)
    timings['quantize'] = time.perf_counter() - start

    total = sum(timings.values())
    timings['total'] = total

    if verbose:
        print(f"  Image: {image.width}x{image.height} ({image.pixel_count:,} pixels)")
        print(f"  Samples: {len(samples):,}")
        print(f"  Occupied cells: {len(histo):,}")
        print(f"  Boxes: {len(boxes)}")
        print(f"\nStage timings:")
        for stage, t in timings.items():
            pct = (t / total * 100) if stage != 'total' and total > 0 else 100
            print(f"  {stage:20s}: {t:6.3f}s ({pct:5.1f}%)")

    return timings


def detailed_profile(image_path: str, quality: int = DEFAULT_QUALITY,
                     count: int = DEFAULT_COUNT, top: int = 30) -> str:
    """Run cProfile on quantize() (the main compute stage)."""
    histo = get_histogram(sample_pixels(load_image(image_path), quality))

    profiler = cProfile.Profile()
    profiler.enable()
    quantize(histo, count)
    profiler.disable()

    stream = io.StringIO()
    stats = pstats.Stats(profiler, stream=stream)
    stats.sort_stats('cumulative')
    stats.print_stats(top)

    return stream.getvalue()


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description='Profile palette extraction.')
    parser.add_argument('--input', '-i', default='source_images',
                        help='Directory containing images to profile')
    parser.add_argument('--count', '-c', type=int, default=DEFAULT_COUNT)
    parser.add_argument('--quality', '-q', type=int, default=DEFAULT_QUALITY)
    args = parser.parse_args(argv)

    images_dir = Path(args.input)
    images = find_images(images_dir) if images_dir.is_dir() else []

    if not images:
        print(f"No images found in {images_dir}/", file=sys.stderr)
        return 1

    print(f"Found {len(images)} test images")

    all_timings = []
    for img in images:
        timings = profile_image(str(img), args.quality, args.count)
        all_timings.append((img.name, timings))

    print(f"\n{'='*60}")
    print("SUMMARY")
    print(f"{'='*60}")
    print(f"{'Image':<35} {'Histogram':>10} {'Quantize':>10} {'Total':>8}")
    print("-" * 66)
    for name, timings in all_timings:
        print(f"{name:<35} {timings['histogram']:>9.3f}s {timings['quantize']:>9.3f}s "
              f"{timings['total']:>7.3f}s")

    print(f"\n{'='*60}")
    print("Detailed profile of quantize()")
    print(f"{'='*60}")
    print(detailed_profile(str(images[0]), args.quality, args.count))

    return 0


if __name__ == "__main__":
    sys.exit(main())
