#!/usr/bin/env python3
"""
Extract a representative color palette from an RGBA pixel buffer.

Three stages: Sampling → Histogram → Median cut quantization
"""

from dataclasses import dataclass
from typing import Callable

import numpy as np
from PIL import Image

from mmcq import Histogram, get_histogram, quantize


# =============================================================================
# Constants
# =============================================================================

MIN_ALPHA = 125  # Pixels must be more opaque than this
WHITE_THRESHOLD = 250  # Pixels above this on every channel count as background

DEFAULT_QUALITY = 10  # Sample every 10th pixel
DEFAULT_COUNT = 10

# Image size limits (security: prevent decompression bombs)
MAX_IMAGE_PIXELS = 50_000_000  # 50 megapixels
MAX_IMAGE_DIMENSION = 10_000  # 10k pixels per side


# =============================================================================
# Errors
# =============================================================================

class PaletteError(ValueError):
    """Base class for palette extraction errors."""


class InvalidQuality(PaletteError):
    """Sampling stride below 1."""


class InvalidCount(PaletteError):
    """Requested palette size out of range."""


class NoValidPixels(PaletteError):
    """Every sampled pixel was transparent or near-white."""


# =============================================================================
# Image Model
# =============================================================================

@dataclass
class ImageData:
    """Decoded image as a flat, row-major RGBA buffer."""
    width: int
    height: int
    pixels: np.ndarray  # (width * height, 4) uint8

    def __post_init__(self):
        self.pixels = np.asarray(self.pixels, dtype=np.uint8)
        expected = (self.width * self.height, 4)
        if self.pixels.shape != expected:
            raise ValueError(f"Pixel buffer has shape {self.pixels.shape}, expected {expected}")

    @property
    def pixel_count(self) -> int:
        return self.width * self.height

    def pixel(self, index: int) -> tuple[int, int, int, int]:
        """(r, g, b, a) of the pixel at a linear index."""
        r, g, b, a = self.pixels[index]
        return int(r), int(g), int(b), int(a)

    @classmethod
    def from_accessor(cls, width: int, height: int,
                      get_pixel: Callable[[int], tuple]) -> 'ImageData':
        """Build from a callable returning (r, g, b, a) per linear index."""
        pixels = np.array(
            [get_pixel(i) for i in range(width * height)], dtype=np.uint8
        ).reshape(-1, 4)
        return cls(width, height, pixels)

    @classmethod
    def from_array(cls, array: np.ndarray) -> 'ImageData':
        """Build from an (h, w, 3) or (h, w, 4) array. RGB gets full alpha."""
        array = np.asarray(array, dtype=np.uint8)
        if array.ndim != 3 or array.shape[2] not in (3, 4):
            raise ValueError(f"Expected an (h, w, 3) or (h, w, 4) array, got shape {array.shape}")

        h, w = array.shape[:2]
        flat = array.reshape(-1, array.shape[2])
        if flat.shape[1] == 3:
            alpha = np.full((flat.shape[0], 1), 255, dtype=np.uint8)
            flat = np.hstack([flat, alpha])
        return cls(w, h, flat)

    @classmethod
    def from_pil(cls, img: Image.Image) -> 'ImageData':
        return cls.from_array(np.array(img.convert('RGBA')))


def load_image(image_path: str) -> ImageData:
    """
    Decode an image file into an RGBA buffer.

    Raises:
        FileNotFoundError: If image file doesn't exist
        ValueError: If file is not a valid image or exceeds size limits
    """
    try:
        img = Image.open(image_path)
    except FileNotFoundError:
        raise FileNotFoundError(f"Image not found: {image_path}")
    except Exception as e:
        raise ValueError(f"Could not open image: {e}")

    with img:
        width, height = img.size
        if width > MAX_IMAGE_DIMENSION or height > MAX_IMAGE_DIMENSION:
            raise ValueError(
                f"Image dimensions {width}x{height} exceed maximum "
                f"{MAX_IMAGE_DIMENSION}x{MAX_IMAGE_DIMENSION}"
            )
        if width * height > MAX_IMAGE_PIXELS:
            raise ValueError(
                f"Image has {width * height:,} pixels, exceeding maximum {MAX_IMAGE_PIXELS:,}"
            )

        # Pixel data is only decoded here, so truncated files fail late
        try:
            return ImageData.from_pil(img)
        except OSError as e:
            raise ValueError(f"Could not decode image: {e}")


# =============================================================================
# Stage 1: Sampling
# =============================================================================

def sample_positions(pixel_count: int, quality: int) -> np.ndarray:
    """Linear pixel indices visited with a stride of `quality`."""
    if isinstance(quality, bool) or not isinstance(quality, (int, np.integer)) or quality < 1:
        raise InvalidQuality(f"quality must be an integer >= 1, got {quality!r}")
    return np.arange(0, pixel_count, quality)


def sample_pixels(image: ImageData, quality: int = DEFAULT_QUALITY) -> np.ndarray:
    """
    Sample every `quality`-th pixel, dropping transparent and near-white ones.

    Returns:
        Array of shape (n, 4) with the surviving RGBA samples.
    """
    visited = image.pixels[sample_positions(image.pixel_count, quality)]

    opaque = visited[:, 3] > MIN_ALPHA
    near_white = np.all(visited[:, :3] > WHITE_THRESHOLD, axis=1)

    return visited[opaque & ~near_white]


# =============================================================================
# Stage 2: Histogram
# =============================================================================

def build_histogram(image: ImageData, quality: int = DEFAULT_QUALITY) -> Histogram:
    """
    Sample the image and count samples per quantized color cell.

    Raises:
        InvalidQuality: If quality < 1
        NoValidPixels: If no pixel survives sampling
    """
    samples = sample_pixels(image, quality)
    if len(samples) == 0:
        raise NoValidPixels(
            f"No opaque, non-white pixels in {image.width}x{image.height} image "
            f"(quality={quality})"
        )
    return get_histogram(samples)


# =============================================================================
# Stage 3: Quantization
# =============================================================================

def rgb_to_hex(rgb: tuple) -> str:
    """Format (r, g, b) as upper-case hex, e.g. 'FF0000'."""
    r, g, b = rgb
    return f"{r:02X}{g:02X}{b:02X}"


@dataclass(frozen=True)
class Swatch:
    """One palette entry."""
    rgb: tuple  # 8-bit (r, g, b)
    population: int  # Sampled pixels in the originating box
    coverage: float  # Share of all sampled pixels (0-1)

    @property
    def hex(self) -> str:
        return rgb_to_hex(self.rgb)


def extract_swatches(image: ImageData, quality: int = DEFAULT_QUALITY,
                     count: int = DEFAULT_COUNT) -> list[Swatch]:
    """
    Run the full pipeline and keep box populations with the colors.

    Returns:
        Up to `count` swatches sorted by population descending.
    """
    if count < 1:
        raise InvalidCount(f"count must be at least 1, got {count}")

    histo = build_histogram(image, quality)
    total = histo.total

    return [
        Swatch(rgb=box.average_color, population=box.population,
               coverage=box.population / total)
        for box in quantize(histo, count)
    ]


def get_palette(image: ImageData, quality: int = DEFAULT_QUALITY,
                count: int = DEFAULT_COUNT) -> list[tuple[int, int, int]]:
    """
    Representative colors of the image, most dominant first.

    The result may be shorter than `count` when the image has too few
    distinct colors. For a single color use get_dominant_color, or
    extract_swatches(image, quality, 1) to keep its population.

    Raises:
        InvalidQuality: If quality < 1
        InvalidCount: If count < 2 (use get_dominant_color for one color)
        NoValidPixels: If every sampled pixel is transparent or near-white
    """
    if count < 2:
        raise InvalidCount(f"count must be at least 2, got {count}; use get_dominant_color")
    return [swatch.rgb for swatch in extract_swatches(image, quality, count)]


def get_dominant_color(image: ImageData, quality: int = DEFAULT_QUALITY) -> tuple[int, int, int]:
    """Average color of all sampled pixels, as a single-entry palette."""
    return extract_swatches(image, quality, 1)[0].rgb
