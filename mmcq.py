#!/usr/bin/env python3
"""
Modified median cut quantization (MMCQ).

Reduces sampled pixel colors to a handful of representative colors:
1. Quantize each channel to SIGBITS bits and count pixels per cell
2. Seed one box spanning every occupied cell of the reduced color cube
3. Split boxes at a population-balanced point along their widest side
4. Emit each final box's average color, most populated first
"""

import math
from dataclasses import dataclass, field, replace
from functools import cached_property
from types import MappingProxyType
from typing import Callable, Optional

import numpy as np


# =============================================================================
# Constants
# =============================================================================

SIGBITS = 5  # Bits kept per channel
RSHIFT = 8 - SIGBITS
CHANNEL_MASK = (1 << SIGBITS) - 1
MAX_ITERATION = 1000  # Split attempts allowed in the volume-weighted phase
FRACT_BY_POPULATIONS = 0.75  # Share of the palette chosen by population alone

AXES = ('r', 'g', 'b')


def get_color_index(r, g, b):
    """Pack quantized channel values into a single histogram key."""
    return (r << (2 * SIGBITS)) + (g << SIGBITS) + b


def split_color_index(index):
    """Unpack a histogram key into quantized (r, g, b). Works on arrays too."""
    return (
        (index >> (2 * SIGBITS)) & CHANNEL_MASK,
        (index >> SIGBITS) & CHANNEL_MASK,
        index & CHANNEL_MASK,
    )


# =============================================================================
# Histogram
# =============================================================================

@dataclass(frozen=True)
class Histogram:
    """Pixel counts per quantized color cell."""
    counts: MappingProxyType  # index -> pixel count
    sums: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))  # index -> 8-bit (r, g, b) sums

    def __post_init__(self):
        # Freeze plain dicts handed in by callers
        if not isinstance(self.counts, MappingProxyType):
            object.__setattr__(self, 'counts', MappingProxyType(dict(self.counts)))
        if not isinstance(self.sums, MappingProxyType):
            object.__setattr__(self, 'sums', MappingProxyType(dict(self.sums)))

    def __len__(self) -> int:
        return len(self.counts)

    def get(self, index: int) -> int:
        return self.counts.get(index, 0)

    @property
    def total(self) -> int:
        return sum(self.counts.values())


def get_histogram(pixels: np.ndarray) -> Histogram:
    """
    Count pixels per quantized color cell.

    Args:
        pixels: Array of shape (n, 3) or (n, 4) with 8-bit channel values.
            Any alpha column is ignored.

    Returns:
        Histogram covering exactly the cells present in the input. The
        per-cell sums of the original channel values are kept alongside
        the counts so averages can use the colors actually observed.
    """
    rgb = np.asarray(pixels)[:, :3].astype(np.int64)
    quantized = rgb >> RSHIFT
    indices = get_color_index(quantized[:, 0], quantized[:, 1], quantized[:, 2])

    unique, inverse, counts = np.unique(indices, return_inverse=True, return_counts=True)
    sums = np.zeros((len(unique), 3), dtype=np.int64)
    np.add.at(sums, inverse.reshape(-1), rgb)

    return Histogram(
        counts={int(i): int(c) for i, c in zip(unique, counts)},
        sums={int(i): tuple(int(v) for v in s) for i, s in zip(unique, sums)},
    )


# =============================================================================
# Color Box
# =============================================================================

@dataclass(frozen=True)
class ColorBox:
    """
    Axis-aligned region of the quantized color cube.

    Ranges are inclusive and expressed in quantized channel values. Boxes
    never change once built; splitting produces new boxes that share the
    same histogram.
    """
    r1: int
    r2: int
    g1: int
    g2: int
    b1: int
    b2: int
    histo: Histogram = field(repr=False, compare=False)

    def __post_init__(self):
        for axis in AXES:
            lo, hi = getattr(self, f'{axis}1'), getattr(self, f'{axis}2')
            if not 0 <= lo <= hi <= CHANNEL_MASK:
                raise ValueError(f"Invalid {axis} range [{lo}, {hi}] for a color box")

    @classmethod
    def from_histogram(cls, histo: Histogram) -> 'ColorBox':
        """Build the smallest box holding every occupied cell."""
        if not len(histo):
            raise ValueError("Cannot build a color box from an empty histogram")

        indices = np.fromiter(histo.counts.keys(), dtype=np.int64, count=len(histo))
        r, g, b = split_color_index(indices)
        return cls(
            r1=int(r.min()), r2=int(r.max()),
            g1=int(g.min()), g2=int(g.max()),
            b1=int(b.min()), b2=int(b.max()),
            histo=histo,
        )

    def bounds(self, axis: int) -> tuple[int, int]:
        """Inclusive (low, high) range along axis 0 (r), 1 (g) or 2 (b)."""
        name = AXES[axis]
        return getattr(self, f'{name}1'), getattr(self, f'{name}2')

    def with_bounds(self, axis: int, lo: int, hi: int) -> 'ColorBox':
        """Copy of this box with one axis range replaced."""
        name = AXES[axis]
        return replace(self, **{f'{name}1': lo, f'{name}2': hi})

    @property
    def widths(self) -> tuple[int, int, int]:
        return (
            self.r2 - self.r1 + 1,
            self.g2 - self.g1 + 1,
            self.b2 - self.b1 + 1,
        )

    @cached_property
    def volume(self) -> int:
        """Size of the box in quantized cells."""
        rw, gw, bw = self.widths
        return rw * gw * bw

    @cached_property
    def cells(self) -> list[tuple[int, int, int, int, int]]:
        """(index, r, g, b, count) for every occupied cell inside the box."""
        cells = []
        for index, count in self.histo.counts.items():
            r, g, b = split_color_index(index)
            if (self.r1 <= r <= self.r2 and self.g1 <= g <= self.g2
                    and self.b1 <= b <= self.b2):
                cells.append((index, r, g, b, count))
        return cells

    @cached_property
    def population(self) -> int:
        """Number of histogram pixels inside the box."""
        return sum(cell[4] for cell in self.cells)

    @cached_property
    def average_color(self) -> tuple[int, int, int]:
        """
        Population-weighted mean color of the box as 8-bit (r, g, b).

        Each occupied cell contributes the mean of the colors recorded in
        it, or its cell center when the histogram carries no sums. Empty
        boxes fall back to their geometric center.
        """
        mult = 1 << RSHIFT
        ntot = 0
        r_sum = g_sum = b_sum = 0.0

        for index, r, g, b, hval in self.cells:
            ntot += hval
            observed = self.histo.sums.get(index)
            if observed is not None:
                r_sum += observed[0]
                g_sum += observed[1]
                b_sum += observed[2]
            else:
                r_sum += hval * (r + 0.5) * mult
                g_sum += hval * (g + 0.5) * mult
                b_sum += hval * (b + 0.5) * mult

        if ntot > 0:
            return int(r_sum / ntot), int(g_sum / ntot), int(b_sum / ntot)

        return (
            mult * (self.r1 + self.r2 + 1) // 2,
            mult * (self.g1 + self.g2 + 1) // 2,
            mult * (self.b1 + self.b2 + 1) // 2,
        )

    def contains(self, color) -> bool:
        """True if an 8-bit (r, g, b[, a]) color quantizes into this box."""
        r, g, b = (int(c) >> RSHIFT for c in color[:3])
        return (self.r1 <= r <= self.r2 and self.g1 <= g <= self.g2
                and self.b1 <= b <= self.b2)


# =============================================================================
# Median Cut
# =============================================================================

def _widest_axis(box: ColorBox) -> int:
    # Strict comparison in r, g, b order so ties favour red, then green
    widths = box.widths
    axis = 0
    for candidate in (1, 2):
        if widths[candidate] > widths[axis]:
            axis = candidate
    return axis


def _nearest_valid_cut(partial_sum: list[int], lo: int, hi: int, cut: int) -> Optional[int]:
    """
    Closest cut point to `cut` that leaves pixels on both sides.

    A cut at c keeps [lo, c] on the left and [c + 1, hi] on the right.
    Upward candidates are tried before downward ones at equal distance.
    """
    total = partial_sum[-1]

    def valid(c):
        return lo <= c < hi and 0 < partial_sum[c - lo] < total

    for distance in range(hi - lo + 2):
        for candidate in (cut + distance, cut - distance):
            if valid(candidate):
                return candidate
    return None


def median_cut_apply(box: ColorBox) -> tuple[ColorBox, Optional[ColorBox]]:
    """
    Split a box in two along its widest axis.

    Returns:
        (left, right) boxes partitioning the input's range on the split
        axis, or (box, None) when no cut can put pixels on both sides.
    """
    if box.population < 2:
        return box, None

    axis = _widest_axis(box)
    lo, hi = box.bounds(axis)

    # Pixels per slice along the split axis, then running totals
    slices = [0] * (hi - lo + 1)
    for cell in box.cells:
        slices[cell[axis + 1] - lo] += cell[4]

    partial_sum = []
    total = 0
    for count in slices:
        total += count
        partial_sum.append(total)

    # First slice where the running total passes half the pixels
    half = total // 2
    i = lo + next(offset for offset, s in enumerate(partial_sum) if s > half)

    # Move the cut toward the larger side to balance later splits
    left = i - lo
    right = hi - i
    if left <= right:
        cut = min(hi - 1, i + right // 2)
    else:
        cut = max(lo, i - 1 - left // 2)

    cut = _nearest_valid_cut(partial_sum, lo, hi, cut)
    if cut is None:
        return box, None

    return box.with_bounds(axis, lo, cut), box.with_bounds(axis, cut + 1, hi)


# =============================================================================
# Palette Construction
# =============================================================================

def _split_until(boxes: list, target: int, priority: Callable[[ColorBox], int],
                 unsplittable: set, max_iteration: Optional[int] = None) -> None:
    """Split the highest-priority box in place until `target` boxes exist."""
    attempts = 0

    while len(boxes) < target:
        if max_iteration is not None and attempts >= max_iteration:
            break

        candidates = [
            (position, box) for position, box in enumerate(boxes)
            if box.population >= 2 and box not in unsplittable
        ]
        if not candidates:
            break

        # max() keeps the earliest box on ties
        position, box = max(candidates, key=lambda item: priority(item[1]))
        attempts += 1

        box1, box2 = median_cut_apply(box)
        if box2 is None:
            unsplittable.add(box)
            continue

        boxes[position:position + 1] = [box1, box2]


def quantize(histo: Histogram, max_colors: int,
             max_iteration: int = MAX_ITERATION,
             fract_by_populations: float = FRACT_BY_POPULATIONS) -> list[ColorBox]:
    """
    Reduce a histogram to at most `max_colors` boxes.

    Phase one splits by population alone until a `fract_by_populations`
    share of the target is reached; phase two prefers boxes with large
    population * volume. Fewer boxes come back when the histogram runs
    out of splittable boxes.

    Returns:
        Final boxes sorted by population descending. Empty for an empty
        histogram.
    """
    if max_colors < 1:
        raise ValueError(f"max_colors must be at least 1, got {max_colors}")
    if not len(histo):
        return []

    boxes = [ColorBox.from_histogram(histo)]
    unsplittable = set()

    if max_colors > 1:
        _split_until(
            boxes, math.ceil(fract_by_populations * max_colors),
            lambda box: box.population, unsplittable,
        )
        _split_until(
            boxes, max_colors,
            lambda box: box.population * box.volume, unsplittable,
            max_iteration=max_iteration,
        )

    return sorted(boxes, key=lambda box: box.population, reverse=True)
