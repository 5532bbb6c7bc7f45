import numpy as np
import pytest

from mmcq import (
    ColorBox, Histogram, MAX_ITERATION,
    get_color_index, get_histogram, median_cut_apply, quantize, split_color_index,
)


def pixels(*colors):
    """Expand (color, repeat) pairs into an (n, 4) opaque RGBA array."""
    rows = []
    for color, repeat in colors:
        rows.extend([(*color, 255)] * repeat)
    return np.array(rows, dtype=np.uint8).reshape(-1, 4)


# =============================================================================
# Histogram
# =============================================================================

def test_color_index_packs_red_highest():
    assert get_color_index(1, 0, 0) == 1 << 10
    assert get_color_index(0, 1, 0) == 1 << 5
    assert get_color_index(31, 31, 31) == (1 << 15) - 1
    assert split_color_index(get_color_index(3, 17, 29)) == (3, 17, 29)


def test_histogram_counts_every_sample():
    histo = get_histogram(pixels(((0, 0, 0), 2), ((255, 0, 0), 1), ((7, 7, 7), 1)))

    # (7, 7, 7) quantizes into the same cell as black
    assert dict(histo.counts) == {0: 3, get_color_index(31, 0, 0): 1}
    assert histo.sums[0] == (7, 7, 7)
    assert histo.total == 4


def test_histogram_ignores_alpha():
    rgba = np.array([[10, 20, 30, 0], [10, 20, 30, 255]], dtype=np.uint8)
    assert get_histogram(rgba).total == 2


def test_histogram_is_read_only():
    histo = get_histogram(pixels(((0, 0, 0), 1)))
    with pytest.raises(TypeError):
        histo.counts[0] = 5


def test_histogram_of_no_samples_is_empty():
    histo = get_histogram(np.zeros((0, 4), dtype=np.uint8))
    assert len(histo) == 0
    assert histo.total == 0


# =============================================================================
# Color Box
# =============================================================================

def test_box_from_histogram_spans_occupied_cells():
    histo = get_histogram(pixels(((8, 200, 16), 1), ((40, 64, 255), 1)))
    box = ColorBox.from_histogram(histo)

    assert (box.r1, box.r2) == (1, 5)
    assert (box.g1, box.g2) == (8, 25)
    assert (box.b1, box.b2) == (2, 31)
    assert box.population == 2


def test_box_volume():
    box = ColorBox(0, 1, 0, 2, 5, 5, histo=Histogram({}))
    assert box.volume == 2 * 3 * 1


def test_box_population_only_counts_inside_cells():
    histo = Histogram({
        get_color_index(0, 0, 0): 4,
        get_color_index(1, 1, 1): 3,
        get_color_index(9, 9, 9): 100,
    })
    box = ColorBox(0, 1, 0, 1, 0, 1, histo=histo)
    assert box.population == 7


def test_box_average_uses_cell_centers_without_sums():
    histo = Histogram({get_color_index(0, 0, 0): 1, get_color_index(2, 0, 0): 1})
    box = ColorBox(0, 2, 0, 0, 0, 0, histo=histo)

    # Centers are 4 and 20 on red
    assert box.average_color == (12, 4, 4)


def test_box_average_uses_observed_colors():
    histo = get_histogram(pixels(((10, 20, 30), 3), ((12, 22, 26), 1)))
    box = ColorBox.from_histogram(histo)

    assert box.average_color == (10, 20, 29)


def test_empty_box_average_is_geometric_center():
    box = ColorBox(0, 31, 4, 4, 10, 11, histo=Histogram({}))

    assert box.population == 0
    assert box.average_color == (128, 36, 88)


def test_box_contains():
    box = ColorBox(0, 3, 0, 3, 0, 3, histo=Histogram({}))

    assert box.contains((31, 0, 31))
    assert box.contains((10, 10, 10, 0))
    assert not box.contains((32, 0, 0))


def test_box_rejects_inverted_ranges():
    with pytest.raises(ValueError):
        ColorBox(5, 4, 0, 0, 0, 0, histo=Histogram({}))


# =============================================================================
# Median Cut
# =============================================================================

def test_split_partitions_widest_axis():
    histo = get_histogram(pixels(((0, 0, 0), 3), ((255, 0, 0), 1)))
    box = ColorBox.from_histogram(histo)

    left, right = median_cut_apply(box)

    assert (left.r1, left.r2) == (0, 15)
    assert (right.r1, right.r2) == (16, 31)
    assert (left.g1, left.g2, left.b1, left.b2) == (box.g1, box.g2, box.b1, box.b2)
    assert (right.g1, right.g2, right.b1, right.b2) == (box.g1, box.g2, box.b1, box.b2)
    assert left.population == 3
    assert right.population == 1
    assert left.histo is right.histo is histo


def test_split_ties_favour_red_then_green():
    histo = get_histogram(pixels(((0, 0, 0), 1), ((255, 255, 0), 1)))
    left, right = median_cut_apply(ColorBox.from_histogram(histo))
    assert left.r2 < right.r1
    assert (left.g1, left.g2) == (right.g1, right.g2) == (0, 31)

    histo = get_histogram(pixels(((0, 0, 0), 1), ((0, 255, 255), 1)))
    left, right = median_cut_apply(ColorBox.from_histogram(histo))
    assert left.g2 < right.g1
    assert (left.b1, left.b2) == (right.b1, right.b2) == (0, 31)


def test_split_conserves_population():
    rng = np.random.default_rng(7)
    rgb = rng.integers(0, 256, size=(500, 3), dtype=np.uint8)
    histo = get_histogram(np.hstack([rgb, np.full((500, 1), 255, dtype=np.uint8)]))
    box = ColorBox.from_histogram(histo)

    left, right = median_cut_apply(box)

    assert right is not None
    assert left.population + right.population == box.population == 500
    assert left.population > 0 and right.population > 0


def test_boxes_with_fewer_than_two_pixels_are_not_split():
    single = ColorBox.from_histogram(get_histogram(pixels(((50, 60, 70), 1))))
    assert median_cut_apply(single) == (single, None)

    empty = ColorBox(0, 31, 0, 31, 0, 31, histo=Histogram({}))
    assert median_cut_apply(empty) == (empty, None)


def test_single_cell_box_is_not_split():
    box = ColorBox.from_histogram(get_histogram(pixels(((0, 0, 0), 5))))
    first, second = median_cut_apply(box)
    assert first is box
    assert second is None


def test_no_cut_when_pixels_share_one_slice_of_widest_axis():
    # Red is widest but every pixel sits at r=3
    histo = Histogram({get_color_index(3, 0, 0): 2, get_color_index(3, 1, 0): 2})
    box = ColorBox(0, 10, 0, 1, 0, 0, histo=histo)

    assert median_cut_apply(box) == (box, None)


def test_cut_moves_off_empty_slices():
    # Half the pixels at r=0 and half at r=1 inside a wide box
    histo = Histogram({get_color_index(0, 0, 0): 2, get_color_index(1, 0, 0): 2})
    box = ColorBox(0, 20, 0, 0, 0, 0, histo=histo)

    left, right = median_cut_apply(box)

    assert (left.r1, left.r2) == (0, 0)
    assert (right.r1, right.r2) == (1, 20)
    assert left.population == right.population == 2


# =============================================================================
# Palette Construction
# =============================================================================

FOUR_COLORS = pixels(
    ((200, 0, 0), 40), ((0, 200, 0), 30), ((0, 0, 200), 20), ((200, 200, 0), 10),
)


def test_quantize_finds_each_color_in_population_order():
    boxes = quantize(get_histogram(FOUR_COLORS), 4)

    assert [box.average_color for box in boxes] == [
        (200, 0, 0), (0, 200, 0), (0, 0, 200), (200, 200, 0),
    ]
    assert [box.population for box in boxes] == [40, 30, 20, 10]


def test_quantize_never_exceeds_target_and_keeps_all_pixels():
    rng = np.random.default_rng(3)
    rgb = rng.integers(0, 256, size=(2000, 3), dtype=np.uint8)
    histo = get_histogram(np.hstack([rgb, np.full((2000, 1), 255, dtype=np.uint8)]))

    for count in (2, 3, 5, 8, 16):
        boxes = quantize(histo, count)
        assert len(boxes) == count
        assert sum(box.population for box in boxes) == 2000
        populations = [box.population for box in boxes]
        assert populations == sorted(populations, reverse=True)


def test_quantize_stops_when_nothing_is_splittable():
    histo = get_histogram(pixels(((0, 0, 0), 5), ((255, 0, 0), 5)))
    boxes = quantize(histo, 8)

    assert len(boxes) == 2
    assert {box.average_color for box in boxes} == {(0, 0, 0), (255, 0, 0)}


def test_quantize_single_color_returns_seed_box():
    histo = get_histogram(FOUR_COLORS)
    (box,) = quantize(histo, 1)

    assert box == ColorBox.from_histogram(histo)
    assert box.population == 100


def test_second_phase_prefers_wide_sparse_boxes():
    histo = Histogram({
        get_color_index(0, 0, 0): 15,
        get_color_index(0, 0, 1): 15,
        get_color_index(0, 31, 0): 10,
        get_color_index(31, 0, 0): 10,
        get_color_index(31, 31, 31): 10,
    })

    # Population phase stops at 3 boxes; the last split goes to the box
    # with the largest population * volume, not the most populated one
    boxes = quantize(histo, 4)

    assert [box.population for box in boxes] == [30, 10, 10, 10]
    dense = boxes[0]
    assert dense.contains((0, 0, 0)) and dense.contains((0, 0, 8))
    assert not any(box.contains((248, 0, 0)) and box.contains((248, 248, 248)) for box in boxes)


def test_quantize_is_deterministic():
    rng = np.random.default_rng(11)
    rgb = rng.integers(0, 256, size=(800, 3), dtype=np.uint8)
    histo = get_histogram(np.hstack([rgb, np.full((800, 1), 255, dtype=np.uint8)]))

    first = [(box, box.average_color) for box in quantize(histo, 10)]
    second = [(box, box.average_color) for box in quantize(histo, 10)]
    assert first == second


def test_quantize_split_attempt_bound():
    rng = np.random.default_rng(5)
    rgb = rng.integers(0, 256, size=(300, 3), dtype=np.uint8)
    histo = get_histogram(np.hstack([rgb, np.full((300, 1), 255, dtype=np.uint8)]))

    # No attempts allowed after the population phase
    assert len(quantize(histo, 8, max_iteration=0)) == 6
    assert len(quantize(histo, 8, max_iteration=MAX_ITERATION)) == 8


def test_quantize_empty_histogram():
    assert quantize(Histogram({}), 5) == []


def test_quantize_rejects_zero_colors():
    with pytest.raises(ValueError):
        quantize(get_histogram(FOUR_COLORS), 0)
