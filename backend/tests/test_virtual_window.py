import pytest
from core.virtual_window import compute_virtual_window, visible_slice


def test_scrolled_window_with_overscan():
    w = compute_virtual_window(1000, 20, 200, 200, 2)
    assert (w.start, w.end) == (8, 22)
    assert w.pad_top == 160
    assert w.pad_bottom == (1000 - 22) * 20


def test_top_of_list():
    w = compute_virtual_window(100, 32, 0, 320, 6)
    assert (w.start, w.end) == (0, 22)
    assert w.pad_top == 0


def test_non_positive_row_height_renders_everything():
    for h in (0, -5):
        w = compute_virtual_window(50, h, 300, 200, 4)
        assert (w.start, w.end, w.pad_top, w.pad_bottom) == (0, 50, 0, 0)


def test_scrolled_past_the_end():
    w = compute_virtual_window(10, 20, 10_000, 200, 2)
    assert w.start == w.end == 10
    assert w.pad_top == 200
    assert w.pad_bottom == 0


def test_empty_and_negative_totals():
    assert compute_virtual_window(0, 20, 0, 200).end == 0
    assert compute_virtual_window(-3, 20, 0, 200).end == 0


@pytest.mark.parametrize("total,scroll_top,viewport", [
    (1000, 0, 640), (1000, 12_345, 640), (7, 50, 1000), (300, 9_600, 0),
])
def test_padding_plus_rendered_rows_equals_full_height(total, scroll_top, viewport):
    h = 32
    w = compute_virtual_window(total, h, scroll_top, viewport, 6)
    assert 0 <= w.start <= w.end <= total
    assert w.pad_top + (w.end - w.start) * h + w.pad_bottom == total * h


def test_visible_slice():
    rows = list(range(100))
    w = compute_virtual_window(100, 10, 100, 50, 1)
    assert visible_slice(rows, w) == rows[w.start:w.end]
