"""Virtual window calculator — maps a scroll position to the row range worth rendering."""
import math
from typing import Sequence, TypeVar

from models.browse import VirtualWindow

T = TypeVar("T")


def compute_virtual_window(
    total: int,
    row_height: float,
    scroll_top: float,
    viewport_height: float,
    overscan: int = 4,
) -> VirtualWindow:
    """
    Return the [start, end) index range intersecting the viewport, widened by
    `overscan` rows on each side, plus the padding that keeps the scrollable
    height equal to `total * row_height`.
    """
    total = max(0, total)
    if row_height <= 0:
        return VirtualWindow(start=0, end=total, pad_top=0, pad_bottom=0)

    visible_count = math.ceil(max(0.0, viewport_height) / row_height)
    start = max(0, math.floor(max(0.0, scroll_top) / row_height) - overscan)
    start = min(start, total)
    end = min(total, start + visible_count + overscan * 2)
    return VirtualWindow(
        start=start,
        end=end,
        pad_top=start * row_height,
        pad_bottom=(total - end) * row_height,
    )


def visible_slice(rows: Sequence[T], window: VirtualWindow) -> list[T]:
    return list(rows[window.start:window.end])
