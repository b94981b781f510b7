"""
Row Virtualizer Module - Index window over a variable-height row list

Handles:
- Estimated row heights replaced by measured ones (keyed by entry id)
- Prefix-sum offsets for total height and row positions
- Visible window computation with overscan
"""
from bisect import bisect_right
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple


@dataclass(frozen=True)
class VirtualItem:
    """A row positioned inside the virtual scroll area"""
    index: int
    key: str
    start: int
    size: int

    @property
    def end(self) -> int:
        return self.start + self.size


class RowVirtualizer:
    """
    Keeps row geometry for a list of keyed rows

    Measurements are stored per key rather than per index, so they survive
    appends, truncation from the front, and filter-driven shrinking.
    """

    def __init__(self, estimate_size: int = 1, overscan: int = 10):
        """
        Args:
            estimate_size: Height assumed for rows not yet measured
            overscan: Rows rendered beyond each edge of the viewport
        """
        self.estimate_size = estimate_size
        self.overscan = overscan
        self.keys: List[str] = []
        self.measured: Dict[str, int] = {}
        self._offsets: Optional[List[int]] = None

    @property
    def count(self) -> int:
        return len(self.keys)

    def set_keys(self, keys: Iterable[str]) -> None:
        """Replace the row list; measurements of rows no longer present are dropped"""
        self.keys = list(keys)
        present = set(self.keys)
        self.measured = {key: size for key, size in self.measured.items() if key in present}
        self._offsets = None

    def reset_measurements(self) -> None:
        """Forget all measured heights (e.g. after the viewport width changes)"""
        self.measured.clear()
        self._offsets = None

    def is_measured(self, index: int) -> bool:
        return self.keys[index] in self.measured

    def measure(self, key: str, size: int) -> bool:
        """
        Record the real height of a row

        Returns:
            True if the stored geometry changed
        """
        size = max(1, size)
        if self.measured.get(key) == size:
            return False
        self.measured[key] = size
        self._offsets = None
        return True

    def size_of(self, index: int) -> int:
        return self.measured.get(self.keys[index], self.estimate_size)

    @property
    def offsets(self) -> List[int]:
        """Prefix sums: offsets[i] is the start of row i, offsets[count] the total"""
        if self._offsets is None:
            offsets = [0]
            total = 0
            for key in self.keys:
                total += self.measured.get(key, self.estimate_size)
                offsets.append(total)
            self._offsets = offsets
        return self._offsets

    def total_size(self) -> int:
        return self.offsets[-1]

    def start_of(self, index: int) -> int:
        return self.offsets[index]

    def index_at(self, offset: int) -> int:
        """Index of the row covering a virtual offset, clamped to the list"""
        if not self.keys:
            return 0
        index = bisect_right(self.offsets, offset) - 1
        return min(max(index, 0), self.count - 1)

    def visible_range(self, scroll_offset: int, viewport_size: int) -> Tuple[int, int]:
        """Half-open index range of rows intersecting the viewport, without overscan"""
        if not self.keys or viewport_size <= 0:
            return 0, 0
        first = self.index_at(scroll_offset)
        last = self.index_at(scroll_offset + viewport_size - 1)
        return first, last + 1

    def window(self, scroll_offset: int, viewport_size: int) -> Tuple[int, int]:
        """Half-open index range to render: visible rows plus overscan"""
        first, end = self.visible_range(scroll_offset, viewport_size)
        if first == end:
            return 0, 0
        return max(0, first - self.overscan), min(self.count, end + self.overscan)

    def virtual_items(self, scroll_offset: int, viewport_size: int) -> List[VirtualItem]:
        """Positioned rows for the current window"""
        start, end = self.window(scroll_offset, viewport_size)
        offsets = self.offsets
        return [
            VirtualItem(
                index=index,
                key=self.keys[index],
                start=offsets[index],
                size=offsets[index + 1] - offsets[index],
            )
            for index in range(start, end)
        ]
