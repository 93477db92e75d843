from __future__ import annotations

from dataclasses import dataclass

from chartlayout.config import BrushSpec


@dataclass(frozen=True)
class BrushWindow:
    """Inclusive ``[start_index, end_index]`` slice of the full dataset."""

    start_index: int = 0
    end_index: int = 0

    @classmethod
    def default_for(cls, data_length: int, brush: BrushSpec | None = None) -> "BrushWindow":
        last = max(data_length - 1, 0)
        start = 0
        end = last
        if brush is not None:
            if brush.start_index is not None:
                start = brush.start_index
            if brush.end_index is not None:
                end = brush.end_index
        return cls(start, end).clamp(data_length)

    def clamp(self, data_length: int) -> "BrushWindow":
        """Normalize negative, swapped or out-of-range indices against ``data_length``."""

        last = max(data_length - 1, 0)
        start = self.start_index + data_length if self.start_index < 0 else self.start_index
        end = self.end_index + data_length if self.end_index < 0 else self.end_index
        start = min(max(start, 0), last)
        end = min(max(end, 0), last)
        if start > end:
            start, end = end, start
        return BrushWindow(start, end)
