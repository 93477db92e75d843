from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from chartlayout.config import SeriesSpec
from chartlayout.data import get_percent_value, is_number
from chartlayout.stacking import AxisStackGroups


@dataclass(frozen=True)
class BarPosition:
    """Offset of a bar from the start of its category band, and its thickness."""

    offset: float
    size: float


@dataclass(frozen=True)
class BarSizeEntry:
    item: SeriesSpec
    stack_list: tuple[SeriesSpec, ...] = ()
    bar_size: float | None = None


@dataclass(frozen=True)
class ItemBarPosition:
    item: SeriesSpec
    position: BarPosition


def get_bar_size_list(
    bar_size: float | str | None,
    stack_groups: Mapping[Any, AxisStackGroups] | None,
    total_size: float,
    category_dimension: str,
) -> dict[Any, list[BarSizeEntry]]:
    """One entry per bar group (a stack or a lone bar), keyed by category-axis id."""

    result: dict[Any, list[BarSizeEntry]] = {}
    if not stack_groups:
        return result
    for parent in stack_groups.values():
        for group in parent.stack_groups.values():
            bars = [item for item in group.items if item.is_bar_like]
            if not bars:
                continue
            head = bars[0]
            size = head.bar_size if head.bar_size is not None else bar_size
            category_id = head.axis_id_for(category_dimension)
            result.setdefault(category_id, []).append(
                BarSizeEntry(
                    item=head,
                    stack_list=tuple(bars[1:]),
                    bar_size=None if size is None else get_percent_value(size, total_size, 0.0),
                )
            )
    return result


def get_bar_position(
    bar_gap: float | str,
    bar_category_gap: float | str,
    band_size: float,
    size_list: Sequence[BarSizeEntry],
    max_bar_size: float | None = None,
) -> list[ItemBarPosition] | None:
    """Split a category band between bar groups.

    With fixed sizes the groups are centered in the band (falling back to 90%
    of an equal share when they do not fit); otherwise the band minus the
    category gap is divided evenly and each bar is clamped to ``max_bar_size``.
    Stacked members share the position of their group head.
    """

    count = len(size_list)
    if count < 1:
        return None
    real_bar_gap = get_percent_value(bar_gap, band_size, 0.0, validate=True)
    result: list[ItemBarPosition] = []

    if is_number(size_list[0].bar_size):
        use_full = False
        full_bar_size = band_size / count
        total = sum(entry.bar_size or 0.0 for entry in size_list)
        total += (count - 1) * real_bar_gap
        if total >= band_size:
            total -= (count - 1) * real_bar_gap
            real_bar_gap = 0.0
        if total >= band_size and full_bar_size > 0:
            use_full = True
            full_bar_size *= 0.9
            total = count * full_bar_size
        start = float(int((band_size - total) / 2.0))
        prev = BarPosition(offset=start - real_bar_gap, size=0.0)
        for entry in size_list:
            prev = BarPosition(
                offset=prev.offset + prev.size + real_bar_gap,
                size=full_bar_size if use_full else (entry.bar_size or 0.0),
            )
            result.append(ItemBarPosition(entry.item, prev))
            result.extend(ItemBarPosition(member, prev) for member in entry.stack_list)
        return result

    offset = get_percent_value(bar_category_gap, band_size, 0.0, validate=True)
    if band_size - 2.0 * offset - (count - 1) * real_bar_gap <= 0:
        real_bar_gap = 0.0
    original_size = max((band_size - 2.0 * offset - (count - 1) * real_bar_gap) / count, 0.0)
    if original_size > 1:
        original_size = float(int(original_size))
    size = min(original_size, max_bar_size) if is_number(max_bar_size) else original_size
    for i, entry in enumerate(size_list):
        position = BarPosition(
            offset=offset + (original_size + real_bar_gap) * i + (original_size - size) / 2.0,
            size=size,
        )
        result.append(ItemBarPosition(entry.item, position))
        result.extend(ItemBarPosition(member, position) for member in entry.stack_list)
    return result


def recenter_bar_positions(positions: Sequence[ItemBarPosition], bar_band_size: float) -> list[ItemBarPosition]:
    """Shift positions computed against a synthetic band so bars straddle their tick."""

    return [
        ItemBarPosition(p.item, BarPosition(offset=p.position.offset - bar_band_size / 2.0, size=p.position.size))
        for p in positions
    ]


def find_position_of_bar(positions: Sequence[ItemBarPosition] | None, item: SeriesSpec) -> BarPosition | None:
    if not positions:
        return None
    for entry in positions:
        if entry.item is item:
            return entry.position
    return None
