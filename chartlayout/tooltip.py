from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Sequence

import numpy as np

from chartlayout.axis import AxisRecord, Tick
from chartlayout.config import LayoutType, SeriesSpec
from chartlayout.data import find_entry_in_array, get_value_by_data_key
from chartlayout.offset import Offset
from chartlayout.polar import PolarViewBox, in_range_of_sector, polar_to_cartesian


@dataclass(frozen=True)
class ChartCoordinate:
    x: float
    y: float
    angle: float | None = None
    radius: float | None = None
    cx: float | None = None
    cy: float | None = None


@dataclass(frozen=True)
class TooltipItem:
    series_key: str
    name: Any
    data_key: Any
    value: Any
    payload: Any
    color: str | None = None
    unit: str | None = None


@dataclass(frozen=True)
class TooltipState:
    active_index: int = -1
    active_label: Any = None
    active_payload: tuple[TooltipItem, ...] = ()
    active_coordinate: ChartCoordinate | None = None
    is_active: bool = False
    chart_x: float | None = None
    chart_y: float | None = None
    active_item_key: str | None = None

    def deactivated(self) -> "TooltipState":
        return replace(self, is_active=False)


INACTIVE_TOOLTIP = TooltipState()


@dataclass(frozen=True)
class TooltipContext:
    """Everything pointer resolution needs from one finished layout pass."""

    layout: LayoutType
    offset: Offset
    tooltip_axis: AxisRecord | None
    tooltip_ticks: tuple[Tick, ...]
    ordered_tooltip_ticks: tuple[Tick, ...]
    series: tuple[tuple[str, SeriesSpec], ...]
    displayed_data: tuple[Any, ...]
    start_index: int = 0
    end_index: int = 0
    polar_box: PolarViewBox | None = None
    tooltip_band_size: float = 0.0


def calculate_tooltip_pos(range_obj: ChartCoordinate, layout: LayoutType) -> float | None:
    if layout == "horizontal":
        return range_obj.x
    if layout == "vertical":
        return range_obj.y
    if layout == "centric":
        return range_obj.angle
    return range_obj.radius


def _sign(value: float) -> int:
    return int(np.sign(value))


def calculate_active_tick_index(
    coordinate: float,
    ticks: Sequence[Tick],
    unsorted_ticks: Sequence[Tick] | None = None,
    axis: AxisRecord | None = None,
) -> int:
    """Index of the tick nearest to ``coordinate``.

    ``ticks`` are ordered by coordinate. A pointer exactly on the midpoint
    between two ticks selects the earlier one. Full-circle angle axes wrap.
    """

    ticks = [tick for tick in ticks if np.isfinite(tick.coordinate)]
    count = len(ticks)
    if count == 0:
        return -1
    if count == 1:
        return ticks[0].index if ticks[0].index is not None else 0
    unsorted = [tick for tick in unsorted_ticks if np.isfinite(tick.coordinate)] if unsorted_ticks else list(ticks)

    if (
        axis is not None
        and axis.dimension == "angle"
        and axis.range is not None
        and abs(abs(axis.range[1] - axis.range[0]) - 360.0) <= 1e-6
        and len(unsorted) == count
    ):
        r0, r1 = axis.range
        for i in range(count):
            before = unsorted[i - 1].coordinate if i > 0 else unsorted[count - 1].coordinate
            cur = unsorted[i].coordinate
            after = unsorted[0].coordinate if i >= count - 1 else unsorted[i + 1].coordinate
            if _sign(cur - before) != _sign(after - cur):
                if _sign(after - cur) == _sign(r1 - r0):
                    same_direction = after
                    cur_in_range = cur + r1 - r0
                    diff = (min(cur_in_range, (cur_in_range + before) / 2.0), max(cur_in_range, (cur_in_range + before) / 2.0))
                else:
                    same_direction = before
                    after_in_range = after + r1 - r0
                    diff = (min(cur, (after_in_range + cur) / 2.0), max(cur, (after_in_range + cur) / 2.0))
                same = (min(cur, (same_direction + cur) / 2.0), max(cur, (same_direction + cur) / 2.0))
                if same[0] < coordinate <= same[1] or diff[0] <= coordinate <= diff[1]:
                    return _tick_index(unsorted[i], i)
            else:
                low = min(before, after)
                high = max(before, after)
                if (low + cur) / 2.0 < coordinate <= (high + cur) / 2.0:
                    return _tick_index(unsorted[i], i)
        return -1

    for i in range(count):
        cur = ticks[i].coordinate
        if i == 0:
            hit = coordinate <= (cur + ticks[1].coordinate) / 2.0
        elif i < count - 1:
            hit = (cur + ticks[i - 1].coordinate) / 2.0 < coordinate <= (cur + ticks[i + 1].coordinate) / 2.0
        else:
            hit = coordinate > (cur + ticks[i - 1].coordinate) / 2.0
        if hit:
            return _tick_index(ticks[i], i)
    return -1


def _tick_index(tick: Tick, fallback: int) -> int:
    return tick.index if tick.index is not None else fallback


def in_range(x: float, y: float, context: TooltipContext) -> ChartCoordinate | None:
    """Pointer containment: plot rectangle for cartesian layouts, annular sector for polar."""

    if context.layout in ("horizontal", "vertical"):
        if context.offset.contains(x, y):
            return ChartCoordinate(x=x, y=y)
        return None
    box = context.polar_box
    if box is None:
        return None
    hit = in_range_of_sector(x, y, box)
    if hit is None:
        return None
    radius, angle = hit
    return ChartCoordinate(x=x, y=y, angle=angle, radius=radius, cx=box.cx, cy=box.cy)


def get_active_coordinate(
    layout: LayoutType,
    ticks: Sequence[Tick],
    active_index: int,
    range_obj: ChartCoordinate,
) -> ChartCoordinate:
    entry = next((tick for tick in ticks if tick.index == active_index), None)
    if entry is None:
        return range_obj
    if layout == "horizontal":
        return ChartCoordinate(x=entry.coordinate, y=range_obj.y)
    if layout == "vertical":
        return ChartCoordinate(x=range_obj.x, y=entry.coordinate)
    cx = range_obj.cx or 0.0
    cy = range_obj.cy or 0.0
    if layout == "centric":
        angle = entry.coordinate
        radius = range_obj.radius or 0.0
    else:
        radius = entry.coordinate
        angle = range_obj.angle or 0.0
    x, y = polar_to_cartesian(cx, cy, radius, angle)
    return ChartCoordinate(x=x, y=y, angle=angle, radius=radius, cx=cx, cy=cy)


def get_tooltip_content(context: TooltipContext, active_index: int, active_label: Any) -> tuple[TooltipItem, ...]:
    """One payload row per visible series with a datum at the active position."""

    axis = context.tooltip_axis
    out: list[TooltipItem] = []
    for key, item in context.series:
        if item.hide:
            continue
        entries: Sequence[Any] = item.data if item.data else context.displayed_data
        if (
            item.data
            and context.start_index + context.end_index != 0
            and context.end_index - context.start_index >= active_index
        ):
            entries = item.data[context.start_index : context.end_index + 1]
        if axis is not None and axis.data_key is not None and not axis.spec.allow_duplicated_category:
            payload = find_entry_in_array(entries, axis.data_key, active_label)
        else:
            payload = entries[active_index] if 0 <= active_index < len(entries) else None
        if payload is None:
            continue
        out.append(
            TooltipItem(
                series_key=key,
                name=item.name if item.name is not None else (item.data_key if not callable(item.data_key) else key),
                data_key=item.data_key,
                value=get_value_by_data_key(payload, item.data_key),
                payload=payload,
                color=item.color,
                unit=item.unit,
            )
        )
    return tuple(out)


def tooltip_for_index(
    context: TooltipContext,
    active_index: int,
    range_obj: ChartCoordinate | None = None,
    *,
    chart_x: float | None = None,
    chart_y: float | None = None,
) -> TooltipState:
    """Assemble label, payload and cursor coordinate for a known active index."""

    if active_index < 0 or active_index >= len(context.tooltip_ticks):
        return replace(INACTIVE_TOOLTIP, chart_x=chart_x, chart_y=chart_y)
    tick = next((t for t in context.tooltip_ticks if t.index == active_index), context.tooltip_ticks[active_index])
    label = tick.value
    if range_obj is None:
        range_obj = _default_range_obj(context, chart_x, chart_y)
    return TooltipState(
        active_index=active_index,
        active_label=label,
        active_payload=get_tooltip_content(context, active_index, label),
        active_coordinate=get_active_coordinate(context.layout, context.tooltip_ticks, active_index, range_obj),
        is_active=True,
        chart_x=chart_x,
        chart_y=chart_y,
    )


def _default_range_obj(context: TooltipContext, chart_x: float | None, chart_y: float | None) -> ChartCoordinate:
    offset = context.offset
    x = offset.left + offset.width / 2.0 if chart_x is None else chart_x
    y = offset.top + offset.height / 2.0 if chart_y is None else chart_y
    box = context.polar_box
    if box is None:
        return ChartCoordinate(x=x, y=y)
    return ChartCoordinate(
        x=x,
        y=y,
        angle=box.start_angle,
        radius=box.outer_radius,
        cx=box.cx,
        cy=box.cy,
    )


def resolve_tooltip(context: TooltipContext, x: float, y: float) -> TooltipState:
    """Pointer to tooltip state; anything outside the plot resolves inactive."""

    range_obj = in_range(x, y, context)
    if range_obj is None or not context.ordered_tooltip_ticks:
        return replace(INACTIVE_TOOLTIP, chart_x=x, chart_y=y)
    position = calculate_tooltip_pos(range_obj, context.layout)
    if position is None:
        return replace(INACTIVE_TOOLTIP, chart_x=x, chart_y=y)
    active_index = calculate_active_tick_index(
        position,
        context.ordered_tooltip_ticks,
        context.tooltip_ticks,
        context.tooltip_axis,
    )
    return tooltip_for_index(context, active_index, range_obj, chart_x=x, chart_y=y)
