from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

import numpy as np

from chartlayout.axis import AxisRecord, Tick, get_band_size_of_axis, get_ticks_of_axis
from chartlayout.config import ChartConfig, SeriesSpec
from chartlayout.data import (
    get_axis_names_by_layout,
    get_displayed_data,
    get_value_by_data_key,
    is_nil,
    is_number,
)
from chartlayout.errors import ChartConfigError
from chartlayout.polar import polar_to_cartesian
from chartlayout.positioning import (
    BarPosition,
    find_position_of_bar,
    get_bar_position,
    get_bar_size_list,
    recenter_bar_positions,
)
from chartlayout.scales import ScaleHelper
from chartlayout.stacking import AxisStackGroups, get_stacked_data_of_item


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class BarRect:
    index: int
    x: float | None
    y: float | None
    width: float
    height: float
    value: Any
    payload: Any
    background: Rect | None = None


@dataclass(frozen=True)
class ItemPoint:
    index: int
    x: float | None
    y: float | None
    value: Any
    payload: Any

    @property
    def is_defined(self) -> bool:
        return self.x is not None and self.y is not None


@dataclass(frozen=True)
class Sector:
    index: int
    cx: float
    cy: float
    inner_radius: float
    outer_radius: float
    start_angle: float
    end_angle: float
    value: Any
    payload: Any


@dataclass(frozen=True)
class FormattedItem:
    """Per-pass geometry for one visible series, matched across passes by ``key``."""

    key: str
    item: SeriesSpec
    axes: Mapping[str, AxisRecord]
    data: tuple[Any, ...]
    bar_position: BarPosition | None = None
    rects: tuple[BarRect, ...] = ()
    points: tuple[ItemPoint, ...] = ()
    segments: tuple[tuple[ItemPoint, ...], ...] = ()
    base_line: tuple[ItemPoint, ...] | float | None = None
    sectors: tuple[Sector, ...] = ()

    @property
    def kind(self) -> str:
        return self.item.kind


def item_key(item: SeriesSpec, index: int) -> str:
    return item.key if item.key is not None else f"{item.kind}-{index}"


def _contiguous_true_runs(mask: np.ndarray) -> list[tuple[int, int]]:
    idx = np.flatnonzero(mask)
    if idx.size == 0:
        return []
    runs: list[tuple[int, int]] = []
    start = int(idx[0])
    prev = int(idx[0])
    for v in idx[1:]:
        iv = int(v)
        if iv == prev + 1:
            prev = iv
            continue
        runs.append((start, prev + 1))
        start = iv
        prev = iv
    runs.append((start, prev + 1))
    return runs


def line_segments(points: Sequence[ItemPoint], connect_nulls: bool) -> tuple[tuple[ItemPoint, ...], ...]:
    """Split a polyline at undefined points, or drop them when ``connect_nulls``."""

    if connect_nulls:
        defined = tuple(p for p in points if p.is_defined)
        return (defined,) if defined else ()
    mask = np.asarray([p.is_defined for p in points], dtype=bool)
    return tuple(tuple(points[start:end]) for start, end in _contiguous_true_runs(mask))


def truncate_by_domain(value: Sequence[float], domain: Sequence[Any]) -> tuple[float, float]:
    if len(domain) < 2 or not (is_number(domain[0]) and is_number(domain[1])):
        return (value[0], value[1])
    lo, hi = min(domain[0], domain[1]), max(domain[0], domain[1])
    first, last = value[0], value[1]
    if not is_number(first) or first < lo:
        first = lo
    if not is_number(last) or last > hi:
        last = hi
    if first > hi:
        first = hi
    if last < lo:
        last = lo
    return (float(first), float(last))


def get_base_value_of_bar(numeric_axis: AxisRecord) -> Any:
    domain = numeric_axis.scale.domain
    if numeric_axis.type == "number":
        lo, hi = min(domain[0], domain[-1]), max(domain[0], domain[-1])
        if lo <= 0 <= hi:
            return 0.0
        if hi < 0:
            return hi
        return lo
    return domain[0] if domain else None


def get_base_value_of_area(item: SeriesSpec, numeric_axis: AxisRecord) -> Any:
    base = item.base_value
    if is_number(base):
        return float(base)
    domain = numeric_axis.scale.domain
    if numeric_axis.type == "number":
        lo, hi = min(domain[0], domain[-1]), max(domain[0], domain[-1])
        if base == "dataMin":
            return lo
        if base == "dataMax":
            return hi
        return hi if hi < 0 else max(lo, 0.0)
    if base == "dataMax":
        return domain[-1]
    return domain[0]


def get_cate_coordinate_of_bar(
    axis: AxisRecord, ticks: Sequence[Tick], band_size: float, offset: float, entry: Any, index: int
) -> float | None:
    if axis.type == "category":
        return ticks[index].coordinate + offset if index < len(ticks) else None
    fallback = axis.domain[index] if index < len(axis.domain) else None
    value = get_value_by_data_key(entry, axis.data_key, fallback)
    if is_nil(value):
        return None
    coord = axis.scale(value)
    return None if coord is None else coord - band_size / 2.0 + offset


def get_cate_coordinate_of_line(
    axis: AxisRecord,
    ticks: Sequence[Tick],
    band_size: float,
    entry: Any,
    index: int,
    data_key: Any = None,
) -> float | None:
    if axis.type == "category":
        if not axis.spec.allow_duplicated_category and axis.data_key is not None:
            label = get_value_by_data_key(entry, axis.data_key)
            if not is_nil(label):
                matched = next((t for t in ticks if t.value == label), None)
                if matched is not None:
                    return matched.coordinate + band_size / 2.0
        return ticks[index].coordinate + band_size / 2.0 if index < len(ticks) else None
    value = get_value_by_data_key(entry, data_key if data_key is not None else axis.data_key)
    if is_nil(value):
        return None
    return axis.scale(value)


def _scaled(axis: AxisRecord, value: Any) -> float | None:
    if is_nil(value):
        return None
    coord = axis.scale(value)
    if coord is None or not np.isfinite(coord):
        return None
    return float(coord)


def _min_point_delta(length: float, min_point_size: float) -> float:
    if abs(min_point_size) > 0 and abs(length) < abs(min_point_size):
        return float(np.sign(length or min_point_size)) * (abs(min_point_size) - abs(length))
    return 0.0


def _axis_size(axis: AxisRecord) -> float:
    if axis.dimension == "x":
        return axis.width
    if axis.dimension == "y":
        return axis.height
    if axis.range is None:
        return 0.0
    return abs(axis.range[1] - axis.range[0])


def _compose_bars(
    config: ChartConfig,
    item: SeriesSpec,
    data: Sequence[Any],
    axes: Mapping[str, AxisRecord],
    position: BarPosition,
    band_size: float,
    stacked: np.ndarray | None,
    start_index: int,
) -> tuple[BarRect, ...]:
    horizontal = config.layout == "horizontal"
    numeric_axis = axes["y"] if horizontal else axes["x"]
    cate_axis = axes["x"] if horizontal else axes["y"]
    cate_ticks = get_ticks_of_axis(cate_axis)
    base_value = get_base_value_of_bar(numeric_axis)
    stacked_domain = numeric_axis.scale.domain if stacked is not None else None
    rects: list[BarRect] = []
    for index, entry in enumerate(data):
        if stacked is not None:
            row = start_index + index
            raw = stacked[row] if row < len(stacked) else (np.nan, np.nan)
            value: Any = truncate_by_domain(raw, stacked_domain)
        else:
            raw_value = get_value_by_data_key(entry, item.data_key)
            value = tuple(raw_value) if isinstance(raw_value, (list, tuple)) else (base_value, raw_value)
        base_px = _scaled(numeric_axis, value[0])
        value_px = _scaled(numeric_axis, value[1])
        cate = get_cate_coordinate_of_bar(cate_axis, cate_ticks, band_size, position.offset, entry, index)
        length = 0.0 if base_px is None or value_px is None else base_px - value_px
        if horizontal:
            y = value_px if value_px is not None else base_px
            delta = _min_point_delta(length, item.min_point_size)
            if y is not None:
                y -= delta
            height = length + delta
            rects.append(
                BarRect(
                    index=index,
                    x=cate,
                    y=y,
                    width=position.size,
                    height=height,
                    value=value if stacked is not None else value[1],
                    payload=entry,
                    background=None if cate is None else Rect(cate, numeric_axis.y, position.size, numeric_axis.height),
                )
            )
        else:
            width = -length
            width += _min_point_delta(width, item.min_point_size)
            rects.append(
                BarRect(
                    index=index,
                    x=base_px,
                    y=cate,
                    width=width,
                    height=position.size,
                    value=value if stacked is not None else value[1],
                    payload=entry,
                    background=None if cate is None else Rect(numeric_axis.x, cate, numeric_axis.width, position.size),
                )
            )
    return tuple(rects)


def _compose_points(
    config: ChartConfig,
    item: SeriesSpec,
    data: Sequence[Any],
    axes: Mapping[str, AxisRecord],
    band_size: float,
    stacked: np.ndarray | None,
    start_index: int,
) -> tuple[tuple[ItemPoint, ...], tuple[ItemPoint, ...] | float | None]:
    """Line and area vertices; areas also get their base line."""

    horizontal = config.layout == "horizontal"
    numeric_axis = axes["y"] if horizontal else axes["x"]
    cate_axis = axes["x"] if horizontal else axes["y"]
    cate_ticks = get_ticks_of_axis(cate_axis)
    is_area = item.kind == "area"
    base_value = get_base_value_of_area(item, numeric_axis) if is_area else None
    is_range = False
    points: list[ItemPoint] = []
    for index, entry in enumerate(data):
        raw_value = get_value_by_data_key(entry, item.data_key)
        if stacked is not None and is_area:
            row = start_index + index
            pair = stacked[row] if row < len(stacked) else (np.nan, np.nan)
            value: Any = (float(pair[0]), float(pair[1]))
            top = None if is_nil(raw_value) else value[1]
        elif is_area and isinstance(raw_value, (list, tuple)):
            is_range = True
            value = tuple(raw_value)
            top = value[1] if len(value) > 1 else None
        elif is_area:
            value = (base_value, raw_value)
            top = raw_value
        else:
            value = raw_value
            top = raw_value
        cate = get_cate_coordinate_of_line(cate_axis, cate_ticks, band_size, entry, index)
        numeric = _scaled(numeric_axis, top)
        if horizontal:
            points.append(ItemPoint(index=index, x=cate, y=numeric, value=value, payload=entry))
        else:
            points.append(ItemPoint(index=index, x=numeric, y=cate, value=value, payload=entry))

    if not is_area:
        return tuple(points), None
    if stacked is not None or is_range:
        base_line = []
        for point in points:
            low = point.value[0] if isinstance(point.value, tuple) else None
            low_px = _scaled(numeric_axis, low)
            if horizontal:
                base_line.append(ItemPoint(index=point.index, x=point.x, y=low_px, value=low, payload=point.payload))
            else:
                base_line.append(ItemPoint(index=point.index, x=low_px, y=point.y, value=low, payload=point.payload))
        return tuple(points), tuple(base_line)
    return tuple(points), _scaled(numeric_axis, base_value)


def _compose_scatter(
    item: SeriesSpec,
    data: Sequence[Any],
    axes: Mapping[str, AxisRecord],
) -> tuple[ItemPoint, ...]:
    x_axis = axes["x"]
    y_axis = axes["y"]
    x_helper = ScaleHelper(x_axis.scale)
    y_helper = ScaleHelper(y_axis.scale)
    x_ticks = get_ticks_of_axis(x_axis)
    y_ticks = get_ticks_of_axis(y_axis)
    points: list[ItemPoint] = []
    for index, entry in enumerate(data):
        x_value = get_value_by_data_key(entry, x_axis.data_key)
        y_key = y_axis.data_key if y_axis.data_key is not None else item.data_key
        y_value = get_value_by_data_key(entry, y_key)
        if x_axis.data_key is None and x_axis.type == "category":
            cx = get_cate_coordinate_of_line(x_axis, x_ticks, x_helper.bandwidth(), entry, index)
        else:
            cx = x_helper.apply(x_value, band_aware=True)
        if y_axis.data_key is None and y_axis.type == "category":
            cy = get_cate_coordinate_of_line(y_axis, y_ticks, y_helper.bandwidth(), entry, index)
        else:
            cy = y_helper.apply(y_value, band_aware=True)
        points.append(ItemPoint(index=index, x=cx, y=cy, value=(x_value, y_value), payload=entry))
    return tuple(points)


def _compose_sectors(
    config: ChartConfig,
    item: SeriesSpec,
    data: Sequence[Any],
    axes: Mapping[str, AxisRecord],
    position: BarPosition,
    band_size: float,
    stacked: np.ndarray | None,
    start_index: int,
) -> tuple[Sector, ...]:
    radial = config.layout == "radial"
    angle_axis = axes["angle"]
    radius_axis = axes["radius"]
    numeric_axis = angle_axis if radial else radius_axis
    cate_axis = radius_axis if radial else angle_axis
    cate_ticks = get_ticks_of_axis(cate_axis)
    base_value = get_base_value_of_bar(numeric_axis)
    stacked_domain = numeric_axis.scale.domain if stacked is not None else None
    cx = angle_axis.cx if angle_axis.cx is not None else 0.0
    cy = angle_axis.cy if angle_axis.cy is not None else 0.0
    sectors: list[Sector] = []
    for index, entry in enumerate(data):
        if stacked is not None:
            row = start_index + index
            value: Any = truncate_by_domain(stacked[row] if row < len(stacked) else (np.nan, np.nan), stacked_domain)
        else:
            value = (base_value, get_value_by_data_key(entry, item.data_key))
        cate = get_cate_coordinate_of_bar(cate_axis, cate_ticks, band_size, position.offset, entry, index)
        if cate is None:
            continue
        low = _scaled(numeric_axis, value[0])
        high = _scaled(numeric_axis, value[1])
        low = 0.0 if low is None else low
        high = low if high is None else high
        if radial:
            inner, outer = cate, cate + position.size
            start, end = low, high
            end += _min_point_delta(end - start, item.min_point_size)
        else:
            inner, outer = low, high
            start, end = cate, cate + position.size
            outer += _min_point_delta(outer - inner, item.min_point_size)
        sectors.append(
            Sector(
                index=index,
                cx=cx,
                cy=cy,
                inner_radius=inner,
                outer_radius=outer,
                start_angle=start,
                end_angle=end,
                value=value if stacked is not None else value[1],
                payload=entry,
            )
        )
    return tuple(sectors)


def _compose_polar_points(
    config: ChartConfig,
    item: SeriesSpec,
    data: Sequence[Any],
    axes: Mapping[str, AxisRecord],
) -> tuple[ItemPoint, ...]:
    angle_axis = axes["angle"]
    radius_axis = axes["radius"]
    cx = angle_axis.cx or 0.0
    cy = angle_axis.cy or 0.0
    angle_ticks = get_ticks_of_axis(angle_axis)
    radius_ticks = get_ticks_of_axis(radius_axis)
    points: list[ItemPoint] = []
    for index, entry in enumerate(data):
        value = get_value_by_data_key(entry, item.data_key)
        if config.layout == "centric":
            angle = get_cate_coordinate_of_line(angle_axis, angle_ticks, 0.0, entry, index)
            radius = _scaled(radius_axis, value)
        else:
            radius = get_cate_coordinate_of_line(radius_axis, radius_ticks, radius_axis.band_size, entry, index)
            angle = _scaled(angle_axis, value)
        if angle is None or radius is None:
            points.append(ItemPoint(index=index, x=None, y=None, value=value, payload=entry))
            continue
        x, y = polar_to_cartesian(cx, cy, radius, angle)
        points.append(ItemPoint(index=index, x=x, y=y, value=value, payload=entry))
    return tuple(points)


def resolve_item_axes(
    config: ChartConfig,
    item: SeriesSpec,
    index: int,
    axis_maps: Mapping[str, Mapping[Any, AxisRecord]],
) -> dict[str, AxisRecord]:
    axes: dict[str, AxisRecord] = {}
    for dimension in config.axis_dimensions():
        axis_id = item.axis_id_for(dimension)
        axis = axis_maps.get(dimension, {}).get(axis_id)
        if axis is None:
            raise ChartConfigError(
                f"series {item_key(item, index)!r} references {dimension}-axis {axis_id!r}, which is not declared"
            )
        axes[dimension] = axis
    return axes


def get_formatted_items(
    config: ChartConfig,
    axis_maps: Mapping[str, Mapping[Any, AxisRecord]],
    stack_groups: Mapping[Any, AxisStackGroups] | None,
    start_index: int,
    end_index: int,
) -> tuple[FormattedItem, ...]:
    """Compose geometry for every visible series from finalized axes."""

    numeric_dim, cate_dim = get_axis_names_by_layout(config.layout)
    formatted: list[FormattedItem] = []
    for index, item in enumerate(config.series):
        axes = resolve_item_axes(config, item, index, axis_maps)
        if item.hide:
            continue
        cate_axis = axes[cate_dim]
        numeric_axis = axes[numeric_dim]
        cate_ticks = get_ticks_of_axis(cate_axis, is_all=True)
        band_size = get_band_size_of_axis(cate_axis, cate_ticks) or 0.0
        data = get_displayed_data(config.data, [item], start_index, end_index)

        stacked = None
        parent = (stack_groups or {}).get(numeric_axis.axis_id)
        if parent is not None and parent.has_stack:
            stacked = get_stacked_data_of_item(item, parent.stack_groups)

        position = None
        if item.is_bar_like:
            max_bar_size = item.max_bar_size if item.max_bar_size is not None else config.max_bar_size
            bar_band_size = get_band_size_of_axis(cate_axis, cate_ticks, is_bar=True)
            if bar_band_size is None:
                bar_band_size = max_bar_size or 0.0
            size_list = get_bar_size_list(config.bar_size, stack_groups, _axis_size(cate_axis), cate_dim)
            positions = get_bar_position(
                config.bar_gap,
                config.bar_category_gap,
                bar_band_size if bar_band_size != band_size else band_size,
                size_list.get(cate_axis.axis_id, []),
                max_bar_size,
            )
            if positions and bar_band_size != band_size:
                positions = recenter_bar_positions(positions, bar_band_size)
            position = find_position_of_bar(positions, item) or BarPosition(offset=0.0, size=0.0)

        key = item_key(item, index)
        if config.is_polar:
            if item.is_bar_like:
                sectors = _compose_sectors(config, item, data, axes, position, band_size, stacked, start_index)
                formatted.append(FormattedItem(key, item, axes, tuple(data), bar_position=position, sectors=sectors))
            else:
                points = _compose_polar_points(config, item, data, axes)
                formatted.append(
                    FormattedItem(
                        key, item, axes, tuple(data), points=points, segments=line_segments(points, item.connect_nulls)
                    )
                )
            continue

        if item.kind in ("bar", "radial_bar"):
            rects = _compose_bars(config, item, data, axes, position, band_size, stacked, start_index)
            formatted.append(FormattedItem(key, item, axes, tuple(data), bar_position=position, rects=rects))
        elif item.kind == "scatter":
            points = _compose_scatter(item, data, axes)
            formatted.append(FormattedItem(key, item, axes, tuple(data), points=points))
        else:
            points, base_line = _compose_points(config, item, data, axes, band_size, stacked, start_index)
            formatted.append(
                FormattedItem(
                    key,
                    item,
                    axes,
                    tuple(data),
                    points=points,
                    segments=line_segments(points, item.connect_nulls),
                    base_line=base_line,
                )
            )
    return tuple(formatted)
