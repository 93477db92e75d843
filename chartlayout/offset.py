from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import numpy as np

from chartlayout.axis import AxisRecord, get_band_size_of_axis, get_ticks_of_axis, get_ticks_of_scale, parse_scale
from chartlayout.config import AxisPadding, ChartConfig, LegendSpec
from chartlayout.coordinates import BoundingBox
from chartlayout.data import get_percent_value


@dataclass(frozen=True)
class Offset:
    """Plot-area rectangle plus the margin each side consumed."""

    top: float
    right: float
    bottom: float
    left: float
    width: float
    height: float
    brush_bottom: float

    def contains(self, x: float, y: float) -> bool:
        return self.left <= x <= self.left + self.width and self.top <= y <= self.top + self.height

    def clamp(self, x: float, y: float) -> tuple[float, float]:
        return (
            min(max(x, self.left), self.left + self.width),
            min(max(y, self.top), self.top + self.height),
        )


def append_offset_of_legend(
    offset: dict[str, float],
    legend: LegendSpec,
    legend_box: BoundingBox | None,
) -> dict[str, float]:
    """Grow the margin on the side the legend is docked to by its measured size."""

    if legend_box is None:
        return offset
    out = dict(offset)
    box_width = legend_box.width or 0.0
    box_height = legend_box.height or 0.0
    if (
        legend.layout == "vertical" or (legend.layout == "horizontal" and legend.vertical_align == "middle")
    ) and legend.align != "center":
        out[legend.align] = out[legend.align] + box_width
    if (
        legend.layout == "horizontal" or (legend.layout == "vertical" and legend.align == "center")
    ) and legend.vertical_align != "middle":
        out[legend.vertical_align] = out[legend.vertical_align] + box_height
    return out


def calculate_offset(
    config: ChartConfig,
    axis_maps: Mapping[str, Mapping[Any, AxisRecord]],
    legend_box: BoundingBox | None = None,
) -> Offset:
    """Margins plus visible non-mirrored axis thickness, brush allowance and legend box.

    Called once without ``legend_box`` and again after the legend is measured.
    """

    margin = config.margin
    offset = {"top": margin.top, "right": margin.right, "bottom": margin.bottom, "left": margin.left}
    for dimension in ("x", "y"):
        for axis in axis_maps.get(dimension, {}).values():
            if axis.mirror or axis.hide:
                continue
            side = axis.orientation
            if side in offset:
                offset[side] += axis.thickness

    brush_bottom = offset["bottom"]
    if config.brush is not None:
        offset["bottom"] += config.brush.height
    if config.legend is not None:
        offset = append_offset_of_legend(offset, config.legend, legend_box)

    return Offset(
        top=offset["top"],
        right=offset["right"],
        bottom=offset["bottom"],
        left=offset["left"],
        width=max(config.width - offset["left"] - offset["right"], 0.0),
        height=max(config.height - offset["top"] - offset["bottom"], 0.0),
        brush_bottom=brush_bottom,
    )


def _calculated_padding(axis: AxisRecord, offset: Offset, bar_category_gap: float | str) -> float:
    if axis.type != "number" or axis.spec.padding not in ("gap", "no-gap"):
        return 0.0
    values = axis.categorical_domain or axis.domain
    nums = sorted(float(v) for v in values if isinstance(v, (int, float)) and not isinstance(v, bool))
    diff = float(axis.domain[-1]) - float(axis.domain[0]) if len(axis.domain) >= 2 else 0.0
    if len(nums) < 2 or diff == 0:
        return 0.0
    smallest = float(np.min(np.diff(np.asarray(nums, dtype=np.float64))))
    if not np.isfinite(smallest):
        return 0.0
    fraction = smallest / diff
    range_width = offset.height if axis.layout == "vertical" else offset.width
    if axis.spec.padding == "gap":
        return fraction * range_width / 2.0
    gap = get_percent_value(bar_category_gap, fraction * range_width)
    half_band = fraction * range_width / 2.0
    if range_width == 0:
        return 0.0
    return half_band - gap - ((half_band - gap) / range_width) * gap


def format_axis_map(
    config: ChartConfig,
    axis_map: Mapping[Any, AxisRecord],
    offset: Offset,
    dimension: str,
    *,
    has_bar: bool,
) -> dict[Any, AxisRecord]:
    """Assign pixel range, scale, ticks, placement and band size to each cartesian axis."""

    steps = {
        "left": offset.left,
        "leftMirror": offset.left,
        "right": config.width - offset.right,
        "rightMirror": config.width - offset.right,
        "top": offset.top,
        "topMirror": offset.top,
        "bottom": config.height - offset.bottom,
        "bottomMirror": config.height - offset.bottom,
    }
    result: dict[Any, AxisRecord] = {}
    for axis_id, axis in axis_map.items():
        padding = axis.spec.padding if isinstance(axis.spec.padding, AxisPadding) else AxisPadding()
        calculated = _calculated_padding(axis, offset, config.bar_category_gap)
        if dimension == "x":
            pixel_range = (
                offset.left + padding.left + calculated,
                offset.left + offset.width - padding.right - calculated,
            )
        elif config.layout == "horizontal":
            pixel_range = (offset.top + offset.height - padding.bottom, offset.top + padding.top)
        else:
            pixel_range = (
                offset.top + padding.top + calculated,
                offset.top + offset.height - padding.bottom - calculated,
            )
        if axis.spec.reversed:
            pixel_range = (pixel_range[1], pixel_range[0])

        scale, real_scale_type = parse_scale(axis, has_bar=has_bar)
        scale.domain = axis.domain
        scale.range = pixel_range
        nice_ticks = get_ticks_of_scale(scale, axis, real_scale_type)

        key = f"{axis.orientation}{'Mirror' if axis.mirror else ''}"
        if dimension == "x":
            need_space = (axis.orientation == "top" and not axis.mirror) or (axis.orientation == "bottom" and axis.mirror)
            x = offset.left
            y = steps.get(key, offset.top) - (axis.spec.height if need_space else 0.0)
            width, height = offset.width, axis.spec.height
        else:
            need_space = (axis.orientation == "left" and not axis.mirror) or (axis.orientation == "right" and axis.mirror)
            x = steps.get(key, offset.left) - (axis.spec.width if need_space else 0.0)
            y = offset.top
            width, height = axis.spec.width, offset.height

        formatted = axis.with_changes(
            scale=scale,
            real_scale_type=real_scale_type,
            nice_ticks=nice_ticks,
            range=pixel_range,
            x=x,
            y=y,
            width=width,
            height=height,
        )
        formatted = formatted.with_changes(
            ticks=tuple(get_ticks_of_axis(formatted, is_grid=True)),
            band_size=get_band_size_of_axis(formatted, None) or 0.0,
        )
        if not axis.hide and key in steps:
            steps[key] += (-1.0 if need_space else 1.0) * axis.thickness
        result[axis_id] = formatted
    return result
