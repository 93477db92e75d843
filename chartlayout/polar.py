from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Mapping

from chartlayout.axis import AxisRecord, get_ticks_of_axis, get_ticks_of_scale, parse_scale
from chartlayout.config import ChartConfig
from chartlayout.data import get_percent_value
from chartlayout.offset import Offset


RADIAN = math.pi / 180.0


@dataclass(frozen=True)
class PolarViewBox:
    cx: float
    cy: float
    inner_radius: float
    outer_radius: float
    start_angle: float
    end_angle: float


def polar_to_cartesian(cx: float, cy: float, radius: float, angle: float) -> tuple[float, float]:
    """Angles are degrees, counter-clockwise from 3 o'clock, with y growing downwards."""

    return (cx + math.cos(-RADIAN * angle) * radius, cy + math.sin(-RADIAN * angle) * radius)


def get_angle_of_point(x: float, y: float, cx: float, cy: float) -> tuple[float, float]:
    """Return ``(radius, angle)`` of a point; angle in degrees in ``[0, 360)``."""

    radius = math.hypot(x - cx, y - cy)
    if radius <= 0:
        return (radius, 0.0)
    angle = math.acos((x - cx) / radius)
    if y > cy:
        angle = 2.0 * math.pi - angle
    return (radius, angle / RADIAN)


def format_angle_of_sector(start_angle: float, end_angle: float) -> tuple[float, float]:
    """Shift a sector so that its lower bound lies in ``[0, 360)``."""

    start_cnt = math.floor(start_angle / 360.0)
    end_cnt = math.floor(end_angle / 360.0)
    min_cnt = min(start_cnt, end_cnt)
    return (start_angle - min_cnt * 360.0, end_angle - min_cnt * 360.0)


def _reverse_formatted_angle(angle: float, start_angle: float, end_angle: float) -> float:
    start_cnt = math.floor(start_angle / 360.0)
    end_cnt = math.floor(end_angle / 360.0)
    return angle + min(start_cnt, end_cnt) * 360.0


def in_range_of_sector(x: float, y: float, sector: PolarViewBox) -> tuple[float, float] | None:
    """Return ``(radius, angle)`` when the point lies in the annular sector, else ``None``."""

    radius, angle = get_angle_of_point(x, y, sector.cx, sector.cy)
    if radius < sector.inner_radius or radius > sector.outer_radius:
        return None
    if radius == 0:
        return (radius, angle)
    start, end = format_angle_of_sector(sector.start_angle, sector.end_angle)
    formatted = angle
    if start <= end:
        while formatted > end:
            formatted -= 360.0
        while formatted < start:
            formatted += 360.0
        inside = start <= formatted <= end
    else:
        while formatted > start:
            formatted -= 360.0
        while formatted < end:
            formatted += 360.0
        inside = end <= formatted <= start
    if not inside:
        return None
    return (radius, _reverse_formatted_angle(formatted, sector.start_angle, sector.end_angle))


def get_max_radius(width: float, height: float, offset: Offset) -> float:
    return min(abs(width - offset.left - offset.right), abs(height - offset.top - offset.bottom)) / 2.0


def polar_view_box(config: ChartConfig, offset: Offset) -> PolarViewBox:
    polar = config.polar
    max_radius = get_max_radius(config.width, config.height, offset)
    return PolarViewBox(
        cx=get_percent_value(polar.cx, config.width, config.width / 2.0),
        cy=get_percent_value(polar.cy, config.height, config.height / 2.0),
        inner_radius=get_percent_value(polar.inner_radius, max_radius, 0.0),
        outer_radius=get_percent_value(polar.outer_radius, max_radius, max_radius * 0.8),
        start_angle=polar.start_angle,
        end_angle=polar.end_angle,
    )


def format_polar_axis_map(
    config: ChartConfig,
    axis_map: Mapping[Any, AxisRecord],
    offset: Offset,
    dimension: str,
    *,
    has_bar: bool,
) -> dict[Any, AxisRecord]:
    """Angle axes span ``[start_angle, end_angle]``, radius axes ``[inner, outer]`` radius."""

    box = polar_view_box(config, offset)
    result: dict[Any, AxisRecord] = {}
    for axis_id, axis in axis_map.items():
        if dimension == "angle":
            pixel_range = (box.start_angle, box.end_angle)
        else:
            pixel_range = (box.inner_radius, box.outer_radius)
        if axis.spec.reversed:
            pixel_range = (pixel_range[1], pixel_range[0])
        scale, real_scale_type = parse_scale(axis, has_bar=has_bar)
        scale.domain = axis.domain
        scale.range = pixel_range
        nice_ticks = get_ticks_of_scale(scale, axis, real_scale_type)
        formatted = axis.with_changes(
            scale=scale,
            real_scale_type=real_scale_type,
            nice_ticks=nice_ticks,
            range=pixel_range,
            cx=box.cx,
            cy=box.cy,
            inner_radius=box.inner_radius,
            outer_radius=box.outer_radius,
            start_angle=box.start_angle,
            end_angle=box.end_angle,
        )
        formatted = formatted.with_changes(
            ticks=tuple(get_ticks_of_axis(formatted, is_grid=True)),
            band_size=scale.bandwidth(),
        )
        result[axis_id] = formatted
    return result
