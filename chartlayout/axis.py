from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Sequence

import numpy as np

from chartlayout.config import AxisDimension, AxisSpec, LayoutType
from chartlayout.scales import (
    BandScale,
    LinearScale,
    PointScale,
    Scale,
    create_scale,
    format_ticks_for_axis,
    get_nice_tick_values,
    get_tick_values_fixed_domain,
)


@dataclass(frozen=True)
class Tick:
    value: Any
    coordinate: float
    index: int | None = None
    offset: float = 0.0


@dataclass(frozen=True)
class AxisRecord:
    """A resolved axis: spec options plus domain, and after layout, scale and geometry."""

    spec: AxisSpec
    layout: LayoutType
    domain: tuple[Any, ...]
    original_domain: Any = None
    categorical_domain: tuple[Any, ...] | None = None
    duplicate_domain: tuple[Any, ...] | None = None
    is_categorical: bool = False
    implicit: bool = False
    orientation: str | None = None
    hide: bool = False
    scale: Scale | None = field(default=None, compare=False)
    real_scale_type: str | None = None
    nice_ticks: tuple[float, ...] | None = None
    ticks: tuple[Tick, ...] = ()
    range: tuple[float, float] | None = None
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    band_size: float = 0.0
    cx: float | None = None
    cy: float | None = None
    inner_radius: float | None = None
    outer_radius: float | None = None
    start_angle: float | None = None
    end_angle: float | None = None

    @property
    def axis_id(self) -> Any:
        return self.spec.axis_id

    @property
    def dimension(self) -> AxisDimension:
        return self.spec.dimension

    @property
    def type(self) -> str:
        return self.spec.type  # type: ignore[return-value]

    @property
    def data_key(self) -> Any:
        return self.spec.data_key

    @property
    def mirror(self) -> bool:
        return self.spec.mirror

    @property
    def thickness(self) -> float:
        """Pixels an axis consumes next to the plot area."""

        return self.spec.height if self.dimension == "x" else self.spec.width

    def with_changes(self, **changes: Any) -> "AxisRecord":
        return replace(self, **changes)

    def tick_labels(self) -> list[str]:
        if self.type == "number" and self.ticks and all(isinstance(t.value, (int, float)) for t in self.ticks):
            return format_ticks_for_axis([float(t.value) for t in self.ticks])
        return ["" if t.value is None else str(t.value) for t in self.ticks]


def parse_scale(axis: AxisRecord, *, has_bar: bool) -> tuple[Scale, str]:
    """Pick the scale kind for an axis (``auto`` resolves by layout, type and bar presence)."""

    requested = axis.spec.scale
    if requested != "auto":
        return create_scale(requested), requested
    if axis.layout == "radial" and axis.dimension == "radius":
        return BandScale(), "band"
    if axis.layout == "radial" and axis.dimension == "angle":
        return LinearScale(), "linear"
    if axis.layout == "centric" and axis.dimension == "angle" and axis.type == "category":
        return BandScale(), "band"
    if axis.type == "category":
        if has_bar:
            return BandScale(), "band"
        return PointScale(), "point"
    return LinearScale(), "linear"


def get_ticks_of_scale(scale: Scale, axis: AxisRecord, real_scale_type: str) -> tuple[float, ...] | None:
    """Compute nice ticks for linear number axes; auto bounds widen the scale domain."""

    if real_scale_type != "linear" or axis.type != "number" or not scale.is_continuous:
        return None
    domain = scale.domain
    original = axis.original_domain
    auto_bounds = original is None or (
        not callable(original) and any(bound == "auto" for bound in tuple(original)[:2])
    )
    if auto_bounds:
        values = get_nice_tick_values(domain, axis.spec.tick_count, axis.spec.allow_decimals)
        lo, hi = min(values[0], values[-1]), max(values[0], values[-1])
        if domain[0] <= domain[1]:
            scale.domain = (min(lo, domain[0]), max(hi, domain[1]))
        else:
            scale.domain = (max(hi, domain[0]), min(lo, domain[1]))
        return tuple(values)
    return tuple(get_tick_values_fixed_domain(domain, axis.spec.tick_count, axis.spec.allow_decimals))


def get_ticks_of_axis(axis: AxisRecord, *, is_grid: bool = False, is_all: bool = False) -> list[Tick]:
    """Tick list of a formatted axis.

    ``is_all`` yields one tick per domain entry (used for tooltip lookup),
    ``is_grid`` honours explicit/nice tick values; category ticks are shifted
    to the band center in both modes.
    """

    scale = axis.scale
    if scale is None:
        return []
    offset = 0.0
    if (is_grid or is_all) and axis.type == "category" and not scale.is_continuous:
        offset = scale.bandwidth() / 2.0
    if axis.dimension == "angle":
        offset = 0.0

    explicit = axis.spec.ticks or axis.nice_ticks
    if is_grid and explicit:
        out: list[Tick] = []
        for value in explicit:
            lookup = axis.duplicate_domain.index(value) if axis.duplicate_domain and value in axis.duplicate_domain else value
            coord = scale(lookup)
            if coord is not None and np.isfinite(coord):
                out.append(Tick(value=value, coordinate=coord + offset, offset=offset))
        return out

    if axis.is_categorical and axis.categorical_domain:
        out = []
        for index, value in enumerate(axis.categorical_domain):
            coord = scale(value)
            out.append(Tick(value=value, coordinate=(np.nan if coord is None else coord + offset), index=index, offset=offset))
        return out

    if scale.is_continuous and not is_all:
        return [Tick(value=v, coordinate=scale(v) + offset, offset=offset) for v in scale.ticks(axis.spec.tick_count)]

    out = []
    for index, value in enumerate(scale.domain):
        coord = scale(value)
        label = axis.duplicate_domain[value] if axis.duplicate_domain is not None else value
        out.append(Tick(value=label, coordinate=(np.nan if coord is None else coord + offset), index=index, offset=offset))
    return out


def get_band_size_of_axis(axis: AxisRecord | None, ticks: Sequence[Tick] | None, *, is_bar: bool = False) -> float | None:
    if axis is not None and axis.scale is not None and not axis.scale.is_continuous:
        bandwidth = axis.scale.bandwidth()
        if not is_bar or bandwidth > 0:
            return bandwidth
    if axis is not None and ticks and len(ticks) >= 2:
        coords = sorted(float(t.coordinate) for t in ticks if t.coordinate is not None and np.isfinite(t.coordinate))
        if len(coords) >= 2:
            return float(np.min(np.diff(np.asarray(coords, dtype=np.float64))))
        return 0.0
    return None if is_bar else 0.0
