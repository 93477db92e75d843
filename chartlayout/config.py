from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Literal, Sequence, Union

from chartlayout.adapters.normalize import normalize_records


LayoutType = Literal["horizontal", "vertical", "centric", "radial"]
AxisDimension = Literal["x", "y", "angle", "radius"]
AxisType = Literal["number", "category"]
ScaleType = Literal["auto", "linear", "log", "pow", "sqrt", "symlog", "band", "point"]
StackOffsetType = Literal["none", "expand", "wiggle", "silhouette", "sign", "positive"]
SeriesKind = Literal["bar", "line", "area", "scatter", "radial_bar"]
TooltipEventType = Literal["axis", "item"]
Orientation = Literal["top", "bottom", "left", "right", "inner", "outer"]

DataKey = Union[str, int, Callable[[Any], Any]]
AxisId = Union[str, int]
SyncMethod = Union[Literal["index", "value"], Callable[[Sequence[Any], Any], int]]

LAYOUTS = ("horizontal", "vertical", "centric", "radial")
STACK_OFFSETS = ("none", "expand", "wiggle", "silhouette", "sign", "positive")
SERIES_KINDS = ("bar", "line", "area", "scatter", "radial_bar")
BAR_LIKE_KINDS = frozenset({"bar", "radial_bar"})

DEFAULT_THROTTLE_DELAY_S = 1.0 / 60.0
DEFAULT_BRUSH_HEIGHT = 40.0

_DEFAULT_AXIS_TYPE = {"x": "category", "y": "number", "angle": "category", "radius": "number"}
_DEFAULT_ORIENTATION = {"x": "bottom", "y": "left", "angle": "outer", "radius": "right"}
_DEFAULT_LEGEND_TYPE = {"bar": "rect", "line": "line", "area": "line", "scatter": "circle", "radial_bar": "rect"}


@dataclass(frozen=True)
class Margin:
    top: float = 5.0
    right: float = 5.0
    bottom: float = 5.0
    left: float = 5.0


@dataclass(frozen=True)
class AxisPadding:
    left: float = 0.0
    right: float = 0.0
    top: float = 0.0
    bottom: float = 0.0


@dataclass(frozen=True)
class AxisSpec:
    axis_id: AxisId = 0
    dimension: AxisDimension = "x"
    type: AxisType | None = None
    data_key: DataKey | None = None
    domain: Any = None
    allow_data_overflow: bool = False
    allow_duplicated_category: bool = True
    include_hidden: bool = False
    scale: ScaleType = "auto"
    padding: AxisPadding | Literal["gap", "no-gap"] = field(default_factory=AxisPadding)
    orientation: Orientation | None = None
    mirror: bool = False
    hide: bool = False
    reversed: bool = False
    width: float = 60.0
    height: float = 30.0
    tick_count: int = 5
    allow_decimals: bool = True
    ticks: tuple[Any, ...] | None = None
    name: str | None = None
    unit: str | None = None

    def __post_init__(self) -> None:
        if self.dimension not in _DEFAULT_AXIS_TYPE:
            raise ValueError(f"unknown axis dimension: {self.dimension}")
        if self.type is None:
            object.__setattr__(self, "type", _DEFAULT_AXIS_TYPE[self.dimension])
        if self.type not in {"number", "category"}:
            raise ValueError(f"unknown axis type: {self.type}")
        if self.orientation is None:
            object.__setattr__(self, "orientation", _DEFAULT_ORIENTATION[self.dimension])
        if isinstance(self.padding, str) and self.padding not in {"gap", "no-gap"}:
            raise ValueError("padding must be AxisPadding, 'gap' or 'no-gap'")
        if self.tick_count <= 0:
            raise ValueError("tick_count must be > 0")
        if self.width < 0 or self.height < 0:
            raise ValueError("axis width/height must be >= 0")
        if self.domain is not None and not callable(self.domain):
            object.__setattr__(self, "domain", tuple(self.domain))
        if self.ticks is not None:
            object.__setattr__(self, "ticks", tuple(self.ticks))


@dataclass(frozen=True)
class ErrorBarSpec:
    data_key: DataKey
    direction: Literal["x", "y"] | None = None


@dataclass(frozen=True)
class SeriesSpec:
    data_key: DataKey
    kind: SeriesKind = "line"
    key: str | None = None
    x_axis_id: AxisId = 0
    y_axis_id: AxisId = 0
    angle_axis_id: AxisId = 0
    radius_axis_id: AxisId = 0
    data: Any = None
    stack_id: str | int | None = None
    hide: bool = False
    name: str | None = None
    color: str | None = None
    unit: str | None = None
    legend_type: str | None = None
    bar_size: float | str | None = None
    max_bar_size: float | None = None
    min_point_size: float = 0.0
    connect_nulls: bool = False
    base_value: float | Literal["auto", "dataMin", "dataMax"] = "auto"
    error_bars: tuple[ErrorBarSpec, ...] = ()

    def __post_init__(self) -> None:
        if self.kind not in SERIES_KINDS:
            raise ValueError(f"unknown series kind: {self.kind}")
        if self.data is not None:
            object.__setattr__(self, "data", normalize_records(self.data, label="series data"))
        if self.legend_type is None:
            object.__setattr__(self, "legend_type", _DEFAULT_LEGEND_TYPE[self.kind])
        if self.max_bar_size is not None and self.max_bar_size < 0:
            raise ValueError("max_bar_size must be >= 0")
        object.__setattr__(self, "error_bars", tuple(self.error_bars))

    @property
    def is_bar_like(self) -> bool:
        return self.kind in BAR_LIKE_KINDS

    def axis_id_for(self, dimension: str) -> AxisId:
        return getattr(self, f"{dimension}_axis_id")


@dataclass(frozen=True)
class ReferenceElement:
    """Annotation that can force an axis domain to include its coordinates."""

    kind: Literal["line", "area", "dot"] = "line"
    x_axis_id: AxisId = 0
    y_axis_id: AxisId = 0
    x: Any = None
    y: Any = None
    x1: Any = None
    x2: Any = None
    y1: Any = None
    y2: Any = None
    if_overflow: Literal["discard", "hidden", "visible", "extendDomain"] = "discard"
    always_show: bool = False

    @property
    def extends_domain(self) -> bool:
        return self.always_show or self.if_overflow == "extendDomain"


@dataclass(frozen=True)
class BrushSpec:
    height: float = DEFAULT_BRUSH_HEIGHT
    start_index: int | None = None
    end_index: int | None = None

    def __post_init__(self) -> None:
        if self.height < 0:
            raise ValueError("brush height must be >= 0")


@dataclass(frozen=True)
class LegendSpec:
    layout: Literal["horizontal", "vertical"] = "horizontal"
    align: Literal["left", "center", "right"] = "center"
    vertical_align: Literal["top", "middle", "bottom"] = "bottom"
    icon_type: str | None = None
    inactive_color: str = "#ccc"


@dataclass(frozen=True)
class TooltipSpec:
    event_type: TooltipEventType = "axis"
    trigger: Literal["hover", "click"] = "hover"
    default_index: int | None = None


@dataclass(frozen=True)
class PolarSpec:
    cx: float | str = "50%"
    cy: float | str = "50%"
    inner_radius: float | str = 0.0
    outer_radius: float | str = "80%"
    start_angle: float = 0.0
    end_angle: float = 360.0


@dataclass(frozen=True)
class ChartConfig:
    width: float
    height: float
    data: Any = ()
    axes: tuple[AxisSpec, ...] = ()
    series: tuple[SeriesSpec, ...] = ()
    layout: LayoutType = "horizontal"
    margin: Margin = field(default_factory=Margin)
    stack_offset: StackOffsetType = "none"
    reverse_stack_order: bool = False
    bar_category_gap: float | str = "10%"
    bar_gap: float | str = 4.0
    bar_size: float | str | None = None
    max_bar_size: float | None = None
    brush: BrushSpec | None = None
    legend: LegendSpec | None = None
    tooltip: TooltipSpec | None = field(default_factory=TooltipSpec)
    reference_elements: tuple[ReferenceElement, ...] = ()
    polar: PolarSpec = field(default_factory=PolarSpec)
    sync_id: str | int | None = None
    sync_method: SyncMethod = "index"
    throttle_delay_s: float = DEFAULT_THROTTLE_DELAY_S
    default_show_tooltip: bool = False

    def __post_init__(self) -> None:
        if self.layout not in LAYOUTS:
            raise ValueError(f"unknown layout: {self.layout}")
        if self.stack_offset not in STACK_OFFSETS:
            raise ValueError(f"unknown stack offset: {self.stack_offset}")
        if self.throttle_delay_s < 0:
            raise ValueError("throttle_delay_s must be >= 0")
        if not callable(self.sync_method) and self.sync_method not in {"index", "value"}:
            raise ValueError("sync_method must be 'index', 'value' or a callable")
        object.__setattr__(self, "data", normalize_records(self.data))
        object.__setattr__(self, "axes", tuple(self.axes))
        object.__setattr__(self, "series", tuple(self.series))
        object.__setattr__(self, "reference_elements", tuple(self.reference_elements))

    @property
    def is_polar(self) -> bool:
        return self.layout in {"centric", "radial"}

    def axis_dimensions(self) -> tuple[AxisDimension, AxisDimension]:
        if self.is_polar:
            return ("angle", "radius")
        return ("x", "y")

    def axes_for(self, dimension: str) -> tuple[AxisSpec, ...]:
        return tuple(axis for axis in self.axes if axis.dimension == dimension)
