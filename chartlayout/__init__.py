from chartlayout.api import chart
from chartlayout.axis import AxisRecord, Tick
from chartlayout.brush import BrushWindow
from chartlayout.chart import CategoricalChart, ChartState, MouseInfo, PointerEvent
from chartlayout.config import (
    AxisPadding,
    AxisSpec,
    BrushSpec,
    ChartConfig,
    ErrorBarSpec,
    LegendSpec,
    Margin,
    PolarSpec,
    ReferenceElement,
    SeriesSpec,
    TooltipSpec,
)
from chartlayout.coordinates import BoundingBox, PointerTransform
from chartlayout.errors import ChartConfigError, ChartDataError
from chartlayout.offset import Offset
from chartlayout.sync import DEFAULT_SYNC_CHANNEL, SyncChannel, SyncCoordinator, SyncMessage
from chartlayout.throttle import PointerThrottle
from chartlayout.tooltip import ChartCoordinate, TooltipItem, TooltipState

__all__ = [
    "AxisPadding",
    "AxisRecord",
    "AxisSpec",
    "BoundingBox",
    "BrushSpec",
    "BrushWindow",
    "CategoricalChart",
    "ChartConfig",
    "ChartConfigError",
    "ChartCoordinate",
    "ChartDataError",
    "ChartState",
    "DEFAULT_SYNC_CHANNEL",
    "ErrorBarSpec",
    "LegendSpec",
    "Margin",
    "MouseInfo",
    "Offset",
    "PointerEvent",
    "PointerThrottle",
    "PointerTransform",
    "PolarSpec",
    "ReferenceElement",
    "SeriesSpec",
    "SyncChannel",
    "SyncCoordinator",
    "SyncMessage",
    "Tick",
    "TooltipItem",
    "TooltipSpec",
    "TooltipState",
    "chart",
]
