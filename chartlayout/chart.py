from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Mapping, Sequence

from chartlayout.axis import AxisRecord, Tick, get_band_size_of_axis, get_ticks_of_axis
from chartlayout.brush import BrushWindow
from chartlayout.config import ChartConfig
from chartlayout.coordinates import IDENTITY_TRANSFORM, BoundingBox, PointerTransform
from chartlayout.data import get_axis_names_by_layout, get_displayed_data, get_value_by_data_key
from chartlayout.domain import resolve_axis_map
from chartlayout.geometry import FormattedItem, get_formatted_items, item_key
from chartlayout.legend import LegendPayloadEntry, get_legend_payload
from chartlayout.offset import Offset, calculate_offset, format_axis_map
from chartlayout.polar import PolarViewBox, format_polar_axis_map, polar_to_cartesian, polar_view_box
from chartlayout.stacking import AxisStackGroups, get_stack_groups_by_axis_id
from chartlayout.sync import SyncChannel, SyncCoordinator
from chartlayout.throttle import PointerThrottle
from chartlayout.tooltip import (
    INACTIVE_TOOLTIP,
    ChartCoordinate,
    TooltipContext,
    TooltipItem,
    TooltipState,
    resolve_tooltip,
    tooltip_for_index,
)


LOGGER = logging.getLogger(__name__)

PointerHook = Callable[[TooltipState, "PointerEvent | None"], None]


@dataclass(frozen=True)
class PointerEvent:
    """Raw pointer position on the rendering surface."""

    x: float
    y: float
    transform: PointerTransform = IDENTITY_TRANSFORM


@dataclass(frozen=True)
class MouseInfo:
    chart_x: float
    chart_y: float
    x_value: Any = None
    y_value: Any = None
    tooltip: TooltipState | None = None


@dataclass(frozen=True)
class DomainStage:
    update_id: int
    window: BrushWindow
    stack_groups: Mapping[Any, AxisStackGroups]
    axis_maps: Mapping[str, Mapping[Any, AxisRecord]]


@dataclass(frozen=True)
class ChartState:
    """Derived state of one chart; replaced as a whole, never edited in place."""

    update_id: int
    window: BrushWindow
    stack_groups: Mapping[Any, AxisStackGroups] = field(default_factory=dict)
    axis_maps: Mapping[str, Mapping[Any, AxisRecord]] = field(default_factory=dict)
    offset: Offset | None = None
    tooltip_axis: AxisRecord | None = None
    tooltip_ticks: tuple[Tick, ...] = ()
    ordered_tooltip_ticks: tuple[Tick, ...] = ()
    tooltip_band_size: float = 0.0
    formatted_items: tuple[FormattedItem, ...] = ()
    legend_payload: tuple[LegendPayloadEntry, ...] = ()
    legend_box: BoundingBox | None = None
    polar_box: PolarViewBox | None = None
    tooltip: TooltipState = INACTIVE_TOOLTIP
    context: TooltipContext | None = None

    @property
    def is_degenerate(self) -> bool:
        return self.offset is None

    def axis(self, dimension: str, axis_id: Any = 0) -> AxisRecord | None:
        return self.axis_maps.get(dimension, {}).get(axis_id)

    def item(self, key: str) -> FormattedItem | None:
        return next((item for item in self.formatted_items if item.key == key), None)


@dataclass
class PipelineCache:
    domain_key: tuple[Any, ...] | None = None
    domain: DomainStage | None = None

    def invalidate(self) -> None:
        self.domain_key = None
        self.domain = None


def _valid_size(config: ChartConfig) -> bool:
    try:
        return math.isfinite(config.width) and math.isfinite(config.height) and config.width > 0 and config.height > 0
    except TypeError:
        return False


def _data_changed(old: ChartConfig, new: ChartConfig) -> bool:
    return old.data != new.data


def _layout_inputs_changed(old: ChartConfig, new: ChartConfig) -> bool:
    return (
        old.width != new.width
        or old.height != new.height
        or old.layout != new.layout
        or old.stack_offset != new.stack_offset
        or old.margin != new.margin
    )


class CategoricalChart:
    """Layout and interaction engine for one chart instance.

    The domain stage (stack groups and axis domains) is cached per
    ``(update_id, window)``; the layout stage (offset, axis geometry, items)
    is re-run when a measured legend box arrives. Hover only replaces the
    tooltip part of :attr:`state`.
    """

    def __init__(
        self,
        config: ChartConfig,
        *,
        sync_channel: SyncChannel | None = None,
        clock: Callable[[], float] | None = None,
        on_mouse_move: PointerHook | None = None,
        on_mouse_enter: PointerHook | None = None,
        on_mouse_leave: PointerHook | None = None,
        on_click: PointerHook | None = None,
    ) -> None:
        self._config = config
        self._sync_channel = sync_channel
        self._clock = clock or time.monotonic
        self.on_mouse_move = on_mouse_move
        self.on_mouse_enter = on_mouse_enter
        self.on_mouse_leave = on_mouse_leave
        self.on_click = on_click
        self._cache = PipelineCache()
        self._update_id = 0
        self._legend_box: BoundingBox | None = None
        self._throttle = PointerThrottle(self._process_pointer_move, config.throttle_delay_s, self._clock)
        self._sync = self._make_sync()
        self._state = self._compute_state(BrushWindow.default_for(len(config.data), config.brush))

    @property
    def config(self) -> ChartConfig:
        return self._config

    @property
    def state(self) -> ChartState:
        return self._state

    @property
    def tooltip(self) -> TooltipState:
        return self._state.tooltip

    @property
    def sync(self) -> SyncCoordinator:
        return self._sync

    @property
    def throttle(self) -> PointerThrottle:
        return self._throttle

    def _make_sync(self) -> SyncCoordinator:
        return SyncCoordinator(
            self._config.sync_id,
            channel=self._sync_channel,
            sync_method=self._config.sync_method,
            on_window=self._apply_synced_window,
            on_tooltip=self._apply_synced_tooltip,
            context=lambda: self._state.context,
        )

    # -- pipeline -----------------------------------------------------------

    def _domain_stage(self, window: BrushWindow) -> DomainStage:
        key = (self._update_id, window)
        if self._cache.domain_key == key and self._cache.domain is not None:
            return self._cache.domain
        config = self._config
        numeric_dim, cate_dim = get_axis_names_by_layout(config.layout)
        stack_groups = get_stack_groups_by_axis_id(
            config.data,
            config.series,
            numeric_dim,
            cate_dim,
            config.stack_offset,
            config.reverse_stack_order,
        )
        axis_maps = {
            dimension: resolve_axis_map(
                config,
                dimension,
                stack_groups=stack_groups if dimension == numeric_dim else None,
                start_index=window.start_index,
                end_index=window.end_index,
            )
            for dimension in config.axis_dimensions()
        }
        LOGGER.debug("domain stage recomputed (update %d, window %r)", self._update_id, window)
        stage = DomainStage(self._update_id, window, stack_groups, axis_maps)
        self._cache.domain_key = key
        self._cache.domain = stage
        return stage

    def _compute_state(self, window: BrushWindow, tooltip: TooltipState = INACTIVE_TOOLTIP) -> ChartState:
        config = self._config
        if not _valid_size(config):
            LOGGER.debug("skipping layout: degenerate size %rx%r", config.width, config.height)
            return ChartState(update_id=self._update_id, window=window, legend_box=self._legend_box)

        stage = self._domain_stage(window)
        offset = calculate_offset(config, stage.axis_maps, self._legend_box)
        has_bar = any(item.is_bar_like and not item.hide for item in config.series)
        formatter = format_polar_axis_map if config.is_polar else format_axis_map
        axis_maps = {
            dimension: formatter(config, axis_map, offset, dimension, has_bar=has_bar)
            for dimension, axis_map in stage.axis_maps.items()
        }

        _, cate_dim = get_axis_names_by_layout(config.layout)
        cate_map = axis_maps.get(cate_dim, {})
        tooltip_axis = next(iter(cate_map.values()), None)
        tooltip_ticks: tuple[Tick, ...] = ()
        band_size = 0.0
        if tooltip_axis is not None:
            tooltip_ticks = tuple(get_ticks_of_axis(tooltip_axis, is_all=True))
            band_size = get_band_size_of_axis(tooltip_axis, tooltip_ticks) or 0.0
        # categories the scale cannot place (nil values) get a NaN coordinate
        placed = (tick for tick in tooltip_ticks if math.isfinite(tick.coordinate))
        ordered = tuple(sorted(placed, key=lambda tick: tick.coordinate))

        items = get_formatted_items(config, axis_maps, stage.stack_groups, window.start_index, window.end_index)
        keyed_series = tuple((item_key(item, i), item) for i, item in enumerate(config.series))
        polar_box = polar_view_box(config, offset) if config.is_polar else None
        context = TooltipContext(
            layout=config.layout,
            offset=offset,
            tooltip_axis=tooltip_axis,
            tooltip_ticks=tooltip_ticks,
            ordered_tooltip_ticks=ordered,
            series=keyed_series,
            displayed_data=tuple(get_displayed_data(config.data, (), window.start_index, window.end_index)),
            start_index=window.start_index,
            end_index=window.end_index,
            polar_box=polar_box,
            tooltip_band_size=band_size,
        )
        if tooltip.is_active and tooltip.active_item_key is None:
            tooltip = tooltip_for_index(context, tooltip.active_index, chart_x=tooltip.chart_x, chart_y=tooltip.chart_y)
        elif tooltip.is_active and self._find_item(items, tooltip.active_item_key) is None:
            tooltip = INACTIVE_TOOLTIP
        return ChartState(
            update_id=self._update_id,
            window=window,
            stack_groups=stage.stack_groups,
            axis_maps=axis_maps,
            offset=offset,
            tooltip_axis=tooltip_axis,
            tooltip_ticks=tooltip_ticks,
            ordered_tooltip_ticks=ordered,
            tooltip_band_size=band_size,
            formatted_items=items,
            legend_payload=get_legend_payload(keyed_series, config.legend) if config.legend is not None else (),
            legend_box=self._legend_box,
            polar_box=polar_box,
            tooltip=tooltip,
            context=context,
        )

    @staticmethod
    def _find_item(items: Sequence[FormattedItem], key: str | None) -> FormattedItem | None:
        return next((item for item in items if item.key == key), None)

    def _set_tooltip(self, tooltip: TooltipState) -> None:
        self._state = replace(self._state, tooltip=tooltip)

    # -- configuration ------------------------------------------------------

    def update(self, config: ChartConfig) -> bool:
        """Adopt a new configuration; returns whether the pipeline re-ran."""

        old = self._config
        if config == old:
            return False
        self._config = config
        window = self._state.window
        if _data_changed(old, config) or old.brush != config.brush:
            window = BrushWindow.default_for(len(config.data), config.brush)
        else:
            window = window.clamp(len(config.data))
        if _layout_inputs_changed(old, config):
            LOGGER.debug("size or layout changed: %rx%r %s", config.width, config.height, config.layout)
        if config.throttle_delay_s != old.throttle_delay_s:
            self._throttle.cancel()
            self._throttle = PointerThrottle(self._process_pointer_move, config.throttle_delay_s, self._clock)
        if config.sync_id != old.sync_id or config.sync_method != old.sync_method:
            mounted = self._sync.mounted
            self._sync.unmount()
            self._sync = self._make_sync()
            if mounted:
                self._sync.mount()
        self._update_id += 1
        self._cache.invalidate()
        self._state = self._compute_state(window, self._state.tooltip)
        return True

    def handle_legend_bbox(self, box: BoundingBox | None) -> None:
        """Second offset pass once the rendering side has measured the legend."""

        if box == self._legend_box:
            return
        self._legend_box = box
        self._state = self._compute_state(self._state.window, self._state.tooltip)

    def handle_brush_change(self, start_index: int, end_index: int) -> None:
        window = BrushWindow(start_index, end_index).clamp(len(self._config.data))
        if window == self._state.window:
            return
        self._state = self._compute_state(window, self._state.tooltip)
        self._sync.broadcast_window(window)

    # -- lifecycle ----------------------------------------------------------

    def mount(self) -> None:
        self._sync.mount()
        if self._config.tooltip is not None and self._config.tooltip.default_index is not None:
            self.display_default_tooltip()

    def unmount(self) -> None:
        self._throttle.cancel()
        self._sync.unmount()

    def display_default_tooltip(self) -> None:
        spec = self._config.tooltip
        context = self._state.context
        if spec is None or context is None:
            return
        index = spec.default_index
        if not isinstance(index, int) or index < 0 or index >= len(context.tooltip_ticks):
            return
        offset = context.offset
        if self._config.layout == "horizontal":
            range_obj = ChartCoordinate(x=0.0, y=(offset.top + self._config.height) / 2.0)
        elif self._config.layout == "vertical":
            range_obj = ChartCoordinate(x=(offset.left + self._config.width) / 2.0, y=0.0)
        else:
            range_obj = None
        self._set_tooltip(tooltip_for_index(context, index, range_obj))

    # -- pointer ------------------------------------------------------------

    def get_mouse_info(self, event: PointerEvent) -> MouseInfo:
        chart_x, chart_y = event.transform.to_chart((event.x, event.y))
        state = self._state
        x_value = y_value = None
        x_axis = next(iter(state.axis_maps.get("x", {}).values()), None)
        y_axis = next(iter(state.axis_maps.get("y", {}).values()), None)
        if x_axis is not None and x_axis.scale is not None and x_axis.scale.is_continuous:
            x_value = x_axis.scale.invert(chart_x)
        if y_axis is not None and y_axis.scale is not None and y_axis.scale.is_continuous:
            y_value = y_axis.scale.invert(chart_y)
        tooltip = None
        event_type = self._config.tooltip.event_type if self._config.tooltip is not None else "axis"
        if state.context is not None and event_type == "axis":
            tooltip = resolve_tooltip(state.context, chart_x, chart_y)
        return MouseInfo(chart_x=chart_x, chart_y=chart_y, x_value=x_value, y_value=y_value, tooltip=tooltip)

    def _hover_enabled(self) -> bool:
        spec = self._config.tooltip
        return spec is None or (spec.trigger == "hover" and spec.event_type == "axis")

    def _process_pointer_move(self, event: PointerEvent) -> None:
        info = self.get_mouse_info(event)
        if self._hover_enabled() and info.tooltip is not None:
            self._set_tooltip(info.tooltip)
            self._sync.broadcast_tooltip(info.tooltip)
        if self.on_mouse_move is not None:
            self.on_mouse_move(self._state.tooltip, event)

    def handle_pointer_move(self, event: PointerEvent) -> None:
        self._throttle(event)

    def handle_touch_move(self, touches: Sequence[PointerEvent]) -> None:
        if touches:
            self._throttle(touches[0])

    def poll_pointer(self) -> bool:
        return self._throttle.poll()

    def flush_pointer(self) -> bool:
        return self._throttle.flush()

    def handle_pointer_enter(self, event: PointerEvent) -> None:
        info = self.get_mouse_info(event)
        if info.tooltip is None or not info.tooltip.is_active:
            return
        if self._hover_enabled():
            self._set_tooltip(info.tooltip)
            self._sync.broadcast_tooltip(info.tooltip)
        if self.on_mouse_enter is not None:
            self.on_mouse_enter(self._state.tooltip, event)

    def handle_pointer_leave(self, event: PointerEvent | None = None) -> None:
        self._throttle.cancel()
        self._set_tooltip(INACTIVE_TOOLTIP)
        self._sync.broadcast_deactivate()
        if self.on_mouse_leave is not None:
            self.on_mouse_leave(self._state.tooltip, event)

    def handle_click(self, event: PointerEvent) -> None:
        info = self.get_mouse_info(event)
        if info.tooltip is None or not info.tooltip.is_active:
            return
        self._set_tooltip(info.tooltip)
        self._sync.broadcast_tooltip(info.tooltip)
        if self.on_click is not None:
            self.on_click(self._state.tooltip, event)

    def handle_item_enter(self, key: str, index: int) -> None:
        """Item-mode tooltip: activate one datum of one series."""

        item = self._state.item(key)
        if item is None or not 0 <= index < len(item.data):
            return
        entry = item.data[index]
        payload = TooltipItem(
            series_key=key,
            name=item.item.name if item.item.name is not None else item.item.data_key,
            data_key=item.item.data_key,
            value=get_value_by_data_key(entry, item.item.data_key),
            payload=entry,
            color=item.item.color,
            unit=item.item.unit,
        )
        self._set_tooltip(
            TooltipState(
                active_index=index,
                active_payload=(payload,),
                active_coordinate=_item_position(item, index),
                is_active=True,
                active_item_key=key,
            )
        )

    def handle_item_leave(self) -> None:
        self._set_tooltip(INACTIVE_TOOLTIP)

    # -- sync ---------------------------------------------------------------

    def _apply_synced_window(self, window: BrushWindow) -> None:
        window = window.clamp(len(self._config.data))
        if window == self._state.window:
            return
        self._state = self._compute_state(window, self._state.tooltip)

    def _apply_synced_tooltip(self, tooltip: TooltipState) -> None:
        if self._state.offset is None:
            return
        self._set_tooltip(tooltip)


def _item_position(item: FormattedItem, index: int) -> ChartCoordinate | None:
    for rect in item.rects:
        if rect.index == index and rect.x is not None and rect.y is not None:
            return ChartCoordinate(x=rect.x + rect.width / 2.0, y=rect.y + rect.height / 2.0)
    for point in item.points:
        if point.index == index and point.is_defined:
            return ChartCoordinate(x=point.x, y=point.y)
    for sector in item.sectors:
        if sector.index == index:
            angle = (sector.start_angle + sector.end_angle) / 2.0
            radius = (sector.inner_radius + sector.outer_radius) / 2.0
            x, y = polar_to_cartesian(sector.cx, sector.cy, radius, angle)
            return ChartCoordinate(x=x, y=y, angle=angle, radius=radius, cx=sector.cx, cy=sector.cy)
    return None
