from __future__ import annotations

import importlib
import unittest
from dataclasses import replace
from unittest import mock

from chartlayout.api import chart, resolve_chart_size
from chartlayout.brush import BrushWindow
from chartlayout.chart import CategoricalChart, PointerEvent
from chartlayout.config import AxisSpec, BrushSpec, ChartConfig, LegendSpec, SeriesSpec, TooltipSpec
from chartlayout.coordinates import BoundingBox, PointerTransform
from chartlayout.domain import resolve_axis_map
from chartlayout.errors import ChartConfigError

chart_module = importlib.import_module("chartlayout.chart")


DATA = [{"name": n, "v": v} for n, v in zip("abcd", (10, 20, 30, 40))]
AXES = (AxisSpec(dimension="x", data_key="name"), AxisSpec(dimension="y", domain=(0, "auto")))


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def _config(**kwargs) -> ChartConfig:
    options = {"width": 400, "height": 300, "data": DATA, "axes": AXES, "series": (SeriesSpec("v", kind="bar"),)}
    options.update(kwargs)
    return ChartConfig(**options)


class ChartPipelineTests(unittest.TestCase):
    def test_bar_geometry(self) -> None:
        c = CategoricalChart(_config())
        (bars,) = c.state.formatted_items
        self.assertEqual(bars.key, "bar-0")
        self.assertEqual(bars.bar_position.offset, 8.25)
        self.assertEqual(bars.bar_position.size, 66.0)
        first = bars.rects[0]
        self.assertEqual((first.x, first.y, first.width, first.height), (73.25, 200.0, 66.0, 65.0))
        self.assertEqual(first.value, 10)
        self.assertEqual(first.background.height, 260)
        self.assertEqual(bars.rects[3].y, 5.0)

    def test_stacked_chart_domain_and_geometry(self) -> None:
        data = [{"name": "p", "a": 2, "b": 3}, {"name": "q", "a": 1, "b": 4}]
        c = CategoricalChart(
            _config(
                data=data,
                axes=(AxisSpec(dimension="x", data_key="name"), AxisSpec(dimension="y")),
                series=(SeriesSpec("a", kind="bar", stack_id="s"), SeriesSpec("b", kind="bar", stack_id="s")),
            )
        )
        self.assertEqual(c.state.axis("y").domain, (0.0, 5.0))
        a, b = c.state.formatted_items
        self.assertEqual(a.bar_position, b.bar_position)
        self.assertEqual(a.rects[0].value, (0.0, 2.0))
        self.assertEqual(b.rects[0].value, (2.0, 5.0))
        self.assertAlmostEqual(a.rects[0].y, b.rects[0].y + b.rects[0].height)

    def test_degenerate_size_skips_layout(self) -> None:
        c = CategoricalChart(_config(width=0))
        self.assertTrue(c.state.is_degenerate)
        self.assertEqual(c.state.formatted_items, ())
        c.handle_pointer_move(PointerEvent(100, 100))
        self.assertFalse(c.tooltip.is_active)
        self.assertTrue(c.update(replace(c.config, width=400)))
        self.assertFalse(c.state.is_degenerate)
        self.assertEqual(len(c.state.formatted_items), 1)

    def test_missing_axis_is_a_config_error(self) -> None:
        with self.assertRaises(ChartConfigError):
            CategoricalChart(_config(series=(SeriesSpec("v", y_axis_id=1),)))

    def test_update_bumps_update_id(self) -> None:
        c = CategoricalChart(_config())
        self.assertFalse(c.update(_config()))
        self.assertEqual(c.state.update_id, 0)
        self.assertTrue(c.update(_config(data=DATA[:2])))
        self.assertEqual(c.state.update_id, 1)
        self.assertEqual(c.state.axis("x").domain, ("a", "b"))

    def test_hover_does_not_recompute_domains(self) -> None:
        c = CategoricalChart(_config(series=(SeriesSpec("v"),)))
        with mock.patch.object(chart_module, "resolve_axis_map", wraps=resolve_axis_map) as spy:
            c.handle_pointer_move(PointerEvent(180, 100))
            self.assertTrue(c.tooltip.is_active)
            c.handle_pointer_leave()
            self.assertEqual(spy.call_count, 0)

    def test_legend_box_reruns_layout_only(self) -> None:
        c = CategoricalChart(_config(legend=LegendSpec()))
        before = c.state.offset
        self.assertEqual([entry.value for entry in c.state.legend_payload], ["v"])
        with mock.patch.object(chart_module, "resolve_axis_map", wraps=resolve_axis_map) as spy:
            c.handle_legend_bbox(BoundingBox(0, 0, 100, 20))
            self.assertEqual(spy.call_count, 0)
        self.assertEqual(c.state.offset.bottom, before.bottom + 20)
        self.assertEqual(c.state.legend_box, BoundingBox(0, 0, 100, 20))

    def test_brush_window_limits_domains_and_items(self) -> None:
        c = CategoricalChart(_config(brush=BrushSpec()))
        self.assertEqual(c.state.window, BrushWindow(0, 3))
        c.handle_brush_change(1, 2)
        self.assertEqual(c.state.window, BrushWindow(1, 2))
        self.assertEqual(c.state.axis("x").domain, ("b", "c"))
        self.assertEqual(len(c.state.formatted_items[0].rects), 2)
        self.assertEqual(c.state.offset.brush_bottom, 35)

    def test_data_change_resets_window(self) -> None:
        c = CategoricalChart(_config(brush=BrushSpec()))
        c.handle_brush_change(1, 2)
        c.update(_config(brush=BrushSpec(), data=DATA[:3]))
        self.assertEqual(c.state.window, BrushWindow(0, 2))


class ChartInteractionTests(unittest.TestCase):
    def test_pointer_transform_maps_surface_coordinates(self) -> None:
        c = CategoricalChart(_config(series=(SeriesSpec("v"),)))
        info = c.get_mouse_info(PointerEvent(370, 210, PointerTransform(origin=(10, 10), scale=2.0)))
        self.assertEqual((info.chart_x, info.chart_y), (180.0, 100.0))
        self.assertEqual(info.tooltip.active_index, 1)
        self.assertAlmostEqual(info.y_value, 40 * (265 - 100) / 260)
        self.assertIsNone(info.x_value)

    def test_pointer_moves_are_throttled(self) -> None:
        clock = FakeClock()
        seen: list[int] = []
        c = CategoricalChart(
            _config(series=(SeriesSpec("v"),)),
            clock=clock,
            on_mouse_move=lambda state, event: seen.append(state.active_index),
        )
        c.handle_pointer_move(PointerEvent(70, 100))
        c.handle_pointer_move(PointerEvent(180, 100))
        c.handle_pointer_move(PointerEvent(290, 100))
        self.assertEqual(seen, [0])
        self.assertFalse(c.poll_pointer())
        clock.now = 1.0
        self.assertTrue(c.poll_pointer())
        self.assertEqual(seen, [0, 2])
        self.assertEqual(c.tooltip.active_index, 2)

    def test_leave_cancels_pending_move(self) -> None:
        clock = FakeClock()
        c = CategoricalChart(_config(series=(SeriesSpec("v"),)), clock=clock)
        c.handle_pointer_move(PointerEvent(70, 100))
        c.handle_pointer_move(PointerEvent(180, 100))
        c.handle_pointer_leave()
        clock.now = 1.0
        self.assertFalse(c.poll_pointer())
        self.assertFalse(c.tooltip.is_active)

    def test_touch_uses_first_touch(self) -> None:
        c = CategoricalChart(_config(series=(SeriesSpec("v"),)))
        c.handle_touch_move([PointerEvent(290, 100), PointerEvent(70, 100)])
        self.assertEqual(c.tooltip.active_index, 2)

    def test_click_trigger(self) -> None:
        clicked: list[int] = []
        c = CategoricalChart(
            _config(series=(SeriesSpec("v"),), tooltip=TooltipSpec(trigger="click")),
            on_click=lambda state, event: clicked.append(state.active_index),
        )
        c.handle_pointer_move(PointerEvent(180, 100))
        self.assertFalse(c.tooltip.is_active)
        c.handle_click(PointerEvent(180, 100))
        self.assertEqual(c.tooltip.active_index, 1)
        self.assertEqual(clicked, [1])
        c.handle_click(PointerEvent(0, 0))
        self.assertEqual(clicked, [1])

    def test_enter_and_leave_hooks(self) -> None:
        events: list[str] = []
        c = CategoricalChart(
            _config(series=(SeriesSpec("v"),)),
            on_mouse_enter=lambda state, event: events.append("enter"),
            on_mouse_leave=lambda state, event: events.append("leave"),
        )
        c.handle_pointer_enter(PointerEvent(0, 0))
        c.handle_pointer_enter(PointerEvent(180, 100))
        c.handle_pointer_leave()
        self.assertEqual(events, ["enter", "leave"])

    def test_default_tooltip_on_mount(self) -> None:
        c = CategoricalChart(_config(series=(SeriesSpec("v"),), tooltip=TooltipSpec(default_index=2)))
        self.assertFalse(c.tooltip.is_active)
        c.mount()
        self.assertTrue(c.tooltip.is_active)
        self.assertEqual(c.tooltip.active_index, 2)
        self.assertEqual(c.tooltip.active_label, "c")
        self.assertEqual(c.tooltip.active_coordinate.x, 285)
        self.assertEqual(c.tooltip.active_coordinate.y, 152.5)

    def test_default_tooltip_out_of_range_is_ignored(self) -> None:
        c = CategoricalChart(_config(tooltip=TooltipSpec(default_index=9)))
        c.mount()
        self.assertFalse(c.tooltip.is_active)

    def test_item_tooltip(self) -> None:
        c = CategoricalChart(_config(tooltip=TooltipSpec(event_type="item")))
        c.handle_pointer_move(PointerEvent(180, 100))
        self.assertFalse(c.tooltip.is_active)
        c.handle_item_enter("bar-0", 1)
        tooltip = c.tooltip
        self.assertTrue(tooltip.is_active)
        self.assertEqual(tooltip.active_item_key, "bar-0")
        self.assertEqual(tooltip.active_payload[0].value, 20)
        rect = c.state.formatted_items[0].rects[1]
        self.assertEqual(tooltip.active_coordinate.x, rect.x + rect.width / 2)
        c.handle_item_enter("missing", 0)
        self.assertEqual(c.tooltip, tooltip)
        c.handle_item_leave()
        self.assertFalse(c.tooltip.is_active)

    def test_active_tooltip_survives_update(self) -> None:
        c = CategoricalChart(_config(series=(SeriesSpec("v"),)))
        c.handle_pointer_move(PointerEvent(180, 100))
        c.update(_config(series=(SeriesSpec("v"),), width=500))
        self.assertTrue(c.tooltip.is_active)
        self.assertEqual(c.tooltip.active_index, 1)

    def test_unmount_cancels_throttle(self) -> None:
        clock = FakeClock()
        c = CategoricalChart(_config(series=(SeriesSpec("v"),)), clock=clock)
        c.handle_pointer_move(PointerEvent(70, 100))
        c.handle_pointer_move(PointerEvent(180, 100))
        self.assertTrue(c.throttle.pending)
        c.unmount()
        self.assertFalse(c.throttle.pending)


class ChartFactoryTests(unittest.TestCase):
    def test_size_follows_aspect_ratio(self) -> None:
        width, height = resolve_chart_size(800, None)
        self.assertEqual(width, 800)
        self.assertAlmostEqual(height, 450)
        self.assertEqual(resolve_chart_size(None, 90, aspect_ratio=2.0), (180, 90))
        self.assertEqual(resolve_chart_size(None, None), (640.0, 360.0))
        self.assertEqual(resolve_chart_size(300, 200, aspect_ratio=4.0), (300, 200))
        with self.assertRaises(ValueError):
            resolve_chart_size(1, 1, aspect_ratio=0)

    def test_chart_factory(self) -> None:
        c = chart(DATA, axes=AXES, series=(SeriesSpec("v", kind="bar"),), width=800, layout="horizontal")
        self.assertEqual(c.config.width, 800)
        self.assertAlmostEqual(c.config.height, 450)
        self.assertEqual(len(c.state.formatted_items), 1)


if __name__ == "__main__":
    unittest.main()
