from __future__ import annotations

import unittest

from chartlayout.chart import CategoricalChart
from chartlayout.config import AxisSpec, ChartConfig, SeriesSpec
from chartlayout.geometry import ItemPoint, item_key, line_segments, truncate_by_domain


def _chart(data, series, axes=None, **kwargs) -> CategoricalChart:
    if axes is None:
        axes = (AxisSpec(dimension="x", data_key="name"), AxisSpec(dimension="y", domain=(0, "auto")))
    return CategoricalChart(ChartConfig(width=400, height=300, data=data, axes=axes, series=series, **kwargs))


class GeometryHelperTests(unittest.TestCase):
    def test_line_segments_split_on_gaps(self) -> None:
        points = [
            ItemPoint(0, 1.0, 1.0, 1, None),
            ItemPoint(1, 2.0, None, None, None),
            ItemPoint(2, 3.0, 3.0, 3, None),
            ItemPoint(3, 4.0, 4.0, 4, None),
        ]
        segments = line_segments(points, connect_nulls=False)
        self.assertEqual([[p.index for p in s] for s in segments], [[0], [2, 3]])
        joined = line_segments(points, connect_nulls=True)
        self.assertEqual([[p.index for p in s] for s in joined], [[0, 2, 3]])
        self.assertEqual(line_segments([], connect_nulls=True), ())

    def test_truncate_by_domain(self) -> None:
        self.assertEqual(truncate_by_domain((-5.0, 20.0), (0.0, 10.0)), (0.0, 10.0))
        self.assertEqual(truncate_by_domain((2.0, 3.0), (0.0, 10.0)), (2.0, 3.0))
        self.assertEqual(truncate_by_domain((12.0, 15.0), (0.0, 10.0)), (10.0, 10.0))

    def test_item_key(self) -> None:
        self.assertEqual(item_key(SeriesSpec("v", kind="area"), 3), "area-3")
        self.assertEqual(item_key(SeriesSpec("v", key="revenue"), 3), "revenue")


class ComposedItemTests(unittest.TestCase):
    def test_line_points_follow_category_ticks(self) -> None:
        data = [{"name": n, "v": v} for n, v in zip("abcd", (1, None, 3, 4))]
        c = _chart(data, (SeriesSpec("v"), SeriesSpec("v", key="joined", connect_nulls=True)))
        line, joined = c.state.formatted_items
        self.assertEqual([p.x for p in line.points], [65, 175, 285, 395])
        self.assertIsNone(line.points[1].y)
        self.assertEqual(len(line.segments), 2)
        self.assertEqual(len(joined.segments), 1)
        self.assertEqual(len(joined.segments[0]), 3)

    def test_area_base_line(self) -> None:
        data = [{"name": n, "v": v} for n, v in zip("ab", (2, 4))]
        c = _chart(data, (SeriesSpec("v", kind="area"),))
        (area,) = c.state.formatted_items
        self.assertEqual(area.base_line, 265)
        self.assertEqual(area.points[1].y, 5)

    def test_stacked_area_base_line_follows_lower_series(self) -> None:
        data = [{"name": n, "a": a, "b": b} for n, a, b in zip("ab", (1, 2), (3, 2))]
        c = _chart(data, (SeriesSpec("a", kind="area", stack_id="s"), SeriesSpec("b", kind="area", stack_id="s")))
        lower, upper = c.state.formatted_items
        self.assertEqual([p.y for p in upper.base_line], [p.y for p in lower.points])

    def test_range_area(self) -> None:
        data = [{"name": "a", "v": [1, 3]}, {"name": "b", "v": [2, 4]}]
        c = _chart(data, (SeriesSpec("v", kind="area"),))
        (area,) = c.state.formatted_items
        scale = c.state.axis("y").scale
        self.assertEqual([p.y for p in area.base_line], [scale(1), scale(2)])
        self.assertEqual([p.y for p in area.points], [scale(3), scale(4)])

    def test_scatter_points(self) -> None:
        data = [{"x": 0, "y": 0}, {"x": 10, "y": 10}]
        c = _chart(
            data,
            (SeriesSpec("y", kind="scatter"),),
            axes=(AxisSpec(dimension="x", type="number", data_key="x"), AxisSpec(dimension="y", data_key="y")),
        )
        (scatter,) = c.state.formatted_items
        self.assertEqual([(p.x, p.y) for p in scatter.points], [(65, 265), (395, 5)])

    def test_vertical_bars(self) -> None:
        data = [{"name": n, "v": v} for n, v in zip("ab", (10, 20))]
        c = _chart(
            data,
            (SeriesSpec("v", kind="bar"),),
            axes=(AxisSpec(dimension="x", domain=(0, "auto")), AxisSpec(dimension="y", data_key="name")),
            layout="vertical",
        )
        (bars,) = c.state.formatted_items
        x_axis = c.state.axis("x")
        self.assertEqual(bars.rects[0].x, x_axis.scale(0))
        self.assertAlmostEqual(bars.rects[1].width, x_axis.scale(20) - x_axis.scale(0))

    def test_min_point_size_keeps_small_bars_visible(self) -> None:
        data = [{"name": n, "v": v} for n, v in zip("ab", (0, 20))]
        c = _chart(data, (SeriesSpec("v", kind="bar", min_point_size=3),))
        (bars,) = c.state.formatted_items
        self.assertEqual(bars.rects[0].height, 3)
        self.assertEqual(bars.rects[0].y, 262)

    def test_hidden_series_produce_no_geometry(self) -> None:
        data = [{"name": "a", "v": 1}]
        c = _chart(data, (SeriesSpec("v", hide=True), SeriesSpec("v", kind="bar")))
        self.assertEqual([item.key for item in c.state.formatted_items], ["bar-1"])

    def test_radial_bar_sectors(self) -> None:
        data = [{"name": n, "v": v} for n, v in zip("ab", (50, 100))]
        c = CategoricalChart(
            ChartConfig(
                width=400,
                height=400,
                data=data,
                layout="radial",
                axes=(
                    AxisSpec(dimension="angle", type="number", domain=(0, 100)),
                    AxisSpec(dimension="radius", type="category", data_key="name"),
                ),
                series=(SeriesSpec("v", kind="radial_bar"),),
            )
        )
        (bars,) = c.state.formatted_items
        first, second = bars.sectors
        self.assertEqual(first.start_angle, 0)
        self.assertAlmostEqual(first.end_angle, 180)
        self.assertAlmostEqual(second.end_angle, 360)
        self.assertLess(first.outer_radius, second.inner_radius + 1e-9)
        self.assertEqual((first.cx, first.cy), (200, 200))


if __name__ == "__main__":
    unittest.main()
