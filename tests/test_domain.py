from __future__ import annotations

import unittest

from chartlayout.config import AxisSpec, ChartConfig, ErrorBarSpec, ReferenceElement, SeriesSpec
from chartlayout.data import get_axis_names_by_layout
from chartlayout.domain import (
    detect_reference_elements_domain,
    parse_specified_domain,
    resolve_axis_map,
)
from chartlayout.stacking import get_stack_groups_by_axis_id


ROWS = [{"x": 1, "a": 2}, {"x": 2, "a": 3}, {"x": 3, "a": 1}]


def _axis_map(config: ChartConfig, dimension: str, start: int = 0, end: int | None = None):
    numeric_dim, cate_dim = get_axis_names_by_layout(config.layout)
    groups = get_stack_groups_by_axis_id(config.data, config.series, numeric_dim, cate_dim, config.stack_offset)
    end = len(config.data) - 1 if end is None else end
    return resolve_axis_map(
        config,
        dimension,
        stack_groups=groups if dimension == numeric_dim else None,
        start_index=start,
        end_index=end,
    )


class DomainTests(unittest.TestCase):
    def test_numeric_domain_is_data_extent(self) -> None:
        config = ChartConfig(
            width=400,
            height=300,
            data=ROWS,
            axes=(AxisSpec(dimension="x", data_key="x"), AxisSpec(dimension="y")),
            series=(SeriesSpec("a"),),
        )
        self.assertEqual(_axis_map(config, "y")[0].domain, (1.0, 3.0))

    def test_category_domain_dedupes_unless_duplicates_allowed(self) -> None:
        data = [{"c": "a", "v": 1}, {"c": "b", "v": 2}, {"c": "a", "v": 3}]
        unique = ChartConfig(
            width=400,
            height=300,
            data=data,
            axes=(AxisSpec(dimension="x", data_key="c", allow_duplicated_category=False), AxisSpec(dimension="y")),
            series=(SeriesSpec("v"),),
        )
        record = _axis_map(unique, "x")[0]
        self.assertEqual(record.domain, ("a", "b"))
        self.assertIsNone(record.duplicate_domain)

        duplicated = ChartConfig(
            width=400,
            height=300,
            data=data,
            axes=(AxisSpec(dimension="x", data_key="c"), AxisSpec(dimension="y")),
            series=(SeriesSpec("v"),),
        )
        record = _axis_map(duplicated, "x")[0]
        self.assertEqual(record.domain, (0, 1, 2))
        self.assertEqual(record.duplicate_domain, ("a", "b", "a"))

    def test_non_category_dimension_drops_empty_category_values(self) -> None:
        data = [{"c": "a"}, {"c": None}, {"c": "b"}, {"c": "a"}]
        config = ChartConfig(
            width=400,
            height=300,
            data=data,
            axes=(
                AxisSpec(dimension="x"),
                AxisSpec(dimension="y", type="category", data_key="c", allow_duplicated_category=False),
            ),
            series=(SeriesSpec("c"),),
        )
        self.assertEqual(_axis_map(config, "y")[0].domain, ("a", "b"))

    def test_empty_data_uses_unit_domain(self) -> None:
        config = ChartConfig(
            width=400,
            height=300,
            data=[],
            axes=(AxisSpec(dimension="x"), AxisSpec(dimension="y")),
            series=(SeriesSpec("a"),),
        )
        self.assertEqual(_axis_map(config, "y")[0].domain, (0.0, 1.0))

    def test_partial_override_keeps_data_side(self) -> None:
        config = ChartConfig(
            width=400,
            height=300,
            data=ROWS,
            axes=(AxisSpec(dimension="x"), AxisSpec(dimension="y", domain=(0, "auto"))),
            series=(SeriesSpec("a"),),
        )
        self.assertEqual(_axis_map(config, "y")[0].domain, (0.0, 3.0))

    def test_data_offset_expressions(self) -> None:
        config = ChartConfig(
            width=400,
            height=300,
            data=ROWS,
            axes=(AxisSpec(dimension="x"), AxisSpec(dimension="y", domain=("dataMin - 1", "dataMax + 2"))),
            series=(SeriesSpec("a"),),
        )
        self.assertEqual(_axis_map(config, "y")[0].domain, (0.0, 5.0))

    def test_override_respects_data_overflow_flag(self) -> None:
        clipped = ChartConfig(
            width=400,
            height=300,
            data=ROWS,
            axes=(AxisSpec(dimension="x"), AxisSpec(dimension="y", domain=(2, 2.5), allow_data_overflow=True)),
            series=(SeriesSpec("a"),),
        )
        self.assertEqual(_axis_map(clipped, "y")[0].domain, (2, 2.5))

        widened = ChartConfig(
            width=400,
            height=300,
            data=ROWS,
            axes=(AxisSpec(dimension="x"), AxisSpec(dimension="y", domain=(2, 2.5))),
            series=(SeriesSpec("a"),),
        )
        self.assertEqual(_axis_map(widened, "y")[0].domain, (1.0, 3.0))

    def test_category_override_is_adopted(self) -> None:
        config = ChartConfig(
            width=400,
            height=300,
            data=[{"c": "a", "v": 1}],
            axes=(AxisSpec(dimension="x", data_key="c", domain=("z", "a")), AxisSpec(dimension="y")),
            series=(SeriesSpec("v"),),
        )
        self.assertEqual(_axis_map(config, "x")[0].domain, ("z", "a"))

    def test_windowed_domain(self) -> None:
        config = ChartConfig(
            width=400,
            height=300,
            data=ROWS,
            axes=(AxisSpec(dimension="x"), AxisSpec(dimension="y")),
            series=(SeriesSpec("a"),),
        )
        self.assertEqual(_axis_map(config, "y", 0, 1)[0].domain, (2.0, 3.0))
        self.assertEqual(_axis_map(config, "x", 1, 2)[0].domain, (0, 1))

    def test_reference_element_extends_domain(self) -> None:
        config = ChartConfig(
            width=400,
            height=300,
            data=ROWS,
            axes=(AxisSpec(dimension="x"), AxisSpec(dimension="y")),
            series=(SeriesSpec("a"),),
            reference_elements=(
                ReferenceElement(y=10, if_overflow="extendDomain"),
                ReferenceElement(y=-50),
            ),
        )
        self.assertEqual(_axis_map(config, "y")[0].domain, (1.0, 10.0))

    def test_reference_area_and_explicit_ticks(self) -> None:
        refs = (ReferenceElement(kind="area", x1=-2, x2=4, always_show=True),)
        self.assertEqual(detect_reference_elements_domain(refs, (0.0, 1.0), 0, "x"), (-2.0, 4.0))
        self.assertEqual(detect_reference_elements_domain((), (0.0, 1.0), 0, "y", (0, 8)), (0.0, 8.0))
        self.assertEqual(detect_reference_elements_domain(refs, (0.0, 1.0), 1, "x"), (0.0, 1.0))

    def test_error_bars_extend_domain(self) -> None:
        data = [{"a": 2, "err": 1}, {"a": 3, "err": 1}, {"a": 1, "err": 1}]
        config = ChartConfig(
            width=400,
            height=300,
            data=data,
            axes=(AxisSpec(dimension="x"), AxisSpec(dimension="y")),
            series=(SeriesSpec("a", error_bars=(ErrorBarSpec("err"),)),),
        )
        self.assertEqual(_axis_map(config, "y")[0].domain, (0.0, 4.0))

    def test_hidden_series_excluded_unless_included(self) -> None:
        data = [{"a": 1, "b": 100}, {"a": 2, "b": 200}]
        series = (SeriesSpec("a"), SeriesSpec("b", hide=True))
        config = ChartConfig(
            width=400, height=300, data=data, axes=(AxisSpec(dimension="x"), AxisSpec(dimension="y")), series=series
        )
        self.assertEqual(_axis_map(config, "y")[0].domain, (1.0, 2.0))

    def test_stacked_domain(self) -> None:
        config = ChartConfig(
            width=400,
            height=300,
            data=[{"a": 2, "b": 3}, {"a": 1, "b": 4}],
            axes=(AxisSpec(dimension="x"), AxisSpec(dimension="y")),
            series=(SeriesSpec("a", kind="bar", stack_id="s"), SeriesSpec("b", kind="bar", stack_id="s")),
        )
        self.assertEqual(_axis_map(config, "y")[0].domain, (0.0, 5.0))

    def test_expand_stack_domain_is_unit(self) -> None:
        config = ChartConfig(
            width=400,
            height=300,
            data=[{"a": 2, "b": 3}, {"a": 1, "b": 4}],
            axes=(AxisSpec(dimension="x"), AxisSpec(dimension="y")),
            series=(SeriesSpec("a", kind="area", stack_id="s"), SeriesSpec("b", kind="area", stack_id="s")),
            stack_offset="expand",
        )
        self.assertEqual(_axis_map(config, "y")[0].domain, (0.0, 1.0))

    def test_implicit_axes_from_series(self) -> None:
        config = ChartConfig(
            width=400,
            height=300,
            data=ROWS,
            series=(SeriesSpec("a", kind="bar"), SeriesSpec("x", y_axis_id="right")),
        )
        x_map = _axis_map(config, "x")
        self.assertEqual(list(x_map), [0])
        self.assertEqual(x_map[0].domain, (0, 1, 2))
        self.assertTrue(x_map[0].implicit)
        self.assertTrue(x_map[0].hide)

        y_map = _axis_map(config, "y")
        self.assertEqual(y_map[0].domain, (1.0, 3.0))
        self.assertEqual(y_map[0].orientation, "left")
        self.assertEqual(y_map["right"].orientation, "right")

    def test_parse_specified_domain_variants(self) -> None:
        self.assertEqual(parse_specified_domain(("dataMin", "dataMax"), (1.0, 3.0), False), (1.0, 3.0))
        self.assertEqual(parse_specified_domain((5, 0), (1.0, 3.0), True), (5.0, 0.0))
        self.assertEqual(parse_specified_domain((lambda lo: lo * 2, "auto"), (1.0, 3.0), False), (2.0, 3.0))
        with self.assertLogs("chartlayout.domain", level="WARNING"):
            self.assertEqual(parse_specified_domain(lambda d, overflow: ("x", None), (1.0, 3.0), False), (1.0, 3.0))


if __name__ == "__main__":
    unittest.main()
