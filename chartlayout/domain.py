from __future__ import annotations

import logging
import re
from typing import Any, Callable, Sequence

from chartlayout.adapters.normalize import coerce_number
from chartlayout.axis import AxisRecord
from chartlayout.config import AxisDimension, AxisSpec, ChartConfig, ReferenceElement, SeriesSpec
from chartlayout.data import (
    get_displayed_data,
    get_domain_of_data_by_key,
    get_domain_of_error_bars,
    get_domain_of_items_with_same_axis,
    has_duplicate,
    is_categorical_axis,
    is_nil,
    is_number,
    merge_extents,
    unique_ordered,
)
from chartlayout.stacking import AxisStackGroups, get_domain_of_stack_groups


LOGGER = logging.getLogger(__name__)

DEFAULT_NUMBER_DOMAIN: tuple[Any, Any] = (0, "auto")
EMPTY_NUMBER_DOMAIN = (0.0, 1.0)

_MIN_VALUE_RE = re.compile(r"^dataMin\s*-\s*([0-9]+(?:\.[0-9]+)?)$")
_MAX_VALUE_RE = re.compile(r"^dataMax\s*\+\s*([0-9]+(?:\.[0-9]+)?)$")

_ORIENT_MAP = {"x": ("bottom", "top"), "y": ("left", "right"), "angle": ("outer", "outer"), "radius": ("right", "right")}


def is_domain_specified_by_user(domain: Any, allow_data_overflow: bool, axis_type: str) -> bool:
    if domain is None or callable(domain):
        return False
    if axis_type != "number":
        return len(domain) > 0
    if not allow_data_overflow or len(domain) != 2:
        return False
    return is_number(domain[0]) and is_number(domain[1])


def parse_specified_domain(
    specified: Any,
    data_domain: tuple[float, float],
    allow_data_overflow: bool,
) -> tuple[float, float]:
    """Merge a (possibly partial) user domain with the data-derived one.

    Entries can be numbers, ``"auto"``, ``"dataMin"``/``"dataMax"``,
    ``"dataMin - k"``/``"dataMax + k"`` or callables receiving the data bound.
    Without data overflow a numeric bound never hides data.
    """

    if callable(specified):
        out = specified(data_domain, allow_data_overflow)
        return _finite_pair(out, data_domain)
    if specified is None or len(specified) != 2:
        return data_domain

    lo = _parse_bound(specified[0], data_domain[0], allow_data_overflow, pick=min, pattern=_MIN_VALUE_RE, sign=-1.0)
    hi = _parse_bound(specified[1], data_domain[1], allow_data_overflow, pick=max, pattern=_MAX_VALUE_RE, sign=1.0)
    return _finite_pair((lo, hi), data_domain)


def _parse_bound(
    bound: Any,
    data_bound: float,
    allow_data_overflow: bool,
    *,
    pick: Callable[[float, float], float],
    pattern: re.Pattern[str],
    sign: float,
) -> float:
    if is_number(bound):
        return float(bound) if allow_data_overflow else pick(float(bound), data_bound)
    if isinstance(bound, str):
        match = pattern.match(bound.strip())
        if match:
            return data_bound + sign * float(match.group(1))
        return data_bound
    if callable(bound):
        return bound(data_bound)
    return data_bound


def _finite_pair(value: Any, fallback: tuple[float, float]) -> tuple[float, float]:
    try:
        lo = coerce_number(value[0])
        hi = coerce_number(value[1])
    except (TypeError, IndexError, KeyError):
        lo = hi = None
    if lo is None or hi is None:
        LOGGER.warning("ignoring invalid domain override %r", value)
        return fallback
    return (lo, hi)


def detect_reference_elements_domain(
    references: Sequence[ReferenceElement],
    domain: tuple[float, float],
    axis_id: Any,
    dimension: AxisDimension,
    specified_ticks: Sequence[Any] | None = None,
) -> tuple[float, float]:
    """Extend ``domain`` with reference annotations that must stay visible and explicit ticks."""

    values: list[float] = []
    for ref in references:
        if not ref.extends_domain:
            continue
        ref_axis = ref.x_axis_id if dimension == "x" else ref.y_axis_id
        if ref_axis != axis_id:
            continue
        if ref.kind == "area":
            raw = (ref.x1, ref.x2) if dimension == "x" else (ref.y1, ref.y2)
        else:
            raw = (ref.x if dimension == "x" else ref.y,)
        values.extend(v for v in (coerce_number(r) for r in raw) if v is not None)
    if specified_ticks:
        values.extend(v for v in (coerce_number(t) for t in specified_ticks) if v is not None)
    if not values:
        return domain
    return (min(domain[0], min(values)), max(domain[1], max(values)))


def _items_for_axis(series: Sequence[SeriesSpec], dimension: str, axis_id: Any) -> list[SeriesSpec]:
    return [item for item in series if item.axis_id_for(dimension) == axis_id]


def resolve_axis_domain(
    config: ChartConfig,
    spec: AxisSpec,
    *,
    series: Sequence[SeriesSpec],
    stack_groups: dict[Any, AxisStackGroups] | None,
    start_index: int,
    end_index: int,
) -> AxisRecord:
    """Resolve the domain of one declared axis over the windowed data."""

    layout = config.layout
    dimension = spec.dimension
    axis_id = spec.axis_id
    axis_type = spec.type
    is_categorical = is_categorical_axis(layout, dimension)
    axis_items = _items_for_axis(series, dimension, axis_id)
    displayed = get_displayed_data(config.data, axis_items, start_index, end_index)
    size = len(displayed)
    categorical_flavour = is_categorical and (axis_type == "number" or spec.scale != "auto")

    domain: Any = None
    duplicate_domain: Any = None
    categorical_domain: Any = None

    if is_domain_specified_by_user(spec.domain, spec.allow_data_overflow, axis_type):
        domain = tuple(spec.domain)
        if categorical_flavour:
            categorical_domain = tuple(get_domain_of_data_by_key(displayed, spec.data_key, "category"))

    default_domain = DEFAULT_NUMBER_DOMAIN if axis_type == "number" else None
    child_domain = spec.domain if spec.domain is not None else default_domain

    if domain is None:
        visible_items = [item for item in axis_items if spec.include_hidden or not item.hide]
        if spec.data_key is not None:
            if axis_type == "number":
                data_extent = get_domain_of_data_by_key(displayed, spec.data_key, "number")
                error_extents = [
                    get_domain_of_error_bars(displayed, item, spec.data_key, layout, dimension) for item in visible_items
                ]
                domain = merge_extents(data_extent, *error_extents)
            else:
                values = get_domain_of_data_by_key(displayed, spec.data_key, "category")
                if is_categorical:
                    if spec.allow_duplicated_category and has_duplicate(values):
                        duplicate_domain = tuple(values)
                        domain = tuple(range(size))
                    elif not spec.allow_duplicated_category:
                        domain = tuple(unique_ordered(values))
                    else:
                        domain = tuple(values)
                elif not spec.allow_duplicated_category:
                    domain = tuple(unique_ordered(v for v in values if v != "" and not is_nil(v)))
                else:
                    domain = tuple(v for v in values if v != "" and not is_nil(v))
            if categorical_flavour:
                categorical_domain = tuple(get_domain_of_data_by_key(displayed, spec.data_key, "category"))
        elif is_categorical:
            domain = tuple(range(size))
        elif stack_groups and axis_id in stack_groups and stack_groups[axis_id].has_stack and axis_type == "number":
            if config.stack_offset == "expand":
                domain = (0.0, 1.0)
            else:
                domain = get_domain_of_stack_groups(stack_groups[axis_id].stack_groups, start_index, end_index)
        else:
            domain = get_domain_of_items_with_same_axis(
                displayed, visible_items, axis_type, layout, dimension, filter_nil=True
            )
            if axis_type != "number":
                domain = tuple(domain)

        if axis_type == "number":
            if domain is None:
                domain = _empty_number_domain(child_domain)
            domain = detect_reference_elements_domain(
                config.reference_elements, domain, axis_id, dimension, spec.ticks
            )
            if spec.domain is not None:
                domain = parse_specified_domain(spec.domain, domain, spec.allow_data_overflow)

    LOGGER.debug("resolved %s-axis %r domain %r", dimension, axis_id, domain)
    return AxisRecord(
        spec=spec,
        layout=layout,
        domain=tuple(domain),
        original_domain=spec.domain,
        categorical_domain=categorical_domain,
        duplicate_domain=duplicate_domain,
        is_categorical=is_categorical,
        orientation=spec.orientation,
        hide=spec.hide,
    )


def _empty_number_domain(child_domain: Any) -> tuple[float, float]:
    if child_domain is None or callable(child_domain):
        return EMPTY_NUMBER_DOMAIN
    lo = coerce_number(child_domain[0]) if len(child_domain) > 0 else None
    hi = coerce_number(child_domain[1]) if len(child_domain) > 1 else None
    lo = EMPTY_NUMBER_DOMAIN[0] if lo is None else lo
    hi = max(lo + EMPTY_NUMBER_DOMAIN[1], lo) if hi is None else hi
    return (lo, hi)


def resolve_axis_map_by_axes(
    config: ChartConfig,
    dimension: AxisDimension,
    *,
    stack_groups: dict[Any, AxisStackGroups] | None,
    start_index: int,
    end_index: int,
) -> dict[Any, AxisRecord]:
    result: dict[Any, AxisRecord] = {}
    for spec in config.axes_for(dimension):
        if spec.axis_id in result:
            continue
        result[spec.axis_id] = resolve_axis_domain(
            config,
            spec,
            series=config.series,
            stack_groups=stack_groups,
            start_index=start_index,
            end_index=end_index,
        )
    return result


def resolve_axis_map_by_items(
    config: ChartConfig,
    dimension: AxisDimension,
    *,
    stack_groups: dict[Any, AxisStackGroups] | None,
    start_index: int,
    end_index: int,
) -> dict[Any, AxisRecord]:
    """Derive hidden implicit axes from series extents when none were declared."""

    layout = config.layout
    displayed = get_displayed_data(config.data, config.series, start_index, end_index)
    size = len(displayed)
    is_categorical = is_categorical_axis(layout, dimension)
    result: dict[Any, AxisRecord] = {}
    index = -1
    for item in config.series:
        axis_id = item.axis_id_for(dimension)
        if axis_id in result:
            continue
        index += 1
        if is_categorical:
            axis_type = "category"
            domain: tuple[Any, ...] = tuple(range(size))
        else:
            axis_type = "number"
            if stack_groups and axis_id in stack_groups and stack_groups[axis_id].has_stack:
                if config.stack_offset == "expand":
                    extent: tuple[float, float] = (0.0, 1.0)
                else:
                    extent = get_domain_of_stack_groups(stack_groups[axis_id].stack_groups, start_index, end_index)
            else:
                visible = [s for s in _items_for_axis(config.series, dimension, axis_id) if not s.hide]
                found = get_domain_of_items_with_same_axis(displayed, visible, "number", layout, dimension)
                extent = found if found is not None else EMPTY_NUMBER_DOMAIN
            domain = detect_reference_elements_domain(config.reference_elements, extent, axis_id, dimension)
        orientations = _ORIENT_MAP[dimension]
        spec = AxisSpec(axis_id=axis_id, dimension=dimension, type=axis_type, hide=True)
        result[axis_id] = AxisRecord(
            spec=spec,
            layout=layout,
            domain=tuple(domain),
            original_domain=None,
            is_categorical=is_categorical,
            implicit=True,
            orientation=orientations[index % 2],
            hide=True,
        )
    return result


def resolve_axis_map(
    config: ChartConfig,
    dimension: AxisDimension,
    *,
    stack_groups: dict[Any, AxisStackGroups] | None,
    start_index: int,
    end_index: int,
) -> dict[Any, AxisRecord]:
    if config.axes_for(dimension):
        return resolve_axis_map_by_axes(
            config, dimension, stack_groups=stack_groups, start_index=start_index, end_index=end_index
        )
    if config.series:
        return resolve_axis_map_by_items(
            config, dimension, stack_groups=stack_groups, start_index=start_index, end_index=end_index
        )
    return {}
