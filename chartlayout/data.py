from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Iterable

import numpy as np

from chartlayout.adapters.normalize import coerce_number
from chartlayout.config import AxisDimension, DataKey, LayoutType, SeriesSpec


_MISSING = object()


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, bool) and np.isfinite(value)


def is_num_or_str(value: Any) -> bool:
    return is_number(value) or isinstance(value, str)


def is_nil(value: Any) -> bool:
    return value is None or (isinstance(value, float) and np.isnan(value))


def get_value_by_data_key(entry: Any, data_key: DataKey | None, default: Any = None) -> Any:
    """Read one field from a record.

    String keys look up mapping fields (falling back to dotted paths and then
    attributes), integer keys index row sequences and callables compute a
    derived value from the whole record.
    """

    if entry is None or data_key is None:
        return default
    if callable(data_key):
        return data_key(entry)
    if isinstance(data_key, str):
        value = _lookup(entry, data_key)
        if value is _MISSING and "." in data_key:
            value = entry
            for part in data_key.split("."):
                value = _lookup(value, part)
                if value is _MISSING:
                    break
        return default if value is _MISSING or value is None else value
    if isinstance(data_key, int):
        value = _lookup(entry, data_key)
        return default if value is _MISSING or value is None else value
    return default


def _lookup(entry: Any, key: Any) -> Any:
    if isinstance(entry, Mapping):
        return entry.get(key, _MISSING)
    if isinstance(key, int) and isinstance(entry, Sequence) and not isinstance(entry, (str, bytes)):
        return entry[key] if -len(entry) <= key < len(entry) else _MISSING
    if isinstance(key, str):
        return getattr(entry, key, _MISSING)
    return _MISSING


def get_percent_value(percent: Any, total: float, default: float = 0.0, *, validate: bool = False) -> float:
    """Resolve ``"10%"``-style values against ``total``; plain numbers pass through."""

    if isinstance(percent, str) and percent.strip().endswith("%"):
        try:
            value = total * float(percent.strip()[:-1]) / 100.0
        except ValueError:
            value = default
    elif is_number(percent):
        value = float(percent)
    elif isinstance(percent, str):
        parsed = coerce_number(percent)
        value = default if parsed is None else parsed
    else:
        return default
    if validate and value > total:
        value = total
    return value


def get_displayed_data(
    data: Sequence[Any],
    series: Iterable[SeriesSpec],
    start_index: int,
    end_index: int,
) -> list[Any]:
    items_data: list[Any] = []
    for item in series:
        if item.data:
            items_data.extend(item.data)
    if items_data:
        return items_data
    if data:
        return list(data[start_index : end_index + 1])
    return []


def flatten_values(data: Iterable[Any], data_key: DataKey | None) -> list[Any]:
    out: list[Any] = []
    for entry in data:
        value = get_value_by_data_key(entry, data_key)
        if isinstance(value, (list, tuple, np.ndarray)):
            out.extend(list(value))
        else:
            out.append(value)
    return out


def numeric_extent(values: Iterable[Any]) -> tuple[float, float] | None:
    nums = [v for v in (coerce_number(v) for v in values) if v is not None]
    if not nums:
        return None
    arr = np.asarray(nums, dtype=np.float64)
    return (float(np.min(arr)), float(np.max(arr)))


def get_domain_of_data_by_key(
    data: Iterable[Any],
    data_key: DataKey | None,
    axis_type: str,
    *,
    filter_nil: bool = False,
) -> Any:
    """Numeric axes get ``(min, max)`` or ``None``; category axes get the raw value list."""

    values = flatten_values(data, data_key)
    if axis_type == "number":
        return numeric_extent(values)
    if filter_nil:
        values = [v for v in values if not is_nil(v)]
    return [v if is_num_or_str(v) or hasattr(v, "isoformat") else "" for v in values]


def unique_ordered(values: Iterable[Any]) -> list[Any]:
    seen: list[Any] = []
    hashed: set[Any] = set()
    for value in values:
        try:
            if value in hashed:
                continue
            hashed.add(value)
        except TypeError:
            if value in seen:
                continue
        seen.append(value)
    return seen


def has_duplicate(values: Sequence[Any]) -> bool:
    return len(unique_ordered(values)) != len(values)


def find_entry_in_array(entries: Iterable[Any], data_key: DataKey | None, target: Any) -> Any:
    for entry in entries:
        if entry is not None and get_value_by_data_key(entry, data_key) == target:
            return entry
    return None


def merge_extents(*extents: tuple[float, float] | None) -> tuple[float, float] | None:
    found = [e for e in extents if e is not None]
    if not found:
        return None
    return (min(e[0] for e in found), max(e[1] for e in found))


def error_bar_direction(layout: LayoutType, direction: str | None) -> str:
    if direction is not None:
        return direction
    return "x" if layout == "vertical" else "y"


def get_domain_of_error_bars(
    data: Iterable[Any],
    item: SeriesSpec,
    data_key: DataKey | None,
    layout: LayoutType,
    dimension: AxisDimension,
) -> tuple[float, float] | None:
    keys = [bar.data_key for bar in item.error_bars if error_bar_direction(layout, bar.direction) == dimension]
    if not keys:
        return None
    low = np.inf
    high = -np.inf
    for entry in data:
        raw = get_value_by_data_key(entry, data_key)
        if isinstance(raw, (list, tuple)):
            nums = [n for n in (coerce_number(v) for v in raw) if n is not None]
            if not nums:
                continue
            main = (min(nums), max(nums))
        else:
            value = coerce_number(raw)
            if value is None:
                continue
            main = (value, value)
        for key in keys:
            err = get_value_by_data_key(entry, key, 0)
            if isinstance(err, (list, tuple)) and len(err) == 2:
                lower = abs(coerce_number(err[0]) or 0.0)
                upper = abs(coerce_number(err[1]) or 0.0)
            else:
                lower = upper = abs(coerce_number(err) or 0.0)
            low = min(low, main[0] - lower)
            high = max(high, main[1] + upper)
    if not np.isfinite(low) or not np.isfinite(high):
        return None
    return (float(low), float(high))


def get_domain_of_items_with_same_axis(
    data: Sequence[Any],
    items: Sequence[SeriesSpec],
    axis_type: str,
    layout: LayoutType,
    dimension: AxisDimension,
    *,
    filter_nil: bool = False,
) -> Any:
    if axis_type == "number":
        extents = []
        for item in items:
            extents.append(get_domain_of_data_by_key(data, item.data_key, "number"))
            extents.append(get_domain_of_error_bars(data, item, item.data_key, layout, dimension))
        return merge_extents(*extents)
    return unique_ordered(
        value
        for item in items
        for value in get_domain_of_data_by_key(data, item.data_key, axis_type, filter_nil=filter_nil)
    )


def is_categorical_axis(layout: LayoutType, dimension: str) -> bool:
    return (
        (layout == "horizontal" and dimension == "x")
        or (layout == "vertical" and dimension == "y")
        or (layout == "centric" and dimension == "angle")
        or (layout == "radial" and dimension == "radius")
    )


def get_axis_names_by_layout(layout: LayoutType) -> tuple[AxisDimension, AxisDimension]:
    """Return ``(numeric_dimension, category_dimension)`` for a layout."""

    if layout == "horizontal":
        return ("y", "x")
    if layout == "vertical":
        return ("x", "y")
    if layout == "centric":
        return ("radius", "angle")
    return ("angle", "radius")
