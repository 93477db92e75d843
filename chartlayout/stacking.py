from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

import numpy as np

from chartlayout.adapters.normalize import coerce_number
from chartlayout.config import AxisId, SeriesSpec, StackOffsetType
from chartlayout.data import get_value_by_data_key


StackOffsetFn = Callable[[np.ndarray], None]


@dataclass
class StackGroup:
    numeric_dimension: str
    category_dimension: str
    items: list[SeriesSpec] = field(default_factory=list)
    stacked_data: np.ndarray | None = None
    private: bool = False

    def stacked_data_of(self, item: SeriesSpec) -> np.ndarray | None:
        if self.stacked_data is None:
            return None
        for i, member in enumerate(self.items):
            if member is item:
                return self.stacked_data[i]
        return None


@dataclass
class AxisStackGroups:
    has_stack: bool = False
    stack_groups: dict[Any, StackGroup] = field(default_factory=dict)


def _as_stack_value(value: Any) -> float:
    if value is None:
        return 0.0
    number = coerce_number(value)
    return np.nan if number is None else number


def offset_none(series: np.ndarray, order: Sequence[int] | None = None) -> None:
    n = series.shape[0]
    if n <= 1:
        return
    order = list(range(n)) if order is None else list(order)
    for i in range(1, n):
        s0 = series[order[i - 1]]
        s1 = series[order[i]]
        prev_top = np.where(np.isnan(s0[:, 1]), s0[:, 0], s0[:, 1])
        s1[:, 0] = prev_top
        s1[:, 1] = s1[:, 1] + prev_top


def offset_expand(series: np.ndarray) -> None:
    if series.shape[0] == 0:
        return
    totals = np.nansum(series[:, :, 1], axis=0)
    nonzero = totals != 0
    series[:, nonzero, 1] = series[:, nonzero, 1] / totals[nonzero]
    offset_none(series)


def offset_silhouette(series: np.ndarray) -> None:
    if series.shape[0] == 0:
        return
    totals = np.nansum(series[:, :, 1], axis=0)
    s0 = series[0]
    s0[:, 0] = -totals / 2.0
    s0[:, 1] = s0[:, 1] + s0[:, 0]
    offset_none(series)


def offset_wiggle(series: np.ndarray) -> None:
    n, m = series.shape[0], series.shape[1] if series.ndim == 3 else 0
    if n == 0 or m == 0:
        return
    values = np.nan_to_num(series[:, :, 1], nan=0.0)
    s0 = series[0]
    y = 0.0
    for j in range(1, m):
        s1 = 0.0
        s2 = 0.0
        for i in range(n):
            sij0 = values[i, j]
            sij1 = values[i, j - 1]
            s3 = (sij0 - sij1) / 2.0
            for k in range(i):
                s3 += values[k, j] - values[k, j - 1]
            s1 += sij0
            s2 += s3 * sij0
        s0[j - 1, 0] = y
        s0[j - 1, 1] += y
        if s1:
            y -= s2 / s1
    s0[m - 1, 0] = y
    s0[m - 1, 1] += y
    offset_none(series)


def offset_sign(series: np.ndarray) -> None:
    """Stack positive and negative values into two independent piles from zero."""

    n = series.shape[0]
    if n == 0:
        return
    for j in range(series.shape[1]):
        positive = 0.0
        negative = 0.0
        for i in range(n):
            value = series[i, j, 0] if np.isnan(series[i, j, 1]) else series[i, j, 1]
            if value >= 0:
                series[i, j, 0] = positive
                series[i, j, 1] = positive + value
                positive = series[i, j, 1]
            else:
                series[i, j, 0] = negative
                series[i, j, 1] = negative + value
                negative = series[i, j, 1]


def offset_positive(series: np.ndarray) -> None:
    n = series.shape[0]
    if n == 0:
        return
    for j in range(series.shape[1]):
        positive = 0.0
        for i in range(n):
            value = series[i, j, 0] if np.isnan(series[i, j, 1]) else series[i, j, 1]
            if value >= 0:
                series[i, j, 0] = positive
                series[i, j, 1] = positive + value
                positive = series[i, j, 1]
            else:
                series[i, j, 0] = 0.0
                series[i, j, 1] = 0.0


STACK_OFFSETS: dict[str, StackOffsetFn] = {
    "none": offset_none,
    "expand": offset_expand,
    "wiggle": offset_wiggle,
    "silhouette": offset_silhouette,
    "sign": offset_sign,
    "positive": offset_positive,
}


def get_stacked_data(data: Sequence[Any], items: Sequence[SeriesSpec], offset_type: StackOffsetType) -> np.ndarray:
    """Return ``(len(items), len(data), 2)`` ``[base, top]`` extents."""

    series = np.zeros((len(items), len(data), 2), dtype=np.float64)
    for i, item in enumerate(items):
        for j, entry in enumerate(data):
            series[i, j, 1] = _as_stack_value(get_value_by_data_key(entry, item.data_key))
    STACK_OFFSETS.get(offset_type, offset_none)(series)
    return series


def get_stack_groups_by_axis_id(
    data: Sequence[Any],
    items: Sequence[SeriesSpec],
    numeric_dimension: str,
    category_dimension: str,
    offset_type: StackOffsetType,
    reverse_stack_order: bool = False,
) -> dict[AxisId, AxisStackGroups]:
    """Group visible series by numeric axis and stack id and accumulate their values.

    Series without a stack id get a private single-member group so bar
    positioning still sees them; only shared stack ids mark an axis stacked.
    """

    indexed = list(enumerate(items))
    ordered = list(reversed(indexed)) if reverse_stack_order else indexed
    groups: dict[AxisId, AxisStackGroups] = {}
    for index, item in ordered:
        if item.hide:
            continue
        axis_id = item.axis_id_for(numeric_dimension)
        parent = groups.setdefault(axis_id, AxisStackGroups())
        if item.stack_id is not None:
            child = parent.stack_groups.get(item.stack_id)
            if child is None:
                child = StackGroup(numeric_dimension=numeric_dimension, category_dimension=category_dimension)
                parent.stack_groups[item.stack_id] = child
            child.items.append(item)
            parent.has_stack = True
        else:
            private_id = f"_stack_id_{index}"
            parent.stack_groups[private_id] = StackGroup(
                numeric_dimension=numeric_dimension,
                category_dimension=category_dimension,
                items=[item],
                private=True,
            )

    for parent in groups.values():
        if not parent.has_stack:
            continue
        for group in parent.stack_groups.values():
            group.stacked_data = get_stacked_data(data, group.items, offset_type)
    return groups


def get_domain_of_stack_groups(
    stack_groups: dict[Any, StackGroup],
    start_index: int,
    end_index: int,
) -> tuple[float, float]:
    low = np.inf
    high = -np.inf
    for group in stack_groups.values():
        if group.stacked_data is None or group.stacked_data.size == 0:
            continue
        window = group.stacked_data[:, start_index : end_index + 1, :]
        finite = window[np.isfinite(window)]
        if finite.size == 0:
            continue
        low = min(low, float(np.min(finite)))
        high = max(high, float(np.max(finite)))
    return (0.0 if not np.isfinite(low) else low, 0.0 if not np.isfinite(high) else high)


def get_stacked_data_of_item(item: SeriesSpec, stack_groups: dict[Any, StackGroup]) -> np.ndarray | None:
    if item.stack_id is None:
        return None
    group = stack_groups.get(item.stack_id)
    if group is None:
        return None
    return group.stacked_data_of(item)
