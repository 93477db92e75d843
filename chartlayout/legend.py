from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from chartlayout.config import LegendSpec, SeriesSpec


@dataclass(frozen=True)
class LegendPayloadEntry:
    value: Any
    type: str
    color: str | None
    inactive: bool
    series_key: str
    data_key: Any


def get_legend_payload(
    series: Sequence[tuple[str, SeriesSpec]],
    legend: LegendSpec | None = None,
) -> tuple[LegendPayloadEntry, ...]:
    """One legend row per series; hidden series stay listed but inactive."""

    icon_type = legend.icon_type if legend is not None else None
    inactive_color = legend.inactive_color if legend is not None else "#ccc"
    out: list[LegendPayloadEntry] = []
    for key, item in series:
        if item.legend_type == "none":
            continue
        if item.name is not None:
            value: Any = item.name
        elif callable(item.data_key):
            value = key
        else:
            value = item.data_key
        out.append(
            LegendPayloadEntry(
                value=value,
                type=icon_type or item.legend_type or "line",
                color=inactive_color if item.hide else item.color,
                inactive=item.hide,
                series_key=key,
                data_key=item.data_key,
            )
        )
    return tuple(out)
