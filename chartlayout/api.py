from __future__ import annotations

from typing import Any, Callable, Sequence

from chartlayout.chart import CategoricalChart
from chartlayout.config import AxisSpec, ChartConfig, SeriesSpec
from chartlayout.sync import SyncChannel


DEFAULT_ASPECT_RATIO = 16.0 / 9.0
DEFAULT_SIZE = (640.0, 360.0)


def resolve_chart_size(
    width: float | None,
    height: float | None,
    aspect_ratio: float = DEFAULT_ASPECT_RATIO,
) -> tuple[float, float]:
    if aspect_ratio <= 0:
        raise ValueError("aspect_ratio must be > 0")
    if width is None:
        return DEFAULT_SIZE if height is None else (height * aspect_ratio, height)
    if height is None:
        return (width, width / aspect_ratio)
    return (width, height)


def chart(
    data: Any = (),
    *,
    axes: Sequence[AxisSpec] = (),
    series: Sequence[SeriesSpec] = (),
    width: float | None = None,
    height: float | None = None,
    aspect_ratio: float = DEFAULT_ASPECT_RATIO,
    sync_channel: SyncChannel | None = None,
    clock: Callable[[], float] | None = None,
    **options: Any,
) -> CategoricalChart:
    """Build a :class:`CategoricalChart` from plain arguments.

    ``options`` are forwarded to :class:`ChartConfig` (``layout``,
    ``stack_offset``, ``sync_id`` ...). A missing size follows ``aspect_ratio``.
    """

    width, height = resolve_chart_size(width, height, aspect_ratio)
    config = ChartConfig(width=width, height=height, data=data, axes=tuple(axes), series=tuple(series), **options)
    return CategoricalChart(config, sync_channel=sync_channel, clock=clock)
