from __future__ import annotations

import math
from decimal import Decimal, InvalidOperation
from typing import Any, Sequence

import numpy as np


class ContinuousScale:
    """Monotonic numeric mapping from a two-point domain onto a pixel range."""

    kind = "linear"
    is_continuous = True

    def __init__(self, domain: Sequence[float] = (0.0, 1.0), range: Sequence[float] = (0.0, 1.0)) -> None:
        self._domain = (float(domain[0]), float(domain[-1]))
        self._range = (float(range[0]), float(range[-1]))

    @property
    def domain(self) -> tuple[float, float]:
        return self._domain

    @domain.setter
    def domain(self, value: Sequence[float]) -> None:
        self._domain = (float(value[0]), float(value[-1]))

    @property
    def range(self) -> tuple[float, float]:
        return self._range

    @range.setter
    def range(self, value: Sequence[float]) -> None:
        self._range = (float(value[0]), float(value[-1]))

    def _forward(self, value: float) -> float:
        return value

    def _backward(self, value: float) -> float:
        return value

    def __call__(self, value: Any) -> float | None:
        if value is None or isinstance(value, bool):
            return None
        try:
            v = float(value)
        except (TypeError, ValueError):
            return None
        t = self._forward(v)
        t0 = self._forward(self._domain[0])
        t1 = self._forward(self._domain[1])
        if not all(np.isfinite((t, t0, t1))):
            return None
        r0, r1 = self._range
        if t1 == t0:
            return (r0 + r1) / 2.0
        return r0 + (t - t0) / (t1 - t0) * (r1 - r0)

    def invert(self, pixel: float) -> float:
        r0, r1 = self._range
        t0 = self._forward(self._domain[0])
        t1 = self._forward(self._domain[1])
        if r1 == r0:
            return self._backward((t0 + t1) / 2.0)
        return self._backward(t0 + (float(pixel) - r0) / (r1 - r0) * (t1 - t0))

    def bandwidth(self) -> float:
        return 0.0

    def ticks(self, count: int = 10) -> list[float]:
        lo, hi = sorted(self._domain)
        return [float(v) for v in ticks_within_range(generate_nice_ticks(lo, hi, max(count, 1)), vmin=lo, vmax=hi)]


class LinearScale(ContinuousScale):
    kind = "linear"


class LogScale(ContinuousScale):
    kind = "log"

    def __init__(self, domain: Sequence[float] = (1.0, 10.0), range: Sequence[float] = (0.0, 1.0), base: float = 10.0) -> None:
        super().__init__(domain, range)
        if base <= 0 or base == 1:
            raise ValueError("log base must be > 0 and != 1")
        self.base = float(base)

    def _forward(self, value: float) -> float:
        negative = self._domain[0] < 0 and self._domain[1] < 0
        if negative:
            return -math.log(-value, self.base) if value < 0 else math.nan
        return math.log(value, self.base) if value > 0 else math.nan

    def _backward(self, value: float) -> float:
        if self._domain[0] < 0 and self._domain[1] < 0:
            return -(self.base ** -value)
        return self.base**value

    def ticks(self, count: int = 10) -> list[float]:
        lo, hi = sorted(self._domain)
        if lo <= 0:
            return super().ticks(count)
        first = math.floor(math.log(lo, self.base))
        last = math.ceil(math.log(hi, self.base))
        out = [self.base**p for p in range(first, last + 1) if lo <= self.base**p <= hi]
        return out if len(out) >= 2 else super().ticks(count)


class PowScale(ContinuousScale):
    kind = "pow"

    def __init__(self, domain: Sequence[float] = (0.0, 1.0), range: Sequence[float] = (0.0, 1.0), exponent: float = 1.0) -> None:
        super().__init__(domain, range)
        self.exponent = float(exponent)

    def _forward(self, value: float) -> float:
        return math.copysign(abs(value) ** self.exponent, value)

    def _backward(self, value: float) -> float:
        return math.copysign(abs(value) ** (1.0 / self.exponent), value)


class SqrtScale(PowScale):
    kind = "sqrt"

    def __init__(self, domain: Sequence[float] = (0.0, 1.0), range: Sequence[float] = (0.0, 1.0), exponent: float = 0.5) -> None:
        super().__init__(domain, range, exponent=exponent)


class SymlogScale(ContinuousScale):
    kind = "symlog"

    def __init__(self, domain: Sequence[float] = (0.0, 1.0), range: Sequence[float] = (0.0, 1.0), constant: float = 1.0) -> None:
        super().__init__(domain, range)
        if constant <= 0:
            raise ValueError("symlog constant must be > 0")
        self.constant = float(constant)

    def _forward(self, value: float) -> float:
        return math.copysign(math.log1p(abs(value) / self.constant), value)

    def _backward(self, value: float) -> float:
        return math.copysign(math.expm1(abs(value)) * self.constant, value)


class BandScale:
    """Discrete mapping where each domain value owns an equal slice of the range."""

    kind = "band"
    is_continuous = False

    def __init__(
        self,
        domain: Sequence[Any] = (),
        range: Sequence[float] = (0.0, 1.0),
        *,
        padding_inner: float = 0.0,
        padding_outer: float = 0.0,
        align: float = 0.5,
    ) -> None:
        if not 0.0 <= padding_inner <= 1.0:
            raise ValueError("padding_inner must be in [0, 1]")
        if not 0.0 <= align <= 1.0:
            raise ValueError("align must be in [0, 1]")
        self.padding_inner = float(padding_inner)
        self.padding_outer = float(padding_outer)
        self.align = float(align)
        self._range = (float(range[0]), float(range[-1]))
        self._domain: tuple[Any, ...] = ()
        self._lookup: dict[Any, int] = {}
        self.domain = domain

    @property
    def domain(self) -> tuple[Any, ...]:
        return self._domain

    @domain.setter
    def domain(self, values: Sequence[Any]) -> None:
        ordered: list[Any] = []
        lookup: dict[Any, int] = {}
        for value in values:
            try:
                if value in lookup:
                    continue
                lookup[value] = len(ordered)
            except TypeError:
                if value in ordered:
                    continue
            ordered.append(value)
        self._domain = tuple(ordered)
        self._lookup = lookup

    @property
    def range(self) -> tuple[float, float]:
        return self._range

    @range.setter
    def range(self, value: Sequence[float]) -> None:
        self._range = (float(value[0]), float(value[-1]))

    def _layout(self) -> tuple[float, float, bool]:
        n = len(self._domain)
        r0, r1 = self._range
        reverse = r1 < r0
        start, stop = (r1, r0) if reverse else (r0, r1)
        step = (stop - start) / max(1.0, n - self.padding_inner + self.padding_outer * 2.0)
        start += (stop - start - step * (n - self.padding_inner)) * self.align
        return start, step, reverse

    def step(self) -> float:
        return self._layout()[1]

    def bandwidth(self) -> float:
        return self.step() * (1.0 - self.padding_inner)

    def index_of(self, value: Any) -> int | None:
        try:
            return self._lookup.get(value)
        except TypeError:
            return self._domain.index(value) if value in self._domain else None

    def __call__(self, value: Any) -> float | None:
        index = self.index_of(value)
        if index is None:
            return None
        start, step, reverse = self._layout()
        if reverse:
            index = len(self._domain) - 1 - index
        return start + step * index

    def invert(self, pixel: float) -> Any:
        """Return the domain value whose band center is nearest to ``pixel``."""

        if not self._domain:
            return None
        half = self.bandwidth() / 2.0
        centers = np.asarray([self(v) + half for v in self._domain], dtype=np.float64)
        return self._domain[int(np.argmin(np.abs(centers - float(pixel))))]


class PointScale(BandScale):
    kind = "point"

    def __init__(self, domain: Sequence[Any] = (), range: Sequence[float] = (0.0, 1.0), *, padding: float = 0.0, align: float = 0.5) -> None:
        super().__init__(domain, range, padding_inner=1.0, padding_outer=padding, align=align)


Scale = ContinuousScale | BandScale

SCALE_TYPES: dict[str, type] = {
    "linear": LinearScale,
    "log": LogScale,
    "pow": PowScale,
    "sqrt": SqrtScale,
    "symlog": SymlogScale,
    "band": BandScale,
    "point": PointScale,
}


def create_scale(kind: str) -> Scale:
    try:
        return SCALE_TYPES[kind]()
    except KeyError:
        raise ValueError(f"unknown scale type: {kind}") from None


class ScaleHelper:
    """Anchor-aware wrapper used when positioning values inside category bands."""

    def __init__(self, scale: Scale) -> None:
        self.scale = scale

    @property
    def range_min(self) -> float:
        return self.scale.range[0]

    @property
    def range_max(self) -> float:
        return self.scale.range[1]

    def bandwidth(self) -> float:
        return self.scale.bandwidth()

    def apply(self, value: Any, *, band_aware: bool = False, position: str | None = None) -> float | None:
        if value is None:
            return None
        base = self.scale(value)
        if base is None:
            return None
        if position == "middle":
            return base + self.bandwidth() / 2.0
        if position == "end":
            return base + self.bandwidth()
        if position is None and band_aware:
            return base + self.bandwidth() / 2.0
        return base


def ticks_within_range(ticks: np.ndarray, *, vmin: float, vmax: float) -> np.ndarray:
    if ticks.size == 0:
        return ticks
    span = max(abs(vmax - vmin), 1e-12)
    eps = span * 1e-9
    keep = (ticks >= vmin - eps) & (ticks <= vmax + eps)
    return ticks[keep]


def generate_nice_ticks(
    vmin: float,
    vmax: float,
    target: int,
    preferred_step: float | None = None,
    *,
    allow_decimals: bool = True,
) -> np.ndarray:
    if target <= 0:
        raise ValueError("target must be > 0")
    if vmin == vmax:
        return np.asarray([vmin], dtype=np.float64)

    span = _nice_number(vmax - vmin, round_result=False)
    step = _nice_number(span / max(target - 1, 1), round_result=True)
    if preferred_step is not None and np.isfinite(preferred_step) and preferred_step > 0:
        # Use finer preferred step only if it doesn't explode label count.
        est_ticks = int(np.ceil((vmax - vmin) / preferred_step)) + 1
        if preferred_step < step and est_ticks <= max(target * 2, 12):
            step = preferred_step
    if not allow_decimals:
        step = max(1.0, float(np.ceil(step)))
    tick_min = np.floor(vmin / step) * step
    tick_max = np.ceil(vmax / step) * step

    ticks = np.arange(tick_min, tick_max + 0.5 * step, step, dtype=np.float64)
    # Normalize floating-point drift so values like -4.44e-16 become 0.
    ticks = np.rint(ticks / step) * step
    ticks[np.isclose(ticks, 0.0, rtol=0.0, atol=step * 1e-9)] = 0.0
    return ticks


def get_nice_tick_values(domain: Sequence[float], tick_count: int, allow_decimals: bool = True) -> list[float]:
    """Nice ticks covering ``domain``; the outer ticks may lie outside of it."""

    d0, d1 = float(domain[0]), float(domain[-1])
    lo, hi = min(d0, d1), max(d0, d1)
    if lo == hi:
        if lo == 0:
            values = generate_nice_ticks(0.0, float(max(tick_count - 1, 1)), tick_count, allow_decimals=allow_decimals)
        else:
            pad = abs(lo) * 0.5
            values = generate_nice_ticks(lo - pad, hi + pad, tick_count, allow_decimals=allow_decimals)
    else:
        values = generate_nice_ticks(lo, hi, tick_count, allow_decimals=allow_decimals)
    out = [float(v) for v in values]
    return out if d0 <= d1 else out[::-1]


def get_tick_values_fixed_domain(domain: Sequence[float], tick_count: int, allow_decimals: bool = True) -> list[float]:
    d0, d1 = float(domain[0]), float(domain[-1])
    lo, hi = min(d0, d1), max(d0, d1)
    if lo == hi:
        return [lo]
    ticks = ticks_within_range(generate_nice_ticks(lo, hi, tick_count, allow_decimals=allow_decimals), vmin=lo, vmax=hi)
    out = [float(v) for v in ticks]
    return out if d0 <= d1 else out[::-1]


def format_tick(value: float, *, step: float | None = None) -> str:
    if not np.isfinite(value):
        return str(value)
    if step is not None and np.isfinite(step) and step > 0 and abs(value) <= step * 1e-9:
        value = 0.0
    abs_v = abs(value)
    decimals = _decimals_from_step(step) if step is not None else 6
    if abs_v != 0 and (abs_v >= 1e6 or (step is not None and abs(step) < 1e-4) or abs_v < 1e-6):
        return f"{value:.4e}"

    d = Decimal(str(value))
    quant = Decimal("1").scaleb(-decimals)
    try:
        q = d.quantize(quant)
    except InvalidOperation:
        q = d
    out = format(q, "f")
    # Only trim trailing zeros for fractional values (preserve integer zeros like 30, 40).
    if "." in out:
        out = out.rstrip("0").rstrip(".")
    if out == "-0":
        out = "0"
    return out


def format_ticks_for_axis(values: Sequence[float]) -> list[str]:
    """Label numeric ticks with a precision shared across the axis."""

    if len(values) < 2:
        return [format_tick(float(v)) for v in values]
    step = abs(float(values[1]) - float(values[0]))
    return [format_tick(float(v), step=step) for v in values]


def _nice_number(value: float, *, round_result: bool) -> float:
    exp = np.floor(np.log10(value))
    frac = value / (10**exp)

    if round_result:
        if frac < 1.5:
            nice_frac = 1.0
        elif frac < 3.0:
            nice_frac = 2.0
        elif frac < 7.0:
            nice_frac = 5.0
        else:
            nice_frac = 10.0
    else:
        if frac <= 1.0:
            nice_frac = 1.0
        elif frac <= 2.0:
            nice_frac = 2.0
        elif frac <= 5.0:
            nice_frac = 5.0
        else:
            nice_frac = 10.0

    return float(nice_frac * (10**exp))


def _decimals_from_step(step: float) -> int:
    if step <= 0 or not np.isfinite(step):
        return 6
    d = Decimal(str(step)).normalize()
    exp = d.as_tuple().exponent
    decimals = max(0, -int(exp))
    return min(12, decimals)
