from __future__ import annotations

from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any

import numpy as np

from chartlayout.errors import ChartDataError


try:
    import pandas as pd
except Exception:  # pragma: no cover - optional dependency
    pd = None  # type: ignore[assignment]

try:
    import torch
except Exception:  # pragma: no cover - optional dependency
    torch = None  # type: ignore[assignment]


def normalize_records(data: Any, *, label: str = "data") -> tuple[Any, ...]:
    """Coerce tabular input into an immutable tuple of records.

    Accepts a sequence of records (mappings or row sequences), a mapping of
    equal-length columns, a pandas DataFrame, a numpy structured array or a
    2-D numpy array / torch tensor (rows become tuples).
    """

    if data is None:
        return ()

    if pd is not None and isinstance(data, pd.DataFrame):
        return tuple({str(k): _coerce_scalar(v) for k, v in row.items()} for row in data.to_dict("records"))

    if torch is not None and isinstance(data, torch.Tensor):
        tensor = data.detach()
        if tensor.is_cuda:
            tensor = tensor.cpu()
        return _records_from_ndarray(tensor.numpy(), label=label)

    if isinstance(data, np.ndarray):
        return _records_from_ndarray(data, label=label)

    if isinstance(data, Mapping):
        return _records_from_columns(data, label=label)

    if isinstance(data, Sequence) and not isinstance(data, (str, bytes, bytearray)):
        return tuple(_coerce_record(row) for row in data)

    raise ChartDataError(f"unsupported {label} input type: {type(data)!r}")


def coerce_number(value: Any) -> float | None:
    """Return ``value`` as a finite float, or ``None`` when it is not numeric."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        value = float(value)
    if isinstance(value, (int, float, np.integer, np.floating)):
        out = float(value)
        return out if np.isfinite(out) else None
    if isinstance(value, str):
        try:
            out = float(value)
        except ValueError:
            return None
        return out if np.isfinite(out) else None
    return None


def _records_from_columns(columns: Mapping[Any, Any], *, label: str) -> tuple[dict[str, Any], ...]:
    resolved: dict[str, list[Any]] = {}
    for key, values in columns.items():
        if isinstance(values, (str, bytes, bytearray)) or not isinstance(values, (Sequence, np.ndarray)):
            if pd is not None and isinstance(values, pd.Series):
                values = values.to_list()
            elif torch is not None and isinstance(values, torch.Tensor):
                values = values.detach().cpu().tolist()
            else:
                raise ChartDataError(f"{label} column `{key}` must be 1-D")
        resolved[str(key)] = list(values.tolist() if isinstance(values, np.ndarray) else values)
    lengths = {len(v) for v in resolved.values()}
    if len(lengths) > 1:
        raise ChartDataError(f"{label} columns have mismatched lengths: {sorted(lengths)}")
    size = lengths.pop() if lengths else 0
    return tuple({k: _coerce_scalar(v[i]) for k, v in resolved.items()} for i in range(size))


def _records_from_ndarray(arr: np.ndarray, *, label: str) -> tuple[Any, ...]:
    if arr.dtype.names:
        names = arr.dtype.names
        return tuple({name: _coerce_scalar(row[name]) for name in names} for row in arr)
    if arr.ndim == 1:
        return tuple(_coerce_scalar(v) for v in arr.tolist())
    if arr.ndim != 2:
        raise ChartDataError(f"{label} array must be 1-D or 2-D")
    return tuple(tuple(row) for row in arr.tolist())


def _coerce_record(row: Any) -> Any:
    if isinstance(row, Mapping):
        return {k: _coerce_scalar(v) for k, v in row.items()}
    return row


def _coerce_scalar(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    if pd is not None and value is pd.NaT:
        return None
    return value
