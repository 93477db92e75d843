from __future__ import annotations


class ChartConfigError(ValueError):
    """Raised when chart configuration references are inconsistent (caller bug)."""


class ChartDataError(ValueError):
    """Raised when a dataset cannot be normalized into records."""
