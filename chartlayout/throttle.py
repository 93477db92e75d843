from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from chartlayout.config import DEFAULT_THROTTLE_DELAY_S


LOGGER = logging.getLogger(__name__)


@dataclass
class PointerThrottle:
    """Rate limiter for pointer-move handling.

    The first call in a quiet period runs at once. Calls arriving inside the
    interval replace a single pending call, which is delivered by ``poll()``
    once the interval has elapsed (or by ``flush()`` immediately).
    ``cancel()`` drops it. There are no background timers: the host's event
    loop drives ``poll()``.
    """

    callback: Callable[..., Any]
    interval_s: float = DEFAULT_THROTTLE_DELAY_S
    clock: Callable[[], float] = time.monotonic
    _last_fired_at: float | None = field(default=None, init=False)
    _pending: tuple[tuple[Any, ...], dict[str, Any]] | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        if self.interval_s < 0:
            raise ValueError("interval_s must be >= 0")

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        now = self.clock()
        if self._last_fired_at is None or now - self._last_fired_at >= self.interval_s:
            self._pending = None
            return self._fire(now, args, kwargs)
        self._pending = (args, kwargs)
        return None

    def poll(self) -> bool:
        """Deliver the pending call if its interval has elapsed; return whether it fired."""

        if self._pending is None:
            return False
        now = self.clock()
        if self._last_fired_at is not None and now - self._last_fired_at < self.interval_s:
            return False
        args, kwargs = self._pending
        self._pending = None
        self._fire(now, args, kwargs)
        return True

    def flush(self) -> bool:
        if self._pending is None:
            return False
        args, kwargs = self._pending
        self._pending = None
        self._fire(self.clock(), args, kwargs)
        return True

    def cancel(self) -> None:
        if self._pending is not None:
            LOGGER.debug("dropping pending throttled call")
        self._pending = None
        self._last_fired_at = None

    def _fire(self, now: float, args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        self._last_fired_at = now
        return self.callback(*args, **kwargs)
