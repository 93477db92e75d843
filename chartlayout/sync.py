from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Union

from chartlayout.brush import BrushWindow
from chartlayout.config import SyncMethod
from chartlayout.tooltip import INACTIVE_TOOLTIP, TooltipContext, TooltipState, in_range, tooltip_for_index


LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class TooltipSyncPayload:
    """Tooltip delta shared between linked charts; pixel values are the sender's."""

    is_active: bool = False
    active_index: int = -1
    active_label: Any = None
    chart_x: float | None = None
    chart_y: float | None = None


SyncPayload = Union[BrushWindow, TooltipSyncPayload]


@dataclass(frozen=True)
class SyncMessage:
    sync_id: Any
    emitter_id: str
    payload: SyncPayload


SyncHandler = Callable[[SyncMessage], None]


class SyncChannel:
    """Synchronous publish/subscribe registry keyed by sync id."""

    def __init__(self) -> None:
        self._handlers: dict[Any, list[SyncHandler]] = {}

    def subscribe(self, sync_id: Any, handler: SyncHandler) -> Callable[[], None]:
        self._handlers.setdefault(sync_id, []).append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(sync_id)
            if handlers and handler in handlers:
                handlers.remove(handler)
                if not handlers:
                    del self._handlers[sync_id]

        return unsubscribe

    def publish(self, message: SyncMessage) -> None:
        # Handlers may (un)subscribe while dispatching.
        for handler in list(self._handlers.get(message.sync_id, ())):
            handler(message)

    def subscriber_count(self, sync_id: Any) -> int:
        return len(self._handlers.get(sync_id, ()))


DEFAULT_SYNC_CHANNEL = SyncChannel()


def resolve_synced_index(
    sync_method: SyncMethod,
    context: TooltipContext,
    payload: TooltipSyncPayload,
) -> int:
    """Map a peer's active tooltip onto this chart's ticks; -1 when nothing matches."""

    ticks = context.tooltip_ticks
    if callable(sync_method):
        index = sync_method(ticks, payload)
    elif sync_method == "value":
        index = next((i for i, tick in enumerate(ticks) if tick.value == payload.active_label), -1)
    else:
        index = payload.active_index
    if index is None or not 0 <= int(index) < len(ticks):
        return -1
    return int(index)


class SyncCoordinator:
    """Links one chart to its peers on a :class:`SyncChannel`."""

    def __init__(
        self,
        sync_id: Any,
        *,
        channel: SyncChannel | None = None,
        sync_method: SyncMethod = "index",
        on_window: Callable[[BrushWindow], None],
        on_tooltip: Callable[[TooltipState], None],
        context: Callable[[], TooltipContext | None],
    ) -> None:
        self.sync_id = sync_id
        self.channel = DEFAULT_SYNC_CHANNEL if channel is None else channel
        self.sync_method = sync_method
        self.emitter_id = uuid.uuid4().hex
        self._on_window = on_window
        self._on_tooltip = on_tooltip
        self._context = context
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def mounted(self) -> bool:
        return self._unsubscribe is not None

    def mount(self) -> None:
        if self.sync_id is None or self._unsubscribe is not None:
            return
        self._unsubscribe = self.channel.subscribe(self.sync_id, self.receive)

    def unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _publish(self, payload: SyncPayload) -> None:
        if self.sync_id is None:
            return
        LOGGER.debug("sync %r: %s broadcasts %r", self.sync_id, self.emitter_id, payload)
        self.channel.publish(SyncMessage(self.sync_id, self.emitter_id, payload))

    def broadcast_window(self, window: BrushWindow) -> None:
        self._publish(window)

    def broadcast_tooltip(self, state: TooltipState) -> None:
        self._publish(
            TooltipSyncPayload(
                is_active=state.is_active,
                active_index=state.active_index,
                active_label=state.active_label,
                chart_x=state.chart_x,
                chart_y=state.chart_y,
            )
        )

    def broadcast_deactivate(self) -> None:
        self._publish(TooltipSyncPayload(is_active=False))

    def receive(self, message: SyncMessage) -> None:
        if message.sync_id != self.sync_id:
            return
        if message.emitter_id == self.emitter_id and not callable(self.sync_method):
            return
        payload = message.payload
        if isinstance(payload, BrushWindow):
            self._on_window(payload)
            return
        if not payload.is_active:
            self._on_tooltip(INACTIVE_TOOLTIP)
            return
        context = self._context()
        if context is None:
            return
        self._on_tooltip(self.apply_tooltip(payload, context))

    def apply_tooltip(self, payload: TooltipSyncPayload, context: TooltipContext) -> TooltipState:
        """Recompute a peer's tooltip against this chart's own ticks and plot box."""

        index = resolve_synced_index(self.sync_method, context, payload)
        offset = context.offset
        x = offset.left + offset.width / 2.0 if payload.chart_x is None else payload.chart_x
        y = offset.top + offset.height / 2.0 if payload.chart_y is None else payload.chart_y
        x, y = offset.clamp(x, y)
        if index < 0:
            return TooltipState(chart_x=x, chart_y=y)
        return tooltip_for_index(context, index, in_range(x, y, context), chart_x=x, chart_y=y)
