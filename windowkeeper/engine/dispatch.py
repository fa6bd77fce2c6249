"""Routes host events to the matching ReconciliationEngine handler."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from windowkeeper.core.events import (
    HostEvent,
    TabActivated,
    TabAttached,
    TabDetached,
    TabRemoved,
    TabUpdated,
    WindowCreated,
    WindowFocusChanged,
    WindowRemoved,
)
from windowkeeper.engine.reconciler import ReconciliationEngine

logger = logging.getLogger(__name__)

_Handler = Callable[[ReconciliationEngine, HostEvent], Awaitable[None]]

_HANDLERS: dict[type, _Handler] = {
    WindowCreated: lambda e, ev: e.on_window_created(ev.window),
    WindowRemoved: lambda e, ev: e.on_window_removed(ev.window_id),
    WindowFocusChanged: lambda e, ev: e.on_window_focus_changed(ev.window_id),
    TabUpdated: lambda e, ev: e.on_tab_updated(ev.tab_id, ev.window_id),
    TabRemoved: lambda e, ev: e.on_tab_removed(ev.tab_id, ev.window_id, ev.is_window_closing),
    TabActivated: lambda e, ev: e.on_tab_activated(ev.tab_id, ev.window_id),
    TabAttached: lambda e, ev: e.on_tab_attached(ev.tab_id, ev.new_window_id),
    TabDetached: lambda e, ev: e.on_tab_detached(ev.tab_id, ev.old_window_id),
}


async def dispatch(engine: ReconciliationEngine, event: HostEvent) -> None:
    """Run the handler for ``event`` to completion. Unknown event types raise TypeError."""
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"No handler for event {type(event).__name__}")
    logger.debug("Dispatching %r", event)
    await handler(engine, event)
