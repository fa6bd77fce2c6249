"""WindowKeeper: wires the host, the registry and the engine together."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from windowkeeper.core.events import HostEvent
from windowkeeper.core.types import (
    DEFAULT_NAME,
    LiveWindow,
    OpenResult,
    SavedWindowEntry,
    WindowId,
)
from windowkeeper.engine.dispatch import dispatch
from windowkeeper.engine.indicator import IndicatorSink
from windowkeeper.engine.reconciler import ReconciliationEngine
from windowkeeper.host.base import BaseHost
from windowkeeper.store.registry import RegistryState, RegistryStore
from windowkeeper.store.storage import JsonFileStorage, StateStorage

logger = logging.getLogger(__name__)


class WindowKeeper:
    """
    Sits between the browser host and the UI that lists saved windows.

    Host events are queued and handled strictly one at a time, each to
    completion (including its flush) before the next one starts.

    Usage:
        keeper = WindowKeeper(host, state_path="~/.windowkeeper/state.json")
        await keeper.start()
        await keeper.save_current_window("Work")
        result = await keeper.open_window("Reading")
        await keeper.stop()
    """

    def __init__(
        self,
        host: BaseHost,
        *,
        storage: StateStorage | None = None,
        state_path: str | Path | None = None,
        indicator: IndicatorSink | None = None,
        default_name: str = DEFAULT_NAME,
    ) -> None:
        self.default_name = default_name
        self._host = host
        self._storage = storage or JsonFileStorage(state_path)
        self._store = RegistryStore(self._storage)
        self._engine = ReconciliationEngine(self._store, host, indicator)
        self._events: asyncio.Queue[HostEvent] | None = None
        self._pump: asyncio.Task | None = None
        self._subscribed = False
        self._accepting = False

    @property
    def engine(self) -> ReconciliationEngine:
        return self._engine

    @property
    def state(self) -> RegistryState:
        return self._store.state

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """
        Reconcile saved windows with the open ones, then start handling events.

        The host subscription is made first so that nothing happening during
        reconciliation is lost; those events are handled right after it.
        """
        if self._pump is not None:
            return
        self._events = asyncio.Queue()
        self._accepting = True
        if not self._subscribed:
            self._host.subscribe(self.post)
            self._subscribed = True
        await self._engine.initialize()
        self._pump = asyncio.create_task(self.run())

    async def stop(self) -> None:
        """Stop handling events. Events the host sends from now on are dropped."""
        self._accepting = False
        if self._pump is None:
            return
        self._pump.cancel()
        try:
            await self._pump
        except asyncio.CancelledError:
            pass
        self._pump = None

    def post(self, event: HostEvent) -> None:
        """Queue a host event. Safe to call from synchronous host callbacks."""
        if self._events is None:
            raise RuntimeError("WindowKeeper.start() must be called before post()")
        if not self._accepting:
            logger.debug("Keeper stopped; dropping %r", event)
            return
        self._events.put_nowait(event)

    async def run(self) -> None:
        """Handle queued events forever, one at a time."""
        if self._events is None:
            raise RuntimeError("WindowKeeper.start() must be called before run()")
        while True:
            event = await self._events.get()
            try:
                await dispatch(self._engine, event)
            except Exception:
                logger.exception("Handler for %r failed", event)
            finally:
                self._events.task_done()

    async def drain(self) -> None:
        """Wait until every event queued so far has been handled."""
        if self._events is not None:
            await self._events.join()

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def save_window(self, window: LiveWindow | None, name: str) -> LiveWindow | None:
        return await self._engine.save_window(window, name)

    async def save_current_window(self, name: str) -> LiveWindow | None:
        """Save the host's current window. Returns None if nothing was saved."""
        try:
            window = await self._host.get_current_window()
        except Exception:
            logger.warning("Could not read the current window", exc_info=True)
            return None
        return await self._engine.save_window(window, name)

    async def delete_saved_window(self, name: str) -> bool:
        return await self._engine.delete_saved_window(name)

    async def undo_delete_saved_window(self, name: str) -> bool:
        return await self._engine.undo_delete_saved_window(name)

    async def open_window(self, name: str) -> OpenResult:
        return await self._engine.open_window(name)

    async def focus_saved_window(self, name: str) -> bool:
        return await self._engine.focus_saved_window(name)

    def list_saved_windows(self, current_window_id: WindowId | None = None) -> list[SavedWindowEntry]:
        return self._engine.list_saved_windows(current_window_id)

    async def update_badge_for_all_windows(self) -> None:
        await self._engine.update_badge_for_all_windows()
