"""ReconciliationEngine: keeps saved windows in step with the live browser."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable

from windowkeeper.core.errors import WindowNotFoundError
from windowkeeper.core.types import (
    LiveWindow,
    OpenResult,
    SavedWindow,
    SavedWindowEntry,
    TabId,
    UndoEntry,
    WindowId,
    WindowStatus,
)
from windowkeeper.engine.indicator import IndicatorSink, NullIndicatorSink, indicator_text
from windowkeeper.engine.matcher import windows_are_equal
from windowkeeper.host.base import BaseHost
from windowkeeper.store.registry import RegistryState, RegistryStore

logger = logging.getLogger(__name__)

# Tabs showing one of these are empty new-tab pages and safe to close.
PLACEHOLDER_URLS = frozenset({
    "about:blank",
    "about:newtab",
    "chrome://newtab/",
    "chrome://new-tab-page/",
    "edge://newtab/",
})

_BLANK_URL = "about:blank"


class ReconciliationEngine:
    """
    Decides which live window (if any) is which saved window, and keeps the
    registry consistent as windows and tabs come and go.

    Every handler and operation finishes its registry mutation with a flush.
    Indicator updates, pinning and placeholder cleanup are best-effort: their
    failures are logged and never abort the operation.

    Usage:
        engine = ReconciliationEngine(RegistryStore(storage), host)
        await engine.initialize()
        await engine.save_window(window, "Work")
    """

    def __init__(
        self,
        store: RegistryStore,
        host: BaseHost,
        indicator: IndicatorSink | None = None,
    ) -> None:
        self._store = store
        self._host = host
        self._indicator = indicator or NullIndicatorSink()
        # window id -> last tab seen activated, to refresh it when focus moves on
        self._active_tabs: dict[WindowId, TabId] = {}

    @property
    def state(self) -> RegistryState:
        return self._store.state

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """
        Rebuild the live index from scratch for a new browser session.

        Every saved window starts out closed; saved names are then matched, in
        list order, against the open windows in host order. The first matching
        window wins and is not offered to later names.
        """
        state = await self._store.load()
        state.live_index.clear()
        self._active_tabs.clear()
        self._store.sweep_orphans()

        try:
            windows = await self._host.get_all_windows()
        except Exception:
            logger.exception("Could not enumerate open windows; treating all as closed")
            windows = []

        for name in list(state.closed):
            if name not in state.snapshots:
                del state.closed[name]

        claimed: set[WindowId] = set()
        for name in state.names:
            snapshot = state.snapshots[name]
            snapshot.live_id = None
            snapshot.focused = False
            state.closed[name] = snapshot
            for window in windows:
                if window.id in claimed:
                    continue
                if windows_are_equal(window, snapshot):
                    await self.mark_window_as_open(window, name)
                    _resnapshot(snapshot, window)
                    snapshot.focused = window.focused
                    claimed.add(window.id)
                    break

        await self._store.flush()
        logger.info(
            "Initialized: %d saved windows, %d open, %d closed",
            len(state.names),
            len(state.live_index),
            len(state.closed),
        )

    # ------------------------------------------------------------------
    # Tracking primitives
    # ------------------------------------------------------------------

    async def mark_window_as_open(self, window: LiveWindow, name: str) -> None:
        """Track ``window`` as the live window of saved window ``name``."""
        state = self.state
        snapshot = state.snapshots[name]

        # A live window maps to one name, and a name to one live window.
        previous = state.live_index.get(window.id)
        if previous is not None and previous != name:
            self._untrack(window.id)
        if snapshot.live_id is not None and snapshot.live_id != window.id:
            state.live_index.pop(snapshot.live_id, None)

        state.closed.pop(name, None)
        state.live_index[window.id] = name
        snapshot.live_id = window.id
        logger.debug("Tracking window %s as %r", window.id, name)

        await self._refresh_window_indicator(window)

    def _untrack(self, window_id: WindowId) -> str | None:
        """Stop tracking ``window_id``; its saved window becomes closed."""
        state = self.state
        name = state.live_index.pop(window_id, None)
        self._active_tabs.pop(window_id, None)
        if name is None:
            return None
        snapshot = state.snapshots.get(name)
        if snapshot is not None:
            snapshot.live_id = None
            snapshot.focused = False
            state.closed[name] = snapshot
        return name

    async def _promote_closed_match(self, window: LiveWindow) -> str | None:
        """Track ``window`` as the first closed saved window it matches."""
        for name, snapshot in list(self.state.closed.items()):
            if name not in self.state.snapshots:
                continue
            if windows_are_equal(window, snapshot):
                await self.mark_window_as_open(window, name)
                _resnapshot(snapshot, window)
                logger.info("Window %s reopened as %r", window.id, name)
                return name
        return None

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def save_window(self, window: LiveWindow | None, name: str) -> LiveWindow | None:
        """
        Save ``window`` under ``name`` and start tracking it.

        Empty or already-used names are ignored: returns None and changes
        nothing.
        """
        state = self.state
        if window is None or not name or name in state.snapshots:
            logger.info("Not saving window under %r: empty or duplicate name", name)
            return None

        snapshot = SavedWindow(name=name, tabs=window.capture_tabs(), focused=window.focused)
        state.names.append(name)
        state.snapshots[name] = snapshot
        # A fresh save supersedes any pending undo for the same name.
        state.undo.pop(name, None)
        await self.mark_window_as_open(window, name)
        await self._store.flush()
        logger.info("Saved window %s as %r (%d tabs)", window.id, name, snapshot.tab_count)
        return window

    async def delete_saved_window(self, name: str) -> bool:
        """Forget ``name``, keeping it in the undo buffer. Always returns True."""
        state = self.state
        snapshot = state.snapshots.get(name)
        if snapshot is None and name not in state.names:
            state.closed.pop(name, None)
            return True

        live_ids = [wid for wid, n in state.live_index.items() if n == name]
        if snapshot is not None:
            position = state.names.index(name) if name in state.names else len(state.names)
            state.undo[name] = UndoEntry(
                snapshot=snapshot,
                position=position,
                was_closed=not live_ids,
                live_id=live_ids[0] if live_ids else None,
            )
            snapshot.live_id = None
            snapshot.focused = False

        if name in state.names:
            state.names.remove(name)
        state.snapshots.pop(name, None)
        state.closed.pop(name, None)
        for window_id in live_ids:
            del state.live_index[window_id]
            self._active_tabs.pop(window_id, None)

        for window_id in live_ids:
            window = await self._fetch_window(window_id)
            if window is not None:
                await self._refresh_window_indicator(window)

        await self._store.flush()
        logger.info("Deleted saved window %r", name)
        return True

    async def undo_delete_saved_window(self, name: str) -> bool:
        """
        Restore a window deleted earlier in this session.

        A window that was open when deleted is only re-tracked if its live
        window still exists, is untracked and still matches; otherwise it comes
        back as closed. Raises WindowNotFoundError if there is nothing to undo.
        """
        state = self.state
        entry = state.undo.pop(name, None)
        if entry is None:
            raise WindowNotFoundError(name)

        snapshot = entry.snapshot
        state.names.insert(min(entry.position, len(state.names)), name)
        state.snapshots[name] = snapshot

        restored_open = False
        if not entry.was_closed and entry.live_id is not None:
            window = await self._fetch_window(entry.live_id)
            if (
                window is not None
                and state.name_for_window(window.id) is None
                and windows_are_equal(window, snapshot)
            ):
                await self.mark_window_as_open(window, name)
                restored_open = True
            else:
                logger.warning("Window of %r is gone or changed; restoring it as closed", name)

        if not restored_open:
            snapshot.live_id = None
            state.closed[name] = snapshot

        await self._store.flush()
        logger.info("Restored saved window %r (%s)", name, "open" if restored_open else "closed")
        return True

    async def open_window(self, name: str) -> OpenResult:
        """
        Open saved window ``name`` in a new host window.

        Raises WindowNotFoundError for unknown names. A failure to create the
        window propagates; pinning and closing the placeholder tab do not.
        """
        state = self.state
        snapshot = state.snapshots.get(name)
        if snapshot is None:
            raise WindowNotFoundError(name)

        await self._close_placeholder_tab()

        urls = [t.url or _BLANK_URL for t in snapshot.tabs]
        window = await self._host.create_window(urls)
        # The saved window may be deleted while the host is busy.
        if state.snapshots.get(name) is snapshot:
            await self.mark_window_as_open(window, name)
        await self._apply_pins(snapshot, window)

        if state.snapshots.get(name) is snapshot and name in state.names:
            state.names.remove(name)
            state.names.append(name)
            logger.info("Opened %r in window %s", name, window.id)
        else:
            logger.info("%r was deleted while opening; window %s is untracked", name, window.id)

        await self._store.flush()
        return OpenResult(snapshot=snapshot, window=window)

    async def focus_saved_window(self, name: str) -> bool:
        """Bring the live window of ``name`` to the front. False if it is closed."""
        snapshot = self.state.snapshots.get(name)
        if snapshot is None:
            raise WindowNotFoundError(name)
        if snapshot.live_id is None or not self.state.is_open(name):
            return False
        try:
            await self._host.focus_window(snapshot.live_id)
        except Exception:
            logger.warning("Could not focus window %s", snapshot.live_id, exc_info=True)
            return False
        return True

    def list_saved_windows(self, current_window_id: WindowId | None = None) -> list[SavedWindowEntry]:
        """Saved windows, most recently used first."""
        state = self.state
        entries: list[SavedWindowEntry] = []
        for name in reversed(state.names):
            snapshot = state.snapshots.get(name)
            if snapshot is None:
                continue
            tracked = state.name_for_window(snapshot.live_id) == name
            if tracked and snapshot.live_id == current_window_id:
                status = WindowStatus.CURRENT
            elif tracked:
                status = WindowStatus.OPEN
            else:
                status = WindowStatus.CLOSED
            entries.append(
                SavedWindowEntry(
                    name=name,
                    tab_count=snapshot.tab_count,
                    status=status,
                    live_id=snapshot.live_id if tracked else None,
                )
            )
        return entries

    async def update_badge_for_all_windows(self) -> None:
        """Show the number of saved windows on the global indicator."""
        try:
            await self._indicator.set_global_text(str(len(self.state.names)))
        except Exception:
            logger.warning("Could not update global indicator", exc_info=True)

    # ------------------------------------------------------------------
    # Tab events
    # ------------------------------------------------------------------

    async def on_tab_changed(
        self,
        tab_id: TabId | None,
        window_id: WindowId,
        *,
        also_refresh: Iterable[TabId | None] = (),
    ) -> None:
        """
        Re-read ``window_id`` from the host and resave it wholesale.

        An untracked window is checked against the closed saved windows and
        promoted on the first match.
        """
        window = await self._fetch_window(window_id)
        if window is None:
            return

        state = self.state
        name = state.name_for_window(window.id)
        if name is not None:
            _resnapshot(state.snapshots[name], window)
        else:
            await self._promote_closed_match(window)

        active = window.active_tab
        await self._refresh_tabs(
            window,
            [tab_id, active.id if active else None, *also_refresh],
        )
        await self._store.flush()

    async def on_tab_updated(self, tab_id: TabId, window_id: WindowId) -> None:
        await self.on_tab_changed(tab_id, window_id)

    async def on_tab_removed(
        self, tab_id: TabId, window_id: WindowId, is_window_closing: bool = False
    ) -> None:
        # Tabs closing with their window are handled by on_window_removed.
        if is_window_closing:
            return
        if self._active_tabs.get(window_id) == tab_id:
            del self._active_tabs[window_id]
        await self.on_tab_changed(tab_id, window_id)

    async def on_tab_activated(self, tab_id: TabId, window_id: WindowId) -> None:
        previous = self._active_tabs.get(window_id)
        self._active_tabs[window_id] = tab_id
        await self.on_tab_changed(tab_id, window_id, also_refresh=[previous])

    async def on_tab_attached(self, tab_id: TabId, new_window_id: WindowId) -> None:
        await self.on_tab_changed(tab_id, new_window_id)

    async def on_tab_detached(self, tab_id: TabId, old_window_id: WindowId) -> None:
        if self._active_tabs.get(old_window_id) == tab_id:
            del self._active_tabs[old_window_id]
        await self.on_tab_changed(tab_id, old_window_id)
        await self._set_tab_text(tab_id, "")
        window = await self._fetch_window(old_window_id)
        if window is not None:
            await self._refresh_window_indicator(window)

    # ------------------------------------------------------------------
    # Window events
    # ------------------------------------------------------------------

    async def on_window_created(self, window: LiveWindow) -> None:
        # New windows are usually untracked; tab events will promote matches.
        if self.state.name_for_window(window.id) is not None:
            await self._refresh_window_indicator(window)

    async def on_window_removed(self, window_id: WindowId) -> None:
        name = self._untrack(window_id)
        if name is None:
            return
        await self._store.flush()
        logger.info("Window %s closed; %r is now closed", window_id, name)

    async def on_window_focus_changed(self, window_id: WindowId | None) -> None:
        for snapshot in self.state.snapshots.values():
            snapshot.focused = snapshot.live_id is not None and snapshot.live_id == window_id
        if window_id is not None:
            window = await self._fetch_window(window_id)
            if window is not None:
                await self._refresh_window_indicator(window)
        await self._store.flush()

    # ------------------------------------------------------------------
    # Best-effort side effects
    # ------------------------------------------------------------------

    async def _fetch_window(self, window_id: WindowId) -> LiveWindow | None:
        try:
            return await self._host.get_window(window_id)
        except Exception:
            logger.warning("Could not read window %s from host", window_id, exc_info=True)
            return None

    async def _set_tab_text(self, tab_id: TabId, text: str) -> None:
        try:
            await self._indicator.set_tab_text(tab_id, text)
        except Exception:
            logger.warning("Could not update indicator for tab %s", tab_id, exc_info=True)

    async def _refresh_tabs(self, window: LiveWindow, tab_ids: Iterable[TabId | None]) -> None:
        present = {t.id for t in window.tabs or []}
        text = indicator_text(self.state, window)
        seen: set[TabId] = set()
        for tab_id in tab_ids:
            if tab_id is None or tab_id in seen or tab_id not in present:
                continue
            seen.add(tab_id)
            await self._set_tab_text(tab_id, text)

    async def _refresh_window_indicator(self, window: LiveWindow) -> None:
        await self._refresh_tabs(window, [t.id for t in window.tabs or []])

    async def _apply_pins(self, snapshot: SavedWindow, window: LiveWindow) -> None:
        if not self._host.can_pin_tabs:
            if any(t.pinned for t in snapshot.tabs):
                logger.debug("Host cannot pin tabs; window %s opens unpinned", window.id)
            return
        jobs = [
            self._host.update_tab(live.id, pinned=True)
            for saved, live in zip(snapshot.tabs, window.tabs or [])
            if saved.pinned
        ]
        if not jobs:
            return
        results = await asyncio.gather(*jobs, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.warning("Could not pin tab in window %s: %s", window.id, result)

    async def _close_placeholder_tab(self) -> None:
        try:
            tab = await self._host.get_active_tab()
            if tab is not None and tab.url in PLACEHOLDER_URLS:
                await self._host.remove_tab(tab.id)
        except Exception:
            logger.warning("Could not close placeholder tab", exc_info=True)


def _resnapshot(snapshot: SavedWindow, window: LiveWindow) -> None:
    """Overwrite the saved tab list with the window's current tabs."""
    snapshot.tabs = window.capture_tabs()
