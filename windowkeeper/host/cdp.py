"""
Chromium host over a browser-level Chrome DevTools Protocol session.

CDP has no notion of a "window with tabs", so windows are rebuilt from page
targets grouped by Browser.getWindowForTarget. Target discovery events are
translated into WindowKeeper host events in the order they arrive.

Limitations of the protocol, surfaced as-is:
  · tab pinning is unavailable (can_pin_tabs is False)
  · window focus and the active tab are not reported
  · tab order is target enumeration order
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from playwright.async_api import Browser, CDPSession

from windowkeeper.core.errors import UnsupportedHostOperation
from windowkeeper.core.events import (
    HostEvent,
    TabAttached,
    TabDetached,
    TabRemoved,
    TabUpdated,
    WindowCreated,
    WindowRemoved,
)
from windowkeeper.core.types import LiveTab, LiveWindow, TabId, WindowId
from windowkeeper.host.base import BaseHost, EventCallback

logger = logging.getLogger(__name__)

_PAGE = "page"
_BLANK_URL = "about:blank"


class CDPHost(BaseHost):
    """
    Usage:
        browser = await playwright.chromium.connect_over_cdp(endpoint)
        host = await CDPHost.connect(browser)
        windows = await host.get_all_windows()

    Pages living in a non-default browser context (incognito windows, or
    contexts created with ``browser.new_context()``) are reported as private
    unless ``contexts_are_private`` is False.
    """

    can_pin_tabs = False

    def __init__(self, session: CDPSession, *, contexts_are_private: bool = True) -> None:
        self._session = session
        self._contexts_are_private = contexts_are_private
        self._callbacks: list[EventCallback] = []
        self._target_windows: dict[TabId, WindowId] = {}
        self._raw_events: asyncio.Queue[tuple[str, dict]] = asyncio.Queue()
        self._pump: asyncio.Task | None = None

    @classmethod
    async def connect(cls, browser: Browser, *, contexts_are_private: bool = True) -> CDPHost:
        session = await browser.new_browser_cdp_session()
        host = cls(session, contexts_are_private=contexts_are_private)
        await host.start()
        return host

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Begin target discovery and event translation."""
        if self._pump is not None:
            return
        for method in ("Target.targetCreated", "Target.targetInfoChanged", "Target.targetDestroyed"):
            self._session.on(method, self._enqueue(method))
        await self.get_all_windows()  # seeds the target -> window map
        await self._session.send("Target.setDiscoverTargets", {"discover": True})
        self._pump = asyncio.create_task(self._translate_events())

    async def stop(self) -> None:
        if self._pump is None:
            return
        self._pump.cancel()
        try:
            await self._pump
        except asyncio.CancelledError:
            pass
        self._pump = None

    def _enqueue(self, method: str):
        def handler(params: dict) -> None:
            self._raw_events.put_nowait((method, params))
        return handler

    # ------------------------------------------------------------------
    # BaseHost
    # ------------------------------------------------------------------

    async def get_all_windows(self) -> list[LiveWindow]:
        targets = await self._page_targets()
        private = await self._private_contexts()

        windows: dict[WindowId, LiveWindow] = {}
        for info in targets:
            target_id = info["targetId"]
            window_id = await self._window_for(target_id)
            if window_id is None:
                continue
            self._target_windows[target_id] = window_id
            window = windows.get(window_id)
            if window is None:
                window = windows[window_id] = LiveWindow(id=window_id, tabs=[])
            if info.get("browserContextId") in private:
                window.incognito = True
            window.tabs.append(
                LiveTab(
                    id=target_id,
                    window_id=window_id,
                    url=info.get("url", ""),
                    title=info.get("title", ""),
                    index=len(window.tabs),
                )
            )
        return list(windows.values())

    async def get_window(self, window_id: WindowId) -> LiveWindow | None:
        for window in await self.get_all_windows():
            if window.id == window_id:
                return window
        return None

    async def get_current_window(self) -> LiveWindow | None:
        # Focus is not reported over CDP; the first non-private window stands in.
        windows = await self.get_all_windows()
        return next((w for w in windows if not w.incognito), None)

    async def create_window(self, urls: list[str]) -> LiveWindow:
        urls = urls or [_BLANK_URL]
        created = await self._session.send(
            "Target.createTarget", {"url": urls[0], "newWindow": True}
        )
        first_id = created["targetId"]
        window_id = await self._window_for(first_id)
        if window_id is None:
            raise RuntimeError(f"Could not resolve the window of new target {first_id!r}")
        self._target_windows[first_id] = window_id

        # The new window has focus, so further targets open as its tabs.
        for url in urls[1:]:
            await self._session.send("Target.createTarget", {"url": url, "background": True})

        window = await self.get_window(window_id)
        if window is None:
            raise RuntimeError(f"Window {window_id} vanished right after creation")
        return window

    async def update_tab(self, tab_id: TabId, *, pinned: bool) -> None:
        raise UnsupportedHostOperation("Tabs cannot be pinned over the DevTools protocol")

    async def remove_tab(self, tab_id: TabId) -> None:
        await self._session.send("Target.closeTarget", {"targetId": tab_id})

    async def get_active_tab(self) -> LiveTab | None:
        return None

    async def focus_window(self, window_id: WindowId) -> None:
        window = await self.get_window(window_id)
        if window is None or not window.tabs:
            raise LookupError(f"Window {window_id} is not open")
        await self._session.send("Target.activateTarget", {"targetId": window.tabs[0].id})

    def subscribe(self, callback: EventCallback) -> None:
        self._callbacks.append(callback)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _page_targets(self) -> list[dict[str, Any]]:
        result = await self._session.send("Target.getTargets")
        return [t for t in result.get("targetInfos", []) if t.get("type") == _PAGE]

    async def _private_contexts(self) -> set[str]:
        if not self._contexts_are_private:
            return set()
        result = await self._session.send("Target.getBrowserContexts")
        return set(result.get("browserContextIds", []))

    async def _window_for(self, target_id: TabId) -> WindowId | None:
        try:
            result = await self._session.send("Browser.getWindowForTarget", {"targetId": target_id})
        except Exception as exc:
            logger.debug("No window for target %s: %s", target_id, exc)
            return None
        return result.get("windowId")

    def _emit(self, event: HostEvent) -> None:
        for callback in self._callbacks:
            callback(event)

    async def _translate_events(self) -> None:
        while True:
            method, params = await self._raw_events.get()
            try:
                await self._translate(method, params)
            except Exception:
                logger.exception("Failed to translate %s", method)

    async def _translate(self, method: str, params: dict) -> None:
        if method == "Target.targetDestroyed":
            self._on_target_destroyed(params["targetId"])
            return

        info = params.get("targetInfo", {})
        if info.get("type") != _PAGE:
            return
        target_id = info["targetId"]
        window_id = await self._window_for(target_id)
        if window_id is None:
            return

        previous = self._target_windows.get(target_id)
        is_new_window = window_id not in self._target_windows.values()
        self._target_windows[target_id] = window_id

        if is_new_window:
            window = await self.get_window(window_id)
            self._emit(WindowCreated(window or LiveWindow(id=window_id, tabs=[])))

        if previous is not None and previous != window_id:
            self._emit(TabDetached(target_id, previous))
            self._emit(TabAttached(target_id, window_id))
            if previous not in self._target_windows.values():
                self._emit(WindowRemoved(previous))
        else:
            self._emit(TabUpdated(target_id, window_id))

    def _on_target_destroyed(self, target_id: TabId) -> None:
        window_id = self._target_windows.pop(target_id, None)
        if window_id is None:
            return
        closing = window_id not in self._target_windows.values()
        self._emit(TabRemoved(target_id, window_id, is_window_closing=closing))
        if closing:
            self._emit(WindowRemoved(window_id))
