"""Shared fakes: an in-memory browser host and a recording indicator."""

from __future__ import annotations

import copy
import itertools

import pytest

from windowkeeper.core.events import HostEvent
from windowkeeper.core.types import LiveTab, LiveWindow, TabId, WindowId
from windowkeeper.engine.indicator import IndicatorSink
from windowkeeper.engine.reconciler import ReconciliationEngine
from windowkeeper.host.base import BaseHost, EventCallback
from windowkeeper.store.registry import RegistryStore
from windowkeeper.store.storage import MemoryStorage


class FakeHost(BaseHost):
    """Browser stand-in. Windows are returned as copies, like a real host would."""

    def __init__(self) -> None:
        self.windows: dict[WindowId, LiveWindow] = {}
        self.created: list[list[str]] = []
        self.removed_tabs: list[TabId] = []
        self.fail_create = False
        self.fail_lookup = False
        self.fail_pin: set[TabId] = set()
        self._window_ids = itertools.count(1)
        self._tab_ids = itertools.count(1)
        self._callbacks: list[EventCallback] = []

    # -- test helpers ---------------------------------------------------

    def add_window(
        self,
        urls: list[str],
        *,
        focused: bool = False,
        incognito: bool = False,
        pinned: tuple[int, ...] = (),
    ) -> LiveWindow:
        window_id = next(self._window_ids)
        tabs = [
            LiveTab(
                id=f"t{next(self._tab_ids)}",
                window_id=window_id,
                url=url,
                pinned=i in pinned,
                title=url,
                active=i == 0,
                index=i,
            )
            for i, url in enumerate(urls)
        ]
        window = LiveWindow(id=window_id, tabs=tabs, focused=focused, incognito=incognito)
        self.windows[window_id] = window
        return copy.deepcopy(window)

    def add_tab(self, window_id: WindowId, url: str) -> LiveTab:
        window = self.windows[window_id]
        tab = LiveTab(
            id=f"t{next(self._tab_ids)}",
            window_id=window_id,
            url=url,
            title=url,
            index=len(window.tabs),
        )
        window.tabs.append(tab)
        return tab

    def navigate(self, tab_id: TabId, url: str) -> None:
        self._find_tab(tab_id).url = url

    def activate(self, tab_id: TabId) -> None:
        tab = self._find_tab(tab_id)
        for other in self.windows[tab.window_id].tabs:
            other.active = other.id == tab_id

    def close_window(self, window_id: WindowId) -> None:
        del self.windows[window_id]

    def move_tab(self, tab_id: TabId, new_window_id: WindowId) -> None:
        tab = self._find_tab(tab_id)
        self.windows[tab.window_id].tabs.remove(tab)
        tab.window_id = new_window_id
        tab.active = False
        self.windows[new_window_id].tabs.append(tab)

    def emit(self, event: HostEvent) -> None:
        for callback in self._callbacks:
            callback(event)

    def _find_tab(self, tab_id: TabId) -> LiveTab:
        for window in self.windows.values():
            for tab in window.tabs:
                if tab.id == tab_id:
                    return tab
        raise KeyError(tab_id)

    # -- BaseHost -------------------------------------------------------

    async def get_all_windows(self) -> list[LiveWindow]:
        if self.fail_lookup:
            raise RuntimeError("host unavailable")
        return [copy.deepcopy(w) for w in self.windows.values()]

    async def get_window(self, window_id: WindowId) -> LiveWindow | None:
        if self.fail_lookup:
            raise RuntimeError("host unavailable")
        window = self.windows.get(window_id)
        return copy.deepcopy(window) if window is not None else None

    async def get_current_window(self) -> LiveWindow | None:
        focused = next((w for w in self.windows.values() if w.focused), None)
        return copy.deepcopy(focused) if focused is not None else None

    async def create_window(self, urls: list[str]) -> LiveWindow:
        if self.fail_create:
            raise RuntimeError("window creation failed")
        self.created.append(list(urls))
        for window in self.windows.values():
            window.focused = False
        return self.add_window(urls, focused=True)

    async def update_tab(self, tab_id: TabId, *, pinned: bool) -> None:
        if tab_id in self.fail_pin:
            raise RuntimeError(f"cannot pin {tab_id}")
        self._find_tab(tab_id).pinned = pinned

    async def remove_tab(self, tab_id: TabId) -> None:
        tab = self._find_tab(tab_id)
        self.windows[tab.window_id].tabs.remove(tab)
        self.removed_tabs.append(tab_id)

    async def get_active_tab(self) -> LiveTab | None:
        focused = next((w for w in self.windows.values() if w.focused), None)
        if focused is None:
            return None
        return copy.deepcopy(focused.active_tab)

    async def focus_window(self, window_id: WindowId) -> None:
        if window_id not in self.windows:
            raise LookupError(window_id)
        for window in self.windows.values():
            window.focused = window.id == window_id

    def subscribe(self, callback: EventCallback) -> None:
        self._callbacks.append(callback)


class RecordingIndicator(IndicatorSink):
    def __init__(self) -> None:
        self.tab_text: dict[TabId, str] = {}
        self.global_text: str | None = None
        self.fail = False

    async def set_tab_text(self, tab_id: TabId, text: str) -> None:
        if self.fail:
            raise RuntimeError("indicator unavailable")
        self.tab_text[tab_id] = text

    async def set_global_text(self, text: str) -> None:
        if self.fail:
            raise RuntimeError("indicator unavailable")
        self.global_text = text


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def indicator() -> RecordingIndicator:
    return RecordingIndicator()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def store(storage) -> RegistryStore:
    return RegistryStore(storage)


@pytest.fixture
def engine(store, host, indicator) -> ReconciliationEngine:
    return ReconciliationEngine(store, host, indicator)
