"""Abstract host: the browser's window and tab API as seen by the engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from windowkeeper.core.events import HostEvent
from windowkeeper.core.types import LiveTab, LiveWindow, TabId, WindowId

EventCallback = Callable[[HostEvent], None]


class BaseHost(ABC):
    """
    Every call may fail (windows vanish between enumeration and use); the
    engine decides which failures are fatal. Windows are always returned
    populated with their tabs in strip order.
    """

    # False for hosts whose update_tab always raises UnsupportedHostOperation.
    can_pin_tabs: bool = True

    @abstractmethod
    async def get_all_windows(self) -> list[LiveWindow]: ...

    @abstractmethod
    async def get_window(self, window_id: WindowId) -> LiveWindow | None:
        """Return the window, or None if it no longer exists."""

    @abstractmethod
    async def get_current_window(self) -> LiveWindow | None: ...

    @abstractmethod
    async def create_window(self, urls: list[str]) -> LiveWindow:
        """Open a new window whose tabs are exactly ``urls``, in order."""

    @abstractmethod
    async def update_tab(self, tab_id: TabId, *, pinned: bool) -> None: ...

    @abstractmethod
    async def remove_tab(self, tab_id: TabId) -> None: ...

    @abstractmethod
    async def get_active_tab(self) -> LiveTab | None:
        """Active tab of the focused window, if the host knows it."""

    @abstractmethod
    async def focus_window(self, window_id: WindowId) -> None: ...

    @abstractmethod
    def subscribe(self, callback: EventCallback) -> None:
        """Deliver lifecycle events to ``callback``, in the order they happen."""
