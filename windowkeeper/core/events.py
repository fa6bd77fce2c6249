"""Host lifecycle events consumed by the reconciliation engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from windowkeeper.core.types import LiveWindow, TabId, WindowId


@dataclass(frozen=True)
class WindowCreated:
    window: LiveWindow


@dataclass(frozen=True)
class WindowRemoved:
    window_id: WindowId


@dataclass(frozen=True)
class WindowFocusChanged:
    window_id: WindowId | None  # None when focus left the browser


@dataclass(frozen=True)
class TabUpdated:
    """A tab was created, navigated or moved within its window."""

    tab_id: TabId
    window_id: WindowId


@dataclass(frozen=True)
class TabRemoved:
    tab_id: TabId
    window_id: WindowId
    is_window_closing: bool = False


@dataclass(frozen=True)
class TabActivated:
    tab_id: TabId
    window_id: WindowId


@dataclass(frozen=True)
class TabAttached:
    tab_id: TabId
    new_window_id: WindowId


@dataclass(frozen=True)
class TabDetached:
    tab_id: TabId
    old_window_id: WindowId


HostEvent = Union[
    WindowCreated,
    WindowRemoved,
    WindowFocusChanged,
    TabUpdated,
    TabRemoved,
    TabActivated,
    TabAttached,
    TabDetached,
]
