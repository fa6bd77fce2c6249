"""Shared types and dataclasses for WindowKeeper."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

WindowId = int  # host-assigned, valid for one browser session only
TabId = str

DEFAULT_NAME = "Window"


class WindowStatus(str, Enum):
    CURRENT = "current"  # the window the UI is looking from
    OPEN = "open"
    CLOSED = "closed"


@dataclass(frozen=True)
class TabRecord:
    """One tab of a saved window, captured at snapshot time."""

    url: str
    pinned: bool = False
    title: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url, "pinned": self.pinned, "title": self.title}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> TabRecord:
        return cls(
            url=d.get("url") or "",
            pinned=bool(d.get("pinned", False)),
            title=d.get("title") or "",
        )


@dataclass
class SavedWindow:
    """A named snapshot of a window's tabs."""

    name: str
    tabs: list[TabRecord] = field(default_factory=list)
    live_id: WindowId | None = None  # set only while a live window is tracked
    focused: bool = False

    @property
    def tab_count(self) -> int:
        return len(self.tabs)

    @property
    def urls(self) -> list[str]:
        return [t.url for t in self.tabs]

    @property
    def is_open(self) -> bool:
        return self.live_id is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "tabs": [t.to_dict() for t in self.tabs],
            "id": self.live_id,
            "focused": self.focused,
        }

    @classmethod
    def from_dict(cls, name: str, d: dict[str, Any]) -> SavedWindow:
        return cls(
            name=d.get("name") or name,
            tabs=[TabRecord.from_dict(t) for t in d.get("tabs") or []],
            live_id=d.get("id"),
            focused=bool(d.get("focused", False)),
        )


@dataclass
class LiveTab:
    """A tab as reported by the host right now."""

    id: TabId
    window_id: WindowId
    url: str
    pinned: bool = False
    title: str = ""
    active: bool = False
    index: int = 0

    def capture(self) -> TabRecord:
        return TabRecord(url=self.url, pinned=self.pinned, title=self.title)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "windowId": self.window_id,
            "url": self.url,
            "pinned": self.pinned,
            "title": self.title,
            "active": self.active,
            "index": self.index,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any], window_id: WindowId) -> LiveTab:
        return cls(
            id=d["id"],
            window_id=d.get("windowId", window_id),
            url=d.get("url") or "",
            pinned=bool(d.get("pinned", False)),
            title=d.get("title") or "",
            active=bool(d.get("active", False)),
            index=d.get("index", 0),
        )


@dataclass
class LiveWindow:
    """An open host window, populated with its tabs in strip order."""

    id: WindowId
    tabs: list[LiveTab] | None = field(default_factory=list)
    focused: bool = False
    incognito: bool = False

    @property
    def active_tab(self) -> LiveTab | None:
        return next((t for t in self.tabs or [] if t.active), None)

    def capture_tabs(self) -> list[TabRecord]:
        return [t.capture() for t in self.tabs or []]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "tabs": [t.to_dict() for t in self.tabs] if self.tabs is not None else None,
            "focused": self.focused,
            "incognito": self.incognito,
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> LiveWindow:
        window_id = d["id"]
        raw_tabs = d.get("tabs")
        tabs = (
            [LiveTab.from_dict(t, window_id) for t in raw_tabs]
            if raw_tabs is not None
            else None
        )
        return cls(
            id=window_id,
            tabs=tabs,
            focused=bool(d.get("focused", False)),
            incognito=bool(d.get("incognito", False)),
        )


@dataclass
class UndoEntry:
    """What delete removed, kept for the rest of the session so it can be undone."""

    snapshot: SavedWindow
    position: int
    was_closed: bool
    live_id: WindowId | None = None


@dataclass
class OpenResult:
    snapshot: SavedWindow
    window: LiveWindow


@dataclass
class SavedWindowEntry:
    """One row of the saved-window list shown to the user."""

    name: str
    tab_count: int
    status: WindowStatus
    live_id: WindowId | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "tab_count": self.tab_count,
            "status": self.status.value,
            "id": self.live_id,
        }
