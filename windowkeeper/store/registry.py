"""Registry store: the four persisted collections plus the session undo buffer."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from windowkeeper.core.types import SavedWindow, UndoEntry, WindowId
from windowkeeper.store.storage import StateStorage

logger = logging.getLogger(__name__)

NAMES_KEY = "savedWindowNames"
SNAPSHOTS_KEY = "savedWindows"
LIVE_INDEX_KEY = "windowIdToName"
CLOSED_KEY = "closedWindows"

STORAGE_KEYS = (NAMES_KEY, SNAPSHOTS_KEY, LIVE_INDEX_KEY, CLOSED_KEY)


@dataclass
class RegistryState:
    """
    Process-wide saved-window state.

    ``names``      saved names, least- to most-recently used
    ``snapshots``  name -> SavedWindow
    ``live_index`` live window id -> name, for tracked open windows
    ``closed``     name -> SavedWindow, for saved windows not currently open
    ``undo``       name -> UndoEntry, session only, never persisted
    """

    names: list[str] = field(default_factory=list)
    snapshots: dict[str, SavedWindow] = field(default_factory=dict)
    live_index: dict[WindowId, str] = field(default_factory=dict)
    closed: dict[str, SavedWindow] = field(default_factory=dict)
    undo: dict[str, UndoEntry] = field(default_factory=dict)

    def name_for_window(self, window_id: WindowId | None) -> str | None:
        if window_id is None:
            return None
        return self.live_index.get(window_id)

    def snapshot_for_window(self, window_id: WindowId | None) -> SavedWindow | None:
        name = self.name_for_window(window_id)
        return self.snapshots.get(name) if name is not None else None

    def is_open(self, name: str) -> bool:
        return name in self.live_index.values()

    def to_storage(self) -> dict[str, Any]:
        return {
            NAMES_KEY: list(self.names),
            SNAPSHOTS_KEY: {n: s.to_dict() for n, s in self.snapshots.items()},
            LIVE_INDEX_KEY: {str(wid): n for wid, n in self.live_index.items()},
            CLOSED_KEY: {n: s.to_dict() for n, s in self.closed.items()},
        }

    @classmethod
    def from_storage(cls, data: dict[str, Any]) -> RegistryState:
        raw_names = data.get(NAMES_KEY)
        raw_snapshots = data.get(SNAPSHOTS_KEY)
        raw_index = data.get(LIVE_INDEX_KEY)
        raw_closed = data.get(CLOSED_KEY)

        names = [n for n in raw_names if isinstance(n, str)] if isinstance(raw_names, list) else []
        snapshots: dict[str, SavedWindow] = {}
        if isinstance(raw_snapshots, dict):
            for name, d in raw_snapshots.items():
                if isinstance(d, dict):
                    snapshots[name] = SavedWindow.from_dict(name, d)

        live_index: dict[WindowId, str] = {}
        if isinstance(raw_index, dict):
            for key, name in raw_index.items():
                try:
                    live_index[int(key)] = name
                except (TypeError, ValueError):
                    logger.warning("Dropping malformed window id %r for %r", key, name)

        # One in-memory record per saved window: closed entries alias the snapshot.
        closed: dict[str, SavedWindow] = {}
        if isinstance(raw_closed, dict):
            for name, d in raw_closed.items():
                if name in snapshots:
                    closed[name] = snapshots[name]
                elif isinstance(d, dict):
                    closed[name] = SavedWindow.from_dict(name, d)

        return cls(names=names, snapshots=snapshots, live_index=live_index, closed=closed)


class RegistryStore:
    """Owns a RegistryState and moves it to and from durable storage as one unit."""

    def __init__(self, storage: StateStorage) -> None:
        self._storage = storage
        self.state = RegistryState()

    async def load(self) -> RegistryState:
        """Replace the in-memory state with what storage holds. The undo buffer survives."""
        data = await self._storage.read(STORAGE_KEYS)
        undo = self.state.undo
        self.state = RegistryState.from_storage(data)
        self.state.undo = undo
        return self.state

    async def flush(self) -> None:
        await self._storage.write(self.state.to_storage())
        logger.debug(
            "Flushed %d saved windows (%d open)",
            len(self.state.names),
            len(self.state.live_index),
        )

    def sweep_orphans(self) -> list[str]:
        """
        Make ``names`` and ``snapshots`` describe the same set of windows.

        Names without a snapshot (and repeated names) are dropped, as are
        snapshots no name refers to. Returns the dropped names.
        """
        state = self.state
        dropped: list[str] = []
        kept: list[str] = []
        for name in state.names:
            if name not in state.snapshots:
                logger.warning("Saved window %r has no snapshot; dropping it", name)
                dropped.append(name)
            elif name in kept:
                logger.warning("Saved window %r is listed twice; keeping the first", name)
            else:
                kept.append(name)
        state.names = kept

        listed = set(kept)
        for name in list(state.snapshots):
            if name not in listed:
                logger.warning("Snapshot %r is not in the saved list; dropping it", name)
                del state.snapshots[name]
                state.closed.pop(name, None)
                dropped.append(name)
        return dropped
