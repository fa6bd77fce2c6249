"""Indicator (badge) sink: where the engine reports tracked-window tab counts."""

from __future__ import annotations

from abc import ABC, abstractmethod

from windowkeeper.core.types import LiveWindow, TabId
from windowkeeper.store.registry import RegistryState


class IndicatorSink(ABC):
    """Receives indicator text for tabs and for the extension as a whole."""

    @abstractmethod
    async def set_tab_text(self, tab_id: TabId, text: str) -> None: ...

    @abstractmethod
    async def set_global_text(self, text: str) -> None: ...


class NullIndicatorSink(IndicatorSink):
    """Discards every update."""

    async def set_tab_text(self, tab_id: TabId, text: str) -> None:
        return None

    async def set_global_text(self, text: str) -> None:
        return None


def indicator_text(state: RegistryState, window: LiveWindow | None) -> str:
    """Tab count of ``window`` if it is tracked, otherwise an empty string."""
    if window is None or state.name_for_window(window.id) is None:
        return ""
    return str(len(window.tabs or []))
