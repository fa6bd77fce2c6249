"""Message-style request surface for the saved-window UI."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from windowkeeper.core.errors import WindowNotFoundError
from windowkeeper.core.keeper import WindowKeeper
from windowkeeper.core.types import LiveWindow

logger = logging.getLogger(__name__)

_Route = Callable[[dict[str, Any]], Awaitable[dict[str, Any]]]


class RequestHandler:
    """
    Answers ``{"type": ..., ...}`` request dicts with response dicts.

    Never raises: failures come back as ``{"error": message}``, with
    ``"not_found": True`` added when the named saved window does not exist.
    """

    def __init__(self, keeper: WindowKeeper) -> None:
        self._keeper = keeper
        self._routes: dict[str, _Route] = {
            "getState": self._get_state,
            "saveWindow": self._save_window,
            "deleteSavedWindow": self._delete_saved_window,
            "undoSavedWindow": self._undo_saved_window,
            "openWindow": self._open_window,
            "listSavedWindows": self._list_saved_windows,
            "focusWindow": self._focus_window,
            "updateBadgeForAllWindows": self._update_badge,
        }

    async def handle(self, message: dict[str, Any] | None) -> dict[str, Any]:
        kind = (message or {}).get("type")
        route = self._routes.get(kind) if isinstance(kind, str) else None
        if route is None:
            return {"error": "unknown message"}
        try:
            return await route(message or {})
        except WindowNotFoundError as exc:
            return {"error": str(exc), "not_found": True}
        except Exception as exc:
            logger.exception("Request %r failed", kind)
            return {"error": str(exc)}

    async def _get_state(self, message: dict[str, Any]) -> dict[str, Any]:
        return {"DEFAULT_NAME": self._keeper.default_name, **self._keeper.state.to_storage()}

    async def _save_window(self, message: dict[str, Any]) -> dict[str, Any]:
        name = message.get("displayName") or message.get("name") or ""
        raw = message.get("browserWindow")
        if raw and raw.get("tabs") is not None:
            saved = await self._keeper.save_window(LiveWindow.from_dict(raw), name)
        else:
            saved = await self._keeper.save_current_window(name)
        snapshot = self._keeper.state.snapshots.get(name) if saved is not None else None
        return {"saved": snapshot.to_dict() if snapshot is not None else None}

    async def _delete_saved_window(self, message: dict[str, Any]) -> dict[str, Any]:
        return {"ok": await self._keeper.delete_saved_window(message.get("name", ""))}

    async def _undo_saved_window(self, message: dict[str, Any]) -> dict[str, Any]:
        return {"ok": await self._keeper.undo_delete_saved_window(message.get("name", ""))}

    async def _open_window(self, message: dict[str, Any]) -> dict[str, Any]:
        result = await self._keeper.open_window(message.get("name", ""))
        return {
            "ok": True,
            "res": {"saved": result.snapshot.to_dict(), "win": result.window.to_dict()},
        }

    async def _list_saved_windows(self, message: dict[str, Any]) -> dict[str, Any]:
        entries = self._keeper.list_saved_windows(message.get("currentWindowId"))
        return {"windows": [e.to_dict() for e in entries]}

    async def _focus_window(self, message: dict[str, Any]) -> dict[str, Any]:
        return {"ok": await self._keeper.focus_saved_window(message.get("name", ""))}

    async def _update_badge(self, message: dict[str, Any]) -> dict[str, Any]:
        await self._keeper.update_badge_for_all_windows()
        return {"ok": True}
